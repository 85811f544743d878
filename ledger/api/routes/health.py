"""
Health API Endpoint

GET /health - Liveness check with the active storage backend
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ledger.api.identity import get_service
from ledger.services.ledger_service import LedgerService

router = APIRouter(tags=["health"])

VERSION = "1.0.0"


@router.get("/health")
async def health_check(service: LedgerService = Depends(get_service)) -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns server status, version and the storage backend in use.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "service": "booking-ledger",
        "backend": service.backend.name,
    }
