"""
Sessions API Endpoints

POST /api/v1/sessions - Book a session as the acting student
GET /api/v1/sessions - The actor's sessions (as student, or as educator)
GET /api/v1/sessions/:session_id - One session the actor takes part in
GET /api/v1/sessions/:session_id/actions - Lifecycle actions open to the actor
POST /api/v1/sessions/:session_id/:action - Apply confirm, cancel, complete, pay or refund
PATCH /api/v1/sessions/:session_id/status - Move to confirmed, completed or cancelled
PATCH /api/v1/sessions/:session_id/payment - Move payment to paid or refunded
"""
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from ledger import schemas
from ledger.api.identity import get_actor, get_service
from ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


class SessionResponse(BaseModel):
    data: schemas.EnrichedSession


class SessionListResponse(BaseModel):
    data: List[schemas.EnrichedSession]


class ActionsResponse(BaseModel):
    data: List[schemas.SessionAction]


class StatusUpdate(BaseModel):
    status: str


class PaymentUpdate(BaseModel):
    payment_status: str


@router.post("", response_model=SessionResponse, status_code=201)
async def book_session(
    body: schemas.SessionCreate,
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Book a session. It starts as requested with payment pending.

    Raises:
        403: Actor is not the booking student
        404: Educator or student not found
        422: Invalid times or price
    """
    return SessionResponse(data=await service.book_session(actor, body))


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    as_educator: bool = Query(False, description="List the sessions the actor teaches"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    return SessionListResponse(data=await service.sessions_for(actor, as_educator=as_educator))


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Session id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    return SessionResponse(data=await service.get_session(actor, session_id))


@router.get("/{session_id}/actions", response_model=ActionsResponse)
async def get_allowed_actions(
    session_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Session id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    return ActionsResponse(data=await service.allowed_actions(actor, session_id))


@router.patch("/{session_id}/status", response_model=SessionResponse)
async def update_status(
    body: StatusUpdate,
    session_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Session id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Move a session to a target status.

    Raises:
        403: Actor is not a party, or their role may not make this change
        409: The change is not reachable from the current state
    """
    return SessionResponse(data=await service.update_session_status(actor, session_id, body.status))


@router.patch("/{session_id}/payment", response_model=SessionResponse)
async def update_payment(
    body: PaymentUpdate,
    session_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Session id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    return SessionResponse(data=await service.update_payment_status(actor, session_id, body.payment_status))


@router.post("/{session_id}/{action}", response_model=SessionResponse)
async def apply_action(
    session_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Session id"),
    action: str = Path(..., description="confirm, cancel, complete, pay or refund"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Apply a lifecycle action.

    Raises:
        403: Actor is not a party, or their role may not take this action
        404: Session not found
        409: The action is not reachable from the current state
        422: Unknown action
    """
    return SessionResponse(data=await service.transition_session(actor, session_id, action))
