"""Storage backends behind one contract"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv

from ledger.storage.base import EntityKind, StorageBackend
from ledger.storage.database import DatabaseBackend
from ledger.storage.memory import MemoryBackend

load_dotenv()

logger = logging.getLogger(__name__)

LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "memory")
LEDGER_CREATE_SCHEMA = os.getenv("LEDGER_CREATE_SCHEMA", "false").lower() in {"1", "true", "yes"}


async def build_backend(name: Optional[str] = None, database_url: Optional[str] = None) -> StorageBackend:
    """
    Build the configured storage backend.

    Args:
        name: "memory" or "database" (defaults to LEDGER_BACKEND)
        database_url: Overrides DATABASE_URL for the durable backend

    Raises:
        ValueError: If the backend name is unknown
    """
    name = name or LEDGER_BACKEND
    if name == MemoryBackend.name:
        logger.info("Using transient in-memory storage backend")
        return MemoryBackend()
    if name == DatabaseBackend.name:
        backend = DatabaseBackend.from_url(database_url)
        if LEDGER_CREATE_SCHEMA:
            await backend.create_schema()
        logger.info(f"Using database storage backend ({backend.engine.url.render_as_string(hide_password=True)})")
        return backend
    raise ValueError(f"Invalid storage backend: {name}. Must be one of: memory, database")


__all__ = [
    "EntityKind",
    "StorageBackend",
    "MemoryBackend",
    "DatabaseBackend",
    "build_backend",
]
