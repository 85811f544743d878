"""
Transient storage backend

Per-kind in-memory maps with a per-kind lock and id counter. State is lost on
restart; used by tests and ephemeral environments.
"""
import asyncio
import copy
import itertools
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ledger.errors import ConflictError
from ledger.storage.base import (
    COLUMNS,
    UNIQUE_FIELDS,
    EntityKind,
    Row,
    StorageBackend,
    check_criteria,
)

logger = logging.getLogger(__name__)


class MemoryBackend(StorageBackend):
    """In-process backend holding every kind in its own dict"""

    name = "memory"

    def __init__(self):
        self._rows: Dict[EntityKind, Dict[int, Row]] = {kind: {} for kind in EntityKind}
        self._locks: Dict[EntityKind, asyncio.Lock] = {kind: asyncio.Lock() for kind in EntityKind}
        self._ids: Dict[EntityKind, Iterator[int]] = {kind: itertools.count(1) for kind in EntityKind}

    def _store(self, kind: EntityKind, values: Row) -> Row:
        """Assign an id and store a copy; caller holds the kind's lock"""
        entity_id = next(self._ids[kind])
        row = {column: copy.deepcopy(values.get(column)) for column in COLUMNS[kind]}
        row["id"] = entity_id
        self._rows[kind][entity_id] = row
        logger.debug(f"Stored {kind.value} {entity_id}")
        return copy.deepcopy(row)

    async def insert(self, kind: EntityKind, values: Row) -> Row:
        async with self._locks[kind]:
            for field in UNIQUE_FIELDS.get(kind, ()):
                value = values.get(field)
                if any(row[field] == value for row in self._rows[kind].values()):
                    raise ConflictError(field, value)
            return self._store(kind, values)

    async def get(self, kind: EntityKind, entity_id: int) -> Optional[Row]:
        row = self._rows[kind].get(entity_id)
        return copy.deepcopy(row) if row is not None else None

    async def list_where(self, kind: EntityKind, **criteria: Any) -> List[Row]:
        check_criteria(kind, criteria)
        return [
            copy.deepcopy(row)
            for entity_id, row in sorted(self._rows[kind].items())
            if all(row[field] == value for field, value in criteria.items())
        ]

    def _find_link(self, educator_id: int, subject_id: int) -> Optional[Row]:
        for row in self._rows[EntityKind.EDUCATOR_SUBJECT].values():
            if row["educator_id"] == educator_id and row["subject_id"] == subject_id:
                return row
        return None

    async def link_subject(self, educator_id: int, subject_id: int) -> Row:
        async with self._locks[EntityKind.EDUCATOR_SUBJECT]:
            existing = self._find_link(educator_id, subject_id)
            if existing is not None:
                return copy.deepcopy(existing)
            return self._store(
                EntityKind.EDUCATOR_SUBJECT,
                {"educator_id": educator_id, "subject_id": subject_id},
            )

    async def unlink_subject(self, educator_id: int, subject_id: int) -> bool:
        async with self._locks[EntityKind.EDUCATOR_SUBJECT]:
            existing = self._find_link(educator_id, subject_id)
            if existing is None:
                return False
            del self._rows[EntityKind.EDUCATOR_SUBJECT][existing["id"]]
            return True

    async def compare_and_set_session(
        self,
        session_id: int,
        expected: Tuple[str, str],
        target: Tuple[str, str],
    ) -> Optional[Row]:
        async with self._locks[EntityKind.SESSION]:
            row = self._rows[EntityKind.SESSION].get(session_id)
            if row is None or (row["status"], row["payment_status"]) != tuple(expected):
                return None
            row["status"], row["payment_status"] = target
            return copy.deepcopy(row)

    async def set_testimonial_visibility(self, testimonial_id: int, is_visible: bool) -> Optional[Row]:
        async with self._locks[EntityKind.TESTIMONIAL]:
            row = self._rows[EntityKind.TESTIMONIAL].get(testimonial_id)
            if row is None:
                return None
            row["is_visible"] = is_visible
            return copy.deepcopy(row)

    async def review_totals(self, educator_id: int) -> Tuple[int, int]:
        ratings = [
            row["rating"]
            for row in list(self._rows[EntityKind.REVIEW].values())
            if row["educator_id"] == educator_id
        ]
        return len(ratings), sum(ratings)

    async def educator_subject_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row], Optional[Row]]]:
        triples = []
        for link in await self.list_where(EntityKind.EDUCATOR_SUBJECT, educator_id=educator_id):
            subject = await self.get(EntityKind.SUBJECT, link["subject_id"])
            category = None
            if subject is not None:
                category = await self.get(EntityKind.CATEGORY, subject["category_id"])
            triples.append((link, subject, category))
        return triples

    async def review_student_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row]]]:
        return [
            (review, await self.get(EntityKind.USER, review["student_id"]))
            for review in await self.list_where(EntityKind.REVIEW, educator_id=educator_id)
        ]
