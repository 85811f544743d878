"""
Durable storage backend

Relational tables (see ledger.models) with foreign keys, unique and check
constraints mirroring the ledger invariants. Ids come from the database's
autoincrement/sequence; session transitions are conditional UPDATEs.
"""
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from ledger import models
from ledger.database import create_engine, create_session_factory, init_models
from ledger.errors import ConflictError, InternalError
from ledger.schemas import id_in_range
from ledger.storage.base import (
    COLUMNS,
    UNIQUE_FIELDS,
    EntityKind,
    Row,
    StorageBackend,
    check_criteria,
)

logger = logging.getLogger(__name__)

MODELS = {
    EntityKind.USER: models.User,
    EntityKind.EDUCATOR_PROFILE: models.EducatorProfile,
    EntityKind.CATEGORY: models.Category,
    EntityKind.SUBJECT: models.Subject,
    EntityKind.EDUCATOR_SUBJECT: models.EducatorSubject,
    EntityKind.SESSION: models.Session,
    EntityKind.REVIEW: models.Review,
    EntityKind.TESTIMONIAL: models.Testimonial,
}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _to_row(instance: Any) -> Row:
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


def _optional_row(instance: Any) -> Optional[Row]:
    return _to_row(instance) if instance is not None else None


class DatabaseBackend(StorageBackend):
    """SQLAlchemy async backend; PostgreSQL in production, SQLite in tests"""

    name = "database"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, url: Optional[str] = None) -> "DatabaseBackend":
        return cls(create_engine(url))

    async def create_schema(self) -> None:
        await init_models(self.engine)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session scope that turns driver failures into InternalError"""
        try:
            async with self._session_factory() as db:
                yield db
        except IntegrityError as exc:
            logger.error(f"Integrity violation reached storage: {exc.orig}")
            raise InternalError("Storage constraint violated", {"backend": self.name}) from exc
        except (SQLAlchemyError, OSError, OverflowError) as exc:
            logger.error(f"Storage backend failure: {exc}", exc_info=True)
            raise InternalError("Storage backend failure", {"backend": self.name}) from exc

    def _integrity_error(self, kind: EntityKind, values: Row, exc: IntegrityError) -> Exception:
        message = str(exc.orig).lower()
        if "unique" in message or "duplicate" in message:
            for field in UNIQUE_FIELDS.get(kind, ()):
                if field in message:
                    return ConflictError(field, values.get(field))
        logger.error(f"Constraint violation inserting into {kind.value}: {exc.orig}")
        return InternalError(f"Constraint violation on {kind.value}", {"backend": self.name})

    async def insert(self, kind: EntityKind, values: Row) -> Row:
        model = MODELS[kind]
        async with self._session() as db:
            instance = model(**{
                column: _plain(values.get(column))
                for column in COLUMNS[kind]
                if column != "id"
            })
            db.add(instance)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise self._integrity_error(kind, values, exc) from exc
            logger.debug(f"Inserted {kind.value} {instance.id}")
            return _to_row(instance)

    async def get(self, kind: EntityKind, entity_id: int) -> Optional[Row]:
        if not id_in_range(entity_id):
            return None
        async with self._session() as db:
            return _optional_row(await db.get(MODELS[kind], entity_id))

    async def list_where(self, kind: EntityKind, **criteria: Any) -> List[Row]:
        check_criteria(kind, criteria)
        model = MODELS[kind]
        stmt = (
            select(model)
            .filter_by(**{field: _plain(value) for field, value in criteria.items()})
            .order_by(model.id)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            return [_to_row(instance) for instance in result.scalars().all()]

    @staticmethod
    async def _find_link(db: AsyncSession, educator_id: int, subject_id: int) -> Optional[models.EducatorSubject]:
        result = await db.execute(
            select(models.EducatorSubject).where(
                models.EducatorSubject.educator_id == educator_id,
                models.EducatorSubject.subject_id == subject_id,
            )
        )
        return result.scalar_one_or_none()

    async def link_subject(self, educator_id: int, subject_id: int) -> Row:
        async with self._session() as db:
            existing = await self._find_link(db, educator_id, subject_id)
            if existing is not None:
                return _to_row(existing)

            link = models.EducatorSubject(educator_id=educator_id, subject_id=subject_id)
            db.add(link)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                # A concurrent assignment of the same pair won the race
                existing = await self._find_link(db, educator_id, subject_id)
                if existing is None:
                    raise self._integrity_error(EntityKind.EDUCATOR_SUBJECT, {}, exc) from exc
                return _to_row(existing)
            return _to_row(link)

    async def unlink_subject(self, educator_id: int, subject_id: int) -> bool:
        stmt = delete(models.EducatorSubject).where(
            models.EducatorSubject.educator_id == educator_id,
            models.EducatorSubject.subject_id == subject_id,
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount > 0

    async def compare_and_set_session(
        self,
        session_id: int,
        expected: Tuple[str, str],
        target: Tuple[str, str],
    ) -> Optional[Row]:
        stmt = (
            update(models.Session)
            .where(
                models.Session.id == session_id,
                models.Session.status == _plain(expected[0]),
                models.Session.payment_status == _plain(expected[1]),
            )
            .values(status=_plain(target[0]), payment_status=_plain(target[1]))
            .execution_options(synchronize_session=False)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            await db.commit()
            if result.rowcount == 0:
                return None
            return _optional_row(await db.get(models.Session, session_id))

    async def set_testimonial_visibility(self, testimonial_id: int, is_visible: bool) -> Optional[Row]:
        async with self._session() as db:
            testimonial = await db.get(models.Testimonial, testimonial_id)
            if testimonial is None:
                return None
            testimonial.is_visible = is_visible
            await db.commit()
            return _to_row(testimonial)

    async def review_totals(self, educator_id: int) -> Tuple[int, int]:
        stmt = select(
            func.count(models.Review.id),
            func.coalesce(func.sum(models.Review.rating), 0),
        ).where(models.Review.educator_id == educator_id)
        async with self._session() as db:
            count, total = (await db.execute(stmt)).one()
            return int(count), int(total)

    async def educator_subject_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row], Optional[Row]]]:
        stmt = (
            select(models.EducatorSubject, models.Subject, models.Category)
            .outerjoin(models.Subject, models.Subject.id == models.EducatorSubject.subject_id)
            .outerjoin(models.Category, models.Category.id == models.Subject.category_id)
            .where(models.EducatorSubject.educator_id == educator_id)
            .order_by(models.EducatorSubject.id)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            return [
                (_to_row(link), _optional_row(subject), _optional_row(category))
                for link, subject, category in result.all()
            ]

    async def review_student_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row]]]:
        stmt = (
            select(models.Review, models.User)
            .outerjoin(models.User, models.User.id == models.Review.student_id)
            .where(models.Review.educator_id == educator_id)
            .order_by(models.Review.id)
        )
        async with self._session() as db:
            result = await db.execute(stmt)
            return [(_to_row(review), _optional_row(student)) for review, student in result.all()]

    async def close(self) -> None:
        await self.engine.dispose()
