"""
Entity Store

Validates field bags, enforces foreign key existence and uniqueness, and hands
rows to the storage backend. Every write is checked in full before anything is
admitted, so a rejected create leaves no partial state behind.
"""
import logging
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ledger import schemas
from ledger.errors import ConflictError, NotFoundError, ValidationFailedError
from ledger.schemas import id_in_range, parse_payload
from ledger.storage.base import UNIQUE_FIELDS, EntityKind, Row, StorageBackend

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

RECORD_TYPES = {
    EntityKind.USER: schemas.User,
    EntityKind.EDUCATOR_PROFILE: schemas.EducatorProfile,
    EntityKind.CATEGORY: schemas.Category,
    EntityKind.SUBJECT: schemas.Subject,
    EntityKind.EDUCATOR_SUBJECT: schemas.EducatorSubject,
    EntityKind.SESSION: schemas.Session,
    EntityKind.REVIEW: schemas.Review,
    EntityKind.TESTIMONIAL: schemas.Testimonial,
}

# Names used in NotFound errors
KIND_LABELS = {
    EntityKind.USER: "user",
    EntityKind.EDUCATOR_PROFILE: "educator_profile",
    EntityKind.CATEGORY: "category",
    EntityKind.SUBJECT: "subject",
    EntityKind.EDUCATOR_SUBJECT: "educator_subject",
    EntityKind.SESSION: "session",
    EntityKind.REVIEW: "review",
    EntityKind.TESTIMONIAL: "testimonial",
}


def to_record(kind: EntityKind, row: Row) -> BaseModel:
    return RECORD_TYPES[kind].model_validate(row)


def ids_in_range(criteria: Row) -> bool:
    """False when an id filter can never match a stored row"""
    return all(
        id_in_range(value)
        for field, value in criteria.items()
        if (field == "id" or field.endswith("_id")) and isinstance(value, int)
    )


class EntityStore:
    """Create/read operations for every entity kind over one backend"""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    # Generic access

    async def get(self, kind: EntityKind, entity_id: int) -> BaseModel:
        return to_record(kind, await self._require(kind, entity_id))

    async def list_where(self, kind: EntityKind, **criteria: Any) -> List[BaseModel]:
        if not ids_in_range(criteria):
            return []
        return [to_record(kind, row) for row in await self.backend.list_where(kind, **criteria)]

    async def _find(self, kind: EntityKind, **criteria: Any) -> Optional[BaseModel]:
        if not ids_in_range(criteria):
            return None
        row = await self.backend.find_one(kind, **criteria)
        return to_record(kind, row) if row is not None else None

    async def _require(self, kind: EntityKind, entity_id: int) -> Row:
        row = await self.backend.get(kind, entity_id) if id_in_range(entity_id) else None
        if row is None:
            raise NotFoundError(KIND_LABELS[kind], entity_id)
        return row

    async def _require_user(self, user_id: int, role: schemas.UserRole, field: str) -> Row:
        user = await self._require(EntityKind.USER, user_id)
        if user["role"] != role:
            raise ValidationFailedError(field, f"user {user_id} is not a {role.value}")
        return user

    async def _check_unique(self, kind: EntityKind, values: Row) -> None:
        for field in UNIQUE_FIELDS.get(kind, ()):
            if await self.backend.find_one(kind, **{field: values[field]}) is not None:
                raise ConflictError(field, values[field])

    async def _admit(self, kind: EntityKind, values: Row, record_cls: Type[RecordT]) -> RecordT:
        await self._check_unique(kind, values)
        row = await self.backend.insert(kind, values)
        logger.info(f"Created {KIND_LABELS[kind]} {row['id']}")
        return record_cls.model_validate(row)

    # Users

    async def create_user(self, data: Any) -> schemas.User:
        payload = parse_payload(schemas.UserCreate, data)
        return await self._admit(EntityKind.USER, payload.model_dump(), schemas.User)

    async def get_user(self, user_id: int) -> schemas.User:
        return await self.get(EntityKind.USER, user_id)

    async def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        return await self._find(EntityKind.USER, username=username)

    async def get_user_by_email(self, email: str) -> Optional[schemas.User]:
        return await self._find(EntityKind.USER, email=email)

    # Educator profiles

    async def create_educator_profile(self, data: Any) -> schemas.EducatorProfile:
        payload = parse_payload(schemas.EducatorProfileCreate, data)
        await self._require_user(payload.user_id, schemas.UserRole.EDUCATOR, "user_id")
        return await self._admit(EntityKind.EDUCATOR_PROFILE, payload.model_dump(), schemas.EducatorProfile)

    async def get_educator_profile(self, educator_id: int) -> schemas.EducatorProfile:
        return await self.get(EntityKind.EDUCATOR_PROFILE, educator_id)

    async def get_educator_profile_by_user_id(self, user_id: int) -> Optional[schemas.EducatorProfile]:
        return await self._find(EntityKind.EDUCATOR_PROFILE, user_id=user_id)

    async def list_educator_profiles(self) -> List[schemas.EducatorProfile]:
        return await self.list_where(EntityKind.EDUCATOR_PROFILE)

    # Categories and subjects

    async def create_category(self, data: Any) -> schemas.Category:
        payload = parse_payload(schemas.CategoryCreate, data)
        return await self._admit(EntityKind.CATEGORY, payload.model_dump(), schemas.Category)

    async def get_category(self, category_id: int) -> schemas.Category:
        return await self.get(EntityKind.CATEGORY, category_id)

    async def list_categories(self) -> List[schemas.Category]:
        return await self.list_where(EntityKind.CATEGORY)

    async def create_subject(self, data: Any) -> schemas.Subject:
        payload = parse_payload(schemas.SubjectCreate, data)
        await self._require(EntityKind.CATEGORY, payload.category_id)
        return await self._admit(EntityKind.SUBJECT, payload.model_dump(), schemas.Subject)

    async def get_subject(self, subject_id: int) -> schemas.Subject:
        return await self.get(EntityKind.SUBJECT, subject_id)

    async def list_subjects(self, category_id: Optional[int] = None) -> List[schemas.Subject]:
        if category_id is None:
            return await self.list_where(EntityKind.SUBJECT)
        return await self.list_where(EntityKind.SUBJECT, category_id=category_id)

    # Educator/subject links

    async def assign_subject_to_educator(self, educator_id: int, subject_id: int) -> schemas.EducatorSubject:
        """
        Link a subject to an educator.

        Idempotent: an existing (educator_id, subject_id) link is returned
        unchanged. Otherwise both ids must resolve before the link is inserted.
        """
        payload = parse_payload(
            schemas.EducatorSubjectCreate,
            {"educator_id": educator_id, "subject_id": subject_id},
        )
        existing = await self._find(
            EntityKind.EDUCATOR_SUBJECT,
            educator_id=payload.educator_id,
            subject_id=payload.subject_id,
        )
        if existing is not None:
            return existing

        await self._require(EntityKind.EDUCATOR_PROFILE, payload.educator_id)
        await self._require(EntityKind.SUBJECT, payload.subject_id)
        row = await self.backend.link_subject(payload.educator_id, payload.subject_id)
        logger.info(f"Assigned subject {payload.subject_id} to educator {payload.educator_id}")
        return schemas.EducatorSubject.model_validate(row)

    async def remove_subject_from_educator(self, educator_id: int, subject_id: int) -> bool:
        if not (id_in_range(educator_id) and id_in_range(subject_id)):
            return False
        removed = await self.backend.unlink_subject(educator_id, subject_id)
        if removed:
            logger.info(f"Removed subject {subject_id} from educator {educator_id}")
        return removed

    async def educator_ids_for_subject(self, subject_id: int) -> List[int]:
        links = await self.list_where(EntityKind.EDUCATOR_SUBJECT, subject_id=subject_id)
        return sorted({link.educator_id for link in links})

    # Sessions

    async def create_session(self, data: Any) -> schemas.Session:
        """Create a booking; it always starts as (requested, pending)"""
        payload = parse_payload(schemas.SessionCreate, data)
        await self._require(EntityKind.EDUCATOR_PROFILE, payload.educator_id)
        await self._require_user(payload.student_id, schemas.UserRole.STUDENT, "student_id")

        values = payload.model_dump()
        values["status"] = schemas.SessionStatus.REQUESTED.value
        values["payment_status"] = schemas.PaymentStatus.PENDING.value
        return await self._admit(EntityKind.SESSION, values, schemas.Session)

    async def get_session(self, session_id: int) -> schemas.Session:
        return await self.get(EntityKind.SESSION, session_id)

    async def sessions_by_educator(self, educator_id: int) -> List[schemas.Session]:
        return await self.list_where(EntityKind.SESSION, educator_id=educator_id)

    async def sessions_by_student(self, student_id: int) -> List[schemas.Session]:
        return await self.list_where(EntityKind.SESSION, student_id=student_id)

    # Reviews

    async def create_review(self, data: Any) -> schemas.Review:
        """
        Create a review.

        A review tied to a session must match that session's student/educator
        pair and the session must already be completed.
        """
        payload = parse_payload(schemas.ReviewCreate, data)
        await self._require(EntityKind.EDUCATOR_PROFILE, payload.educator_id)
        await self._require_user(payload.student_id, schemas.UserRole.STUDENT, "student_id")

        if payload.session_id is not None:
            session = await self._require(EntityKind.SESSION, payload.session_id)
            if session["student_id"] != payload.student_id or session["educator_id"] != payload.educator_id:
                raise ValidationFailedError("session_id", "session does not match student and educator")
            if session["status"] != schemas.SessionStatus.COMPLETED:
                raise ValidationFailedError("session_id", "can only review completed sessions")

        values = payload.model_dump()
        values["created_at"] = schemas.utcnow()
        return await self._admit(EntityKind.REVIEW, values, schemas.Review)

    async def get_review(self, review_id: int) -> schemas.Review:
        return await self.get(EntityKind.REVIEW, review_id)

    async def reviews_by_educator(self, educator_id: int) -> List[schemas.Review]:
        return await self.list_where(EntityKind.REVIEW, educator_id=educator_id)

    # Testimonials

    async def create_testimonial(self, data: Any) -> schemas.Testimonial:
        payload = parse_payload(schemas.TestimonialCreate, data)
        await self._require(EntityKind.USER, payload.user_id)
        return await self._admit(EntityKind.TESTIMONIAL, payload.model_dump(), schemas.Testimonial)

    async def get_testimonial(self, testimonial_id: int) -> schemas.Testimonial:
        return await self.get(EntityKind.TESTIMONIAL, testimonial_id)

    async def visible_testimonials(self) -> List[schemas.Testimonial]:
        return await self.list_where(EntityKind.TESTIMONIAL, is_visible=True)

    async def hide_testimonial(self, testimonial_id: int) -> schemas.Testimonial:
        row = None
        if id_in_range(testimonial_id):
            row = await self.backend.set_testimonial_visibility(testimonial_id, False)
        if row is None:
            raise NotFoundError(KIND_LABELS[EntityKind.TESTIMONIAL], testimonial_id)
        logger.info(f"Hid testimonial {testimonial_id}")
        return schemas.Testimonial.model_validate(row)
