"""
Relationship Resolver

Read-side joins so callers never assemble related rows themselves. Each join
has a fixed policy for unresolvable references:
- educator -> user, and both parties of a session: a dangling reference is a
  broken invariant and raises InternalError
- educator -> subjects -> category, review -> student, testimonial -> user:
  the entry is skipped and logged, tolerating historical inconsistencies
  without failing the read
"""
import logging
from datetime import datetime
from typing import List

from ledger import schemas
from ledger.errors import InternalError, NotFoundError
from ledger.storage.base import EntityKind, StorageBackend

logger = logging.getLogger(__name__)

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_time_of_day(value: datetime) -> str:
    """9:00 AM"""
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value.hour % 12 or 12}:{value.minute:02d} {meridiem}"


def format_date_time(value: datetime) -> str:
    """Apr 29, 2025, 9:00 AM"""
    return f"{MONTHS[value.month - 1]} {value.day}, {value.year}, {format_time_of_day(value)}"


class RelationshipResolver:
    """Builds enriched read views from backend rows"""

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def educator_with_user(self, educator_id: int) -> schemas.EducatorWithUser:
        """
        Join an educator profile with its user.

        Raises:
            NotFoundError: If the profile does not exist
            InternalError: If the profile's user is missing
        """
        profile = await self.backend.get(EntityKind.EDUCATOR_PROFILE, educator_id)
        if profile is None:
            raise NotFoundError("educator_profile", educator_id)

        user = await self.backend.get(EntityKind.USER, profile["user_id"])
        if user is None:
            logger.error(f"Educator profile {educator_id} references missing user {profile['user_id']}")
            raise InternalError(
                f"Dangling user reference on educator profile {educator_id}",
                {"educator_id": educator_id, "user_id": profile["user_id"]},
            )
        return schemas.EducatorWithUser(**profile, user=schemas.User.model_validate(user))

    async def educator_subjects(self, educator_id: int) -> List[schemas.SubjectWithCategory]:
        subjects = []
        for link, subject, category in await self.backend.educator_subject_rows(educator_id):
            if subject is None:
                logger.warning(f"Subject {link['subject_id']} not found for educator {educator_id}, skipping")
                continue
            if category is None:
                logger.warning(f"Category {subject['category_id']} not found for subject {subject['id']}, skipping")
                continue
            subjects.append(
                schemas.SubjectWithCategory(**subject, category=schemas.Category.model_validate(category))
            )
        return subjects

    async def reviews_with_student(self, educator_id: int) -> List[schemas.ReviewWithStudent]:
        reviews = []
        for review, student in await self.backend.review_student_rows(educator_id):
            if student is None:
                logger.warning(f"Student {review['student_id']} not found for review {review['id']}, skipping")
                continue
            reviews.append(
                schemas.ReviewWithStudent(**review, student=schemas.User.model_validate(student))
            )
        return reviews

    async def sessions_enriched(self, sessions: List[schemas.Session]) -> List[schemas.EnrichedSession]:
        """
        Attach both parties and display strings to each session.

        Raises:
            InternalError: If any session's educator or student cannot be resolved
        """
        enriched = []
        for session in sessions:
            try:
                educator = await self.educator_with_user(session.educator_id)
            except NotFoundError as exc:
                logger.error(f"Session {session.id} references missing educator {session.educator_id}")
                raise InternalError(
                    f"Dangling educator reference on session {session.id}",
                    {"session_id": session.id, "educator_id": session.educator_id},
                ) from exc

            student = await self.backend.get(EntityKind.USER, session.student_id)
            if student is None:
                logger.error(f"Session {session.id} references missing student {session.student_id}")
                raise InternalError(
                    f"Dangling student reference on session {session.id}",
                    {"session_id": session.id, "student_id": session.student_id},
                )

            enriched.append(
                schemas.EnrichedSession(
                    **session.model_dump(),
                    educator=educator,
                    student=schemas.User.model_validate(student),
                    formatted_start_time=format_date_time(session.start_time),
                    formatted_end_time=format_time_of_day(session.end_time),
                )
            )
        return enriched

    async def testimonials_with_user(self, testimonials: List[schemas.Testimonial]) -> List[schemas.TestimonialWithUser]:
        enriched = []
        for testimonial in testimonials:
            user = await self.backend.get(EntityKind.USER, testimonial.user_id)
            if user is None:
                logger.warning(f"User {testimonial.user_id} not found for testimonial {testimonial.id}, skipping")
                continue
            enriched.append(
                schemas.TestimonialWithUser(**testimonial.model_dump(), user=schemas.User.model_validate(user))
            )
        return enriched
