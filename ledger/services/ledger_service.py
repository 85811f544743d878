"""
Ledger Service

Facade over the Entity Store, Relationship Resolver, Rating Aggregator and
Booking Lifecycle Engine. It applies the acting-identity checks for
profile, subject and review writes, and returns enriched views so callers
never join rows themselves.
"""
import logging
from typing import Any, List, Optional

from ledger import schemas
from ledger.errors import ForbiddenError, NotFoundError, ValidationFailedError
from ledger.schemas import SessionAction, UserRole, parse_payload
from ledger.services.booking_lifecycle import BookingLifecycleEngine
from ledger.services.entity_store import EntityStore
from ledger.services.rating_aggregator import RatingAggregator
from ledger.services.relationship_resolver import RelationshipResolver
from ledger.storage import build_backend
from ledger.storage.base import StorageBackend

logger = logging.getLogger(__name__)

# Target status -> lifecycle action, for callers that name the state they want
STATUS_ACTIONS = {
    schemas.SessionStatus.CONFIRMED.value: SessionAction.CONFIRM,
    schemas.SessionStatus.COMPLETED.value: SessionAction.COMPLETE,
    schemas.SessionStatus.CANCELLED.value: SessionAction.CANCEL,
}

PAYMENT_ACTIONS = {
    schemas.PaymentStatus.PAID.value: SessionAction.PAY,
    schemas.PaymentStatus.REFUNDED.value: SessionAction.REFUND,
}


class LedgerService:
    """One backend, the four ledger components, and the views built from them"""

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self.store = EntityStore(backend)
        self.resolver = RelationshipResolver(backend)
        self.aggregator = RatingAggregator(backend)
        self.lifecycle = BookingLifecycleEngine(self.store)

    async def close(self) -> None:
        await self.backend.close()

    # Users

    async def register_user(self, data: Any) -> schemas.User:
        return await self.store.create_user(data)

    async def get_user(self, user_id: int) -> schemas.User:
        return await self.store.get_user(user_id)

    # Catalog

    async def create_category(self, data: Any) -> schemas.Category:
        return await self.store.create_category(data)

    async def list_categories(self) -> List[schemas.Category]:
        return await self.store.list_categories()

    async def category_detail(self, category_id: int) -> schemas.CategoryWithSubjects:
        category = await self.store.get_category(category_id)
        subjects = await self.store.list_subjects(category_id=category_id)
        return schemas.CategoryWithSubjects(**category.model_dump(), subjects=subjects)

    async def create_subject(self, data: Any) -> schemas.Subject:
        return await self.store.create_subject(data)

    async def list_subjects(self, category_id: Optional[int] = None) -> List[schemas.Subject]:
        if category_id is not None:
            await self.store.get_category(category_id)
        return await self.store.list_subjects(category_id=category_id)

    # Educators

    async def _require_educator_owner(self, actor: schemas.ActingIdentity, educator_id: int) -> schemas.EducatorProfile:
        profile = await self.store.get_educator_profile(educator_id)
        if actor.role != UserRole.EDUCATOR or profile.user_id != actor.user_id:
            raise ForbiddenError(
                f"User {actor.user_id} does not own educator profile {educator_id}",
                {"educator_id": educator_id},
            )
        return profile

    async def register_educator_profile(self, actor: Any, data: Any) -> schemas.EducatorWithUser:
        """
        Create the acting educator's own profile.

        Raises:
            ValidationFailedError: On invalid fields
            ForbiddenError: If the actor is not an educator creating their own profile
            ConflictError: If the user already has a profile
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        payload = parse_payload(schemas.EducatorProfileCreate, data)
        if actor.role != UserRole.EDUCATOR or payload.user_id != actor.user_id:
            raise ForbiddenError("Only an educator can create their own profile")

        profile = await self.store.create_educator_profile(payload)
        return await self.resolver.educator_with_user(profile.id)

    async def assign_subject(self, actor: Any, educator_id: int, subject_id: int) -> schemas.EducatorSubject:
        actor = parse_payload(schemas.ActingIdentity, actor)
        await self._require_educator_owner(actor, educator_id)
        return await self.store.assign_subject_to_educator(educator_id, subject_id)

    async def remove_subject(self, actor: Any, educator_id: int, subject_id: int) -> bool:
        actor = parse_payload(schemas.ActingIdentity, actor)
        await self._require_educator_owner(actor, educator_id)
        return await self.store.remove_subject_from_educator(educator_id, subject_id)

    async def ratings_for(self, educator_id: int) -> schemas.RatingSummary:
        await self.store.get_educator_profile(educator_id)
        return await self.aggregator.ratings_for(educator_id)

    async def educator_summary(self, educator_id: int) -> schemas.EducatorSummary:
        educator = await self.resolver.educator_with_user(educator_id)
        subjects = await self.resolver.educator_subjects(educator_id)
        ratings = await self.aggregator.ratings_for(educator_id)
        return schemas.EducatorSummary(
            **educator.model_dump(exclude={"user"}),
            user=educator.user,
            subjects=subjects,
            average_rating=ratings.average_rating,
            review_count=ratings.review_count,
        )

    async def educator_detail(self, educator_id: int) -> schemas.EducatorDetail:
        """Profile, user, subjects, reviews and live ratings for one educator"""
        summary = await self.educator_summary(educator_id)
        reviews = await self.resolver.reviews_with_student(educator_id)
        return schemas.EducatorDetail(
            **summary.model_dump(exclude={"user", "subjects"}),
            user=summary.user,
            subjects=summary.subjects,
            reviews=reviews,
        )

    async def list_educators(
        self,
        limit: Optional[int] = None,
        subject_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> List[schemas.EducatorSummary]:
        """
        List educators as summaries, optionally narrowed by subject or category.

        Args:
            limit: Maximum number of educators returned
            subject_id: Only educators teaching this subject
            category_id: Only educators teaching a subject in this category

        Raises:
            NotFoundError: If the subject or category does not exist
            ValidationFailedError: If limit is negative
        """
        if limit is not None and limit < 0:
            raise ValidationFailedError("limit", "must be zero or greater")

        if subject_id is not None:
            await self.store.get_subject(subject_id)
            educator_ids = await self.store.educator_ids_for_subject(subject_id)
        elif category_id is not None:
            await self.store.get_category(category_id)
            ids = set()
            for subject in await self.store.list_subjects(category_id=category_id):
                ids.update(await self.store.educator_ids_for_subject(subject.id))
            educator_ids = sorted(ids)
        else:
            educator_ids = [profile.id for profile in await self.store.list_educator_profiles()]

        if limit is not None:
            educator_ids = educator_ids[:limit]
        return [await self.educator_summary(educator_id) for educator_id in educator_ids]

    # Sessions

    async def _require_party(self, actor: schemas.ActingIdentity, session: schemas.Session) -> None:
        if await self.lifecycle.party_of(actor, session) is None:
            raise ForbiddenError(
                f"User {actor.user_id} is not a party to session {session.id}",
                {"session_id": session.id},
            )

    async def _enrich(self, session: schemas.Session) -> schemas.EnrichedSession:
        enriched = await self.resolver.sessions_enriched([session])
        return enriched[0]

    async def book_session(self, actor: Any, data: Any) -> schemas.EnrichedSession:
        session = await self.lifecycle.book_session(actor, data)
        return await self._enrich(session)

    async def get_session(self, actor: Any, session_id: int) -> schemas.EnrichedSession:
        actor = parse_payload(schemas.ActingIdentity, actor)
        session = await self.store.get_session(session_id)
        await self._require_party(actor, session)
        return await self._enrich(session)

    async def allowed_actions(self, actor: Any, session_id: int) -> List[SessionAction]:
        actor = parse_payload(schemas.ActingIdentity, actor)
        session = await self.store.get_session(session_id)
        await self._require_party(actor, session)
        return await self.lifecycle.allowed_actions(actor, session)

    async def transition_session(self, actor: Any, session_id: int, action: Any) -> schemas.EnrichedSession:
        session = await self.lifecycle.apply(actor, session_id, action)
        return await self._enrich(session)

    async def update_session_status(self, actor: Any, session_id: int, status: str) -> schemas.EnrichedSession:
        """Move a session to a named status (confirmed, completed or cancelled)"""
        action = STATUS_ACTIONS.get(status)
        if action is None:
            raise ValidationFailedError("status", f"cannot move a session to '{status}'")
        return await self.transition_session(actor, session_id, action)

    async def update_payment_status(self, actor: Any, session_id: int, payment_status: str) -> schemas.EnrichedSession:
        """Move a session's payment to a named status (paid or refunded)"""
        action = PAYMENT_ACTIONS.get(payment_status)
        if action is None:
            raise ValidationFailedError("payment_status", f"cannot move a payment to '{payment_status}'")
        return await self.transition_session(actor, session_id, action)

    async def sessions_for(self, actor: Any, as_educator: bool = False) -> List[schemas.EnrichedSession]:
        """
        Sessions the actor takes part in, enriched with both parties.

        As an educator the actor's profile is looked up by user id.

        Raises:
            ForbiddenError: If the actor's role does not match the requested side
            NotFoundError: If an educator actor has no profile
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        if as_educator:
            if actor.role != UserRole.EDUCATOR:
                raise ForbiddenError("Only educators can list sessions as an educator")
            profile = await self.store.get_educator_profile_by_user_id(actor.user_id)
            if profile is None:
                raise NotFoundError("educator_profile", actor.user_id, key="user_id")
            sessions = await self.store.sessions_by_educator(profile.id)
        else:
            if actor.role != UserRole.STUDENT:
                raise ForbiddenError("Only students can list sessions as a student")
            sessions = await self.store.sessions_by_student(actor.user_id)
        return await self.resolver.sessions_enriched(sessions)

    # Reviews

    async def submit_review(self, actor: Any, data: Any) -> schemas.Review:
        """
        Review an educator as the acting student.

        Raises:
            ValidationFailedError: On invalid fields or a session mismatch
            ForbiddenError: If the actor is not the reviewing student
            NotFoundError: If the educator, student or session does not exist
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        payload = parse_payload(schemas.ReviewCreate, data)
        if actor.role != UserRole.STUDENT or payload.student_id != actor.user_id:
            raise ForbiddenError("Students can only review as themselves")
        return await self.store.create_review(payload)

    async def reviews_for_educator(self, educator_id: int) -> List[schemas.ReviewWithStudent]:
        await self.store.get_educator_profile(educator_id)
        return await self.resolver.reviews_with_student(educator_id)

    # Testimonials

    async def submit_testimonial(self, actor: Any, data: Any) -> schemas.Testimonial:
        actor = parse_payload(schemas.ActingIdentity, actor)
        payload = parse_payload(schemas.TestimonialCreate, data)
        if payload.user_id != actor.user_id:
            raise ForbiddenError("Users can only submit testimonials as themselves")
        return await self.store.create_testimonial(payload)

    async def visible_testimonials(self) -> List[schemas.TestimonialWithUser]:
        testimonials = await self.store.visible_testimonials()
        return await self.resolver.testimonials_with_user(testimonials)

    async def hide_testimonial(self, actor: Any, testimonial_id: int) -> schemas.Testimonial:
        """
        Hide a testimonial written by the acting user.

        Raises:
            NotFoundError: If the testimonial does not exist
            ForbiddenError: If the actor did not write it
        """
        actor = parse_payload(schemas.ActingIdentity, actor)
        testimonial = await self.store.get_testimonial(testimonial_id)
        if testimonial.user_id != actor.user_id:
            raise ForbiddenError(
                f"User {actor.user_id} did not write testimonial {testimonial_id}",
                {"testimonial_id": testimonial_id},
            )
        return await self.store.hide_testimonial(testimonial_id)


async def build_ledger_service(backend_name: Optional[str] = None, database_url: Optional[str] = None) -> LedgerService:
    backend = await build_backend(backend_name, database_url)
    return LedgerService(backend)


# Global service instance
_service: Optional[LedgerService] = None


async def get_ledger_service() -> LedgerService:
    """Get or create global LedgerService instance."""
    global _service
    if _service is None:
        _service = await build_ledger_service()
    return _service


async def shutdown_ledger_service() -> None:
    global _service
    if _service is not None:
        await _service.close()
        _service = None
