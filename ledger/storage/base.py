"""
Storage Backend Adapter contract

The Entity Store, Relationship Resolver, Rating Aggregator and Booking
Lifecycle Engine only ever talk to this interface. Rows cross the boundary as
plain dicts keyed by column name; both implementations must return equal
dicts for the same sequence of calls.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ledger.errors import InternalError

Row = Dict[str, Any]


class EntityKind(str, Enum):
    """Entity kinds, valued by their table name"""

    USER = "users"
    EDUCATOR_PROFILE = "educator_profiles"
    CATEGORY = "categories"
    SUBJECT = "subjects"
    EDUCATOR_SUBJECT = "educator_subjects"
    SESSION = "sessions"
    REVIEW = "reviews"
    TESTIMONIAL = "testimonials"


COLUMNS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.USER: (
        "id", "username", "email", "first_name", "last_name", "bio",
        "profile_image", "role", "is_verified",
    ),
    EntityKind.EDUCATOR_PROFILE: (
        "id", "user_id", "title", "hourly_rate", "experience", "education",
        "specialties", "availability", "teaching_method", "video_introduction",
    ),
    EntityKind.CATEGORY: ("id", "name", "description", "image_url", "educator_count"),
    EntityKind.SUBJECT: ("id", "category_id", "name", "description"),
    EntityKind.EDUCATOR_SUBJECT: ("id", "educator_id", "subject_id"),
    EntityKind.SESSION: (
        "id", "educator_id", "student_id", "start_time", "end_time", "status",
        "total_price", "notes", "payment_status",
    ),
    EntityKind.REVIEW: (
        "id", "educator_id", "student_id", "session_id", "rating", "comment",
        "created_at",
    ),
    EntityKind.TESTIMONIAL: ("id", "user_id", "content", "user_role", "is_visible"),
}

# Single-column uniqueness; the (educator_id, subject_id) pair is handled by link_subject
UNIQUE_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.USER: ("username", "email"),
    EntityKind.EDUCATOR_PROFILE: ("user_id",),
    EntityKind.CATEGORY: ("name",),
}


def check_criteria(kind: EntityKind, criteria: Dict[str, Any]) -> None:
    """Reject filters on columns the kind does not have"""
    unknown = set(criteria) - set(COLUMNS[kind])
    if unknown:
        raise InternalError(f"Unknown {kind.value} column(s): {sorted(unknown)}")


class StorageBackend(ABC):
    """
    Behavioral contract shared by the transient and durable backends.

    Implementations assign ids (per kind, monotonically, never reused), enforce
    single-column uniqueness atomically by raising ConflictError, and wrap
    driver failures in InternalError. Foreign key validation is the Entity
    Store's job; a durable backend may enforce it again as a second line of
    defense.
    """

    name = "abstract"

    @abstractmethod
    async def insert(self, kind: EntityKind, values: Row) -> Row:
        """
        Insert a row and return it with its assigned id.

        Raises:
            ConflictError: If a unique column value is already taken
        """

    @abstractmethod
    async def get(self, kind: EntityKind, entity_id: int) -> Optional[Row]:
        """Fetch a row by id, None if absent"""

    @abstractmethod
    async def list_where(self, kind: EntityKind, **criteria: Any) -> List[Row]:
        """Rows whose columns equal every criterion, ordered by id"""

    async def find_one(self, kind: EntityKind, **criteria: Any) -> Optional[Row]:
        rows = await self.list_where(kind, **criteria)
        return rows[0] if rows else None

    @abstractmethod
    async def link_subject(self, educator_id: int, subject_id: int) -> Row:
        """Insert the educator/subject pair unless present; return the link"""

    @abstractmethod
    async def unlink_subject(self, educator_id: int, subject_id: int) -> bool:
        """Remove the educator/subject pair; False if it was not linked"""

    @abstractmethod
    async def compare_and_set_session(
        self,
        session_id: int,
        expected: Tuple[str, str],
        target: Tuple[str, str],
    ) -> Optional[Row]:
        """
        Atomically move a session from ``expected`` to ``target``.

        Both tuples are ``(status, payment_status)``. Returns the updated row,
        or None when the session is no longer in the expected state.
        """

    @abstractmethod
    async def set_testimonial_visibility(self, testimonial_id: int, is_visible: bool) -> Optional[Row]:
        """Flip a testimonial's visibility flag; None if absent"""

    @abstractmethod
    async def review_totals(self, educator_id: int) -> Tuple[int, int]:
        """(review count, sum of ratings) for one educator"""

    @abstractmethod
    async def educator_subject_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row], Optional[Row]]]:
        """(link, subject, category) triples for one educator, ordered by link id"""

    @abstractmethod
    async def review_student_rows(self, educator_id: int) -> List[Tuple[Row, Optional[Row]]]:
        """(review, student) pairs for one educator, ordered by review id"""

    async def close(self) -> None:
        """Release backend resources"""
