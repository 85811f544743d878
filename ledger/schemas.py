"""
Pydantic schemas for the booking ledger

Three families live here:
- request models (``*Create``), one per creation operation, validated before
  anything reaches the Entity Store
- records, the request model plus the fields the ledger assigns (id, state)
- enriched views returned to the presentation layer (never raw rows)
"""
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from ledger.errors import ValidationFailedError

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
TIME_OF_DAY = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")

# Ids live in 32-bit INTEGER columns on every durable backend
MAX_ID = 2 ** 31 - 1
EntityId = Annotated[int, Field(ge=1, le=MAX_ID)]

ModelT = TypeVar("ModelT", bound=BaseModel)


class UserRole(str, Enum):
    STUDENT = "student"
    EDUCATOR = "educator"


class SessionStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class SessionAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    PAY = "pay"
    REFUND = "refund"


def id_in_range(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= MAX_ID


def utcnow() -> datetime:
    """Current time as naive UTC, the representation every backend stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_payload(model_cls: Type[ModelT], data: Any) -> ModelT:
    """
    Validate a plain field bag (or an already built model) against a schema.

    Raises:
        ValidationFailedError: naming the first offending field
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or model_cls.__name__
        raise ValidationFailedError(field, error["msg"]) from exc


class LedgerModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True, from_attributes=True)


class ActingIdentity(LedgerModel):
    """Already-authenticated caller, supplied by the auth collaborator"""
    user_id: EntityId
    role: UserRole


# Request models


class UserCreate(LedgerModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    role: UserRole
    is_verified: bool = False

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        local, _, domain = value.partition("@")
        if not local or not domain:
            raise ValueError("must be an email address")
        return value


class EducatorProfileCreate(LedgerModel):
    user_id: EntityId
    title: str = Field(..., min_length=1, max_length=200)
    hourly_rate: float = Field(..., gt=0, allow_inf_nan=False)
    experience: Optional[str] = None
    education: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    availability: Dict[str, List[str]] = Field(default_factory=dict)
    teaching_method: Optional[str] = None
    video_introduction: Optional[str] = None

    @field_validator("availability")
    @classmethod
    def check_availability(cls, value: Dict[str, List[str]]) -> Dict[str, List[str]]:
        # Advisory data only: no overlap checking
        normalized = {}
        for day, times in value.items():
            weekday = day.lower()
            if weekday not in WEEKDAYS:
                raise ValueError(f"unknown weekday '{day}'")
            for time_of_day in times:
                if not TIME_OF_DAY.match(time_of_day):
                    raise ValueError(f"invalid time of day '{time_of_day}' for {weekday}")
            normalized[weekday] = list(times)
        return normalized


class CategoryCreate(LedgerModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None
    educator_count: int = Field(0, ge=0)


class SubjectCreate(LedgerModel):
    category_id: EntityId
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class EducatorSubjectCreate(LedgerModel):
    educator_id: EntityId
    subject_id: EntityId


class SessionCreate(LedgerModel):
    educator_id: EntityId
    student_id: EntityId
    start_time: datetime
    end_time: datetime
    total_price: float = Field(..., gt=0, allow_inf_nan=False)
    notes: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @field_validator("end_time")
    @classmethod
    def check_end_after_start(cls, value: datetime, info: ValidationInfo) -> datetime:
        start_time = info.data.get("start_time")
        if start_time is not None and value <= start_time:
            raise ValueError("must be after start_time")
        return value


class ReviewCreate(LedgerModel):
    educator_id: EntityId
    student_id: EntityId
    session_id: Optional[EntityId] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class TestimonialCreate(LedgerModel):
    user_id: EntityId
    content: str = Field(..., min_length=1)
    user_role: str = Field(..., min_length=1, max_length=100)
    is_visible: bool = True


# Records


class User(UserCreate):
    id: int


class EducatorProfile(EducatorProfileCreate):
    id: int


class Category(CategoryCreate):
    id: int


class Subject(SubjectCreate):
    id: int


class EducatorSubject(EducatorSubjectCreate):
    id: int


class Session(SessionCreate):
    id: int
    status: SessionStatus
    payment_status: PaymentStatus


class Review(ReviewCreate):
    id: int
    created_at: datetime


class Testimonial(TestimonialCreate):
    id: int


# Enriched views


class RatingSummary(LedgerModel):
    average_rating: float
    review_count: int


class EducatorWithUser(EducatorProfile):
    user: User


class SubjectWithCategory(Subject):
    category: Category


class ReviewWithStudent(Review):
    student: User


class EnrichedSession(Session):
    educator: EducatorWithUser
    student: User
    formatted_start_time: str
    formatted_end_time: str


class EducatorSummary(EducatorWithUser):
    subjects: List[SubjectWithCategory]
    average_rating: float
    review_count: int


class EducatorDetail(EducatorSummary):
    reviews: List[ReviewWithStudent]


class CategoryWithSubjects(Category):
    subjects: List[Subject]


class TestimonialWithUser(Testimonial):
    user: User
