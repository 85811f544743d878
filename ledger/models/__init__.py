"""SQLAlchemy ORM Models for the Booking Ledger Database Schema"""
from ledger.models.user import User
from ledger.models.educator_profile import EducatorProfile
from ledger.models.category import Category
from ledger.models.subject import Subject
from ledger.models.educator_subject import EducatorSubject
from ledger.models.session import Session
from ledger.models.review import Review
from ledger.models.testimonial import Testimonial

__all__ = [
    "User",
    "EducatorProfile",
    "Category",
    "Subject",
    "EducatorSubject",
    "Session",
    "Review",
    "Testimonial",
]
