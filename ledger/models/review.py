"""Review model - Student ratings of educators"""
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, CheckConstraint, Index

from ledger.database import Base


class Review(Base):
    """Immutable educator review, optionally tied to a completed session"""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    educator_id = Column(Integer, ForeignKey("educator_profiles.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        Index("idx_reviews_educator", "educator_id"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Review(id={self.id}, educator={self.educator_id}, rating={self.rating})>"
