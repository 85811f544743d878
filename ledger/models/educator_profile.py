"""EducatorProfile model - Teaching-side extension of an educator user"""
from sqlalchemy import Column, String, Integer, Float, Text, JSON, ForeignKey, CheckConstraint

from ledger.database import Base


class EducatorProfile(Base):
    """Rate, specialties and advisory availability for one educator user"""

    __tablename__ = "educator_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    title = Column(String(200), nullable=False)
    hourly_rate = Column(Float, nullable=False)
    experience = Column(Text, nullable=True)
    education = Column(Text, nullable=True)
    specialties = Column(JSON, nullable=False, default=list)
    availability = Column(JSON, nullable=False, default=dict)  # weekday -> ["9:00", ...]
    teaching_method = Column(Text, nullable=True)
    video_introduction = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("hourly_rate > 0", name="ck_educator_profiles_hourly_rate"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<EducatorProfile(id={self.id}, user_id={self.user_id}, title={self.title})>"
