"""EducatorSubject model - Which educators teach which subjects"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint

from ledger.database import Base


class EducatorSubject(Base):
    """Educator/subject link; the pair is unique"""

    __tablename__ = "educator_subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    educator_id = Column(Integer, ForeignKey("educator_profiles.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("educator_id", "subject_id", name="uq_educator_subjects_pair"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<EducatorSubject(id={self.id}, educator={self.educator_id}, subject={self.subject_id})>"
