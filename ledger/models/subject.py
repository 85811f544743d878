"""Subject model - Subjects within a category"""
from sqlalchemy import Column, String, Integer, Text, ForeignKey, Index

from ledger.database import Base


class Subject(Base):
    """Teachable subject owned by a category"""

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_subjects_category", "category_id"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Subject(id={self.id}, name={self.name}, category_id={self.category_id})>"
