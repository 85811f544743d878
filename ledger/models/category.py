"""Category model - Top level of the subject taxonomy"""
from sqlalchemy import Column, String, Integer, Text, CheckConstraint

from ledger.database import Base


class Category(Base):
    """Subject category; educator_count is maintained outside the ledger"""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    educator_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("educator_count >= 0", name="ck_categories_educator_count"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"
