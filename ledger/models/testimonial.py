"""Testimonial model - Platform testimonials featured on the homepage"""
from sqlalchemy import Column, String, Integer, Boolean, Text, ForeignKey

from ledger.database import Base


class Testimonial(Base):
    """Homepage testimonial; hidden via is_visible, never deleted"""

    __tablename__ = "testimonials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    user_role = Column(String(100), nullable=False)  # e.g., 'Parent', 'Computer Science Student'
    is_visible = Column(Boolean, nullable=False, default=True)

    __table_args__ = ({"sqlite_autoincrement": True},)

    def __repr__(self):
        return f"<Testimonial(id={self.id}, user_id={self.user_id}, visible={self.is_visible})>"
