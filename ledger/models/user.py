"""User model - Students and educators"""
from sqlalchemy import Column, String, Integer, Boolean, Text, CheckConstraint

from ledger.database import Base


class User(Base):
    """Marketplace member; role is fixed at creation"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    profile_image = Column(Text, nullable=True)
    role = Column(String(20), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("role IN ('student', 'educator')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
