"""Session model - Bookings between one educator and one student"""
from sqlalchemy import Column, String, Integer, Float, DateTime, Text, ForeignKey, CheckConstraint, Index

from ledger.database import Base


class Session(Base):
    """Bookable teaching session with its lifecycle and payment labels"""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    educator_id = Column(Integer, ForeignKey("educator_profiles.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False)
    total_price = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    payment_status = Column(String(20), nullable=False)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_sessions_time_order"),
        CheckConstraint("total_price > 0", name="ck_sessions_total_price"),
        CheckConstraint(
            "status IN ('requested', 'confirmed', 'completed', 'cancelled')",
            name="ck_sessions_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="ck_sessions_payment_status",
        ),
        Index("idx_sessions_educator", "educator_id"),
        Index("idx_sessions_student", "student_id"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<Session(id={self.id}, status={self.status}, payment_status={self.payment_status})>"
