"""
Holiday calendar model
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Boolean, CheckConstraint
from sqlalchemy.sql import func
from attendance_reconciler.db.base import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True, index=True)  # inclusive; NULL = single day
    holiday_type = Column(String(32), nullable=False, default="national")
    applies_to_all = Column(Boolean, default=True, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        CheckConstraint("end_date IS NULL OR start_date <= end_date", name="check_holiday_start_le_end"),
    )

    @property
    def last_date(self):
        return self.end_date or self.start_date

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.last_date
