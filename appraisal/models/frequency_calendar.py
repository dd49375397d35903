from sqlalchemy import Column, Integer, String, Text, Date, Enum, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from appraisal.database import Base
from appraisal.models.common import RecordStatus


class FrequencyCalendar(Base):
    """A reusable named schedule of recurring periods (e.g. quarters)."""
    __tablename__ = "frequency_calendars"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    details = relationship(
        "FrequencyCalendarDetail",
        back_populates="calendar",
        cascade="all, delete-orphan",
        order_by="FrequencyCalendarDetail.start_date",
    )


class FrequencyCalendarDetail(Base):
    __tablename__ = "frequency_calendar_details"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_frequency_calendar_detail_dates"),
    )

    id = Column(Integer, primary_key=True, index=True)
    frequency_calendar_id = Column(Integer, ForeignKey("frequency_calendars.id", ondelete="CASCADE"), nullable=False, index=True)
    display_name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    calendar = relationship("FrequencyCalendar", back_populates="details")
