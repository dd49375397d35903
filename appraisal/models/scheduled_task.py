from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from appraisal.database import Base
import enum


class ScheduledTaskType(str, enum.Enum):
    INITIATE = "initiate"
    REMINDER = "reminder"
    CLOSE = "close"


class ScheduledTaskStatus(str, enum.Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    ERROR = "error"


class ScheduledAppraisalTask(Base):
    """
    A persisted intent to run a follow-up action on a given date.
    Execution belongs to an external poller; this service only plans.
    """
    __tablename__ = "scheduled_appraisal_tasks"
    __table_args__ = (
        UniqueConstraint(
            "initiated_appraisal_id", "period_key", "task_type", "sequence",
            name="uq_scheduled_task_slot",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    initiated_appraisal_id = Column(Integer, ForeignKey("initiated_appraisals.id", ondelete="CASCADE"), nullable=False, index=True)
    frequency_calendar_detail_id = Column(Integer, ForeignKey("frequency_calendar_details.id"), nullable=True)
    # "detail-<id>" for calendar periods, "adhoc" for the synthetic period
    period_key = Column(String, nullable=False)
    task_type = Column(String, nullable=False)
    sequence = Column(Integer, default=0, nullable=False)
    scheduled_date = Column(Date, nullable=False, index=True)
    status = Column(String, default=ScheduledTaskStatus.PENDING.value, nullable=False, index=True)
    executed_at = Column(DateTime(timezone=True), nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
