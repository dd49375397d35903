from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from appraisal.database import Base
import enum


class EvaluationStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    DRAFT = "draft"
    SELF_SUBMITTED = "self_submitted"
    REVIEWED = "reviewed"
    COMPLETED = "completed"


class MeetingState(str, enum.Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class Evaluation(Base):
    """One employee's review within one campaign."""
    __tablename__ = "evaluations"
    __table_args__ = (
        UniqueConstraint("employee_id", "initiated_appraisal_id", name="uq_evaluation_employee_campaign"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    initiated_appraisal_id = Column(Integer, ForeignKey("initiated_appraisals.id"), nullable=True, index=True)
    review_cycle_id = Column(String, nullable=True)  # legacy review-cycle reference

    self_evaluation_data = Column(JSON, nullable=True)
    self_evaluation_submitted_at = Column(DateTime(timezone=True), nullable=True)
    manager_evaluation_data = Column(JSON, nullable=True)
    manager_evaluation_submitted_at = Column(DateTime(timezone=True), nullable=True)
    overall_rating = Column(Integer, nullable=True)

    # Stored as the enum value; SQLite has no native enum type
    status = Column(String, default=EvaluationStatus.NOT_STARTED.value, nullable=False, index=True)

    meeting_scheduled_at = Column(DateTime(timezone=True), nullable=True)
    meeting_notes = Column(Text, nullable=True)
    meeting_completed_at = Column(DateTime(timezone=True), nullable=True)
    show_notes_to_employee = Column(Boolean, default=False, nullable=False)
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    calibrated_rating = Column(Integer, nullable=True)
    calibration_remarks = Column(Text, nullable=True)
    calibrated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    calibrated_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("User", foreign_keys=[employee_id])
    manager = relationship("User", foreign_keys=[manager_id])
    initiated_appraisal = relationship("InitiatedAppraisal")

    @property
    def meeting_state(self) -> MeetingState:
        if self.meeting_completed_at is not None:
            return MeetingState.COMPLETED
        if self.meeting_scheduled_at is not None:
            return MeetingState.SCHEDULED
        return MeetingState.UNSCHEDULED

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None
