from sqlalchemy import Column, Integer, String, Boolean, Enum, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from appraisal.database import Base
import enum


class AppraisalType(str, enum.Enum):
    QUESTIONNAIRE_BASED = "questionnaire_based"
    KPI_BASED = "kpi_based"
    MBO_BASED = "mbo_based"
    OKR_BASED = "okr_based"


class PublishType(str, enum.Enum):
    NOW = "now"
    AS_PER_CALENDAR = "as_per_calendar"


class CampaignStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class InitiatedAppraisal(Base):
    """A review campaign run against one appraisal group."""
    __tablename__ = "initiated_appraisals"

    id = Column(Integer, primary_key=True, index=True)
    appraisal_group_id = Column(Integer, ForeignKey("appraisal_groups.id"), nullable=False, index=True)
    appraisal_type = Column(Enum(AppraisalType), nullable=False)
    questionnaire_template_ids = Column(JSON, default=list)
    document_url = Column(String, nullable=True)
    frequency_calendar_id = Column(Integer, ForeignKey("frequency_calendars.id"), nullable=True)

    days_to_initiate = Column(Integer, default=0, nullable=False)
    days_to_close = Column(Integer, default=30, nullable=False)
    number_of_reminders = Column(Integer, default=3, nullable=False)

    exclude_tenure_less_than_year = Column(Boolean, default=False, nullable=False)
    excluded_employee_ids = Column(JSON, default=list)

    make_public = Column(Boolean, default=False, nullable=False)
    publish_type = Column(Enum(PublishType), default=PublishType.NOW, nullable=False)
    status = Column(Enum(CampaignStatus), default=CampaignStatus.DRAFT, nullable=False, index=True)

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    group = relationship("AppraisalGroup")
    frequency_calendar = relationship("FrequencyCalendar")
    detail_timings = relationship(
        "InitiatedAppraisalDetailTiming",
        back_populates="initiated_appraisal",
        cascade="all, delete-orphan",
    )


class InitiatedAppraisalDetailTiming(Base):
    """Per-period timing override; its presence also binds the period to the campaign."""
    __tablename__ = "initiated_appraisal_detail_timings"
    __table_args__ = (
        UniqueConstraint("initiated_appraisal_id", "frequency_calendar_detail_id", name="uq_campaign_detail_timing"),
    )

    id = Column(Integer, primary_key=True, index=True)
    initiated_appraisal_id = Column(Integer, ForeignKey("initiated_appraisals.id", ondelete="CASCADE"), nullable=False, index=True)
    frequency_calendar_detail_id = Column(Integer, ForeignKey("frequency_calendar_details.id"), nullable=False, index=True)
    days_to_initiate = Column(Integer, default=0, nullable=False)
    days_to_close = Column(Integer, default=30, nullable=False)
    number_of_reminders = Column(Integer, default=3, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    initiated_appraisal = relationship("InitiatedAppraisal", back_populates="detail_timings")
    detail = relationship("FrequencyCalendarDetail")
