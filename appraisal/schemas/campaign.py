from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from appraisal.core.config import settings
from appraisal.models.initiated_appraisal import AppraisalType, PublishType, CampaignStatus
from appraisal.schemas.evaluation import EvaluationResponse


class DetailTimingConfig(BaseModel):
    """Per-period override of the campaign timing defaults."""
    detail_id: int
    days_to_initiate: int = Field(settings.scheduling.default_days_to_initiate, ge=0)
    days_to_close: int = Field(settings.scheduling.default_days_to_close, ge=0)
    number_of_reminders: int = Field(settings.scheduling.default_number_of_reminders, ge=0, le=10)


class CampaignCreate(BaseModel):
    appraisal_group_id: int
    appraisal_type: AppraisalType
    questionnaire_template_ids: List[str] = []
    document_url: Optional[str] = None
    frequency_calendar_id: Optional[int] = None
    calendar_detail_timings: List[DetailTimingConfig] = []
    days_to_initiate: int = Field(settings.scheduling.default_days_to_initiate, ge=0)
    days_to_close: int = Field(settings.scheduling.default_days_to_close, ge=0)
    number_of_reminders: int = Field(settings.scheduling.default_number_of_reminders, ge=0, le=10)
    exclude_tenure_less_than_year: bool = False
    excluded_employee_ids: List[int] = []
    make_public: bool = False
    publish_type: PublishType = PublishType.NOW


class CampaignUpdate(BaseModel):
    appraisal_group_id: Optional[int] = None
    questionnaire_template_ids: Optional[List[str]] = None
    document_url: Optional[str] = None
    days_to_initiate: Optional[int] = Field(None, ge=0)
    days_to_close: Optional[int] = Field(None, ge=0)
    number_of_reminders: Optional[int] = Field(None, ge=0, le=10)
    exclude_tenure_less_than_year: Optional[bool] = None
    excluded_employee_ids: Optional[List[int]] = None
    make_public: Optional[bool] = None


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appraisal_group_id: int
    appraisal_type: AppraisalType
    questionnaire_template_ids: List[str] = []
    document_url: Optional[str] = None
    frequency_calendar_id: Optional[int] = None
    days_to_initiate: int
    days_to_close: int
    number_of_reminders: int
    exclude_tenure_less_than_year: bool
    excluded_employee_ids: List[int] = []
    make_public: bool
    publish_type: PublishType
    status: CampaignStatus
    created_by_id: int
    created_at: Optional[datetime] = None


class GenerationFailure(BaseModel):
    employee_id: int
    reason: str


class GenerationResult(BaseModel):
    """Outcome of a generation batch. A non-empty failures list is a partial success."""
    campaign_id: int
    total_members: int = 0
    total_eligible: int = 0
    created: int = 0
    skipped: int = 0
    excluded: int = 0
    already_existing: int = 0
    inactive: int = 0
    failures: List[GenerationFailure] = []
    evaluations: List[EvaluationResponse] = []

    @property
    def partial_failure(self) -> bool:
        return bool(self.failures)


class CampaignInitiationResult(BaseModel):
    campaign: CampaignResponse
    generation: Optional[GenerationResult] = None
    scheduled_task_count: int = 0


class ReminderRequest(BaseModel):
    employee_id: int


class ReminderResponse(BaseModel):
    campaign_id: int
    employee_id: int
    notification_id: int
    status: str
