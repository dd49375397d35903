from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import date, datetime
from appraisal.models.scheduled_task import ScheduledTaskType, ScheduledTaskStatus


class TimingRecord(BaseModel):
    """Concrete action dates for one campaign period."""
    period_key: str
    frequency_calendar_detail_id: Optional[int] = None
    display_name: str
    period_start: date
    period_end: date
    initiate_date: date
    close_date: date
    reminder_dates: List[date] = []


class ScheduledTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    initiated_appraisal_id: int
    frequency_calendar_detail_id: Optional[int] = None
    period_key: str
    task_type: ScheduledTaskType
    sequence: int
    scheduled_date: date
    status: ScheduledTaskStatus
    executed_at: Optional[datetime] = None
    error: Optional[str] = None


class TaskFailureRequest(BaseModel):
    error: str = Field(..., min_length=1)
