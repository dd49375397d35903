from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import List
from datetime import date
from appraisal.models.common import RecordStatus


class CalendarDetailCreate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class FrequencyCalendarCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    details: List[CalendarDetailCreate] = []


class CalendarDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    frequency_calendar_id: int
    display_name: str
    start_date: date
    end_date: date
    status: RecordStatus


class FrequencyCalendarResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    description: str
    status: RecordStatus
    created_by_id: int
    details: List[CalendarDetailResponse] = []
