from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from appraisal.database import get_db
from appraisal.models.user import User
from appraisal.routers.auth_deps import require_hr
from appraisal.schemas.frequency_calendar import (
    CalendarDetailResponse,
    FrequencyCalendarCreate,
    FrequencyCalendarResponse,
)
from appraisal.services import frequency_calendars as calendar_service

router = APIRouter(prefix="/frequency-calendars", tags=["frequency-calendars"])


@router.post("", response_model=FrequencyCalendarResponse, status_code=status.HTTP_201_CREATED)
def create_calendar(
    data: FrequencyCalendarCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return calendar_service.create_calendar(db, data, current_user)


@router.get("", response_model=List[FrequencyCalendarResponse])
def list_calendars(db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return calendar_service.list_calendars(db)


@router.get("/{calendar_id}/details", response_model=List[CalendarDetailResponse])
def list_calendar_details(
    calendar_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return calendar_service.list_details(db, calendar_id)
