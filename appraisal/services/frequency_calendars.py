from typing import List

from sqlalchemy.orm import Session

from appraisal.core.exceptions import NotFoundError
from appraisal.models.frequency_calendar import FrequencyCalendar, FrequencyCalendarDetail
from appraisal.models.user import User
from appraisal.schemas.frequency_calendar import FrequencyCalendarCreate


def get_calendar_or_404(db: Session, calendar_id: int) -> FrequencyCalendar:
    calendar = db.get(FrequencyCalendar, calendar_id)
    if calendar is None:
        raise NotFoundError("Frequency calendar", calendar_id)
    return calendar


def create_calendar(db: Session, data: FrequencyCalendarCreate, actor: User) -> FrequencyCalendar:
    calendar = FrequencyCalendar(code=data.code, description=data.description, created_by_id=actor.id)
    calendar.details = [
        FrequencyCalendarDetail(display_name=d.display_name, start_date=d.start_date, end_date=d.end_date)
        for d in data.details
    ]
    db.add(calendar)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(calendar)
    return calendar


def list_calendars(db: Session) -> List[FrequencyCalendar]:
    return db.query(FrequencyCalendar).order_by(FrequencyCalendar.id).all()


def list_details(db: Session, calendar_id: int) -> List[FrequencyCalendarDetail]:
    return get_calendar_or_404(db, calendar_id).details
