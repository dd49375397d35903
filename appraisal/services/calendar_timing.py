"""
Calendar Timing Resolver

Turns a campaign's frequency-calendar periods (or, without a calendar, a synthetic
period starting today) into concrete initiate, reminder and close dates.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from appraisal.core.config import settings
from appraisal.core.exceptions import InvalidRequestError
from appraisal.models.frequency_calendar import FrequencyCalendarDetail
from appraisal.models.initiated_appraisal import InitiatedAppraisal, InitiatedAppraisalDetailTiming
from appraisal.models.common import RecordStatus
from appraisal.schemas.scheduled_task import TimingRecord
from appraisal.services.frequency_calendars import get_calendar_or_404

logger = logging.getLogger(__name__)

ADHOC_PERIOD_KEY = "adhoc"


def period_key_for(detail_id: int) -> str:
    return f"detail-{detail_id}"


def _check_offsets(days_to_initiate: int, days_to_close: int, number_of_reminders: int):
    if days_to_initiate < 0 or days_to_close < 0:
        raise InvalidRequestError(
            "Day offsets must be zero or positive",
            details={"days_to_initiate": days_to_initiate, "days_to_close": days_to_close},
        )
    if not 0 <= number_of_reminders <= settings.scheduling.max_reminders:
        raise InvalidRequestError(
            f"Number of reminders must be between 0 and {settings.scheduling.max_reminders}",
            details={"number_of_reminders": number_of_reminders},
        )


def _clamp(value: date, today: date, label: str, period_key: str) -> date:
    if value < today:
        logger.warning(
            f"{label} date {value.isoformat()} for period {period_key} is in the past; clamped to {today.isoformat()}"
        )
        return today
    return value


def reminder_dates(initiate: date, close: date, count: int, interval_days: int = 0) -> List[date]:
    """
    Up to `count` reminder dates strictly between initiate and close.

    interval_days == 0 spreads them evenly across the window; otherwise they fall
    every `interval_days` days counting back from close. Short windows yield fewer
    reminders rather than duplicates.
    """
    if count <= 0 or close <= initiate:
        return []

    if interval_days > 0:
        candidates = [close - timedelta(days=interval_days * k) for k in range(1, count + 1)]
    else:
        window = (close - initiate).days
        step = window / (count + 1)
        candidates = [initiate + timedelta(days=round(step * i)) for i in range(1, count + 1)]

    return sorted({d for d in candidates if initiate < d < close})


def compute_period_timing(
    period_key: str,
    display_name: str,
    period_start: date,
    period_end: date,
    days_to_initiate: int,
    days_to_close: int,
    number_of_reminders: int,
    today: date,
    detail_id: Optional[int] = None,
) -> TimingRecord:
    _check_offsets(days_to_initiate, days_to_close, number_of_reminders)

    initiate = _clamp(period_start - timedelta(days=days_to_initiate), today, "Initiate", period_key)
    close = _clamp(period_end + timedelta(days=days_to_close), today, "Close", period_key)

    return TimingRecord(
        period_key=period_key,
        frequency_calendar_detail_id=detail_id,
        display_name=display_name,
        period_start=period_start,
        period_end=period_end,
        initiate_date=initiate,
        close_date=close,
        reminder_dates=reminder_dates(
            initiate, close, number_of_reminders, settings.scheduling.reminder_interval_days
        ),
    )


def bound_details(db: Session, campaign: InitiatedAppraisal) -> List[FrequencyCalendarDetail]:
    """Periods a campaign is bound to: its timing rows if any, else every active period."""
    calendar = get_calendar_or_404(db, campaign.frequency_calendar_id)

    selected = {t.frequency_calendar_detail_id for t in campaign.detail_timings}
    if selected:
        return [d for d in calendar.details if d.id in selected]
    return [d for d in calendar.details if d.status == RecordStatus.ACTIVE]


def resolve_timings(db: Session, campaign: InitiatedAppraisal, today: Optional[date] = None) -> List[TimingRecord]:
    """One TimingRecord per bound period, ordered by period start."""
    today = today or date.today()

    if campaign.frequency_calendar_id is None:
        _check_offsets(campaign.days_to_initiate, campaign.days_to_close, campaign.number_of_reminders)
        start = today + timedelta(days=campaign.days_to_initiate)
        close = start + timedelta(days=campaign.days_to_close)
        return [
            TimingRecord(
                period_key=ADHOC_PERIOD_KEY,
                display_name="Ad hoc",
                period_start=start,
                period_end=close,
                initiate_date=start,
                close_date=close,
                reminder_dates=reminder_dates(
                    start, close, campaign.number_of_reminders, settings.scheduling.reminder_interval_days
                ),
            )
        ]

    overrides: Dict[int, InitiatedAppraisalDetailTiming] = {
        t.frequency_calendar_detail_id: t for t in campaign.detail_timings
    }
    records = []
    for detail in bound_details(db, campaign):
        override = overrides.get(detail.id)
        records.append(
            compute_period_timing(
                period_key=period_key_for(detail.id),
                display_name=detail.display_name,
                period_start=detail.start_date,
                period_end=detail.end_date,
                days_to_initiate=override.days_to_initiate if override else campaign.days_to_initiate,
                days_to_close=override.days_to_close if override else campaign.days_to_close,
                number_of_reminders=override.number_of_reminders if override else campaign.number_of_reminders,
                today=today,
                detail_id=detail.id,
            )
        )
    return sorted(records, key=lambda r: r.period_start)
