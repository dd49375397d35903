"""
Campaign (initiated appraisal) management.

Initiation validates the request, stores the campaign with its per-period timing
overrides and then, depending on the publish type, either generates evaluations
right away or plans the scheduled tasks for the external executor.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from appraisal.core.exceptions import AccessDeniedError, ConflictError, InvalidRequestError, NotFoundError
from appraisal.models.evaluation import Evaluation, EvaluationStatus
from appraisal.models.initiated_appraisal import (
    AppraisalType,
    CampaignStatus,
    InitiatedAppraisal,
    InitiatedAppraisalDetailTiming,
    PublishType,
)
from appraisal.models.user import User
from appraisal.schemas.campaign import (
    CampaignCreate,
    CampaignInitiationResult,
    CampaignResponse,
    CampaignUpdate,
    ReminderResponse,
)
from appraisal.services.audit import AuditService
from appraisal.services.evaluation_generator import EvaluationGenerator
from appraisal.services.frequency_calendars import get_calendar_or_404
from appraisal.services.lookups import get_campaign_or_404, get_group_or_404, owns, scope_to_owner
from appraisal.services.notification import NotificationService
from appraisal.services.task_planner import TaskPlanner

logger = logging.getLogger(__name__)

_DOCUMENT_TYPES = (AppraisalType.KPI_BASED, AppraisalType.MBO_BASED)


def validate_campaign_request(db: Session, data: CampaignCreate, actor: User) -> None:
    get_group_or_404(db, data.appraisal_group_id, actor)

    if data.appraisal_type == AppraisalType.QUESTIONNAIRE_BASED and not data.questionnaire_template_ids:
        raise InvalidRequestError("Questionnaire-based appraisals need at least one questionnaire template")
    if data.appraisal_type in _DOCUMENT_TYPES and not data.document_url:
        raise InvalidRequestError(
            f"{data.appraisal_type.value} appraisals need a document URL",
            details={"appraisal_type": data.appraisal_type.value},
        )

    if data.publish_type == PublishType.AS_PER_CALENDAR and data.frequency_calendar_id is None:
        raise InvalidRequestError("Calendar-driven publishing needs a frequency calendar")

    if data.calendar_detail_timings and data.frequency_calendar_id is None:
        raise InvalidRequestError("Period timings need a frequency calendar")

    if data.frequency_calendar_id is not None:
        calendar = get_calendar_or_404(db, data.frequency_calendar_id)
        known = {d.id for d in calendar.details}
        requested = [t.detail_id for t in data.calendar_detail_timings]
        unknown = sorted(set(requested) - known)
        if unknown:
            raise InvalidRequestError(
                "Period timings reference periods outside the selected calendar",
                details={"detail_ids": unknown},
            )
        if len(requested) != len(set(requested)):
            raise InvalidRequestError("Each calendar period may be configured only once")


def initiate_campaign(db: Session, data: CampaignCreate, actor: User) -> CampaignInitiationResult:
    validate_campaign_request(db, data, actor)

    campaign = InitiatedAppraisal(
        appraisal_group_id=data.appraisal_group_id,
        appraisal_type=data.appraisal_type,
        questionnaire_template_ids=list(data.questionnaire_template_ids),
        document_url=data.document_url,
        frequency_calendar_id=data.frequency_calendar_id,
        days_to_initiate=data.days_to_initiate,
        days_to_close=data.days_to_close,
        number_of_reminders=data.number_of_reminders,
        exclude_tenure_less_than_year=data.exclude_tenure_less_than_year,
        excluded_employee_ids=list(dict.fromkeys(data.excluded_employee_ids)),
        make_public=data.make_public,
        publish_type=data.publish_type,
        status=CampaignStatus.ACTIVE if data.publish_type == PublishType.NOW else CampaignStatus.DRAFT,
        created_by_id=actor.id,
    )
    campaign.detail_timings = [
        InitiatedAppraisalDetailTiming(
            frequency_calendar_detail_id=t.detail_id,
            days_to_initiate=t.days_to_initiate,
            days_to_close=t.days_to_close,
            number_of_reminders=t.number_of_reminders,
        )
        for t in data.calendar_detail_timings
    ]
    db.add(campaign)
    db.flush()

    AuditService(db).record(
        "initiate_appraisal",
        campaign,
        actor,
        details={
            "appraisal_group_id": data.appraisal_group_id,
            "appraisal_type": data.appraisal_type,
            "publish_type": data.publish_type,
        },
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(campaign)
    campaign_id = campaign.id
    logger.info(f"Initiated appraisal {campaign_id} ({data.publish_type.value}) by user {actor.id}")

    generation = None
    task_count = 0
    if data.publish_type == PublishType.NOW:
        generation = EvaluationGenerator(db).generate_evaluations(campaign_id)
    else:
        task_count = len(TaskPlanner(db).plan_scheduled_tasks(campaign_id))

    campaign = get_campaign_or_404(db, campaign_id)
    return CampaignInitiationResult(
        campaign=CampaignResponse.model_validate(campaign),
        generation=generation,
        scheduled_task_count=task_count,
    )


def list_campaigns(
    db: Session, actor: User, status: Optional[CampaignStatus] = None
) -> List[InitiatedAppraisal]:
    query = scope_to_owner(db.query(InitiatedAppraisal), InitiatedAppraisal, actor)
    if status is not None:
        query = query.filter(InitiatedAppraisal.status == status)
    return query.order_by(InitiatedAppraisal.id.desc()).all()


def _ensure_open(campaign: InitiatedAppraisal):
    if campaign.status in (CampaignStatus.CLOSED, CampaignStatus.CANCELLED):
        raise ConflictError(
            f"Initiated appraisal {campaign.id} is {campaign.status.value}",
            details={"campaign_id": campaign.id, "status": campaign.status.value},
        )


def update_campaign(db: Session, campaign_id: int, data: CampaignUpdate, actor: User) -> InitiatedAppraisal:
    campaign = get_campaign_or_404(db, campaign_id, actor)
    _ensure_open(campaign)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    new_group = changes.get("appraisal_group_id")
    if new_group is not None and new_group != campaign.appraisal_group_id:
        get_group_or_404(db, new_group, actor)
        has_evaluations = db.query(Evaluation).filter(Evaluation.initiated_appraisal_id == campaign_id).first()
        if has_evaluations:
            raise ConflictError(
                "The group of an appraisal cannot change once evaluations exist",
                details={"campaign_id": campaign_id},
            )

    for field, value in changes.items():
        setattr(campaign, field, value)
    db.commit()
    db.refresh(campaign)
    return campaign


def close_campaign(db: Session, campaign_id: int, actor: User) -> InitiatedAppraisal:
    campaign = get_campaign_or_404(db, campaign_id, actor)
    _ensure_open(campaign)
    previous = campaign.status
    campaign.status = CampaignStatus.CLOSED

    AuditService(db).record(
        "close_appraisal",
        campaign,
        actor,
        before={"status": previous},
        after={"status": campaign.status},
    )
    db.commit()
    db.refresh(campaign)
    logger.info(f"Initiated appraisal {campaign_id} closed by user {actor.id}")
    return campaign


def request_reminder(db: Session, campaign_id: int, employee_id: int, actor: User) -> ReminderResponse:
    """Record a review reminder for a participant whose evaluation is still open."""
    campaign = get_campaign_or_404(db, campaign_id)
    evaluation = db.query(Evaluation).filter(
        Evaluation.initiated_appraisal_id == campaign_id,
        Evaluation.employee_id == employee_id,
    ).first()
    if not evaluation:
        raise NotFoundError("Evaluation for employee", employee_id)
    hr_in_charge = actor.is_hr and owns(campaign, actor)
    if not hr_in_charge and evaluation.manager_id != actor.id:
        raise AccessDeniedError("Only the owning HR team or the reviewing manager may send reminders")
    if evaluation.status == EvaluationStatus.COMPLETED.value:
        raise InvalidRequestError(
            "Evaluation is already completed", details={"evaluation_id": evaluation.id}
        )

    notification = NotificationService.review_reminder(db, evaluation)
    db.commit()
    db.refresh(notification)
    logger.info(f"Reminder for employee {employee_id} in appraisal {campaign_id} requested by user {actor.id}")

    return ReminderResponse(
        campaign_id=campaign_id,
        employee_id=employee_id,
        notification_id=notification.id,
        status="queued",
    )
