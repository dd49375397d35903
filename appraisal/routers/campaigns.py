from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.schemas import ApiResponse
from appraisal.database import get_db
from appraisal.models.initiated_appraisal import CampaignStatus
from appraisal.models.user import User
from appraisal.routers.auth_deps import require_hr, require_manager
from appraisal.schemas.campaign import (
    CampaignCreate,
    CampaignInitiationResult,
    CampaignResponse,
    CampaignUpdate,
    GenerationResult,
    ReminderRequest,
    ReminderResponse,
)
from appraisal.schemas.progress import ProgressReport
from appraisal.schemas.scheduled_task import ScheduledTaskResponse
from appraisal.services import campaigns as campaign_service
from appraisal.services.evaluation_generator import EvaluationGenerator
from appraisal.services.progress import get_progress
from appraisal.services.task_planner import TaskPlanner

router = APIRouter(prefix="/initiated-appraisals", tags=["initiated-appraisals"])


@router.post("", response_model=CampaignInitiationResult, status_code=status.HTTP_201_CREATED)
def initiate_appraisal(
    data: CampaignCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    """
    Start an appraisal campaign for a group.
    `now` creates the evaluations immediately; `as_per_calendar` plans tasks instead.
    """
    return campaign_service.initiate_campaign(db, data, current_user)


@router.get("", response_model=List[CampaignResponse])
def list_appraisals(
    status_filter: Optional[CampaignStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return campaign_service.list_campaigns(db, current_user, status_filter)


@router.put("/{campaign_id}", response_model=CampaignResponse)
def update_appraisal(
    campaign_id: int,
    data: CampaignUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return campaign_service.update_campaign(db, campaign_id, data, current_user)


@router.post("/{campaign_id}/close", response_model=CampaignResponse)
def close_appraisal(campaign_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return campaign_service.close_campaign(db, campaign_id, current_user)


@router.post("/{campaign_id}/generate-evaluations", response_model=ApiResponse[GenerationResult])
def generate_evaluations(
    campaign_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    """Idempotent; per-employee failures come back in `data.failures` with success still true."""
    result = EvaluationGenerator(db).generate_evaluations(campaign_id, actor=current_user)
    return ApiResponse.ok(result, metadata={"partial_failure": result.partial_failure})


@router.get("/{campaign_id}/progress", response_model=ProgressReport)
def appraisal_progress(
    campaign_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return get_progress(db, campaign_id, current_user)


@router.post("/{campaign_id}/schedule", response_model=List[ScheduledTaskResponse])
def plan_appraisal_tasks(
    campaign_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return TaskPlanner(db).plan_scheduled_tasks(campaign_id, actor=current_user)


@router.post("/{campaign_id}/reminders", response_model=ReminderResponse, status_code=status.HTTP_202_ACCEPTED)
def send_reminder(
    campaign_id: int,
    data: ReminderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager()),
):
    return campaign_service.request_reminder(db, campaign_id, data.employee_id, current_user)
