from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from appraisal.database import get_db
from appraisal.models.evaluation import EvaluationStatus
from appraisal.models.user import User
from appraisal.routers.auth_deps import get_current_user
from appraisal.schemas.evaluation import (
    CalibrationRequest,
    EvaluationPatch,
    EvaluationResponse,
    ManagerReviewRequest,
    MeetingNotesRequest,
    ScheduleMeetingRequest,
    SelfEvaluationRequest,
)
from appraisal.services.evaluation_workflow import EvaluationWorkflow, serialize_evaluation

router = APIRouter(prefix="/evaluations", tags=["evaluations"])


@router.get("", response_model=List[EvaluationResponse])
def list_evaluations(
    campaign_id: Optional[int] = None,
    status_filter: Optional[EvaluationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Employees see their own evaluations, managers also their reports', HR everything."""
    evaluations = EvaluationWorkflow(db).list_evaluations(current_user, campaign_id, status_filter)
    return [serialize_evaluation(e, current_user) for e in evaluations]


@router.get("/{evaluation_id}", response_model=EvaluationResponse)
def get_evaluation(evaluation_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    evaluation = EvaluationWorkflow(db).get_evaluation(evaluation_id, current_user)
    return serialize_evaluation(evaluation, current_user)


@router.patch("/{evaluation_id}", response_model=EvaluationResponse)
def update_evaluation(
    evaluation_id: int,
    patch: EvaluationPatch,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).transition_evaluation(evaluation_id, current_user, patch)
    return serialize_evaluation(evaluation, current_user)


@router.put("/{evaluation_id}/self-evaluation", response_model=EvaluationResponse)
def save_self_evaluation(
    evaluation_id: int,
    data: SelfEvaluationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).save_self_draft(evaluation_id, current_user, data.self_evaluation_data)
    return serialize_evaluation(evaluation, current_user)


@router.post("/{evaluation_id}/submit-self", response_model=EvaluationResponse)
def submit_self_evaluation(
    evaluation_id: int,
    data: Optional[SelfEvaluationRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    responses = data.self_evaluation_data if data else None
    evaluation = EvaluationWorkflow(db).submit_self_evaluation(evaluation_id, current_user, responses)
    return serialize_evaluation(evaluation, current_user)


@router.put("/{evaluation_id}/manager-review", response_model=EvaluationResponse)
def submit_manager_review(
    evaluation_id: int,
    data: ManagerReviewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).submit_manager_review(evaluation_id, current_user, data)
    return serialize_evaluation(evaluation, current_user)


@router.post("/{evaluation_id}/schedule-meeting", response_model=EvaluationResponse)
def schedule_meeting(
    evaluation_id: int,
    data: ScheduleMeetingRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).schedule_meeting(evaluation_id, current_user, data)
    return serialize_evaluation(evaluation, current_user)


@router.put("/{evaluation_id}/meeting-notes", response_model=EvaluationResponse)
def record_meeting_notes(
    evaluation_id: int,
    data: MeetingNotesRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).record_meeting_notes(evaluation_id, current_user, data)
    return serialize_evaluation(evaluation, current_user)


@router.post("/{evaluation_id}/finalize", response_model=EvaluationResponse)
def finalize_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).finalize(evaluation_id, current_user)
    return serialize_evaluation(evaluation, current_user)


@router.post("/{evaluation_id}/calibrate", response_model=EvaluationResponse)
def calibrate_evaluation(
    evaluation_id: int,
    data: CalibrationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    evaluation = EvaluationWorkflow(db).calibrate(evaluation_id, current_user, data)
    return serialize_evaluation(evaluation, current_user)
