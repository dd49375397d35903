from typing import Optional

from sqlalchemy.orm import Query, Session

from appraisal.core.exceptions import AccessDeniedError, NotFoundError
from appraisal.models.appraisal_group import AppraisalGroup
from appraisal.models.evaluation import Evaluation
from appraisal.models.initiated_appraisal import InitiatedAppraisal
from appraisal.models.scheduled_task import ScheduledAppraisalTask
from appraisal.models.user import User, UserRole


def owns(record, actor: User) -> bool:
    """
    HR managers work on the groups and campaigns they created; admin and
    super_admin reach every record.
    """
    return actor.role != UserRole.HR_MANAGER or record.created_by_id == actor.id


def scope_to_owner(query: Query, model, actor: User) -> Query:
    if actor.role == UserRole.HR_MANAGER:
        query = query.filter(model.created_by_id == actor.id)
    return query


def _ensure_owner(record, actor: Optional[User], entity: str, record_id: int):
    if actor is not None and not owns(record, actor):
        raise AccessDeniedError(f"{entity} {record_id} not found or access denied", details={"id": record_id})


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def get_group_or_404(db: Session, group_id: int, actor: Optional[User] = None) -> AppraisalGroup:
    group = db.get(AppraisalGroup, group_id)
    if group is None:
        raise NotFoundError("Appraisal group", group_id)
    _ensure_owner(group, actor, "Appraisal group", group_id)
    return group


def get_campaign_or_404(db: Session, campaign_id: int, actor: Optional[User] = None) -> InitiatedAppraisal:
    campaign = db.get(InitiatedAppraisal, campaign_id)
    if campaign is None:
        raise NotFoundError("Initiated appraisal", campaign_id)
    _ensure_owner(campaign, actor, "Initiated appraisal", campaign_id)
    return campaign


def get_evaluation_or_404(db: Session, evaluation_id: int) -> Evaluation:
    evaluation = db.get(Evaluation, evaluation_id)
    if evaluation is None:
        raise NotFoundError("Evaluation", evaluation_id)
    return evaluation


def get_task_or_404(db: Session, task_id: int) -> ScheduledAppraisalTask:
    task = db.get(ScheduledAppraisalTask, task_id)
    if task is None:
        raise NotFoundError("Scheduled task", task_id)
    return task
