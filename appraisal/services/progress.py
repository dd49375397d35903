"""
Campaign progress: per-employee status and completion percentage over the
active members of the campaign's group.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from sqlalchemy.orm import Session

from appraisal.models.evaluation import Evaluation, EvaluationStatus
from appraisal.models.user import User
from appraisal.schemas.appraisal_group import EmployeeSummary
from appraisal.schemas.evaluation import EvaluationResponse
from appraisal.schemas.progress import EmployeeProgress, ProgressReport
from appraisal.services.lookups import get_campaign_or_404
from appraisal.services.membership import get_group_users

logger = logging.getLogger(__name__)


def _latest_evaluations(db: Session, campaign_id: int) -> Dict[int, Evaluation]:
    """Most recent evaluation per employee; ties on created_at go to the higher id."""
    rows = (
        db.query(Evaluation)
        .filter(Evaluation.initiated_appraisal_id == campaign_id)
        .order_by(Evaluation.created_at.desc(), Evaluation.id.desc())
        .all()
    )
    latest: Dict[int, Evaluation] = {}
    for evaluation in rows:
        latest.setdefault(evaluation.employee_id, evaluation)
    return latest


def _percent(part: int, whole: int) -> int:
    """Whole percent, halves rounded up (1 of 8 is 13)."""
    if not whole:
        return 0
    return int((Decimal(part * 100) / whole).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def get_progress(db: Session, campaign_id: int, actor: Optional[User] = None) -> ProgressReport:
    campaign = get_campaign_or_404(db, campaign_id, actor)
    members = [u for u in get_group_users(db, campaign.appraisal_group_id) if u.is_active]
    latest = _latest_evaluations(db, campaign_id)

    entries = []
    completed = 0
    for user in members:
        evaluation = latest.get(user.id)
        status = EvaluationStatus(evaluation.status) if evaluation else EvaluationStatus.NOT_STARTED
        is_completed = status == EvaluationStatus.COMPLETED
        if is_completed:
            completed += 1
        entries.append(
            EmployeeProgress(
                employee=EmployeeSummary.model_validate(user),
                evaluation=EvaluationResponse.model_validate(evaluation) if evaluation else None,
                status=status,
                is_completed=is_completed,
            )
        )

    total = len(members)
    percentage = _percent(completed, total)
    logger.debug(f"Progress for campaign {campaign_id}: {completed}/{total}")

    return ProgressReport(
        campaign_id=campaign_id,
        total_employees=total,
        completed_evaluations=completed,
        percentage=percentage,
        employee_progress=entries,
    )
