"""
Evaluation Generator

Creates one evaluation per eligible employee of a campaign's group.

- Re-running a generation never duplicates an (employee, campaign) pair
- Each creation is committed on its own, so one failure does not undo the others
- The reviewing manager is the employee's reporting manager, falling back to
  the campaign creator
"""
from typing import List, Optional, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from appraisal.core.exceptions import InvalidRequestError
from appraisal.models.evaluation import Evaluation, EvaluationStatus
from appraisal.models.initiated_appraisal import CampaignStatus
from appraisal.models.user import User
from appraisal.schemas.campaign import GenerationFailure, GenerationResult
from appraisal.schemas.evaluation import EvaluationResponse
from appraisal.services.base import BaseService
from appraisal.services.lookups import get_campaign_or_404
from appraisal.services.membership import ExclusionRules, resolve_members
from appraisal.services.notification import NotificationService

_CLOSED_STATUSES = (CampaignStatus.CLOSED, CampaignStatus.CANCELLED)


class EvaluationGenerator(BaseService):

    def generate_evaluations(
        self,
        campaign_id: int,
        fallback_manager_id: Optional[int] = None,
        actor: Optional[User] = None,
    ) -> GenerationResult:
        campaign = get_campaign_or_404(self.db, campaign_id, actor)
        if campaign.status in _CLOSED_STATUSES:
            raise InvalidRequestError(
                f"Cannot generate evaluations for a {campaign.status.value} campaign",
                details={"campaign_id": campaign_id, "status": campaign.status.value},
            )

        resolution = resolve_members(self.db, campaign.appraisal_group_id, ExclusionRules.from_campaign(campaign))
        fallback_manager_id = fallback_manager_id or campaign.created_by_id
        existing = self._existing_employee_ids(campaign_id)

        # Plain ids; a rollback below expires every loaded instance
        eligible = [(u.id, u.reporting_manager_id) for u in resolution.eligible]
        excluded_count = len(resolution.excluded)
        inactive_count = len(resolution.inactive)
        total_members = resolution.total_members

        created: List[Evaluation] = []
        failures: List[GenerationFailure] = []
        already_existing = 0

        for employee_id, reporting_manager_id in eligible:
            if employee_id in existing:
                already_existing += 1
                continue

            try:
                evaluation = self._create_evaluation(
                    campaign_id, employee_id, reporting_manager_id or fallback_manager_id
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                if isinstance(e, IntegrityError) and self._evaluation_exists(campaign_id, employee_id):
                    # Another generation run created the pair first
                    already_existing += 1
                    self._logger.info(f"Evaluation for employee {employee_id} in campaign {campaign_id} already exists")
                    continue
                self._logger.error(f"Failed to create evaluation for employee {employee_id}: {e}")
                failures.append(GenerationFailure(employee_id=employee_id, reason=str(e)))
                continue

            existing.add(employee_id)
            created.append(evaluation)

        result = GenerationResult(
            campaign_id=campaign_id,
            total_members=total_members,
            total_eligible=len(eligible),
            created=len(created),
            skipped=excluded_count + already_existing,
            excluded=excluded_count,
            already_existing=already_existing,
            inactive=inactive_count,
            failures=failures,
            evaluations=[EvaluationResponse.model_validate(e) for e in created],
        )
        self._logger.info(
            f"Generated evaluations for campaign {campaign_id}: created={result.created} "
            f"skipped={result.skipped} failed={len(failures)}"
        )
        return result

    def _existing_employee_ids(self, campaign_id: int) -> Set[int]:
        rows = (
            self.db.query(Evaluation.employee_id)
            .filter(Evaluation.initiated_appraisal_id == campaign_id)
            .all()
        )
        return {row[0] for row in rows}

    def _evaluation_exists(self, campaign_id: int, employee_id: int) -> bool:
        return self.db.query(Evaluation.id).filter(
            Evaluation.initiated_appraisal_id == campaign_id,
            Evaluation.employee_id == employee_id,
        ).first() is not None

    def _create_evaluation(self, campaign_id: int, employee_id: int, manager_id: int) -> Evaluation:
        """Insert one evaluation and its initiation notice, then commit both."""
        evaluation = Evaluation(
            employee_id=employee_id,
            manager_id=manager_id,
            initiated_appraisal_id=campaign_id,
            review_cycle_id=f"initiated-appraisal-{campaign_id}",
            status=EvaluationStatus.NOT_STARTED.value,
        )
        self.db.add(evaluation)
        NotificationService.appraisal_initiated(self.db, evaluation)
        self.commit()
        self.db.refresh(evaluation)
        return evaluation


def generate_evaluations(
    db, campaign_id: int, fallback_manager_id: Optional[int] = None, actor: Optional[User] = None
) -> GenerationResult:
    return EvaluationGenerator(db).generate_evaluations(campaign_id, fallback_manager_id, actor)
