"""
Evaluation Workflow

The lifecycle of a single evaluation:

    not_started -> draft -> self_submitted -> reviewed -> completed

Who may do what is data, not branching code:

- FIELD_MASKS: which evaluation fields each capacity may write through a patch
- TRANSITIONS: for each action, the capacities allowed to run it and the statuses
  it may start from

Every action goes through the same gate in the same order: capacity (403),
preconditions (400 with a specific message, 409 for double finalization), then
from-status (400). Privileged roles are bound by the guards like everyone else;
only the capacity check is wider for them.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional

from sqlalchemy import or_

from appraisal.core.exceptions import (
    AccessDeniedError,
    AppException,
    ConflictError,
    InvalidRequestError,
    InvalidTransitionError,
    PreconditionFailedError,
)
from appraisal.models.evaluation import Evaluation, EvaluationStatus
from appraisal.models.user import PRIVILEGED_ROLES, User, UserRole
from appraisal.schemas.evaluation import (
    CalibrationRequest,
    EvaluationPatch,
    EvaluationResponse,
    ManagerReviewRequest,
    MeetingNotesRequest,
    ResponseSet,
    ScheduleMeetingRequest,
)
from appraisal.services.audit import AuditService
from appraisal.services.base import BaseService
from appraisal.services.lookups import get_evaluation_or_404
from appraisal.services.notification import NotificationService


class Capacity(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    PRIVILEGED = "privileged"
    NONE = "none"


class Action(str, enum.Enum):
    SAVE_SELF_DRAFT = "save_self_draft"
    SUBMIT_SELF = "submit_self"
    SUBMIT_MANAGER_REVIEW = "submit_manager_review"
    SCHEDULE_MEETING = "schedule_meeting"
    RECORD_MEETING_NOTES = "record_meeting_notes"
    FINALIZE = "finalize"
    CALIBRATE = "calibrate"


ALL_FIELDS: FrozenSet[str] = frozenset(EvaluationPatch.model_fields)

FIELD_MASKS: Dict[Capacity, FrozenSet[str]] = {
    Capacity.OWNER: frozenset({"self_evaluation_data", "self_evaluation_submitted_at"}),
    Capacity.MANAGER: frozenset({
        "manager_evaluation_data",
        "manager_evaluation_submitted_at",
        "overall_rating",
        "finalized_at",
        "status",
    }),
    Capacity.PRIVILEGED: ALL_FIELDS,
    Capacity.NONE: frozenset(),
}


@dataclass(frozen=True)
class Transition:
    capacities: FrozenSet[Capacity]
    from_states: FrozenSet[EvaluationStatus]


_S = EvaluationStatus
_C = Capacity

TRANSITIONS: Dict[Action, Transition] = {
    Action.SAVE_SELF_DRAFT: Transition(
        frozenset({_C.OWNER, _C.PRIVILEGED}), frozenset({_S.NOT_STARTED, _S.DRAFT})
    ),
    Action.SUBMIT_SELF: Transition(
        frozenset({_C.OWNER, _C.PRIVILEGED}), frozenset({_S.NOT_STARTED, _S.DRAFT})
    ),
    Action.SUBMIT_MANAGER_REVIEW: Transition(
        frozenset({_C.MANAGER, _C.PRIVILEGED}), frozenset({_S.SELF_SUBMITTED, _S.REVIEWED})
    ),
    Action.SCHEDULE_MEETING: Transition(
        frozenset({_C.MANAGER, _C.OWNER, _C.PRIVILEGED}), frozenset({_S.REVIEWED})
    ),
    Action.RECORD_MEETING_NOTES: Transition(
        frozenset({_C.MANAGER, _C.PRIVILEGED}), frozenset({_S.REVIEWED, _S.COMPLETED})
    ),
    Action.FINALIZE: Transition(
        frozenset({_C.MANAGER, _C.PRIVILEGED}), frozenset({_S.REVIEWED})
    ),
    Action.CALIBRATE: Transition(
        frozenset({_C.PRIVILEGED}), frozenset({_S.COMPLETED})
    ),
}


def _require_self_submitted(evaluation: Evaluation):
    if evaluation.self_evaluation_submitted_at is None:
        raise PreconditionFailedError("Employee self-evaluation not submitted")


def _require_manager_submitted(evaluation: Evaluation):
    if evaluation.manager_evaluation_submitted_at is None:
        raise PreconditionFailedError("Manager evaluation not submitted")


def _require_meeting_scheduled(evaluation: Evaluation):
    if evaluation.meeting_scheduled_at is None:
        raise PreconditionFailedError("Meeting has not been scheduled")


def _require_finalizable(evaluation: Evaluation):
    _require_self_submitted(evaluation)
    _require_manager_submitted(evaluation)
    if evaluation.is_finalized:
        raise ConflictError("Evaluation already finalized", details={"evaluation_id": evaluation.id})


PRECONDITIONS: Dict[Action, Callable[[Evaluation], None]] = {
    Action.SUBMIT_MANAGER_REVIEW: _require_self_submitted,
    Action.SCHEDULE_MEETING: _require_manager_submitted,
    Action.RECORD_MEETING_NOTES: _require_meeting_scheduled,
    Action.FINALIZE: _require_finalizable,
}


def resolve_capacity(actor: User, evaluation: Evaluation) -> Capacity:
    """
    The capacity in which `actor` acts on `evaluation`.
    Ownership wins, so a privileged user being appraised acts on their own
    evaluation as its owner.
    """
    if actor.id == evaluation.employee_id:
        return Capacity.OWNER
    if actor.role in PRIVILEGED_ROLES:
        return Capacity.PRIVILEGED
    if actor.id == evaluation.manager_id and actor.role != UserRole.EMPLOYEE:
        return Capacity.MANAGER
    return Capacity.NONE


def check_transition(action: Action, capacity: Capacity, evaluation: Evaluation):
    rule = TRANSITIONS[action]
    if capacity not in rule.capacities:
        raise AccessDeniedError(
            f"Not permitted to {action.value.replace('_', ' ')} on this evaluation",
            details={"action": action.value, "capacity": capacity.value},
        )

    precondition = PRECONDITIONS.get(action)
    if precondition is not None:
        precondition(evaluation)

    current = EvaluationStatus(evaluation.status)
    if current not in rule.from_states:
        raise InvalidTransitionError(
            f"Action '{action.value}' is not allowed on an evaluation in status '{current.value}'",
            details={"action": action.value, "status": current.value},
        )


def check_invariants(evaluation: Evaluation):
    """Status must agree with the submission timestamps after every mutation."""
    status = EvaluationStatus(evaluation.status)
    self_done = evaluation.self_evaluation_submitted_at is not None
    manager_done = evaluation.manager_evaluation_submitted_at is not None

    if status == EvaluationStatus.COMPLETED and not (self_done and manager_done and evaluation.finalized_at is not None):
        raise InvalidRequestError("A completed evaluation needs both submissions and a finalization time")
    if status == EvaluationStatus.REVIEWED and not (self_done and manager_done):
        raise InvalidRequestError("A reviewed evaluation needs both submissions")
    if status == EvaluationStatus.SELF_SUBMITTED and not self_done:
        raise InvalidRequestError("A self-submitted evaluation needs the self submission")


def check_field_mask(capacity: Capacity, fields) -> None:
    disallowed = sorted(set(fields) - FIELD_MASKS[capacity])
    if disallowed:
        raise AccessDeniedError(
            "Not permitted to update these fields",
            details={"fields": disallowed, "capacity": capacity.value},
        )


def _snapshot(evaluation: Evaluation) -> dict:
    return {
        "status": evaluation.status,
        "self_evaluation_submitted_at": evaluation.self_evaluation_submitted_at,
        "manager_evaluation_submitted_at": evaluation.manager_evaluation_submitted_at,
        "overall_rating": evaluation.overall_rating,
        "meeting_scheduled_at": evaluation.meeting_scheduled_at,
        "meeting_completed_at": evaluation.meeting_completed_at,
        "finalized_at": evaluation.finalized_at,
        "calibrated_rating": evaluation.calibrated_rating,
    }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _dump(data: Optional[ResponseSet]) -> Optional[dict]:
    return None if data is None else data.model_dump(mode="json")


def serialize_evaluation(evaluation: Evaluation, actor: User) -> EvaluationResponse:
    """Response view of an evaluation; meeting notes stay hidden from the employee unless shared."""
    response = EvaluationResponse.model_validate(evaluation)
    if actor.id == evaluation.employee_id and not evaluation.show_notes_to_employee:
        response = response.model_copy(update={"meeting_notes": None})
    return response


class EvaluationWorkflow(BaseService):

    def __init__(self, db):
        super().__init__(db)
        self.audit = AuditService(db)

    # --- reads ---

    def get_evaluation(self, evaluation_id: int, actor: User) -> Evaluation:
        evaluation = get_evaluation_or_404(self.db, evaluation_id)
        if resolve_capacity(actor, evaluation) == Capacity.NONE:
            raise AccessDeniedError("Not permitted to view this evaluation")
        return evaluation

    def list_evaluations(
        self,
        actor: User,
        campaign_id: Optional[int] = None,
        status: Optional[EvaluationStatus] = None,
    ) -> List[Evaluation]:
        query = self.db.query(Evaluation)
        if actor.role in PRIVILEGED_ROLES:
            pass
        elif actor.role == UserRole.MANAGER:
            query = query.filter(or_(Evaluation.manager_id == actor.id, Evaluation.employee_id == actor.id))
        else:
            query = query.filter(Evaluation.employee_id == actor.id)

        if campaign_id is not None:
            query = query.filter(Evaluation.initiated_appraisal_id == campaign_id)
        if status is not None:
            query = query.filter(Evaluation.status == status.value)
        return query.order_by(Evaluation.id).all()

    # --- dedicated actions ---

    def save_self_draft(self, evaluation_id: int, actor: User, data: ResponseSet) -> Evaluation:
        return self._run(
            evaluation_id, actor, Action.SAVE_SELF_DRAFT.value,
            lambda e, c: self._save_self_draft(e, c, data),
        )

    def submit_self_evaluation(self, evaluation_id: int, actor: User, data: Optional[ResponseSet] = None) -> Evaluation:
        return self._run(
            evaluation_id, actor, Action.SUBMIT_SELF.value,
            lambda e, c: self._submit_self(e, c, data),
        )

    def submit_manager_review(self, evaluation_id: int, actor: User, request: ManagerReviewRequest) -> Evaluation:
        data = request.manager_evaluation_data
        if request.manager_remarks is not None:
            data = data.model_copy(update={"remarks": request.manager_remarks})
        return self._run(
            evaluation_id, actor, Action.SUBMIT_MANAGER_REVIEW.value,
            lambda e, c: self._submit_manager_review(e, c, data, request.overall_rating),
        )

    def schedule_meeting(self, evaluation_id: int, actor: User, request: ScheduleMeetingRequest) -> Evaluation:
        return self._run(
            evaluation_id, actor, Action.SCHEDULE_MEETING.value,
            lambda e, c: self._schedule_meeting(e, c, actor, request.meeting_date, request),
        )

    def record_meeting_notes(self, evaluation_id: int, actor: User, request: MeetingNotesRequest) -> Evaluation:
        return self._run(
            evaluation_id, actor, Action.RECORD_MEETING_NOTES.value,
            lambda e, c: self._record_meeting_notes(
                e, c, request.meeting_notes, request.overall_rating, request.show_notes_to_employee
            ),
        )

    def finalize(self, evaluation_id: int, actor: User) -> Evaluation:
        return self._run(evaluation_id, actor, Action.FINALIZE.value, self._finalize)

    def calibrate(self, evaluation_id: int, actor: User, request: CalibrationRequest) -> Evaluation:
        return self._run(
            evaluation_id, actor, Action.CALIBRATE.value,
            lambda e, c: self._calibrate(e, c, actor, request.calibrated_rating, request.calibration_remarks),
        )

    # --- generic patch ---

    def transition_evaluation(self, evaluation_id: int, actor: User, patch: EvaluationPatch) -> Evaluation:
        """
        Apply a partial update by routing its fields through the lifecycle actions,
        in order: self fields, manager fields, finalization, meeting fields, calibration.
        """
        fields = patch.model_fields_set
        if not fields:
            raise InvalidRequestError("No fields to update")

        def steps(evaluation: Evaluation, capacity: Capacity):
            check_field_mask(capacity, fields)
            self._patch_self_fields(evaluation, capacity, patch, fields)
            self._patch_manager_fields(evaluation, capacity, patch, fields)
            self._patch_finalization(evaluation, capacity, patch, fields)
            self._patch_meeting_fields(evaluation, capacity, actor, patch, fields)
            if fields & {"calibrated_rating", "calibration_remarks"}:
                self._calibrate(evaluation, capacity, actor, patch.calibrated_rating, patch.calibration_remarks)

        return self._run(evaluation_id, actor, "update_evaluation", steps, details={"fields": sorted(fields)})

    def _patch_self_fields(self, evaluation, capacity, patch: EvaluationPatch, fields):
        if "self_evaluation_submitted_at" in fields:
            if patch.self_evaluation_submitted_at is None:
                self._clear_submission(evaluation, capacity, "self_evaluation_submitted_at")
            else:
                data = patch.self_evaluation_data if "self_evaluation_data" in fields else None
                self._submit_self(evaluation, capacity, data)
        elif "self_evaluation_data" in fields:
            self._save_self_draft(evaluation, capacity, patch.self_evaluation_data)

    def _patch_manager_fields(self, evaluation, capacity, patch: EvaluationPatch, fields):
        if "manager_evaluation_submitted_at" in fields and patch.manager_evaluation_submitted_at is None:
            self._clear_submission(evaluation, capacity, "manager_evaluation_submitted_at")
            return
        if fields & {"manager_evaluation_data", "manager_evaluation_submitted_at", "overall_rating"}:
            data = patch.manager_evaluation_data if "manager_evaluation_data" in fields else None
            rating = patch.overall_rating if "overall_rating" in fields else None
            self._submit_manager_review(evaluation, capacity, data, rating)

    def _patch_finalization(self, evaluation, capacity, patch: EvaluationPatch, fields):
        wants_finalize = (
            ("finalized_at" in fields and patch.finalized_at is not None)
            or ("status" in fields and patch.status == EvaluationStatus.COMPLETED)
        )
        if wants_finalize:
            self._finalize(evaluation, capacity)
            return
        if "finalized_at" in fields and evaluation.finalized_at is not None:
            raise InvalidRequestError("Cannot clear the finalization of a completed evaluation")
        if "status" in fields and patch.status is not None and patch.status.value != evaluation.status:
            raise InvalidRequestError(
                "Status only changes through lifecycle actions",
                details={"requested": patch.status.value, "current": evaluation.status},
            )

    def _patch_meeting_fields(self, evaluation, capacity, actor, patch: EvaluationPatch, fields):
        if "meeting_scheduled_at" in fields and patch.meeting_scheduled_at is not None:
            self._schedule_meeting(evaluation, capacity, actor, patch.meeting_scheduled_at)
        if fields & {"meeting_notes", "meeting_completed_at", "show_notes_to_employee"}:
            notes = patch.meeting_notes if "meeting_notes" in fields else None
            self._record_meeting_notes(evaluation, capacity, notes, None, patch.show_notes_to_employee)
            if patch.meeting_completed_at is not None:
                evaluation.meeting_completed_at = patch.meeting_completed_at

    # --- action bodies; each runs its guard before touching the row ---

    def _clear_submission(self, evaluation: Evaluation, capacity: Capacity, field: str):
        if capacity != Capacity.PRIVILEGED:
            raise AccessDeniedError("Only HR may reopen a submission", details={"field": field})
        if evaluation.status == EvaluationStatus.COMPLETED.value:
            raise InvalidRequestError(
                "Cannot clear a submission of a completed evaluation", details={"field": field}
            )
        setattr(evaluation, field, None)
        if field == "self_evaluation_submitted_at" and evaluation.status == EvaluationStatus.SELF_SUBMITTED.value:
            evaluation.status = EvaluationStatus.DRAFT.value
        elif field == "manager_evaluation_submitted_at" and evaluation.status == EvaluationStatus.REVIEWED.value:
            evaluation.status = EvaluationStatus.SELF_SUBMITTED.value

    def _save_self_draft(self, evaluation: Evaluation, capacity: Capacity, data: Optional[ResponseSet]):
        check_transition(Action.SAVE_SELF_DRAFT, capacity, evaluation)
        evaluation.self_evaluation_data = _dump(data)
        evaluation.status = EvaluationStatus.DRAFT.value

    def _submit_self(self, evaluation: Evaluation, capacity: Capacity, data: Optional[ResponseSet]):
        check_transition(Action.SUBMIT_SELF, capacity, evaluation)
        if data is not None:
            evaluation.self_evaluation_data = _dump(data)
        if evaluation.self_evaluation_data is None:
            raise InvalidRequestError("Self-evaluation responses are required before submitting")
        evaluation.self_evaluation_submitted_at = _now()
        evaluation.status = EvaluationStatus.SELF_SUBMITTED.value

    def _submit_manager_review(
        self,
        evaluation: Evaluation,
        capacity: Capacity,
        data: Optional[ResponseSet],
        rating: Optional[int],
    ):
        check_transition(Action.SUBMIT_MANAGER_REVIEW, capacity, evaluation)
        if data is not None:
            evaluation.manager_evaluation_data = _dump(data)
        if rating is not None:
            evaluation.overall_rating = rating
        if evaluation.manager_evaluation_data is None or evaluation.overall_rating is None:
            raise InvalidRequestError("Manager review needs responses and an overall rating")
        evaluation.manager_evaluation_submitted_at = _now()
        evaluation.status = EvaluationStatus.REVIEWED.value

    def _schedule_meeting(
        self,
        evaluation: Evaluation,
        capacity: Capacity,
        actor: User,
        meeting_date: datetime,
        request: Optional[ScheduleMeetingRequest] = None,
    ):
        check_transition(Action.SCHEDULE_MEETING, capacity, evaluation)
        evaluation.meeting_scheduled_at = meeting_date

        title = (request.title if request and request.title else None) or "Performance review meeting"
        details = [f"When: {meeting_date.isoformat()}"]
        if request is not None:
            details.append(f"Duration: {request.duration_minutes} minutes")
            if request.location:
                details.append(f"Location: {request.location}")
            if request.description:
                details.append(request.description)
        message = "\n".join(details)

        NotificationService.calendar_invites(self.db, evaluation, meeting_date, title, message)
        self._logger.info(
            f"Meeting for evaluation {evaluation.id} scheduled by user {actor.id} at {meeting_date.isoformat()}"
        )

    def _record_meeting_notes(
        self,
        evaluation: Evaluation,
        capacity: Capacity,
        notes: Optional[str],
        rating: Optional[int],
        show_notes_to_employee: Optional[bool],
    ):
        check_transition(Action.RECORD_MEETING_NOTES, capacity, evaluation)
        if rating is not None and evaluation.status == EvaluationStatus.COMPLETED.value:
            # Post-finalization rating changes go through calibration
            raise InvalidTransitionError(
                "Rating is locked once the evaluation is finalized",
                details={"action": Action.RECORD_MEETING_NOTES.value, "status": evaluation.status},
            )
        if notes is not None:
            evaluation.meeting_notes = notes
            evaluation.meeting_completed_at = _now()
        if rating is not None:
            evaluation.overall_rating = rating
        if show_notes_to_employee is not None:
            evaluation.show_notes_to_employee = show_notes_to_employee

    def _finalize(self, evaluation: Evaluation, capacity: Capacity):
        check_transition(Action.FINALIZE, capacity, evaluation)
        evaluation.finalized_at = _now()
        evaluation.status = EvaluationStatus.COMPLETED.value
        NotificationService.evaluation_completed(self.db, evaluation)

    def _calibrate(
        self,
        evaluation: Evaluation,
        capacity: Capacity,
        actor: User,
        rating: Optional[int],
        remarks: Optional[str],
    ):
        check_transition(Action.CALIBRATE, capacity, evaluation)
        if rating is None and not remarks:
            raise InvalidRequestError("Calibration needs a rating or remarks")
        if rating is not None:
            evaluation.calibrated_rating = rating
        if remarks is not None:
            evaluation.calibration_remarks = remarks
        evaluation.calibrated_by_id = actor.id
        evaluation.calibrated_at = _now()

    # --- unit of work ---

    def _run(
        self,
        evaluation_id: int,
        actor: User,
        audit_action: str,
        steps: Callable[[Evaluation, Capacity], None],
        details: Optional[dict] = None,
    ) -> Evaluation:
        evaluation = get_evaluation_or_404(self.db, evaluation_id)
        capacity = resolve_capacity(actor, evaluation)
        before = _snapshot(evaluation)

        try:
            steps(evaluation, capacity)
            check_invariants(evaluation)
        except AppException:
            # Discard whatever the earlier steps already changed
            self.db.rollback()
            raise

        self.audit.record(
            audit_action,
            evaluation,
            actor,
            details={"capacity": capacity.value, **(details or {})},
            before=before,
            after=_snapshot(evaluation),
        )
        self.commit()
        self.db.refresh(evaluation)
        self._logger.info(
            f"Evaluation {evaluation.id}: {audit_action} by user {actor.id} ({capacity.value}) -> {evaluation.status}"
        )
        return evaluation
