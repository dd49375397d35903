"""
Evaluation schemas.

Self and manager payloads are stored as JSON but always pass through ResponseSet,
a versioned structure. Older rows hold free-form dicts; upgrade_response_set()
migrates them to the current version on the way in and out.
"""
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from appraisal.models.evaluation import EvaluationStatus, MeetingState

RESPONSE_SET_VERSION = 1

_LEGACY_REMARK_KEYS = ("remarks", "managerRemarks", "manager_remarks", "comments")


class QuestionResponse(BaseModel):
    question_id: str
    answer: Optional[str] = None
    rating: Optional[int] = Field(None, ge=0, le=10)
    comment: Optional[str] = None


class ResponseSet(BaseModel):
    schema_version: Literal[1] = RESPONSE_SET_VERSION
    responses: List[QuestionResponse] = []
    remarks: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return upgrade_response_set(data)
        return data


def upgrade_response_set(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a stored payload to the current ResponseSet layout.

    Unversioned payloads are free-form {question: answer} dicts; numeric answers
    become ratings and well-known remark keys become the remarks field.
    """
    version = raw.get("schema_version")
    if version == RESPONSE_SET_VERSION:
        return raw
    if version is not None:
        raise ValueError(f"Unsupported response set version: {version}")

    if isinstance(raw.get("responses"), list):
        return {**raw, "schema_version": RESPONSE_SET_VERSION}

    remarks = None
    responses = []
    for key, value in raw.items():
        if key in _LEGACY_REMARK_KEYS:
            remarks = None if value is None else str(value)
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            responses.append({"question_id": str(key), "answer": None if value is None else str(value)})
        else:
            responses.append({"question_id": str(key), "rating": int(value)})
    return {"schema_version": RESPONSE_SET_VERSION, "responses": responses, "remarks": remarks}


class EvaluationPatch(BaseModel):
    """
    Generic partial update. Which fields an actor may send is decided by the
    authorization gate; unknown fields are rejected here.
    """
    model_config = ConfigDict(extra="forbid")

    self_evaluation_data: Optional[ResponseSet] = None
    self_evaluation_submitted_at: Optional[datetime] = None
    manager_evaluation_data: Optional[ResponseSet] = None
    manager_evaluation_submitted_at: Optional[datetime] = None
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    finalized_at: Optional[datetime] = None
    status: Optional[EvaluationStatus] = None
    meeting_scheduled_at: Optional[datetime] = None
    meeting_notes: Optional[str] = None
    meeting_completed_at: Optional[datetime] = None
    show_notes_to_employee: Optional[bool] = None
    calibrated_rating: Optional[int] = Field(None, ge=1, le=5)
    calibration_remarks: Optional[str] = None


class SelfEvaluationRequest(BaseModel):
    self_evaluation_data: ResponseSet


class ManagerReviewRequest(BaseModel):
    manager_evaluation_data: ResponseSet
    overall_rating: int = Field(..., ge=1, le=5)
    manager_remarks: Optional[str] = None


class ScheduleMeetingRequest(BaseModel):
    meeting_date: datetime
    title: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: int = Field(60, gt=0, le=480)
    location: Optional[str] = None


class MeetingNotesRequest(BaseModel):
    meeting_notes: str = Field(..., min_length=1)
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    show_notes_to_employee: Optional[bool] = None


class CalibrationRequest(BaseModel):
    calibrated_rating: Optional[int] = Field(None, ge=1, le=5)
    calibration_remarks: str = Field(..., min_length=1)


class EvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    manager_id: int
    initiated_appraisal_id: Optional[int] = None
    review_cycle_id: Optional[str] = None
    self_evaluation_data: Optional[ResponseSet] = None
    self_evaluation_submitted_at: Optional[datetime] = None
    manager_evaluation_data: Optional[ResponseSet] = None
    manager_evaluation_submitted_at: Optional[datetime] = None
    overall_rating: Optional[int] = None
    status: EvaluationStatus
    meeting_state: MeetingState
    meeting_scheduled_at: Optional[datetime] = None
    meeting_notes: Optional[str] = None
    meeting_completed_at: Optional[datetime] = None
    show_notes_to_employee: bool = False
    finalized_at: Optional[datetime] = None
    calibrated_rating: Optional[int] = None
    calibration_remarks: Optional[str] = None
    calibrated_by_id: Optional[int] = None
    calibrated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
