from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import date, datetime
from appraisal.models.common import RecordStatus
from appraisal.models.user import UserRole, UserStatus


class EmployeeSummary(BaseModel):
    """Compact view of a user used in member lists and progress reports."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    role: UserRole
    status: UserStatus
    date_of_joining: Optional[date] = None
    reporting_manager_id: Optional[int] = None


class AppraisalGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    member_ids: List[int] = []


class AppraisalGroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[RecordStatus] = None


class AppraisalGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_by_id: int
    status: RecordStatus
    created_at: Optional[datetime] = None
    member_count: int = 0


class GroupMemberAdd(BaseModel):
    user_id: int


class GroupMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appraisal_group_id: int
    user_id: int
    added_by_id: int
    added_at: Optional[datetime] = None
    user: Optional[EmployeeSummary] = None
