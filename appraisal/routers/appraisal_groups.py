from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from appraisal.database import get_db
from appraisal.models.user import User
from appraisal.routers.auth_deps import require_hr
from appraisal.schemas.appraisal_group import (
    AppraisalGroupCreate,
    AppraisalGroupResponse,
    AppraisalGroupUpdate,
    GroupMemberAdd,
    GroupMemberResponse,
)
from appraisal.services import appraisal_groups as group_service
from appraisal.services.lookups import get_group_or_404

router = APIRouter(prefix="/appraisal-groups", tags=["appraisal-groups"])


@router.post("", response_model=AppraisalGroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    data: AppraisalGroupCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    group = group_service.create_group(db, data, current_user)
    return group_service.to_response(group)


@router.get("", response_model=List[AppraisalGroupResponse])
def list_groups(db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return [group_service.to_response(g) for g in group_service.list_groups(db, current_user)]


@router.get("/{group_id}", response_model=AppraisalGroupResponse)
def get_group(group_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return group_service.to_response(get_group_or_404(db, group_id, current_user))


@router.put("/{group_id}", response_model=AppraisalGroupResponse)
def update_group(
    group_id: int,
    data: AppraisalGroupUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return group_service.to_response(group_service.update_group(db, group_id, data, current_user))


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(group_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    group_service.delete_group(db, group_id, current_user)


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
def list_members(group_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return group_service.list_members(db, group_id, current_user)


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    group_id: int,
    data: GroupMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return group_service.add_member(db, group_id, data.user_id, current_user)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    group_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    group_service.remove_member(db, group_id, user_id, current_user)
