import logging
from typing import List

from sqlalchemy.orm import Session

from appraisal.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from appraisal.models.appraisal_group import AppraisalGroup, AppraisalGroupMember
from appraisal.models.initiated_appraisal import InitiatedAppraisal
from appraisal.models.user import User
from appraisal.schemas.appraisal_group import AppraisalGroupCreate, AppraisalGroupResponse, AppraisalGroupUpdate
from appraisal.services.lookups import get_group_or_404, get_user_or_404, scope_to_owner

logger = logging.getLogger(__name__)


def to_response(group: AppraisalGroup) -> AppraisalGroupResponse:
    response = AppraisalGroupResponse.model_validate(group)
    response.member_count = len(group.members)
    return response


def _check_member_candidate(db: Session, group_id: int, user_id: int) -> User:
    user = get_user_or_404(db, user_id)
    if not user.is_active:
        raise InvalidRequestError(f"User {user_id} is inactive", details={"user_id": user_id})
    exists = db.query(AppraisalGroupMember).filter(
        AppraisalGroupMember.appraisal_group_id == group_id,
        AppraisalGroupMember.user_id == user_id,
    ).first()
    if exists:
        raise ConflictError(
            f"User {user_id} is already a member of this group",
            details={"group_id": group_id, "user_id": user_id},
        )
    return user


def create_group(db: Session, data: AppraisalGroupCreate, actor: User) -> AppraisalGroup:
    group = AppraisalGroup(name=data.name, description=data.description, created_by_id=actor.id)
    db.add(group)
    db.flush()

    try:
        for user_id in dict.fromkeys(data.member_ids):
            _check_member_candidate(db, group.id, user_id)
            db.add(AppraisalGroupMember(appraisal_group_id=group.id, user_id=user_id, added_by_id=actor.id))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(group)
    logger.info(f"Appraisal group {group.id} created by user {actor.id} with {len(group.members)} members")
    return group


def list_groups(db: Session, actor: User) -> List[AppraisalGroup]:
    query = scope_to_owner(db.query(AppraisalGroup), AppraisalGroup, actor)
    return query.order_by(AppraisalGroup.id).all()


def update_group(db: Session, group_id: int, data: AppraisalGroupUpdate, actor: User) -> AppraisalGroup:
    group = get_group_or_404(db, group_id, actor)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(group, field, value)
    db.commit()
    db.refresh(group)
    return group


def delete_group(db: Session, group_id: int, actor: User) -> None:
    group = get_group_or_404(db, group_id, actor)
    in_use = db.query(InitiatedAppraisal).filter(InitiatedAppraisal.appraisal_group_id == group_id).count()
    if in_use:
        raise ConflictError(
            "Group is referenced by initiated appraisals and cannot be deleted",
            details={"group_id": group_id, "campaigns": in_use},
        )
    db.delete(group)
    db.commit()
    logger.info(f"Appraisal group {group_id} deleted by user {actor.id}")


def list_members(db: Session, group_id: int, actor: User) -> List[AppraisalGroupMember]:
    return get_group_or_404(db, group_id, actor).members


def add_member(db: Session, group_id: int, user_id: int, actor: User) -> AppraisalGroupMember:
    get_group_or_404(db, group_id, actor)
    _check_member_candidate(db, group_id, user_id)

    member = AppraisalGroupMember(appraisal_group_id=group_id, user_id=user_id, added_by_id=actor.id)
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(f"User {user_id} added to appraisal group {group_id} by user {actor.id}")
    return member


def remove_member(db: Session, group_id: int, user_id: int, actor: User) -> None:
    get_group_or_404(db, group_id, actor)
    member = db.query(AppraisalGroupMember).filter(
        AppraisalGroupMember.appraisal_group_id == group_id,
        AppraisalGroupMember.user_id == user_id,
    ).first()
    if not member:
        raise NotFoundError("Group member", user_id)
    db.delete(member)
    db.commit()
