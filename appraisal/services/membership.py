"""
Membership Resolver

Turns an appraisal group plus exclusion rules into the ordered list of employees
eligible for evaluation. Read-only.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from appraisal.core.config import settings
from appraisal.models.appraisal_group import AppraisalGroupMember
from appraisal.models.user import User
from appraisal.services.lookups import get_group_or_404

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionRules:
    excluded_user_ids: frozenset = frozenset()
    exclude_tenure_less_than_year: bool = False

    @classmethod
    def from_campaign(cls, campaign) -> "ExclusionRules":
        return cls(
            excluded_user_ids=frozenset(campaign.excluded_employee_ids or []),
            exclude_tenure_less_than_year=bool(campaign.exclude_tenure_less_than_year),
        )


@dataclass
class MembershipResolution:
    group_id: int
    eligible: List[User] = field(default_factory=list)
    excluded: List[User] = field(default_factory=list)
    inactive: List[User] = field(default_factory=list)

    @property
    def total_members(self) -> int:
        return len(self.eligible) + len(self.excluded) + len(self.inactive)


def get_group_users(db: Session, group_id: int) -> List[User]:
    """All member users of a group ordered by user id, regardless of status."""
    members = (
        db.query(AppraisalGroupMember)
        .options(joinedload(AppraisalGroupMember.user))
        .filter(AppraisalGroupMember.appraisal_group_id == group_id)
        .order_by(AppraisalGroupMember.user_id)
        .all()
    )
    return [m.user for m in members if m.user is not None]


def has_short_tenure(user: User, today: date, tenure_days: int) -> bool:
    # Without a joining date tenure cannot be shown to be short
    if user.date_of_joining is None:
        return False
    return user.date_of_joining > today - timedelta(days=tenure_days)


def resolve_members(
    db: Session,
    group_id: int,
    rules: Optional[ExclusionRules] = None,
    today: Optional[date] = None,
) -> MembershipResolution:
    """
    Partition a group's members into eligible, excluded and inactive users.

    Raises NotFoundError for an unknown group; an empty group resolves to an
    empty eligible list.
    """
    get_group_or_404(db, group_id)
    rules = rules or ExclusionRules()
    today = today or date.today()

    resolution = MembershipResolution(group_id=group_id)
    for user in get_group_users(db, group_id):
        if not user.is_active:
            resolution.inactive.append(user)
        elif user.id in rules.excluded_user_ids:
            resolution.excluded.append(user)
        elif rules.exclude_tenure_less_than_year and has_short_tenure(user, today, settings.tenure_exclusion_days):
            resolution.excluded.append(user)
        else:
            resolution.eligible.append(user)

    logger.info(
        f"Resolved group {group_id}: {len(resolution.eligible)} eligible, "
        f"{len(resolution.excluded)} excluded, {len(resolution.inactive)} inactive"
    )
    return resolution
