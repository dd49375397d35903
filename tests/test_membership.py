import pytest
from datetime import date, timedelta
from appraisal.core.exceptions import NotFoundError
from appraisal.models.user import UserStatus
from appraisal.services.membership import ExclusionRules, has_short_tenure, resolve_members

TODAY = date(2026, 6, 30)

def test_resolve_orders_by_user_id_and_skips_inactive(db_session, make_user, make_group):
    a = make_user()
    b = make_user()
    gone = make_user(status=UserStatus.INACTIVE)
    group = make_group([b, gone, a])

    resolution = resolve_members(db_session, group.id, today=TODAY)

    assert [u.id for u in resolution.eligible] == sorted([a.id, b.id])
    assert [u.id for u in resolution.inactive] == [gone.id]
    assert resolution.total_members == 3

def test_explicit_exclusions(db_session, make_user, make_group):
    a = make_user()
    b = make_user()
    group = make_group([a, b])

    resolution = resolve_members(db_session, group.id, ExclusionRules(excluded_user_ids=frozenset({b.id})), TODAY)

    assert [u.id for u in resolution.eligible] == [a.id]
    assert [u.id for u in resolution.excluded] == [b.id]

def test_tenure_exclusion_only_when_flag_set(db_session, make_user, make_group):
    veteran = make_user(date_of_joining=TODAY - timedelta(days=800))
    newcomer = make_user(date_of_joining=TODAY - timedelta(days=30))
    group = make_group([veteran, newcomer])

    without_flag = resolve_members(db_session, group.id, ExclusionRules(), TODAY)
    assert len(without_flag.eligible) == 2

    with_flag = resolve_members(db_session, group.id, ExclusionRules(exclude_tenure_less_than_year=True), TODAY)
    assert [u.id for u in with_flag.eligible] == [veteran.id]
    assert [u.id for u in with_flag.excluded] == [newcomer.id]

def test_tenure_boundary(make_user):
    exactly_a_year = make_user(date_of_joining=TODAY - timedelta(days=365))
    a_day_short = make_user(date_of_joining=TODAY - timedelta(days=364))
    unknown = make_user(date_of_joining=None)

    assert not has_short_tenure(exactly_a_year, TODAY, 365)
    assert has_short_tenure(a_day_short, TODAY, 365)
    assert not has_short_tenure(unknown, TODAY, 365)

def test_empty_group_is_not_an_error(db_session, make_group):
    group = make_group([])
    resolution = resolve_members(db_session, group.id, today=TODAY)
    assert resolution.eligible == []
    assert resolution.total_members == 0

def test_unknown_group(db_session):
    with pytest.raises(NotFoundError):
        resolve_members(db_session, 404)
