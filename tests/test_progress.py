import pytest
from appraisal.core.exceptions import NotFoundError
from appraisal.models.evaluation import Evaluation, EvaluationStatus
from appraisal.models.user import UserStatus
from appraisal.services.progress import get_progress


def _evaluation(db_session, employee, campaign, manager_id, status):
    row = Evaluation(
        employee_id=employee.id,
        manager_id=manager_id,
        initiated_appraisal_id=campaign.id,
        status=status.value,
    )
    db_session.add(row)
    db_session.commit()
    return row


def test_progress_counts_completed_members(db_session, make_user, make_group, make_campaign, hr_user):
    done, pending, untouched = make_user(), make_user(), make_user()
    inactive = make_user(status=UserStatus.INACTIVE)
    campaign = make_campaign(make_group([done, pending, untouched, inactive]))
    _evaluation(db_session, done, campaign, hr_user.id, EvaluationStatus.COMPLETED)
    _evaluation(db_session, pending, campaign, hr_user.id, EvaluationStatus.DRAFT)

    report = get_progress(db_session, campaign.id)

    assert report.total_employees == 3
    assert report.completed_evaluations == 1
    assert report.percentage == 33
    by_id = {p.employee.id: p for p in report.employee_progress}
    assert by_id[done.id].is_completed
    assert by_id[pending.id].status == EvaluationStatus.DRAFT
    assert by_id[untouched.id].status == EvaluationStatus.NOT_STARTED
    assert by_id[untouched.id].evaluation is None
    assert inactive.id not in by_id


def test_zero_member_group(db_session, make_group, make_campaign):
    campaign = make_campaign(make_group([]))

    report = get_progress(db_session, campaign.id)

    assert report.total_employees == 0
    assert report.completed_evaluations == 0
    assert report.percentage == 0
    assert report.employee_progress == []


def test_all_completed_is_hundred_percent(db_session, make_user, make_group, make_campaign, hr_user):
    a, b = make_user(), make_user()
    campaign = make_campaign(make_group([a, b]))
    for user in (a, b):
        _evaluation(db_session, user, campaign, hr_user.id, EvaluationStatus.COMPLETED)

    assert get_progress(db_session, campaign.id).percentage == 100


@pytest.mark.parametrize("members, completed, expected", [(8, 1, 13), (8, 3, 38), (3, 2, 67), (6, 1, 17)])
def test_percentage_rounds_halves_up(db_session, make_user, make_group, make_campaign, hr_user, members, completed, expected):
    users = [make_user() for _ in range(members)]
    campaign = make_campaign(make_group(users))
    for user in users[:completed]:
        _evaluation(db_session, user, campaign, hr_user.id, EvaluationStatus.COMPLETED)

    report = get_progress(db_session, campaign.id)

    assert report.completed_evaluations == completed
    assert report.percentage == expected


def test_unknown_campaign(db_session):
    with pytest.raises(NotFoundError):
        get_progress(db_session, 999)


def test_progress_endpoint(client, make_user, make_group, make_campaign, hr_user, as_user):
    campaign = make_campaign(make_group([make_user()]))
    response = client.get(f"/api/initiated-appraisals/{campaign.id}/progress", headers=as_user(hr_user))
    assert response.status_code == 200
    assert response.json()["total_employees"] == 1
