import pytest
from datetime import date
from appraisal.core.exceptions import ConflictError, NotFoundError
from appraisal.models.scheduled_task import ScheduledAppraisalTask, ScheduledTaskStatus, ScheduledTaskType
from appraisal.schemas.campaign import CampaignUpdate
from appraisal.services.campaigns import update_campaign
from appraisal.services.task_planner import TaskPlanner

TODAY = date(2026, 3, 1)


@pytest.fixture
def campaign(make_group, make_campaign):
    return make_campaign(make_group([]), days_to_initiate=0, days_to_close=30, number_of_reminders=3)


def _dates(tasks, task_type):
    return [t.scheduled_date for t in tasks if t.task_type == task_type.value]


def test_plan_creates_initiate_reminders_and_close(db_session, campaign):
    tasks = TaskPlanner(db_session).plan_scheduled_tasks(campaign.id, today=TODAY)

    assert len(tasks) == 5
    assert _dates(tasks, ScheduledTaskType.INITIATE) == [date(2026, 3, 1)]
    assert _dates(tasks, ScheduledTaskType.REMINDER) == [date(2026, 3, 9), date(2026, 3, 16), date(2026, 3, 23)]
    assert _dates(tasks, ScheduledTaskType.CLOSE) == [date(2026, 3, 31)]
    assert [t.scheduled_date for t in tasks] == sorted(t.scheduled_date for t in tasks)
    assert all(t.status == ScheduledTaskStatus.PENDING.value for t in tasks)


def test_replanning_is_idempotent(db_session, campaign):
    planner = TaskPlanner(db_session)
    planner.plan_scheduled_tasks(campaign.id, today=TODAY)
    planner.plan_scheduled_tasks(campaign.id, today=TODAY)

    assert db_session.query(ScheduledAppraisalTask).count() == 5


def test_replanning_moves_pending_tasks_only(db_session, campaign):
    planner = TaskPlanner(db_session)
    tasks = planner.plan_scheduled_tasks(campaign.id, today=TODAY)
    first_reminder = next(t for t in tasks if t.task_type == ScheduledTaskType.REMINDER.value and t.sequence == 1)
    planner.mark_task_executed(first_reminder.id)

    campaign.days_to_close = 20
    db_session.commit()
    tasks = planner.plan_scheduled_tasks(campaign.id, today=TODAY)

    assert len(tasks) == 5
    reminders = {t.sequence: t for t in tasks if t.task_type == ScheduledTaskType.REMINDER.value}
    assert reminders[1].scheduled_date == date(2026, 3, 9)
    assert reminders[1].status == ScheduledTaskStatus.EXECUTED.value
    assert reminders[2].scheduled_date == date(2026, 3, 11)
    assert reminders[3].scheduled_date == date(2026, 3, 16)
    assert _dates(tasks, ScheduledTaskType.CLOSE) == [date(2026, 3, 21)]


def test_replanning_drops_pending_slots_no_longer_produced(db_session, make_group, make_campaign, hr_user):
    campaign = make_campaign(make_group([]), days_to_initiate=0, days_to_close=40, number_of_reminders=3)
    planner = TaskPlanner(db_session)
    tasks = planner.plan_scheduled_tasks(campaign.id, today=TODAY)
    assert len(_dates(tasks, ScheduledTaskType.REMINDER)) == 3
    third = next(t for t in tasks if t.task_type == ScheduledTaskType.REMINDER.value and t.sequence == 3)
    planner.mark_task_executed(third.id)

    update_campaign(db_session, campaign.id, CampaignUpdate(number_of_reminders=1), hr_user)
    tasks = planner.plan_scheduled_tasks(campaign.id, today=TODAY)

    reminders = [t for t in tasks if t.task_type == ScheduledTaskType.REMINDER.value]
    pending = [t for t in reminders if t.status == ScheduledTaskStatus.PENDING.value]
    assert [t.sequence for t in pending] == [1]
    # Executed reminders stay as history even when their slot is gone
    assert [(t.sequence, t.status) for t in reminders if t not in pending] == [(3, ScheduledTaskStatus.EXECUTED.value)]
    assert len(_dates(tasks, ScheduledTaskType.INITIATE)) == 1
    assert len(_dates(tasks, ScheduledTaskType.CLOSE)) == 1
    assert db_session.query(ScheduledAppraisalTask).count() == 4


def test_due_tasks(db_session, campaign):
    planner = TaskPlanner(db_session)
    planner.plan_scheduled_tasks(campaign.id, today=TODAY)

    due = planner.get_due_tasks(date(2026, 3, 10))

    assert [(t.task_type, t.scheduled_date) for t in due] == [
        (ScheduledTaskType.INITIATE.value, date(2026, 3, 1)),
        (ScheduledTaskType.REMINDER.value, date(2026, 3, 9)),
    ]


def test_marking_only_pending_tasks(db_session, campaign):
    planner = TaskPlanner(db_session)
    task = planner.plan_scheduled_tasks(campaign.id, today=TODAY)[0]

    executed = planner.mark_task_executed(task.id)
    assert executed.status == ScheduledTaskStatus.EXECUTED.value
    assert executed.executed_at is not None
    assert task.id not in [t.id for t in planner.get_due_tasks(date(2026, 12, 31))]

    with pytest.raises(ConflictError):
        planner.mark_task_executed(task.id)
    with pytest.raises(ConflictError):
        planner.mark_task_failed(task.id, "smtp down")


def test_mark_failed_records_reason(db_session, campaign):
    planner = TaskPlanner(db_session)
    task = planner.plan_scheduled_tasks(campaign.id, today=TODAY)[-1]

    failed = planner.mark_task_failed(task.id, "smtp down")

    assert failed.status == ScheduledTaskStatus.ERROR.value
    assert failed.error == "smtp down"


def test_unknown_task(db_session):
    with pytest.raises(NotFoundError):
        TaskPlanner(db_session).mark_task_executed(42)


def test_executor_endpoints(client, db_session, campaign, hr_user, as_user):
    planned = client.post(f"/api/initiated-appraisals/{campaign.id}/schedule", headers=as_user(hr_user))
    assert planned.status_code == 200
    assert len(planned.json()) == 5

    due = client.get("/api/scheduled-tasks/due", params={"on": "2099-01-01"}, headers=as_user(hr_user))
    assert len(due.json()) == 5

    task_id = due.json()[0]["id"]
    assert client.post(f"/api/scheduled-tasks/{task_id}/executed", headers=as_user(hr_user)).status_code == 200
    again = client.post(f"/api/scheduled-tasks/{task_id}/executed", headers=as_user(hr_user))
    assert again.status_code == 409
    assert again.json()["errors"][0]["code"] == "CONFLICT"
