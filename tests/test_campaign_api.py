import pytest
from appraisal.models.evaluation import Evaluation
from appraisal.models.initiated_appraisal import CampaignStatus
from appraisal.models.notification import Notification, NotificationKind
from appraisal.models.scheduled_task import ScheduledAppraisalTask
from appraisal.models.user import UserRole, UserStatus


def _calendar(client, hr_user, as_user):
    response = client.post(
        "/api/frequency-calendars",
        headers=as_user(hr_user),
        json={
            "code": "FY26",
            "description": "Half-yearly",
            "details": [
                {"display_name": "H1", "start_date": "2030-01-01", "end_date": "2030-06-30"},
                {"display_name": "H2", "start_date": "2030-07-01", "end_date": "2030-12-31"},
            ],
        },
    )
    assert response.status_code == 201
    return response.json()


def test_group_membership_rules(client, make_user, hr_user, as_user):
    member = make_user()
    inactive = make_user(status=UserStatus.INACTIVE)
    created = client.post(
        "/api/appraisal-groups", headers=as_user(hr_user), json={"name": "Platform", "member_ids": [member.id]}
    )
    assert created.status_code == 201
    group_id = created.json()["id"]
    assert created.json()["member_count"] == 1
    assert created.json()["status"] == "active"

    deactivated = client.put(f"/api/appraisal-groups/{group_id}", headers=as_user(hr_user), json={"status": "inactive"})
    assert deactivated.json()["status"] == "inactive"
    unknown_status = client.put(f"/api/appraisal-groups/{group_id}", headers=as_user(hr_user), json={"status": "terminated"})
    assert unknown_status.status_code == 422

    duplicate = client.post(f"/api/appraisal-groups/{group_id}/members", headers=as_user(hr_user), json={"user_id": member.id})
    assert duplicate.status_code == 409

    unknown = client.post(f"/api/appraisal-groups/{group_id}/members", headers=as_user(hr_user), json={"user_id": 9999})
    assert unknown.status_code == 404

    rejected = client.post(f"/api/appraisal-groups/{group_id}/members", headers=as_user(hr_user), json={"user_id": inactive.id})
    assert rejected.status_code == 400
    assert rejected.json()["errors"][0]["code"] == "VALIDATION_ERROR"

    removed = client.delete(f"/api/appraisal-groups/{group_id}/members/{member.id}", headers=as_user(hr_user))
    assert removed.status_code == 204
    members = client.get(f"/api/appraisal-groups/{group_id}/members", headers=as_user(hr_user))
    assert members.json() == []


def test_employees_cannot_manage_groups(client, make_user, as_user):
    employee = make_user()
    response = client.post("/api/appraisal-groups", headers=as_user(employee), json={"name": "Nope"})
    assert response.status_code == 403


def test_initiate_now_generates_evaluations(client, db_session, make_user, make_group, hr_user, as_user):
    a, b, c = make_user(), make_user(), make_user()
    group = make_group([a, b, c])

    response = client.post(
        "/api/initiated-appraisals",
        headers=as_user(hr_user),
        json={
            "appraisal_group_id": group.id,
            "appraisal_type": "questionnaire_based",
            "questionnaire_template_ids": ["q-2026"],
            "excluded_employee_ids": [c.id],
            "publish_type": "now",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["campaign"]["status"] == CampaignStatus.ACTIVE.value
    assert body["generation"]["created"] == 2
    assert body["generation"]["skipped"] == 1
    assert body["scheduled_task_count"] == 0
    assert db_session.query(Evaluation).count() == 2


def test_initiate_as_per_calendar_plans_tasks(client, db_session, make_group, hr_user, as_user):
    calendar = _calendar(client, hr_user, as_user)
    h1 = calendar["details"][0]["id"]
    group = make_group([])

    response = client.post(
        "/api/initiated-appraisals",
        headers=as_user(hr_user),
        json={
            "appraisal_group_id": group.id,
            "appraisal_type": "questionnaire_based",
            "questionnaire_template_ids": ["q-2026"],
            "frequency_calendar_id": calendar["id"],
            "calendar_detail_timings": [
                {"detail_id": h1, "days_to_initiate": 5, "days_to_close": 10, "number_of_reminders": 2}
            ],
            "publish_type": "as_per_calendar",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["campaign"]["status"] == CampaignStatus.DRAFT.value
    assert body["generation"] is None
    # initiate + 2 reminders + close for the single bound period
    assert body["scheduled_task_count"] == 4
    assert db_session.query(ScheduledAppraisalTask).count() == 4
    assert db_session.query(Evaluation).count() == 0


@pytest.mark.parametrize("payload, message", [
    ({"appraisal_type": "questionnaire_based"}, "questionnaire"),
    ({"appraisal_type": "kpi_based"}, "document URL"),
    ({"appraisal_type": "mbo_based", "document_url": "https://docs/x", "publish_type": "as_per_calendar"}, "frequency calendar"),
])
def test_initiate_validation(client, make_group, hr_user, as_user, payload, message):
    group = make_group([])
    response = client.post(
        "/api/initiated-appraisals",
        headers=as_user(hr_user),
        json={"appraisal_group_id": group.id, **payload},
    )
    assert response.status_code == 400
    assert message in response.json()["errors"][0]["msg"]


def test_initiate_rejects_negative_offsets(client, make_group, hr_user, as_user):
    group = make_group([])
    response = client.post(
        "/api/initiated-appraisals",
        headers=as_user(hr_user),
        json={
            "appraisal_group_id": group.id,
            "appraisal_type": "okr_based",
            "days_to_close": -1,
        },
    )
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_initiate_rejects_foreign_calendar_period(client, make_group, hr_user, as_user):
    calendar = _calendar(client, hr_user, as_user)
    group = make_group([])
    response = client.post(
        "/api/initiated-appraisals",
        headers=as_user(hr_user),
        json={
            "appraisal_group_id": group.id,
            "appraisal_type": "okr_based",
            "frequency_calendar_id": calendar["id"],
            "calendar_detail_timings": [{"detail_id": 9999}],
        },
    )
    assert response.status_code == 400


def test_group_is_frozen_once_evaluations_exist(client, make_user, make_group, make_campaign, hr_user, as_user):
    campaign = make_campaign(make_group([make_user()]))
    other_group = make_group([], name="Sales")
    client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=as_user(hr_user))

    response = client.put(
        f"/api/initiated-appraisals/{campaign.id}", headers=as_user(hr_user), json={"appraisal_group_id": other_group.id}
    )
    assert response.status_code == 409

    allowed = client.put(
        f"/api/initiated-appraisals/{campaign.id}", headers=as_user(hr_user), json={"number_of_reminders": 1}
    )
    assert allowed.status_code == 200
    assert allowed.json()["number_of_reminders"] == 1


def test_close_campaign_keeps_evaluations(client, db_session, make_user, make_group, make_campaign, hr_user, as_user):
    campaign = make_campaign(make_group([make_user()]))
    client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=as_user(hr_user))

    closed = client.post(f"/api/initiated-appraisals/{campaign.id}/close", headers=as_user(hr_user))
    assert closed.status_code == 200
    assert closed.json()["status"] == CampaignStatus.CLOSED.value
    assert db_session.query(Evaluation).count() == 1

    regenerate = client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=as_user(hr_user))
    assert regenerate.status_code == 400


def test_reminder_for_open_evaluation(client, db_session, make_user, make_group, make_campaign, hr_user, as_user):
    employee = make_user()
    outsider = make_user()
    campaign = make_campaign(make_group([employee]))
    client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=as_user(hr_user))

    response = client.post(
        f"/api/initiated-appraisals/{campaign.id}/reminders", headers=as_user(hr_user), json={"employee_id": employee.id}
    )
    assert response.status_code == 202
    reminder = db_session.get(Notification, response.json()["notification_id"])
    assert reminder.kind == NotificationKind.REVIEW_REMINDER
    assert reminder.recipient_id == employee.id

    missing = client.post(
        f"/api/initiated-appraisals/{campaign.id}/reminders", headers=as_user(hr_user), json={"employee_id": outsider.id}
    )
    assert missing.status_code == 404


@pytest.fixture
def other_hr(make_user):
    return make_user(role=UserRole.HR_MANAGER, name="Olive Other")


def test_hr_manager_cannot_reach_another_owners_records(client, db_session, make_user, make_group, make_campaign, other_hr, as_user):
    group = make_group([make_user()])
    campaign = make_campaign(group)
    headers = as_user(other_hr)

    responses = [
        client.get(f"/api/appraisal-groups/{group.id}", headers=headers),
        client.put(f"/api/appraisal-groups/{group.id}", headers=headers, json={"name": "Taken over"}),
        client.get(f"/api/appraisal-groups/{group.id}/members", headers=headers),
        client.delete(f"/api/appraisal-groups/{group.id}", headers=headers),
        client.post(
            "/api/initiated-appraisals",
            headers=headers,
            json={
                "appraisal_group_id": group.id,
                "appraisal_type": "questionnaire_based",
                "questionnaire_template_ids": ["q-2026"],
                "publish_type": "now",
            },
        ),
        client.put(f"/api/initiated-appraisals/{campaign.id}", headers=headers, json={"number_of_reminders": 1}),
        client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=headers),
        client.get(f"/api/initiated-appraisals/{campaign.id}/progress", headers=headers),
        client.post(f"/api/initiated-appraisals/{campaign.id}/schedule", headers=headers),
        client.post(f"/api/initiated-appraisals/{campaign.id}/close", headers=headers),
    ]

    for response in responses:
        assert response.status_code == 403
        error = response.json()["errors"][0]
        assert error["code"] == "PERMISSION_DENIED"
        assert error["msg"].endswith("not found or access denied")

    assert client.get("/api/appraisal-groups", headers=headers).json() == []
    assert client.get("/api/initiated-appraisals", headers=headers).json() == []
    db_session.refresh(campaign)
    assert campaign.status == CampaignStatus.ACTIVE
    assert db_session.query(Evaluation).count() == 0
    assert db_session.query(ScheduledAppraisalTask).count() == 0


def test_admin_reaches_every_owners_records(client, make_user, make_group, make_campaign, hr_user, as_user):
    admin = make_user(role=UserRole.ADMIN)
    group = make_group([make_user()])
    campaign = make_campaign(group)
    headers = as_user(admin)

    assert client.get(f"/api/appraisal-groups/{group.id}", headers=headers).status_code == 200
    assert [g["id"] for g in client.get("/api/appraisal-groups", headers=headers).json()] == [group.id]
    assert [c["id"] for c in client.get("/api/initiated-appraisals", headers=headers).json()] == [campaign.id]
    assert client.get(f"/api/initiated-appraisals/{campaign.id}/progress", headers=headers).status_code == 200

    generated = client.post(f"/api/initiated-appraisals/{campaign.id}/generate-evaluations", headers=headers)
    assert generated.status_code == 200
    assert generated.json()["data"]["created"] == 1

    # The owner keeps seeing its own records
    assert [g["id"] for g in client.get("/api/appraisal-groups", headers=as_user(hr_user)).json()] == [group.id]
