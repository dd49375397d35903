import pytest
import os
import uuid
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from appraisal.database import Base, get_db
from appraisal.main import app
from appraisal import models  # noqa: F401
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Fresh schema per test. Services commit and roll back on their own, so tests
    cannot be wrapped in an outer transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users; defaults to an active employee who joined years ago."""
    from appraisal.models.user import User, UserRole, UserStatus

    def _make_user(role=UserRole.EMPLOYEE, status=UserStatus.ACTIVE, manager=None,
                   date_of_joining=date(2020, 1, 1), name=None):
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=f"{role.value}-{suffix}@example.com",
            full_name=name or f"{role.value.title()} {suffix}",
            role=role,
            status=status,
            date_of_joining=date_of_joining,
            reporting_manager_id=manager.id if manager else None,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def hr_user(make_user):
    from appraisal.models.user import UserRole
    return make_user(role=UserRole.HR_MANAGER, name="Hannah HR")


@pytest.fixture(scope="function")
def manager_user(make_user):
    from appraisal.models.user import UserRole
    return make_user(role=UserRole.MANAGER, name="Morgan Manager")


@pytest.fixture(scope="function")
def make_group(db_session, hr_user):
    """Factory for an appraisal group holding the given users."""
    from appraisal.models.appraisal_group import AppraisalGroup, AppraisalGroupMember

    def _make_group(users, name="Engineering"):
        group = AppraisalGroup(name=name, created_by_id=hr_user.id)
        db_session.add(group)
        db_session.flush()
        for user in users:
            db_session.add(AppraisalGroupMember(appraisal_group_id=group.id, user_id=user.id, added_by_id=hr_user.id))
        db_session.commit()
        return group
    return _make_group


@pytest.fixture(scope="function")
def make_campaign(db_session, hr_user):
    """Factory for an active questionnaire-based campaign on a group."""
    from appraisal.models.initiated_appraisal import AppraisalType, CampaignStatus, InitiatedAppraisal

    def _make_campaign(group, **overrides):
        fields = dict(
            appraisal_group_id=group.id,
            appraisal_type=AppraisalType.QUESTIONNAIRE_BASED,
            questionnaire_template_ids=["q-1"],
            excluded_employee_ids=[],
            status=CampaignStatus.ACTIVE,
            created_by_id=hr_user.id,
        )
        fields.update(overrides)
        campaign = InitiatedAppraisal(**fields)
        db_session.add(campaign)
        db_session.commit()
        return campaign
    return _make_campaign


@pytest.fixture(scope="function")
def as_user():
    """Request headers identifying the acting user."""
    def _as_user(user):
        return {"X-User-Id": str(user.id)}
    return _as_user


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
