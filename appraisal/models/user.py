"""
User model with role-based capabilities.
The orchestrator never authenticates users; it reads the role of an actor that an
upstream gateway already identified.
"""
from sqlalchemy import Column, Integer, String, Enum, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from appraisal.database import Base


class UserRole(str, enum.Enum):
    """
    User roles with hierarchical permissions.

    Hierarchy (most to least permissions):
    - SUPER_ADMIN: Platform-wide access
    - ADMIN: Full administrative access (reference data, calendars)
    - HR_MANAGER: Owns appraisal groups and campaigns
    - MANAGER: Reviews evaluations of direct reports
    - EMPLOYEE: Self-service access
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    HR_MANAGER = "hr_manager"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


PRIVILEGED_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.HR_MANAGER})


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    designation = Column(String, nullable=True)
    department = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)

    date_of_joining = Column(Date, nullable=True)
    reporting_manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    reporting_manager = relationship("User", remote_side=[id])
    notifications = relationship("Notification", back_populates="recipient", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_hr(self) -> bool:
        """Check if user has an HR-equivalent (unrestricted) role."""
        return self.role in PRIVILEGED_ROLES

