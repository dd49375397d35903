# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    common, user, appraisal_group, frequency_calendar,
    initiated_appraisal, evaluation, scheduled_task,
    audit_log, notification
)

# Explicit class exports for cleaner imports
from .common import RecordStatus
from .user import User, UserRole, UserStatus
from .appraisal_group import AppraisalGroup, AppraisalGroupMember
from .frequency_calendar import FrequencyCalendar, FrequencyCalendarDetail
from .initiated_appraisal import InitiatedAppraisal, InitiatedAppraisalDetailTiming
from .evaluation import Evaluation, EvaluationStatus
from .scheduled_task import ScheduledAppraisalTask
from .audit_log import AuditLog
from .notification import Notification, NotificationKind, DeliveryStatus

__all__ = [
    "User",
    "UserRole",
    "UserStatus",
    "RecordStatus",
    "AppraisalGroup",
    "AppraisalGroupMember",
    "FrequencyCalendar",
    "FrequencyCalendarDetail",
    "InitiatedAppraisal",
    "InitiatedAppraisalDetailTiming",
    "Evaluation",
    "EvaluationStatus",
    "ScheduledAppraisalTask",
    "AuditLog",
    "Notification",
    "NotificationKind",
    "DeliveryStatus",
]
