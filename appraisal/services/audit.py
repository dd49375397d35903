from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from appraisal.database import Base
from appraisal.models.audit_log import AuditLog
from appraisal.models.user import User
from appraisal.services.base import BaseService


def _jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditService(BaseService):
    """
    Append-only trail of who changed which campaign or evaluation, and how.
    The row joins the caller's transaction, so it is committed or rolled back
    together with the change it describes.
    """

    def record(
        self,
        action: str,
        entity: Base,
        actor: User,
        details: Optional[dict] = None,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            entity_type=entity.__tablename__,
            entity_id=entity.id,
            user_id=actor.id,
            user_role=actor.role.value,
            details=_jsonable(details or {}),
            before_state=_jsonable(before),
            after_state=_jsonable(after),
        )
        self.db.add(entry)
        self.db.flush()
        return entry
