import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

# Per-request context, set by the HTTP middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
actor_id_var: ContextVar[str] = ContextVar("actor_id", default="")

_CONTEXT_FIELDS = {
    "request_id": request_id_var,
    "actor_id": actor_id_var,
}

# Chatty third-party loggers kept at WARNING
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


class AppraisalJsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line; carries the correlation id and acting user when known."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        for field, var in _CONTEXT_FIELDS.items():
            value = var.get()
            if value:
                log_record[field] = value
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname


def setup_logging(level: str = "INFO"):
    root = logging.getLogger()
    # The app module may be imported more than once (tests, reloaders)
    if any(isinstance(h.formatter, AppraisalJsonFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(AppraisalJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
