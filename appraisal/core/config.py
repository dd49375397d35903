import os
import logging
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class SchedulingSettings(BaseModel):
    default_days_to_initiate: int = Field(default=int(os.getenv("DEFAULT_DAYS_TO_INITIATE", "0")))
    default_days_to_close: int = Field(default=int(os.getenv("DEFAULT_DAYS_TO_CLOSE", "30")))
    default_number_of_reminders: int = Field(default=int(os.getenv("DEFAULT_NUMBER_OF_REMINDERS", "3")))
    max_reminders: int = 10
    # 0 spreads reminders evenly across the window; >0 places them every N days before close
    reminder_interval_days: int = Field(default=int(os.getenv("REMINDER_INTERVAL_DAYS", "0")))


class Config(BaseModel):
    app_name: str = "Appraisal Lifecycle Orchestrator"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./appraisal.db")

    # Identity is established upstream; the gateway forwards the actor id in this header
    actor_header: str = os.getenv("ACTOR_HEADER", "X-User-Id")
    request_id_header: str = "X-Request-ID"

    # Eligibility
    tenure_exclusion_days: int = int(os.getenv("TENURE_EXCLUSION_DAYS", "365"))

    scheduling: SchedulingSettings = SchedulingSettings()

    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment != "development" and settings.database_url.startswith("sqlite:///./"):
    _logger.warning("Using the local SQLite file database outside development.")
