from fastapi import APIRouter
from appraisal.routers import (
    appraisal_groups, frequency_calendars, campaigns, evaluations, scheduled_tasks
)

# Routers are aggregated here; main.py only imports this hub.
api_router = APIRouter()

api_router.include_router(appraisal_groups.router, tags=["Appraisal Groups"])
api_router.include_router(frequency_calendars.router, tags=["Frequency Calendars"])
api_router.include_router(campaigns.router, tags=["Initiated Appraisals"])
api_router.include_router(evaluations.router, tags=["Evaluations"])
api_router.include_router(scheduled_tasks.router, tags=["Scheduled Tasks"])
