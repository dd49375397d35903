from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from appraisal.database import get_db
from appraisal.models.user import User
from appraisal.routers.auth_deps import require_hr
from appraisal.schemas.scheduled_task import ScheduledTaskResponse, TaskFailureRequest
from appraisal.services.task_planner import TaskPlanner

router = APIRouter(prefix="/scheduled-tasks", tags=["scheduled-tasks"])


# Executor surface: the external poller reads due tasks and reports back
@router.get("/due", response_model=List[ScheduledTaskResponse])
def due_tasks(
    on: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return TaskPlanner(db).get_due_tasks(on)


@router.post("/{task_id}/executed", response_model=ScheduledTaskResponse)
def mark_executed(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_hr())):
    return TaskPlanner(db).mark_task_executed(task_id)


@router.post("/{task_id}/failed", response_model=ScheduledTaskResponse)
def mark_failed(
    task_id: int,
    data: TaskFailureRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr()),
):
    return TaskPlanner(db).mark_task_failed(task_id, data.error)
