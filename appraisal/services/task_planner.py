"""
Scheduled Task Planner

Persists the initiate, reminder and close dates of a campaign as pending tasks for
an external executor. Planning has no side effects beyond the task rows.
Re-planning never duplicates a slot; pending slots the current timing no longer
produces are dropped.
"""
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from appraisal.core.exceptions import ConflictError
from appraisal.models.scheduled_task import ScheduledAppraisalTask, ScheduledTaskStatus, ScheduledTaskType
from appraisal.models.user import User
from appraisal.schemas.scheduled_task import TimingRecord
from appraisal.services.base import BaseService
from appraisal.services.calendar_timing import resolve_timings
from appraisal.services.lookups import get_campaign_or_404, get_task_or_404

SlotKey = Tuple[str, str, int]


def task_slots(record: TimingRecord) -> List[Tuple[ScheduledTaskType, int, date]]:
    """(type, sequence, date) for every action a period needs."""
    slots = [(ScheduledTaskType.INITIATE, 0, record.initiate_date)]
    slots.extend(
        (ScheduledTaskType.REMINDER, seq, when) for seq, when in enumerate(record.reminder_dates, start=1)
    )
    slots.append((ScheduledTaskType.CLOSE, 0, record.close_date))
    return slots


class TaskPlanner(BaseService):

    def plan_scheduled_tasks(
        self,
        campaign_id: int,
        today: Optional[date] = None,
        actor: Optional[User] = None,
    ) -> List[ScheduledAppraisalTask]:
        campaign = get_campaign_or_404(self.db, campaign_id, actor)
        timings = resolve_timings(self.db, campaign, today=today)

        existing: Dict[SlotKey, ScheduledAppraisalTask] = {
            (t.period_key, t.task_type, t.sequence): t
            for t in self.db.query(ScheduledAppraisalTask)
            .filter(ScheduledAppraisalTask.initiated_appraisal_id == campaign_id)
            .all()
        }

        added = moved = removed = 0
        planned = set()
        for record in timings:
            for task_type, sequence, when in task_slots(record):
                key = (record.period_key, task_type.value, sequence)
                planned.add(key)
                task = existing.get(key)
                if task is None:
                    self.db.add(
                        ScheduledAppraisalTask(
                            initiated_appraisal_id=campaign_id,
                            frequency_calendar_detail_id=record.frequency_calendar_detail_id,
                            period_key=record.period_key,
                            task_type=task_type.value,
                            sequence=sequence,
                            scheduled_date=when,
                            status=ScheduledTaskStatus.PENDING.value,
                        )
                    )
                    added += 1
                elif task.status == ScheduledTaskStatus.PENDING.value and task.scheduled_date != when:
                    task.scheduled_date = when
                    moved += 1

        # Slots the current timing no longer produces; executed and failed ones are history
        for key, task in existing.items():
            if key not in planned and task.status == ScheduledTaskStatus.PENDING.value:
                self.db.delete(task)
                removed += 1

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                "Scheduled tasks for this campaign were planned concurrently; retry",
                details={"campaign_id": campaign_id},
            )

        self._logger.info(f"Planned tasks for campaign {campaign_id}: {added} added, {moved} rescheduled, {removed} dropped")
        return self.list_tasks(campaign_id)

    def list_tasks(self, campaign_id: int) -> List[ScheduledAppraisalTask]:
        return (
            self.db.query(ScheduledAppraisalTask)
            .filter(ScheduledAppraisalTask.initiated_appraisal_id == campaign_id)
            .order_by(ScheduledAppraisalTask.scheduled_date, ScheduledAppraisalTask.id)
            .all()
        )

    def get_due_tasks(self, today: Optional[date] = None) -> List[ScheduledAppraisalTask]:
        today = today or date.today()
        return (
            self.db.query(ScheduledAppraisalTask)
            .filter(
                ScheduledAppraisalTask.status == ScheduledTaskStatus.PENDING.value,
                ScheduledAppraisalTask.scheduled_date <= today,
            )
            .order_by(ScheduledAppraisalTask.scheduled_date, ScheduledAppraisalTask.id)
            .all()
        )

    def mark_task_executed(self, task_id: int) -> ScheduledAppraisalTask:
        task = self._pending_task(task_id)
        task.status = ScheduledTaskStatus.EXECUTED.value
        task.executed_at = datetime.now(timezone.utc)
        task.error = None
        self.commit()
        self.db.refresh(task)
        return task

    def mark_task_failed(self, task_id: int, reason: str) -> ScheduledAppraisalTask:
        task = self._pending_task(task_id)
        task.status = ScheduledTaskStatus.ERROR.value
        task.executed_at = datetime.now(timezone.utc)
        task.error = reason
        self.commit()
        self.db.refresh(task)
        self.log_warning(f"Scheduled task {task_id} failed: {reason}")
        return task

    def _pending_task(self, task_id: int) -> ScheduledAppraisalTask:
        task = get_task_or_404(self.db, task_id)
        if task.status != ScheduledTaskStatus.PENDING.value:
            raise ConflictError(
                f"Scheduled task {task_id} is already {task.status}",
                details={"task_id": task_id, "status": task.status},
            )
        return task
