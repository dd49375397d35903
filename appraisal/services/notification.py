"""
Notifier outbox.

Rows are added to the caller's session and committed with the action that
triggered them. Delivery is someone else's job; nothing here waits on it.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from appraisal.models.evaluation import Evaluation
from appraisal.models.notification import Notification, NotificationKind


class NotificationService:

    @staticmethod
    def queue(
        db: Session,
        recipient_id: int,
        kind: NotificationKind,
        subject: str,
        body: str,
        evaluation: Optional[Evaluation] = None,
        campaign_id: Optional[int] = None,
        event_at: Optional[datetime] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            kind=kind,
            subject=subject,
            body=body,
            evaluation=evaluation,
            initiated_appraisal_id=campaign_id,
            event_at=event_at,
        )
        db.add(notification)
        return notification

    @staticmethod
    def appraisal_initiated(db: Session, evaluation: Evaluation) -> Notification:
        return NotificationService.queue(
            db,
            recipient_id=evaluation.employee_id,
            kind=NotificationKind.APPRAISAL_INITIATED,
            subject="Appraisal initiated",
            body="A new performance appraisal has been opened for you. Please complete your self-evaluation.",
            evaluation=evaluation,
            campaign_id=evaluation.initiated_appraisal_id,
        )

    @staticmethod
    def calendar_invites(
        db: Session,
        evaluation: Evaluation,
        meeting_date: datetime,
        subject: str,
        body: str,
    ) -> List[Notification]:
        """One invite per participant, whoever scheduled the meeting."""
        return [
            NotificationService.queue(
                db,
                recipient_id=user_id,
                kind=NotificationKind.CALENDAR_INVITE,
                subject=subject,
                body=body,
                evaluation=evaluation,
                campaign_id=evaluation.initiated_appraisal_id,
                event_at=meeting_date,
            )
            for user_id in sorted({evaluation.employee_id, evaluation.manager_id})
        ]

    @staticmethod
    def review_reminder(db: Session, evaluation: Evaluation) -> Notification:
        return NotificationService.queue(
            db,
            recipient_id=evaluation.employee_id,
            kind=NotificationKind.REVIEW_REMINDER,
            subject="Appraisal reminder",
            body="Your performance appraisal is still open. Please complete your part.",
            evaluation=evaluation,
            campaign_id=evaluation.initiated_appraisal_id,
        )

    @staticmethod
    def evaluation_completed(db: Session, evaluation: Evaluation) -> Notification:
        return NotificationService.queue(
            db,
            recipient_id=evaluation.employee_id,
            kind=NotificationKind.EVALUATION_COMPLETED,
            subject="Appraisal completed",
            body="Your performance appraisal has been finalized.",
            evaluation=evaluation,
            campaign_id=evaluation.initiated_appraisal_id,
        )
