import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from appraisal.database import Base


class NotificationKind(str, enum.Enum):
    APPRAISAL_INITIATED = "appraisal_initiated"
    CALENDAR_INVITE = "calendar_invite"
    REVIEW_REMINDER = "review_reminder"
    EVALUATION_COMPLETED = "evaluation_completed"


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class Notification(Base):
    """
    Outbox row picked up by the external notifier (email, calendar invites).
    The notifier only ever updates delivery_status; evaluation state never depends on it.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(Enum(NotificationKind), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)

    evaluation_id = Column(Integer, ForeignKey("evaluations.id", ondelete="SET NULL"), nullable=True, index=True)
    initiated_appraisal_id = Column(Integer, ForeignKey("initiated_appraisals.id", ondelete="SET NULL"), nullable=True)
    # Start of the meeting for calendar invites
    event_at = Column(DateTime(timezone=True), nullable=True)

    delivery_status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    recipient = relationship("User", back_populates="notifications")
    evaluation = relationship("Evaluation")

    def __repr__(self):
        return f"<Notification {self.kind.value} -> user {self.recipient_id}>"
