from sqlalchemy import Column, Integer, String, Text, Enum, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from appraisal.database import Base
from appraisal.models.common import RecordStatus


class AppraisalGroup(Base):
    __tablename__ = "appraisal_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(RecordStatus), default=RecordStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    members = relationship(
        "AppraisalGroupMember",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="AppraisalGroupMember.user_id",
    )


class AppraisalGroupMember(Base):
    __tablename__ = "appraisal_group_members"
    __table_args__ = (
        UniqueConstraint("appraisal_group_id", "user_id", name="uq_appraisal_group_member"),
    )

    id = Column(Integer, primary_key=True, index=True)
    appraisal_group_id = Column(Integer, ForeignKey("appraisal_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    added_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("AppraisalGroup", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])
