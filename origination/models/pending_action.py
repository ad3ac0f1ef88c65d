import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from origination.db.base import Base
from origination.models.types import in_clause
from origination.schemas.pending_actions import PendingActionStatus


class PendingAction(Base):
    __tablename__ = "pending_actions"
    __table_args__ = (
        CheckConstraint(in_clause("status", PendingActionStatus), name="ck_pending_action_status"),
        Index("ix_pending_actions_bank_status", "bank_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(String(60), nullable=False)
    target_model = Column(String(60), nullable=False)
    target_record_id = Column(String(64), nullable=True)
    payload = Column(JSONB, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=PendingActionStatus.PENDING.value)
    requested_by_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    requested_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    reviewed_by_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_remarks = Column(Text, nullable=True)
