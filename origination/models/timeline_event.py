import uuid

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from origination.db.base import Base
from origination.models.types import in_clause
from origination.schemas.timeline import TimelineEntityType, TimelineEventType


class TimelineEvent(Base):
    """Append-only history entry; rows are never updated or deleted.

    Foreign keys restrict deletes so history cannot vanish with its subject.
    """

    __tablename__ = "timeline_events"
    __table_args__ = (
        CheckConstraint(in_clause("entity_type", TimelineEntityType), name="ck_timeline_entity_type"),
        CheckConstraint(in_clause("event_type", TimelineEventType), name="ck_timeline_event_type"),
        Index("ix_timeline_events_entity", "entity_type", "entity_id"),
        Index("ix_timeline_events_loan_created", "loan_application_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="RESTRICT"), nullable=True, index=True)
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    event_type = Column(String(50), nullable=False)
    actor_user_id = Column(UUID(as_uuid=True), nullable=True)
    actor_name = Column(String(255), nullable=True)
    actor_role = Column(String(30), nullable=True)
    remarks = Column(Text, nullable=True)
    action_data = Column(JSON, nullable=True)
    loan_application_id = Column(
        UUID(as_uuid=True),
        ForeignKey("loan_applications.id", ondelete="RESTRICT"),
        nullable=True,
    )
    applicant_id = Column(UUID(as_uuid=True), ForeignKey("applicants.id", ondelete="RESTRICT"), nullable=True, index=True)
    document_id = Column(UUID(as_uuid=True), nullable=True)
    verification_id = Column(
        UUID(as_uuid=True),
        ForeignKey("verifications.id", ondelete="RESTRICT"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
