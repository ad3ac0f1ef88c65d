from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class TimelineEntityType(str, Enum):
    APPLICANT = "APPLICANT"
    LOAN_APPLICATION = "LOAN_APPLICATION"
    DOCUMENT = "DOCUMENT"
    VERIFICATION = "VERIFICATION"


class TimelineEventType(str, Enum):
    # Application lifecycle
    APPLICATION_CREATED = "APPLICATION_CREATED"
    APPLICATION_UPDATED = "APPLICATION_UPDATED"
    APPLICATION_DELETED = "APPLICATION_DELETED"
    APPLICATION_REOPENED = "APPLICATION_REOPENED"
    STATUS_CHANGE = "STATUS_CHANGE"

    # Documents
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_REVIEWED = "DOCUMENT_REVIEWED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"
    DOCUMENT_REQUESTED = "DOCUMENT_REQUESTED"

    # Users
    USER_CREATED = "USER_CREATED"
    USER_ASSIGNED_ROLE = "USER_ASSIGNED_ROLE"
    USER_REMOVED_ROLE = "USER_REMOVED_ROLE"

    # Verification
    VERIFICATION_STARTED = "VERIFICATION_STARTED"
    VERIFICATION_COMPLETED = "VERIFICATION_COMPLETED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    VERIFICATION_REMARK_ADDED = "VERIFICATION_REMARK_ADDED"
    VERIFICATION_CREATED = "VERIFICATION_CREATED"
    VERIFICATION_REVIEW_APPROVED = "VERIFICATION_REVIEW_APPROVED"
    VERIFICATION_REVIEW_REJECTED = "VERIFICATION_REVIEW_REJECTED"

    # Pending actions
    ACTION_REQUESTED = "ACTION_REQUESTED"
    ACTION_APPROVED = "ACTION_APPROVED"
    ACTION_REJECTED = "ACTION_REJECTED"
    ACTION_CANCELLED = "ACTION_CANCELLED"
    ACTION_REVIEWED = "ACTION_REVIEWED"

    # Notes and remarks
    NOTE_ADDED = "NOTE_ADDED"
    REMARK_ADDED = "REMARK_ADDED"
    SANCTION_REMARK_ADDED = "SANCTION_REMARK_ADDED"
    INSPECTION_REMARK_ADDED = "INSPECTION_REMARK_ADDED"
    CLERK_REMARK_ADDED = "CLERK_REMARK_ADDED"

    # System
    SYSTEM_EVENT = "SYSTEM_EVENT"
    AUTO_VERIFICATION = "AUTO_VERIFICATION"
    SCHEDULED_TASK_COMPLETED = "SCHEDULED_TASK_COMPLETED"

    # Access
    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_REVOKED = "ACCESS_REVOKED"

    # Review outcomes
    APPLICATION_ESCALATED = "APPLICATION_ESCALATED"
    APPLICATION_APPROVED = "APPLICATION_APPROVED"
    APPLICATION_REJECTED = "APPLICATION_REJECTED"
    APPLICATION_REVIEW_REJECTED = "APPLICATION_REVIEW_REJECTED"
    APPLICATION_REVIEW_APPROVED = "APPLICATION_REVIEW_APPROVED"


class TimelineEventDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: str
    entity_id: UUID
    event_type: str
    actor_user_id: UUID | None = None
    actor_name: str | None = None
    actor_role: str | None = None
    remarks: str | None = None
    action_data: dict[str, Any] | None = None
    loan_application_id: UUID | None = None
    applicant_id: UUID | None = None
    document_id: UUID | None = None
    verification_id: UUID | None = None
    created_at: datetime | None = None


class TimelineListResponse(BaseModel):
    items: list[TimelineEventDTO]
    total: int
