from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from origination.core.permissions import BANK_STAFF_ROLES, RoleType


class PendingActionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class PendingActionType(str, Enum):
    REQUEST_BANK_USER_CREATION = "REQUEST_BANK_USER_CREATION"


class BankUserCreationPayload(BaseModel):
    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone_number: str = Field(min_length=7, max_length=20)
    role: RoleType
    bank_id: UUID

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("role")
    @classmethod
    def _staff_role(cls, value: RoleType) -> RoleType:
        if RoleType(value) not in BANK_STAFF_ROLES:
            raise ValueError("Role must be a bank staff role")
        return value


class PendingActionCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    action_type: PendingActionType
    payload: dict[str, Any]


class PendingActionRejectRequest(BaseModel):
    remarks: str = ""


class PendingActionDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bank_id: UUID
    action_type: str
    target_model: str
    target_record_id: str | None = None
    payload: dict[str, Any]
    status: str
    requested_by_id: UUID
    requested_at: datetime | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    review_remarks: str | None = None


class PendingActionListResponse(BaseModel):
    items: list[PendingActionDTO]
    total: int
