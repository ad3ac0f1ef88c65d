from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class VerificationType(str, Enum):
    RESIDENCE = "RESIDENCE"
    BUSINESS = "BUSINESS"
    VEHICLE = "VEHICLE"
    PROPERTY = "PROPERTY"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class VerificationCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: VerificationType
    remarks: str | None = Field(default=None, max_length=2000)


class VerificationResultRequest(BaseModel):
    result: bool
    remarks: str | None = Field(default=None, max_length=2000)
    verification_date: datetime | None = None


class VerificationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    loan_application_id: UUID
    bank_id: UUID
    type: str
    status: str
    result: bool | None = None
    remarks: str | None = None
    verification_date: datetime | None = None
    created_at: datetime | None = None
