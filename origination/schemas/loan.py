from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LoanStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_LOAN_OFFICER_ASSIGNMENT = "PENDING_LOAN_OFFICER_ASSIGNMENT"
    PENDING_LOAN_OFFICER_REVIEW = "PENDING_LOAN_OFFICER_REVIEW"
    PENDING_INSPECTOR_ASSIGNMENT = "PENDING_INSPECTOR_ASSIGNMENT"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFICATION_IN_PROGRESS = "VERIFICATION_IN_PROGRESS"
    VERIFICATION_COMPLETED = "VERIFICATION_COMPLETED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REJECTED_BY_APPLICANT = "REJECTED_BY_APPLICANT"


TERMINAL_STATUSES = frozenset(
    {LoanStatus.APPROVED, LoanStatus.REJECTED, LoanStatus.REJECTED_BY_APPLICANT}
)


class LoanType(str, Enum):
    PERSONAL = "PERSONAL"
    VEHICLE = "VEHICLE"
    HOUSE_CONSTRUCTION = "HOUSE_CONSTRUCTION"
    PLOT_PURCHASE = "PLOT_PURCHASE"
    MORTGAGE = "MORTGAGE"
    PLOT_AND_HOUSE_CONSTRUCTION = "PLOT_AND_HOUSE_CONSTRUCTION"


class LoanApplicationCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    applicant_id: UUID
    loan_type: LoanType
    amount_requested: Decimal = Field(ge=0)


class LoanApplicationUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    loan_type: LoanType | None = None
    amount_requested: Decimal | None = Field(default=None, ge=0)


class LoanStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: LoanStatus
    remarks: str | None = Field(default=None, max_length=2000)


class LoanTenureUpdateRequest(BaseModel):
    tenure_months: int = Field(ge=1, le=600)
    calculated_emi: Decimal = Field(ge=0)
    proposed_amount: Decimal = Field(ge=0)


class LoanConfirmationDecision(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    ESCALATE = "ESCALATE"


class LoanConfirmationRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    decision: LoanConfirmationDecision
    remarks: str | None = Field(default=None, max_length=2000)


class LoanApplicationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bank_id: UUID
    applicant_id: UUID
    loan_type: str
    amount_requested: Decimal
    status: str
    selected_tenure: int | None = None
    calculated_emi: Decimal | None = None
    proposed_amount: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoanApplicationListResponse(BaseModel):
    items: list[LoanApplicationDTO]
    total: int
