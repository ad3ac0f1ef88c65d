from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MIN_CIBIL_SCORE = 300
MAX_CIBIL_SCORE = 900


class LoanObligationDetailInput(BaseModel):
    outstanding_loan: Decimal = Field(default=Decimal("0"), ge=0)
    emi_amount: Decimal = Field(default=Decimal("0"), ge=0)
    loan_date: date | None = None
    loan_type: str | None = Field(default=None, max_length=40)
    bank_name: str | None = Field(default=None, max_length=255)


class LoanObligationSave(BaseModel):
    cibil_score: int | None = Field(default=None, ge=MIN_CIBIL_SCORE, le=MAX_CIBIL_SCORE)
    loans: list[LoanObligationDetailInput] = Field(default_factory=list)


class LoanObligationDetailDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    outstanding_loan: Decimal
    emi_amount: Decimal
    loan_date: date | None = None
    loan_type: str | None = None
    bank_name: str | None = None


class LoanObligationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    applicant_id: UUID
    cibil_score: int | None = None
    total_loan: Decimal | None = None
    total_emi: Decimal
    updated_at: datetime | None = None


class LoanObligationResponse(BaseModel):
    obligation: LoanObligationDTO
    loans: list[LoanObligationDetailDTO]
