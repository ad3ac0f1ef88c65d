from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class EligibilityResult(BaseModel):
    applicant_id: UUID | None = None
    gross_income: Decimal = Decimal("0")
    total_emi: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    times_of_net_income: int
    eligible_loan_amount: Decimal = Decimal("0")


class TenureOption(BaseModel):
    tenure_months: int
    emi: Decimal
    total_payable: Decimal


class LoanOffer(BaseModel):
    loan_application_id: UUID
    amount_requested: Decimal
    suggested_amount: Decimal
    annual_rate_percent: Decimal
    eligibility: EligibilityResult
    options: list[TenureOption]
