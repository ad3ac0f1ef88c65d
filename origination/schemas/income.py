from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IncomeDetailInput(BaseModel):
    year: int = Field(ge=1900, le=2200)
    gross_income: Decimal = Field(default=Decimal("0"), ge=0)
    taxable_income: Decimal | None = Field(default=None, ge=0)
    tax_paid: Decimal | None = Field(default=None, ge=0)
    rental_income: Decimal | None = Field(default=None, ge=0)
    income_from_business: Decimal | None = Field(default=None, ge=0)
    depreciation: Decimal | None = Field(default=None, ge=0)
    gross_cash_income: Decimal | None = Field(default=None, ge=0)


class IncomeCreate(BaseModel):
    type: str | None = Field(default=None, max_length=40)
    dependents: int | None = Field(default=None, ge=0)
    average_monthly_expenditure: Decimal | None = Field(default=None, ge=0)
    average_gross_cash_income: Decimal | None = Field(default=None, ge=0)
    details: list[IncomeDetailInput] = Field(default_factory=list)

    @field_validator("details")
    @classmethod
    def unique_years(cls, details: list[IncomeDetailInput]) -> list[IncomeDetailInput]:
        years = [detail.year for detail in details]
        if len(years) != len(set(years)):
            raise ValueError("Each year may appear only once")
        return details


class IncomeDetailDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    gross_income: Decimal
    taxable_income: Decimal | None = None
    tax_paid: Decimal | None = None
    rental_income: Decimal | None = None
    income_from_business: Decimal | None = None
    depreciation: Decimal | None = None
    gross_cash_income: Decimal | None = None


class IncomeDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    applicant_id: UUID
    type: str | None = None
    dependents: int | None = None
    average_monthly_expenditure: Decimal | None = None
    average_gross_cash_income: Decimal | None = None
    created_at: datetime | None = None


class IncomeResponse(BaseModel):
    income: IncomeDTO
    details: list[IncomeDetailDTO]
