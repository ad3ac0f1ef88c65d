from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ApplicantCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr | None = None
    phone_number: str | None = Field(default=None, max_length=20)
    date_of_birth: date | None = None
    address_full: str | None = None
    address_city: str | None = Field(default=None, max_length=100)
    address_state: str | None = Field(default=None, max_length=100)
    address_pin_code: str | None = Field(default=None, pattern=r"^\d{6}$")
    pan_number: str | None = Field(default=None, pattern=r"^[A-Z]{5}\d{4}[A-Z]$")
    aadhar_number: str | None = Field(default=None, pattern=r"^\d{12}$")


class ApplicantDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bank_id: UUID
    user_id: UUID | None = None
    first_name: str
    last_name: str
    email: str | None = None
    phone_number: str | None = None
    date_of_birth: date | None = None
    address_full: str | None = None
    address_city: str | None = None
    address_state: str | None = None
    address_pin_code: str | None = None
    pan_number: str | None = None
    aadhar_number: str | None = None
    created_at: datetime | None = None
