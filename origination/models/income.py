import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from origination.db.base import Base


class Income(Base):
    __tablename__ = "incomes"
    __allow_unmapped__ = True

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    applicant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(40), nullable=True)
    dependents = Column(Integer, nullable=True)
    average_monthly_expenditure = Column(Numeric(18, 2), nullable=True)
    average_gross_cash_income = Column(Numeric(18, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    details = relationship(
        "IncomeDetail",
        back_populates="income",
        cascade="all, delete-orphan",
        order_by="IncomeDetail.year.desc()",
        lazy="raise",
    )


class IncomeDetail(Base):
    __tablename__ = "income_details"
    __allow_unmapped__ = True
    __table_args__ = (UniqueConstraint("income_id", "year", name="uq_income_detail_year"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    income_id = Column(
        UUID(as_uuid=True),
        ForeignKey("incomes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year = Column(Integer, nullable=False)
    gross_income = Column(Numeric(18, 2), nullable=False, default=0)
    taxable_income = Column(Numeric(18, 2), nullable=True)
    tax_paid = Column(Numeric(18, 2), nullable=True)
    rental_income = Column(Numeric(18, 2), nullable=True)
    income_from_business = Column(Numeric(18, 2), nullable=True)
    depreciation = Column(Numeric(18, 2), nullable=True)
    gross_cash_income = Column(Numeric(18, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    income = relationship("Income", back_populates="details")
