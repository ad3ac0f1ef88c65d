import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID

from origination.db.base import Base


class LoanObligation(Base):
    """Per-applicant summary of existing debt; totals are derived from the details."""

    __tablename__ = "loan_obligations"
    __table_args__ = (
        CheckConstraint("total_emi >= 0", name="ck_loan_obligation_emi_nonneg"),
        CheckConstraint(
            "cibil_score IS NULL OR (cibil_score >= 300 AND cibil_score <= 900)",
            name="ck_loan_obligation_cibil_range",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    applicant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cibil_score = Column(Integer, nullable=True)
    total_loan = Column(Numeric(18, 2), nullable=True)
    total_emi = Column(Numeric(18, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class LoanObligationDetail(Base):
    __tablename__ = "loan_obligation_details"
    __table_args__ = (
        CheckConstraint("outstanding_loan >= 0", name="ck_obligation_detail_outstanding_nonneg"),
        CheckConstraint("emi_amount >= 0", name="ck_obligation_detail_emi_nonneg"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_obligation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("loan_obligations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    outstanding_loan = Column(Numeric(18, 2), nullable=False, default=0)
    emi_amount = Column(Numeric(18, 2), nullable=False, default=0)
    loan_date = Column(Date, nullable=True)
    loan_type = Column(String(40), nullable=True)
    bank_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)
