import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from origination.db.base import Base
from origination.models.types import in_clause
from origination.schemas.loan import LoanStatus, LoanType


class LoanApplication(Base):
    __tablename__ = "loan_applications"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint("amount_requested >= 0", name="ck_loan_app_amount_nonneg"),
        CheckConstraint("calculated_emi >= 0", name="ck_loan_app_emi_nonneg"),
        CheckConstraint("proposed_amount >= 0", name="ck_loan_app_proposed_nonneg"),
        CheckConstraint(in_clause("status", LoanStatus), name="ck_loan_app_status"),
        CheckConstraint(in_clause("loan_type", LoanType), name="ck_loan_app_loan_type"),
        Index("ix_loan_applications_bank_status", "bank_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="CASCADE"), nullable=False, index=True)
    applicant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    loan_type = Column(String(40), nullable=False)
    amount_requested = Column(Numeric(18, 2), nullable=False)
    status = Column(String(40), nullable=False, default=LoanStatus.DRAFT.value)
    selected_tenure = Column(Integer, nullable=True)
    calculated_emi = Column(Numeric(18, 2), nullable=True)
    proposed_amount = Column(Numeric(18, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    verifications = relationship(
        "Verification",
        back_populates="loan_application",
        cascade="all, delete-orphan",
        lazy="raise",
    )
