import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from origination.db.base import Base
from origination.models.types import in_clause
from origination.schemas.verification import VerificationStatus, VerificationType


class Verification(Base):
    __tablename__ = "verifications"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint(in_clause("type", VerificationType), name="ck_verification_type"),
        CheckConstraint(in_clause("status", VerificationStatus), name="ck_verification_status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="CASCADE"), nullable=False, index=True)
    loan_application_id = Column(
        UUID(as_uuid=True),
        ForeignKey("loan_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=VerificationStatus.PENDING.value)
    # NULL until an inspector records an outcome
    result = Column(Boolean, nullable=True)
    remarks = Column(Text, nullable=True)
    verification_date = Column(DateTime(timezone=True), nullable=True)
    verified_by_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    loan_application = relationship("LoanApplication", back_populates="verifications")
