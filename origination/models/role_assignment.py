import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from origination.core.permissions import RoleType
from origination.db.base import Base
from origination.models.types import in_clause


class RoleAssignment(Base):
    __tablename__ = "role_assignments"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint(in_clause("role", RoleType), name="ck_role_assignment_role"),
        UniqueConstraint("user_id", "role", "bank_id", name="uq_role_assignment_user_role_bank"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(30), nullable=False)
    bank_id = Column(UUID(as_uuid=True), ForeignKey("banks.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("UserProfile", back_populates="role_assignments")
