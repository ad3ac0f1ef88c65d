"""Initial loan origination schema"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from origination.core.permissions import RoleType
from origination.models.types import in_clause
from origination.schemas.loan import LoanStatus, LoanType
from origination.schemas.pending_actions import PendingActionStatus
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.schemas.verification import VerificationStatus, VerificationType

# revision identifiers, used by Alembic.
revision = "20260101_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "banks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("official_email", sa.String(length=255), nullable=True),
        sa.Column("onboarding_status", sa.String(length=30), nullable=False, server_default="PENDING"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("official_email"),
    )

    op.create_table(
        "user_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("is_onboarded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_profiles_email", "user_profiles", ["email"], unique=True)

    op.create_table(
        "role_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role", "bank_id", name="uq_role_assignment_user_role_bank"),
        sa.CheckConstraint(in_clause("role", RoleType), name="ck_role_assignment_role"),
    )
    op.create_index("ix_role_assignments_user_id", "role_assignments", ["user_id"])
    op.create_index("ix_role_assignments_bank_id", "role_assignments", ["bank_id"])

    op.create_table(
        "applicants",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address_full", sa.Text(), nullable=True),
        sa.Column("address_city", sa.String(length=100), nullable=True),
        sa.Column("address_state", sa.String(length=100), nullable=True),
        sa.Column("address_pin_code", sa.String(length=10), nullable=True),
        sa.Column("pan_number", sa.String(length=10), nullable=True),
        sa.Column("aadhar_number", sa.String(length=12), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user_profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_applicants_bank_id", "applicants", ["bank_id"])
    op.create_index("ix_applicants_bank_email", "applicants", ["bank_id", "email"])

    op.create_table(
        "loan_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("loan_type", sa.String(length=40), nullable=False),
        sa.Column("amount_requested", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False, server_default=LoanStatus.DRAFT.value),
        sa.Column("selected_tenure", sa.Integer(), nullable=True),
        sa.Column("calculated_emi", sa.Numeric(18, 2), nullable=True),
        sa.Column("proposed_amount", sa.Numeric(18, 2), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["applicant_id"], ["applicants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount_requested >= 0", name="ck_loan_app_amount_nonneg"),
        sa.CheckConstraint("calculated_emi >= 0", name="ck_loan_app_emi_nonneg"),
        sa.CheckConstraint("proposed_amount >= 0", name="ck_loan_app_proposed_nonneg"),
        sa.CheckConstraint(in_clause("status", LoanStatus), name="ck_loan_app_status"),
        sa.CheckConstraint(in_clause("loan_type", LoanType), name="ck_loan_app_loan_type"),
    )
    op.create_index("ix_loan_applications_bank_id", "loan_applications", ["bank_id"])
    op.create_index("ix_loan_applications_applicant_id", "loan_applications", ["applicant_id"])
    op.create_index("ix_loan_applications_bank_status", "loan_applications", ["bank_id", "status"])

    op.create_table(
        "verifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("loan_application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=VerificationStatus.PENDING.value),
        sa.Column("result", sa.Boolean(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("verification_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["loan_application_id"], ["loan_applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["verified_by_id"], ["user_profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(in_clause("type", VerificationType), name="ck_verification_type"),
        sa.CheckConstraint(in_clause("status", VerificationStatus), name="ck_verification_status"),
    )
    op.create_index("ix_verifications_bank_id", "verifications", ["bank_id"])
    op.create_index("ix_verifications_loan_application_id", "verifications", ["loan_application_id"])

    op.create_table(
        "incomes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=True),
        sa.Column("dependents", sa.Integer(), nullable=True),
        sa.Column("average_monthly_expenditure", sa.Numeric(18, 2), nullable=True),
        sa.Column("average_gross_cash_income", sa.Numeric(18, 2), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["applicant_id"], ["applicants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_incomes_applicant_id", "incomes", ["applicant_id"])

    op.create_table(
        "income_details",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("income_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("gross_income", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("taxable_income", sa.Numeric(18, 2), nullable=True),
        sa.Column("tax_paid", sa.Numeric(18, 2), nullable=True),
        sa.Column("rental_income", sa.Numeric(18, 2), nullable=True),
        sa.Column("income_from_business", sa.Numeric(18, 2), nullable=True),
        sa.Column("depreciation", sa.Numeric(18, 2), nullable=True),
        sa.Column("gross_cash_income", sa.Numeric(18, 2), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["income_id"], ["incomes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("income_id", "year", name="uq_income_detail_year"),
    )
    op.create_index("ix_income_details_income_id", "income_details", ["income_id"])

    op.create_table(
        "loan_obligations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("cibil_score", sa.Integer(), nullable=True),
        sa.Column("total_loan", sa.Numeric(18, 2), nullable=True),
        sa.Column("total_emi", sa.Numeric(18, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["applicant_id"], ["applicants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_emi >= 0", name="ck_loan_obligation_emi_nonneg"),
        sa.CheckConstraint(
            "cibil_score IS NULL OR (cibil_score >= 300 AND cibil_score <= 900)",
            name="ck_loan_obligation_cibil_range",
        ),
    )
    op.create_index("ix_loan_obligations_applicant_id", "loan_obligations", ["applicant_id"])

    op.create_table(
        "loan_obligation_details",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("loan_obligation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("outstanding_loan", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("emi_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("loan_date", sa.Date(), nullable=True),
        sa.Column("loan_type", sa.String(length=40), nullable=True),
        sa.Column("bank_name", sa.String(length=255), nullable=True),
        *_timestamps(updated=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["loan_obligation_id"], ["loan_obligations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("outstanding_loan >= 0", name="ck_obligation_detail_outstanding_nonneg"),
        sa.CheckConstraint("emi_amount >= 0", name="ck_obligation_detail_emi_nonneg"),
    )
    op.create_index(
        "ix_loan_obligation_details_loan_obligation_id",
        "loan_obligation_details",
        ["loan_obligation_id"],
    )


    op.create_table(
        "timeline_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("entity_type", sa.String(length=30), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("actor_user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("actor_name", sa.String(length=255), nullable=True),
        sa.Column("actor_role", sa.String(length=30), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("action_data", sa.JSON(), nullable=True),
        sa.Column("loan_application_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verification_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["loan_application_id"], ["loan_applications.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["applicant_id"], ["applicants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["verification_id"], ["verifications.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(in_clause("entity_type", TimelineEntityType), name="ck_timeline_entity_type"),
        sa.CheckConstraint(in_clause("event_type", TimelineEventType), name="ck_timeline_event_type"),
    )
    op.create_index("ix_timeline_events_bank_id", "timeline_events", ["bank_id"])
    op.create_index("ix_timeline_events_applicant_id", "timeline_events", ["applicant_id"])
    op.create_index("ix_timeline_events_entity", "timeline_events", ["entity_type", "entity_id"])
    op.create_index("ix_timeline_events_loan_created", "timeline_events", ["loan_application_id", "created_at"])

    op.create_table(
        "pending_actions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bank_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.String(length=60), nullable=False),
        sa.Column("target_model", sa.String(length=60), nullable=False),
        sa.Column("target_record_id", sa.String(length=64), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=PendingActionStatus.PENDING.value),
        sa.Column("requested_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("reviewed_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["bank_id"], ["banks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_by_id"], ["user_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewed_by_id"], ["user_profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(in_clause("status", PendingActionStatus), name="ck_pending_action_status"),
    )
    op.create_index("ix_pending_actions_bank_status", "pending_actions", ["bank_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_pending_actions_bank_status", table_name="pending_actions")
    op.drop_table("pending_actions")
    op.drop_index("ix_timeline_events_loan_created", table_name="timeline_events")
    op.drop_index("ix_timeline_events_entity", table_name="timeline_events")
    op.drop_index("ix_timeline_events_applicant_id", table_name="timeline_events")
    op.drop_index("ix_timeline_events_bank_id", table_name="timeline_events")
    op.drop_table("timeline_events")
    op.drop_index("ix_loan_obligation_details_loan_obligation_id", table_name="loan_obligation_details")
    op.drop_table("loan_obligation_details")
    op.drop_index("ix_loan_obligations_applicant_id", table_name="loan_obligations")
    op.drop_table("loan_obligations")
    op.drop_index("ix_income_details_income_id", table_name="income_details")
    op.drop_table("income_details")
    op.drop_index("ix_incomes_applicant_id", table_name="incomes")
    op.drop_table("incomes")
    op.drop_index("ix_verifications_loan_application_id", table_name="verifications")
    op.drop_index("ix_verifications_bank_id", table_name="verifications")
    op.drop_table("verifications")
    op.drop_index("ix_loan_applications_bank_status", table_name="loan_applications")
    op.drop_index("ix_loan_applications_applicant_id", table_name="loan_applications")
    op.drop_index("ix_loan_applications_bank_id", table_name="loan_applications")
    op.drop_table("loan_applications")
    op.drop_index("ix_applicants_bank_email", table_name="applicants")
    op.drop_index("ix_applicants_bank_id", table_name="applicants")
    op.drop_table("applicants")
    op.drop_index("ix_role_assignments_bank_id", table_name="role_assignments")
    op.drop_index("ix_role_assignments_user_id", table_name="role_assignments")
    op.drop_table("role_assignments")
    op.drop_index("ix_user_profiles_email", table_name="user_profiles")
    op.drop_table("user_profiles")
    op.drop_table("banks")
