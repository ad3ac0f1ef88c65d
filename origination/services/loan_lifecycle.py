from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.logging import audit_event
from origination.core.permissions import Action, Subject
from origination.core.results import ServiceError, service_action
from origination.core.settings import settings
from origination.models.applicant import Applicant
from origination.models.loan_application import LoanApplication
from origination.models.verification import Verification
from origination.schemas.loan import (
    TERMINAL_STATUSES,
    LoanApplicationCreate,
    LoanApplicationUpdate,
    LoanConfirmationDecision,
    LoanConfirmationRequest,
    LoanStatus,
    LoanTenureUpdateRequest,
)
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.timeline import (
    diff_snapshots,
    list_timeline_events,
    log_timeline_event,
    model_snapshot,
)


ALLOWED_TRANSITIONS: dict[LoanStatus, frozenset[LoanStatus]] = {
    LoanStatus.DRAFT: frozenset(
        {LoanStatus.PENDING_LOAN_OFFICER_ASSIGNMENT, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.PENDING_LOAN_OFFICER_ASSIGNMENT: frozenset(
        {LoanStatus.PENDING_LOAN_OFFICER_REVIEW, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.PENDING_LOAN_OFFICER_REVIEW: frozenset(
        {LoanStatus.PENDING_INSPECTOR_ASSIGNMENT, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.PENDING_INSPECTOR_ASSIGNMENT: frozenset(
        {LoanStatus.PENDING_VERIFICATION, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.PENDING_VERIFICATION: frozenset(
        {LoanStatus.VERIFICATION_IN_PROGRESS, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.VERIFICATION_IN_PROGRESS: frozenset(
        {LoanStatus.VERIFICATION_COMPLETED, LoanStatus.VERIFICATION_FAILED}
    ),
    LoanStatus.VERIFICATION_COMPLETED: frozenset(
        {LoanStatus.UNDER_REVIEW, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.VERIFICATION_FAILED: frozenset(
        {LoanStatus.UNDER_REVIEW, LoanStatus.REJECTED_BY_APPLICANT}
    ),
    LoanStatus.UNDER_REVIEW: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset(),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.REJECTED_BY_APPLICANT: frozenset(),
}

# Loan type and amount are fixed once the application goes to inspection.
EDITABLE_STATUSES = frozenset(
    {
        LoanStatus.DRAFT,
        LoanStatus.PENDING_LOAN_OFFICER_ASSIGNMENT,
        LoanStatus.PENDING_LOAN_OFFICER_REVIEW,
    }
)

# Reaching these states needs more than ``update`` on the status field.
_DECISION_ACTIONS: dict[LoanStatus, Action] = {
    LoanStatus.APPROVED: Action.APPROVE,
    LoanStatus.REJECTED: Action.REJECT,
}

# Applicant's answer to the offer: target status, timeline event and default remarks.
CONFIRMATION_OUTCOMES: dict[LoanConfirmationDecision, tuple[LoanStatus, TimelineEventType, str]] = {
    LoanConfirmationDecision.ACCEPT: (
        LoanStatus.PENDING_INSPECTOR_ASSIGNMENT,
        TimelineEventType.STATUS_CHANGE,
        "Loan offer accepted by applicant",
    ),
    LoanConfirmationDecision.REJECT: (
        LoanStatus.REJECTED_BY_APPLICANT,
        TimelineEventType.APPLICATION_REJECTED,
        "Loan offer rejected by applicant",
    ),
    LoanConfirmationDecision.ESCALATE: (
        LoanStatus.PENDING_LOAN_OFFICER_REVIEW,
        TimelineEventType.APPLICATION_ESCALATED,
        "Loan offer escalated to a loan officer",
    ),
}

_SNAPSHOT_FIELDS = ["loan_type", "amount_requested", "selected_tenure", "calculated_emi", "proposed_amount"]


def _status(value: LoanStatus | str) -> LoanStatus:
    try:
        return LoanStatus(value)
    except ValueError as exc:
        raise ServiceError.validation("Unknown loan status", status=f"Unknown status {value!r}") from exc


def allowed_transitions(current: LoanStatus | str) -> frozenset[LoanStatus]:
    return ALLOWED_TRANSITIONS.get(LoanStatus(current), frozenset())


def is_valid_transition(current: LoanStatus | str, target: LoanStatus | str) -> bool:
    return LoanStatus(target) in allowed_transitions(current)


def _bank_scope(ctx: deps.BankContext) -> list[Any]:
    if ctx.bank_id is None:
        return []
    return [LoanApplication.bank_id == ctx.bank_id]


async def get_application_or_404(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
) -> LoanApplication:
    stmt = select(LoanApplication).where(
        LoanApplication.id == loan_application_id,
        LoanApplication.deleted_at.is_(None),
        *_bank_scope(ctx),
    )
    application = (await db.execute(stmt)).scalar_one_or_none()
    if application is None:
        raise ServiceError.not_found("Loan application not found")
    return application


def stage_transition(
    db: AsyncSession,
    application: LoanApplication,
    target: LoanStatus,
    *,
    actor: Principal,
    event_type: TimelineEventType,
    remarks: str | None,
) -> None:
    current = _status(application.status)
    if not is_valid_transition(current, target):
        raise ServiceError.invalid_state(
            f"Cannot move loan application from {current.value} to {target.value}",
            status=current.value,
        )
    application.status = target.value
    application.updated_at = datetime.now(timezone.utc)
    db.add(application)
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.LOAN_APPLICATION,
        entity_id=application.id,
        event_type=event_type,
        actor=actor,
        remarks=remarks or f"status updated to {target.value}",
        action_data={"from": current.value, "to": target.value},
        bank_id=application.bank_id,
        loan_application_id=application.id,
        applicant_id=application.applicant_id,
    )
    audit_event(
        "loan_application.status_changed",
        loan_application_id=str(application.id),
        actor_id=str(actor.id),
        from_status=current.value,
        to_status=target.value,
        event_type=TimelineEventType(event_type).value,
    )


@service_action("Loan application status updated")
@authorize(Action.UPDATE, Subject.LOAN_APPLICATION, field="status")
async def update_status_with_log(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    new_status: LoanStatus | str,
    *,
    actor: Principal,
    event_type: TimelineEventType = TimelineEventType.STATUS_CHANGE,
    remarks: str | None = None,
) -> LoanApplication:
    target = _status(new_status)
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.UPDATE, application, field="status")
    decision = _DECISION_ACTIONS.get(target)
    if decision is not None:
        ensure_can(actor, decision, application)

    stage_transition(db, application, target, actor=actor, event_type=event_type, remarks=remarks)
    await db.commit()
    await db.refresh(application)
    return application


@service_action("Loan application created")
@authorize(Action.CREATE, Subject.LOAN_APPLICATION)
async def create_loan_application_with_log(
    db: AsyncSession,
    ctx: deps.BankContext,
    payload: LoanApplicationCreate | dict[str, Any],
    *,
    actor: Principal,
) -> LoanApplication:
    data = LoanApplicationCreate.model_validate(payload)
    bank_id = ctx.bank_id
    if bank_id is None:
        raise ServiceError.validation("A bank context is required", bank_id="Select a bank")
    ensure_can(actor, Action.CREATE, Subject.LOAN_APPLICATION, resource={"bank_id": bank_id})

    applicant_stmt = select(Applicant).where(
        Applicant.id == data.applicant_id,
        Applicant.bank_id == bank_id,
        Applicant.deleted_at.is_(None),
    )
    applicant = (await db.execute(applicant_stmt)).scalar_one_or_none()
    if applicant is None:
        raise ServiceError.not_found("Applicant not found")

    application = LoanApplication(
        id=uuid4(),
        bank_id=bank_id,
        applicant_id=applicant.id,
        loan_type=data.loan_type,
        amount_requested=data.amount_requested,
        status=LoanStatus.DRAFT.value,
    )
    db.add(application)
    await db.flush()
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.LOAN_APPLICATION,
        entity_id=application.id,
        event_type=TimelineEventType.APPLICATION_CREATED,
        actor=actor,
        remarks="Loan application created",
        action_data=model_snapshot(application, fields=_SNAPSHOT_FIELDS),
        bank_id=bank_id,
        loan_application_id=application.id,
        applicant_id=applicant.id,
    )
    await db.commit()
    await db.refresh(application)
    return application


@service_action("Loan application updated")
@authorize(Action.UPDATE, Subject.LOAN_APPLICATION)
async def update_loan_application(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    payload: LoanApplicationUpdate | dict[str, Any],
    *,
    actor: Principal,
) -> LoanApplication:
    data = LoanApplicationUpdate.model_validate(payload)
    application = await get_application_or_404(db, ctx, loan_application_id)
    changes_requested = data.model_dump(exclude_unset=True, exclude_none=True)
    for name in changes_requested or ("loan_type", "amount_requested"):
        ensure_can(actor, Action.UPDATE, application, field=name)
    if _status(application.status) not in EDITABLE_STATUSES:
        raise ServiceError.invalid_state(
            "Loan type and amount can no longer be changed",
            status=application.status,
        )

    before = model_snapshot(application, fields=_SNAPSHOT_FIELDS)
    for name, value in changes_requested.items():
        setattr(application, name, value)
    changes = diff_snapshots(before, model_snapshot(application, fields=_SNAPSHOT_FIELDS))
    if not changes:
        return application

    application.updated_at = datetime.now(timezone.utc)
    db.add(application)
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.LOAN_APPLICATION,
        entity_id=application.id,
        event_type=TimelineEventType.APPLICATION_UPDATED,
        actor=actor,
        remarks="Loan application updated",
        action_data={"changes": changes},
        bank_id=application.bank_id,
        loan_application_id=application.id,
        applicant_id=application.applicant_id,
    )
    await db.commit()
    await db.refresh(application)
    return application


@service_action("Loan tenure updated")
@authorize(Action.UPDATE, Subject.LOAN_APPLICATION)
async def update_loan_application_tenure(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    payload: LoanTenureUpdateRequest | dict[str, Any],
    *,
    actor: Principal,
) -> LoanApplication:
    data = LoanTenureUpdateRequest.model_validate(payload)
    application = await get_application_or_404(db, ctx, loan_application_id)
    for name in ("selected_tenure", "calculated_emi", "proposed_amount"):
        ensure_can(actor, Action.UPDATE, application, field=name)
    if _status(application.status) in TERMINAL_STATUSES:
        raise ServiceError.invalid_state("Loan application is closed", status=application.status)

    before = model_snapshot(application, fields=_SNAPSHOT_FIELDS)
    application.selected_tenure = data.tenure_months
    application.calculated_emi = data.calculated_emi
    application.proposed_amount = data.proposed_amount
    application.updated_at = datetime.now(timezone.utc)
    db.add(application)
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.LOAN_APPLICATION,
        entity_id=application.id,
        event_type=TimelineEventType.APPLICATION_UPDATED,
        actor=actor,
        remarks=f"Tenure of {data.tenure_months} months selected",
        action_data={"changes": diff_snapshots(before, model_snapshot(application, fields=_SNAPSHOT_FIELDS))},
        bank_id=application.bank_id,
        loan_application_id=application.id,
        applicant_id=application.applicant_id,
    )
    await db.commit()
    await db.refresh(application)
    return application


@service_action("Loan confirmation completed")
@authorize(Action.UPDATE, Subject.LOAN_APPLICATION, field="status")
async def complete_loan_confirmation(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    payload: LoanConfirmationRequest | dict[str, Any],
    *,
    actor: Principal,
) -> LoanApplication:
    """Record the applicant's answer to the loan offer.

    Accepting sends the application to inspection, rejecting closes it as
    rejected by the applicant and escalating hands it back to a loan officer.
    The move must be a valid transition from the current status.
    """
    data = LoanConfirmationRequest.model_validate(payload)
    application = await get_application_or_404(db, ctx, loan_application_id)
    # Confirming settles the offered amount, not only the status.
    for name in ("status", "proposed_amount"):
        ensure_can(actor, Action.UPDATE, application, field=name)

    decision = LoanConfirmationDecision(data.decision)
    target, event_type, default_remarks = CONFIRMATION_OUTCOMES[decision]
    if decision == LoanConfirmationDecision.ACCEPT and application.selected_tenure is None:
        raise ServiceError.validation(
            "Select a tenure before accepting the offer",
            selected_tenure="A tenure must be selected",
        )

    stage_transition(
        db,
        application,
        target,
        actor=actor,
        event_type=event_type,
        remarks=data.remarks or default_remarks,
    )
    await db.commit()
    await db.refresh(application)
    return application


@service_action()
@authorize(Action.READ, Subject.LOAN_APPLICATION)
async def get_loan_application(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    *,
    actor: Principal,
) -> LoanApplication:
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.READ, application)
    return application


@service_action()
@authorize(Action.READ, Subject.LOAN_APPLICATION)
async def list_loan_applications(
    db: AsyncSession,
    ctx: deps.BankContext,
    *,
    actor: Principal,
    status: LoanStatus | None = None,
    applicant_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[LoanApplication], int]:
    conditions = [LoanApplication.deleted_at.is_(None), *_bank_scope(ctx)]
    if status is not None:
        conditions.append(LoanApplication.status == LoanStatus(status).value)
    if applicant_id is not None:
        conditions.append(LoanApplication.applicant_id == applicant_id)

    count_stmt = select(func.count()).select_from(LoanApplication).where(*conditions)
    total = (await db.execute(count_stmt)).scalar_one()
    stmt = (
        select(LoanApplication)
        .where(*conditions)
        .order_by(LoanApplication.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    items = (await db.execute(stmt)).scalars().all()
    return list(items), int(total or 0)


async def has_failed_verification(db: AsyncSession, loan_application_id: UUID) -> bool:
    """True when any verification recorded a negative result.

    With no verification rows at all the configured default applies
    (``MISSING_VERIFICATIONS_COUNT_AS_FAILED``, true unless overridden).
    """
    stmt = select(Verification).where(Verification.loan_application_id == loan_application_id)
    verifications = (await db.execute(stmt)).scalars().all()
    if not verifications:
        return settings.missing_verifications_count_as_failed
    return any(verification.result is False for verification in verifications)


@service_action("Verification completed")
@authorize(Action.UPDATE, Subject.LOAN_APPLICATION, field="status")
async def complete_verification(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    *,
    actor: Principal,
    remarks: str | None = None,
) -> LoanApplication:
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.UPDATE, application, field="status")

    if await has_failed_verification(db, application.id):
        target, event_type = LoanStatus.VERIFICATION_FAILED, TimelineEventType.VERIFICATION_FAILED
    else:
        target, event_type = LoanStatus.VERIFICATION_COMPLETED, TimelineEventType.VERIFICATION_COMPLETED

    stage_transition(db, application, target, actor=actor, event_type=event_type, remarks=remarks)
    await db.commit()
    await db.refresh(application)
    return application


@service_action()
@authorize(Action.READ, Subject.TIMELINE_EVENT)
async def get_application_timeline(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    *,
    actor: Principal,
    limit: int = 50,
    offset: int = 0,
):
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.READ, Subject.TIMELINE_EVENT, resource={"bank_id": application.bank_id})
    return await list_timeline_events(
        db,
        ctx,
        loan_application_id=application.id,
        limit=limit,
        offset=offset,
    )
