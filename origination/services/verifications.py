from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.permissions import Action, Subject
from origination.core.results import ServiceError, service_action
from origination.models.verification import Verification
from origination.schemas.loan import TERMINAL_STATUSES, LoanStatus
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.schemas.verification import (
    VerificationCreate,
    VerificationResultRequest,
    VerificationStatus,
)
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.loan_lifecycle import get_application_or_404, stage_transition
from origination.services.timeline import log_timeline_event


async def _get_verification_or_404(
    db: AsyncSession,
    ctx: deps.BankContext,
    verification_id: UUID,
) -> Verification:
    conditions = [Verification.id == verification_id]
    if ctx.bank_id is not None:
        conditions.append(Verification.bank_id == ctx.bank_id)
    verification = (await db.execute(select(Verification).where(*conditions))).scalar_one_or_none()
    if verification is None:
        raise ServiceError.not_found("Verification not found")
    return verification


@service_action("Verification created")
@authorize(Action.CREATE, Subject.VERIFICATION)
async def create_verification(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    payload: VerificationCreate | dict[str, Any],
    *,
    actor: Principal,
) -> Verification:
    data = VerificationCreate.model_validate(payload)
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.CREATE, Subject.VERIFICATION, resource={"bank_id": application.bank_id})
    if LoanStatus(application.status) in TERMINAL_STATUSES:
        raise ServiceError.invalid_state("Loan application is closed", status=application.status)
    # The first verification on an application starts the inspection.
    starts_verification = application.status == LoanStatus.PENDING_VERIFICATION.value
    if starts_verification:
        ensure_can(actor, Action.UPDATE, application, field="status")

    verification = Verification(
        id=uuid4(),
        bank_id=application.bank_id,
        loan_application_id=application.id,
        type=data.type,
        status=VerificationStatus.PENDING.value,
        remarks=data.remarks,
    )
    db.add(verification)
    await db.flush()
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.VERIFICATION,
        entity_id=verification.id,
        event_type=TimelineEventType.VERIFICATION_CREATED,
        actor=actor,
        remarks=f"{data.type} verification created",
        action_data={"type": data.type},
        bank_id=application.bank_id,
        loan_application_id=application.id,
        applicant_id=application.applicant_id,
        verification_id=verification.id,
    )
    if starts_verification:
        stage_transition(
            db,
            application,
            LoanStatus.VERIFICATION_IN_PROGRESS,
            actor=actor,
            event_type=TimelineEventType.VERIFICATION_STARTED,
            remarks=f"{data.type} verification started",
        )
    await db.commit()
    await db.refresh(verification)
    return verification


@service_action("Verification result recorded")
@authorize(Action.VERIFY, Subject.VERIFICATION)
async def record_verification_result(
    db: AsyncSession,
    ctx: deps.BankContext,
    verification_id: UUID,
    payload: VerificationResultRequest | dict[str, Any],
    *,
    actor: Principal,
) -> Verification:
    data = VerificationResultRequest.model_validate(payload)
    verification = await _get_verification_or_404(db, ctx, verification_id)
    ensure_can(actor, Action.VERIFY, verification)
    if verification.status != VerificationStatus.PENDING.value:
        raise ServiceError.invalid_state(
            "Verification result was already recorded",
            status=verification.status,
        )
    application = await get_application_or_404(db, ctx, verification.loan_application_id)

    verification.result = data.result
    verification.status = (
        VerificationStatus.COMPLETED.value if data.result else VerificationStatus.FAILED.value
    )
    if data.remarks is not None:
        verification.remarks = data.remarks
    verification.verification_date = data.verification_date or datetime.now(timezone.utc)
    verification.verified_by_id = actor.id
    db.add(verification)
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.VERIFICATION,
        entity_id=verification.id,
        event_type=TimelineEventType.VERIFICATION_REMARK_ADDED,
        actor=actor,
        remarks=data.remarks or f"{verification.type} verification {verification.status.lower()}",
        action_data={"result": data.result, "status": verification.status},
        bank_id=verification.bank_id,
        loan_application_id=application.id,
        applicant_id=application.applicant_id,
        verification_id=verification.id,
    )
    await db.commit()
    await db.refresh(verification)
    return verification


@service_action()
@authorize(Action.READ, Subject.VERIFICATION)
async def list_verifications(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    *,
    actor: Principal,
) -> list[Verification]:
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.READ, Subject.VERIFICATION, resource={"bank_id": application.bank_id})
    stmt = (
        select(Verification)
        .where(Verification.loan_application_id == application.id)
        .order_by(Verification.created_at.asc())
    )
    return list((await db.execute(stmt)).scalars().all())
