from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.permissions import Action, Subject
from origination.core.results import ServiceError, service_action
from origination.models.applicant import Applicant
from origination.schemas.applicant import ApplicantCreate
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.timeline import log_timeline_event, model_snapshot

_SNAPSHOT_FIELDS = ["first_name", "last_name", "email", "phone_number", "address_city", "address_state"]


async def get_applicant_or_404(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
) -> Applicant:
    conditions = [Applicant.id == applicant_id, Applicant.deleted_at.is_(None)]
    if ctx.bank_id is not None:
        conditions.append(Applicant.bank_id == ctx.bank_id)
    applicant = (await db.execute(select(Applicant).where(*conditions))).scalar_one_or_none()
    if applicant is None:
        raise ServiceError.not_found("Applicant not found")
    return applicant


@service_action("Applicant created")
@authorize(Action.CREATE, Subject.APPLICANT)
async def create_applicant(
    db: AsyncSession,
    ctx: deps.BankContext,
    payload: ApplicantCreate | dict[str, Any],
    *,
    actor: Principal,
) -> Applicant:
    """Register an applicant in the caller's bank.

    Emails are unique per bank among live applicants.
    """
    data = ApplicantCreate.model_validate(payload)
    bank_id = ctx.bank_id or actor.bank_id
    if bank_id is None:
        raise ServiceError.validation("A bank context is required", bank_id="Select a bank")
    ensure_can(actor, Action.CREATE, Subject.APPLICANT, resource={"bank_id": bank_id})

    if data.email is not None:
        duplicate_stmt = select(Applicant).where(
            Applicant.bank_id == bank_id,
            func.lower(Applicant.email) == data.email.lower(),
            Applicant.deleted_at.is_(None),
        )
        if (await db.execute(duplicate_stmt)).scalar_one_or_none() is not None:
            raise ServiceError.validation(
                "Applicant already exists",
                email="An applicant with this email already exists",
            )

    applicant = Applicant(id=uuid4(), bank_id=bank_id, **data.model_dump())
    db.add(applicant)
    await db.flush()
    log_timeline_event(
        db,
        entity_type=TimelineEntityType.APPLICANT,
        entity_id=applicant.id,
        event_type=TimelineEventType.USER_CREATED,
        actor=actor,
        remarks=f"Applicant {applicant.first_name} {applicant.last_name} created",
        action_data=model_snapshot(applicant, fields=_SNAPSHOT_FIELDS),
        bank_id=bank_id,
        applicant_id=applicant.id,
    )
    await db.commit()
    await db.refresh(applicant)
    return applicant


@service_action()
@authorize(Action.READ, Subject.APPLICANT)
async def get_applicant(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
    *,
    actor: Principal,
) -> Applicant:
    applicant = await get_applicant_or_404(db, ctx, applicant_id)
    ensure_can(actor, Action.READ, applicant)
    return applicant
