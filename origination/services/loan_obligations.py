from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.logging import audit_event
from origination.core.permissions import Action, Subject
from origination.core.results import ServiceError, service_action
from origination.models.loan_obligation import LoanObligation, LoanObligationDetail
from origination.schemas.loan_obligation import (
    LoanObligationDetailDTO,
    LoanObligationDTO,
    LoanObligationResponse,
    LoanObligationSave,
)
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.services.applicants import get_applicant_or_404
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.timeline import log_timeline_event, serialize_action_data


async def _current_obligation(db: AsyncSession, applicant_id: UUID) -> LoanObligation | None:
    stmt = (
        select(LoanObligation)
        .where(LoanObligation.applicant_id == applicant_id, LoanObligation.deleted_at.is_(None))
        .order_by(LoanObligation.created_at.desc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


def _response(obligation: LoanObligation, loans: list[LoanObligationDetail]) -> LoanObligationResponse:
    return LoanObligationResponse(
        obligation=LoanObligationDTO.model_validate(obligation),
        loans=[LoanObligationDetailDTO.model_validate(loan) for loan in loans],
    )


@service_action("Loan obligation saved")
@authorize(Action.CREATE, Subject.LOAN_OBLIGATION)
async def save_loan_obligation(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
    payload: LoanObligationSave | dict[str, Any],
    *,
    actor: Principal,
) -> LoanObligationResponse:
    """Create or replace the applicant's existing-debt record.

    Each applicant keeps one live obligation. Saving replaces its loan list
    and recomputes ``total_loan`` and ``total_emi`` from the loans given.
    """
    data = LoanObligationSave.model_validate(payload)
    applicant = await get_applicant_or_404(db, ctx, applicant_id)
    scope = {"bank_id": applicant.bank_id}
    now = datetime.now(timezone.utc)

    obligation = await _current_obligation(db, applicant.id)
    if obligation is None:
        ensure_can(actor, Action.CREATE, Subject.LOAN_OBLIGATION, resource=scope)
        obligation = LoanObligation(id=uuid4(), applicant_id=applicant.id)
    else:
        ensure_can(actor, Action.UPDATE, Subject.LOAN_OBLIGATION, resource=scope)
        await db.execute(
            update(LoanObligationDetail)
            .where(
                LoanObligationDetail.loan_obligation_id == obligation.id,
                LoanObligationDetail.deleted_at.is_(None),
            )
            .values(deleted_at=now)
        )
        obligation.updated_at = now

    total_loan = sum((loan.outstanding_loan for loan in data.loans), Decimal("0"))
    total_emi = sum((loan.emi_amount for loan in data.loans), Decimal("0"))
    obligation.cibil_score = data.cibil_score
    obligation.total_loan = total_loan
    obligation.total_emi = total_emi
    db.add(obligation)
    await db.flush()

    loans = []
    for item in data.loans:
        loan = LoanObligationDetail(id=uuid4(), loan_obligation_id=obligation.id, **item.model_dump())
        db.add(loan)
        loans.append(loan)

    log_timeline_event(
        db,
        entity_type=TimelineEntityType.APPLICANT,
        entity_id=applicant.id,
        event_type=TimelineEventType.APPLICATION_UPDATED,
        actor=actor,
        remarks="Loan obligations updated",
        action_data=serialize_action_data(
            {
                "loan_obligation_id": obligation.id,
                "cibil_score": data.cibil_score,
                "loan_count": len(loans),
                "total_loan": total_loan,
                "total_emi": total_emi,
            }
        ),
        bank_id=applicant.bank_id,
        applicant_id=applicant.id,
    )
    audit_event(
        "loan_obligation.saved",
        applicant_id=str(applicant.id),
        actor_id=str(actor.id),
        loan_count=len(loans),
    )
    await db.commit()
    await db.refresh(obligation)
    return _response(obligation, loans)


@service_action()
@authorize(Action.READ, Subject.LOAN_OBLIGATION)
async def get_loan_obligation(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
    *,
    actor: Principal,
) -> LoanObligationResponse:
    applicant = await get_applicant_or_404(db, ctx, applicant_id)
    ensure_can(actor, Action.READ, Subject.LOAN_OBLIGATION, resource={"bank_id": applicant.bank_id})
    obligation = await _current_obligation(db, applicant.id)
    if obligation is None:
        raise ServiceError.not_found("Loan obligation not found")
    stmt = (
        select(LoanObligationDetail)
        .where(
            LoanObligationDetail.loan_obligation_id == obligation.id,
            LoanObligationDetail.deleted_at.is_(None),
        )
        .order_by(LoanObligationDetail.created_at.asc())
    )
    loans = list((await db.execute(stmt)).scalars().all())
    return _response(obligation, loans)
