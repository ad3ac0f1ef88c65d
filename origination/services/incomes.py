from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.permissions import Action, Subject
from origination.core.results import service_action
from origination.models.income import Income, IncomeDetail
from origination.schemas.income import IncomeCreate, IncomeDetailDTO, IncomeDTO, IncomeResponse
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.services.applicants import get_applicant_or_404
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.timeline import log_timeline_event, serialize_action_data


@service_action("Income created")
@authorize(Action.CREATE, Subject.INCOME)
async def create_income(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
    payload: IncomeCreate | dict[str, Any],
    *,
    actor: Principal,
) -> IncomeResponse:
    """Record an income statement with its per-year figures.

    Eligibility reads the gross income of the most recent year of the latest
    statement, so a new statement supersedes earlier ones.
    """
    data = IncomeCreate.model_validate(payload)
    applicant = await get_applicant_or_404(db, ctx, applicant_id)
    ensure_can(actor, Action.CREATE, Subject.INCOME, resource={"bank_id": applicant.bank_id})

    income = Income(
        id=uuid4(),
        applicant_id=applicant.id,
        **data.model_dump(exclude={"details"}),
    )
    db.add(income)
    await db.flush()

    details = []
    for item in sorted(data.details, key=lambda detail: detail.year, reverse=True):
        detail = IncomeDetail(id=uuid4(), income_id=income.id, **item.model_dump())
        db.add(detail)
        details.append(detail)

    log_timeline_event(
        db,
        entity_type=TimelineEntityType.APPLICANT,
        entity_id=applicant.id,
        event_type=TimelineEventType.APPLICATION_UPDATED,
        actor=actor,
        remarks="Income details added",
        action_data=serialize_action_data(
            {
                "income_id": income.id,
                "years": [detail.year for detail in details],
                "gross_income": {str(detail.year): detail.gross_income for detail in details},
            }
        ),
        bank_id=applicant.bank_id,
        applicant_id=applicant.id,
    )
    await db.commit()
    await db.refresh(income)
    return IncomeResponse(
        income=IncomeDTO.model_validate(income),
        details=[IncomeDetailDTO.model_validate(detail) for detail in details],
    )
