from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.models.timeline_event import TimelineEvent
from origination.schemas.timeline import TimelineEntityType, TimelineEventType
from origination.services.authz import Principal


def serialize_action_data(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={
            Decimal: lambda v: str(v),
            datetime: lambda v: v.isoformat(),
            date: lambda v: v.isoformat(),
            UUID: lambda v: str(v),
        },
    )


def model_snapshot(model: Any, *, fields: list[str] | None = None) -> dict[str, Any]:
    if model is None:
        return {}
    names = fields or [column.name for column in model.__table__.columns]
    return serialize_action_data({name: getattr(model, name, None) for name in names})


def diff_snapshots(old: dict[str, Any], new: dict[str, Any]) -> dict[str, dict[str, Any]]:
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(old) | set(new)):
        if old.get(key) != new.get(key):
            changes[key] = {"from": old.get(key), "to": new.get(key)}
    return changes


def log_timeline_event(
    db: AsyncSession,
    *,
    entity_type: TimelineEntityType,
    entity_id: UUID,
    event_type: TimelineEventType,
    actor: Principal | None,
    remarks: str | None = None,
    action_data: dict[str, Any] | None = None,
    bank_id: UUID | None = None,
    loan_application_id: UUID | None = None,
    applicant_id: UUID | None = None,
    document_id: UUID | None = None,
    verification_id: UUID | None = None,
) -> TimelineEvent:
    """Stage one timeline entry on ``db``; the caller's commit persists it."""
    event = TimelineEvent(
        bank_id=bank_id,
        entity_type=TimelineEntityType(entity_type).value,
        entity_id=entity_id,
        event_type=TimelineEventType(event_type).value,
        actor_user_id=actor.id if actor else None,
        actor_name=actor.name if actor else None,
        actor_role=actor.role_name if actor else None,
        remarks=remarks,
        action_data=serialize_action_data(action_data) if action_data is not None else None,
        loan_application_id=loan_application_id,
        applicant_id=applicant_id,
        document_id=document_id,
        verification_id=verification_id,
    )
    db.add(event)
    return event


async def list_timeline_events(
    db: AsyncSession,
    ctx: deps.BankContext,
    *,
    loan_application_id: UUID | None = None,
    applicant_id: UUID | None = None,
    entity_type: TimelineEntityType | None = None,
    entity_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[TimelineEvent], int]:
    conditions = []
    if ctx.bank_id is not None:
        conditions.append(TimelineEvent.bank_id == ctx.bank_id)
    if loan_application_id is not None:
        conditions.append(TimelineEvent.loan_application_id == loan_application_id)
    if applicant_id is not None:
        conditions.append(TimelineEvent.applicant_id == applicant_id)
    if entity_type is not None:
        conditions.append(TimelineEvent.entity_type == TimelineEntityType(entity_type).value)
    if entity_id is not None:
        conditions.append(TimelineEvent.entity_id == entity_id)

    count_stmt = select(func.count()).select_from(TimelineEvent).where(*conditions)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(TimelineEvent)
        .where(*conditions)
        .order_by(TimelineEvent.created_at.desc(), TimelineEvent.id.desc())
        .offset(offset)
        .limit(limit)
    )
    items = (await db.execute(stmt)).scalars().all()
    return list(items), int(total or 0)
