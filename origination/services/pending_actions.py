"""Maker-checker approval of administrative requests.

A request is recorded as a PENDING :class:`PendingAction`; a different user
approves, rejects or (the requester) cancels it. Approval runs the downstream
effect registered for the action type in the same transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import UUID, uuid4

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.logging import audit_event
from origination.core.permissions import Action, Subject
from origination.core.results import ServiceError, service_action
from origination.models.pending_action import PendingAction
from origination.models.role_assignment import RoleAssignment
from origination.models.user_profile import UserProfile
from origination.schemas.pending_actions import (
    BankUserCreationPayload,
    PendingActionStatus,
    PendingActionType,
)
from origination.services.authz import Principal, authorize, ensure_can


@dataclass(frozen=True)
class PendingActionHandler:
    target_model: str
    payload_model: type[BaseModel]
    # Returns the id of the record the approval produced.
    apply: Callable[[AsyncSession, PendingAction, BaseModel, Principal], Awaitable[str | None]]
    find_duplicate: Callable[[AsyncSession, UUID, BaseModel], Awaitable[PendingAction | None]] | None = None
    duplicate_field: str | None = None


async def _find_duplicate_user_request(
    db: AsyncSession,
    bank_id: UUID,
    payload: BankUserCreationPayload,
) -> PendingAction | None:
    stmt = select(PendingAction).where(
        PendingAction.bank_id == bank_id,
        PendingAction.action_type == PendingActionType.REQUEST_BANK_USER_CREATION.value,
        PendingAction.status == PendingActionStatus.PENDING.value,
        PendingAction.payload["email"].astext == payload.email,
    )
    return (await db.execute(stmt.limit(1))).scalar_one_or_none()


async def _create_bank_user(
    db: AsyncSession,
    action: PendingAction,
    payload: BankUserCreationPayload,
    reviewer: Principal,
) -> str:
    existing = (
        await db.execute(select(UserProfile).where(UserProfile.email == payload.email))
    ).scalar_one_or_none()
    if existing is not None:
        raise ServiceError.validation("A user with this email already exists", email="Email already registered")

    user = UserProfile(
        id=uuid4(),
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
        is_onboarded=False,
    )
    db.add(user)
    db.add(RoleAssignment(id=uuid4(), user_id=user.id, role=payload.role, bank_id=payload.bank_id))
    await db.flush()
    audit_event(
        "bank_user.created",
        user_id=str(user.id),
        bank_id=str(payload.bank_id),
        role=str(payload.role),
        pending_action_id=str(action.id),
        approved_by=str(reviewer.id),
    )
    return str(user.id)


ACTION_HANDLERS: dict[PendingActionType, PendingActionHandler] = {
    PendingActionType.REQUEST_BANK_USER_CREATION: PendingActionHandler(
        target_model="UserProfile",
        payload_model=BankUserCreationPayload,
        apply=_create_bank_user,
        find_duplicate=_find_duplicate_user_request,
        duplicate_field="email",
    ),
}


def _handler_for(action_type: PendingActionType | str) -> PendingActionHandler:
    try:
        return ACTION_HANDLERS[PendingActionType(action_type)]
    except (KeyError, ValueError) as exc:
        raise ServiceError.validation(
            "Unsupported action type",
            action_type=f"Unsupported action type {action_type!r}",
        ) from exc


async def _get_action_or_404(db: AsyncSession, ctx: deps.BankContext, action_id: UUID) -> PendingAction:
    conditions = [PendingAction.id == action_id]
    if ctx.bank_id is not None:
        conditions.append(PendingAction.bank_id == ctx.bank_id)
    action = (await db.execute(select(PendingAction).where(*conditions))).scalar_one_or_none()
    if action is None:
        raise ServiceError.not_found("Pending action not found")
    return action


def _ensure_pending(action: PendingAction) -> None:
    if action.status != PendingActionStatus.PENDING.value:
        raise ServiceError.invalid_state(
            f"Pending action is already {action.status.lower()}",
            status=action.status,
        )


def _ensure_not_requester(action: PendingAction, actor: Principal) -> None:
    if str(action.requested_by_id) == str(actor.id):
        raise ServiceError.unauthorized("Approver cannot be the same as requester")


def _mark_reviewed(action: PendingAction, status: PendingActionStatus, actor: Principal) -> None:
    action.status = status.value
    action.reviewed_by_id = actor.id
    action.reviewed_at = datetime.now(timezone.utc)


@service_action("Request submitted for approval")
@authorize(Action.CREATE, Subject.PENDING_ACTION)
async def request_action(
    db: AsyncSession,
    ctx: deps.BankContext,
    action_type: PendingActionType | str,
    payload: dict[str, Any],
    *,
    actor: Principal,
) -> PendingAction:
    handler = _handler_for(action_type)
    data = handler.payload_model.model_validate(payload)
    bank_id = getattr(data, "bank_id", None) or ctx.bank_id
    if bank_id is None:
        raise ServiceError.validation("A bank context is required", bank_id="Select a bank")
    if ctx.bank_id is not None and str(bank_id) != str(ctx.bank_id):
        raise ServiceError.validation("Requests must target your own bank", bank_id="Bank mismatch")
    ensure_can(actor, Action.CREATE, Subject.PENDING_ACTION, resource={"bank_id": bank_id})

    if handler.find_duplicate is not None:
        duplicate = await handler.find_duplicate(db, bank_id, data)
        if duplicate is not None:
            field = handler.duplicate_field or "root"
            raise ServiceError.validation(
                "A similar request is already pending",
                **{field: "A pending request already exists for this value"},
            )

    action = PendingAction(
        id=uuid4(),
        bank_id=bank_id,
        action_type=PendingActionType(action_type).value,
        target_model=handler.target_model,
        payload=data.model_dump(mode="json"),
        status=PendingActionStatus.PENDING.value,
        requested_by_id=actor.id,
        requested_at=datetime.now(timezone.utc),
    )
    db.add(action)
    await db.commit()
    await db.refresh(action)
    audit_event(
        "pending_action.requested",
        pending_action_id=str(action.id),
        action_type=action.action_type,
        bank_id=str(bank_id),
        requested_by=str(actor.id),
    )
    return action


@service_action("Request approved")
@authorize(Action.APPROVE, Subject.PENDING_ACTION)
async def approve(
    db: AsyncSession,
    ctx: deps.BankContext,
    action_id: UUID,
    *,
    actor: Principal,
) -> PendingAction:
    action = await _get_action_or_404(db, ctx, action_id)
    _ensure_pending(action)
    ensure_can(actor, Action.APPROVE, action)
    _ensure_not_requester(action, actor)

    handler = _handler_for(action.action_type)
    data = handler.payload_model.model_validate(action.payload)
    _mark_reviewed(action, PendingActionStatus.APPROVED, actor)
    target_record_id = await handler.apply(db, action, data, actor)
    if target_record_id is not None:
        action.target_record_id = target_record_id
    db.add(action)
    await db.commit()
    await db.refresh(action)
    audit_event(
        "pending_action.approved",
        pending_action_id=str(action.id),
        action_type=action.action_type,
        target_record_id=action.target_record_id,
        reviewed_by=str(actor.id),
    )
    return action


@service_action("Request rejected")
@authorize(Action.REJECT, Subject.PENDING_ACTION)
async def reject(
    db: AsyncSession,
    ctx: deps.BankContext,
    action_id: UUID,
    remarks: str | None,
    *,
    actor: Principal,
) -> PendingAction:
    cleaned = (remarks or "").strip()
    if not cleaned:
        raise ServiceError.validation("Remarks are required to reject a request", remarks="Remarks are required")

    action = await _get_action_or_404(db, ctx, action_id)
    _ensure_pending(action)
    ensure_can(actor, Action.REJECT, action)
    _ensure_not_requester(action, actor)

    _mark_reviewed(action, PendingActionStatus.REJECTED, actor)
    action.review_remarks = cleaned
    db.add(action)
    await db.commit()
    await db.refresh(action)
    audit_event(
        "pending_action.rejected",
        pending_action_id=str(action.id),
        action_type=action.action_type,
        reviewed_by=str(actor.id),
    )
    return action


@service_action("Request cancelled")
@authorize(Action.READ, Subject.PENDING_ACTION)
async def cancel(
    db: AsyncSession,
    ctx: deps.BankContext,
    action_id: UUID,
    *,
    actor: Principal,
) -> PendingAction:
    action = await _get_action_or_404(db, ctx, action_id)
    _ensure_pending(action)
    if str(action.requested_by_id) != str(actor.id):
        ensure_can(actor, Action.MANAGE, action)

    _mark_reviewed(action, PendingActionStatus.CANCELLED, actor)
    db.add(action)
    await db.commit()
    await db.refresh(action)
    audit_event(
        "pending_action.cancelled",
        pending_action_id=str(action.id),
        action_type=action.action_type,
        cancelled_by=str(actor.id),
    )
    return action


@service_action()
@authorize(Action.READ, Subject.PENDING_ACTION)
async def list_pending_actions(
    db: AsyncSession,
    ctx: deps.BankContext,
    *,
    actor: Principal,
    action_type: PendingActionType | None = None,
    status: PendingActionStatus | None = PendingActionStatus.PENDING,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[PendingAction], int]:
    conditions = []
    if ctx.bank_id is not None:
        conditions.append(PendingAction.bank_id == ctx.bank_id)
    if action_type is not None:
        conditions.append(PendingAction.action_type == PendingActionType(action_type).value)
    if status is not None:
        conditions.append(PendingAction.status == PendingActionStatus(status).value)

    count_stmt = select(func.count()).select_from(PendingAction).where(*conditions)
    total = (await db.execute(count_stmt)).scalar_one()
    stmt = (
        select(PendingAction)
        .where(*conditions)
        .order_by(PendingAction.requested_at.desc())
        .offset(offset)
        .limit(limit)
    )
    items = (await db.execute(stmt)).scalars().all()
    return list(items), int(total or 0)
