from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.errors import unwrap
from origination.core.permissions import Action, Subject
from origination.schemas.pending_actions import (
    PendingActionCreate,
    PendingActionDTO,
    PendingActionListResponse,
    PendingActionRejectRequest,
    PendingActionStatus,
    PendingActionType,
)
from origination.services import pending_actions
from origination.services.authz import Principal

router = APIRouter(prefix="/pending-actions", tags=["pending-actions"])


@router.get("", response_model=PendingActionListResponse)
async def list_pending_actions(
    action_type: PendingActionType | None = Query(default=None),
    status_filter: PendingActionStatus | None = Query(default=PendingActionStatus.PENDING, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(deps.require_ability(Action.READ, Subject.PENDING_ACTION)),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PendingActionListResponse:
    items, total = unwrap(
        await pending_actions.list_pending_actions(
            db,
            ctx,
            actor=principal,
            action_type=action_type,
            status=status_filter,
            limit=limit,
            offset=offset,
        )
    )
    return PendingActionListResponse(
        items=[PendingActionDTO.model_validate(item) for item in items],
        total=total,
    )


@router.post("", response_model=PendingActionDTO, status_code=status.HTTP_201_CREATED)
async def request_action(
    payload: PendingActionCreate,
    principal: Principal = Depends(deps.require_ability(Action.CREATE, Subject.PENDING_ACTION)),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PendingActionDTO:
    result = await pending_actions.request_action(
        db, ctx, payload.action_type, payload.payload, actor=principal
    )
    return PendingActionDTO.model_validate(unwrap(result))


@router.post("/{action_id}/approve", response_model=PendingActionDTO)
async def approve_action(
    action_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PendingActionDTO:
    result = await pending_actions.approve(db, ctx, action_id, actor=principal)
    return PendingActionDTO.model_validate(unwrap(result))


@router.post("/{action_id}/reject", response_model=PendingActionDTO)
async def reject_action(
    action_id: UUID,
    payload: PendingActionRejectRequest,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PendingActionDTO:
    result = await pending_actions.reject(db, ctx, action_id, payload.remarks, actor=principal)
    return PendingActionDTO.model_validate(unwrap(result))


@router.post("/{action_id}/cancel", response_model=PendingActionDTO)
async def cancel_action(
    action_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> PendingActionDTO:
    result = await pending_actions.cancel(db, ctx, action_id, actor=principal)
    return PendingActionDTO.model_validate(unwrap(result))
