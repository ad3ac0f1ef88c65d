from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.errors import unwrap
from origination.schemas.eligibility import LoanOffer
from origination.schemas.loan import (
    LoanApplicationCreate,
    LoanApplicationDTO,
    LoanApplicationListResponse,
    LoanApplicationUpdate,
    LoanConfirmationRequest,
    LoanStatus,
    LoanStatusUpdateRequest,
    LoanTenureUpdateRequest,
)
from origination.schemas.timeline import TimelineEventDTO, TimelineListResponse
from origination.services import eligibility, loan_lifecycle
from origination.services.authz import Principal

router = APIRouter(prefix="/loan-applications", tags=["loan-applications"])


@router.get("", response_model=LoanApplicationListResponse)
async def list_loan_applications(
    status_filter: LoanStatus | None = Query(default=None, alias="status"),
    applicant_id: UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationListResponse:
    items, total = unwrap(
        await loan_lifecycle.list_loan_applications(
            db,
            ctx,
            actor=principal,
            status=status_filter,
            applicant_id=applicant_id,
            limit=limit,
            offset=offset,
        )
    )
    return LoanApplicationListResponse(
        items=[LoanApplicationDTO.model_validate(item) for item in items],
        total=total,
    )


@router.post("", response_model=LoanApplicationDTO, status_code=status.HTTP_201_CREATED)
async def create_loan_application(
    payload: LoanApplicationCreate,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.create_loan_application_with_log(db, ctx, payload, actor=principal)
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.get("/{loan_application_id}", response_model=LoanApplicationDTO)
async def get_loan_application(
    loan_application_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.get_loan_application(db, ctx, loan_application_id, actor=principal)
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.patch("/{loan_application_id}", response_model=LoanApplicationDTO)
async def update_loan_application(
    loan_application_id: UUID,
    payload: LoanApplicationUpdate,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.update_loan_application(
        db, ctx, loan_application_id, payload, actor=principal
    )
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.post("/{loan_application_id}/status", response_model=LoanApplicationDTO)
async def update_loan_application_status(
    loan_application_id: UUID,
    payload: LoanStatusUpdateRequest,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.update_status_with_log(
        db,
        ctx,
        loan_application_id,
        payload.status,
        actor=principal,
        remarks=payload.remarks,
    )
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.post("/{loan_application_id}/complete-verification", response_model=LoanApplicationDTO)
async def complete_verification(
    loan_application_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.complete_verification(db, ctx, loan_application_id, actor=principal)
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.post("/{loan_application_id}/confirmation", response_model=LoanApplicationDTO)
async def complete_loan_confirmation(
    loan_application_id: UUID,
    payload: LoanConfirmationRequest,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.complete_loan_confirmation(
        db, ctx, loan_application_id, payload, actor=principal
    )
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.put("/{loan_application_id}/tenure", response_model=LoanApplicationDTO)
async def update_loan_application_tenure(
    loan_application_id: UUID,
    payload: LoanTenureUpdateRequest,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanApplicationDTO:
    result = await loan_lifecycle.update_loan_application_tenure(
        db, ctx, loan_application_id, payload, actor=principal
    )
    return LoanApplicationDTO.model_validate(unwrap(result))


@router.get("/{loan_application_id}/offer", response_model=LoanOffer)
async def get_loan_offer(
    loan_application_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanOffer:
    return unwrap(await eligibility.build_loan_offer(db, ctx, loan_application_id, actor=principal))


@router.get("/{loan_application_id}/timeline", response_model=TimelineListResponse)
async def get_loan_application_timeline(
    loan_application_id: UUID,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> TimelineListResponse:
    items, total = unwrap(
        await loan_lifecycle.get_application_timeline(
            db, ctx, loan_application_id, actor=principal, limit=limit, offset=offset
        )
    )
    return TimelineListResponse(
        items=[TimelineEventDTO.model_validate(item) for item in items],
        total=total,
    )
