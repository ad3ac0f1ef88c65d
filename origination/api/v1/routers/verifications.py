from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.errors import unwrap
from origination.schemas.verification import (
    VerificationCreate,
    VerificationDTO,
    VerificationResultRequest,
)
from origination.services import verifications
from origination.services.authz import Principal

router = APIRouter(tags=["verifications"])


@router.get("/loan-applications/{loan_application_id}/verifications", response_model=list[VerificationDTO])
async def list_verifications(
    loan_application_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> list[VerificationDTO]:
    items = unwrap(await verifications.list_verifications(db, ctx, loan_application_id, actor=principal))
    return [VerificationDTO.model_validate(item) for item in items]


@router.post(
    "/loan-applications/{loan_application_id}/verifications",
    response_model=VerificationDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_verification(
    loan_application_id: UUID,
    payload: VerificationCreate,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> VerificationDTO:
    result = await verifications.create_verification(
        db, ctx, loan_application_id, payload, actor=principal
    )
    return VerificationDTO.model_validate(unwrap(result))


@router.patch("/verifications/{verification_id}", response_model=VerificationDTO)
async def record_verification_result(
    verification_id: UUID,
    payload: VerificationResultRequest,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> VerificationDTO:
    result = await verifications.record_verification_result(
        db, ctx, verification_id, payload, actor=principal
    )
    return VerificationDTO.model_validate(unwrap(result))
