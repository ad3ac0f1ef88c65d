from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.errors import unwrap
from origination.schemas.applicant import ApplicantCreate, ApplicantDTO
from origination.schemas.eligibility import EligibilityResult
from origination.schemas.income import IncomeCreate, IncomeResponse
from origination.schemas.loan_obligation import LoanObligationResponse, LoanObligationSave
from origination.services import applicants, eligibility, incomes, loan_obligations
from origination.services.authz import Principal

router = APIRouter(prefix="/applicants", tags=["applicants"])


@router.post("", response_model=ApplicantDTO, status_code=status.HTTP_201_CREATED)
async def create_applicant(
    payload: ApplicantCreate,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> ApplicantDTO:
    result = await applicants.create_applicant(db, ctx, payload, actor=principal)
    return ApplicantDTO.model_validate(unwrap(result))


@router.get("/{applicant_id}", response_model=ApplicantDTO)
async def get_applicant(
    applicant_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> ApplicantDTO:
    result = await applicants.get_applicant(db, ctx, applicant_id, actor=principal)
    return ApplicantDTO.model_validate(unwrap(result))


@router.post("/{applicant_id}/incomes", response_model=IncomeResponse, status_code=status.HTTP_201_CREATED)
async def create_income(
    applicant_id: UUID,
    payload: IncomeCreate,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> IncomeResponse:
    return unwrap(await incomes.create_income(db, ctx, applicant_id, payload, actor=principal))


@router.put("/{applicant_id}/loan-obligation", response_model=LoanObligationResponse)
async def save_loan_obligation(
    applicant_id: UUID,
    payload: LoanObligationSave,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanObligationResponse:
    return unwrap(
        await loan_obligations.save_loan_obligation(db, ctx, applicant_id, payload, actor=principal)
    )


@router.get("/{applicant_id}/loan-obligation", response_model=LoanObligationResponse)
async def get_loan_obligation(
    applicant_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> LoanObligationResponse:
    return unwrap(await loan_obligations.get_loan_obligation(db, ctx, applicant_id, actor=principal))


@router.get("/{applicant_id}/eligibility", response_model=EligibilityResult)
async def get_applicant_eligibility(
    applicant_id: UUID,
    principal: Principal = Depends(deps.get_current_principal),
    ctx: deps.BankContext = Depends(deps.get_bank_context),
    db: AsyncSession = Depends(deps.get_db_session),
) -> EligibilityResult:
    return unwrap(await eligibility.calculate_eligibility(db, ctx, applicant_id, actor=principal))
