from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.api import deps
from origination.core.permissions import Action, Subject
from origination.core.results import service_action
from origination.core.settings import settings
from origination.models.income import Income, IncomeDetail
from origination.models.loan_obligation import LoanObligation
from origination.schemas.eligibility import EligibilityResult, LoanOffer, TenureOption
from origination.services.applicants import get_applicant_or_404
from origination.services.authz import Principal, authorize, ensure_can
from origination.services.loan_lifecycle import get_application_or_404

TENURE_MONTHS = (12, 24, 36, 48, 60)
_WHOLE = Decimal("1")


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def evaluate_eligibility_from_totals(
    *,
    gross_income: Decimal | int | float | None,
    total_emi: Decimal | int | float | None,
    times_of_net_income: int | None = None,
    applicant_id: UUID | None = None,
) -> EligibilityResult:
    multiplier = times_of_net_income if times_of_net_income is not None else settings.eligibility_times_of_net_income
    gross = _decimal(gross_income)
    emi = _decimal(total_emi)
    net = gross - emi
    return EligibilityResult(
        applicant_id=applicant_id,
        gross_income=gross,
        total_emi=emi,
        net_income=net,
        times_of_net_income=multiplier,
        eligible_loan_amount=net * multiplier,
    )


def calculate_emi(
    principal: Decimal | int | float,
    tenure_months: int,
    annual_rate: Decimal | int | float | None = None,
) -> Decimal:
    """Equated monthly instalment, rounded to the nearest whole unit."""
    if tenure_months <= 0:
        raise ValueError("tenure_months must be positive")
    amount = _decimal(principal)
    rate = _decimal(annual_rate if annual_rate is not None else settings.eligibility_default_annual_rate)
    monthly_rate = rate / Decimal(12) / Decimal(100)
    if monthly_rate == 0:
        emi = amount / tenure_months
    else:
        growth = (1 + monthly_rate) ** tenure_months
        emi = amount * monthly_rate * growth / (growth - 1)
    return emi.quantize(_WHOLE, rounding=ROUND_HALF_UP)


def tenure_options(
    principal: Decimal | int | float,
    annual_rate: Decimal | int | float | None = None,
) -> list[TenureOption]:
    amount = _decimal(principal)
    if amount <= 0:
        return []
    options: list[TenureOption] = []
    for months in TENURE_MONTHS:
        emi = calculate_emi(amount, months, annual_rate)
        options.append(TenureOption(tenure_months=months, emi=emi, total_payable=emi * months))
    return options


async def _latest_gross_income(db: AsyncSession, applicant_id: UUID) -> Decimal:
    income_stmt = (
        select(Income)
        .where(Income.applicant_id == applicant_id, Income.deleted_at.is_(None))
        .order_by(Income.created_at.desc())
        .limit(1)
    )
    income = (await db.execute(income_stmt)).scalar_one_or_none()
    if income is None:
        return Decimal("0")
    detail_stmt = (
        select(IncomeDetail)
        .where(IncomeDetail.income_id == income.id)
        .order_by(IncomeDetail.year.desc())
        .limit(1)
    )
    detail = (await db.execute(detail_stmt)).scalar_one_or_none()
    return _decimal(detail.gross_income if detail else None)


async def _latest_total_emi(db: AsyncSession, applicant_id: UUID) -> Decimal:
    stmt = (
        select(LoanObligation)
        .where(LoanObligation.applicant_id == applicant_id, LoanObligation.deleted_at.is_(None))
        .order_by(LoanObligation.created_at.desc())
        .limit(1)
    )
    obligation = (await db.execute(stmt)).scalar_one_or_none()
    return _decimal(obligation.total_emi if obligation else None)


async def _eligibility_for(db: AsyncSession, applicant_id: UUID) -> EligibilityResult:
    return evaluate_eligibility_from_totals(
        gross_income=await _latest_gross_income(db, applicant_id),
        total_emi=await _latest_total_emi(db, applicant_id),
        applicant_id=applicant_id,
    )


@service_action("Eligibility calculated")
@authorize(Action.READ, Subject.INCOME)
async def calculate_eligibility(
    db: AsyncSession,
    ctx: deps.BankContext,
    applicant_id: UUID,
    *,
    actor: Principal,
) -> EligibilityResult:
    applicant = await get_applicant_or_404(db, ctx, applicant_id)
    ensure_can(actor, Action.READ, Subject.INCOME, resource={"bank_id": applicant.bank_id})
    ensure_can(actor, Action.READ, Subject.LOAN_OBLIGATION, resource={"bank_id": applicant.bank_id})
    return await _eligibility_for(db, applicant.id)


@service_action("Loan offer calculated")
@authorize(Action.READ, Subject.LOAN_APPLICATION)
async def build_loan_offer(
    db: AsyncSession,
    ctx: deps.BankContext,
    loan_application_id: UUID,
    *,
    actor: Principal,
) -> LoanOffer:
    """Eligibility plus EMI options for the lesser of the eligible and requested amounts."""
    application = await get_application_or_404(db, ctx, loan_application_id)
    ensure_can(actor, Action.READ, application)
    ensure_can(actor, Action.READ, Subject.INCOME, resource={"bank_id": application.bank_id})
    eligibility = await _eligibility_for(db, application.applicant_id)
    requested = _decimal(application.amount_requested)
    suggested = max(min(eligibility.eligible_loan_amount, requested), Decimal("0"))
    rate = _decimal(settings.eligibility_default_annual_rate)
    return LoanOffer(
        loan_application_id=application.id,
        amount_requested=requested,
        suggested_amount=suggested,
        annual_rate_percent=rate,
        eligibility=eligibility,
        options=tenure_options(suggested, rate),
    )
