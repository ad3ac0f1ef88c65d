from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import (
    FakeResult,
    entity_handler,
    make_applicant,
    make_application,
    make_principal,
)
from origination.core.permissions import RoleType
from origination.core.results import ErrorKind
from origination.models.applicant import Applicant
from origination.models.income import Income, IncomeDetail
from origination.models.loan_application import LoanApplication
from origination.models.loan_obligation import LoanObligation
from origination.services import eligibility


def test_eligible_amount_is_multiple_of_net_income():
    result = eligibility.evaluate_eligibility_from_totals(
        gross_income=Decimal("50000"), total_emi=Decimal("10000"), times_of_net_income=2
    )
    assert result.net_income == Decimal("40000")
    assert result.eligible_loan_amount == Decimal("80000")
    assert result.times_of_net_income == 2


def test_missing_figures_count_as_zero():
    result = eligibility.evaluate_eligibility_from_totals(gross_income=None, total_emi=None)
    assert result.gross_income == Decimal("0")
    assert result.total_emi == Decimal("0")
    assert result.eligible_loan_amount == Decimal("0")


def test_obligations_above_income_go_negative():
    result = eligibility.evaluate_eligibility_from_totals(
        gross_income=10000, total_emi=15000, times_of_net_income=2
    )
    assert result.net_income == Decimal("-5000")
    assert result.eligible_loan_amount == Decimal("-10000")


def test_emi_matches_reducing_balance_formula():
    assert eligibility.calculate_emi(Decimal("100000"), 12, Decimal("12")) == Decimal("8885")
    assert eligibility.calculate_emi(Decimal("100000"), 24, Decimal("12")) == Decimal("4707")


def test_emi_without_interest_is_straight_division():
    assert eligibility.calculate_emi(Decimal("120000"), 12, 0) == Decimal("10000")


def test_emi_rejects_non_positive_tenure():
    with pytest.raises(ValueError):
        eligibility.calculate_emi(Decimal("1000"), 0, 12)


def test_tenure_options_cover_standard_terms():
    options = eligibility.tenure_options(Decimal("100000"), Decimal("12"))
    assert [option.tenure_months for option in options] == [12, 24, 36, 48, 60]
    first = options[0]
    assert first.total_payable == first.emi * 12
    assert eligibility.tenure_options(Decimal("0")) == []


@pytest.mark.asyncio
async def test_calculate_eligibility_uses_latest_records(fake_db, bank_ctx, loan_officer):
    applicant = make_applicant()
    income = Income(id=uuid4(), applicant_id=applicant.id)
    detail = IncomeDetail(id=uuid4(), income_id=income.id, year=2025, gross_income=Decimal("50000"))
    obligation = LoanObligation(
        id=uuid4(), applicant_id=applicant.id, total_emi=Decimal("10000")
    )
    fake_db.on_execute(entity_handler(Applicant, FakeResult(scalar=applicant)))
    fake_db.on_execute(entity_handler(Income, FakeResult(scalar=income)))
    fake_db.on_execute(entity_handler(IncomeDetail, FakeResult(scalar=detail)))
    fake_db.on_execute(entity_handler(LoanObligation, FakeResult(scalar=obligation)))

    result = await eligibility.calculate_eligibility(fake_db, bank_ctx, applicant.id, actor=loan_officer)

    assert result.success
    assert result.data.applicant_id == applicant.id
    assert result.data.eligible_loan_amount == Decimal("80000")


@pytest.mark.asyncio
async def test_calculate_eligibility_without_financials(fake_db, bank_ctx, loan_officer):
    applicant = make_applicant()
    fake_db.on_execute(entity_handler(Applicant, FakeResult(scalar=applicant)))

    result = await eligibility.calculate_eligibility(fake_db, bank_ctx, applicant.id, actor=loan_officer)

    assert result.success
    assert result.data.eligible_loan_amount == Decimal("0")


@pytest.mark.asyncio
async def test_calculate_eligibility_unknown_applicant(fake_db, bank_ctx, loan_officer):
    result = await eligibility.calculate_eligibility(fake_db, bank_ctx, uuid4(), actor=loan_officer)
    assert result.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_calculate_eligibility_requires_income_access(fake_db, bank_ctx):
    result = await eligibility.calculate_eligibility(
        fake_db, bank_ctx, uuid4(), actor=make_principal(RoleType.INSPECTOR)
    )
    assert result.kind == ErrorKind.UNAUTHORIZED
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_loan_offer_caps_suggestion_at_eligibility(fake_db, bank_ctx, loan_officer):
    application = make_application("PENDING_LOAN_OFFICER_REVIEW", amount_requested=Decimal("200000"))
    income = Income(id=uuid4(), applicant_id=application.applicant_id)
    detail = IncomeDetail(id=uuid4(), income_id=income.id, year=2025, gross_income=Decimal("50000"))
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))
    fake_db.on_execute(entity_handler(Income, FakeResult(scalar=income)))
    fake_db.on_execute(entity_handler(IncomeDetail, FakeResult(scalar=detail)))

    result = await eligibility.build_loan_offer(fake_db, bank_ctx, application.id, actor=loan_officer)

    assert result.success
    offer = result.data
    assert offer.amount_requested == Decimal("200000")
    assert offer.suggested_amount == Decimal("100000")
    assert len(offer.options) == 5
    assert offer.options[0].emi == eligibility.calculate_emi(Decimal("100000"), 12)
