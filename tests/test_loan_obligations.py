from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import FakeResult, entity_handler, make_applicant, make_principal, timeline_events
from origination.core.permissions import RoleType
from origination.core.results import ErrorKind
from origination.models.applicant import Applicant
from origination.models.loan_obligation import LoanObligation, LoanObligationDetail
from origination.services import loan_obligations

OBLIGATION_BODY = {
    "cibil_score": 742,
    "loans": [
        {"outstanding_loan": "250000", "emi_amount": "8500", "loan_type": "VEHICLE", "bank_name": "State Bank"},
        {"outstanding_loan": "90000", "emi_amount": "4200", "loan_date": "2023-04-01"},
    ],
}


def _with_applicant(fake_db):
    applicant = make_applicant()
    fake_db.on_execute(entity_handler(Applicant, FakeResult(scalar=applicant)))
    return applicant


def _existing_obligation(applicant_id):
    now = datetime.now(timezone.utc)
    return LoanObligation(
        id=uuid4(),
        applicant_id=applicant_id,
        cibil_score=650,
        total_loan=Decimal("10"),
        total_emi=Decimal("1"),
        created_at=now,
        updated_at=now,
    )


@pytest.mark.asyncio
async def test_first_save_creates_obligation_with_totals(fake_db, bank_ctx):
    clerk = make_principal(RoleType.CLERK)
    applicant = _with_applicant(fake_db)

    result = await loan_obligations.save_loan_obligation(
        fake_db, bank_ctx, applicant.id, OBLIGATION_BODY, actor=clerk
    )

    assert result.success
    (obligation,) = fake_db.added_of(LoanObligation)
    assert obligation.applicant_id == applicant.id
    assert obligation.cibil_score == 742
    assert obligation.total_loan == Decimal("340000")
    assert obligation.total_emi == Decimal("12700")
    loans = fake_db.added_of(LoanObligationDetail)
    assert len(loans) == 2
    assert all(loan.loan_obligation_id == obligation.id for loan in loans)
    assert result.data.obligation.total_emi == Decimal("12700")
    assert [loan.bank_name for loan in result.data.loans] == ["State Bank", None]

    (event,) = timeline_events(fake_db)
    assert event.entity_type == "APPLICANT"
    assert event.event_type == "APPLICATION_UPDATED"
    assert event.action_data["loan_count"] == 2
    assert event.action_data["total_emi"] == "12700"
    assert fake_db.committed


@pytest.mark.asyncio
async def test_saving_again_replaces_loans(fake_db, bank_ctx, bank_admin):
    applicant = _with_applicant(fake_db)
    existing = _existing_obligation(applicant.id)
    fake_db.on_execute(entity_handler(LoanObligation, FakeResult(scalar=existing)))

    result = await loan_obligations.save_loan_obligation(
        fake_db, bank_ctx, applicant.id, {"cibil_score": 800, "loans": []}, actor=bank_admin
    )

    assert result.success
    assert fake_db.added_of(LoanObligation) == [existing]
    assert existing.cibil_score == 800
    assert existing.total_loan == Decimal("0")
    assert existing.total_emi == Decimal("0")
    assert fake_db.added_of(LoanObligationDetail) == []
    # Applicant lookup, obligation lookup, then the soft delete of old loans.
    assert len(fake_db.executed) == 3


@pytest.mark.asyncio
async def test_clerk_cannot_replace_existing_obligation(fake_db, bank_ctx):
    clerk = make_principal(RoleType.CLERK)
    applicant = _with_applicant(fake_db)
    existing = _existing_obligation(applicant.id)
    fake_db.on_execute(entity_handler(LoanObligation, FakeResult(scalar=existing)))

    result = await loan_obligations.save_loan_obligation(
        fake_db, bank_ctx, applicant.id, OBLIGATION_BODY, actor=clerk
    )

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert existing.cibil_score == 650
    assert timeline_events(fake_db) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [299, 901])
async def test_cibil_score_out_of_range(fake_db, bank_ctx, bank_admin, score):
    result = await loan_obligations.save_loan_obligation(
        fake_db, bank_ctx, uuid4(), {"cibil_score": score, "loans": []}, actor=bank_admin
    )

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "cibil_score" in result.errors
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_loan_officer_cannot_save_obligation(fake_db, bank_ctx, loan_officer):
    result = await loan_obligations.save_loan_obligation(
        fake_db, bank_ctx, uuid4(), OBLIGATION_BODY, actor=loan_officer
    )

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_get_obligation_lists_live_loans(fake_db, bank_ctx, loan_officer):
    applicant = _with_applicant(fake_db)
    existing = _existing_obligation(applicant.id)
    loan = LoanObligationDetail(
        id=uuid4(),
        loan_obligation_id=existing.id,
        outstanding_loan=Decimal("10"),
        emi_amount=Decimal("1"),
    )
    fake_db.on_execute(entity_handler(LoanObligation, FakeResult(scalar=existing)))
    fake_db.on_execute(entity_handler(LoanObligationDetail, FakeResult(items=[loan])))

    result = await loan_obligations.get_loan_obligation(fake_db, bank_ctx, applicant.id, actor=loan_officer)

    assert result.success
    assert result.data.obligation.id == existing.id
    assert [item.emi_amount for item in result.data.loans] == [Decimal("1")]


@pytest.mark.asyncio
async def test_get_obligation_without_record_is_not_found(fake_db, bank_ctx, loan_officer):
    _with_applicant(fake_db)

    result = await loan_obligations.get_loan_obligation(fake_db, bank_ctx, uuid4(), actor=loan_officer)

    assert result.kind == ErrorKind.NOT_FOUND
