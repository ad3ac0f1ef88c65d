from decimal import Decimal
from uuid import uuid4

from conftest import (
    BANK_ID,
    FakeResult,
    entity_handler,
    make_applicant,
    make_application,
    make_pending_action,
    make_principal,
    sequence_handler,
)
from origination.api import deps
from origination.core.permissions import RoleType
from origination.core.results import ActionResult
from origination.main import app
from origination.models.applicant import Applicant
from origination.models.loan_application import LoanApplication
from origination.models.pending_action import PendingAction
from origination.schemas.eligibility import EligibilityResult
from origination.services import eligibility


def _act_as(principal):
    async def _get_principal():
        return principal

    app.dependency_overrides[deps.get_current_principal] = _get_principal
    return principal


def test_list_loan_applications(client, fake_db):
    rows = [make_application(), make_application("UNDER_REVIEW")]
    fake_db.on_execute(sequence_handler([FakeResult(scalar=2), FakeResult(items=rows)]))

    resp = client.get("/api/v1/loan-applications?limit=10")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["total"] == 2
    assert [item["status"] for item in body["data"]["items"]] == ["DRAFT", "UNDER_REVIEW"]


def test_create_loan_application(client, fake_db):
    applicant = make_applicant()
    fake_db.on_execute(entity_handler(Applicant, FakeResult(scalar=applicant)))

    resp = client.post(
        "/api/v1/loan-applications",
        json={"applicant_id": str(applicant.id), "loan_type": "MORTGAGE", "amount_requested": "500000"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == "created"
    assert body["data"]["status"] == "DRAFT"
    assert body["data"]["loan_type"] == "MORTGAGE"


def test_create_loan_application_rejects_bad_body(client):
    resp = client.post("/api/v1/loan-applications", json={"loan_type": "YACHT"})

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "validation_failed"
    assert "applicant_id" in body["details"]["errors"]
    assert "loan_type" in body["details"]["errors"]


def test_status_change_invalid_transition_is_conflict(client, fake_db):
    application = make_application("DRAFT")
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))

    resp = client.post(
        f"/api/v1/loan-applications/{application.id}/status",
        json={"status": "UNDER_REVIEW"},
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "invalid_state"
    assert body["details"]["errors"] == {"status": "DRAFT"}


def test_status_change_success(client, fake_db):
    application = make_application("DRAFT")
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))

    resp = client.post(
        f"/api/v1/loan-applications/{application.id}/status",
        json={"status": "PENDING_LOAN_OFFICER_ASSIGNMENT", "remarks": "Sent for assignment"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "PENDING_LOAN_OFFICER_ASSIGNMENT"


def test_status_change_forbidden_for_clerk(client, fake_db):
    _act_as(make_principal(RoleType.CLERK))

    resp = client.post(
        f"/api/v1/loan-applications/{uuid4()}/status",
        json={"status": "PENDING_LOAN_OFFICER_ASSIGNMENT"},
    )

    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"
    assert fake_db.executed == []


def test_get_missing_application_is_not_found(client):
    resp = client.get(f"/api/v1/loan-applications/{uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Loan application not found"


def test_loan_offer_route(client, fake_db):
    application = make_application("PENDING_LOAN_OFFICER_REVIEW", amount_requested=Decimal("50000"))
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))

    resp = client.get(f"/api/v1/loan-applications/{application.id}/offer")

    assert resp.status_code == 200
    data = resp.json()["data"]
    # No income on record, so nothing can be suggested
    assert Decimal(data["suggested_amount"]) == Decimal("0")
    assert data["options"] == []


def test_applicant_eligibility_route(client, monkeypatch):
    applicant_id = uuid4()

    async def _fake(db, ctx, requested_id, *, actor):
        assert requested_id == applicant_id
        return ActionResult.ok(
            eligibility.evaluate_eligibility_from_totals(
                gross_income=Decimal("50000"), total_emi=Decimal("10000"), times_of_net_income=2
            )
        )

    monkeypatch.setattr(eligibility, "calculate_eligibility", _fake)

    resp = client.get(f"/api/v1/applicants/{applicant_id}/eligibility")

    assert resp.status_code == 200
    result = EligibilityResult.model_validate(resp.json()["data"])
    assert result.eligible_loan_amount == Decimal("80000")


def test_create_applicant_route(client, fake_db):
    resp = client.post(
        "/api/v1/applicants",
        json={"first_name": "Meera", "last_name": "Iyer", "email": "meera@example.com"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == "created"
    assert body["data"]["email"] == "meera@example.com"
    assert body["data"]["bank_id"] == str(BANK_ID)


def test_create_income_route(client, fake_db):
    _act_as(make_principal(RoleType.CLERK))
    applicant = make_applicant()
    fake_db.on_execute(entity_handler(Applicant, FakeResult(scalar=applicant)))

    resp = client.post(
        f"/api/v1/applicants/{applicant.id}/incomes",
        json={"details": [{"year": 2025, "gross_income": "600000"}]},
    )

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["income"]["applicant_id"] == str(applicant.id)
    assert [detail["year"] for detail in data["details"]] == [2025]


def test_save_loan_obligation_route_forbidden_for_loan_officer(client, fake_db):
    resp = client.put(
        f"/api/v1/applicants/{uuid4()}/loan-obligation",
        json={"cibil_score": 720, "loans": []},
    )

    assert resp.status_code == 403
    assert fake_db.executed == []


def test_loan_confirmation_route(client, fake_db):
    application = make_application("PENDING_LOAN_OFFICER_REVIEW")
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))

    resp = client.post(
        f"/api/v1/loan-applications/{application.id}/confirmation",
        json={"decision": "REJECT"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "REJECTED_BY_APPLICANT"



def test_timeline_route(client, fake_db):
    application = make_application("DRAFT")
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(scalar=application)))
    fake_db.on_execute(sequence_handler([FakeResult(scalar=0), FakeResult(items=[])]))

    resp = client.get(f"/api/v1/loan-applications/{application.id}/timeline")

    assert resp.status_code == 200
    assert resp.json()["data"] == {"items": [], "total": 0}


def test_reject_pending_action_requires_remarks(client, fake_db):
    _act_as(make_principal(RoleType.BANK_ADMIN))

    resp = client.post(f"/api/v1/pending-actions/{uuid4()}/reject", json={"remarks": ""})

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "validation_failed"
    assert "remarks" in body["details"]["errors"]


def test_approve_pending_action(client, fake_db, loan_officer):
    _act_as(make_principal(RoleType.BANK_ADMIN))
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    resp = client.post(f"/api/v1/pending-actions/{action.id}/approve")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["status"] == "APPROVED"
    assert data["target_record_id"]


def test_list_pending_actions_needs_read_ability(client):
    _act_as(make_principal(RoleType.INSPECTOR))

    resp = client.get("/api/v1/pending-actions")

    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_list_pending_actions(client, fake_db, loan_officer):
    rows = [make_pending_action(requested_by=loan_officer)]
    fake_db.on_execute(sequence_handler([FakeResult(scalar=1), FakeResult(items=rows)]))

    resp = client.get("/api/v1/pending-actions")

    assert resp.status_code == 200
    assert resp.json()["data"]["total"] == 1


def test_record_verification_unknown_is_not_found(client):
    _act_as(make_principal(RoleType.INSPECTOR))

    resp = client.patch(f"/api/v1/verifications/{uuid4()}", json={"result": True})

    assert resp.status_code == 404


def test_my_abilities(client, loan_officer):
    resp = client.get("/api/v1/me/abilities")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user_id"] == str(loan_officer.id)
    assert data["current_role"] == "LOAN_OFFICER"
    assert any(
        rule["subject"] == ["LoanApplication"] and "update" in rule["action"] for rule in data["rules"]
    )
