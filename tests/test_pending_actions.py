from uuid import uuid4

import pytest

from conftest import (
    BANK_ID,
    OTHER_BANK_ID,
    FakeResult,
    entity_handler,
    make_pending_action,
    make_principal,
    sequence_handler,
)
from origination.core.permissions import RoleType
from origination.core.results import ErrorKind
from origination.models.pending_action import PendingAction
from origination.models.role_assignment import RoleAssignment
from origination.models.user_profile import UserProfile
from origination.services import pending_actions


def _payload(**overrides):
    payload = {
        "first_name": "Ravi",
        "last_name": "Kumar",
        "email": "Ravi@Example.com",
        "phone_number": "9876543210",
        "role": "CLERK",
        "bank_id": str(BANK_ID),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_request_records_pending_action(fake_db, bank_ctx, loan_officer):
    result = await pending_actions.request_action(
        fake_db, bank_ctx, "REQUEST_BANK_USER_CREATION", _payload(), actor=loan_officer
    )

    assert result.success
    action = result.data
    assert action.status == "PENDING"
    assert action.target_model == "UserProfile"
    assert action.requested_by_id == loan_officer.id
    assert action.payload["email"] == "ravi@example.com"
    assert action.bank_id == BANK_ID
    assert fake_db.committed


@pytest.mark.asyncio
async def test_request_rejects_duplicate_pending_email(fake_db, bank_ctx, loan_officer):
    existing = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=existing)))

    result = await pending_actions.request_action(
        fake_db, bank_ctx, "REQUEST_BANK_USER_CREATION", _payload(), actor=loan_officer
    )

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "email" in result.errors
    assert fake_db.added == []


@pytest.mark.asyncio
async def test_request_for_another_bank_is_refused(fake_db, bank_ctx, loan_officer):
    result = await pending_actions.request_action(
        fake_db,
        bank_ctx,
        "REQUEST_BANK_USER_CREATION",
        _payload(bank_id=str(OTHER_BANK_ID)),
        actor=loan_officer,
    )

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "bank_id" in result.errors


@pytest.mark.asyncio
async def test_request_refuses_platform_roles(fake_db, bank_ctx, loan_officer):
    result = await pending_actions.request_action(
        fake_db, bank_ctx, "REQUEST_BANK_USER_CREATION", _payload(role="SAAS_ADMIN"), actor=loan_officer
    )

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "role" in result.errors


@pytest.mark.asyncio
async def test_request_unknown_action_type(fake_db, bank_ctx, loan_officer):
    result = await pending_actions.request_action(
        fake_db, bank_ctx, "REQUEST_BANK_DELETION", {}, actor=loan_officer
    )

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "action_type" in result.errors


@pytest.mark.asyncio
async def test_approve_creates_user_and_role(fake_db, bank_ctx, loan_officer, bank_admin):
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.approve(fake_db, bank_ctx, action.id, actor=bank_admin)

    assert result.success
    assert action.status == "APPROVED"
    assert action.reviewed_by_id == bank_admin.id
    assert action.reviewed_at is not None
    (user,) = fake_db.added_of(UserProfile)
    (assignment,) = fake_db.added_of(RoleAssignment)
    assert user.email == "ravi@example.com"
    assert assignment.user_id == user.id
    assert assignment.role == "CLERK"
    assert assignment.bank_id == BANK_ID
    assert action.target_record_id == str(user.id)
    assert fake_db.committed


@pytest.mark.asyncio
async def test_second_approval_is_invalid_state(fake_db, bank_ctx, loan_officer, bank_admin):
    action = make_pending_action(requested_by=loan_officer, status="APPROVED")
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.approve(fake_db, bank_ctx, action.id, actor=bank_admin)

    assert result.kind == ErrorKind.INVALID_STATE
    assert fake_db.added_of(UserProfile) == []
    assert not fake_db.committed


@pytest.mark.asyncio
async def test_requester_cannot_approve_own_request(fake_db, bank_ctx, bank_admin):
    action = make_pending_action(requested_by=bank_admin)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.approve(fake_db, bank_ctx, action.id, actor=bank_admin)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert result.message == "Approver cannot be the same as requester"
    assert action.status == "PENDING"


@pytest.mark.asyncio
async def test_loan_officer_cannot_approve(fake_db, bank_ctx, loan_officer):
    result = await pending_actions.approve(fake_db, bank_ctx, uuid4(), actor=loan_officer)

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_approve_fails_when_email_taken(fake_db, bank_ctx, loan_officer, bank_admin):
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))
    fake_db.on_execute(entity_handler(UserProfile, FakeResult(scalar=UserProfile(id=uuid4(), email="ravi@example.com"))))

    result = await pending_actions.approve(fake_db, bank_ctx, action.id, actor=bank_admin)

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "email" in result.errors
    assert not fake_db.committed
    assert fake_db.rollbacks == 1


@pytest.mark.asyncio
async def test_approve_unknown_action_is_not_found(fake_db, bank_ctx, bank_admin):
    result = await pending_actions.approve(fake_db, bank_ctx, uuid4(), actor=bank_admin)
    assert result.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_reject_requires_remarks_before_reading(fake_db, bank_ctx, bank_admin):
    result = await pending_actions.reject(fake_db, bank_ctx, uuid4(), "   ", actor=bank_admin)

    assert result.kind == ErrorKind.VALIDATION_FAILED
    assert "remarks" in result.errors
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_reject_stores_remarks(fake_db, bank_ctx, loan_officer, bank_admin):
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.reject(fake_db, bank_ctx, action.id, " Duplicate staff ", actor=bank_admin)

    assert result.success
    assert action.status == "REJECTED"
    assert action.review_remarks == "Duplicate staff"
    assert fake_db.added_of(UserProfile) == []


@pytest.mark.asyncio
async def test_requester_can_cancel(fake_db, bank_ctx, loan_officer):
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.cancel(fake_db, bank_ctx, action.id, actor=loan_officer)

    assert result.success
    assert action.status == "CANCELLED"


@pytest.mark.asyncio
async def test_other_staff_cannot_cancel(fake_db, bank_ctx, loan_officer):
    action = make_pending_action(requested_by=loan_officer)
    fake_db.on_execute(entity_handler(PendingAction, FakeResult(scalar=action)))

    result = await pending_actions.cancel(fake_db, bank_ctx, action.id, actor=make_principal(RoleType.CLERK))

    assert result.kind == ErrorKind.UNAUTHORIZED
    assert action.status == "PENDING"


@pytest.mark.asyncio
async def test_list_pending_actions(fake_db, bank_ctx, loan_officer, bank_admin):
    rows = [make_pending_action(requested_by=loan_officer)]
    fake_db.on_execute(sequence_handler([FakeResult(scalar=1), FakeResult(items=rows)]))

    result = await pending_actions.list_pending_actions(fake_db, bank_ctx, actor=bank_admin)

    assert result.success
    assert result.data == (rows, 1)
