import pytest

from reimburse.core.errors import ForbiddenError, InvalidTransitionError
from reimburse.schemas.reimbursement import Reimbursement, ReimbursementCategory, ReimbursementStatus
from reimburse.services import lifecycle

Status = ReimbursementStatus


def make_record(status=Status.PENDING, owner_id="10", requester_name="João Silva"):
    return Reimbursement(
        id="1",
        code="R001",
        requester_name=requester_name,
        owner_id=owner_id,
        category=ReimbursementCategory.FUEL,
        amount="120.00",
        description="Viagem cliente ABC",
        status=status,
    )


@pytest.mark.parametrize(
    "current,target",
    [
        (None, Status.DRAFT),
        (None, Status.PENDING),
        (Status.DRAFT, Status.PENDING),
    ],
)
def test_owner_transitions(member, current, target):
    assert lifecycle.can_transition(current, target, member)
    lifecycle.check_transition(current, target, member)


@pytest.mark.parametrize("decision", [Status.APPROVED, Status.REJECTED])
def test_only_admin_decides(admin, member, decision):
    assert lifecycle.can_transition(Status.PENDING, decision, admin)
    assert not lifecycle.can_transition(Status.PENDING, decision, member)
    with pytest.raises(ForbiddenError):
        lifecycle.check_transition(Status.PENDING, decision, member)


@pytest.mark.parametrize(
    "current,target",
    [
        (Status.DRAFT, Status.APPROVED),
        (Status.DRAFT, Status.REJECTED),
        (Status.APPROVED, Status.REJECTED),
        (Status.REJECTED, Status.PENDING),
        (Status.APPROVED, Status.DRAFT),
        (Status.PENDING, Status.DRAFT),
        (None, Status.APPROVED),
    ],
)
def test_undefined_transitions(admin, current, target):
    assert not lifecycle.can_transition(current, target, admin)
    with pytest.raises(InvalidTransitionError):
        lifecycle.check_transition(current, target, admin)


def test_terminal_states_have_no_exits():
    for status in (Status.APPROVED, Status.REJECTED):
        assert lifecycle.is_terminal(status)
        assert lifecycle.TRANSITIONS[status] == {}
    assert not lifecycle.is_terminal(Status.PENDING)


def test_ownership_by_id_then_by_name(member, other_member):
    assert lifecycle.is_owner(make_record(), member)
    assert not lifecycle.is_owner(make_record(), other_member)
    legacy = make_record(owner_id=None)
    assert lifecycle.is_owner(legacy, member)
    assert not lifecycle.is_owner(make_record(owner_id=None, requester_name=""), member)


def test_content_edit_rules(admin, member, other_member):
    assert lifecycle.can_edit_content(make_record(Status.DRAFT), member)
    assert lifecycle.can_edit_content(make_record(Status.PENDING), admin)
    assert not lifecycle.can_edit_content(make_record(Status.PENDING), other_member)
    assert not lifecycle.can_edit_content(make_record(Status.APPROVED), admin)

    with pytest.raises(ForbiddenError):
        lifecycle.check_content_edit(make_record(Status.REJECTED), member)
    with pytest.raises(ForbiddenError):
        lifecycle.check_content_edit(make_record(Status.PENDING), other_member)


def test_check_admin(admin, member):
    lifecycle.check_admin(admin)
    with pytest.raises(ForbiddenError):
        lifecycle.check_admin(member, "delete requests")
