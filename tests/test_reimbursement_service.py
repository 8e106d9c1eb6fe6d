import threading
from decimal import Decimal

import pytest

from reimburse.core.errors import (
    ActionInProgressError,
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    RemoteError,
    RequestTimeoutError,
    ValidationError,
)
from reimburse.schemas.reimbursement import ReimbursementFields, ReimbursementStatus
from reimburse.services.reimbursement_service import ReimbursementManager

from conftest import FakeReimbursementApi

Status = ReimbursementStatus


def fuel_fields(**overrides):
    data = {
        "amount": "120.00",
        "description": "Fuel",
        "category": "Combustível",
        "expense_date": "2025-06-10",
    }
    data.update(overrides)
    return ReimbursementFields(**data)


def test_load_keeps_remote_order(manager):
    assert [r.id for r in manager.records] == ["1", "2", "3"]
    assert manager.loaded


def test_submit_round_trip(fake_api, session_context):
    fake_api.records = []
    manager = ReimbursementManager(fake_api, session_context)

    new_id = manager.submit(fuel_fields(), Status.PENDING)

    reloaded = manager.load()
    matching = [r for r in reloaded if r.id == new_id]
    assert len(matching) == 1
    record = matching[0]
    assert record.amount == Decimal("120.00")
    assert record.description == "Fuel"
    assert record.category.value == "Combustível"
    assert record.expense_date.isoformat() == "2025-06-10"
    assert record.status == Status.PENDING
    assert record.status.value == "Pending"
    assert fake_api.calls[0][1]["status"] == "Pendente"


def test_submit_draft_appends_to_projection(manager, fake_api, member):
    new_id = manager.submit(fuel_fields(), Status.DRAFT)

    record = manager.get(new_id)
    assert record.status == Status.DRAFT
    assert record.requester_name == member.name
    assert record.owner_id == member.id
    assert fake_api.calls[-1][0] == "create"


def test_submit_zero_amount_never_reaches_network(manager, fake_api):
    calls_before = list(fake_api.calls)

    with pytest.raises(ValidationError) as exc_info:
        manager.submit(fuel_fields(amount=0))

    assert exc_info.value.field == "amount"
    assert fake_api.calls == calls_before


def test_submit_reports_first_failing_field(manager):
    with pytest.raises(ValidationError) as exc_info:
        manager.submit(fuel_fields(description="  ", expense_date=None))
    assert exc_info.value.field == "description"


def test_submit_without_session_raises_auth_error(fake_api, session_context):
    session_context.clear()
    manager = ReimbursementManager(fake_api, session_context)

    with pytest.raises(AuthError):
        manager.submit(fuel_fields())
    assert fake_api.calls == []


def test_submit_rejects_terminal_initial_status(manager):
    with pytest.raises(InvalidTransitionError):
        manager.submit(fuel_fields(), Status.APPROVED)


def test_submit_without_echo_reloads(session_context):
    class SilentApi(FakeReimbursementApi):
        def create(self, payload):
            super().create(payload)
            return None

    api = SilentApi()
    manager = ReimbursementManager(api, session_context)

    assert manager.submit(fuel_fields()) is None
    assert [c[0] for c in api.calls] == ["create", "list"]
    assert len(manager.records) == 1


def test_decide_approve_only_changes_status(manager, admin):
    before = manager.get("1")

    after = manager.decide("1", Status.APPROVED, admin)

    assert after.status == Status.APPROVED
    assert after.last_modified != before.last_modified
    unchanged = {"status", "last_modified"}
    for name in before.__fields__:
        if name not in unchanged:
            assert getattr(after, name) == getattr(before, name), name
    assert manager.get("1").status == Status.APPROVED


def test_decide_sends_only_status(manager, fake_api, admin):
    manager.decide("1", Status.REJECTED, admin)
    assert fake_api.calls[-1] == ("update", "1", {"status": "Rejeitado"})


@pytest.mark.parametrize("record_id", ["2", "3"])
def test_decide_requires_pending(manager, fake_api, admin, record_id):
    with pytest.raises(InvalidTransitionError):
        manager.decide(record_id, Status.APPROVED, admin)
    assert fake_api.mutations() == []


def test_decide_by_member_is_forbidden(manager, fake_api, member):
    with pytest.raises(ForbiddenError):
        manager.decide("1", Status.APPROVED, member)
    assert fake_api.mutations() == []
    assert manager.get("1").status == Status.PENDING


def test_second_decision_fails_without_corrupting_state(manager, admin):
    manager.decide("1", Status.APPROVED, admin)
    with pytest.raises(InvalidTransitionError):
        manager.decide("1", Status.REJECTED, admin)
    assert manager.get("1").status == Status.APPROVED


def test_duplicate_in_flight_decision_is_refused(fake_api, session_context, admin):
    entered = threading.Event()
    release = threading.Event()

    class SlowApi(FakeReimbursementApi):
        def update(self, reimbursement_id, payload):
            entered.set()
            release.wait(timeout=5)
            return super().update(reimbursement_id, payload)

    api = SlowApi(fake_api.records)
    manager = ReimbursementManager(api, session_context)
    manager.load()

    worker = threading.Thread(target=manager.decide, args=("1", Status.APPROVED, admin))
    worker.start()
    assert entered.wait(timeout=5)
    assert manager.is_busy("decide", "1")

    with pytest.raises(ActionInProgressError):
        manager.decide("1", Status.APPROVED, admin)

    release.set()
    worker.join(timeout=5)
    assert not manager.is_busy("decide", "1")
    assert len(api.mutations()) == 1
    assert manager.get("1").status == Status.APPROVED


def test_decide_timeout_leaves_projection_unchanged(manager, fake_api, admin):
    fake_api.fail["update"] = RequestTimeoutError()
    with pytest.raises(RequestTimeoutError):
        manager.decide("1", Status.APPROVED, admin)
    assert manager.get("1").status == Status.PENDING
    assert not manager.is_busy("decide", "1")


def test_remove_conflict_keeps_entry(manager, fake_api, admin):
    fake_api.fail["delete"] = ConflictError()

    with pytest.raises(ConflictError):
        manager.remove("2", admin)

    assert "2" in [r.id for r in manager.records]


def test_remove_success_drops_entry(manager, fake_api, admin):
    manager.remove("2", admin)
    assert "2" not in [r.id for r in manager.records]
    assert fake_api.calls[-1] == ("delete", "2")


def test_remove_generic_failure_keeps_entry(manager, fake_api, admin):
    fake_api.fail["delete"] = RemoteError("boom", remote_status=500)
    with pytest.raises(RemoteError):
        manager.remove("2", admin)
    assert "2" in [r.id for r in manager.records]


def test_remove_by_member_is_forbidden(manager, fake_api, member):
    with pytest.raises(ForbiddenError):
        manager.remove("1", member)
    assert fake_api.mutations() == []


def test_owner_edits_pending_request(manager, fake_api, member):
    updated = manager.update_content("1", ReimbursementFields(amount="150,75", description="Viagem cliente ABC e volta"), member)

    assert updated.amount == Decimal("150.75")
    assert updated.description == "Viagem cliente ABC e volta"
    assert updated.status == Status.PENDING
    assert fake_api.calls[-1] == (
        "update",
        "1",
        {"valor": 150.75, "descricao": "Viagem cliente ABC e volta"},
    )
    assert manager.get("1").amount == Decimal("150.75")


def test_admin_edits_someone_elses_draft(manager, admin):
    updated = manager.update_content("3", ReimbursementFields(justification="Reunião com equipe"), admin)
    assert updated.justification == "Reunião com equipe"


def test_non_owner_member_cannot_edit(manager, fake_api, other_member):
    with pytest.raises(ForbiddenError):
        manager.update_content("1", ReimbursementFields(description="x"), other_member)
    assert fake_api.mutations() == []


def test_terminal_request_cannot_be_edited(manager, fake_api, admin):
    with pytest.raises(ForbiddenError):
        manager.update_content("2", ReimbursementFields(description="x"), admin)
    assert fake_api.mutations() == []


def test_edit_revalidates_fields(manager, fake_api, member):
    with pytest.raises(ValidationError) as exc_info:
        manager.update_content("1", ReimbursementFields(amount="-3"), member)
    assert exc_info.value.field == "amount"
    assert fake_api.mutations() == []


def test_owner_submits_draft(manager, fake_api, member):
    updated = manager.update_content("3", ReimbursementFields(), member, submit=True)

    assert updated.status == Status.PENDING
    assert fake_api.calls[-1] == ("update", "3", {"status": "Pendente"})


def test_admin_cannot_submit_someone_elses_draft(manager, fake_api, admin):
    with pytest.raises(ForbiddenError):
        manager.update_content("3", ReimbursementFields(), admin, submit=True)
    assert fake_api.mutations() == []


def test_auth_error_from_remote_propagates(manager, fake_api, admin):
    fake_api.fail["update"] = AuthError()
    with pytest.raises(AuthError):
        manager.decide("1", Status.APPROVED, admin)
    assert manager.get("1").status == Status.PENDING
