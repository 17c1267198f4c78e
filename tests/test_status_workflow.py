import pytest

from app.core.errors import AuthorizationError, ValidationError
from app.models.complaint import ComplaintStatus
from app.services.status_workflow import StatusWorkflowEngine

from conftest import ADMIN, CITIZEN, WORKER_W, WORKER_X


def complaint(status="OPEN", assigned_to=None):
    data = {"id": "c1", "status": status}
    if assigned_to:
        data["assigned_to"] = assigned_to
    return data


def test_parse_status_accepts_any_case():
    assert StatusWorkflowEngine.parse_status("cleaned") == ComplaintStatus.CLEANED


@pytest.mark.parametrize("value", ["DONE", "", None])
def test_parse_status_rejects_unknown(value):
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.parse_status(value)


def test_missing_status_reads_as_open():
    assert StatusWorkflowEngine.current_status({"id": "c1"}) == ComplaintStatus.OPEN


def test_only_admin_can_assign():
    for actor in (CITIZEN, WORKER_W):
        with pytest.raises(AuthorizationError):
            StatusWorkflowEngine.check_assign(actor, complaint(), "worker-w")
    StatusWorkflowEngine.check_assign(ADMIN, complaint(), "worker-w")


def test_reassignment_allowed_while_assigned():
    StatusWorkflowEngine.check_assign(ADMIN, complaint("ASSIGNED", "worker-w"), "worker-x")


@pytest.mark.parametrize("status", ["CLEANED", "CLOSED"])
def test_terminal_states_cannot_be_assigned(status):
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.check_assign(ADMIN, complaint(status, "worker-w"), "worker-x")


def test_assign_requires_worker_id():
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.check_assign(ADMIN, complaint(), "  ")


def test_assignee_can_mark_cleaned():
    StatusWorkflowEngine.check_mark_cleaned(WORKER_W, complaint("ASSIGNED", "worker-w"))


def test_other_worker_cannot_mark_cleaned():
    with pytest.raises(AuthorizationError):
        StatusWorkflowEngine.check_mark_cleaned(WORKER_X, complaint("ASSIGNED", "worker-w"))


def test_admin_cannot_use_worker_cleanup():
    with pytest.raises(AuthorizationError):
        StatusWorkflowEngine.check_mark_cleaned(ADMIN, complaint("ASSIGNED", "worker-w"))


@pytest.mark.parametrize("status", ["OPEN", "CLEANED", "CLOSED"])
def test_mark_cleaned_requires_assigned(status):
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.check_mark_cleaned(WORKER_W, complaint(status, "worker-w"))


def test_worker_status_update_limited_to_cleaned():
    assigned = complaint("ASSIGNED", "worker-w")
    StatusWorkflowEngine.check_status_update(WORKER_W, assigned, ComplaintStatus.CLEANED)
    with pytest.raises(AuthorizationError):
        StatusWorkflowEngine.check_status_update(WORKER_W, assigned, ComplaintStatus.CLOSED)


def test_citizen_cannot_update_status():
    with pytest.raises(AuthorizationError):
        StatusWorkflowEngine.check_status_update(CITIZEN, complaint(), ComplaintStatus.CLOSED)


@pytest.mark.parametrize("current,target", [
    ("OPEN", "CLOSED"),
    ("ASSIGNED", "CLEANED"),
    ("ASSIGNED", "CLOSED"),
    ("CLEANED", "CLOSED"),
])
def test_admin_follows_state_graph(current, target):
    StatusWorkflowEngine.check_status_update(
        ADMIN, complaint(current, "worker-w" if current != "OPEN" else None), ComplaintStatus(target)
    )


@pytest.mark.parametrize("current,target", [
    ("CLOSED", "OPEN"),
    ("CLEANED", "ASSIGNED"),
    ("CLEANED", "OPEN"),
    ("OPEN", "CLEANED"),
])
def test_admin_cannot_leave_terminal_or_skip_assignment(current, target):
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.check_status_update(ADMIN, complaint(current, "worker-w"), ComplaintStatus(target))


def test_admin_cannot_set_assigned_without_assignee():
    with pytest.raises(ValidationError):
        StatusWorkflowEngine.check_status_update(ADMIN, complaint("OPEN"), ComplaintStatus.ASSIGNED)


def test_history_entry_shape():
    entry = StatusWorkflowEngine.create_status_history_entry("OPEN", "ASSIGNED", "admin-1", "admin")
    assert entry["from"] == "OPEN"
    assert entry["to"] == "ASSIGNED"
    assert entry["changed_by"] == "admin-1"
    assert entry["timestamp"].tzinfo is not None
