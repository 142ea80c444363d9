import pytest

from timesheet_workflow.models.confirmation_model import ConfirmationModel
from timesheet_workflow.services.confirmation_service import ConfirmationService
from timesheet_workflow.utils.errors import AuthorizationError, NotFoundError


class Clock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def confirmations(confirmations_table, clock):
    return ConfirmationService(ConfirmationModel(confirmations_table), ttl_seconds=60, clock=clock)


def test_propose_then_commit_returns_payload(confirmations, session_for):
    admin = session_for(1)
    token = confirmations.propose("user.delete", {"userId": 5}, "Delete Eve", admin)
    assert token.to_dict()["expiresAt"] == 1_000_060

    committed = confirmations.commit(token.confirmation_id, admin)
    assert committed.action == "user.delete"
    assert committed.payload == {"userId": 5}


def test_commit_is_single_use(confirmations, session_for):
    admin = session_for(1)
    token = confirmations.propose("user.delete", {"userId": 5}, "Delete Eve", admin)
    confirmations.commit(token.confirmation_id, admin)
    with pytest.raises(NotFoundError):
        confirmations.commit(token.confirmation_id, admin)


def test_commit_by_another_user_is_refused(confirmations, session_for, confirmations_table):
    token = confirmations.propose("user.delete", {"userId": 5}, "Delete Eve", session_for(1))
    with pytest.raises(AuthorizationError):
        confirmations.commit(token.confirmation_id, session_for(3))
    assert token.confirmation_id in confirmations_table.items


def test_expired_confirmation(confirmations, session_for, clock, confirmations_table):
    admin = session_for(1)
    token = confirmations.propose("user.delete", {"userId": 5}, "Delete Eve", admin)
    clock.now += 61
    with pytest.raises(NotFoundError):
        confirmations.commit(token.confirmation_id, admin)
    assert confirmations_table.items == {}


def test_action_mismatch(confirmations, session_for):
    admin = session_for(1)
    token = confirmations.propose("user.delete", {"userId": 5}, "Delete Eve", admin)
    with pytest.raises(NotFoundError):
        confirmations.commit(token.confirmation_id, admin, expected_action="department.delete")


def test_unknown_confirmation(confirmations, session_for):
    with pytest.raises(NotFoundError):
        confirmations.commit("does-not-exist", session_for(1))
