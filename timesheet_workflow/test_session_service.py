import pytest

from timesheet_workflow.models.entities import Role
from timesheet_workflow.models.session_model import SessionModel
from timesheet_workflow.services.session_service import SessionService, extract_token
from timesheet_workflow.utils.errors import AuthorizationError, ValidationError


@pytest.fixture
def service(backend, sessions_table):
    return SessionService(SessionModel(sessions_table), api_factory=lambda token=None: backend.client(token))


def test_login_persists_token_and_profile_in_one_item(service, sessions_table):
    session = service.login("maya@example.com", "pw")
    assert session.role is Role.MANAGER
    assert session.user.department_id == 1

    item = sessions_table.items[session.session_id]
    assert item["token"] == session.token
    assert item["profile"]["id"] == 3
    assert isinstance(item["expiresAt"], int)


def test_login_with_bad_password(service, sessions_table):
    with pytest.raises(AuthorizationError):
        service.login("maya@example.com", "nope")
    assert sessions_table.items == {}


def test_login_requires_email_and_password(service, backend):
    with pytest.raises(ValidationError):
        service.login("", "pw")
    assert backend.calls == []


def test_profile_falls_back_to_claims_when_details_fail(service, backend):
    backend.failures[("GET", "/api/users/me")] = (500, "boom")
    session = service.login("eve@example.com", "pw")
    assert session.user_id == 5
    assert session.user.email == "eve@example.com"
    assert session.user.department_id is None


def test_role_comes_from_the_credential(service, backend):
    # Promoted after the token was issued: takes effect on next login only.
    backend.users[5]["role"] = "manager"
    session = service.login("eve@example.com", "pw")
    assert session.role is Role.MANAGER
    backend.users[5]["role"] = "employee"
    assert service.rehydrate(session.session_id).role is Role.MANAGER


def test_rehydrate_and_logout(service, sessions_table):
    session = service.login("eve@example.com", "pw")
    restored = service.rehydrate(session.session_id)
    assert restored.user_id == 5
    assert restored.token == session.token

    service.logout(session.session_id)
    assert session.session_id not in sessions_table.items
    with pytest.raises(AuthorizationError):
        service.rehydrate(session.session_id)


def test_expired_session_is_cleared(service, sessions_table, backend):
    sessions_table.put_item(Item={
        "sessionID": "abc123",
        "token": backend.token_for(5, expires_in=-5),
        "profile": {"id": 5},
    })
    with pytest.raises(AuthorizationError):
        service.rehydrate("abc123")
    assert "abc123" not in sessions_table.items


def test_rehydrate_without_session_id(service):
    with pytest.raises(AuthorizationError):
        service.rehydrate(None)


@pytest.mark.parametrize("payload,expected", [
    ("tok.en.value", "tok.en.value"),
    ({"token": "a.b.c"}, "a.b.c"),
    ({"data": "a.b.c"}, "a.b.c"),
    ({"data": {"token": "a.b.c"}}, "a.b.c"),
    ({"message": "no token"}, None),
    (None, None),
])
def test_extract_token(payload, expected):
    assert extract_token(payload) == expected
