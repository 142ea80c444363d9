import json

import pytest

from timesheet_workflow import lambda_function
from timesheet_workflow.handlers import admin_handlers, session_handlers
from timesheet_workflow.models.confirmation_model import ConfirmationModel
from timesheet_workflow.models.session_model import SessionModel
from timesheet_workflow.services.confirmation_service import ConfirmationService
from timesheet_workflow.services.session_service import SessionService


@pytest.fixture(autouse=True)
def wired(monkeypatch, backend, sessions_table, confirmations_table):
    factory = lambda token=None: backend.client(token)  # noqa: E731
    monkeypatch.setattr(session_handlers, "session_service",
                        SessionService(SessionModel(sessions_table), api_factory=factory))
    monkeypatch.setattr(admin_handlers, "confirmation_service",
                        ConfirmationService(ConfirmationModel(confirmations_table)))
    monkeypatch.setattr(lambda_function, "api_factory", factory)


def _event(method, action=None, body=None, session_id=None, params=None, origin="http://localhost:3000"):
    headers = {"origin": origin}
    if session_id:
        headers["Cookie"] = f"theme=dark; sessionId={session_id}"
    query = dict(params or {})
    if method == "GET" and action:
        query["action"] = action
    payload = dict(body or {})
    if method != "GET" and action:
        payload["action"] = action
    return {
        "httpMethod": method,
        "path": "/workflow",
        "headers": headers,
        "queryStringParameters": query or None,
        "body": json.dumps(payload) if payload else None,
    }


def _call(*args, **kwargs):
    response = lambda_function.lambda_handler(_event(*args, **kwargs), None)
    return response["statusCode"], json.loads(response["body"]), response["headers"]


def _login(email):
    status, body, headers = _call("POST", "login", {"email": email, "password": "pw"})
    assert status == 200
    assert headers["Set-Cookie"].startswith(f"sessionId={body['sessionId']};")
    return body["sessionId"]


def test_preflight():
    status, body, headers = _call("OPTIONS")
    assert status == 200
    assert headers["Access-Control-Allow-Origin"] == "http://localhost:3000"


def test_unknown_origin_is_not_echoed():
    _, _, headers = _call("OPTIONS", origin="http://evil.example")
    assert headers["Access-Control-Allow-Origin"] == "null"


def test_requests_without_session_are_refused():
    status, body, _ = _call("GET", "listEntries")
    assert status == 403
    assert body["errorType"] == "AuthorizationError"


def test_unknown_action():
    status, body, _ = _call("POST", "launchRockets")
    assert status == 400
    assert body["field"] == "action"


def test_invalid_json_body():
    event = _event("POST")
    event["body"] = "{not json"
    response = lambda_function.lambda_handler(event, None)
    assert response["statusCode"] == 400


def test_employee_manager_round_trip(backend):
    employee = _login("eve@example.com")
    status, body, _ = _call("POST", "createEntry",
                            {"workDate": "2024-03-05", "projectId": 10, "hoursWorked": 8}, session_id=employee)
    assert status == 201
    entry_id = body["entry"]["id"]
    assert body["entry"]["approvalStatus"] == "PENDING"

    manager = _login("maya@example.com")
    status, body, _ = _call("POST", "approve", {"timesheetId": entry_id, "remarks": "ok"}, session_id=manager)
    assert status == 200
    assert body["entry"]["locked"] is True

    status, body, _ = _call("POST", "updateEntry", {"timesheetId": entry_id, "hoursWorked": 9}, session_id=employee)
    assert status == 403

    status, body, _ = _call("POST", "approve", {"timesheetId": entry_id}, session_id=manager)
    assert status == 409
    assert body["currentStatus"] == "APPROVED"


def test_validation_error_names_the_field():
    employee = _login("eve@example.com")
    status, body, _ = _call("POST", "createEntry", {"workDate": "2024-03-05", "hoursWorked": 8},
                            session_id=employee)
    assert status == 400
    assert body["field"] == "projectId"


def test_decide_many_reports_partial_success(backend):
    pending_id = backend.add_timesheet(5)
    done_id = backend.add_timesheet(6, status="REJECTED")
    manager = _login("maya@example.com")
    status, body, _ = _call("POST", "decideMany",
                            {"timesheetIds": [pending_id, done_id], "status": "APPROVED"}, session_id=manager)
    assert status == 207
    assert len(body["succeeded"]) == 1
    assert body["failed"][0]["timesheetId"] == done_id


def test_manager_stats_via_get():
    manager = _login("maya@example.com")
    status, body, _ = _call("GET", "managerStats", session_id=manager)
    assert status == 200
    assert body["teamCount"] == 3


def test_remote_outage_maps_to_bad_gateway(backend):
    employee = _login("eve@example.com")
    backend.failures[("GET", "/api/timesheets")] = (500, "db down")
    status, body, _ = _call("GET", "listEntries", session_id=employee)
    assert status == 502
    assert body["error"] == "db down"


def test_session_header_fallback_and_logout(sessions_table):
    employee = _login("eve@example.com")
    event = _event("GET", "me")
    event["headers"]["X-Session-Id"] = employee
    response = lambda_function.lambda_handler(event, None)
    assert json.loads(response["body"])["user"]["id"] == 5

    status, _, headers = _call("POST", "logout", session_id=employee)
    assert status == 200
    assert "Max-Age=0" in headers["Set-Cookie"]
    assert employee not in sessions_table.items


def test_admin_manager_reassignment_flow(backend):
    admin = _login("ada@example.com")
    status, body, _ = _call("POST", "proposeManagerChange", {"departmentId": 1, "managerId": 9}, session_id=admin)
    assert status == 202
    confirmation_id = body["confirmation"]["confirmationID"]
    assert body["confirmation"]["impact"]["demote"] == [3]

    status, body, _ = _call("POST", "commitConfirmation", {"confirmationID": confirmation_id}, session_id=admin)
    assert status == 200
    assert backend.users[3]["role"] == "employee"
    assert backend.departments[1]["managerId"] == 9


def test_unexpected_errors_get_an_error_id(monkeypatch):
    employee = _login("eve@example.com")

    def explode(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setitem(lambda_function.ROUTES, ("GET", "me"), explode)
    status, body, _ = _call("GET", "me", session_id=employee)
    assert status == 500
    assert body["errorId"].startswith("tsw-")


def test_entries_for_date(backend):
    entry_id = backend.add_timesheet(5, work_date="2024-03-04")
    backend.add_timesheet(5, work_date="2024-03-05")
    employee = _login("eve@example.com")

    status, body, _ = _call("GET", "entriesForDate", params={"date": "2024-03-04"}, session_id=employee)
    assert status == 200
    assert [e["id"] for e in body["entries"]] == [entry_id]

    status, body, _ = _call("GET", "entriesForDate", session_id=employee)
    assert status == 400
