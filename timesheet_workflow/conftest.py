import copy
import json
import re
import time

import httpx
import jwt
import pytest

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import SessionContext, User

BASE_URL = "http://api.test"


def make_token(email="user@example.com", role="ROLE_EMPLOYEE", user_id=1, expires_in=3600, **claims):
    now = int(time.time())
    payload = {"sub": email, "role": role, "userId": user_id, "iat": now, "exp": now + expires_in}
    payload.update(claims)
    return jwt.encode(payload, "secret", algorithm="HS256")


class FakeTable:
    """Just enough of a boto3 DynamoDB Table for the session and confirmation models"""

    def __init__(self, key_name):
        self.key_name = key_name
        self.items = {}

    def put_item(self, Item):
        self.items[Item[self.key_name]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        item = self.items.get(Key[self.key_name])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, Key, ReturnValues=None):
        old = self.items.pop(Key[self.key_name], None)
        if ReturnValues == "ALL_OLD" and old is not None:
            return {"Attributes": old}
        return {}


class FakeBackend:
    """
    In-memory stand-in for the timesheet REST API, served through
    httpx.MockTransport. Every response uses the {success, message, data}
    envelope. ``failures`` forces a status for a (method, path) pair and
    ``on_status_write`` runs just before a status PUT is applied.
    """

    def __init__(self):
        self.users = {}
        self.departments = {}
        self.projects = {}
        self.assignments = {}
        self.timesheets = {}
        self.passwords = {}
        self.calls = []
        self.failures = {}
        self.on_status_write = None
        self._next_id = 100

    # ----- seeding -----
    def next_id(self):
        self._next_id += 1
        return self._next_id

    def add_user(self, user_id, name, role, department_id=None, password="pw"):
        self.users[user_id] = {
            "id": user_id,
            "email": f"{name.lower()}@example.com",
            "name": name,
            "role": role,
            "departmentId": department_id,
            "active": True,
        }
        self.passwords[self.users[user_id]["email"]] = (password, user_id)

    def add_department(self, dept_id, name, manager_id=None):
        self.departments[dept_id] = {"id": dept_id, "name": name, "description": None, "managerId": manager_id}

    def add_project(self, project_id, name, department_id):
        self.projects[project_id] = {
            "id": project_id, "name": name, "description": None,
            "startDate": "2024-01-01", "endDate": "2024-12-31",
            "departmentId": department_id, "status": "ACTIVE",
        }

    def add_assignment(self, user_id, project_id, role="DEVELOPER"):
        assignment_id = self.next_id()
        self.assignments[assignment_id] = {
            "id": assignment_id, "userId": user_id, "projectId": project_id, "roleInProject": role,
        }
        return assignment_id

    def add_timesheet(self, user_id, work_date="2024-03-04", hours=8, project_id=10,
                      status="PENDING", activity_type=None):
        entry_id = self.next_id()
        self.timesheets[entry_id] = {
            "id": entry_id, "userId": user_id, "workDate": work_date,
            "projectId": project_id, "activityType": activity_type,
            "hoursWorked": hours, "description": None,
            "approvalStatus": status, "remarks": None,
        }
        return entry_id

    def token_for(self, user_id, **claims):
        user = self.users[user_id]
        return make_token(user["email"], f"ROLE_{user['role'].upper()}", user_id, **claims)

    # ----- transport -----
    @property
    def transport(self):
        return httpx.MockTransport(self.handle)

    def client(self, token=None):
        return ApiClient(token=token, base_url=BASE_URL, transport=self.transport)

    def _ok(self, data, status=200):
        return httpx.Response(status, json={"success": True, "message": "OK", "data": data})

    def _error(self, status, message):
        return httpx.Response(status, json={"success": False, "message": message})

    def _caller(self, request):
        header = request.headers.get("authorization", "")
        token = header.replace("Bearer ", "")
        claims = jwt.decode(token, options={"verify_signature": False}) if token else {}
        return claims.get("userId")

    def handle(self, request):
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        if (method, path) in self.failures:
            status, message = self.failures[(method, path)]
            return self._error(status, message)
        body = json.loads(request.content) if request.content else {}
        params = dict(request.url.params)

        for pattern, route_method, route in self._routes():
            match = re.fullmatch(pattern, path)
            if match and route_method == method:
                return route(request, body, params, *[int(g) for g in match.groups()])
        return self._error(404, f"No route for {method} {path}")

    def _routes(self):
        return [
            (r"/auth/login", "POST", self._login),
            (r"/api/users/me", "GET", self._me),
            (r"/api/users/(\d+)", "GET", self._get_user),
            (r"/admin/users/(\d+)", "GET", self._get_user),
            (r"/admin/users/(\d+)", "PUT", self._put_user),
            (r"/admin/users/(\d+)", "DELETE", self._delete_user),
            (r"/admin/users", "GET", lambda *a: self._ok(list(self.users.values()))),
            (r"/admin/users", "POST", self._create_user),
            (r"/api/departments/(\d+)/users", "GET", self._department_users),
            (r"/admin/departments/(\d+)", "GET", self._get_department),
            (r"/admin/departments/(\d+)", "PUT", self._put_department),
            (r"/admin/departments/(\d+)", "DELETE", self._delete_department),
            (r"/admin/departments", "GET", lambda *a: self._ok(list(self.departments.values()))),
            (r"/admin/departments", "POST", self._create_department),
            (r"/api/projects/(\d+)", "GET", self._get_project),
            (r"/api/projects/(\d+)", "PUT", self._put_project),
            (r"/api/projects/(\d+)", "DELETE", self._delete_project),
            (r"/api/projects", "GET", lambda *a: self._ok(list(self.projects.values()))),
            (r"/api/projects", "POST", self._create_project),
            (r"/api/project-assignments/(\d+)", "PUT", self._put_assignment),
            (r"/api/project-assignments/(\d+)", "DELETE", self._delete_assignment),
            (r"/api/project-assignments", "GET", self._list_assignments),
            (r"/api/project-assignments", "POST", self._create_assignment),
            (r"/api/timesheets/manager/(\d+)", "GET", self._manager_timesheets),
            (r"/api/timesheets/date", "GET", self._timesheets_for_date),
            (r"/api/timesheets/(\d+)/status", "PUT", self._put_status),
            (r"/api/timesheets/(\d+)", "GET", self._get_timesheet),
            (r"/api/timesheets/(\d+)", "PUT", self._put_timesheet),
            (r"/api/timesheets/(\d+)", "DELETE", self._delete_timesheet),
            (r"/api/timesheets", "GET", self._list_timesheets),
            (r"/api/timesheets", "POST", self._create_timesheet),
        ]

    # ----- auth / users -----
    def _login(self, request, body, params):
        record = self.passwords.get(body.get("email"))
        if not record or record[0] != body.get("password"):
            return self._error(401, "Bad credentials")
        return httpx.Response(200, json={"token": self.token_for(record[1])})

    def _me(self, request, body, params):
        return self._ok(self.users[self._caller(request)])

    def _get_user(self, request, body, params, user_id):
        if user_id not in self.users:
            return self._error(404, "User not found")
        return self._ok(self.users[user_id])

    def _put_user(self, request, body, params, user_id):
        self.users[user_id].update({k: v for k, v in body.items() if k != "id"})
        return self._ok(self.users[user_id])

    def _delete_user(self, request, body, params, user_id):
        self.users.pop(user_id, None)
        return httpx.Response(204)

    def _create_user(self, request, body, params):
        user_id = self.next_id()
        body.pop("password", None)
        self.users[user_id] = {**body, "id": user_id, "active": True}
        return self._ok(self.users[user_id], status=201)

    def _department_users(self, request, body, params, dept_id):
        return self._ok([u for u in self.users.values() if u.get("departmentId") == dept_id])

    # ----- departments -----
    def _get_department(self, request, body, params, dept_id):
        if dept_id not in self.departments:
            return self._error(404, "Department not found")
        return self._ok(self.departments[dept_id])

    def _put_department(self, request, body, params, dept_id):
        self.departments[dept_id].update({k: v for k, v in body.items() if k != "id"})
        return self._ok(self.departments[dept_id])

    def _delete_department(self, request, body, params, dept_id):
        if any(u.get("departmentId") == dept_id for u in self.users.values()):
            return self._error(409, "Department still has members")
        self.departments.pop(dept_id, None)
        return httpx.Response(204)

    def _create_department(self, request, body, params):
        dept_id = self.next_id()
        self.departments[dept_id] = {**body, "id": dept_id, "managerId": None}
        return self._ok(self.departments[dept_id], status=201)

    # ----- projects -----
    def _get_project(self, request, body, params, project_id):
        if project_id not in self.projects:
            return self._error(404, "Project not found")
        return self._ok(self.projects[project_id])

    def _put_project(self, request, body, params, project_id):
        self.projects[project_id].update({k: v for k, v in body.items() if k != "id"})
        return self._ok(self.projects[project_id])

    def _delete_project(self, request, body, params, project_id):
        self.projects.pop(project_id, None)
        return httpx.Response(204)

    def _create_project(self, request, body, params):
        project_id = self.next_id()
        self.projects[project_id] = {**body, "id": project_id}
        return self._ok(self.projects[project_id], status=201)

    # ----- assignments -----
    def _list_assignments(self, request, body, params):
        rows = list(self.assignments.values())
        if "userId" in params:
            rows = [a for a in rows if str(a["userId"]) == params["userId"]]
        if "projectId" in params:
            rows = [a for a in rows if str(a["projectId"]) == params["projectId"]]
        return self._ok(rows)

    def _create_assignment(self, request, body, params):
        for existing in self.assignments.values():
            if existing["userId"] == body["userId"] and existing["projectId"] == body["projectId"]:
                return self._error(409, "Already assigned")
        assignment_id = self.add_assignment(body["userId"], body["projectId"], body["roleInProject"])
        return self._ok(self.assignments[assignment_id], status=201)

    def _put_assignment(self, request, body, params, assignment_id):
        self.assignments[assignment_id].update({k: v for k, v in body.items() if k != "id"})
        return self._ok(self.assignments[assignment_id])

    def _delete_assignment(self, request, body, params, assignment_id):
        self.assignments.pop(assignment_id, None)
        return httpx.Response(204)

    # ----- timesheets -----
    def _list_timesheets(self, request, body, params):
        caller = self._caller(request)
        return self._ok([t for t in self.timesheets.values() if t["userId"] == caller])

    def _timesheets_for_date(self, request, body, params):
        caller = self._caller(request)
        return self._ok([t for t in self.timesheets.values()
                         if t["userId"] == caller and t["workDate"] == params.get("date")])

    def _get_timesheet(self, request, body, params, entry_id):
        if entry_id not in self.timesheets:
            return self._error(404, "Timesheet not found")
        return self._ok(self.timesheets[entry_id])

    def _create_timesheet(self, request, body, params):
        entry_id = self.next_id()
        self.timesheets[entry_id] = {
            **body, "id": entry_id, "userId": self._caller(request),
            "approvalStatus": "PENDING", "remarks": None,
        }
        return self._ok(self.timesheets[entry_id], status=201)

    def _put_timesheet(self, request, body, params, entry_id):
        entry = self.timesheets[entry_id]
        if entry["approvalStatus"] != "PENDING":
            return self._error(400, "Timesheet is locked")
        entry.update({k: v for k, v in body.items() if k in ("workDate", "projectId", "activityType",
                                                              "hoursWorked", "description")})
        return self._ok(entry)

    def _delete_timesheet(self, request, body, params, entry_id):
        self.timesheets.pop(entry_id, None)
        return httpx.Response(204)

    def _put_status(self, request, body, params, entry_id):
        if self.on_status_write:
            self.on_status_write(entry_id)
        entry = self.timesheets[entry_id]
        expected = body.get("expectedStatus")
        if expected and entry["approvalStatus"] != expected:
            return self._error(409, f"Timesheet is already {entry['approvalStatus']}")
        entry["approvalStatus"] = body["status"]
        entry["remarks"] = body.get("remarks")
        return self._ok(entry)

    def _manager_timesheets(self, request, body, params, manager_id):
        dept = self.users[manager_id].get("departmentId")
        members = {u["id"] for u in self.users.values() if u.get("departmentId") == dept}
        return self._ok([t for t in self.timesheets.values() if t["userId"] in members])


@pytest.fixture
def backend():
    """
    Two departments: Engineering (1, manager 3) and Sales (2, manager 4).
    Employees 5, 6, 9 are in Engineering, 7 in Sales; user 1 is the admin.
    Projects 10 and 11 belong to Engineering, 20 to Sales; user 5 is on 10.
    """
    fake = FakeBackend()
    fake.add_department(1, "Engineering", manager_id=3)
    fake.add_department(2, "Sales", manager_id=4)
    fake.add_user(1, "Ada", "admin")
    fake.add_user(3, "Maya", "manager", department_id=1)
    fake.add_user(4, "Sam", "manager", department_id=2)
    fake.add_user(5, "Eve", "employee", department_id=1)
    fake.add_user(6, "Frank", "employee", department_id=1)
    fake.add_user(7, "Gina", "employee", department_id=2)
    fake.add_user(9, "Nina", "employee", department_id=1)
    fake.add_project(10, "Apollo", 1)
    fake.add_project(11, "Borealis", 1)
    fake.add_project(20, "Cobalt", 2)
    fake.add_assignment(5, 10)
    return fake


@pytest.fixture
def session_for(backend):
    def _session(user_id):
        return SessionContext(token=backend.token_for(user_id), user=User.from_api(backend.users[user_id]))
    return _session


@pytest.fixture
def api_for(backend):
    def _api(user_id):
        return backend.client(token=backend.token_for(user_id))
    return _api


@pytest.fixture
def sessions_table():
    return FakeTable("sessionID")


@pytest.fixture
def confirmations_table():
    return FakeTable("confirmationID")
