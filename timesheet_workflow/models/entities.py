# -------------------- DOMAIN ENTITIES --------------------
"""
Typed records for the objects the REST API hands back.

The backend is inconsistent about key casing and nesting (``departmentId``
vs ``department: {id}``, ``ROLE_MANAGER`` vs ``manager``), so every entity
has a ``from_api`` constructor that accepts the variants seen in responses
and a ``to_api`` method producing the camelCase body the API accepts.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from timesheet_workflow.utils.errors import RemoteError, ValidationError


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


class RoleInProject(str, Enum):
    DEVELOPER = "DEVELOPER"
    TESTER = "TESTER"
    LEAD = "LEAD"


def parse_role(raw) -> Role:
    """Normalize 'ROLE_ADMIN' / 'Manager' / Role.MANAGER style values; anything unknown is an employee"""
    if isinstance(raw, Role):
        return raw
    text = str(raw or "").lower()
    if "admin" in text:
        return Role.ADMIN
    if "manager" in text:
        return Role.MANAGER
    return Role.EMPLOYEE


def parse_status(raw) -> ApprovalStatus:
    if isinstance(raw, ApprovalStatus):
        return raw
    text = str(raw or "").strip().upper()
    if not text:
        return ApprovalStatus.PENDING
    try:
        return ApprovalStatus(text)
    except ValueError:
        raise RemoteError(f"Unknown approval status '{raw}' in server response")


def parse_role_in_project(raw) -> RoleInProject:
    if isinstance(raw, RoleInProject):
        return raw
    text = str(raw or "").strip().upper()
    try:
        return RoleInProject(text)
    except ValueError:
        raise ValidationError(f"Invalid roleInProject '{raw}'. Allowed: DEVELOPER, TESTER, LEAD")


def _first(data: Dict[str, Any], *keys, default=None):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _nested_id(data: Dict[str, Any], flat_key: str, nested_key: str):
    value = data.get(flat_key)
    if value is not None:
        return value
    nested = data.get(nested_key)
    if isinstance(nested, dict):
        return nested.get("id")
    return None


def _as_int(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


@dataclass
class User:
    id: Any
    email: str = ""
    name: str = ""
    role: Role = Role.EMPLOYEE
    department_id: Any = None
    active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "User":
        data = data or {}
        return cls(
            id=_as_int(_first(data, "id", "userId")),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or ""),
            role=parse_role(_first(data, "roleName", "role")),
            department_id=_as_int(_nested_id(data, "departmentId", "department")),
            active=bool(data.get("active", True)),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "departmentId": self.department_id,
            "active": self.active,
        }


@dataclass
class Department:
    id: Any
    name: str = ""
    description: Optional[str] = None
    manager_id: Any = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Department":
        data = data or {}
        return cls(
            id=_as_int(data.get("id")),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            manager_id=_as_int(_nested_id(data, "managerId", "manager")),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "managerId": self.manager_id,
        }


@dataclass
class Project:
    id: Any
    name: str = ""
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    department_id: Any = None
    status: Optional[str] = None
    activity_type: Optional[str] = None

    @property
    def is_synthetic(self) -> bool:
        return self.activity_type is not None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Project":
        data = data or {}
        return cls(
            id=_as_int(_first(data, "id", "projectId")),
            name=str(_first(data, "name", "projectName", default="")),
            description=data.get("description"),
            start_date=data.get("startDate"),
            end_date=data.get("endDate"),
            department_id=_as_int(_nested_id(data, "departmentId", "department")),
            status=data.get("status"),
        )

    def to_api(self) -> Dict[str, Any]:
        body = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "departmentId": self.department_id,
            "status": self.status,
        }
        if self.activity_type is not None:
            body["activityType"] = self.activity_type
        return body


# Internal activities every employee can log against; never persisted.
SYNTHETIC_PROJECTS = (
    Project(id="act:training", name="Training", activity_type="training"),
    Project(id="act:other", name="Other Internal Work", activity_type="other"),
)


@dataclass
class ProjectAssignment:
    user_id: Any
    project_id: Any
    role_in_project: RoleInProject = RoleInProject.DEVELOPER
    id: Any = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ProjectAssignment":
        data = data or {}
        return cls(
            id=_as_int(data.get("id")),
            user_id=_as_int(_nested_id(data, "userId", "user")),
            project_id=_as_int(_nested_id(data, "projectId", "project")),
            role_in_project=parse_role_in_project(data.get("roleInProject") or RoleInProject.DEVELOPER),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "projectId": self.project_id,
            "roleInProject": self.role_in_project.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.to_api()}


@dataclass
class TimesheetEntry:
    id: Any = None
    user_id: Any = None
    work_date: Optional[str] = None
    project_id: Any = None
    activity_type: Optional[str] = None
    hours_worked: float = 0.0
    description: Optional[str] = None
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    remarks: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TimesheetEntry":
        data = data or {}
        hours = _first(data, "hoursWorked", "hoursLogged", default=0)
        try:
            hours = float(hours)
        except (TypeError, ValueError):
            hours = 0.0
        project_id = _as_int(_nested_id(data, "projectId", "project"))
        return cls(
            id=_as_int(_first(data, "id", "timesheetId")),
            user_id=_as_int(_nested_id(data, "userId", "user")),
            work_date=_first(data, "workDate", "date"),
            project_id=project_id or None,
            activity_type=data.get("activityType") or None,
            hours_worked=hours,
            description=data.get("description"),
            approval_status=parse_status(_first(data, "approvalStatus", "status")),
            remarks=_first(data, "remarks", "comments"),
        )

    @classmethod
    def from_input(cls, data: Dict[str, Any]) -> "TimesheetEntry":
        """Build an entry from command input without defaulting missing numbers to zero-valued successes"""
        data = data or {}
        hours = data.get("hoursWorked")
        return cls(
            work_date=data.get("workDate"),
            project_id=_as_int(data.get("projectId")) or None,
            activity_type=(str(data["activityType"]).strip() or None) if data.get("activityType") else None,
            hours_worked=hours,
            description=data.get("description"),
        )

    def to_api(self) -> Dict[str, Any]:
        return {
            "workDate": self.work_date,
            "projectId": self.project_id,
            "activityType": self.activity_type,
            "hoursWorked": self.hours_worked,
            "description": self.description,
        }

    def to_dict(self) -> Dict[str, Any]:
        body = self.to_api()
        body.update({
            "id": self.id,
            "userId": self.user_id,
            "approvalStatus": self.approval_status.value,
            "remarks": self.remarks,
            "locked": self.approval_status.is_terminal,
        })
        return body


@dataclass
class SessionContext:
    """Identity of the caller, passed explicitly to every policy and service call"""

    token: str
    user: User
    session_id: Optional[str] = None

    @property
    def user_id(self):
        return self.user.id

    @property
    def role(self) -> Role:
        return self.user.role
