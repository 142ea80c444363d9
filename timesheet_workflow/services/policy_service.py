# -------------------- AUTHORIZATION POLICY --------------------
"""
Pure authorization decisions. Nothing here performs I/O or raises: every
function answers with a bool or a (possibly empty) list, and the caller
turns a denial into the user-facing error.

Two layers:
  * ``can_do`` is the coarse role matrix (allow/deny glob rules over
    "Resource.action"), consulted before a command touches any record.
  * The record-level functions (``can_edit_timesheet`` and friends) apply the
    ownership, status and department rules to concrete entities.
"""
import fnmatch
from typing import Any, Callable, Dict, Iterable, List, Optional

from timesheet_workflow.models.entities import (
    SYNTHETIC_PROJECTS,
    ApprovalStatus,
    Project,
    ProjectAssignment,
    Role,
    TimesheetEntry,
    User,
)

# Deny rules win over allow rules.
ROLE_POLICIES: Dict[Role, Dict[str, List[str]]] = {
    Role.EMPLOYEE: {
        "allow": [
            "Timesheets.*",
            "Projects.view",
            "ProjectAssignments.view",
            "Session.*",
        ],
        "deny": [],
    },
    Role.MANAGER: {
        "allow": [
            "Timesheets.*",
            "Approvals.*",
            "Projects.*",
            "ProjectAssignments.*",
            "Departments.view",
            "Users.view_team",
            "Session.*",
        ],
        "deny": [],
    },
    Role.ADMIN: {
        "allow": ["*"],
        # Admins run the directory; approving timesheets stays with line managers.
        "deny": ["Approvals.approve_reject"],
    },
}


def _matches(patterns: Iterable[str], permission: str) -> bool:
    return any(fnmatch.fnmatch(permission, pattern) for pattern in patterns)


def can_do(role: Role, resource: str, action: str) -> bool:
    policy = ROLE_POLICIES.get(role)
    if not policy:
        return False
    permission = f"{resource}.{action}"
    if _matches(policy["deny"], permission):
        return False
    return _matches(policy["allow"], permission)


def can_view_all_users(role: Role) -> bool:
    return role is Role.ADMIN


def can_manage_department(role: Role, user: Optional[User], dept_id: Any) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.MANAGER:
        return user is not None and user.department_id is not None and user.department_id == dept_id
    return False


def _owns_pending(entry: Optional[TimesheetEntry], acting_user: Optional[User]) -> bool:
    if entry is None or acting_user is None or acting_user.id is None:
        return False
    return acting_user.id == entry.user_id and entry.approval_status is ApprovalStatus.PENDING


def can_edit_timesheet(entry: Optional[TimesheetEntry], acting_user: Optional[User]) -> bool:
    return _owns_pending(entry, acting_user)


def can_delete_timesheet(entry: Optional[TimesheetEntry], acting_user: Optional[User]) -> bool:
    return _owns_pending(entry, acting_user)


def is_approver_for(entry: Optional[TimesheetEntry], acting_user: Optional[User],
                    owner: Optional[User]) -> bool:
    """Manager of the owning employee's department, whatever the entry's status; keyed by ids only"""
    if entry is None or acting_user is None or owner is None:
        return False
    if acting_user.role is not Role.MANAGER or owner.role is not Role.EMPLOYEE:
        return False
    if owner.id != entry.user_id or owner.id == acting_user.id:
        return False
    return acting_user.department_id is not None and acting_user.department_id == owner.department_id


def can_transition_approval(entry: Optional[TimesheetEntry], acting_user: Optional[User],
                            owner: Optional[User]) -> bool:
    return is_approver_for(entry, acting_user, owner) and entry.approval_status is ApprovalStatus.PENDING


# -------------------- PROJECT SCOPING --------------------
def assigned_projects(user_id: Any, all_projects: Iterable[Project],
                      assignments: Iterable[ProjectAssignment]) -> List[Project]:
    """Real projects the user is assigned to, followed by the synthetic activities"""
    assigned_ids = {a.project_id for a in assignments if a.user_id == user_id}
    real = [p for p in all_projects if not p.is_synthetic and p.id in assigned_ids]
    return real + list(SYNTHETIC_PROJECTS)


def _employee_projects(user: User, all_projects: List[Project],
                       assignments: Iterable[ProjectAssignment]) -> List[Project]:
    return assigned_projects(user.id, all_projects, assignments)


def _manager_projects(user: User, all_projects: List[Project],
                      assignments: Iterable[ProjectAssignment]) -> List[Project]:
    if user.department_id is None:
        return []
    return [p for p in all_projects if p.department_id == user.department_id]


def _admin_projects(user: User, all_projects: List[Project],
                    assignments: Iterable[ProjectAssignment]) -> List[Project]:
    return list(all_projects)


PROJECT_SCOPES: Dict[Role, Callable[..., List[Project]]] = {
    Role.EMPLOYEE: _employee_projects,
    Role.MANAGER: _manager_projects,
    Role.ADMIN: _admin_projects,
}


def visible_projects_for(user: Optional[User], all_projects: Iterable[Project],
                         assignments: Iterable[ProjectAssignment] = ()) -> List[Project]:
    if user is None:
        return []
    scope = PROJECT_SCOPES.get(user.role)
    if scope is None:
        return []
    real_projects = [p for p in (all_projects or []) if not p.is_synthetic]
    return scope(user, real_projects, list(assignments or []))
