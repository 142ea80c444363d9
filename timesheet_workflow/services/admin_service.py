# Business logic for the admin directory: users, departments and manager reassignment
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import Department, Role, SessionContext, User, parse_role
from timesheet_workflow.services import policy_service
from timesheet_workflow.services.confirmation_service import ConfirmationService, ConfirmationToken
from timesheet_workflow.utils.errors import AuthorizationError, RemoteError, ValidationError, WorkflowError
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

MANAGER_CHANGE = "department.manager_change"
DELETE_USER = "user.delete"
DELETE_DEPARTMENT = "department.delete"

USER_FIELDS = {
    "name": "name",
    "email": "email",
    "role": "role",
    "departmentId": "department_id",
    "active": "active",
}
DEPARTMENT_FIELDS = {"name": "name", "description": "description"}


def _check_fields(patch: Dict[str, Any], allowed: Dict[str, str]) -> Dict[str, Any]:
    unknown = set(patch or {}) - set(allowed)
    if unknown:
        raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
    return {attr: patch[key] for key, attr in allowed.items() if key in (patch or {})}


class _UndoLog:
    """Compensating writes for a multi-step change, replayed newest first"""

    def __init__(self):
        self._steps: List[Tuple[str, Callable[[], Any]]] = []

    def add(self, description: str, undo: Callable[[], Any]) -> None:
        self._steps.append((description, undo))

    def rollback(self) -> None:
        for description, undo in reversed(self._steps):
            try:
                undo()
            except WorkflowError as e:
                logger.error(f"❌ Could not restore {description}: {e.message}")
        self._steps.clear()


class AdminService:
    """
    Admin-only maintenance of users and departments.

    Anything that demotes someone or deletes a record is two-phase:
    ``propose_*`` returns a confirmation token describing the impact and
    ``commit`` executes it once the same admin confirms.
    """

    def __init__(self, api: ApiClient, session: SessionContext,
                 confirmations: Optional[ConfirmationService] = None):
        self.api = api
        self.session = session
        self.confirmations = confirmations or ConfirmationService()
        self._executors: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            MANAGER_CHANGE: self._apply_manager_change,
            DELETE_USER: self._apply_delete_user,
            DELETE_DEPARTMENT: self._apply_delete_department,
        }

    def _require_admin(self) -> None:
        if not policy_service.can_view_all_users(self.session.role):
            raise AuthorizationError("Admin access required")

    # -------------------- USERS --------------------
    def list_users(self) -> List[User]:
        self._require_admin()
        return [User.from_api(u) for u in self.api.get_list("/admin/users")]

    def get_user(self, user_id) -> User:
        self._require_admin()
        return User.from_api(self.api.get_object(f"/admin/users/{user_id}"))

    def create_user(self, data: Dict[str, Any]) -> User:
        self._require_admin()
        data = data or {}
        email = str(data.get("email") or "").strip()
        name = str(data.get("name") or "").strip()
        password = data.get("password")
        if "@" not in email:
            raise ValidationError("A valid email is required", field="email")
        if not name:
            raise ValidationError("name is required", field="name")
        if not password or len(str(password)) < 6:
            raise ValidationError("password must be at least 6 characters", field="password")

        user = User(id=None, email=email, name=name, role=parse_role(data.get("role")),
                    department_id=data.get("departmentId"))
        body = user.to_api()
        body.pop("id")
        body["password"] = password
        created = self.api.post("/admin/users", body)
        if not isinstance(created, dict):
            raise RemoteError("Malformed response while creating user")
        saved = User.from_api(created)
        logger.info(f"✅ Created user {saved.id} ({saved.role.value})")
        return saved

    def update_user(self, user_id, patch: Dict[str, Any]) -> User:
        self._require_admin()
        changes = _check_fields(patch, USER_FIELDS)
        if "role" in changes:
            changes["role"] = parse_role(changes["role"])
        if "email" in changes and "@" not in str(changes["email"] or ""):
            raise ValidationError("A valid email is required", field="email")
        current = self.get_user(user_id)
        updated = replace(current, **changes)
        if isinstance(updated.department_id, str) and updated.department_id.isdigit():
            updated.department_id = int(updated.department_id)

        # A manager who stops being one, or moves, leaves their departments without a manager.
        vacated: List[Department] = []
        if current.role is Role.MANAGER and (
                updated.role is not Role.MANAGER or updated.department_id != current.department_id):
            vacated = self._departments_managed_by(current.id)

        undo = _UndoLog()
        try:
            saved = self._write_user(updated, current, undo)
            for department in vacated:
                self._vacate(department, undo)
        except WorkflowError as e:
            logger.error(f"❌ Update of user {current.id} failed, rolling back: {e.message}")
            undo.rollback()
            raise
        if vacated:
            logger.info(f"User {current.id} no longer manages departments {[d.id for d in vacated]}")
        return saved

    def _put_user(self, user: User) -> User:
        updated = self.api.put(f"/admin/users/{user.id}", user.to_api())
        return User.from_api(updated) if isinstance(updated, dict) else user

    def propose_delete_user(self, user_id) -> ConfirmationToken:
        target = self.get_user(user_id)
        if target.id == self.session.user_id:
            raise ValidationError("You cannot delete your own account", field="userId")
        return self.confirmations.propose(
            DELETE_USER,
            {"userId": target.id, "impact": {"deleteUser": target.id}},
            f"Delete user {target.name or target.email}",
            self.session,
        )

    # -------------------- DEPARTMENTS --------------------
    def list_departments(self) -> List[Department]:
        self._require_admin()
        return [Department.from_api(d) for d in self.api.get_list("/admin/departments")]

    def get_department(self, department_id) -> Department:
        self._require_admin()
        return Department.from_api(self.api.get_object(f"/admin/departments/{department_id}"))

    def create_department(self, data: Dict[str, Any]) -> Department:
        self._require_admin()
        data = data or {}
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("Department name is required", field="name")
        body = {"name": name, "description": data.get("description")}
        created = self.api.post("/admin/departments", body)
        if not isinstance(created, dict):
            raise RemoteError("Malformed response while creating department")
        saved = Department.from_api(created)
        logger.info(f"✅ Created department {saved.id}")
        return saved

    def update_department(self, department_id, patch: Dict[str, Any]) -> Department:
        self._require_admin()
        changes = _check_fields(patch, DEPARTMENT_FIELDS)
        if "name" in changes and not str(changes["name"] or "").strip():
            raise ValidationError("Department name is required", field="name")
        current = self.get_department(department_id)
        return self._put_department(replace(current, **changes))

    def _put_department(self, department: Department) -> Department:
        updated = self.api.put(f"/admin/departments/{department.id}", department.to_api())
        return Department.from_api(updated) if isinstance(updated, dict) else department

    def propose_delete_department(self, department_id) -> ConfirmationToken:
        department = self.get_department(department_id)
        return self.confirmations.propose(
            DELETE_DEPARTMENT,
            {"departmentId": department.id, "impact": {"deleteDepartment": department.id}},
            f"Delete department {department.name}",
            self.session,
        )

    # -------------------- MANAGER REASSIGNMENT --------------------
    def _departments_managed_by(self, user_id, exclude=None) -> List[Department]:
        return [d for d in self.list_departments() if d.manager_id == user_id and d.id != exclude]

    def _vacate(self, department: Department, undo: _UndoLog) -> None:
        self._put_department(replace(department, manager_id=None))
        undo.add(f"department {department.id}", lambda: self._put_department(department))

    def _write_user(self, updated: User, before: User, undo: _UndoLog) -> User:
        saved = self._put_user(updated)
        undo.add(f"user {before.id}", lambda: self._put_user(before))
        return saved

    def propose_manager_change(self, department_id, new_manager_id) -> ConfirmationToken:
        if new_manager_id is None or str(new_manager_id).strip() == "":
            raise ValidationError("managerId is required", field="managerId")
        department = self.get_department(department_id)
        candidate = self.get_user(new_manager_id)
        if not candidate.active:
            raise ValidationError(f"User {candidate.id} is inactive", field="managerId")
        if department.manager_id == candidate.id:
            raise ValidationError(f"User {candidate.id} already manages this department", field="managerId")

        impact: Dict[str, Any] = {
            "promote": candidate.id,
            "demote": [],
            "vacate": [d.id for d in self._departments_managed_by(candidate.id, exclude=department.id)],
        }
        if department.manager_id is not None:
            impact["demote"].append(department.manager_id)
        summary = f"Make {candidate.name or candidate.email} manager of {department.name}"
        if impact["demote"]:
            summary += f"; current manager {department.manager_id} becomes an employee"
        if impact["vacate"]:
            summary += f"; departments {impact['vacate']} are left without a manager"
        return self.confirmations.propose(
            MANAGER_CHANGE,
            {"departmentId": department.id, "newManagerId": candidate.id, "impact": impact},
            summary,
            self.session,
        )

    def _apply_manager_change(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        # Re-read: the department may have changed hands since the proposal.
        department = self.get_department(payload["departmentId"])
        prior_id = department.manager_id
        new_id = payload["newManagerId"]
        new_manager = self.get_user(new_id)
        prior = self.get_user(prior_id) if prior_id is not None and prior_id != new_id else None
        vacated = self._departments_managed_by(new_id, exclude=department.id)

        # The department write goes last; everything before it can be undone.
        undo = _UndoLog()
        try:
            for other in vacated:
                self._vacate(other, undo)
            promoted = self._write_user(
                replace(new_manager, role=Role.MANAGER, department_id=department.id), new_manager, undo)
            demoted = self._write_user(replace(prior, role=Role.EMPLOYEE), prior, undo) if prior else None
            saved_department = self._put_department(replace(department, manager_id=new_id))
        except WorkflowError as e:
            logger.error(f"❌ Manager change for department {department.id} failed, rolling back: {e.message}")
            undo.rollback()
            raise

        logger.info(f"✅ Department {department.id} manager {prior_id} -> {new_id}")
        return {
            "department": saved_department.to_api(),
            "promoted": promoted.to_api(),
            "demoted": demoted.to_api() if demoted else None,
            "vacated": [d.id for d in vacated],
        }

    def _apply_delete_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.api.delete(f"/admin/users/{payload['userId']}")
        logger.info(f"Deleted user {payload['userId']}")
        return {"deletedUserId": payload["userId"]}

    def _apply_delete_department(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        # Whether a department with members may go is the backend's call.
        self.api.delete(f"/admin/departments/{payload['departmentId']}")
        logger.info(f"Deleted department {payload['departmentId']}")
        return {"deletedDepartmentId": payload["departmentId"]}

    # -------------------- COMMIT --------------------
    def commit(self, confirmation_id: str) -> Dict[str, Any]:
        self._require_admin()
        token = self.confirmations.commit(confirmation_id, self.session)
        executor = self._executors.get(token.action)
        if executor is None:
            raise ValidationError(f"Unsupported action '{token.action}'", field="confirmationID")
        try:
            result = executor(token.payload)
        except WorkflowError:
            # Nothing was applied, so the same confirmation can be committed again.
            self.confirmations.restore(token, self.session)
            raise
        result["action"] = token.action
        return result
