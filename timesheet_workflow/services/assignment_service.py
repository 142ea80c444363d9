# Business logic for assigning users to projects
from typing import Any, Dict, Iterable, List, Optional

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import (
    Project,
    ProjectAssignment,
    SessionContext,
    User,
    parse_role_in_project,
)
from timesheet_workflow.services import policy_service
from timesheet_workflow.utils.errors import (
    AuthorizationError,
    DuplicateAssignmentError,
    NotFoundError,
    RemoteError,
    ValidationError,
    WorkflowError,
)
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

ASSIGNMENTS_PATH = "/api/project-assignments"


def _require_id(value, field_name: str):
    if value is None or isinstance(value, bool) or str(value).strip() == "":
        raise ValidationError(f"{field_name} is required", field=field_name)
    text = str(value).strip()
    return int(text) if text.isdigit() else text


class AssignmentService:
    """Service class for project assignment operations"""

    def __init__(self, api: ApiClient, session: SessionContext):
        self.api = api
        self.session = session

    # -------------------- HELPERS --------------------
    def _authorize(self, action: str, project_id) -> Project:
        if not policy_service.can_do(self.session.role, "ProjectAssignments", action):
            raise AuthorizationError(f"Not authorized to {action} project assignments")
        project = Project.from_api(self.api.get_object(f"/api/projects/{project_id}"))
        if not policy_service.can_manage_department(self.session.role, self.session.user, project.department_id):
            raise AuthorizationError("You can only manage assignments for projects in your own department")
        return project

    def _assignments(self, **params) -> List[ProjectAssignment]:
        query = {k: v for k, v in params.items() if v is not None}
        return [ProjectAssignment.from_api(row) for row in self.api.get_list(ASSIGNMENTS_PATH, params=query)]

    def _find(self, user_id, project_id) -> Optional[ProjectAssignment]:
        for assignment in self._assignments(userId=user_id, projectId=project_id):
            if assignment.user_id == user_id and assignment.project_id == project_id:
                return assignment
        return None

    # -------------------- COMMANDS --------------------
    def assign(self, user_id, project_id, role_in_project="DEVELOPER") -> ProjectAssignment:
        user_id = _require_id(user_id, "userId")
        project_id = _require_id(project_id, "projectId")
        role = parse_role_in_project(role_in_project)
        self._authorize("assign", project_id)

        if self._find(user_id, project_id) is not None:
            raise DuplicateAssignmentError(f"User {user_id} is already assigned to project {project_id}")

        body = ProjectAssignment(user_id=user_id, project_id=project_id, role_in_project=role).to_api()
        try:
            created = self.api.post(ASSIGNMENTS_PATH, body)
        except RemoteError as e:
            if e.status_code == 409:
                raise DuplicateAssignmentError(e.message)
            raise

        assignment = ProjectAssignment.from_api(created) if isinstance(created, dict) else self._find(user_id, project_id)
        if assignment is None:
            raise RemoteError("Assignment was not returned by the server")
        logger.info(f"✅ Assigned user {user_id} to project {project_id} as {role.value}")
        return assignment

    def update_role(self, user_id, project_id, role_in_project) -> ProjectAssignment:
        user_id = _require_id(user_id, "userId")
        project_id = _require_id(project_id, "projectId")
        role = parse_role_in_project(role_in_project)
        self._authorize("update", project_id)

        existing = self._find(user_id, project_id)
        if existing is None:
            raise NotFoundError(f"User {user_id} is not assigned to project {project_id}")

        existing.role_in_project = role
        updated = self.api.put(f"{ASSIGNMENTS_PATH}/{existing.id}", existing.to_api())
        logger.info(f"Changed role of user {user_id} on project {project_id} to {role.value}")
        return ProjectAssignment.from_api(updated) if isinstance(updated, dict) else existing

    def unassign(self, user_id, project_id) -> bool:
        """Returns False when there was nothing to remove"""
        user_id = _require_id(user_id, "userId")
        project_id = _require_id(project_id, "projectId")
        self._authorize("unassign", project_id)

        existing = self._find(user_id, project_id)
        if existing is None:
            logger.info(f"User {user_id} not assigned to project {project_id}; nothing to remove")
            return False
        self.api.delete(f"{ASSIGNMENTS_PATH}/{existing.id}")
        logger.info(f"Unassigned user {user_id} from project {project_id}")
        return True

    def assign_many(self, user_ids: Iterable[Any], project_id, role_in_project="DEVELOPER") -> Dict[str, Any]:
        """Independent assigns; earlier successes stay in place when a later one fails"""
        parse_role_in_project(role_in_project)
        results = {"succeeded": [], "failed": []}
        seen = set()
        for user_id in user_ids or []:
            if str(user_id) in seen:
                continue
            seen.add(str(user_id))
            try:
                assignment = self.assign(user_id, project_id, role_in_project)
                results["succeeded"].append(assignment.to_dict())
            except WorkflowError as e:
                results["failed"].append({"userId": user_id, "error": e.message, "errorType": type(e).__name__})
        logger.info(f"Bulk assign to project {project_id}: "
                    f"{len(results['succeeded'])} succeeded, {len(results['failed'])} failed")
        return results

    # -------------------- QUERIES --------------------
    def assignments_for_project(self, project_id) -> List[ProjectAssignment]:
        project_id = _require_id(project_id, "projectId")
        if not policy_service.can_do(self.session.role, "ProjectAssignments", "view"):
            raise AuthorizationError("Not authorized to view project assignments")
        project = Project.from_api(self.api.get_object(f"/api/projects/{project_id}"))
        assignments = [a for a in self._assignments(projectId=project_id) if a.project_id == project_id]
        # Outside department managers and admins, only members of the project may see its roster.
        if not policy_service.can_manage_department(self.session.role, self.session.user, project.department_id):
            if not any(a.user_id == self.session.user_id for a in assignments):
                raise AuthorizationError("You can only view assignments of your own projects")
        return assignments

    def assigned_projects_for(self, user_id=None) -> List[Project]:
        user_id = self.session.user_id if user_id is None else _require_id(user_id, "userId")
        if user_id != self.session.user_id:
            if not policy_service.can_do(self.session.role, "ProjectAssignments", "view_any"):
                raise AuthorizationError("You can only view your own project assignments")
            target = User.from_api(self.api.get_object(f"/api/users/{user_id}"))
            if not policy_service.can_manage_department(self.session.role, self.session.user, target.department_id):
                raise AuthorizationError("You can only view assignments of users in your own department")

        assignments = self._assignments(userId=user_id)
        projects = [Project.from_api(p) for p in self.api.get_list("/api/projects")]
        return policy_service.assigned_projects(user_id, projects, assignments)
