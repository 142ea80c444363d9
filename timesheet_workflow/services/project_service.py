# Business logic for the project catalogue
from dataclasses import replace
from typing import Any, Dict, List

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import Project, ProjectAssignment, Role, SessionContext
from timesheet_workflow.models.validation_models import validate_project
from timesheet_workflow.services import policy_service
from timesheet_workflow.utils.errors import AuthorizationError, RemoteError, ValidationError
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "startDate": "start_date",
    "endDate": "end_date",
    "departmentId": "department_id",
    "status": "status",
}


class ProjectService:
    """Service class for project operations"""

    def __init__(self, api: ApiClient, session: SessionContext):
        self.api = api
        self.session = session

    def _require_manage(self, department_id) -> None:
        if not policy_service.can_manage_department(self.session.role, self.session.user, department_id):
            raise AuthorizationError("You can only manage projects of your own department")

    def list_visible(self) -> List[Project]:
        projects = [Project.from_api(p) for p in self.api.get_list("/api/projects")]
        assignments: List[ProjectAssignment] = []
        if self.session.role is Role.EMPLOYEE:
            rows = self.api.get_list("/api/project-assignments", params={"userId": self.session.user_id})
            assignments = [ProjectAssignment.from_api(row) for row in rows]
        return policy_service.visible_projects_for(self.session.user, projects, assignments)

    def get(self, project_id) -> Project:
        return Project.from_api(self.api.get_object(f"/api/projects/{project_id}"))

    def create(self, data: Dict[str, Any]) -> Project:
        if not policy_service.can_do(self.session.role, "Projects", "create"):
            raise AuthorizationError("Not authorized to create projects")
        data = dict(data or {})
        # Managers default to their own department.
        if data.get("departmentId") is None and self.session.role is Role.MANAGER:
            data["departmentId"] = self.session.user.department_id
        project = Project.from_api(data)
        project.id = None
        validate_project(project)
        self._require_manage(project.department_id)

        body = project.to_api()
        body.pop("id")
        created = self.api.post("/api/projects", body)
        if not isinstance(created, dict):
            raise RemoteError("Malformed response while creating project")
        saved = Project.from_api(created)
        logger.info(f"✅ Created project {saved.id} in department {saved.department_id}")
        return saved

    def update(self, project_id, patch: Dict[str, Any]) -> Project:
        unknown = set(patch or {}) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])
        if not policy_service.can_do(self.session.role, "Projects", "update"):
            raise AuthorizationError("Not authorized to update projects")

        current = self.get(project_id)
        self._require_manage(current.department_id)
        changes = {attr: patch[key] for key, attr in EDITABLE_FIELDS.items() if key in patch}
        candidate = replace(current, **changes)
        if isinstance(candidate.department_id, str) and candidate.department_id.isdigit():
            candidate.department_id = int(candidate.department_id)
        validate_project(candidate)
        if candidate.department_id != current.department_id:
            self._require_manage(candidate.department_id)

        updated = self.api.put(f"/api/projects/{project_id}", candidate.to_api())
        logger.info(f"Updated project {project_id}")
        return Project.from_api(updated) if isinstance(updated, dict) else candidate

    def delete(self, project_id) -> None:
        if not policy_service.can_do(self.session.role, "Projects", "delete"):
            raise AuthorizationError("Not authorized to delete projects")
        current = self.get(project_id)
        self._require_manage(current.department_id)
        self.api.delete(f"/api/projects/{project_id}")
        logger.info(f"Deleted project {project_id}")
