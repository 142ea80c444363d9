# Request handlers for project catalogue operations
from timesheet_workflow.services.project_service import ProjectService
from timesheet_workflow.utils.errors import ValidationError
from timesheet_workflow.utils.request_helpers import require_field
from timesheet_workflow.utils.response_helpers import build_response


def handle_list_projects(event, data, session, api):
    projects = ProjectService(api, session).list_visible()
    return build_response(data={"projects": [p.to_api() for p in projects]}, event=event)


def handle_create_project(event, data, session, api):
    project = ProjectService(api, session).create(data.get("project") or data)
    return build_response(data={"message": "Project created", "project": project.to_api()}, status=201, event=event)


def handle_update_project(event, data, session, api):
    project_id = require_field(data, "projectId")
    patch = data.get("patch")
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("patch must be a non-empty object", field="patch")
    project = ProjectService(api, session).update(project_id, patch)
    return build_response(data={"message": "Project updated", "project": project.to_api()}, event=event)


def handle_delete_project(event, data, session, api):
    project_id = require_field(data, "projectId")
    ProjectService(api, session).delete(project_id)
    return build_response(data={"message": "Project deleted", "projectId": project_id}, event=event)
