# Request handlers for project assignment operations
from timesheet_workflow.services.assignment_service import AssignmentService
from timesheet_workflow.utils.request_helpers import id_list, require_field
from timesheet_workflow.utils.response_helpers import build_response


def handle_assign(event, data, session, api):
    assignment = AssignmentService(api, session).assign(
        require_field(data, "userId"),
        require_field(data, "projectId"),
        data.get("roleInProject") or "DEVELOPER",
    )
    return build_response(data={"message": "User assigned", "assignment": assignment.to_dict()},
                          status=201, event=event)


def handle_assign_many(event, data, session, api):
    user_ids = id_list(data, "userIds")
    result = AssignmentService(api, session).assign_many(
        user_ids,
        require_field(data, "projectId"),
        data.get("roleInProject") or "DEVELOPER",
    )
    ok, failed = len(result["succeeded"]), len(result["failed"])
    status = 207 if ok and failed else (400 if failed else 200)
    return build_response(data=result, status=status, event=event)


def handle_update_assignment_role(event, data, session, api):
    assignment = AssignmentService(api, session).update_role(
        require_field(data, "userId"),
        require_field(data, "projectId"),
        require_field(data, "roleInProject"),
    )
    return build_response(data={"message": "Role updated", "assignment": assignment.to_dict()}, event=event)


def handle_unassign(event, data, session, api):
    removed = AssignmentService(api, session).unassign(
        require_field(data, "userId"),
        require_field(data, "projectId"),
    )
    message = "User unassigned" if removed else "User was not assigned"
    return build_response(data={"message": message, "removed": removed}, event=event)


def handle_assigned_projects(event, data, session, api):
    projects = AssignmentService(api, session).assigned_projects_for(data.get("userId"))
    return build_response(data={"projects": [p.to_api() for p in projects]}, event=event)


def handle_project_assignments(event, data, session, api):
    assignments = AssignmentService(api, session).assignments_for_project(require_field(data, "projectId"))
    return build_response(data={"assignments": [a.to_dict() for a in assignments]}, event=event)
