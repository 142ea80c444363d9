# Main Lambda entrypoint - routes requests to appropriate handlers
from timesheet_workflow.handlers import (
    admin_handlers,
    approval_handlers,
    assignment_handlers,
    project_handlers,
    session_handlers,
    timesheet_handlers,
)
from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.utils.errors import ValidationError
from timesheet_workflow.utils.logging_helpers import get_logger
from timesheet_workflow.utils.request_helpers import parse_body
from timesheet_workflow.utils.response_helpers import build_response, error_response

logger = get_logger(__name__)

api_factory = ApiClient

# Actions that run before a session exists.
PUBLIC_ROUTES = {
    ("POST", "login"): session_handlers.handle_login,
    ("POST", "logout"): session_handlers.handle_logout,
}

ROUTES = {
    # ----- Session -----
    ("GET", "me"): session_handlers.handle_me,

    # ----- Timesheets -----
    ("GET", "listEntries"): timesheet_handlers.handle_list_entries,
    ("GET", "getEntry"): timesheet_handlers.handle_get_entry,
    ("GET", "entriesForDate"): timesheet_handlers.handle_list_entries_for_date,
    ("GET", "myStats"): timesheet_handlers.handle_my_stats,
    ("POST", "createEntry"): timesheet_handlers.handle_create_entry,
    ("POST", "updateEntry"): timesheet_handlers.handle_update_entry,
    ("POST", "deleteEntry"): timesheet_handlers.handle_delete_entry,
    ("DELETE", "deleteEntry"): timesheet_handlers.handle_delete_entry,

    # ----- Approvals -----
    ("POST", "approve"): approval_handlers.handle_approve,
    ("POST", "reject"): approval_handlers.handle_reject,
    ("POST", "decideMany"): approval_handlers.handle_decide_many,
    ("GET", "managerStats"): approval_handlers.handle_manager_stats,
    ("GET", "teamOverview"): approval_handlers.handle_team_overview,
    ("GET", "pendingApprovals"): approval_handlers.handle_pending_approvals,

    # ----- Projects -----
    ("GET", "listProjects"): project_handlers.handle_list_projects,
    ("POST", "createProject"): project_handlers.handle_create_project,
    ("POST", "updateProject"): project_handlers.handle_update_project,
    ("POST", "deleteProject"): project_handlers.handle_delete_project,

    # ----- Assignments -----
    ("GET", "assignedProjects"): assignment_handlers.handle_assigned_projects,
    ("GET", "projectAssignments"): assignment_handlers.handle_project_assignments,
    ("POST", "assign"): assignment_handlers.handle_assign,
    ("POST", "assignMany"): assignment_handlers.handle_assign_many,
    ("POST", "updateAssignmentRole"): assignment_handlers.handle_update_assignment_role,
    ("POST", "unassign"): assignment_handlers.handle_unassign,

    # ----- Admin directory -----
    ("GET", "listUsers"): admin_handlers.handle_list_users,
    ("GET", "getUser"): admin_handlers.handle_get_user,
    ("POST", "createUser"): admin_handlers.handle_create_user,
    ("POST", "updateUser"): admin_handlers.handle_update_user,
    ("POST", "proposeDeleteUser"): admin_handlers.handle_propose_delete_user,
    ("GET", "listDepartments"): admin_handlers.handle_list_departments,
    ("GET", "getDepartment"): admin_handlers.handle_get_department,
    ("POST", "createDepartment"): admin_handlers.handle_create_department,
    ("POST", "updateDepartment"): admin_handlers.handle_update_department,
    ("POST", "proposeDeleteDepartment"): admin_handlers.handle_propose_delete_department,
    ("POST", "proposeManagerChange"): admin_handlers.handle_propose_manager_change,
    ("POST", "commitConfirmation"): admin_handlers.handle_commit,
}


def lambda_handler(event, context):
    """
    Main Lambda entrypoint for the timesheet workflow.
    - Answers CORS preflight.
    - Reads the action from the body (POST/DELETE) or the query string (GET).
    - Resolves the caller's session for everything except login/logout.
    - Maps raised errors to status codes in one place.
    """
    method = (event.get("httpMethod") or "").upper()
    params = event.get("queryStringParameters") or {}
    logger.info(f"🚀 Timesheet workflow handler - Method: {method}, Path: {event.get('path', '')}")

    if method == "OPTIONS":
        return build_response(data={"message": "CORS preflight successful"}, event=event)

    action = None
    try:
        body = parse_body(event)
        action = (body.get("action") or params.get("action") or "").strip()
        data = {**params, **body}
        data.pop("action", None)

        public = PUBLIC_ROUTES.get((method, action))
        if public is not None:
            return public(event, data)

        handler = ROUTES.get((method, action))
        if handler is None:
            if not any(key[1] == action for key in ROUTES):
                raise ValidationError(f"Invalid {method or 'request'} action '{action}'", field="action")
            return build_response(error="Method not allowed", status=405, event=event)

        session = session_handlers.resolve_session(event)
        logger.info(f"Request by user {session.user_id} ({session.role.value}): {action}")
        with api_factory(token=session.token) as api:
            return handler(event, data, session, api)
    except Exception as e:
        return error_response(e, event=event, context=action or method)
