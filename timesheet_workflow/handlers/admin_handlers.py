# Request handlers for admin directory operations
from typing import Optional

from timesheet_workflow.services.admin_service import AdminService
from timesheet_workflow.services.confirmation_service import ConfirmationService
from timesheet_workflow.utils.errors import ValidationError
from timesheet_workflow.utils.request_helpers import require_field
from timesheet_workflow.utils.response_helpers import build_response

confirmation_service: Optional[ConfirmationService] = None


def get_confirmation_service() -> ConfirmationService:
    global confirmation_service
    if confirmation_service is None:
        confirmation_service = ConfirmationService()
    return confirmation_service


def _service(api, session) -> AdminService:
    return AdminService(api, session, confirmations=get_confirmation_service())


def _patch(data):
    patch = data.get("patch")
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("patch must be a non-empty object", field="patch")
    return patch


# -------------------- USERS --------------------
def handle_list_users(event, data, session, api):
    users = _service(api, session).list_users()
    return build_response(data={"users": [u.to_api() for u in users]}, event=event)


def handle_get_user(event, data, session, api):
    user = _service(api, session).get_user(require_field(data, "userId"))
    return build_response(data={"user": user.to_api()}, event=event)


def handle_create_user(event, data, session, api):
    user = _service(api, session).create_user(data.get("user") or data)
    return build_response(data={"message": "User created", "user": user.to_api()}, status=201, event=event)


def handle_update_user(event, data, session, api):
    user = _service(api, session).update_user(require_field(data, "userId"), _patch(data))
    return build_response(data={"message": "User updated", "user": user.to_api()}, event=event)


def handle_propose_delete_user(event, data, session, api):
    token = _service(api, session).propose_delete_user(require_field(data, "userId"))
    return build_response(data={"confirmation": token.to_dict()}, status=202, event=event)


# -------------------- DEPARTMENTS --------------------
def handle_list_departments(event, data, session, api):
    departments = _service(api, session).list_departments()
    return build_response(data={"departments": [d.to_api() for d in departments]}, event=event)


def handle_get_department(event, data, session, api):
    department = _service(api, session).get_department(require_field(data, "departmentId"))
    return build_response(data={"department": department.to_api()}, event=event)


def handle_create_department(event, data, session, api):
    department = _service(api, session).create_department(data.get("department") or data)
    return build_response(data={"message": "Department created", "department": department.to_api()},
                          status=201, event=event)


def handle_update_department(event, data, session, api):
    department = _service(api, session).update_department(require_field(data, "departmentId"), _patch(data))
    return build_response(data={"message": "Department updated", "department": department.to_api()}, event=event)


def handle_propose_delete_department(event, data, session, api):
    token = _service(api, session).propose_delete_department(require_field(data, "departmentId"))
    return build_response(data={"confirmation": token.to_dict()}, status=202, event=event)


def handle_propose_manager_change(event, data, session, api):
    token = _service(api, session).propose_manager_change(
        require_field(data, "departmentId"),
        require_field(data, "managerId"),
    )
    return build_response(data={"confirmation": token.to_dict()}, status=202, event=event)


def handle_commit(event, data, session, api):
    result = _service(api, session).commit(require_field(data, "confirmationID"))
    return build_response(data={"message": "Action committed", **result}, event=event)
