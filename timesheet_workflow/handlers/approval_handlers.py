# Request handlers for manager approval operations
from timesheet_workflow.models.entities import ApprovalStatus
from timesheet_workflow.services.approval_service import ApprovalService
from timesheet_workflow.utils.logging_helpers import get_logger
from timesheet_workflow.utils.request_helpers import id_list, require_field
from timesheet_workflow.utils.response_helpers import build_response

logger = get_logger(__name__)


def _transition(event, data, session, api, target: ApprovalStatus):
    entry_id = require_field(data, "timesheetId")
    entry = ApprovalService(api, session).transition(entry_id, target, data.get("remarks") or "")
    return build_response(
        data={"message": f"Timesheet {target.value.lower()}", "entry": entry.to_dict()},
        event=event,
    )


def handle_approve(event, data, session, api):
    return _transition(event, data, session, api, ApprovalStatus.APPROVED)


def handle_reject(event, data, session, api):
    return _transition(event, data, session, api, ApprovalStatus.REJECTED)


def handle_decide_many(event, data, session, api):
    """
    Batch approve/reject. Every id is decided on its own; the status code
    reflects the mix of outcomes (200 all ok, 207 partial, 4xx none).
    """
    entry_ids = id_list(data, "timesheetIds")
    status = require_field(data, "status")
    result = ApprovalService(api, session).transition_many(entry_ids, status, data.get("remarks") or "")

    ok, failed = len(result["succeeded"]), len(result["failed"])
    if ok == 0 and failed > 0:
        auth_errors = [f for f in result["failed"] if f["errorType"] == "AuthorizationError"]
        status_code = 403 if len(auth_errors) == failed else 400
    elif ok > 0 and failed > 0:
        status_code = 207
    else:
        status_code = 200

    logger.info(f"Decide-many by {session.user_id}: {ok} ok, {failed} failed")
    return build_response(
        data={
            "message": f"Processed {ok} of {len(entry_ids)} timesheets",
            "succeeded": result["succeeded"],
            "failed": result["failed"],
        },
        status=status_code,
        event=event,
    )


def _manager_id(data, session):
    return data.get("managerId") or session.user_id


def handle_manager_stats(event, data, session, api):
    stats = ApprovalService(api, session).stats_for(_manager_id(data, session))
    return build_response(data=stats, event=event)


def handle_team_overview(event, data, session, api):
    overview = ApprovalService(api, session).team_overview(_manager_id(data, session))
    return build_response(data={"team": overview}, event=event)


def handle_pending_approvals(event, data, session, api):
    entries = ApprovalService(api, session).pending_for_manager(_manager_id(data, session))
    return build_response(data={"entries": [e.to_dict() for e in entries]}, event=event)
