# Request handlers for the caller's own timesheet entries
from timesheet_workflow.services.timesheet_service import EDITABLE_FIELDS, TimesheetEntryStore
from timesheet_workflow.utils.date_helpers import parse_date
from timesheet_workflow.utils.errors import ValidationError
from timesheet_workflow.utils.request_helpers import require_field
from timesheet_workflow.utils.response_helpers import build_response


def handle_list_entries(event, data, session, api):
    entries = TimesheetEntryStore(api, session).list_for_current_user()
    return build_response(data={"entries": [e.to_dict() for e in entries]}, event=event)


def handle_get_entry(event, data, session, api):
    entry = TimesheetEntryStore(api, session).get(require_field(data, "timesheetId"))
    return build_response(data={"entry": entry.to_dict()}, event=event)


def handle_list_entries_for_date(event, data, session, api):
    entries = TimesheetEntryStore(api, session).list_for_date(require_field(data, "date"))
    return build_response(data={"entries": [e.to_dict() for e in entries]}, event=event)


def handle_create_entry(event, data, session, api):
    entry = TimesheetEntryStore(api, session).create(data.get("entry") or data)
    return build_response(data={"message": "Timesheet created", "entry": entry.to_dict()}, status=201, event=event)


def handle_update_entry(event, data, session, api):
    entry_id = require_field(data, "timesheetId")
    patch = data.get("patch")
    if patch is None:
        patch = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    if not isinstance(patch, dict) or not patch:
        raise ValidationError("Nothing to update", field="patch")
    entry = TimesheetEntryStore(api, session).update(entry_id, patch)
    return build_response(data={"message": "Timesheet updated", "entry": entry.to_dict()}, event=event)


def handle_delete_entry(event, data, session, api):
    entry_id = require_field(data, "timesheetId")
    TimesheetEntryStore(api, session).delete(entry_id)
    return build_response(data={"message": "Timesheet deleted", "timesheetId": entry_id}, event=event)


def handle_my_stats(event, data, session, api):
    today = None
    if data.get("today"):
        today = parse_date(data["today"])
        if today is None:
            raise ValidationError("today must be YYYY-MM-DD", field="today")
    stats = TimesheetEntryStore(api, session).stats_for_current_user(today=today)
    return build_response(data=stats, event=event)
