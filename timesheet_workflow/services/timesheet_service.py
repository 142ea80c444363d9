# Business logic for the caller's own timesheet entries
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import (
    ApprovalStatus,
    SessionContext,
    TimesheetEntry,
)
from timesheet_workflow.models.validation_models import validate_entry
from timesheet_workflow.services import policy_service
from timesheet_workflow.utils.date_helpers import month_start, parse_date, week_start
from timesheet_workflow.utils.errors import AuthorizationError, RemoteError, ValidationError
from timesheet_workflow.utils.logging_helpers import get_logger
from timesheet_workflow.utils.request_tracking import RequestTracker

logger = get_logger(__name__)

PAST_TENSE = {"edit": "edited", "delete": "deleted"}

EDITABLE_FIELDS = {
    "workDate": "work_date",
    "projectId": "project_id",
    "activityType": "activity_type",
    "hoursWorked": "hours_worked",
    "description": "description",
}


class TimesheetEntryStore:
    """
    Read-through view of the caller's entries.

    The REST API is authoritative: every mutation goes remote first and the
    local copy is replaced with whatever the server returns. Each remote read
    is ticketed by the request tracker, and a result whose ticket has been
    superseded (or whose store was closed) is dropped instead of applied.
    """

    def __init__(self, api: ApiClient, session: SessionContext, tracker: Optional[RequestTracker] = None):
        self.api = api
        self.session = session
        self.tracker = tracker or RequestTracker()
        self._entries: Dict[Any, TimesheetEntry] = {}

    # -------------------- LOCAL VIEW --------------------
    @property
    def cached_entries(self) -> List[TimesheetEntry]:
        return list(self._entries.values())

    def close(self) -> None:
        self.tracker.close()
        self._entries.clear()

    def _apply(self, key: str, ticket: int, entries: List[TimesheetEntry], replace_all: bool = False) -> bool:
        if not self.tracker.is_current(key, ticket):
            logger.debug(f"Discarding stale result for {key}")
            return False
        if replace_all:
            self._entries = {e.id: e for e in entries}
        else:
            for entry in entries:
                self._entries[entry.id] = entry
        return True

    def _forget(self, entry_id) -> None:
        self._entries.pop(entry_id, None)

    # -------------------- REMOTE OPERATIONS --------------------
    def list_for_current_user(self) -> List[TimesheetEntry]:
        ticket = self.tracker.begin("entries")
        rows = self.api.get_list("/api/timesheets")
        entries = [TimesheetEntry.from_api(row) for row in rows]
        # The endpoint is already scoped server-side; keep only own rows in case it is not.
        entries = [e for e in entries if e.user_id in (None, self.session.user_id)]
        for entry in entries:
            if entry.user_id is None:
                entry.user_id = self.session.user_id
        self._apply("entries", ticket, entries, replace_all=True)
        return entries

    def get(self, entry_id) -> TimesheetEntry:
        key = f"entry:{entry_id}"
        ticket = self.tracker.begin(key)
        entry = TimesheetEntry.from_api(self.api.get_object(f"/api/timesheets/{entry_id}"))
        if entry.user_id == self.session.user_id:
            self._apply(key, ticket, [entry])
        return entry

    def list_for_date(self, work_date) -> List[TimesheetEntry]:
        """The caller's entries for one calendar day"""
        day = parse_date(work_date)
        if day is None:
            raise ValidationError("date is required (YYYY-MM-DD)", field="date")
        key = f"date:{day.isoformat()}"
        ticket = self.tracker.begin(key)
        rows = self.api.get_list("/api/timesheets/date", params={"date": day.isoformat()})
        entries = [TimesheetEntry.from_api(row) for row in rows]
        entries = [e for e in entries
                   if e.user_id in (None, self.session.user_id) and parse_date(e.work_date) == day]
        for entry in entries:
            if entry.user_id is None:
                entry.user_id = self.session.user_id
        self._apply(key, ticket, entries)
        return entries

    def create(self, entry_input) -> TimesheetEntry:
        entry = entry_input if isinstance(entry_input, TimesheetEntry) else TimesheetEntry.from_input(entry_input)
        entry = replace(entry, id=None, user_id=self.session.user_id,
                        approval_status=ApprovalStatus.PENDING, remarks=None)
        validate_entry(entry)

        created = self.api.post("/api/timesheets", entry.to_api())
        if not isinstance(created, dict):
            raise RemoteError("Malformed response while creating timesheet")
        saved = TimesheetEntry.from_api(created)
        if saved.id is None:
            raise RemoteError("Server did not assign an id to the new timesheet")
        if saved.approval_status is not ApprovalStatus.PENDING:
            logger.warning(f"Server returned {saved.approval_status.value} for new entry {saved.id}; forcing PENDING")
            saved.approval_status = ApprovalStatus.PENDING
        if saved.user_id is None:
            saved.user_id = self.session.user_id
        self._entries[saved.id] = saved
        logger.info(f"✅ Created timesheet {saved.id} for user {self.session.user_id}")
        return saved

    def update(self, entry_id, patch: Dict[str, Any]) -> TimesheetEntry:
        unknown = set(patch or {}) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

        # Permission is checked against a fresh remote copy, never the local cache.
        current = self.get(entry_id)
        if not policy_service.can_edit_timesheet(current, self.session.user):
            raise AuthorizationError(self._denial_reason(current, "edit"))

        changes = {}
        for api_key, attr in EDITABLE_FIELDS.items():
            if api_key in patch:
                changes[attr] = patch[api_key]
        if "project_id" in changes and changes["project_id"]:
            changes.setdefault("activity_type", None)
        if "activity_type" in changes and changes["activity_type"]:
            changes.setdefault("project_id", None)
        if isinstance(changes.get("project_id"), str) and changes["project_id"].isdigit():
            changes["project_id"] = int(changes["project_id"])
        candidate = replace(current, **changes)
        validate_entry(candidate)

        updated = self.api.put(f"/api/timesheets/{entry_id}", candidate.to_api())
        saved = TimesheetEntry.from_api(updated) if isinstance(updated, dict) else self.get(entry_id)
        self._entries[saved.id] = saved
        logger.info(f"Updated timesheet {entry_id}")
        return saved

    def delete(self, entry_id) -> None:
        current = self.get(entry_id)
        if not policy_service.can_delete_timesheet(current, self.session.user):
            raise AuthorizationError(self._denial_reason(current, "delete"))
        self.api.delete(f"/api/timesheets/{entry_id}")
        self._forget(current.id)
        logger.info(f"Deleted timesheet {entry_id}")

    def _denial_reason(self, entry: TimesheetEntry, verb: str) -> str:
        if entry.user_id != self.session.user_id:
            return f"You can only {verb} your own timesheets"
        return f"Timesheet is {entry.approval_status.value} and can no longer be {PAST_TENSE[verb]}"

    def stats_for_current_user(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        entries = self.list_for_current_user()
        first_of_week = week_start(today)
        first_of_month = month_start(today)

        weekly = monthly = 0.0
        counts = {status: 0 for status in ApprovalStatus}
        for entry in entries:
            counts[entry.approval_status] += 1
            worked_on = parse_date(entry.work_date)
            if worked_on is None or worked_on > today:
                continue
            if worked_on >= first_of_week:
                weekly += entry.hours_worked
            if worked_on >= first_of_month:
                monthly += entry.hours_worked

        return {
            "weeklyHours": round(weekly, 2),
            "monthlyHours": round(monthly, 2),
            "pendingCount": counts[ApprovalStatus.PENDING],
            "approvedCount": counts[ApprovalStatus.APPROVED],
            "rejectedCount": counts[ApprovalStatus.REJECTED],
        }
