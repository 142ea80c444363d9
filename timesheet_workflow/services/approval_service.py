# Business logic for approving and rejecting timesheet entries
from typing import Any, Dict, Iterable, List, Tuple

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import (
    ApprovalStatus,
    Project,
    Role,
    SessionContext,
    TimesheetEntry,
    User,
    parse_status,
)
from timesheet_workflow.services import policy_service
from timesheet_workflow.utils.errors import (
    AuthorizationError,
    ConcurrentTransitionError,
    InvalidStateTransition,
    RemoteError,
    ValidationError,
    WorkflowError,
)
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

# PENDING is the only state with outgoing transitions.
TRANSITIONS = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: set(),
    ApprovalStatus.REJECTED: set(),
}


class ApprovalService:
    """Service class containing business logic for approval operations"""

    def __init__(self, api: ApiClient, session: SessionContext):
        self.api = api
        self.session = session

    # -------------------- TRANSITIONS --------------------
    def approve(self, entry_id, remarks: str = "") -> TimesheetEntry:
        return self.transition(entry_id, ApprovalStatus.APPROVED, remarks)

    def reject(self, entry_id, remarks: str = "") -> TimesheetEntry:
        return self.transition(entry_id, ApprovalStatus.REJECTED, remarks)

    def transition(self, entry_id, target, remarks: str = "") -> TimesheetEntry:
        target = parse_status(target)
        if target is ApprovalStatus.PENDING:
            raise ValidationError("Invalid status. Allowed: APPROVED, REJECTED", field="status")
        if not policy_service.can_do(self.session.role, "Approvals", "approve_reject"):
            raise AuthorizationError("Only managers can approve or reject timesheets")

        entry = TimesheetEntry.from_api(self.api.get_object(f"/api/timesheets/{entry_id}"))
        owner = User.from_api(self.api.get_object(f"/api/users/{entry.user_id}"))
        # Authority first, so the status of someone else's entry is never revealed.
        if not policy_service.is_approver_for(entry, self.session.user, owner):
            raise AuthorizationError("Only the manager of this employee's department can approve/reject this timesheet")
        if target not in TRANSITIONS[entry.approval_status]:
            raise InvalidStateTransition(
                f"Timesheet {entry_id} is already {entry.approval_status.value}",
                current_status=entry.approval_status.value,
            )

        try:
            result = self.api.put(
                f"/api/timesheets/{entry_id}/status",
                {
                    "status": target.value,
                    "remarks": remarks or "",
                    "expectedStatus": ApprovalStatus.PENDING.value,
                },
            )
        except RemoteError as e:
            if e.status_code == 409:
                logger.warning(f"Lost transition race on timesheet {entry_id}: {e.message}")
                raise ConcurrentTransitionError(e.message)
            raise

        updated = TimesheetEntry.from_api(result) if isinstance(result, dict) else \
            TimesheetEntry.from_api(self.api.get_object(f"/api/timesheets/{entry_id}"))
        if updated.approval_status is not target:
            # Another decision landed first.
            raise ConcurrentTransitionError(
                f"Timesheet {entry_id} is {updated.approval_status.value}, not {target.value}",
                current_status=updated.approval_status.value,
            )

        logger.info(f"✅ Timesheet {entry_id} {target.value.lower()} by manager {self.session.user_id}")
        return updated

    def transition_many(self, entry_ids: Iterable[Any], target, remarks: str = "") -> Dict[str, Any]:
        """Decide each entry independently; one failure never undoes the others"""
        seen = set()
        ordered_ids = []
        for raw in entry_ids or []:
            if raw is None or str(raw).strip() == "" or str(raw) in seen:
                continue
            seen.add(str(raw))
            ordered_ids.append(raw)

        results = {"succeeded": [], "failed": []}
        for entry_id in ordered_ids:
            try:
                updated = self.transition(entry_id, target, remarks)
                results["succeeded"].append(updated.to_dict())
            except WorkflowError as e:
                failure = {"timesheetId": entry_id, "error": e.message, "errorType": type(e).__name__}
                if isinstance(e, InvalidStateTransition) and e.current_status:
                    failure["currentStatus"] = e.current_status
                results["failed"].append(failure)
        logger.info(f"Batch decision: {len(results['succeeded'])} succeeded, {len(results['failed'])} failed")
        return results

    # -------------------- MANAGER SCOPE --------------------
    def _resolve_manager(self, manager_id) -> User:
        if self.session.user_id is not None and str(manager_id) == str(self.session.user_id):
            manager = self.session.user
        elif policy_service.can_view_all_users(self.session.role):
            manager = User.from_api(self.api.get_object(f"/api/users/{manager_id}"))
        else:
            raise AuthorizationError("You can only view your own team statistics")
        if manager.role is not Role.MANAGER:
            raise ValidationError(f"User {manager_id} is not a manager", field="managerId")
        return manager

    def _scope(self, manager_id) -> Tuple[User, List[User], List[TimesheetEntry]]:
        manager = self._resolve_manager(manager_id)
        if manager.department_id is None:
            return manager, [], []
        members = [User.from_api(u) for u in self.api.get_list(f"/api/departments/{manager.department_id}/users")]
        team = [u for u in members if u.role is Role.EMPLOYEE and u.department_id in (None, manager.department_id)]
        team_ids = {u.id for u in team}
        entries = [TimesheetEntry.from_api(e) for e in self.api.get_list(f"/api/timesheets/manager/{manager.id}")]
        # Strictly id-keyed scoping.
        entries = [e for e in entries if e.user_id in team_ids]
        return manager, team, entries

    def stats_for(self, manager_id) -> Dict[str, int]:
        manager, team, entries = self._scope(manager_id)
        projects = [Project.from_api(p) for p in self.api.get_list("/api/projects")]
        department_projects = policy_service.visible_projects_for(manager, projects)
        pending = sum(1 for e in entries if e.approval_status is ApprovalStatus.PENDING)
        return {
            "teamCount": len(team),
            "projectsCount": len(department_projects),
            "approvalsActioned": len(entries) - pending,
            "pendingApprovals": pending,
        }

    def pending_for_manager(self, manager_id) -> List[TimesheetEntry]:
        _, _, entries = self._scope(manager_id)
        return [e for e in entries if e.approval_status is ApprovalStatus.PENDING]

    def team_overview(self, manager_id) -> List[Dict[str, Any]]:
        _, team, entries = self._scope(manager_id)
        pending_by_user: Dict[Any, List[TimesheetEntry]] = {u.id: [] for u in team}
        for entry in entries:
            if entry.approval_status is ApprovalStatus.PENDING:
                pending_by_user[entry.user_id].append(entry)

        overview = []
        for member in team:
            member_pending = pending_by_user.get(member.id, [])
            overview.append({
                "id": member.id,
                "name": member.name or member.email or "Unknown",
                "role": member.role.value,
                "pendingCount": len(member_pending),
                "pendingHours": round(sum(e.hours_worked for e in member_pending), 2),
                "status": "pending" if member_pending else "completed",
            })
        return overview
