# -------------------- FIELD VALIDATION --------------------
from datetime import date
from typing import Optional

from timesheet_workflow.models.entities import Project, TimesheetEntry
from timesheet_workflow.utils.date_helpers import parse_date
from timesheet_workflow.utils.errors import ValidationError


def _positive_number(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def validate_entry(entry: TimesheetEntry) -> None:
    """Raise ValidationError naming the first unmet constraint"""
    if not entry.work_date or parse_date(entry.work_date) is None:
        raise ValidationError("workDate is required (YYYY-MM-DD)", field="workDate")

    project_id = entry.project_id
    has_project = isinstance(project_id, int) and not isinstance(project_id, bool) and project_id > 0
    has_activity = bool((entry.activity_type or "").strip())
    if has_project == has_activity:
        raise ValidationError(
            "Exactly one of projectId or activityType must be provided",
            field="projectId",
        )

    hours = _positive_number(entry.hours_worked)
    if hours is None:
        raise ValidationError("hoursWorked must be greater than zero", field="hoursWorked")
    entry.hours_worked = hours


def validate_project(project: Project) -> None:
    if not (project.name or "").strip():
        raise ValidationError("Project name is required", field="name")
    if project.department_id is None:
        raise ValidationError("departmentId is required", field="departmentId")

    start: Optional[date] = parse_date(project.start_date)
    end: Optional[date] = parse_date(project.end_date)
    if project.start_date and start is None:
        raise ValidationError("startDate must be YYYY-MM-DD", field="startDate")
    if project.end_date and end is None:
        raise ValidationError("endDate must be YYYY-MM-DD", field="endDate")
    if start is None:
        raise ValidationError("startDate is required", field="startDate")
    if end is None:
        raise ValidationError("endDate is required", field="endDate")
    if start > end:
        raise ValidationError("startDate must be on or before endDate", field="endDate")
