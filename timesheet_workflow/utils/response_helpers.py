# -------------------- RESPONSE UTILITIES --------------------
import json
import time
import traceback
from typing import Any, Dict, Optional

from timesheet_workflow import config
from timesheet_workflow.utils.errors import (
    AuthorizationError,
    InvalidStateTransition,
    NetworkError,
    NetworkTimeout,
    NotFoundError,
    RemoteError,
    ValidationError,
    WorkflowError,
)
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

# Most specific first: NetworkTimeout before NetworkError, etc.
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateTransition, 409),
    (NetworkTimeout, 504),
    (NetworkError, 503),
    (RemoteError, 502),
)


def get_cors_headers(event):
    """Generate CORS headers based on request origin"""
    headers = (event.get("headers") or {}) if isinstance(event, dict) else {}
    origin = (headers.get("origin") or headers.get("Origin") or "").rstrip("/")
    return {
        "Access-Control-Allow-Origin": origin if origin in config.ALLOWED_ORIGINS else "null",
        "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Session-Id",
        "Access-Control-Allow-Methods": "OPTIONS,POST,GET,PUT,DELETE",
        "Access-Control-Allow-Credentials": "true",
        "Content-Type": "application/json",
    }


def build_response(data=None, *, status=200, error=None, event=None, fields=None, cookies=None):
    """Build standardized API response"""
    if error:
        body: Dict[str, Any] = {"error": error}
        if fields:
            body.update(fields)
    else:
        body = data if data is not None else {}

    headers = get_cors_headers(event or {})
    if cookies:
        headers["Set-Cookie"] = cookies
    return {
        "statusCode": status,
        "headers": headers,
        "body": json.dumps(body, default=str),
    }


def status_for_error(exc: Exception) -> int:
    for error_type, status in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


def error_response(exc: Exception, event=None, context: Optional[str] = None):
    """Map a raised error to a response; unexpected errors get an error id and a stack trace in the log"""
    status = status_for_error(exc)
    if isinstance(exc, WorkflowError) and status != 500:
        fields: Dict[str, Any] = {"errorType": type(exc).__name__}
        if isinstance(exc, ValidationError) and exc.field:
            fields["field"] = exc.field
        if isinstance(exc, InvalidStateTransition) and exc.current_status:
            fields["currentStatus"] = exc.current_status
        if isinstance(exc, NetworkError):
            fields["retryable"] = exc.retryable
        logger.warning(f"{context or 'request'} failed ({status}): {exc.message}")
        return build_response(error=exc.message, status=status, event=event, fields=fields)

    error_id = f"tsw-{int(time.time())}"
    logger.error(f"❌ Unhandled error [{error_id}] in {context or 'request'}: {exc}")
    logger.error(f"Stack trace: {traceback.format_exc()}")
    return build_response(
        error="Internal server error occurred while processing your request",
        status=500,
        event=event,
        fields={"errorId": error_id},
    )
