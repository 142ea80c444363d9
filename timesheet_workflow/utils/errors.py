# -------------------- ERROR TAXONOMY --------------------
from typing import Optional


class WorkflowError(Exception):
    """Base class for every failure an operation reports to its caller"""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(WorkflowError, ValueError):
    """Bad input detected locally; never reaches the network"""

    default_message = "Validation error"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateAssignmentError(ValidationError):
    default_message = "User is already assigned to this project"


class AuthorizationError(WorkflowError, PermissionError):
    default_message = "Not authorized to perform this action"


class NotFoundError(WorkflowError, LookupError):
    default_message = "Requested record not found"


class InvalidStateTransition(WorkflowError):
    default_message = "Transition not allowed from the current status"

    def __init__(self, message: Optional[str] = None, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


class ConcurrentTransitionError(InvalidStateTransition):
    """Another session changed the status between our read and our write"""

    default_message = "Entry was already actioned by another session"


class RemoteError(WorkflowError):
    """Non-2xx response or malformed envelope from the REST API"""

    default_message = "The server could not complete the request"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkError(WorkflowError):
    default_message = "Could not reach the server"
    retryable = True


class NetworkTimeout(NetworkError):
    default_message = "The server did not respond in time"
