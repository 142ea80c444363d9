# Request handlers for login, logout and the current profile
from typing import Optional

from timesheet_workflow.models.entities import SessionContext
from timesheet_workflow.services.session_service import SessionService
from timesheet_workflow.utils import token_utils
from timesheet_workflow.utils.logging_helpers import get_logger
from timesheet_workflow.utils.request_helpers import get_session_id, session_cookie
from timesheet_workflow.utils.response_helpers import build_response

logger = get_logger(__name__)

session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    global session_service
    if session_service is None:
        session_service = SessionService()
    return session_service


def resolve_session(event) -> SessionContext:
    """Rehydrate the caller's session; raises AuthorizationError when there is none"""
    return get_session_service().rehydrate(get_session_id(event))


def handle_login(event, data):
    session = get_session_service().login(data.get("email"), data.get("password"))
    claims = token_utils.decode(session.token) or {}
    exp, iat = claims.get("exp"), claims.get("iat")
    max_age = int(exp - iat) if isinstance(exp, (int, float)) and isinstance(iat, (int, float)) else 3600
    return build_response(
        data={
            "message": "Login successful",
            "sessionId": session.session_id,
            "user": session.user.to_api(),
        },
        event=event,
        cookies=session_cookie(session.session_id, max_age),
    )


def handle_logout(event, data):
    get_session_service().logout(get_session_id(event))
    return build_response(
        data={"message": "Logged out"},
        event=event,
        cookies=session_cookie("", 0),
    )


def handle_me(event, data, session: SessionContext, api):
    return build_response(data={"user": session.user.to_api()}, event=event)
