# Business logic for login, logout and session rehydration
import uuid
from typing import Any, Callable, Dict, Optional

from timesheet_workflow.models.api_client import ApiClient
from timesheet_workflow.models.entities import SessionContext, User
from timesheet_workflow.models.session_model import SessionModel
from timesheet_workflow.utils import token_utils
from timesheet_workflow.utils.errors import (
    AuthorizationError,
    NetworkError,
    RemoteError,
    ValidationError,
)
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)


def extract_token(payload: Any) -> Optional[str]:
    """Login responses carry the token bare, or under 'token' / 'data'"""
    if isinstance(payload, str):
        return payload.strip() or None
    if isinstance(payload, dict):
        for key in ("token", "data", "accessToken"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, dict):
                nested = extract_token(value)
                if nested:
                    return nested
    return None


class SessionService:
    """Service class for session lifecycle"""

    def __init__(self, session_model: Optional[SessionModel] = None,
                 api_factory: Callable[..., ApiClient] = ApiClient):
        self.session_model = session_model or SessionModel()
        self.api_factory = api_factory

    def login(self, email: str, password: str) -> SessionContext:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("email and password are required", field="email")

        try:
            with self.api_factory() as api:
                payload = api.post("/auth/login", {"email": email, "password": password}, raw=True)
        except RemoteError as e:
            if e.status_code in (400, 401, 403):
                raise AuthorizationError(e.message or "Incorrect email or password")
            raise
        token = extract_token(payload)
        if not token or token_utils.decode(token) is None:
            raise RemoteError("Invalid token in login response")
        if token_utils.is_expired(token):
            raise AuthorizationError("Issued credential is already expired")

        user = self._build_profile(token, email)
        session_id = uuid.uuid4().hex
        claims = token_utils.decode(token) or {}
        self.session_model.save_session(session_id, token, user.to_api(), expires_at=claims.get("exp"))
        logger.info(f"✅ Login for user {user.id} as {user.role.value}")
        return SessionContext(token=token, user=user, session_id=session_id)

    def _build_profile(self, token: str, login_email: str) -> User:
        user = User(
            id=token_utils.user_id_of(token),
            email=token_utils.email_of(token) or login_email,
            name=login_email.split("@")[0],
            role=token_utils.role_of(token),
        )
        try:
            with self.api_factory(token=token) as api:
                details = api.get_object("/api/users/me")
        except (RemoteError, NetworkError) as e:
            logger.warning(f"Profile details fetch failed, using token claims only: {e}")
            return user

        remote = User.from_api(details)
        # The role always comes from the credential: role changes apply on next token issuance.
        user.id = remote.id if remote.id is not None else user.id
        user.name = remote.name or user.name
        user.department_id = remote.department_id
        user.active = remote.active
        return user

    def rehydrate(self, session_id: Optional[str]) -> SessionContext:
        if not session_id:
            raise AuthorizationError("Not logged in")
        item = self.session_model.get_session(session_id)
        if not item or not item.get("token"):
            raise AuthorizationError("Session not found; please log in again")

        token = item["token"]
        if token_utils.is_expired(token):
            logger.info(f"Session {session_id[:8]} has an expired credential; clearing")
            self.session_model.delete_session(session_id)
            raise AuthorizationError("Session expired; please log in again")

        profile: Dict[str, Any] = item.get("profile") or {}
        user = User.from_api(profile)
        if user.id is None:
            user.id = token_utils.user_id_of(token)
        user.role = token_utils.role_of(token)
        return SessionContext(token=token, user=user, session_id=session_id)

    def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            self.session_model.delete_session(session_id)
