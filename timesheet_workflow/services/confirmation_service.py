# Two-phase confirmation for destructive or impactful actions
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from timesheet_workflow import config
from timesheet_workflow.models.confirmation_model import ConfirmationModel
from timesheet_workflow.models.entities import SessionContext
from timesheet_workflow.utils.errors import AuthorizationError, NotFoundError
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)


@dataclass
class ConfirmationToken:
    confirmation_id: str
    action: str
    summary: str
    expires_at: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confirmationID": self.confirmation_id,
            "action": self.action,
            "summary": self.summary,
            "expiresAt": self.expires_at,
            "impact": self.payload.get("impact", {}),
        }


class ConfirmationService:
    """
    propose() records what is about to happen and returns a token; commit()
    hands the recorded payload back exactly once, to the same user, before
    the token expires. Executing the action stays with the caller.
    """

    def __init__(self, confirmation_model: Optional[ConfirmationModel] = None,
                 ttl_seconds: Optional[int] = None, clock=time.time):
        self.confirmation_model = confirmation_model or ConfirmationModel()
        self.ttl_seconds = config.CONFIRMATION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock

    def propose(self, action: str, payload: Dict[str, Any], summary: str,
                session: SessionContext) -> ConfirmationToken:
        token = ConfirmationToken(
            confirmation_id=uuid.uuid4().hex,
            action=action,
            summary=summary,
            expires_at=int(self.clock()) + self.ttl_seconds,
            payload=payload,
        )
        self.confirmation_model.create_confirmation({
            "confirmationID": token.confirmation_id,
            "action": action,
            "summary": summary,
            "payload": payload,
            "requestedBy": str(session.user_id),
            "expiresAt": token.expires_at,
        })
        logger.info(f"Proposed {action} ({token.confirmation_id[:8]}) by user {session.user_id}")
        return token

    def commit(self, confirmation_id: str, session: SessionContext,
               expected_action: Optional[str] = None) -> ConfirmationToken:
        if not confirmation_id:
            raise NotFoundError("confirmationID is required")

        record = self.confirmation_model.get_confirmation(confirmation_id)
        if not record:
            raise NotFoundError("Confirmation not found or already used")
        if str(record.get("requestedBy")) != str(session.user_id):
            raise AuthorizationError("Confirmation belongs to another user")
        if expected_action and record.get("action") != expected_action:
            raise NotFoundError(f"Confirmation is not for {expected_action}")

        consumed = self.confirmation_model.consume_confirmation(confirmation_id)
        if not consumed:
            raise NotFoundError("Confirmation not found or already used")
        if int(consumed.get("expiresAt") or 0) <= int(self.clock()):
            raise NotFoundError("Confirmation expired; propose the action again")

        logger.info(f"Committed {consumed.get('action')} ({confirmation_id[:8]}) by user {session.user_id}")
        return self._token_from(confirmation_id, consumed)

    def restore(self, token: ConfirmationToken, session: SessionContext) -> None:
        """Put back a committed confirmation whose action failed, keeping its id and original expiry"""
        self.confirmation_model.create_confirmation({
            "confirmationID": token.confirmation_id,
            "action": token.action,
            "summary": token.summary,
            "payload": token.payload,
            "requestedBy": str(session.user_id),
            "expiresAt": token.expires_at,
        })
        logger.info(f"Restored {token.action} ({token.confirmation_id[:8]}) for retry")

    @staticmethod
    def _token_from(confirmation_id: str, consumed: Dict[str, Any]) -> ConfirmationToken:
        return ConfirmationToken(
            confirmation_id=confirmation_id,
            action=consumed.get("action"),
            summary=consumed.get("summary") or "",
            expires_at=int(consumed.get("expiresAt") or 0),
            payload=consumed.get("payload") or {},
        )
