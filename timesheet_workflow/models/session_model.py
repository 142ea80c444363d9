# Data access layer for persisted sessions
from datetime import datetime
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from timesheet_workflow.models.database_models import from_dynamo, get_table
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)


class SessionModel:
    """
    One item per session: the bearer credential and the last-known profile
    live together so a login is a single put_item and can never be observed
    half-written.
    """

    def __init__(self, table=None):
        self.table = table if table is not None else get_table("sessions")

    def save_session(self, session_id: str, token: str, profile: Dict[str, Any], expires_at=None) -> None:
        item = {
            "sessionID": session_id,
            "token": token,
            "profile": profile,
            "createdAt": datetime.utcnow().isoformat(),
        }
        if expires_at is not None:
            # DynamoDB TTL attribute
            item["expiresAt"] = int(expires_at)
        try:
            self.table.put_item(Item=item)
            logger.info(f"✅ Stored session {session_id[:8]} for user {profile.get('id')}")
        except ClientError as e:
            logger.error(f"Error storing session: {e}")
            raise

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key={"sessionID": session_id})
            return from_dynamo(response.get("Item"))
        except ClientError as e:
            logger.error(f"Error loading session {session_id[:8]}: {e}")
            raise

    def delete_session(self, session_id: str) -> None:
        try:
            self.table.delete_item(Key={"sessionID": session_id})
            logger.info(f"Cleared session {session_id[:8]}")
        except ClientError as e:
            logger.error(f"Error clearing session {session_id[:8]}: {e}")
            raise
