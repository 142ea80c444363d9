# Data access layer for pending two-phase confirmations
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from timesheet_workflow.models.database_models import from_dynamo, get_table
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)


class ConfirmationModel:
    """Data access layer for confirmation records"""

    def __init__(self, table=None):
        self.table = table if table is not None else get_table("confirmations")

    def create_confirmation(self, confirmation: Dict[str, Any]) -> None:
        try:
            self.table.put_item(Item=confirmation)
            logger.debug(f"Created confirmation {confirmation.get('confirmationID')}")
        except ClientError as e:
            logger.error(f"Error creating confirmation: {e}")
            raise

    def get_confirmation(self, confirmation_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key={"confirmationID": confirmation_id})
            return from_dynamo(response.get("Item"))
        except ClientError as e:
            logger.error(f"Error loading confirmation {confirmation_id}: {e}")
            raise

    def consume_confirmation(self, confirmation_id: str) -> Optional[Dict[str, Any]]:
        """Delete and return the record; a second consume of the same id returns None"""
        try:
            response = self.table.delete_item(
                Key={"confirmationID": confirmation_id},
                ReturnValues="ALL_OLD",
            )
            return from_dynamo(response.get("Attributes"))
        except ClientError as e:
            logger.error(f"Error consuming confirmation {confirmation_id}: {e}")
            raise
