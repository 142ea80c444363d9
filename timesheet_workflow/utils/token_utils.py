# -------------------- CREDENTIAL DECODING --------------------
"""
Read-only helpers over the bearer credential issued by the REST API.

The credential is a JWT signed by the backend. This service never holds the
signing secret, so claims are decoded without signature verification; the
backend re-verifies the token on every call we forward it with. Nothing in
this module raises on bad input: a credential that cannot be decoded behaves
like an expired, role-less one.
"""
import time
from typing import Any, Dict, Optional

import jwt

from timesheet_workflow.models.entities import Role, parse_role
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

USER_ID_CLAIMS = ("userId", "id")


def decode(credential) -> Optional[Dict[str, Any]]:
    """Return the claims object, or None for anything that is not a 3-segment JWT with a JSON object payload"""
    if not isinstance(credential, str) or credential.count(".") != 2:
        return None
    try:
        claims = jwt.decode(credential, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        logger.debug(f"Credential decode failed: {e}")
        return None
    except (ValueError, TypeError) as e:
        logger.debug(f"Credential payload unreadable: {e}")
        return None
    return claims if isinstance(claims, dict) else None


def is_expired(credential, now: Optional[float] = None) -> bool:
    claims = decode(credential)
    if not claims:
        return True
    expires_at = claims.get("exp")
    if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
        return True
    current = time.time() if now is None else now
    return current >= expires_at


def role_of(credential) -> Role:
    claims = decode(credential) or {}
    return parse_role(claims.get("role"))


def email_of(credential) -> str:
    claims = decode(credential) or {}
    return str(claims.get("sub") or claims.get("email") or "")


def user_id_of(credential):
    claims = decode(credential) or {}
    for claim in USER_ID_CLAIMS:
        value = claims.get(claim)
        if value is not None and value != "":
            return value
    return None
