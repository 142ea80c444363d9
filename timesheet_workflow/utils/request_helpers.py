# -------------------- REQUEST UTILITIES --------------------
import json
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, List, Optional

from timesheet_workflow import config
from timesheet_workflow.utils.errors import ValidationError


def _header(event, name: str) -> Optional[str]:
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def get_session_id(event) -> Optional[str]:
    """Session id from the session cookie, falling back to the X-Session-Id header"""
    raw_cookies: List[str] = list(event.get("cookies") or [])
    cookie_header = _header(event, "cookie")
    if cookie_header:
        raw_cookies.append(cookie_header)

    for raw in raw_cookies:
        jar = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            continue
        morsel = jar.get(config.SESSION_COOKIE_NAME)
        if morsel and morsel.value:
            return morsel.value

    header_value = (_header(event, "x-session-id") or "").strip()
    return header_value or None


def session_cookie(session_id: str, max_age: int) -> str:
    return (
        f"{config.SESSION_COOKIE_NAME}={session_id}; Path=/; HttpOnly; Secure; "
        f"SameSite=None; Max-Age={max(0, int(max_age))}"
    )


def parse_body(event) -> Dict[str, Any]:
    raw = event.get("body") or ""
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in request body: {e}", field="body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", field="body")
    return body


def require_field(data: Dict[str, Any], key: str):
    value = (data or {}).get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required", field=key)
    return value


def id_list(data: Dict[str, Any], key: str, limit: int = None) -> List[Any]:
    """Accept a single id or a list of ids; strips empties, dedupes and keeps order"""
    limit = config.MAX_BATCH_IDS if limit is None else limit
    raw = (data or {}).get(key)
    if isinstance(raw, (str, int)):
        raw = [raw]
    if not isinstance(raw, list):
        raise ValidationError(f"{key} must be a list", field=key)

    ids, seen = [], set()
    for item in raw:
        text = str(item).strip() if item is not None else ""
        if not text or text in seen:
            continue
        seen.add(text)
        ids.append(int(text) if text.isdigit() else text)

    if not ids:
        raise ValidationError(f"{key} must be a non-empty list", field=key)
    if len(ids) > limit:
        raise ValidationError(f"Too many IDs: {len(ids)} > {limit}. Submit in smaller batches.", field=key)
    return ids
