# -------------------- REST API COLLABORATOR --------------------
"""
Thin httpx wrapper around the authoritative timesheet REST API.

Responses come back in two shapes: a bare JSON array/object, or the
``{"success", "message", "data"}`` envelope. ``unwrap_envelope`` turns both
into the bare payload so services only ever see one shape. Transport and
HTTP failures are translated into the error taxonomy in ``utils.errors``.
"""
from typing import Any, Dict, Optional

import httpx

from timesheet_workflow import config
from timesheet_workflow.utils.errors import (
    NetworkError,
    NetworkTimeout,
    NotFoundError,
    RemoteError,
)
from timesheet_workflow.utils.logging_helpers import get_logger

logger = get_logger(__name__)

def _is_envelope(payload: Any) -> bool:
    if not isinstance(payload, dict) or "data" not in payload:
        return False
    return "success" in payload or "message" in payload or len(payload) == 1


def unwrap_envelope(payload: Any) -> Any:
    """Return the bare payload of an enveloped or bare response"""
    if isinstance(payload, dict) and payload.get("success") is False:
        raise RemoteError(payload.get("message") or payload.get("error") or RemoteError.default_message)
    if _is_envelope(payload):
        return payload.get("data")
    return payload


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """Prefer the server-supplied message; plain-text bodies are used as-is"""
    try:
        body = response.json()
    except ValueError:
        text = (response.text or "").strip()
        return text[:500] or None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None


class ApiClient:
    """Data access layer for the REST backend"""

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url or config.API_BASE_URL,
            timeout=config.API_TIMEOUT_SECONDS if timeout is None else timeout,
            headers=headers,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # -------------------- REQUEST PRIMITIVES --------------------
    def request(self, method: str, path: str, *, json_body: Any = None,
                params: Optional[Dict[str, Any]] = None, raw: bool = False) -> Any:
        try:
            response = self._client.request(method, path, json=json_body, params=params)
        except httpx.TimeoutException as e:
            logger.warning(f"⏱️ {method} {path} timed out: {e}")
            raise NetworkTimeout()
        except httpx.TransportError as e:
            logger.warning(f"❌ {method} {path} transport failure: {e}")
            raise NetworkError(f"Could not reach the server: {e}")

        if response.status_code == 404:
            raise NotFoundError(extract_error_message(response) or NotFoundError.default_message)
        if not response.is_success:
            message = extract_error_message(response) or RemoteError.default_message
            logger.error(f"{method} {path} failed with {response.status_code}: {message}")
            raise RemoteError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            payload = response.json()
        except ValueError:
            if raw:
                return response.text
            raise RemoteError("Malformed response from server", status_code=response.status_code)
        return payload if raw else unwrap_envelope(payload)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Any = None, raw: bool = False) -> Any:
        return self.request("POST", path, json_body=body, raw=raw)

    def put(self, path: str, body: Any = None) -> Any:
        return self.request("PUT", path, json_body=body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> list:
        payload = self.get(path, params=params)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RemoteError(f"Expected a list from {path}")
        return payload

    def get_object(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = self.get(path, params=params)
        if not isinstance(payload, dict):
            raise RemoteError(f"Expected an object from {path}")
        return payload
