"""
Errors raised by the studio client.
"""

from typing import Any, Dict, Optional

import httpx


class StudioAPIError(Exception):
    """
    A request to the Studio API failed.

    `status` is the HTTP status code, or 0 when the request never got a
    response (connection refused, timeout).
    """

    def __init__(self, status: int, message: str, payload: Optional[Dict[str, Any]] = None):
        self.status = status
        self.message = message
        self.payload = payload or {}
        super().__init__(f"[{status}] {message}")

    @property
    def is_network_error(self) -> bool:
        return self.status == 0

    @property
    def is_server_error(self) -> bool:
        return self.status == 0 or self.status >= 500

    @property
    def code(self) -> Optional[str]:
        detail = self.payload.get("detail")
        if isinstance(detail, dict):
            return detail.get("error")
        return self.payload.get("error")

    @property
    def retry_after(self) -> Optional[float]:
        detail = self.payload.get("detail")
        if isinstance(detail, dict):
            value = (detail.get("details") or {}).get("retryAfter")
            if value is not None:
                return float(value)
        return None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "StudioAPIError":
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"detail": payload}
        return cls(response.status_code, extract_message(payload, response.reason_phrase), payload)


class UnauthorizedError(StudioAPIError):
    """401 from the API; the login redirect has already been triggered."""

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(401, message, payload)

    @property
    def login_url(self) -> Optional[str]:
        return self.payload.get("loginUrl")


def extract_message(payload: Dict[str, Any], default: str = "Request failed") -> str:
    """
    Pull a human-readable message out of the API's error bodies:
    HTTPException detail dicts, plain detail strings, request validation
    lists, and the middleware's top-level message.
    """
    detail = payload.get("detail")
    if isinstance(detail, dict):
        return detail.get("userMessage") or detail.get("message") or default
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        parts = []
        for item in detail:
            if isinstance(item, dict):
                location = ".".join(str(p) for p in item.get("loc", [])[1:])
                parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
        if parts:
            return "; ".join(parts)
    return payload.get("message") or default
