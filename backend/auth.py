"""
API key authentication for the /api/ routes.
"""

import hashlib
import hmac
import os
from typing import Optional

from fastapi.responses import JSONResponse

from config import settings

# API Key header name
API_KEY_HEADER = "X-API-Key"
API_KEY_QUERY = "api_key"


def get_api_key_from_env() -> str:
    """Get API key(s) from environment variable"""
    return os.getenv("API_KEY", "")


def check_api_key(api_key: Optional[str]) -> bool:
    """
    Verify an API key against the configured key(s).

    Supports:
    - No configured key: every request is allowed (development mode)
    - Multiple API keys (comma-separated)
    - Hashed keys, stored as "hash:<sha256 hex>"
    """
    configured_key = get_api_key_from_env()
    if not configured_key:
        return True
    if not api_key:
        return False

    valid_keys = [key.strip() for key in configured_key.split(",") if key.strip()]
    if api_key in valid_keys:
        return True

    provided_hash = hashlib.sha256(api_key.encode()).hexdigest()
    for valid_key in valid_keys:
        if valid_key.startswith("hash:") and hmac.compare_digest(valid_key[5:], provided_hash):
            return True
    return False


def unauthorized_response(message: str, detail: str) -> JSONResponse:
    """
    401 body shared by the middleware. `loginUrl` tells the studio client
    where to send the user.
    """
    return JSONResponse(
        status_code=401,
        content={
            "error": "Unauthorized",
            "message": message,
            "detail": detail,
            "loginUrl": settings.LOGIN_URL,
        },
        headers={"WWW-Authenticate": "ApiKey"},
    )
