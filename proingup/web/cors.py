"""
CORS Responder.

Credentialed CORS: `Access-Control-Allow-Origin` echoes the request origin
only when the trust policy allows it. It is never a wildcard.
"""
from __future__ import annotations

from typing import Dict, Optional

from starlette.responses import Response

from .csrf import CSRF_HEADER_NAME
from .security import TrustPolicy


API_PREFIX = "/api"
ALLOWED_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
ALLOWED_HEADERS = f"Content-Type, Authorization, {CSRF_HEADER_NAME}"


def is_api_path(path: str) -> bool:
    return path.startswith(API_PREFIX)


def build_cors_headers(policy: TrustPolicy, origin: Optional[str]) -> Dict[str, str]:
    headers = {
        "Vary": "Origin",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }
    if policy.is_allowed_origin(origin):
        headers["Access-Control-Allow-Origin"] = origin  # type: ignore[assignment]
    return headers


def apply_cors_headers(response: Response, headers: Dict[str, str]) -> None:
    for name, value in headers.items():
        if not value:
            continue
        if name == "Vary" and response.headers.get("Vary"):
            existing = [v.strip() for v in response.headers["Vary"].split(",")]
            if value not in existing:
                response.headers["Vary"] = ", ".join(existing + [value])
            continue
        response.headers[name] = value


__all__ = [
    "ALLOWED_HEADERS",
    "ALLOWED_METHODS",
    "API_PREFIX",
    "apply_cors_headers",
    "build_cors_headers",
    "is_api_path",
]
