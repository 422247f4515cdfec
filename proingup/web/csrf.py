"""
CSRF Token Manager (double-submit cookie).

The token lives in a script-readable cookie (`csrf`) and must be mirrored by
the client into the `X-CSRF-Token` header on state-changing requests.

Limitation: the token is not bound to the session. Forgery resistance relies
on SameSite=Lax and the Origin/Referer/Host checks in front of this
comparison; an attacker able to write cookies for our domain (e.g. through a
compromised subdomain) can fix the token.
"""
from __future__ import annotations

from typing import Mapping, Optional, Tuple
import hmac
import secrets

from starlette.responses import Response

from .auth_utils import cookie_opts


CSRF_COOKIE_NAME = "csrf"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_TOKEN_BYTES = 16
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24 * 7


class CsrfTokenManager:
    def __init__(self, *, environment: str = "dev") -> None:
        self._environment = environment

    def ensure_token(self, cookies: Mapping[str, str]) -> Tuple[str, bool]:
        """Return (token, issued).

        An existing cookie value is returned unchanged; otherwise a fresh
        token is generated and `issued` is True so the caller sets the cookie.
        """
        existing = cookies.get(CSRF_COOKIE_NAME)
        if existing:
            return existing, False
        return secrets.token_hex(CSRF_TOKEN_BYTES), True

    @staticmethod
    def verify(header_token: Optional[str], cookie_token: Optional[str]) -> bool:
        if not header_token or not cookie_token:
            return False
        return hmac.compare_digest(header_token.encode("utf-8"), cookie_token.encode("utf-8"))

    def set_cookie(self, response: Response, token: str) -> None:
        opts = cookie_opts(self._environment)
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=token,
            max_age=CSRF_COOKIE_MAX_AGE,
            path="/",
            httponly=False,
            secure=opts["secure"],
            samesite=opts["samesite"],
        )


__all__ = [
    "CSRF_COOKIE_MAX_AGE",
    "CSRF_COOKIE_NAME",
    "CSRF_HEADER_NAME",
    "CsrfTokenManager",
]
