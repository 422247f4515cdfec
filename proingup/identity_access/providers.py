"""
Identity provider port and the Supabase Auth adapter.

Why: Keep cryptographic session validation outside the web adapter so guard
logic can be tested with fakes and the provider can be swapped later.

Two distinct operations:
- `read_session(cookies)` decodes the auth cookie locally. It does NOT prove
  the session is authentic and must never feed an authorization decision on
  its own.
- `validate_session(session)` asks the provider to re-verify the access token
  (network round-trip) and returns the user it belongs to.

Security: Token values are never logged.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol
from urllib.parse import urlparse
import base64
import json
import logging
import os

from jose import jwt
from jose.exceptions import JOSEError


logger = logging.getLogger("proingup.identity_access")

MAX_COOKIE_CHUNKS = 16
_BASE64_PREFIX = "base64-"


class IdentityValidationError(Exception):
    """Raised when a session cannot be validated with the provider."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class Session:
    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(default=None, repr=False)
    user_id: Optional[str] = None
    expires_at: Optional[int] = None


@dataclass(frozen=True)
class User:
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    app_metadata: Dict[str, Any] = field(default_factory=dict)


class IdentityProvider(Protocol):
    def read_session(self, cookies: Mapping[str, str]) -> Optional[Session]: ...

    def validate_session(self, session: Session) -> User: ...


def auth_cookie_name(supabase_url: str) -> str:
    """Derive the SSR auth cookie name `sb-<project-ref>-auth-token`."""
    override = (os.getenv("SUPABASE_AUTH_COOKIE") or "").strip()
    if override:
        return override
    host = (urlparse(supabase_url).hostname or "").lower()
    ref = host.split(".", 1)[0] if host else "local"
    return f"sb-{ref}-auth-token"


def _collect_cookie(cookies: Mapping[str, str], name: str) -> Optional[str]:
    """Return the cookie value, joining `name.0`, `name.1`, ... when chunked."""
    if name in cookies:
        return cookies[name]
    chunks = []
    for index in range(MAX_COOKIE_CHUNKS):
        part = cookies.get(f"{name}.{index}")
        if part is None:
            break
        chunks.append(part)
    return "".join(chunks) or None


def _decode_cookie_payload(raw: str) -> Optional[Dict[str, Any]]:
    value = raw
    if value.startswith(_BASE64_PREFIX):
        encoded = value[len(_BASE64_PREFIX):]
        padding = "=" * (-len(encoded) % 4)
        try:
            value = base64.urlsafe_b64decode(encoded + padding).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None
    try:
        data = json.loads(value)
    except ValueError:
        return None
    # Older clients stored a list: [access_token, refresh_token, ...]
    if isinstance(data, list) and data and isinstance(data[0], str):
        data = {"access_token": data[0], "refresh_token": data[1] if len(data) > 1 else None}
    return data if isinstance(data, dict) else None


def session_from_cookie(cookies: Mapping[str, str], cookie_name: str) -> Optional[Session]:
    raw = _collect_cookie(cookies, cookie_name)
    if not raw:
        return None
    data = _decode_cookie_payload(raw)
    if not data:
        return None
    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        return None
    try:
        claims = jwt.get_unverified_claims(access_token)
    except JOSEError:
        return None
    sub = claims.get("sub")
    exp = claims.get("exp")
    refresh = data.get("refresh_token")
    return Session(
        access_token=access_token,
        refresh_token=refresh if isinstance(refresh, str) else None,
        user_id=str(sub) if sub else None,
        expires_at=int(exp) if isinstance(exp, (int, float)) else None,
    )


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth.

    Parameters
    ----------
    client:
        A `supabase.Client` created with the anon key.
    cookie_name:
        Name of the SSR auth cookie (see `auth_cookie_name`).
    """

    def __init__(self, client: Any, *, cookie_name: str) -> None:
        self._client = client
        self._cookie_name = cookie_name

    def read_session(self, cookies: Mapping[str, str]) -> Optional[Session]:
        return session_from_cookie(cookies, self._cookie_name)

    def validate_session(self, session: Session) -> User:
        try:
            response = self._client.auth.get_user(session.access_token)
        except Exception as exc:
            raise IdentityValidationError("validation_failed") from exc
        user = getattr(response, "user", None) if response is not None else None
        user_id = getattr(user, "id", None)
        if not user_id:
            raise IdentityValidationError("invalid_session")
        if session.user_id and str(user_id) != session.user_id:
            raise IdentityValidationError("subject_mismatch")
        return User(
            id=str(user_id),
            email=getattr(user, "email", None),
            role=getattr(user, "role", None),
            app_metadata=dict(getattr(user, "app_metadata", None) or {}),
        )


class AnonymousIdentityProvider:
    """Fallback provider when no identity backend is configured: nobody is signed in."""

    def read_session(self, cookies: Mapping[str, str]) -> Optional[Session]:
        return None

    def validate_session(self, session: Session) -> User:
        raise IdentityValidationError("identity_provider_not_configured")


def supabase_provider_from_env() -> Optional[SupabaseIdentityProvider]:
    """Build the Supabase provider from SUPABASE_URL/SUPABASE_ANON_KEY, or None."""
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_ANON_KEY") or "").strip()
    if not url or not key:
        return None
    from supabase import create_client

    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.warning("Supabase auth client unavailable: %s", exc.__class__.__name__)
        return None
    return SupabaseIdentityProvider(client, cookie_name=auth_cookie_name(url))


__all__ = [
    "AnonymousIdentityProvider",
    "IdentityProvider",
    "IdentityValidationError",
    "Session",
    "SupabaseIdentityProvider",
    "User",
    "auth_cookie_name",
    "session_from_cookie",
    "supabase_provider_from_env",
]
