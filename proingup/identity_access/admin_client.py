"""
Supabase Auth admin client (minimal) for user provisioning.

Design:
- Framework-agnostic, callable from web adapters.
- Uses the service-role client; must only ever run server-side.

Security:
- Do not log credentials or tokens.
- Expect the service role key from environment in prod.
"""

from __future__ import annotations

from typing import Any, Optional
import logging
import os

from supabase import AuthApiError, create_client

from .signup import UserCreationRejected


logger = logging.getLogger("proingup.identity_access")


class SupabaseAdminClient:
    def __init__(self, client: Any) -> None:
        self._client = client

    def create_user(self, *, email: str, password: str) -> str:
        try:
            res = self._client.auth.admin.create_user(
                {"email": email, "password": password, "email_confirm": True}
            )
        except AuthApiError as exc:
            raise UserCreationRejected(getattr(exc, "message", None) or str(exc)) from exc
        user = getattr(res, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            raise ValueError("user_id_missing")
        return str(user_id)


def admin_client_from_env() -> Optional[SupabaseAdminClient]:
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not url or not key:
        return None
    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.warning("Supabase admin client unavailable: %s", exc.__class__.__name__)
        return None
    return SupabaseAdminClient(client)


__all__ = ["SupabaseAdminClient", "admin_client_from_env"]
