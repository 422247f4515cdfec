"""
Session resolution for incoming requests.

Security: Only sessions that passed `validate_session` during *this* request
are returned. A cookie that merely decodes is not proof of identity; any
validation failure degrades to anonymous instead of raising.
"""
from __future__ import annotations

from typing import Mapping, Optional, Tuple
import logging

from .providers import IdentityProvider, IdentityValidationError, Session, User


logger = logging.getLogger("proingup.identity_access")

ANONYMOUS: Tuple[None, None] = (None, None)


class SessionResolver:
    def __init__(self, provider: IdentityProvider) -> None:
        self.provider = provider

    def resolve(self, cookies: Mapping[str, str]) -> Tuple[Optional[Session], Optional[User]]:
        """Return (session, user) for a validated session, else (None, None).

        Anonymous traffic (no session cookie) returns before any provider
        round-trip.
        """
        try:
            session = self.provider.read_session(cookies)
        except Exception as exc:
            logger.warning("Session read failed: %s", exc.__class__.__name__)
            return ANONYMOUS
        if session is None:
            return ANONYMOUS

        try:
            user = self.provider.validate_session(session)
        except IdentityValidationError as exc:
            logger.info("Session rejected by identity provider: %s", exc.code)
            return ANONYMOUS
        except Exception as exc:
            logger.warning("Session validation failed: %s", exc.__class__.__name__)
            return ANONYMOUS
        if user is None:
            return ANONYMOUS
        return session, user


__all__ = ["ANONYMOUS", "SessionResolver"]
