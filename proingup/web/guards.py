"""
Request guards.

Each guard inspects one request and returns either `None` (continue) or a
terminal `Response`. Guards never raise to the client; every rejection is an
explicit status with a stable reason and no internal detail.
"""
from __future__ import annotations

from typing import Iterable, Optional
import logging

import anyio
from fastapi import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from proingup.identity_access.sessions import SessionResolver
from .access import RouteKind, RouteTable
from .cors import build_cors_headers
from .csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CsrfTokenManager
from .security import TrustPolicy, request_host


logger = logging.getLogger("proingup.web.gatekeeper")

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _forbidden(reason: str) -> Response:
    return PlainTextResponse(f"Forbidden: {reason}", status_code=403, headers={"Cache-Control": "private, no-store"})


class OriginCsrfGuard:
    """Preflight, host, Origin/Referer and double-submit CSRF checks."""

    def __init__(
        self,
        *,
        policy: TrustPolicy,
        csrf: CsrfTokenManager,
        trust_proxy: bool = False,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        self.policy = policy
        self.csrf = csrf
        self.trust_proxy = trust_proxy
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, request: Request) -> Optional[Response]:
        method = request.method.upper()
        path = request.url.path
        if method == "OPTIONS":
            return Response(status_code=204, headers=build_cors_headers(self.policy, request.headers.get("origin")))
        if method not in STATE_CHANGING_METHODS:
            return None

        host = request_host(request, trust_proxy=self.trust_proxy)
        if not self.policy.is_trusted_host(host):
            logger.info("Rejected %s %s: bad host", method, path)
            return _forbidden("bad host")

        origin = request.headers.get("origin")
        referer = request.headers.get("referer")
        if not self.policy.is_trusted_origin_or_referer(origin, referer):
            logger.info("Rejected %s %s: bad origin", method, path)
            return _forbidden("bad origin")

        if path in self.exempt_paths:
            return None
        if not self.csrf.verify(request.headers.get(CSRF_HEADER_NAME), request.cookies.get(CSRF_COOKIE_NAME)):
            logger.info("Rejected %s %s: CSRF", method, path)
            return _forbidden("CSRF")
        return None


class SessionGuard:
    """Attach the validated (session, user) pair to `request.state`. Never rejects."""

    def __init__(self, resolver: SessionResolver) -> None:
        self.resolver = resolver

    async def __call__(self, request: Request) -> Optional[Response]:
        cookies = dict(request.cookies)
        # The provider SDK is synchronous; keep the event loop free.
        session, user = await anyio.to_thread.run_sync(self.resolver.resolve, cookies)
        request.state.session = session
        request.state.user = user
        return None


class AuthorizationGuard:
    """Enforce session presence per route kind and the auth-page redirects."""

    def __init__(self, routes: RouteTable) -> None:
        self.routes = routes

    async def __call__(self, request: Request) -> Optional[Response]:
        path = request.url.path
        session = getattr(request.state, "session", None)
        kind = self.routes.classify(path)

        if session is None:
            if kind is RouteKind.PRIVATE_API:
                return PlainTextResponse("Unauthorized", status_code=401, headers={"Cache-Control": "private, no-store"})
            if kind is RouteKind.PRIVATE_PAGE:
                return RedirectResponse(url=self.routes.login_path, status_code=303)
            return None

        if kind is RouteKind.AUTH_PAGE:
            return RedirectResponse(url=self.routes.landing_path, status_code=303)
        if path == "/" and request.method.upper() in ("GET", "HEAD"):
            return RedirectResponse(url=self.routes.landing_path, status_code=302)
        return None


__all__ = [
    "AuthorizationGuard",
    "OriginCsrfGuard",
    "STATE_CHANGING_METHODS",
    "SessionGuard",
]
