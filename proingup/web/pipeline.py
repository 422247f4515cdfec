"""
Gatekeeper: the fixed per-request pipeline.

Order: ensure CSRF cookie -> Origin/CSRF guard -> session guard ->
authorization guard -> route handler. The first guard returning a response
ends the request. Responses produced downstream of the Origin/CSRF guard get
CORS headers on API paths; the guard's own 204/403 responses carry exactly
the headers it set.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Optional, Sequence

from fastapi import Request
from starlette.responses import Response

from proingup.identity_access.providers import IdentityProvider
from proingup.identity_access.sessions import SessionResolver
from .access import DEFAULT_ROUTES, RouteTable
from .config import Settings
from .cors import apply_cors_headers, build_cors_headers, is_api_path
from .csrf import CsrfTokenManager
from .guards import AuthorizationGuard, OriginCsrfGuard, SessionGuard
from .security import TrustPolicy


Guard = Callable[[Request], Awaitable[Optional[Response]]]
CallNext = Callable[[Request], Awaitable[Response]]


class Gatekeeper:
    def __init__(
        self,
        *,
        policy: TrustPolicy,
        csrf: CsrfTokenManager,
        origin_guard: OriginCsrfGuard,
        guards: Sequence[Guard] = (),
    ) -> None:
        self.policy = policy
        self.csrf = csrf
        self.origin_guard = origin_guard
        self.guards = tuple(guards)

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        token, issued = self.csrf.ensure_token(request.cookies)
        request.state.csrf_token = token

        response = await self.origin_guard(request)
        if response is None:
            response = await self._forward(request, call_next)
            if is_api_path(request.url.path):
                apply_cors_headers(response, build_cors_headers(self.policy, request.headers.get("origin")))

        if issued:
            self.csrf.set_cookie(response, token)
        return response

    async def _forward(self, request: Request, call_next: CallNext) -> Response:
        for guard in self.guards:
            response = await guard(request)
            if response is not None:
                return response
        return await call_next(request)


def build_gatekeeper(
    *,
    settings: Settings,
    policy: TrustPolicy,
    provider: IdentityProvider,
    routes: RouteTable = DEFAULT_ROUTES,
) -> Gatekeeper:
    """Assemble the fixed pipeline: Origin/CSRF -> Session -> Authorization."""
    csrf = CsrfTokenManager(environment=settings.environment)
    return Gatekeeper(
        policy=policy,
        csrf=csrf,
        origin_guard=OriginCsrfGuard(
            policy=policy,
            csrf=csrf,
            trust_proxy=settings.trust_proxy,
            exempt_paths=settings.csrf_exempt_paths,
        ),
        guards=[SessionGuard(SessionResolver(provider)), AuthorizationGuard(routes)],
    )


__all__ = ["Gatekeeper", "Guard", "build_gatekeeper"]
