"""
Route classification for the Authorization Guard.

A path maps to exactly one `RouteKind`. Classification is a pure function of
the path string and the static membership sets below.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RouteKind(str, Enum):
    PUBLIC_API = "public-api"
    PRIVATE_API = "private-api"
    PUBLIC_PAGE = "public-page"
    PRIVATE_PAGE = "private-page"
    AUTH_PAGE = "auth-page"


API_ROUTE_PREFIX = "/api/"
LOGIN_PATH = "/auth/login"
LANDING_PATH = "/explore"


@dataclass(frozen=True)
class RouteTable:
    public_api: frozenset[str] = frozenset({"/api/join"})
    private_pages: frozenset[str] = frozenset(
        {"/explore", "/account", "/connections", "/collaborations", "/chat", "/opportunities"}
    )
    private_prefixes: tuple[str, ...] = ("/private",)
    auth_pages: frozenset[str] = frozenset({"/auth/join", LOGIN_PATH})
    login_path: str = LOGIN_PATH
    landing_path: str = LANDING_PATH

    def classify(self, path: str) -> RouteKind:
        if path.startswith(API_ROUTE_PREFIX):
            return RouteKind.PUBLIC_API if path in self.public_api else RouteKind.PRIVATE_API
        if path in self.auth_pages:
            return RouteKind.AUTH_PAGE
        if path in self.private_pages or path.startswith(self.private_prefixes):
            return RouteKind.PRIVATE_PAGE
        return RouteKind.PUBLIC_PAGE


DEFAULT_ROUTES = RouteTable()


__all__ = ["API_ROUTE_PREFIX", "DEFAULT_ROUTES", "LANDING_PATH", "LOGIN_PATH", "RouteKind", "RouteTable"]
