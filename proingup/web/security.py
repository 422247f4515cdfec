"""
Trust policy: which origins may call us and which hosts we answer for.

Contains the origin/host predicates shared by the CSRF guard and the CORS
responder. Keeping a single implementation avoids security drift.

The policy is built once at startup and never mutated; development adds the
local dev-server origins on top of the production sets.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlparse

from fastapi import Request


PROD_ORIGINS = ("https://proingup.com", "https://www.proingup.com")
DEV_ORIGINS = ("http://localhost:5173", "http://localhost:4173")

PROD_HOSTS = ("proingup.com", "www.proingup.com")
DEV_HOSTS = ("localhost:5173", "localhost:4173")

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class TrustPolicy:
    allowed_origins: frozenset[str]
    trusted_hosts: frozenset[str]

    def is_allowed_origin(self, origin: Optional[str]) -> bool:
        return bool(origin) and origin in self.allowed_origins

    def is_trusted_host(self, host: Optional[str]) -> bool:
        return bool(host) and host.lower() in self.trusted_hosts

    def is_trusted_origin_or_referer(self, origin: Optional[str], referer: Optional[str]) -> bool:
        """Trust the Origin header, else fall back to the Referer's origin.

        Some same-site navigations omit Origin; a malformed Referer is simply
        untrusted.
        """
        if self.is_allowed_origin(origin):
            return True
        return self.is_allowed_origin(origin_of(referer))


def build_trust_policy(
    *,
    production: bool,
    extra_origins: Iterable[str] = (),
    extra_hosts: Iterable[str] = (),
) -> TrustPolicy:
    origins = set(PROD_ORIGINS) | set(extra_origins)
    hosts = set(PROD_HOSTS) | {h.lower() for h in extra_hosts}
    if not production:
        origins |= set(DEV_ORIGINS)
        hosts |= set(DEV_HOSTS)
    return TrustPolicy(allowed_origins=frozenset(origins), trusted_hosts=frozenset(hosts))


def origin_of(url: Optional[str]) -> Optional[str]:
    """Return the serialized origin (scheme://host[:port]) of `url`, or None.

    Default ports are omitted, scheme and host are lowercased. Anything that
    does not parse as an absolute http(s) URL yields None.
    """
    if not url:
        return None
    try:
        p = urlparse(url.strip())
        scheme = (p.scheme or "").lower()
        host = (p.hostname or "").lower()
        port = p.port
    except ValueError:
        return None
    if scheme not in _DEFAULT_PORTS or not host:
        return None
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == _DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def request_host(request: Request, *, trust_proxy: bool = False) -> str:
    """Return the host[:port] the client addressed.

    Proxy awareness: Only trust X-Forwarded-Host when `trust_proxy` is set;
    otherwise use the Host header. The default port of the request scheme is
    dropped, so `proingup.com:443` over https compares as `proingup.com`.
    """
    host = ""
    if trust_proxy:
        host = (request.headers.get("x-forwarded-host") or "").split(",")[0].strip()
    if not host:
        host = (request.headers.get("host") or "").strip()
    return _strip_default_port(host.lower(), request.url.scheme)


def _strip_default_port(host: str, scheme: str) -> str:
    name, sep, port = host.rpartition(":")
    if not sep or (":" in name and not name.endswith("]")):
        return host
    if port == str(_DEFAULT_PORTS.get((scheme or "").lower())):
        return name
    return host


__all__ = [
    "DEV_HOSTS",
    "DEV_ORIGINS",
    "PROD_HOSTS",
    "PROD_ORIGINS",
    "TrustPolicy",
    "build_trust_policy",
    "origin_of",
    "request_host",
]
