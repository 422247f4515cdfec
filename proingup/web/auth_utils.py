"""
Shared cookie policy.

Why:
    The CSRF cookie and any future cookies set by this service must agree on
    `Secure`/`SameSite`. Keeping a single helper avoids drift between modules.

Design:
    Pure function of the environment name; callers decide where the
    environment comes from (usually `Settings.environment`).
"""

from __future__ import annotations

from .config import is_prod_like


def cookie_opts(environment: str) -> dict:
    """Return cookie flags for `environment`.

    Returns a mapping with keys:
      - secure: True in prod-like environments (local dev runs on plain http)
      - samesite: "lax"  # cookies still flow on top-level navigations
    """
    return {"secure": is_prod_like(environment), "samesite": "lax"}
