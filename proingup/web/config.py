"""
Configuration and startup security checks.

Why: A gatekeeper that silently runs with development trust sets or without
an identity backend in production would accept forged or anonymous traffic.
This module reads the environment once into an immutable `Settings` object
and provides a guard that refuses to start insecure production deployments.

Permissions: The caller needs no special privileges. The functions simply
read environment variables; the guard raises `SystemExit` on fatal
misconfiguration.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import sys


PROD_LIKE_ENVIRONMENTS = frozenset({"prod", "production", "stage", "staging"})


def is_prod_like(env: str) -> bool:
    return (env or "").lower() in PROD_LIKE_ENVIRONMENTS


def _csv(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    items = [part.strip() for part in str(raw).split(",")]
    return tuple(item for item in items if item)


def _flag(name: str, default: str = "false") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    environment: str
    trust_proxy: bool
    extra_origins: tuple[str, ...] = ()
    extra_hosts: tuple[str, ...] = ()
    csrf_exempt_paths: tuple[str, ...] = ()

    @property
    def production(self) -> bool:
        return is_prod_like(self.environment)


def load_settings() -> Settings:
    """Read settings from the environment (call once at startup)."""
    return Settings(
        environment=(os.getenv("PROINGUP_ENV", "dev") or "dev").strip().lower(),
        trust_proxy=_flag("PROINGUP_TRUST_PROXY"),
        extra_origins=_csv(os.getenv("PROINGUP_EXTRA_ORIGINS")),
        extra_hosts=_csv(os.getenv("PROINGUP_EXTRA_HOSTS")),
        csrf_exempt_paths=_csv(os.getenv("CSRF_EXEMPT_PATHS")),
    )


def should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via PROINGUP_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    return _flag("PROINGUP_ENABLE_DOTENV", "true")


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod-like environments only):
    - Supabase URL and anon key are set; the URL uses https.
    - The service role key (used by sign-up) is set and not a placeholder.
    - R2 upload credentials are set.
    - Jobs are persisted in Postgres with TLS not explicitly disabled.
    """
    env = os.getenv("PROINGUP_ENV", "dev")
    if not is_prod_like(env):
        return

    url = (os.getenv("SUPABASE_URL") or "").strip()
    if not url or not (os.getenv("SUPABASE_ANON_KEY") or "").strip():
        raise SystemExit("Refusing to start: SUPABASE_URL and SUPABASE_ANON_KEY must be set in production.")
    if not url.lower().startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    srole = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE" or srole.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )

    for var in ("R2_ACCOUNT_ID", "R2_UPLOAD_ACCESS_KEY_ID", "R2_UPLOAD_SECRET_ACCESS_KEY"):
        if not (os.getenv(var) or "").strip():
            raise SystemExit(f"Refusing to start: {var} must be set in production.")

    backend = (os.getenv("JOBS_BACKEND") or "memory").strip().lower()
    if backend != "db":
        raise SystemExit("Refusing to start: JOBS_BACKEND=db is mandatory in production/staging.")
    dsn = os.getenv("DATABASE_URL", "")
    if not dsn:
        raise SystemExit("Refusing to start: DATABASE_URL must be set when JOBS_BACKEND=db.")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )


__all__ = [
    "PROD_LIKE_ENVIRONMENTS",
    "Settings",
    "ensure_secure_config_on_startup",
    "is_prod_like",
    "load_settings",
    "should_load_dotenv",
]
