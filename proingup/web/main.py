"proingup gatekeeper"
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from proingup.identity_access.admin_client import admin_client_from_env
from proingup.identity_access.providers import (
    AnonymousIdentityProvider,
    IdentityProvider,
    supabase_provider_from_env,
)
from proingup.uploads.jobs import InMemoryJobStore, JobStore
from proingup.web.config import Settings, ensure_secure_config_on_startup, load_settings, should_load_dotenv
from proingup.web.pipeline import build_gatekeeper
from proingup.web.security import TrustPolicy, build_trust_policy
from proingup.web.storage_wiring import wire_r2_adapter_if_configured as _wire_storage


if should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------

logger = logging.getLogger("proingup.web")
SETTINGS: Settings = load_settings()
TRUST_POLICY: TrustPolicy = build_trust_policy(
    production=SETTINGS.production,
    extra_origins=SETTINGS.extra_origins,
    extra_hosts=SETTINGS.extra_hosts,
)

app = FastAPI(title="proingup gatekeeper", description="Request gatekeeping and media upload admission", version="0.1.0")

from proingup.web.routes import join as _join_routes  # noqa: E402
from proingup.web.routes import uploads as _upload_routes  # noqa: E402
from proingup.web.routes.join import join_router  # noqa: E402
from proingup.web.routes.operations import operations_router  # noqa: E402
from proingup.web.routes.uploads import uploads_router  # noqa: E402

app.include_router(operations_router)
app.include_router(join_router)
app.include_router(uploads_router)

# --- Backend Wiring -------------------------------------------------------------


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _select_job_store() -> JobStore:
    if (not _under_pytest()) and os.getenv("JOBS_BACKEND", "memory").lower() == "db":
        from proingup.uploads.jobs_db import DBJobStore

        return DBJobStore()
    return InMemoryJobStore()


_upload_routes.set_job_store(_select_job_store())

# If R2 is not configured yet, the upload route retries wiring lazily.
_wire_storage()

_admin = admin_client_from_env()
if _admin is not None:
    _join_routes.set_user_directory(_admin)

IDENTITY_PROVIDER: IdentityProvider = supabase_provider_from_env() or AnonymousIdentityProvider()
if isinstance(IDENTITY_PROVIDER, AnonymousIdentityProvider):
    logger.warning("No identity provider configured; all requests are treated as anonymous")


GATEKEEPER = build_gatekeeper(settings=SETTINGS, policy=TRUST_POLICY, provider=IDENTITY_PROVIDER)

# --- Middleware -----------------------------------------------------------------


@app.middleware("http")
async def request_gatekeeper(request: Request, call_next):
    return await GATEKEEPER(request, call_next)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    # Keeps the Referer-origin fallback of the CSRF guard usable without
    # leaking cross-site paths.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if SETTINGS.production:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response
