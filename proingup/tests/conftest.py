"""
Pytest configuration for the proingup test suite.

Why: Force AnyIO to use the asyncio backend, keep developer shell variables
(Supabase/R2/DB credentials) from leaking into tests, and reset the route
module singletons between tests.
"""
import os
import sys
from pathlib import Path

import pytest


_ISOLATED_VARS = (
    "PROINGUP_ENV",
    "PROINGUP_TRUST_PROXY",
    "PROINGUP_EXTRA_ORIGINS",
    "PROINGUP_EXTRA_HOSTS",
    "CSRF_EXEMPT_PATHS",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_AUTH_COOKIE",
    "R2_ACCOUNT_ID",
    "R2_UPLOAD_ACCESS_KEY_ID",
    "R2_UPLOAD_SECRET_ACCESS_KEY",
    "R2_UPLOAD_BUCKET",
    "MEDIA_MAX_UPLOAD_BYTES",
    "UPLOAD_URL_TTL_SECONDS",
    "JOBS_BACKEND",
    "DATABASE_URL",
)

# Module-level: `proingup.web.main` reads the environment at import time.
for _var in _ISOLATED_VARS:
    os.environ.pop(_var, None)

# Make `utils.*` importable as in `from utils.fakes import ...`
TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from the default dev configuration."""
    for var in _ISOLATED_VARS:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_route_singletons(monkeypatch: pytest.MonkeyPatch):
    """Give each test a fresh job store and unconfigured adapters.

    Why:
        Tests inject fakes through the module setters; without a reset a fake
        object store or a populated job store would leak into later tests.
    """
    from proingup.identity_access.signup import NullUserDirectory
    from proingup.storage.ports import NullObjectStore
    from proingup.uploads.jobs import InMemoryJobStore
    from proingup.web.routes import join, uploads

    monkeypatch.setattr(uploads, "JOB_STORE", InMemoryJobStore())
    monkeypatch.setattr(uploads, "STORAGE_ADAPTER", NullObjectStore())
    monkeypatch.setattr(join, "USER_DIRECTORY", NullUserDirectory())
    yield
