"""
Security config guard tests.

Production/staging must fail fast on missing or placeholder credentials and on
an in-memory or TLS-disabled job store; development stays permissive.
"""
from __future__ import annotations

import pytest

from proingup.web import config as cfg


def _secure_prod_env(monkeypatch: pytest.MonkeyPatch, env: str = "prod") -> None:
    monkeypatch.setenv("PROINGUP_ENV", env)
    monkeypatch.setenv("SUPABASE_URL", "https://abcd.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "REAL_NON_DUMMY")
    monkeypatch.setenv("R2_ACCOUNT_ID", "acct")
    monkeypatch.setenv("R2_UPLOAD_ACCESS_KEY_ID", "akid")
    monkeypatch.setenv("R2_UPLOAD_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("JOBS_BACKEND", "db")
    monkeypatch.setenv("DATABASE_URL", "postgresql://app:pw@db.example.com:5432/postgres?sslmode=require")


@pytest.mark.parametrize("env", ["prod", "production", "stage", "staging"])
def test_secure_prod_config_starts(monkeypatch: pytest.MonkeyPatch, env: str):
    _secure_prod_env(monkeypatch, env)
    cfg.ensure_secure_config_on_startup()


def test_dev_is_permissive():
    cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize(
    "var,value",
    [
        ("SUPABASE_URL", ""),
        ("SUPABASE_ANON_KEY", ""),
        ("SUPABASE_URL", "http://abcd.supabase.co"),
        ("SUPABASE_SERVICE_ROLE_KEY", ""),
        ("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE"),
        ("SUPABASE_SERVICE_ROLE_KEY", "change_me_please"),
        ("R2_ACCOUNT_ID", ""),
        ("R2_UPLOAD_SECRET_ACCESS_KEY", " "),
        ("JOBS_BACKEND", "memory"),
        ("DATABASE_URL", ""),
        ("DATABASE_URL", "postgresql://app:pw@db:5432/postgres?sslmode=disable"),
    ],
)
def test_insecure_prod_config_aborts(monkeypatch: pytest.MonkeyPatch, var: str, value: str):
    _secure_prod_env(monkeypatch)
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_load_settings_defaults():
    settings = cfg.load_settings()
    assert settings.environment == "dev"
    assert settings.production is False
    assert settings.trust_proxy is False
    assert settings.csrf_exempt_paths == ()


def test_load_settings_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PROINGUP_ENV", "Staging")
    monkeypatch.setenv("PROINGUP_TRUST_PROXY", "true")
    monkeypatch.setenv("PROINGUP_EXTRA_ORIGINS", "https://a.example, ,https://b.example")
    monkeypatch.setenv("PROINGUP_EXTRA_HOSTS", "a.example")
    monkeypatch.setenv("CSRF_EXEMPT_PATHS", "/auth/callback")
    settings = cfg.load_settings()
    assert settings.environment == "staging"
    assert settings.production is True
    assert settings.trust_proxy is True
    assert settings.extra_origins == ("https://a.example", "https://b.example")
    assert settings.extra_hosts == ("a.example",)
    assert settings.csrf_exempt_paths == ("/auth/callback",)


def test_dotenv_is_never_loaded_under_pytest(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PROINGUP_ENABLE_DOTENV", "true")
    assert cfg.should_load_dotenv() is False
