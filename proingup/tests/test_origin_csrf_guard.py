"""
Origin/CSRF guard: host, Origin/Referer and double-submit checks on
state-changing requests.
"""

import httpx
import pytest
from httpx import ASGITransport

from utils.apps import DEV_BASE_URL, DEV_ORIGIN, PROD_BASE_URL, PROD_ORIGIN, make_gatekeeper, make_guarded_app
from utils.fakes import SESSION_COOKIE, FakeIdentityProvider
from proingup.identity_access.providers import User


pytestmark = pytest.mark.anyio("asyncio")

TOKEN = "0123456789abcdef0123456789abcdef"


def _signed_in_app(**kwargs):
    provider = FakeIdentityProvider({"tok:u1": User(id="u1")})
    return make_guarded_app(make_gatekeeper(provider, **kwargs))


def _client(app, base_url=DEV_BASE_URL, *, with_session=True):
    cookies = {"csrf": TOKEN}
    if with_session:
        cookies[SESSION_COOKIE] = "tok:u1"
    return httpx.AsyncClient(transport=ASGITransport(app=app), base_url=base_url, cookies=cookies)


@pytest.mark.anyio
@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
async def test_trusted_host_origin_and_matching_token_pass(method):
    async with _client(_signed_in_app()) as client:
        r = await client.request(method, "/api/echo", headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": TOKEN})
    assert r.status_code == 200
    assert r.json() == {"method": method}


@pytest.mark.anyio
async def test_untrusted_host_is_rejected_first():
    async with _client(_signed_in_app(), base_url="http://attacker.example") as client:
        r = await client.post("/api/echo", headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": TOKEN})
    assert r.status_code == 403
    assert r.text == "Forbidden: bad host"
    assert "access-control-allow-origin" not in r.headers


@pytest.mark.anyio
async def test_evil_origin_is_rejected():
    async with _client(_signed_in_app()) as client:
        r = await client.post("/api/echo", headers={"Origin": "https://evil.example", "X-CSRF-Token": TOKEN})
    assert r.status_code == 403
    assert r.text == "Forbidden: bad origin"
    assert "access-control-allow-origin" not in r.headers


@pytest.mark.anyio
async def test_missing_origin_falls_back_to_trusted_referer():
    async with _client(_signed_in_app()) as client:
        r = await client.post(
            "/api/echo", headers={"Referer": f"{DEV_ORIGIN}/account", "X-CSRF-Token": TOKEN}
        )
    assert r.status_code == 200


@pytest.mark.anyio
@pytest.mark.parametrize("referer", [None, "https://evil.example/page", "%%not-a-url%%", "http://[::1"])
async def test_missing_origin_with_untrusted_or_malformed_referer_is_rejected(referer):
    headers = {"X-CSRF-Token": TOKEN}
    if referer is not None:
        headers["Referer"] = referer
    async with _client(_signed_in_app()) as client:
        r = await client.post("/api/echo", headers=headers)
    assert r.status_code == 403
    assert r.text == "Forbidden: bad origin"


@pytest.mark.anyio
async def test_missing_csrf_header_is_rejected_even_with_valid_origin():
    async with _client(_signed_in_app()) as client:
        r = await client.post("/api/echo", headers={"Origin": DEV_ORIGIN})
    assert r.status_code == 403
    assert r.text == "Forbidden: CSRF"


@pytest.mark.anyio
async def test_mismatched_csrf_header_is_rejected():
    async with _client(_signed_in_app()) as client:
        r = await client.post("/api/echo", headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": "f" * 32})
    assert r.status_code == 403
    assert r.text == "Forbidden: CSRF"


@pytest.mark.anyio
async def test_missing_csrf_cookie_is_rejected():
    app = _signed_in_app()
    async with httpx.AsyncClient(
        transport=ASGITransport(app=app), base_url=DEV_BASE_URL, cookies={SESSION_COOKIE: "tok:u1"}
    ) as client:
        r = await client.post("/api/echo", headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": TOKEN})
    assert r.status_code == 403
    assert r.text == "Forbidden: CSRF"
    # A fresh token is issued so the client can retry.
    assert "csrf=" in r.headers.get("set-cookie", "")


@pytest.mark.anyio
async def test_exempt_path_skips_token_check_but_not_origin():
    app = make_guarded_app(make_gatekeeper(exempt_paths=["/auth/callback"]))
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url=DEV_BASE_URL) as client:
        ok = await client.post("/auth/callback", headers={"Origin": DEV_ORIGIN})
        bad = await client.post("/auth/callback", headers={"Origin": "https://evil.example"})
    assert ok.status_code == 200
    assert bad.status_code == 403


@pytest.mark.anyio
async def test_safe_methods_skip_origin_and_csrf_checks():
    async with _client(_signed_in_app(), base_url="http://attacker.example") as client:
        r = await client.get("/api/echo", headers={"Origin": "https://evil.example"})
    assert r.status_code == 200


@pytest.mark.anyio
async def test_forwarded_host_ignored_without_trust_proxy():
    async with _client(_signed_in_app(), base_url="http://internal:8000") as client:
        r = await client.post(
            "/api/echo",
            headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": TOKEN, "X-Forwarded-Host": "localhost:5173"},
        )
    assert r.status_code == 403
    assert r.text == "Forbidden: bad host"


@pytest.mark.anyio
async def test_forwarded_host_honored_with_trust_proxy():
    async with _client(_signed_in_app(trust_proxy=True), base_url="http://internal:8000") as client:
        r = await client.post(
            "/api/echo",
            headers={"Origin": DEV_ORIGIN, "X-CSRF-Token": TOKEN, "X-Forwarded-Host": "localhost:5173, proxy"},
        )
    assert r.status_code == 200


@pytest.mark.anyio
async def test_rejection_happens_before_session_validation():
    provider = FakeIdentityProvider({"tok:u1": User(id="u1")})
    app = make_guarded_app(make_gatekeeper(provider))
    async with _client(app) as client:
        r = await client.post("/api/echo", headers={"Origin": "https://evil.example", "X-CSRF-Token": TOKEN})
    assert r.status_code == 403
    assert provider.reads == 0
    assert provider.validations == []


@pytest.mark.anyio
async def test_default_https_port_in_host_is_ignored():
    async with _client(_signed_in_app(environment="prod"), base_url=PROD_BASE_URL) as client:
        r = await client.post(
            "/api/echo",
            headers={"Host": "proingup.com:443", "Origin": PROD_ORIGIN, "X-CSRF-Token": TOKEN},
        )
    assert r.status_code == 200


@pytest.mark.anyio
async def test_non_default_port_in_host_is_still_rejected():
    async with _client(_signed_in_app(environment="prod"), base_url=PROD_BASE_URL) as client:
        r = await client.post(
            "/api/echo",
            headers={"Host": "proingup.com:8443", "Origin": PROD_ORIGIN, "X-CSRF-Token": TOKEN},
        )
    assert r.status_code == 403
    assert r.text == "Forbidden: bad host"
