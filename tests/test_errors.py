"""Error rendering tests.

Learn: Every failure leaves the app as {"detail", "code"}. An exception
that isn't part of the taxonomy becomes a bare 500. The test makes a
route that raises one and checks nothing of it leaks.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from inkwell.errors import Forbidden, UploadFailed


@pytest.mark.asyncio
async def test_unexpected_error_is_generic(app):
    async def boom():
        raise RuntimeError("connection string postgres://secret@db")

    app.add_api_route("/boom", boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/boom")

    assert r.status_code == 500
    assert r.json() == {"detail": "Server error", "code": "unexpected"}
    assert "secret" not in r.text


@pytest.mark.parametrize(
    "exc, status, code",
    [(Forbidden(), 403, "forbidden"), (UploadFailed(), 502, "upload_failed")],
)
@pytest.mark.asyncio
async def test_domain_errors_render(app, client, exc, status, code):
    async def fail():
        raise exc

    app.add_api_route("/fail", fail)
    r = await client.get("/fail")
    assert r.status_code == status
    assert r.json() == {"detail": exc.message, "code": code}


@pytest.mark.asyncio
async def test_validation_errors_list_fields(client):
    r = await client.post("/api/auth/login", json={"email": "a@example.com"})
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "validation_failed"
    assert any("password" in err["loc"] for err in body["errors"])


@pytest.mark.asyncio
async def test_unexpected_error_still_logs_request(app):
    async def boom():
        raise RuntimeError("kaboom")

    app.add_api_route("/boom", boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    with capture_logs() as logs:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            await ac.get("/boom")

    completed = [e for e in logs if e["event"] == "request.completed"]
    assert len(completed) == 1
    assert completed[0]["status"] == 500
    assert completed[0]["path"] == "/boom"
