import logging

from httpx import ASGITransport, AsyncClient


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "ok"
    assert body["database"] in ("connected", "unavailable")


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_unhandled_error_is_logged_with_traceback(app, caplog):
    async def explode():
        raise RuntimeError("disk on fire")

    app.add_api_route("/explode", explode)
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="app.core.errors"):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/explode")

    assert response.status_code == 500
    assert response.json()["message"] == "Internal server error"
    [record] = [r for r in caplog.records if r.name == "app.core.errors"]
    assert record.exc_info is not None
    assert "disk on fire" in caplog.text
    assert "Traceback" in caplog.text
