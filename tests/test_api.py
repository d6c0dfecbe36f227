"""HTTP tests for the three pages and the session status."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from main import app, configure


@pytest.mark.asyncio
async def test_session_is_ready_after_bootstrap(api_client):
    response = await api_client.get("/api/session")
    assert response.status_code == 200
    payload = response.json()
    assert payload["state"] == "ready"
    assert payload["uid"]
    assert payload["is_anonymous"] is True


@pytest.mark.asyncio
async def test_dashboard_counts_each_activation(api_client):
    first = (await api_client.get("/api/dashboard")).json()
    second = (await api_client.get("/api/dashboard")).json()
    assert first["stats"]["total_visits"] == 1
    assert second["stats"]["total_visits"] == 2
    assert second["stats"]["last_visit"]
    assert second["stale"] is False


@pytest.mark.asyncio
async def test_learning_lists_seeded_catalog(api_client):
    response = await api_client.get("/api/learning")
    assert response.status_code == 200
    payload = response.json()
    assert payload["count"] == 4
    assert payload["tags"][0] == "All"
    assert payload["empty_message"] is None
    code_item = payload["items"][1]
    assert code_item["type_label"] == "Code Snippet"
    assert code_item["type_icon"] == "code"
    assert "content" not in code_item


@pytest.mark.asyncio
async def test_learning_filters(api_client):
    payload = (await api_client.get("/api/learning", params={"search": "Redis"})).json()
    assert [item["id"] for item in payload["items"]] == ["1"]

    payload = (await api_client.get("/api/learning", params={"tag": "Video"})).json()
    assert [item["id"] for item in payload["items"]] == ["3"]

    payload = (await api_client.get("/api/learning", params={"search": "zzz"})).json()
    assert payload["items"] == []
    assert payload["empty_message"]


@pytest.mark.asyncio
async def test_expanding_reveals_content_after_delay(api_client):
    payload = (await api_client.post("/api/learning/2/toggle")).json()
    assert payload["expanded_id"] == "2"
    assert payload["fetching"] is True
    assert payload["item"] is None

    await asyncio.sleep(0.05)
    payload = (await api_client.get("/api/learning/expansion")).json()
    assert payload["fetching"] is False
    assert payload["item"]["source"] == "obs://bucket-code/snippets/upload-demo.js"
    assert "putObject" in payload["item"]["content"]


@pytest.mark.asyncio
async def test_only_latest_expansion_loads(api_client):
    await api_client.post("/api/learning/1/toggle")
    payload = (await api_client.post("/api/learning/2/toggle")).json()
    assert payload["expanded_id"] == "2"
    assert payload["fetching"] is True

    await asyncio.sleep(0.05)
    payload = (await api_client.get("/api/learning/expansion")).json()
    assert payload["expanded_id"] == "2"
    assert payload["item"]["id"] == "2"

    payload = (await api_client.post("/api/learning/2/toggle")).json()
    assert payload == {"expanded_id": None, "fetching": False, "item": None}


@pytest.mark.asyncio
async def test_toggle_unknown_item(api_client):
    response = await api_client.post("/api/learning/42/toggle")
    assert response.status_code == 404
    payload = (await api_client.get("/api/learning/expansion")).json()
    assert payload["expanded_id"] is None


@pytest.mark.asyncio
async def test_diagnostics_read_configured_settings(api_client, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_NAME", raising=False)
    payload = (await api_client.get("/test")).json()
    assert payload["database_url"] == "✅ Set"
    assert payload["database_name"] == "✅ Set"
    assert payload["connection_status"] == "Connected"


@pytest.mark.asyncio
async def test_about_page(api_client):
    payload = (await api_client.get("/api/about")).json()
    assert [s["badge"] for s in payload["status"]] == ["ACTIVE", "CONNECTED", "DEMO"]


@pytest.mark.asyncio
async def test_pages_blocked_until_signed_in(store, test_settings):
    configure(app, store, test_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/dashboard")
        assert response.status_code == 503
        assert response.json()["detail"]["state"] == "loading"
    # nothing was written before sign-in
    assert store.list_collection_names() == []


@pytest.mark.asyncio
async def test_failed_sign_in_is_visible(store, test_settings):
    configure(app, store, test_settings)
    await app.state.bootstrap.start("revoked-token")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/learning")
        assert response.status_code == 503
        assert response.json()["detail"]["state"] == "error"
        session = (await client.get("/api/session")).json()
        assert session["state"] == "error"
        assert session["error"]
