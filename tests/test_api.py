"""HTTP surface tests with injected services."""

import json

import pytest
from fastapi.testclient import TestClient

from freshmarket_assistant.llm.client import FALLBACK_MESSAGE
from freshmarket_assistant.main import create_app

from tests.conftest import FIXTURE_CATEGORIES, FIXTURE_PRODUCTS, FakeOpenAI

ADMIN_HEADERS = {"X-Admin-Token": "secret-token"}


@pytest.fixture
def catalog_file(test_settings):
    payload = {
        "categories": [{"id": cat_id, "name": name} for cat_id, name in FIXTURE_CATEGORIES.items()],
        "products": FIXTURE_PRODUCTS + [{"id": "p-broken", "name": "Non", "price": "bepul"}],
    }
    with open(test_settings.catalog_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh)
    return test_settings.catalog_path


@pytest.fixture
def llm_backend():
    return FakeOpenAI(fragments=["Ha, ", "Olma bor: ", "15000 so'm."])


@pytest.fixture
def client(make_services, llm_backend):
    with TestClient(create_app(services=make_services(llm_backend))) as test_client:
        yield test_client


class TestHealth:
    def test_reports_absent_index(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["embeddings"] == "ready"
        assert body["index"] == "absent"

    def test_reports_built_index(self, client, catalog_file):
        client.post("/admin/reindex", json={}, headers=ADMIN_HEADERS)

        body = client.get("/health").json()

        assert body["index"]["count"] == 3
        assert body["index"]["collection"].startswith("products-")


class TestReindex:
    def test_requires_admin_token(self, client, catalog_file):
        assert client.post("/admin/reindex", json={}).status_code == 403
        assert client.post("/admin/reindex", json={}, headers={"X-Admin-Token": "wrong"}).status_code == 403

    def test_rebuilds_and_reports_skipped(self, client, catalog_file):
        response = client.post("/admin/reindex", json={}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["indexed"] == 3
        assert [s["source_id"] for s in body["skipped"]] == ["p-broken"]

    def test_missing_catalog_is_bad_request(self, client, tmp_path):
        response = client.post(
            "/admin/reindex",
            json={"catalog_path": str(tmp_path / "missing.json")},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 400


    def test_malformed_catalog_is_bad_request(self, client, test_settings):
        with open(test_settings.catalog_path, "w", encoding="utf-8") as fh:
            json.dump({"categories": {"c1": "Mevalar"}, "products": []}, fh)

        response = client.post("/admin/reindex", json={}, headers=ADMIN_HEADERS)

        assert response.status_code == 400


class TestSearch:
    def test_returns_scored_products(self, client, catalog_file):
        client.post("/admin/reindex", json={}, headers=ADMIN_HEADERS)

        response = client.get("/api/v1/products/search", params={"q": "banan", "k": 2})

        assert response.status_code == 200
        hits = response.json()
        assert len(hits) == 2
        assert hits[0]["product"]["name"] == "Banan"
        assert hits[0]["product"]["category"] == "Mevalar"
        assert hits[0]["score"] >= hits[1]["score"]

    def test_absent_index_returns_empty_list(self, client):
        response = client.get("/api/v1/products/search", params={"q": "banan"})

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.parametrize("params", [{"q": ""}, {"q": "olma", "k": 0}, {"q": "olma", "k": 51}])
    def test_rejects_bad_parameters(self, client, params):
        assert client.get("/api/v1/products/search", params=params).status_code == 422


class TestChat:
    def test_streams_plain_text_reply(self, client, catalog_file, llm_backend):
        client.post("/admin/reindex", json={}, headers=ADMIN_HEADERS)

        response = client.post(
            "/api/chat",
            json={"message": "olma bormi?", "history": [{"role": "user", "content": "salom"}]},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Ha, Olma bor: 15000 so'm."
        messages = llm_backend.completions.calls[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "user"]

    def test_rejects_blank_message(self, client):
        assert client.post("/api/chat", json={"message": "   "}).status_code == 422

    def test_rejects_unknown_role(self, client):
        response = client.post(
            "/api/chat",
            json={"message": "olma", "history": [{"role": "tool", "content": "x"}]},
        )

        assert response.status_code == 422


@pytest.mark.parametrize("llm_backend", [FakeOpenAI(error=RuntimeError("503 from upstream"))])
def test_chat_backend_failure_streams_fallback(client):
    response = client.post("/api/chat", json={"message": "olma bormi?"})

    assert response.status_code == 200
    assert response.text == FALLBACK_MESSAGE
