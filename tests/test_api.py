import pytest
from conftest import FakeProvider, external
from fastapi.testclient import TestClient

from gift_suggestion_engine.api import create_app


@pytest.fixture
def provider():
    return FakeProvider([external("Fone Bluetooth", 199.9)])


@pytest.fixture
def client(make_service, provider):
    return TestClient(create_app(make_service(provider)))


def test_health_reports_stats(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["stats"]["active_suggestion_count"] == 3


def test_suggestions_envelope(client):
    response = client.get("/api/sugestoes-auto", params={"recipientId": "rec-ana"})

    assert response.status_code == 200
    body = response.json()
    assert body["fonte"] == "mista"
    assert [row["id"] for row in body["resultados"]][:2] == ["sug-som", "sug-cafe"]
    assert body["paginacao"]["total_resultados"] == 3


def test_suggestions_alias_route_matches(client):
    primary = client.get("/api/sugestoes-auto", params={"recipientId": "rec-joao", "limit": 1})
    alias = client.get("/suggestions", params={"recipientId": "rec-joao", "limit": 1})

    assert alias.status_code == 200
    assert alias.json() == primary.json()


def test_unknown_recipient_is_404(client):
    response = client.get("/api/sugestoes-auto", params={"recipientId": "nope"})

    assert response.status_code == 404
    assert "nope" in response.json()["detail"]


@pytest.mark.parametrize(
    "params",
    [
        {"recipientId": "rec-ana", "page": 0},
        {"recipientId": "rec-ana", "limit": 50},
        {"recipientId": "rec-ana", "limit": 0},
        {},
    ],
)
def test_invalid_query_parameters_are_rejected(client, params):
    assert client.get("/api/sugestoes-auto", params=params).status_code == 422


def test_click_record_returns_204_and_counts(client, seeded_db, monkeypatch):
    from gift_suggestion_engine.clicks import ClickRecorder

    futures = []
    original = ClickRecorder.record

    def tracking_record(self, link):
        future = original(self, link)
        futures.append(future)
        return future

    monkeypatch.setattr(ClickRecorder, "record", tracking_record)

    first = client.post("/api/clicks/record", json={"link": "https://loja.example.com/kit-cafe"})
    second = client.post("/clicks/record", json={"link": "https://loja.example.com/kit-cafe"})
    for future in futures:
        future.result(timeout=5)

    assert first.status_code == 204
    assert second.status_code == 204
    assert first.content == b""
    assert seeded_db.get_click_stats("https://loja.example.com/kit-cafe")["click_count"] == 2


def test_click_with_blank_link_is_still_204(client):
    assert client.post("/api/clicks/record", json={"link": ""}).status_code == 204


@pytest.mark.parametrize("kwargs", [{}, {"json": {"link": 123}}, {"json": {}}])
def test_click_without_usable_link_is_still_204(client, seeded_db, kwargs):
    response = client.post("/clicks/record", **kwargs)

    assert response.status_code == 204
    assert seeded_db.stats()["click_count"] == 0


def test_external_search_returns_products(client, provider):
    response = client.post("/api/serpapi/search", json={"keywords": "fone", "limit": 3, "maxPrice": 250})

    assert response.status_code == 200
    body = response.json()
    assert body["sucesso"] is True
    assert body["resultados"][0]["nome"] == "Fone Bluetooth"
    assert provider.calls[-1]["max_price"] == 250


def test_external_search_failure_is_reported_in_body(make_service, failing_provider):
    client = TestClient(create_app(make_service(failing_provider)))

    response = client.post("/api/serpapi/search", json={"keywords": "fone"})

    assert response.status_code == 200
    assert response.json()["sucesso"] is False


def test_external_search_blank_keywords_is_400(client):
    assert client.post("/api/serpapi/search", json={"keywords": "   "}).status_code == 400
