import threading

import pytest
from conftest import FakeProvider, external

from gift_suggestion_engine.errors import RecipientNotFound
from gift_suggestion_engine.service import (
    WARNING_EMPTY_PROFILE,
    WARNING_NO_RESULTS,
    WARNING_PROVIDER_FAILED,
)


def _ids(payload):
    return [row["id"] for row in payload["resultados"]]


def test_internal_results_are_blended_with_unseen_external_products(make_service):
    provider = FakeProvider(
        [
            external("Kit Café Gourmet", 80.0),
            external("Fone Bluetooth", 199.9),
            external("Smartwatch", 299.0),
        ]
    )

    payload = make_service(provider).get_suggestions("rec-ana")

    assert payload["fonte"] == "mista"
    assert _ids(payload)[:2] == ["sug-som", "sug-cafe"]
    assert [row["nome"] for row in payload["resultados"][2:]] == ["Fone Bluetooth", "Smartwatch"]
    assert [row["fonte"] for row in payload["resultados"]] == ["interna", "interna", "externa", "externa"]
    assert payload["paginacao"] == {"pagina_atual": 1, "total_paginas": 1, "total_resultados": 4}
    assert "aviso" not in payload
    assert provider.calls == [{"query": "tecnologia", "limit": 10, "min_price": 100.0, "max_price": 300.0}]


def test_source_stays_internal_when_every_external_product_is_a_duplicate(make_service):
    provider = FakeProvider([external("kit cafe gourmet", 79.8)])

    payload = make_service(provider).get_suggestions("rec-ana")

    assert payload["fonte"] == "interna"
    assert _ids(payload) == ["sug-som", "sug-cafe"]


def test_provider_failure_keeps_internal_results_and_warns(make_service, failing_provider):
    payload = make_service(failing_provider).get_suggestions("rec-ana")

    assert payload["fonte"] == "interna"
    assert _ids(payload) == ["sug-som", "sug-cafe"]
    assert payload["aviso"] == WARNING_PROVIDER_FAILED


def test_missing_api_key_counts_as_provider_failure(make_service):
    payload = make_service().get_suggestions("rec-ana")

    assert payload["fonte"] == "interna"
    assert payload["aviso"] == WARNING_PROVIDER_FAILED


def test_slow_provider_is_abandoned_after_timeout(make_service, monkeypatch):
    monkeypatch.setenv("GIFT_PROVIDER_TIMEOUT_SECONDS", "0.2")
    release = threading.Event()
    provider = FakeProvider([external("Fone Bluetooth", 199.9)], release=release)

    try:
        payload = make_service(provider).get_suggestions("rec-ana")
    finally:
        release.set()

    assert payload["fonte"] == "interna"
    assert payload["aviso"] == WARNING_PROVIDER_FAILED
    assert _ids(payload) == ["sug-som", "sug-cafe"]


def test_recipient_without_internal_matches_gets_external_results(make_service):
    provider = FakeProvider([external("Caneca Personalizada", 49.9)])

    payload = make_service(provider).get_suggestions("rec-bia")

    assert payload["fonte"] == "externa"
    assert [row["nome"] for row in payload["resultados"]] == ["Caneca Personalizada"]
    assert payload["aviso"] == WARNING_EMPTY_PROFILE
    assert provider.calls[0]["query"] == "presente adulto"
    assert provider.calls[0]["min_price"] is None
    assert provider.calls[0]["max_price"] is None


def test_nothing_found_anywhere_returns_empty_page_with_warnings(make_service, failing_provider):
    payload = make_service(failing_provider).get_suggestions("rec-bia")

    assert payload["resultados"] == []
    assert payload["paginacao"] == {"pagina_atual": 1, "total_paginas": 0, "total_resultados": 0}
    assert WARNING_EMPTY_PROFILE in payload["aviso"]
    assert WARNING_PROVIDER_FAILED in payload["aviso"]
    assert WARNING_NO_RESULTS in payload["aviso"]


def test_empty_profile_skips_external_search(make_service):
    provider = FakeProvider([external("Qualquer Coisa", 10.0)])

    payload = make_service(provider).get_suggestions("rec-vazio")

    assert provider.calls == []
    assert payload["fonte"] == "interna"
    assert payload["resultados"] == []
    assert WARNING_EMPTY_PROFILE in payload["aviso"]
    assert WARNING_NO_RESULTS in payload["aviso"]


def test_keyword_match_drives_query_without_budget_filter(make_service):
    provider = FakeProvider([])

    payload = make_service(provider).get_suggestions("rec-joao")

    assert _ids(payload) == ["sug-cafe"]
    assert provider.calls == [{"query": "café", "limit": 10, "min_price": None, "max_price": None}]


def test_unknown_recipient_raises(make_service):
    with pytest.raises(RecipientNotFound):
        make_service(FakeProvider()).get_suggestions("nope")


def test_enough_internal_results_skip_the_provider(make_service):
    provider = FakeProvider([external("Fone Bluetooth", 199.9)])
    service = make_service(provider)

    first = service.get_suggestions("rec-ana", page=1, limit=1)
    second = service.get_suggestions("rec-ana", page=2, limit=1)

    assert provider.calls == []
    assert _ids(first) == ["sug-som"]
    assert _ids(second) == ["sug-cafe"]
    assert second["paginacao"] == {"pagina_atual": 2, "total_paginas": 2, "total_resultados": 2}


def test_min_internal_results_override(make_service, monkeypatch):
    monkeypatch.setenv("GIFT_MIN_INTERNAL_RESULTS", "2")
    provider = FakeProvider([external("Fone Bluetooth", 199.9)])

    payload = make_service(provider).get_suggestions("rec-ana", limit=5)

    assert provider.calls == []
    assert payload["fonte"] == "interna"


def test_pages_partition_blended_results(make_service):
    provider = FakeProvider([external(f"Produto {idx}", 20.0 + idx) for idx in range(12)])
    service = make_service(provider)

    pages = [service.get_suggestions("rec-bia", page=page, limit=5) for page in (1, 2, 3, 4)]

    assert [len(page["resultados"]) for page in pages] == [5, 5, 2, 0]
    assert len({row["id"] for page in pages for row in page["resultados"]}) == 12
    assert all(page["paginacao"]["total_paginas"] == 3 for page in pages)
    assert pages[3]["paginacao"]["pagina_atual"] == 4


def test_coupon_status_uses_reference_date(make_service, failing_provider):
    rows = make_service(failing_provider).get_suggestions("rec-ana")["resultados"]
    by_id = {row["id"]: row for row in rows}

    assert by_id["sug-som"]["cupom"] == "SOM10"
    assert by_id["sug-som"]["statusCupom"] == "expired"
    assert by_id["sug-cafe"]["cupom"] == "CAFE10"
    assert by_id["sug-cafe"]["validadeCupom"] == "2025-06-16"
    assert by_id["sug-cafe"]["statusCupom"] is None


def test_internal_rows_carry_catalog_fields(make_service, failing_provider):
    row = make_service(failing_provider).get_suggestions("rec-ana")["resultados"][0]

    assert row["nome"] == "Caixa de Som Bluetooth"
    assert row["preco"] == 250.0
    assert row["prioridade"] == 3
    assert row["categoria"] == "Eletrônicos"
    assert row["link"] == "https://loja.example.com/caixa-som"


def test_search_external_rejects_blank_keywords(make_service):
    with pytest.raises(ValueError):
        make_service(FakeProvider()).search_external(keywords="   ")


def test_search_external_reports_provider_failure(make_service, failing_provider):
    payload = make_service(failing_provider).search_external(keywords="fone")

    assert payload["sucesso"] is False
    assert payload["resultados"] == []
    assert "quota exceeded" in payload["erro"]


def test_search_external_returns_products(make_service):
    provider = FakeProvider([external("Fone Bluetooth", 199.9, store="Loja A")])

    payload = make_service(provider).search_external(keywords="fone  bluetooth", limit=3, max_price=250)

    assert payload["sucesso"] is True
    assert payload["total"] == 1
    assert payload["resultados"][0]["loja"] == "Loja A"
    assert provider.calls == [{"query": "fone bluetooth", "limit": 3, "min_price": None, "max_price": 250}]


def test_same_request_returns_identical_envelopes(make_service):
    provider = FakeProvider([external("Fone Bluetooth", 199.9), external("Smartwatch", 299.0)])
    service = make_service(provider)

    first = service.get_suggestions("rec-ana", page=1, limit=3)
    second = service.get_suggestions("rec-ana", page=1, limit=3)

    assert first == second
    assert [row["id"] for row in first["resultados"]][:2] == ["sug-som", "sug-cafe"]
