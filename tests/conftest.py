import sys
from datetime import date
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

from gift_suggestion_engine.db import GiftSuggestionDB
from gift_suggestion_engine.errors import ProviderUnavailable
from gift_suggestion_engine.models import ExternalProduct
from gift_suggestion_engine.service import SuggestionService


FIXED_TODAY = date(2025, 6, 15)


class FakeProvider:
    def __init__(self, products=None, error=None, release=None):
        self.products = list(products or [])
        self.error = error
        self.release = release
        self.calls = []

    def search(self, query, limit, *, min_price=None, max_price=None):
        self.calls.append({"query": query, "limit": limit, "min_price": min_price, "max_price": max_price})
        if self.release is not None:
            self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return list(self.products)


def external(name, price, link=None, store="Loja Exemplo"):
    return ExternalProduct(
        name=name,
        link=link or f"https://shop.example.com/{name.lower().replace(' ', '-')}",
        description="",
        image_url=None,
        price_display=f"R$ {price:.2f}".replace(".", ","),
        price_value=price,
        store=store,
    )


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "SERPAPI_API_KEY",
        "SERPAPI_BASE_URL",
        "GIFT_DB_PATH",
        "GIFT_PROVIDER_TIMEOUT_SECONDS",
        "GIFT_EXTERNAL_LIMIT",
        "GIFT_QUERY_KEYWORDS",
        "GIFT_MIN_INTERNAL_RESULTS",
        "GIFT_REFERENCE_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db(tmp_path):
    return GiftSuggestionDB(tmp_path / "gifts.db")


@pytest.fixture
def seeded_db(db):
    db.upsert_category(category_id="cat-ele", name="Eletrônicos", keywords=["Tecnologia", "gadgets", " ", "tecnologia"])
    db.upsert_category(category_id="cat-liv", name="Livros", keywords=["leitura", "literatura"])
    db.upsert_category(category_id="cat-gas", name="Gastronomia", keywords=["café", "gourmet"])
    db.upsert_gift_type(type_id="tipo-produto", name="Produto")

    db.upsert_suggestion(
        suggestion_id="sug-som",
        name="Caixa de Som Bluetooth",
        price_min=250,
        category="Eletrônicos",
        category_ids=["cat-ele"],
        gift_type_id="tipo-produto",
        tags=["música", "portátil"],
        priority=3,
        product_url="https://loja.example.com/caixa-som",
        coupon_code="SOM10",
        coupon_expires_on="2025-06-14",
    )
    db.upsert_suggestion(
        suggestion_id="sug-livro",
        name="Livro de Receitas",
        price_min=40,
        category="Livros",
        category_ids=["cat-liv"],
        tags=["culinária"],
        product_url="https://loja.example.com/livro",
    )
    db.upsert_suggestion(
        suggestion_id="sug-cafe",
        name="Kit Café Gourmet",
        price_min=80,
        price_max=150,
        category="Gastronomia",
        category_ids=["cat-gas"],
        tags=["café", "cozinha"],
        priority=2,
        product_url="https://loja.example.com/kit-cafe",
        coupon_code="CAFE10",
        coupon_expires_on="2025-06-16",
    )

    db.upsert_recipient(recipient_id="rec-ana", name="Ana", age=29, interests=["tecnologia", "música"])
    db.upsert_recipient_profile("rec-ana", budget_range="100-300", occasion="aniversário", is_completed=True)
    db.upsert_recipient(recipient_id="rec-joao", name="João", age=41, interests=["café"])
    db.upsert_recipient(recipient_id="rec-bia", name="Bia", age=30, interests=[])
    db.upsert_recipient(recipient_id="rec-vazio", name="Sem dados", age=None, interests=[])
    return db


@pytest.fixture
def make_service(seeded_db):
    def _make(provider=None, **kwargs):
        kwargs.setdefault("today_fn", lambda: FIXED_TODAY)
        return SuggestionService(db=seeded_db, provider=provider, **kwargs)

    return _make


@pytest.fixture
def failing_provider():
    return FakeProvider(error=ProviderUnavailable("quota exceeded"))
