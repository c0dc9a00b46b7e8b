"""Merging, deduplication, query derivation, and pagination of internal and external suggestions."""

from __future__ import annotations

import hashlib
import math

from gift_suggestion_engine.models import (
    CatalogItem,
    ExternalProduct,
    RecipientSignals,
    ScoreResult,
    SuggestionResult,
)
from gift_suggestion_engine.taxonomy import normalize_text


SOURCE_INTERNAL = "interna"
SOURCE_EXTERNAL = "externa"
SOURCE_MIXED = "mista"

_GENDER_QUERY_HINTS = {
    "masculino": "masculino",
    "homem": "masculino",
    "male": "masculino",
    "feminino": "feminino",
    "mulher": "feminino",
    "female": "feminino",
}

_AGE_QUERY_HINTS = {
    "crianca": "infantil",
    "adolescente": "adolescente",
    "adulto": "adulto",
    "idoso": "idoso",
}


def dedup_key(name: str, price: float | None) -> tuple[str, int | None]:
    return (normalize_text(name), int(round(price)) if price is not None else None)


def internal_result(item: CatalogItem, score: ScoreResult) -> SuggestionResult:
    return SuggestionResult(
        id=item.id,
        name=item.name,
        description=item.description,
        link=item.product_url,
        image=item.image_url,
        price=item.price_min,
        priority=item.priority,
        category=score.best_category or item.category,
        tags=list(item.tags),
        source=SOURCE_INTERNAL,
        coupon=item.coupon,
        matched_keywords=list(score.matched_keywords),
    )


def external_result(product: ExternalProduct) -> SuggestionResult:
    digest = hashlib.sha1(product.link.encode("utf-8")).hexdigest()[:12]
    price: float | str = product.price_value if product.price_value is not None else product.price_display
    return SuggestionResult(
        id=f"externa-{digest}",
        name=product.name,
        description=product.description or (f"Disponível em {product.store}" if product.store else ""),
        link=product.link,
        image=product.image_url,
        price=price,
        priority=None,
        category=None,
        tags=[],
        source=SOURCE_EXTERNAL,
    )


def _result_key(result: SuggestionResult) -> tuple[str, int | None]:
    price = result.price if isinstance(result.price, (int, float)) else None
    return dedup_key(result.name, price)


def merge_results(
    internal: list[SuggestionResult],
    external: list[SuggestionResult],
) -> list[SuggestionResult]:
    """Keep internal results in rank order and append unseen external ones in provider order."""
    seen = {_result_key(result) for result in internal}
    merged = list(internal)
    for result in external:
        key = _result_key(result)
        if key in seen:
            continue
        seen.add(key)
        merged.append(result)
    return merged


def paginate(
    results: list[SuggestionResult],
    *,
    page: int,
    limit: int,
) -> tuple[list[SuggestionResult], int, int]:
    total = len(results)
    safe_limit = max(1, int(limit))
    total_pages = math.ceil(total / safe_limit) if total else 0
    safe_page = max(1, int(page))
    if safe_page > total_pages:
        return [], total_pages, total
    start = (safe_page - 1) * safe_limit
    return results[start : start + safe_limit], total_pages, total


def derive_query(
    ranked: list[tuple[CatalogItem, ScoreResult]],
    signals: RecipientSignals,
    *,
    top_n: int = 3,
) -> str | None:
    """Build the external search query, or None when there is nothing to search for."""
    if signals.is_empty:
        return None

    keywords: list[str] = []
    for _item, score in ranked:
        for keyword in score.matched_keywords:
            if keyword not in keywords:
                keywords.append(keyword)
            if len(keywords) >= top_n:
                return " ".join(keywords)
    if keywords:
        return " ".join(keywords)

    if signals.interests:
        return " ".join(sorted(signals.interests, key=str.casefold))

    parts = ["presente"]
    for value in (signals.occasion, signals.gift_preference, signals.lifestyle):
        if value:
            parts.append(value)
    gender_hint = _GENDER_QUERY_HINTS.get(normalize_text(signals.gender))
    if gender_hint:
        parts.append(gender_hint)
    age_hint = _AGE_QUERY_HINTS.get(normalize_text(signals.age_range))
    if age_hint:
        parts.append(age_hint)
    return " ".join(parts)
