"""Read snapshot of the curated gift catalog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import Any

from gift_suggestion_engine.db import PRIORITY_LEVELS
from gift_suggestion_engine.models import CatalogItem, Coupon


_LOGGER = logging.getLogger(__name__)


def _parse_date(raw: Any) -> date | None:
    text = str(raw or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        _LOGGER.warning("Ignoring unparseable coupon expiry date %r.", text)
        return None


def _parse_priority(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value in PRIORITY_LEVELS else None


def item_from_row(row: dict[str, Any]) -> CatalogItem:
    price_min = float(row.get("price_min") or 0.0)
    price_max = float(row.get("price_max") if row.get("price_max") is not None else price_min)
    if price_max < price_min:
        price_min, price_max = price_max, price_min

    coupon_code = str(row.get("cupom") or "").strip()
    coupon = Coupon(code=coupon_code, expires_on=_parse_date(row.get("validade_cupom"))) if coupon_code else None

    return CatalogItem(
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        description=str(row.get("description") or ""),
        price_min=price_min,
        price_max=price_max,
        category_ids=frozenset(str(value) for value in row.get("category_ids") or []),
        tags=tuple(str(tag) for tag in row.get("tags") or [] if str(tag).strip()),
        priority=_parse_priority(row.get("priority")),
        coupon=coupon,
        image_url=row.get("image_url") or None,
        product_url=str(row.get("product_url") or ""),
        category=row.get("category") or None,
        gift_type_id=row.get("gift_type_id") or None,
        target_gender=str(row.get("target_gender") or "unissex"),
        target_age_range=str(row.get("target_age_range") or "todos"),
        created_at=str(row.get("created_at") or ""),
    )


@dataclass(frozen=True)
class CatalogIndex:
    items: list[CatalogItem]

    def by_id(self) -> dict[str, CatalogItem]:
        return {item.id: item for item in self.items}


def load_catalog(db) -> CatalogIndex:
    return CatalogIndex(items=[item_from_row(row) for row in db.list_active_suggestions()])
