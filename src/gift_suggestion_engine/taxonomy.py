"""Gift category/type taxonomy: text normalization, keyword sanitation, and read snapshots."""

from __future__ import annotations

from dataclasses import dataclass
import json
import unicodedata
from typing import Any, Iterable

from gift_suggestion_engine.models import CategoryKeywords, GiftType


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value: Any) -> str:
    text = strip_accents(str(value or "").strip().lower())
    chars = [ch if ch.isalnum() or ch.isspace() else " " for ch in text]
    return " ".join("".join(chars).split())


def tokenize(value: Any) -> list[str]:
    return [token for token in normalize_text(value).split() if token]


def normalize_keywords(values: Iterable[Any] | None) -> tuple[str, ...]:
    """Lower-case, trim, and dedupe a free-text keyword list, keeping first-seen order.

    Empty entries are dropped.
    """
    out: list[str] = []
    seen: set[str] = set()
    for value in values or []:
        cleaned = " ".join(str(value or "").strip().lower().split())
        if not cleaned:
            continue
        key = normalize_text(cleaned)
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(cleaned)
    return tuple(out)


def _json_list(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    try:
        parsed = json.loads(str(raw))
    except ValueError:
        return []
    return parsed if isinstance(parsed, list) else []


def category_from_row(row: dict[str, Any]) -> CategoryKeywords:
    return CategoryKeywords(
        category_id=str(row["id"]),
        name=str(row["name"]),
        keywords=normalize_keywords(_json_list(row.get("keywords"))),
        is_active=bool(row.get("is_active", 1)),
        color=row.get("color"),
        icon=row.get("icon"),
    )


def gift_type_from_row(row: dict[str, Any]) -> GiftType:
    return GiftType(
        type_id=str(row["id"]),
        name=str(row["name"]),
        is_active=bool(row.get("is_active", 1)),
    )


@dataclass(frozen=True)
class TaxonomySnapshot:
    categories: dict[str, CategoryKeywords]
    gift_types: dict[str, GiftType]

    @property
    def active_categories(self) -> dict[str, CategoryKeywords]:
        return {cid: category for cid, category in self.categories.items() if category.is_active}

    def is_gift_type_active(self, type_id: str | None) -> bool:
        if not type_id:
            return True
        gift_type = self.gift_types.get(type_id)
        # Unknown types count as active.
        return gift_type is None or gift_type.is_active


class TaxonomyStore:
    """Read-only view over the admin-owned category and type tables."""

    def __init__(self, db) -> None:
        self.db = db

    def snapshot(self) -> TaxonomySnapshot:
        categories = [category_from_row(row) for row in self.db.list_categories()]
        gift_types = [gift_type_from_row(row) for row in self.db.list_gift_types()]
        return TaxonomySnapshot(
            categories={category.category_id: category for category in categories},
            gift_types={gift_type.type_id: gift_type for gift_type in gift_types},
        )
