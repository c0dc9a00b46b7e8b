"""Domain types shared by the matching engine, storage snapshots, and the API layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(frozen=True)
class RecipientSignals:
    interests: frozenset[str] = frozenset()
    age_range: str | None = None
    gender: str | None = None
    zodiac_sign: str | None = None
    relationship: str | None = None
    gift_preference: str | None = None
    budget_range: str | None = None
    occasion: str | None = None
    gifts_to_avoid: str | None = None
    lifestyle: str | None = None
    has_profile: bool = False

    @property
    def has_scoring_signals(self) -> bool:
        return bool(
            self.interests
            or self.gift_preference
            or self.occasion
            or self.lifestyle
            or self.budget_range
            or self.gifts_to_avoid
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.has_scoring_signals
            or self.age_range
            or self.gender
            or self.zodiac_sign
            or self.relationship
        )


EMPTY_SIGNALS = RecipientSignals()


@dataclass(frozen=True)
class CategoryKeywords:
    category_id: str
    name: str
    keywords: tuple[str, ...] = ()
    is_active: bool = True
    color: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class GiftType:
    type_id: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class Coupon:
    code: str
    expires_on: date | None = None


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name: str
    description: str
    price_min: float
    price_max: float
    category_ids: frozenset[str] = frozenset()
    tags: tuple[str, ...] = ()
    priority: int | None = None
    coupon: Coupon | None = None
    image_url: str | None = None
    product_url: str = ""
    category: str | None = None
    gift_type_id: str | None = None
    target_gender: str = "unissex"
    target_age_range: str = "todos"
    created_at: str = ""


@dataclass(frozen=True)
class ExternalProduct:
    name: str
    link: str
    description: str = ""
    image_url: str | None = None
    price_display: str = ""
    price_value: float | None = None
    store: str = ""


@dataclass
class ScoreResult:
    value: float
    matched_keywords: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    best_category: str | None = None


@dataclass
class SuggestionResult:
    id: str
    name: str
    description: str
    link: str
    image: str | None
    price: float | str
    priority: int | None
    category: str | None
    tags: list[str]
    source: str
    coupon: Coupon | None = None
    coupon_expiry: str | None = None
    matched_keywords: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nome": self.name,
            "descricao": self.description,
            "link": self.link,
            "imagem": self.image,
            "preco": self.price,
            "prioridade": self.priority,
            "categoria": self.category,
            "tags": list(self.tags),
            "fonte": self.source,
            "cupom": self.coupon.code if self.coupon else None,
            "validadeCupom": (
                self.coupon.expires_on.isoformat()
                if self.coupon and self.coupon.expires_on
                else None
            ),
            "statusCupom": self.coupon_expiry,
        }
