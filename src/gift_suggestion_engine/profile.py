"""Builds the per-request recipient signal set from the recipient row and its questionnaire profile."""

from __future__ import annotations

import logging
import re
from typing import Any

from gift_suggestion_engine.errors import RecipientNotFound
from gift_suggestion_engine.models import EMPTY_SIGNALS, RecipientSignals


_LOGGER = logging.getLogger(__name__)

BUDGET_BANDS: dict[str, tuple[float, float]] = {
    "ate-50": (0.0, 50.0),
    "50-100": (50.0, 100.0),
    "100-200": (100.0, 200.0),
    "200-500": (200.0, 500.0),
    "acima-500": (500.0, 99999.0),
}

_OPEN_ENDED_MAX = 99999.0
_RANGE_PATTERN = re.compile(r"^(\d+(?:[.,]\d+)?)\s*-\s*(\d+(?:[.,]\d+)?)$")
_UP_TO_PATTERN = re.compile(r"^ate\s*-?\s*(\d+(?:[.,]\d+)?)$")
_ABOVE_PATTERN = re.compile(r"^acima\s*-?\s*(?:de\s*-?\s*)?(\d+(?:[.,]\d+)?)$")


def _number(raw: str) -> float:
    return float(raw.replace(",", "."))


def budget_band(budget_range: str | None) -> tuple[float, float] | None:
    """Map a questionnaire budget answer to a numeric (min, max) band in BRL.

    Accepts the questionnaire keys ("ate-50", "100-200", "acima-500") and the
    same shapes with arbitrary numbers ("100-300"). Unknown answers yield None.
    """
    key = str(budget_range or "").strip().lower().replace("até", "ate").replace("r$", "").strip()
    if not key:
        return None
    if key in BUDGET_BANDS:
        return BUDGET_BANDS[key]

    match = _RANGE_PATTERN.match(key)
    if match:
        low, high = _number(match.group(1)), _number(match.group(2))
        return (min(low, high), max(low, high))
    match = _UP_TO_PATTERN.match(key)
    if match:
        return (0.0, _number(match.group(1)))
    match = _ABOVE_PATTERN.match(key)
    if match:
        return (_number(match.group(1)), _OPEN_ENDED_MAX)
    return None


def age_range_for(age: Any) -> str | None:
    try:
        years = int(age)
    except (TypeError, ValueError):
        return None
    if years < 0:
        return None
    if years < 13:
        return "crianca"
    if years < 18:
        return "adolescente"
    if years < 60:
        return "adulto"
    return "idoso"


def _clean(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


class ProfileResolver:
    def __init__(self, db) -> None:
        self.db = db

    def resolve(self, recipient_id: str) -> RecipientSignals:
        recipient = self.db.get_recipient(recipient_id)
        if not recipient:
            raise RecipientNotFound(f"Recipient not found: {recipient_id}")

        profile = self.db.get_recipient_profile(recipient_id) or {}
        interests = {str(value).strip() for value in recipient.get("interests") or [] if str(value).strip()}
        interest_category = _clean(profile.get("interest_category"))
        if interest_category:
            interests.add(interest_category)

        signals = RecipientSignals(
            interests=frozenset(interests),
            age_range=_clean(profile.get("age_range")) or age_range_for(recipient.get("age")),
            gender=_clean(profile.get("gender")) or _clean(recipient.get("gender")),
            zodiac_sign=_clean(profile.get("zodiac_sign")) or _clean(recipient.get("zodiac_sign")),
            relationship=_clean(profile.get("relationship")) or _clean(recipient.get("relationship")),
            gift_preference=_clean(profile.get("gift_preference")),
            budget_range=_clean(profile.get("budget_range")),
            occasion=_clean(profile.get("occasion")),
            gifts_to_avoid=_clean(profile.get("gifts_to_avoid")),
            lifestyle=_clean(profile.get("lifestyle")),
            has_profile=bool(profile),
        )
        if signals.is_empty:
            _LOGGER.info("Recipient %s has no usable profile signals.", recipient_id)
            return EMPTY_SIGNALS
        return signals
