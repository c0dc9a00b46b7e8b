"""Read-time coupon expiry annotation."""

from __future__ import annotations

from datetime import date, datetime
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gift_suggestion_engine.models import SuggestionResult


_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Sao_Paulo"
COUPON_EXPIRED = "expired"


def reference_today(timezone_name: str = DEFAULT_TIMEZONE) -> date:
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        _LOGGER.warning("Unknown reference timezone %r; using %s.", timezone_name, DEFAULT_TIMEZONE)
        zone = ZoneInfo(DEFAULT_TIMEZONE)
    return datetime.now(zone).date()


def annotate_coupon(result: SuggestionResult, today: date) -> SuggestionResult:
    """Stamp coupon_expiry on a result; expired coupons keep their code."""
    if result.coupon is None:
        result.coupon_expiry = None
        return result
    expires_on = result.coupon.expires_on
    result.coupon_expiry = COUPON_EXPIRED if expires_on is not None and expires_on < today else None
    return result
