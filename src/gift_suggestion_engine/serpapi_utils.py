"""SerpApi Google Shopping client used to augment the internal catalog with external products."""

from __future__ import annotations

import json
import os
import re
import socket
from typing import Any
import urllib.error
import urllib.parse
import urllib.request

from gift_suggestion_engine.errors import ProviderUnavailable
from gift_suggestion_engine.models import ExternalProduct


_NO_RESULTS_MARKER = "hasn't returned any results"
_PRICE_PATTERN = re.compile(r"(\d{1,3}(?:\.\d{3})+|\d+)(?:,(\d{1,2}))?")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def parse_price(text: Any) -> float | None:
    """Parse a Brazilian display price such as "R$ 1.234,56" into a float."""
    if isinstance(text, (int, float)):
        return float(text)
    match = _PRICE_PATTERN.search(str(text or ""))
    if not match:
        return None
    whole = match.group(1).replace(".", "")
    cents = match.group(2) or "0"
    try:
        return float(f"{whole}.{cents}")
    except ValueError:
        return None


def format_price(value: float | None) -> str:
    if value is None:
        return ""
    whole, cents = f"{value:,.2f}".split(".")
    return f"R$ {whole.replace(',', '.')},{cents}"


class SerpApiClient:
    def __init__(self, *, api_key: str, base_url: str, timeout_seconds: float) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = max(1.0, float(timeout_seconds))

    def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = urllib.parse.urlencode({key: value for key, value in params.items() if value is not None})
        endpoint = f"{self.base_url}{path}?{query}"
        request = urllib.request.Request(endpoint, headers={"Accept": "application/json"}, method="GET")

        # A single attempt: a failed lookup degrades the page instead of delaying it.
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
                payload = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            response_body = exc.read().decode("utf-8", errors="ignore")
            raise ProviderUnavailable(
                f"SerpApi request failed ({exc.code}): {response_body[:200] or exc.reason}"
            ) from exc
        except urllib.error.URLError as exc:
            raise ProviderUnavailable(f"SerpApi request failed: {exc.reason}") from exc
        except (socket.timeout, TimeoutError) as exc:
            raise ProviderUnavailable("SerpApi request timed out.") from exc
        except ValueError as exc:
            raise ProviderUnavailable("SerpApi returned an invalid JSON payload.") from exc

        if not isinstance(payload, dict):
            raise ProviderUnavailable("SerpApi returned an unexpected payload.")
        return payload

    @staticmethod
    def _price_filter(min_price: float | None, max_price: float | None) -> str | None:
        if min_price is None and max_price is None:
            return None
        parts = ["mr:1", "price:1"]
        if min_price is not None:
            parts.append(f"ppr_min:{int(min_price)}")
        if max_price is not None:
            parts.append(f"ppr_max:{int(max_price)}")
        return ",".join(parts)

    @staticmethod
    def _extract_products(payload: dict[str, Any]) -> list[ExternalProduct]:
        rows = payload.get("shopping_results")
        if not isinstance(rows, list):
            return []

        out: list[ExternalProduct] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            name = str(row.get("title") or "").strip()
            link = str(row.get("link") or row.get("product_link") or "").strip()
            if not name or not link:
                continue

            price_display = str(row.get("price") or "").strip()
            price_value = row.get("extracted_price")
            if not isinstance(price_value, (int, float)):
                price_value = parse_price(price_display)

            out.append(
                ExternalProduct(
                    name=name,
                    link=link,
                    description=str(row.get("snippet") or row.get("delivery") or "").strip(),
                    image_url=row.get("thumbnail") or None,
                    price_display=price_display or format_price(price_value),
                    price_value=float(price_value) if price_value is not None else None,
                    store=str(row.get("source") or "").strip(),
                )
            )
        return out

    def search(
        self,
        query: str,
        limit: int,
        *,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[ExternalProduct]:
        cleaned = " ".join(str(query or "").split())
        if not cleaned:
            return []

        safe_limit = max(1, min(int(limit), 40))
        payload = self._get_json(
            "/search.json",
            {
                "engine": "google_shopping",
                "q": cleaned,
                "gl": "br",
                "hl": "pt-br",
                "google_domain": "google.com.br",
                "num": safe_limit,
                "tbs": self._price_filter(min_price, max_price),
                "api_key": self.api_key,
            },
        )

        error = payload.get("error")
        if error:
            if _NO_RESULTS_MARKER in str(error):
                return []
            raise ProviderUnavailable(f"SerpApi error: {error}")

        return self._extract_products(payload)[:safe_limit]


def make_client() -> SerpApiClient:
    api_key = os.getenv("SERPAPI_API_KEY", "").strip()
    if not api_key:
        raise ProviderUnavailable("SERPAPI_API_KEY is not set.")

    return SerpApiClient(
        api_key=api_key,
        base_url=os.getenv("SERPAPI_BASE_URL", "").strip() or "https://serpapi.com",
        timeout_seconds=_env_float("GIFT_PROVIDER_TIMEOUT_SECONDS", 8.0),
    )


def product_payload(product: ExternalProduct) -> dict[str, Any]:
    return {
        "nome": product.name,
        "descricao": product.description,
        "imagem": product.image_url,
        "preco": product.price_display,
        "precoNumerico": product.price_value,
        "link": product.link,
        "fonte": "google_shopping",
        "loja": product.store,
    }
