"""Suggestion service orchestrating profile resolution, scoring, external blending, and pagination."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import date
import logging
import os
from pathlib import Path
from typing import Any, Callable, Protocol

from gift_suggestion_engine.blend import (
    SOURCE_EXTERNAL,
    SOURCE_INTERNAL,
    SOURCE_MIXED,
    derive_query,
    external_result,
    internal_result,
    merge_results,
    paginate,
)
from gift_suggestion_engine.catalog import load_catalog
from gift_suggestion_engine.clicks import ClickRecorder
from gift_suggestion_engine.coupons import DEFAULT_TIMEZONE, annotate_coupon, reference_today
from gift_suggestion_engine.db import GiftSuggestionDB
from gift_suggestion_engine.errors import ProviderUnavailable
from gift_suggestion_engine.models import ExternalProduct, RecipientSignals
from gift_suggestion_engine.profile import ProfileResolver, budget_band
from gift_suggestion_engine.scoring import DEFAULT_WEIGHTS, ScoringWeights, rank_items
from gift_suggestion_engine.serpapi_utils import make_client, product_payload
from gift_suggestion_engine.taxonomy import TaxonomyStore


_LOGGER = logging.getLogger(__name__)
_READ_EXECUTOR = ThreadPoolExecutor(max_workers=6, thread_name_prefix="suggestion-read")
_PROVIDER_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="provider-call")

DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 20
_OPEN_ENDED_BUDGET = 99999.0

WARNING_PROVIDER_FAILED = (
    "Não foi possível consultar a busca externa agora; exibindo apenas as sugestões disponíveis."
)
WARNING_EMPTY_PROFILE = (
    "O presenteado ainda não tem perfil preenchido; complete o questionário para sugestões mais precisas."
)
WARNING_NO_RESULTS = "Nenhuma sugestão encontrada para este perfil."


class SearchProvider(Protocol):
    def search(
        self,
        query: str,
        limit: int,
        *,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[ExternalProduct]: ...


class SuggestionService:
    def __init__(
        self,
        root_dir: Path | None = None,
        *,
        db: GiftSuggestionDB | None = None,
        provider: SearchProvider | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        today_fn: Callable[[], date] | None = None,
    ) -> None:
        self.root_dir = root_dir or Path(__file__).resolve().parents[2]
        db_path = os.getenv("GIFT_DB_PATH", "").strip()
        self.db = db or GiftSuggestionDB(Path(db_path) if db_path else self.root_dir / "data" / "gift_suggestions.db")

        self.taxonomy = TaxonomyStore(self.db)
        self.resolver = ProfileResolver(self.db)
        self.clicks = ClickRecorder(self.db)
        self.weights = weights
        self.provider = provider

        self.provider_timeout_seconds = self._env_timeout("GIFT_PROVIDER_TIMEOUT_SECONDS", 8.0)
        self.external_limit = self._env_int("GIFT_EXTERNAL_LIMIT", 10)
        self.query_keyword_count = self._env_int("GIFT_QUERY_KEYWORDS", 3)
        # 0 means "one full page of the requested size".
        self.min_internal_results = self._env_int("GIFT_MIN_INTERNAL_RESULTS", 0)
        self.reference_timezone = (
            os.getenv("GIFT_REFERENCE_TIMEZONE", DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
        )
        self._today_fn = today_fn

    @staticmethod
    def _env_timeout(name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError:
            return default
        return value if value > 0 else default

    @staticmethod
    def _env_int(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            return default
        return value if value > 0 else default

    def _ensure_provider(self) -> SearchProvider:
        if self.provider is None:
            self.provider = make_client()
        return self.provider

    def _run_with_timeout(self, operation: str, fn, timeout_seconds: float):
        safe_timeout = max(0.1, float(timeout_seconds))
        future = _PROVIDER_EXECUTOR.submit(fn)
        try:
            return future.result(timeout=safe_timeout)
        except FutureTimeoutError as exc:
            # Abandoned, not awaited: the worker finishes or fails on its own.
            future.cancel()
            raise ProviderUnavailable(f"{operation} timed out after {safe_timeout:g}s.") from exc
        except ProviderUnavailable:
            raise
        except Exception as exc:
            raise ProviderUnavailable(f"{operation} failed: {exc}") from exc

    def today(self) -> date:
        if self._today_fn is not None:
            return self._today_fn()
        return reference_today(self.reference_timezone)

    def _search_external(self, query: str, signals: RecipientSignals) -> list[ExternalProduct]:
        provider = self._ensure_provider()
        band = budget_band(signals.budget_range)
        min_price = band[0] if band and band[0] > 0 else None
        max_price = band[1] if band and band[1] < _OPEN_ENDED_BUDGET else None
        return self._run_with_timeout(
            "External product search",
            lambda: provider.search(query, self.external_limit, min_price=min_price, max_price=max_price),
            self.provider_timeout_seconds,
        )

    def get_suggestions(
        self,
        recipient_id: str,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        safe_limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        safe_page = max(1, int(page))

        signals_future = _READ_EXECUTOR.submit(self.resolver.resolve, recipient_id)
        taxonomy_future = _READ_EXECUTOR.submit(self.taxonomy.snapshot)
        catalog_future = _READ_EXECUTOR.submit(load_catalog, self.db)
        signals = signals_future.result()
        taxonomy = taxonomy_future.result()
        catalog = catalog_future.result()

        ranked = rank_items(signals, catalog.items, taxonomy, self.weights)
        internal = [internal_result(item, score) for item, score in ranked]

        warnings: list[str] = []
        if not signals.has_scoring_signals:
            warnings.append(WARNING_EMPTY_PROFILE)

        source = SOURCE_INTERNAL
        merged = internal
        threshold = self.min_internal_results or safe_limit
        if len(internal) < threshold:
            query = derive_query(ranked, signals, top_n=self.query_keyword_count)
            if query is None:
                _LOGGER.info("Skipping external search for recipient %s: no signals to search with.", recipient_id)
            else:
                try:
                    products = self._search_external(query, signals)
                except ProviderUnavailable as exc:
                    _LOGGER.warning("External search unavailable for recipient %s: %s", recipient_id, exc)
                    warnings.append(WARNING_PROVIDER_FAILED)
                else:
                    merged = merge_results(internal, [external_result(product) for product in products])
                    if not internal:
                        source = SOURCE_EXTERNAL
                    elif len(merged) > len(internal):
                        source = SOURCE_MIXED

        page_results, total_pages, total = paginate(merged, page=safe_page, limit=safe_limit)
        if total == 0:
            warnings.append(WARNING_NO_RESULTS)

        today = self.today()
        payload: dict[str, Any] = {
            "fonte": source,
            "resultados": [annotate_coupon(result, today).to_payload() for result in page_results],
            "paginacao": {
                "pagina_atual": safe_page,
                "total_paginas": total_pages,
                "total_resultados": total,
            },
        }
        if warnings:
            payload["aviso"] = " ".join(dict.fromkeys(warnings))

        _LOGGER.info(
            "Suggestions for recipient %s: source=%s internal=%d total=%d page=%d",
            recipient_id,
            source,
            len(internal),
            total,
            safe_page,
        )
        return payload

    def search_external(
        self,
        *,
        keywords: str,
        limit: int = 10,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> dict[str, Any]:
        cleaned = " ".join(str(keywords or "").split())
        if not cleaned:
            raise ValueError("keywords must not be empty.")
        safe_limit = max(1, min(int(limit), MAX_PAGE_SIZE))

        try:
            provider = self._ensure_provider()
            products = self._run_with_timeout(
                "External product search",
                lambda: provider.search(cleaned, safe_limit, min_price=min_price, max_price=max_price),
                self.provider_timeout_seconds,
            )
        except ProviderUnavailable as exc:
            _LOGGER.warning("External search failed for %r: %s", cleaned, exc)
            return {
                "sucesso": False,
                "fonte": "google_shopping",
                "keywords": cleaned,
                "total": 0,
                "resultados": [],
                "erro": str(exc),
            }

        return {
            "sucesso": True,
            "fonte": "google_shopping",
            "keywords": cleaned,
            "total": len(products),
            "resultados": [product_payload(product) for product in products],
        }

    def record_click(self, link: str) -> dict[str, Any]:
        self.clicks.record(link)
        return {"status": "accepted"}

    def top_clicked_links(self, *, limit: int = 10) -> dict[str, Any]:
        rows = self.db.list_top_clicked_links(limit=limit)
        return {
            "links": [
                {
                    "link": row["link"],
                    "cliques": int(row.get("click_count") or 0),
                    "atualizadoEm": row.get("updated_at"),
                    "sugestaoId": row.get("suggestion_id"),
                    "sugestaoNome": row.get("suggestion_name"),
                }
                for row in rows
            ]
        }

    def stats(self) -> dict[str, Any]:
        return self.db.stats()
