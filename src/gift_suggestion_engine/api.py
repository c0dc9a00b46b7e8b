"""FastAPI routes for automatic gift suggestions, click tracking, and the external product search."""

from __future__ import annotations

import os
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from gift_suggestion_engine.service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, SuggestionService


class ClickRecordRequest(BaseModel):
    link: Any = None


class ExternalSearchRequest(BaseModel):
    keywords: str = Field(min_length=1)
    limit: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)
    minPrice: float | None = Field(default=None, ge=0)
    maxPrice: float | None = Field(default=None, ge=0)


def _cors_origins() -> list[str]:
    raw = os.getenv("GIFT_CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:5000", "http://localhost:5173", "http://127.0.0.1:5000"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(service: SuggestionService) -> FastAPI:
    app = FastAPI(title="Gift Suggestion Engine", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict:
        return {
            "status": "ok",
            "app": "gift-suggestion-engine",
            "stats": service.stats(),
        }

    @app.get("/api/sugestoes-auto")
    @app.get("/suggestions")
    def auto_suggestions(
        recipient_id: str = Query(alias="recipientId", min_length=1),
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ) -> dict:
        try:
            return service.get_suggestions(recipient_id, page=page, limit=limit)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/api/clicks/record", status_code=204)
    @app.post("/clicks/record", status_code=204)
    def record_click(request: ClickRecordRequest | None = None) -> Response:
        # Always acknowledged; a missing or non-string link records nothing.
        link = request.link if request is not None and isinstance(request.link, str) else ""
        service.record_click(link)
        return Response(status_code=204)

    @app.get("/api/clicks/top")
    def top_clicks(limit: int = Query(default=10, ge=1, le=100)) -> dict:
        return service.top_clicked_links(limit=limit)

    @app.post("/api/serpapi/search")
    def external_search(request: ExternalSearchRequest) -> dict:
        try:
            return service.search_external(
                keywords=request.keywords,
                limit=request.limit,
                min_price=request.minPrice,
                max_price=request.maxPrice,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    return app
