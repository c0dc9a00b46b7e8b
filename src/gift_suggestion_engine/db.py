"""SQLite access layer for recipients, profiles, taxonomy, catalog suggestions, and click counters."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from gift_suggestion_engine.taxonomy import normalize_keywords


PRIORITY_LEVELS = (1, 2, 3)

_PROFILE_COLUMNS = (
    "age_range",
    "gender",
    "zodiac_sign",
    "relationship",
    "gift_preference",
    "lifestyle",
    "interest_category",
    "budget_range",
    "occasion",
    "gifts_to_avoid",
    "is_completed",
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class GiftSuggestionDB:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS recipients (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    age INTEGER,
                    gender TEXT,
                    zodiac_sign TEXT,
                    relationship TEXT,
                    interests TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS recipient_profiles (
                    recipient_id TEXT PRIMARY KEY,
                    age_range TEXT,
                    gender TEXT,
                    zodiac_sign TEXT,
                    relationship TEXT,
                    gift_preference TEXT,
                    lifestyle TEXT,
                    interest_category TEXT,
                    budget_range TEXT,
                    occasion TEXT,
                    gifts_to_avoid TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (recipient_id) REFERENCES recipients(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS gift_categories (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT,
                    icon TEXT,
                    color TEXT,
                    keywords TEXT NOT NULL DEFAULT '[]',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS gift_types (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS gift_suggestions (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    image_url TEXT,
                    price_min REAL NOT NULL,
                    price_max REAL NOT NULL,
                    category TEXT,
                    gift_type_id TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    priority INTEGER CHECK (priority IS NULL OR priority IN (1, 2, 3)),
                    product_url TEXT NOT NULL DEFAULT '',
                    cupom TEXT,
                    validade_cupom TEXT,
                    target_gender TEXT NOT NULL DEFAULT 'unissex',
                    target_age_range TEXT NOT NULL DEFAULT 'todos',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    CHECK (price_min <= price_max)
                );

                CREATE TABLE IF NOT EXISTS gift_suggestion_categories (
                    suggestion_id TEXT NOT NULL,
                    category_id TEXT NOT NULL,
                    PRIMARY KEY (suggestion_id, category_id),
                    FOREIGN KEY (suggestion_id) REFERENCES gift_suggestions(id) ON DELETE CASCADE,
                    FOREIGN KEY (category_id) REFERENCES gift_categories(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_suggestion_categories_category
                    ON gift_suggestion_categories(category_id);

                CREATE TABLE IF NOT EXISTS clicks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    link TEXT NOT NULL UNIQUE,
                    click_count INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )

    def upsert_recipient(
        self,
        *,
        name: str,
        recipient_id: str | None = None,
        age: int | None = None,
        gender: str | None = None,
        zodiac_sign: str | None = None,
        relationship: str | None = None,
        interests: Iterable[str] | None = None,
    ) -> str:
        safe_id = recipient_id or uuid.uuid4().hex
        timestamp = _utc_now()
        cleaned_interests = [str(value).strip() for value in interests or [] if str(value).strip()]
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO recipients (
                    id, name, age, gender, zodiac_sign, relationship, interests, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    age=excluded.age,
                    gender=excluded.gender,
                    zodiac_sign=excluded.zodiac_sign,
                    relationship=excluded.relationship,
                    interests=excluded.interests,
                    updated_at=excluded.updated_at
                """,
                (
                    safe_id,
                    name,
                    age,
                    gender,
                    zodiac_sign,
                    relationship,
                    json.dumps(cleaned_interests, ensure_ascii=False),
                    timestamp,
                    timestamp,
                ),
            )
        return safe_id

    def get_recipient(self, recipient_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, name, age, gender, zodiac_sign, relationship, interests, updated_at
                FROM recipients
                WHERE id = ?
                """,
                (recipient_id,),
            ).fetchone()
        if not row:
            return None
        payload = dict(row)
        payload["interests"] = json.loads(payload.get("interests") or "[]")
        return payload

    def list_recipient_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id FROM recipients ORDER BY id ASC").fetchall()
        return [str(row["id"]) for row in rows]

    def upsert_recipient_profile(self, recipient_id: str, **fields: Any) -> None:
        values = {key: fields.get(key) for key in _PROFILE_COLUMNS if key in fields}
        if "is_completed" in values:
            values["is_completed"] = 1 if values["is_completed"] else 0
        values["updated_at"] = _utc_now()

        column_sql = ", ".join(["recipient_id", *values.keys()])
        placeholder_sql = ", ".join(["?"] * (len(values) + 1))
        update_sql = ", ".join(f"{key}=excluded.{key}" for key in values.keys())
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO recipient_profiles ({column_sql})
                VALUES ({placeholder_sql})
                ON CONFLICT(recipient_id) DO UPDATE SET {update_sql}
                """,
                (recipient_id, *values.values()),
            )

    def get_recipient_profile(self, recipient_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT recipient_id, {", ".join(_PROFILE_COLUMNS)}, updated_at
                FROM recipient_profiles
                WHERE recipient_id = ?
                """,
                (recipient_id,),
            ).fetchone()
        return dict(row) if row else None

    def upsert_category(
        self,
        *,
        name: str,
        category_id: str | None = None,
        keywords: Iterable[str] | None = None,
        description: str | None = None,
        icon: str | None = None,
        color: str | None = None,
        is_active: bool = True,
    ) -> str:
        safe_id = category_id or uuid.uuid4().hex
        cleaned = list(normalize_keywords(keywords))
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gift_categories (
                    id, name, description, icon, color, keywords, is_active, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    description=excluded.description,
                    icon=excluded.icon,
                    color=excluded.color,
                    keywords=excluded.keywords,
                    is_active=excluded.is_active,
                    updated_at=excluded.updated_at
                """,
                (
                    safe_id,
                    name.strip(),
                    description,
                    icon,
                    color,
                    json.dumps(cleaned, ensure_ascii=False),
                    1 if is_active else 0,
                    _utc_now(),
                ),
            )
        return safe_id

    def list_categories(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, name, description, icon, color, keywords, is_active
                FROM gift_categories
                ORDER BY name ASC
                """
            ).fetchall()
        return [dict(row) for row in rows]

    def upsert_gift_type(
        self,
        *,
        name: str,
        type_id: str | None = None,
        description: str | None = None,
        is_active: bool = True,
    ) -> str:
        safe_id = type_id or uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gift_types (id, name, description, is_active, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    description=excluded.description,
                    is_active=excluded.is_active,
                    updated_at=excluded.updated_at
                """,
                (safe_id, name.strip(), description, 1 if is_active else 0, _utc_now()),
            )
        return safe_id

    def list_gift_types(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, name, description, is_active
                FROM gift_types
                ORDER BY name ASC
                """
            ).fetchall()
        return [dict(row) for row in rows]

    def upsert_suggestion(
        self,
        *,
        name: str,
        price_min: float,
        price_max: float | None = None,
        suggestion_id: str | None = None,
        description: str = "",
        image_url: str | None = None,
        category: str | None = None,
        category_ids: Iterable[str] | None = None,
        gift_type_id: str | None = None,
        tags: Iterable[str] | None = None,
        priority: int | None = None,
        product_url: str = "",
        coupon_code: str | None = None,
        coupon_expires_on: str | None = None,
        target_gender: str = "unissex",
        target_age_range: str = "todos",
        is_active: bool = True,
        created_at: str | None = None,
    ) -> str:
        safe_id = suggestion_id or uuid.uuid4().hex
        safe_max = float(price_max) if price_max is not None else float(price_min)
        if float(price_min) > safe_max:
            raise ValueError("price_min must not exceed price_max.")
        if priority is not None and priority not in PRIORITY_LEVELS:
            raise ValueError("priority must be 1, 2, 3, or None.")
        cleaned_tags = [str(tag).strip() for tag in tags or [] if str(tag).strip()]

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gift_suggestions (
                    id, name, description, image_url, price_min, price_max, category,
                    gift_type_id, tags, priority, product_url, cupom, validade_cupom,
                    target_gender, target_age_range, is_active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    description=excluded.description,
                    image_url=excluded.image_url,
                    price_min=excluded.price_min,
                    price_max=excluded.price_max,
                    category=excluded.category,
                    gift_type_id=excluded.gift_type_id,
                    tags=excluded.tags,
                    priority=excluded.priority,
                    product_url=excluded.product_url,
                    cupom=excluded.cupom,
                    validade_cupom=excluded.validade_cupom,
                    target_gender=excluded.target_gender,
                    target_age_range=excluded.target_age_range,
                    is_active=excluded.is_active
                """,
                (
                    safe_id,
                    name,
                    description,
                    image_url,
                    float(price_min),
                    safe_max,
                    category,
                    gift_type_id,
                    json.dumps(cleaned_tags, ensure_ascii=False),
                    priority,
                    product_url,
                    coupon_code,
                    coupon_expires_on,
                    target_gender,
                    target_age_range,
                    1 if is_active else 0,
                    created_at or _utc_now(),
                ),
            )
            conn.execute("DELETE FROM gift_suggestion_categories WHERE suggestion_id = ?", (safe_id,))
            conn.executemany(
                """
                INSERT INTO gift_suggestion_categories (suggestion_id, category_id)
                VALUES (?, ?)
                """,
                [(safe_id, str(category_id)) for category_id in dict.fromkeys(category_ids or [])],
            )
        return safe_id

    def list_active_suggestions(self) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT gs.id,
                       gs.name,
                       gs.description,
                       gs.image_url,
                       gs.price_min,
                       gs.price_max,
                       gs.category,
                       gs.gift_type_id,
                       gs.tags,
                       gs.priority,
                       gs.product_url,
                       gs.cupom,
                       gs.validade_cupom,
                       gs.target_gender,
                       gs.target_age_range,
                       gs.created_at,
                       (
                           SELECT json_group_array(gsc.category_id)
                           FROM gift_suggestion_categories gsc
                           WHERE gsc.suggestion_id = gs.id
                       ) AS category_ids
                FROM gift_suggestions gs
                WHERE gs.is_active = 1
                ORDER BY gs.id ASC
                """
            ).fetchall()

        out: list[dict[str, Any]] = []
        for row in rows:
            payload = dict(row)
            payload["tags"] = json.loads(payload.get("tags") or "[]")
            payload["category_ids"] = json.loads(payload.get("category_ids") or "[]")
            out.append(payload)
        return out

    def record_click(self, link: str) -> None:
        timestamp = _utc_now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO clicks (link, click_count, created_at, updated_at)
                VALUES (?, 1, ?, ?)
                ON CONFLICT(link) DO UPDATE SET
                    click_count = click_count + 1,
                    updated_at = excluded.updated_at
                """,
                (link, timestamp, timestamp),
            )

    def get_click_stats(self, link: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id, link, click_count, created_at, updated_at
                FROM clicks
                WHERE link = ?
                """,
                (link,),
            ).fetchone()
        return dict(row) if row else None

    def list_top_clicked_links(self, *, limit: int = 10) -> list[dict[str, Any]]:
        safe_limit = max(1, min(int(limit), 100))
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT c.id,
                       c.link,
                       c.click_count,
                       c.updated_at,
                       gs.name AS suggestion_name,
                       gs.id AS suggestion_id
                FROM clicks c
                LEFT JOIN gift_suggestions gs ON gs.product_url = c.link
                ORDER BY c.click_count DESC, c.link ASC
                LIMIT ?
                """,
                (safe_limit,),
            ).fetchall()
        return [dict(row) for row in rows]

    def stats(self) -> dict[str, Any]:
        with self._connect() as conn:
            counts = conn.execute(
                """
                SELECT
                  (SELECT COUNT(*) FROM recipients) AS recipient_count,
                  (SELECT COUNT(*) FROM recipient_profiles) AS profile_count,
                  (SELECT COUNT(*) FROM gift_categories WHERE is_active = 1) AS active_category_count,
                  (SELECT COUNT(*) FROM gift_suggestions WHERE is_active = 1) AS active_suggestion_count,
                  (SELECT COALESCE(SUM(click_count), 0) FROM clicks) AS click_count
                """
            ).fetchone()
        return (
            dict(counts)
            if counts
            else {
                "recipient_count": 0,
                "profile_count": 0,
                "active_category_count": 0,
                "active_suggestion_count": 0,
                "click_count": 0,
            }
        )
