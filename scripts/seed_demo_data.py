#!/usr/bin/env python3
"""Loads the demo taxonomy, catalog, and recipients into the local suggestion database."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv
from gift_suggestion_engine.db import GiftSuggestionDB


def seed(db: GiftSuggestionDB, payload: dict) -> dict[str, int]:
    for category in payload.get("categories", []):
        db.upsert_category(
            category_id=category["id"],
            name=category["name"],
            keywords=category.get("keywords", []),
            description=category.get("description"),
            icon=category.get("icon"),
            color=category.get("color"),
            is_active=category.get("is_active", True),
        )

    for gift_type in payload.get("gift_types", []):
        db.upsert_gift_type(
            type_id=gift_type["id"],
            name=gift_type["name"],
            is_active=gift_type.get("is_active", True),
        )

    for suggestion in payload.get("suggestions", []):
        db.upsert_suggestion(
            suggestion_id=suggestion["id"],
            name=suggestion["name"],
            description=suggestion.get("description", ""),
            price_min=suggestion["price_min"],
            price_max=suggestion.get("price_max"),
            category=suggestion.get("category"),
            category_ids=suggestion.get("category_ids", []),
            gift_type_id=suggestion.get("gift_type_id"),
            tags=suggestion.get("tags", []),
            priority=suggestion.get("priority"),
            product_url=suggestion.get("product_url", ""),
            image_url=suggestion.get("image_url"),
            coupon_code=suggestion.get("coupon_code"),
            coupon_expires_on=suggestion.get("coupon_expires_on"),
            target_gender=suggestion.get("target_gender", "unissex"),
            target_age_range=suggestion.get("target_age_range", "todos"),
        )

    for recipient in payload.get("recipients", []):
        recipient_id = db.upsert_recipient(
            recipient_id=recipient["id"],
            name=recipient["name"],
            age=recipient.get("age"),
            gender=recipient.get("gender"),
            zodiac_sign=recipient.get("zodiac_sign"),
            relationship=recipient.get("relationship"),
            interests=recipient.get("interests", []),
        )
        if recipient.get("profile"):
            db.upsert_recipient_profile(recipient_id, **recipient["profile"])

    return {
        "categories": len(payload.get("categories", [])),
        "gift_types": len(payload.get("gift_types", [])),
        "suggestions": len(payload.get("suggestions", [])),
        "recipients": len(payload.get("recipients", [])),
    }


def main() -> int:
    load_dotenv(ROOT_DIR / ".env")

    parser = argparse.ArgumentParser(description="Seed the gift suggestion database with demo data.")
    parser.add_argument(
        "--input",
        type=Path,
        default=ROOT_DIR / "data" / "sample_catalog.json",
        help="JSON file with categories, gift_types, suggestions, and recipients.",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=Path(os.getenv("GIFT_DB_PATH", "").strip() or ROOT_DIR / "data" / "gift_suggestions.db"),
        help="SQLite database to write.",
    )
    args = parser.parse_args()

    payload = json.loads(args.input.read_text(encoding="utf-8"))
    counts = seed(GiftSuggestionDB(args.db), payload)

    print("Seeded gift suggestion database")
    for key, value in counts.items():
        print(f"{key}: {value}")
    print(f"database: {args.db}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
