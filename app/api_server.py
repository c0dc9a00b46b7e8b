"""FastAPI entrypoint exposing the gift suggestion engine."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

import sys

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from gift_suggestion_engine.api import create_app
from gift_suggestion_engine.service import SuggestionService


load_dotenv(ROOT_DIR / ".env")
logging.basicConfig(
    level=os.getenv("GIFT_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

service = SuggestionService(root_dir=ROOT_DIR)
app = create_app(service)
