#!/usr/bin/env python3
"""Runs the suggestion engine for a set of recipients and reports latency and source mix."""

from __future__ import annotations

import argparse
from collections import Counter
import json
from pathlib import Path
import statistics
import sys
import time

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv
from gift_suggestion_engine.service import SuggestionService


def evaluate(service: SuggestionService, recipients: list[str], limit: int) -> dict:
    results = []
    latencies = []
    sources: Counter[str] = Counter()

    for recipient_id in recipients:
        start = time.perf_counter()
        try:
            payload = service.get_suggestions(recipient_id, page=1, limit=limit)
        except KeyError:
            results.append({"recipient_id": recipient_id, "error": "not found"})
            continue
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        latencies.append(elapsed_ms)
        sources[payload["fonte"]] += 1
        results.append(
            {
                "recipient_id": recipient_id,
                "latency_ms": round(elapsed_ms, 2),
                "fonte": payload["fonte"],
                "total_resultados": payload["paginacao"]["total_resultados"],
                "aviso": payload.get("aviso"),
                "top": [row["nome"] for row in payload["resultados"][:3]],
            }
        )

    summary = {
        "recipients": len(recipients),
        "latency_ms_avg": round(statistics.mean(latencies), 2) if latencies else 0.0,
        "latency_ms_max": round(max(latencies), 2) if latencies else 0.0,
        "sources": dict(sources),
    }
    return {"summary": summary, "results": results}


def main() -> int:
    load_dotenv(ROOT_DIR / ".env")

    parser = argparse.ArgumentParser(description="Evaluate suggestion latency and source mix per recipient.")
    parser.add_argument("--limit", type=int, default=5, help="Page size requested per recipient.")
    parser.add_argument(
        "--output",
        type=Path,
        default=ROOT_DIR / "docs" / "eval_last_run.json",
        help="Where to write JSON evaluation results.",
    )
    parser.add_argument(
        "--recipient",
        action="append",
        default=[],
        help="Recipient id (can be passed multiple times). Defaults to every stored recipient.",
    )
    args = parser.parse_args()

    service = SuggestionService(root_dir=ROOT_DIR)
    recipients = args.recipient if args.recipient else service.db.list_recipient_ids()

    payload = evaluate(service, recipients, max(1, args.limit))
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    summary = payload["summary"]
    print("Suggestion Evaluation")
    print(f"recipients: {summary['recipients']}")
    print(f"latency avg: {summary['latency_ms_avg']} ms (max {summary['latency_ms_max']} ms)")
    print(f"sources: {summary['sources']}")
    print(f"saved: {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
