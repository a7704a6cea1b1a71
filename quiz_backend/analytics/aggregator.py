from __future__ import annotations

from collections import Counter
from typing import Any


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    recs = [e for e in events if e["type"] == "recommendation"]
    total = len(recs)

    # Provenance split
    source_counter: Counter[str] = Counter(e.get("source", "unknown") for e in recs)
    fallback_count = source_counter.get("fallback", 0)

    # Why we fell back
    reason_counter: Counter[str] = Counter(
        e["fallback_reason"] for e in recs if e.get("fallback_reason")
    )

    times = [e["response_time_ms"] for e in recs if "response_time_ms" in e]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    empty_results = sum(1 for e in recs if e.get("results_returned", 0) == 0)

    locale_counter: Counter[str] = Counter(e["locale"] for e in recs if e.get("locale"))

    return {
        "total_recommendations": total,
        "by_source": {
            "gemini": source_counter.get("gemini", 0),
            "fallback": fallback_count,
        },
        "fallback_rate": round(fallback_count / total * 100, 1) if total else 0.0,
        "fallback_reasons": dict(reason_counter.most_common()),
        "avg_response_time_ms": avg_time,
        "empty_results": empty_results,
        "top_locales": [{"name": n, "count": c} for n, c in locale_counter.most_common(10)],
    }
