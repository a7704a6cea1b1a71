from __future__ import annotations

import time
from collections import deque
from typing import Any

from ..recommendations.config import DEFAULT_ENGINE_CONFIG
from ..recommendations.models import RecommendationOutcome

_events: deque[dict[str, Any]] = deque(maxlen=DEFAULT_ENGINE_CONFIG.analytics_max_events)


def record_event(event_type: str, data: dict[str, Any]) -> None:
    _events.append({
        "type": event_type,
        "timestamp": time.time(),
        **data,
    })


def record_recommendation(
    outcome: RecommendationOutcome,
    catalog_size: int,
    response_time_ms: float,
    locale: str | None = None,
) -> None:
    record_event("recommendation", {
        "source": outcome.source.value,
        "fallback_reason": outcome.fallback_reason.value if outcome.fallback_reason else None,
        "catalog_size": catalog_size,
        "results_returned": len(outcome.recommended_ids()),
        "response_time_ms": response_time_ms,
        "locale": locale,
    })


def get_events() -> list[dict[str, Any]]:
    return list(_events)


def clear_events() -> None:
    _events.clear()
