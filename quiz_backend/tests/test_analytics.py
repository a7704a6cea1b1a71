from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from quiz_backend.analytics.aggregator import compute_analytics
from quiz_backend.analytics.store import clear_events, get_events, record_event
from quiz_backend.app import app, get_llm_config
from quiz_backend.llm.config import LLMConfig
from quiz_backend.recommendations.config import DEFAULT_ENGINE_CONFIG

client = TestClient(app)

BODY = {
    "answers": [{"questionId": "q1", "selectedOptions": ["calming"]}],
    "products": [
        {"id": "p1", "name": "Chamomile", "tags": ["calming"]},
        {"id": "p2", "name": "Assam", "tags": ["malty"]},
    ],
}


def test_analytics_returns_empty_initially():
    clear_events()
    resp = client.get("/analytics")
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_recommendations"] == 0
    assert body["avg_response_time_ms"] == 0.0
    assert body["fallback_rate"] == 0.0


def test_analytics_tracks_fallback_reason():
    clear_events()
    client.post("/recommend", json={**BODY, "config": {"enabled": False}})
    resp = client.get("/analytics")
    body = resp.json()
    assert body["total_recommendations"] == 1
    assert body["by_source"] == {"gemini": 0, "fallback": 1}
    assert body["fallback_reasons"] == {"disabled": 1}
    assert body["fallback_rate"] == 100.0


@patch("quiz_backend.llm.gemini_client.Client")
def test_analytics_splits_sources(mock_client_cls):
    clear_events()
    mock_client_cls.return_value.models.generate_content.return_value.text = (
        '{"productIds": ["p1"], "reasoning": "r", "guidance": "g"}'
    )
    app.dependency_overrides[get_llm_config] = lambda: LLMConfig(api_key="test-key")
    try:
        enabled = {**BODY, "config": {"enabled": True, "model": "gemini-test"}}
        client.post("/recommend", json=enabled)
        client.post("/recommend", json=enabled)
        client.post("/recommend", json={**BODY, "config": {"enabled": False}})
    finally:
        app.dependency_overrides.clear()

    body = client.get("/analytics").json()
    assert body["total_recommendations"] == 3
    assert body["by_source"] == {"gemini": 2, "fallback": 1}
    assert body["fallback_rate"] == 33.3


def test_rejected_requests_are_not_recorded():
    clear_events()
    client.post("/recommend", json={"answers": "nope"})
    assert get_events() == []


def test_compute_analytics_counts_empty_results_and_locales():
    events = [
        {"type": "recommendation", "source": "fallback", "fallback_reason": "timeout",
         "results_returned": 0, "response_time_ms": 10.0, "locale": "en"},
        {"type": "recommendation", "source": "gemini", "fallback_reason": None,
         "results_returned": 3, "response_time_ms": 30.0, "locale": "en"},
        {"type": "other"},
    ]
    body = compute_analytics(events)
    assert body["empty_results"] == 1
    assert body["avg_response_time_ms"] == 20.0
    assert body["fallback_reasons"] == {"timeout": 1}
    assert body["top_locales"] == [{"name": "en", "count": 2}]


def test_event_log_is_bounded():
    clear_events()
    cap = DEFAULT_ENGINE_CONFIG.analytics_max_events
    for i in range(cap + 5):
        record_event("recommendation", {"source": "fallback", "seq": i})
    events = get_events()
    assert len(events) == cap
    assert events[0]["seq"] == 5
    clear_events()


def test_get_events_returns_a_copy():
    clear_events()
    record_event("recommendation", {"source": "gemini"})
    get_events().clear()
    assert len(get_events()) == 1
    clear_events()
