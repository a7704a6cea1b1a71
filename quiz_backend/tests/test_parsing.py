from __future__ import annotations

import json

from quiz_backend.llm.parsing import (
    Invalid,
    Valid,
    extract_json_object,
    parse_recommendation,
    strip_code_fences,
)
from quiz_backend.recommendations.config import RecommendationSchema
from quiz_backend.recommendations.models import FallbackReason

CATALOG_IDS = ["p1", "p2", "p3"]

GOOD = {
    "productIds": ["p2", "p1"],
    "reasoning": "Both are herbal.",
    "guidance": "Brew for five minutes.",
}


def _parse(text, schema=RecommendationSchema.product_ids):
    return parse_recommendation(text, schema, CATALOG_IDS)


# ── Text cleanup ─────────────────────────────────────────────────────────


def test_strip_json_fence():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_plain_fence():
    assert strip_code_fences('```\n{"a": 1}\n```\n') == '{"a": 1}'


def test_strip_keeps_backticks_inside_values():
    text = '{"reasoning": "use ```json\\n blocks"}'
    assert strip_code_fences(text) == text


def test_extract_ignores_surrounding_commentary():
    text = 'Sure! Here it is: {"a": {"b": 2}} Let me know if {you} need more.'
    assert extract_json_object(text) == '{"a": {"b": 2}}'


def test_extract_ignores_braces_in_strings():
    text = '{"reasoning": "a } tricky { value", "x": "\\"}"}'
    assert extract_json_object(text) == text


def test_extract_unbalanced_returns_none():
    assert extract_json_object('{"a": {"b": 1}') is None
    assert extract_json_object("no braces here") is None


# ── Parsing pipeline ─────────────────────────────────────────────────────


def test_valid_response():
    result = _parse(json.dumps(GOOD))
    assert isinstance(result, Valid)
    assert result.recommendation.product_ids == ["p2", "p1"]


def test_fenced_response_is_valid():
    result = _parse("```json\n" + json.dumps(GOOD) + "\n```")
    assert isinstance(result, Valid)


def test_empty_text():
    assert _parse(None) == Invalid(FallbackReason.empty_response)
    assert _parse("   ") == Invalid(FallbackReason.empty_response)


def test_no_json_object():
    result = _parse("I would recommend p1 and p2.")
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.no_json_object


def test_invalid_json():
    result = _parse("{productIds: [p1]}")
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_json


def test_missing_key_is_invalid_shape():
    result = _parse(json.dumps({"productIds": ["p1"], "reasoning": "r"}))
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_shape


def test_wrong_type_is_invalid_shape():
    result = _parse(json.dumps({**GOOD, "productIds": [1, 2]}))
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_shape


def test_unknown_and_duplicate_ids_are_dropped():
    result = _parse(json.dumps({**GOOD, "productIds": ["p3", "ghost", "p3", "p1"]}))
    assert isinstance(result, Valid)
    assert result.recommendation.product_ids == ["p3", "p1"]


def test_only_unknown_ids_is_invalid():
    result = _parse(json.dumps({**GOOD, "productIds": ["ghost"]}))
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_shape


def test_plain_schema_drops_reasons():
    result = _parse(json.dumps({**GOOD, "reasons": {"p1": "nice"}}))
    assert result.recommendation.reasons is None


def test_reasons_schema_requires_reasons():
    result = _parse(json.dumps(GOOD), RecommendationSchema.product_ids_with_reasons)
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_shape


def test_reasons_schema_keeps_known_reasons():
    payload = {**GOOD, "reasons": {"p1": "herbal", "ghost": "?"}}
    result = _parse(json.dumps(payload), RecommendationSchema.product_ids_with_reasons)
    assert isinstance(result, Valid)
    assert result.recommendation.reasons == {"p1": "herbal"}


def test_recommends_schema():
    payload = {
        "recommends": [
            {"id": "p1", "description": "Calming blend", "tags": ["calming"]},
            {"id": "nope", "description": "Not in catalog", "tags": []},
        ],
        "reasoning": "Calming picks.",
    }
    result = _parse(json.dumps(payload), RecommendationSchema.recommends)
    assert isinstance(result, Valid)
    assert [item.id for item in result.recommendation.recommends] == ["p1"]


def test_recommends_schema_rejects_product_ids_shape():
    result = _parse(json.dumps(GOOD), RecommendationSchema.recommends)
    assert isinstance(result, Invalid)
    assert result.reason is FallbackReason.invalid_shape


def test_fenced_response_keeps_backticks_in_reasoning():
    body = {**GOOD, "reasoning": "Use ```json blocks for recipes."}
    result = _parse("```json\n" + json.dumps(body) + "\n```")
    assert isinstance(result, Valid)
    assert result.recommendation.reasoning == "Use ```json blocks for recipes."
