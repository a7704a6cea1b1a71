from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Collection, Union

from pydantic import ValidationError

from ..recommendations.config import RecommendationSchema
from ..recommendations.models import (
    FallbackReason,
    ProductIdsRecommendation,
    Recommendation,
    RecommendsRecommendation,
)

_OPEN_FENCE_RE = re.compile(r"\A```[\w-]*[ \t]*\n?")
_CLOSE_FENCE_RE = re.compile(r"\n?```\s*\Z")


@dataclass(frozen=True)
class Valid:
    recommendation: Recommendation


@dataclass(frozen=True)
class Invalid:
    reason: FallbackReason
    detail: str = ""


ParseResult = Union[Valid, Invalid]


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around model output."""
    text = _OPEN_FENCE_RE.sub("", text.strip())
    return _CLOSE_FENCE_RE.sub("", text).strip()


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span in *text*, or None.

    Braces inside JSON string literals are ignored, so commentary before or
    after the object does not confuse the match.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _restrict_to_catalog(
    recommendation: Recommendation,
    catalog_ids: Collection[str],
    response_schema: RecommendationSchema,
) -> Recommendation:
    if isinstance(recommendation, RecommendsRecommendation):
        seen: set[str] = set()
        items = []
        for item in recommendation.recommends:
            if item.id in catalog_ids and item.id not in seen:
                seen.add(item.id)
                items.append(item)
        return recommendation.model_copy(update={"recommends": items})

    ids = list(dict.fromkeys(pid for pid in recommendation.product_ids if pid in catalog_ids))
    reasons = None
    if response_schema is RecommendationSchema.product_ids_with_reasons:
        given = recommendation.reasons or {}
        reasons = {pid: given[pid] for pid in ids if pid in given}
    return recommendation.model_copy(update={"product_ids": ids, "reasons": reasons})


def _recommended_count(recommendation: Recommendation) -> int:
    if isinstance(recommendation, RecommendsRecommendation):
        return len(recommendation.recommends)
    return len(recommendation.product_ids)


def parse_recommendation(
    text: str | None,
    response_schema: RecommendationSchema,
    catalog_ids: Collection[str],
) -> ParseResult:
    """Turn raw model text into a validated recommendation for this deployment's shape."""
    if not text or not text.strip():
        return Invalid(FallbackReason.empty_response)

    candidate = extract_json_object(strip_code_fences(text))
    if candidate is None:
        return Invalid(FallbackReason.no_json_object, "no balanced JSON object in response")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return Invalid(FallbackReason.invalid_json, str(exc))

    model = (
        RecommendsRecommendation
        if response_schema is RecommendationSchema.recommends
        else ProductIdsRecommendation
    )
    try:
        recommendation = model.model_validate(data)
    except ValidationError as exc:
        return Invalid(FallbackReason.invalid_shape, f"{exc.error_count()} validation error(s)")

    if (
        response_schema is RecommendationSchema.product_ids_with_reasons
        and recommendation.reasons is None
    ):
        return Invalid(FallbackReason.invalid_shape, "missing reasons")

    recommendation = _restrict_to_catalog(recommendation, set(catalog_ids), response_schema)
    if _recommended_count(recommendation) == 0:
        return Invalid(FallbackReason.invalid_shape, "no catalog products recommended")

    return Valid(recommendation)
