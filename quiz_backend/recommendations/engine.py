from __future__ import annotations

from typing import Any, Sequence

from pydantic import ValidationError

from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.gemini_client import get_recommendations
from ..quiz_config.models import QuizLocaleConfig
from .conditions import selected_option_ids
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .models import (
    Product,
    QuizAnswer,
    RecommendationOutcome,
    RecommendRequest,
    RuleRecommendRequest,
    ScoredProduct,
)
from .ranking import rank_scored
from .validation import InvalidEngineInput, check_answers

MISSING_ARRAYS_MESSAGE = "Missing answers or products."


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err["loc"])
    return f"Invalid request field {location}: {err['msg']}"


def _require_arrays(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise InvalidEngineInput("Request body must be a JSON object.")
    if not isinstance(payload.get("answers"), list) or not isinstance(
        payload.get("products"), list
    ):
        raise InvalidEngineInput(MISSING_ARRAYS_MESSAGE)


def parse_recommend_request(payload: Any) -> RecommendRequest:
    """Validate a raw engine payload; raises ``InvalidEngineInput`` on caller errors."""
    _require_arrays(payload)
    try:
        request = RecommendRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidEngineInput(_first_error(exc)) from exc

    if request.questions:
        check_answers(request.answers, request.questions)
    return request


def parse_rule_request(payload: Any) -> RuleRecommendRequest:
    _require_arrays(payload)
    try:
        request = RuleRecommendRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidEngineInput(_first_error(exc)) from exc

    if request.questions:
        check_answers(request.answers, request.questions)
    return request


def _locale_payload(payload: Any, locale_config: QuizLocaleConfig) -> dict[str, Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get("answers"), list):
        raise InvalidEngineInput("Missing answers.")
    return {
        **payload,
        "products": locale_config.products,
        "questions": locale_config.questions,
    }


def parse_locale_request(payload: Any, locale_config: QuizLocaleConfig) -> RecommendRequest:
    """Build an engine request from posted answers and the locale's catalog."""
    data = _locale_payload(payload, locale_config)
    data["config"] = locale_config.gemini
    return parse_recommend_request(data)


def parse_locale_rule_request(
    payload: Any, locale_config: QuizLocaleConfig,
) -> RuleRecommendRequest:
    return parse_rule_request(_locale_payload(payload, locale_config))


def recommend(
    request: RecommendRequest,
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
    engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RecommendationOutcome:
    return get_recommendations(
        request.config,
        request.questions,
        request.answers,
        request.products,
        llm_config=llm_config,
        engine_config=engine_config,
    )


def recommend_by_rules(
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    limit: int | None = None,
    engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> list[ScoredProduct]:
    """Rank products by their own match rules against the selected options."""
    if limit is None:
        limit = engine_config.rule_limit
    return rank_scored(products, selected_option_ids(answers), limit=limit)
