from __future__ import annotations

import json
import logging
from typing import Sequence

import httpx
from google.genai import Client, types

from ..recommendations.config import (
    DEFAULT_ENGINE_CONFIG,
    EngineConfig,
    RecommendationSchema,
)
from ..recommendations.fallback import fallback
from ..recommendations.models import (
    FallbackReason,
    GeminiConfig,
    Product,
    QuizAnswer,
    QuizQuestion,
    RecommendationOutcome,
    RecommendationSource,
)
from .config import DEFAULT_LLM_CONFIG, LLMConfig
from .parsing import Invalid, parse_recommendation

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert product recommendation assistant. "
    "Analyze customer preferences from their quiz responses and match them "
    "with the most suitable products from the available catalog. "
    "Consider product attributes, tags, descriptions, and how they align "
    "with the customer's stated needs and preferences."
)

_RESPONSE_FORMATS: dict[RecommendationSchema, str] = {
    RecommendationSchema.product_ids: (
        '{\n'
        '  "productIds": ["product-id-1", "product-id-2", "product-id-3"],\n'
        '  "reasoning": "Why these products were selected based on the customer\'s preferences.",\n'
        '  "guidance": "Personalized advice for using or enjoying these products."\n'
        '}'
    ),
    RecommendationSchema.product_ids_with_reasons: (
        '{\n'
        '  "productIds": ["product-id-1", "product-id-2", "product-id-3"],\n'
        '  "reasoning": "Why these products were selected based on the customer\'s preferences.",\n'
        '  "guidance": "Personalized advice for using or enjoying these products.",\n'
        '  "reasons": {"product-id-1": "One sentence on why this product fits."}\n'
        '}'
    ),
    RecommendationSchema.recommends: (
        '{\n'
        '  "recommends": [\n'
        '    {"id": "product-id-1", "description": "Why this product fits.", "tags": ["matching-tag"]}\n'
        '  ],\n'
        '  "reasoning": "Why these products were selected based on the customer\'s preferences."\n'
        '}'
    ),
}


def _answer_details(
    questions: Sequence[QuizQuestion],
    answers: Sequence[QuizAnswer],
) -> list[dict]:
    by_id = {q.id: q for q in questions}
    details: list[dict] = []
    for answer in answers:
        question = by_id.get(answer.question_id)
        option_text = {o.id: o.text for o in question.options} if question else {}
        details.append({
            "questionId": answer.question_id,
            "questionText": question.text if question else answer.question_id,
            "selectedOptionIds": list(answer.selected_options),
            "selectedOptionTexts": [
                option_text.get(oid, oid) for oid in answer.selected_options
            ],
        })
    return details


def _catalog(products: Sequence[Product]) -> list[dict]:
    return [
        p.model_dump(
            by_alias=True,
            exclude_none=True,
            include={"id", "name", "description", "price", "tags", "attributes"},
        )
        for p in products
    ]


def _build_prompt(
    config: GeminiConfig,
    questions: Sequence[QuizQuestion],
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    response_schema: RecommendationSchema,
) -> str:
    selected_tags = [oid for a in answers for oid in a.selected_options]

    lines = [config.prompt or SYSTEM_PROMPT, ""]
    lines.append("# Customer Quiz Responses (with question and answer text):")
    lines.append(json.dumps(_answer_details(questions, answers), indent=2, ensure_ascii=False))
    lines.append("\n# Customer Preference Tags (option ids):")
    lines.append(", ".join(selected_tags))
    lines.append("\n# Available Products:")
    lines.append(json.dumps(_catalog(products), indent=2, ensure_ascii=False))
    lines.append("\n# Your Task:")
    lines.append(
        "Analyze the customer's quiz responses and recommend 3-5 products "
        "from the catalog that best match their preferences. "
        "Only use product ids from the catalog above."
    )
    lines.append("\n# Response Format:")
    lines.append(
        "Respond ONLY with a single valid JSON object "
        "(no markdown, no code blocks, no additional text) with exactly these keys:"
    )
    lines.append(_RESPONSE_FORMATS[response_schema])

    return "\n".join(lines)


def _fallback_outcome(
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    engine_config: EngineConfig,
    reason: FallbackReason,
) -> RecommendationOutcome:
    return RecommendationOutcome(
        recommendation=fallback(
            answers,
            products,
            limit=engine_config.fallback_limit,
            response_schema=engine_config.response_schema,
        ),
        source=RecommendationSource.fallback,
        fallback_reason=reason,
    )


def get_recommendations(
    config: GeminiConfig,
    questions: Sequence[QuizQuestion],
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    llm_config: LLMConfig = DEFAULT_LLM_CONFIG,
    engine_config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> RecommendationOutcome:
    """
    Ask Gemini for a recommendation over the given catalog.

    Always resolves: when Gemini is disabled, has no credential, fails,
    times out or answers with an unusable shape, the deterministic tag
    fallback is returned instead and the cause is kept on the outcome.
    """
    if not config.enabled:
        logger.info("Gemini disabled in config, using fallback recommendations")
        return _fallback_outcome(answers, products, engine_config, FallbackReason.disabled)

    if not llm_config.api_key:
        logger.info("GEMINI_API_KEY not set, using fallback recommendations")
        return _fallback_outcome(answers, products, engine_config, FallbackReason.missing_api_key)

    model = config.model or llm_config.default_model
    prompt = _build_prompt(config, questions, answers, products, engine_config.response_schema)

    try:
        client = Client(
            api_key=llm_config.api_key,
            http_options=types.HttpOptions(timeout=int(llm_config.timeout * 1000)),
        )
        response = client.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                temperature=llm_config.temperature,
                top_k=llm_config.top_k,
                top_p=llm_config.top_p,
                max_output_tokens=llm_config.max_output_tokens,
            ),
        )
        text = response.text
    except httpx.TimeoutException:
        logger.warning("Gemini call timed out after %.1fs, falling back", llm_config.timeout)
        return _fallback_outcome(answers, products, engine_config, FallbackReason.timeout)
    except Exception:
        logger.warning("Gemini call failed, falling back to tag-based recommendations", exc_info=True)
        return _fallback_outcome(answers, products, engine_config, FallbackReason.request_failed)

    result = parse_recommendation(
        text,
        engine_config.response_schema,
        [p.id for p in products],
    )
    if isinstance(result, Invalid):
        logger.warning(
            "Unusable Gemini response (%s: %s), falling back",
            result.reason.value,
            result.detail or "-",
        )
        return _fallback_outcome(answers, products, engine_config, result.reason)

    return RecommendationOutcome(
        recommendation=result.recommendation,
        source=RecommendationSource.gemini,
    )
