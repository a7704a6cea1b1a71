"""
Deterministic tag-overlap recommender.

Used whenever the Gemini call is disabled, unreachable or returns output we
cannot trust. Products are scored by how many of their tags appear among the
selected options, and the top ``limit`` are returned even when nothing
overlaps: this path always hands the quiz-taker something to look at.
"""
from __future__ import annotations

from typing import Sequence

from .conditions import selected_option_ids
from .config import DEFAULT_ENGINE_CONFIG, RecommendationSchema
from .models import (
    Product,
    ProductIdsRecommendation,
    QuizAnswer,
    Recommendation,
    RecommendedItem,
    RecommendsRecommendation,
    ScoredProduct,
)

FALLBACK_REASONING = (
    "Recommendations based on your quiz answers and matching product attributes."
)
FALLBACK_GUIDANCE = (
    "These products align with your preferences and needs. "
    "Explore each option to find your perfect match!"
)
_NO_MATCH_REASON = "A popular pick from our catalog."


def _matched_tags(product: Product, chosen: frozenset[str]) -> list[str]:
    return [tag for tag in product.tags if tag in chosen]


def _product_reason(matched: list[str]) -> str:
    if not matched:
        return _NO_MATCH_REASON
    return f"Matches your preferences: {', '.join(matched)}."


def score_by_tags(
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    limit: int = DEFAULT_ENGINE_CONFIG.fallback_limit,
) -> list[ScoredProduct]:
    """Rank *products* by tag overlap with *answers*; zero scores are kept."""
    chosen = selected_option_ids(answers)
    scored = [
        ScoredProduct(product=p, score=len(_matched_tags(p, chosen)))
        for p in products
    ]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[: max(limit, 0)]


def fallback(
    answers: Sequence[QuizAnswer],
    products: Sequence[Product],
    limit: int = DEFAULT_ENGINE_CONFIG.fallback_limit,
    response_schema: RecommendationSchema = DEFAULT_ENGINE_CONFIG.response_schema,
) -> Recommendation:
    top = score_by_tags(answers, products, limit)
    chosen = selected_option_ids(answers)

    if response_schema is RecommendationSchema.recommends:
        items = []
        for item in top:
            matched = _matched_tags(item.product, chosen)
            items.append(RecommendedItem(
                id=item.product.id,
                description=_product_reason(matched),
                tags=matched,
            ))
        return RecommendsRecommendation(recommends=items, reasoning=FALLBACK_REASONING)

    reasons = None
    if response_schema is RecommendationSchema.product_ids_with_reasons:
        reasons = {
            item.product.id: _product_reason(_matched_tags(item.product, chosen))
            for item in top
        }

    return ProductIdsRecommendation(
        product_ids=[item.product.id for item in top],
        reasoning=FALLBACK_REASONING,
        guidance=FALLBACK_GUIDANCE,
        reasons=reasons,
    )
