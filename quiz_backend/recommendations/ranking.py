from __future__ import annotations

from typing import Callable, Iterable, Sequence

from .conditions import evaluate, product_rule
from .config import DEFAULT_ENGINE_CONFIG
from .models import MatchRule, Product, ScoredProduct
from .scoring import score


def rank_scored(
    products: Sequence[Product],
    selected: Iterable[str],
    limit: int = DEFAULT_ENGINE_CONFIG.rule_limit,
    rule_for: Callable[[Product], MatchRule] = product_rule,
) -> list[ScoredProduct]:
    """Filter *products* by their rule, score survivors and keep the best *limit*.

    Sorting is stable, so equal scores keep catalog order. An empty list is
    a normal "no matches" result.
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    chosen = frozenset(selected)
    scored: list[ScoredProduct] = []
    for product in products:
        rule = rule_for(product)
        if evaluate(rule, chosen):
            scored.append(ScoredProduct(product=product, score=score(rule, chosen)))

    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[:limit]


def rank(
    products: Sequence[Product],
    selected: Iterable[str],
    limit: int = DEFAULT_ENGINE_CONFIG.rule_limit,
    rule_for: Callable[[Product], MatchRule] = product_rule,
) -> list[Product]:
    return [item.product for item in rank_scored(products, selected, limit, rule_for)]
