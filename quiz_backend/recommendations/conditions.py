from __future__ import annotations

from typing import Iterable

from .models import MatchRule, Product, QuizAnswer

EMPTY_RULE = MatchRule()


def selected_option_ids(answers: Iterable[QuizAnswer]) -> frozenset[str]:
    """Flatten every selected option across *answers* into one set of tags."""
    return frozenset(
        option_id for answer in answers for option_id in answer.selected_options
    )


def product_rule(product: Product) -> MatchRule:
    """Return the rule attached to *product*; unruled products match everything."""
    return product.conditions or EMPTY_RULE


def evaluate(rule: MatchRule, selected: Iterable[str]) -> bool:
    """Return True when *selected* satisfies every clause present in *rule*.

    A missing clause imposes no constraint. A present but empty ``anyOf``
    can never be satisfied, while empty ``allOf`` and ``not`` always are.
    """
    chosen = selected if isinstance(selected, frozenset) else frozenset(selected)

    any_of_ok = rule.any_of is None or any(tag in chosen for tag in rule.any_of)
    all_of_ok = rule.all_of is None or all(tag in chosen for tag in rule.all_of)
    not_ok = rule.not_ is None or not any(tag in chosen for tag in rule.not_)

    return any_of_ok and all_of_ok and not_ok
