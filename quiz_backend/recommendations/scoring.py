from __future__ import annotations

from typing import Iterable

from .models import MatchRule

ANY_OF_WEIGHT = 2
ALL_OF_WEIGHT = 3
NOT_PENALTY = 5


def _matches(tags: list[str] | None, chosen: frozenset[str]) -> int:
    if not tags:
        return 0
    return sum(1 for tag in tags if tag in chosen)


def score(rule: MatchRule, selected: Iterable[str]) -> int:
    """Compute the relevance score of *rule* against the selected tags.

    Intended for products that already pass ``evaluate``, but safe to call
    on any rule: every ``not`` tag present costs ``NOT_PENALTY`` points, so
    a disqualified product can end up with a negative score.
    """
    chosen = selected if isinstance(selected, frozenset) else frozenset(selected)

    return (
        ANY_OF_WEIGHT * _matches(rule.any_of, chosen)
        + ALL_OF_WEIGHT * _matches(rule.all_of, chosen)
        - NOT_PENALTY * _matches(rule.not_, chosen)
    )
