from __future__ import annotations

from typing import Sequence

from .models import QuizAnswer, QuizQuestion


class InvalidEngineInput(ValueError):
    """Raised for malformed caller input. Never used for fallback conditions."""


def validate_answer(answer: QuizAnswer, question: QuizQuestion) -> bool:
    """Check *answer* against the option set and type of *question*."""
    if not answer.selected_options:
        return False
    if question.type == "single-select" and len(answer.selected_options) != 1:
        return False
    valid_ids = {option.id for option in question.options}
    return all(option_id in valid_ids for option_id in answer.selected_options)


def check_answers(
    answers: Sequence[QuizAnswer],
    questions: Sequence[QuizQuestion],
) -> None:
    """Raise ``InvalidEngineInput`` for the first answer that breaks the question set."""
    by_id = {q.id: q for q in questions}
    seen: set[str] = set()
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None:
            raise InvalidEngineInput(f"Unknown question id: {answer.question_id}")
        if answer.question_id in seen:
            raise InvalidEngineInput(f"Duplicate answer for question {answer.question_id}")
        seen.add(answer.question_id)
        if not validate_answer(answer, question):
            raise InvalidEngineInput(
                f"Invalid selection for question {answer.question_id}: "
                f"{', '.join(answer.selected_options)}"
            )
