"""Scoring of quiz attempts. Always recomputed from the current answer keys."""

from dataclasses import dataclass, field
from typing import Mapping, Sequence


@dataclass(frozen=True)
class ScoredAnswer:
    question_id: int
    answer_key: int
    correct: bool


@dataclass(frozen=True)
class AttemptScore:
    num_correct: int
    num_incorrect: int
    num_unanswered: int
    answers: list[ScoredAnswer] = field(default_factory=list)


def score_attempt(
    answers: Sequence[tuple[int, int]],
    correct_keys: Mapping[int, int],
    quiz_question_count: int,
) -> AttemptScore:
    """Score ``(question_id, answer_key)`` pairs against ``correct_keys``.

    Every answered question is expected to belong to the quiz, so
    ``num_unanswered`` is the quiz size minus the number of answers.
    """
    scored = [
        ScoredAnswer(question_id, answer_key, answer_key == correct_keys.get(question_id))
        for question_id, answer_key in answers
    ]
    num_correct = sum(1 for answer in scored if answer.correct)
    return AttemptScore(
        num_correct=num_correct,
        num_incorrect=len(scored) - num_correct,
        num_unanswered=quiz_question_count - len(scored),
        answers=scored,
    )
