"""Field rules every stored question must satisfy."""

import mimetypes
from typing import Iterable, Optional

from backend.models.question import DIFFICULTY_LEVELS

EXTRA_MIME_TYPES = {
    'text/plain',
    'text/markdown',
    'text/html',
    'application/x-latex',
    'application/x-tex',
}


class QuestionRuleError(ValueError):
    """A question violates one of its field invariants."""


def check_difficulty(difficulty: Optional[str]) -> str:
    if difficulty not in DIFFICULTY_LEVELS:
        raise QuestionRuleError(f"Difficulty must be one of {','.join(DIFFICULTY_LEVELS)}")
    return difficulty


def is_known_mime_type(mime: str) -> bool:
    normalized = mime.strip().lower()
    return normalized in EXTRA_MIME_TYPES or mimetypes.guess_extension(normalized) is not None


def check_description_mime(mime: Optional[str]) -> str:
    if not mime or not is_known_mime_type(mime):
        raise QuestionRuleError('Invalid descriptionMIME, must be a valid MIME type')
    return mime.strip().lower()


def check_answers(answers: Iterable, correct_answer_key: Optional[int]) -> None:
    """Answer keys must be unique and include ``correct_answer_key``."""
    answers = list(answers)
    keys = [answer.key for answer in answers]
    if not keys:
        raise QuestionRuleError('Answers must not be empty')
    if any(not str(answer.text).strip() for answer in answers):
        raise QuestionRuleError("Answers must contain 'text' and 'key' properties")
    key_set = set(keys)
    if len(key_set) != len(keys):
        raise QuestionRuleError('Answers keys must be unique')
    if correct_answer_key not in key_set:
        raise QuestionRuleError('Correct answer key must be in answers array')
