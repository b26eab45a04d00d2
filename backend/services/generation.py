"""Variant generation collaborator.

A ``VariantGenerator`` turns an existing question into a draft for a new,
slightly altered question. The default implementation asks a Gemini model for
a JSON object; anything else satisfying the protocol can be injected through
``get_variant_generator`` (tests override it with a fake).
"""

import json
import logging
import re
from typing import Optional, Protocol

from google import genai
from google.genai import types
from pydantic import ValidationError

from backend.core import config
from backend.core.schema import AnswerPayload, ApiModel
from backend.models.question import Question

logger = logging.getLogger(__name__)

_JSON_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')

PROMPT_TEMPLATE = """\
Generate a new multiple-choice question (MCQ) by slightly altering the numerical values or wording of the original question below. Keep the same topic and difficulty level.
Respond with a single JSON object with these keys: "question" (string), "description" (string, optional), "answers" (array of objects, each with "key": integer and "text": string), "correctAnswerKey" (integer), "correctAnswerExplanation" (string, optional), "difficulty" (one of EASY, MEDIUM, HARD).

Original question:
Subject: {subject}
Difficulty: {difficulty}
Question: {question}
Description: {description}
Answers: {answers}
Correct answer key: {correct_key}
Correct answer explanation: {explanation}
"""


class VariantGenerationError(RuntimeError):
    """The generator could not produce a usable draft."""


class NewQuestionDraft(ApiModel):
    question: str
    description: str = ''
    answers: list[AnswerPayload]
    correct_answer_key: int
    correct_answer_explanation: str = ''
    difficulty: str


class VariantGenerator(Protocol):
    def generate_variant(self, question: Question) -> NewQuestionDraft:
        ...


def build_prompt(question: Question) -> str:
    answers = [{'key': answer.key, 'text': answer.text} for answer in question.answers]
    return PROMPT_TEMPLATE.format(
        subject=question.subject.name if question.subject else question.subject_id,
        difficulty=question.difficulty,
        question=question.question,
        description=question.description or '',
        answers=json.dumps(answers),
        correct_key=question.correct_answer_key,
        explanation=question.correct_answer_explanation or '',
    )


def parse_draft(text: Optional[str]) -> NewQuestionDraft:
    match = _JSON_OBJECT_PATTERN.search(text or '')
    if not match:
        raise VariantGenerationError('No JSON object found in generator response.')
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise VariantGenerationError(f'Generator response parsing failed: {exc}') from exc
    if isinstance(payload.get('difficulty'), str):
        payload['difficulty'] = payload['difficulty'].strip().upper()
    try:
        return NewQuestionDraft.model_validate(payload)
    except ValidationError as exc:
        raise VariantGenerationError(f'Generator response missing required fields: {exc}') from exc


class GeminiVariantGenerator:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        client=None,
    ):
        self.api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.model = model or config.GENERATOR_MODEL
        self.temperature = config.GENERATOR_TEMPERATURE if temperature is None else temperature
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise VariantGenerationError('GEMINI_API_KEY is not configured.')
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate_variant(self, question: Question) -> NewQuestionDraft:
        prompt = build_prompt(question)
        logger.debug('Requesting variant of question %s from %s', question.id, self.model)
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type='application/json',
                ),
            )
        except VariantGenerationError:
            raise
        except Exception as exc:
            raise VariantGenerationError(f'Variant generation failed: {exc}') from exc
        return parse_draft(getattr(response, 'text', None))


def get_variant_generator() -> VariantGenerator:
    return GeminiVariantGenerator()
