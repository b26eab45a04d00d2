import json
from types import SimpleNamespace

import pytest

from backend.services.generation import (
    GeminiVariantGenerator,
    VariantGenerationError,
    build_prompt,
    parse_draft,
)


def _original_question():
    return SimpleNamespace(
        id=7,
        subject=SimpleNamespace(name='Arithmetic'),
        subject_id=3,
        difficulty='EASY',
        question='What is 2+2?',
        description='Basic addition',
        answers=[SimpleNamespace(key=1, text='4'), SimpleNamespace(key=2, text='5')],
        correct_answer_key=1,
        correct_answer_explanation='Two plus two is four.',
    )


DRAFT = {
    'question': 'What is 3+3?',
    'description': 'Basic addition',
    'answers': [{'key': 1, 'text': '6'}, {'key': 2, 'text': '7'}],
    'correctAnswerKey': 1,
    'correctAnswerExplanation': 'Three plus three is six.',
    'difficulty': 'easy',
}


class FakeModels:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, *, model, contents, config):
        self.calls.append({'model': model, 'contents': contents, 'config': config})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def test_build_prompt_includes_original_question_details() -> None:
    prompt = build_prompt(_original_question())

    assert 'What is 2+2?' in prompt
    assert 'Arithmetic' in prompt
    assert '"key": 1' in prompt
    assert 'Two plus two is four.' in prompt


def test_parse_draft_extracts_json_from_surrounding_text() -> None:
    draft = parse_draft('Here you go:\n```json\n' + json.dumps(DRAFT) + '\n```')

    assert draft.question == 'What is 3+3?'
    assert draft.correct_answer_key == 1
    assert draft.difficulty == 'EASY'
    assert [answer.key for answer in draft.answers] == [1, 2]


@pytest.mark.parametrize(
    'text',
    [None, 'no json here', '{not valid json}', json.dumps({'question': 'Only a question'})],
)
def test_parse_draft_rejects_unusable_responses(text) -> None:
    with pytest.raises(VariantGenerationError):
        parse_draft(text)


def test_generator_calls_model_and_parses_response() -> None:
    models = FakeModels(text=json.dumps(DRAFT))
    generator = GeminiVariantGenerator(api_key='key', model='test-model', client=SimpleNamespace(models=models))

    draft = generator.generate_variant(_original_question())

    assert draft.question == 'What is 3+3?'
    assert models.calls[0]['model'] == 'test-model'
    assert 'What is 2+2?' in models.calls[0]['contents']


def test_generator_wraps_client_errors() -> None:
    models = FakeModels(error=RuntimeError('quota exceeded'))
    generator = GeminiVariantGenerator(api_key='key', client=SimpleNamespace(models=models))

    with pytest.raises(VariantGenerationError, match='quota exceeded'):
        generator.generate_variant(_original_question())


def test_generator_requires_api_key() -> None:
    generator = GeminiVariantGenerator(api_key='')

    with pytest.raises(VariantGenerationError, match='GEMINI_API_KEY'):
        generator.generate_variant(_original_question())
