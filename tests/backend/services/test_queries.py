import pytest

from backend.models.question import Question
from backend.models.quiz import Quiz
from backend.policy.visibility import ANONYMOUS, QuestionFilters, Requester, question_predicate, quiz_predicate
from backend.services.queries import question_clauses, quiz_clauses


@pytest.fixture
def population(factory):
    alice = factory.user('alice')
    bob = factory.user('bob')
    admin = factory.user('admin', is_admin=True)
    algebra = factory.subject('Algebra')
    geometry = factory.subject('Geometry')
    for uploader in (alice, bob):
        for subject in (algebra, geometry):
            for verified in (True, False):
                factory.question(uploader, subject, verified=verified, difficulty='HARD' if verified else 'EASY')
    return {'alice': alice, 'bob': bob, 'admin': admin, 'algebra': algebra}


def _requesters(population) -> list[Requester]:
    return [
        ANONYMOUS,
        Requester.user(population['alice'].id),
        Requester.admin(population['admin'].id),
    ]


def test_sql_clauses_select_exactly_what_the_predicate_matches(db, population) -> None:
    filter_sets = [
        QuestionFilters(),
        QuestionFilters(uploader=population['alice'].id),
        QuestionFilters(uploader=population['bob'].id, difficulty='EASY'),
        QuestionFilters(subject=population['algebra'].id),
    ]
    everything = db.query(Question).all()

    for requester in _requesters(population):
        for filters in filter_sets:
            predicate = question_predicate(requester, filters)
            selected = {question.id for question in db.query(Question).filter(*question_clauses(predicate)).all()}
            expected = {question.id for question in everything if predicate.matches(question)}
            assert selected == expected, (requester, filters)


def test_quiz_clauses_match_quiz_predicate(db, factory, population) -> None:
    factory.quiz(population['admin'], name='Open')
    factory.quiz(population['admin'], name='Closed', is_public=False)

    public = db.query(Quiz.name).filter(*quiz_clauses(quiz_predicate(ANONYMOUS))).all()
    every = db.query(Quiz.name).filter(*quiz_clauses(quiz_predicate(Requester.admin(1)))).all()

    assert [row.name for row in public] == ['Open']
    assert {row.name for row in every} == {'Open', 'Closed'}
