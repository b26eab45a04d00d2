import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('SESSION_SECRET_KEY', 'test-session-secret-key-with-enough-bytes')

from backend.database import Base, init_database  # noqa: E402
from backend.models.attempt import Attempt, AttemptAnswer  # noqa: E402
from backend.models.question import Answer, Question  # noqa: E402
from backend.models.quiz import Quiz, QuizQuestion  # noqa: E402
from backend.models.subject import Subject  # noqa: E402
from backend.models.upvote import Upvote  # noqa: E402
from backend.models.user import User  # noqa: E402
from backend.policy.visibility import Requester  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_database(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


class Factory:
    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def user(self, name: str | None = None, is_admin: bool = False) -> User:
        name = name or f'user{self._next()}'
        user = User(name=name, email=f'{name}@example.edu', hashed_password='not-a-hash', is_admin=is_admin)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def subject(self, name: str | None = None, description: str = 'A subject') -> Subject:
        subject = Subject(name=name or f'Subject {self._next()}', description=description)
        self.db.add(subject)
        self.db.commit()
        self.db.refresh(subject)
        return subject

    def question(
        self,
        uploader: User,
        subject: Subject,
        text: str | None = None,
        description: str = '',
        verified: bool = False,
        difficulty: str = 'EASY',
        answers=((1, 'first'), (2, 'second')),
        correct_answer_key: int = 1,
    ) -> Question:
        question = Question(
            question=text or f'Question number {self._next()}?',
            description=description,
            subject_id=subject.id,
            answers=[Answer(position=i, key=key, text=answer) for i, (key, answer) in enumerate(answers)],
            correct_answer_key=correct_answer_key,
            uploader_id=uploader.id,
            difficulty=difficulty,
            verified=verified,
        )
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        return question

    def vote(self, question: Question, user: User, upvote: bool = True) -> Upvote:
        vote = Upvote(question_id=question.id, user_id=user.id, upvote=upvote)
        self.db.add(vote)
        self.db.commit()
        return vote

    def quiz(self, creator: User, questions=(), name: str | None = None, is_public: bool = True) -> Quiz:
        quiz = Quiz(
            name=name or f'Quiz {self._next()}',
            creator_id=creator.id,
            is_public=is_public,
            memberships=[QuizQuestion(question_id=q.id, position=i) for i, q in enumerate(questions)],
        )
        self.db.add(quiz)
        self.db.commit()
        self.db.refresh(quiz)
        return quiz

    def attempt(self, user: User, quiz: Quiz, answers=()) -> Attempt:
        attempt = Attempt(
            user_id=user.id,
            quiz_id=quiz.id,
            answers=[AttemptAnswer(question_id=q.id, answer_key=key) for q, key in answers],
        )
        self.db.add(attempt)
        self.db.commit()
        self.db.refresh(attempt)
        return attempt


@pytest.fixture
def factory(db):
    return Factory(db)


def as_requester(user: User) -> Requester:
    return Requester(user_id=user.id, is_admin=bool(user.is_admin))


@pytest.fixture
def requester_for():
    return as_requester
