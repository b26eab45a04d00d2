"""Role-dependent visibility rules for questions and quizzes.

Everything here is pure: a predicate is built from the requester and the
optional listing filters, and can either be checked against a loaded object
(``matches``) or translated into a store query by
``backend.services.queries``.

Question rules, first match wins:

1. admin: ``verified`` is not constrained, an uploader filter applies as-is.
2. logged-in user, no uploader filter: verified questions plus the user's own.
3. logged-in user filtering on themselves: all of their own questions.
4. logged-in user filtering on someone else: that user's verified questions.
5. anonymous: verified questions only, restricted to the uploader if given.

Subject and difficulty filters are conjunctive with every branch.
Quizzes are simpler: non-admins only ever see public quizzes.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Requester:
    user_id: Optional[int] = None
    is_admin: bool = False

    @classmethod
    def anonymous(cls) -> 'Requester':
        return cls()

    @classmethod
    def user(cls, user_id: int) -> 'Requester':
        return cls(user_id=user_id)

    @classmethod
    def admin(cls, user_id: int) -> 'Requester':
        return cls(user_id=user_id, is_admin=True)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = Requester.anonymous()


@dataclass(frozen=True)
class QuestionFilters:
    uploader: Optional[int] = None
    subject: Optional[int] = None
    difficulty: Optional[str] = None


@dataclass(frozen=True)
class QuestionPredicate:
    """Conjunction of constraints a visible question must satisfy.

    ``verified_only`` requires ``verified``; ``verified_or_owner`` requires
    ``verified`` OR ``uploader == verified_or_owner``. The remaining fields are
    equality constraints, skipped when ``None``.
    """

    verified_only: bool = False
    verified_or_owner: Optional[int] = None
    uploader: Optional[int] = None
    subject: Optional[int] = None
    difficulty: Optional[str] = None

    def matches(self, question: Any) -> bool:
        if self.verified_only and not question.verified:
            return False
        if self.verified_or_owner is not None:
            if not (question.verified or question.uploader_id == self.verified_or_owner):
                return False
        if self.uploader is not None and question.uploader_id != self.uploader:
            return False
        if self.subject is not None and question.subject_id != self.subject:
            return False
        if self.difficulty is not None and question.difficulty != self.difficulty:
            return False
        return True


@dataclass(frozen=True)
class QuizPredicate:
    public_only: bool = True

    def matches(self, quiz: Any) -> bool:
        return quiz.is_public or not self.public_only


def question_predicate(requester: Requester, filters: QuestionFilters | None = None) -> QuestionPredicate:
    filters = filters or QuestionFilters()
    common = {'subject': filters.subject, 'difficulty': filters.difficulty}

    if requester.is_admin:
        return QuestionPredicate(uploader=filters.uploader, **common)

    if requester.is_authenticated:
        if filters.uploader is None:
            return QuestionPredicate(verified_or_owner=requester.user_id, **common)
        if filters.uploader == requester.user_id:
            return QuestionPredicate(uploader=requester.user_id, **common)
        return QuestionPredicate(verified_only=True, uploader=filters.uploader, **common)

    return QuestionPredicate(verified_only=True, uploader=filters.uploader, **common)


def quiz_predicate(requester: Requester) -> QuizPredicate:
    return QuizPredicate(public_only=not requester.is_admin)


def can_view_question(requester: Requester, question: Any) -> bool:
    """Single-question fetch: hidden and missing are indistinguishable to callers."""
    return question is not None and question_predicate(requester).matches(question)


def can_view_quiz(requester: Requester, quiz: Any) -> bool:
    return quiz is not None and quiz_predicate(requester).matches(quiz)
