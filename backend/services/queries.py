"""Translate visibility predicates and vote tallies into SQLAlchemy expressions."""

from sqlalchemy import case, func, or_

from backend.models.question import Question
from backend.models.quiz import Quiz
from backend.models.upvote import Upvote
from backend.policy.visibility import QuestionPredicate, QuizPredicate


def question_clauses(predicate: QuestionPredicate) -> list:
    clauses = []
    if predicate.verified_only:
        clauses.append(Question.verified.is_(True))
    if predicate.verified_or_owner is not None:
        clauses.append(or_(Question.verified.is_(True), Question.uploader_id == predicate.verified_or_owner))
    if predicate.uploader is not None:
        clauses.append(Question.uploader_id == predicate.uploader)
    if predicate.subject is not None:
        clauses.append(Question.subject_id == predicate.subject)
    if predicate.difficulty is not None:
        clauses.append(Question.difficulty == predicate.difficulty)
    return clauses


def quiz_clauses(predicate: QuizPredicate) -> list:
    if predicate.public_only:
        return [Quiz.is_public.is_(True)]
    return []


def vote_value():
    return case(
        (Upvote.upvote.is_(True), 1),
        (Upvote.upvote.is_(False), -1),
        else_=0,
    )


def net_votes_column():
    return func.coalesce(func.sum(vote_value()), 0)
