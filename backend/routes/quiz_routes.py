import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_admin_requester, get_requester
from backend.core.schema import ApiModel
from backend.database import get_db
from backend.models.attempt import Attempt, AttemptAnswer
from backend.models.question import Question
from backend.models.quiz import Quiz, QuizQuestion
from backend.policy import text_search
from backend.policy.ranking import SearchHit, rank_by_relevance
from backend.policy.visibility import Requester, can_view_quiz, quiz_predicate
from backend.services.queries import quiz_clauses

router = APIRouter(tags=['quizzes'])

logger = logging.getLogger(__name__)


class CreateQuizRequest(ApiModel):
    name: str
    questions: list[int]
    is_public: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name and questions required')
        return normalized


class UpdateQuizRequest(ApiModel):
    questions: Optional[list[int]] = None
    is_public: Optional[bool] = None


class QuizResponse(ApiModel):
    id: int
    name: str
    questions: list[int]
    creator: int
    is_public: bool


def to_quiz_response(quiz: Quiz) -> QuizResponse:
    return QuizResponse(
        id=quiz.id,
        name=quiz.name,
        questions=quiz.question_ids,
        creator=quiz.creator_id,
        is_public=bool(quiz.is_public),
    )


def get_quiz_or_404(db: Session, quiz_id: int) -> Quiz:
    quiz = db.get(Quiz, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Quiz does not exist')
    return quiz


def validate_quiz_questions(db: Session, question_ids: list[int]) -> None:
    """Every id must be unique, exist, and refer to a verified question."""
    if len(set(question_ids)) != len(question_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Questions must be unique')

    verified_by_id = dict(
        db.query(Question.id, Question.verified).filter(Question.id.in_(question_ids)).all()
    ) if question_ids else {}
    for question_id in question_ids:
        if question_id not in verified_by_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Question {question_id} does not exist',
            )
        if not verified_by_id[question_id]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Question {question_id} is not verified',
            )


def build_memberships(question_ids: list[int]) -> list[QuizQuestion]:
    return [QuizQuestion(question_id=question_id, position=position) for position, question_id in enumerate(question_ids)]


def prune_attempt_answers(db: Session, quiz_id: int, question_ids: set[int]) -> None:
    """Drop answers to questions that are no longer part of the quiz."""
    if not question_ids:
        return
    attempt_ids = select(Attempt.id).where(Attempt.quiz_id == quiz_id)
    removed = db.query(AttemptAnswer).filter(
        AttemptAnswer.attempt_id.in_(attempt_ids),
        AttemptAnswer.question_id.in_(question_ids),
    ).delete(synchronize_session=False)
    if removed:
        logger.info('Removed %s attempt answers for questions dropped from quiz %s', removed, quiz_id)


@router.get('', response_model=list[int])
def list_quizzes(db: Session = Depends(get_db), requester: Requester = Depends(get_requester)):
    quizzes = db.query(Quiz.id, Quiz.name).filter(*quiz_clauses(quiz_predicate(requester))).all()
    return [quiz.id for quiz in sorted(quizzes, key=lambda quiz: quiz.name)]


@router.get('/search', response_model=list[int])
def search_quizzes(
    q: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_requester),
):
    if not q or not text_search.tokenize(q):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Query required')

    candidates = (
        db.query(Quiz.id, Quiz.name)
        .filter(*quiz_clauses(quiz_predicate(requester)))
        .order_by(Quiz.id)
        .all()
    )
    hits = [
        SearchHit(id=quiz.id, primary=quiz.name, relevance=text_search.relevance_score(q, [quiz.name]))
        for quiz in candidates
        if text_search.matches(q, [quiz.name])
    ]
    return [hit.id for hit in rank_by_relevance(hits)]


@router.get('/{quiz_id}', response_model=QuizResponse)
def get_quiz(quiz_id: int, db: Session = Depends(get_db), requester: Requester = Depends(get_requester)):
    quiz = db.get(Quiz, quiz_id)
    if not can_view_quiz(requester, quiz):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Quiz not found')
    return to_quiz_response(quiz)


@router.post('', response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
def create_quiz(
    data: CreateQuizRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    if db.query(Quiz.id).filter(Quiz.name == data.name).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Name already exists')
    validate_quiz_questions(db, data.questions)

    quiz = Quiz(
        name=data.name,
        creator_id=requester.user_id,
        is_public=data.is_public,
        memberships=build_memberships(data.questions),
    )
    db.add(quiz)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Name already exists') from exc
    db.refresh(quiz)
    logger.info('Admin %s created quiz %s', requester.user_id, quiz.id)
    return to_quiz_response(quiz)


@router.put('/{quiz_id}', response_model=QuizResponse)
def update_quiz(
    quiz_id: int,
    data: UpdateQuizRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    quiz = get_quiz_or_404(db, quiz_id)
    if data.questions is not None:
        validate_quiz_questions(db, data.questions)
        removed = set(quiz.question_ids) - set(data.questions)
        quiz.memberships.clear()
        db.flush()
        quiz.memberships = build_memberships(data.questions)
        prune_attempt_answers(db, quiz.id, removed)
    if data.is_public is not None:
        quiz.is_public = data.is_public

    db.commit()
    db.refresh(quiz)
    return to_quiz_response(quiz)


@router.delete('/{quiz_id}')
def delete_quiz(
    quiz_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    quiz = get_quiz_or_404(db, quiz_id)
    db.delete(quiz)
    db.commit()
    logger.info('Admin %s deleted quiz %s', requester.user_id, quiz_id)
    return {'success': True}


@router.post('/{quiz_id}/questions/{question_id}')
def add_quiz_question(
    quiz_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    quiz = get_quiz_or_404(db, quiz_id)
    question = db.get(Question, question_id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question does not exist')
    if not question.verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Question is not verified')
    if question.id in quiz.question_ids:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    next_position = max((membership.position for membership in quiz.memberships), default=-1) + 1
    quiz.memberships.append(QuizQuestion(question_id=question.id, position=next_position))
    db.commit()
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete('/{quiz_id}/questions/{question_id}')
def remove_quiz_question(
    quiz_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    quiz = get_quiz_or_404(db, quiz_id)
    if db.get(Question, question_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question does not exist')

    membership = next((m for m in quiz.memberships if m.question_id == question_id), None)
    if membership is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    quiz.memberships.remove(membership)
    prune_attempt_answers(db, quiz.id, {question_id})
    db.commit()
    return Response(status_code=status.HTTP_200_OK)
