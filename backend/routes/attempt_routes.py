import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_logged_in_requester
from backend.core.schema import ApiModel
from backend.database import get_db
from backend.models.attempt import Attempt, AttemptAnswer
from backend.models.question import Question
from backend.models.quiz import Quiz
from backend.policy.scoring import AttemptScore, score_attempt
from backend.policy.visibility import Requester

router = APIRouter(tags=['attempts'])

logger = logging.getLogger(__name__)


class AttemptAnswerPayload(ApiModel):
    question: int
    answer_key: int


class CreateAttemptRequest(ApiModel):
    quiz: int
    answers: list[AttemptAnswerPayload]


class SubmitAnswerRequest(ApiModel):
    answer_key: int


class ScoredAnswerResponse(ApiModel):
    question: int
    answer_key: int
    correct: bool


class AttemptResponse(ApiModel):
    id: int
    user: int
    quiz: int
    answers: list[ScoredAnswerResponse]
    num_correct: int
    num_incorrect: int
    num_unanswered: int
    created_at: datetime
    updated_at: datetime


def score(db: Session, attempt: Attempt) -> AttemptScore:
    question_ids = [answer.question_id for answer in attempt.answers]
    correct_keys = dict(
        db.query(Question.id, Question.correct_answer_key).filter(Question.id.in_(question_ids)).all()
    ) if question_ids else {}
    return score_attempt(
        [(answer.question_id, answer.answer_key) for answer in attempt.answers],
        correct_keys,
        len(attempt.quiz.question_ids),
    )


def to_attempt_response(db: Session, attempt: Attempt) -> AttemptResponse:
    result = score(db, attempt)
    return AttemptResponse(
        id=attempt.id,
        user=attempt.user_id,
        quiz=attempt.quiz_id,
        answers=[
            ScoredAnswerResponse(question=answer.question_id, answer_key=answer.answer_key, correct=answer.correct)
            for answer in result.answers
        ],
        num_correct=result.num_correct,
        num_incorrect=result.num_incorrect,
        num_unanswered=result.num_unanswered,
        created_at=attempt.created_at,
        updated_at=attempt.updated_at,
    )


def get_own_attempt_or_404(db: Session, attempt_id: int, requester: Requester) -> Attempt:
    attempt = db.query(Attempt).filter(
        Attempt.id == attempt_id,
        Attempt.user_id == requester.user_id,
    ).first()
    if attempt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Attempt not found')
    return attempt


def check_answer_key(question: Optional[Question], question_id: int, answer_key: int) -> None:
    if question is None or answer_key not in question.answer_keys:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Answer key {answer_key} is not a valid answer key for question {question_id}',
        )


@router.get('', response_model=list[int])
def list_attempts(
    quiz_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    query = db.query(Attempt.id).filter(Attempt.user_id == requester.user_id)
    if quiz_id is not None:
        query = query.filter(Attempt.quiz_id == quiz_id)
    rows = query.order_by(Attempt.created_at.desc(), Attempt.updated_at.desc(), Attempt.id.desc()).all()
    return [row.id for row in rows]


@router.get('/{attempt_id}', response_model=AttemptResponse)
def get_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    return to_attempt_response(db, get_own_attempt_or_404(db, attempt_id, requester))


@router.post('', response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
def create_attempt(
    data: CreateAttemptRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    quiz = db.query(Quiz).filter(Quiz.id == data.quiz, Quiz.is_public.is_(True)).first()
    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Quiz does not exist')

    question_ids = [answer.question for answer in data.answers]
    if len(set(question_ids)) != len(question_ids):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='All questions must be unique')
    member_ids = set(quiz.question_ids)
    if any(question_id not in member_ids for question_id in question_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='All questions must be a part of the quiz',
        )

    questions = {
        question.id: question
        for question in db.query(Question).filter(Question.id.in_(question_ids)).all()
    } if question_ids else {}
    for answer in data.answers:
        check_answer_key(questions.get(answer.question), answer.question, answer.answer_key)

    attempt = Attempt(
        user_id=requester.user_id,
        quiz_id=quiz.id,
        answers=[
            AttemptAnswer(question_id=answer.question, answer_key=answer.answer_key)
            for answer in data.answers
        ],
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info('User %s started attempt %s on quiz %s', requester.user_id, attempt.id, quiz.id)
    return to_attempt_response(db, attempt)


@router.post('/{attempt_id}/answers/{question_id}')
def submit_answer(
    attempt_id: int,
    question_id: int,
    data: SubmitAnswerRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    attempt = get_own_attempt_or_404(db, attempt_id, requester)
    if question_id not in attempt.quiz.question_ids:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not part of quiz')
    check_answer_key(db.get(Question, question_id), question_id, data.answer_key)

    existing = next((answer for answer in attempt.answers if answer.question_id == question_id), None)
    attempt.touch()
    if existing is None:
        attempt.answers.append(AttemptAnswer(question_id=question_id, answer_key=data.answer_key))
        db.commit()
        return Response(status_code=status.HTTP_201_CREATED)

    existing.answer_key = data.answer_key
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete('/{attempt_id}/answers/{question_id}')
def remove_answer(
    attempt_id: int,
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    attempt = get_own_attempt_or_404(db, attempt_id, requester)
    existing = next((answer for answer in attempt.answers if answer.question_id == question_id), None)
    if existing is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    attempt.answers.remove(existing)
    attempt.touch()
    db.commit()
    return Response(status_code=status.HTTP_200_OK)


@router.delete('/{attempt_id}')
def delete_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    attempt = get_own_attempt_or_404(db, attempt_id, requester)
    db.delete(attempt)
    db.commit()
    return {'success': True}
