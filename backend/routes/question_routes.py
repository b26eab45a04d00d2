import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_admin_requester, get_logged_in_requester, get_requester
from backend.core.schema import AnswerPayload, ApiModel
from backend.database import get_db
from backend.models.question import DEFAULT_DESCRIPTION_MIME, DIFFICULTY_LEVELS, Answer, Question
from backend.models.subject import Subject
from backend.models.upvote import Upvote
from backend.policy import text_search
from backend.policy.ranking import SearchHit, rank_hits
from backend.policy.visibility import QuestionFilters, Requester, can_view_question, question_predicate
from backend.services import voting
from backend.services.generation import VariantGenerationError, VariantGenerator, get_variant_generator
from backend.services.queries import net_votes_column, question_clauses
from backend.services.question_rules import (
    QuestionRuleError,
    check_answers,
    check_description_mime,
    check_difficulty,
)

router = APIRouter(tags=['questions'])

logger = logging.getLogger(__name__)


class CreateQuestionRequest(ApiModel):
    question: str
    description: str = ''
    description_mime: Optional[str] = Field(default=None, alias='descriptionMIME')
    subject: int
    answers: list[AnswerPayload]
    correct_answer_key: int
    correct_answer_explanation: str = ''
    difficulty: str

    @field_validator('question')
    @classmethod
    def validate_question(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Question, subject, answers, correctAnswerKey and difficulty required')
        return normalized


class UpdateQuestionRequest(ApiModel):
    description: Optional[str] = None
    description_mime: Optional[str] = Field(default=None, alias='descriptionMIME')
    subject: Optional[int] = None
    answers: Optional[list[AnswerPayload]] = None
    correct_answer_key: Optional[int] = None
    correct_answer_explanation: Optional[str] = None
    difficulty: Optional[str] = None


class VerifyQuestionRequest(ApiModel):
    verified: bool = False


class MutateQuestionRequest(ApiModel):
    original_question_id: int


class SubjectSummary(ApiModel):
    id: int
    name: str
    description: str


class QuestionResponse(ApiModel):
    id: int
    question: str
    description: str
    description_mime: str = Field(alias='descriptionMIME')
    subject: int
    answers: list[AnswerPayload]
    correct_answer_key: int
    correct_answer_explanation: str
    uploader: int
    difficulty: str
    verified: bool
    generated_from: Optional[int] = None


class QuestionDetailResponse(QuestionResponse):
    subject: SubjectSummary
    upvote_count: int
    downvote_count: int
    upvoted: bool
    downvoted: bool


class MutateQuestionResponse(ApiModel):
    new_question_id: int
    question: QuestionResponse


def question_fields(question: Question) -> dict:
    return {
        'id': question.id,
        'question': question.question,
        'description': question.description or '',
        'description_mime': question.description_mime or DEFAULT_DESCRIPTION_MIME,
        'subject': question.subject_id,
        'answers': [AnswerPayload(key=answer.key, text=answer.text) for answer in question.answers],
        'correct_answer_key': question.correct_answer_key,
        'correct_answer_explanation': question.correct_answer_explanation or '',
        'uploader': question.uploader_id,
        'difficulty': question.difficulty,
        'verified': bool(question.verified),
        'generated_from': question.generated_from_id,
    }


def to_question_response(question: Question) -> QuestionResponse:
    return QuestionResponse.model_validate(question_fields(question))


def build_answers(answers: list[AnswerPayload]) -> list[Answer]:
    return [
        Answer(position=position, key=answer.key, text=answer.text.strip())
        for position, answer in enumerate(answers)
    ]


def parse_filters(subject: Optional[int], difficulty: Optional[str], uploader: Optional[int]) -> QuestionFilters:
    if difficulty is not None:
        try:
            check_difficulty(difficulty)
        except QuestionRuleError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return QuestionFilters(uploader=uploader, subject=subject, difficulty=difficulty)


def get_visible_question_or_404(db: Session, question_id: int, requester: Requester) -> Question:
    question = db.get(Question, question_id)
    if not can_view_question(requester, question):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')
    return question


def question_text_exists(db: Session, text: str) -> bool:
    return db.query(Question.id).filter(Question.question == text).first() is not None


def commit_question(db: Session, question: Question) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Question already exists') from exc
    db.refresh(question)


@router.get('', response_model=list[int])
def list_questions(
    subject: Optional[int] = Query(default=None),
    difficulty: Optional[str] = Query(default=None),
    uploader: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_requester),
):
    predicate = question_predicate(requester, parse_filters(subject, difficulty, uploader))
    logger.debug('Listing questions with %s', predicate)

    net_votes = net_votes_column()
    rows = (
        db.query(Question.id, net_votes.label('net_votes'))
        .outerjoin(Upvote, Upvote.question_id == Question.id)
        .filter(*question_clauses(predicate))
        .group_by(Question.id)
        .order_by(net_votes.desc(), Question.id)
        .all()
    )
    return [row.id for row in rows]


@router.get('/search', response_model=list[int])
def search_questions(
    q: Optional[str] = Query(default=None),
    subject: Optional[int] = Query(default=None),
    difficulty: Optional[str] = Query(default=None),
    uploader: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_requester),
):
    if not q or not text_search.tokenize(q):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Query required')

    predicate = question_predicate(requester, parse_filters(subject, difficulty, uploader))
    logger.debug('Searching questions for %r with %s', q, predicate)

    # Text matching runs in Python over the visible rows; SQL LIKE does not case-fold non-ASCII text.
    candidates = db.query(Question).filter(*question_clauses(predicate)).order_by(Question.id).all()
    matched = [
        question for question in candidates
        if text_search.matches(q, [question.question, question.description])
    ]
    votes = voting.net_votes_by_question(db, [question.id for question in matched])
    hits = [
        SearchHit(
            id=question.id,
            primary=question.question,
            secondary=question.description or '',
            net_votes=votes[question.id],
            relevance=text_search.relevance_score(q, [question.question, question.description]),
        )
        for question in matched
    ]
    return [hit.id for hit in rank_hits(q, hits)]


@router.get('/DIFFICULTY_LEVELS', response_model=list[str])
def difficulty_levels():
    return list(DIFFICULTY_LEVELS)


@router.post('/mutate', response_model=MutateQuestionResponse, status_code=status.HTTP_201_CREATED)
def mutate_question(
    data: MutateQuestionRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
    generator: VariantGenerator = Depends(get_variant_generator),
):
    original = get_visible_question_or_404(db, data.original_question_id, requester)

    try:
        draft = generator.generate_variant(original)
        check_difficulty(draft.difficulty)
        check_answers(draft.answers, draft.correct_answer_key)
    except (VariantGenerationError, QuestionRuleError) as exc:
        logger.exception('Error generating variant of question %s', original.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    question_text = draft.question.strip()
    if not question_text:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Generator returned an empty question.',
        )
    if question_text_exists(db, question_text):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Question already exists')

    question = Question(
        question=question_text,
        description=draft.description or '',
        description_mime=DEFAULT_DESCRIPTION_MIME,
        subject_id=original.subject_id,
        answers=build_answers(draft.answers),
        correct_answer_key=draft.correct_answer_key,
        correct_answer_explanation=draft.correct_answer_explanation or '',
        uploader_id=requester.user_id,
        difficulty=draft.difficulty,
        verified=requester.is_admin,
        generated_from_id=original.id,
    )
    db.add(question)
    commit_question(db, question)
    logger.info('Generated question %s from question %s', question.id, original.id)
    return MutateQuestionResponse(new_question_id=question.id, question=to_question_response(question))


@router.get('/{question_id}', response_model=QuestionDetailResponse)
def get_question(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_requester),
):
    question = get_visible_question_or_404(db, question_id, requester)
    vote = voting.current_vote(db, question.id, requester.user_id)

    fields = question_fields(question)
    fields.update(
        subject=SubjectSummary.model_validate(question.subject),
        upvote_count=voting.count_upvotes(db, question.id),
        downvote_count=voting.count_downvotes(db, question.id),
        upvoted=vote is True,
        downvoted=vote is False,
    )
    return QuestionDetailResponse.model_validate(fields)


@router.post('', response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(
    data: CreateQuestionRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    try:
        description_mime = check_description_mime(data.description_mime or DEFAULT_DESCRIPTION_MIME)
        check_difficulty(data.difficulty)
    except QuestionRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if question_text_exists(db, data.question):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Question already exists')
    if db.get(Subject, data.subject) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Subject does not exist')

    try:
        check_answers(data.answers, data.correct_answer_key)
    except QuestionRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    question = Question(
        question=data.question,
        description=data.description,
        description_mime=description_mime,
        subject_id=data.subject,
        answers=build_answers(data.answers),
        correct_answer_key=data.correct_answer_key,
        correct_answer_explanation=data.correct_answer_explanation,
        uploader_id=requester.user_id,
        difficulty=data.difficulty,
        verified=False,
    )
    db.add(question)
    commit_question(db, question)
    logger.info('User %s created question %s', requester.user_id, question.id)
    return to_question_response(question)


@router.put('/{question_id}', response_model=QuestionResponse)
def update_question(
    question_id: int,
    data: UpdateQuestionRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    question = db.query(Question).filter(
        Question.id == question_id,
        Question.uploader_id == requester.user_id,
    ).first()
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')

    # Validate the merged result first so a rejected update leaves the question untouched.
    try:
        description_mime = (
            check_description_mime(data.description_mime) if data.description_mime else question.description_mime
        )
        difficulty = check_difficulty(data.difficulty) if data.difficulty else question.difficulty
    except QuestionRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if data.subject is not None and db.get(Subject, data.subject) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Subject does not exist')

    answers = data.answers if data.answers is not None else [
        AnswerPayload(key=answer.key, text=answer.text) for answer in question.answers
    ]
    correct_answer_key = (
        data.correct_answer_key if data.correct_answer_key is not None else question.correct_answer_key
    )
    try:
        check_answers(answers, correct_answer_key)
    except QuestionRuleError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if data.description:
        question.description = data.description
    question.description_mime = description_mime
    if data.subject is not None:
        question.subject_id = data.subject
    if data.answers is not None:
        question.answers.clear()
        db.flush()
        question.answers = build_answers(answers)
    question.correct_answer_key = correct_answer_key
    if data.correct_answer_explanation:
        question.correct_answer_explanation = data.correct_answer_explanation
    question.difficulty = difficulty

    db.commit()
    db.refresh(question)
    return to_question_response(question)


@router.delete('/{question_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    question = db.query(Question).filter(
        Question.id == question_id,
        Question.uploader_id == requester.user_id,
    ).first()
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')

    db.query(Question).filter(Question.generated_from_id == question.id).update(
        {Question.generated_from_id: None},
        synchronize_session=False,
    )
    db.delete(question)
    db.commit()
    logger.info('User %s deleted question %s', requester.user_id, question_id)


@router.put('/{question_id}/verify', response_model=QuestionResponse)
def verify_question(
    question_id: int,
    data: VerifyQuestionRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    question = db.get(Question, question_id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')

    question.verified = data.verified
    db.commit()
    db.refresh(question)
    logger.info('Admin %s set verified=%s on question %s', requester.user_id, data.verified, question_id)
    return to_question_response(question)
