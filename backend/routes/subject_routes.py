from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_admin_requester
from backend.core.schema import ApiModel
from backend.database import get_db
from backend.models.question import Question
from backend.models.subject import Subject
from backend.policy import text_search
from backend.policy.ranking import SearchHit, rank_hits
from backend.policy.visibility import Requester

router = APIRouter(tags=['subjects'])


class CreateSubjectRequest(ApiModel):
    name: str
    description: str

    @field_validator('name', 'description')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name and description required')
        return normalized


class UpdateSubjectRequest(ApiModel):
    description: str | None = None


class SubjectResponse(ApiModel):
    id: int
    name: str
    description: str


def get_subject_or_404(db: Session, subject_id: int) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Subject not found')
    return subject


@router.get('', response_model=list[SubjectResponse])
def list_subjects(db: Session = Depends(get_db)):
    return [SubjectResponse.model_validate(subject) for subject in db.query(Subject).order_by(Subject.id).all()]


@router.get('/search', response_model=list[int])
def search_subjects(q: str | None = Query(default=None), db: Session = Depends(get_db)):
    if not q or not text_search.tokenize(q):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Query required')

    candidates = db.query(Subject).order_by(Subject.id).all()
    hits = [
        SearchHit(
            id=subject.id,
            primary=subject.name,
            secondary=subject.description,
            relevance=text_search.relevance_score(q, [subject.name, subject.description]),
        )
        for subject in candidates
        if text_search.matches(q, [subject.name, subject.description])
    ]
    return [hit.id for hit in rank_hits(q, hits, use_votes=False)]


@router.get('/{subject_id}', response_model=SubjectResponse)
def get_subject(subject_id: int, db: Session = Depends(get_db)):
    return SubjectResponse.model_validate(get_subject_or_404(db, subject_id))


@router.post('', response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
def create_subject(
    data: CreateSubjectRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    if db.query(Subject.id).filter(Subject.name == data.name).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Subject already exists')

    subject = Subject(name=data.name, description=data.description)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return SubjectResponse.model_validate(subject)


@router.put('/{subject_id}', response_model=SubjectResponse)
def update_subject(
    subject_id: int,
    data: UpdateSubjectRequest,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    subject = get_subject_or_404(db, subject_id)
    if data.description and data.description.strip():
        subject.description = data.description.strip()
        db.commit()
        db.refresh(subject)
    return SubjectResponse.model_validate(subject)


@router.delete('/{subject_id}')
def delete_subject(
    subject_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_admin_requester),
):
    subject = get_subject_or_404(db, subject_id)
    if db.query(Question.id).filter(Question.subject_id == subject_id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='Subject still has questions and cannot be deleted.',
        )

    db.delete(subject)
    db.commit()
    return {'success': True}
