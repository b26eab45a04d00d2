from fastapi import APIRouter, Depends
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.question import Question
from backend.models.upvote import Upvote
from backend.models.user import User
from backend.services.queries import vote_value

router = APIRouter(tags=['leaderboard'])


@router.get('/verified', response_model=list[int])
def verified_questions_leaderboard(db: Session = Depends(get_db)):
    """User ids ranked by how many verified questions they uploaded."""
    verified_count = func.count(Question.id)
    rows = (
        db.query(User.id, verified_count.label('verified_questions'))
        .outerjoin(Question, and_(Question.uploader_id == User.id, Question.verified.is_(True)))
        .group_by(User.id)
        .order_by(verified_count.desc(), User.id)
        .all()
    )
    return [row.id for row in rows]


@router.get('/totalUpvotes', response_model=list[int])
def total_upvotes_leaderboard(db: Session = Depends(get_db)):
    """User ids ranked by the net votes collected on their verified questions."""
    total_votes = func.coalesce(func.sum(vote_value()), 0)
    rows = (
        db.query(User.id, total_votes.label('total_upvotes'))
        .outerjoin(Question, and_(Question.uploader_id == User.id, Question.verified.is_(True)))
        .outerjoin(Upvote, Upvote.question_id == Question.id)
        .group_by(User.id)
        .order_by(total_votes.desc(), User.id)
        .all()
    )
    return [row.id for row in rows]
