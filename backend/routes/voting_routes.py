from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_logged_in_requester, get_requester
from backend.core.schema import ApiModel
from backend.database import get_db
from backend.models.question import Question
from backend.policy.visibility import Requester, can_view_question
from backend.services import voting

router = APIRouter(tags=['voting'])


class VoteSummaryResponse(ApiModel):
    upvote_count: int
    downvote_count: int
    net_votes: int
    upvoted: bool
    downvoted: bool


def get_votable_question_or_404(db: Session, question_id: int, requester: Requester) -> Question:
    question = db.get(Question, question_id)
    if not can_view_question(requester, question):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Question not found')
    return question


def vote_summary(db: Session, question_id: int, user_id: int | None) -> VoteSummaryResponse:
    upvotes = voting.count_upvotes(db, question_id)
    downvotes = voting.count_downvotes(db, question_id)
    vote = voting.current_vote(db, question_id, user_id)
    return VoteSummaryResponse(
        upvote_count=upvotes,
        downvote_count=downvotes,
        net_votes=upvotes - downvotes,
        upvoted=vote is True,
        downvoted=vote is False,
    )


@router.post('/{question_id}/upvote', response_model=VoteSummaryResponse)
def upvote_question(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    question = get_votable_question_or_404(db, question_id, requester)
    voting.cast_vote(db, question.id, requester.user_id, upvote=True)
    return vote_summary(db, question.id, requester.user_id)


@router.post('/{question_id}/downvote', response_model=VoteSummaryResponse)
def downvote_question(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    question = get_votable_question_or_404(db, question_id, requester)
    voting.cast_vote(db, question.id, requester.user_id, upvote=False)
    return vote_summary(db, question.id, requester.user_id)


@router.delete('/{question_id}', status_code=status.HTTP_204_NO_CONTENT)
def unvote_question(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_logged_in_requester),
):
    # Removing a vote that does not exist is a successful no-op.
    voting.remove_vote(db, question_id, requester.user_id)


@router.get('/{question_id}', response_model=VoteSummaryResponse)
def get_votes(
    question_id: int,
    db: Session = Depends(get_db),
    requester: Requester = Depends(get_requester),
):
    question = get_votable_question_or_404(db, question_id, requester)
    return vote_summary(db, question.id, requester.user_id)
