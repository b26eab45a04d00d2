"""Vote counting and casting.

At most one ``Upvote`` row exists per (question, user); the unique constraint
on the table is the only guard against concurrent duplicate inserts.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.models.upvote import Upvote
from backend.services.queries import net_votes_column

logger = logging.getLogger(__name__)


def count_upvotes(db: Session, question_id: int) -> int:
    return db.query(func.count(Upvote.id)).filter(
        Upvote.question_id == question_id,
        Upvote.upvote.is_(True),
    ).scalar()


def count_downvotes(db: Session, question_id: int) -> int:
    return db.query(func.count(Upvote.id)).filter(
        Upvote.question_id == question_id,
        Upvote.upvote.is_(False),
    ).scalar()


def net_votes(db: Session, question_id: int) -> int:
    return count_upvotes(db, question_id) - count_downvotes(db, question_id)


def net_votes_by_question(db: Session, question_ids: Iterable[int]) -> dict[int, int]:
    ids = list(question_ids)
    if not ids:
        return {}
    rows = db.query(Upvote.question_id, net_votes_column()).filter(
        Upvote.question_id.in_(ids),
    ).group_by(Upvote.question_id).all()
    totals = {question_id: 0 for question_id in ids}
    totals.update({question_id: int(total) for question_id, total in rows})
    return totals


def find_vote(db: Session, question_id: int, user_id: int) -> Optional[Upvote]:
    return db.query(Upvote).filter(
        Upvote.question_id == question_id,
        Upvote.user_id == user_id,
    ).first()


def current_vote(db: Session, question_id: int, user_id: Optional[int]) -> Optional[bool]:
    """True for an upvote, False for a downvote, None when the user has not voted."""
    if user_id is None:
        return None
    vote = find_vote(db, question_id, user_id)
    return None if vote is None else vote.upvote


def cast_vote(db: Session, question_id: int, user_id: int, upvote: bool) -> Upvote:
    """Record the user's vote, flipping an existing vote in place."""
    vote = find_vote(db, question_id, user_id)
    if vote is not None:
        vote.upvote = upvote
        db.commit()
        return vote

    vote = Upvote(question_id=question_id, user_id=user_id, upvote=upvote)
    db.add(vote)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same (question, user) pair first.
        db.rollback()
        logger.info('Coalescing concurrent vote on question %s by user %s', question_id, user_id)
        vote = find_vote(db, question_id, user_id)
        if vote is None:
            # The conflicting vote was removed again before we could read it.
            vote = Upvote(question_id=question_id, user_id=user_id, upvote=upvote)
            db.add(vote)
        else:
            vote.upvote = upvote
        db.commit()
    db.refresh(vote)
    return vote


def remove_vote(db: Session, question_id: int, user_id: int) -> bool:
    """Delete the user's vote. Returns False, without error, when there was none."""
    vote = find_vote(db, question_id, user_id)
    if vote is None:
        return False
    db.delete(vote)
    db.commit()
    return True
