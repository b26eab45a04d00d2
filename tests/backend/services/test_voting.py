from sqlalchemy.exc import IntegrityError

import pytest

from backend.models.upvote import Upvote
from backend.services import voting


@pytest.fixture
def question(factory):
    uploader = factory.user('uploader')
    return factory.question(uploader, factory.subject(), verified=True)


def _vote_rows(db, question_id: int) -> int:
    return db.query(Upvote).filter(Upvote.question_id == question_id).count()


def test_counts_and_net_votes(db, factory, question) -> None:
    for _ in range(3):
        factory.vote(question, factory.user(), upvote=True)
    factory.vote(question, factory.user(), upvote=False)

    assert voting.count_upvotes(db, question.id) == 3
    assert voting.count_downvotes(db, question.id) == 1
    assert voting.net_votes(db, question.id) == 2
    assert voting.net_votes_by_question(db, [question.id]) == {question.id: 2}


def test_net_votes_by_question_reports_zero_for_unvoted_questions(db, factory, question) -> None:
    other = factory.question(factory.user(), factory.subject())

    assert voting.net_votes_by_question(db, [question.id, other.id]) == {question.id: 0, other.id: 0}
    assert voting.net_votes_by_question(db, []) == {}


def test_casting_opposite_vote_flips_existing_row(db, factory, question) -> None:
    voter = factory.user()

    voting.cast_vote(db, question.id, voter.id, upvote=True)
    assert voting.current_vote(db, question.id, voter.id) is True
    assert voting.net_votes(db, question.id) == 1

    voting.cast_vote(db, question.id, voter.id, upvote=False)

    assert _vote_rows(db, question.id) == 1
    assert voting.current_vote(db, question.id, voter.id) is False
    assert voting.count_upvotes(db, question.id) - voting.count_downvotes(db, question.id) == -1
    assert voting.net_votes(db, question.id) == -1


def test_repeating_the_same_vote_keeps_one_row(db, factory, question) -> None:
    voter = factory.user()

    voting.cast_vote(db, question.id, voter.id, upvote=True)
    voting.cast_vote(db, question.id, voter.id, upvote=True)

    assert _vote_rows(db, question.id) == 1


def test_remove_vote_deletes_row_and_is_noop_when_absent(db, factory, question) -> None:
    voter = factory.user()
    voting.cast_vote(db, question.id, voter.id, upvote=False)

    assert voting.remove_vote(db, question.id, voter.id) is True
    assert voting.current_vote(db, question.id, voter.id) is None
    assert voting.net_votes(db, question.id) == 0
    assert voting.remove_vote(db, question.id, voter.id) is False


def test_current_vote_is_none_for_anonymous(db, question) -> None:
    assert voting.current_vote(db, question.id, None) is None


def test_store_rejects_duplicate_vote_rows(db, factory, question) -> None:
    voter = factory.user()
    factory.vote(question, voter, upvote=True)

    db.add(Upvote(question_id=question.id, user_id=voter.id, upvote=False))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_concurrent_insert_is_coalesced_into_existing_vote(db, factory, question, monkeypatch) -> None:
    voter = factory.user()
    factory.vote(question, voter, upvote=True)

    original_find_vote = voting.find_vote
    calls = []

    def find_vote_missing_first_time(session, question_id, user_id):
        calls.append(question_id)
        if len(calls) == 1:
            return None
        return original_find_vote(session, question_id, user_id)

    monkeypatch.setattr(voting, 'find_vote', find_vote_missing_first_time)

    vote = voting.cast_vote(db, question.id, voter.id, upvote=False)

    assert vote.upvote is False
    assert _vote_rows(db, question.id) == 1


def test_conflicting_vote_removed_before_reread_is_inserted_fresh(db, factory, question, monkeypatch) -> None:
    voter = factory.user()
    original_commit = db.commit
    commits = []

    def commit_conflicting_first_time():
        commits.append(True)
        if len(commits) == 1:
            raise IntegrityError('INSERT INTO upvotes', {}, Exception('UNIQUE constraint failed'))
        original_commit()

    monkeypatch.setattr(db, 'commit', commit_conflicting_first_time)

    vote = voting.cast_vote(db, question.id, voter.id, upvote=False)

    assert vote.upvote is False
    assert _vote_rows(db, question.id) == 1
    assert voting.current_vote(db, question.id, voter.id) is False
