from backend.routes.leaderboard_routes import total_upvotes_leaderboard, verified_questions_leaderboard


def test_verified_leaderboard_counts_only_verified_questions(db, factory) -> None:
    prolific = factory.user('prolific')
    careful = factory.user('careful')
    idle = factory.user('idle')
    subject = factory.subject()
    factory.question(prolific, subject, verified=True)
    factory.question(prolific, subject, verified=True)
    factory.question(careful, subject, verified=True)
    for _ in range(3):
        factory.question(careful, subject)

    assert verified_questions_leaderboard(db=db) == [prolific.id, careful.id, idle.id]


def test_total_upvotes_leaderboard_sums_net_votes(db, factory) -> None:
    popular = factory.user('popular')
    disliked = factory.user('disliked')
    quiet = factory.user('quiet')
    subject = factory.subject()
    liked_question = factory.question(popular, subject, verified=True)
    panned_question = factory.question(disliked, subject, verified=True)
    pending_question = factory.question(quiet, subject)

    voters = [factory.user() for _ in range(2)]
    for voter in voters:
        factory.vote(liked_question, voter, upvote=True)
        factory.vote(panned_question, voter, upvote=False)
        factory.vote(pending_question, voter, upvote=True)

    ranking = total_upvotes_leaderboard(db=db)

    assert ranking[0] == popular.id
    assert ranking[-1] == disliked.id
    assert ranking.index(quiet.id) < ranking.index(disliked.id)


def test_leaderboard_ties_are_ordered_by_user_id(db, factory) -> None:
    users = [factory.user() for _ in range(3)]

    assert verified_questions_leaderboard(db=db) == [user.id for user in users]
    assert total_upvotes_leaderboard(db=db) == [user.id for user in users]
