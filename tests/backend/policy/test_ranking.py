from backend.policy import text_search
from backend.policy.ranking import SearchHit, edit_distance, rank_by_relevance, rank_hits


def test_edit_distance_counts_single_character_edits() -> None:
    assert edit_distance('2+2', 'What is 2+2?') == 9
    assert edit_distance('kitten', 'sitting') == 3
    assert edit_distance(None, 'abc') == 3


def test_closer_question_text_beats_more_votes() -> None:
    q1 = SearchHit(id=1, primary='What is 2+2?', net_votes=5)
    q2 = SearchHit(id=2, primary='What is 2+3?', net_votes=10)

    ranked = rank_hits('2+2', [q2, q1])

    assert [hit.id for hit in ranked] == [1, 2]


def test_description_distance_breaks_primary_ties() -> None:
    near = SearchHit(id=1, primary='Solve for x', secondary='linear algebra')
    far = SearchHit(id=2, primary='Solve for y', secondary='an unrelated and long description')

    assert [hit.id for hit in rank_hits('algebra', [far, near])] == [1, 2]


def test_net_votes_break_remaining_ties() -> None:
    low = SearchHit(id=1, primary='Same text', secondary='same', net_votes=1)
    high = SearchHit(id=2, primary='Same text', secondary='same', net_votes=7)

    assert [hit.id for hit in rank_hits('text', [low, high])] == [2, 1]


def test_votes_are_ignored_when_disabled() -> None:
    first = SearchHit(id=1, primary='Geometry', secondary='shapes', net_votes=0, relevance=2.0)
    second = SearchHit(id=2, primary='Geometry', secondary='shapes', net_votes=9, relevance=1.0)

    assert [hit.id for hit in rank_hits('geometry', [second, first], use_votes=False)] == [1, 2]


def test_rank_by_relevance_orders_highest_first() -> None:
    hits = [SearchHit(id=1, primary='a', relevance=0.5), SearchHit(id=2, primary='b', relevance=1.5)]

    assert [hit.id for hit in rank_by_relevance(hits)] == [2, 1]


def test_text_match_is_word_level_and_case_insensitive() -> None:
    assert text_search.matches('ALGEBRA', ['Linear algebra basics', None])
    assert text_search.matches('geometry algebra', ['', 'algebra'])
    assert not text_search.matches('alg', ['Linear algebra basics'])
    assert not text_search.matches('   ', ['anything'])


def test_relevance_score_rewards_more_matched_terms() -> None:
    one_term = text_search.relevance_score('linear algebra', ['algebra quiz'])
    two_terms = text_search.relevance_score('linear algebra', ['linear algebra quiz'])

    assert two_terms > one_term > 0
    assert text_search.relevance_score('calculus', ['linear algebra quiz']) == 0


def test_index_terms_drop_stop_words_and_stem() -> None:
    assert text_search.index_terms('What is the Derivative of sin?') == ['deriv', 'sin']
    assert text_search.query_terms('derivatives derivative') == ['deriv']
    assert text_search.query_terms('what is the') == []


def test_text_match_folds_non_ascii_case() -> None:
    assert text_search.matches('énergie', ['Énergie cinétique'])
    assert text_search.matches('STRASSE', ['Straße'])
