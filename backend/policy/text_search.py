"""Word-level text matching used by the search endpoints.

Text is split into word tokens, case-folded, stripped of English stop words and
reduced to its Snowball stem, so ``Derivatives`` and ``derivative`` index the
same term while ``what``/``is`` index nothing.
"""

import re
from collections import Counter
from typing import Iterable

import snowballstemmer

_TOKEN_PATTERN = re.compile(r'\w+', re.UNICODE)

_STEMMER = snowballstemmer.stemmer('english')

STOP_WORDS = frozenset({
    'a', 'about', 'above', 'after', 'again', 'against', 'all', 'am', 'an', 'and',
    'any', 'are', 'as', 'at', 'be', 'because', 'been', 'before', 'being', 'below',
    'between', 'both', 'but', 'by', 'can', 'could', 'did', 'do', 'does', 'doing',
    'down', 'during', 'each', 'few', 'for', 'from', 'further', 'had', 'has', 'have',
    'having', 'he', 'her', 'here', 'hers', 'herself', 'him', 'himself', 'his', 'how',
    'i', 'if', 'in', 'into', 'is', 'it', 'its', 'itself', 'just', 'me', 'more', 'most',
    'my', 'myself', 'no', 'nor', 'not', 'now', 'of', 'off', 'on', 'once', 'only', 'or',
    'other', 'our', 'ours', 'ourselves', 'out', 'over', 'own', 'same', 'she', 'should',
    'so', 'some', 'such', 'than', 'that', 'the', 'their', 'theirs', 'them',
    'themselves', 'then', 'there', 'these', 'they', 'this', 'those', 'through', 'to',
    'too', 'under', 'until', 'up', 'very', 'was', 'we', 'were', 'what', 'when',
    'where', 'which', 'while', 'who', 'whom', 'why', 'will', 'with', 'would', 'you',
    'your', 'yours', 'yourself', 'yourselves',
})


def tokenize(text: str | None) -> list[str]:
    if not text:
        return []
    return [token.casefold() for token in _TOKEN_PATTERN.findall(text)]


def index_terms(text: str | None) -> list[str]:
    """Stemmed tokens of ``text`` with stop words removed."""
    return _STEMMER.stemWords([token for token in tokenize(text) if token not in STOP_WORDS])


def query_terms(query: str) -> list[str]:
    """Distinct query terms in first-seen order."""
    return list(dict.fromkeys(index_terms(query)))


def matches(query: str, fields: Iterable[str | None]) -> bool:
    """True when any query term equals any term of the indexed fields."""
    terms = set(query_terms(query))
    if not terms:
        return False
    return any(terms.intersection(index_terms(field)) for field in fields)


def relevance_score(query: str, fields: Iterable[str | None]) -> float:
    # Per field: every distinct matched term counts 1, plus half its term frequency.
    terms = query_terms(query)
    score = 0.0
    for field in fields:
        tokens = index_terms(field)
        if not tokens:
            continue
        counts = Counter(tokens)
        for term in terms:
            occurrences = counts.get(term, 0)
            if occurrences:
                score += 1.0 + 0.5 * (occurrences / len(tokens))
    return score
