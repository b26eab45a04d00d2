"""Ordering of text-search hits.

Hits are first ordered by text relevance, then stably re-sorted by
(edit distance to the primary field, edit distance to the secondary field,
-net votes). Hits that tie on every key keep their relevance order, which is
not a contractual ordering.
"""

from dataclasses import dataclass
from typing import Sequence

from rapidfuzz.distance import Levenshtein


@dataclass(frozen=True)
class SearchHit:
    id: int
    primary: str
    secondary: str = ''
    net_votes: int = 0
    relevance: float = 0.0


def edit_distance(a: str | None, b: str | None) -> int:
    return Levenshtein.distance(a or '', b or '')


def search_sort_key(query: str, hit: SearchHit, use_votes: bool = True) -> tuple[int, int, int]:
    return (
        edit_distance(query, hit.primary),
        edit_distance(query, hit.secondary),
        -hit.net_votes if use_votes else 0,
    )


def rank_hits(query: str, hits: Sequence[SearchHit], use_votes: bool = True) -> list[SearchHit]:
    by_relevance = sorted(hits, key=lambda hit: hit.relevance, reverse=True)
    return sorted(by_relevance, key=lambda hit: search_sort_key(query, hit, use_votes))


def rank_by_relevance(hits: Sequence[SearchHit]) -> list[SearchHit]:
    return sorted(hits, key=lambda hit: hit.relevance, reverse=True)
