"""
Candidate merger.

Deduplicates candidates from a cheap/local provider and an edge/remote
provider. Cheap results win ties so that enrichment never replaces a
candidate the user has already seen.
"""

from __future__ import annotations

from itertools import chain
from typing import Iterable, List

from nutrinorm.domain.candidates.models import Candidate

MAX_CANDIDATES = 8


def canonical_key(candidate: Candidate) -> str:
    """Canonical identity string for a candidate."""
    return candidate.canonical_key


class CandidateMerger:
    """
    Cheap-first, first-key-wins merge capped at ``limit`` results.

    Example:
        >>> merger = CandidateMerger()
        >>> merged = merger.merge(
        ...     [Candidate(name="Apple")],
        ...     [Candidate(name="apple"), Candidate(name="Pear")],
        ... )
        >>> [c.name for c in merged]
        ['Apple', 'Pear']
    """

    def __init__(self, limit: int = MAX_CANDIDATES) -> None:
        self.limit = limit

    def merge(
        self,
        cheap_candidates: Iterable[Candidate],
        edge_candidates: Iterable[Candidate],
    ) -> List[Candidate]:
        seen = set()
        merged: List[Candidate] = []
        for candidate in chain(cheap_candidates, edge_candidates):
            if len(merged) >= self.limit:
                break
            key = canonical_key(candidate)
            if key in seen:
                continue
            seen.add(key)
            merged.append(candidate)
        return merged
