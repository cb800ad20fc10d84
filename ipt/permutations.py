"""
Distinct orderings of an interval multiset.
"""
from __future__ import annotations

from collections import Counter
from math import factorial
from typing import Iterator, List, Sequence


def unique_permutations(values: Sequence[int]) -> Iterator[List[int]]:
    """Yield every distinct ordering of ``values`` exactly once.

    Backtracks over the sorted distinct values with remaining-count
    bookkeeping, so repeated values never produce duplicate orderings.
    Orderings come out in lexicographic order.
    """

    counts = Counter(values)
    distinct = sorted(counts)
    total = len(values)
    current: List[int] = []

    def backtrack() -> Iterator[List[int]]:
        if len(current) == total:
            yield current.copy()
            return
        for v in distinct:
            if counts[v] == 0:
                continue
            counts[v] -= 1
            current.append(v)
            yield from backtrack()
            current.pop()
            counts[v] += 1

    yield from backtrack()


def permutation_count(values: Sequence[int]) -> int:
    """n! / prod(m_i!) for the multiplicities m_i of ``values``."""

    count = factorial(len(values))
    for m in Counter(values).values():
        count //= factorial(m)
    return count
