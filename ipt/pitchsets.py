"""
Pitch-set helpers: induced intervals, interval-class vectors and prime form.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Sequence, Tuple


def pitches_from_endpoints(endpoints: Iterable[Tuple[int, int]]) -> List[int]:
    """Sorted, deduplicated set of all endpoint values."""

    values = set()
    for lo, hi in endpoints:
        values.add(lo)
        values.add(hi)
    return sorted(values)


def endpoint_list(endpoints: Iterable[Tuple[int, int]]) -> List[int]:
    """All endpoint values sorted, duplicates kept."""

    return sorted(p for pair in endpoints for p in pair)


def induced_intervals(pitches: Sequence[int]) -> List[int]:
    """All pairwise absolute differences, ascending."""

    out = []
    for i in range(len(pitches)):
        for j in range(i + 1, len(pitches)):
            out.append(abs(pitches[j] - pitches[i]))
    return sorted(out)


def interval_counts(intervals: Iterable[int]) -> List[Tuple[int, int]]:
    """(interval, multiplicity) pairs sorted by interval."""

    return sorted(Counter(intervals).items())


def pitch_classes(pitches: Iterable[int], N: int) -> List[int]:
    """Distinct pitch classes mod ``N``, ascending."""

    return sorted({p % N for p in pitches})


def octave_reduced_interval_vector(pitches: Iterable[int], N: int) -> List[int]:
    """Interval-class vector of length floor(N/2) over distinct pitch classes.

    Its sum is C(k, 2) for k distinct pitch classes.
    """

    max_ic = N // 2
    vec = [0] * max_ic
    pcs = pitch_classes(pitches, N)
    for i in range(len(pcs)):
        for j in range(i + 1, len(pcs)):
            d = (pcs[j] - pcs[i]) % N
            ic = min(d, N - d)
            if 0 < ic <= max_ic:
                vec[ic - 1] += 1
    return vec


def normal_order(pcs: Iterable[int], N: int) -> List[int]:
    """Rotation of the pitch-class set with the smallest outer span.

    Ties are broken by comparing the distance from the first element to
    each interior element, from the last one backward; the rotation with
    the smaller distance at the first difference wins. Rotated elements
    are unwrapped (may exceed N - 1).
    """

    unique = sorted({p % N for p in pcs})
    n = len(unique)
    if n <= 1:
        return unique

    best: List[int] = []
    best_span = None
    for i in range(n):
        rotated = unique[i:] + [p + N for p in unique[:i]]
        span = rotated[-1] - rotated[0]
        if best_span is None or span < best_span:
            best, best_span = rotated, span
        elif span == best_span:
            for k in range(n - 1, 0, -1):
                int_best = best[k] - best[0]
                int_rot = rotated[k] - rotated[0]
                if int_rot < int_best:
                    best = rotated
                    break
                if int_rot > int_best:
                    break
    return best


def _transpose_to_zero(order: Sequence[int], N: int) -> List[int]:
    return [(p - order[0]) % N for p in order]


def prime_form(pitches: Iterable[int], N: int) -> List[int]:
    """Rahn/Forte prime form generalised to N-EDO.

    The normal orders of the set and of its inversion are transposed to
    start at 0; the lexicographically smaller one is returned.
    """

    pcs = pitch_classes(pitches, N)
    if not pcs:
        return []
    if len(pcs) == 1:
        return [0]

    norm_t = _transpose_to_zero(normal_order(pcs, N), N)
    inv_t = _transpose_to_zero(normal_order([(-p) % N for p in pcs], N), N)
    # list comparison: element-wise, shorter prefix first
    return norm_t if norm_t <= inv_t else inv_t
