"""
IPT Window Evaluation

This module ties the components together: for each register window it
enumerates the distinct orderings of the interval multiset, places them
with the selected engine, scores every induced dyad and ranks the
orderings by tension per pair.

Runs include:
- Single-window evaluation (calibrated parameters supplied by the caller)
- Multi-window runs (calibration once, shared roughness cache)
- Comparison placements with overridden prefix-slack parameters
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

from .model import (
    TensionParameters,
    PlacementMode,
    OddBias,
    validate_intervals,
    validate_window_octaves,
    normalize_odd_bias,
)
from .permutations import unique_permutations, permutation_count
from .pitchsets import (
    pitches_from_endpoints,
    endpoint_list,
    induced_intervals,
    interval_counts,
    octave_reduced_interval_vector,
    prime_form,
)
from .placement import CenterDiagnostics, Placement, get_engine, rho_place, PrefixSlackEngine
from .tension import RoughnessCache, sonority_penalty, calibrated_params, reference_penalty


@dataclass(frozen=True)
class PlacementRecord:
    """Result for one ordering in one window.

    Attributes:
        perm: The ordering of interval lengths
        anchors: Integer anchor mark per interval
        centers: Float center per interval, as solved by the engine
        endpoints: Integer (low, high) per interval
        endpoints_float: Continuous (low*, high*) per interval
        splits: (down, up) per interval
        pitches: Sorted distinct pitches
        endpoint_list: Sorted endpoints with duplicates
        induced: All pairwise pitch distances, ascending
        induced_counts: (interval, multiplicity) pairs
        total: Summed dyad tension over all pitch pairs
        per_pair: total / C(|pitches|, 2), 0 below two pitches
        iv: Octave-reduced interval-class vector
        prime_form: Rahn/Forte prime form
        engine: Engine that placed the ordering
        anchor_range: Shared (amin, amax) if the engine has one
        center_bounds: (min, max) per interval
        meta: Engine weights
        diagnostics: Center separation diagnostics
        slack_ratio: max(L - d) / min(L - d), inf when min slack is 0
    """
    perm: list[int]
    anchors: list[int]
    centers: list[float]
    endpoints: list[tuple[int, int]]
    endpoints_float: list[tuple[float, float]]
    splits: list[tuple[int, int]]
    pitches: list[int]
    endpoint_list: list[int]
    induced: list[int]
    induced_counts: list[tuple[int, int]]
    total: float
    per_pair: float
    iv: list[int]
    prime_form: list[int]
    engine: PlacementMode
    anchor_range: Optional[tuple[float, float]]
    center_bounds: list[tuple[float, float]]
    meta: dict = field(default_factory=dict)
    diagnostics: Optional[CenterDiagnostics] = None
    slack_ratio: float = float("inf")


@dataclass
class WindowResult:
    """All ranked records of one window."""
    octaves: int
    L: int
    records: list[PlacementRecord]
    permutation_count: int
    dropped: int

    @property
    def best(self) -> Optional[PlacementRecord]:
        return self.records[0] if self.records else None


@dataclass
class RunResult:
    """Result of a multi-window run.

    Attributes:
        intervals: Validated interval multiset
        odd_bias: Normalized per-position odd-length bias
        params: Calibrated parameters used for every window
        windows: Window octave count -> WindowResult
        reference_penalty: Penalty of the one-step reference dyad
        cache_entries: Roughness values memoised during the run
    """
    intervals: list[int]
    odd_bias: list[str]
    params: TensionParameters
    windows: dict[int, WindowResult]
    reference_penalty: float
    cache_entries: int


def _slack_ratio(L: int, perm: Sequence[int]) -> float:
    slacks = [L - d for d in perm]
    if min(slacks) <= 0:
        return float("inf")
    return max(slacks) / min(slacks)


def _within_window(endpoints: Iterable[tuple[int, int]], L: int) -> bool:
    return all(0 <= low and high <= L for low, high in endpoints)


def build_record(L: int, perm: Sequence[int], placement: Placement,
                 params: TensionParameters,
                 cache: Optional[RoughnessCache] = None) -> PlacementRecord:
    """Derive pitch set, tension and set-class data from a placement."""
    N = params.edo_steps
    endpoints = placement.endpoints()
    pitches = pitches_from_endpoints(endpoints)
    induced = induced_intervals(pitches)
    total = sonority_penalty(pitches, params, L, cache)
    pair_count = len(pitches) * (len(pitches) - 1) // 2
    if placement.engine is PlacementMode.UNIFORM:
        # legacy anchors are already on the lattice
        endpoints_float = [(float(low), float(high)) for low, high in endpoints]
    else:
        endpoints_float = [rho_place(c, d, params.anchor_rho)
                           for c, d in zip(placement.centers, perm)]

    return PlacementRecord(
        perm=list(perm),
        anchors=list(placement.anchors),
        centers=list(placement.centers),
        endpoints=endpoints,
        endpoints_float=endpoints_float,
        splits=list(placement.splits),
        pitches=pitches,
        endpoint_list=endpoint_list(endpoints),
        induced=induced,
        induced_counts=interval_counts(induced),
        total=total,
        per_pair=total / pair_count if pair_count else 0.0,
        iv=octave_reduced_interval_vector(pitches, N),
        prime_form=prime_form(pitches, N),
        engine=placement.engine,
        anchor_range=placement.anchor_range,
        center_bounds=list(placement.bounds),
        meta=dict(placement.meta),
        diagnostics=placement.diagnostics,
        slack_ratio=_slack_ratio(L, perm),
    )


def evaluate_window(intervals: Sequence[int],
                    params: TensionParameters,
                    odd_bias: Optional[Sequence[OddBias]] = None,
                    window_octaves: int = 3,
                    cache: Optional[RoughnessCache] = None) -> WindowResult:
    """Rank every distinct ordering of ``intervals`` in one window.

    ``params.rough_alpha`` is used as given; see ``evaluate_windows`` for
    a calibrated run.

    Args:
        intervals: Interval multiset in EDO steps
        params: Tension and placement parameters
        odd_bias: Per-position "up"/"down" (or 1/0) flags for odd lengths
        window_octaves: Window size O; L = O * N
        cache: Optional roughness memo table

    Returns:
        WindowResult with records sorted ascending by per_pair

    Raises:
        InputValidationError: On empty or malformed input
    """
    intervals = validate_intervals(intervals)
    (window_octaves,) = validate_window_octaves([window_octaves])
    bias = normalize_odd_bias(intervals, odd_bias)
    if cache is None:
        cache = RoughnessCache()

    L = window_octaves * params.edo_steps
    engine = get_engine(params.placement_mode)

    records = []
    dropped = 0
    for perm in unique_permutations(intervals):
        placement = engine.solve_centers(L, perm, params, bias)
        if placement is None or not _within_window(placement.endpoints(), L):
            dropped += 1
            continue
        records.append(build_record(L, perm, placement, params, cache))

    records.sort(key=lambda r: r.per_pair)

    return WindowResult(
        octaves=window_octaves,
        L=L,
        records=records,
        permutation_count=permutation_count(intervals),
        dropped=dropped,
    )


def evaluate_windows(intervals: Sequence[int],
                     params: Optional[TensionParameters] = None,
                     odd_bias: Optional[Sequence[OddBias]] = None,
                     window_octaves: Iterable[int] = (3,),
                     cache: Optional[RoughnessCache] = None) -> RunResult:
    """Calibrate once, then evaluate every requested window.

    Args:
        intervals: Interval multiset in EDO steps
        params: Base parameters (rough_alpha is replaced by calibration)
        odd_bias: Per-position odd-length bias flags
        window_octaves: Window sizes O to evaluate
        cache: Optional roughness memo table shared by all windows

    Returns:
        RunResult keyed by window octave count
    """
    intervals = validate_intervals(intervals)
    octaves = validate_window_octaves(window_octaves)
    bias = normalize_odd_bias(intervals, odd_bias)
    if params is None:
        params = TensionParameters()
    if cache is None:
        cache = RoughnessCache()

    params = calibrated_params(params, cache)
    windows = {
        O: evaluate_window(intervals, params, bias, O, cache)
        for O in octaves
    }

    return RunResult(
        intervals=intervals,
        odd_bias=bias,
        params=params,
        windows=windows,
        reference_penalty=reference_penalty(params, cache),
        cache_entries=len(cache),
    )


def comparison_pitches(perm: Sequence[int],
                       params: TensionParameters,
                       L: int,
                       odd_bias: Sequence[str],
                       **overrides) -> Optional[tuple[list[int], list[int]]]:
    """Prefix-slack pitch set for ``perm`` with overridden parameters.

    Typical overrides are ``anchor_beta=0`` or ``anchor_alpha=0``.

    Returns:
        (pitches, endpoint_list), or None if the ordering does not fit
    """
    alt = replace(params, **overrides)
    placement = PrefixSlackEngine().solve_centers(L, perm, alt, odd_bias)
    if placement is None:
        return None
    endpoints = placement.endpoints()
    return pitches_from_endpoints(endpoints), endpoint_list(endpoints)
