"""
IPT Placement Engines

This module maps an ordered interval sequence onto anchor positions
inside a register window [0, L]:

- uniform (v1): evenly spaced integer anchors over the legacy safe range
- prefix-slack (v2): uniform grid blended with prefix-weighted positions,
  weights = (L - d)^β
- prefix-dominance: prefix-weighted positions, weights = d^β
- repulsion: projected relaxation of pairwise separation targets

Every engine exposes ``solve_centers(L, perm, params, odd_bias)`` and
returns a Placement, or None when the ordering does not fit the window.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
import numpy as np
from numpy.typing import NDArray

from .model import PlacementMode, TensionParameters


QUANT_EPS = 1e-9


@dataclass
class CenterDiagnostics:
    """Separation diagnostics of a set of centers.

    Attributes:
        min_distance: Smallest pairwise distance between centers
        energy: Repulsion penalty energy (repulsion engine only)
        violations: (i, j, violation) for pairs closer than their target
    """
    min_distance: float
    energy: Optional[float] = None
    violations: Optional[list[tuple[int, int, float]]] = None


@dataclass
class Placement:
    """Engine output for one ordering.

    Attributes:
        engine: Engine that produced the placement
        centers: Float center per interval
        anchors: Integer anchor mark per interval
        splits: (down, up) integer split per interval
        bounds: (min, max) allowed center per interval
        anchor_range: (amin, amax) shared by all intervals, if any
        meta: Engine weights (slack, weights, prefix sums/fractions, total)
        diagnostics: Center separation diagnostics
    """
    engine: PlacementMode
    centers: list[float]
    anchors: list[int]
    splits: list[tuple[int, int]]
    bounds: list[tuple[float, float]]
    anchor_range: Optional[tuple[float, float]] = None
    meta: dict = field(default_factory=dict)
    diagnostics: Optional[CenterDiagnostics] = None

    def endpoints(self) -> list[tuple[int, int]]:
        """Integer (low, high) per interval: anchor - down, anchor + up."""
        return [(a - down, a + up) for a, (down, up) in zip(self.anchors, self.splits)]


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


# ---------------------------------------------------------------------------
# Shared quantisation
# ---------------------------------------------------------------------------

def quantized_split(length: int, rho: float, odd_bias: str = "down") -> tuple[int, int]:
    """Integer (down, up) split of ``length`` with down ≈ ρ * length.

    Even lengths round; odd lengths floor ("up") or ceil ("down").
    """
    down_ideal = rho * length
    if length % 2 == 0:
        # JS-style half-up rounding, not banker's rounding
        down = math.floor(down_ideal + 0.5)
    elif odd_bias == "up":
        down = math.floor(down_ideal + QUANT_EPS)
    else:
        down = math.ceil(down_ideal - QUANT_EPS)
    down = max(0, min(length, down))
    return down, length - down


def quantize_interval(anchor: float, length: int, rho: float,
                      odd_bias: str = "down") -> tuple[int, int, int]:
    """Integer anchor mark and endpoints for one interval.

    Returns:
        (A, low, high) with A = floor(anchor)
    """
    A = math.floor(anchor + QUANT_EPS)
    down, up = quantized_split(length, rho, odd_bias)
    return A, A - down, A + up


def rho_place(anchor: float, length: int, rho: float) -> tuple[float, float]:
    """Continuous endpoints: anchor - ρd, anchor + (1-ρ)d."""
    return anchor - rho * length, anchor + (1 - rho) * length


def low_bias_split(length: int) -> tuple[int, int]:
    """Legacy split: odd lengths put the extra step below the anchor."""
    down = (length + 1) // 2
    return down, length - down


def biased_split(length: int, flip_odd: bool) -> tuple[int, int]:
    down, up = low_bias_split(length)
    if length % 2 == 1 and flip_odd:
        return up, down
    return down, up


def safe_anchor_range(L: int, intervals: Sequence[int],
                      odd_bias: Optional[Sequence[str]] = None) -> tuple[int, int]:
    """Legacy range keeping every applied split inside [0, L].

    Odd lengths whose position is biased "up" use the flipped split.
    """
    if odd_bias is None:
        odd_bias = ["down"] * len(intervals)
    splits = [biased_split(d, odd_bias[idx] == "up") for idx, d in enumerate(intervals)]
    amin = max(down for down, _ in splits)
    amax = L - max(up for _, up in splits)
    return amin, amax


def equal_spaced_anchors(amin: int, amax: int, n: int) -> list[int]:
    """n integer anchors from amin to amax, largest-remainder spacing.

    The first ``span % (n-1)`` gaps get one extra step.
    """
    if n <= 0:
        return []
    if n == 1:
        return [amin]
    gaps = n - 1
    base, rem = divmod(amax - amin, gaps)
    anchors = [amin]
    for i in range(gaps):
        anchors.append(anchors[-1] + (base + 1 if i < rem else base))
    return anchors


def min_pairwise_distance(centers: Sequence[float]) -> float:
    if len(centers) < 2:
        return 0.0
    c = np.asarray(centers, dtype=float)
    diff = np.abs(c[:, None] - c[None, :])
    iu = np.triu_indices(len(c), k=1)
    return float(diff[iu].min())


def anchor_range_from_bounds(bounds: Sequence[tuple[float, float]]) -> Optional[tuple[float, float]]:
    if not bounds:
        return None
    return min(b[0] for b in bounds), max(b[1] for b in bounds)


def _prefix_fractions(weights: NDArray[np.float64],
                      total: float) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    # exclusive prefix: u_i = (w_0 + ... + w_{i-1}) / total
    prefix_sums = np.concatenate(([0.0], np.cumsum(weights)[:-1]))
    return prefix_sums, prefix_sums / total


# ---------------------------------------------------------------------------
# Repulsion helpers
# ---------------------------------------------------------------------------

def center_bounds_for_perm(L: int, perm: Sequence[int], rho: float,
                           odd_bias: Sequence[str]) -> list[tuple[float, float]]:
    """Per-interval center bounds, tightened by the quantised split.

    When the tightened bounds collapse, the continuous bounds are kept.
    """
    bounds = []
    for idx, d in enumerate(perm):
        cmin = rho * d
        cmax = L - (1 - rho) * d
        down, up = quantized_split(d, rho, odd_bias[idx])
        lo = max(cmin, down)
        hi = min(cmax, L - up)
        bounds.append((cmin, cmax) if lo > hi else (lo, hi))
    return bounds


def neutral_centers_from_bounds(bounds: Sequence[tuple[float, float]]) -> list[float]:
    """Linear interpolation from the first bound's min to the last one's max."""
    n = len(bounds)
    centers = []
    for idx, (lo, hi) in enumerate(bounds):
        t = 0.5 if n == 1 else idx / (n - 1)
        centers.append(clamp(lo + t * (hi - lo), lo, hi))
    return centers


def repulsion_deltas(perm: Sequence[int], gamma: float, kappa: float,
                     L: int) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Radii r_i = (d_i / L)^γ and separation targets δ_ij = κ (r_i + r_j)."""
    radii = np.power(np.asarray(perm, dtype=float) / max(1e-9, L), gamma)
    deltas = kappa * (radii[:, None] + radii[None, :])
    np.fill_diagonal(deltas, 0.0)
    return radii, deltas


def repulsion_forces(centers: NDArray[np.float64], deltas: NDArray[np.float64],
                     lam: float) -> NDArray[np.float64]:
    """Quadratic-penalty forces for pairs closer than their target.

    For i < j with violation v = δ_ij - |c_i - c_j| > 0, i is pushed by
    +2λv·sign(c_i - c_j) and j by the opposite (sign(0) = +1).
    """
    diff = centers[:, None] - centers[None, :]
    violation = deltas - np.abs(diff)
    sign = np.where(diff >= 0, 1.0, -1.0)
    pair = np.triu(np.where(violation > 0, 2.0 * lam * violation * sign, 0.0), k=1)
    return pair.sum(axis=1) - pair.sum(axis=0)


def projected_pairwise_solve(initial: Sequence[float],
                             bounds: Sequence[tuple[float, float]],
                             iterations: int,
                             step: float,
                             forces: Callable[[NDArray[np.float64]], NDArray[np.float64]]) -> NDArray[np.float64]:
    """Projected gradient relaxation: step along the forces, clamp into bounds."""
    centers = np.asarray(initial, dtype=float).copy()
    lo = np.array([b[0] for b in bounds], dtype=float)
    hi = np.array([b[1] for b in bounds], dtype=float)
    for _ in range(iterations):
        centers = np.clip(centers + step * forces(centers), lo, hi)
    return centers


def repulsion_diagnostics(centers: Sequence[float], deltas: NDArray[np.float64],
                          lam: float) -> CenterDiagnostics:
    energy = 0.0
    violations = []
    n = len(centers)
    for i in range(n):
        for j in range(i + 1, n):
            v = deltas[i, j] - abs(centers[i] - centers[j])
            if v > 0:
                energy += lam * v * v
                violations.append((i, j, float(v)))
    return CenterDiagnostics(
        min_distance=min_pairwise_distance(centers),
        energy=float(energy),
        violations=violations,
    )


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------

class PlacementEngine:
    """Common interface of the placement engines."""

    mode: PlacementMode

    def solve_centers(self, L: int, perm: Sequence[int], params: TensionParameters,
                      odd_bias: Sequence[str]) -> Optional[Placement]:
        raise NotImplementedError

    def _quantized(self, L: int, perm: Sequence[int], centers: Sequence[float],
                   params: TensionParameters, odd_bias: Sequence[str],
                   bounds: list[tuple[float, float]],
                   anchor_range: Optional[tuple[float, float]],
                   meta: Optional[dict] = None,
                   diagnostics: Optional[CenterDiagnostics] = None) -> Placement:
        rho = params.anchor_rho
        anchors = []
        splits = []
        for idx, (c, d) in enumerate(zip(centers, perm)):
            A, low, high = quantize_interval(c, d, rho, odd_bias[idx])
            down, up = A - low, high - A
            # keep the integer endpoints inside [0, L] when the interval fits
            if down <= L - up:
                A = min(L - up, max(down, A))
            anchors.append(A)
            splits.append((down, up))
        if diagnostics is None:
            diagnostics = CenterDiagnostics(min_distance=min_pairwise_distance(centers))
        return Placement(
            engine=self.mode,
            centers=[float(c) for c in centers],
            anchors=anchors,
            splits=splits,
            bounds=bounds,
            anchor_range=anchor_range,
            meta=meta or {},
            diagnostics=diagnostics,
        )


class UniformEngine(PlacementEngine):
    """Legacy engine: evenly spaced anchors over the range of the applied splits."""

    mode = PlacementMode.UNIFORM

    def solve_centers(self, L, perm, params, odd_bias):
        if not perm:
            return None
        amin, amax = safe_anchor_range(L, perm, odd_bias)
        if amin > amax:
            return None
        anchors = equal_spaced_anchors(amin, amax, len(perm))
        splits = [biased_split(d, odd_bias[idx] == "up") for idx, d in enumerate(perm)]
        return Placement(
            engine=self.mode,
            centers=[float(a) for a in anchors],
            anchors=anchors,
            splits=splits,
            bounds=[(float(amin), float(amax))] * len(perm),
            anchor_range=(float(amin), float(amax)),
            diagnostics=CenterDiagnostics(min_distance=min_pairwise_distance(anchors)),
        )


class PrefixSlackEngine(PlacementEngine):
    """Blend of a uniform grid and slack-weighted prefix positions."""

    mode = PlacementMode.PREFIX_SLACK

    def solve_centers(self, L, perm, params, odd_bias):
        n = len(perm)
        if n == 0:
            return None
        rho = params.anchor_rho
        splits = [quantized_split(d, rho, odd_bias[idx]) for idx, d in enumerate(perm)]
        # intersection of the per-interval ranges [down_i, L - up_i]
        amin = max(down for down, _ in splits)
        amax = L - max(up for _, up in splits)
        if amin > amax:
            return None

        slack = np.asarray([L - d for d in perm], dtype=float)
        if n == 1:
            centers = [float(amin)]
            weights = np.ones(1)
            total = 1.0
        else:
            weights = np.power(slack, params.anchor_beta)
            total = float(weights.sum()) or 1.0
        prefix_sums, fractions = _prefix_fractions(weights, total)
        if n > 1:
            span = amax - amin
            t = np.arange(n) / (n - 1)
            a0 = amin + t * span
            a1 = amin + fractions * span
            blended = (1 - params.anchor_alpha) * a0 + params.anchor_alpha * a1
            centers = np.clip(blended, amin, amax).tolist()

        meta = {
            "slack": slack.tolist(),
            "weights": weights.tolist(),
            "prefix_sums": prefix_sums.tolist(),
            "prefix_fractions": fractions.tolist(),
            "total_weight": total,
        }
        return self._quantized(L, perm, centers, params, odd_bias,
                               bounds=[(float(amin), float(amax))] * n,
                               anchor_range=(float(amin), float(amax)),
                               meta=meta)


class PrefixDominanceEngine(PlacementEngine):
    """Positions by cumulative length-weight fraction (weights = d^β)."""

    mode = PlacementMode.PREFIX_DOMINANCE

    def solve_centers(self, L, perm, params, odd_bias):
        n = len(perm)
        if n == 0:
            return None
        rho = params.anchor_rho
        amin = max(rho * d for d in perm)
        amax = min(L - (1 - rho) * d for d in perm)
        if amin > amax:
            return None

        weights = np.power(np.asarray(perm, dtype=float), params.anchor_beta)
        total = float(weights.sum())
        if not total > 0:
            weights = np.ones(n)
            total = float(n)
        prefix_sums, fractions = _prefix_fractions(weights, total)
        centers = np.clip(amin + fractions * (amax - amin), amin, amax).tolist()

        meta = {
            "weights": weights.tolist(),
            "prefix_sums": prefix_sums.tolist(),
            "prefix_fractions": fractions.tolist(),
            "total_weight": total,
        }
        return self._quantized(L, perm, centers, params, odd_bias,
                               bounds=[(amin, amax)] * n,
                               anchor_range=(amin, amax),
                               meta=meta)


class RepulsionEngine(PlacementEngine):
    """Neutral centers relaxed under pairwise minimum-separation penalties."""

    mode = PlacementMode.REPULSION

    def solve_centers(self, L, perm, params, odd_bias):
        if not perm:
            return None
        bounds = center_bounds_for_perm(L, perm, params.anchor_rho, odd_bias)
        neutral = neutral_centers_from_bounds(bounds)
        _, deltas = repulsion_deltas(perm, params.repulse_gamma, params.repulse_kappa, L)
        relaxed = projected_pairwise_solve(
            neutral,
            bounds,
            params.repulse_iterations,
            params.repulse_eta,
            lambda c: repulsion_forces(c, deltas, params.repulse_lambda),
        )
        alpha = clamp(params.repulse_alpha, 0.0, 1.0)
        centers = [
            clamp((1 - alpha) * neutral[i] + alpha * float(relaxed[i]), lo, hi)
            for i, (lo, hi) in enumerate(bounds)
        ]
        return self._quantized(L, perm, centers, params, odd_bias,
                               bounds=bounds,
                               anchor_range=anchor_range_from_bounds(bounds),
                               meta={"neutral": neutral, "relaxed": relaxed.tolist()},
                               diagnostics=repulsion_diagnostics(centers, deltas,
                                                                 params.repulse_lambda))


ENGINES: dict[PlacementMode, PlacementEngine] = {
    PlacementMode.UNIFORM: UniformEngine(),
    PlacementMode.PREFIX_SLACK: PrefixSlackEngine(),
    PlacementMode.PREFIX_DOMINANCE: PrefixDominanceEngine(),
    PlacementMode.REPULSION: RepulsionEngine(),
}


def get_engine(mode) -> PlacementEngine:
    """Engine for a PlacementMode (or its string value)."""
    return ENGINES[PlacementMode(mode)]
