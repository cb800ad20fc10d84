"""
IPT Tension Model

This module scores a single dyad (pitch pair) and calibrates the
roughness weight against the just-intonation cost:

g(lo, hi) = (ratio_cost + α * roughness) * D(lo) * R(d)

where:
- ratio_cost: distance (in sigma units) to the nearest small-integer ratio
  plus a height penalty λ * log2(n*d)
- roughness: amplitude-weighted beating between K harmonic partials
- D(lo) = exp(-k * lo / L): register damping (optional)
- R(d) = exp(-m * floor(d / N)): compound relief
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence
import numpy as np

from .model import TensionParameters


# Just-intonation targets (n, d). Order is fixed: the first entry reaching
# the minimum cost wins.
RATIO_TARGETS: tuple[tuple[int, int], ...] = (
    (1, 1),
    (9, 8), (16, 15),
    (5, 4), (6, 5),
    (4, 3), (3, 2),
    (8, 5), (5, 3),
    (16, 9), (15, 8),
    (2, 1),
    (45, 32),
)

_TARGET_CENTS = np.array([1200.0 * np.log2(n / d) for n, d in RATIO_TARGETS])
_TARGET_HEIGHTS = np.array([np.log2(n * d) for n, d in RATIO_TARGETS])

# Calibration probe: a three-octave window, low pitch at a quarter of it.
CALIBRATION_OCTAVES = 3

# Reference dyad: one step at the middle of a 36-step window.
REFERENCE_WINDOW = 36


@dataclass
class RatioMatch:
    """Best just-intonation match for a cents value."""
    cost: float
    ratio: tuple[int, int]
    height: float


@dataclass
class DyadDetails:
    """Breakdown of one dyad penalty."""
    penalty: float
    d_steps: int
    cents: float
    ratio_cost: float
    ratio: tuple[int, int]
    roughness: float
    damping: float
    relief: float


class RoughnessCache:
    """Memo table for roughness values.

    Keys are (cents, f0) rounded to 3 decimals together with the partial
    model constants, so one cache can be shared by every window of a run.
    """

    def __init__(self) -> None:
        self._values: dict[tuple, float] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(cents: float, f0_hz: float, K: int, amp_power: float,
            a: float, b: float) -> tuple:
        return (round(cents, 3), round(f0_hz, 3), K, amp_power, a, b)

    def get(self, key: tuple) -> Optional[float]:
        value = self._values.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def put(self, key: tuple, value: float) -> None:
        self._values[key] = value

    def clear(self) -> None:
        self._values.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._values)


def steps_to_cents(d_steps: int, edo_steps: int) -> float:
    """Octave-reduced size of a step distance in cents."""
    return 1200.0 * ((d_steps % edo_steps) / edo_steps)


def ratio_cost(cents: float, sigma: float, ratio_lambda: float) -> RatioMatch:
    """Minimum over RATIO_TARGETS of ((cents - target)/σ)^2 + λ * height.

    Args:
        cents: Interval size in cents
        sigma: Proximity width in cents
        ratio_lambda: Height penalty weight

    Returns:
        RatioMatch with the minimal cost and the diagnostic ratio/height
    """
    costs = np.square(np.abs(cents - _TARGET_CENTS) / sigma) + ratio_lambda * _TARGET_HEIGHTS
    # argmin returns the first index on ties
    idx = int(np.argmin(costs))
    return RatioMatch(
        cost=float(costs[idx]),
        ratio=RATIO_TARGETS[idx],
        height=float(_TARGET_HEIGHTS[idx]),
    )


def _roughness_sum(cents: float, f0_hz: float, K: int, amp_power: float,
                   a: float, b: float) -> float:
    partials = np.arange(1, K + 1, dtype=float)
    amps = np.power(partials, -amp_power)
    f = partials * f0_hz
    g = partials * (f0_hz * 2.0 ** (cents / 1200.0))

    # (i, j) grid over both tones' partials
    df = np.abs(f[:, None] - g[None, :])
    fbar = 0.5 * (f[:, None] + g[None, :])
    bandwidth = 1.72 * np.power(fbar, 0.65)
    x = df / bandwidth
    phi = np.exp(-a * x) - np.exp(-b * x)
    return float(np.sum(amps[:, None] * amps[None, :] * phi))


def roughness(cents: float, f0_hz: float, K: int, amp_power: float,
              a: float, b: float, cache: Optional[RoughnessCache] = None) -> float:
    """Roughness between two K-partial harmonic tones.

    Tone one sits at f0, tone two at f0 * 2^(cents/1200). Partial i has
    amplitude i^-amp_power. Every partial pair contributes
    exp(-a x) - exp(-b x) with x = |f_i - g_j| / (1.72 * f̄^0.65).

    Args:
        cents: Interval between the tones
        f0_hz: Frequency of the lower tone
        K: Partials per tone
        amp_power: Amplitude rolloff exponent
        a: Curve decay constant a
        b: Curve decay constant b
        cache: Optional memo table

    Returns:
        Amplitude-weighted sum over all K^2 partial pairs
    """
    if cache is None:
        return _roughness_sum(cents, f0_hz, K, amp_power, a, b)
    key = RoughnessCache.key(cents, f0_hz, K, amp_power, a, b)
    value = cache.get(key)
    if value is None:
        value = _roughness_sum(cents, f0_hz, K, amp_power, a, b)
        cache.put(key, value)
    return value


def register_damping(lo: int, L: int, k: float, use_damping: bool = True) -> float:
    """exp(-k * lo / L) when enabled, else 1."""
    if use_damping:
        return float(np.exp(-k * (lo / L)))
    return 1.0


def compound_relief(d_steps: int, N: int, m: float) -> float:
    """exp(-m * floor(d / N))."""
    return float(np.exp(-m * (d_steps // N)))


def f0_from_lo(lo: int, N: int, f_ref_hz: float) -> float:
    """Frequency of pitch ``lo`` in N-EDO above f_ref."""
    return f_ref_hz * 2.0 ** (lo / N)


def dyad_penalty_details(lo: int, hi: int, params: TensionParameters, L: int,
                         cache: Optional[RoughnessCache] = None) -> DyadDetails:
    """Full breakdown of the penalty for the dyad (lo, hi) in window L."""
    N = params.edo_steps
    d_steps = hi - lo
    cents = steps_to_cents(d_steps, N)
    match = ratio_cost(cents, params.sigma_cents, params.ratio_lambda)
    rough = roughness(
        cents,
        f0_from_lo(lo, N, params.f_ref_hz),
        params.rough_partials_k,
        params.amp_power,
        params.rough_a,
        params.rough_b,
        cache=cache,
    )
    damping = register_damping(lo, L, params.register_damping_k, params.use_damping)
    relief = compound_relief(d_steps, N, params.compound_relief_m)
    penalty = (match.cost + params.rough_alpha * rough) * damping * relief
    return DyadDetails(
        penalty=penalty,
        d_steps=d_steps,
        cents=cents,
        ratio_cost=match.cost,
        ratio=match.ratio,
        roughness=rough,
        damping=damping,
        relief=relief,
    )


def dyad_penalty(lo: int, hi: int, params: TensionParameters, L: int,
                 cache: Optional[RoughnessCache] = None) -> float:
    """Tension of a single dyad (scalar >= 0)."""
    return dyad_penalty_details(lo, hi, params, L, cache).penalty


def sonority_penalty(pitches: Sequence[int], params: TensionParameters, L: int,
                     cache: Optional[RoughnessCache] = None) -> float:
    """Sum of dyad penalties over every pair of a sorted pitch set."""
    total = 0.0
    for i in range(len(pitches)):
        for j in range(i + 1, len(pitches)):
            total += dyad_penalty(pitches[i], pitches[j], params, L, cache)
    return total


def reference_penalty(params: TensionParameters,
                      cache: Optional[RoughnessCache] = None) -> float:
    """Penalty of a one-step dyad centred in a 36-step window."""
    lo = REFERENCE_WINDOW // 2
    return dyad_penalty(lo, lo + 1, params, REFERENCE_WINDOW, cache)


def median(values: Sequence[float]) -> float:
    """Median with 0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def calibrate_alpha(params: TensionParameters, gamma: float,
                    cache: Optional[RoughnessCache] = None) -> float:
    """Roughness weight that puts both sub-models on a comparable scale.

    α = γ * median(ratio_cost) / median(roughness) over step classes
    1..N-1, probed at a fixed low pitch in a three-octave window.

    Returns:
        Calibrated α, or 0 when the median roughness is zero or the
        quotient is not finite
    """
    N = params.edo_steps
    L = N * CALIBRATION_OCTAVES
    f0_hz = f0_from_lo(L // 4, N, params.f_ref_hz)

    ratio_vals = []
    rough_vals = []
    for d_mod in range(1, N):
        cents = steps_to_cents(d_mod, N)
        ratio_vals.append(ratio_cost(cents, params.sigma_cents, params.ratio_lambda).cost)
        rough_vals.append(roughness(
            cents,
            f0_hz,
            params.rough_partials_k,
            params.amp_power,
            params.rough_a,
            params.rough_b,
            cache=cache,
        ))

    med_rough = median(rough_vals)
    if med_rough == 0:
        return 0.0
    alpha = gamma * (median(ratio_vals) / med_rough)
    if not np.isfinite(alpha):
        return 0.0
    return float(alpha)


def calibrated_params(params: TensionParameters,
                      cache: Optional[RoughnessCache] = None) -> TensionParameters:
    """Copy of ``params`` with ``rough_alpha`` set by the calibrator."""
    return replace(params, rough_alpha=calibrate_alpha(params, params.rough_gamma, cache))
