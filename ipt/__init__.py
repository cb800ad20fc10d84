"""
IPT - Interval Placement & Tension

Ranks the orderings of an interval multiset (in N-EDO steps) by how tense
the resulting pitch set sounds when the intervals are placed inside a
register window.

Usage:
    python -m ipt --help
    python -m ipt --intervals "11 7 16" --mode v2
    python -m ipt --intervals "4 3 5 7" --mode repulse --max-octaves 3

Main components:
    - model: Parameters, placement modes, presets, input validation
    - tension: Dyad tension model and roughness calibration
    - pitchsets: Induced intervals, interval-class vector, prime form
    - permutations: Distinct orderings of a multiset
    - placement: Placement engines
    - evaluate: Window evaluation and ranking
    - plot: Visualization utilities
    - report: Report generation
"""

__version__ = "0.1.0"

from .model import (
    TensionParameters,
    PlacementMode,
    PRESETS,
    InputValidationError,
    get_preset_params,
    parse_intervals,
)

from .tension import (
    RoughnessCache,
    dyad_penalty,
    sonority_penalty,
    calibrate_alpha,
    calibrated_params,
    reference_penalty,
)

from .pitchsets import (
    induced_intervals,
    octave_reduced_interval_vector,
    prime_form,
)

from .permutations import unique_permutations, permutation_count

from .placement import Placement, get_engine

from .evaluate import (
    PlacementRecord,
    WindowResult,
    RunResult,
    evaluate_window,
    evaluate_windows,
)

__all__ = [
    "TensionParameters",
    "PlacementMode",
    "PRESETS",
    "InputValidationError",
    "get_preset_params",
    "parse_intervals",
    "RoughnessCache",
    "dyad_penalty",
    "sonority_penalty",
    "calibrate_alpha",
    "calibrated_params",
    "reference_penalty",
    "induced_intervals",
    "octave_reduced_interval_vector",
    "prime_form",
    "unique_permutations",
    "permutation_count",
    "Placement",
    "get_engine",
    "PlacementRecord",
    "WindowResult",
    "RunResult",
    "evaluate_window",
    "evaluate_windows",
]
