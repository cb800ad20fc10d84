"""
IPT Model Definitions

This module provides the parameter set and input handling for the
interval-placement / tension engine.

Core definitions:
- PlacementMode: closed set of placement engines (v1, v2, prefixDominance, repulse)
- TensionParameters: immutable-by-convention global parameter set
- PRESETS: named parameter overrides
- Input validation for intervals, window sizes and odd-length bias flags
"""

import math
import numbers
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Union


class InputValidationError(ValueError):
    """Raised when external input is rejected before entering the engine."""


class PlacementMode(str, Enum):
    """Placement engine selector."""
    UNIFORM = "v1"
    PREFIX_SLACK = "v2"
    PREFIX_DOMINANCE = "prefixDominance"
    REPULSION = "repulse"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS = {
    PlacementMode.UNIFORM: "uniform-centers",
    PlacementMode.PREFIX_SLACK: "prefix-slack",
    PlacementMode.PREFIX_DOMINANCE: "prefix-dominance",
    PlacementMode.REPULSION: "repulsion-centers",
}


@dataclass
class TensionParameters:
    """Parameters for the tension model and the placement engines.

    Attributes:
        edo_steps: Steps per octave N
        compound_relief_m: Decay m per whole extra octave spanned
        sigma_cents: Width of the just-intonation proximity well (cents)
        ratio_lambda: Weight of the ratio height penalty
        rough_alpha: Roughness weight actually applied (set by calibration)
        rough_gamma: Mixing ratio handed to the calibrator
        rough_partials_k: Number of harmonic partials K per tone
        amp_power: Partial amplitude rolloff exponent (amp_i = i^-p)
        rough_a: Roughness curve decay constant a
        rough_b: Roughness curve decay constant b
        register_damping_k: Register damping decay k
        use_damping: Toggle for register damping
        f_ref_hz: Frequency of pitch 0
        placement_mode: Placement engine selector
        anchor_alpha: v2 blend between uniform grid and prefix position
        anchor_beta: Weight exponent for v2 (slack) and prefix-dominance (length)
        anchor_rho: Fraction of each interval placed below its anchor
        repulse_gamma: Radius exponent for the repulsion engine
        repulse_kappa: Separation target scale
        repulse_lambda: Quadratic penalty stiffness
        repulse_eta: Relaxation step size
        repulse_iterations: Number of relaxation iterations
        repulse_alpha: Blend between neutral (0) and relaxed (1) centers
    """
    edo_steps: int = 12
    compound_relief_m: float = 0.55
    sigma_cents: float = 20.0
    ratio_lambda: float = 0.20
    rough_alpha: float = 0.0
    rough_gamma: float = 0.5
    rough_partials_k: int = 12
    amp_power: float = 1.0
    rough_a: float = 3.5
    rough_b: float = 5.75
    register_damping_k: float = 1.6
    use_damping: bool = True
    f_ref_hz: float = 55.0
    placement_mode: PlacementMode = PlacementMode.PREFIX_SLACK
    anchor_alpha: float = 0.3
    anchor_beta: float = 1.0
    anchor_rho: float = 0.5
    repulse_gamma: float = 1.0
    repulse_kappa: float = 0.4
    repulse_lambda: float = 0.1
    repulse_eta: float = 0.08
    repulse_iterations: int = 60
    repulse_alpha: float = 1.0

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        try:
            self.placement_mode = PlacementMode(self.placement_mode)
        except ValueError:
            valid = ", ".join(m.value for m in PlacementMode)
            raise ValueError(f"Unknown placement mode '{self.placement_mode}'. Valid: {valid}")
        if self.edo_steps < 1:
            raise ValueError(f"edo_steps must be >= 1, got {self.edo_steps}")
        if self.sigma_cents <= 0:
            raise ValueError(f"sigma_cents must be > 0, got {self.sigma_cents}")
        if self.rough_partials_k < 1:
            raise ValueError(f"rough_partials_k must be >= 1, got {self.rough_partials_k}")
        if self.f_ref_hz <= 0:
            raise ValueError(f"f_ref_hz must be > 0, got {self.f_ref_hz}")
        if self.repulse_iterations < 1:
            raise ValueError(f"repulse_iterations must be >= 1, got {self.repulse_iterations}")
        for name in ("anchor_alpha", "anchor_rho", "repulse_alpha"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        for name in ("compound_relief_m", "ratio_lambda", "rough_gamma", "amp_power",
                     "register_damping_k", "anchor_beta", "repulse_gamma",
                     "repulse_kappa", "repulse_lambda", "repulse_eta"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


# Predefined parameter presets
PRESETS: dict[str, dict[str, float]] = {
    "default": {},
    "no_damping": {
        "use_damping": False,
    },
    "strict_just": {
        "sigma_cents": 10.0,
        "ratio_lambda": 0.3,
    },
    "bright_partials": {
        "rough_partials_k": 16,
        "amp_power": 0.5,
    },
    "dull_partials": {
        "rough_partials_k": 4,
        "amp_power": 2.0,
    },
}


def get_preset_params(preset_name: str,
                      base_params: Optional[TensionParameters] = None) -> TensionParameters:
    """Get parameters for a named preset.

    Args:
        preset_name: Name of the preset (must be in PRESETS)
        base_params: Optional base parameters to modify

    Returns:
        TensionParameters with the preset overrides applied

    Raises:
        ValueError: If preset_name is not recognized
    """
    if preset_name not in PRESETS:
        valid = ", ".join(PRESETS.keys())
        raise ValueError(f"Unknown preset '{preset_name}'. Valid: {valid}")

    if base_params is None:
        base_params = TensionParameters()

    return replace(base_params, **PRESETS[preset_name])


OddBias = Union[str, int]


def parse_intervals(text: str) -> list[int]:
    """Split free text on commas/whitespace, keeping integer tokens only."""
    values = []
    for token in re.split(r"[,\s]+", text.strip()):
        match = re.match(r"^[+-]?\d+", token)
        if match:
            values.append(int(match.group(0)))
    return values


def validate_intervals(intervals: Iterable) -> list[int]:
    """Check an interval multiset and return it as a list of ints.

    Raises:
        InputValidationError: If the multiset is empty or holds
            non-integer or negative values
    """
    values = list(intervals)
    if not values:
        raise InputValidationError("Enter at least one interval.")
    out = []
    for value in values:
        if (isinstance(value, bool) or not isinstance(value, numbers.Real)
                or not float(value).is_integer()):
            raise InputValidationError(f"Intervals must be integers, got {value!r}")
        if value < 0:
            raise InputValidationError(f"Intervals must be >= 0, got {value}")
        out.append(int(value))
    return out


def validate_window_octaves(window_octaves: Iterable[int]) -> list[int]:
    """Check window octave counts (each an integer >= 1)."""
    values = list(window_octaves)
    if not values:
        raise InputValidationError("At least one window size is required.")
    for O in values:
        if (isinstance(O, bool) or not isinstance(O, numbers.Real) or not math.isfinite(O)
                or int(O) != O or O < 1):
            raise InputValidationError(f"Window octave counts must be integers >= 1, got {O!r}")
    return sorted(set(int(O) for O in values))


def normalize_odd_bias(intervals: Sequence[int],
                       odd_bias: Optional[Sequence[OddBias]] = None) -> list[str]:
    """Normalize per-position odd-length bias flags.

    Accepts "up"/"down" or 1/0. A missing list, or one whose length does
    not match the interval count, falls back to "down" everywhere.
    """
    fallback = ["down"] * len(intervals)
    if odd_bias is None or len(odd_bias) != len(intervals):
        return fallback
    out = []
    for flag in odd_bias:
        if flag in ("up", 1) and not isinstance(flag, bool):
            out.append("up")
        elif flag in ("down", 0) and not isinstance(flag, bool):
            out.append("down")
        else:
            raise InputValidationError(f"Odd bias must be 'up'/'down' or 1/0, got {flag!r}")
    return out
