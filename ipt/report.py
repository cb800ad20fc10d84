"""
IPT Report Generation

This module generates markdown reports and JSON dumps of evaluation runs.
"""

from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional
import json
import math

from .evaluate import RunResult, PlacementRecord
from .model import PlacementMode


def _finite_or_none(value: float) -> Optional[float]:
    return float(value) if math.isfinite(value) else None


def params_to_dict(run: RunResult) -> dict:
    """Parameter set as plain JSON values."""
    params = asdict(run.params)
    params["placement_mode"] = run.params.placement_mode.value
    return params


def record_to_dict(record: PlacementRecord) -> dict:
    """JSON-ready view of one record."""
    diag = record.diagnostics
    return {
        "perm": record.perm,
        "anchors": record.anchors,
        "centers": record.centers,
        "endpoints": [list(e) for e in record.endpoints],
        "endpoints_float": [list(e) for e in record.endpoints_float],
        "splits": [list(s) for s in record.splits],
        "pitches": record.pitches,
        "endpoint_list": record.endpoint_list,
        "induced": record.induced,
        "induced_counts": [list(c) for c in record.induced_counts],
        "total": record.total,
        "per_pair": record.per_pair,
        "iv": record.iv,
        "prime_form": record.prime_form,
        "engine": record.engine.value,
        "anchor_range": list(record.anchor_range) if record.anchor_range else None,
        "center_bounds": [list(b) for b in record.center_bounds],
        "meta": record.meta,
        "slack_ratio": _finite_or_none(record.slack_ratio),
        "diagnostics": {
            "min_distance": diag.min_distance,
            "energy": diag.energy,
            "violations": [list(v) for v in diag.violations] if diag.violations is not None else None,
        } if diag is not None else None,
    }


def generate_report(run: RunResult,
                    outdir: Path,
                    top_n: int = 10) -> str:
    """Generate the markdown report.

    Args:
        run: Multi-window evaluation result
        outdir: Output directory for report
        top_n: Number of ranked orderings listed per window

    Returns:
        Report content as string
    """
    params = run.params
    report = []

    # Header
    report.append("# Interval Placement Tension Report")
    report.append("")
    report.append(f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}*")
    report.append("")

    # Model equations
    report.append("## Model Equations")
    report.append("")
    report.append("Each dyad $(lo, hi)$ of a placed pitch set is scored as:")
    report.append("")
    report.append("$$g = (c_{JI} + \\alpha \\cdot r) \\cdot e^{-k \\cdot lo / L} \\cdot e^{-m \\lfloor d / N \\rfloor}$$")
    report.append("")
    report.append("- $c_{JI}$: nearest just ratio cost $((\\text{cents} - t)/\\sigma)^2 + \\lambda \\log_2(n d)$")
    report.append("- $r$: roughness of two $K$-partial harmonic tones")
    report.append("- $\\alpha$: roughness weight calibrated against $c_{JI}$")
    report.append("")
    report.append("Orderings are ranked by total tension divided by the number of pitch pairs.")
    report.append("")

    # Parameters
    report.append("## Parameters Used")
    report.append("")
    report.append("| Parameter | Value |")
    report.append("|-----------|-------|")
    report.append(f"| Intervals | {' '.join(str(d) for d in run.intervals)} |")
    report.append(f"| Odd bias | {' '.join(run.odd_bias)} |")
    report.append(f"| $N$ (EDO) | {params.edo_steps} |")
    report.append(f"| Placement engine | {params.placement_mode.label} |")
    report.append(f"| $\\sigma$ (cents) | {params.sigma_cents} |")
    report.append(f"| $\\lambda$ | {params.ratio_lambda} |")
    report.append(f"| $K$ partials | {params.rough_partials_k} |")
    report.append(f"| Calibrated $\\alpha$ | {params.rough_alpha:.6f} |")
    report.append(f"| Register damping | {'on' if params.use_damping else 'off'} (k={params.register_damping_k}) |")
    report.append(f"| Compound relief $m$ | {params.compound_relief_m} |")
    report.append(f"| $f_{{ref}}$ (Hz) | {params.f_ref_hz} |")
    if params.placement_mode is PlacementMode.REPULSION:
        report.append(f"| Repulsion $\\gamma, \\kappa, \\lambda, \\eta$ | {params.repulse_gamma}, {params.repulse_kappa}, "
                      f"{params.repulse_lambda}, {params.repulse_eta} |")
        report.append(f"| Repulsion iterations / blend | {params.repulse_iterations} / {params.repulse_alpha} |")
    else:
        report.append(f"| Anchor $\\alpha, \\beta, \\rho$ | {params.anchor_alpha}, {params.anchor_beta}, {params.anchor_rho} |")
    report.append("")

    # Window summary
    report.append("## Results Summary")
    report.append("")
    report.append(f"Reference penalty (one step, mid-register): {run.reference_penalty:.6f}")
    report.append("")
    report.append("| Octaves | $L$ | Orderings | Dropped | Best ordering | Best per pair | vs reference |")
    report.append("|---------|-----|-----------|---------|---------------|---------------|--------------|")
    for O, window in run.windows.items():
        best = window.best
        if best is None:
            report.append(f"| {O} | {window.L} | {window.permutation_count} | {window.dropped} | - | - | - |")
            continue
        rel = best.per_pair / run.reference_penalty if run.reference_penalty > 0 else float("nan")
        report.append(f"| {O} | {window.L} | {window.permutation_count} | {window.dropped} | "
                      f"{' '.join(str(d) for d in best.perm)} | {best.per_pair:.6f} | {rel:.3f} |")
    report.append("")

    # Per-window rankings
    for O, window in run.windows.items():
        report.append(f"### Window O={O} (L={window.L})")
        report.append("")
        if not window.records:
            report.append("No ordering fits this window.")
            report.append("")
            continue
        report.append("| Rank | Ordering | Pitches | Total | Per pair | IV | Prime form |")
        report.append("|------|----------|---------|-------|----------|----|------------|")
        for rank, rec in enumerate(window.records[:top_n], start=1):
            report.append(
                f"| {rank} | {' '.join(map(str, rec.perm))} | {' '.join(map(str, rec.pitches))} | "
                f"{rec.total:.6f} | {rec.per_pair:.6f} | {' '.join(map(str, rec.iv))} | "
                f"({' '.join(map(str, rec.prime_form))}) |"
            )
        if len(window.records) > top_n:
            report.append("")
            report.append(f"*{len(window.records) - top_n} more orderings in results.json*")
        report.append("")

    content = "\n".join(report)

    outdir.mkdir(parents=True, exist_ok=True)
    with open(outdir / "report.md", "w") as f:
        f.write(content)

    return content


def save_results_json(run: RunResult, outdir: Path) -> dict:
    """Save all numerical results to JSON.

    Args:
        run: Multi-window evaluation result
        outdir: Output directory

    Returns:
        Results dictionary
    """
    results = {
        "intervals": run.intervals,
        "odd_bias": run.odd_bias,
        "parameters": params_to_dict(run),
        "reference_penalty": run.reference_penalty,
        "windows": {},
        "timestamp": datetime.now().isoformat(),
    }

    for O, window in run.windows.items():
        results["windows"][str(O)] = {
            "L": window.L,
            "permutation_count": window.permutation_count,
            "dropped": window.dropped,
            "records": [record_to_dict(rec) for rec in window.records],
        }

    outdir.mkdir(parents=True, exist_ok=True)
    with open(outdir / "results.json", "w") as f:
        json.dump(results, f, indent=2)

    return results
