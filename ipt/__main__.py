"""
IPT CLI Entry Point

Run with: python -m ipt [options]
"""

import argparse
import sys
from pathlib import Path
import time

from .model import (
    TensionParameters,
    PlacementMode,
    PRESETS,
    InputValidationError,
    get_preset_params,
    parse_intervals,
)
from .evaluate import evaluate_windows, comparison_pitches, RunResult
from .report import generate_report, save_results_json


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ipt",
        description="Interval placement and tension ranking in N-EDO register windows",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Input
    parser.add_argument("--intervals", type=str, default="11 7 16",
                        help="Interval multiset in steps (comma or space separated)")
    parser.add_argument("--odd-bias", type=str, default="",
                        help="Per-position odd-length bias (0/1 or down/up), one per interval")
    parser.add_argument("--edo", type=int, default=12,
                        help="Steps per octave N")
    parser.add_argument("--min-octaves", type=int, default=1,
                        help="Smallest register window (octaves)")
    parser.add_argument("--max-octaves", type=int, default=4,
                        help="Largest register window (octaves)")
    parser.add_argument("--active-octaves", type=int, default=3,
                        help="Window whose best ordering is plotted")

    # Placement
    parser.add_argument("--mode", type=str, default=PlacementMode.PREFIX_SLACK.value,
                        choices=[m.value for m in PlacementMode],
                        help="Placement engine")
    parser.add_argument("--anchor-alpha", type=float, default=0.3,
                        help="Prefix-slack blend between grid and prefix positions")
    parser.add_argument("--anchor-beta", type=float, default=1.0,
                        help="Weight exponent for prefix engines")
    parser.add_argument("--anchor-rho", type=float, default=0.5,
                        help="Fraction of each interval placed below its anchor")
    parser.add_argument("--repulse-gamma", type=float, default=1.0,
                        help="Repulsion radius exponent")
    parser.add_argument("--repulse-kappa", type=float, default=0.4,
                        help="Repulsion separation scale")
    parser.add_argument("--repulse-lambda", type=float, default=0.1,
                        help="Repulsion penalty stiffness")
    parser.add_argument("--repulse-eta", type=float, default=0.08,
                        help="Repulsion step size")
    parser.add_argument("--repulse-iterations", type=int, default=60,
                        help="Repulsion relaxation iterations")
    parser.add_argument("--repulse-alpha", type=float, default=1.0,
                        help="Blend between neutral (0) and relaxed (1) centers")

    # Tension model
    parser.add_argument("--preset", type=str, default=None,
                        choices=list(PRESETS.keys()),
                        help="Use a parameter preset (overrides tension options)")
    parser.add_argument("--sigma", type=float, default=20.0,
                        help="Just-intonation width (cents)")
    parser.add_argument("--ratio-lambda", type=float, default=0.20,
                        help="Ratio height penalty weight")
    parser.add_argument("--partials", type=int, default=12,
                        help="Harmonic partials K per tone")
    parser.add_argument("--amp-power", type=float, default=1.0,
                        help="Partial amplitude rolloff exponent")
    parser.add_argument("--rough-a", type=float, default=3.5,
                        help="Roughness curve constant a")
    parser.add_argument("--rough-b", type=float, default=5.75,
                        help="Roughness curve constant b")
    parser.add_argument("--rough-gamma", type=float, default=0.5,
                        help="Roughness mixing ratio used by calibration")
    parser.add_argument("--damping-k", type=float, default=1.6,
                        help="Register damping decay")
    parser.add_argument("--no-damping", action="store_true",
                        help="Disable register damping")
    parser.add_argument("--relief-m", type=float, default=0.55,
                        help="Compound relief decay per extra octave")
    parser.add_argument("--fref", type=float, default=55.0,
                        help="Frequency of pitch 0 (Hz)")

    # Output
    parser.add_argument("--top", type=int, default=10,
                        help="Orderings listed per window")
    parser.add_argument("--compare", action="store_true",
                        help="Show beta=0 / alpha=0 prefix-slack pitch sets for each best ordering")
    parser.add_argument("--outdir", type=str, default="outputs",
                        help="Output directory for plots and results")
    parser.add_argument("--no-plots", action="store_true",
                        help="Skip figure generation")
    parser.add_argument("--show", action="store_true",
                        help="Display plots interactively")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress progress output")

    return parser.parse_args(argv)


def parse_odd_bias(text: str) -> list:
    """Turn '0 1 up down' style text into bias flags."""
    flags = []
    for token in text.replace(",", " ").split():
        flags.append(int(token) if token.isdigit() else token.lower())
    return flags


def build_params(args: argparse.Namespace) -> TensionParameters:
    """Parameter set from command line options."""
    params = TensionParameters(
        edo_steps=args.edo,
        compound_relief_m=args.relief_m,
        sigma_cents=args.sigma,
        ratio_lambda=args.ratio_lambda,
        rough_gamma=args.rough_gamma,
        rough_partials_k=args.partials,
        amp_power=args.amp_power,
        rough_a=args.rough_a,
        rough_b=args.rough_b,
        register_damping_k=args.damping_k,
        use_damping=not args.no_damping,
        f_ref_hz=args.fref,
        placement_mode=PlacementMode(args.mode),
        anchor_alpha=args.anchor_alpha,
        anchor_beta=args.anchor_beta,
        anchor_rho=args.anchor_rho,
        repulse_gamma=args.repulse_gamma,
        repulse_kappa=args.repulse_kappa,
        repulse_lambda=args.repulse_lambda,
        repulse_eta=args.repulse_eta,
        repulse_iterations=args.repulse_iterations,
        repulse_alpha=args.repulse_alpha,
    )
    if args.preset:
        params = get_preset_params(args.preset, params)
    return params


def print_summary(run: RunResult, top: int, compare: bool) -> None:
    """Console table of the ranked orderings per window."""
    for O, window in run.windows.items():
        print(f"\nWindow O={O} (L={window.L}): {len(window.records)} of "
              f"{window.permutation_count} orderings placed, {window.dropped} dropped")
        print("-" * 60)
        for rank, rec in enumerate(window.records[:top], start=1):
            perm = " ".join(map(str, rec.perm))
            pitches = " ".join(map(str, rec.pitches))
            print(f"  {rank:3d}. [{perm:>14s}]  per pair = {rec.per_pair:.6f}  pitches: {pitches}")
        if compare and window.best is not None:
            best = window.best
            for label, overrides in (("beta=0", {"anchor_beta": 0.0}),
                                     ("alpha=0", {"anchor_alpha": 0.0})):
                alt = comparison_pitches(best.perm, run.params, window.L, run.odd_bias, **overrides)
                shown = " ".join(map(str, alt[0])) if alt else "does not fit"
                print(f"       {label:8s} pitches: {shown}")


def run(args: argparse.Namespace) -> None:
    """Evaluate all windows and write outputs."""
    intervals = parse_intervals(args.intervals)
    odd_bias = parse_odd_bias(args.odd_bias) or None
    params = build_params(args)
    octaves = range(args.min_octaves, max(args.min_octaves, args.max_octaves) + 1)

    if not args.quiet:
        print(f"Evaluating intervals {intervals} in {params.edo_steps}-EDO")
        print(f"  engine={params.placement_mode.label}, windows={list(octaves)}")

    start_time = time.time()
    result = evaluate_windows(intervals, params, odd_bias, octaves)
    elapsed = time.time() - start_time

    if not args.quiet:
        print(f"  calibrated roughness alpha = {result.params.rough_alpha:.6f}")
        print(f"  reference penalty          = {result.reference_penalty:.6f}")

    print_summary(result, args.top, args.compare)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    generate_report(result, outdir, top_n=args.top)
    save_results_json(result, outdir)

    if not args.no_plots:
        from .plot import plot_record_placement, plot_window_ranking, plot_best_per_window

        for O, window in result.windows.items():
            plot_window_ranking(window, outdir, show=False)
        active = result.windows.get(args.active_octaves)
        if active is not None and active.best is not None:
            plot_record_placement(active.best, active.L, result.params.edo_steps, outdir,
                                  filename=f"placement_O{active.octaves}.png", show=False)
        plot_best_per_window(result, outdir, show=False)

    print(f"\nCompleted in {elapsed:.2f} seconds")
    if not args.quiet:
        print(f"Results saved to: {outdir.absolute()}")
        print(f"  - report.md")
        print(f"  - results.json")
        if not args.no_plots:
            print(f"  - *.png plots")

    if args.show:
        import matplotlib.pyplot as plt
        plt.show()


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    try:
        run(args)
    except InputValidationError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
