"""
IPT Plotting Utilities

This module provides plotting functions for visualizing placement results.
Uses matplotlib only.
"""

from pathlib import Path
from typing import Optional
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from .evaluate import PlacementRecord, WindowResult, RunResult


COLORS = ['#2E86AB', '#A23B72', '#F18F01', '#C73E1D', '#3B1F2B', '#6A994E']


def setup_style() -> None:
    """Set up matplotlib style for plots."""
    plt.rcParams.update({
        'font.size': 10,
        'axes.labelsize': 11,
        'axes.titlesize': 12,
        'xtick.labelsize': 9,
        'ytick.labelsize': 9,
        'legend.fontsize': 9,
        'figure.figsize': (8, 6),
        'figure.dpi': 150,
        'savefig.dpi': 150,
        'axes.grid': True,
        'grid.alpha': 0.3,
    })


def plot_record_placement(record: PlacementRecord,
                          L: int,
                          edo_steps: int,
                          outdir: Optional[Path] = None,
                          filename: Optional[str] = None,
                          show: bool = False) -> Figure:
    """Plot one ordering on a pitch-vs-column grid.

    Each column is one interval drawn from its low to its high endpoint;
    the float center is marked, octave lines are dashed, and the final
    pitch set is shown in the rightmost column.

    Args:
        record: Record to draw
        L: Window length in steps
        edo_steps: Steps per octave (octave grid lines)
        outdir: Directory to save plot (if provided)
        filename: File name inside outdir
        show: Whether to display the plot

    Returns:
        matplotlib Figure object
    """
    setup_style()

    n = len(record.perm)
    fig, ax = plt.subplots(figsize=(max(6, 1.2 * (n + 2)), 7))

    for octave in range(0, L + 1, edo_steps):
        ax.axhline(octave, color='grey', linestyle='--', linewidth=0.8, alpha=0.5)

    for idx, ((low, high), center) in enumerate(zip(record.endpoints, record.centers)):
        x = idx + 1
        color = COLORS[idx % len(COLORS)]
        ax.plot([x, x], [low, high], '-', linewidth=4, color=color, solid_capstyle='butt')
        ax.plot([x, x], [low, high], 'o', markersize=7, color=color)
        ax.plot(x, center, 'x', markersize=8, color='black')
        ax.annotate(str(record.perm[idx]), (x, high), textcoords="offset points",
                    xytext=(0, 6), ha='center', fontsize=9)

    x_pitch = n + 1.5
    ax.plot(np.full(len(record.pitches), x_pitch), record.pitches, 's',
            markersize=7, color='#444444')

    ax.set_xlim(0.3, n + 2.2)
    ax.set_ylim(-1, L + 2)
    ax.set_xticks(list(range(1, n + 1)) + [x_pitch])
    ax.set_xticklabels([str(i) for i in range(1, n + 1)] + ['pitches'])
    ax.set_xlabel('Column (ordering position)')
    ax.set_ylabel('Pitch (steps)')
    ax.set_title(f"{record.engine.label}: {' '.join(map(str, record.perm))}")

    ax.text(0.02, 0.98,
            f"total = {record.total:.4f}\nper pair = {record.per_pair:.4f}\n"
            f"prime = ({' '.join(map(str, record.prime_form))})",
            transform=ax.transAxes, ha='left', va='top',
            bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.5))

    plt.tight_layout()

    if outdir is not None:
        fig.savefig(outdir / (filename or "placement.png"), bbox_inches='tight')

    if show:
        plt.show()

    return fig


def plot_window_ranking(window: WindowResult,
                        outdir: Optional[Path] = None,
                        top_n: int = 30,
                        show: bool = False) -> Figure:
    """Bar chart of per-pair tension for the ranked orderings of one window.

    Args:
        window: Window result
        outdir: Directory to save plot
        top_n: Number of orderings shown
        show: Whether to display

    Returns:
        matplotlib Figure
    """
    setup_style()

    records = window.records[:top_n]
    fig, ax = plt.subplots(figsize=(10, 6))

    if records:
        labels = [' '.join(map(str, r.perm)) for r in records]
        values = [r.per_pair for r in records]
        ax.bar(range(len(records)), values, color='#2E86AB')
        ax.set_xticks(range(len(records)))
        ax.set_xticklabels(labels, rotation=60, ha='right', fontsize=8)
    else:
        ax.text(0.5, 0.5, 'No ordering fits this window', transform=ax.transAxes,
                ha='center', va='center')

    ax.set_xlabel('Ordering (ranked)')
    ax.set_ylabel('Tension per pair')
    ax.set_title(f'Ranking: O={window.octaves}, L={window.L}')

    plt.tight_layout()

    if outdir is not None:
        fig.savefig(outdir / f"ranking_O{window.octaves}.png", bbox_inches='tight')

    if show:
        plt.show()

    return fig


def plot_best_per_window(run: RunResult,
                         outdir: Optional[Path] = None,
                         show: bool = False) -> Figure:
    """Best and median per-pair tension against window size."""
    setup_style()

    fig, ax = plt.subplots(figsize=(8, 6))

    octaves = [O for O, w in run.windows.items() if w.records]
    best = [run.windows[O].records[0].per_pair for O in octaves]
    med = [float(np.median([r.per_pair for r in run.windows[O].records])) for O in octaves]

    ax.plot(octaves, best, 'o-', linewidth=2, markersize=7, color=COLORS[0], label='best')
    ax.plot(octaves, med, 's--', linewidth=1.5, markersize=6, color=COLORS[1], label='median')
    if run.reference_penalty > 0:
        ax.axhline(run.reference_penalty, color='grey', linestyle=':', label='one-step reference')

    ax.set_xlabel('Window (octaves)')
    ax.set_ylabel('Tension per pair')
    ax.set_title('Tension vs Register Window')
    ax.legend(loc='best')

    plt.tight_layout()

    if outdir is not None:
        fig.savefig(outdir / "tension_vs_window.png", bbox_inches='tight')

    if show:
        plt.show()

    return fig
