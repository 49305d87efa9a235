#!/usr/bin/env python3
"""
Example: Lagrangian under- and overapproximation of a stochastic reach set.

This script demonstrates the end-to-end workflow:
1. Load the problem description from YAML
2. Compute the underapproximation and the overapproximation
3. Display the results and save a plot

Usage:
    python run_analysis.py
"""

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from sreach_lag.config import ProblemSpec
from sreach_lag.plotting import plot_set

# Path setup
SCRIPT_DIR = Path(__file__).parent
OUTPUT_DIR = SCRIPT_DIR / "results"


def run_analysis():
    """Compute both approximations for the problem file."""
    spec = ProblemSpec.from_yaml(SCRIPT_DIR / "problem.yaml")

    print("Running Lagrangian reach-set analysis...")
    print(f"  Probability: {spec.probability}")
    print(f"  Horizon: {spec.tube.horizon}")

    under = spec.solve()
    spec.method = "lag-over"
    over = spec.solve()
    return spec, under, over


def display_results(under, over):
    """Display analysis results."""
    print("\n" + "=" * 60)
    print("LAGRANGIAN REACH-SET RESULTS")
    print("=" * 60)

    for result in (under, over):
        print(f"\nMethod: {result.method}")
        print(f"Per-step disturbance level: {result.disturbance_level:.6f}")
        if result.approx_set.is_empty():
            print("Approximation is empty")
            continue
        lower, upper = result.approx_set.bounds()
        print(f"Vertices: {result.approx_set.n_vertices}")
        print(f"Area: {result.approx_set.volume():.6f}")
        for i, (lo, hi) in enumerate(zip(lower, upper)):
            print(f"  State {i}: [{lo:.6f}, {hi:.6f}]")
        for advisory in result.diagnostics:
            print(f"  Warning [{advisory.code}]: {advisory.message}")


def save_plot(spec, under, over):
    OUTPUT_DIR.mkdir(exist_ok=True)
    fig, ax = plt.subplots(figsize=(6, 6))
    tube = spec.build_tube()
    plot_set(tube[0], ax=ax, color="lightgray", alpha=0.6, label="safe set")
    plot_set(over.approx_set, ax=ax, color="tab:red", alpha=0.4, label="overapproximation")
    plot_set(under.approx_set, ax=ax, color="tab:green", alpha=0.6, label="underapproximation")
    ax.set_xlabel("$x_1$")
    ax.set_ylabel("$x_2$")
    ax.set_aspect("equal", adjustable="datalim")
    ax.legend()
    path = OUTPUT_DIR / "reach_sets.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    print(f"\nPlot saved to: {path}")


def main():
    """Main entry point."""
    print("sreach_lag Double Integrator Example")
    print("-" * 40)

    spec, under, over = run_analysis()
    display_results(under, over)
    save_plot(spec, under, over)

    return 0


if __name__ == "__main__":
    sys.exit(main())
