"""
sreach_lag Command Line Interface.

This module provides a CLI for running Lagrangian reach-set computations
described by a YAML problem file.

Usage:
    sreach-lag analyze --problem problem.yaml --output result.json
    sreach-lag validate --problem problem.yaml
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np

from sreach_lag.exceptions import ReachError


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sreach-lag",
        description="Lagrangian under/overapproximation of stochastic reach sets",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Compute the approximation",
    )
    analyze_parser.add_argument(
        "--problem",
        required=True,
        help="Path to problem YAML file",
    )
    analyze_parser.add_argument(
        "--method",
        choices=["lag-under", "lag-over"],
        help="Override the method given in the problem file",
    )
    analyze_parser.add_argument(
        "--output", "-o",
        help="Write a JSON summary to this path",
    )
    analyze_parser.add_argument(
        "--plot",
        help="Save a plot of the approximation (2D states only)",
    )
    analyze_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a problem file",
    )
    validate_parser.add_argument(
        "--problem",
        required=True,
        help="Path to problem YAML file",
    )

    return parser


def set_to_dict(convex_set) -> dict:
    """JSON-friendly facet/vertex description of a ConvexSet."""
    if convex_set.is_empty():
        return {"dim": convex_set.dim, "empty": True}
    return {
        "dim": convex_set.dim,
        "empty": False,
        "A": convex_set.A.tolist(),
        "b": convex_set.b.tolist(),
        "Ae": convex_set.Ae.tolist(),
        "be": convex_set.be.tolist(),
        "vertices": convex_set.V.tolist(),
    }


def result_to_dict(result) -> dict:
    out = {
        "method": result.method,
        "probability": result.prob_thresh,
        "disturbance_level": result.disturbance_level,
        "approx_set": set_to_dict(result.approx_set),
        "effective_tube": [set_to_dict(s) for s in result.effective_tube] if result.effective_tube else None,
        "diagnostics": [
            {"code": a.code, "message": a.message, "context": {k: _plain(v) for k, v in a.context.items()}}
            for a in result.diagnostics
        ],
    }
    return out


def _plain(value):
    if isinstance(value, np.generic):
        return value.item()
    return value


def cmd_analyze(args) -> int:
    """Run the Lagrangian computation."""
    from sreach_lag.config.problem import ProblemSpec

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        spec = ProblemSpec.from_yaml(args.problem)
        if args.method:
            spec.method = args.method
            spec.options.pop("method", None)
        if args.verbose:
            print(f"Loaded problem from: {args.problem}")
            print(f"  Method: {spec.method}")
            print(f"  Probability: {spec.probability}")

        result = spec.solve(**({"verbose": True} if args.verbose else {}))

        summary = result_to_dict(result)
        approx = result.approx_set
        print(f"\nLagrangian {spec.method} complete")
        if approx.is_empty():
            print("  Approximation: empty set")
        else:
            lower, upper = approx.bounds()
            print(f"  Vertices: {approx.n_vertices}")
            print(f"  Bounding box lower: {np.round(lower, 6).tolist()}")
            print(f"  Bounding box upper: {np.round(upper, 6).tolist()}")
        for advisory in result.diagnostics:
            print(f"  Warning [{advisory.code}]: {advisory.message}")

        if args.output:
            path = Path(args.output)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                json.dump(summary, f, indent=2)
            print(f"\nResults saved to: {path}")

        if args.plot:
            import matplotlib
            matplotlib.use("Agg")
            import matplotlib.pyplot as plt
            from sreach_lag.plotting import plot_result

            ax = plot_result(result, safety_tube=spec.build_tube())
            ax.figure.savefig(args.plot, dpi=150)
            plt.close(ax.figure)
            print(f"Plot saved to: {args.plot}")

        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ReachError as e:
        print(f"Error during analysis: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def cmd_validate(args) -> int:
    """Validate a problem file."""
    from sreach_lag.config.problem import ProblemSpec

    try:
        spec = ProblemSpec.from_yaml(args.problem)
        warnings = spec.validate()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ReachError as e:
        print(f"\nErrors:\n  - {e}")
        return 1

    system = spec.build_system()
    tube = spec.build_tube()
    print(f"Problem file: {args.problem}")
    print(f"  Method: {spec.method}")
    print(f"  Probability: {spec.probability}")
    print(f"  States: {system.state_dim}")
    print(f"  Inputs: {system.input_dim}")
    print(f"  Horizon: {tube.horizon}")

    if warnings:
        print("\nWarnings:")
        for w in warnings:
            print(f"  - {w}")

    print("\nValidation passed!")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "analyze":
        return cmd_analyze(args)
    elif args.command == "validate":
        return cmd_validate(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
