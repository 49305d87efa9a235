"""Plotting helpers for two-dimensional sets and tubes."""

from .sets import plot_set, plot_tube, plot_result

__all__ = ["plot_set", "plot_tube", "plot_result"]
