import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon

from sreach_lag.exceptions import InvalidArgumentsError


def _ordered_vertices(convex_set):
    """Vertices of a 2D set sorted counterclockwise around their centroid."""
    V = convex_set.V
    center = V.mean(axis=0)
    angles = np.arctan2(V[:, 1] - center[1], V[:, 0] - center[0])
    return V[np.argsort(angles)]


def plot_set(convex_set, ax=None, color="tab:blue", alpha=0.4, label=None, **kwargs):
    """
    Draw a 2D ConvexSet as a filled polygon.

    Empty sets draw nothing; flat sets are drawn as a line or a marker.

    Returns:
        the matplotlib Axes used
    """
    if convex_set.dim != 2:
        raise InvalidArgumentsError(f"plot_set draws 2D sets only, got dimension {convex_set.dim}")
    if ax is None:
        ax = plt.gca()
    if convex_set.is_empty():
        return ax

    V = _ordered_vertices(convex_set)
    if V.shape[0] < 3:
        ax.plot(V[:, 0], V[:, 1], marker="o", color=color, label=label)
    else:
        ax.add_patch(Polygon(V, closed=True, facecolor=color, edgecolor=color, alpha=alpha, label=label, **kwargs))
    ax.autoscale_view()
    return ax


def plot_tube(tube, ax=None, cmap="viridis", alpha=0.3, label_prefix="t"):
    """
    Overlay every set of a 2D tube, colored by time index.
    """
    if ax is None:
        ax = plt.gca()
    colors = plt.get_cmap(cmap)(np.linspace(0, 1, len(tube)))
    for t, (s, c) in enumerate(zip(tube, colors)):
        plot_set(s, ax=ax, color=c, alpha=alpha, label=f"{label_prefix}={t}")
    return ax


def plot_result(result, safety_tube=None, ax=None, title=None):
    """
    Plot the safe set at t=0 and the approximation returned by sreach_set_lag.
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(6, 6))
    if safety_tube is not None:
        plot_set(safety_tube[0], ax=ax, color="lightgray", alpha=0.6, label="safe set")
    name = "underapproximation" if result.method == "lag-under" else "overapproximation"
    plot_set(result.approx_set, ax=ax, color="tab:green" if result.method == "lag-under" else "tab:red",
             alpha=0.5, label=name)
    ax.set_xlabel("$x_1$")
    ax.set_ylabel("$x_2$")
    ax.set_aspect("equal", adjustable="datalim")
    ax.set_title(title or f"Lagrangian {name}, p = {result.prob_thresh}")
    ax.legend()
    return ax
