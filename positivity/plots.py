"""Propensity score histograms, unweighted and IPTW-weighted."""
from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np


def plot_propensity(
    ps: np.ndarray,
    treatment: np.ndarray,
    weights: np.ndarray | None = None,
    ax=None,
    bins: int = 30,
):
    """
    Mirrored histogram of propensity scores by exposure group.

    Treated units are drawn above the axis and controls below it, on shared
    bins over [0, 1]. With ``weights`` the bar heights are sums of weights,
    i.e. the pseudo-population IPTW creates.

    Returns the ``Axes`` drawn on.
    """
    ps = np.asarray(ps, dtype=float)
    t  = np.asarray(treatment, dtype=float)
    w  = np.ones_like(ps) if weights is None else np.asarray(weights, dtype=float)

    if ax is None:
        _, ax = plt.subplots(figsize=(6, 4))

    edges = np.linspace(0.0, 1.0, bins + 1)
    treated, _ = np.histogram(ps[t == 1], bins=edges, weights=w[t == 1])
    control, _ = np.histogram(ps[t == 0], bins=edges, weights=w[t == 0])
    width = np.diff(edges)

    ax.bar(edges[:-1], treated, width=width, align="edge", alpha=0.6, label="Treated (x = 1)")
    ax.bar(edges[:-1], -control, width=width, align="edge", alpha=0.6, label="Control (x = 0)")
    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_xlim(0, 1)
    ax.set_xlabel("Propensity score")
    ax.set_ylabel("Weighted count" if weights is not None else "Count")
    ax.set_title("IPTW-weighted" if weights is not None else "Unweighted")
    ax.legend()
    return ax


def plot_propensity_comparison(
    ps: np.ndarray,
    treatment: np.ndarray,
    weights: np.ndarray,
    bins: int = 30,
):
    """Unweighted and weighted mirrored histograms side by side. Returns the ``Figure``."""
    fig, (left, right) = plt.subplots(1, 2, figsize=(12, 4), sharex=True)
    plot_propensity(ps, treatment, ax=left, bins=bins)
    plot_propensity(ps, treatment, weights=weights, ax=right, bins=bins)
    fig.suptitle("Propensity Score Distribution by Exposure Group")
    fig.tight_layout()
    return fig
