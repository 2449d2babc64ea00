"""Value-distribution and correlation heatmap figure factories."""

from __future__ import annotations

import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from exprlens.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle


def plot_value_histogram(
    values: np.ndarray,
    title: str,
    *,
    xlabel: str = "expression value",
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> matplotlib.figure.Figure:
    fig, ax = plt.subplots(figsize=style.figsize_hist)
    ax.hist(np.asarray(values, dtype=float), bins=style.hist_bins, color="#4c72b0")
    ax.set_title(title, fontsize=style.title_fontsize)
    ax.set_xlabel(xlabel, fontsize=style.axis_label_fontsize)
    ax.set_ylabel("count", fontsize=style.axis_label_fontsize)
    fig.tight_layout()
    return fig


def is_clusterable(corr: pd.DataFrame) -> bool:
    """Hierarchical clustering needs at least two samples and finite values."""
    if corr.shape[0] < 2 or corr.shape[0] != corr.shape[1]:
        return False
    return bool(np.isfinite(corr.to_numpy(dtype=float)).all())


def plot_correlation_clustermap(
    corr: pd.DataFrame,
    title: str,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> matplotlib.figure.Figure:
    """Clustered sample-by-sample correlation heatmap (seaborn defaults)."""
    if not is_clusterable(corr):
        raise ValueError(
            f"Correlation matrix of shape {corr.shape} is not clusterable "
            "(needs >= 2 samples and finite values)."
        )
    grid = sns.clustermap(
        corr.astype(float),
        cmap=style.cmap_corr,
        figsize=style.figsize_heatmap,
        xticklabels=True,
        yticklabels=True,
    )
    grid.figure.suptitle(title, fontsize=style.title_fontsize, y=1.02)
    return grid.figure
