"""Shared plotting style settings for deterministic report figures."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns


@dataclass(frozen=True)
class PlotStyle:
    """Centralized plotting defaults used across report figures."""

    dpi: int = 150
    figsize_hist: tuple[float, float] = (7.0, 4.5)
    figsize_heatmap: tuple[float, float] = (9.0, 9.0)
    figsize_tsne: tuple[float, float] = (15.0, 10.0)
    hist_bins: int = 100
    s_point: float = 40.0
    alpha_point: float = 0.85
    legend_fontsize: int = 8
    axis_label_fontsize: int = 10
    title_fontsize: int = 12
    cmap_corr: str = "vlag"
    categorical_legend_trigger: int = 25
    categorical_legend_top_k: int = 20


DEFAULT_PLOT_STYLE = PlotStyle()


def apply_plot_style(style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    """Apply deterministic matplotlib rcParams for report plots."""
    plt.rcParams.update(
        {
            "figure.dpi": style.dpi,
            "savefig.dpi": style.dpi,
            "savefig.facecolor": "white",
            "font.family": "DejaVu Sans",
            "axes.titlesize": style.title_fontsize,
            "axes.labelsize": style.axis_label_fontsize,
            "legend.fontsize": style.legend_fontsize,
            "axes.grid": False,
        }
    )


def plot_style_dict(style: PlotStyle = DEFAULT_PLOT_STYLE) -> dict[str, Any]:
    """Return style + plotting library versions for the session dump."""
    d = asdict(style)
    d["matplotlib_version"] = str(matplotlib.__version__)
    d["seaborn_version"] = str(sns.__version__)
    d["numpy_version"] = str(np.__version__)
    return d
