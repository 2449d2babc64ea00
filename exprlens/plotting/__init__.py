"""Plotting API for exprlens reports."""

from exprlens.plotting.distributions import (
    is_clusterable,
    plot_correlation_clustermap,
    plot_value_histogram,
)
from exprlens.plotting.embedding import plot_tsne_facets, write_tsne_pdf
from exprlens.plotting.styles import (
    DEFAULT_PLOT_STYLE,
    PlotStyle,
    apply_plot_style,
    plot_style_dict,
)
from exprlens.plotting.utils import sanitize_label, save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "save_figure",
    "sanitize_label",
    "plot_value_histogram",
    "plot_correlation_clustermap",
    "is_clusterable",
    "plot_tsne_facets",
    "write_tsne_pdf",
]
