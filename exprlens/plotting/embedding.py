"""Faceted t-SNE scatter plots and the multi-page PDF artifact."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import matplotlib.figure
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

from exprlens.embedding import COORD_COLS, TYPE_COL
from exprlens.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle


def _compressed_categorical_labels(
    labels: pd.Series,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> tuple[pd.Series, list[str]]:
    labels_str = labels.astype("string").fillna("NA").astype(str)
    counts = (
        labels_str.value_counts(sort=False)
        .rename_axis("category")
        .reset_index(name="count")
        .sort_values(
            by=["count", "category"], ascending=[False, True], kind="mergesort"
        )
    )
    ordered_categories = counts["category"].astype(str).tolist()
    if int(len(ordered_categories)) <= style.categorical_legend_trigger:
        return labels_str, ordered_categories
    top = ordered_categories[: style.categorical_legend_top_k]
    n_more = int(len(ordered_categories) - len(top))
    other_label = f"Other ({n_more} categories)"
    compressed = labels_str.where(labels_str.isin(top), other_label)
    return compressed, top + [other_label]


def _palette_for_categories(
    categories: list[str],
) -> dict[str, tuple[float, float, float, float]]:
    cmap = plt.get_cmap("tab20")
    palette = {cat: cmap(i % 20) for i, cat in enumerate(categories)}
    if categories and categories[-1].startswith("Other ("):
        palette[categories[-1]] = (0.7, 0.7, 0.7, 1.0)
    return palette


def plot_tsne_facets(
    combined: pd.DataFrame,
    color_by: str,
    *,
    title: str | None = None,
    facet_order: Sequence[str] | None = None,
    figsize: tuple[float, float] | None = None,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> matplotlib.figure.Figure:
    """One panel per ``type`` value, points colored by ``color_by``.

    Each facet keeps its own axis limits since the embeddings are computed
    independently.
    """
    if color_by not in combined.columns:
        raise KeyError(f"Column '{color_by}' not found in embedding table.")
    facets = list(facet_order) if facet_order is not None else list(pd.unique(combined[TYPE_COL]))
    labels, categories = _compressed_categorical_labels(combined[color_by], style=style)
    palette = _palette_for_categories(categories)

    fig, axes = plt.subplots(
        1, len(facets), figsize=figsize or style.figsize_tsne, squeeze=False
    )
    x_col, y_col = COORD_COLS
    for ax, facet in zip(axes[0], facets):
        in_facet = (combined[TYPE_COL] == facet).to_numpy()
        for cat in categories:
            mask = in_facet & (labels == cat).to_numpy()
            if not mask.any():
                continue
            ax.scatter(
                combined.loc[mask, x_col],
                combined.loc[mask, y_col],
                color=palette[cat],
                s=style.s_point,
                alpha=style.alpha_point,
                linewidths=0,
                label=cat,
            )
        ax.set_title(str(facet), fontsize=style.title_fontsize)
        ax.set_xlabel(x_col, fontsize=style.axis_label_fontsize)
        ax.set_ylabel(y_col, fontsize=style.axis_label_fontsize)

    handles, legend_labels = [], []
    for ax in axes[0]:
        for handle, label in zip(*ax.get_legend_handles_labels()):
            if label not in legend_labels:
                handles.append(handle)
                legend_labels.append(label)
    if handles:
        fig.legend(
            handles,
            legend_labels,
            loc="center right",
            title=color_by,
            fontsize=style.legend_fontsize,
            frameon=True,
        )
    fig.suptitle(title or f"t-SNE colored by {color_by}", fontsize=style.title_fontsize)
    fig.tight_layout(rect=(0.0, 0.0, 0.85, 0.95))
    return fig


def write_tsne_pdf(
    figures: Iterable[matplotlib.figure.Figure],
    pdf_path: str | Path,
    *,
    page_size: tuple[float, float] = (15.0, 10.0),
) -> Path:
    """Write figures in order, one per page, at a fixed page size."""
    out = Path(pdf_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with PdfPages(out) as pdf:
        for fig in figures:
            fig.set_size_inches(*page_size)
            pdf.savefig(fig)
    return out
