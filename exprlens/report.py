"""Exploratory expression report: load, summarize, plot, embed."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
import pandas as pd

from exprlens.config import ReportParams, build_report_params, load_json_config
from exprlens.context import STATUS_COMPLETE, STATUS_NO_DATA, ReportContext
from exprlens.design import (
    canonicalize_design,
    check_sample_alignment,
    group_counts,
    grouped_columns,
    list_design_columns,
    relabel_tissue,
    unique_values,
)
from exprlens.embedding import build_sample_anndata, combine_embeddings, run_tsne
from exprlens.environment import collect_session_info, session_info_table
from exprlens.io import (
    GENE_COL,
    close_logger,
    read_design_table,
    read_expression_table,
    setup_logger,
    write_json,
)
from exprlens.plotting import (
    apply_plot_style,
    is_clusterable,
    plot_correlation_clustermap,
    plot_style_dict,
    plot_tsne_facets,
    plot_value_histogram,
    write_tsne_pdf,
)
from exprlens.variance import (
    VARIANCE_COL,
    add_variance_column,
    sample_correlation,
    top_variance_genes,
    value_distribution,
    variance_threshold,
)

LOGGER_NAME = "exprlens_report"
MATRIX_LABELS = ("normalized", "raw")


def load_inputs(ctx: ReportContext) -> None:
    p = ctx.params
    ctx.logger.info("Reading normalized expression: %s", p.expression_path)
    ctx.tables["normalized"] = read_expression_table(p.expression_path, GENE_COL)
    ctx.logger.info("Reading raw expression: %s", p.raw_path)
    ctx.tables["raw"] = read_expression_table(p.raw_path, GENE_COL)
    ctx.logger.info("Reading design table: %s", p.design_path)
    ctx.tables["design"] = read_design_table(p.design_path)

    rows = []
    for label in (*MATRIX_LABELS, "design"):
        table = ctx.tables[label]
        rows.append({"table": label, "rows": int(table.shape[0]), "columns": int(table.shape[1])})
        ctx.logger.info("%s: %d rows x %d columns", label, table.shape[0], table.shape[1])
    ctx.add_heading("Inputs")
    ctx.add_table("input_shapes", pd.DataFrame(rows), caption="Input table dimensions")


def prepare_design(ctx: ReportContext) -> None:
    """Canonicalize tissue text and report sample alignment."""
    columns = ctx.params.columns
    ctx.tables["design"] = canonicalize_design(ctx.tables["design"], columns)

    ctx.add_heading("Sample alignment")
    alignment = {}
    for label in MATRIX_LABELS:
        aligned = check_sample_alignment(ctx.tables[label], ctx.tables["design"], columns, GENE_COL)
        alignment[label] = aligned
        ctx.add_text(f"{label} expression columns match design '{columns.sample}' order: {aligned}")
        if aligned:
            ctx.logger.info("Sample order of %s matrix matches design table.", label)
        else:
            ctx.logger.warning(
                "Sample order of %s matrix does not match design column '%s'.",
                label,
                columns.sample,
            )
    ctx.tables["alignment"] = alignment

    misaligned = [label for label, ok in alignment.items() if not ok]
    if misaligned and ctx.params.strict_alignment:
        msg = (
            f"Sample columns of {', '.join(misaligned)} matrix do not match design "
            f"column '{columns.sample}' (strict_alignment is enabled)."
        )
        ctx.logger.error(msg)
        raise ValueError(msg)


def list_columns(ctx: ReportContext) -> None:
    names = list_design_columns(ctx.tables["design"])
    ctx.add_heading("Design columns")
    ctx.add_text(", ".join(names))
    ctx.logger.info("Design columns: %s", ", ".join(names))


def has_enough_genes(ctx: ReportContext) -> bool:
    n_genes = int(ctx.tables["normalized"].shape[0])
    if n_genes < ctx.params.min_genes:
        ctx.logger.info(
            "Normalized matrix has %d gene row(s) (< %d); stopping report.",
            n_genes,
            ctx.params.min_genes,
        )
        ctx.add_text(f"Only {n_genes} gene row(s) available; nothing further to report.")
        return False
    return True


def summarize_design(ctx: ReportContext) -> None:
    design: pd.DataFrame = ctx.tables["design"]
    columns = ctx.params.columns

    ctx.add_heading("Unique values per design column")
    uniques = unique_values(design)
    uniques_table = pd.DataFrame(
        [
            {
                "column": col,
                "n_unique": len(values),
                "values": ", ".join("NA" if pd.isna(v) else str(v) for v in values),
            }
            for col, values in uniques.items()
        ]
    )
    ctx.add_table("unique_values", uniques_table)

    ctx.add_heading("Group counts")
    counts: dict[str, pd.DataFrame] = {}
    for col in grouped_columns(design, columns, ctx.params.group_exclude):
        counts[col] = group_counts(design, col)
        ctx.add_table(f"group_counts_{col}", counts[col], caption=col)
    ctx.tables["group_counts"] = counts

    relabeled = relabel_tissue(design, columns)
    ctx.tables["design"] = relabeled
    ctx.add_heading("Design with tissue counts")
    ctx.add_table("design_relabeled", relabeled)
    ctx.logger.info(
        "Tissue relabeled: %d distinct canonical value(s).",
        relabeled[columns.tissue_orig].nunique(dropna=True),
    )


def variability_view(ctx: ReportContext) -> None:
    quantile = ctx.params.variance_quantile
    ctx.add_heading("Top variable genes")

    top: dict[str, pd.DataFrame] = {}
    rows = []
    for label in MATRIX_LABELS:
        augmented = add_variance_column(ctx.tables[label], GENE_COL)
        ctx.tables[f"{label}_variance"] = augmented
        threshold = variance_threshold(augmented[VARIANCE_COL], quantile)
        top[label] = top_variance_genes(augmented, GENE_COL, quantile)
        rows.append(
            {
                "matrix": label,
                "n_genes": int(augmented.shape[0]),
                "quantile": quantile,
                "threshold": threshold,
                "n_top": int(top[label].shape[0]),
            }
        )
        ctx.logger.info(
            "%s: variance threshold %.6g at q=%.3g selects %d of %d genes",
            label,
            threshold,
            quantile,
            top[label].shape[0],
            augmented.shape[0],
        )
        ctx.add_table(
            f"top_variance_genes_{label}",
            top[label][[GENE_COL, VARIANCE_COL]],
            caption=f"{label}: genes above the variance threshold",
        )
    ctx.tables["top_variance"] = top
    ctx.add_table("variance_thresholds", pd.DataFrame(rows))

    ctx.add_heading("Value distribution")
    values = value_distribution(ctx.tables["normalized_variance"], GENE_COL)
    fig = plot_value_histogram(values, "Normalized expression values", style=ctx.style)
    ctx.add_figure("hist_normalized_values", fig)

    ctx.add_heading("Sample correlation of top variable genes")
    for label in ("raw", "normalized"):
        corr = sample_correlation(top[label], GENE_COL)
        ctx.tables[f"correlation_{label}"] = corr
        if not is_clusterable(corr):
            ctx.logger.warning(
                "Skipping %s correlation heatmap: %d top gene(s) give a non-finite "
                "or degenerate %dx%d correlation matrix.",
                label,
                top[label].shape[0],
                corr.shape[0],
                corr.shape[1],
            )
            ctx.add_text(
                f"{label}: correlation heatmap skipped ({top[label].shape[0]} top gene(s) "
                "are not enough for a finite sample correlation)."
            )
            continue
        fig = plot_correlation_clustermap(corr, f"{label}: top variable genes", style=ctx.style)
        ctx.add_figure(f"heatmap_correlation_{label}", fig)


def embedding_view(ctx: ReportContext) -> None:
    p = ctx.params
    columns = p.columns
    ctx.add_heading("t-SNE")

    embeddings = {}
    for label in MATRIX_LABELS:
        adata = build_sample_anndata(ctx.tables[label], GENE_COL)
        run_tsne(
            adata,
            perplexity=p.perplexity,
            max_iter=p.max_iter,
            seed=p.seed,
            logger=ctx.logger,
        )
        embeddings[label] = adata
        ctx.add_text(f"{label}: perplexity {adata.uns['tsne']['perplexity']:.4g}")
    ctx.tables["embeddings"] = embeddings

    combined = combine_embeddings(embeddings, ctx.tables["design"], columns)
    ctx.tables["tsne"] = combined
    ctx.add_table("tsne_coordinates", combined)

    color_fields = [columns.tissue, columns.instrument, columns.series]
    figures = {}
    try:
        for field in color_fields:
            figures[field] = plot_tsne_facets(
                combined,
                field,
                facet_order=MATRIX_LABELS,
                figsize=p.pdf_page_size,
                style=ctx.style,
            )
        pdf = write_tsne_pdf(list(figures.values()), p.pdf_path, page_size=p.pdf_page_size)
        ctx.logger.info("Wrote t-SNE PDF: %s", pdf)
        for field, fig in figures.items():
            ctx.add_figure(f"tsne_{field}", fig, caption=f"t-SNE colored by {field}")
    finally:
        for fig in figures.values():
            plt.close(fig)
    ctx.add_text(f"t-SNE plots written to {p.pdf_path}")


def session_info(ctx: ReportContext) -> None:
    info = collect_session_info()
    info["plot_style"] = plot_style_dict(ctx.style)
    write_json(ctx.logs_dir / "session_info.json", info)
    ctx.add_heading("Session info")
    ctx.add_table("session_info", session_info_table(info), max_rows=None)


def run_report(params: ReportParams, logger: logging.Logger | None = None) -> ReportContext:
    """Run every report stage in order and write ``report.html``.

    Returns the context with status ``"no_data"`` when the normalized matrix
    has too few genes, else ``"complete"``.
    """
    owns_logger = logger is None
    if logger is None:
        logger = setup_logger(params.outdir / "logs" / f"{LOGGER_NAME}.log", LOGGER_NAME)
    ctx = ReportContext(params=params, logger=logger)
    ctx.prepare_dirs()
    apply_plot_style(ctx.style)
    try:
        load_inputs(ctx)
        prepare_design(ctx)
        list_columns(ctx)
        if not has_enough_genes(ctx):
            ctx.status = STATUS_NO_DATA
            ctx.write_html()
            return ctx
        summarize_design(ctx)
        variability_view(ctx)
        embedding_view(ctx)
        session_info(ctx)
        ctx.status = STATUS_COMPLETE
        report = ctx.write_html()
        logger.info("Report complete: %s", report)
        return ctx
    finally:
        if owns_logger:
            close_logger(logger)


def run_report_from_config(
    config_path: str | Path | None, overrides: dict[str, Any] | None = None
) -> ReportContext:
    cfg = load_json_config(config_path) if config_path is not None else {}
    return run_report(build_report_params(cfg, overrides))
