"""exprlens public API."""

from exprlens._version import __version__
from exprlens.config import DesignColumns, ReportParams, build_report_params, load_json_config
from exprlens.design import (
    canonicalize_tissue,
    check_sample_alignment,
    group_counts,
    relabel_tissue,
)
from exprlens.embedding import combine_embeddings, resolve_perplexity, run_tsne
from exprlens.variance import top_variance_genes


def run_report(*args, **kwargs):
    """Lazy wrapper to avoid importing plotting dependencies at import time."""
    from exprlens.report import run_report as _run_report

    return _run_report(*args, **kwargs)


__all__ = [
    "__version__",
    "DesignColumns",
    "ReportParams",
    "build_report_params",
    "load_json_config",
    "canonicalize_tissue",
    "check_sample_alignment",
    "group_counts",
    "relabel_tissue",
    "top_variance_genes",
    "resolve_perplexity",
    "run_tsne",
    "combine_embeddings",
    "run_report",
]
