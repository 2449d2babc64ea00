"""Per-gene variance, top-variance selection and sample correlation."""

from __future__ import annotations

import numpy as np
import pandas as pd

from exprlens.io import GENE_COL

VARIANCE_COL = "variance"


def _value_columns(matrix: pd.DataFrame, gene_col: str) -> list:
    return [c for c in matrix.columns if c not in (gene_col, VARIANCE_COL)]


def add_variance_column(matrix: pd.DataFrame, gene_col: str = GENE_COL) -> pd.DataFrame:
    """Return a copy with a per-gene sample variance (ddof=1) column."""
    out = matrix.copy()
    out[VARIANCE_COL] = out[_value_columns(out, gene_col)].var(axis=1)
    return out


def variance_threshold(variances: pd.Series, quantile: float = 0.99) -> float:
    return float(pd.Series(variances, dtype=float).quantile(quantile))


def top_variance_genes(
    matrix: pd.DataFrame, gene_col: str = GENE_COL, quantile: float = 0.99
) -> pd.DataFrame:
    """Rows whose variance is strictly greater than the ``quantile`` threshold.

    The returned frame keeps the variance column.
    """
    augmented = matrix if VARIANCE_COL in matrix.columns else add_variance_column(matrix, gene_col)
    threshold = variance_threshold(augmented[VARIANCE_COL], quantile)
    return augmented.loc[augmented[VARIANCE_COL] > threshold].reset_index(drop=True)


def value_distribution(matrix: pd.DataFrame, gene_col: str = GENE_COL) -> np.ndarray:
    """Flattened numeric sample cells, excluding the gene key and variance."""
    values = matrix[_value_columns(matrix, gene_col)].to_numpy(dtype=float).ravel()
    return values[np.isfinite(values)]


def sample_correlation(subset: pd.DataFrame, gene_col: str = GENE_COL) -> pd.DataFrame:
    """Pearson sample-by-sample correlation over the given gene rows."""
    values = subset.set_index(gene_col)[_value_columns(subset, gene_col)]
    return values.astype(float).corr(method="pearson")
