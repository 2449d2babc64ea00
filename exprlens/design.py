"""Design-table canonicalization, alignment checks and group summaries."""

from __future__ import annotations

import re
from typing import Iterable

import pandas as pd

from exprlens.config import DesignColumns
from exprlens.io import GENE_COL, sample_columns

# Single-species (human) input is assumed.
_SPECIES_TOKENS = re.compile(r"homo sapiens |human")


def canonicalize_tissue(value):
    """Case-fold a tissue label, strip species tokens and trim whitespace.

    Token removal repeats until nothing changes, so the transform is
    idempotent. Missing values are returned unchanged.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return value
    text = str(value).lower()
    while True:
        stripped = _SPECIES_TOKENS.sub("", text)
        if stripped == text:
            break
        text = stripped
    return text.strip()


def require_columns(design: pd.DataFrame, names: Iterable[str]) -> None:
    missing = [n for n in names if n not in design.columns]
    if missing:
        raise KeyError(
            f"Design table missing required column(s): {', '.join(missing)}. "
            f"Available: {', '.join(map(str, design.columns))}"
        )


def canonicalize_design(design: pd.DataFrame, columns: DesignColumns) -> pd.DataFrame:
    require_columns(design, [columns.tissue])
    out = design.copy()
    out[columns.tissue] = out[columns.tissue].map(canonicalize_tissue)
    return out


def check_sample_alignment(
    expression: pd.DataFrame,
    design: pd.DataFrame,
    columns: DesignColumns,
    gene_col: str = GENE_COL,
) -> bool:
    """True iff expression sample columns equal the design sample ids, in order."""
    require_columns(design, [columns.sample])
    expr_samples = sample_columns(expression, gene_col)
    design_samples = [str(s) for s in design[columns.sample].tolist()]
    return expr_samples == design_samples


def list_design_columns(design: pd.DataFrame) -> list[str]:
    return [str(c) for c in design.columns]


def unique_values(design: pd.DataFrame) -> dict[str, list]:
    """Distinct values per design column, in first-seen order."""
    return {str(col): pd.unique(design[col]).tolist() for col in design.columns}


def grouped_columns(
    design: pd.DataFrame,
    columns: DesignColumns,
    exclude: Iterable[str] | None = None,
) -> list[str]:
    """Design columns to tabulate: everything except a named denylist."""
    if exclude is None:
        exclude = (columns.sample, columns.series, columns.description)
    deny = set(exclude)
    return [str(c) for c in design.columns if c not in deny]


def group_counts(design: pd.DataFrame, column: str) -> pd.DataFrame:
    """Count samples per distinct value of ``column``, most frequent first.

    Ties keep first-seen order (stable sort).
    """
    require_columns(design, [column])
    table = (
        design.groupby(column, sort=False, dropna=False)
        .size()
        .reset_index(name="n")
    )
    table["n"] = table["n"].astype(int)
    table = table.sort_values("n", ascending=False, kind="mergesort")
    return table.reset_index(drop=True)


def relabel_tissue(design: pd.DataFrame, columns: DesignColumns) -> pd.DataFrame:
    """Replace tissue with ``"<canonical> (<count>)"``.

    The canonical value moves to ``columns.tissue_orig``. Expects a design
    table whose tissue column is already canonicalized.
    """
    require_columns(design, [columns.tissue])
    counts = group_counts(design, columns.tissue)
    lookup = {
        value: n for value, n in zip(counts[columns.tissue], counts["n"]) if not pd.isna(value)
    }
    out = design.rename(columns={columns.tissue: columns.tissue_orig})
    labels = []
    for value in out[columns.tissue_orig]:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            labels.append(value)
        else:
            labels.append(f"{value} ({lookup[value]})")
    out[columns.tissue] = labels
    return out
