"""Report I/O and logging helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

GENE_COL = "gene_name"


def ensure_dir(path: str | Path) -> None:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)


def write_table(path: str | Path, table: pd.DataFrame, *, index: bool = False) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(out, sep="\t", index=index)
    return out


def setup_logger(log_path: Path, logger_name: str) -> logging.Logger:
    ensure_dir(log_path.parent)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)
    return logger


def close_logger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def _require_file(path: str | Path, label: str) -> Path:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"{label} file not found: {p}")
    return p


def read_expression_table(path: str | Path, gene_col: str = GENE_COL) -> pd.DataFrame:
    """Read a tab-delimited genes-by-samples matrix.

    The first column is taken as the gene key and renamed to ``gene_col``; all
    other columns are coerced to numeric sample columns.
    """
    p = _require_file(path, "Expression")
    table = pd.read_csv(p, sep="\t", header=0)
    if table.shape[1] < 2:
        raise ValueError(
            f"Expression table '{p}' has no sample columns (found {table.shape[1]} column)."
        )
    table = table.rename(columns={table.columns[0]: gene_col})
    table[gene_col] = table[gene_col].astype(str)
    sample_cols = [c for c in table.columns if c != gene_col]
    for col in sample_cols:
        try:
            table[col] = pd.to_numeric(table[col], errors="raise")
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Expression table '{p}' has non-numeric values in sample column '{col}': {exc}"
            ) from exc
    return table


def read_design_table(path: str | Path) -> pd.DataFrame:
    """Read the tab-delimited sample design table with every field as text."""
    p = _require_file(path, "Design")
    return pd.read_csv(p, sep="\t", header=0, dtype=str)


def sample_columns(matrix: pd.DataFrame, gene_col: str = GENE_COL) -> list[str]:
    return [str(c) for c in matrix.columns if c != gene_col]
