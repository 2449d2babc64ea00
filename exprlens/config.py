"""Configuration loading utilities for exprlens reports."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

REQUIRED_PATH_KEYS = ("expression_path", "raw_path", "design_path")


@dataclass(frozen=True)
class DesignColumns:
    """Names of the fixed design-table fields."""

    sample: str = "sample_id"
    series: str = "series_id"
    description: str = "description"
    tissue: str = "tissue"
    instrument: str = "instrument"
    tissue_orig: str = "tissue_orig"


@dataclass(frozen=True)
class ReportParams:
    expression_path: Path
    raw_path: Path
    design_path: Path
    keyword: str
    pdf_path: Path
    outdir: Path
    strict_alignment: bool
    variance_quantile: float
    perplexity: float
    max_iter: int
    seed: int
    pdf_page_size: tuple[float, float]
    min_genes: int
    columns: DesignColumns = field(default_factory=DesignColumns)
    group_exclude: tuple[str, ...] | None = None


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a report config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def _build_columns(raw: Any) -> DesignColumns:
    if raw is None:
        return DesignColumns()
    if not isinstance(raw, dict):
        raise ValueError(f"'columns' must be a JSON object, got {type(raw).__name__}.")
    known = set(DesignColumns.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(
            f"Unknown design column keys: {', '.join(unknown)}. "
            f"Expected a subset of: {', '.join(sorted(known))}."
        )
    return DesignColumns(**{k: str(v) for k, v in raw.items()})


def _page_size(raw: Any) -> tuple[float, float]:
    try:
        width, height = (float(v) for v in raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"'pdf_page_size' must be a pair of numbers, got {raw!r}."
        ) from exc
    if width <= 0 or height <= 0:
        raise ValueError(f"'pdf_page_size' must be positive, got {raw!r}.")
    return width, height


def build_report_params(
    cfg: dict[str, Any], overrides: dict[str, Any] | None = None
) -> ReportParams:
    """Resolve report parameters from a config dict plus non-None overrides."""
    merged = dict(cfg)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    missing = [k for k in REQUIRED_PATH_KEYS if not merged.get(k)]
    if missing:
        raise ValueError(f"Missing required report inputs: {', '.join(missing)}.")

    outdir = Path(merged.get("outdir", "."))
    pdf_path = Path(merged.get("pdf_path") or outdir / "tsne_plots.pdf")

    quantile = float(merged.get("variance_quantile", 0.99))
    if not 0.0 < quantile < 1.0:
        raise ValueError(f"'variance_quantile' must lie in (0, 1), got {quantile}.")
    perplexity = float(merged.get("perplexity", 30.0))
    if perplexity <= 0:
        raise ValueError(f"'perplexity' must be positive, got {perplexity}.")

    exclude = merged.get("group_exclude")
    return ReportParams(
        expression_path=Path(merged["expression_path"]),
        raw_path=Path(merged["raw_path"]),
        design_path=Path(merged["design_path"]),
        keyword=str(merged.get("keyword", "")),
        pdf_path=pdf_path,
        outdir=outdir,
        strict_alignment=bool(merged.get("strict_alignment", False)),
        variance_quantile=quantile,
        perplexity=perplexity,
        max_iter=int(merged.get("max_iter", 1000)),
        seed=int(merged.get("seed", 0)),
        pdf_page_size=_page_size(merged.get("pdf_page_size", (15.0, 10.0))),
        min_genes=int(merged.get("min_genes", 2)),
        columns=_build_columns(merged.get("columns")),
        group_exclude=tuple(str(c) for c in exclude) if exclude is not None else None,
    )
