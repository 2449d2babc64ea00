"""Command-line interface for the exprlens report."""

from __future__ import annotations

import argparse
import logging
from typing import Iterable

from exprlens.config import build_report_params, load_json_config
from exprlens.report import run_report

logger = logging.getLogger("exprlens")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Exploratory report for normalized/raw expression matrices and a design table."
    )
    parser.add_argument("--config", default=None, help="Path to JSON report config.")
    parser.add_argument("--expression", dest="expression_path", help="Normalized expression TSV.")
    parser.add_argument("--raw", dest="raw_path", help="Raw expression TSV.")
    parser.add_argument("--design", dest="design_path", help="Sample design TSV.")
    parser.add_argument("--keyword", help="Free-text keyword for the report title.")
    parser.add_argument("--pdf", dest="pdf_path", help="Output PDF for the t-SNE plots.")
    parser.add_argument("--outdir", help="Output directory for report, tables and figures.")
    parser.add_argument("--seed", type=int, help="t-SNE random seed.")
    parser.add_argument(
        "--strict-alignment",
        dest="strict_alignment",
        action="store_true",
        default=None,
        help="Fail when expression sample columns do not match the design order.",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        0 on success (including an early exit for too few genes), 1 on error.
    """
    args = parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if k != "config"}
    try:
        cfg = load_json_config(args.config) if args.config else {}
        params = build_report_params(cfg, overrides)
        ctx = run_report(params)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
        logger.error("Report failed: %s", exc)
        return 1
    print(f"status={ctx.status}")
    print(f"report={ctx.report_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
