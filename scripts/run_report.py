#!/usr/bin/env python3
"""CLI entrypoint for running the exprlens report from a pipeline step."""

from __future__ import annotations

import argparse

from exprlens.report import run_report_from_config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the exploratory expression report from a JSON config."
    )
    parser.add_argument(
        "--config", required=True, help="Path to JSON config for the report."
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    run_report_from_config(str(args.config))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
