"""Runtime environment dump for report provenance."""

from __future__ import annotations

import importlib.metadata as importlib_metadata
import platform
import sys
from datetime import datetime, timezone
from typing import Any, Iterable

import pandas as pd

from exprlens._version import __version__

REPORT_PACKAGES = (
    "numpy",
    "pandas",
    "scipy",
    "matplotlib",
    "seaborn",
    "scikit-learn",
    "anndata",
)


def package_versions(packages: Iterable[str] = REPORT_PACKAGES) -> dict[str, str]:
    versions: dict[str, str] = {}
    for name in packages:
        try:
            versions[name] = importlib_metadata.version(name)
        except importlib_metadata.PackageNotFoundError:
            versions[name] = "not installed"
    return versions


def collect_session_info(packages: Iterable[str] = REPORT_PACKAGES) -> dict[str, Any]:
    return {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "exprlens_version": __version__,
        "python": platform.python_version(),
        "python_executable": sys.executable,
        "platform": platform.platform(),
        "machine": platform.machine(),
        "packages": package_versions(packages),
    }


def session_info_table(info: dict[str, Any]) -> pd.DataFrame:
    rows = [
        {"item": key, "value": str(value)}
        for key, value in info.items()
        if key != "packages"
    ]
    rows.extend(
        {"item": f"package:{name}", "value": version}
        for name, version in info.get("packages", {}).items()
    )
    return pd.DataFrame(rows, columns=["item", "value"])
