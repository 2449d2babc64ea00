"""Report context threaded through every pipeline stage."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import matplotlib.figure
import pandas as pd

from exprlens.config import ReportParams
from exprlens.io import ensure_dir, write_table
from exprlens.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle
from exprlens.plotting.utils import sanitize_label, save_figure

STATUS_RUNNING = "running"
STATUS_NO_DATA = "no_data"
STATUS_COMPLETE = "complete"

_CSS = """
body { font-family: -apple-system, 'Segoe UI', Helvetica, Arial, sans-serif; margin: 2em; color: #1f2933; }
h1 { border-bottom: 2px solid #e5e7eb; padding-bottom: 0.3em; }
table { border-collapse: collapse; margin: 0.5em 0 1.5em 0; font-size: 0.9em; }
th, td { border: 1px solid #e5e7eb; padding: 0.25em 0.6em; text-align: left; }
th { background: #f3f4f6; }
img { max-width: 100%; height: auto; border: 1px solid #e5e7eb; margin-bottom: 1.5em; }
pre { background: #f9fafb; padding: 0.6em; }
p.meta { color: #6b7280; }
"""


@dataclass
class ReportContext:
    """Accumulates report sections and working tables for one run."""

    params: ReportParams
    logger: logging.Logger
    style: PlotStyle = DEFAULT_PLOT_STYLE
    sections: list[dict[str, Any]] = field(default_factory=list)
    tables: dict[str, Any] = field(default_factory=dict)
    figure_paths: dict[str, Path] = field(default_factory=dict)
    status: str = STATUS_RUNNING
    started_utc: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def outdir(self) -> Path:
        return self.params.outdir

    @property
    def figures_dir(self) -> Path:
        return self.outdir / "figures"

    @property
    def tables_dir(self) -> Path:
        return self.outdir / "tables"

    @property
    def logs_dir(self) -> Path:
        return self.outdir / "logs"

    @property
    def report_path(self) -> Path:
        return self.outdir / "report.html"

    @property
    def title(self) -> str:
        keyword = self.params.keyword.strip()
        return f"Exploratory analysis: {keyword}" if keyword else "Exploratory analysis"

    def prepare_dirs(self) -> None:
        for d in (self.outdir, self.figures_dir, self.tables_dir, self.logs_dir):
            ensure_dir(d)

    def add_heading(self, text: str, level: int = 2) -> None:
        self.sections.append({"kind": "heading", "text": str(text), "level": int(level)})

    def add_text(self, text: str, *, preformatted: bool = False) -> None:
        self.sections.append(
            {"kind": "text", "text": str(text), "preformatted": bool(preformatted)}
        )

    def add_table(
        self,
        name: str,
        table: pd.DataFrame,
        *,
        caption: str | None = None,
        index: bool = False,
        max_rows: int | None = 50,
    ) -> Path:
        """Record a table in the report and write it in full as TSV."""
        out = write_table(self.tables_dir / f"{sanitize_label(name, 64)}.tsv", table, index=index)
        self.sections.append(
            {
                "kind": "table",
                "name": name,
                "table": table,
                "caption": caption,
                "index": index,
                "max_rows": max_rows,
                "path": out,
            }
        )
        return out

    def add_figure(
        self,
        name: str,
        fig: matplotlib.figure.Figure,
        *,
        caption: str | None = None,
        close: bool = True,
    ) -> Path:
        out = save_figure(
            fig,
            self.figures_dir / f"{sanitize_label(name, 64)}.png",
            style=self.style,
            bbox_tight=True,
            close=close,
        )
        self.figure_paths[name] = out
        self.sections.append({"kind": "figure", "name": name, "path": out, "caption": caption})
        return out

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.outdir.resolve()).as_posix()
        except ValueError:
            return path.resolve().as_posix()

    def _render_section(self, section: dict[str, Any]) -> list[str]:
        kind = section["kind"]
        if kind == "heading":
            level = min(max(int(section["level"]), 2), 4)
            return [f"<h{level}>{html.escape(section['text'])}</h{level}>"]
        if kind == "text":
            if section["preformatted"]:
                return [f"<pre>{html.escape(section['text'])}</pre>"]
            return [f"<p>{html.escape(section['text'])}</p>"]
        if kind == "table":
            table: pd.DataFrame = section["table"]
            lines = []
            if section["caption"]:
                lines.append(f"<p><strong>{html.escape(section['caption'])}</strong></p>")
            shown = table if section["max_rows"] is None else table.head(section["max_rows"])
            lines.append(shown.to_html(index=section["index"], escape=True, na_rep="NA"))
            if section["max_rows"] is not None and table.shape[0] > section["max_rows"]:
                lines.append(
                    f"<p class='meta'>Showing {section['max_rows']} of {table.shape[0]} rows. "
                    f"Full table: <a href='{html.escape(self._relative(section['path']))}'>"
                    f"{html.escape(section['path'].name)}</a></p>"
                )
            return lines
        if kind == "figure":
            rel = html.escape(self._relative(section["path"]))
            alt = html.escape(section["caption"] or section["name"])
            lines = [f"<img src='{rel}' alt='{alt}'>"]
            if section["caption"]:
                lines.insert(0, f"<p><strong>{html.escape(section['caption'])}</strong></p>")
            return lines
        raise ValueError(f"Unknown report section kind: {kind!r}")

    def write_html(self) -> Path:
        """Render the accumulated sections to ``report.html``."""
        title = html.escape(self.title)
        lines = [
            "<!DOCTYPE html>",
            "<html lang='en'>",
            "<head>",
            "<meta charset='utf-8'>",
            f"<title>{title}</title>",
            f"<style>{_CSS}</style>",
            "</head>",
            "<body>",
            f"<h1>{title}</h1>",
            f"<p class='meta'>Generated {html.escape(self.started_utc)} | status: {html.escape(self.status)}</p>",
        ]
        for section in self.sections:
            lines.extend(self._render_section(section))
        lines.extend(["</body>", "</html>"])
        ensure_dir(self.outdir)
        self.report_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return self.report_path
