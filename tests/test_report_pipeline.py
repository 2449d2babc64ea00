from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd
import pytest

os.environ.setdefault("MPLBACKEND", "Agg")
matplotlib.use("Agg", force=True)

from exprlens import report
from exprlens.config import build_report_params
from exprlens.context import STATUS_COMPLETE, STATUS_NO_DATA


def _write_matrix(path: Path, values: np.ndarray, samples: list[str], key: str = "ID_REF") -> Path:
    frame = pd.DataFrame(values, columns=samples)
    frame.insert(0, key, [f"GENE{i + 1}" for i in range(values.shape[0])])
    frame.to_csv(path, sep="\t", index=False)
    return path


def _write_design(path: Path, samples: list[str], tissues: list[str]) -> Path:
    n = len(samples)
    pd.DataFrame(
        {
            "sample_id": samples,
            "series_id": ["GSE100", "GSE200"] * (n // 2) + ["GSE100"] * (n % 2),
            "description": [f"donor {i}" for i in range(n)],
            "tissue": tissues,
            "instrument": ["Illumina HiSeq 2500"] * (n - n // 2) + ["NovaSeq 6000"] * (n // 2),
            "sex": ["F", "M"] * (n // 2) + ["F"] * (n % 2),
        }
    ).to_csv(path, sep="\t", index=False)
    return path


def _params(tmp_path: Path, norm: Path, raw: Path, design: Path, **extra):
    cfg = {
        "expression_path": str(norm),
        "raw_path": str(raw),
        "design_path": str(design),
        "keyword": "liver survey",
        "outdir": str(tmp_path / "out"),
        "pdf_path": str(tmp_path / "out" / "tsne.pdf"),
        "max_iter": 250,
    }
    cfg.update(extra)
    return build_report_params(cfg)


@pytest.fixture
def liver_inputs(tmp_path: Path):
    samples = ["S1", "S2", "S3", "S4"]
    norm = np.array(
        [[1.0, 2.0, 3.0, 4.0], [2.0, 2.5, 1.0, 0.5], [10.0, 0.0, 7.0, 3.0]]
    )
    raw = np.round(np.exp(norm)) + np.arange(12).reshape(3, 4)
    tissues = ["Homo sapiens Liver", "human liver", " Liver ", "LIVER"]
    return (
        _write_matrix(tmp_path / "norm.tsv", norm, samples),
        _write_matrix(tmp_path / "raw.tsv", raw, samples),
        _write_design(tmp_path / "design.tsv", samples, tissues),
    )


def test_liver_scenario_end_to_end(tmp_path: Path, liver_inputs, caplog):
    caplog.set_level(logging.WARNING)
    params = _params(tmp_path, *liver_inputs)
    ctx = report.run_report(params, logger=logging.getLogger("test"))

    assert ctx.status == STATUS_COMPLETE
    design = ctx.tables["design"]
    assert design["tissue"].tolist() == ["liver (4)"] * 4
    assert design["tissue_orig"].tolist() == ["liver"] * 4

    tissue_counts = ctx.tables["group_counts"]["tissue"]
    assert tissue_counts["tissue"].tolist() == ["liver"]
    assert tissue_counts["n"].tolist() == [4]
    assert set(ctx.tables["group_counts"]) == {"tissue", "instrument", "sex"}

    assert ctx.tables["alignment"] == {"normalized": True, "raw": True}
    for label in ("normalized", "raw"):
        assert ctx.tables["embeddings"][label].uns["tsne"]["perplexity"] == pytest.approx(1.0)

    combined = ctx.tables["tsne"]
    assert combined.shape[0] == 8
    assert set(combined["type"]) == {"normalized", "raw"}

    assert params.pdf_path.exists()
    assert ctx.report_path.exists()
    html = ctx.report_path.read_text(encoding="utf-8")
    assert "Exploratory analysis: liver survey" in html
    assert "liver (4)" in html
    assert (ctx.tables_dir / "group_counts_tissue.tsv").exists()
    assert (ctx.logs_dir / "session_info.json").exists()
    for field in ("tissue", "instrument", "series_id"):
        assert ctx.figure_paths[f"tsne_{field}"].exists()

    assert "Skipping raw correlation heatmap" in caplog.text
    assert "Skipping normalized correlation heatmap" in caplog.text
    texts = [s["text"] for s in ctx.sections if s["kind"] == "text"]
    assert any(t.startswith("raw: correlation heatmap skipped") for t in texts)
    assert any(t.startswith("normalized: correlation heatmap skipped") for t in texts)
    assert "correlation heatmap skipped" in html
    assert "heatmap_correlation_raw" not in ctx.figure_paths


def test_heatmaps_rendered_when_top_genes_vary(tmp_path: Path):
    rng = np.random.default_rng(11)
    samples = [f"S{j + 1}" for j in range(8)]
    norm = rng.gamma(2.0, 1.5, size=(400, 8))
    raw = rng.poisson(20.0, size=(400, 8)).astype(float) + norm
    tissues = ["Liver", "Lung"] * 4
    params = _params(
        tmp_path,
        _write_matrix(tmp_path / "norm.tsv", norm, samples),
        _write_matrix(tmp_path / "raw.tsv", raw, samples),
        _write_design(tmp_path / "design.tsv", samples, tissues),
    )
    ctx = report.run_report(params, logger=logging.getLogger("test"))

    assert ctx.status == STATUS_COMPLETE
    for label in ("raw", "normalized"):
        assert ctx.tables["top_variance"][label].shape[0] == 4
        assert ctx.figure_paths[f"heatmap_correlation_{label}"].exists()
    assert ctx.figure_paths["hist_normalized_values"].exists()


def test_single_gene_stops_after_column_listing(tmp_path: Path, monkeypatch):
    samples = ["S1", "S2", "S3"]
    norm = _write_matrix(tmp_path / "norm.tsv", np.array([[1.0, 2.0, 3.0]]), samples)
    raw = _write_matrix(tmp_path / "raw.tsv", np.array([[5.0, 6.0, 7.0]]), samples)
    design = _write_design(tmp_path / "design.tsv", samples, ["liver"] * 3)

    def _unreachable(_ctx):
        raise AssertionError("stage should not run")

    for stage in ("summarize_design", "variability_view", "embedding_view", "session_info"):
        monkeypatch.setattr(report, stage, _unreachable)

    params = _params(tmp_path, norm, raw, design)
    ctx = report.run_report(params, logger=logging.getLogger("test"))

    assert ctx.status == STATUS_NO_DATA
    texts = [s["text"] for s in ctx.sections if s["kind"] == "text"]
    assert "sample_id, series_id, description, tissue, instrument, sex" in texts
    assert "top_variance" not in ctx.tables
    assert not params.pdf_path.exists()
    assert ctx.report_path.exists()


def test_misaligned_samples_warn_and_continue(tmp_path: Path, liver_inputs, caplog):
    norm, raw, design = liver_inputs
    shuffled = pd.read_csv(norm, sep="\t")[["ID_REF", "S2", "S1", "S3", "S4"]]
    shuffled.to_csv(norm, sep="\t", index=False)

    caplog.set_level(logging.WARNING)
    ctx = report.run_report(_params(tmp_path, norm, raw, design), logger=logging.getLogger("test"))
    assert ctx.status == STATUS_COMPLETE
    assert ctx.tables["alignment"] == {"normalized": False, "raw": True}
    assert "does not match design column 'sample_id'" in caplog.text


def test_misaligned_samples_fatal_when_strict(tmp_path: Path, liver_inputs):
    norm, raw, design = liver_inputs
    shuffled = pd.read_csv(raw, sep="\t")[["ID_REF", "S4", "S3", "S2", "S1"]]
    shuffled.to_csv(raw, sep="\t", index=False)

    params = _params(tmp_path, norm, raw, design, strict_alignment=True)
    with pytest.raises(ValueError, match="raw matrix do not match"):
        report.run_report(params, logger=logging.getLogger("test"))


def test_design_row_count_mismatch_fails_fast(tmp_path: Path, liver_inputs):
    norm, raw, _design = liver_inputs
    design = _write_design(
        tmp_path / "design5.tsv", ["S1", "S2", "S3", "S4", "S5"], ["liver"] * 5
    )
    params = _params(tmp_path, norm, raw, design)
    with pytest.raises(ValueError, match="cannot join sample metadata"):
        report.run_report(params, logger=logging.getLogger("test"))


def test_tsne_pdf_pages_follow_color_field_order(tmp_path: Path, liver_inputs, monkeypatch):
    seen: list[str] = []
    real_write = report.write_tsne_pdf

    def _recording_write(figures, pdf_path, **kwargs):
        seen.extend(fig.get_suptitle() for fig in figures)
        return real_write(figures, pdf_path, **kwargs)

    monkeypatch.setattr(report, "write_tsne_pdf", _recording_write)
    params = _params(tmp_path, *liver_inputs)
    report.run_report(params, logger=logging.getLogger("test"))

    assert seen == [
        "t-SNE colored by tissue",
        "t-SNE colored by instrument",
        "t-SNE colored by series_id",
    ]
    data = params.pdf_path.read_bytes()
    assert len(re.findall(rb"/Type /Page\b", data)) == 3


def test_non_numeric_expression_cell_aborts(tmp_path: Path, liver_inputs):
    norm, raw, design = liver_inputs
    frame = pd.read_csv(norm, sep="\t")
    frame["S3"] = frame["S3"].astype(object)
    frame.loc[1, "S3"] = "n/a-garbage"
    frame.to_csv(norm, sep="\t", index=False)

    params = _params(tmp_path, norm, raw, design)
    with pytest.raises(ValueError, match="non-numeric values in sample column 'S3'"):
        report.run_report(params, logger=logging.getLogger("test"))


def test_missing_input_file(tmp_path: Path, liver_inputs):
    _norm, raw, design = liver_inputs
    params = _params(tmp_path, tmp_path / "missing.tsv", raw, design)
    with pytest.raises(FileNotFoundError, match="Expression file not found"):
        report.run_report(params, logger=logging.getLogger("test"))
