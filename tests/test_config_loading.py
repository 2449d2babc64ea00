from __future__ import annotations

import json
from pathlib import Path

import pytest

from exprlens.config import DesignColumns, build_report_params, load_json_config

_INPUTS = {
    "expression_path": "norm.tsv",
    "raw_path": "raw.tsv",
    "design_path": "design.tsv",
}


def test_load_project_config():
    root = Path(__file__).resolve().parents[1]
    cfg = load_json_config(root / "configs" / "exprlens_report.json")
    for key in ("expression_path", "raw_path", "design_path", "pdf_path"):
        assert key in cfg
    params = build_report_params(cfg)
    assert params.pdf_page_size == (15.0, 10.0)
    assert params.columns == DesignColumns()


def test_invalid_json_reports_line_and_column(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"a": 1,}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=r"line \d+, column \d+"):
        load_json_config(bad)


def test_non_object_json_config_rejected(tmp_path: Path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError, match="expected JSON object"):
        load_json_config(bad)


def test_non_json_extension_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.yaml"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Use a .json config file"):
        load_json_config(bad)


def test_missing_config_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_json_config(tmp_path / "nope.json")


def test_build_report_params_defaults(tmp_path: Path):
    params = build_report_params({**_INPUTS, "outdir": str(tmp_path)})
    assert params.pdf_path == tmp_path / "tsne_plots.pdf"
    assert params.strict_alignment is False
    assert params.variance_quantile == pytest.approx(0.99)
    assert params.perplexity == pytest.approx(30.0)
    assert params.max_iter == 1000
    assert params.min_genes == 2
    assert params.group_exclude is None


def test_overrides_skip_none_values():
    params = build_report_params(
        {**_INPUTS, "keyword": "cfg"},
        {"keyword": "cli", "seed": None, "strict_alignment": True},
    )
    assert params.keyword == "cli"
    assert params.seed == 0
    assert params.strict_alignment is True


def test_missing_inputs_rejected():
    with pytest.raises(ValueError, match="raw_path"):
        build_report_params({"expression_path": "a.tsv", "design_path": "d.tsv"})


def test_unknown_design_column_key_rejected():
    with pytest.raises(ValueError, match="Unknown design column keys: organ"):
        build_report_params({**_INPUTS, "columns": {"organ": "tissue_type"}})


@pytest.mark.parametrize("bad", [[15], "15x10", [0, 10]])
def test_bad_page_size_rejected(bad):
    with pytest.raises(ValueError, match="pdf_page_size"):
        build_report_params({**_INPUTS, "pdf_page_size": bad})


def test_quantile_must_be_open_interval():
    with pytest.raises(ValueError, match="variance_quantile"):
        build_report_params({**_INPUTS, "variance_quantile": 1.0})
