"""Unit tests for ResultExporter."""

import json
from pathlib import Path

import pytest

from scorediff.aggregator import aggregate
from scorediff.result_exporter import ResultExporter
from scorediff.result_renderers import JsonResultRenderer, MarkdownResultRenderer


def _sample_text() -> str:
    return "--- a/A.mei\n+++ b/B.mei\n@@ measure 2, beat 1 @@\n+<note/>\n"


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported output format"):
        ResultExporter(output_format="svg")


def test_format_is_normalised() -> None:
    exporter = ResultExporter(output_format="  Markdown ")
    assert exporter.output_format == "markdown"
    assert isinstance(exporter.renderer, MarkdownResultRenderer)
    assert exporter.default_extension == ".md"


def test_default_format_is_json() -> None:
    exporter = ResultExporter()
    assert isinstance(exporter.renderer, JsonResultRenderer)


def test_export_writes_json_file(tmp_path: Path) -> None:
    out = tmp_path / "result.json"
    ResultExporter(title="Test").export(aggregate([_sample_text()]), str(out))

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["title"] == "Test"
    assert payload["edges"][0]["counts"] == {"0": 1}


def test_export_writes_markdown_file(tmp_path: Path) -> None:
    out = tmp_path / "result.md"
    ResultExporter(title="Test", output_format="markdown").export(
        aggregate([_sample_text()]), str(out)
    )
    assert out.read_text(encoding="utf-8").startswith("# Test")


def test_export_to_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        ResultExporter().export(aggregate([]), str(tmp_path / "missing" / "out.json"))
