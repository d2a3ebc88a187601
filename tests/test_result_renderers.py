"""Unit tests for renderers used by ResultExporter."""

import json

from scorediff.aggregator import DiffAggregator
from scorediff.models import AggregationResult, DocumentLoadFailure
from scorediff.result_renderers import JsonResultRenderer, MarkdownResultRenderer


def _sample_result() -> AggregationResult:
    aggregator = DiffAggregator()
    aggregator.add_document(
        "--- a/1803_BdA.mei\n+++ b/1808_Zulehner.mei\n"
        "@@ measure 1, beat 1 @@\n-<note/>\n-<rest/>\n@@ measure 1, beat 3 @@\n+<chord/>\n"
    )
    aggregator.add_document("--- a/1808_Zulehner.mei\n+++ b/1825_Andre.mei\n@@ measure 1, beat 2 @@\n+<n/>\n")
    aggregator.add_failure(DocumentLoadFailure(name="broken.txt", reason="not UTF-8"))
    return aggregator.aggregate()


def test_json_renderer_emits_output_contract() -> None:
    payload = json.loads(JsonResultRenderer().render(_sample_result(), title="Op. 33"))
    assert payload["title"] == "Op. 33"
    assert payload["endpoints"] == [{"id": "1803_BdA"}, {"id": "1808_Zulehner"}, {"id": "1825_Andre"}]
    assert payload["timeline"] == [
        {"measure": 1, "beat": 1.0},
        {"measure": 1, "beat": 2.0},
        {"measure": 1, "beat": 3.0},
    ]
    assert payload["global_max"] == 2


def test_json_renderer_keeps_edges_sparse() -> None:
    payload = json.loads(JsonResultRenderer().render(_sample_result()))
    first = payload["edges"][0]
    assert first["id"] == "1803_BdA__1808_Zulehner"
    assert first["counts"] == {"0": 2, "2": 1}
    assert first["details"]["0"] == ["-<note/>", "-<rest/>"]
    assert first["total"] == 3


def test_json_renderer_lists_failures() -> None:
    payload = json.loads(JsonResultRenderer().render(_sample_result()))
    assert payload["failures"] == [{"name": "broken.txt", "reason": "not UTF-8"}]


def test_json_renderer_extension() -> None:
    assert JsonResultRenderer().default_extension == ".json"


def test_markdown_renderer_has_heading() -> None:
    content = MarkdownResultRenderer().render(_sample_result(), title="My Edition")
    assert content.startswith("# My Edition")


def test_markdown_renderer_default_heading() -> None:
    content = MarkdownResultRenderer().render(_sample_result())
    assert content.startswith("# Score diff summary")


def test_markdown_renderer_summarises_edges_and_positions() -> None:
    content = MarkdownResultRenderer().render(_sample_result())
    assert "| 1803_BdA vs 1808_Zulehner | 3 | measure 1, beat 1 | 2 |" in content
    assert "| 0 | 1 | 1 | 2 |" in content
    assert "| 1 | 1 | 2 | 1 |" in content
    assert "- Global max: 2" in content


def test_markdown_renderer_lists_failures() -> None:
    content = MarkdownResultRenderer().render(_sample_result())
    assert "## Load failures" in content
    assert "- `broken.txt`: not UTF-8" in content


def test_markdown_renderer_handles_empty_result() -> None:
    content = MarkdownResultRenderer().render(AggregationResult())
    assert "_No changes to display._" in content
    assert "## Edges" not in content


def test_markdown_renderer_escapes_pipes() -> None:
    aggregator = DiffAggregator()
    aggregator.add_document("--- a/left|edition\n+++ b/right\n@@ measure 1, beat 1 @@\n+x\n")
    content = MarkdownResultRenderer().render(aggregator.aggregate())
    assert "left\\|edition vs right" in content
