"""Renderer implementations for aggregation result output formats."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from scorediff.models import AggregationResult, DiffEdge, format_beat


def _escape_cell(text: str) -> str:
    """Escape characters that would break a Markdown table cell."""
    return text.replace("\\", "\\\\").replace("|", "\\|").replace("\n", " ")


def edge_to_payload(edge: DiffEdge) -> dict[str, Any]:
    """Sparse JSON form of a projected edge; absent indices mean count 0."""
    indices = edge.nonzero_indices()
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "total": edge.total,
        "counts": {str(i): edge.count(i) for i in indices},
        "details": {str(i): list(edge.details(i)) for i in indices},
    }


def result_to_payload(result: AggregationResult, title: str = "") -> dict[str, Any]:
    return {
        "title": title,
        "endpoints": [{"id": endpoint.id} for endpoint in result.endpoints],
        "timeline": result.timeline.as_records(),
        "global_max": result.global_max,
        "edges": [edge_to_payload(edge) for edge in result.edges],
        "failures": [
            {"name": failure.name, "reason": failure.reason} for failure in result.failures
        ],
    }


class ResultRenderer(ABC):
    """Abstract aggregation result renderer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(self, result: AggregationResult, *, title: str = "") -> str:
        """Render output into a file content string."""


class JsonResultRenderer(ResultRenderer):
    """Render the full result as JSON for rendering collaborators."""

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    @property
    def default_extension(self) -> str:
        return ".json"

    def render(self, result: AggregationResult, *, title: str = "") -> str:
        return json.dumps(result_to_payload(result, title), indent=self.indent) + "\n"


class MarkdownResultRenderer(ResultRenderer):
    """Render a human-readable summary: one row per edge, one per changed position."""

    @property
    def default_extension(self) -> str:
        return ".md"

    def render(self, result: AggregationResult, *, title: str = "") -> str:
        timeline = result.timeline
        lines = [f"# {_escape_cell(title or 'Score diff summary')}", ""]
        lines += [
            f"- Endpoints: {len(result.endpoints)}",
            f"- Documents: {len(result.edges)}",
            f"- Timeline: {len(timeline)} position(s) across {len(timeline.measures())} measure(s)",
            f"- Global max: {result.global_max}",
            "",
        ]

        if not result.edges or not len(timeline):
            lines += ["_No changes to display._", ""]
        else:
            lines += [
                "## Edges",
                "",
                "| Edge | Total | Peak position | Peak count |",
                "| --- | ---: | --- | ---: |",
            ]
            for edge in result.edges:
                peak_index = int(edge.counts.argmax())
                peak = timeline[peak_index]
                peak_label = f"measure {peak.measure}, beat {format_beat(peak.beat)}"
                lines.append(
                    f"| {_escape_cell(edge.source)} vs {_escape_cell(edge.target)} "
                    f"| {edge.total} | {peak_label if edge.total else '-'} "
                    f"| {edge.count(peak_index)} |"
                )
            lines.append("")

            totals = result.position_totals()
            lines += [
                "## Changes by position",
                "",
                "| Index | Measure | Beat | Changes |",
                "| ---: | ---: | ---: | ---: |",
            ]
            for index, position in enumerate(timeline):
                if totals[index]:
                    lines.append(
                        f"| {index} | {position.measure} "
                        f"| {format_beat(position.beat)} | {int(totals[index])} |"
                    )
            lines.append("")

        if result.failures:
            lines += ["## Load failures", ""]
            lines += [
                f"- `{failure.name}`: {_escape_cell(failure.reason)}"
                for failure in result.failures
            ]
            lines.append("")

        return "\n".join(lines)
