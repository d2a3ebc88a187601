"""ResultExporter: writes an AggregationResult to disk as JSON or Markdown."""

from __future__ import annotations

from typing import Final

from scorediff.models import AggregationResult
from scorediff.result_renderers import (
    JsonResultRenderer,
    MarkdownResultRenderer,
    ResultRenderer,
)

SUPPORTED_FORMATS: Final[set[str]] = {"json", "markdown"}


class ResultExporter:
    """
    Serialise an aggregation result via a pluggable renderer.

    Supported formats:
    - ``json``: the full output contract (endpoints, timeline, sparse edge
      counts and details, global max) for rendering collaborators.
    - ``markdown``: a per-edge and per-position summary for people.
    """

    def __init__(self, title: str = "", output_format: str = "json") -> None:
        self.title = title
        normalized = output_format.strip().lower()
        if normalized not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise ValueError(f"Unsupported output format '{output_format}'. Use one of: {supported}.")
        self.output_format = normalized
        self.renderer = self._build_renderer(normalized)

    def _build_renderer(self, output_format: str) -> ResultRenderer:
        if output_format == "json":
            return JsonResultRenderer()
        return MarkdownResultRenderer()

    @property
    def default_extension(self) -> str:
        return self.renderer.default_extension

    def render(self, result: AggregationResult) -> str:
        return self.renderer.render(result, title=self.title)

    def export(self, result: AggregationResult, output_path: str) -> None:
        """
        Render *result* in the selected format and write it to disk.

        Raises:
            OSError: If the output file cannot be written.
        """
        content = self.render(result)
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(content)
