"""DiffAggregator: parses a batch of diff documents into one AggregationResult."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from scorediff.beat_grid import DEFAULT_STEP, infer_grids
from scorediff.context import AggregationContext
from scorediff.diff_parser import DiffParser
from scorediff.models import AggregationResult, DocumentLoadFailure, ParsedDocument
from scorediff.projection import project
from scorediff.timeline import build_timeline

logger = logging.getLogger(__name__)


class DiffAggregator:
    """
    One aggregation session over a batch of diff documents.

    Pipeline
    --------
    1. **Parse** - each document becomes a sparse edge; endpoints and observed
       positions accumulate in an :class:`AggregationContext`.
    2. **Barrier** - grid inference needs every document's positions, so
       nothing below runs until all documents are parsed.
    3. **Grids** - each measure gets its finest observed beat step, zero-filled.
    4. **Timeline** - all grid positions are sorted and indexed from 0.
    5. **Projection** - sparse edges are re-keyed by timeline index and the
       global maximum count is computed.

    With ``max_workers > 1`` documents passed to :meth:`add_documents` are
    parsed on a thread pool, each into a private context, and the contexts are
    merged in input order once all parses have finished.
    """

    def __init__(
        self,
        parser: DiffParser | None = None,
        max_workers: int = 1,
        max_step: Decimal | None = DEFAULT_STEP,
    ) -> None:
        """
        Args:
            parser:      Parser applied to every document; defaults to ``DiffParser()``.
            max_workers: Threads used by :meth:`add_documents`.
            max_step:    Coarsest beat-grid step; ``None`` fills with the
                         smallest observed gap only.

        Raises:
            ValueError: If *max_workers* is below 1 or *max_step* is not positive.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}.")
        if max_step is not None and max_step <= 0:
            raise ValueError(f"max_step must be positive, got {max_step}.")
        self.parser = parser if parser is not None else DiffParser()
        self.max_workers = max_workers
        self.max_step = max_step
        self.context = AggregationContext()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _parse_isolated(self, document: tuple[str | None, str]) -> AggregationContext:
        name, text = document
        context = AggregationContext()
        self.parser.parse_into(context, text, name)
        return context

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_document(self, text: str, name: str | None = None) -> ParsedDocument:
        """Parse one document into the session."""
        return self.parser.parse_into(self.context, text, name)

    def add_failure(self, failure: DocumentLoadFailure) -> None:
        """Record a document that could not be acquired."""
        logger.warning("Excluding %s from the batch: %s", failure.name, failure.reason)
        self.context.add_failure(failure)

    def add_documents(
        self, documents: Iterable[tuple[str | None, str]]
    ) -> list[ParsedDocument]:
        """
        Parse many ``(name, text)`` pairs into the session.

        Returns:
            The parsed documents, in input order.
        """
        pending = list(documents)
        if self.max_workers == 1 or len(pending) < 2:
            return [self.add_document(text, name) for name, text in pending]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            partials = list(executor.map(self._parse_isolated, pending))

        parsed: list[ParsedDocument] = []
        for partial in partials:
            self.context.merge(partial)
            parsed.extend(partial.documents)
        return parsed

    def aggregate(self) -> AggregationResult:
        """
        Build the timeline over every parsed document and project all edges.

        Calling this again without adding documents returns an equal result.
        """
        grids = infer_grids(self.context.positions, self.max_step)
        timeline = build_timeline(grids)
        edges, peak = project((doc.edge for doc in self.context.documents), timeline)

        logger.info(
            "Aggregated %d document(s): %d endpoint(s), %d position(s) in %d measure(s)",
            len(edges),
            len(self.context.endpoints),
            len(timeline),
            len(grids),
        )
        return AggregationResult(
            endpoints=tuple(self.context.endpoints.values()),
            edges=edges,
            timeline=timeline,
            global_max=peak,
            failures=tuple(self.context.failures),
        )


def aggregate(texts: Iterable[str], parser: DiffParser | None = None) -> AggregationResult:
    """Aggregate unnamed diff texts in one call."""
    aggregator = DiffAggregator(parser=parser)
    aggregator.add_documents((None, text) for text in texts)
    return aggregator.aggregate()
