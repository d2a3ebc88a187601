"""DiffParser: Turns one measure/beat annotated diff document into a sparse edge."""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import PurePath
from typing import Final

from scorediff.context import AggregationContext
from scorediff.models import (
    CanonicalPosition,
    EndpointExtraction,
    ParsedDocument,
    SparseDiffEdge,
)

logger = logging.getLogger(__name__)

SOURCE_PREFIX: Final[str] = "--- "
TARGET_PREFIX: Final[str] = "+++ "
HUNK_MARKER: Final[str] = "@@"
CONTENT_MARKERS: Final[tuple[str, ...]] = ("+", "-")

#: Score files are diffed as ``<edition>.mei``; the suffix is not part of the id.
DEFAULT_STRIP_SUFFIX: Final[str] = ".mei"

_COORDINATE_RE: Final[re.Pattern[str]] = re.compile(
    r"measure\s+(\d+),.*beat\s+(\d+(?:\.\d+)?|\.\d+)"
)


class HunkPolicy(str, Enum):
    """What happens to the running position when a hunk has no coordinate."""

    CONTINUE = "continue"  # keep applying the previous coordinate
    RESET = "reset"  # drop content lines until the next coordinate


class DiffParser:
    """
    Parses a diff document whose hunk headers carry score coordinates.

    Document layout
    ---------------
    ::

        --- <path>/<sourceEndpoint>
        +++ <path>/<targetEndpoint>
        @@ ... measure <int>, beat <number> ... @@
        +<added line>
        -<removed line>

    1. **Endpoints** - the first two lines name the compared sources. The
       ``---``/``+++`` prefix and any directory path are removed, then the
       configured file suffix. A line without the prefix is used as-is and the
       extraction is flagged as a fallback. When a document name following the
       ``<A><suffix>_<B><suffix>.txt`` convention is available, that pair is
       preferred over a fallback.

    2. **Hunks** - an ``@@`` line containing ``measure M, ... beat B`` makes
       (M, B) the running position. An ``@@`` line without a coordinate either
       keeps the previous position or clears it, depending on ``hunk_policy``.

    3. **Content** - each ``+``/``-`` line under a running position adds one
       to that position's count and keeps the raw line. Content before the
       first resolvable coordinate is dropped.

    Parsing never raises for empty or malformed input; an edge without
    entries is a valid result.
    """

    def __init__(
        self,
        hunk_policy: HunkPolicy | str = HunkPolicy.CONTINUE,
        strip_suffix: str = DEFAULT_STRIP_SUFFIX,
    ) -> None:
        """
        Args:
            hunk_policy:  ``"continue"`` or ``"reset"``; see :class:`HunkPolicy`.
            strip_suffix: File suffix removed from endpoint ids. Empty disables
                          both suffix stripping and filename-derived endpoints.

        Raises:
            ValueError: If *hunk_policy* is not a known policy.
        """
        try:
            self.hunk_policy = HunkPolicy(hunk_policy)
        except ValueError:
            supported = ", ".join(policy.value for policy in HunkPolicy)
            raise ValueError(
                f"Unsupported hunk policy '{hunk_policy}'. Use one of: {supported}."
            ) from None
        self.strip_suffix = strip_suffix
        self._filename_re = self._build_filename_pattern(strip_suffix)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_filename_pattern(suffix: str) -> re.Pattern[str] | None:
        if not suffix:
            return None
        escaped = re.escape(suffix)
        return re.compile(rf"^(?P<source>.+?){escaped}_(?P<target>.+?){escaped}\.txt$")

    def _strip_suffix(self, identifier: str) -> str:
        if self.strip_suffix and identifier.endswith(self.strip_suffix):
            return identifier[: -len(self.strip_suffix)]
        return identifier

    def _extract_endpoint(self, line: str | None, prefix: str) -> EndpointExtraction:
        """Read an endpoint id from a header line, falling back to the raw line."""
        if line is None:
            return EndpointExtraction(identifier="", clean=False, reason="missing header line")
        if not line.startswith(prefix):
            return EndpointExtraction(
                identifier=line,
                clean=False,
                reason=f"expected '{prefix.strip()}' header",
            )

        # Unified diff headers may carry a tab-separated timestamp.
        path = line[len(prefix):].split("\t", maxsplit=1)[0].strip()
        identifier = self._strip_suffix(path.rsplit("/", maxsplit=1)[-1])
        if not identifier:
            return EndpointExtraction(identifier="", clean=False, reason="empty endpoint path")
        return EndpointExtraction(identifier=identifier, clean=True)

    def _endpoints_from_name(self, name: str | None) -> tuple[str, str] | None:
        if name is None or self._filename_re is None:
            return None
        match = self._filename_re.match(PurePath(name).name)
        if not match:
            return None
        return match.group("source"), match.group("target")

    def _match_coordinate(self, line: str) -> CanonicalPosition | None:
        """Coordinate named by a hunk line, or ``None`` when there is no usable one."""
        match = _COORDINATE_RE.search(line)
        if not match:
            return None
        try:
            position = CanonicalPosition(int(match.group(1)), Decimal(match.group(2)))
        except InvalidOperation:
            # Too many digits to hold at six decimal places.
            logger.debug("Beat %r cannot be represented; hunk treated as unmatched", match.group(2))
            return None
        if position.measure < 1 or position.beat < 1:
            logger.debug("Coordinate %s is below measure 1, beat 1", position)
        return position

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract_endpoints(
        self, lines: list[str], name: str | None = None
    ) -> tuple[EndpointExtraction, EndpointExtraction]:
        """
        Extract the (source, target) endpoints from a document's first lines.

        Args:
            lines: Document lines; only the first two are inspected.
            name:  Optional document filename used when the headers are malformed.

        Returns:
            A pair of :class:`EndpointExtraction` results.
        """
        source = self._extract_endpoint(lines[0] if lines else None, SOURCE_PREFIX)
        target = self._extract_endpoint(lines[1] if len(lines) > 1 else None, TARGET_PREFIX)
        if source.clean and target.clean:
            return source, target

        from_name = self._endpoints_from_name(name)
        if from_name is not None:
            return (
                EndpointExtraction(identifier=from_name[0], clean=False, reason="filename"),
                EndpointExtraction(identifier=from_name[1], clean=False, reason="filename"),
            )
        return source, target

    def parse(self, text: str, name: str | None = None) -> ParsedDocument:
        """
        Parse one diff document into a sparse change profile.

        Args:
            text: The full diff text.
            name: Optional document name (usually the filename).

        Returns:
            ParsedDocument holding the sparse edge and parse diagnostics.
        """
        lines = text.splitlines()
        source, target = self.extract_endpoints(lines, name)
        label = name or f"{source.identifier} -> {target.identifier}"
        for role, extraction in (("source", source), ("target", target)):
            if not extraction.clean:
                logger.warning(
                    "%s: %s endpoint fell back to %r (%s)",
                    label,
                    role,
                    extraction.identifier,
                    extraction.reason,
                )

        edge = SparseDiffEdge(source=source.identifier, target=target.identifier)
        positions: set[CanonicalPosition] = set()
        current: CanonicalPosition | None = None
        matched = unmatched = dropped = 0

        header_clean = (source.clean, target.clean)
        for line_no, line in enumerate(lines):
            if line_no < 2 and header_clean[line_no]:
                continue

            if line.startswith(HUNK_MARKER):
                position = self._match_coordinate(line)
                if position is not None:
                    current = position
                    positions.add(position)
                    matched += 1
                    continue
                unmatched += 1
                logger.debug("%s: hunk without coordinate at line %d", label, line_no + 1)
                if self.hunk_policy is HunkPolicy.RESET:
                    current = None
            elif line.startswith(CONTENT_MARKERS):
                if current is None:
                    dropped += 1
                    continue
                edge.record(current, line)

        logger.debug(
            "%s: %d changed line(s) over %d position(s), %d hunk(s) unmatched",
            label,
            edge.total,
            len(edge.counts),
            unmatched,
        )
        return ParsedDocument(
            name=name,
            edge=edge,
            source=source,
            target=target,
            positions=frozenset(positions),
            hunks_matched=matched,
            hunks_unmatched=unmatched,
            dropped_lines=dropped,
        )

    def parse_into(
        self, context: AggregationContext, text: str, name: str | None = None
    ) -> ParsedDocument:
        """Parse *text* and register its endpoints and positions in *context*."""
        document = self.parse(text, name)
        context.register(document)
        return document
