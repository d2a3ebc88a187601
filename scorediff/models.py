"""Data models for the score-diff alignment engine."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Final

import numpy as np

#: Beats are keyed at six decimal places so near-equal values collapse.
BEAT_PRECISION: Final[Decimal] = Decimal("0.000001")


def quantize_beat(value: Decimal | int | str) -> Decimal:
    """Round a beat value to the fixed six-digit precision used for keys."""
    return Decimal(value).quantize(BEAT_PRECISION)


def format_beat(beat: Decimal) -> str:
    """Render a beat without trailing zeros, e.g. ``1.500000`` -> ``1.5``."""
    return format(beat.normalize(), "f")


@dataclass(frozen=True)
class Endpoint:
    """One of the two source documents compared by a diff."""

    id: str


@dataclass(frozen=True)
class EndpointExtraction:
    """
    Outcome of reading an endpoint identifier from a diff header line.

    Attributes:
        identifier: The endpoint id that will be used for the document.
        clean:      True when the expected ``---``/``+++`` header was found.
        reason:     Why the extraction fell back, ``None`` when clean.
    """

    identifier: str
    clean: bool
    reason: str | None = None


@dataclass(frozen=True, order=True)
class CanonicalPosition:
    """A (measure, beat) coordinate ordered by measure first, then beat."""

    measure: int
    beat: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "beat", quantize_beat(self.beat))

    def __str__(self) -> str:
        return f"{self.measure}-{format_beat(self.beat)}"

    def as_record(self) -> dict[str, int | float]:
        return {"measure": self.measure, "beat": float(self.beat)}


@dataclass(frozen=True)
class BeatGrid:
    """
    The inferred beat subdivision of a single measure.

    Attributes:
        measure:   Measure number the grid belongs to.
        raw_beats: Sorted distinct beats observed before zero-fill.
        min_gap:   Smallest positive gap between raw beats, ``None`` for a lone beat.
        step:      Fill step: ``min_gap`` capped at the configured maximum.
        beats:     Sorted beats after zero-fill.
    """

    measure: int
    raw_beats: tuple[Decimal, ...]
    min_gap: Decimal | None
    step: Decimal
    beats: tuple[Decimal, ...]

    def positions(self) -> list[CanonicalPosition]:
        return [CanonicalPosition(self.measure, beat) for beat in self.beats]


@dataclass(frozen=True)
class GlobalTimeline:
    """
    All canonical positions of the piece in ascending order.

    The position at offset ``i`` owns timeline index ``i``.
    """

    positions: tuple[CanonicalPosition, ...] = ()
    _index: dict[CanonicalPosition, int] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_index", {position: i for i, position in enumerate(self.positions)}
        )

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[CanonicalPosition]:
        return iter(self.positions)

    def __getitem__(self, index: int) -> CanonicalPosition:
        return self.positions[index]

    def __contains__(self, position: object) -> bool:
        return position in self._index

    def index_of(self, position: CanonicalPosition) -> int:
        """Return the timeline index of *position*.

        Raises:
            KeyError: If the position never went through grid inference.
        """
        return self._index[position]

    def measures(self) -> list[int]:
        """Distinct measure numbers in ascending order."""
        return sorted({position.measure for position in self.positions})

    def as_records(self) -> list[dict[str, int | float]]:
        return [position.as_record() for position in self.positions]


@dataclass
class SparseDiffEdge:
    """Per-document change profile keyed by canonical position."""

    source: str
    target: str
    counts: dict[CanonicalPosition, int] = field(default_factory=dict)
    details: dict[CanonicalPosition, list[str]] = field(default_factory=dict)

    def record(self, position: CanonicalPosition, line: str) -> None:
        """Count one changed line at *position* and keep its raw text."""
        self.counts[position] = self.counts.get(position, 0) + 1
        self.details.setdefault(position, []).append(line)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass(frozen=True, eq=False)
class DiffEdge:
    """
    A projected edge: change counts and detail lines keyed by timeline index.

    ``counts`` is a read-only dense vector spanning the whole timeline, so
    ``count(i)`` and ``details(i)`` are defined for every index of it.
    """

    source: str
    target: str
    counts: np.ndarray
    detail_map: Mapping[int, tuple[str, ...]]

    @property
    def id(self) -> str:
        return f"{self.source}__{self.target}"

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"Timeline index {index} outside [0, {len(self)}).")

    def count(self, index: int) -> int:
        self._check_index(index)
        return int(self.counts[index])

    def details(self, index: int) -> tuple[str, ...]:
        self._check_index(index)
        return self.detail_map.get(index, ())

    def nonzero_indices(self) -> list[int]:
        return [int(i) for i in np.flatnonzero(self.counts)]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DiffEdge):
            return NotImplemented
        return (
            self.source == other.source
            and self.target == other.target
            and np.array_equal(self.counts, other.counts)
            and dict(self.detail_map) == dict(other.detail_map)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class DocumentLoadFailure:
    """A document that could not be acquired; the rest of the batch proceeds."""

    name: str
    reason: str


@dataclass(frozen=True)
class ParsedDocument:
    """
    Everything one diff document contributes to an aggregation session.

    Attributes:
        name:            Optional document name (usually its filename).
        edge:            Sparse change profile keyed by canonical position.
        source:          Extraction result for the first header line.
        target:          Extraction result for the second header line.
        positions:       Every coordinate named by a matched hunk marker.
        hunks_matched:   Hunk markers carrying a measure/beat coordinate.
        hunks_unmatched: Hunk markers without a resolvable coordinate.
        dropped_lines:   Content lines seen while no coordinate was current.
    """

    name: str | None
    edge: SparseDiffEdge
    source: EndpointExtraction
    target: EndpointExtraction
    positions: frozenset[CanonicalPosition]
    hunks_matched: int = 0
    hunks_unmatched: int = 0
    dropped_lines: int = 0

    @property
    def label(self) -> str:
        return self.name if self.name is not None else f"{self.edge.source} -> {self.edge.target}"


@dataclass(frozen=True)
class AggregationResult:
    """
    The published, immutable output of one aggregation session.

    Attributes:
        endpoints:  Every endpoint seen, in first-seen order.
        edges:      One projected edge per parsed document, in input order.
        timeline:   The shared x-axis for every consumer.
        global_max: Largest single count anywhere (1 when nothing changed).
        failures:   Documents that could not be acquired.
    """

    endpoints: tuple[Endpoint, ...] = ()
    edges: tuple[DiffEdge, ...] = ()
    timeline: GlobalTimeline = field(default_factory=GlobalTimeline)
    global_max: int = 1
    failures: tuple[DocumentLoadFailure, ...] = ()

    @property
    def endpoint_ids(self) -> list[str]:
        return [endpoint.id for endpoint in self.endpoints]

    def edge(self, source: str, target: str) -> DiffEdge | None:
        """Return the first edge joining *source* and *target* in either direction."""
        wanted = {(source, target), (target, source)}
        for candidate in self.edges:
            if (candidate.source, candidate.target) in wanted:
                return candidate
        return None

    def position_totals(self) -> np.ndarray:
        """Summed change counts per timeline index across all edges."""
        totals = np.zeros(len(self.timeline), dtype=np.int64)
        for diff_edge in self.edges:
            totals += diff_edge.counts
        return totals
