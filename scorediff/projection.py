"""Edge projection: remaps sparse per-document profiles onto the global timeline."""

from collections.abc import Iterable
from types import MappingProxyType

import numpy as np

from scorediff.models import DiffEdge, GlobalTimeline, SparseDiffEdge


def project_edge(edge: SparseDiffEdge, timeline: GlobalTimeline) -> DiffEdge:
    """
    Move each position-keyed entry of *edge* to its timeline index.

    Raises:
        KeyError: If the edge names a position missing from *timeline*.
    """
    counts = np.zeros(len(timeline), dtype=np.int64)
    details: dict[int, tuple[str, ...]] = {}
    for position, count in edge.counts.items():
        index = timeline.index_of(position)
        counts[index] = count
        details[index] = tuple(edge.details.get(position, ()))
    counts.setflags(write=False)

    return DiffEdge(
        source=edge.source,
        target=edge.target,
        counts=counts,
        detail_map=MappingProxyType(details),
    )


def global_max(edges: Iterable[DiffEdge]) -> int:
    """Largest count over every (edge, index) pair; 1 when nothing changed."""
    peak = max((int(edge.counts.max()) for edge in edges if len(edge)), default=0)
    return peak or 1


def project(
    edges: Iterable[SparseDiffEdge], timeline: GlobalTimeline
) -> tuple[tuple[DiffEdge, ...], int]:
    """Project every edge and compute the shared scale maximum."""
    projected = tuple(project_edge(edge, timeline) for edge in edges)
    return projected, global_max(projected)
