"""Derived metrics shared by the network, tree and axis consumers."""

from collections.abc import Sequence

import numpy as np

from scorediff.models import AggregationResult, DiffEdge


def similarity(edge: DiffEdge, index: int, global_max: int) -> float:
    """
    Similarity of an edge's two endpoints at one timeline index.

    1.0 means nothing changed at *index*; 0.0 means the edge reached the
    global maximum there.
    """
    if global_max == 0:
        return 1.0
    return 1.0 - edge.count(index) / global_max


def total_similarity(edge: DiffEdge, edges: Sequence[DiffEdge]) -> float:
    """Similarity over the whole piece, normalised by the largest edge total."""
    max_total = max((candidate.total for candidate in edges), default=0) or 1
    return 1.0 - edge.total / max_total


def distance_matrix(
    result: AggregationResult, index: int | None = None
) -> tuple[list[str], np.ndarray]:
    """
    Symmetric pairwise distances between endpoints, as fed to a tree builder.

    Args:
        result: A published aggregation result.
        index:  Timeline index to measure at; ``None`` uses each edge's total.

    Returns:
        ``(names, matrix)`` where ``matrix[i][j]`` is the change count of the
        first edge joining ``names[i]`` and ``names[j]`` in either direction,
        and 0 where no such edge exists.

    Raises:
        IndexError: If *index* is outside the timeline.
    """
    if index is not None and not 0 <= index < len(result.timeline):
        raise IndexError(f"Timeline index {index} outside [0, {len(result.timeline)}).")

    names = result.endpoint_ids
    slot = {name: i for i, name in enumerate(names)}
    matrix = np.zeros((len(names), len(names)), dtype=np.int64)
    seen: set[frozenset[str]] = set()

    for edge in result.edges:
        pair = frozenset((edge.source, edge.target))
        if len(pair) < 2 or pair in seen:
            continue
        seen.add(pair)
        value = edge.total if index is None else edge.count(index)
        i, j = slot[edge.source], slot[edge.target]
        matrix[i, j] = matrix[j, i] = value

    return names, matrix
