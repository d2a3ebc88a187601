"""Global timeline: one ordered, indexed sequence of every canonical position."""

from collections.abc import Mapping

from scorediff.models import BeatGrid, GlobalTimeline


def build_timeline(grids: Mapping[int, BeatGrid]) -> GlobalTimeline:
    """
    Flatten per-measure grids into a single timeline.

    Positions are deduplicated and sorted by (measure, beat); the offset of a
    position in the result is its timeline index, starting at 0.
    """
    positions = {position for grid in grids.values() for position in grid.positions()}
    return GlobalTimeline(positions=tuple(sorted(positions)))
