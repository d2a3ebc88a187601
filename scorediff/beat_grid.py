"""Beat-grid inference: reconstructs the regular beat subdivision of each measure."""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

from scorediff.models import BeatGrid, CanonicalPosition, quantize_beat

logger = logging.getLogger(__name__)

#: Whole-beat step; used for a lone beat and as the coarsest fill step.
DEFAULT_STEP: Final[Decimal] = Decimal(1)

#: Fill counts above this are logged; far-apart beats under a capped step grow the timeline.
LARGE_FILL_STEPS: Final[int] = 10_000


def group_beats_by_measure(
    positions: Iterable[CanonicalPosition],
) -> dict[int, list[Decimal]]:
    """Return the sorted distinct beats observed for each measure."""
    beats: dict[int, set[Decimal]] = defaultdict(set)
    for position in positions:
        beats[position.measure].add(position.beat)
    return {measure: sorted(values) for measure, values in sorted(beats.items())}


def smallest_gap(beats: Sequence[Decimal]) -> Decimal | None:
    """Smallest positive gap between consecutive sorted beats, if any."""
    gaps = [later - earlier for earlier, later in zip(beats, beats[1:]) if later > earlier]
    return min(gaps) if gaps else None


def infer_step(beats: Sequence[Decimal], max_step: Decimal | None = DEFAULT_STEP) -> Decimal:
    """
    Grid step of one measure.

    Args:
        beats:    Sorted distinct beats of the measure.
        max_step: Coarsest allowed step. With the default of one beat, whole
                  beats between observed ones are always filled in, so
                  ``{1, 3}`` fills to ``{1, 2, 3}`` and the step is no longer
                  the smallest gap whenever that gap exceeds one beat.
                  ``None`` uses the smallest gap as-is.

    Returns:
        The smallest positive gap, capped at *max_step*; ``DEFAULT_STEP`` when
        there is no gap to infer from.
    """
    gap = smallest_gap(beats)
    if gap is None:
        return DEFAULT_STEP
    return gap if max_step is None else min(gap, max_step)


def fill_steps(beats: Sequence[Decimal], step: Decimal) -> int:
    """``round((max - min) / step)`` with half-up rounding."""
    return int(((beats[-1] - beats[0]) / step).to_integral_value(rounding=ROUND_HALF_UP))


def fill_beats(beats: Sequence[Decimal], step: Decimal) -> tuple[Decimal, ...]:
    """
    Zero-fill a measure: ``min + i*step`` for ``i = 0 .. round((max - min) / step)``.

    Observed beats that do not sit on the generated progression are kept, so
    every observed position still receives a timeline index.
    """
    low = beats[0]
    n_steps = fill_steps(beats, step)
    filled = {quantize_beat(low + i * step) for i in range(n_steps + 1)}
    filled.update(beats)
    return tuple(sorted(filled))


def infer_grid(
    measure: int, beats: Iterable[Decimal], max_step: Decimal | None = DEFAULT_STEP
) -> BeatGrid:
    raw_beats = tuple(sorted(set(beats)))
    step = infer_step(raw_beats, max_step)
    n_steps = fill_steps(raw_beats, step)
    if n_steps > LARGE_FILL_STEPS:
        logger.warning(
            "Measure %d: filling %d step(s) of %s between beats %s and %s",
            measure,
            n_steps,
            step,
            raw_beats[0],
            raw_beats[-1],
        )
    return BeatGrid(
        measure=measure,
        raw_beats=raw_beats,
        min_gap=smallest_gap(raw_beats),
        step=step,
        beats=fill_beats(raw_beats, step),
    )


def infer_grids(
    positions: Iterable[CanonicalPosition], max_step: Decimal | None = DEFAULT_STEP
) -> dict[int, BeatGrid]:
    """
    Infer the finest known beat grid of every measure.

    The step of a measure is taken from the union of beats observed across all
    documents, so a document that reports coarser positions is re-expressed
    on the finer grid with zero-valued gaps.

    Args:
        positions: Every coordinate observed in any document of the session.
        max_step:  Coarsest allowed step; see :func:`infer_step`.

    Returns:
        Mapping of measure number to its zero-filled :class:`BeatGrid`.
    """
    grids = {
        measure: infer_grid(measure, beats, max_step)
        for measure, beats in group_beats_by_measure(positions).items()
    }
    for grid in grids.values():
        added = len(grid.beats) - len(grid.raw_beats)
        if added:
            logger.debug(
                "Measure %d: step %s, zero-filled %d beat(s)", grid.measure, grid.step, added
            )
    return grids
