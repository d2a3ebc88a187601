"""Unit tests for beat-grid inference."""

import logging
from decimal import Decimal

import pytest

from scorediff.beat_grid import (
    LARGE_FILL_STEPS,
    fill_beats,
    fill_steps,
    infer_grids,
    infer_step,
    smallest_gap,
)
from scorediff.models import CanonicalPosition


def _positions(measure: int, *beats: str) -> list[CanonicalPosition]:
    return [CanonicalPosition(measure, Decimal(beat)) for beat in beats]


def _beats(*values: str) -> tuple[Decimal, ...]:
    return tuple(Decimal(value) for value in values)


def test_whole_beat_gaps_fill_every_beat() -> None:
    grid = infer_grids(_positions(1, "1", "3"))[1]
    assert grid.min_gap == Decimal(2)
    assert grid.step == Decimal(1)
    assert grid.beats == _beats("1", "2", "3")


def test_finest_gap_defines_the_step() -> None:
    grid = infer_grids(_positions(1, "1", "1.5", "3"))[1]
    assert grid.step == Decimal("0.5")
    assert grid.beats == _beats("1", "1.5", "2", "2.5", "3")


def test_single_beat_defaults_to_unit_step() -> None:
    grid = infer_grids(_positions(7, "2"))[7]
    assert grid.min_gap is None
    assert grid.step == Decimal(1)
    assert grid.beats == _beats("2")


def test_uncapped_step_uses_the_smallest_gap_as_is() -> None:
    grid = infer_grids(_positions(1, "1", "3"), max_step=None)[1]
    assert grid.step == Decimal(2)
    assert grid.beats == _beats("1", "3")


def test_union_across_documents_refines_the_grid() -> None:
    coarse = _positions(1, "1", "3")
    fine = _positions(1, "1", "1.5", "2", "2.5", "3")
    grid = infer_grids(coarse + fine)[1]
    assert grid.beats == _beats("1", "1.5", "2", "2.5", "3")


def test_measures_are_inferred_independently() -> None:
    grids = infer_grids(_positions(1, "1", "1.25") + _positions(2, "1", "4"))
    assert grids[1].beats == _beats("1", "1.25")
    assert grids[2].beats == _beats("1", "2", "3", "4")
    assert list(grids) == [1, 2]


def test_decimal_steps_accumulate_without_drift() -> None:
    grid = infer_grids(_positions(1, "1", "1.1", "1.3"))[1]
    assert grid.step == Decimal("0.1")
    assert grid.beats == _beats("1", "1.1", "1.2", "1.3")


def test_off_grid_observed_beats_are_kept() -> None:
    beats = fill_beats(_beats("1", "1.5", "2.25"), Decimal("0.5"))
    assert Decimal("2.25") in beats
    assert beats == _beats("1", "1.5", "2", "2.25", "2.5")


def test_smallest_gap_ignores_duplicates() -> None:
    assert smallest_gap(_beats("1", "1", "2")) == Decimal(1)
    assert smallest_gap(_beats("1")) is None


def test_infer_step_caps_at_max_step() -> None:
    assert infer_step(_beats("1", "4"), max_step=Decimal(1)) == Decimal(1)
    assert infer_step(_beats("1", "1.25"), max_step=Decimal(1)) == Decimal("0.25")


def test_no_positions_yield_no_grids() -> None:
    assert infer_grids([]) == {}


def test_fill_steps_rounds_half_up() -> None:
    assert fill_steps(_beats("1", "2.25"), Decimal("0.5")) == 3
    assert fill_steps(_beats("4"), Decimal(1)) == 0


def test_large_fill_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    far = str(LARGE_FILL_STEPS + 2)
    positions = [CanonicalPosition(7, Decimal(1)), CanonicalPosition(7, Decimal(far))]

    with caplog.at_level(logging.WARNING, logger="scorediff.beat_grid"):
        grids = infer_grids(positions)
    assert len(grids[7].beats) == LARGE_FILL_STEPS + 2
    assert f"Measure 7: filling {LARGE_FILL_STEPS + 1} step(s)" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="scorediff.beat_grid"):
        uncapped = infer_grids(positions, max_step=None)
    assert len(uncapped[7].beats) == 2
    assert caplog.text == ""
