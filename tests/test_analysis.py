"""Unit tests for similarity and distance-matrix helpers."""

import numpy as np
import pytest

from scorediff.aggregator import aggregate
from scorediff.analysis import distance_matrix, similarity, total_similarity
from scorediff.models import AggregationResult


def _sample_result() -> AggregationResult:
    ab = "--- a/A\n+++ b/B\n@@ measure 1, beat 1 @@\n+x\n+y\n-z\n+w\n@@ measure 1, beat 2 @@\n-q\n"
    bc = "--- a/B\n+++ b/C\n@@ measure 1, beat 2 @@\n+x\n+y\n"
    ca = "--- a/C\n+++ b/A\n@@ measure 1, beat 1 @@\n-x\n"
    return aggregate([ab, bc, ca])


def test_similarity_is_inverse_of_normalised_count() -> None:
    result = _sample_result()
    ab, bc, _ = result.edges
    assert result.global_max == 4
    assert similarity(ab, 0, result.global_max) == pytest.approx(0.0)
    assert similarity(bc, 1, result.global_max) == pytest.approx(0.5)
    assert similarity(bc, 0, result.global_max) == pytest.approx(1.0)


def test_similarity_with_zero_max_is_perfect() -> None:
    ab = _sample_result().edges[0]
    assert similarity(ab, 0, 0) == 1.0


def test_total_similarity_normalises_by_largest_total() -> None:
    result = _sample_result()
    ab, bc, ca = result.edges
    assert total_similarity(ab, result.edges) == pytest.approx(0.0)
    assert total_similarity(bc, result.edges) == pytest.approx(0.6)
    assert total_similarity(ca, result.edges) == pytest.approx(0.8)


def test_total_distance_matrix_is_symmetric() -> None:
    names, matrix = distance_matrix(_sample_result())
    assert names == ["A", "B", "C"]
    expected = np.array([[0, 5, 1], [5, 0, 2], [1, 2, 0]])
    assert np.array_equal(matrix, expected)
    assert np.array_equal(matrix, matrix.T)


def test_distance_matrix_at_one_index() -> None:
    _, matrix = distance_matrix(_sample_result(), index=1)
    assert np.array_equal(matrix, np.array([[0, 1, 0], [1, 0, 2], [0, 2, 0]]))


def test_distance_matrix_uses_first_edge_for_duplicate_pairs() -> None:
    first = "--- a/A\n+++ b/B\n@@ measure 1, beat 1 @@\n+x\n"
    second = "--- a/B\n+++ b/A\n@@ measure 1, beat 1 @@\n+x\n+y\n"
    _, matrix = distance_matrix(aggregate([first, second]))
    assert matrix[0, 1] == 1


def test_distance_matrix_rejects_out_of_range_index() -> None:
    with pytest.raises(IndexError):
        distance_matrix(_sample_result(), index=2)


def test_distance_matrix_of_empty_result() -> None:
    names, matrix = distance_matrix(AggregationResult())
    assert names == []
    assert matrix.shape == (0, 0)
