"""Tests for similarity calculation utilities."""

import pytest

from kbsync.utils.similarity import cosine_similarity


class TestCosineSimilarity:
    """Tests for cosine_similarity function."""

    def test_identical_vectors(self):
        vec = [1.0, 2.0, 3.0]
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_symmetric(self):
        a = [0.3, -1.2, 4.0, 0.5]
        b = [2.0, 0.1, -0.7, 1.1]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_dimension_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0

    @pytest.mark.parametrize("vec1,vec2", [
        (None, [1.0]),
        ([1.0], None),
        ([], [1.0]),
        ([], []),
    ])
    def test_missing_vectors_are_zero(self, vec1, vec2):
        assert cosine_similarity(vec1, vec2) == 0.0

    def test_zero_norm_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_bounded(self):
        pairs = [
            ([1e-8, 3.0], [1e-8, 3.0]),
            ([0.1] * 50, [0.1] * 50),
            ([1.0, -2.0, 3.0], [-1.0, 2.0, -3.0]),
        ]
        for a, b in pairs:
            assert -1.0 <= cosine_similarity(a, b) <= 1.0
