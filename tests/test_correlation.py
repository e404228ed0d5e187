"""
Tests for the Pairwise Correlation Builder
==========================================
"""

import math

import pytest

from lotto_engine.correlation import (
    CorrelationBuilder, build_correlation_matrix, find_frequent_trios, temporal_followers
)
from lotto_engine.models import Draw


def repeated_draws():
    """[1..6] and [1..5, 7], fifty times each."""
    draws = []
    for i in range(50):
        draws.append(Draw(contest_id=2 * i + 2, numbers=frozenset({1, 2, 3, 4, 5, 6})))
        draws.append(Draw(contest_id=2 * i + 1, numbers=frozenset({1, 2, 3, 4, 5, 7})))
    return draws


class TestCorrelationBuilder:
    """Test suite for CorrelationBuilder."""

    def test_repeated_core_scores_strongly_positive(self):
        """Pairs inside the always-drawn core get a large positive score."""
        matrix = build_correlation_matrix(repeated_draws(), 60)

        # 600 occurrences; expected(1, 2) = 100 * 100 / 600
        expected = 100 * 100 / 600
        for a in range(1, 6):
            for b in range(a + 1, 6):
                assert matrix.score(a, b) == pytest.approx((100 - expected) / math.sqrt(expected))
                assert matrix.score(a, b) > 10

    def test_never_paired_numbers_score_negative(self):
        """6 and 7 never share a draw."""
        matrix = build_correlation_matrix(repeated_draws(), 60)
        expected = 50 * 50 / 600

        assert matrix.score(6, 7) == pytest.approx(-expected / math.sqrt(expected))
        assert matrix.score(6, 7) < 0

    def test_unseen_numbers_score_zero(self):
        """No entry exists for numbers that were never drawn."""
        matrix = build_correlation_matrix(repeated_draws(), 60)

        assert matrix.score(1, 8) == 0.0
        assert (1, 8) not in matrix
        assert matrix.score(30, 40) == 0.0

    def test_symmetry_and_no_self_pairs(self):
        """score(i, j) == score(j, i) and keys are ordered pairs i < j."""
        draws = [
            Draw(contest_id=i, numbers=frozenset({(i * 3) % 25 + 1, (i * 5) % 25 + 1, (i * 7) % 25 + 1, (i * 11) % 25 + 1}))
            for i in range(1, 80)
        ]
        matrix = build_correlation_matrix(draws, 25)

        assert len(matrix) > 0
        for (a, b), value in matrix.items():
            assert a < b
            assert matrix.score(a, b) == matrix.score(b, a) == value
        for n in range(1, 26):
            assert matrix.score(n, n) == 0.0

    def test_threshold_drops_small_entries(self):
        """Entries below the threshold are omitted."""
        draws = repeated_draws()
        loose = CorrelationBuilder(threshold=0.0).build(draws, 10)
        strict = CorrelationBuilder(threshold=15.0).build(draws, 10)

        assert len(strict) < len(loose)
        assert all(abs(value) >= 15.0 for _, value in strict.items())
        assert strict.score(1, 2) > 15.0

    def test_empty_history(self):
        """No draws gives an empty matrix."""
        matrix = build_correlation_matrix([], 60)

        assert len(matrix) == 0
        assert matrix.mean_pair_score([1, 2, 3]) == 0.0

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            CorrelationBuilder(threshold=-1)


class TestCorrelationMatrix:
    """Test suite for CorrelationMatrix helpers."""

    def test_mean_pair_score(self):
        """The mean runs over every pair of the set."""
        matrix = build_correlation_matrix(repeated_draws(), 60)
        core = matrix.score(1, 2)

        assert matrix.mean_pair_score([3, 1, 2]) == pytest.approx(core)
        assert matrix.mean_pair_score([1, 2, 8]) == pytest.approx(core / 3)
        assert matrix.mean_pair_score([1]) == 0.0

    def test_top_partners(self):
        """Core partners first, then the half-frequency number."""
        matrix = build_correlation_matrix(repeated_draws(), 60)

        assert matrix.top_partners(1, top_n=5) == [2, 3, 4, 5, 6]
        assert 7 not in matrix.top_partners(6)

    def test_strongest_pairs(self):
        matrix = build_correlation_matrix(repeated_draws(), 60)
        (pair, score), = matrix.strongest_pairs(1)

        assert pair == (1, 2)
        assert score == pytest.approx(matrix.score(1, 2))


class TestPatternHelpers:
    """Test suite for trios and temporal followers."""

    def test_find_frequent_trios(self):
        """Trios inside the core appear in every draw."""
        trios = find_frequent_trios(repeated_draws(), min_frequency=60)

        assert trios[0]["numbers"] == [1, 2, 3]
        assert trios[0]["frequency"] == 100
        assert trios[0]["share"] == pytest.approx(1.0)
        assert all(t["frequency"] >= 60 for t in trios)
        assert len(trios) == 10

    def test_temporal_followers(self):
        """Followers are the numbers of the next, later contest."""
        draws = [
            Draw(contest_id=3, numbers=frozenset({5, 6})),
            Draw(contest_id=2, numbers=frozenset({3, 4})),
            Draw(contest_id=1, numbers=frozenset({1, 2})),
        ]
        followers = temporal_followers(draws, lookback=2)

        assert followers[1] == [3, 4]
        assert followers[3] == [5, 6]
        assert 5 not in followers
