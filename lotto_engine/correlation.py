"""
Pairwise Correlation Builder for the Lotto Engine.

Scores every unordered number pair by how far its observed co-occurrence
count deviates from the count expected if numbers were drawn
independently:

    expected(i, j) = (count_i / total) * (count_j / total) * total
    score(i, j)    = (co(i, j) - expected) / sqrt(expected)

where ``total`` is the number of drawn-number occurrences in the history.

Complexity: counting is O(draws x k^2) because every pair inside every draw
is visited. For large-pick games (lotofacil picks 15, lotomania 50) the k^2
term dominates the pool-sized scoring pass.
"""
from collections import Counter, defaultdict
from itertools import combinations
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
from loguru import logger

from lotto_engine.config import CORRELATION_THRESHOLD
from lotto_engine.models import Draw

Pair = Tuple[int, int]


def pair_key(a: int, b: int) -> Pair:
    return (a, b) if a < b else (b, a)


class CorrelationMatrix:
    """Sparse symmetric pair -> score map. Self pairs always score 0."""

    def __init__(self, scores: Dict[Pair, float], pool_size: int, history_length: int = 0):
        self.pool_size = pool_size
        self.history_length = history_length
        self._scores = dict(scores)

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, pair) -> bool:
        a, b = pair
        return a != b and pair_key(a, b) in self._scores

    def items(self):
        return self._scores.items()

    def score(self, a: int, b: int) -> float:
        if a == b:
            return 0.0
        return self._scores.get(pair_key(a, b), 0.0)

    def mean_pair_score(self, numbers: Sequence[int]) -> float:
        """Average score over all pairs inside a set of numbers."""
        pairs = list(combinations(sorted(numbers), 2))
        if not pairs:
            return 0.0
        return sum(self._scores.get(p, 0.0) for p in pairs) / len(pairs)

    def top_partners(self, number: int, top_n: int = 10) -> List[int]:
        """Numbers with the highest positive score against ``number``."""
        partners = []
        for other in range(1, self.pool_size + 1):
            if other == number:
                continue
            value = self.score(number, other)
            if value > 0:
                partners.append((value, other))
        partners.sort(key=lambda item: (-item[0], item[1]))
        return [other for _, other in partners[:top_n]]

    def strongest_pairs(self, top_n: int = 10) -> List[Tuple[Pair, float]]:
        ordered = sorted(self._scores.items(), key=lambda item: (-item[1], item[0]))
        return ordered[:top_n]


class CorrelationBuilder:
    """Builds a CorrelationMatrix from draw history."""

    def __init__(self, threshold: float = CORRELATION_THRESHOLD):
        if threshold < 0:
            raise ValueError("threshold must be non-negative.")
        self.threshold = threshold

    def build(self, draws: Sequence[Draw], pool_size: int) -> CorrelationMatrix:
        co_occurrence = np.zeros((pool_size + 1, pool_size + 1), dtype=float)
        marginal = np.zeros(pool_size + 1, dtype=float)

        for draw in draws:
            numbers = sorted(n for n in draw.numbers if 1 <= n <= pool_size)
            for n in numbers:
                marginal[n] += 1
            for a, b in combinations(numbers, 2):
                co_occurrence[a, b] += 1

        total = marginal.sum()
        if total == 0:
            logger.warning("No draw history supplied. Correlation matrix is empty.")
            return CorrelationMatrix({}, pool_size, len(draws))

        # Score the upper triangle in one vectorized pass
        expected = np.outer(marginal, marginal) / total
        upper = np.triu(np.ones_like(expected, dtype=bool), k=1)
        upper[0, :] = False
        valid = upper & (expected > 0)
        scores = np.zeros_like(expected)
        scores[valid] = (co_occurrence[valid] - expected[valid]) / np.sqrt(expected[valid])

        keep = valid & (np.abs(scores) >= self.threshold)
        rows, cols = np.nonzero(keep)
        entries = {(int(a), int(b)): float(scores[a, b]) for a, b in zip(rows, cols)}

        logger.info(
            f"Correlation matrix built from {len(draws)} draws: "
            f"{len(entries)} pairs kept (|score| >= {self.threshold})."
        )
        return CorrelationMatrix(entries, pool_size, len(draws))


def build_correlation_matrix(draws: Sequence[Draw], pool_size: int,
                             threshold: float = CORRELATION_THRESHOLD) -> CorrelationMatrix:
    """Convenience wrapper around CorrelationBuilder.build."""
    return CorrelationBuilder(threshold).build(draws, pool_size)


def find_frequent_trios(draws: Iterable[Draw], min_frequency: int = 3) -> List[Dict]:
    """
    Finds number trios that appeared together at least ``min_frequency`` times.

    Returns:
        List[Dict]: Entries with 'numbers', 'frequency' and 'share' (frequency
        over the number of draws), most frequent first.
    """
    trio_counts: Counter = Counter()
    total_draws = 0
    for draw in draws:
        total_draws += 1
        if len(draw.numbers) < 3:
            continue
        trio_counts.update(combinations(sorted(draw.numbers), 3))

    trios = [
        {
            "numbers": list(trio),
            "frequency": count,
            "share": count / total_draws,
        }
        for trio, count in trio_counts.items()
        if count >= min_frequency
    ]
    trios.sort(key=lambda t: (-t["frequency"], t["numbers"]))
    return trios


def temporal_followers(draws: Sequence[Draw], lookback: int = 5) -> Dict[int, List[int]]:
    """
    For every number, the numbers most often drawn in the following contest.

    Args:
        draws: Draw history ordered most-recent-first.
        lookback: How many followers to keep per number.
    """
    followers: Dict[int, Counter] = defaultdict(Counter)
    # Walk oldest to newest so "next" means the later contest
    chronological = list(reversed(draws))
    for current, following in zip(chronological, chronological[1:]):
        for leader in current.numbers:
            followers[leader].update(following.numbers)

    result = {}
    for leader in sorted(followers):
        ranked = sorted(followers[leader].items(), key=lambda item: (-item[1], item[0]))
        result[leader] = [number for number, _ in ranked[:lookback]]
    return result
