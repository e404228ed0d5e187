"""
Fitness Evaluator for the Lotto Engine.

Scores a candidate game with structural metrics (consecutive runs, parity
balance, range-bucket spread, sum deviation) and, when draw statistics are
available, with correlation and frequency terms selected by the strategy.
Scoring is pure: the same inputs always give the same score.
"""
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from lotto_engine.config import (
    BUCKET_WIDTH, BUCKET_DIVERSITY_WEIGHT, RUN_PENALTY_WEIGHT,
    PARITY_BALANCE_WEIGHT, SUM_DEVIATION_WEIGHT, STRATEGY_WEIGHTS
)
from lotto_engine.correlation import CorrelationMatrix
from lotto_engine.models import GameMetrics, Individual, Strategy
from lotto_engine.statistics import NumberStatistics


@dataclass(frozen=True)
class FitnessWeights:
    """Linear weights of the fitness terms. Penalty weights are subtracted."""
    bucket_diversity: float = BUCKET_DIVERSITY_WEIGHT
    run_penalty: float = RUN_PENALTY_WEIGHT
    parity_balance: float = PARITY_BALANCE_WEIGHT
    sum_deviation: float = SUM_DEVIATION_WEIGHT
    correlation: float = 0.0
    frequency: float = 0.0

    @classmethod
    def for_strategy(cls, strategy: Strategy,
                     strategy_weights: Optional[Dict[str, Dict[str, float]]] = None,
                     base: Optional["FitnessWeights"] = None) -> "FitnessWeights":
        table = strategy_weights or STRATEGY_WEIGHTS
        terms = table.get(strategy.value, {})
        return replace(
            base or cls(),
            correlation=float(terms.get("correlation", 0.0)),
            frequency=float(terms.get("frequency", 0.0)),
        )

    def structural_only(self) -> "FitnessWeights":
        return replace(self, correlation=0.0, frequency=0.0)


class FitnessContext:
    """Read-only statistics shared by every evaluation in a run."""

    def __init__(self, statistics: Optional[NumberStatistics] = None,
                 correlation: Optional[CorrelationMatrix] = None):
        self.statistics = statistics
        self.correlation = correlation
        self._frequency = (
            statistics.normalized_frequency_vector() if statistics is not None else None
        )

    def frequency_score(self, candidate: Sequence[int]) -> float:
        if self._frequency is None or not candidate:
            return 0.0
        return float(np.mean([self._frequency[n] for n in candidate]))

    def correlation_score(self, candidate: Sequence[int]) -> float:
        if self.correlation is None:
            return 0.0
        return self.correlation.mean_pair_score(candidate)


def count_runs(sorted_candidate: Sequence[int]) -> int:
    """Adjacent pairs that differ by exactly one."""
    return sum(1 for a, b in zip(sorted_candidate, sorted_candidate[1:]) if b - a == 1)


def bucket_counts(candidate: Sequence[int], pool_size: int, width: int = BUCKET_WIDTH) -> List[int]:
    counts = [0] * math.ceil(pool_size / width)
    for n in candidate:
        index = (n - 1) // width
        if index < len(counts):
            counts[index] += 1
    return counts


def calculate_metrics(candidate: Sequence[int], pool_size: int,
                      context: Optional[FitnessContext] = None) -> GameMetrics:
    game = sorted(candidate)
    evens = sum(1 for n in game if n % 2 == 0)
    odds = len(game) - evens
    ideal_sum = (pool_size / 2) * len(game)
    return GameMetrics(
        run_penalty=count_runs(game),
        parity_balance=abs(evens - odds),
        bucket_diversity=sum(1 for c in bucket_counts(game, pool_size) if c > 0),
        sum_deviation=abs(sum(game) - ideal_sum),
        correlation_score=context.correlation_score(game) if context else 0.0,
        frequency_score=context.frequency_score(game) if context else 0.0,
    )


def combine(metrics: GameMetrics, weights: FitnessWeights) -> float:
    score = (
        metrics.bucket_diversity * weights.bucket_diversity
        - metrics.run_penalty * weights.run_penalty
        - metrics.parity_balance * weights.parity_balance
        - metrics.sum_deviation * weights.sum_deviation
    )
    if weights.correlation:
        score += metrics.correlation_score * weights.correlation
    if weights.frequency:
        score += metrics.frequency_score * weights.frequency
    return float(score)


def calculate_fitness(candidate: Sequence[int], pool_size: int,
                      weights: Optional[FitnessWeights] = None,
                      context: Optional[FitnessContext] = None) -> Tuple[float, GameMetrics]:
    """
    Scores a single candidate.

    Args:
        candidate: The numbers of the game, in any order.
        pool_size: Highest number in play.
        weights: Term weights; structural defaults when omitted.
        context: Optional statistics and correlation for the context terms.

    Returns:
        Tuple[float, GameMetrics]: Fitness (higher is better) and its breakdown.
    """
    weights = weights or FitnessWeights()
    metrics = calculate_metrics(candidate, pool_size, context)
    return combine(metrics, weights), metrics


class FitnessEvaluator:
    """
    Binds pool size, weights and context so the optimizer can score
    candidates with a single call.

    Population scoring runs on a thread pool when ``workers`` > 1. Results
    keep the input order, so parallel and sequential runs agree.
    """

    def __init__(self, pool_size: int, weights: Optional[FitnessWeights] = None,
                 context: Optional[FitnessContext] = None, workers: int = 1):
        self.pool_size = pool_size
        self.weights = weights or FitnessWeights()
        self.context = context
        self.workers = max(1, int(workers))
        logger.debug(f"FitnessEvaluator ready: pool={pool_size}, weights={self.weights}, workers={self.workers}")

    def evaluate(self, candidate: Sequence[int]) -> Individual:
        game = sorted(int(n) for n in candidate)
        fitness, metrics = calculate_fitness(game, self.pool_size, self.weights, self.context)
        return Individual(candidate=game, fitness=fitness, metrics=metrics)

    def score(self, candidate: Sequence[int]) -> float:
        return self.evaluate(candidate).fitness

    def evaluate_population(self, candidates: Sequence[Sequence[int]]) -> List[Individual]:
        if self.workers == 1 or len(candidates) < 2:
            return [self.evaluate(c) for c in candidates]
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="FitnessWorker") as executor:
            return list(executor.map(self.evaluate, candidates))


def mean_pairwise_distance(games: Sequence[Sequence[int]]) -> float:
    """Average Hamming distance across every pair of games."""
    pairs = list(combinations(games, 2))
    if not pairs:
        return 0.0
    return sum(len(set(a) ^ set(b)) for a, b in pairs) / len(pairs)
