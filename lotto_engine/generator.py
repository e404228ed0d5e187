"""
Lotto Engine entry point.

Wires the statistics and correlation builders, the fitness evaluator, the
genetic optimizer and the diversity enforcer into a single ``generate``
call. Each LotteryEngine holds only its configuration and injected
collaborators; every call gets its own random generator.
"""
import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from lotto_engine.combination_filter import DiversityEnforcer
from lotto_engine.config_manager import EngineConfig
from lotto_engine.correlation import (
    CorrelationBuilder, CorrelationMatrix, find_frequent_trios, temporal_followers
)
from lotto_engine.evolutionary_engine import GeneticAlgorithmOptimizer
from lotto_engine.fitness import (
    FitnessContext, FitnessEvaluator, FitnessWeights, mean_pairwise_distance
)
from lotto_engine.models import Draw, InvalidParameterError, ResultBatch, Strategy, Tier
from lotto_engine.statistics import (
    NumberStatistics, NumberStatisticsBuilder, delay_profile, dispersion_metrics
)

StatisticsProvider = Callable[[Sequence[Draw], int], NumberStatistics]
CorrelationProvider = Callable[[Sequence[Draw], int], CorrelationMatrix]
RngFactory = Callable[[Optional[int]], np.random.Generator]


@dataclass
class GenerationParams:
    """Per-call search parameters. None falls back to the engine configuration."""
    population_size: Optional[int] = None
    generations: Optional[int] = None
    mutation_rate: Optional[float] = None
    elite_percent: Optional[float] = None
    min_hamming_distance: Optional[int] = None
    seed: Optional[int] = None
    tournament_size: Optional[int] = None
    strategy: Optional[str] = None
    workers: Optional[int] = None
    stagnation_generations: Optional[int] = None


def validate_parameters(pool_size: int, pick: int, num_games: int, params: GenerationParams) -> None:
    """Rejects unusable parameters before any work is done."""
    if pool_size <= 0:
        raise InvalidParameterError(f"pool_size must be positive, got {pool_size}")
    if pick <= 0:
        raise InvalidParameterError(f"pick must be positive, got {pick}")
    if pick > pool_size:
        raise InvalidParameterError(f"pick ({pick}) cannot exceed pool_size ({pool_size})")
    if num_games <= 0:
        raise InvalidParameterError(f"num_games must be positive, got {num_games}")
    if params.population_size < 2:
        raise InvalidParameterError(f"population_size must be at least 2, got {params.population_size}")
    if params.generations < 0:
        raise InvalidParameterError(f"generations cannot be negative, got {params.generations}")
    if not 0.0 <= params.mutation_rate <= 1.0:
        raise InvalidParameterError(f"mutation_rate must be within [0, 1], got {params.mutation_rate}")
    if not 0.0 < params.elite_percent <= 1.0:
        raise InvalidParameterError(f"elite_percent must be within (0, 1], got {params.elite_percent}")
    if params.tournament_size < 1:
        raise InvalidParameterError(f"tournament_size must be at least 1, got {params.tournament_size}")
    if params.min_hamming_distance < 0:
        raise InvalidParameterError(
            f"min_hamming_distance cannot be negative, got {params.min_hamming_distance}"
        )
    if params.workers < 1:
        raise InvalidParameterError(f"workers must be at least 1, got {params.workers}")
    Strategy.parse(params.strategy)


class LotteryEngine:
    """
    Generates diverse, scored games for a lottery-style draw.

    Args:
        config: Engine configuration; defaults when omitted.
        statistics_provider: Builds NumberStatistics from (draws, pool_size).
        correlation_provider: Builds a CorrelationMatrix from (draws, pool_size).
        rng_factory: Creates the run's random generator from a seed.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 statistics_provider: Optional[StatisticsProvider] = None,
                 correlation_provider: Optional[CorrelationProvider] = None,
                 rng_factory: Optional[RngFactory] = None):
        self.config = config or EngineConfig()
        self.statistics_provider = statistics_provider or NumberStatisticsBuilder(
            self.config.decay_constant, self.config.hot_fraction, self.config.cold_fraction
        ).build
        self.correlation_provider = correlation_provider or CorrelationBuilder(
            self.config.correlation_threshold
        ).build
        self.rng_factory = rng_factory or np.random.default_rng
        logger.info("LotteryEngine initialized.")

    def resolve_params(self, pick: int, params: Optional[GenerationParams] = None) -> GenerationParams:
        params = params or GenerationParams()
        cfg = self.config

        def pick_value(value, fallback):
            return fallback if value is None else value

        return replace(
            params,
            population_size=pick_value(params.population_size, cfg.population_size),
            generations=pick_value(params.generations, cfg.generations),
            mutation_rate=pick_value(params.mutation_rate, cfg.mutation_rate),
            elite_percent=pick_value(params.elite_percent, cfg.elite_percent),
            min_hamming_distance=pick_value(params.min_hamming_distance, math.ceil(pick / 2)),
            tournament_size=pick_value(params.tournament_size, cfg.tournament_size),
            strategy=pick_value(params.strategy, cfg.strategy),
            workers=pick_value(params.workers, cfg.workers),
            stagnation_generations=pick_value(params.stagnation_generations, cfg.stagnation_generations),
        )

    @staticmethod
    def _usable_draws(draws: Sequence[Draw], pool_size: int) -> List[Draw]:
        usable = [d for d in draws if d.numbers and all(1 <= n <= pool_size for n in d.numbers)]
        skipped = len(draws) - len(usable)
        if skipped:
            logger.warning(f"Skipped {skipped} draws with numbers outside 1..{pool_size}.")
        return usable

    def _build_evaluator(self, pool_size: int, draws: List[Draw], strategy: Strategy,
                         workers: int) -> Tuple[FitnessEvaluator, bool]:
        weights = FitnessWeights.for_strategy(strategy, self.config.strategy_weights, base=self.config.weights)
        if len(draws) < self.config.min_history:
            logger.warning(
                f"Only {len(draws)} draws available (minimum {self.config.min_history}). "
                "Falling back to structural-only fitness."
            )
            return FitnessEvaluator(pool_size, weights.structural_only(), None, workers), True

        context = FitnessContext(
            statistics=self.statistics_provider(draws, pool_size),
            correlation=self.correlation_provider(draws, pool_size),
        )
        return FitnessEvaluator(pool_size, weights, context, workers), False

    def generate(self, pool_size: int, pick: int, draws: Sequence[Draw], num_games: int,
                 params: Optional[GenerationParams] = None) -> ResultBatch:
        """
        Generates ``num_games`` games of ``pick`` numbers from 1..pool_size.

        Args:
            pool_size: Highest number in play.
            pick: Numbers per game.
            draws: Draw history ordered most-recent-first.
            num_games: Games to return.
            params: Search parameters; engine configuration fills the gaps.

        Returns:
            ResultBatch: Games, scores and the flags describing any fallback.

        Raises:
            InvalidParameterError: If any parameter is out of range.
        """
        params = self.resolve_params(pick, params)
        validate_parameters(pool_size, pick, num_games, params)
        strategy = Strategy.parse(params.strategy)

        if params.seed is None:
            logger.info("No seed supplied. This run cannot be reproduced.")
        rng = self.rng_factory(params.seed)

        usable = self._usable_draws(list(draws), pool_size)
        evaluator, insufficient = self._build_evaluator(pool_size, usable, strategy, params.workers)

        logger.info(
            f"Generating {num_games} games: pick {pick} of {pool_size}, strategy '{strategy.value}', "
            f"{len(usable)} draws of history."
        )
        optimizer = GeneticAlgorithmOptimizer(
            evaluator=evaluator,
            pick=pick,
            num_generations=params.generations,
            population_size=params.population_size,
            mutation_rate=params.mutation_rate,
            tournament_size=params.tournament_size,
            elite_percent=params.elite_percent,
            rng=rng,
            stagnation_generations=params.stagnation_generations,
        )
        ranked = optimizer.evolve()

        enforcer = DiversityEnforcer(
            evaluator=evaluator,
            pick=pick,
            rng=rng,
            max_consecutive=self.config.max_consecutive,
            repair_samples=self.config.repair_samples,
            top_up_factor=self.config.top_up_factor,
        )
        selected = enforcer.select(ranked, num_games, params.min_hamming_distance)

        batch = ResultBatch(
            games=[ind.candidate for ind in selected],
            scores=[ind.fitness for ind in selected],
            metrics=[ind.metrics for ind in selected],
            diversity_reduced=enforcer.diversity_reduced,
            constraints_relaxed=enforcer.constraints_relaxed,
            insufficient_history=insufficient,
            strategy=strategy.value,
            seed=params.seed,
            pool_size=pool_size,
            pick=pick,
            min_hamming_distance=params.min_hamming_distance,
            generations_run=optimizer.generations_run,
            best_fitness_history=list(optimizer.history),
        )
        logger.info(
            f"Generated {len(batch)} games, mean pairwise distance "
            f"{mean_pairwise_distance(batch.games):.2f}, diversity reduced: {batch.diversity_reduced}."
        )
        return batch

    def generate_for_lottery(self, lottery_id: str, draws: Sequence[Draw], num_games: int,
                             params: Optional[GenerationParams] = None,
                             pick: Optional[int] = None) -> ResultBatch:
        """Looks up pool size and pick in the lottery registry, then generates."""
        game = self.config.lottery(lottery_id)
        return self.generate(game["pool"], pick or game["pick"], draws, num_games, params)

    def analyze(self, pool_size: int, draws: Sequence[Draw], top_n: int = 10,
                min_trio_frequency: int = 3) -> Dict[str, Any]:
        """
        Summarizes draw history: per-number statistics, tiers, delays,
        frequency dispersion, strongest pairs, the best partners of every hot
        number and frequent trios.
        """
        if pool_size <= 0:
            raise InvalidParameterError(f"pool_size must be positive, got {pool_size}")
        usable = self._usable_draws(list(draws), pool_size)
        statistics = self.statistics_provider(usable, pool_size)
        correlation = self.correlation_provider(usable, pool_size)
        frame = statistics.to_dataframe()

        return {
            "history_length": len(usable),
            "statistics": frame.to_dict(orient="records"),
            "tiers": {tier.value: statistics.numbers_in_tier(tier) for tier in Tier},
            "dispersion": dispersion_metrics(frame["raw_frequency"].tolist()),
            "delays": delay_profile(usable, pool_size).to_dict(orient="records"),
            "strongest_pairs": [
                {"pair": list(pair), "score": score} for pair, score in correlation.strongest_pairs(top_n)
            ],
            "partners": {
                str(n): correlation.top_partners(n, top_n) for n in statistics.numbers_in_tier(Tier.HOT)
            },
            "trios": find_frequent_trios(usable, min_trio_frequency)[:top_n],
            "followers": {str(k): v for k, v in temporal_followers(usable).items()},
        }


def generate(pool_size: int, pick: int, draws: Sequence[Draw], num_games: int,
             params: Optional[GenerationParams] = None,
             config: Optional[EngineConfig] = None) -> ResultBatch:
    """Runs one generation on a fresh engine."""
    return LotteryEngine(config).generate(pool_size, pick, draws, num_games, params)
