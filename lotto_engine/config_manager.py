"""
Configuration Manager for the Lotto Engine.

Reads config/config.ini with configparser. Every value has a fallback in
lotto_engine.config, so a missing file or section yields the defaults.
"""

import configparser
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from loguru import logger

from lotto_engine import config as defaults
from lotto_engine.fitness import FitnessWeights
from lotto_engine.models import InvalidParameterError


@dataclass
class EngineConfig:
    """All tunable engine settings."""
    population_size: int = defaults.POPULATION_SIZE
    generations: int = defaults.GENERATIONS
    mutation_rate: float = defaults.MUTATION_RATE
    elite_percent: float = defaults.ELITE_PERCENT
    tournament_size: int = defaults.TOURNAMENT_SIZE
    stagnation_generations: int = defaults.STAGNATION_GENERATIONS
    workers: int = defaults.WORKERS
    strategy: str = defaults.DEFAULT_STRATEGY

    decay_constant: float = defaults.DECAY_CONSTANT
    hot_fraction: float = defaults.HOT_FRACTION
    cold_fraction: float = defaults.COLD_FRACTION
    min_history: int = defaults.MIN_HISTORY

    correlation_threshold: float = defaults.CORRELATION_THRESHOLD

    weights: FitnessWeights = field(default_factory=FitnessWeights)
    strategy_weights: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in defaults.STRATEGY_WEIGHTS.items()}
    )

    max_consecutive: int = defaults.MAX_CONSECUTIVE
    repair_samples: int = defaults.REPAIR_SAMPLES
    top_up_factor: int = defaults.TOP_UP_FACTOR

    log_file: str = defaults.DEFAULT_LOG_FILE
    lotteries: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: {k: dict(v) for k, v in defaults.LOTTERIES.items()}
    )

    def lottery(self, lottery_id: str) -> Dict[str, int]:
        """Pool size and pick for a registered lottery."""
        try:
            return self.lotteries[lottery_id.strip().lower()]
        except KeyError:
            valid = ", ".join(sorted(self.lotteries))
            raise InvalidParameterError(f"Unknown lottery '{lottery_id}'. Expected one of: {valid}")


def load_config(config_path: Optional[str] = defaults.DEFAULT_CONFIG_PATH) -> EngineConfig:
    """
    Loads engine configuration from an INI file.

    Args:
        config_path: Path to the INI file. None or a missing file gives defaults.

    Returns:
        EngineConfig: The loaded configuration.
    """
    engine_config = EngineConfig()
    if not config_path or not os.path.exists(config_path):
        logger.warning(f"Configuration file not found: {config_path}. Using default engine parameters.")
        return engine_config

    parser = configparser.ConfigParser()
    try:
        parser.read(config_path)

        engine_config.population_size = parser.getint("engine", "population_size", fallback=defaults.POPULATION_SIZE)
        engine_config.generations = parser.getint("engine", "generations", fallback=defaults.GENERATIONS)
        engine_config.mutation_rate = parser.getfloat("engine", "mutation_rate", fallback=defaults.MUTATION_RATE)
        engine_config.elite_percent = parser.getfloat("engine", "elite_percent", fallback=defaults.ELITE_PERCENT)
        engine_config.tournament_size = parser.getint("engine", "tournament_size", fallback=defaults.TOURNAMENT_SIZE)
        engine_config.stagnation_generations = parser.getint(
            "engine", "stagnation_generations", fallback=defaults.STAGNATION_GENERATIONS
        )
        engine_config.workers = parser.getint("engine", "workers", fallback=defaults.WORKERS)
        engine_config.strategy = parser.get("engine", "strategy", fallback=defaults.DEFAULT_STRATEGY)

        engine_config.decay_constant = parser.getfloat("statistics", "decay_constant", fallback=defaults.DECAY_CONSTANT)
        engine_config.hot_fraction = parser.getfloat("statistics", "hot_fraction", fallback=defaults.HOT_FRACTION)
        engine_config.cold_fraction = parser.getfloat("statistics", "cold_fraction", fallback=defaults.COLD_FRACTION)
        engine_config.min_history = parser.getint("statistics", "min_history", fallback=defaults.MIN_HISTORY)

        engine_config.correlation_threshold = parser.getfloat(
            "correlation", "threshold", fallback=defaults.CORRELATION_THRESHOLD
        )

        engine_config.weights = FitnessWeights(
            bucket_diversity=parser.getfloat("fitness", "bucket_diversity", fallback=defaults.BUCKET_DIVERSITY_WEIGHT),
            run_penalty=parser.getfloat("fitness", "run_penalty", fallback=defaults.RUN_PENALTY_WEIGHT),
            parity_balance=parser.getfloat("fitness", "parity_balance", fallback=defaults.PARITY_BALANCE_WEIGHT),
            sum_deviation=parser.getfloat("fitness", "sum_deviation", fallback=defaults.SUM_DEVIATION_WEIGHT),
        )

        if parser.has_section("strategy_weights"):
            for strategy, terms in engine_config.strategy_weights.items():
                terms["correlation"] = parser.getfloat(
                    "strategy_weights", f"{strategy}_correlation", fallback=terms["correlation"]
                )
                terms["frequency"] = parser.getfloat(
                    "strategy_weights", f"{strategy}_frequency", fallback=terms["frequency"]
                )

        engine_config.max_consecutive = parser.getint("constraints", "max_consecutive", fallback=defaults.MAX_CONSECUTIVE)
        engine_config.repair_samples = parser.getint("constraints", "repair_samples", fallback=defaults.REPAIR_SAMPLES)
        engine_config.top_up_factor = parser.getint("constraints", "top_up_factor", fallback=defaults.TOP_UP_FACTOR)

        engine_config.log_file = parser.get("paths", "log_file", fallback=defaults.DEFAULT_LOG_FILE)

        if parser.has_section("lotteries"):
            # Entries look like: megasena = 60,6
            for lottery_id, value in parser.items("lotteries"):
                pool, pick = (int(part) for part in value.split(","))
                engine_config.lotteries[lottery_id] = {"pool": pool, "pick": pick}

        logger.info(f"Configuration loaded from {config_path}")
    except (configparser.Error, ValueError) as e:
        logger.error(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default engine parameters")
        return EngineConfig()

    return engine_config
