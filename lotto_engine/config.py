"""
Configuration defaults for the Lotto Engine.

This file contains the default parameters for statistics, correlation,
fitness scoring and the genetic search, plus the registry of supported
lottery games. Values here are fallbacks: config/config.ini overrides
them through the config_manager module.
"""
from typing import Dict

# --- Data Source ---
DEFAULT_CONFIG_PATH: str = "config/config.ini"
DEFAULT_LOG_FILE: str = "logs/lotto_engine.log"

# --- Genetic Search ---
POPULATION_SIZE: int = 200
GENERATIONS: int = 100
MUTATION_RATE: float = 0.15
ELITE_PERCENT: float = 0.1
TOURNAMENT_SIZE: int = 3
# 0 disables early stopping
STAGNATION_GENERATIONS: int = 0
WORKERS: int = 1

# --- Number Statistics ---
DECAY_CONSTANT: float = 20.0
HOT_FRACTION: float = 0.3
COLD_FRACTION: float = 0.3
# Below this many draws the engine scores on structure only
MIN_HISTORY: int = 30

# --- Pairwise Correlation ---
CORRELATION_THRESHOLD: float = 0.1

# --- Fitness Weights ---
BUCKET_WIDTH: int = 10
BUCKET_DIVERSITY_WEIGHT: float = 15.0
RUN_PENALTY_WEIGHT: float = 8.0
PARITY_BALANCE_WEIGHT: float = 5.0
SUM_DEVIATION_WEIGHT: float = 0.05

# Context weights per strategy: (correlation, frequency)
STRATEGY_WEIGHTS: Dict[str, Dict[str, float]] = {
    "hot": {"correlation": 0.0, "frequency": 10.0},
    "cold": {"correlation": 0.0, "frequency": -10.0},
    "mixed": {"correlation": 2.0, "frequency": 5.0},
    "correlated": {"correlation": 5.0, "frequency": 0.0},
}
DEFAULT_STRATEGY: str = "mixed"

# --- Structural Constraints ---
MAX_CONSECUTIVE: int = 2
REPAIR_SAMPLES: int = 8
# Fresh random candidates sampled per requested game when the
# optimizer's population runs out of diverse entries
TOP_UP_FACTOR: int = 10

# --- Supported Games ---
# pool: numbers in play, pick: numbers per game
LOTTERIES: Dict[str, Dict[str, int]] = {
    "megasena": {"pool": 60, "pick": 6},
    "lotofacil": {"pool": 25, "pick": 15},
    "quina": {"pool": 80, "pick": 5},
    "lotomania": {"pool": 100, "pick": 50},
    "duplasena": {"pool": 50, "pick": 6},
    "timemania": {"pool": 80, "pick": 10},
    "diadesorte": {"pool": 31, "pick": 7},
}
