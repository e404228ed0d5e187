"""
Core data types shared by the Lotto Engine components.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Any


class InvalidParameterError(ValueError):
    """Raised when generation parameters are rejected before any work starts."""


class Tier(Enum):
    """Recent-frequency classification of a pool number."""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class Strategy(Enum):
    """Selects which context terms the fitness function rewards."""
    HOT = "hot"
    COLD = "cold"
    MIXED = "mixed"
    CORRELATED = "correlated"

    @classmethod
    def parse(cls, value) -> "Strategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidParameterError(f"Unknown strategy '{value}'. Expected one of: {valid}")


@dataclass(frozen=True)
class Draw:
    """A recorded draw. Immutable once loaded."""
    contest_id: int
    numbers: FrozenSet[int]
    date: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "numbers", frozenset(int(n) for n in self.numbers))

    def sorted_numbers(self) -> List[int]:
        return sorted(self.numbers)


@dataclass(frozen=True)
class NumberStat:
    """Frequency, recency and tier of one pool number."""
    number: int
    raw_frequency: int
    weighted_frequency: float
    tier: Tier
    draws_since_last_seen: int


@dataclass
class GameMetrics:
    """Breakdown of the terms that make up a candidate's fitness."""
    run_penalty: int = 0
    parity_balance: int = 0
    bucket_diversity: int = 0
    sum_deviation: float = 0.0
    correlation_score: float = 0.0
    frequency_score: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class Individual:
    """One scored candidate inside a generation."""
    candidate: List[int]
    fitness: float
    metrics: GameMetrics

    @property
    def key(self) -> tuple:
        return tuple(self.candidate)


@dataclass
class ResultBatch:
    """
    Final games returned to the caller.

    Every pair of games is at least ``min_hamming_distance`` apart unless
    ``diversity_reduced`` is set.
    """
    games: List[List[int]]
    scores: List[float]
    metrics: List[GameMetrics] = field(default_factory=list)
    diversity_reduced: bool = False
    constraints_relaxed: bool = False
    insufficient_history: bool = False
    strategy: str = Strategy.MIXED.value
    seed: Optional[int] = None
    pool_size: int = 0
    pick: int = 0
    min_hamming_distance: int = 0
    generations_run: int = 0
    best_fitness_history: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.games)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "games": [list(g) for g in self.games],
            "scores": list(self.scores),
            "metrics": [m.to_dict() for m in self.metrics],
            "diversity_reduced": self.diversity_reduced,
            "constraints_relaxed": self.constraints_relaxed,
            "insufficient_history": self.insufficient_history,
            "strategy": self.strategy,
            "seed": self.seed,
            "pool_size": self.pool_size,
            "pick": self.pick,
            "min_hamming_distance": self.min_hamming_distance,
            "generations_run": self.generations_run,
            "best_fitness_history": list(self.best_fitness_history),
        }


def hamming_distance(game_a, game_b) -> int:
    """Size of the symmetric difference between two games' number sets."""
    return len(set(game_a).symmetric_difference(game_b))
