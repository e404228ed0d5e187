"""
Number Statistics Builder for the Lotto Engine.

Computes per-number frequency, exponentially decayed frequency, recency
and a hot/warm/cold tier from draw history ordered most-recent-first.
Building runs in O(draws x k) plus an O(N log N) ranking pass.
"""
from typing import Dict, List, Optional, Sequence, Set

import numpy as np
import pandas as pd
from loguru import logger

from lotto_engine.config import DECAY_CONSTANT, HOT_FRACTION, COLD_FRACTION
from lotto_engine.models import Draw, NumberStat, Tier


class NumberStatistics:
    """Read-only view over the NumberStat of every pool number."""

    def __init__(self, stats: List[NumberStat], pool_size: int, history_length: int):
        self.pool_size = pool_size
        self.history_length = history_length
        self._stats: Dict[int, NumberStat] = {s.number: s for s in stats}

    def __len__(self) -> int:
        return len(self._stats)

    def __iter__(self):
        return iter(self._stats[n] for n in sorted(self._stats))

    def __getitem__(self, number: int) -> NumberStat:
        return self._stats[number]

    @property
    def is_empty(self) -> bool:
        return self.history_length == 0

    def tier_of(self, number: int) -> Tier:
        return self._stats[number].tier

    def numbers_in_tier(self, tier: Tier) -> List[int]:
        return sorted(n for n, s in self._stats.items() if s.tier == tier)

    def tier_sets(self) -> Dict[Tier, Set[int]]:
        return {tier: set(self.numbers_in_tier(tier)) for tier in Tier}

    def weighted_frequency_vector(self) -> np.ndarray:
        """Weighted frequencies indexed by number (index 0 unused)."""
        vector = np.zeros(self.pool_size + 1, dtype=float)
        for number, stat in self._stats.items():
            vector[number] = stat.weighted_frequency
        return vector

    def normalized_frequency_vector(self) -> np.ndarray:
        """Weighted frequencies scaled to [0, 1] by the pool maximum."""
        vector = self.weighted_frequency_vector()
        peak = vector.max()
        if peak > 0:
            vector = vector / peak
        return vector

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "number": s.number,
                "raw_frequency": s.raw_frequency,
                "weighted_frequency": s.weighted_frequency,
                "tier": s.tier.value,
                "draws_since_last_seen": s.draws_since_last_seen,
            }
            for s in self
        ]
        return pd.DataFrame(rows, columns=[
            "number", "raw_frequency", "weighted_frequency", "tier", "draws_since_last_seen"
        ])


class NumberStatisticsBuilder:
    """
    Builds NumberStatistics from draw history.

    Args:
        decay_constant: Recency index at which a draw's weight falls to 1/e.
        hot_fraction: Share of the pool classified as hot.
        cold_fraction: Share of the pool classified as cold.
    """

    def __init__(self, decay_constant: float = DECAY_CONSTANT,
                 hot_fraction: float = HOT_FRACTION,
                 cold_fraction: float = COLD_FRACTION):
        if decay_constant <= 0:
            raise ValueError("decay_constant must be positive.")
        if hot_fraction < 0 or cold_fraction < 0 or hot_fraction + cold_fraction > 1:
            raise ValueError("hot_fraction and cold_fraction must be non-negative and sum to at most 1.")
        self.decay_constant = decay_constant
        self.hot_fraction = hot_fraction
        self.cold_fraction = cold_fraction

    def build(self, draws: Sequence[Draw], pool_size: int) -> NumberStatistics:
        """
        Computes one NumberStat per number in [1, pool_size].

        Args:
            draws: Draw history ordered most-recent-first.
            pool_size: Highest number in play.

        Returns:
            NumberStatistics: Stats for the whole pool.
        """
        history_length = len(draws)
        if history_length == 0:
            logger.warning(
                f"No draw history supplied. Using a flat prior: all {pool_size} numbers are warm with zero frequency."
            )
            flat = [NumberStat(n, 0, 0.0, Tier.WARM, 0) for n in range(1, pool_size + 1)]
            return NumberStatistics(flat, pool_size, 0)

        raw = np.zeros(pool_size + 1, dtype=int)
        weighted = np.zeros(pool_size + 1, dtype=float)
        last_seen = np.full(pool_size + 1, history_length, dtype=int)

        for recency_index, draw in enumerate(draws):
            weight = np.exp(-recency_index / self.decay_constant)
            for number in draw.numbers:
                if not 1 <= number <= pool_size:
                    continue
                raw[number] += 1
                weighted[number] += weight
                if last_seen[number] == history_length:
                    last_seen[number] = recency_index

        tiers = self._assign_tiers(raw, weighted, pool_size)
        stats = [
            NumberStat(
                number=n,
                raw_frequency=int(raw[n]),
                weighted_frequency=float(weighted[n]),
                tier=tiers[n],
                draws_since_last_seen=int(last_seen[n]),
            )
            for n in range(1, pool_size + 1)
        ]
        result = NumberStatistics(stats, pool_size, history_length)
        logger.info(
            f"Number statistics built from {history_length} draws: "
            f"{len(result.numbers_in_tier(Tier.HOT))} hot, "
            f"{len(result.numbers_in_tier(Tier.WARM))} warm, "
            f"{len(result.numbers_in_tier(Tier.COLD))} cold."
        )
        return result

    def _assign_tiers(self, raw: np.ndarray, weighted: np.ndarray, pool_size: int) -> Dict[int, Tier]:
        # Rank by weighted frequency descending, ties by number ascending
        ranked = sorted(range(1, pool_size + 1), key=lambda n: (-weighted[n], n))
        cold_count = int(round(pool_size * self.cold_fraction))
        hot_count = int(round(pool_size * self.hot_fraction))

        cold = set(ranked[len(ranked) - cold_count:]) if cold_count else set()
        cold.update(n for n in ranked if raw[n] == 0)

        hot = set()
        for n in ranked:
            if len(hot) >= hot_count:
                break
            if n not in cold:
                hot.add(n)

        tiers = {}
        for n in ranked:
            if n in cold:
                tiers[n] = Tier.COLD
            elif n in hot:
                tiers[n] = Tier.HOT
            else:
                tiers[n] = Tier.WARM
        return tiers


def build_number_statistics(draws: Sequence[Draw], pool_size: int,
                            decay_constant: float = DECAY_CONSTANT,
                            hot_fraction: float = HOT_FRACTION,
                            cold_fraction: float = COLD_FRACTION) -> NumberStatistics:
    """Convenience wrapper around NumberStatisticsBuilder.build."""
    return NumberStatisticsBuilder(decay_constant, hot_fraction, cold_fraction).build(draws, pool_size)


def delay_profile(draws: Sequence[Draw], pool_size: int) -> pd.DataFrame:
    """
    Gap analysis between consecutive appearances of every number.

    Args:
        draws: Draw history ordered most-recent-first.
        pool_size: Highest number in play.

    Returns:
        pd.DataFrame: One row per number with average_delay, min_delay,
        max_delay and current_delay (draws since the last appearance).
    """
    history_length = len(draws)
    positions: Dict[int, List[int]] = {n: [] for n in range(1, pool_size + 1)}
    for index, draw in enumerate(draws):
        for number in draw.numbers:
            if number in positions:
                positions[number].append(index)

    rows = []
    for number in range(1, pool_size + 1):
        seen = positions[number]
        gaps = np.diff(seen) if len(seen) > 1 else np.array([], dtype=int)
        rows.append({
            "number": number,
            "appearances": len(seen),
            "average_delay": float(gaps.mean()) if gaps.size else 0.0,
            "min_delay": int(gaps.min()) if gaps.size else 0,
            "max_delay": int(gaps.max()) if gaps.size else 0,
            "current_delay": seen[0] if seen else history_length,
        })
    return pd.DataFrame(rows)


def dispersion_metrics(values: Optional[Sequence[float]]) -> Dict[str, float]:
    """Mean, median, variance, standard deviation and coefficient of variation."""
    array = np.asarray(values if values is not None else [], dtype=float)
    if array.size == 0:
        return {
            "mean": 0.0,
            "median": 0.0,
            "variance": 0.0,
            "standard_deviation": 0.0,
            "coefficient_of_variation": 0.0,
        }
    mean = float(array.mean())
    std = float(array.std())
    return {
        "mean": mean,
        "median": float(np.median(array)),
        "variance": float(array.var()),
        "standard_deviation": std,
        "coefficient_of_variation": (std / mean) * 100 if mean != 0 else 0.0,
    }
