"""
Diversity & Constraint Enforcer for the Lotto Engine.

This module takes the optimizer's ranked games, repairs structural
violations the fitness function only penalizes (long consecutive runs,
overloaded 10-wide ranges), and then selects a batch of games that are
pairwise far apart in Hamming distance.
"""
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from lotto_engine.config import BUCKET_WIDTH, MAX_CONSECUTIVE, REPAIR_SAMPLES, TOP_UP_FACTOR
from lotto_engine.fitness import FitnessEvaluator, bucket_counts
from lotto_engine.models import Individual, hamming_distance


def _runs(sorted_combo: Sequence[int]) -> List[List[int]]:
    """Splits a sorted game into maximal runs of consecutive numbers."""
    runs: List[List[int]] = []
    for n in sorted_combo:
        if runs and n - runs[-1][-1] == 1:
            runs[-1].append(n)
        else:
            runs.append([n])
    return runs


class DiversityEnforcer:
    """
    Repairs and selects the final batch of games.

    Args:
        evaluator: Scores repaired games; its pool size defines the pool.
        pick: Numbers per game.
        rng: The run's random generator, used for repair and top-up sampling.
        max_consecutive: Longest allowed run of consecutive numbers.
        bucket_cap: Most numbers allowed in one 10-wide range; ceil(pick / 3) by default.
        repair_samples: Replacement numbers sampled per repair step.
    """

    def __init__(self, evaluator: FitnessEvaluator, pick: int, rng: np.random.Generator,
                 max_consecutive: int = MAX_CONSECUTIVE, bucket_cap: Optional[int] = None,
                 repair_samples: int = REPAIR_SAMPLES, top_up_factor: int = TOP_UP_FACTOR):
        self.evaluator = evaluator
        self.pool_size = evaluator.pool_size
        self.pick = pick
        self.rng = rng
        self.max_consecutive = max_consecutive
        self.bucket_cap = bucket_cap if bucket_cap is not None else math.ceil(pick / 3)
        self.repair_samples = max(1, repair_samples)
        self.top_up_factor = max(0, top_up_factor)
        self.constraints_relaxed = False
        self.diversity_reduced = False

    # --- Structural constraints ---

    def violations(self, combination: Sequence[int]) -> int:
        """Numbers in excess of the run limit plus numbers in excess of the bucket cap."""
        run_excess = sum(max(0, len(r) - self.max_consecutive) for r in _runs(sorted(combination)))
        bucket_excess = sum(
            max(0, c - self.bucket_cap) for c in bucket_counts(combination, self.pool_size, BUCKET_WIDTH)
        )
        return run_excess + bucket_excess

    def passes_constraints(self, combination: Sequence[int]) -> bool:
        return self.violations(combination) == 0

    def _rank_key(self, individual: Individual) -> Tuple[bool, float]:
        return not self.passes_constraints(individual.candidate), -individual.fitness

    def _offenders(self, combination: Sequence[int]) -> List[int]:
        offenders = set()
        for run in _runs(sorted(combination)):
            if len(run) > self.max_consecutive:
                offenders.update(run)
        counts = bucket_counts(combination, self.pool_size, BUCKET_WIDTH)
        for n in combination:
            if counts[(n - 1) // BUCKET_WIDTH] > self.bucket_cap:
                offenders.add(n)
        return sorted(offenders)

    def _best_swap(self, game: List[int], current: int,
                   replacements: Sequence[int]) -> Tuple[Optional[Individual], int]:
        best: Optional[Individual] = None
        best_violations = current
        for offender in self._offenders(game):
            for replacement in replacements:
                trial = sorted([n for n in game if n != offender] + [replacement])
                trial_violations = self.violations(trial)
                if trial_violations >= current:
                    continue
                scored = self.evaluator.evaluate(trial)
                if best is None or scored.fitness > best.fitness or (
                    scored.fitness == best.fitness and trial_violations < best_violations
                ):
                    best = scored
                    best_violations = trial_violations
        return best, best_violations

    def repair(self, individual: Individual) -> Tuple[Individual, bool]:
        """
        Swaps offending numbers for sampled unused ones until the game is valid.

        A swap is only taken if it lowers the violation count; among the
        improving swaps the one with the highest fitness wins.

        Returns:
            Tuple[Individual, bool]: The repaired individual and whether it
            now satisfies every constraint.
        """
        game = individual.candidate[:]
        current = self.violations(game)
        if current == 0:
            return individual, True

        repaired = individual
        while current > 0:
            in_game = set(game)
            unused = [n for n in range(1, self.pool_size + 1) if n not in in_game]
            if not unused:
                break
            sample_size = min(self.repair_samples, len(unused))
            sampled = [int(n) for n in self.rng.choice(unused, size=sample_size, replace=False)]

            best, best_violations = self._best_swap(game, current, sampled)
            if best is None and sample_size < len(unused):
                best, best_violations = self._best_swap(game, current, unused)
            if best is None:
                break
            repaired = best
            game = best.candidate[:]
            current = best_violations

        return repaired, current == 0

    def repair_all(self, individuals: Sequence[Individual]) -> List[Individual]:
        """Repairs every game and drops duplicates. Valid games rank first, then by fitness."""
        unique = {}
        unrepaired = 0
        for individual in individuals:
            repaired, valid = self.repair(individual)
            if not valid:
                unrepaired += 1
            if repaired.key not in unique:
                unique[repaired.key] = repaired
        if unrepaired:
            logger.debug(f"{unrepaired} of {len(individuals)} games still break the structural constraints after repair.")
        return sorted(unique.values(), key=self._rank_key)

    # --- Diversity ---

    @staticmethod
    def _greedy(candidates: Sequence[Individual], kept: List[Individual],
                num_games: int, min_distance: int) -> None:
        for candidate in candidates:
            if len(kept) >= num_games:
                return
            if all(hamming_distance(candidate.candidate, k.candidate) >= min_distance for k in kept):
                kept.append(candidate)

    def _fresh_candidates(self, count: int, exclude: set) -> List[Individual]:
        pool = np.arange(1, self.pool_size + 1)
        fresh = []
        for _ in range(count):
            game = sorted(int(n) for n in self.rng.choice(pool, size=self.pick, replace=False))
            fresh.append(self.evaluator.evaluate(game))
        repaired = [ind for ind in self.repair_all(fresh) if ind.key not in exclude]
        return repaired

    def select(self, ranked: Sequence[Individual], num_games: int, min_distance: int) -> List[Individual]:
        """
        Greedily picks up to ``num_games`` games at least ``min_distance`` apart.

        When the ranked games run out, fresh random games are tried. If the
        batch is still short, the best remaining distinct games are added
        regardless of distance and ``diversity_reduced`` is set.
        """
        candidates = self.repair_all(ranked)
        kept: List[Individual] = []
        self._greedy(candidates, kept, num_games, min_distance)

        if len(kept) < num_games and self.top_up_factor:
            seen = {c.key for c in candidates}
            fresh = self._fresh_candidates(num_games * self.top_up_factor, seen)
            logger.info(f"Population exhausted with {len(kept)}/{num_games} diverse games. Trying {len(fresh)} fresh games.")
            self._greedy(fresh, kept, num_games, min_distance)
            candidates = sorted(list(candidates) + fresh, key=self._rank_key)

        if len(kept) < num_games:
            self.diversity_reduced = True
            kept_keys = {k.key for k in kept}
            for candidate in candidates:
                if len(kept) >= num_games:
                    break
                if candidate.key not in kept_keys:
                    kept.append(candidate)
                    kept_keys.add(candidate.key)
            logger.warning(
                f"Minimum Hamming distance {min_distance} could not be met for {num_games} games "
                f"(pick {self.pick} of {self.pool_size}). Returning {len(kept)} games with reduced diversity."
            )

        self.constraints_relaxed = any(not self.passes_constraints(k.candidate) for k in kept)
        if self.constraints_relaxed:
            logger.warning(
                f"Some games could not satisfy max {self.max_consecutive} consecutive numbers "
                f"and at most {self.bucket_cap} per range in a pool of {self.pool_size}. Constraints relaxed."
            )
        return kept
