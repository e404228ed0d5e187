import math
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from lotto_engine.fitness import FitnessEvaluator
from lotto_engine.models import Individual


class GeneticAlgorithmOptimizer:
    """
    Evolves a fixed-size population of k-number games.

    Each generation keeps the top ``ceil(population_size * elite_percent)``
    individuals unchanged and refills the rest with tournament-selected,
    crossed-over and mutated children. Because elites survive, the best
    fitness recorded in ``history`` never decreases.
    """

    def __init__(self, evaluator: FitnessEvaluator, pick: int, num_generations: int,
                 population_size: int, mutation_rate: float, tournament_size: int = 3,
                 elite_percent: float = 0.1, rng: Optional[np.random.Generator] = None,
                 stagnation_generations: int = 0):
        self.evaluator = evaluator
        self.pool_size = evaluator.pool_size
        self.pick = pick
        self.num_generations = num_generations
        self.population_size = population_size
        self.mutation_rate = mutation_rate
        self.tournament_size = tournament_size
        self.elite_count = min(population_size, max(1, math.ceil(population_size * elite_percent)))
        self.stagnation_generations = stagnation_generations
        self.rng = rng if rng is not None else np.random.default_rng()
        self.history: List[float] = []
        self.generations_run = 0
        self._pool = np.arange(1, self.pool_size + 1)

        if self.pick >= self.pool_size:
            logger.warning(
                f"Pick ({self.pick}) covers the whole pool ({self.pool_size}). "
                "Every candidate will be the full pool; check the game configuration."
            )
        logger.info("GeneticAlgorithmOptimizer initialized.")

    def _random_candidate(self) -> List[int]:
        chosen = self.rng.choice(self._pool, size=self.pick, replace=False)
        return sorted(int(n) for n in chosen)

    def _initial_population(self) -> List[List[int]]:
        return [self._random_candidate() for _ in range(self.population_size)]

    def _selection(self, population: Sequence[Individual]) -> Individual:
        """Performs tournament selection."""
        indices = self.rng.integers(0, len(population), size=self.tournament_size)
        winner = population[int(indices[0])]
        for index in indices[1:]:
            contestant = population[int(index)]
            if contestant.fitness > winner.fitness:
                winner = contestant
        return winner

    def _crossover(self, parent1: Sequence[int], parent2: Sequence[int]) -> List[int]:
        """Single-point crossover over the sorted parents, repaired to k unique numbers."""
        # Cut inside the game so each parent contributes at least one gene
        cut = int(self.rng.integers(1, self.pick)) if self.pick > 1 else 0
        child: List[int] = []
        seen = set()
        # Head of parent1, tail of parent2, then the unused genes of both parents
        for gene in list(parent1[:cut]) + list(parent2[cut:]) + list(parent2[:cut]) + list(parent1[cut:]):
            if len(child) == self.pick:
                break
            if gene not in seen:
                child.append(gene)
                seen.add(gene)

        if len(child) < self.pick:
            unused = [int(n) for n in self._pool if n not in seen]
            fill = self.rng.choice(unused, size=self.pick - len(child), replace=False)
            child.extend(int(n) for n in fill)

        return sorted(child)

    def _mutate(self, play: List[int]) -> List[int]:
        """Swaps one random number for an unused one with probability mutation_rate."""
        if self.rng.random() >= self.mutation_rate:
            return play
        current = set(play)
        unused = [int(n) for n in self._pool if n not in current]
        if not unused:
            return play
        mutated = play[:]
        index_to_mutate = int(self.rng.integers(0, len(mutated)))
        mutated[index_to_mutate] = int(self.rng.choice(unused))
        return sorted(mutated)

    def _breed(self, ranked: Sequence[Individual]) -> List[List[int]]:
        next_generation = [ind.candidate[:] for ind in ranked[:self.elite_count]]
        while len(next_generation) < self.population_size:
            parent1 = self._selection(ranked)
            parent2 = self._selection(ranked)
            child = self._crossover(parent1.candidate, parent2.candidate)
            next_generation.append(self._mutate(child))
        return next_generation

    @staticmethod
    def _rank(population: List[Individual]) -> List[Individual]:
        # Stable sort keeps the earlier individual first on equal fitness
        return sorted(population, key=lambda ind: -ind.fitness)

    def evolve(self, initial_population: Optional[Sequence[Sequence[int]]] = None) -> List[Individual]:
        """
        Evolves a population of games over the configured number of generations.

        :param initial_population: Optional seed games; random games are used
            when omitted or when fewer than population_size are supplied.
        :return: Final population sorted by fitness, best first.
        """
        logger.info(
            f"Starting evolution for {self.num_generations} generations "
            f"(population {self.population_size}, pick {self.pick} of {self.pool_size})..."
        )
        self.history = []
        self.generations_run = 0

        plays = [sorted(int(n) for n in p) for p in (initial_population or [])][:self.population_size]
        while len(plays) < self.population_size:
            plays.append(self._random_candidate())

        ranked = self._rank(self.evaluator.evaluate_population(plays))
        self.history.append(ranked[0].fitness)
        stagnant = 0

        for gen in range(self.num_generations):
            plays = self._breed(ranked)
            ranked = self._rank(self.evaluator.evaluate_population(plays))
            best = ranked[0].fitness
            stagnant = stagnant + 1 if best <= self.history[-1] else 0
            self.history.append(best)
            self.generations_run = gen + 1

            logger.debug(f"Generation {gen + 1}: best fitness = {best:.2f}")
            if (gen + 1) % 20 == 0:
                logger.info(f"Completed generation {gen + 1}/{self.num_generations}, best fitness {best:.2f}")

            if self.stagnation_generations and stagnant >= self.stagnation_generations:
                logger.info(f"No improvement for {stagnant} generations. Stopping early at generation {gen + 1}.")
                break

        logger.info(f"Evolution complete. Best fitness {ranked[0].fitness:.2f}.")
        return ranked
