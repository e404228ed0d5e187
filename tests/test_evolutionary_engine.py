"""
Tests for the Genetic Algorithm Optimizer
=========================================
"""

import numpy as np

from lotto_engine.evolutionary_engine import GeneticAlgorithmOptimizer
from lotto_engine.fitness import FitnessEvaluator


def make_optimizer(pool_size=60, pick=6, seed=42, **kwargs):
    settings = dict(num_generations=15, population_size=30, mutation_rate=0.2)
    settings.update(kwargs)
    return GeneticAlgorithmOptimizer(
        evaluator=FitnessEvaluator(pool_size),
        pick=pick,
        rng=np.random.default_rng(seed),
        **settings
    )


def is_valid(candidate, pool_size, pick):
    return (
        len(candidate) == pick
        and len(set(candidate)) == pick
        and all(1 <= n <= pool_size for n in candidate)
        and list(candidate) == sorted(candidate)
    )


class TestGeneticAlgorithmOptimizer:
    """Test suite for GeneticAlgorithmOptimizer."""

    def test_every_individual_is_valid(self):
        """Final population has k unique in-range numbers per game."""
        optimizer = make_optimizer()
        ranked = optimizer.evolve()

        assert len(ranked) == 30
        for individual in ranked:
            assert is_valid(individual.candidate, 60, 6)

    def test_ranked_best_first(self):
        ranked = make_optimizer().evolve()
        fitness = [ind.fitness for ind in ranked]
        assert fitness == sorted(fitness, reverse=True)

    def test_best_fitness_never_decreases(self):
        """Elitism keeps the best individual across generations."""
        optimizer = make_optimizer(num_generations=25)
        optimizer.evolve()

        assert len(optimizer.history) == 26
        assert optimizer.generations_run == 25
        for before, after in zip(optimizer.history, optimizer.history[1:]):
            assert after >= before

    def test_search_improves_on_random_start(self):
        optimizer = make_optimizer(num_generations=30, population_size=50)
        optimizer.evolve()
        assert optimizer.history[-1] >= optimizer.history[0]

    def test_same_seed_same_result(self):
        """Identical seeds give identical populations."""
        first = [ind.candidate for ind in make_optimizer(seed=7).evolve()]
        second = [ind.candidate for ind in make_optimizer(seed=7).evolve()]
        assert first == second

    def test_zero_generations_returns_initial_population(self):
        optimizer = make_optimizer(num_generations=0)
        ranked = optimizer.evolve()

        assert len(ranked) == 30
        assert len(optimizer.history) == 1
        assert optimizer.generations_run == 0

    def test_initial_population_is_used(self):
        """Seed games are scored and padded with random games."""
        seed_game = [5, 16, 27, 38, 49, 60]
        optimizer = make_optimizer(num_generations=0)
        ranked = optimizer.evolve(initial_population=[seed_game])

        assert len(ranked) == 30
        assert seed_game in [ind.candidate for ind in ranked]

    def test_elite_count(self):
        assert make_optimizer(population_size=20, elite_percent=0.25).elite_count == 5
        assert make_optimizer(population_size=30, elite_percent=0.01).elite_count == 1
        assert make_optimizer(population_size=30, elite_percent=1.0).elite_count == 30


class TestOperators:
    """Test suite for crossover and mutation."""

    def test_crossover_gives_valid_child(self):
        optimizer = make_optimizer()
        parent1 = [1, 2, 3, 4, 5, 6]
        parent2 = [4, 5, 6, 7, 8, 9]
        for _ in range(50):
            child = optimizer._crossover(parent1, parent2)
            assert is_valid(child, 60, 6)
            assert set(child) <= set(parent1) | set(parent2)

    def test_crossover_mixes_both_parents(self):
        """Disjoint parents always give a child with genes from each."""
        optimizer = make_optimizer()
        parent1 = [1, 2, 3, 4, 5, 6]
        parent2 = [11, 12, 13, 14, 15, 16]
        for _ in range(100):
            child = set(optimizer._crossover(parent1, parent2))
            assert child & set(parent1)
            assert child & set(parent2)

    def test_crossover_with_single_number_games(self):
        optimizer = make_optimizer(pick=1)
        assert optimizer._crossover([7], [9]) == [9]

    def test_crossover_of_identical_parents_fills_from_pool(self):
        """Duplicates are replaced with unused numbers."""
        optimizer = make_optimizer()
        child = optimizer._crossover([1, 2, 3, 4, 5, 6], [1, 2, 3, 4, 5, 6])
        assert is_valid(child, 60, 6)

    def test_mutation_swaps_one_number(self):
        optimizer = make_optimizer(mutation_rate=1.0)
        play = [1, 2, 3, 4, 5, 6]
        mutated = optimizer._mutate(play)

        assert is_valid(mutated, 60, 6)
        assert len(set(mutated) - set(play)) == 1

    def test_mutation_rate_zero_keeps_play(self):
        optimizer = make_optimizer(mutation_rate=0.0)
        play = [1, 2, 3, 4, 5, 6]
        assert optimizer._mutate(play) == play


class TestDegenerateGames:
    """Pick equal to the pool size has a single possible game."""

    def test_pick_equals_pool(self):
        optimizer = make_optimizer(pool_size=10, pick=10, num_generations=5, population_size=8)
        ranked = optimizer.evolve()

        assert all(ind.candidate == list(range(1, 11)) for ind in ranked)

    def test_stagnation_stops_early(self):
        """No improvement possible, so the search stops after one generation."""
        optimizer = make_optimizer(pool_size=10, pick=10, num_generations=50,
                                   population_size=8, stagnation_generations=1)
        optimizer.evolve()

        assert optimizer.generations_run == 1
        assert len(optimizer.history) == 2
