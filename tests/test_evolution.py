"""Tests for genetic operators and the round robin."""

import numpy as np
import pytest

from sternhalma.ai.genome import DEFAULT_GENOME, GENE_RANGES, GENOME_KEYS
from sternhalma.models import TrainingConfig
from sternhalma.training.evolution import (
    DRAW_POINTS,
    WIN_POINTS,
    Individual,
    create_initial_population,
    create_random_genome,
    crossover,
    evolve_generation,
    games_per_generation,
    matchup_schedule,
    mutate,
    record_result,
    seat_order,
    tournament_select,
)


def _in_range(genome):
    return all(GENE_RANGES[k][0] <= genome[k] <= GENE_RANGES[k][1] for k in GENOME_KEYS)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


class TestOperators:
    def test_initial_population(self, rng):
        population = create_initial_population(6, rng)
        assert len(population) == 6
        assert population[0].genome == DEFAULT_GENOME
        assert all(_in_range(ind.genome) for ind in population)

    def test_random_genome_in_range(self, rng):
        for _ in range(20):
            assert _in_range(create_random_genome(rng))

    def test_crossover_takes_genes_from_parents(self, rng):
        a = {k: GENE_RANGES[k][0] for k in GENOME_KEYS}
        b = {k: GENE_RANGES[k][1] for k in GENOME_KEYS}
        child = crossover(a, b, rng)
        assert all(child[k] in (a[k], b[k]) for k in GENOME_KEYS)

    def test_mutate_rate_zero_is_identity(self, rng):
        assert mutate(DEFAULT_GENOME, 0.0, 1.0, rng) == DEFAULT_GENOME

    def test_mutate_never_leaves_range(self, rng):
        genome = dict(DEFAULT_GENOME)
        for _ in range(50):
            genome = mutate(genome, 1.0, 1.0, rng)
            assert _in_range(genome)

    def test_tournament_picks_fittest(self, rng):
        population = [Individual(genome=dict(DEFAULT_GENOME), fitness=f) for f in (1, 9, 3)]
        assert tournament_select(population, 50, rng).fitness == 9

    def test_tournament_rejects_empty(self, rng):
        with pytest.raises(ValueError):
            tournament_select([], 3, rng)


class TestGenerations:
    def test_evolve_keeps_size_and_elites(self, rng):
        config = TrainingConfig(population_size=5, elite_count=2)
        population = create_initial_population(5, rng)
        for i, ind in enumerate(population):
            ind.fitness = float(i)
        next_population = evolve_generation(population, config, rng)

        assert len(next_population) == 5
        assert next_population[0].genome == population[4].genome
        assert next_population[1].genome == population[3].genome
        assert all(ind.fitness == 0 for ind in next_population)
        assert all(_in_range(ind.genome) for ind in next_population)

    def test_schedule(self):
        assert matchup_schedule(4) == [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
        assert games_per_generation(TrainingConfig(population_size=4, games_per_matchup=2)) == 12

    def test_seats_alternate(self):
        assert seat_order((1, 3), 0) == (1, 3)
        assert seat_order((1, 3), 1) == (3, 1)

    def test_scoring(self):
        population = [Individual(genome=dict(DEFAULT_GENOME)) for _ in range(2)]
        record_result(population, 0, 1, 1)
        record_result(population, 1, 0, None)
        assert population[1].fitness == WIN_POINTS + DRAW_POINTS
        assert population[0].fitness == DRAW_POINTS
        assert population[1].wins == 1
        assert population[0].games_played == 2

    def test_schedule_with_first_mover_always_winning(self):
        population = [Individual(genome=dict(DEFAULT_GENOME)) for _ in range(3)]
        played = 0
        for matchup in matchup_schedule(len(population)):
            for g in range(2):
                first, second = seat_order(matchup, g)
                record_result(population, first, second, 0)
                played += 1
        assert played == 6 == games_per_generation(TrainingConfig(population_size=3, games_per_matchup=2))
        # Seats alternate, so every individual wins exactly twice.
        assert [ind.wins for ind in population] == [2, 2, 2]
        assert all(ind.fitness == 2 * WIN_POINTS for ind in population)
