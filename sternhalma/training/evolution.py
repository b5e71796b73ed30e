"""
Genetic operators over evaluation genomes.

Individuals carry a genome plus the fitness they earned in the current
round robin (3 per win, 1 per draw). Every operator clamps genes to
``GENE_RANGES`` so no genome ever leaves its valid box.

All randomness goes through a ``numpy.random.Generator`` so runs are
reproducible from a seed.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field

from sternhalma.ai.genome import DEFAULT_GENOME, GENE_RANGES, GENOME_KEYS, Genome
from sternhalma.models import TrainingConfig

# Gaussian spread of fresh genomes, as a share of each gene's range.
RANDOM_GENOME_SPREAD = 0.3

WIN_POINTS = 3
DRAW_POINTS = 1


class Individual(BaseModel):
    genome: Dict[str, float]
    fitness: float = 0.0
    wins: int = 0
    games_played: int = Field(0, alias="gamesPlayed")

    class Config:
        populate_by_name = True


def _clip(key: str, value: float) -> float:
    low, high = GENE_RANGES[key]
    return float(np.clip(value, low, high))


def _range(key: str) -> float:
    low, high = GENE_RANGES[key]
    return high - low


def create_random_genome(rng: np.random.Generator) -> Genome:
    """Default genome perturbed by Gaussian noise of 30% of each range."""
    return {
        key: _clip(key, DEFAULT_GENOME[key] + rng.normal() * _range(key) * RANDOM_GENOME_SPREAD)
        for key in GENOME_KEYS
    }


def crossover(a: Mapping[str, float], b: Mapping[str, float], rng: np.random.Generator) -> Genome:
    """Uniform crossover: each gene from either parent with equal chance."""
    return {key: float(a[key] if rng.random() < 0.5 else b[key]) for key in GENOME_KEYS}


def mutate(
    genome: Mapping[str, float], rate: float, strength: float, rng: np.random.Generator
) -> Genome:
    """Perturb each gene with probability ``rate`` by N(0, range * strength)."""
    mutated = {key: float(genome[key]) for key in GENOME_KEYS}
    for key in GENOME_KEYS:
        if rng.random() < rate:
            mutated[key] = _clip(key, mutated[key] + rng.normal() * _range(key) * strength)
    return mutated


def tournament_select(
    population: List[Individual], size: int, rng: np.random.Generator
) -> Individual:
    """Fittest of ``size`` individuals drawn with replacement."""
    if not population:
        raise ValueError("cannot select from an empty population")
    best = population[int(rng.integers(0, len(population)))]
    for _ in range(size - 1):
        candidate = population[int(rng.integers(0, len(population)))]
        if candidate.fitness > best.fitness:
            best = candidate
    return best


def create_initial_population(size: int, rng: np.random.Generator) -> List[Individual]:
    """The default genome followed by ``size - 1`` random variations."""
    population = [Individual(genome=dict(DEFAULT_GENOME))]
    while len(population) < size:
        population.append(Individual(genome=create_random_genome(rng)))
    return population


def matchup_schedule(population_size: int) -> List[Tuple[int, int]]:
    """Every unordered pair ``(i, j)`` with ``i < j``, in row order."""
    return [
        (i, j)
        for i in range(population_size)
        for j in range(i + 1, population_size)
    ]


def games_per_generation(config: TrainingConfig) -> int:
    return len(matchup_schedule(config.population_size)) * config.games_per_matchup


def seat_order(matchup: Tuple[int, int], game_index: int) -> Tuple[int, int]:
    """(first mover, second mover); the first mover alternates per game."""
    i, j = matchup
    return (i, j) if game_index % 2 == 0 else (j, i)


def record_result(
    population: List[Individual], first: int, second: int, winner: Optional[int]
) -> None:
    """Credit a game. ``winner`` is 0 (first mover), 1 (second) or None (draw)."""
    population[first].games_played += 1
    population[second].games_played += 1
    if winner == 0:
        population[first].wins += 1
        population[first].fitness += WIN_POINTS
    elif winner == 1:
        population[second].wins += 1
        population[second].fitness += WIN_POINTS
    else:
        population[first].fitness += DRAW_POINTS
        population[second].fitness += DRAW_POINTS


def reset_fitness(population: List[Individual]) -> None:
    for individual in population:
        individual.fitness = 0.0
        individual.wins = 0
        individual.games_played = 0


def rank(population: List[Individual]) -> List[Individual]:
    """Population sorted by fitness, best first; ties keep their order."""
    return sorted(population, key=lambda ind: ind.fitness, reverse=True)


def evolve_generation(
    population: List[Individual], config: TrainingConfig, rng: np.random.Generator
) -> List[Individual]:
    """Next generation: elites unchanged, the rest bred by tournament selection."""
    ranked = rank(population)
    next_population = [
        Individual(genome=dict(ind.genome))
        for ind in ranked[: config.elite_count]
    ]
    while len(next_population) < config.population_size:
        parent1 = tournament_select(ranked, config.tournament_size, rng)
        parent2 = tournament_select(ranked, config.tournament_size, rng)
        child = crossover(parent1.genome, parent2.genome, rng)
        child = mutate(child, config.mutation_rate, config.mutation_strength, rng)
        next_population.append(Individual(genome=child))
    return next_population
