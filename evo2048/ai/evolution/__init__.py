"""
Neuroevolution of board-playing networks.

Implements an elitist genetic algorithm over fixed-topology genomes:
1. Every individual plays one game; its final score is its fitness
2. The population is ranked, best first
3. The lower-ranked majority is replaced by offspring bred from the
   best individual and each survivor in rank order
4. The mutation rate follows the median score of the generation

This module provides:
- Crossover by averaging parent genomes
- Multiplicative weight mutation and the adaptive rate schedule
- Ranking helpers
- Population management for complete evolution runs

Example usage:
    from evo2048.ai.evolution import Population, EvolutionConfig

    config = EvolutionConfig(population_size=300, generations=30, seed=1)
    pop = Population(config)
    pop.initialize_random()
    pop.evolve()

    best = pop.get_best()
    print(f"Best individual: {best.id} with score {best.fitness}")
"""
from .crossover import AveragingCrossover
from .mutations import MutationRateSchedule, ScalingMutator
from .selection import Individual, median_fitness, rank_population
from .population import (
    EvolutionConfig,
    GenerationStats,
    Population,
)

__all__ = [
    # Crossover
    'AveragingCrossover',

    # Mutations
    'MutationRateSchedule',
    'ScalingMutator',

    # Selection
    'Individual',
    'median_fitness',
    'rank_population',

    # Population management
    'EvolutionConfig',
    'GenerationStats',
    'Population',
]
