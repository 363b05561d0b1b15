"""
Population management for the evolutionary loop.

Handles the lifecycle of a population of networks:
- Initialization with random genomes
- Evaluation (one game per individual, run concurrently)
- Ranking, reporting and mutation-rate adaptation
- Elitist reproduction (crossover with the best, then mutation)
- Checkpoints

One generation:
    evaluate_all()       play every individual, rank, report, adapt rate
    evolve_generation()  replace the lower-ranked majority with offspring
"""
import logging
import random
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
import torch

from ...game.board import BoardConfig
from ..matches.runner import EXECUTORS, GameResult, PopulationEvaluator
from ..networks import NetworkBuilder, create_architecture
from .crossover import AveragingCrossover
from .mutations import MutationRateSchedule, ScalingMutator
from .selection import Individual, median_fitness as ranked_median, rank_population

logger = logging.getLogger(__name__)


@dataclass
class EvolutionConfig:
    """Configuration for an evolution run."""

    # Population
    population_size: int = 600
    generations: int = 30

    # Mutation
    mutation_rate: float = 0.05
    low_median_threshold: float = 2000
    high_median_threshold: float = 2200
    high_mutation_rate: float = 0.20
    low_mutation_rate: float = 0.05

    # Reproduction
    replace_fraction: Fraction = Fraction(5, 6)

    # Play
    move_budget: int = 3
    high_score_threshold: int = 15000

    # Topology
    hidden_layers: int = 1
    hidden_size: int = 8

    # Evaluation pool
    workers: Optional[int] = None
    executor: str = 'thread'
    seed: Optional[int] = None

    # Persistence
    checkpoint_interval: int = 0
    checkpoint_dir: str = './checkpoints'

    def __post_init__(self):
        self.replace_fraction = Fraction(self.replace_fraction).limit_denominator(1000)

        if self.population_size < 1:
            raise ValueError("population_size must be at least 1")
        if self.generations < 1:
            raise ValueError("generations must be at least 1")
        for name in ('mutation_rate', 'high_mutation_rate', 'low_mutation_rate'):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {rate}")
        if self.high_median_threshold < self.low_median_threshold:
            raise ValueError("high_median_threshold must not be below low_median_threshold")
        if not 0 <= self.replace_fraction < 1:
            raise ValueError("replace_fraction must be within [0, 1)")
        if self.move_budget < 1:
            raise ValueError("move_budget must be at least 1")
        if self.hidden_layers < 0:
            raise ValueError("hidden_layers must be non-negative")
        if self.hidden_size < 1:
            raise ValueError("hidden_size must be at least 1")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.executor not in EXECUTORS:
            raise ValueError(f"Unknown executor: {self.executor!r}")
        if self.checkpoint_interval < 0:
            raise ValueError("checkpoint_interval must be non-negative")

    @property
    def replace_count(self) -> int:
        """Number of lower-ranked individuals replaced each generation."""
        fraction = self.replace_fraction
        return self.population_size * fraction.numerator // fraction.denominator


@dataclass
class GenerationStats:
    """Statistics for a generation."""
    generation: int = 0
    best_fitness: float = 0.0
    median_fitness: float = 0.0
    avg_fitness: float = 0.0
    min_fitness: float = 0.0
    fitness_std: float = 0.0
    mutation_rate: float = 0.0
    num_mutations: int = 0
    num_offspring: int = 0
    max_tile: int = 0
    wins: int = 0


class Population:
    """
    Manages a population of evolving networks.

    Example:
        config = EvolutionConfig(population_size=60, generations=10, seed=7)
        pop = Population(config)
        pop.initialize_random()

        for gen in range(config.generations):
            stats = pop.evaluate_all()
            print(f"Gen {gen}: best={stats.best_fitness} median={stats.median_fitness}")
            pop.evolve_generation()
    """

    def __init__(
        self,
        config: EvolutionConfig,
        board_config: Optional[BoardConfig] = None,
        evaluator: Optional[PopulationEvaluator] = None,
    ):
        """
        Args:
            config: Evolution configuration.
            board_config: Board used for every game. Defaults to 4x4.
            evaluator: Evaluation pool. Built from the configs if None.
        """
        self.config = config
        self.board_config = board_config or BoardConfig()

        seed_sequence = np.random.SeedSequence(config.seed)
        self.seed = seed_sequence.entropy
        evolution_seed, init_seed = seed_sequence.spawn(2)

        self.rng = random.Random(int(evolution_seed.generate_state(1)[0]))
        self.generator = torch.Generator().manual_seed(int(init_seed.generate_state(1)[0]))

        self.evaluator = evaluator or PopulationEvaluator(
            board_config=self.board_config,
            workers=config.workers,
            executor=config.executor,
            move_budget=config.move_budget,
            high_score_threshold=config.high_score_threshold,
            seed=self.seed,
        )

        # Population state
        self.individuals: List[Individual] = []
        self.generation = 0
        self.mutation_rate = config.mutation_rate

        # Evolution operators
        self.crossover = AveragingCrossover()
        self.mutator = ScalingMutator(rng=self.rng, generator=self.generator)
        self.schedule = MutationRateSchedule(
            low_threshold=config.low_median_threshold,
            high_threshold=config.high_median_threshold,
            raised_rate=config.high_mutation_rate,
            lowered_rate=config.low_mutation_rate,
        )

        self.stats_history: List[GenerationStats] = []
        self.last_results: List[GameResult] = []

    @classmethod
    def from_checkpoint(cls, path: Union[str, Path]) -> 'Population':
        """Create a population from a saved checkpoint."""
        checkpoint = torch.load(path, weights_only=False)
        population = cls(checkpoint['config'], board_config=checkpoint.get('board_config'))
        population._restore(checkpoint)
        return population

    def default_architecture(self) -> Dict[str, Any]:
        return create_architecture(
            input_size=self.board_config.cell_count,
            hidden_layers=self.config.hidden_layers,
            hidden_size=self.config.hidden_size,
        )

    def initialize_random(self, architecture: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize population with random networks.

        Args:
            architecture: Architecture for every network. Derived from
                          the board and config if None.

        Raises:
            ValueError: If the architecture input size differs from the board's cell count.
        """
        architecture = architecture or self.default_architecture()
        if architecture['layers'][0]['size'] != self.board_config.cell_count:
            raise ValueError(
                f"Architecture expects {architecture['layers'][0]['size']} inputs, "
                f"board has {self.board_config.cell_count} cells"
            )

        builder = NetworkBuilder(generator=self.generator)
        self.individuals = [
            Individual(
                network=builder.from_json(architecture),
                moves_left=self.config.move_budget,
                generation=0,
                id=f"ind_{i:05d}",
            )
            for i in range(self.config.population_size)
        ]
        self.generation = 0
        self.mutation_rate = self.config.mutation_rate

    def evaluate_all(self) -> GenerationStats:
        """
        Play one game per individual, then rank and adapt the mutation rate.

        Returns:
            Generation statistics.
        """
        if not self.individuals:
            raise ValueError("Population is empty; call initialize_random() first")

        self.last_results = self.evaluator.evaluate(self.individuals, self.generation)
        ranked = self.rank()

        fitnesses = np.array([ind.fitness for ind in ranked], dtype=np.float64)
        median = ranked_median(ranked)

        self.mutation_rate = self.schedule.update(self.mutation_rate, median)

        stats = GenerationStats(
            generation=self.generation,
            best_fitness=ranked[0].fitness,
            median_fitness=median,
            avg_fitness=float(fitnesses.mean()),
            min_fitness=ranked[-1].fitness,
            fitness_std=float(fitnesses.std()),
            mutation_rate=self.mutation_rate,
            max_tile=max(result.max_tile for result in self.last_results),
            wins=sum(result.wins for result in self.last_results),
        )

        logger.info(
            "Generation %3d, best score: %5d, median: %5d, mutation rate: %.2f",
            stats.generation, stats.best_fitness, stats.median_fitness, stats.mutation_rate,
        )

        self.stats_history.append(stats)
        return stats

    def rank(self) -> List[Individual]:
        """Order the population by fitness, best first."""
        self.individuals = rank_population(self.individuals)
        return self.individuals

    def evolve_generation(self) -> GenerationStats:
        """
        Replace the lower-ranked majority with offspring of the best.

        For each rank i below the replace count, the individual at rank
        size - i - 1 is replaced by the child of the best individual and
        whoever currently occupies rank i. Replacement happens in place,
        so later ranks may already hold offspring when they are bred.

        Returns:
            Statistics of the evaluated generation, with reproduction counts.
        """
        if not self.individuals:
            raise ValueError("Population is empty; call initialize_random() first")

        individuals = self.individuals
        size = len(individuals)
        best = individuals[0]
        stats = self.stats_history[-1] if self.stats_history else GenerationStats(
            generation=self.generation, mutation_rate=self.mutation_rate,
        )

        for i in range(self.config.replace_count):
            partner = individuals[i]
            child = self.crossover.crossover(best.network, partner.network)
            child, mutated = self.mutator.mutate(child, self.mutation_rate)

            history = ['crossover']
            if mutated:
                history.append('scaling')
                stats.num_mutations += 1

            individuals[size - i - 1] = Individual(
                network=child,
                moves_left=self.config.move_budget,
                generation=self.generation + 1,
                parent_ids=[best.id, partner.id],
                mutation_history=history,
                id=f"gen{self.generation + 1}_ind_{size - i - 1:05d}",
            )
            stats.num_offspring += 1

        for survivor in individuals:
            survivor.moves_left = self.config.move_budget

        self.generation += 1
        logger.debug(
            "Bred %d offspring (%d mutated) for generation %d",
            stats.num_offspring, stats.num_mutations, self.generation,
        )
        return stats

    def evolve(
        self,
        generations: Optional[int] = None,
        progress_callback: Optional[Callable[[int, GenerationStats], None]] = None,
    ) -> List[GenerationStats]:
        """
        Run full evolution loop.

        The last generation is evaluated and ranked but not reproduced,
        so the best individual afterwards is the best one that played.

        Args:
            generations: Number of generations (uses config if None).
            progress_callback: Called with (generation, stats) each gen.

        Returns:
            List of generation statistics.
        """
        if generations is None:
            generations = self.config.generations
        if not self.individuals:
            self.initialize_random()

        all_stats = []
        for gen in range(generations):
            stats = self.evaluate_all()
            all_stats.append(stats)

            if progress_callback:
                progress_callback(gen, stats)

            interval = self.config.checkpoint_interval
            if interval and (gen + 1) % interval == 0:
                self.save_checkpoint()

            if gen < generations - 1:
                self.evolve_generation()

        return all_stats

    def get_best(self) -> Individual:
        """Get the best individual in the current population."""
        return max(self.individuals, key=lambda x: x.fitness)

    @property
    def best_fitness(self) -> float:
        return max(ind.fitness for ind in self.individuals) if self.individuals else 0.0

    @property
    def median_fitness(self) -> Optional[float]:
        return ranked_median(rank_population(self.individuals))

    def save_checkpoint(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Save population checkpoint.

        Args:
            path: Directory to write to (uses config.checkpoint_dir if None).

        Returns:
            Path to saved checkpoint.
        """
        checkpoint_dir = Path(path or self.config.checkpoint_dir)
        checkpoint_dir.mkdir(parents=True, exist_ok=True)

        filepath = checkpoint_dir / f'population_gen{self.generation:05d}.pt'

        builder = NetworkBuilder()
        serialized = [
            {
                'id': ind.id,
                'fitness': ind.fitness,
                'generation': ind.generation,
                'parent_ids': ind.parent_ids,
                'mutation_history': ind.mutation_history,
                'architecture': builder.to_json(ind.network),
                'weights': builder.serialize_weights(ind.network),
            }
            for ind in self.individuals
        ]

        checkpoint = {
            'generation': self.generation,
            'config': self.config,
            'board_config': self.board_config,
            'mutation_rate': self.mutation_rate,
            'individuals': serialized,
            'stats_history': self.stats_history,
        }

        torch.save(checkpoint, filepath)
        logger.info("Saved checkpoint %s", filepath)
        return filepath

    def load_checkpoint(self, path: Union[str, Path]) -> None:
        """
        Load population from checkpoint.

        Args:
            path: Path to checkpoint file.
        """
        self._restore(torch.load(path, weights_only=False))

    def _restore(self, checkpoint: Dict[str, Any]) -> None:
        self.generation = checkpoint['generation']
        self.mutation_rate = checkpoint.get('mutation_rate', self.config.mutation_rate)
        self.stats_history = checkpoint.get('stats_history', [])

        builder = NetworkBuilder()
        self.individuals = []

        for ind_data in checkpoint['individuals']:
            network = builder.from_json(ind_data['architecture'])
            builder.deserialize_weights(ind_data['weights'], network)

            self.individuals.append(Individual(
                network=network,
                fitness=ind_data['fitness'],
                moves_left=self.config.move_budget,
                generation=ind_data['generation'],
                parent_ids=ind_data.get('parent_ids', []),
                mutation_history=ind_data.get('mutation_history', []),
                id=ind_data['id'],
            ))
