"""
Ranking for the evolutionary loop.

The controller is strictly elitist: after every generation the
population is ordered by fitness, the single best individual becomes
one parent of every offspring, and the lower-ranked majority is
replaced.
"""
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..matches.runner import DEFAULT_MOVE_BUDGET
from ..networks.genome import Network


@dataclass
class Individual:
    """
    One network of the population with its last observed score.

    Attributes:
        network: The genome.
        fitness: Final score of the last game played.
        moves_left: Remaining ineffective turns when the last game stopped.
        generation: Generation the individual was created in.
        parent_ids: Ids of the parents (empty for random individuals).
        mutation_history: Operators that produced this individual.
        id: Short unique identifier.
    """
    network: Network
    fitness: float = 0.0
    moves_left: int = DEFAULT_MOVE_BUDGET
    generation: int = 0
    parent_ids: List[str] = field(default_factory=list)
    mutation_history: List[str] = field(default_factory=list)
    id: str = ''

    def __post_init__(self):
        if not self.id:
            self.id = str(uuid.uuid4())[:8]


def rank_population(individuals: List[Individual]) -> List[Individual]:
    """
    Sort individuals by fitness, best first.

    Returns:
        A new list; ties keep their previous relative order.
    """
    return sorted(individuals, key=lambda ind: ind.fitness, reverse=True)


def median_fitness(ranked: List[Individual]) -> Optional[float]:
    """Fitness at the middle rank of a ranked population."""
    if not ranked:
        return None
    return ranked[len(ranked) // 2].fitness
