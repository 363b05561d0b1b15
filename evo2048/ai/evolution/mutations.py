"""
Network mutation operators.

Mutation is a single gate per offspring: one uniform draw decides
whether the genome mutates at all. When it does, every weight of every
non-input layer is multiplied by its own factor drawn uniformly from
[-1.5, 1.5). Biases are never mutated, and a zero weight stays zero.

The mutation rate itself follows a hysteresis band on the median
fitness of the generation (see MutationRateSchedule).
"""
import random
from dataclasses import dataclass
from typing import Optional, Tuple

import torch

from ..networks.genome import Network


class ScalingMutator:
    """
    Multiplicative weight mutation operator.

    Attributes:
        low: Lower bound of the scaling factor (inclusive).
        high: Upper bound of the scaling factor (exclusive).

    Example:
        mutator = ScalingMutator(rng=random.Random(3))
        child, mutated = mutator.mutate(child, mutation_rate=0.05)
    """

    def __init__(
        self,
        low: float = -1.5,
        high: float = 1.5,
        rng: Optional[random.Random] = None,
        generator: Optional[torch.Generator] = None,
    ):
        """
        Args:
            low: Lower bound of the scaling factor.
            high: Upper bound of the scaling factor.
            rng: Random source for the mutation gate.
            generator: Random source for the per-weight factors.
        """
        if high <= low:
            raise ValueError("high must be greater than low")
        self.low = low
        self.high = high
        self.rng = rng or random.Random()
        self.generator = generator

    def mutate(
        self,
        network: Network,
        mutation_rate: float,
        in_place: bool = True,
    ) -> Tuple[Network, bool]:
        """
        Possibly scale every weight of a network.

        Args:
            network: The network to mutate.
            mutation_rate: Probability that the genome mutates.
            in_place: If False, mutate and return a copy.

        Returns:
            Tuple of (network, whether the gate fired).
        """
        if not in_place:
            network = network.clone()

        if self.rng.random() >= mutation_rate:
            return network, False

        with torch.no_grad():
            for layer in network.layers[1:]:
                factors = torch.rand(layer.weights.shape, generator=self.generator)
                factors = factors * (self.high - self.low) + self.low
                layer.weights = layer.weights * factors

        return network, True


@dataclass
class MutationRateSchedule:
    """
    Adapt the mutation rate to the generation's median fitness.

    Below low_threshold the rate is raised, above high_threshold it is
    lowered; in between the previous rate is kept.
    """
    low_threshold: float = 2000
    high_threshold: float = 2200
    raised_rate: float = 0.20
    lowered_rate: float = 0.05

    def __post_init__(self):
        if self.high_threshold < self.low_threshold:
            raise ValueError("high_threshold must not be below low_threshold")

    def update(self, current_rate: float, median: float) -> float:
        if median < self.low_threshold:
            return self.raised_rate
        if median > self.high_threshold:
            return self.lowered_rate
        return current_rate
