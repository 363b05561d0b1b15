"""
Crossover operator for network evolution.

Offspring are bred by averaging: every bias and every weight of the
child is the arithmetic mean of the two parents' corresponding values.
Both parents must share one topology; the child copies it from the
first parent.
"""
from typing import List

import torch

from ..networks.genome import Layer, Network


class AveragingCrossover:
    """
    Weight-level crossover for networks with identical topology.

    Example:
        crossover = AveragingCrossover()
        child = crossover.crossover(best.network, partner.network)
    """

    def crossover(self, parent_a: Network, parent_b: Network) -> Network:
        """
        Create offspring from two parent networks.

        Returns:
            Child network whose genome is the parents' mean.

        Raises:
            ValueError: If parents have different architectures.
        """
        if not parent_a.same_topology(parent_b):
            raise ValueError("Parents must have identical architectures")

        layers: List[Layer] = []
        with torch.no_grad():
            for layer_a, layer_b in zip(parent_a.layers, parent_b.layers):
                biases = (layer_a.biases + layer_b.biases) / 2
                weights = None
                if layer_a.weights is not None:
                    weights = (layer_a.weights + layer_b.weights) / 2
                layers.append(Layer(layer_a.layer_type, biases, weights))

        return Network(layers, architecture=dict(parent_a.architecture))
