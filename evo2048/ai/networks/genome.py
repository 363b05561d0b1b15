"""
Fixed-topology feed-forward network genome.

A network is an ordered list of layers: one input layer, any number
of hidden layers and one output layer with one node per direction.
Each node has a transient activation value and a bias; nodes of
non-input layers also carry one weight per node of the previous layer.

Per layer, the node data is held as tensors:
    values:  (size,)
    biases:  (size,)
    weights: (size, previous_size), None for the input layer

Activation is purely affine: value = weights @ previous_values - biases.
No nonlinearity is applied.
"""
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np
import torch

if TYPE_CHECKING:
    from ...game.board import Board


class LayerType(IntEnum):
    INPUT = 0
    HIDDEN = 1
    OUTPUT = 2


class Layer:
    """
    One layer of nodes.

    Attributes:
        layer_type: Input, hidden or output.
        biases: Bias per node.
        weights: Weight matrix (size, previous_size), None for input layers.
        values: Activation values from the last scan/feed-forward.
    """

    def __init__(
        self,
        layer_type: LayerType,
        biases: torch.Tensor,
        weights: Optional[torch.Tensor] = None,
    ):
        self.layer_type = LayerType(layer_type)
        self.biases = biases.detach().to(torch.float32)
        self.weights = weights.detach().to(torch.float32) if weights is not None else None
        self.values = torch.zeros_like(self.biases)

        if self.biases.dim() != 1:
            raise ValueError("Layer biases must be a 1-D tensor")
        if self.layer_type == LayerType.INPUT:
            if self.weights is not None:
                raise ValueError("Input layers carry no weights")
        else:
            if self.weights is None or self.weights.dim() != 2:
                raise ValueError("Non-input layers need a 2-D weight matrix")
            if self.weights.shape[0] != self.size:
                raise ValueError(
                    f"Weight rows ({self.weights.shape[0]}) must match "
                    f"node count ({self.size})"
                )

    @property
    def size(self) -> int:
        return self.biases.shape[0]

    def node(self, index: int) -> Dict[str, Any]:
        """Return one node's value, bias and weights as plain Python data."""
        return {
            'value': float(self.values[index]),
            'bias': float(self.biases[index]),
            'weights': (
                self.weights[index].tolist() if self.weights is not None else []
            ),
        }

    def clone(self) -> 'Layer':
        return Layer(
            self.layer_type,
            self.biases.clone(),
            self.weights.clone() if self.weights is not None else None,
        )

    def __repr__(self) -> str:
        return f"Layer({self.layer_type.name.lower()}, size={self.size})"


class Network:
    """
    A feed-forward network over a genome of biases and weights.

    The topology is fixed at construction; only bias and weight values
    change, through reproduction.

    Attributes:
        layers: Ordered layers, input first and output last.
        architecture: The architecture dict this network was built from.

    Example:
        network = NetworkBuilder().from_json(create_architecture())
        network.scan_input(board)
        network.feed_forward()
        board.shift(network.best_move())
    """

    def __init__(self, layers: List[Layer], architecture: Optional[Dict[str, Any]] = None):
        self.layers = layers
        self.architecture = architecture or {}
        self._validate()

    def _validate(self) -> None:
        if len(self.layers) < 2:
            raise ValueError("A network needs at least an input and an output layer")
        if self.layers[0].layer_type != LayerType.INPUT:
            raise ValueError("First layer must be an input layer")
        if self.layers[-1].layer_type != LayerType.OUTPUT:
            raise ValueError("Last layer must be an output layer")

        for previous, layer in zip(self.layers, self.layers[1:]):
            if layer.layer_type == LayerType.INPUT:
                raise ValueError("Only the first layer may be an input layer")
            if layer.weights.shape[1] != previous.size:
                raise ValueError(
                    f"Layer weights expect {layer.weights.shape[1]} inputs, "
                    f"previous layer has {previous.size} nodes"
                )
        for layer in self.layers[1:-1]:
            if layer.layer_type != LayerType.HIDDEN:
                raise ValueError("Middle layers must be hidden layers")

    @property
    def input_layer(self) -> Layer:
        return self.layers[0]

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    @property
    def topology(self) -> Tuple[int, ...]:
        """Node count per layer."""
        return tuple(layer.size for layer in self.layers)

    def same_topology(self, other: 'Network') -> bool:
        if self.topology != other.topology:
            return False
        return all(
            a.layer_type == b.layer_type
            for a, b in zip(self.layers, other.layers)
        )

    def parameters(self) -> Iterator[torch.Tensor]:
        """Yield every bias and weight tensor, layer by layer."""
        for layer in self.layers:
            yield layer.biases
            if layer.weights is not None:
                yield layer.weights

    def scan_input(self, features: Union['Board', Sequence[float], np.ndarray, torch.Tensor]) -> None:
        """
        Load a board (or its row-major tile values) into the input layer.

        Each input value becomes tile value (0 if empty) minus the
        input node's bias.

        Raises:
            ValueError: If the feature count differs from the input size.
        """
        if hasattr(features, 'flat_values'):
            features = features.flat_values()

        x = torch.as_tensor(np.asarray(features, dtype=np.float32))
        if x.dim() != 1 or x.shape[0] != self.input_layer.size:
            raise ValueError(
                f"Input layer has {self.input_layer.size} nodes, "
                f"got {tuple(x.shape)} features"
            )
        self.input_layer.values = x - self.input_layer.biases

    def feed_forward(self) -> torch.Tensor:
        """
        Propagate input values through every non-input layer.

        Returns:
            The output layer values.
        """
        with torch.no_grad():
            previous = self.input_layer
            for layer in self.layers[1:]:
                layer.values = torch.mv(layer.weights, previous.values) - layer.biases
                previous = layer
        return self.output_layer.values

    def _output_scores(self) -> List[float]:
        # NaN ranks below every number
        return [
            v if v == v else float('-inf')
            for v in self.output_layer.values.tolist()
        ]

    def best_move(self) -> int:
        """Index of the highest output value (first one on ties)."""
        scores = self._output_scores()
        best = 0
        for i in range(1, len(scores)):
            if scores[i] > scores[best]:
                best = i
        return best

    def ranked_moves(self) -> List[int]:
        """All output indices ordered by descending value, ties by index."""
        scores = self._output_scores()
        return sorted(range(len(scores)), key=lambda i: -scores[i])

    def clone(self) -> 'Network':
        return Network(
            [layer.clone() for layer in self.layers],
            architecture=dict(self.architecture),
        )

    def __repr__(self) -> str:
        return f"Network(topology={self.topology})"
