"""
Network builder for converting between JSON architectures and genomes.

This module provides:
- Building randomly initialized networks from architecture specs
- Converting networks back to JSON
- Serializing/deserializing network weights
- Cloning networks
"""
import gzip
import io
import pickle
from typing import Any, Dict, List, Optional

import numpy as np
import torch

from .architectures import OUTPUT_SIZE
from .genome import Layer, LayerType, Network

_LAYER_TYPES = {
    'input': LayerType.INPUT,
    'hidden': LayerType.HIDDEN,
    'output': LayerType.OUTPUT,
}


class NetworkBuilder:
    """
    Build networks from JSON architecture specifications.

    Random initialization:
        - input biases are 0
        - hidden and output biases are uniform in [0, input_size)
        - hidden weights are uniform in [-1, 1)
        - output weights are uniform in [0, 1)

    Example:
        builder = NetworkBuilder(generator=torch.Generator().manual_seed(1))
        network = builder.from_json(architecture)
        weights = builder.serialize_weights(network)
        builder.deserialize_weights(weights, network)
    """

    def __init__(self, generator: Optional[torch.Generator] = None):
        """
        Args:
            generator: Random source for initialization. Uses torch's
                      default generator if None.
        """
        self.generator = generator

    def from_json(self, architecture: Dict[str, Any]) -> Network:
        """
        Build a randomly initialized network.

        Raises:
            ValueError: If the architecture is invalid.
        """
        self._validate_architecture(architecture)

        specs = architecture['layers']
        input_size = specs[0]['size']
        layers: List[Layer] = []

        for spec in specs:
            layer_type = _LAYER_TYPES[spec['type']]
            size = spec['size']

            if layer_type == LayerType.INPUT:
                layers.append(Layer(layer_type, torch.zeros(size)))
                continue

            previous = layers[-1].size
            biases = self._uniform((size,), 0.0, float(input_size))
            if layer_type == LayerType.HIDDEN:
                weights = self._uniform((size, previous), -1.0, 1.0)
            else:
                weights = self._uniform((size, previous), 0.0, 1.0)
            layers.append(Layer(layer_type, biases, weights))

        return Network(layers, architecture=architecture)

    def _uniform(self, shape, low: float, high: float) -> torch.Tensor:
        return torch.rand(shape, generator=self.generator) * (high - low) + low

    def _validate_architecture(self, architecture: Dict[str, Any]) -> None:
        """Validate that an architecture specification is well-formed."""
        if not isinstance(architecture, dict):
            raise ValueError("Architecture must be a dictionary")

        if 'layers' not in architecture:
            raise ValueError("Architecture must have 'layers' key")

        layers = architecture['layers']
        if not isinstance(layers, list) or len(layers) < 2:
            raise ValueError("'layers' must be a list of at least two layers")

        for i, layer in enumerate(layers):
            if not isinstance(layer, dict):
                raise ValueError(f"Layer {i} must be a dictionary")
            if layer.get('type') not in _LAYER_TYPES:
                raise ValueError(f"Layer {i} has unknown type: {layer.get('type')!r}")
            if not isinstance(layer.get('size'), int) or layer['size'] <= 0:
                raise ValueError(f"Layer {i} must have a positive integer 'size'")

        if layers[0]['type'] != 'input':
            raise ValueError("First layer must be an input layer")
        if layers[-1]['type'] != 'output':
            raise ValueError("Last layer must be an output layer")
        if any(layer['type'] != 'hidden' for layer in layers[1:-1]):
            raise ValueError("Middle layers must be hidden layers")
        if layers[-1]['size'] != OUTPUT_SIZE:
            raise ValueError(f"Output layer must have {OUTPUT_SIZE} nodes")

    def to_json(self, network: Network) -> Dict[str, Any]:
        """Describe a network's topology as an architecture dict."""
        if network.architecture:
            return dict(network.architecture)

        names = {v: k for k, v in _LAYER_TYPES.items()}
        layers = []
        hidden = 0
        for layer in network.layers:
            name = names[layer.layer_type]
            if layer.layer_type == LayerType.HIDDEN:
                layer_id = f'hidden_{hidden}'
                hidden += 1
            else:
                layer_id = name
            layers.append({'id': layer_id, 'type': name, 'size': layer.size})

        return {
            'input_size': network.input_layer.size,
            'output_size': network.output_layer.size,
            'layers': layers,
        }

    def serialize_weights(self, network: Network) -> bytes:
        """
        Serialize network biases and weights to compressed bytes.

        The genome is stored as a gzip-compressed pickle of a list of
        per-layer dictionaries holding numpy arrays.
        """
        genome = [
            {
                'type': int(layer.layer_type),
                'biases': layer.biases.cpu().numpy(),
                'weights': (
                    layer.weights.cpu().numpy() if layer.weights is not None else None
                ),
            }
            for layer in network.layers
        ]

        buffer = io.BytesIO()
        with gzip.GzipFile(fileobj=buffer, mode='wb') as f:
            pickle.dump(genome, f)

        return buffer.getvalue()

    def deserialize_weights(self, data: bytes, network: Network) -> None:
        """
        Load biases and weights from compressed bytes into a network.

        Raises:
            ValueError: If the stored genome doesn't match the network topology.
        """
        buffer = io.BytesIO(data)
        with gzip.GzipFile(fileobj=buffer, mode='rb') as f:
            genome = pickle.load(f)

        if len(genome) != len(network.layers):
            raise ValueError("Stored genome has a different layer count")

        for layer, stored in zip(network.layers, genome):
            biases = torch.from_numpy(np.asarray(stored['biases'], dtype=np.float32))
            if stored['type'] != int(layer.layer_type) or biases.shape != layer.biases.shape:
                raise ValueError("Stored genome does not match network topology")
            layer.biases = biases.clone()

            if layer.weights is not None:
                weights = torch.from_numpy(np.asarray(stored['weights'], dtype=np.float32))
                if weights.shape != layer.weights.shape:
                    raise ValueError("Stored genome does not match network topology")
                layer.weights = weights.clone()

    def get_parameter_count(self, network: Network) -> int:
        """Count all biases and weights."""
        return sum(p.numel() for p in network.parameters())
