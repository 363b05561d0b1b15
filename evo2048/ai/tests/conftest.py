"""
Pytest fixtures for AI package tests.

Provides fixtures for:
- Network architectures
- Hand-built networks with known genomes
"""
from typing import Any, Dict

import pytest
import torch

from evo2048.ai.networks import Layer, LayerType, Network


@pytest.fixture
def minimal_architecture() -> Dict[str, Any]:
    """Return a 2x2-board architecture without hidden layers."""
    return {
        'name': 'evo2048',
        'input_size': 4,
        'output_size': 4,
        'layers': [
            {'id': 'input', 'type': 'input', 'size': 4},
            {'id': 'output', 'type': 'output', 'size': 4},
        ],
    }


@pytest.fixture
def known_network() -> Network:
    """
    Return a two-input network with a known genome.

    Scanning [3, 5] gives input values [2, 5]; the outputs are then
    [2, 4, 7, 0].
    """
    return Network([
        Layer(LayerType.INPUT, torch.tensor([1.0, 0.0])),
        Layer(
            LayerType.OUTPUT,
            torch.tensor([0.0, 1.0, 0.0, 0.0]),
            torch.tensor([
                [1.0, 0.0],
                [0.0, 1.0],
                [1.0, 1.0],
                [0.0, 0.0],
            ]),
        ),
    ])


@pytest.fixture
def constant_network() -> Network:
    """
    Return a 4x4-board network whose outputs ignore the board.

    All weights are zero, so the outputs are minus the biases:
    [0, -1, -2, -3], ranking UP, RIGHT, DOWN, LEFT.
    """
    return Network([
        Layer(LayerType.INPUT, torch.zeros(16)),
        Layer(
            LayerType.OUTPUT,
            torch.tensor([0.0, 1.0, 2.0, 3.0]),
            torch.zeros(4, 16),
        ),
    ])
