"""
Pytest configuration and shared fixtures for the evo2048 project.

This module provides fixtures for:
- Seeded random sources
- Network builders and default networks
- Board setup helpers
"""
import random

import pytest
import torch


@pytest.fixture
def rng():
    """Return a seeded tile-placement random source."""
    return random.Random(1234)


@pytest.fixture
def generator():
    """Return a seeded torch generator."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def builder(generator):
    """Return a network builder drawing from the seeded generator."""
    from evo2048.ai.networks import NetworkBuilder
    return NetworkBuilder(generator=generator)


@pytest.fixture
def network(builder):
    """Return a randomly initialized network for a 4x4 board."""
    from evo2048.ai.networks import default_architecture
    return builder.from_json(default_architecture())


@pytest.fixture
def make_board(rng):
    """Return a helper that builds a board from rows of tile values."""
    from evo2048.game.board import Board

    def _make(rows, win_value=4096, start_tiles=2):
        return Board.from_values(rows, win_value=win_value, rng=rng, start_tiles=start_tiles)

    return _make
