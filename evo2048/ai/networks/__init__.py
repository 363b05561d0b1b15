"""
Neural network infrastructure for evolved players.

This module provides:
- Network: fixed-topology feed-forward genome (affine, no activation)
- NetworkBuilder: build random genomes from JSON architectures
- Preset architectures
- Weight serialization/deserialization
"""
from .architectures import OUTPUT_SIZE, create_architecture, default_architecture
from .builder import NetworkBuilder
from .genome import Layer, LayerType, Network

__all__ = [
    # Genome
    'Layer',
    'LayerType',
    'Network',

    # Builder
    'NetworkBuilder',

    # Architectures
    'OUTPUT_SIZE',
    'create_architecture',
    'default_architecture',
]
