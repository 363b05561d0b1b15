"""
Board encoders for network input.

Includes:
- BoardEncoder: one raw tile value per cell, row-major
"""
from .base import BaseEncoder
from .board import BoardEncoder

__all__ = [
    'BaseEncoder',
    'BoardEncoder',
]
