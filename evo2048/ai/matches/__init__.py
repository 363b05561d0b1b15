"""
Game playing for network evaluation.

Includes:
- GameRunner: one network plays one board until it stops
- PopulationEvaluator: fork-join evaluation of a whole generation
"""
from .runner import (
    DEFAULT_MOVE_BUDGET,
    EXECUTORS,
    GameResult,
    GameRunner,
    PopulationEvaluator,
    play_game,
)

__all__ = [
    'DEFAULT_MOVE_BUDGET',
    'EXECUTORS',
    'GameResult',
    'GameRunner',
    'PopulationEvaluator',
    'play_game',
]
