from .game_engine import GameEngine

__all__ = ['GameEngine']
