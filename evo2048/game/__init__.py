"""
Sliding-tile game engine.

Usage:
    from evo2048.game import Board, BoardConfig, Direction

    board = Board(BoardConfig(size=4, start_tiles=2, win_value=4096))
    board.shift(Direction.LEFT)
    print(render_board(board))
"""
from .board import Board, BoardConfig, Direction, Tile
from .rendering import print_board, render_board

__all__ = [
    'Board',
    'BoardConfig',
    'Direction',
    'Tile',
    'print_board',
    'render_board',
]
