"""
Text rendering of boards for console output and logs.
"""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .board import Board


def render_board(board: 'Board', width: int = 4) -> str:
    """
    Render a board as rows of bracketed cells, top row first.

    Args:
        board: Board to render.
        width: Minimum width of each tile value.

    Returns:
        Multi-line string, empty cells shown as blank brackets.
    """
    lines = []
    for row in board.values():
        cells = []
        for value in row:
            if value:
                cells.append(f"[ {value:{width}d} ]")
            else:
                cells.append(f"[ {'':{width}} ]")
        lines.append(''.join(cells))
    return '\n'.join(lines)


def print_board(board: 'Board') -> None:
    """Print a board with its score."""
    print()
    print(render_board(board))
    print(f"Score: {board.score}")
    print()
