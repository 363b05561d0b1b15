"""
Raw tile-value encoder.

One feature per cell in row-major order: the tile value, or 0 for
an empty cell. Values are not normalized; the network's input biases
are subtracted later when the features are scanned in.
"""
from typing import List, TYPE_CHECKING

import numpy as np

from .base import BaseEncoder

if TYPE_CHECKING:
    from ...game.board import Board


class BoardEncoder(BaseEncoder):
    """
    Encode a board as its raw tile values.

    Feature Layout:
        - Feature r * size + c: value of the tile at (r, c), 0 if empty

    Example:
        encoder = BoardEncoder(size=4)
        features = encoder.encode(board)
        # features is a numpy array of shape (16,)
    """

    def __init__(self, size: int = 4):
        if size <= 0:
            raise ValueError(f"Board size must be positive, got {size}")
        self.size = size
        self.input_size = size * size

    def encode(self, board: 'Board') -> np.ndarray:
        """
        Raises:
            ValueError: If the board size does not match the encoder.
        """
        if board.size != self.size:
            raise ValueError(
                f"Encoder expects a {self.size}x{self.size} board, "
                f"got {board.size}x{board.size}"
            )
        return np.asarray(board.flat_values(), dtype=np.float32)

    def get_feature_names(self) -> List[str]:
        return [
            f"cell_{r}_{c}"
            for r in range(self.size)
            for c in range(self.size)
        ]
