"""
Base encoder abstraction for board encoding.

Encoders transform boards into fixed-size numerical feature
vectors suitable for network input.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, TYPE_CHECKING

import numpy as np
import torch

if TYPE_CHECKING:
    from ...game.board import Board


class BaseEncoder(ABC):
    """
    Abstract base class for board encoders.

    Attributes:
        input_size: The size of the output feature vector.

    Example:
        encoder = BoardEncoder(size=4)
        features = encoder.encode(board)  # Returns numpy array
        tensor = encoder.encode_tensor(board)  # Returns PyTorch tensor
    """

    input_size: int = 0

    @abstractmethod
    def encode(self, board: 'Board') -> np.ndarray:
        """
        Encode a board into a feature vector.

        Returns:
            A numpy array of shape (input_size,) with float values.
        """
        pass

    def encode_tensor(self, board: 'Board') -> torch.Tensor:
        """Encode a board into a float32 PyTorch tensor."""
        return torch.from_numpy(self.encode(board)).float()

    def encode_batch(self, boards: Sequence['Board']) -> np.ndarray:
        """
        Encode multiple boards into a batch.

        Returns:
            A numpy array of shape (batch_size, input_size).
        """
        return np.stack([self.encode(board) for board in boards])

    @abstractmethod
    def get_feature_names(self) -> List[str]:
        """Return human-readable names for each feature."""
        pass

    def describe(self) -> Dict[str, Any]:
        return {
            'input_size': self.input_size,
            'feature_names': self.get_feature_names(),
        }
