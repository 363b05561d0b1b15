"""
Game engine service.

Drives a single board through action dictionaries:
- {'type': 'shift', 'direction': 'left'}  shift the tiles
- {'type': 'reset'}                       rebuild the board from scratch

Every action returns the serialized board so callers (a console
front-end, a replay tool, tests) never touch the board internals.
"""
import logging
import random
from typing import Any, Dict, List, Optional

from ..board import Board, BoardConfig, Direction

logger = logging.getLogger(__name__)


class GameEngine:
    """
    Core game session for one board.

    Example:
        engine = GameEngine(BoardConfig(size=4))
        result = engine.apply_action({'type': 'shift', 'direction': 'up'})
        print(result['score_gained'], result['state']['cells'])
    """

    def __init__(
        self,
        config: Optional[BoardConfig] = None,
        rng: Optional[random.Random] = None,
        board: Optional[Board] = None,
    ):
        """Initialize the engine with a fresh board, or an existing one."""
        self.board = board or Board(config, rng=rng)
        self.moves_played = 0

    def apply_action(self, action: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply an action and return the result.

        Raises:
            ValueError: If the action type or direction is invalid.
        """
        action_type = action.get('type')

        if action_type == 'shift':
            return self.shift(action.get('direction'))

        elif action_type == 'reset':
            return self.reset()

        raise ValueError(f"Unknown action type: {action_type}")

    def shift(self, direction) -> Dict[str, Any]:
        """Shift the board and report what changed."""
        direction = Direction.coerce(direction)
        before = self.board.flat_values()
        score_before = self.board.score

        self.board.shift(direction)
        self.moves_played += 1

        return {
            'direction': direction.name.lower(),
            'changed': self.board.flat_values() != before,
            'score_gained': max(0, self.board.score - score_before),
            'game_over': self.board.game_over,
            'state': self.board.serialize_state(),
        }

    def reset(self) -> Dict[str, Any]:
        """Clear the board and place fresh start tiles."""
        self.board.reset()
        self.board.populate()
        self.moves_played = 0
        logger.debug("Board reset")
        return {'state': self.board.serialize_state()}

    def get_state(self) -> Dict[str, Any]:
        return self.board.serialize_state()

    def get_legal_moves(self) -> List[Direction]:
        """
        Directions that would move or merge at least one tile.

        Returns:
            Directions in output-index order; empty once nothing can move.
        """
        if self.board.game_over:
            return []

        legal = []
        for direction in Direction:
            for values in self.board.line_values(direction):
                if self._line_can_move(values):
                    legal.append(direction)
                    break
        return legal

    @staticmethod
    def _line_can_move(values: List[int]) -> bool:
        """Check one line, ordered from the edge tiles move toward."""
        seen_empty = False
        previous = 0
        for value in values:
            if value == 0:
                seen_empty = True
                continue
            if seen_empty or value == previous:
                return True
            previous = value
        return False
