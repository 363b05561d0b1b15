"""
Sliding-tile board engine.

This module contains the complete rules of the merging game:
- Board setup and random tile placement
- Shifting and merging tiles in one of four directions
- Scoring (every merge adds the new tile value)
- Win resets and game-over detection

Board Representation:
    Cells are stored in a flat list of length size * size, indexed by
    row * size + col. Row 0 is the top edge, column 0 the left edge.

    Each slot holds either None (empty) or the Tile placed there.
    The board is the only owner of its tiles; a tile that is merged
    away is dropped from both its slot and the live tile list.
"""
import logging
import random
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .rendering import render_board

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class Direction(IntEnum):
    """
    Shift directions.

    The integer value doubles as the network output index that
    selects the direction.
    """
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    @property
    def vector(self) -> Position:
        """Unit (row, col) step for this direction."""
        return _VECTORS[self]

    @classmethod
    def coerce(cls, value: Union['Direction', int, str]) -> 'Direction':
        """
        Convert an int, name or Direction into a Direction.

        Raises:
            ValueError: If the value names no direction.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown direction: {value!r}") from None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Unknown direction: {value!r}")
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown direction: {value!r}") from None


_VECTORS = {
    Direction.UP: (-1, 0),
    Direction.RIGHT: (0, 1),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
}


@dataclass
class Tile:
    """A numbered piece on the board."""
    id: int
    value: int
    position: Position
    previous_position: Optional[Position] = None
    merged_from: List[int] = field(default_factory=list)
    is_new: bool = True
    was_merged: bool = False

    def move_to(self, position: Position) -> None:
        self.previous_position = self.position
        self.position = position

    def absorb(self, other: 'Tile') -> None:
        """Merge another tile's value into this one."""
        self.was_merged = True
        self.value += other.value
        self.merged_from.append(other.value)


@dataclass
class BoardConfig:
    """Configuration for a board."""
    size: int = 4
    start_tiles: int = 2
    win_value: int = 4096

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError(f"Board size must be positive, got {self.size}")
        if self.start_tiles < 0:
            raise ValueError("start_tiles must be non-negative")
        if self.start_tiles > self.size * self.size:
            raise ValueError(
                f"Cannot place {self.start_tiles} start tiles on a "
                f"{self.size}x{self.size} board"
            )
        if self.win_value <= 0:
            raise ValueError("win_value must be positive")

    @property
    def cell_count(self) -> int:
        return self.size * self.size


class Board:
    """
    A square board of cells holding tiles.

    Lifecycle:
        constructed -> populated with start tiles -> shifted repeatedly ->
        either game over (full and no adjacent equal pair), or a merge
        reaches the win value and the board resets in place.

    Attributes:
        config: Board configuration (size, start tiles, win value).
        rng: Random source for tile placement. Owned by this board.
        cells: Flat list of slots, row-major.
        tiles: Live tiles currently on the board.
        score: Running score (sum of all merged tile values).
        game_over: True once a full board has no merges left.
        wins: Number of times the win value was reached.

    Example:
        board = Board(BoardConfig(size=4, start_tiles=2), rng=random.Random(7))
        board.shift(Direction.LEFT)
        print(board.score, board.game_over)
    """

    def __init__(
        self,
        config: Optional[BoardConfig] = None,
        rng: Optional[random.Random] = None,
        on_win: Optional[Callable[['Board'], None]] = None,
        populate: bool = True,
    ):
        """
        Build the board.

        Args:
            config: Board configuration. Defaults to a 4x4 board.
            rng: Random source. A fresh unseeded one is used if None.
            on_win: Called with the board right before a win reset.
            populate: If False, skip placing the start tiles.
        """
        self.config = config or BoardConfig()
        self.rng = rng or random.Random()
        self.on_win = on_win

        self.size = self.config.size
        self.cells: List[Optional[Tile]] = []
        self.tiles: List[Tile] = []
        self.score = 0
        self.game_over = False
        self.wins = 0
        self._next_tile_id = 0

        self.build(start_tiles=self.config.start_tiles if populate else 0)

    @classmethod
    def from_values(
        cls,
        rows: Sequence[Sequence[int]],
        win_value: int = 4096,
        rng: Optional[random.Random] = None,
        start_tiles: int = 2,
    ) -> 'Board':
        """
        Create a board with given tile values (0 = empty).

        Args:
            rows: Square matrix of tile values, top row first.
            win_value: Win threshold for the board.
            rng: Random source for later tile placement.
            start_tiles: Start tiles used by later rebuilds.

        Raises:
            ValueError: If rows is not square or holds a negative value.
        """
        size = len(rows)
        if size == 0 or any(len(row) != size for row in rows):
            raise ValueError("Board values must form a non-empty square matrix")

        config = BoardConfig(
            size=size,
            start_tiles=min(start_tiles, size * size),
            win_value=win_value,
        )
        board = cls(config, rng=rng, populate=False)

        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value < 0:
                    raise ValueError(f"Tile values must be positive, got {value}")
                if value:
                    board._add_tile((r, c), int(value))

        return board

    # ------------------------------------------------------------------
    # Construction

    def build(self, size: Optional[int] = None, start_tiles: Optional[int] = None) -> None:
        """
        Allocate an empty board and place the start tiles.

        Args:
            size: Board edge length. Defaults to the configured size.
            start_tiles: Number of random tiles to place.

        Raises:
            ValueError: If size is not positive.
        """
        if size is not None:
            if size <= 0:
                raise ValueError(f"Board size must be positive, got {size}")
            if size != self.config.size:
                self.config = replace(
                    self.config,
                    start_tiles=min(self.config.start_tiles, size * size),
                    size=size,
                )
            self.size = size

        self.cells = [None] * (self.size * self.size)
        self.tiles = []

        count = self.config.start_tiles if start_tiles is None else start_tiles
        for _ in range(count):
            self.place_random_tile()

    def reset(self) -> None:
        """
        Clear all tiles, score and the game-over flag.

        Start tiles are not placed again; call populate() or build().
        """
        self.cells = [None] * (self.size * self.size)
        self.tiles = []
        self.score = 0
        self.game_over = False

    def populate(self) -> None:
        """Place the configured number of start tiles."""
        for _ in range(self.config.start_tiles):
            self.place_random_tile()

    # ------------------------------------------------------------------
    # Read access

    def index(self, row: int, col: int) -> int:
        return row * self.size + col

    def cell(self, row: int, col: int) -> Optional[Tile]:
        """Return the tile at (row, col), or None if the cell is empty."""
        if not (0 <= row < self.size and 0 <= col < self.size):
            raise ValueError(f"Cell ({row}, {col}) is off the board")
        return self.cells[self.index(row, col)]

    def value_at(self, row: int, col: int) -> int:
        tile = self.cell(row, col)
        return tile.value if tile else 0

    def flat_values(self) -> List[int]:
        """Tile values in row-major order, 0 for empty cells."""
        return [tile.value if tile else 0 for tile in self.cells]

    def values(self) -> List[List[int]]:
        """Tile values as a list of rows, 0 for empty cells."""
        flat = self.flat_values()
        return [flat[r * self.size:(r + 1) * self.size] for r in range(self.size)]

    def empty_cells(self) -> List[Position]:
        """All empty cells in row-major order."""
        return [
            divmod(i, self.size)
            for i, tile in enumerate(self.cells)
            if tile is None
        ]

    @property
    def max_tile(self) -> int:
        return max((tile.value for tile in self.tiles), default=0)

    @property
    def is_full(self) -> bool:
        return len(self.tiles) == self.size * self.size

    # ------------------------------------------------------------------
    # Tiles

    def place_random_tile(self) -> Optional[Tile]:
        """
        Place a new tile on a random empty cell.

        The value is 2 with probability 0.9, otherwise 4.

        Returns:
            The new tile, or None if the board is full.
        """
        available = self.empty_cells()
        if not available:
            return None

        position = available[self.rng.randrange(len(available))]
        value = 2 if self.rng.random() < 0.9 else 4
        return self._add_tile(position, value)

    def _add_tile(self, position: Position, value: int) -> Tile:
        tile = Tile(id=self._next_tile_id, value=value, position=position)
        self._next_tile_id += 1

        self.tiles.append(tile)
        self.cells[self.index(*position)] = tile
        return tile

    def _remove_tile(self, tile: Tile) -> None:
        for i, live in enumerate(self.tiles):
            if live is tile:
                del self.tiles[i]
                return

    # ------------------------------------------------------------------
    # Moves

    def _lines(self, direction: Direction) -> List[List[int]]:
        """
        Cell indices for each line parallel to the direction.

        Each line starts at the edge the tiles move toward.
        """
        n = self.size
        d_row, d_col = direction.vector
        lines = []

        for k in range(n):
            order = range(n) if (d_row < 0 or d_col < 0) else range(n - 1, -1, -1)
            if d_col:
                lines.append([k * n + c for c in order])
            else:
                lines.append([r * n + k for r in order])

        return lines

    def line_values(self, direction: Union[Direction, int, str]) -> List[List[int]]:
        """
        Tile values of each line parallel to the direction, 0 for empty cells.

        Each line starts at the edge the tiles move toward.
        """
        direction = Direction.coerce(direction)
        flat = self.flat_values()
        return [[flat[i] for i in line] for line in self._lines(direction)]

    def shift(self, direction: Union[Direction, int, str]) -> 'Board':
        """
        Shift every tile toward one edge, merging equal neighbors.

        Each line is compacted with two fingers: the scan finger visits
        every occupied cell, the write finger marks the next destination.
        A tile merges at most once per shift.

        Args:
            direction: Direction to shift (Direction, output index or name).

        Returns:
            This board.

        Raises:
            ValueError: If direction is not one of the four directions.
        """
        direction = Direction.coerce(direction)
        if self.game_over:
            return self

        moved = False

        for line in self._lines(direction):
            write = 0
            for scan in range(len(line)):
                cell_index = line[scan]
                tile = self.cells[cell_index]
                if tile is None:
                    continue

                tile.is_new = False
                tile.was_merged = False

                if write == scan:
                    continue

                dest_index = line[write]
                dest = self.cells[dest_index]

                if dest is None:
                    self._move(tile, cell_index, dest_index)
                    moved = True

                elif dest.value == tile.value:
                    dest.absorb(tile)
                    self.score += dest.value
                    self._remove_tile(tile)
                    self.cells[cell_index] = None
                    moved = True
                    write += 1

                    if dest.value == self.config.win_value:
                        self._win()
                        return self

                else:
                    write += 1
                    dest_index = line[write]
                    if write != scan:
                        self._move(tile, cell_index, dest_index)
                        moved = True

        if self.is_full and not self.matches_remaining():
            self.game_over = True
            logger.debug("Game over with score %d", self.score)

        if moved:
            self.place_random_tile()

        return self

    def _move(self, tile: Tile, src: int, dest: int) -> None:
        tile.move_to(divmod(dest, self.size))
        self.cells[dest] = tile
        self.cells[src] = None

    def _win(self) -> None:
        """Report the winning board, then reset and repopulate it."""
        self.wins += 1
        logger.info(
            "Reached %d with score %d\n%s",
            self.config.win_value, self.score, render_board(self),
        )
        if self.on_win:
            self.on_win(self)

        self.reset()
        self.populate()

    def matches_remaining(self) -> bool:
        """
        Check whether any two orthogonal neighbors hold equal values.

        Cells are visited in a checkerboard stride; every neighbor pair
        touches exactly one visited cell.
        """
        n = self.size
        for row in range(n):
            for col in range(row % 2, n, 2):
                tile = self.cells[row * n + col]
                if tile is None:
                    continue
                for d_row, d_col in _VECTORS.values():
                    r, c = row + d_row, col + d_col
                    if 0 <= r < n and 0 <= c < n:
                        other = self.cells[r * n + c]
                        if other is not None and other.value == tile.value:
                            return True
        return False

    # ------------------------------------------------------------------
    # Serialization

    def serialize_state(self) -> Dict[str, Any]:
        """
        Serialize board state for inspection.

        Returns:
            JSON-serializable dictionary of the board.
        """
        return {
            'size': self.size,
            'cells': self.values(),
            'score': self.score,
            'game_over': self.game_over,
            'win_value': self.config.win_value,
            'wins': self.wins,
            'tiles': [
                {
                    'id': tile.id,
                    'value': tile.value,
                    'position': list(tile.position),
                    'previous_position': (
                        list(tile.previous_position)
                        if tile.previous_position else None
                    ),
                    'merged_from': list(tile.merged_from),
                    'is_new': tile.is_new,
                    'was_merged': tile.was_merged,
                }
                for tile in self.tiles
            ],
        }

    def __repr__(self) -> str:
        return f"Board(size={self.size}, score={self.score}, game_over={self.game_over})"
