"""
Game runner for evaluating networks.

Plays boards to completion under a network's control and fans a whole
generation out over a worker pool.

Per turn the network looks (scan), thinks (feed-forward) and acts
(shift with its top move). If the score did not change, the second and
then the third ranked move are tried. A turn that changes the score
refills the move budget; otherwise the budget shrinks by one. Play stops
at game over or when the budget runs out.
"""
import logging
import random
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

import numpy as np

from ...game.board import Board, BoardConfig
from ...game.rendering import render_board
from ..encoders import BoardEncoder

if TYPE_CHECKING:
    from ..evolution.selection import Individual
    from ..networks.genome import Network

logger = logging.getLogger(__name__)

EXECUTORS = ('thread', 'process')

# Turns a player may go without changing the score before play stops
DEFAULT_MOVE_BUDGET = 3


@dataclass
class GameResult:
    """Result of a single game."""
    score: int = 0
    turns: int = 0
    moves_left: int = 0
    max_tile: int = 0
    wins: int = 0
    game_over: bool = False
    final_state: Optional[Dict[str, Any]] = None

    @property
    def exhausted(self) -> bool:
        """True if play stopped because the move budget ran out."""
        return not self.game_over and self.moves_left <= 0


class GameRunner:
    """
    Play one board to completion with one network.

    Example:
        runner = GameRunner()
        result = runner.play(network, Board(BoardConfig(), rng=random.Random(1)))
        print(result.score)
    """

    def __init__(
        self,
        move_budget: int = DEFAULT_MOVE_BUDGET,
        high_score_threshold: int = 15000,
        record_state: bool = False,
    ):
        """
        Args:
            move_budget: Consecutive ineffective turns allowed.
            high_score_threshold: Final scores above this are logged with the board.
            record_state: If True, keep the serialized final board in the result.
        """
        if move_budget < 1:
            raise ValueError("move_budget must be at least 1")
        self.move_budget = move_budget
        self.high_score_threshold = high_score_threshold
        self.record_state = record_state

    def play(self, network: 'Network', board: Board) -> GameResult:
        """
        Reset and rebuild the board, then play until it stops.

        Returns:
            GameResult with the final score.
        """
        encoder = BoardEncoder(board.size)

        board.reset()
        board.build()

        score = board.score
        moves_left = self.move_budget
        turns = 0

        while not board.game_over and moves_left > 0:
            network.scan_input(encoder.encode(board))
            network.feed_forward()
            ranked = network.ranked_moves()

            board.shift(network.best_move())
            moves_left -= 1

            for fallback in ranked[1:3]:
                if board.score != score:
                    break
                board.shift(fallback)

            if board.score != score:
                moves_left = self.move_budget
            score = board.score
            turns += 1
            logger.debug("Turn %d: ranked %s, score %d, budget %d", turns, ranked, score, moves_left)

        logger.debug(
            "Game stopped after %d turns with score %d (game over: %s)",
            turns, score, board.game_over,
        )
        if score > self.high_score_threshold:
            logger.info("High score %d\n%s", score, render_board(board))

        return GameResult(
            score=score,
            turns=turns,
            moves_left=moves_left,
            max_tile=board.max_tile,
            wins=board.wins,
            game_over=board.game_over,
            final_state=board.serialize_state() if self.record_state else None,
        )

    def play_individual(self, individual: 'Individual', board: Board) -> GameResult:
        """Play a game and record the score as the individual's fitness."""
        result = self.play(individual.network, board)
        individual.fitness = result.score
        individual.moves_left = result.moves_left
        return result


def play_game(
    network: 'Network',
    board_config: BoardConfig,
    seed: int,
    move_budget: int = DEFAULT_MOVE_BUDGET,
    high_score_threshold: int = 15000,
) -> GameResult:
    """
    Play one game on a fresh board seeded with seed.

    Module-level so it can be shipped to worker processes.
    """
    board = Board(board_config, rng=random.Random(seed), populate=False)
    runner = GameRunner(move_budget=move_budget, high_score_threshold=high_score_threshold)
    return runner.play(network, board)


class PopulationEvaluator:
    """
    Evaluate a generation with one task per individual.

    All tasks are submitted at once and joined before results are
    applied; tasks share no state. Each task's board gets its own
    random source seeded from (seed, generation, index).

    Example:
        evaluator = PopulationEvaluator(BoardConfig(), workers=8, seed=42)
        results = evaluator.evaluate(population.individuals, generation=0)
    """

    def __init__(
        self,
        board_config: Optional[BoardConfig] = None,
        workers: Optional[int] = None,
        executor: str = 'thread',
        move_budget: int = DEFAULT_MOVE_BUDGET,
        high_score_threshold: int = 15000,
        seed: Optional[int] = None,
    ):
        """
        Args:
            board_config: Board configuration for every game.
            workers: Pool size (None lets the executor decide).
            executor: 'thread' or 'process'.
            move_budget: Consecutive ineffective turns allowed.
            high_score_threshold: Scores above this are logged with the board.
            seed: Base seed; drawn from OS entropy if None.
        """
        if executor not in EXECUTORS:
            raise ValueError(f"Unknown executor: {executor!r} (expected one of {EXECUTORS})")
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")

        self.board_config = board_config or BoardConfig()
        self.workers = workers
        self.executor = executor
        self.move_budget = move_budget
        self.high_score_threshold = high_score_threshold
        self.seed = seed if seed is not None else np.random.SeedSequence().entropy

    def task_seed(self, generation: int, index: int) -> int:
        """Seed for one individual's board in one generation."""
        sequence = np.random.SeedSequence(entropy=self.seed, spawn_key=(generation, index))
        return int(sequence.generate_state(1, dtype=np.uint64)[0])

    def _make_executor(self) -> Executor:
        if self.executor == 'process':
            return ProcessPoolExecutor(max_workers=self.workers)
        return ThreadPoolExecutor(max_workers=self.workers)

    def evaluate(
        self,
        individuals: Sequence['Individual'],
        generation: int = 0,
    ) -> List[GameResult]:
        """
        Play every individual's game and record fitness.

        Returns:
            Results in the order of individuals.
        """
        if not individuals:
            return []

        with self._make_executor() as pool:
            futures = [
                pool.submit(
                    play_game,
                    individual.network,
                    self.board_config,
                    self.task_seed(generation, i),
                    self.move_budget,
                    self.high_score_threshold,
                )
                for i, individual in enumerate(individuals)
            ]
            results = [future.result() for future in futures]

        for individual, result in zip(individuals, results):
            individual.fitness = result.score
            individual.moves_left = result.moves_left

        return results
