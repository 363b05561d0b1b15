"""
Command line entry point.

Usage:
    evo2048 train [--population 600] [--generations 30] [--workers 8] ...
    evo2048 replay checkpoints/population_gen00029.pt [--seed 3]

train evolves a population and optionally writes checkpoints; replay
loads a checkpoint and plays its best genome once.
"""
import argparse
import logging
import random
import sys
from typing import List, Optional

from . import settings
from .ai.evolution import EvolutionConfig, GenerationStats, Population
from .ai.matches import EXECUTORS, GameRunner
from .game import Board, BoardConfig, print_board

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='evo2048',
        description='Evolve feed-forward networks that play a sliding-tile merging game',
    )
    parser.add_argument(
        '--log-level',
        default=None,
        help=f'Logging level (default: {settings.LOG_LEVEL})',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    train = subparsers.add_parser('train', help='Run an evolution experiment')
    train.add_argument('--population', type=int, default=600, help='Population size (default: 600)')
    train.add_argument('--generations', type=int, default=30, help='Number of generations (default: 30)')
    train.add_argument(
        '--mutation-rate',
        type=float,
        default=0.05,
        help='Initial mutation rate (default: 0.05)',
    )
    train.add_argument('--board-size', type=int, default=4, help='Board edge length (default: 4)')
    train.add_argument('--start-tiles', type=int, default=2, help='Starting tiles (default: 2)')
    train.add_argument('--win-value', type=int, default=4096, help='Tile value that wins (default: 4096)')
    train.add_argument('--hidden-layers', type=int, default=1, help='Hidden layers (default: 1)')
    train.add_argument('--hidden-size', type=int, default=8, help='Nodes per hidden layer (default: 8)')
    train.add_argument(
        '--workers',
        type=int,
        default=settings.WORKERS,
        help='Evaluation workers (default: executor decides)',
    )
    train.add_argument(
        '--executor',
        default='thread',
        choices=EXECUTORS,
        help='Evaluation pool type (default: thread)',
    )
    train.add_argument('--seed', type=int, default=settings.SEED, help='Base random seed')
    train.add_argument(
        '--checkpoint-dir',
        default=settings.CHECKPOINT_DIR,
        help=f'Checkpoint directory (default: {settings.CHECKPOINT_DIR})',
    )
    train.add_argument(
        '--checkpoint-interval',
        type=int,
        default=0,
        help='Save a checkpoint every N generations (default: 0, only at the end)',
    )

    replay = subparsers.add_parser('replay', help='Play the best genome of a checkpoint')
    replay.add_argument('checkpoint', help='Path to a population checkpoint')
    replay.add_argument('--seed', type=int, default=None, help='Board random seed')

    return parser


def train(args: argparse.Namespace) -> int:
    board_config = BoardConfig(
        size=args.board_size,
        start_tiles=args.start_tiles,
        win_value=args.win_value,
    )
    config = EvolutionConfig(
        population_size=args.population,
        generations=args.generations,
        mutation_rate=args.mutation_rate,
        hidden_layers=args.hidden_layers,
        hidden_size=args.hidden_size,
        workers=args.workers,
        executor=args.executor,
        seed=args.seed,
        checkpoint_interval=args.checkpoint_interval,
        checkpoint_dir=args.checkpoint_dir,
    )

    population = Population(config, board_config=board_config)
    population.initialize_random()
    logger.info(
        "Training %d networks for %d generations (seed %d)",
        config.population_size, config.generations, population.seed,
    )

    def report(gen: int, stats: GenerationStats) -> None:
        print(
            f"Generation: {gen:3d}, best score: {stats.best_fitness:5.0f}, "
            f"median: {stats.median_fitness:5.0f}"
        )

    population.evolve(progress_callback=report)

    if not config.checkpoint_interval or config.generations % config.checkpoint_interval:
        path = population.save_checkpoint()
        print(f"Checkpoint saved to {path}")

    best = population.get_best()
    print(f"Best individual: {best.id} with score {best.fitness:.0f}")
    return 0


def replay(args: argparse.Namespace) -> int:
    population = Population.from_checkpoint(args.checkpoint)
    best = population.get_best()

    board = Board(population.board_config, rng=random.Random(args.seed), populate=False)
    runner = GameRunner(
        move_budget=population.config.move_budget,
        high_score_threshold=population.config.high_score_threshold,
    )
    result = runner.play(best.network, board)

    print_board(board)
    print(
        f"Individual {best.id}: score {result.score}, {result.turns} turns, "
        f"max tile {result.max_tile}, "
        f"{'game over' if result.game_over else 'out of moves'}"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings.configure_logging(args.log_level)

    commands = {
        'train': train,
        'replay': replay,
    }

    try:
        return commands[args.command](args)
    except (ValueError, OSError) as e:
        print(f"evo2048: error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
