"""
Match Runner

Entry point for playing the example games against IS-MCTS.

Usage:
    # IS-MCTS (first to act) against the Kuhn poker equilibrium player
    python -m ismcts.play kuhn --games 200 --iterations 2000

    # IS-MCTS against a random player in misère Nim, seats rotating
    python -m ismcts.play nim --heaps 3 4 5 --misere --games 20

    # Show the root statistics of a single search
    python -m ismcts.play kuhn --show-search --seed 3

    # Use a JSON search config
    python -m ismcts.play nim --config configs/search.json
"""

import argparse
import logging
import sys
from typing import List, Optional

import numpy as np
from rich.console import Console
from rich.table import Table

from ismcts.config import SearchConfig
from ismcts.evaluation.arena import Arena, ISMCTSAgent, PolicyAgent, RandomAgent
from ismcts.game.kuhn_poker import KuhnPoker, second_player_equilibrium_action
from ismcts.game.nim import MISERE, STANDARD, Nim
from ismcts.mcts.search import ISMCTS


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Play example games against Information-Set MCTS",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        'game',
        choices=['kuhn', 'nim'],
        help='Game to play',
    )

    # Search parameters
    parser.add_argument(
        '--iterations',
        type=int,
        default=None,
        help='Iterations per decision (overrides config)',
    )
    parser.add_argument(
        '--time-budget',
        type=float,
        default=None,
        help='Seconds per decision (overrides config); without --iterations there is no iteration cap',
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Search threads per decision (overrides config)',
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON search config file (overrides defaults)',
    )

    # Match
    parser.add_argument(
        '--games',
        type=int,
        default=100,
        help='Number of games to play',
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for deals and searches',
    )
    parser.add_argument(
        '--show-search',
        action='store_true',
        help='Run a single search from a fresh deal and print its statistics',
    )

    # Nim
    parser.add_argument(
        '--heaps',
        type=int,
        nargs='+',
        default=[3, 4, 5],
        help='Nim heap sizes',
    )
    parser.add_argument(
        '--misere',
        action='store_true',
        help='Play misère Nim (taking the last object loses)',
    )

    # Logging
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level',
    )

    return parser.parse_args(argv)


def setup_logging(log_level: str = 'INFO'):
    """
    Setup console logging.

    Args:
        log_level: Logging level
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_config(args: argparse.Namespace) -> SearchConfig:
    """Load the search config and apply command line overrides."""
    config = SearchConfig.from_file(args.config) if args.config else SearchConfig()
    if args.iterations is not None:
        config.iterations = args.iterations
    if args.time_budget is not None:
        config.time_budget_s = args.time_budget
        if args.iterations is None:
            # A time budget alone runs until the deadline
            config.iterations = None
    if args.workers is not None:
        config.num_workers = args.workers
    config.validate()
    return config


def search_table(result) -> Table:
    """Root statistics of one search as a rich table."""
    table = Table(title="Root statistics", box=None, padding=(0, 2))
    table.add_column("Action", style="cyan", no_wrap=True)
    table.add_column("Visits", justify="right")
    table.add_column("Avail", justify="right")
    table.add_column("Mean", justify="right")
    for action, stats in result.root_stats.items():
        style = "bold green" if action == result.action else None
        table.add_row(
            str(action),
            f"{stats.visits:,}",
            f"{stats.availability:,}",
            f"{stats.mean_reward:+.3f}",
            style=style,
        )
    return table


def match_table(agents, results) -> Table:
    """Per-agent match results as a rich table."""
    table = Table(title=f"Games played: {results['games_played']}", box=None, padding=(0, 2))
    table.add_column("Agent", style="cyan", no_wrap=True)
    table.add_column("Mean reward", justify="right")
    table.add_column("Wins", justify="right")
    for agent, mean, wins in zip(agents, results['mean_rewards'], results['wins']):
        table.add_row(agent.name, f"{mean:+.3f}", str(wins))
    table.add_row("draws", "", str(results['draws']), style="dim")
    return table


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)
    console = Console()

    config = build_config(args)
    logger.info("\n%s", config)

    if args.game == 'kuhn':
        game = KuhnPoker()
        deal = game.deal
        agents = [
            ISMCTSAgent(config),
            PolicyAgent(second_player_equilibrium_action, name='equilibrium'),
        ]
        # The equilibrium player only knows how to act as player 1
        rotate_seats = False
    else:
        game = Nim(MISERE if args.misere else STANDARD)
        heaps = tuple(args.heaps)
        deal = lambda rng: game.initial_state(heaps)
        agents = [ISMCTSAgent(config), RandomAgent()]
        rotate_seats = True

    if args.show_search:
        rng = np.random.default_rng(args.seed)
        state = deal(rng)
        config.seed = args.seed
        result = ISMCTS(game, config).search(state)
        console.print(f"State: {state}", markup=False)
        console.print(search_table(result))
        console.print(
            f"Recommended: {result.action} "
            f"({result.iterations} iterations, {result.elapsed_s:.3f}s)",
            markup=False,
        )
        return 0

    arena = Arena(game, deal)
    results = arena.play_match(
        agents,
        num_games=args.games,
        seed=args.seed,
        rotate_seats=rotate_seats,
    )

    console.print(match_table(agents, results))
    return 0


if __name__ == '__main__':
    sys.exit(main())
