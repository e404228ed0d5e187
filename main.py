#!/usr/bin/env python3
"""
Lotto Engine command line
=========================

Generates diverse, scored games for lottery-style draws and summarizes
draw history.

Usage:
    python main.py generate --lottery megasena --draws data/megasena.csv --games 5
    python main.py generate --pool 60 --pick 6 --games 10 --seed 42
    python main.py analyze --lottery quina --draws data/quina.csv
    python main.py --help
"""

import argparse
import json
import os
import sys
import traceback
from typing import List

from loguru import logger

from lotto_engine.config import DEFAULT_CONFIG_PATH
from lotto_engine.config_manager import EngineConfig, load_config
from lotto_engine.generator import GenerationParams, LotteryEngine
from lotto_engine.loader import get_data_loader
from lotto_engine.models import Draw, InvalidParameterError, Strategy
from lotto_engine.output_exporter import convert_numpy_types, export_batch


def setup_logging(log_file: str, verbose: bool = False) -> None:
    """Console sink on stderr (stdout carries the JSON output) plus a rotating file sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "INFO"
    )
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logger.add(
        log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="DEBUG",
        rotation="10 MB",
        retention="30 days"
    )


def resolve_game(args, config: EngineConfig, require_pick: bool = True):
    if args.lottery:
        game = config.lottery(args.lottery)
        return game["pool"], args.pick or game["pick"]
    if not args.pool:
        raise InvalidParameterError("Either --lottery or --pool is required")
    if require_pick and not args.pick:
        raise InvalidParameterError("--pick is required together with --pool")
    return args.pool, args.pick


def load_draws(path: str, pool_size: int) -> List[Draw]:
    if not path:
        logger.warning("No draw history given. Scoring on structure only.")
        return []
    return get_data_loader(pool_size).load_csv(path)


def generate_command(args, config: EngineConfig) -> int:
    pool_size, pick = resolve_game(args, config)
    draws = load_draws(args.draws, pool_size)
    params = GenerationParams(
        population_size=args.population,
        generations=args.generations,
        mutation_rate=args.mutation_rate,
        elite_percent=args.elite_percent,
        min_hamming_distance=args.min_distance,
        seed=args.seed,
        strategy=args.strategy,
        workers=args.workers,
    )
    batch = LotteryEngine(config).generate(pool_size, pick, draws, args.games, params)

    if args.output:
        export_batch(batch, args.output)
    print(json.dumps(convert_numpy_types(batch.to_dict()), indent=2))
    return 0


def analyze_command(args, config: EngineConfig) -> int:
    pool_size, _ = resolve_game(args, config, require_pick=False)
    draws = load_draws(args.draws, pool_size)
    summary = LotteryEngine(config).analyze(pool_size, draws, top_n=args.top)
    print(json.dumps(convert_numpy_types(summary), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Lotto Engine - diverse game generation by genetic search",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py generate --lottery megasena --draws data/megasena.csv --games 5 --seed 7
  python main.py generate --pool 25 --pick 15 --games 3 --strategy hot
  python main.py analyze --lottery quina --draws data/quina.csv --top 5
        """
    )
    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging output'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_game_arguments(sub):
        sub.add_argument('--lottery', type=str, help='Registered lottery id, e.g. megasena')
        sub.add_argument('--pool', type=int, help='Pool size when no lottery id is given')
        sub.add_argument('--pick', type=int, help='Numbers per game (overrides the lottery default)')
        sub.add_argument('--draws', type=str, help='CSV file with draw history')

    parser_generate = subparsers.add_parser('generate', help="Generate games with the genetic search.")
    add_game_arguments(parser_generate)
    parser_generate.add_argument('--games', type=int, default=5, help="Number of games (default: 5)")
    parser_generate.add_argument('--population', type=int, help="Population size")
    parser_generate.add_argument('--generations', type=int, help="Number of generations")
    parser_generate.add_argument('--mutation-rate', type=float, help="Mutation probability per child")
    parser_generate.add_argument('--elite-percent', type=float, help="Share of each generation kept unchanged")
    parser_generate.add_argument('--min-distance', type=int, help="Minimum Hamming distance between games")
    parser_generate.add_argument('--seed', type=int, help="Random seed for a reproducible run")
    parser_generate.add_argument('--strategy', type=str, choices=[s.value for s in Strategy],
                                 help="Which history terms the scoring rewards")
    parser_generate.add_argument('--workers', type=int, help="Threads for fitness evaluation")
    parser_generate.add_argument('--output', type=str, help="Also write the games to a .csv or .json file")
    parser_generate.set_defaults(func=generate_command)

    parser_analyze = subparsers.add_parser('analyze', help="Summarize draw history.")
    add_game_arguments(parser_analyze)
    parser_analyze.add_argument('--top', type=int, default=10, help="Pairs and trios to list (default: 10)")
    parser_analyze.set_defaults(func=analyze_command)

    return parser


def main(argv=None) -> int:
    """Main entry point for the Lotto Engine CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_file, args.verbose)

    try:
        return args.func(args, config)
    except InvalidParameterError as e:
        logger.error(f"Invalid parameters: {e}")
        return 2
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        if args.verbose:
            logger.debug(traceback.format_exc())
        return 1
    except KeyboardInterrupt:
        logger.warning("Execution interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
