"""Command-line entry point: read an instance, anneal, print every new best tour."""
from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from .evaluation_tsp import MultiStartEvaluation
from .instance import InvalidInstanceError, load_instance, read_instance
from .report import IncumbentReporter, format_report
from .simulated_annealing import TSPSolver
from .stopping import build_stopping_policy


logger = logging.getLogger("tsp.cli")

EXIT_RUNS_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsp-anneal",
        description="Simulated annealing with 2-opt moves for the TSP.",
    )
    parser.add_argument('instance', nargs='?', default='-',
                        help='Instance file, or - for standard input (default)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (default: seeded from the OS)')
    parser.add_argument('--max-epochs', type=int, default=None,
                        help='Stop after this many epochs of 99 steps')
    parser.add_argument('--time-limit', type=float, default=None,
                        help='Stop after this many seconds')
    parser.add_argument('--min-temperature', type=float, default=None,
                        help='Stop once the temperature drops to this value')
    parser.add_argument('--no-truncate', action='store_true',
                        help='Keep real-valued tour costs instead of truncating to integers')
    parser.add_argument('--literal-reversal', action='store_true',
                        help='Use the one-extra-swap segment reversal')
    parser.add_argument('--euclidean', action='store_true',
                        help='Derive costs from the coordinates instead of the given matrix')
    parser.add_argument('--runs', type=int, default=1,
                        help='Independent runs with seeds seed, seed+1, ... (needs a stopping limit)')
    parser.add_argument('--threads', type=int, default=4,
                        help='Worker threads for --runs')
    parser.add_argument('--csv', type=str, default=None,
                        help='Write a per-run summary to this CSV file (with --runs)')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Log level for messages on standard error')
    return parser


def _run_multistart(instance, args, solver_kwargs, started_at: float) -> int:
    first_seed = args.seed if args.seed is not None else 0
    evaluator = MultiStartEvaluation(
        instance,
        seeds=range(first_seed, first_seed + args.runs),
        stop_factory=lambda: build_stopping_policy(args.max_epochs, args.time_limit, args.min_temperature),
        num_threads=args.threads,
        output_csv_path=args.csv,
        show_progress=sys.stderr.isatty(),
        **solver_kwargs,
    )
    results = evaluator.evaluate()
    finished = [row for row in results if row['best_cost'] != 'error']
    if not finished:
        print("error: every run failed, see the log for details", file=sys.stderr)
        return EXIT_RUNS_FAILED

    best = min(finished, key=lambda row: row['best_cost'])
    logger.info("Best run: seed=%d, cost=%s", best['seed'], best['best_cost'])
    cities = [int(city) - 1 for city in best['tour'].split()]
    sys.stdout.write(format_report(time.perf_counter() - started_at, best['best_cost'], cities + [0]))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    started_at = time.perf_counter()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )

    if args.runs < 1:
        print("error: --runs must be at least 1", file=sys.stderr)
        return EXIT_INVALID_INPUT
    if args.threads < 1:
        print("error: --threads must be at least 1", file=sys.stderr)
        return EXIT_INVALID_INPUT

    try:
        stop = build_stopping_policy(args.max_epochs, args.time_limit, args.min_temperature)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    if args.runs > 1 and stop is None:
        print("error: --runs needs --max-epochs, --time-limit or --min-temperature", file=sys.stderr)
        return EXIT_INVALID_INPUT

    try:
        instance = read_instance(sys.stdin) if args.instance == '-' else load_instance(args.instance)
    except (InvalidInstanceError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    if args.euclidean:
        instance = instance.with_euclidean_distances()

    solver_kwargs = {
        'truncate_costs': not args.no_truncate,
        'literal_step_count': args.literal_reversal,
    }

    if args.runs > 1:
        try:
            return _run_multistart(instance, args, solver_kwargs, started_at)
        except KeyboardInterrupt:
            logger.warning("Interrupted during %d independent runs.", args.runs)
            return EXIT_INTERRUPTED

    solver = TSPSolver(instance.coordinates, instance.distance_matrix, seed=args.seed,
                       reporter=IncumbentReporter(sys.stdout), **solver_kwargs)
    try:
        solver.solve(stop=stop, started_at=started_at)
    except KeyboardInterrupt:
        logger.warning("Interrupted after %d epochs. Best cost found: %s",
                       solver.state.epoch, solver.state.best_cost)
        return EXIT_INTERRUPTED
    return 0
