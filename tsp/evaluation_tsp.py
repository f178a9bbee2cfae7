from __future__ import annotations

import concurrent.futures
import csv
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from .instance import TSPInstance
from .simulated_annealing import TSPSolver
from .stopping import StoppingPolicy

__all__ = ['MultiStartEvaluation']

logger = logging.getLogger("tsp.evaluation_tsp")

CSV_HEADERS = ['seed', 'best_cost', 'epochs', 'steps', 'solve_time', 'tour']


class MultiStartEvaluation:
    """
    Runs several independent annealing runs on one instance, one per seed,
    in parallel and writes a summary row per run to a CSV file.
    """

    def __init__(self,
                 instance: TSPInstance,
                 seeds: Sequence[int],
                 stop_factory: Callable[[], StoppingPolicy],
                 num_threads: int = 4,
                 output_csv_path: Optional[str] = 'tsp_multistart_results.csv',
                 show_progress: bool = True,
                 **solver_kwargs):
        """
        Args:
            instance (TSPInstance): The instance every run solves.
            seeds (Sequence[int]): One run per seed.
            stop_factory (Callable): Builds a fresh stopping policy for each run.
                Runs must stop on their own, so a policy is required.
            num_threads (int): Number of worker threads.
            output_csv_path (str): Where to write the results, or None to skip writing.
            show_progress (bool): Show a tqdm progress bar.
            **solver_kwargs: Passed on to every TSPSolver (e.g. truncate_costs).
        """
        if not seeds:
            raise ValueError("At least one seed is required.")
        if len(set(seeds)) != len(seeds):
            raise ValueError("Seeds must be unique.")
        if num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {num_threads}")
        for forbidden in ('seed', 'rng', 'reporter'):
            if forbidden in solver_kwargs:
                raise ValueError(f"{forbidden!r} is set per run and cannot be passed as a solver option.")

        self.instance = instance
        self.seeds = list(seeds)
        self.stop_factory = stop_factory
        self.num_threads = num_threads
        self.output_csv_path = output_csv_path
        self.show_progress = show_progress
        self.solver_kwargs = solver_kwargs

        logger.info("Evaluating %d seeds on %d cities with %d threads.",
                    len(self.seeds), instance.n, num_threads)

    def _run_single_solve(self, seed: int) -> Dict[str, Any]:
        """Worker function: one full annealing run. Executed by each thread."""
        solver = TSPSolver(self.instance.coordinates, self.instance.distance_matrix,
                           seed=seed, **self.solver_kwargs)
        solve_start_time = time.perf_counter()
        best_tour = solver.solve(stop=self.stop_factory())
        solve_time = time.perf_counter() - solve_start_time

        logger.info("seed=%d, best_cost=%s, epochs=%d, solve_time=%.2f",
                    seed, solver.state.best_cost, solver.state.epoch, solve_time)
        return {
            'seed': seed,
            'best_cost': solver.state.best_cost,
            'epochs': solver.state.epoch,
            'steps': solver.state.steps,
            'solve_time': solve_time,
            'tour': ' '.join(str(int(city) + 1) for city in best_tour[:-1]),
        }

    def evaluate(self) -> List[Dict[str, Any]]:
        """Runs every seed and returns one result row per seed, in seed order."""
        start_time = time.perf_counter()

        results_by_seed: Dict[int, Dict[str, Any]] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.num_threads) as executor:
            future_to_seed = {executor.submit(self._run_single_solve, seed): seed for seed in self.seeds}

            for future in tqdm(concurrent.futures.as_completed(future_to_seed), total=len(self.seeds),
                               desc="Annealing runs", disable=not self.show_progress):
                seed = future_to_seed[future]
                try:
                    results_by_seed[seed] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.error("Run with seed %d generated an exception: %s", seed, exc)
                    results_by_seed[seed] = {'seed': seed, 'best_cost': 'error'}

        ordered_results = [results_by_seed[seed] for seed in self.seeds]

        if self.output_csv_path is not None:
            self.write_results_to_csv(ordered_results)

        total_time = time.perf_counter() - start_time
        logger.info("Evaluation finished in %.2f seconds.", total_time)
        return ordered_results

    def write_results_to_csv(self, results_data: List[Dict[str, Any]]) -> None:
        """Writes the evaluation results to a CSV file."""
        if not results_data:
            logger.warning("No results to write.")
            return

        with open(self.output_csv_path, 'w', newline='') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=CSV_HEADERS, restval='N/A')
            writer.writeheader()
            writer.writerows(results_data)
        logger.info("Wrote results to '%s'", self.output_csv_path)
