import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

import numpy as np
from numba import njit

from .stopping import StoppingPolicy


logger = logging.getLogger("tsp.simulated_annealing")

# Reference schedule: start hot enough to accept almost anything, cool by 0.1%
# after every epoch of 99 inner steps.
INITIAL_TEMPERATURE = 1e18
COOLING_RATE = 0.999
STEPS_PER_EPOCH = 99

LOG_EVERY_EPOCHS = 1000

Reporter = Callable[[float, float, np.ndarray], None]


# --- Numba JIT Compiled Functions ---
# The per-step O(n) work lives here; the annealing loop itself stays in Python
# so the random source, reporter and stopping policy can be injected.

@njit(cache=True)
def _tour_cost_numba(tour: np.ndarray, distance_matrix: np.ndarray, truncate: bool) -> float:
    """Sums the edges of a closed tour, optionally truncating the running sum after each edge."""
    total = 0.0
    for i in range(len(tour) - 1):
        total += distance_matrix[tour[i], tour[i + 1]]
        if truncate:
            total = np.trunc(total)
    return total


@njit(cache=True)
def _two_opt_reverse_numba(tour: np.ndarray, r1: int, r2: int, literal_step_count: bool) -> None:
    """Reverses tour[r1..r2] in place by swapping symmetric pairs inward."""
    if r1 > r2:
        r1, r2 = r2, r1
    steps = (r2 - r1 + 1) // 2
    if literal_step_count:
        # One extra swap: undoes the middle swap of an even-length segment.
        steps += 1
    i = r1
    j = r2
    for _ in range(steps):
        tmp = tour[i]
        tour[i] = tour[j]
        tour[j] = tmp
        i += 1
        j -= 1


def tour_cost(tour: np.ndarray, distance_matrix: np.ndarray, truncate: bool = True) -> float:
    """
    Cost of a closed tour (length n+1, first and last city equal).

    With truncate=True the accumulator is integral: the running sum is
    truncated toward zero after every edge, so fractional costs are dropped.
    """
    return float(
        _tour_cost_numba(
            np.asarray(tour, dtype=np.int64),
            np.ascontiguousarray(distance_matrix, dtype=np.float64),
            truncate,
        )
    )


def two_opt_reverse(tour: np.ndarray, r1: int, r2: int, literal_step_count: bool = False) -> None:
    """
    Applies a 2-opt move to an int64 tour array in place.

    The positions may come in any order and may coincide. With
    literal_step_count=True one extra swap step is performed, which leaves the
    two middle cities of an even-length segment in their original order.
    """
    if tour.dtype != np.int64:
        raise TypeError(f"tour must be an int64 array, got {tour.dtype}")
    _two_opt_reverse_numba(tour, int(r1), int(r2), literal_step_count)


def identity_tour(n: int) -> np.ndarray:
    """The closed tour 0, 1, ..., n-1, 0."""
    tour = np.arange(n + 1, dtype=np.int64)
    tour[n] = 0
    return tour


def acceptance_probability(gain: float, temperature: float) -> float:
    """
    Logistic Metropolis rule 1 / (1 + e^(gain / temperature)).

    Improving moves get a probability above 0.5, worsening ones below. At a
    temperature of zero the limit is returned.
    """
    if temperature <= 0:
        if gain < 0:
            return 1.0
        if gain > 0:
            return 0.0
        return 0.5
    x = gain / temperature
    if x > 0:
        z = math.exp(-x)
        return z / (1.0 + z)
    return 1.0 / (1.0 + math.exp(x))


@dataclass
class AnnealerState:
    """Everything the annealing loop mutates."""

    current: np.ndarray
    candidate: np.ndarray
    best: np.ndarray
    current_cost: float
    best_cost: float
    temperature: float
    epoch: int = 0
    steps: int = 0
    accepted: int = 0
    improvements: int = 0
    started_at: float = 0.0
    clock: Callable[[], float] = time.perf_counter


class StepOutcome(NamedTuple):
    r1: int
    r2: int
    candidate_cost: float
    gain: float
    probability: float
    accepted: bool
    improved: bool


class TSPSolver:
    def __init__(
        self,
        coordinates: Optional[np.ndarray],
        distance_matrix: np.ndarray,
        initial_temperature: float = INITIAL_TEMPERATURE,
        cooling_rate: float = COOLING_RATE,
        steps_per_epoch: int = STEPS_PER_EPOCH,
        truncate_costs: bool = True,
        literal_step_count: bool = False,
        seed: Optional[int] = None,
        rng=None,
        reporter: Optional[Reporter] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize the simulated annealing solver.

        Args:
            coordinates: Numpy array of shape (n, 2) with the city coordinates, or None.
                Not used by the search.
            distance_matrix: Numpy array of shape (n, n) of travel costs.
            initial_temperature: Starting temperature.
            cooling_rate: Factor applied to the temperature after every epoch.
            steps_per_epoch: Perturb/accept steps between two cooling steps.
            truncate_costs: Keep tour costs integral by truncating the running sum.
            literal_step_count: Use the one-extra-swap reversal instead of an exact one.
            seed: Seed for the default random source. None seeds from the OS.
            rng: Random source with randint(a, b) and random(); overrides seed.
            reporter: Called with (elapsed_seconds, cost, tour) on each new best tour.
            clock: Time source for elapsed times.
        """
        self.distance_matrix = np.ascontiguousarray(distance_matrix, dtype=np.float64)
        if self.distance_matrix.ndim != 2 or self.distance_matrix.shape[0] != self.distance_matrix.shape[1]:
            raise ValueError(f"distance_matrix must be square, got shape {self.distance_matrix.shape}")
        self.n = self.distance_matrix.shape[0]
        if self.n == 0:
            raise ValueError("Input distance matrix cannot be empty.")

        self.coordinates = None if coordinates is None else np.asarray(coordinates, dtype=np.float64)
        if self.coordinates is not None and len(self.coordinates) != self.n:
            raise ValueError(
                f"{len(self.coordinates)} coordinates do not match a {self.n}x{self.n} distance matrix"
            )

        if initial_temperature <= 0:
            raise ValueError(f"initial_temperature must be positive, got {initial_temperature}")
        if not 0 < cooling_rate < 1:
            raise ValueError(f"cooling_rate must be in (0, 1), got {cooling_rate}")
        if steps_per_epoch < 1:
            raise ValueError(f"steps_per_epoch must be at least 1, got {steps_per_epoch}")

        self.initial_temperature = float(initial_temperature)
        self.cooling_rate = float(cooling_rate)
        self.steps_per_epoch = int(steps_per_epoch)
        self.truncate_costs = truncate_costs
        self.literal_step_count = literal_step_count
        self.rng = rng if rng is not None else random.Random(seed)
        self.reporter = reporter
        self.clock = clock

        self.reset()

    def _calculate_tour_cost(self, tour: np.ndarray) -> float:
        """Wrapper for the Numba-compiled cost function."""
        return float(_tour_cost_numba(tour, self.distance_matrix, self.truncate_costs))

    def reset(self) -> AnnealerState:
        """Puts the three tours back to the identity tour and reheats."""
        tour = identity_tour(self.n)
        cost = self._calculate_tour_cost(tour)
        self.state = AnnealerState(
            current=tour.copy(),
            candidate=tour.copy(),
            best=tour.copy(),
            current_cost=cost,
            best_cost=cost,
            temperature=self.initial_temperature,
            started_at=self.clock(),
            clock=self.clock,
        )
        return self.state

    def elapsed(self) -> float:
        return self.clock() - self.state.started_at

    def step(self) -> StepOutcome:
        """One perturb / evaluate / accept / track step."""
        state = self.state
        n = self.n

        state.candidate[1:n] = state.current[1:n]

        # A single city has no interior to perturb.
        if n > 1:
            r1 = self.rng.randint(1, n - 1)
            r2 = self.rng.randint(1, n - 1)
            _two_opt_reverse_numba(state.candidate, r1, r2, self.literal_step_count)
        else:
            r1 = r2 = 0

        candidate_cost = self._calculate_tour_cost(state.candidate)
        gain = candidate_cost - state.current_cost
        u = self.rng.random()
        probability = acceptance_probability(gain, state.temperature)

        accepted = probability > u
        if accepted:
            state.current[1:n] = state.candidate[1:n]
            state.current_cost = candidate_cost
            state.accepted += 1

        improved = candidate_cost < state.best_cost
        if improved:
            state.best[1:n] = state.candidate[1:n]
            state.best_cost = candidate_cost
            state.improvements += 1
            logger.debug(
                "New best tour: cost=%s, epoch=%d, step=%d", candidate_cost, state.epoch, state.steps
            )
            if self.reporter is not None:
                self.reporter(self.elapsed(), candidate_cost, state.best.copy())

        state.steps += 1
        return StepOutcome(r1, r2, candidate_cost, gain, probability, accepted, improved)

    def run_epoch(self) -> None:
        """Runs one epoch of inner steps, then cools."""
        for _ in range(self.steps_per_epoch):
            self.step()
        self.state.temperature *= self.cooling_rate
        self.state.epoch += 1

        if self.state.epoch % LOG_EVERY_EPOCHS == 0:
            logger.info(
                "epoch=%d, T=%.4g, current_cost=%s, best_cost=%s, accepted=%d/%d",
                self.state.epoch,
                self.state.temperature,
                self.state.current_cost,
                self.state.best_cost,
                self.state.accepted,
                self.state.steps,
            )

    def solve(self, stop: Optional[StoppingPolicy] = None, started_at: Optional[float] = None) -> np.ndarray:
        """
        Solve the TSP by simulated annealing with 2-opt moves.

        Args:
            stop: Checked before every epoch; the search ends when it returns True.
                Without one the search runs until interrupted.
            started_at: Clock reading that elapsed times are measured from.
                Defaults to the moment solve is called.

        Returns:
            The best closed tour found, a numpy array of length n+1 that starts
            and ends at city 0.
        """
        self.state.started_at = self.clock() if started_at is None else started_at
        logger.info(
            "Annealing %d cities: T0=%.4g, cooling_rate=%s, steps_per_epoch=%d, stop=%r",
            self.n,
            self.state.temperature,
            self.cooling_rate,
            self.steps_per_epoch,
            stop,
        )

        while stop is None or not stop(self.state):
            self.run_epoch()

        logger.info(
            "Annealing finished after %d epochs (%d steps). Best cost found: %s",
            self.state.epoch,
            self.state.steps,
            self.state.best_cost,
        )
        return self.state.best.copy()
