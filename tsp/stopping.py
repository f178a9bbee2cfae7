"""
Stopping policies for the annealing loop.

A policy is any callable taking the solver's AnnealerState and returning True
when the search should stop. TSPSolver.solve checks it once per epoch.
"""
from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from .simulated_annealing import AnnealerState


StoppingPolicy = Callable[["AnnealerState"], bool]


class _Policy(abc.ABC):
    @abc.abstractmethod
    def __call__(self, state: "AnnealerState") -> bool:
        ...

    def __or__(self, other: StoppingPolicy) -> "AnyOf":
        return AnyOf(self, other)


class MaxEpochs(_Policy):
    """Stops after a fixed number of completed epochs."""

    def __init__(self, epochs: int):
        if epochs < 0:
            raise ValueError(f"epochs must be non-negative, got {epochs}")
        self.epochs = epochs

    def __call__(self, state: "AnnealerState") -> bool:
        return state.epoch >= self.epochs

    def __repr__(self) -> str:
        return f"MaxEpochs({self.epochs})"


class TimeLimit(_Policy):
    """
    Stops once the time since the solve started reaches a budget.

    Time is read from the solver's clock (state.clock), the same one that
    stamped state.started_at. Pass clock only to override it.
    """

    def __init__(self, seconds: float, clock: Optional[Callable[[], float]] = None):
        if seconds < 0:
            raise ValueError(f"seconds must be non-negative, got {seconds}")
        self.seconds = seconds
        self.clock = clock

    def __call__(self, state: "AnnealerState") -> bool:
        clock = self.clock if self.clock is not None else state.clock
        return clock() - state.started_at >= self.seconds

    def __repr__(self) -> str:
        return f"TimeLimit({self.seconds})"


class TemperatureFloor(_Policy):
    """Stops once the temperature drops to or below a floor."""

    def __init__(self, min_temperature: float):
        self.min_temperature = min_temperature

    def __call__(self, state: "AnnealerState") -> bool:
        return state.temperature <= self.min_temperature

    def __repr__(self) -> str:
        return f"TemperatureFloor({self.min_temperature})"


class AnyOf(_Policy):
    """Stops as soon as one of the wrapped policies does."""

    def __init__(self, *policies: StoppingPolicy):
        self.policies = policies

    def __call__(self, state: "AnnealerState") -> bool:
        return any(policy(state) for policy in self.policies)

    def __repr__(self) -> str:
        return f"AnyOf({', '.join(repr(p) for p in self.policies)})"


def build_stopping_policy(
    max_epochs: Optional[int] = None,
    time_limit: Optional[float] = None,
    min_temperature: Optional[float] = None,
) -> Optional[StoppingPolicy]:
    """Combines the given limits with "any of"; returns None when none is set."""
    policies = []
    if max_epochs is not None:
        policies.append(MaxEpochs(max_epochs))
    if time_limit is not None:
        policies.append(TimeLimit(time_limit))
    if min_temperature is not None:
        policies.append(TemperatureFloor(min_temperature))

    if not policies:
        return None
    if len(policies) == 1:
        return policies[0]
    return AnyOf(*policies)
