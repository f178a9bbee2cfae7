from __future__ import annotations

import sys
from typing import Optional, TextIO

import numpy as np


def format_cost(cost: float) -> str:
    """Integral costs print as integers, anything else with two decimals."""
    cost = float(cost)
    if cost.is_integer():
        return str(int(cost))
    return f"{cost:.2f}"


def format_report(elapsed: float, cost: float, tour: np.ndarray) -> str:
    """
    Formats one incumbent report.

    The tour is the closed tour of length n+1; the closing city is not printed
    and the cities are shown 1-indexed, each followed by a space.
    """
    cities = "".join(f"{int(city) + 1} " for city in tour[:-1])
    return (
        f"Time taken: {elapsed:.2f}s\n"
        f"The shortest cost obtained so far is {format_cost(cost)}\n"
        f"{cities}\n"
    )


class IncumbentReporter:
    """Writes a report to a text stream each time the solver finds a new best tour."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.reports = 0

    def __call__(self, elapsed: float, cost: float, tour: np.ndarray) -> None:
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(format_report(elapsed, cost, tour))
        stream.flush()
        self.reports += 1
