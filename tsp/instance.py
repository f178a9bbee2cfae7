from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, List, TextIO, Union

import numpy as np


logger = logging.getLogger("tsp.instance")

# A header of "non" is the first half of the two-token "non euclidean" header.
TWO_TOKEN_HEADER_PREFIX = "non"


class InvalidInstanceError(ValueError):
    """Raised when a problem instance cannot be read."""


@dataclass(frozen=True)
class TSPInstance:
    """
    A loaded TSP instance.

    Attributes:
        distance_type: Header of the instance, e.g. "euclidean" or "non euclidean".
        coordinates: Numpy array of shape (n, 2). Kept for format compatibility,
            the solver only reads distance_matrix.
        distance_matrix: Numpy array of shape (n, n) of travel costs.
    """

    distance_type: str
    coordinates: np.ndarray
    distance_matrix: np.ndarray

    @property
    def n(self) -> int:
        return len(self.coordinates)

    def with_euclidean_distances(self) -> "TSPInstance":
        """Returns a copy whose distance matrix is derived from the coordinates."""
        return replace(self, distance_matrix=euclidean_distance_matrix(self.coordinates))


def euclidean_distance_matrix(coordinates: np.ndarray) -> np.ndarray:
    """Pairwise Euclidean distances between the rows of an (n, 2) coordinate array."""
    coordinates = np.asarray(coordinates, dtype=np.float64)
    return np.linalg.norm(coordinates[:, None, :] - coordinates[None, :, :], axis=-1)


def _take_floats(tokens: Iterator[str], count: int, what: str) -> List[float]:
    values = []
    for k in range(count):
        try:
            token = next(tokens)
        except StopIteration:
            raise InvalidInstanceError(
                f"expected {count} values for {what}, input ended after {k}"
            ) from None
        try:
            values.append(float(token))
        except ValueError:
            raise InvalidInstanceError(f"non-numeric value {token!r} in {what}") from None
    return values


def parse_instance(text: str) -> TSPInstance:
    """
    Parses an instance from whitespace-delimited text.

    Layout, in order:
        1. a distance-type header; "non" is followed by one more header token
        2. the city count n
        3. n coordinate pairs "x y"
        4. n rows of n costs, row-major
    """
    tokens = iter(text.split())

    try:
        distance_type = next(tokens)
    except StopIteration:
        raise InvalidInstanceError("empty input, expected a distance-type header") from None
    if distance_type == TWO_TOKEN_HEADER_PREFIX:
        try:
            distance_type = f"{distance_type} {next(tokens)}"
        except StopIteration:
            raise InvalidInstanceError("input ended inside the two-token header") from None

    try:
        raw_n = next(tokens)
    except StopIteration:
        raise InvalidInstanceError("input ended before the city count") from None
    try:
        n = int(raw_n)
    except ValueError:
        raise InvalidInstanceError(f"city count must be an integer, got {raw_n!r}") from None
    if n <= 0:
        raise InvalidInstanceError(f"city count must be positive, got {n}")

    coordinates = np.array(_take_floats(tokens, 2 * n, "coordinates"), dtype=np.float64).reshape(n, 2)
    distance_matrix = np.array(
        _take_floats(tokens, n * n, "the cost matrix"), dtype=np.float64
    ).reshape(n, n)

    trailing = sum(1 for _ in tokens)
    if trailing:
        logger.warning("Ignoring %d trailing token(s) after the cost matrix.", trailing)

    logger.info("Loaded %s instance with %d cities.", distance_type, n)
    return TSPInstance(
        distance_type=distance_type,
        coordinates=coordinates,
        distance_matrix=distance_matrix,
    )


def read_instance(stream: TextIO) -> TSPInstance:
    """Reads an instance from an open text stream such as sys.stdin."""
    return parse_instance(stream.read())


def load_instance(path: Union[str, Path]) -> TSPInstance:
    """Reads an instance from a file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Instance file not found at: {path}")
    with path.open("r", encoding="utf-8") as f:
        return read_instance(f)
