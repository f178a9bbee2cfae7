import numpy as np
import pytest


# The small instance shipped with the reference program. Note the matrix is
# not symmetric: cost[1][2] = 2 but cost[2][1] = 1.
EXAMPLE_TEXT = """\
none
3
0 0
1 1
1 0
0 1 1
1 0 2
1 1 0
"""

EXAMPLE_MATRIX = [
    [0, 1, 1],
    [1, 0, 2],
    [1, 1, 0],
]

# Four cities on a ring: 0-1-2-3-0 costs 1 per edge, the diagonals cost 5.
RING_MATRIX = [
    [0, 1, 5, 1],
    [1, 0, 1, 5],
    [5, 1, 0, 1],
    [1, 5, 1, 0],
]


class ScriptedRandom:
    """Random source that replays fixed draws and records the call order."""

    def __init__(self, positions=(), uniforms=()):
        self.positions = list(positions)
        self.uniforms = list(uniforms)
        self.calls = []

    def randint(self, a, b):
        self.calls.append("randint")
        value = self.positions.pop(0)
        assert a <= value <= b
        return value

    def random(self):
        self.calls.append("random")
        return self.uniforms.pop(0)


@pytest.fixture
def example_matrix():
    return np.array(EXAMPLE_MATRIX, dtype=float)


@pytest.fixture
def ring_matrix():
    return np.array(RING_MATRIX, dtype=float)


@pytest.fixture
def random_matrix():
    rng = np.random.default_rng(7)
    points = rng.uniform(0, 100, size=(10, 2))
    return np.linalg.norm(points[:, None, :] - points[None, :, :], axis=-1)


@pytest.fixture
def example_file(tmp_path):
    path = tmp_path / "example.txt"
    path.write_text(EXAMPLE_TEXT)
    return path


@pytest.fixture
def scripted_random():
    return ScriptedRandom


@pytest.fixture
def example_text():
    return EXAMPLE_TEXT
