from __future__ import annotations

import random
from typing import Optional, Sequence

import numpy as np


class DeterministicRng:
    """Random source threaded through every constructor, spawn and mutation call.

    Scalar draws come from :class:`random.Random` and array draws from a numpy
    ``Generator``. Both streams are seeded from the same value; ``seed=None``
    gives an unseeded (run-to-run varying) source.
    """

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)
        self._array = np.random.default_rng(seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_bool(self, probability: float = 0.5) -> bool:
        return self._random.random() < probability

    def uniform_array(self, low: float, high: float, shape: Sequence[int]) -> np.ndarray:
        return self._array.uniform(low, high, size=tuple(shape))
