"""Shared RANSAC helpers: iteration budget, minimal-set sampling and results."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


@dataclass
class RansacResult:
    """Outcome of a batch of RANSAC iterations.

    ``pose`` is ``None`` when no model was accepted. ``no_more`` tells that the
    iteration budget is spent (or there were too few correspondences).
    """

    pose: Optional[np.ndarray] = None
    inliers: list[bool] = field(default_factory=list)
    n_inliers: int = 0
    no_more: bool = False

    @property
    def found(self) -> bool:
        return self.pose is not None


def _iterations_for(probability: float, epsilon: float, max_iterations: int) -> int:
    all_inliers = epsilon**3
    if all_inliers >= 1.0:
        return 0
    if all_inliers <= 0.0 or probability >= 1.0:
        return max_iterations
    if probability <= 0.0:
        return 0
    return math.ceil(math.log(1.0 - probability) / math.log(1.0 - all_inliers))


def ransac_iterations(
    probability: float,
    epsilon: float,
    min_inliers: int,
    n: int,
    max_iterations: int,
) -> int:
    """Number of iterations needed to hit an all-inlier minimal set of three.

    The result is clamped to ``[1, max_iterations]``; a single iteration is
    used when every correspondence must be an inlier.
    """
    if min_inliers == n:
        needed = 1
    else:
        needed = _iterations_for(probability, epsilon, max_iterations)
    return max(1, min(needed, max_iterations))


def draw_min_set(
    indices: Sequence[T], size: int, rng: Optional[random.Random] = None
) -> list[T]:
    """Draw ``size`` distinct entries of ``indices`` uniformly at random."""
    if size < 0:
        raise ValueError("size must not be negative")
    available = list(indices)
    if size > len(available):
        raise ValueError(
            f"cannot draw {size} elements from a pool of {len(available)}"
        )
    generator = rng if rng is not None else random.Random()
    chosen: list[T] = []
    for _ in range(size):
        k = generator.randint(0, len(available) - 1)
        chosen.append(available[k])
        available[k] = available[-1]
        available.pop()
    return chosen