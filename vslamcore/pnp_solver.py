"""RANSAC camera pose estimation from 3D-2D matches using EPnP."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from vslamcore.epnp import EPnP
from vslamcore.ransac import RansacResult, draw_min_set, ransac_iterations


@dataclass(frozen=True)
class PnPCorrespondence:
    """A map point matched to an undistorted keypoint.

    ``index`` is the position of the match in the full match list, ``sigma2``
    the squared scale-level sigma of the keypoint.
    """

    index: int
    point_world: tuple[float, float, float]
    point_image: tuple[float, float]
    sigma2: float = 1.0


def _pose_matrix(rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    pose = np.eye(4, dtype=np.float32)
    pose[:3, :3] = rotation
    pose[:3, 3] = translation
    return pose


class PnPSolver:
    """Camera pose from 3D-2D correspondences with RANSAC over EPnP."""

    def __init__(
        self,
        correspondences: Iterable[PnPCorrespondence],
        n_matches: int,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        rng: Optional[random.Random] = None,
    ) -> None:
        items = list(correspondences)
        for item in items:
            if not 0 <= item.index < n_matches:
                raise ValueError(
                    f"correspondence index {item.index} outside 0..{n_matches - 1}"
                )
        self.n_matches = n_matches
        self._indices = [item.index for item in items]
        self._pws = np.array([item.point_world for item in items], dtype=float).reshape(-1, 3)
        self._us = np.array([item.point_image for item in items], dtype=float).reshape(-1, 2)
        self._sigma2 = np.array([item.sigma2 for item in items], dtype=float)
        self._n = len(items)
        self._epnp = EPnP(fx, fy, cx, cy)
        self._rng = rng if rng is not None else random.Random()

        self._iterations = 0
        self._best_inliers = np.zeros(self._n, dtype=bool)
        self._best_n = 0
        self._best_pose: Optional[np.ndarray] = None

        self.set_ransac_parameters()

    def set_ransac_parameters(
        self,
        probability: float = 0.99,
        min_inliers: int = 8,
        max_iterations: int = 300,
        min_set: int = 4,
        epsilon: float = 0.4,
        th2: float = 5.991,
    ) -> None:
        """Configure RANSAC, adjusting the limits to the number of correspondences."""
        self.probability = probability
        self.min_set = min_set
        n = self._n

        required = max(int(n * epsilon), min_inliers, min_set)
        self.min_inliers = required
        if n > 0 and epsilon < required / n:
            epsilon = required / n
        self.epsilon = epsilon

        self.max_iterations = ransac_iterations(
            probability, epsilon, required, n, max_iterations
        )
        self._max_error = self._sigma2 * th2

    def iterate(self, n_iterations: int) -> RansacResult:
        """Run RANSAC iterations until a refined pose is found or the budget is spent."""
        result = RansacResult()
        if self._n < self.min_inliers:
            result.no_more = True
            return result

        current = 0
        while self._iterations < self.max_iterations or current < n_iterations:
            current += 1
            self._iterations += 1

            sample = draw_min_set(range(self._n), self.min_set, self._rng)
            estimate = self._estimate(sample)
            if estimate is None:
                continue
            inliers = self._check_inliers(*estimate)
            n_inliers = int(inliers.sum())

            if n_inliers >= self.min_inliers:
                if n_inliers > self._best_n:
                    self._best_inliers = inliers
                    self._best_n = n_inliers
                    self._best_pose = _pose_matrix(*estimate)

                refined = self._refine()
                if refined is not None:
                    pose, mask = refined
                    return RansacResult(
                        pose=pose,
                        inliers=self._to_matches(mask),
                        n_inliers=int(mask.sum()),
                        no_more=False,
                    )

        if self._iterations >= self.max_iterations:
            result.no_more = True
            if self._best_n >= self.min_inliers and self._best_pose is not None:
                result.pose = self._best_pose.copy()
                result.inliers = self._to_matches(self._best_inliers)
                result.n_inliers = self._best_n
        return result

    def find(self) -> RansacResult:
        """Run the full RANSAC budget."""
        return self.iterate(self.max_iterations)

    def _estimate(self, indices) -> Optional[tuple[np.ndarray, np.ndarray]]:
        idx = list(indices)
        try:
            rotation, translation, _ = self._epnp.compute_pose(
                self._pws[idx], self._us[idx]
            )
        except np.linalg.LinAlgError:
            return None
        return rotation, translation

    def _refine(self) -> Optional[tuple[np.ndarray, np.ndarray]]:
        indices = np.flatnonzero(self._best_inliers)
        if indices.size == 0:
            return None
        estimate = self._estimate(indices)
        if estimate is None:
            return None
        inliers = self._check_inliers(*estimate)
        if int(inliers.sum()) > self.min_inliers:
            return _pose_matrix(*estimate), inliers
        return None

    def _check_inliers(self, rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            pc = self._pws @ rotation.T + translation
            inv_z = 1.0 / pc[:, 2]
            ue = self._epnp.uc + self._epnp.fu * pc[:, 0] * inv_z
            ve = self._epnp.vc + self._epnp.fv * pc[:, 1] * inv_z
            error2 = (self._us[:, 0] - ue) ** 2 + (self._us[:, 1] - ve) ** 2
            return error2 < self._max_error

    def _to_matches(self, mask: np.ndarray) -> list[bool]:
        flags = [False] * self.n_matches
        for i in np.flatnonzero(mask):
            flags[self._indices[i]] = True
        return flags