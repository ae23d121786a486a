"""
SOG Decoder
Copyright (c) 2026 SOG Decoder contributors

This software is released under the MIT License.
For more information about the license, please see the LICENSE file.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple
import numpy as np
from ..utils.utility_functions import debug_print

LEVEL_FULL = 0
LEVEL_REDUCED = 1
LEVEL_MINIMAL = 2

MIN_RADIUS_PX = 0.5
FULL_DETAIL_SCORE = 0.75
REDUCED_DETAIL_SCORE = 0.35
RADIUS_NORM_PX = 32.0

# Splat extent used for the projected radius, in standard deviations
SIGMA_EXTENT = 3.0
MIN_DISTANCE = 1e-6


@dataclass(frozen=True)
class LodWeights:
    w1: float = 0.5   # inverse distance
    w2: float = 0.35  # projected radius
    w3: float = 0.15  # semantic priority


class LodInput(NamedTuple):
    distance: float
    projected_radius_px: float
    semantic_priority: float


class LodDecision(NamedTuple):
    level: int
    keep: bool
    score: float


class LodEngine:
    """
    Stateless per-splat level-of-detail policy.

        score = w1 / max(1, distance) + w2 * radius_px / 32 + w3 * priority

    First match wins: radius < 0.5px culls (level 2); score > 0.75 is full
    detail (level 0); score > 0.35 is reduced detail (level 1); anything else
    is kept at minimal detail (level 2).
    """

    def __init__(self, weights: LodWeights = None):
        self.weights = weights if weights is not None else LodWeights()

    def score(self, distance, projected_radius_px, semantic_priority):
        w = self.weights
        return w.w1 * (1.0 / max(1.0, distance)) + w.w2 * (projected_radius_px / RADIUS_NORM_PX) + w.w3 * semantic_priority

    def decide(self, lod_input: LodInput) -> LodDecision:
        distance, radius, priority = lod_input
        assert distance > 0 and math.isfinite(distance), f"distance must be finite and > 0, got {distance}"

        score = self.score(distance, radius, priority)

        if radius < MIN_RADIUS_PX:
            return LodDecision(LEVEL_MINIMAL, False, score)
        if score > FULL_DETAIL_SCORE:
            return LodDecision(LEVEL_FULL, True, score)
        if score > REDUCED_DETAIL_SCORE:
            return LodDecision(LEVEL_REDUCED, True, score)
        return LodDecision(LEVEL_MINIMAL, True, score)

    def decide_batch(self, distance, projected_radius_px, semantic_priority):
        """
        Vectorized decide() over aligned arrays (scalars broadcast).
        Returns (levels uint8, keep bool, score float64), element-for-element equal to decide().
        """
        distance = np.asarray(distance, dtype=np.float64)
        radius = np.asarray(projected_radius_px, dtype=np.float64)
        priority = np.asarray(semantic_priority, dtype=np.float64)
        assert np.all(distance > 0) and np.all(np.isfinite(distance)), "distance must be finite and > 0"

        w = self.weights
        score = w.w1 * (1.0 / np.maximum(1.0, distance)) + w.w2 * (radius / RADIUS_NORM_PX) + w.w3 * priority
        score, radius = np.broadcast_arrays(score, radius)

        culled = radius < MIN_RADIUS_PX
        levels = np.full(score.shape, LEVEL_MINIMAL, dtype=np.uint8)
        levels[(score > REDUCED_DETAIL_SCORE) & ~culled] = LEVEL_REDUCED
        levels[(score > FULL_DETAIL_SCORE) & ~culled] = LEVEL_FULL
        keep = ~culled

        return levels, keep, np.array(score)

    def apply(self, chunk, distance, projected_radius_px, semantic_priority):
        """
        Runs the policy for one chunk's splats, stores the levels in chunk.lod_levels
        and returns the keep mask (aligned with the chunk's splat range).
        """
        levels, keep, score = self.decide_batch(distance, projected_radius_px, semantic_priority)
        if levels.shape != (chunk.count,):
            raise ValueError(f"Expected {chunk.count} LOD inputs for chunk {chunk.chunk_id}, got shape {levels.shape}")
        chunk.lod_levels[:] = levels
        debug_print(f"[DEBUG] LOD chunk {chunk.chunk_id}: levels {np.bincount(levels, minlength=3).tolist()}, kept {int(keep.sum())}/{chunk.count}")
        return keep


def focal_length_px(fov_deg, viewport_height):
    """Focal length in pixels for a vertical field of view."""
    return 0.5 * viewport_height / math.tan(math.radians(fov_deg) / 2.0)


def compute_view_scalars(positions, covariances, camera_position, focal_px):
    """
    Per-splat distance to the camera and projected screen radius in pixels.

    The radius uses the splat's largest standard deviation (square root of the
    largest covariance eigenvalue) scaled to SIGMA_EXTENT sigmas, projected with
    a pinhole model. Distances are floored at MIN_DISTANCE.
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    cov = np.asarray(covariances, dtype=np.float64).reshape(-1, 6)

    distance = np.linalg.norm(positions - np.asarray(camera_position, dtype=np.float64)[None, :], axis=1)
    distance = np.maximum(distance, MIN_DISTANCE)

    # xx, xy, xz, yy, yz, zz -> symmetric 3x3
    matrices = np.empty((len(cov), 3, 3), dtype=np.float64)
    matrices[:, 0, 0] = cov[:, 0]
    matrices[:, 0, 1] = matrices[:, 1, 0] = cov[:, 1]
    matrices[:, 0, 2] = matrices[:, 2, 0] = cov[:, 2]
    matrices[:, 1, 1] = cov[:, 3]
    matrices[:, 1, 2] = matrices[:, 2, 1] = cov[:, 4]
    matrices[:, 2, 2] = cov[:, 5]

    if len(cov):
        max_eig = np.linalg.eigvalsh(matrices)[:, -1]
    else:
        max_eig = np.zeros(0)
    sigma = np.sqrt(np.maximum(max_eig, 0.0))

    radius_px = focal_px * SIGMA_EXTENT * sigma / distance
    return distance, radius_px
