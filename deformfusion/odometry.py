"""Small rigid-motion helpers shared by the odometry estimators."""

from __future__ import annotations

import sys
from typing import Tuple

import numpy as np
from numpy.typing import ArrayLike

_DBL_EPSILON = sys.float_info.epsilon


def rodrigues(src: ArrayLike) -> np.ndarray:
    """Rotation matrix for the axis-angle vector ``src``.

    Vectors shorter than machine epsilon give the identity.
    """
    vector = np.asarray(src, dtype=np.float64).reshape(-1)
    if vector.shape != (3,):
        raise ValueError(f"an axis-angle vector has 3 components, got {vector.size}")

    theta = float(np.linalg.norm(vector))
    if theta < _DBL_EPSILON:
        return np.eye(3)

    rx, ry, rz = vector / theta
    c = np.cos(theta)
    s = np.sin(theta)
    axis = np.array([rx, ry, rz])
    outer = np.outer(axis, axis)
    skew = np.array(
        [
            [0.0, -rz, ry],
            [rz, 0.0, -rx],
            [-ry, rx, 0.0],
        ]
    )
    return c * np.eye(3) + (1.0 - c) * outer + s * skew


def compute_update_se3(
    result_rt: ArrayLike, result: ArrayLike
) -> Tuple[np.ndarray, np.ndarray]:
    """Left-compose the infinitesimal motion ``result`` onto ``result_rt``.

    ``result`` holds a translation followed by an axis-angle rotation. The
    returned pair is the updated 4x4 transform (double precision) and the
    same transform in single precision, as used for the odometry estimate.
    """
    accumulated = np.asarray(result_rt, dtype=np.float64)
    if accumulated.shape != (4, 4):
        raise ValueError(f"the accumulated transform must be 4x4, got {accumulated.shape}")
    twist = np.asarray(result, dtype=np.float64).reshape(-1)
    if twist.shape != (6,):
        raise ValueError(f"an update has 6 components, got {twist.size}")

    step = np.eye(4)
    step[:3, :3] = rodrigues(twist[3:6])
    step[:3, 3] = twist[0:3]

    updated = step @ accumulated

    odom = np.eye(4, dtype=np.float32)
    odom[:3, :3] = updated[:3, :3].astype(np.float32)
    odom[:3, 3] = updated[:3, 3].astype(np.float32)
    return updated, odom