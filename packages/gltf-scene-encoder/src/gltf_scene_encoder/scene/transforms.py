# SPDX-License-Identifier: MIT
"""Transform and quaternion utilities."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

Quaternion = tuple[float, float, float, float]

# Below this angle between two quaternions slerp degenerates to lerp
SLERP_EPSILON = 1e-6


@dataclass
class Transform:
    """Decomposed transform with translation, rotation, and scale."""

    translation: tuple[float, float, float]
    rotation: Quaternion  # Quaternion (x, y, z, w)
    scale: tuple[float, float, float]

    @classmethod
    def identity(cls) -> Transform:
        """Create an identity transform."""
        return cls(
            translation=(0.0, 0.0, 0.0),
            rotation=(0.0, 0.0, 0.0, 1.0),
            scale=(1.0, 1.0, 1.0),
        )

    def to_matrix(self) -> np.ndarray:
        """Convert to a 4x4 transformation matrix.

        Points are scaled first, then rotated, then translated.
        """
        rot = quaternion_to_matrix(self.rotation)
        scale_mat = np.diag([self.scale[0], self.scale[1], self.scale[2], 1.0])

        trans_mat = np.eye(4, dtype=np.float64)
        trans_mat[0, 3] = self.translation[0]
        trans_mat[1, 3] = self.translation[1]
        trans_mat[2, 3] = self.translation[2]

        return trans_mat @ rot @ scale_mat


def parse_transform_matrix(matrix_data: list[float] | np.ndarray) -> np.ndarray:
    """Parse a column-major 4x4 matrix as stored by glTF.

    Args:
        matrix_data: 16 floats in column-major order

    Returns:
        4x4 numpy array
    """
    if isinstance(matrix_data, np.ndarray):
        data = matrix_data.flatten()
    else:
        data = matrix_data

    if len(data) != 16:
        raise ValueError(f"Expected 16 matrix elements, got {len(data)}")

    # Column-major to row-major conversion
    return np.array(data, dtype=np.float64).reshape(4, 4).T


def quaternion_to_matrix(quat: Quaternion) -> np.ndarray:
    """Build a 4x4 rotation matrix from a (x, y, z, w) quaternion."""
    x, y, z, w = quat
    return np.array(
        [
            [1 - 2 * y * y - 2 * z * z, 2 * x * y - 2 * z * w, 2 * x * z + 2 * y * w, 0],
            [2 * x * y + 2 * z * w, 1 - 2 * x * x - 2 * z * z, 2 * y * z - 2 * x * w, 0],
            [2 * x * z - 2 * y * w, 2 * y * z + 2 * x * w, 1 - 2 * x * x - 2 * y * y, 0],
            [0, 0, 0, 1],
        ],
        dtype=np.float64,
    )


def quaternion_normalize(quat: Quaternion) -> Quaternion:
    """Scale a quaternion to unit length. The zero quaternion maps to identity."""
    norm = math.sqrt(sum(c * c for c in quat))
    if norm < SLERP_EPSILON:
        return (0.0, 0.0, 0.0, 1.0)
    return tuple(float(c / norm) for c in quat)


def quaternion_slerp(q0: Quaternion, q1: Quaternion, f: float) -> Quaternion:
    """Spherical linear interpolation between two unit quaternions.

    Interpolates along the shorter arc and returns a normalized quaternion.

    Args:
        q0: Start quaternion (x, y, z, w)
        q1: End quaternion (x, y, z, w)
        f: Interpolation factor in [0, 1]

    Returns:
        Interpolated unit quaternion (x, y, z, w)
    """
    if f <= 0.0:
        return quaternion_normalize(q0)
    if f >= 1.0:
        return quaternion_normalize(q1)

    a = np.asarray(q0, dtype=np.float64)
    b = np.asarray(q1, dtype=np.float64)

    cos_omega = float(np.dot(a, b))
    if cos_omega < 0.0:
        b = -b
        cos_omega = -cos_omega

    if cos_omega > 1.0 - SLERP_EPSILON:
        result = a + (b - a) * f
    else:
        omega = math.acos(min(cos_omega, 1.0))
        sin_omega = math.sin(omega)
        result = (math.sin((1.0 - f) * omega) * a + math.sin(f * omega) * b) / sin_omega

    return quaternion_normalize(tuple(float(c) for c in result))
