"""
Angle wrapping and averaging utilities.

Provides functions for handling headings and ensuring they remain within
proper bounds ([-π, π] for radians).

Critical for:
- Particle headings after noisy rotation increments
- Relative odometry rotations between consecutive readings
- Averaging headings of a particle cloud near ±180°
"""

from typing import Optional, Union

import numpy as np


def wrap_angle(angle: float) -> float:
    """
    Wrap angle to [-π, π] range.

    Args:
        angle: Angle in radians (can be any value)

    Returns:
        Wrapped angle in range [-π, π]

    Example:
        >>> wrap_angle(3.5 * np.pi)  # 630° -> -90°
        -1.5707963267948966
        >>> wrap_angle(-3.5 * np.pi)  # -630° -> 90°
        1.5707963267948966
    """
    # Use atan2 trick for robust wrapping
    return float(np.arctan2(np.sin(angle), np.cos(angle)))


def wrap_angle_array(angles: np.ndarray) -> np.ndarray:
    """
    Wrap array of angles to [-π, π] range.

    Vectorized version of wrap_angle(), used on whole particle sets.

    Args:
        angles: Array of angles in radians

    Returns:
        Array of wrapped angles in range [-π, π]
    """
    angles = np.asarray(angles, dtype=float)
    return np.arctan2(np.sin(angles), np.cos(angles))


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Compute the shortest angular difference between two angles.

    Returns angle1 - angle2, wrapped to [-π, π].

    Args:
        angle1: First angle in radians
        angle2: Second angle in radians

    Returns:
        Shortest signed difference angle1 - angle2 in [-π, π]

    Example:
        >>> angle_diff(np.pi - 0.1, -np.pi + 0.1)  # Nearly opposite
        -0.2
        >>> angle_diff(0.1, -0.1)
        0.2

    Notes:
        Headings near ±180° would otherwise produce huge differences:
        +179° - (-179°) = 358° instead of -2°.
    """
    if isinstance(angle1, np.ndarray) or isinstance(angle2, np.ndarray):
        return wrap_angle_array(np.asarray(angle1) - np.asarray(angle2))
    return wrap_angle(angle1 - angle2)


def circular_mean(angles: np.ndarray, weights: Optional[np.ndarray] = None) -> float:
    """
    Weighted mean of angles on the unit circle.

    Averages the (sin, cos) pairs and converts back with atan2, so that
    headings on either side of ±π average to ±π instead of 0.

    Args:
        angles: Angles in radians, shape (N,).
        weights: Optional non-negative weights, shape (N,). Uniform if None.

    Returns:
        Mean angle in [-π, π]. Returns 0.0 for an empty input or when the
        weighted (sin, cos) sum vanishes.

    Example:
        >>> circular_mean(np.deg2rad([179.0, -179.0]))  # doctest: +SKIP
        3.141592653589793
    """
    angles = np.asarray(angles, dtype=float)
    if angles.size == 0:
        return 0.0
    if weights is None:
        weights = np.ones_like(angles)
    weights = np.asarray(weights, dtype=float)
    if weights.shape != angles.shape:
        raise ValueError(
            f"weights shape {weights.shape} must match angles shape {angles.shape}"
        )

    s = float(np.sum(weights * np.sin(angles)))
    c = float(np.sum(weights * np.cos(angles)))
    if s == 0.0 and c == 0.0:
        return 0.0
    return float(np.arctan2(s, c))
