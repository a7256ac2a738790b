"""SE(2) operations used by the odometry motion model.

Poses are NumPy arrays [x, y, theta] of shape (3,). The motion model needs
the relative transform between two odometry readings, expressed in the frame
of the older reading, and a way to rotate that translation into each
particle's own heading frame.

Key functions:
    - se2_compose: Compose two SE(2) poses (p1 ⊕ p2)
    - se2_inverse: Invert an SE(2) pose (p⁻¹)
    - se2_relative: Relative pose p_from⁻¹ ⊕ p_to
    - rotate_2d: Rotate 2D vectors by one or many angles
"""

from typing import Union

import numpy as np

from vmcl.utils.angles import wrap_angle


def as_pose(p) -> np.ndarray:
    """
    Convert an array-like [x, y, theta] to a float pose array.

    Raises:
        ValueError: If the input does not have exactly 3 finite elements.
    """
    arr = np.asarray(p, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"pose must have shape (3,), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"pose must be finite, got {arr}")
    return arr


def se2_compose(p1: np.ndarray, p2: np.ndarray) -> np.ndarray:
    """
    Compose two SE(2) poses: p_result = p1 ⊕ p2.

    The pose p2 is expressed in the frame of p1; the result is p2 expressed in
    the frame p1 is expressed in:
        x = x1 + cos(θ1)·x2 - sin(θ1)·y2
        y = y1 + sin(θ1)·x2 + cos(θ1)·y2
        θ = θ1 + θ2  (wrapped to [-π, π])

    Args:
        p1: First pose [x, y, theta].
        p2: Second pose [x, y, theta], relative to p1.

    Returns:
        Composed pose as array of shape (3,).
    """
    p1 = as_pose(p1)
    p2 = as_pose(p2)

    x1, y1, th1 = p1
    x2, y2, th2 = p2
    c, s = np.cos(th1), np.sin(th1)

    return np.array(
        [x1 + c * x2 - s * y2, y1 + s * x2 + c * y2, wrap_angle(th1 + th2)],
        dtype=np.float64,
    )


def se2_inverse(p: np.ndarray) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose such that p ⊕ p⁻¹ = identity.

    Args:
        p: Pose [x, y, theta].

    Returns:
        Inverted pose as array of shape (3,).
    """
    x, y, th = as_pose(p)
    c, s = np.cos(th), np.sin(th)

    return np.array(
        [-(x * c + y * s), -(-x * s + y * c), wrap_angle(-th)],
        dtype=np.float64,
    )


def se2_relative(p_from: np.ndarray, p_to: np.ndarray) -> np.ndarray:
    """
    Compute relative pose between two poses given in the same frame.

    Used for odometry: the result is the motion from p_from to p_to expressed
    in the base frame at p_from.

    Args:
        p_from: Starting pose [x, y, theta].
        p_to: Target pose [x, y, theta].

    Returns:
        Relative pose [dx, dy, dtheta] of shape (3,).

    Examples:
        >>> p1 = np.array([0.0, 0.0, np.pi / 2])
        >>> p2 = np.array([0.0, 1.0, np.pi / 2])
        >>> se2_relative(p1, p2)  # 1 m straight ahead  # doctest: +SKIP
        array([1., 0., 0.])
    """
    return se2_compose(se2_inverse(p_from), p_to)


def rotate_2d(vectors: np.ndarray, angles: Union[float, np.ndarray]) -> np.ndarray:
    """
    Rotate 2D vectors counter-clockwise.

    Args:
        vectors: Vector(s) of shape (2,) or (N, 2).
        angles: Scalar angle or angles of shape (N,) matching the vectors.

    Returns:
        Rotated vectors, broadcast to shape (N, 2) when either input is batched.
    """
    v = np.asarray(vectors, dtype=np.float64)
    a = np.asarray(angles, dtype=np.float64)
    c, s = np.cos(a), np.sin(a)

    vx = v[..., 0]
    vy = v[..., 1]
    return np.stack([c * vx - s * vy, s * vx + c * vy], axis=-1)
