"""
Odometry motion model for particle propagation.

Given two consecutive odometry readings, the relative motion
(Δx, Δy, Δθ) is expressed in the base frame of the older reading. Every
particle applies that same relative motion in its own frame, perturbed by
zero-mean Gaussian noise whose standard deviation grows linearly with the
size of the motion:

    σ_t = k1·|Δt| + k2·|Δθ|        (each translation axis)
    σ_θ = k3·|Δt| + k4·|Δθ|

    location ← location + R(θ_particle) · [Δx + ε_x, Δy + ε_y]
    heading  ← heading + Δθ + ε_θ

References:
    Thrun, Burgard, Fox - Probabilistic Robotics, odometry motion model.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from vmcl.config import MotionModelConfig
from vmcl.geometry.se2 import rotate_2d, se2_relative
from vmcl.random_source import RandomSource
from vmcl.utils.angles import wrap_angle_array

# Identical readings leave ~1e-16 residue after se2_relative
ZERO_MOTION_EPS = 1e-12


@dataclass(frozen=True)
class OdometryDelta:
    """
    Relative motion between two odometry readings.

    Attributes:
        dx: Forward translation in the previous base frame (meters).
        dy: Leftward translation in the previous base frame (meters).
        dtheta: Rotation (radians), wrapped to [-π, π].
    """

    dx: float
    dy: float
    dtheta: float

    @property
    def translation(self) -> float:
        """Magnitude of the translation (meters)."""
        return float(np.hypot(self.dx, self.dy))

    @property
    def rotation(self) -> float:
        """Magnitude of the rotation (radians)."""
        return abs(self.dtheta)

    @property
    def is_zero(self) -> bool:
        """True when the increment is below round-off of the SE(2) algebra."""
        return self.translation <= ZERO_MOTION_EPS and self.rotation <= ZERO_MOTION_EPS


def odometry_delta(prev_odom: np.ndarray, cur_odom: np.ndarray) -> OdometryDelta:
    """
    Relative transform between two odometry readings.

    Args:
        prev_odom: Previous reading [x, y, θ] in the odometry frame.
        cur_odom: Current reading [x, y, θ] in the odometry frame.

    Returns:
        OdometryDelta expressed in the base frame at prev_odom.

    Example:
        >>> d = odometry_delta(np.array([1.0, 1.0, np.pi / 2]),
        ...                    np.array([1.0, 2.0, np.pi / 2]))
        >>> round(d.dx, 6), round(d.dy, 6), round(d.dtheta, 6)
        (1.0, 0.0, 0.0)
    """
    rel = se2_relative(prev_odom, cur_odom)
    return OdometryDelta(dx=float(rel[0]), dy=float(rel[1]), dtheta=float(rel[2]))


class OdometryMotionModel:
    """
    Sampling odometry motion model.

    Attributes:
        config: Noise coefficients and sanity bounds.

    Example:
        >>> model = OdometryMotionModel(MotionModelConfig())
        >>> delta = OdometryDelta(0.1, 0.0, 0.0)
        >>> locs, heads = model.sample(np.zeros((5, 2)), np.zeros(5), delta,
        ...                            RandomSource(0))
    """

    def __init__(self, config: MotionModelConfig = None):
        self.config = config if config is not None else MotionModelConfig()

    def accepts(self, delta: OdometryDelta) -> bool:
        """
        Whether an odometry increment should be applied to the particles.

        Zero motion and jumps beyond the configured bounds (e.g. after the
        odometry source was reset) are rejected.
        """
        if delta.is_zero:
            return False
        if delta.translation > self.config.max_translation:
            return False
        if delta.rotation > self.config.max_rotation:
            return False
        return True

    def noise_std(self, delta: OdometryDelta) -> Tuple[float, float]:
        """
        Noise standard deviations for an increment.

        Returns:
            Tuple of (translation_std, rotation_std).
        """
        c = self.config
        trans_std = c.k1 * delta.translation + c.k2 * delta.rotation
        rot_std = c.k3 * delta.translation + c.k4 * delta.rotation
        return trans_std, rot_std

    def sample(
        self,
        locations: np.ndarray,
        headings: np.ndarray,
        delta: OdometryDelta,
        rng: RandomSource,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Propagate particles through the motion model.

        Each particle draws its own noise; inputs are not modified.

        Args:
            locations: Particle positions, shape (N, 2).
            headings: Particle headings, shape (N,).
            delta: Odometry increment in the previous base frame.
            rng: Random source for the Gaussian draws.

        Returns:
            Tuple of (new_locations (N, 2), new_headings (N,)).
        """
        locations = np.asarray(locations, dtype=np.float64)
        headings = np.asarray(headings, dtype=np.float64)
        n = len(headings)
        if locations.shape != (n, 2):
            raise ValueError(
                f"locations shape {locations.shape} does not match {n} headings"
            )

        trans_std, rot_std = self.noise_std(delta)
        noisy_dx = delta.dx + rng.gaussian(0.0, trans_std, size=n)
        noisy_dy = delta.dy + rng.gaussian(0.0, trans_std, size=n)
        noisy_dtheta = delta.dtheta + rng.gaussian(0.0, rot_std, size=n)

        # Previous base frame -> each particle's own heading frame
        step = rotate_2d(np.column_stack([noisy_dx, noisy_dy]), headings)

        new_locations = locations + step
        new_headings = wrap_angle_array(headings + noisy_dtheta)
        return new_locations, new_headings
