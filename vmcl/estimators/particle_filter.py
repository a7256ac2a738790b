"""
Vector-map particle filter (Monte Carlo localization).

This module drives the full localization loop for a robot with wheel
odometry and a 2D laser in a map made of line segments:

    odometry → Predict (motion model on every particle)
    laser    → Update (ray-casting likelihood on every particle), gated on
               the distance travelled since the previous update
             → Resample on every K-th update (low-variance)
    query    → weighted mean pose with circular heading mean

Each update overwrites the particle log-weights with the score of the
latest scan:
    ℓ⁽ⁱ⁾ ← γ · Σ_rays log p(z_k,r | x_k⁽ⁱ⁾)

Resampling resets them to zero.

Calls on one filter instance must be serialized by the caller. Predict,
Update and Resample replace the particle set by value instead of mutating
the arrays a previous get_particles() caller may hold.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

from vmcl.config import ParticleFilterConfig
from vmcl.estimators.particles import ParticleSet, PoseEstimate
from vmcl.estimators.resampling import (
    effective_sample_size,
    estimate_pose,
    normalize_log_weights,
    pose_spread,
    resample_particles,
)
from vmcl.geometry.index import SegmentIndex
from vmcl.geometry.se2 import as_pose
from vmcl.geometry.segments import SegmentLike
from vmcl.maps.vector_map import VectorMap, load_vector_map
from vmcl.models.measurement_models import LaserObservationModel, LaserScan
from vmcl.models.motion_models import OdometryMotionModel, odometry_delta
from vmcl.random_source import RandomSource
from vmcl.utils.angles import wrap_angle_array

logger = logging.getLogger(__name__)

MapInput = Union[str, Path, VectorMap, Iterable[SegmentLike]]


class FilterState(Enum):
    """Lifecycle of a particle filter instance."""

    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


class VectorMapParticleFilter:
    """
    Particle filter localizing a robot against a vector map.

    Attributes:
        config: Filter configuration.
        rng: Random source used for seeding, motion noise and resampling.
        index: Ray-casting index of the current map.
        motion_model: Odometry motion model.
        observation_model: Laser observation model.
        state: FilterState of the instance.
        last_odometry: Last odometry reading [x, y, θ], None before the first.
        distance_since_update: Translation applied since the last laser update.
        predicts_since_update: Motion updates applied since the last laser update.
        updates_since_resample: Laser updates since the last resampling.
        max_log_weight: Largest particle log-weight after the last update.
        update_count: Total laser updates since initialize().
        resample_count: Total resampling steps since initialize().

    Example:
        >>> pf = VectorMapParticleFilter(ParticleFilterConfig(num_particles=100), rng=0)
        >>> pf.initialize([(-5, -5, 5, -5), (5, -5, 5, 5), (5, 5, -5, 5), (-5, 5, -5, -5)],
        ...               [0.0, 0.0, 0.0])
        >>> pf.observe_odometry([0.0, 0.0, 0.0])
        False
        >>> pf.observe_odometry([0.5, 0.0, 0.0])
        True
        >>> pose = pf.get_pose()
    """

    def __init__(
        self,
        config: Optional[ParticleFilterConfig] = None,
        rng: Union[RandomSource, int, np.random.Generator, None] = None,
    ):
        """
        Initialize an (uninitialized) particle filter.

        Args:
            config: Filter configuration. Defaults to ParticleFilterConfig().
            rng: RandomSource, or a seed / np.random.Generator to build one.
        """
        self.config = config if config is not None else ParticleFilterConfig()
        self.rng = rng if isinstance(rng, RandomSource) else RandomSource(rng)

        self.index = SegmentIndex(axis_tolerance=self.config.axis_tolerance)
        self.motion_model = OdometryMotionModel(self.config.motion)
        self.observation_model = LaserObservationModel(self.config.observation)

        self.state = FilterState.UNINITIALIZED
        self.last_odometry: Optional[np.ndarray] = None
        self._particles = ParticleSet.empty()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.distance_since_update = 0.0
        self.predicts_since_update = 0
        self.updates_since_resample = 0
        self.max_log_weight = 0.0
        self.update_count = 0
        self.resample_count = 0

    @property
    def is_initialized(self) -> bool:
        return self.state is FilterState.TRACKING

    @property
    def num_particles(self) -> int:
        return len(self._particles)

    def initialize(self, vector_map: MapInput, pose) -> None:
        """
        Load a map and seed particles around a pose.

        Particles are drawn from independent Gaussians around the pose with
        the configured standard deviations, all with log-weight 0.

        Args:
            vector_map: Path to a vector map file, a VectorMap, or an iterable
                of segments.
            pose: Initial pose [x, y, θ] in the map frame.

        Raises:
            FileNotFoundError: If a map path does not exist.
            ValueError: If the map or the pose is malformed.
        """
        if isinstance(vector_map, (str, Path)):
            vector_map = load_vector_map(vector_map)
        segments = vector_map.segments if isinstance(vector_map, VectorMap) else vector_map
        pose = as_pose(pose)

        self.index.build(segments)

        c = self.config
        n = c.num_particles
        locations = np.column_stack([
            pose[0] + self.rng.gaussian(0.0, c.init_std_x, size=n),
            pose[1] + self.rng.gaussian(0.0, c.init_std_y, size=n),
        ])
        headings = wrap_angle_array(pose[2] + self.rng.gaussian(0.0, c.init_std_heading, size=n))

        self._particles = ParticleSet(locations, headings, np.zeros(n))
        self._reset_counters()
        self.state = FilterState.TRACKING

        logger.debug(
            "Initialized %d particles around (%.3f, %.3f, %.3f) on a map of %d segments",
            n, pose[0], pose[1], pose[2], len(self.index.segments),
        )

    def observe_odometry(self, odometry) -> bool:
        """
        Predict step: propagate particles by the odometry increment.

        The reading is always cached. Particles are left untouched when there
        is no previous reading, the filter is not initialized, or the
        increment is zero or larger than the configured sanity bounds.

        Args:
            odometry: Odometry reading [x, y, θ] in the odometry frame.

        Returns:
            True if the particles were propagated.
        """
        odometry = as_pose(odometry)
        previous = self.last_odometry
        self.last_odometry = odometry

        if previous is None or not self.is_initialized or len(self._particles) == 0:
            return False

        delta = odometry_delta(previous, odometry)
        if not self.motion_model.accepts(delta):
            if not delta.is_zero:
                logger.debug(
                    "Rejected odometry jump: translation %.3f m, rotation %.3f rad",
                    delta.translation, delta.rotation,
                )
            return False

        locations, headings = self.motion_model.sample(
            self._particles.locations, self._particles.headings, delta, self.rng
        )
        self._particles = ParticleSet(locations, headings, self._particles.log_weights.copy())

        self.distance_since_update += delta.translation
        self.predicts_since_update += 1
        return True

    def observe_laser(self, scan: LaserScan) -> bool:
        """
        Update step: weight every particle by the laser scan.

        Skipped unless the robot moved more than min_update_distance and
        min_predict_steps predictions were applied since the last update.
        The score of this scan replaces the previous particle log-weights.
        Every resample_interval-th update also resamples.

        Args:
            scan: Laser scan.

        Returns:
            True if the particles were re-weighted.
        """
        if not self.is_initialized or len(self._particles) == 0:
            return False

        c = self.config
        if (
            self.distance_since_update <= c.min_update_distance
            or self.predicts_since_update < c.min_predict_steps
        ):
            logger.debug(
                "Skipping laser update: moved %.3f m over %d predictions",
                self.distance_since_update, self.predicts_since_update,
            )
            return False

        particles = self._particles
        scores = np.array([
            self.observation_model.score(self.index, scan, pose)
            for pose in particles.poses()
        ])
        self._particles = ParticleSet(
            particles.locations.copy(), particles.headings.copy(), scores
        )

        finite = scores[np.isfinite(scores)]
        self.max_log_weight = float(np.max(finite)) if finite.size else float("-inf")

        self.distance_since_update = 0.0
        self.predicts_since_update = 0
        self.updates_since_resample += 1
        self.update_count += 1

        logger.debug(
            "Laser update %d: max log-weight %.3f, N_eff %.1f",
            self.update_count, self.max_log_weight, self.effective_sample_size(),
        )

        if self.updates_since_resample >= c.resample_interval:
            self.resample()
        return True

    def resample(self) -> bool:
        """
        Resample particles by weight (low-variance).

        No-op when the filter is not initialized, no update ran since the
        last resampling, or the total weight is zero.

        Returns:
            True if a new particle set was drawn.
        """
        if not self.is_initialized or self.updates_since_resample == 0:
            return False

        new_particles, resampled = resample_particles(self._particles, self.rng)
        self.updates_since_resample = 0
        if not resampled:
            logger.debug("Resampling skipped: total particle weight is zero")
            return False

        self._particles = new_particles
        self.max_log_weight = 0.0
        self.resample_count += 1
        logger.debug("Resampled %d particles", len(new_particles))
        return True

    def normalized_weights(self) -> np.ndarray:
        """Linear particle weights exp(ℓ − max ℓ), shape (N,)."""
        return normalize_log_weights(self._particles.log_weights)

    def effective_sample_size(self) -> float:
        """Effective sample size of the current weights."""
        if len(self._particles) == 0:
            return 0.0
        return effective_sample_size(self.normalized_weights())

    def get_pose(self) -> PoseEstimate:
        """
        Best estimate of the robot pose.

        Returns:
            Weighted mean pose, or the origin pose before initialize().
        """
        if not self.is_initialized:
            return PoseEstimate.origin()
        return estimate_pose(self._particles)

    def get_pose_covariance(self) -> np.ndarray:
        """Weighted 3×3 covariance of [x, y, θ] around get_pose()."""
        if not self.is_initialized:
            return np.zeros((3, 3))
        return pose_spread(self._particles, self.get_pose())

    def get_particles(self) -> ParticleSet:
        """Copy of the current particle set (for diagnostics and plotting)."""
        return self._particles.copy()
