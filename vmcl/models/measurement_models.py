"""
Laser range-finder observation model.

For a hypothesized robot pose the model predicts what the laser should see
by casting rays against the vector map, then scores a real scan against that
prediction with a robust Gaussian log-likelihood.

Prediction:
    The laser sits `laser_offset` meters ahead of the base along the heading.
    Only every `ray_stride`-th physical ray is cast. Each ray spans
    [range_min, range_max]; rays that hit nothing report range_max.

Scoring (per cast ray, r = measured − predicted):
    measured outside [range_min, range_max]  → 0
    r < −d_short                             → −½·d_short²/σ²
    r > +d_long                              → −½·d_long²/σ²
    otherwise                                → −½·r²/σ²

    log w = γ · Σ rays

The capped branches bound the penalty of a single ray, so an unmapped
obstacle or a missed return cannot wipe out an otherwise good hypothesis.
"""

from dataclasses import dataclass

import numpy as np

from vmcl.config import ObservationModelConfig
from vmcl.geometry.index import SegmentIndex
from vmcl.geometry.se2 import as_pose


def ray_bearings(num_ranges: int, angle_min: float, angle_max: float) -> np.ndarray:
    """
    Bearings of the physical rays of a scan, relative to the laser heading.

    Ray k has bearing angle_min + k·(angle_max − angle_min)/(num_ranges − 1),
    so the first and last rays sit exactly on the scan limits.
    """
    if num_ranges < 1:
        return np.zeros(0)
    if num_ranges == 1:
        return np.array([float(angle_min)])
    return np.linspace(angle_min, angle_max, num_ranges)


@dataclass(frozen=True, eq=False)
class LaserScan:
    """
    One laser scan as delivered by the sensor driver.

    Attributes:
        ranges: Measured ranges (meters), one per fixed angular step.
        range_min: Minimum valid range (meters).
        range_max: Maximum valid range (meters).
        angle_min: Bearing of the first ray (radians, laser frame).
        angle_max: Bearing of the last ray (radians, laser frame).
    """

    ranges: np.ndarray
    range_min: float
    range_max: float
    angle_min: float
    angle_max: float

    def __post_init__(self) -> None:
        ranges = np.asarray(self.ranges, dtype=np.float64)
        if ranges.ndim != 1:
            raise ValueError(f"ranges must be 1D, got shape {ranges.shape}")
        object.__setattr__(self, "ranges", ranges)

        if not 0 <= self.range_min < self.range_max:
            raise ValueError(
                f"Need 0 <= range_min < range_max, got {self.range_min}, {self.range_max}"
            )
        if not self.angle_min <= self.angle_max:
            raise ValueError(
                f"angle_min must be <= angle_max, got {self.angle_min}, {self.angle_max}"
            )

    @property
    def num_ranges(self) -> int:
        return len(self.ranges)

    def bearings(self) -> np.ndarray:
        """Bearing of every physical ray (radians, laser frame)."""
        return ray_bearings(self.num_ranges, self.angle_min, self.angle_max)


@dataclass(frozen=True, eq=False)
class PredictedScan:
    """
    Expected laser returns for a hypothesized pose.

    Attributes:
        origin: Laser position [x, y] in the map frame.
        indices: Indices of the cast rays into the physical ray array, shape (K,).
        bearings: Ray bearings in the laser frame, shape (K,).
        endpoints: Expected return points in the map frame, shape (K, 2).
        ranges: Expected ranges from the laser origin, shape (K,).
        hits: Whether each ray hit the map (False: max-range fallback), shape (K,).
    """

    origin: np.ndarray
    indices: np.ndarray
    bearings: np.ndarray
    endpoints: np.ndarray
    ranges: np.ndarray
    hits: np.ndarray

    def __len__(self) -> int:
        return len(self.ranges)


class LaserObservationModel:
    """
    Ray-casting laser likelihood model.

    Attributes:
        config: Laser geometry and likelihood parameters.

    Example:
        >>> index = SegmentIndex()
        >>> index.build([(5.0, -5.0, 5.0, 5.0)])
        >>> model = LaserObservationModel(ObservationModelConfig(laser_offset=0.0, ray_stride=1))
        >>> pred = model.predicted_scan(index, [0.0, 0.0, 0.0], 3, 0.1, 10.0, -0.1, 0.1)
        >>> float(pred.ranges[1])  # doctest: +SKIP
        5.0
    """

    def __init__(self, config: ObservationModelConfig = None):
        self.config = config if config is not None else ObservationModelConfig()

    def sensor_origin(self, pose) -> np.ndarray:
        """Laser position in the map frame for a base pose [x, y, θ]."""
        x, y, theta = as_pose(pose)
        offset = self.config.laser_offset
        return np.array([x + offset * np.cos(theta), y + offset * np.sin(theta)])

    def ray_indices(self, num_ranges: int) -> np.ndarray:
        """Indices of the physical rays that are cast."""
        return np.arange(0, max(num_ranges, 0), self.config.ray_stride, dtype=np.intp)

    def predicted_scan(
        self,
        index: SegmentIndex,
        pose,
        num_ranges: int,
        range_min: float,
        range_max: float,
        angle_min: float,
        angle_max: float,
    ) -> PredictedScan:
        """
        Predict the laser returns at a pose by ray casting.

        Pure function of the pose and the map.

        Args:
            index: Built segment index of the map.
            pose: Robot base pose [x, y, θ] in the map frame.
            num_ranges: Number of physical rays of the scan.
            range_min: Minimum laser range (meters).
            range_max: Maximum laser range (meters).
            angle_min: Bearing of the first physical ray (radians).
            angle_max: Bearing of the last physical ray (radians).

        Returns:
            PredictedScan for the subsampled rays.
        """
        pose = as_pose(pose)
        origin = self.sensor_origin(pose)

        indices = self.ray_indices(num_ranges)
        bearings = ray_bearings(num_ranges, angle_min, angle_max)[indices]
        world_angles = pose[2] + bearings
        directions = np.column_stack([np.cos(world_angles), np.sin(world_angles)])

        k = len(indices)
        endpoints = np.empty((k, 2))
        hits = np.zeros(k, dtype=bool)
        for i in range(k):
            start = origin + range_min * directions[i]
            end = origin + range_max * directions[i]
            result = index.nearest_intersection(start, end)
            endpoints[i] = result.point
            hits[i] = result.hit

        ranges = np.hypot(endpoints[:, 0] - origin[0], endpoints[:, 1] - origin[1])
        return PredictedScan(
            origin=origin,
            indices=indices,
            bearings=bearings,
            endpoints=endpoints,
            ranges=ranges,
            hits=hits,
        )

    def ray_log_likelihoods(
        self,
        measured: np.ndarray,
        predicted: np.ndarray,
        range_min: float,
        range_max: float,
    ) -> np.ndarray:
        """
        Per-ray log-likelihood contributions (before the γ gain).

        Args:
            measured: Measured ranges of the cast rays, shape (K,).
            predicted: Predicted ranges of the same rays, shape (K,).
            range_min: Minimum valid range.
            range_max: Maximum valid range.

        Returns:
            Contributions, shape (K,). All values are <= 0.
        """
        c = self.config
        measured = np.asarray(measured, dtype=np.float64)
        predicted = np.asarray(predicted, dtype=np.float64)
        if measured.shape != predicted.shape:
            raise ValueError(
                f"measured shape {measured.shape} != predicted shape {predicted.shape}"
            )

        valid = np.isfinite(measured) & (measured >= range_min) & (measured <= range_max)
        residual = np.where(valid, measured - predicted, 0.0)

        sq = residual**2
        sq = np.where(residual < -c.d_short, c.d_short**2, sq)
        sq = np.where(residual > c.d_long, c.d_long**2, sq)

        return np.where(valid, -0.5 * sq / c.sigma**2, 0.0)

    def log_likelihood(self, scan: LaserScan, predicted: PredictedScan) -> float:
        """
        Log-likelihood of a scan given the predicted scan of a pose.

        The raw range array is subsampled at the predicted rays' indices.
        """
        measured = scan.ranges[predicted.indices]
        contributions = self.ray_log_likelihoods(
            measured, predicted.ranges, scan.range_min, scan.range_max
        )
        return float(self.config.gamma * np.sum(contributions))

    def score(self, index: SegmentIndex, scan: LaserScan, pose) -> float:
        """Predict the scan at `pose` and return the log-likelihood of `scan`."""
        predicted = self.predicted_scan(
            index,
            pose,
            scan.num_ranges,
            scan.range_min,
            scan.range_max,
            scan.angle_min,
            scan.angle_max,
        )
        return self.log_likelihood(scan, predicted)
