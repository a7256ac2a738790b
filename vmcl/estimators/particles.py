"""Particle and particle set types.

A particle set stores all hypotheses as parallel NumPy arrays so that the
motion model can propagate every particle in one vectorized pass:

    locations:   (N, 2)  map-frame positions [x, y] in meters
    headings:    (N,)    headings in radians
    log_weights: (N,)    log-likelihood weights

Weights stored in a ParticleSet are always log-domain. Linear weights are
derived on demand by `normalize_log_weights` and are never written back, so
the two scales cannot be mixed.
"""

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np


@dataclass(frozen=True, eq=False)
class Particle:
    """
    Read-only view of one pose hypothesis.

    Attributes:
        location: Position [x, y] in the map frame (meters).
        heading: Heading in radians.
        weight: Log-likelihood weight.
    """

    location: np.ndarray
    heading: float
    weight: float


@dataclass(frozen=True, eq=False)
class PoseEstimate:
    """
    Single best-estimate pose derived from a particle set.

    Attributes:
        location: Position [x, y] in the map frame (meters).
        heading: Heading in radians, in [-π, π].
    """

    location: np.ndarray
    heading: float

    @classmethod
    def origin(cls) -> "PoseEstimate":
        """Degenerate pose returned before the filter is initialized."""
        return cls(location=np.zeros(2), heading=0.0)

    @property
    def x(self) -> float:
        return float(self.location[0])

    @property
    def y(self) -> float:
        return float(self.location[1])

    def to_array(self) -> np.ndarray:
        """Pose as array [x, y, heading]."""
        return np.array([self.location[0], self.location[1], self.heading], dtype=np.float64)


@dataclass(eq=False)
class ParticleSet:
    """
    Ordered, fixed-size collection of particles.

    Attributes:
        locations: Positions, shape (N, 2).
        headings: Headings, shape (N,).
        log_weights: Log-domain weights, shape (N,).
    """

    locations: np.ndarray
    headings: np.ndarray
    log_weights: np.ndarray

    def __post_init__(self) -> None:
        self.locations = np.asarray(self.locations, dtype=np.float64).reshape(-1, 2)
        self.headings = np.asarray(self.headings, dtype=np.float64).reshape(-1)
        self.log_weights = np.asarray(self.log_weights, dtype=np.float64).reshape(-1)

        n = len(self.locations)
        if self.headings.shape != (n,) or self.log_weights.shape != (n,):
            raise ValueError(
                f"Inconsistent particle arrays: locations {self.locations.shape}, "
                f"headings {self.headings.shape}, log_weights {self.log_weights.shape}"
            )

    @classmethod
    def empty(cls) -> "ParticleSet":
        """A set with no particles."""
        return cls(np.zeros((0, 2)), np.zeros(0), np.zeros(0))

    @classmethod
    def from_poses(cls, poses: np.ndarray, log_weights: Sequence[float] = None) -> "ParticleSet":
        """
        Build a set from an (N, 3) array of [x, y, heading] rows.

        Log-weights default to zero.
        """
        poses = np.asarray(poses, dtype=np.float64).reshape(-1, 3)
        if log_weights is None:
            log_weights = np.zeros(len(poses))
        return cls(poses[:, :2].copy(), poses[:, 2].copy(), np.asarray(log_weights, dtype=np.float64))

    def __len__(self) -> int:
        return len(self.headings)

    def __getitem__(self, i: int) -> Particle:
        return Particle(
            location=self.locations[i].copy(),
            heading=float(self.headings[i]),
            weight=float(self.log_weights[i]),
        )

    def __iter__(self) -> Iterator[Particle]:
        for i in range(len(self)):
            yield self[i]

    def poses(self) -> np.ndarray:
        """Particles as an (N, 3) array of [x, y, heading] rows."""
        return np.column_stack([self.locations, self.headings])

    def copy(self) -> "ParticleSet":
        return ParticleSet(self.locations.copy(), self.headings.copy(), self.log_weights.copy())

    def take(self, indices: np.ndarray) -> "ParticleSet":
        """New set made of the selected rows (rows may repeat)."""
        indices = np.asarray(indices, dtype=np.intp)
        return ParticleSet(
            self.locations[indices].copy(),
            self.headings[indices].copy(),
            self.log_weights[indices].copy(),
        )
