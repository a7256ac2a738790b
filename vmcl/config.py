"""Configuration of the vector-map particle filter.

All tunables of the localizer live in three dataclasses:

    - MotionModelConfig: odometry noise coefficients and sanity bounds
    - ObservationModelConfig: laser geometry and robust likelihood parameters
    - ParticleFilterConfig: particle count, initial spread, update gating and
      resampling cadence, plus the two model configs

Configurations can be built in code, from a nested dict, or from a JSON file
with the same shape:

    {
        "num_particles": 100,
        "resample_interval": 2,
        "motion": {"k1": 0.2},
        "observation": {"ray_stride": 20}
    }
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np


def _reject_unknown_keys(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {unknown}")


@dataclass(frozen=True)
class MotionModelConfig:
    """
    Odometry motion model parameters.

    Noise standard deviations scale linearly with the odometry increment:
        σ_translation = k1·|Δt| + k2·|Δθ|   (per axis)
        σ_rotation    = k3·|Δt| + k4·|Δθ|

    Attributes:
        k1: Translation noise per meter translated.
        k2: Translation noise per radian rotated.
        k3: Rotation noise per meter translated.
        k4: Rotation noise per radian rotated.
        max_translation: Odometry increments longer than this (meters) are
            treated as jumps and not applied to the particles.
        max_rotation: Odometry increments rotating more than this (radians)
            are treated as jumps.
    """

    k1: float = 0.3
    k2: float = 0.05
    k3: float = 0.05
    k4: float = 0.3
    max_translation: float = 1.5
    max_rotation: float = np.pi / 2

    def __post_init__(self) -> None:
        for name in ("k1", "k2", "k3", "k4"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be finite and >= 0, got {value}")
        if not self.max_translation > 0:
            raise ValueError(f"max_translation must be > 0, got {self.max_translation}")
        if not self.max_rotation > 0:
            raise ValueError(f"max_rotation must be > 0, got {self.max_rotation}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MotionModelConfig":
        _reject_unknown_keys(cls, data)
        return cls(**data)


@dataclass(frozen=True)
class ObservationModelConfig:
    """
    Laser observation model parameters.

    Attributes:
        laser_offset: Distance (meters) from the robot base to the laser,
            along the heading.
        ray_stride: Only every ray_stride-th physical ray is cast.
        sigma: Range noise standard deviation (meters).
        d_short: Readings shorter than predicted by more than this (meters)
            get a fixed penalty (unmapped obstacles).
        d_long: Readings longer than predicted by more than this (meters)
            get a fixed penalty (missed returns).
        gamma: Overall confidence gain in (0, 1] applied to the summed
            log-likelihood to compensate for correlated rays.
    """

    laser_offset: float = 0.2
    ray_stride: int = 10
    sigma: float = 0.1
    d_short: float = 0.5
    d_long: float = 0.5
    gamma: float = 0.8

    def __post_init__(self) -> None:
        if not np.isfinite(self.laser_offset):
            raise ValueError(f"laser_offset must be finite, got {self.laser_offset}")
        if int(self.ray_stride) != self.ray_stride or self.ray_stride < 1:
            raise ValueError(f"ray_stride must be a positive integer, got {self.ray_stride}")
        if not self.sigma > 0:
            raise ValueError(f"sigma must be > 0, got {self.sigma}")
        if not self.d_short > 0:
            raise ValueError(f"d_short must be > 0, got {self.d_short}")
        if not self.d_long > 0:
            raise ValueError(f"d_long must be > 0, got {self.d_long}")
        if not 0 < self.gamma <= 1:
            raise ValueError(f"gamma must be in (0, 1], got {self.gamma}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObservationModelConfig":
        _reject_unknown_keys(cls, data)
        return cls(**data)


@dataclass(frozen=True)
class ParticleFilterConfig:
    """
    Top-level particle filter configuration.

    Attributes:
        num_particles: Number of particles seeded by initialize().
        init_std_x: Std-dev (meters) of the initial spread along x.
        init_std_y: Std-dev (meters) of the initial spread along y.
        init_std_heading: Std-dev (radians) of the initial heading spread.
        min_update_distance: Distance (meters) the robot must travel between
            two laser updates.
        min_predict_steps: Number of applied odometry predictions required
            between two laser updates.
        resample_interval: Resample on every resample_interval-th update.
        axis_tolerance: Tolerance (meters) for classifying map segments as
            horizontal or vertical.
        motion: Motion model parameters.
        observation: Observation model parameters.

    Example:
        >>> cfg = ParticleFilterConfig.from_dict(
        ...     {"num_particles": 200, "observation": {"ray_stride": 5}}
        ... )
        >>> cfg.observation.ray_stride
        5
    """

    num_particles: int = 50
    init_std_x: float = 0.25
    init_std_y: float = 0.25
    init_std_heading: float = 0.1
    min_update_distance: float = 0.1
    min_predict_steps: int = 1
    resample_interval: int = 3
    axis_tolerance: float = 1e-9
    motion: MotionModelConfig = field(default_factory=MotionModelConfig)
    observation: ObservationModelConfig = field(default_factory=ObservationModelConfig)

    def __post_init__(self) -> None:
        if int(self.num_particles) != self.num_particles or self.num_particles < 1:
            raise ValueError(f"num_particles must be a positive integer, got {self.num_particles}")
        for name in ("init_std_x", "init_std_y", "init_std_heading"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be finite and >= 0, got {value}")
        if not np.isfinite(self.min_update_distance) or self.min_update_distance < 0:
            raise ValueError(
                f"min_update_distance must be finite and >= 0, got {self.min_update_distance}"
            )
        if self.min_predict_steps < 0:
            raise ValueError(f"min_predict_steps must be >= 0, got {self.min_predict_steps}")
        if self.resample_interval < 1:
            raise ValueError(f"resample_interval must be >= 1, got {self.resample_interval}")
        if self.axis_tolerance < 0:
            raise ValueError(f"axis_tolerance must be >= 0, got {self.axis_tolerance}")
        if not isinstance(self.motion, MotionModelConfig):
            raise TypeError(f"motion must be MotionModelConfig, got {type(self.motion)}")
        if not isinstance(self.observation, ObservationModelConfig):
            raise TypeError(
                f"observation must be ObservationModelConfig, got {type(self.observation)}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParticleFilterConfig":
        """
        Build a configuration from a (possibly partial) nested dict.

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        data = dict(data)
        _reject_unknown_keys(cls, data)
        if "motion" in data and not isinstance(data["motion"], MotionModelConfig):
            data["motion"] = MotionModelConfig.from_dict(data["motion"])
        if "observation" in data and not isinstance(data["observation"], ObservationModelConfig):
            data["observation"] = ObservationModelConfig.from_dict(data["observation"])
        return cls(**data)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ParticleFilterConfig":
        """Load a configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top-level JSON value must be an object")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Nested dict representation accepted by from_dict()."""
        return asdict(self)
