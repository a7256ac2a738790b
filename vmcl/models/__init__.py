"""
Motion and measurement models for vector-map localization.

This module provides the odometry motion model used in the predict step and
the ray-casting laser model used in the update step.
"""

from .motion_models import (
    OdometryDelta,
    OdometryMotionModel,
    odometry_delta,
)

from .measurement_models import (
    LaserObservationModel,
    LaserScan,
    PredictedScan,
    ray_bearings,
)

__all__ = [
    # Motion models
    'OdometryDelta',
    'OdometryMotionModel',
    'odometry_delta',

    # Measurement models
    'LaserObservationModel',
    'LaserScan',
    'PredictedScan',
    'ray_bearings',
]
