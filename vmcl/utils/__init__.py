"""
Utility functions shared by the localization modules.
"""

from .angles import wrap_angle, wrap_angle_array, angle_diff, circular_mean

__all__ = [
    'wrap_angle',
    'wrap_angle_array',
    'angle_diff',
    'circular_mean',
]
