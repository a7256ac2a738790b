"""Vector-map Monte Carlo localization.

This package contains the building blocks of a particle-filter localizer for a
mobile robot driving in a map made of 2D line segments:
- geometry: SE(2) helpers, segment classification and the ray-casting index
- maps: vector map loading
- models: odometry motion model and laser observation model
- estimators: particle sets, resampling, pose estimation and the filter itself
- sim: synthetic laser scans for testing and demos
"""

__version__ = "0.1.0"
