"""
Particle filter estimation for vector-map localization.

Available components:
    - Particle, ParticleSet, PoseEstimate: particle containers
    - normalize_log_weights, low_variance_resample: weight handling
    - estimate_pose, pose_spread: pose estimation from particles
    - VectorMapParticleFilter: the full predict/update/resample loop
"""

from vmcl.estimators.particles import Particle, ParticleSet, PoseEstimate
from vmcl.estimators.resampling import (
    effective_sample_size,
    estimate_pose,
    low_variance_resample,
    normalize_log_weights,
    pose_spread,
    resample_particles,
)
from vmcl.estimators.particle_filter import FilterState, VectorMapParticleFilter

__all__ = [
    # Particles
    "Particle",
    "ParticleSet",
    "PoseEstimate",
    # Weights and resampling
    "normalize_log_weights",
    "effective_sample_size",
    "low_variance_resample",
    "resample_particles",
    # Pose estimation
    "estimate_pose",
    "pose_spread",
    # Filter
    "FilterState",
    "VectorMapParticleFilter",
]
