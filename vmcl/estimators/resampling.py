"""
Weight normalization, low-variance resampling and pose estimation.

Particle scores are log-likelihoods. Before they can drive resampling or a
weighted mean they are shifted by their maximum and exponentiated:

    w_i = exp(ℓ_i − max_j ℓ_j)

which keeps the best particle at weight 1 and every other in (0, 1], with
no overflow however large the raw log-likelihoods are.

Low-variance (systematic) resampling then draws N samples with a single
uniform random number and N equally spaced pointers into the cumulative
weight "bins":

    r ~ U[0, W/N),   pointer_i = r + i·W/N,   W = Σ w_i

Particle j is selected for pointer_i when bins[j] is the first bin exceeding
the pointer. Selection probability is proportional to weight, with lower
variance than N independent multinomial draws and O(N) work.
"""

import warnings
from typing import Optional, Tuple

import numpy as np

from vmcl.estimators.particles import ParticleSet, PoseEstimate
from vmcl.random_source import RandomSource
from vmcl.utils.angles import angle_diff, circular_mean


def normalize_log_weights(log_weights: np.ndarray) -> np.ndarray:
    """
    Convert log-weights to linear weights relative to the best particle.

    Args:
        log_weights: Log-domain weights, shape (N,).

    Returns:
        Linear weights exp(ℓ − max ℓ), shape (N,). Non-finite log-weights map
        to 0. If no log-weight is finite, all weights are 0.

    Example:
        >>> normalize_log_weights(np.array([-1000.0, -1001.0]))  # doctest: +SKIP
        array([1.        , 0.36787944])
    """
    log_weights = np.asarray(log_weights, dtype=np.float64)
    if log_weights.size == 0:
        return np.zeros(0)

    finite = np.isfinite(log_weights)
    if not np.any(finite):
        warnings.warn(
            "All particle log-weights are non-finite; treating total weight as zero.",
            RuntimeWarning,
        )
        return np.zeros_like(log_weights)

    max_log_weight = np.max(log_weights[finite])
    weights = np.zeros_like(log_weights)
    weights[finite] = np.exp(log_weights[finite] - max_log_weight)
    return weights


def effective_sample_size(weights: np.ndarray) -> float:
    """
    Compute effective sample size of linear weights.

    N_eff = (Σwᵢ)² / Σ(wᵢ²)

    Weights need not be normalized. Returns 0.0 when all weights are zero.
    """
    weights = np.asarray(weights, dtype=np.float64)
    total = np.sum(weights)
    sq = np.sum(weights**2)
    if total <= 0 or sq <= 0:
        return 0.0
    return float(total**2 / sq)


def low_variance_resample(weights: np.ndarray, rng: RandomSource) -> np.ndarray:
    """
    Perform low-variance resampling on linear weights.

    Args:
        weights: Non-negative linear weights, shape (N,). Need not sum to 1.
        rng: Random source providing the single uniform draw.

    Returns:
        Indices of the selected particles, shape (N,), non-decreasing.
        When the total weight is zero or not finite the identity permutation
        is returned and no random number is consumed.

    Raises:
        ValueError: If any weight is negative.
    """
    weights = np.asarray(weights, dtype=np.float64)
    n = len(weights)
    if n == 0:
        return np.zeros(0, dtype=np.intp)
    if np.any(weights < 0):
        raise ValueError("Resampling weights must be non-negative")

    bins = np.cumsum(weights)
    total = bins[-1]
    if not np.isfinite(total) or total <= 0:
        return np.arange(n, dtype=np.intp)

    step = total / n
    pointer = rng.uniform(0.0, step)
    last = int(np.flatnonzero(weights > 0)[-1])

    indices = np.empty(n, dtype=np.intp)
    j = 0
    for i in range(n):
        # First bin strictly exceeding the pointer; round-off may push the
        # last pointer past bins[-1], so stop at the last non-zero weight.
        while j < last and bins[j] <= pointer:
            j += 1
        indices[i] = j
        pointer += step

    return indices


def resample_particles(
    particles: ParticleSet, rng: RandomSource
) -> Tuple[ParticleSet, bool]:
    """
    Resample a particle set by its log-weights.

    Args:
        particles: Set to resample. Not modified.
        rng: Random source.

    Returns:
        Tuple of (new_set, resampled). The new set has the same cardinality,
        every particle is a copy of one in the input and all log-weights are
        reset to 0. If the total weight is zero, the input is returned
        unchanged with resampled=False.
    """
    if len(particles) == 0:
        return particles, False

    weights = normalize_log_weights(particles.log_weights)
    if not np.sum(weights) > 0:
        return particles, False

    indices = low_variance_resample(weights, rng)
    new_set = particles.take(indices)
    new_set.log_weights[:] = 0.0
    return new_set, True


def estimate_pose(particles: ParticleSet) -> PoseEstimate:
    """
    Weighted mean pose of a particle set.

    Location is Σ(w·location)/Σw. Heading is the circular mean
    atan2(Σw·sin θ, Σw·cos θ), which stays correct across ±π.

    Args:
        particles: Particle set with log-domain weights.

    Returns:
        PoseEstimate. The origin pose is returned for an empty set; uniform
        weights are used if every log-weight is non-finite.
    """
    if len(particles) == 0:
        return PoseEstimate.origin()

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        weights = normalize_log_weights(particles.log_weights)
    total = np.sum(weights)
    if not total > 0:
        weights = np.ones(len(particles))
        total = float(len(particles))

    location = np.sum(weights[:, np.newaxis] * particles.locations, axis=0) / total
    heading = circular_mean(particles.headings, weights)
    return PoseEstimate(location=location, heading=heading)


def pose_spread(
    particles: ParticleSet, estimate: Optional[PoseEstimate] = None
) -> np.ndarray:
    """
    Weighted covariance of the particle poses around an estimate.

    P = Σ wᵢ (xᵢ − x̂)(xᵢ − x̂)ᵀ / Σ wᵢ, with the heading residual wrapped.

    Args:
        particles: Particle set with log-domain weights.
        estimate: Pose to center on; estimate_pose(particles) if None.

    Returns:
        3×3 covariance of [x, y, heading]. Zeros for an empty set.
    """
    if len(particles) == 0:
        return np.zeros((3, 3))
    if estimate is None:
        estimate = estimate_pose(particles)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        weights = normalize_log_weights(particles.log_weights)
    total = np.sum(weights)
    if not total > 0:
        weights = np.ones(len(particles))
        total = float(len(particles))

    diff = np.column_stack([
        particles.locations - estimate.location,
        angle_diff(particles.headings, np.full(len(particles), estimate.heading)),
    ])
    return (
        weights[:, np.newaxis, np.newaxis]
        * diff[:, :, np.newaxis]
        * diff[:, np.newaxis, :]
    ).sum(axis=0) / total
