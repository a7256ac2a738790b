"""Unit tests for weight normalization, resampling and pose estimation."""

import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose

from vmcl.estimators import (
    ParticleSet,
    effective_sample_size,
    estimate_pose,
    low_variance_resample,
    normalize_log_weights,
    pose_spread,
    resample_particles,
)
from vmcl.random_source import RandomSource


class TestNormalizeLogWeights:

    def test_best_particle_gets_weight_one(self):
        w = normalize_log_weights(np.array([-1000.0, -1001.0, -1003.0]))
        assert_allclose(w, [1.0, np.exp(-1.0), np.exp(-3.0)])

    def test_non_finite_entries_become_zero(self):
        w = normalize_log_weights(np.array([0.0, -np.inf, np.nan, -2.0]))
        assert_allclose(w, [1.0, 0.0, 0.0, np.exp(-2.0)])

    def test_all_non_finite_warns(self):
        with pytest.warns(RuntimeWarning):
            w = normalize_log_weights(np.full(3, -np.inf))
        assert_allclose(w, 0.0)


class TestEffectiveSampleSize:

    def test_uniform_and_degenerate(self):
        assert effective_sample_size(np.ones(10)) == pytest.approx(10.0)
        assert effective_sample_size(np.array([0.0, 0.0, 2.0])) == pytest.approx(1.0)
        assert effective_sample_size(np.zeros(4)) == 0.0


class TestLowVarianceResample:

    def test_cardinality_and_order(self):
        rng = RandomSource(0)
        weights = rng.uniform(0.0, 1.0, size=50)
        indices = low_variance_resample(weights, rng)
        assert indices.shape == (50,)
        assert np.all(np.diff(indices) >= 0)
        assert indices.min() >= 0 and indices.max() < 50

    def test_copy_counts_within_one_of_expected(self):
        """Systematic resampling never deviates by a full copy from N·w/W."""
        rng = RandomSource(1)
        weights = np.array([0.05, 0.4, 0.0, 0.25, 0.3, 0.0, 1.0])
        expected = len(weights) * weights / weights.sum()

        for _ in range(200):
            counts = np.bincount(low_variance_resample(weights, rng), minlength=len(weights))
            assert np.all(np.abs(counts - expected) < 1.0 + 1e-9)
            assert counts[2] == 0 and counts[5] == 0

    def test_selection_frequency_proportional_to_weight(self):
        rng = RandomSource(2)
        weights = np.array([1.0, 2.0, 3.0, 4.0])
        n_trials = 5000

        counts = np.zeros(len(weights))
        for _ in range(n_trials):
            counts += np.bincount(low_variance_resample(weights, rng), minlength=len(weights))

        freq = counts / counts.sum()
        assert_allclose(freq, weights / weights.sum(), atol=0.01)

    def test_zero_total_returns_identity(self):
        indices = low_variance_resample(np.zeros(5), RandomSource(0))
        assert_allclose(indices, np.arange(5))

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            low_variance_resample(np.array([0.5, -0.1]), RandomSource(0))

    def test_single_nonzero_weight_takes_all(self):
        indices = low_variance_resample(np.array([0.0, 0.0, 3.0, 0.0]), RandomSource(0))
        assert_allclose(indices, [2, 2, 2, 2])


class TestResampleParticles:

    def test_provenance_and_reset_weights(self):
        rng = RandomSource(3)
        poses = np.column_stack([np.arange(8.0), -np.arange(8.0), np.linspace(-1, 1, 8)])
        particles = ParticleSet.from_poses(poses, log_weights=rng.gaussian(0.0, 2.0, size=8))

        new_set, resampled = resample_particles(particles, rng)

        assert resampled
        assert len(new_set) == len(particles)
        assert_allclose(new_set.log_weights, 0.0)
        original_rows = {tuple(row) for row in poses}
        for row in new_set.poses():
            assert tuple(row) in original_rows

    def test_input_not_modified(self):
        particles = ParticleSet.from_poses(np.zeros((4, 3)), log_weights=[0.0, -1.0, -2.0, -3.0])
        resample_particles(particles, RandomSource(0))
        assert_allclose(particles.log_weights, [0.0, -1.0, -2.0, -3.0])

    def test_zero_total_weight_is_noop(self):
        particles = ParticleSet.from_poses(np.ones((3, 3)), log_weights=np.full(3, -np.inf))
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            new_set, resampled = resample_particles(particles, RandomSource(0))
        assert not resampled
        assert new_set is particles

    def test_empty_set(self):
        new_set, resampled = resample_particles(ParticleSet.empty(), RandomSource(0))
        assert not resampled
        assert len(new_set) == 0


class TestEstimatePose:

    def test_weighted_mean_location(self):
        poses = np.array([[0.0, 0.0, 0.0], [2.0, 4.0, 0.0]])
        particles = ParticleSet.from_poses(poses, log_weights=[np.log(3.0), 0.0])

        est = estimate_pose(particles)

        assert_allclose(est.location, [0.5, 1.0])
        assert est.heading == pytest.approx(0.0)

    def test_heading_mean_across_pi(self):
        """Headings of +179° and −179° average to ±180°, not 0°."""
        poses = np.array([
            [0.0, 0.0, np.deg2rad(179.0)],
            [0.0, 0.0, np.deg2rad(-179.0)],
        ])
        est = estimate_pose(ParticleSet.from_poses(poses))
        assert abs(est.heading) == pytest.approx(np.pi)

    def test_empty_set_returns_origin(self):
        est = estimate_pose(ParticleSet.empty())
        assert_allclose(est.to_array(), [0.0, 0.0, 0.0])

    def test_all_zero_weights_fall_back_to_uniform(self):
        poses = np.array([[1.0, 0.0, 0.0], [3.0, 2.0, 0.0]])
        particles = ParticleSet.from_poses(poses, log_weights=[-np.inf, -np.inf])
        est = estimate_pose(particles)
        assert_allclose(est.location, [2.0, 1.0])


class TestPoseSpread:

    def test_covariance_of_two_particles(self):
        poses = np.array([[-1.0, 0.0, 0.1], [1.0, 0.0, -0.1]])
        cov = pose_spread(ParticleSet.from_poses(poses))

        assert cov.shape == (3, 3)
        assert cov[0, 0] == pytest.approx(1.0)
        assert cov[1, 1] == pytest.approx(0.0)
        assert cov[2, 2] == pytest.approx(0.01)
        assert cov[0, 2] == pytest.approx(-0.1)
        assert_allclose(cov, cov.T)

    def test_heading_residual_wrapped(self):
        poses = np.array([[0.0, 0.0, np.pi - 0.1], [0.0, 0.0, -np.pi + 0.1]])
        cov = pose_spread(ParticleSet.from_poses(poses))
        assert cov[2, 2] == pytest.approx(0.01)
