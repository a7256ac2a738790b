"""Unit tests for particle filter configuration."""

import json

import pytest

from vmcl.config import MotionModelConfig, ObservationModelConfig, ParticleFilterConfig


class TestParticleFilterConfig:

    def test_defaults_are_valid(self):
        cfg = ParticleFilterConfig()
        assert cfg.num_particles > 0
        assert 0 < cfg.observation.gamma < 1
        assert cfg.resample_interval >= 1

    def test_from_dict_nested_partial(self):
        cfg = ParticleFilterConfig.from_dict({
            "num_particles": 200,
            "motion": {"k1": 0.5},
            "observation": {"ray_stride": 5},
        })
        assert cfg.num_particles == 200
        assert cfg.motion.k1 == 0.5
        assert cfg.motion.k4 == MotionModelConfig().k4
        assert cfg.observation.ray_stride == 5

    def test_to_dict_round_trip(self):
        cfg = ParticleFilterConfig(num_particles=7, motion=MotionModelConfig(k2=0.2))
        assert ParticleFilterConfig.from_dict(cfg.to_dict()) == cfg

    def test_from_json(self, tmp_path):
        path = tmp_path / "pf.json"
        path.write_text(json.dumps({"resample_interval": 1, "observation": {"sigma": 0.2}}))
        cfg = ParticleFilterConfig.from_json(path)
        assert cfg.resample_interval == 1
        assert cfg.observation.sigma == 0.2

    def test_from_json_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ParticleFilterConfig.from_json(tmp_path / "missing.json")

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="num_particle"):
            ParticleFilterConfig.from_dict({"num_particle": 10})
        with pytest.raises(ValueError):
            ParticleFilterConfig.from_dict({"motion": {"alpha1": 1.0}})

    @pytest.mark.parametrize("kwargs", [
        {"num_particles": 0},
        {"init_std_x": -1.0},
        {"resample_interval": 0},
        {"min_update_distance": -0.1},
        {"axis_tolerance": -1e-9},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ParticleFilterConfig(**kwargs)


class TestModelConfigs:

    @pytest.mark.parametrize("kwargs", [
        {"gamma": 0.0},
        {"gamma": 1.5},
        {"sigma": 0.0},
        {"ray_stride": 0},
        {"d_short": -0.5},
    ])
    def test_invalid_observation(self, kwargs):
        with pytest.raises(ValueError):
            ObservationModelConfig(**kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"k1": -0.1},
        {"max_translation": 0.0},
        {"max_rotation": -1.0},
    ])
    def test_invalid_motion(self, kwargs):
        with pytest.raises(ValueError):
            MotionModelConfig(**kwargs)
