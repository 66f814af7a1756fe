"""
Tests for configuration validation, YAML loading and scheduler construction.
"""

import os
from types import SimpleNamespace

import pytest
import yaml

from accucb.bandit import (
    BanditConfig,
    BanditScheduler,
    ConfigurationError,
    ContainmentLeafMatcher,
    RandomLeafMatcher,
    build_scheduler,
)
from accucb.config import load_config, parse_overrides


class TestBanditConfigValidation:
    def test_defaults_are_valid(self):
        cfg = BanditConfig()
        assert cfg.bonus_coef == cfg.v1
        assert cfg.diversity_weight == 0.0
        assert cfg.coverage_weight == 0.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"rho": 0.0},
            {"rho": 1.0},
            {"rho": 1.5},
            {"rho": float("nan")},
            {"n_children": 1},
            {"rounds": 0},
            {"super_arm_size": 0},
            {"v1": 0.0},
            {"v2": -0.1},
            {"diversity_weight": -1.0},
            {"timeout_reward": 2.0},
            {"reward_max": 0.0},
            {"max_workers": 0},
            {"bonus_scale": "v3"},
            {"horizon_mode": "forever"},
            {"matching": "nearest"},
            {"matching": "containment"},
            {"context_lower": [0.0, 1.0], "context_upper": [1.0, 1.0]},
            {"context_lower": [0.0], "context_upper": [1.0, 1.0]},
            {"rounds": True},
            {"rounds": 2.5},
            {"v1": "big"},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ConfigurationError):
            BanditConfig(**overrides)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            BanditConfig(rho=2.0)

    def test_v2_bonus_scale(self):
        cfg = BanditConfig(v1=1.0, v2=0.5, bonus_scale="v2")
        assert cfg.bonus_coef == 0.5

    def test_from_namespace(self):
        cfg = BanditConfig.from_namespace(SimpleNamespace(rounds=7, rho=0.25))
        assert cfg.rounds == 7
        assert cfg.rho == 0.25
        assert cfg.n_children == 2

    def test_from_namespace_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            BanditConfig.from_namespace({"rounds": 5, "rhoo": 0.5})


@pytest.fixture
def config_file(tmp_path):
    data = {
        "experiment": {"name": "unit", "output_dir": str(tmp_path / "out")},
        "seed": {"master": 123},
        "bandit": {"rounds": 20, "super_arm_size": 3, "v1": 1.0, "rho": 0.5, "n_children": 2},
        "logging": {"round_csv": "r.csv", "node_csv": "n.csv"},
    }
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_loads_namespace_and_creates_output_dir(self, config_file, tmp_path):
        cfg = load_config(str(config_file))
        assert cfg.experiment.name == "unit"
        assert cfg.bandit.rounds == 20
        assert cfg.experiment.config_path == os.path.abspath(str(config_file))
        assert (tmp_path / "out").is_dir()

    def test_overrides_are_typed(self, config_file):
        overrides = parse_overrides([
            "bandit.rounds=50",
            "bandit.rho=0.25",
            "bandit.matching=containment",
            "bandit.context_lower=[0, 0]",
            "bandit.context_upper=[1, 1]",
        ])
        cfg = load_config(str(config_file), overrides=overrides)
        assert cfg.bandit.rounds == 50
        assert cfg.bandit.rho == 0.25
        assert cfg.bandit.context_lower == [0, 0]

    def test_bad_override_format(self):
        with pytest.raises(ValueError):
            parse_overrides(["bandit.rounds"])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_shipped_default_config_is_valid(self):
        root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        with open(os.path.join(root, "configs", "accucb_default.yaml"), encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        cfg = BanditConfig.from_namespace(raw["bandit"])
        assert cfg.rounds == 100


class TestBuildScheduler:
    def test_builds_from_loaded_config(self, config_file, constant_oracle):
        cfg = load_config(str(config_file))
        scheduler = build_scheduler(cfg, constant_oracle())
        assert isinstance(scheduler, BanditScheduler)
        assert scheduler.config.rounds == 20
        assert scheduler.config.super_arm_size == 3
        # falls back to cfg.seed.master
        assert scheduler.config.seed == 123
        assert isinstance(scheduler.matcher, RandomLeafMatcher)

    def test_builds_containment_matcher(self, config_file, constant_oracle):
        overrides = {
            "bandit.matching": "containment",
            "bandit.context_lower": "[0.0]",
            "bandit.context_upper": "[1.0]",
        }
        scheduler = build_scheduler(load_config(str(config_file), overrides=overrides), constant_oracle())
        assert isinstance(scheduler.matcher, ContainmentLeafMatcher)

    def test_invalid_config_fails_at_construction(self, config_file, constant_oracle):
        cfg = load_config(str(config_file), overrides={"bandit.rho": "1.2"})
        with pytest.raises(ConfigurationError):
            build_scheduler(cfg, constant_oracle())
