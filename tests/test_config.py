"""Tests for configuration loading and validation."""

import pytest

from podreaper.config.loader import (
    DEFAULT_CONFIG,
    load_config,
    merge_configs,
    protection_policy_from_config,
)
from podreaper.config.validator import ValidationError, validate_config
from podreaper.safety.protection import ProtectionPolicy


class TestConfigLoader:
    """Tests for load_config."""

    def test_defaults_without_file(self):
        cfg = load_config()
        assert cfg["namespace"] == "default"
        assert cfg["selector"] == ""
        assert cfg["mode"] == "delete"
        assert cfg["timeout"] == 10
        assert cfg["protection"]["ownerKinds"] == ["DaemonSet"]

    def test_load_file(self, tmp_path):
        config_file = tmp_path / "podreaper.yaml"
        config_file.write_text(
            """
namespace: shop
selector: app=web,!canary
mode: evict
timeout: 30
gracePeriodSeconds: 5
protection:
  namespaces: [kube-system, monitoring]
"""
        )
        cfg = load_config(str(config_file))

        assert cfg["namespace"] == "shop"
        assert cfg["selector"] == "app=web,!canary"
        assert cfg["mode"] == "evict"
        assert cfg["timeout"] == 30
        assert cfg["gracePeriodSeconds"] == 5
        assert cfg["protection"]["namespaces"] == ["kube-system", "monitoring"]
        # Nested defaults survive a partial protection block
        assert cfg["protection"]["ownerKinds"] == ["DaemonSet"]

    def test_removal_flag_reaches_validation(self):
        assert load_config(overrides={"namespace": "kube-system"})["namespace"] == "kube-system"
        with pytest.raises(ValidationError):
            load_config(overrides={"namespace": "kube-system"}, removal=True)

    def test_overrides_win(self, tmp_path):
        config_file = tmp_path / "podreaper.yaml"
        config_file.write_text("namespace: shop\nselector: app=web\n")
        cfg = load_config(str(config_file), overrides={"namespace": "staging", "selector": None})
        assert cfg["namespace"] == "staging"
        assert cfg["selector"] == "app=web"

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_config(str(config_file))["namespace"] == "default"

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/podreaper.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("namespace: [unclosed\n")
        with pytest.raises(ValidationError, match="Invalid YAML"):
            load_config(str(config_file))

    def test_non_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ValidationError, match="mapping"):
            load_config(str(config_file))

    def test_defaults_not_mutated(self, tmp_path):
        config_file = tmp_path / "podreaper.yaml"
        config_file.write_text("protection:\n  ownerKinds: [DaemonSet, Job]\n")
        load_config(str(config_file))
        assert DEFAULT_CONFIG["protection"]["ownerKinds"] == ["DaemonSet"]


class TestConfigValidator:
    """Tests for validate_config."""

    def test_valid_defaults(self):
        assert validate_config(merge_configs(DEFAULT_CONFIG)) is True

    def test_invalid_mode(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"mode": "nuke"})
        with pytest.raises(ValidationError):
            validate_config(cfg)

    def test_unknown_key(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"namepsace": "typo"})
        with pytest.raises(ValidationError):
            validate_config(cfg)

    def test_non_positive_timeout(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"timeout": 0})
        with pytest.raises(ValidationError):
            validate_config(cfg)

    def test_protected_target_namespace_rejected_for_removal(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"namespace": "kube-system"})
        with pytest.raises(ValidationError) as exc_info:
            validate_config(cfg, removal=True)
        assert "kube-system" in exc_info.value.errors[0]

    def test_protected_target_namespace_allowed_read_only(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"namespace": "kube-system"})
        assert validate_config(cfg) is True


class TestMergeConfigs:
    """Tests for configuration merging."""

    def test_merge_configs(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"c": 4}, "e": 5}

        result = merge_configs(base, override)

        assert result["a"] == 1
        assert result["b"]["c"] == 4
        assert result["b"]["d"] == 3
        assert result["e"] == 5

    def test_merge_multiple_configs(self):
        result = merge_configs({"a": 1}, {"b": 2}, {"a": 3})
        assert result == {"a": 3, "b": 2}


class TestProtectionPolicyFromConfig:
    """Tests for building the protection policy."""

    def test_defaults(self):
        assert protection_policy_from_config(load_config()) == ProtectionPolicy()

    def test_custom(self):
        cfg = merge_configs(DEFAULT_CONFIG, {"protection": {"ownerKinds": ["DaemonSet", "Job"]}})
        policy = protection_policy_from_config(cfg)
        assert policy.owner_kinds == frozenset({"DaemonSet", "Job"})
        assert "kube-system" in policy.namespaces
