"""Configuration loading and validation for PodReaper."""

from podreaper.config.loader import load_config, protection_policy_from_config
from podreaper.config.validator import validate_config

__all__ = ["load_config", "protection_policy_from_config", "validate_config"]
