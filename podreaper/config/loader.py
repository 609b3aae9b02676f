"""Configuration loader for PodReaper.

Configuration is an optional YAML file::

    namespace: shop
    selector: app=web,tier!=db
    mode: evict
    timeout: 10
    gracePeriodSeconds: 5
    protection:
      ownerKinds: [DaemonSet]
      namespaces: [kube-system, kube-public, kube-node-lease]

Values missing from the file fall back to DEFAULT_CONFIG; command line flags
override both.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from podreaper.config.validator import ValidationError, validate_config
from podreaper.safety.protection import (
    DEFAULT_PROTECTED_NAMESPACES,
    DEFAULT_PROTECTED_OWNER_KINDS,
    ProtectionPolicy,
)

DEFAULT_CONFIG: Dict[str, Any] = {
    "namespace": "default",
    "selector": "",
    "mode": "delete",
    "timeout": 10,
    "gracePeriodSeconds": None,
    "protection": {
        "ownerKinds": sorted(DEFAULT_PROTECTED_OWNER_KINDS),
        "namespaces": sorted(DEFAULT_PROTECTED_NAMESPACES),
    },
}


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    removal: bool = False,
) -> Dict[str, Any]:
    """Load, merge and validate configuration.

    Args:
        config_path: Path to a YAML file, or None for defaults only.
        overrides: Values that win over the file (e.g. CLI flags). None
            values are ignored.
        removal: Validate for a run that removes pods (see validate_config).

    Returns:
        Validated configuration dictionary.

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValidationError: If the YAML is invalid or fails validation.
    """
    file_config: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        try:
            file_config = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {config_path}: {e}", [str(e)])
        if not isinstance(file_config, dict):
            raise ValidationError(f"Config file {config_path} must contain a mapping")

    cleaned = {k: v for k, v in (overrides or {}).items() if v is not None}
    cfg = merge_configs(DEFAULT_CONFIG, file_config, cleaned)
    validate_config(cfg, removal=removal)
    return cfg


def protection_policy_from_config(cfg: Dict[str, Any]) -> ProtectionPolicy:
    """Build the ProtectionPolicy described by a configuration dictionary."""
    protection = cfg.get("protection") or {}
    return ProtectionPolicy.from_lists(
        owner_kinds=protection.get("ownerKinds"),
        namespaces=protection.get("namespaces"),
    )


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs override earlier ones for conflicting keys.
    """
    result: Dict[str, Any] = {}
    for config in configs:
        result = _deep_merge(result, config)
    return result


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
