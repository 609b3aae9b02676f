"""Schema validation for PodReaper configuration."""

from typing import Any, Dict, List

import jsonschema

from podreaper.errors import PodReaperError

# JSON Schema for the configuration file
CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "namespace": {"type": "string", "minLength": 1},
        "selector": {"type": "string"},
        "mode": {"type": "string", "enum": ["delete", "evict"]},
        "timeout": {"type": "integer", "minimum": 1},
        "gracePeriodSeconds": {"type": ["integer", "null"], "minimum": 0},
        "protection": {"$ref": "#/$defs/protection"},
    },
    "$defs": {
        "protection": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "ownerKinds": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "uniqueItems": True,
                },
                "namespaces": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                    "uniqueItems": True,
                },
            },
        },
    },
}


class ValidationError(PodReaperError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, errors: List[str] = None):
        super().__init__(message)
        self.errors = errors or []


def validate_config(cfg: Dict[str, Any], removal: bool = False) -> bool:
    """Validate a configuration dictionary against the schema.

    Args:
        cfg: The configuration dictionary.
        removal: The configuration drives a run that removes pods. Only
            then is a protected target namespace an error; read-only
            commands may inspect it.

    Returns:
        True if validation passes.

    Raises:
        ValidationError: If validation fails.
    """
    try:
        jsonschema.validate(instance=cfg, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValidationError(f"Schema validation failed: {e.message}", [str(e)])

    errors = _semantic_validation(cfg, removal)
    if errors:
        raise ValidationError("Semantic validation failed", errors)

    return True


def _semantic_validation(cfg: Dict[str, Any], removal: bool) -> List[str]:
    """Checks the schema cannot express."""
    errors = []

    protection = cfg.get("protection", {})
    namespace = cfg.get("namespace")
    if removal and namespace and namespace in protection.get("namespaces", []):
        errors.append(
            f"Target namespace '{namespace}' is protected; no pod in it can ever be selected"
        )

    return errors
