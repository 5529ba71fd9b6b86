"""Run configuration.

Convenience functions for getting, merging, validating and loading the
configuration of a sampling run. The configuration is a nested dictionary:

    {
        "run": {"n_samples": 1000, "seed": None, "progress": True},
        "model": {"name": "normal", "params": {...}},
        "sampler": {"name": "random_walk", "params": {...}},
        "options": {...},  # forwarded unchanged to every extension point
        "output": {"path": None, "format": "csv"},
    }
"""

import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, IO

import yaml

from mcsample.driver import RESERVED_OPTION_NAMES

logger = logging.getLogger(__name__)

RUN_CONFIG_SECTIONS = ("run", "model", "sampler", "options", "output")
OUTPUT_FORMATS = ("csv", "pickle")
COMPONENT_SECTIONS = ("model", "sampler")


def get_default_run_config() -> dict:
    """Get the default run configuration in nested structure.

    Returns
    -------
    dict
        Nested configuration dictionary for a sampling run
    """
    return {
        "run": {
            "n_samples": 1_000,
            "seed": None,
            "progress": True,
        },
        "model": {
            "name": "normal",
            "params": {"loc": 0.0, "scale": 1.0},
        },
        "sampler": {
            "name": "random_walk",
            "params": {"step_size": 1.0, "adapt": False},
        },
        "options": {},
        "output": {
            "path": None,
            "format": "csv",
        },
    }


def get_nested_config(config: dict, section: str, key: str, default: Any = None) -> Any:
    """Get a value from nested config structure.

    Args:
        config: Run configuration dictionary
        section: Nested section name ("run", "model", "sampler", "options", "output")
        key: Key name within the section
        default: Default value if key not found

    Returns:
        Value from nested structure if available, else default

    Examples:
        >>> config = {"run": {"n_samples": 100}}
        >>> get_nested_config(config, "run", "n_samples")
        100

        >>> get_nested_config(config, "run", "missing_key", default=42)
        42
    """
    if section in config and isinstance(config[section], dict):
        if key in config[section]:
            return config[section][key]
    return default


def _merge_dicts(base: dict, overrides: dict) -> dict:
    merged = deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_dicts(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def merge_run_config(base: dict, overrides: dict) -> dict:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested dictionaries are merged key by key; any other value in
    ``overrides`` replaces the value in ``base``, except in the
    component sections ("model", "sampler"): when ``overrides`` names a
    different component than ``base``, its ``params`` replace the base
    params instead of being merged into them.

    Examples:
        >>> base = {"sampler": {"name": "random_walk", "params": {"step_size": 1.0}}}
        >>> merge_run_config(base, {"sampler": {"name": "prior"}})["sampler"]
        {'name': 'prior', 'params': {}}
    """
    merged = _merge_dicts(base, overrides)
    for section in COMPONENT_SECTIONS:
        override = overrides.get(section)
        if not isinstance(override, dict) or "name" not in override:
            continue
        if override["name"] != get_nested_config(base, section, "name"):
            merged[section]["params"] = deepcopy(override.get("params", {}))
    return merged


def validate_run_config(config: dict) -> None:
    """Validate a run configuration.

    Args:
        config: Nested run configuration

    Raises:
        ValueError: If the configuration is invalid (all problems are listed)
    """
    errors = []

    unknown = [k for k in config if k not in RUN_CONFIG_SECTIONS]
    if unknown:
        errors.append(f"Unknown config sections: {unknown}")

    n_samples = get_nested_config(config, "run", "n_samples")
    if isinstance(n_samples, bool) or not isinstance(n_samples, int):
        errors.append(f"run.n_samples must be an integer, got {n_samples!r}")
    elif n_samples < 0:
        errors.append(f"run.n_samples must be >= 0, got {n_samples}")

    seed = get_nested_config(config, "run", "seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        errors.append(f"run.seed must be an integer or null, got {seed!r}")

    for section in COMPONENT_SECTIONS:
        name = get_nested_config(config, section, "name")
        if not isinstance(name, str) or not name:
            errors.append(f"{section}.name must be a non-empty string")
        params = get_nested_config(config, section, "params", {})
        if not isinstance(params, dict):
            errors.append(f"{section}.params must be a mapping")

    options = config.get("options", {})
    if not isinstance(options, dict):
        errors.append("options must be a mapping")
    else:
        reserved = sorted(RESERVED_OPTION_NAMES & set(options))
        if reserved:
            errors.append(f"options may not use the reserved names {reserved}")

    output_path = get_nested_config(config, "output", "path")
    if output_path is not None and not isinstance(output_path, (str, Path)):
        errors.append(f"output.path must be a string or null, got {output_path!r}")

    output_format = get_nested_config(config, "output", "format", "csv")
    if output_format not in OUTPUT_FORMATS:
        errors.append(
            f"output.format must be one of {list(OUTPUT_FORMATS)}, got {output_format!r}"
        )

    if errors:
        raise ValueError("Invalid run configuration:\n  " + "\n  ".join(errors))


def load_run_config(yaml_config_path: str | Path | IO) -> dict:
    """Load a run configuration from YAML and merge it over the defaults.

    Top-level section names are case-insensitive.

    Args:
        yaml_config_path: Path to a YAML file or a file-like object

    Returns:
        Validated nested run configuration
    """
    if hasattr(yaml_config_path, "read"):
        config_from_yaml = yaml.safe_load(yaml_config_path)
    else:
        with open(yaml_config_path, "rb") as f:
            config_from_yaml = yaml.safe_load(f)

    if config_from_yaml is None:
        config_from_yaml = {}
    if not isinstance(config_from_yaml, dict):
        raise ValueError("Run configuration must be a YAML mapping")

    config_from_yaml = {k.lower(): v for k, v in config_from_yaml.items()}
    config = merge_run_config(get_default_run_config(), config_from_yaml)
    validate_run_config(config)
    logger.debug("Loaded run config: %s", config)
    return config
