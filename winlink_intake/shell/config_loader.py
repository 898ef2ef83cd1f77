"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

The PipelineConfig model is defined in winlink_intake/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from winlink_intake.core.config import PipelineConfig


logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} placeholder from the environment.

    Args:
        value: Value to resolve (may be a ${...} placeholder)

    Returns:
        Resolved value, or the value unchanged
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_bool(value: Any) -> bool:
    """Parse a YAML or environment boolean."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_list(value: Any) -> list[str]:
    """Parse a YAML list or a comma-separated string into strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(_resolve_value(v)).strip() for v in value]


def _parse_optional_str(value: Any) -> str | None:
    """Parse a comma-separated setting; lists are joined with commas."""
    if value is None:
        return None
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(_resolve_value(value))


def load_config_from_dict(data: dict[str, Any]) -> PipelineConfig:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed PipelineConfig object
    """
    defaults = PipelineConfig()

    def setting(key: str) -> str | None:
        if key in data:
            return _parse_optional_str(data[key])
        return getattr(defaults, key)

    return PipelineConfig(
        input_path=str(_resolve_value(data.get("input_path", defaults.input_path))),
        dedup_threshold_meters=int(data.get("dedup_threshold_meters", defaults.dedup_threshold_meters)),
        dedup_non_gis_by_call=_parse_bool(data.get("dedup_non_gis_by_call", False)),
        jitter=_parse_bool(data.get("jitter", False)),
        required_types=_parse_list(data.get("required_types")),
        preferred_prefixes=setting("preferred_prefixes"),
        preferred_suffixes=setting("preferred_suffixes"),
        not_preferred_prefixes=setting("not_preferred_prefixes"),
        not_preferred_suffixes=setting("not_preferred_suffixes"),
        dump_ids=set(_parse_list(data.get("dump_ids"))),
        rejects_file=str(data.get("rejects_file", defaults.rejects_file)),
    )


def load_config(config_path: str | Path | None = None) -> PipelineConfig:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed PipelineConfig object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return PipelineConfig()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return PipelineConfig()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: input %s, threshold %dm, %d required types",
        config.input_path,
        config.dedup_threshold_meters,
        len(config.required_types),
    )

    return config


def load_config_from_env() -> PipelineConfig:
    """Load configuration from environment variables.

    Useful for simple runs without a YAML file.

    Environment variables:
        INPUT_PATH: Directory holding export files
        DEDUP_THRESHOLD_METERS: Location dedup distance (negative disables)
        DEDUP_NON_GIS_BY_CALL: Keep only the latest non-GIS message per sender
        JITTER: Spread co-located points when dedup is disabled
        REQUIRED_TYPES: Comma-separated type keys to keep
        PREFERRED_PREFIXES, PREFERRED_SUFFIXES,
        NOT_PREFERRED_PREFIXES, NOT_PREFERRED_SUFFIXES: Address preferences
        DUMP_IDS: Comma-separated message IDs or call signs to log in detail

    Returns:
        PipelineConfig object from environment
    """
    data: dict[str, Any] = {}

    for key in (
        "input_path",
        "dedup_threshold_meters",
        "dedup_non_gis_by_call",
        "jitter",
        "required_types",
        "preferred_prefixes",
        "preferred_suffixes",
        "not_preferred_prefixes",
        "not_preferred_suffixes",
        "dump_ids",
    ):
        value = os.environ.get(key.upper())
        if value is not None:
            data[key] = value

    return load_config_from_dict(data)
