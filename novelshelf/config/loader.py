"""YAML configuration loader layered under environment variables.

Layers, later overriding earlier:

1. ``Settings`` field defaults.
2. ``config/config.yaml``: sectioned keys (``fetch``, ``cache``,
   ``logging``, ``app``) mapped onto the flat settings fields.
3. ``.env`` in the working directory.
4. Environment variables.

Example YAML::

    fetch:
      retries: 5
    cache:
      backend: memory
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from novelshelf.config.settings import Settings
from novelshelf.utils.errors import ConfigurationError
from novelshelf.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

# (section, key) -> Settings field
_FIELD_MAP: dict[tuple[str, str], str] = {
    ("fetch", "timeout_seconds"): "fetch_timeout_seconds",
    ("fetch", "retries"): "fetch_retries",
    ("fetch", "retry_base_delay_seconds"): "retry_base_delay_seconds",
    ("fetch", "validation_timeout_seconds"): "validation_timeout_seconds",
    ("fetch", "custom_json_preview_timeout_seconds"): "custom_json_preview_timeout_seconds",
    ("fetch", "max_upload_bytes"): "max_upload_bytes",
    ("fetch", "user_agent"): "user_agent",
    ("cache", "backend"): "cache_backend",
    ("cache", "db_path"): "cache_db_path",
    ("cache", "namespace"): "cache_namespace",
    ("cache", "quota_bytes"): "cache_quota_bytes",
    ("cache", "default_ttl_seconds"): "cache_default_ttl_seconds",
    ("cache", "max_content_bytes"): "max_cached_content_bytes",
    ("logging", "level"): "log_level",
    ("app", "env"): "app_env",
}


def read_yaml(path: str | Path) -> dict[str, Any]:
    """Parse *path*; a missing file is an empty config.

    Raises
    ------
    ConfigurationError
        The file is not valid YAML or its top level is not a mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            message=f"{config_path} is not valid YAML: {exc}", provider_name="config"
        ) from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"{config_path} must contain a mapping at the top level",
            provider_name="config",
        )
    return data


def flatten_config(data: dict[str, Any]) -> dict[str, Any]:
    """Map sectioned YAML keys onto ``Settings`` field names; unknown keys are dropped."""
    flat: dict[str, Any] = {}
    for section, values in data.items():
        if not isinstance(values, dict):
            logger.debug("config_section_ignored", section=section)
            continue
        for key, value in values.items():
            field = _FIELD_MAP.get((section, key))
            if field is None:
                logger.debug("config_key_ignored", section=section, key=key)
                continue
            flat[field] = value
    return flat


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Build :class:`Settings` from YAML at *path* plus the environment.

    Environment variables and ``.env`` entries win over YAML: a YAML value
    is only applied when neither sets the matching field.
    """
    yaml_values = flatten_config(read_yaml(path))
    shadowed = _externally_set_fields()
    overrides = {field: value for field, value in yaml_values.items() if field not in shadowed}
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid settings: {exc}", provider_name="config") from exc


def _externally_set_fields() -> set[str]:
    # Settings matches variable names case-insensitively.
    names = set(os.environ)
    env_file = Settings.model_config.get("env_file")
    if env_file and Path(env_file).is_file():
        names.update(dotenv_values(env_file))
    return {name.lower() for name in names}
