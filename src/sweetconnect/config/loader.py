"""Reads SweetConnect settings from YAML, with mail secrets from the environment.

Every entry point degrades to defaults instead of failing: a service with
a broken config file still starts with the log mail transport and a local
SQLite file.
"""

from __future__ import annotations

import copy
import logging
import os
from typing import Any, Mapping

import yaml

from sweetconnect.config.schema import AppConfig

logger = logging.getLogger(__name__)

# Secrets are read from the environment rather than YAML.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SWEETCONNECT_SMTP_USER": ("mail", "smtp_user"),
    "SWEETCONNECT_SMTP_PASSWORD": ("mail", "smtp_password"),
    "SWEETCONNECT_MAIL_API_KEY": ("mail", "api_key"),
}


def load_config(path: str | None = None) -> AppConfig:
    """Build the service settings from the YAML file at *path*.

    The file holds any subset of the ``server``, ``store``, ``mail``,
    ``delivery`` and ``identity`` sections; omitted keys keep their
    defaults.  A missing, unparsable or invalid file yields ``AppConfig()``
    and a logged warning.
    """
    if path is None:
        logger.debug("No config path given; using built-in service defaults")
        return AppConfig()

    data = _read_yaml(path)
    if data is None:
        return AppConfig()

    try:
        return AppConfig.model_validate(data)
    except Exception as exc:
        logger.error("Invalid SweetConnect settings in %s: %s", path, exc)
        return AppConfig()


def _read_yaml(path: str) -> dict[str, Any] | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file not found: %s -- using defaults", path)
        return None
    except yaml.YAMLError as exc:
        logger.error("Failed to parse YAML config %s: %s", path, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping of sections, using defaults", path)
        return None
    return data


def merge_configs(base: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    """Apply section overrides such as ``{"store": {"backend": "memory"}}``.

    Used by the CLI flags and the environment overlay.  Returns *base*
    unchanged if the merged settings do not validate.
    """
    merged = _deep_merge(base.model_dump(), overrides)

    try:
        return AppConfig.model_validate(merged)
    except Exception as exc:
        logger.error("Ignoring invalid override of %s: %s", sorted(overrides), exc)
        return base


def apply_env_overrides(
    config: AppConfig, environ: Mapping[str, str] | None = None
) -> AppConfig:
    """Overlay mail credentials found in *environ* (default ``os.environ``)."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            overrides.setdefault(section, {})[key] = value
            logger.debug("Applied %s from environment", var)
    if not overrides:
        return config
    return merge_configs(config, overrides)


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *base* with nested sections of *overrides* laid over it."""
    result = copy.deepcopy(base)
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
