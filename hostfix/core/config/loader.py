"""
Configuration loader — resolves Settings from defaults, YAML and env.

Precedence (highest first):
    environment variables  >  YAML config file  >  built-in defaults

The YAML file is optional.  It is taken from ``--config`` or the
``HOSTFIX_CONFIG`` environment variable and may contain ``wifi:``,
``audio:`` and ``ledger_path:`` keys, e.g.::

    wifi:
      regdomain: CA
      firmware_dir: /lib/firmware/brcm
    audio:
      repo_dir: /opt/src/snd_hda_macbookpro

The resolved ``Settings`` model is frozen and passed by value from here on.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from hostfix.core.errors import ConfigError
from hostfix.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HOSTFIX_CONFIG"
SECTIONS = ("wifi", "audio")

# env var → (section, field); section None = top level
ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "FW_URL": ("wifi", "fw_url"),
    "REGDOMAIN": ("wifi", "regdomain"),
    "DRIVER_REPO_URL": ("audio", "repo_url"),
    "HOSTFIX_LEDGER": (None, "ledger_path"),
}


def read_config_file(path: Path) -> dict[str, Any]:
    """Read and parse the YAML config file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def _apply_env(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
    for section in SECTIONS:
        # "wifi:" with nothing under it parses as None.
        if section in merged and merged[section] is None:
            merged[section] = {}
    for var, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(var, "")
        if not value.strip():
            # Unset and empty are the same: "leave empty to skip".
            continue
        if section is None:
            merged[field] = value
            continue
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
        target[field] = value
        logger.debug("Override %s.%s from $%s", section, field, var)
    return merged


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve the run's settings once.

    Args:
        path: Explicit YAML path. If None, ``$HOSTFIX_CONFIG`` is used when set.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: On a bad config file or an invalid value (for example
            a regulatory domain that is not a two-letter code).
    """
    env = os.environ if environ is None else environ

    if path is None and env.get(CONFIG_ENV_VAR):
        path = Path(env[CONFIG_ENV_VAR])

    data = read_config_file(path) if path is not None else {}
    merged = _apply_env(data, env)

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e

    logger.debug(
        "Settings resolved (fw_url=%s, regdomain=%s, repo=%s)",
        settings.wifi.fw_url,
        settings.wifi.regdomain,
        settings.audio.repo_url,
    )
    return settings
