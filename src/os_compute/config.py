from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import pydantic
import yaml

from os_compute.errors import ConfigError
from os_compute.models import Credentials

logger = logging.getLogger(__name__)

# First variable that is set wins.
ENV_VARS: Dict[str, Tuple[str, ...]] = {
    "auth_url": ("OS_AUTH_URL", "NOVA_URL"),
    "user": ("OS_USERNAME", "NOVA_USERNAME"),
    "password": ("OS_PASSWORD", "NOVA_PASSWORD", "NOVA_API_KEY"),
    "project_id": ("OS_TENANT_NAME", "OS_PROJECT_ID", "NOVA_PROJECT_ID"),
    "region": ("OS_REGION_NAME", "NOVA_REGION_NAME"),
}

REQUIRED = ("auth_url", "user", "password", "project_id")


def read_config_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    unknown = set(data) - set(ENV_VARS)
    if unknown:
        logger.warning("Ignoring unknown keys in %s: %s", path, ", ".join(sorted(map(str, unknown))))
    return {k: str(data[k]) for k in ENV_VARS if data.get(k) is not None}


def from_env(env: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    env = os.environ if env is None else env
    out: Dict[str, str] = {}
    for field, names in ENV_VARS.items():
        for name in names:
            if env.get(name):
                out[field] = env[name]
                break
    return out


def load_credentials(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    **overrides: Optional[str],
) -> Credentials:
    """
    Build Credentials from (lowest to highest precedence) a YAML file,
    OS_* / NOVA_* environment variables and explicit keyword overrides.
    """
    values: Dict[str, Any] = {}
    if path is not None:
        values.update(read_config_file(Path(path)))
    values.update(from_env(env))
    values.update({k: v for k, v in overrides.items() if v is not None})

    missing = [k for k in REQUIRED if not values.get(k)]
    if missing:
        hints = ", ".join(f"{k} ({ENV_VARS[k][0]})" for k in missing)
        raise ConfigError(f"Missing OpenStack credentials: {hints}")

    try:
        return Credentials(**{k: values.get(k) for k in ENV_VARS})
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Invalid OpenStack credentials: {exc}") from exc
