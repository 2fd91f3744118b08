"""Configuration loader for Rigger."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from rigger.config.schema import RiggerConfig
from rigger.core.errors import ConfigurationError


CONFIG_FILENAMES = [".rigger.yaml", ".rigger.yml", "rigger.yaml", "rigger.yml"]
GLOBAL_CONFIG_DIR = Path.home() / ".config" / "rigger"
GLOBAL_CONFIG_FILE = GLOBAL_CONFIG_DIR / "config.yaml"
ENVIRONMENT_VAR = "RIGGER_ENV"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find configuration file in current or parent directories."""
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    # Search upward for config file
    while current != current.parent:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.exists():
                return config_path
        current = current.parent

    return None


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load YAML configuration file."""
    if not path.exists():
        return {}

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        return data if data else {}


def expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR} patterns with environment variables.

    Unknown variables expand to an empty string.
    """
    if isinstance(data, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), data)
    elif isinstance(data, dict):
        return {k: expand_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    else:
        return data


def load_config(
    config_file: Optional[Path] = None,
    project_dir: Optional[Path] = None,
) -> RiggerConfig:
    """Load and merge configuration from all sources.

    Priority (later overrides earlier):
    1. Built-in defaults
    2. Global config (~/.config/rigger/config.yaml)
    3. Project config (.rigger.yaml, searched upward)
    4. Explicit config file (if provided)
    5. RIGGER_ENV environment variable for the default profile
    """
    config_data: Dict[str, Any] = {}

    if GLOBAL_CONFIG_FILE.exists():
        global_data = load_yaml_file(GLOBAL_CONFIG_FILE)
        config_data = _deep_merge(config_data, global_data)

    if config_file is None:
        config_file = find_config_file(project_dir)
    elif not config_file.exists():
        raise ConfigurationError(f"Config file not found: {config_file}")

    if config_file and config_file.exists():
        project_data = load_yaml_file(config_file)
        config_data = _deep_merge(config_data, project_data)

    config_data = expand_env_vars(config_data)

    env_override = os.environ.get(ENVIRONMENT_VAR)
    if env_override:
        config_data["environment"] = env_override.strip().lower()

    try:
        config = RiggerConfig(**config_data) if config_data else RiggerConfig()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    # Profile names default to their mapping key
    for name, profile in config.profiles.items():
        if not profile.name:
            profile.name = name

    return config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def save_config(config: RiggerConfig, path: Path) -> None:
    """Save configuration to YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(exclude_defaults=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
