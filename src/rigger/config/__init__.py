"""Configuration module for Rigger."""

from rigger.config.loader import load_config, save_config
from rigger.config.schema import ProfileConfig, RiggerConfig

__all__ = ["load_config", "save_config", "ProfileConfig", "RiggerConfig"]
