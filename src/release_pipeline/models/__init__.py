"""Configuration models."""

from .config import (
    CONFIG_SCHEMA,
    Config,
    ProcessingConfig,
    StageProfile,
    StorageConfig,
    config_from_dict,
    load_config,
    save_config,
    validate_config_data,
)

__all__ = [
    "CONFIG_SCHEMA",
    "Config",
    "ProcessingConfig",
    "StageProfile",
    "StorageConfig",
    "config_from_dict",
    "load_config",
    "save_config",
    "validate_config_data",
]
