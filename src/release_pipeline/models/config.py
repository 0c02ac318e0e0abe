"""Configuration model for the release pipeline."""

import json
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from ..exceptions import ConfigurationError

_STAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "min_latency": {"type": "number", "minimum": 0},
        "max_latency": {"type": "number", "minimum": 0},
        "failure_probability": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "processing": {
            "type": "object",
            "properties": {
                "transcode": _STAGE_SCHEMA,
                "metadata": _STAGE_SCHEMA,
                "time_scale": {"type": "number", "minimum": 0},
                "parallel_stages": {"type": "boolean"},
                "max_concurrent_tracks": {"type": ["integer", "null"], "minimum": 1},
                "run_timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
                "seed": {"type": ["integer", "null"]},
            },
            "additionalProperties": False,
        },
        "storage": {
            "type": "object",
            "properties": {
                "db_path": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


@dataclass
class StageProfile:
    """Latency range (seconds) and failure probability of a simulated stage."""
    min_latency: float
    max_latency: float
    failure_probability: float

    def __post_init__(self):
        if self.min_latency > self.max_latency:
            raise ConfigurationError(
                f"min_latency ({self.min_latency}) exceeds max_latency ({self.max_latency})"
            )
        if not 0.0 <= self.failure_probability <= 1.0:
            raise ConfigurationError(
                f"failure_probability must be within [0, 1], got {self.failure_probability}"
            )


def _default_transcode() -> StageProfile:
    return StageProfile(min_latency=5.0, max_latency=10.0, failure_probability=0.10)


def _default_metadata() -> StageProfile:
    return StageProfile(min_latency=1.0, max_latency=3.0, failure_probability=0.05)


@dataclass
class ProcessingConfig:
    """Configuration for the processing pipeline."""
    transcode: StageProfile = field(default_factory=_default_transcode)
    metadata: StageProfile = field(default_factory=_default_metadata)
    time_scale: float = 1.0  # multiplier on simulated latency, 0 disables delays
    parallel_stages: bool = False
    max_concurrent_tracks: Optional[int] = None
    run_timeout: Optional[float] = None  # seconds
    seed: Optional[int] = None


@dataclass
class StorageConfig:
    """Configuration for the release store."""
    db_path: Path = field(
        default_factory=lambda: Path.home() / ".cache" / "release-pipeline" / "releases.db"
    )


@dataclass
class Config:
    """Main configuration model."""
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def default(cls) -> "Config":
        return cls()


def validate_config_data(config_data: Dict[str, Any]) -> List[str]:
    """Validate raw configuration data against CONFIG_SCHEMA.

    Returns:
        List of validation error messages, empty when valid
    """
    validator = jsonschema.Draft7Validator(CONFIG_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(config_data), key=lambda e: list(e.absolute_path)):
        path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        errors.append(f"Validation error at {path}: {error.message}")
    return errors


def _dataclass_to_dict(obj):
    """Convert dataclass to dict recursively."""
    if is_dataclass(obj):
        return {key: _dataclass_to_dict(value) for key, value in asdict(obj).items()}
    elif isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, dict):
        return {key: _dataclass_to_dict(value) for key, value in obj.items()}
    return obj


def _dict_to_dataclass(data, dataclass_type, base=None):
    """Convert dict to dataclass recursively, filling missing keys from `base`."""
    if base is None:
        base = dataclass_type()
    kwargs = {}
    for f in fields(dataclass_type):
        current = getattr(base, f.name)
        if f.name not in data:
            kwargs[f.name] = current
            continue
        value = data[f.name]
        if is_dataclass(current):
            kwargs[f.name] = _dict_to_dataclass(value, type(current), current)
        elif isinstance(current, Path):
            kwargs[f.name] = Path(value).expanduser()
        else:
            kwargs[f.name] = value
    return dataclass_type(**kwargs)


def config_from_dict(config_data: Dict[str, Any]) -> Config:
    """Build a Config from already-parsed data, validating it first."""
    errors = validate_config_data(config_data)
    if errors:
        raise ConfigurationError("Invalid configuration: " + "; ".join(errors), errors)
    return _dict_to_dataclass(config_data, Config)


def load_config(config_path: Path) -> Config:
    """Load configuration from JSON file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"JSON parsing error: {e.msg} at line {e.lineno}, column {e.colno}")
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {config_path}: {e}")

    return config_from_dict(config_data)


def save_config(config: Config, config_path: Path) -> None:
    """Save configuration to JSON file."""
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(_dataclass_to_dict(config), f, indent=2)
