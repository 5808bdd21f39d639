import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

from .errors import ConfigError
from .mutator import DEFAULT_MUTATOR_ATTRIBUTE

CONFIG_FILENAME = "fluentattr.toml"
PYPROJECT_FILENAME = "pyproject.toml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class FluentAttrConfig:
    """Settings read from `fluentattr.toml` or `[tool.fluentattr]` in pyproject.toml."""

    mutator_attribute: str = DEFAULT_MUTATOR_ATTRIBUTE
    log_level: str = "WARNING"


def load_config(path: Path) -> FluentAttrConfig:
    """
    Load settings from a TOML file.

    `pyproject.toml` files are read from their `[tool.fluentattr]` table;
    any other file is read from its top level. A missing file yields the
    defaults.
    """
    if not path.exists():
        return FluentAttrConfig()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    if path.name == PYPROJECT_FILENAME:
        data = data.get("tool", {}).get("fluentattr", {})

    return _config_from_dict(data, path)


def _config_from_dict(data: dict, path: Path) -> FluentAttrConfig:
    known = {f.name for f in fields(FluentAttrConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown setting(s) in {path}: {', '.join(unknown)}")

    for key, value in data.items():
        if not isinstance(value, str):
            raise ConfigError(f"Setting '{key}' in {path} must be a string")

    config = FluentAttrConfig(**data)
    config.log_level = config.log_level.upper()
    if config.log_level not in _LOG_LEVELS:
        raise ConfigError(
            f"Setting 'log_level' in {path} must be one of {', '.join(_LOG_LEVELS)}"
        )
    if not config.mutator_attribute.isidentifier():
        raise ConfigError(f"Setting 'mutator_attribute' in {path} must be an identifier")
    return config


def find_config(start: Path) -> Path | None:
    """Walk up from ``start`` to the first directory holding a config file."""
    directory = start if start.is_dir() else start.parent
    for candidate in (directory, *directory.parents):
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            return config_file
        pyproject = candidate / PYPROJECT_FILENAME
        if pyproject.exists():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {pyproject}: {e}") from e
            if "fluentattr" in data.get("tool", {}):
                return pyproject
    return None
