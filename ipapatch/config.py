import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_CONFIG_FILE = ".ipapatch.yaml"
ENV_PREFIX = "IPAPATCH_"

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    compression_level: int = 6
    chunk_size: int = 8 * 1024 * 1024
    minimum_os_version: str = "10.0"
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, int):
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {name}: {value!r}") from e
        if not number.is_integer():
            raise ConfigError(f"Invalid value for {name}: {value!r}. Must be a whole number.")
        return int(number)
    return str(value)


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load settings from {path}: {e}") from e
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: expected a mapping, got {type(data).__name__}")
        return {}
    return data


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment.

    Environment variables (``IPAPATCH_COMPRESSION_LEVEL`` and friends, also
    read from a ``.env`` file) take precedence over the YAML file.
    """
    load_dotenv()
    settings = Settings()
    config_path = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_FILE
    raw = _load_file(config_path)

    known = {f.name for f in fields(Settings)}
    for key in raw:
        if key not in known:
            logger.warning(f"Unknown setting '{key}' in {config_path}")

    for name in known:
        default = getattr(settings, name)
        if (env_value := os.environ.get(f"{ENV_PREFIX}{name.upper()}")) is not None:
            setattr(settings, name, _coerce(name, env_value, default))
        elif name in raw:
            setattr(settings, name, _coerce(name, raw[name], default))

    if settings.chunk_size < 1:
        raise ConfigError(f"Invalid value for chunk_size: {settings.chunk_size}. Must be positive.")
    return settings


def write_template(path: Union[str, Path]) -> Path:
    """Write the default settings to ``path`` as YAML."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(Settings().to_dict(), f, default_flow_style=False)
    except (IOError, PermissionError) as e:
        raise ConfigError(f"Failed to create settings template {path}: {e}") from e
    logger.info(f"Created settings template {path}")
    return path
