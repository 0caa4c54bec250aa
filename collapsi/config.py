"""Runtime configuration for the Collapsi rules service.

Settings come from an optional YAML file (path in ``COLLAPSI_CONFIG``) and
from environment variables; the environment wins.

Environment Variables:
    COLLAPSI_CONFIG: Path to a YAML file with the keys below
    COLLAPSI_LOG_LEVEL: Root log level (default: INFO)
    COLLAPSI_LOG_FORMAT: default, compact, detailed or structured
    COLLAPSI_STRICT_INVARIANTS: Check board/player consistency before
        every engine operation (default: true)
    COLLAPSI_SERVICE_HOST: Bind host for ``collapsi serve`` (default: 0.0.0.0)
    COLLAPSI_SERVICE_PORT: Bind port for ``collapsi serve`` (default: 8001)
    CORS_ORIGINS: Comma separated allowed origins (default: *)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ConfigurationError

__all__ = ["EngineConfig", "load_config", "get_config", "reset_config"]

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_ENV_KEYS = {
    "log_level": "COLLAPSI_LOG_LEVEL",
    "log_format": "COLLAPSI_LOG_FORMAT",
    "strict_invariants": "COLLAPSI_STRICT_INVARIANTS",
    "host": "COLLAPSI_SERVICE_HOST",
    "port": "COLLAPSI_SERVICE_PORT",
    "cors_origins": "CORS_ORIGINS",
}


@dataclass
class EngineConfig:
    log_level: str = "INFO"
    log_format: str = "default"
    strict_invariants: bool = True
    host: str = "0.0.0.0"
    port: int = 8001
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {key}", context={"value": value})


def _coerce(key: str, value: Any) -> Any:
    if key == "strict_invariants":
        return _parse_bool(key, value)
    if key == "port":
        try:
            port = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                "Port must be an integer", context={"value": value}
            ) from exc
        if not 0 < port < 65536:
            raise ConfigurationError("Port out of range", context={"value": port})
        return port
    if key == "log_level":
        level = str(value).upper()
        if level not in _LOG_LEVELS:
            raise ConfigurationError("Unknown log level", context={"value": value})
        return level
    if key == "cors_origins":
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return [str(origin) for origin in value]
    return str(value)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError("Missing config file", context={"path": str(path)})
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Config file must contain a mapping", context={"path": str(path)}
        )
    known = {f.name for f in fields(EngineConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
    return {k: v for k, v in data.items() if k in known}


def load_config(
    env: Optional[Mapping[str, str]] = None, path: Optional[Path] = None
) -> EngineConfig:
    """Build an EngineConfig from a YAML file and the environment."""
    env = os.environ if env is None else env
    raw: Dict[str, Any] = {}

    config_path = path or (Path(env["COLLAPSI_CONFIG"]) if env.get("COLLAPSI_CONFIG") else None)
    if config_path is not None:
        raw.update(_load_yaml(config_path))

    for key, env_key in _ENV_KEYS.items():
        if env.get(env_key):
            raw[key] = env[env_key]

    return EngineConfig(**{k: _coerce(k, v) for k, v in raw.items()})


_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Process-wide configuration, loaded on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config(config: Optional[EngineConfig] = None) -> None:
    """Replace (or drop, to reload lazily) the process-wide configuration."""
    global _config
    _config = config
