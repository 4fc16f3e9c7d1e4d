"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("orbridge")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787
DEFAULT_TIMEOUT = 60.0

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings for the bridge."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    base_url: str = DEFAULT_BASE_URL
    default_provider: Optional[str] = None
    timeout_seconds: Optional[float] = DEFAULT_TIMEOUT
    log_level: str = "INFO"


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path) -> Path:
    """Resolve the env file path for a config file (config_x.yaml -> .env_x)."""
    stem = config_path.stem
    if stem.startswith("config_"):
        suffix = stem[len("config_"):]
        return config_path.with_name(f".env_{suffix}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(path: Optional[str] = None, substitute_env: bool = True) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to ORBRIDGE_CONFIG,
              or configs/config_default.yaml in the project root.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: the file does not exist or is not a YAML mapping.
    """
    if path is None:
        path = os.getenv("ORBRIDGE_CONFIG") or DEFAULT_CONFIG_PATH

    config_path = resolve_config_path(path)
    logger.info(f"Loading configuration from {config_path}")

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

    if substitute_env:
        env_values = load_env_values(resolve_env_path(config_path))
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(obj: Any, env_values: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively substitute ${VAR_NAME} and $VAR_NAME in configuration values.

    Unset variables are left as literal placeholders and logged.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def _get(cfg: Mapping[str, Any], *keys: str) -> Any:
    cur: Any = cfg
    for key in keys:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def build_settings(config: Optional[Mapping[str, Any]] = None) -> Settings:
    """Build Settings from a config mapping; environment variables take priority."""
    cfg = config or {}

    host = _to_str(_get(cfg, "proxy_settings", "server", "host")) or DEFAULT_HOST
    port = _to_int(_get(cfg, "proxy_settings", "server", "port")) or DEFAULT_PORT
    log_level = _to_str(_get(cfg, "proxy_settings", "logging", "level")) or "INFO"
    base_url = _to_str(_get(cfg, "upstream", "base_url")) or DEFAULT_BASE_URL
    default_provider = _to_str(_get(cfg, "upstream", "default_provider"))
    timeout_seconds = _to_float(_get(cfg, "upstream", "timeout_seconds"))
    if timeout_seconds is None:
        timeout_seconds = DEFAULT_TIMEOUT

    # Env overrides
    host = os.getenv("ORBRIDGE_HOST", host)
    port = _to_int(os.getenv("ORBRIDGE_PORT")) or port
    log_level = os.getenv("ORBRIDGE_LOG_LEVEL", log_level)
    base_url = _to_str(os.getenv("OPENROUTER_BASE_URL")) or base_url
    default_provider = _to_str(os.getenv("OPENROUTER_DEFAULT_PROVIDER")) or default_provider

    timeout_env = os.getenv("ORBRIDGE_TIMEOUT")
    if timeout_env is not None:
        parsed_timeout = _to_float(timeout_env)
        if parsed_timeout is None:
            logger.warning("Invalid ORBRIDGE_TIMEOUT=%s", timeout_env)
        else:
            timeout_seconds = parsed_timeout

    return Settings(
        host=host,
        port=port,
        base_url=base_url.rstrip("/"),
        default_provider=default_provider,
        timeout_seconds=timeout_seconds if timeout_seconds > 0 else None,
        log_level=log_level,
    )


def load_settings(path: Optional[str] = None) -> Settings:
    """Load the config file (if any) and resolve it into Settings."""
    try:
        config = load_config(path)
    except ConfigurationError as exc:
        logger.warning("Failed to load config; using defaults. (%s)", exc)
        config = {}
    return build_settings(config)
