"""
Configuration loading and validation for the StatsD probe.

Configuration is layered, later sources winning:
- built-in defaults
- config/default_config.yaml shipped next to the package, if present
- an explicit YAML file
- STATSD_PROBE_<SECTION>_<KEY> environment variables (a .env file is
  loaded first when present)
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigValidationError


logger = logging.getLogger(__name__)

ENV_PREFIX = "STATSD_PROBE"

DRAIN_MODES = ("fixed", "quiet")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_default_config() -> Dict[str, Any]:
    """Get default configuration values.

    Returns:
        Default configuration dictionary.
    """
    return {
        "target": {
            "host": "127.0.0.1",
            "port": 8000,
            "timeout_ms": 5000,
        },
        "statsd": {
            "host": "127.0.0.1",
            "port": 8125,
        },
        "timing": {
            "startup_delay": 1.0,
            "step_delay": 0.5,
            "burst_delay": 0.2,
            "drain_delay": 2.0,
            "drain_mode": "fixed",
            "quiet_period": 0.5,
            "drain_timeout": 10.0,
        },
        "metrics": {
            "prefix": "piarch_token_service.requests",
        },
        "logging": {
            "level": "INFO",
            "file": "",
        },
    }


def _get_default_config_path() -> Optional[Path]:
    """Get the path to the shipped default configuration file."""
    config_path = Path(__file__).parent.parent / "config" / "default_config.yaml"
    if config_path.exists():
        return config_path
    return None


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        yaml.YAMLError: If the file is invalid YAML.
        ConfigValidationError: If the root is not a mapping.
    """
    with open(config_path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError([f"{config_path} is not a mapping at root level"])
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _coerce(raw: str, template: Any, name: str) -> Any:
    """Convert an environment string to the type of the default value."""
    try:
        if isinstance(template, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(template, int):
            return int(raw)
        if isinstance(template, float):
            return float(raw)
    except ValueError:
        raise ConfigValidationError([f"{name} must be numeric, got {raw!r}"])
    return raw


def _apply_env_overrides(config: Dict[str, Any], environ: Dict[str, str]) -> Dict[str, Any]:
    """Override known keys from STATSD_PROBE_<SECTION>_<KEY> variables."""
    config = copy.deepcopy(config)
    defaults = get_default_config()

    for section, values in defaults.items():
        for key, default in values.items():
            env_name = f"{ENV_PREFIX}_{section}_{key}".upper()
            if env_name in environ:
                config.setdefault(section, {})[key] = _coerce(environ[env_name], default, env_name)
                logger.debug(f"Configuration override from {env_name}")

    return config


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = ".env",
                use_env: bool = True) -> Dict[str, Any]:
    """Load the layered configuration.

    Args:
        config_path: Optional YAML file applied over the defaults.
        env_file: Optional .env file loaded before reading overrides.
        use_env: Whether to apply environment variable overrides.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist.
        yaml.YAMLError: If a configuration file is invalid YAML.
        ConfigValidationError: If an override cannot be converted.
    """
    config = get_default_config()

    default_path = _get_default_config_path()
    if default_path is not None:
        config = _merge(config, _load_yaml_config(default_path))

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        config = _merge(config, _load_yaml_config(path))
        logger.debug(f"Loaded configuration from {path}")

    if use_env:
        if env_file and Path(env_file).exists():
            load_dotenv(dotenv_path=env_file, override=False)
        config = _apply_env_overrides(config, dict(os.environ))

    return config


class ConfigValidator:
    """Validates probe configuration dictionaries."""

    REQUIRED_SECTIONS = ["target", "statsd", "timing", "metrics"]

    @staticmethod
    def validate(config: Dict[str, Any]) -> List[str]:
        """Validate a configuration dictionary.

        Args:
            config: Configuration to check.

        Returns:
            List of error messages, empty when valid.
        """
        errors = []

        for section in ConfigValidator.REQUIRED_SECTIONS:
            if not isinstance(config.get(section), dict):
                errors.append(f"Missing required section: {section}")

        if errors:
            return errors

        errors.extend(ConfigValidator._validate_endpoint("target", config["target"], allow_zero=False))
        errors.extend(ConfigValidator._validate_endpoint("statsd", config["statsd"], allow_zero=True))

        timeout = config["target"].get("timeout_ms")
        if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout < 1:
            errors.append(f"target.timeout_ms must be a positive integer, got {timeout!r}")

        errors.extend(ConfigValidator._validate_timing(config["timing"]))

        prefix = config["metrics"].get("prefix")
        if not isinstance(prefix, str) or not prefix.strip("."):
            errors.append(f"metrics.prefix must be a non-empty string, got {prefix!r}")

        level = (config.get("logging") or {}).get("level", "INFO")
        if str(level).upper() not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {list(LOG_LEVELS)}, got {level!r}")

        return errors

    @staticmethod
    def _validate_endpoint(section: str, endpoint: Dict[str, Any], allow_zero: bool) -> List[str]:
        errors = []

        host = endpoint.get("host")
        if not isinstance(host, str) or not host:
            errors.append(f"{section}.host must be a non-empty string, got {host!r}")

        port = endpoint.get("port")
        lowest = 0 if allow_zero else 1
        if not isinstance(port, int) or isinstance(port, bool) or port < lowest or port > 65535:
            errors.append(f"Invalid {section}.port: {port} (must be {lowest}-65535)")

        return errors

    @staticmethod
    def _validate_timing(timing: Dict[str, Any]) -> List[str]:
        errors = []

        for key in ("startup_delay", "step_delay", "burst_delay", "drain_delay",
                    "quiet_period", "drain_timeout"):
            value = timing.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                errors.append(f"timing.{key} must be numeric, got {type(value).__name__}")
            elif value < 0:
                errors.append(f"timing.{key} cannot be negative, got {value}")

        mode = timing.get("drain_mode")
        if mode not in DRAIN_MODES:
            errors.append(f"timing.drain_mode must be one of {list(DRAIN_MODES)}, got {mode!r}")

        return errors

    @staticmethod
    def validate_or_raise(config: Dict[str, Any]) -> None:
        """Validate a configuration, raising if it has any errors.

        Raises:
            ConfigValidationError: With every error found.
        """
        errors = ConfigValidator.validate(config)
        if errors:
            raise ConfigValidationError(errors)


@dataclass
class HarnessConfig:
    """Typed view over a validated configuration dictionary."""
    target_host: str = "127.0.0.1"
    target_port: int = 8000
    timeout_ms: int = 5000
    statsd_host: str = "127.0.0.1"
    statsd_port: int = 8125
    startup_delay: float = 1.0
    step_delay: float = 0.5
    burst_delay: float = 0.2
    drain_delay: float = 2.0
    drain_mode: str = "fixed"
    quiet_period: float = 0.5
    drain_timeout: float = 10.0
    metric_prefix: str = "piarch_token_service.requests"
    log_level: str = "INFO"
    log_file: str = ""

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "HarnessConfig":
        """Build from a configuration dictionary after validating it.

        Raises:
            ConfigValidationError: If the configuration is invalid.
        """
        ConfigValidator.validate_or_raise(config)

        target = config["target"]
        statsd = config["statsd"]
        timing = config["timing"]
        log = config.get("logging") or {}

        return cls(
            target_host=target["host"],
            target_port=target["port"],
            timeout_ms=target["timeout_ms"],
            statsd_host=statsd["host"],
            statsd_port=statsd["port"],
            startup_delay=float(timing["startup_delay"]),
            step_delay=float(timing["step_delay"]),
            burst_delay=float(timing["burst_delay"]),
            drain_delay=float(timing["drain_delay"]),
            drain_mode=timing["drain_mode"],
            quiet_period=float(timing["quiet_period"]),
            drain_timeout=float(timing["drain_timeout"]),
            metric_prefix=config["metrics"]["prefix"],
            log_level=str(log.get("level", "INFO")).upper(),
            log_file=log.get("file") or "",
        )
