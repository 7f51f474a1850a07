# Copyright (c) 2025 Stephen Clau

# This file is part of Steam Watch.

# Steam Watch is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Configuration module for Steam Watch.

- Discord bot token and Steam API key are REQUIRED (fatal if missing)
- Optional config.yml (in CONFIG_DIR) for non-secret settings under a `bot:` key
- .env file support via python-dotenv
- Docker secrets support: reads from /run/secrets/* before env vars
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
import os
import yaml
import structlog
from dotenv import load_dotenv

logger = structlog.get_logger()

MIN_UPDATE_INTERVAL = 60
MAX_UPDATE_INTERVAL = 86400


def _read_docker_secret(secret_name: str) -> Optional[str]:
    """
    Read a secret from Docker secrets location.

    Docker Swarm/Kubernetes mounts secrets at /run/secrets/{secret_name}.

    Args:
        secret_name: Name of the secret (e.g., 'steam_api_key')

    Returns:
        Secret value or None if not found
    """
    secret_path = Path(f"/run/secrets/{secret_name}")

    if secret_path.exists():
        try:
            return secret_path.read_text().strip()
        except (IOError, OSError) as e:
            logger.warning("docker_secret_read_error", secret=secret_name, error=str(e))
            return None

    return None


def get_config_value(
    env_var: str,
    secret_name: Optional[str] = None,
    required: bool = False,
    default: Optional[str] = None,
) -> Optional[str]:
    """
    Get configuration value from Docker secrets or environment variables.

    Tries in order:
    1. Docker secret file at /run/secrets/{secret_name}
    2. Environment variable {env_var}
    3. Default value if provided
    4. Raise error if required and not found

    Args:
        env_var: Environment variable name (e.g., 'STEAM_API_KEY')
        secret_name: Docker secret name. If not provided, uses env_var lowercased
        required: If True, raises ValueError when value not found
        default: Default value if not found in env or secrets

    Returns:
        Configuration value from secret, env var, or default

    Raises:
        ValueError: If required=True and value not found
    """
    if secret_name is None:
        secret_name = env_var.lower()

    secret_value = _read_docker_secret(secret_name)
    if secret_value is not None:
        logger.debug("config_value_loaded_from_secret", source="docker_secret", var=env_var)
        return secret_value

    env_value = os.getenv(env_var)
    if env_value is not None and env_value != "":
        logger.debug("config_value_loaded_from_env", source="environment", var=env_var)
        return env_value

    if default is not None:
        logger.debug("config_value_loaded_from_default", source="default", var=env_var)
        return default

    if required:
        raise ValueError(
            f"Required configuration value not found for '{env_var}'. "
            f"Checked: Docker secret '{secret_name}', environment variable '{env_var}'"
        )

    return None


def _safe_int(value: Any, field_name: str, default: int) -> int:
    """
    Safely convert value to int with proper type checking.

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {field_name} to int: bool")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid integer for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to int: {type(value).__name__}")


def _safe_float(value: Any, field_name: str, default: float) -> float:
    """
    Safely convert value to float with proper type checking.

    Raises:
        ValueError: If conversion fails
    """
    if value is None:
        return default

    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {field_name} to float: bool")

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Invalid float for {field_name}: {value}")

    raise ValueError(f"Cannot convert {field_name} to float: {type(value).__name__}")


def _safe_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Config:
    """Main application configuration."""

    discord_bot_token: str
    """Discord bot token."""

    steam_api_key: str
    """Steam Web API key."""

    data_file: Path = field(default_factory=lambda: Path("tracked_users.json"))
    """JSON file holding per-guild tracking state."""

    default_update_interval: int = 60
    """Seconds between update cycles for guilds without an override. Default: 60"""

    presence_rotation_interval: float = 15.0
    """Seconds between bot presence label changes. Default: 15"""

    request_timeout: float = 10.0
    """Total timeout for each Steam API request in seconds. Default: 10"""

    # Health check configuration
    health_check_enabled: bool = True
    """Whether to run the /health HTTP server. Default: True"""

    health_check_host: str = "0.0.0.0"
    """Host to bind health check server to. Default: 0.0.0.0"""

    health_check_port: int = 8080
    """Port to bind health check server to. Default: 8080"""

    # Logging configuration
    log_level: str = "info"
    """Logging level: debug, info, warning, error. Default: info"""

    log_format: str = "console"
    """Logging format: console or json. Default: console"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not isinstance(self.data_file, Path):
            self.data_file = Path(self.data_file)

        if not self.discord_bot_token:
            raise ValueError("discord_bot_token is REQUIRED")

        if not self.steam_api_key:
            raise ValueError("steam_api_key is REQUIRED")

        if not MIN_UPDATE_INTERVAL <= self.default_update_interval <= MAX_UPDATE_INTERVAL:
            raise ValueError(
                f"Invalid default_update_interval: {self.default_update_interval}. "
                f"Must be {MIN_UPDATE_INTERVAL}-{MAX_UPDATE_INTERVAL} seconds"
            )

        if self.presence_rotation_interval <= 0:
            raise ValueError(
                f"presence_rotation_interval must be > 0, got {self.presence_rotation_interval}"
            )

        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be > 0, got {self.request_timeout}")

        valid_levels = {"debug", "info", "warning", "error"}
        if self.log_level.lower() not in valid_levels:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )

        if not 1 <= self.health_check_port <= 65535:
            raise ValueError(
                f"Invalid health_check_port: {self.health_check_port}. Must be 1-65535"
            )

        valid_formats = {"console", "json"}
        if self.log_format.lower() not in valid_formats:
            raise ValueError(
                f"Invalid log_format '{self.log_format}'. Must be one of: {', '.join(sorted(valid_formats))}"
            )


def _load_yaml_settings(config_dir: str) -> Dict[str, Any]:
    """
    Read the optional config.yml `bot:` section.

    Returns:
        Settings mapping (empty if the file is absent)

    Raises:
        ValueError: If the file exists but has the wrong shape
        yaml.YAMLError: If the file is not valid YAML
    """
    config_yml_path = Path(config_dir) / "config.yml"
    if not config_yml_path.exists():
        return {}

    with open(config_yml_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{config_yml_path} must contain a mapping")

    settings = data.get("bot", {}) or {}
    if not isinstance(settings, dict):
        raise ValueError(f"{config_yml_path}: 'bot' must be a mapping")

    logger.debug("config_yml_loaded", path=str(config_yml_path), keys=sorted(settings))
    return settings


def load_config() -> Config:
    """
    Load configuration from .env, config.yml, environment and Docker secrets.

    Priority order for each config value:
    1. Docker secret (credentials only) or environment variable
    2. config.yml `bot:` section
    3. Hardcoded defaults

    Returns:
        Fully populated Config object with validation

    Raises:
        ValueError: If required config values are missing or invalid
        yaml.YAMLError: If config.yml is invalid YAML
    """
    load_dotenv()

    settings = _load_yaml_settings(os.getenv("CONFIG_DIR", "."))

    def setting(env_var: str, key: str, default: Any) -> Any:
        value = get_config_value(env_var=env_var)
        if value is not None:
            return value
        return settings.get(key, default)

    # TOKEN is the variable name used by earlier deployments
    discord_bot_token = get_config_value(
        env_var="DISCORD_BOT_TOKEN",
        secret_name="discord_bot_token",
    ) or get_config_value(env_var="TOKEN", secret_name="discord_bot_token")
    if not discord_bot_token:
        raise ValueError(
            "Required configuration value not found for 'DISCORD_BOT_TOKEN'. "
            "Checked: Docker secret 'discord_bot_token', environment variables "
            "'DISCORD_BOT_TOKEN' and 'TOKEN'"
        )

    steam_api_key = get_config_value(
        env_var="STEAM_API_KEY",
        secret_name="steam_api_key",
        required=True,
    )

    config = Config(
        discord_bot_token=discord_bot_token,
        steam_api_key=steam_api_key or "",
        data_file=Path(setting("DATA_FILE", "data_file", "tracked_users.json")),
        default_update_interval=_safe_int(
            setting("DEFAULT_UPDATE_INTERVAL", "default_update_interval", None),
            "default_update_interval",
            60,
        ),
        presence_rotation_interval=_safe_float(
            setting("PRESENCE_ROTATION_INTERVAL", "presence_rotation_interval", None),
            "presence_rotation_interval",
            15.0,
        ),
        request_timeout=_safe_float(
            setting("STEAM_REQUEST_TIMEOUT", "request_timeout", None),
            "request_timeout",
            10.0,
        ),
        health_check_enabled=_safe_bool(
            setting("HEALTH_CHECK_ENABLED", "health_check_enabled", None),
            True,
        ),
        health_check_host=str(setting("HEALTH_CHECK_HOST", "health_check_host", "0.0.0.0")),
        health_check_port=_safe_int(
            setting("HEALTH_CHECK_PORT", "health_check_port", None),
            "health_check_port",
            8080,
        ),
        log_level=str(setting("LOG_LEVEL", "log_level", "info")),
        log_format=str(setting("LOG_FORMAT", "log_format", "console")),
    )

    logger.info(
        "config_loaded",
        data_file=str(config.data_file),
        default_update_interval=config.default_update_interval,
        health_check_enabled=config.health_check_enabled,
    )
    return config
