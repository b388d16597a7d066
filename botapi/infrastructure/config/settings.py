"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.botapi/config.yaml by default).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv

from botapi.core.client import ClientConfig
from botapi.domain.exceptions import ConfigurationError
from botapi.domain.models.common import THROTTLE_SCOPE_CALL

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".botapi"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "BOTAPI_"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML sections into dotted keys ('api.base_url')."""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file (~/.botapi/config.yaml if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}
    config_file = config_file or DEFAULT_CONFIG_FILE

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, Mapping):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables (Highest priority) are handled in get_config
    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load starts fresh."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable BOTAPI_<KEY> (dots become underscores)
    3. Environment variable <KEY> as written, upper-cased
    4. YAML config
    5. Default value

    Args:
        key: The configuration key, e.g. 'api.base_url' or 'BOT_TOKEN'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    prefixed = f"{ENV_PREFIX}{key.upper().replace('.', '_')}"
    for env_key in (prefixed, key.upper()):
        if env_key in os.environ:
            return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def get_bot_token() -> Optional[str]:
    """Gets the bot credential (env BOT_TOKEN, then yaml bot.token)."""
    token = get_config("BOT_TOKEN") or get_config("bot.token")
    return str(token) if token is not None else None


def use_local_server() -> bool:
    return _as_bool(get_config("api.local_server", False), "api.local_server", False)


def get_base_url() -> Optional[str]:
    """Gets an explicit API root override, if any."""
    url = get_config("api.base_url")
    return str(url) if url else None


def get_auto_wait() -> bool:
    return _as_bool(get_config("api.auto_wait", True), "api.auto_wait", True)


def get_throttle_scope() -> str:
    return str(get_config("api.throttle_scope", THROTTLE_SCOPE_CALL))


def get_request_timeout() -> float:
    return float(get_config("api.request_timeout", 10.0))


def get_polling_timeout() -> int:
    return int(get_config("polling.timeout", 30))


def get_allowed_updates() -> Optional[Tuple[str, ...]]:
    """Gets the subscribed update kinds, or None for the default subset.

    Accepts a YAML list or a comma separated string.
    """
    value = get_config("polling.allowed_updates")
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(part) for part in value)


def _as_bool(flag: Any, key: str, default: bool) -> bool:
    if isinstance(flag, str):
        if flag.lower() == "true":
            return True
        if flag.lower() == "false":
            return False
        logger.warning(f"Unexpected string value for {key}: '{flag}'. Defaulting to {default}.")
        return default
    if flag is None:
        return default
    return bool(flag)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration keys: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


def build_client_config(token: Optional[str] = None) -> ClientConfig:
    """Assembles a ClientConfig from the loaded configuration.

    Raises:
        ConfigurationError: If no token is configured or it is malformed.
    """
    token = token or get_bot_token()
    if not token:
        raise ConfigurationError("No bot token configured. Set BOT_TOKEN or bot.token in ~/.botapi/config.yaml.")
    return ClientConfig(
        token=token,
        base_url=get_base_url(),
        local_server=use_local_server(),
        auto_wait=get_auto_wait(),
        request_timeout=get_request_timeout(),
        throttle_scope=get_throttle_scope(),
    )
