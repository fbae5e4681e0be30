"""Configuration loader for ksecret."""
import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .cache_store import DEFAULT_TTL_SECONDS
from .naming import DEFAULT_PREFIX

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "KSECRET_CONFIG_FILE"
CACHE_FILE_ENV = "KSECRET_CACHE_FILE"
PROJECT_ENV = "KSECRET_GCP_PROJECT"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def get_config_dir() -> Path:
    return Path.home() / ".config" / "ksecret"


def get_config_path() -> Path:
    """
    Get config file path.

    Priority order:
    1. KSECRET_CONFIG_FILE environment variable
    2. Default location: ~/.config/ksecret/config.yml
    """
    override = os.getenv(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / "config.yml"


def get_cache_path(config: Dict[str, Any]) -> Path:
    """
    Get cache file path.

    Priority order:
    1. KSECRET_CACHE_FILE environment variable
    2. cache.path in the config file
    3. Default location: ~/.config/ksecret/cache.json
    """
    override = os.getenv(CACHE_FILE_ENV)
    if override:
        return Path(override).expanduser()
    cache_section = config.get("cache") or {}
    if cache_section.get("path"):
        return Path(cache_section["path"]).expanduser()
    return get_config_dir() / "cache.json"


def get_cache_ttl(config: Dict[str, Any]) -> float:
    cache_section = config.get("cache") or {}
    return cache_section.get("ttl_seconds", DEFAULT_TTL_SECONDS)


def _validate_cache(cache: Any, config_path: Path) -> None:
    """Check the optional cache section and normalize ttl_seconds to a positive float."""
    if not isinstance(cache, dict):
        raise ConfigError(f"'cache' in {config_path} must be a mapping")

    if "ttl_seconds" not in cache:
        return

    raw = cache["ttl_seconds"]
    invalid = ConfigError(
        f"Invalid 'cache.ttl_seconds' in {config_path}: {raw!r}\n"
        f"Expected a positive number of seconds."
    )
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise invalid
    try:
        ttl = float(raw)
    except ValueError:
        raise invalid
    if not ttl > 0:
        raise ConfigError(f"'cache.ttl_seconds' in {config_path} must be positive, got {ttl}")
    cache["ttl_seconds"] = ttl


def _validate_authentication(auth: Any, config_path: Path) -> None:
    if not isinstance(auth, dict):
        raise ConfigError(f"'authentication' in {config_path} must be a mapping")

    if auth.get('type', 'service_account') != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported. Omit the 'authentication' section "
            f"to use application default credentials."
        )

    if 'service_account_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    service_account_path = auth['service_account_path']

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(
            f"Service account path is not a file: {service_account_path}"
        )


def load_config(project_override: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Args:
        project_override: GCP project ID taking precedence over the config file
            (from --project or KSECRET_GCP_PROJECT)

    Returns:
        Dict containing configuration with keys:
        - gcp: dict with project_id
        - secret_prefix: remote secret id prefix
        - cache: optional dict with path and ttl_seconds
        - authentication: optional dict with type and service_account_path

    Raises:
        ConfigError: If config file is missing (and no override is given), invalid,
            or the service account file doesn't exist
    """
    project_override = project_override or os.getenv(PROJECT_ENV)
    config_path = get_config_path()

    if not config_path.exists():
        if not project_override:
            raise ConfigError(
                f"No configuration found at: {config_path}\n"
                f"Run 'ksecret init --project <PROJECT_ID>' to initialize."
            )
        logger.debug(f"No config at {config_path}, using project override only")
        return {"gcp": {"project_id": project_override}, "secret_prefix": DEFAULT_PREFIX}

    # Load YAML
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    # Validate required fields
    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    if project_override:
        config.setdefault('gcp', {})
        config['gcp']['project_id'] = project_override

    if 'gcp' not in config or not isinstance(config['gcp'], dict):
        raise ConfigError(
            f"Missing 'gcp' section in config at {config_path}\n"
            f"Required format:\n"
            f"gcp:\n"
            f"  project_id: your-project-id"
        )

    if not config['gcp'].get('project_id'):
        raise ConfigError("Missing 'gcp.project_id' in config")

    config.setdefault('secret_prefix', DEFAULT_PREFIX)

    if config.get('cache') is not None:
        _validate_cache(config['cache'], config_path)

    if 'authentication' in config:
        _validate_authentication(config['authentication'], config_path)
        service_account_path = config['authentication']['service_account_path']
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = service_account_path
        logger.debug(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {service_account_path}")

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using project ID: {config['gcp']['project_id']}")

    return config


def save_config(project_id: str, secret_prefix: str = DEFAULT_PREFIX) -> Path:
    """
    Write a fresh configuration file.

    Args:
        project_id: GCP project ID
        secret_prefix: Prefix for remote secret ids

    Returns:
        Path the configuration was written to
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config = {"gcp": {"project_id": project_id}, "secret_prefix": secret_prefix}
    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False)
    except OSError as e:
        raise ConfigError(f"Failed to write config file at {config_path}: {e}")

    logger.info(f"Configuration saved to {config_path}")
    return config_path
