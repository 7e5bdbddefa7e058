"""Configuration loader for the OneOps Secrets CLI."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .preferences import get_preference

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_TRUST_STORE_TYPE = "PKCS12"


@dataclass(frozen=True)
class TrustStoreConfig:
    """Where to load the trust anchors for the proxy TLS connection from."""
    name: str
    type: str = DEFAULT_TRUST_STORE_TYPE
    password: Optional[str] = None
    file_resource: bool = True


@dataclass(frozen=True)
class SecretsProxyConfig:
    base_url: str
    trust_store: TrustStoreConfig
    timeout: int = DEFAULT_TIMEOUT


def default_config_path() -> Path:
    return Path.home() / ".config" / "oneops-secrets" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/oneops-secrets/preferences.json)
    2. Default location: ~/.config/oneops-secrets/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   secrets config set-path /path/to/your/config.yml\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with key 'secrets_proxy':
        - base_url: proxy URL
        - timeout: optional request timeout in seconds
        - trust_store: dict with name, type, password, file_resource

    Raises:
        ConfigError: If config file is invalid or incomplete
        FileNotFoundError: If no config file can be located
    """
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict) or 'secrets_proxy' not in config:
        raise ConfigError(
            f"Missing 'secrets_proxy' section in config at {config_path}\n"
            f"Required format:\n"
            f"secrets_proxy:\n"
            f"  base_url: https://secrets.example.com/\n"
            f"  trust_store:\n"
            f"    name: /path/to/truststore.p12"
        )

    proxy = config['secrets_proxy'] or {}

    if 'base_url' not in proxy and not os.getenv("SECRETS_PROXY_URL"):
        raise ConfigError("Missing 'secrets_proxy.base_url' in config")

    trust_store = proxy.get('trust_store')
    if not trust_store or 'name' not in trust_store:
        raise ConfigError(
            "Missing 'secrets_proxy.trust_store.name' in config\n"
            "Please specify the trust-store path (or bundled resource name)."
        )

    timeout = proxy.get('timeout', DEFAULT_TIMEOUT)
    if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout <= 0:
        raise ConfigError(f"Invalid 'secrets_proxy.timeout': {timeout!r} (expected positive seconds)")

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using trust-store: {trust_store['name']}")

    return config


def get_proxy_config() -> SecretsProxyConfig:
    """
    Build the typed proxy configuration.

    The SECRETS_PROXY_URL environment variable overrides the configured
    base_url.
    """
    proxy = load_config()['secrets_proxy']

    base_url = os.getenv("SECRETS_PROXY_URL")
    if base_url:
        logger.debug(f"Using SECRETS_PROXY_URL from environment: {base_url}")
    else:
        base_url = proxy['base_url']

    ts = proxy['trust_store']
    password = ts.get('password')
    return SecretsProxyConfig(
        base_url=str(base_url),
        timeout=proxy.get('timeout', DEFAULT_TIMEOUT),
        trust_store=TrustStoreConfig(
            name=str(ts['name']),
            type=str(ts.get('type', DEFAULT_TRUST_STORE_TYPE)),
            password=str(password) if password is not None else None,
            file_resource=bool(ts.get('file_resource', True)),
        ),
    )
