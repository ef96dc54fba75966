"""Configuration management for the Local Business Website Enrichment tool."""

import copy
import logging
import os
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv

from bizsift.core.exceptions import ConfigurationError


DEFAULT_CONFIG_PATH = "config/config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    'search': {
        'base_url': 'https://html.duckduckgo.com/html/',
        'timeout': 15,
        'rate_limit': 2.0,
        'max_retries': 0,
        'user_agent': None,
        'country_site': '.ke',
    },
    'scoring': {
        'reject_threshold': -50,
        'high_confidence': 40,
    },
    'enrichment': {
        'batch_size': 3,
        'inter_batch_delay': 1.0,
        'default_location': 'Kenya',
        'retry_threshold': 30,
        'service_url': 'http://localhost:3001',
    },
    'cache': {
        'ttl_seconds': 3600,
    },
    'server': {
        'host': '127.0.0.1',
        'port': 3001,
    },
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'file': 'logs/bizsift.log',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration manager for the application."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file. When omitted,
                ``config/config.yaml`` is used if present, otherwise the
                built-in defaults.

        Raises:
            ConfigurationError: If an explicit path is missing or invalid
        """
        load_dotenv()  # Load environment variables from .env file
        self.config_path = config_path
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file over the defaults."""
        logger = logging.getLogger('bizsift')

        path = self.config_path
        if path is None:
            if not os.path.exists(DEFAULT_CONFIG_PATH):
                logger.debug("No configuration file found, using defaults")
                return copy.deepcopy(DEFAULT_CONFIG)
            path = DEFAULT_CONFIG_PATH

        try:
            with open(path, 'r') as file:
                loaded = yaml.safe_load(file) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML configuration: {e}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        logger.debug(f"Loaded configuration from {path}")
        return _merge(DEFAULT_CONFIG, self._process_env_variables(loaded))

    def _process_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Process environment variable placeholders in configuration."""
        def process_value(value):
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                env_value = os.getenv(env_var)
                if env_value is None:
                    raise ConfigurationError(f"Environment variable not set: {env_var}")
                return env_value
            elif isinstance(value, dict):
                return {k: process_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [process_value(item) for item in value]
            return value

        return process_value(config)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key_path: Dot-separated key path (e.g., 'search.timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    @property
    def search_config(self) -> Dict[str, Any]:
        return self._config.get('search', {})

    @property
    def scoring_config(self) -> Dict[str, Any]:
        return self._config.get('scoring', {})

    @property
    def enrichment_config(self) -> Dict[str, Any]:
        return self._config.get('enrichment', {})

    @property
    def cache_config(self) -> Dict[str, Any]:
        return self._config.get('cache', {})

    @property
    def server_config(self) -> Dict[str, Any]:
        return self._config.get('server', {})

    @property
    def logging_config(self) -> Dict[str, Any]:
        return self._config.get('logging', {})

    def get_all(self) -> Dict[str, Any]:
        """Get entire configuration as dictionary."""
        return copy.deepcopy(self._config)

    def validate(self) -> bool:
        """Validate configuration values.

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        try:
            search = self.search_config
            if float(search.get('timeout', 0)) <= 0:
                raise ConfigurationError("Search timeout must be positive")
            if float(search.get('rate_limit', 0)) < 0:
                raise ConfigurationError("Search rate limit cannot be negative")
            if int(search.get('max_retries', 0)) < 0:
                raise ConfigurationError("Search max retries cannot be negative")

            scoring = self.scoring_config
            if not (0 <= int(scoring.get('high_confidence', -1)) <= 100):
                raise ConfigurationError("High confidence score must be between 0 and 100")
            if int(scoring.get('reject_threshold', 0)) >= int(scoring.get('high_confidence', 0)):
                raise ConfigurationError("Reject threshold must be below the high confidence score")

            enrichment = self.enrichment_config
            if int(enrichment.get('batch_size', 0)) <= 0:
                raise ConfigurationError("Batch size must be positive")
            if float(enrichment.get('inter_batch_delay', -1)) < 0:
                raise ConfigurationError("Inter-batch delay cannot be negative")
            if not (0 <= int(enrichment.get('retry_threshold', -1)) <= 100):
                raise ConfigurationError("Retry threshold must be between 0 and 100")

            if float(self.cache_config.get('ttl_seconds', 0)) <= 0:
                raise ConfigurationError("Cache TTL must be positive")

            port = int(self.server_config.get('port', 0))
            if not (0 < port < 65536):
                raise ConfigurationError(f"Invalid server port: {port}")
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}")

        return True
