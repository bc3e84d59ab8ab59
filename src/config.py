"""Configuration management for the Currency Insights Dashboard."""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from src.utils.errors import ConfigurationError
from src.utils.logging import setup_logging
from src.utils.paths import resolve_config_path
from src.utils.validation import parse_bool

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = "https://cews-backend.onrender.com"

# Seconds; prediction gets the largest budget since it is the most expensive upstream computation
DEFAULT_TIMEOUTS: Dict[str, float] = {
    "prediction": 40.0,
    "prediction_retry": 20.0,
    "correlation": 8.0,
    "volatility": 10.0,
    "anomalies": 8.0,
    "news": 10.0,
    "exchange_rate": 10.0,
    "historical": 15.0,
    "alerts": 15.0,
    "health": 5.0,
}

# Seconds the client waits beyond the proxy's own prediction budgets
CLIENT_TIMEOUT_MARGIN = 5.0


class Config:
    """Application configuration."""

    def __init__(self, config_path: str = "config.yaml", configure_logging: bool = True):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file
            configure_logging: Apply the ``logging`` section on load
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load(configure_logging)

    def _load(self, configure_logging: bool) -> None:
        """Load configuration from YAML and environment."""
        load_dotenv()

        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            self._config = yaml.safe_load(f)

        if not self._config:
            raise ConfigurationError(f"Empty configuration file: {self.config_path}")

        self._validate()

        if configure_logging:
            log_config = self._config.get('logging', {})
            setup_logging(
                level=os.getenv('LOG_LEVEL', log_config.get('level', 'INFO')),
                log_file=log_config.get('file'),
                format_type=log_config.get('format', 'json'),
                enabled=log_config.get('enabled', True)
            )

        logger.info("Configuration loaded successfully")

    def _validate(self) -> None:
        """Validate required configuration sections."""
        required_sections = ['app', 'upstream']

        for section in required_sections:
            if section not in self._config:
                raise ConfigurationError(f"Missing required config section: {section}")

        if not isinstance(self._config['upstream'], dict) or 'base_url' not in self._config['upstream']:
            raise ConfigurationError("Missing upstream.base_url in config")

        timeouts = self._config['upstream'].get('timeouts') or {}
        for name, value in timeouts.items():
            try:
                seconds = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Invalid timeout for {name}: {value!r}")
            if seconds <= 0:
                raise ConfigurationError(f"Timeout for {name} must be positive, got {seconds}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-separated key.

        Args:
            key: Dot-separated key (e.g., "upstream.base_url")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def get_env(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get environment variable."""
        return os.getenv(key, default)

    @property
    def app_name(self) -> str:
        """Get application name."""
        return self.get('app.name', 'Currency Insights Dashboard')

    @property
    def app_version(self) -> str:
        """Get application version."""
        return self.get('app.version', '0.1.0')

    @property
    def debug(self) -> bool:
        """Get debug mode."""
        return bool(self.get('app.debug', False))

    @property
    def upstream_base_url(self) -> str:
        """Analytics backend base URL; ANALYTICS_API_URL wins over the file."""
        url = os.getenv('ANALYTICS_API_URL') or self.get('upstream.base_url', DEFAULT_UPSTREAM_URL)
        return str(url).rstrip('/')

    def timeout_for(self, resource: str) -> float:
        """Total time budget in seconds for one upstream call to ``resource``."""
        configured = self.get(f'upstream.timeouts.{resource}')
        if configured is not None:
            return float(configured)
        return DEFAULT_TIMEOUTS.get(resource, 10.0)

    @property
    def timeouts(self) -> Dict[str, float]:
        """All resource time budgets, configured values over defaults."""
        merged = dict(DEFAULT_TIMEOUTS)
        for name in (self.get('upstream.timeouts') or {}):
            merged[name] = self.timeout_for(name)
        return merged

    @property
    def client_base_url(self) -> str:
        """Base URL the data-access client uses to reach the proxy routes."""
        return str(self.get('client.base_url', 'http://127.0.0.1:8000')).rstrip('/')

    @property
    def client_timeout(self) -> float:
        """Client request timeout, never shorter than the full prediction plan.

        A prediction that times out is retried once by the proxy, so the client
        must outlast both stages to receive the retried answer.
        """
        configured = float(self.get('client.timeout', 65))
        prediction_plan = self.timeout_for('prediction') + self.timeout_for('prediction_retry')
        return max(configured, prediction_plan + CLIENT_TIMEOUT_MARGIN)

    @property
    def use_mock_data(self) -> bool:
        """Serve synthesized data when the backend is unavailable (development only)."""
        env_value = os.getenv('DASHBOARD_USE_MOCK_DATA')
        if env_value is not None:
            return parse_bool(env_value)
        return bool(self.get('data.use_mock_data', False))

    @property
    def default_pair(self) -> Tuple[str, str]:
        """Currency pair used when a request names none."""
        return (
            str(self.get('defaults.base', 'USD')).upper(),
            str(self.get('defaults.target', 'AUD')).upper(),
        )


# Global config instance
_config: Optional[Config] = None


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and return global configuration instance."""
    global _config
    if _config is None:
        path = config_path or os.getenv('DASHBOARD_CONFIG', 'config.yaml')
        _config = Config(str(resolve_config_path(path)))
    return _config


def get_config() -> Config:
    """Get global configuration instance."""
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config


def reset_config() -> None:
    """Drop the global instance so the next load_config() re-reads the file."""
    global _config
    _config = None
