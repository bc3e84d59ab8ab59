"""Tests for configuration module."""
from pathlib import Path

import pytest
import yaml

from src.config import CLIENT_TIMEOUT_MARGIN, DEFAULT_TIMEOUTS, Config, get_config, load_config
from src.utils.errors import ConfigurationError
from src.utils.paths import find_project_root, resolve_config_path


def _write(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(data))
    return str(path)


def test_config_load(temp_config_file):
    """Test basic config loading."""
    config = Config(temp_config_file)
    assert config.app_name == 'Test Dashboard'
    assert config.app_version == '0.1.0'
    assert config.debug is True
    assert config.upstream_base_url == 'http://upstream.test'


def test_config_get_nested(temp_config_file):
    """Test getting nested config values."""
    config = Config(temp_config_file)
    assert config.get('upstream.timeouts.prediction') == 2
    assert config.get('defaults.base') == 'USD'


def test_config_get_default(temp_config_file):
    """Test default values."""
    config = Config(temp_config_file)
    assert config.get('nonexistent.key', 'default') == 'default'


def test_config_missing_file():
    """Test error on missing config file."""
    with pytest.raises(ConfigurationError):
        Config('nonexistent.yaml')


def test_config_missing_upstream_section(tmp_path):
    """Test error on missing required section."""
    with pytest.raises(ConfigurationError, match="upstream"):
        Config(_write(tmp_path, {'app': {'name': 'x'}}))


def test_config_missing_base_url(tmp_path):
    """Test error when upstream.base_url is absent."""
    with pytest.raises(ConfigurationError, match="base_url"):
        Config(_write(tmp_path, {'app': {}, 'upstream': {'timeouts': {}}}))


@pytest.mark.parametrize("value", [0, -1, "soon"])
def test_config_invalid_timeout(tmp_path, value):
    """Test error on non-positive or non-numeric timeouts."""
    data = {'app': {}, 'upstream': {'base_url': 'http://x', 'timeouts': {'prediction': value}}}
    with pytest.raises(ConfigurationError, match="prediction"):
        Config(_write(tmp_path, data))


def test_timeouts_merge_defaults(temp_config_file):
    """Test configured timeouts override defaults per resource."""
    config = Config(temp_config_file)
    assert config.timeout_for('prediction') == 2.0
    assert config.timeout_for('volatility') == DEFAULT_TIMEOUTS['volatility']
    assert config.timeouts['prediction_retry'] == 1.0
    assert config.timeouts['alerts'] == DEFAULT_TIMEOUTS['alerts']


def test_env_overrides(temp_config_file, monkeypatch):
    """Test environment variables win over the file."""
    monkeypatch.setenv('ANALYTICS_API_URL', 'https://analytics.example.com/')
    monkeypatch.setenv('DASHBOARD_USE_MOCK_DATA', 'true')
    config = Config(temp_config_file)
    assert config.upstream_base_url == 'https://analytics.example.com'
    assert config.use_mock_data is True


def test_client_settings(temp_config_file):
    """Test client and default pair settings."""
    config = Config(temp_config_file)
    assert config.client_base_url == 'http://dashboard.test'
    assert config.client_timeout == 10.0
    assert config.use_mock_data is False
    assert config.default_pair == ('USD', 'AUD')


def test_client_timeout_outlasts_prediction_retry(tmp_path):
    """Test a short client timeout is raised to cover both prediction stages."""
    data = {
        'app': {},
        'upstream': {'base_url': 'http://x', 'timeouts': {'prediction': 40, 'prediction_retry': 20}},
        'client': {'timeout': 45},
    }
    config = Config(_write(tmp_path, data), configure_logging=False)
    assert config.client_timeout == 40 + 20 + CLIENT_TIMEOUT_MARGIN


def test_shipped_config_client_timeout_covers_prediction_plan():
    """Test the repository config.yaml gives the client room for the retried prediction."""
    shipped = Path(__file__).resolve().parents[2] / 'config.yaml'
    config = Config(str(shipped), configure_logging=False)
    configured = float(config.get('client.timeout'))
    assert configured >= config.timeout_for('prediction') + config.timeout_for('prediction_retry')
    assert config.client_timeout == configured


def test_load_config_singleton(temp_config_file, monkeypatch):
    """Test global instance loading from DASHBOARD_CONFIG."""
    with pytest.raises(ConfigurationError):
        get_config()

    monkeypatch.setenv('DASHBOARD_CONFIG', temp_config_file)
    config = load_config()
    assert get_config() is config
    assert load_config() is config


def test_resolve_config_path(tmp_path, monkeypatch):
    """Test relative config paths resolve against the project root."""
    (tmp_path / 'pyproject.toml').write_text('')
    monkeypatch.setenv('DASHBOARD_ROOT', str(tmp_path))

    assert find_project_root() == tmp_path.resolve()
    assert resolve_config_path('missing/settings.yaml') == (tmp_path / 'missing' / 'settings.yaml').resolve()
    absolute = Path(tmp_path / 'x.yaml')
    assert resolve_config_path(str(absolute)) == absolute
