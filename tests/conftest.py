"""Pytest configuration and fixtures."""
import pytest
from pathlib import Path
import tempfile

import httpx
import yaml

from backend.dependencies import reset_dependencies
from src.config import reset_config
from src.proxy.upstream import UpstreamClient


UPSTREAM_URL = "http://upstream.test"


@pytest.fixture
def config_data():
    """Minimal valid configuration mapping."""
    return {
        'app': {
            'name': 'Test Dashboard',
            'version': '0.1.0',
            'debug': True
        },
        'upstream': {
            'base_url': UPSTREAM_URL,
            'timeouts': {
                'prediction': 2,
                'prediction_retry': 1,
                'correlation': 1,
            }
        },
        'client': {
            'base_url': 'http://dashboard.test',
            'timeout': 10
        },
        'data': {
            'use_mock_data': False
        },
        'defaults': {
            'base': 'USD',
            'target': 'AUD'
        },
        'logging': {
            'level': 'DEBUG',
            'format': 'text'
        }
    }


@pytest.fixture
def temp_config_file(config_data):
    """Create a temporary config file for testing."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(config_data, f)
        config_path = f.name

    yield config_path

    # Cleanup
    Path(config_path).unlink()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset global config and proxy singletons and clear override env vars."""
    for name in ('ANALYTICS_API_URL', 'DASHBOARD_USE_MOCK_DATA', 'DASHBOARD_CONFIG', 'LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    reset_dependencies()
    yield
    reset_config()
    reset_dependencies()


@pytest.fixture
def make_upstream():
    """Build an UpstreamClient whose requests are answered by ``handler``."""
    def _make(handler, **timeouts):
        return UpstreamClient(UPSTREAM_URL, timeouts or None, transport=httpx.MockTransport(handler))
    return _make
