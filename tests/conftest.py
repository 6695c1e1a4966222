"""Shared pytest fixtures and configuration."""

import pytest
import tempfile
from pathlib import Path
from unittest.mock import Mock

from process_agent.config import ConfigResolver, default_settings


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def environ():
    """Isolated process environment, empty unless a test fills it."""
    return {}


@pytest.fixture
def mock_hostname_resolver():
    """Hostname resolver that never shells out."""
    resolver = Mock()
    resolver.resolve.return_value = "test-host"
    return resolver


@pytest.fixture
def resolver(mock_hostname_resolver):
    """Config resolver with a mocked hostname resolver."""
    return ConfigResolver(hostname_resolver=mock_hostname_resolver)


@pytest.fixture
def defaults(environ):
    """Default settings draft built from the isolated environment."""
    return default_settings(environ)


@pytest.fixture
def sample_cmdline():
    """Command line holding secrets in several shapes."""
    return [
        "spidly",
        "--mypasswords=123,456",
        "consul_token",
        "1234",
        "--dd_api_key=1234",
    ]
