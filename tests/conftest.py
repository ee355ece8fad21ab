"""Pytest configuration and fixtures for gitproxy tests."""

import os
import pytest
from unittest.mock import Mock, patch

from requests.structures import CaseInsensitiveDict

from gitproxy.config.models import (
    ProxyConfig,
    TokenSourceConfig,
    TokenSourceKind,
)
from gitproxy.services.auth_service import AuthService
from gitproxy.services.proxy_service import ProxyService


TEST_TOKEN = "abc123"


@pytest.fixture
def sample_config():
    """Sample configuration for testing."""
    return ProxyConfig(
        token_sources=[
            TokenSourceConfig(kind=TokenSourceKind.ENVIRONMENT, name="GITHUB_TOKEN"),
            TokenSourceConfig(kind=TokenSourceKind.ENVIRONMENT, name="GH_TOKEN"),
            TokenSourceConfig(
                kind=TokenSourceKind.ENVIRONMENT,
                name="NEXT_PUBLIC_GITHUB_TOKEN",
                client_visible=True,
            ),
        ],
        user_agent="gitproxy-test/1.0",
    )


@pytest.fixture
def token_environ():
    """Fake environment carrying a GitHub token."""
    return {"GITHUB_TOKEN": TEST_TOKEN}


@pytest.fixture
def auth_service(sample_config, token_environ):
    """AuthService reading tokens from the fake environment."""
    return AuthService(sample_config, environ=token_environ)


@pytest.fixture
def make_upstream_response():
    """Factory for mocked `requests.Response` objects."""

    def _make(status_code=200, reason="OK", headers=None, chunks=(), text=""):
        response = Mock()
        response.status_code = status_code
        response.reason = reason
        response.headers = CaseInsensitiveDict(headers or {})
        response.iter_content.return_value = iter(list(chunks))
        response.text = text
        return response

    return _make


@pytest.fixture
def mock_session(make_upstream_response):
    """Mock requests session returning a streamed 200 response."""
    session = Mock()
    session.request.return_value = make_upstream_response(
        headers={"Content-Type": "application/x-git-upload-pack-advertisement"},
        chunks=[b"001e# service=git-upload-pack\n", b"0000"],
    )
    return session


@pytest.fixture
def proxy_service(sample_config, auth_service, mock_session):
    """ProxyService wired to the fake environment and mock session."""
    return ProxyService(sample_config, auth_service=auth_service,
                        session=mock_session)


@pytest.fixture
def mock_ssm_client():
    """Mock SSM client for testing."""
    with patch("boto3.client") as mock_client:
        mock_ssm = Mock()
        mock_ssm.get_parameter.return_value = {
            "Parameter": {"Value": "ssm-token"}
        }
        mock_client.return_value = mock_ssm
        yield mock_ssm


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    os.environ["LOG_LEVEL"] = "DEBUG"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"
    yield
    # Cleanup
    if "LOG_LEVEL" in os.environ:
        del os.environ["LOG_LEVEL"]
    if "AWS_DEFAULT_REGION" in os.environ:
        del os.environ["AWS_DEFAULT_REGION"]
