"""Named places a Git hosting token can be read from."""

import os
from typing import Any, List, Mapping, Optional

import boto3

from gitproxy.config.models import ProxyConfig, TokenSourceKind
from gitproxy.utils.logger import get_logger

logger = get_logger(__name__)


class TokenSourceError(Exception):
    """Raised when a token source cannot be read."""


class EnvironmentTokenSource:
    """Reads a token from an environment variable."""

    def __init__(self, name: str, environ: Optional[Mapping[str, str]] = None):
        self.name = name
        self._environ = os.environ if environ is None else environ

    def read(self) -> Optional[str]:
        return self._environ.get(self.name)

    def __repr__(self):
        return f"EnvironmentTokenSource({self.name!r})"


class ParameterStoreTokenSource:
    """Reads a token from AWS Systems Manager Parameter Store.

    The value is fetched on every call; tokens are never kept in memory
    between requests.
    """

    def __init__(self, parameter_name: str, ssm_client: Any):
        self.name = parameter_name
        self._ssm_client = ssm_client

    def read(self) -> Optional[str]:
        """Retrieve the parameter value.

        Returns:
            str: Parameter value.

        Raises:
            TokenSourceError: If parameter retrieval fails.
        """
        try:
            response = self._ssm_client.get_parameter(
                Name=self.name, WithDecryption=True
            )
            return response["Parameter"]["Value"]
        except Exception as e:
            raise TokenSourceError(
                f"Failed to retrieve parameter '{self.name}': {e}"
            ) from e

    def __repr__(self):
        return f"ParameterStoreTokenSource({self.name!r})"


def build_token_sources(config: ProxyConfig,
                        environ: Optional[Mapping[str, str]] = None,
                        ssm_client: Any = None) -> List[Any]:
    """Instantiate the configured token sources in priority order.

    Args:
        config: Proxy configuration holding the source list.
        environ: Mapping environment sources read from. Defaults to
            `os.environ`.
        ssm_client: Parameter Store client. Created with boto3 on first need
            when not given.

    Returns:
        list: Objects with a `name` attribute and a `read()` method.
    """
    sources = []
    for source_config in config.token_sources:
        if source_config.kind == TokenSourceKind.ENVIRONMENT:
            sources.append(EnvironmentTokenSource(source_config.name, environ))
        elif source_config.kind == TokenSourceKind.PARAMETER_STORE:
            if ssm_client is None:
                ssm_client = _ssm_client(config.aws_region)
            sources.append(ParameterStoreTokenSource(source_config.name, ssm_client))
        else:
            raise TokenSourceError(f"Unsupported token source: {source_config}")
    return sources


def _ssm_client(region: Optional[str]) -> Any:
    if region:
        return boto3.client("ssm", region_name=region)
    return boto3.client("ssm")

