"""Configuration loader for the Git proxy."""

import os
from typing import List, Mapping, Optional, Sequence

from gitproxy.config.models import (
    DEFAULT_AUTHENTICATED_HOSTS,
    DEFAULT_USER_AGENT,
    ProxyConfig,
    TokenSourceConfig,
    TokenSourceKind,
)
from gitproxy.utils.logger import get_logger

logger = get_logger(__name__)

# Server-only variables first, the client-visible one last.
SERVER_TOKEN_VARIABLES = ("GITHUB_TOKEN", "GH_TOKEN", "PERSONAL_ACCESS_TOKEN")
CLIENT_TOKEN_VARIABLES = ("NEXT_PUBLIC_GITHUB_TOKEN",)

TOKEN_PARAMETER_VARIABLE = "GIT_PROXY_TOKEN_PARAMETER"
REGION_VARIABLES = ("GIT_PROXY_AWS_REGION", "AWS_REGION", "AWS_DEFAULT_REGION")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""


class ConfigLoader:
    """Builds the proxy configuration from the process environment."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        server_token_variables: Sequence[str] = SERVER_TOKEN_VARIABLES,
        client_token_variables: Sequence[str] = CLIENT_TOKEN_VARIABLES,
    ) -> None:
        """
        Initialize the config loader.

        Args:
            environ: Mapping to read settings from. Defaults to `os.environ`.
            server_token_variables: Token variables only the server can read,
                in priority order.
            client_token_variables: Token variables also exposed to client
                code, in priority order. Always scanned after server ones.
        """
        self._environ = os.environ if environ is None else environ
        self._server_token_variables = tuple(server_token_variables)
        self._client_token_variables = tuple(client_token_variables)

    def load_config(self) -> ProxyConfig:
        """
        Load and validate the proxy configuration.

        Token values themselves are not read here; only the ordered list of
        places to read them from at request time.

        Returns:
            `ProxyConfig`: The validated configuration object.

        Raises:
            `ConfigurationError`: If configuration is invalid.
        """
        token_sources = self._token_sources()
        self._validate_token_sources(token_sources)
        config = ProxyConfig(
            token_sources=token_sources,
            authenticated_hosts=DEFAULT_AUTHENTICATED_HOSTS,
            user_agent=DEFAULT_USER_AGENT,
            aws_region=self._aws_region(),
        )
        logger.info(
            "Configuration loaded with %d token source(s): %s",
            len(token_sources),
            ", ".join(f"{s.kind}:{s.name}" for s in token_sources),
        )
        return config

    def _token_sources(self) -> List[TokenSourceConfig]:
        """Build the token source priority list.

        Returns:
            `list[TokenSourceConfig]`: Sources in the order they are scanned.
        """
        sources = [
            TokenSourceConfig(kind=TokenSourceKind.ENVIRONMENT, name=name)
            for name in self._server_token_variables
        ]
        parameter_name = self._environ.get(TOKEN_PARAMETER_VARIABLE)
        if parameter_name is not None:
            if not parameter_name.strip():
                raise ConfigurationError(
                    f"{TOKEN_PARAMETER_VARIABLE} is set but empty"
                )
            sources.append(
                TokenSourceConfig(
                    kind=TokenSourceKind.PARAMETER_STORE,
                    name=parameter_name.strip(),
                )
            )
        sources.extend(
            TokenSourceConfig(
                kind=TokenSourceKind.ENVIRONMENT, name=name, client_visible=True
            )
            for name in self._client_token_variables
        )
        return sources

    @staticmethod
    def _validate_token_sources(sources: List[TokenSourceConfig]) -> None:
        if len(sources) == 0:
            raise ConfigurationError("At least one token source must be configured")
        seen = set()
        for source in sources:
            if not source.name:
                raise ConfigurationError("Token source name cannot be empty")
            key = (source.kind, source.name)
            if key in seen:
                raise ConfigurationError(f"Duplicate token source: {source.name}")
            seen.add(key)

    def _aws_region(self) -> Optional[str]:
        for variable in REGION_VARIABLES:
            value = self._environ.get(variable)
            if value:
                return value
        return None
