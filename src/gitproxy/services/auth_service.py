"""Authentication service deciding which upstream requests carry credentials."""

import base64
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from gitproxy.config.models import AuthenticationScheme, Credential, ProxyConfig
from gitproxy.services.token_sources import TokenSourceError, build_token_sources
from gitproxy.utils.logger import get_logger

logger = get_logger(__name__)

# GitHub accepts a token as the username with this fixed password.
TOKEN_PASSWORD = "x-oauth-basic"


class AuthenticationError(Exception):
    """Raised when authentication operations fail."""


class MissingCredentialError(AuthenticationError):
    """Raised when a provider-authenticated host has no token configured."""


class AuthService:
    """Service for injecting Git hosting credentials into upstream requests."""

    def __init__(self, config: ProxyConfig,
                 environ: Optional[Mapping[str, str]] = None,
                 ssm_client: Any = None,
                 token_sources: Optional[Sequence[Any]] = None):
        """Initialize the authentication service.

        Args:
            config: Proxy configuration.
            environ: Environment mapping for environment token sources.
            ssm_client: Parameter Store client for parameter token sources.
            token_sources: Prebuilt token sources, overriding `config`.
        """
        self._authenticated_hosts = frozenset(
            host.lower() for host in config.authenticated_hosts
        )
        if token_sources is None:
            token_sources = build_token_sources(config, environ, ssm_client)
        self._token_sources = list(token_sources)

    def is_provider_authenticated(self, url: str) -> bool:
        """Whether requests to `url` must carry injected credentials.

        Args:
            url: Absolute upstream URL.

        Returns:
            bool: True when the host is one of the authenticated hosts.
        """
        host = urlsplit(url).hostname
        return bool(host) and host.lower() in self._authenticated_hosts

    def resolve_token(self) -> Optional[str]:
        """Return the first non-empty token from the configured sources.

        A source that fails to read is logged and skipped.
        """
        for source in self._token_sources:
            try:
                value = source.read()
            except TokenSourceError as e:
                logger.warning("Skipping token source %s: %s", source.name, e)
                continue
            if value:
                logger.debug("Resolved token from source: %s", source.name)
                return value
        return None

    def get_credential(self, url: str) -> Optional[Credential]:
        """Resolve the credential to inject for `url`.

        Args:
            url: Absolute upstream URL.

        Returns:
            Credential: The credential, or None if the host is not
            provider-authenticated.

        Raises:
            MissingCredentialError: If the host requires a token and none
                resolves.
        """
        if not self.is_provider_authenticated(url):
            return None
        token = self.resolve_token()
        if not token:
            logger.error("No Git hosting token configured for %s",
                         urlsplit(url).hostname)
            raise MissingCredentialError(
                "GitHub token not configured on server (set GITHUB_TOKEN)"
            )
        return Credential(principal=token, secret=TOKEN_PASSWORD)

    def get_auth_header(self, url: str) -> Optional[str]:
        """Retrieve the Authorization header value for `url`, if any.

        Args:
            url: Absolute upstream URL.

        Returns:
            str: Formatted Authorization header value, or None.

        Raises:
            MissingCredentialError: If the host requires a token and none
                resolves.
        """
        credential = self.get_credential(url)
        if credential is None:
            return None
        return self._build_basic_auth_string(credential)

    def _build_basic_auth_string(self, credential: Credential) -> str:
        """Build a Basic authentication header string."""
        if credential.scheme != AuthenticationScheme.BASIC:
            raise AuthenticationError(
                f"Unsupported authentication scheme: {credential.scheme}"
            )
        auth_string = f"{credential.principal}:{credential.secret}"
        return f"{AuthenticationScheme.BASIC.value} {self._encode_auth_string(auth_string)}"

    @staticmethod
    def _encode_auth_string(auth_string: str) -> str:
        """Encode a string to base64 for authentication headers.

        Args:
            auth_string: String to encode.

        Returns:
            str: Base64-encoded string.
        """
        return base64.b64encode(auth_string.encode("utf-8")).decode("ascii")
