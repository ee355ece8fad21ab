"""Configuration models for the Git proxy."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from gitproxy import __version__


DEFAULT_USER_AGENT = f"gitproxy/{__version__} (+python-requests)"
DEFAULT_AUTHENTICATED_HOSTS = ("github.com", "api.github.com")


class AuthenticationScheme(Enum):
    """Scheme of authentication."""
    BASIC = "Basic"

    def __str__(self):
        return self.value


class TokenSourceKind(Enum):
    """Where a token source reads its value from."""
    ENVIRONMENT = "environment"
    PARAMETER_STORE = "parameter_store"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class TokenSourceConfig:
    """A single named place a Git hosting token may be read from."""

    kind: TokenSourceKind
    name: str  # environment variable or SSM parameter name
    client_visible: bool = False  # also readable by the browser bundle


@dataclass(frozen=True)
class Credential:
    """Basic credential pair injected for provider-authenticated hosts."""

    principal: str
    secret: str
    scheme: AuthenticationScheme = AuthenticationScheme.BASIC

    def __repr__(self):
        return f"Credential(scheme={self.scheme}, principal='***', secret='***')"


@dataclass
class ProxyConfig:
    """Main configuration for the proxy."""

    token_sources: List[TokenSourceConfig]
    authenticated_hosts: Tuple[str, ...] = DEFAULT_AUTHENTICATED_HOSTS
    user_agent: str = DEFAULT_USER_AGENT
    aws_region: Optional[str] = None
    bodyless_methods: Tuple[str, ...] = ("GET", "HEAD")
