"""Rebuilds the upstream Git URL from the proxy's wildcard path."""

import re
from typing import Optional, Sequence

_COLLAPSED_SCHEME = re.compile(r"^(https?:)/(?!/)", re.IGNORECASE)
_FULL_SCHEME = re.compile(r"^https?://", re.IGNORECASE)

DEFAULT_SCHEME = "https://"


class InvalidUpstreamTargetError(Exception):
    """Raised when the wildcard path cannot be turned into an upstream URL."""


def build_upstream_url(segments: Optional[Sequence[str]],
                       query_string: Optional[str] = "") -> str:
    """Build the absolute upstream URL for a proxied Git request.

    Git clients hand the proxy a full URL as the wildcard path, so the
    segments can look like ``["https:", "", "github.com", "o", "r.git"]``
    or, once a router has collapsed the double slash, ``["https:",
    "github.com", ...]``, or carry no scheme at all.

    Args:
        segments: Path segments captured by the wildcard route.
        query_string: Raw query string, with or without its leading ``?``.

    Returns:
        str: Absolute ``http``/``https`` URL with the query appended verbatim.

    Raises:
        InvalidUpstreamTargetError: If there are no segments or they cannot
            be joined.
    """
    if not segments:
        raise InvalidUpstreamTargetError("Missing upstream URL segments")
    try:
        url = "/".join(segments)
    except TypeError as e:
        raise InvalidUpstreamTargetError(
            f"Invalid upstream URL segments: {e}"
        ) from e

    url = _COLLAPSED_SCHEME.sub(r"\1//", url, count=1)
    if not _FULL_SCHEME.match(url):
        url = DEFAULT_SCHEME + url

    if query_string:
        if not query_string.startswith("?"):
            query_string = "?" + query_string
        url += query_string
    return url


def split_path(path: str) -> list:
    """Split a captured wildcard path into segments, keeping empty ones."""
    return path.split("/") if path else []
