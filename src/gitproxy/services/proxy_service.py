"""Proxy service relaying Git smart-HTTP requests to the upstream host."""
from http.cookiejar import DefaultCookiePolicy
from typing import Dict, Iterator, Mapping, Optional, Sequence

import requests

from gitproxy.config.models import ProxyConfig
from gitproxy.services.auth_service import AuthService
from gitproxy.services.models import ProxyResponse, UpstreamRequest
from gitproxy.services.upstream_url import build_upstream_url
from gitproxy.utils.logger import get_logger

logger = get_logger(__name__)


class ProxyError(Exception):
    """Raised when proxy operations fail."""


class UpstreamTransportError(ProxyError):
    """Raised when the upstream host cannot be reached."""


def create_upstream_session() -> requests.Session:
    """Build a session that sends only the headers the proxy sets.

    Environment settings (netrc credentials, proxies, CA bundles) are
    ignored, no default headers are added and every cookie is rejected.
    """
    session = requests.Session()
    session.trust_env = False
    session.headers.clear()
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return session


class UpstreamBody:
    """Lazy upstream response body.

    Iterates the upstream stream chunk by chunk. The WSGI server calls
    `close()` when the response finishes or the caller disconnects, which
    releases the upstream connection and the session that opened it.
    """

    def __init__(self, response: requests.Response, chunk_size: int,
                 session: Optional[requests.Session] = None):
        self._response = response
        self._chunk_size = chunk_size
        self._session = session

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_content(chunk_size=self._chunk_size):
                if chunk:
                    yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._response.close()
        if self._session is not None:
            self._session.close()


class ProxyService:
    """Service for relaying Git smart-HTTP traffic to the upstream host."""

    CHUNK_SIZE = 8192
    # Inbound headers forwarded upstream, keyed by their lowercase name.
    _FORWARDED_REQUEST_HEADERS = {
        "accept": "Accept",
        "content-type": "Content-Type",
        "git-protocol": "Git-Protocol",
    }
    _RELAYED_RESPONSE_HEADERS = ("Content-Type", "Cache-Control")

    def __init__(self, config: ProxyConfig,
                 auth_service: Optional[AuthService] = None,
                 session: Optional[requests.Session] = None):
        self._config = config
        self._auth_service = auth_service or AuthService(config)
        # Injected sessions are shared and left open; otherwise every request
        # gets its own session.
        self._session = session

    def forward_request(
        self,
        method: str,
        segments: Sequence[str],
        query_string: str = "",
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> ProxyResponse:
        """Forward a request to the upstream Git host.

        Args:
            method: HTTP method.
            segments: Wildcard path segments encoding the upstream URL.
            query_string: Raw query string of the inbound request.
            headers: Inbound request headers.
            body: Buffered inbound body (ignored for GET and HEAD).

        Returns:
            `ProxyResponse`: Streamed upstream body on success, upstream error
            text otherwise.

        Raises:
            InvalidUpstreamTargetError: If the upstream URL cannot be built.
            MissingCredentialError: If the host needs a token and none is set.
            UpstreamTransportError: If the upstream call fails.
        """
        upstream = self.prepare_request(method, segments, query_string,
                                        headers or {}, body)
        logger.info(
            "Forwarding %s request to %s", upstream.method, upstream.url,
            extra={
                "method": upstream.method,
                "target_url": upstream.url,
                "authenticated": "Authorization" in upstream.headers,
                "body_size": len(upstream.body) if upstream.body is not None else 0,
            },
        )
        owned_session = None
        session = self._session
        if session is None:
            session = owned_session = create_upstream_session()
        try:
            response = session.request(
                method=upstream.method,
                url=upstream.url,
                headers=upstream.headers,
                data=upstream.body,
                stream=True,
            )
        except requests.RequestException as e:
            if owned_session is not None:
                owned_session.close()
            logger.error("Upstream request to %s failed: %s", upstream.url, e)
            raise UpstreamTransportError(
                f"Upstream request failed: {e}"
            ) from e

        logger.info(
            "Received response from %s", upstream.url,
            extra={
                "target_url": upstream.url,
                "status_code": response.status_code,
            },
        )
        body = UpstreamBody(response, self.CHUNK_SIZE, owned_session)
        if not 200 <= response.status_code < 300:
            return self._relay_error(response, body)
        return self._relay_stream(response, body)

    def prepare_request(self, method: str, segments: Sequence[str],
                        query_string: str, headers: Mapping[str, str],
                        body: Optional[bytes]) -> UpstreamRequest:
        """Translate the inbound request into the upstream request."""
        method = method.upper()
        url = build_upstream_url(segments, query_string)
        forwarded_headers = self._prepare_headers(headers)
        auth_header = self._auth_service.get_auth_header(url)
        if auth_header:
            forwarded_headers["Authorization"] = auth_header
        if method in self._config.bodyless_methods:
            body = None
        elif body is None:
            body = b""
        return UpstreamRequest(method=method, url=url,
                               headers=forwarded_headers, body=body)

    def _prepare_headers(self, headers: Mapping[str, str]) -> Dict[str, str]:
        """Keep only the Git smart-HTTP headers and set our User-Agent.

        Args:
            headers: Inbound headers.

        Returns:
            Dict[str, str]: Headers for the upstream request.
        """
        forwarded_headers = {}
        for key, value in headers.items():
            name = self._FORWARDED_REQUEST_HEADERS.get(key.lower())
            if name and value:
                forwarded_headers[name] = value
        forwarded_headers["User-Agent"] = self._config.user_agent
        return forwarded_headers

    def _relay_error(self, response: requests.Response,
                     body: UpstreamBody) -> ProxyResponse:
        status_text = response.reason or ""
        try:
            text = response.text
        except Exception as e:
            logger.warning("Could not read upstream error body: %s", e)
            text = ""
        finally:
            body.close()
        logger.warning("Upstream returned %d %s", response.status_code, status_text)
        return ProxyResponse(
            status_code=response.status_code,
            status_text=status_text,
            headers={"Content-Type": "text/plain"},
            body=text or status_text,
        )

    def _relay_stream(self, response: requests.Response,
                      body: UpstreamBody) -> ProxyResponse:
        relayed_headers = {}
        for name in self._RELAYED_RESPONSE_HEADERS:
            value = response.headers.get(name)
            if value:
                relayed_headers[name] = value
        return ProxyResponse(
            status_code=response.status_code,
            status_text=response.reason or "",
            headers=relayed_headers,
            body=body,
        )
