"""Flask entry point for the Git proxy."""
import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, Response, request

from gitproxy.config.config_loader import ConfigLoader
from gitproxy.config.models import ProxyConfig
from gitproxy.services.auth_service import MissingCredentialError
from gitproxy.services.models import ProxyResponse
from gitproxy.services.proxy_service import ProxyService
from gitproxy.services.upstream_url import InvalidUpstreamTargetError, split_path
from gitproxy.utils.logger import get_logger, log_request, log_response

logger = get_logger(__name__)

PROXY_ROUTE = "/api/git-proxy/<path:path>"
ERROR_PREFIX = "Proxy error: "


def create_app(config: Optional[ProxyConfig] = None,
               proxy_service: Optional[ProxyService] = None) -> Flask:
    """Build the Flask application serving the proxy route.

    Args:
        config: Proxy configuration. Loaded from the environment if omitted.
        proxy_service: Prebuilt relay service, mainly for tests.

    Returns:
        Flask: The configured application.
    """
    if proxy_service is None:
        proxy_service = ProxyService(config or ConfigLoader().load_config())

    app = Flask(__name__)
    # Keep "https://host" intact in the wildcard path.
    app.url_map.merge_slashes = False

    @app.route(PROXY_ROUTE, methods=["GET", "POST"])
    def git_proxy(path: str) -> Response:
        return handle_proxy(proxy_service, path)

    return app


def handle_proxy(proxy_service: ProxyService, path: str) -> Response:
    """Relay the current Flask request and map failures to responses.

    The body is always read here; the relay drops it for bodyless methods.
    """
    method = request.method
    try:
        log_request(logger, method, path, request.headers.get("User-Agent"))
        proxy_response = proxy_service.forward_request(
            method=method,
            segments=split_path(path),
            query_string=request.query_string.decode("latin-1"),
            headers=request.headers,
            body=request.get_data(),
        )
    except InvalidUpstreamTargetError as e:
        logger.warning("Invalid upstream target %r: %s", path, e)
        return _error_response(400, str(e) or "Invalid upstream URL")
    except MissingCredentialError as e:
        return _error_response(401, str(e))
    except Exception as e:
        logger.error("Unexpected error in proxy handler: %s", e, exc_info=True)
        return _error_response(500, str(e) or "Unknown error")

    log_response(logger, proxy_response.status_code, proxy_response.streamed)
    return _to_flask_response(proxy_response)


def _to_flask_response(proxy_response: ProxyResponse) -> Response:
    response = Response(
        proxy_response.body,
        status=proxy_response.status_line,
        headers=proxy_response.headers,
    )
    if "Content-Type" not in proxy_response.headers:
        # Flask adds text/html by default; relay the upstream's absence.
        response.headers.pop("Content-Type", None)
    return response


def _error_response(status_code: int, message: str) -> Response:
    log_response(logger, status_code, False)
    return Response(ERROR_PREFIX + message, status=status_code,
                    content_type="text/plain")


def main() -> None:
    """Run the proxy with Flask's built-in server."""
    load_dotenv()
    app = create_app()
    host = os.environ.get("GIT_PROXY_HOST", "127.0.0.1")
    port = int(os.environ.get("GIT_PROXY_PORT", 8787))
    logger.info("Starting Git proxy on %s:%d", host, port)
    logger.warning(
        "The proxy sets no upstream timeout; configure one on the WSGI server"
    )
    app.run(
        host=host,
        port=port,
        debug=os.environ.get("DEBUG", "False").lower() == "true",
    )


if __name__ == "__main__":
    main()
