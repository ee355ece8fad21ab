"""Logging utilities for the Git proxy."""

import json
import logging
import os
from typing import Optional

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON.

        Args:
            record: Log record to format.

        Returns:
            str: JSON formatted log message.
        """
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Fields passed through `extra=`
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        handler = logging.StreamHandler()
        handler.setLevel(logger.level)

        if os.environ.get("LOG_FORMAT", "").lower() == "json":
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

        # Prevent duplicate logs
        logger.propagate = False

    return logger


def log_request(logger: logging.Logger, method: str, path: str,
                user_agent: Optional[str] = None) -> None:
    """Log incoming request details.

    Headers are never logged wholesale so that credentials cannot leak.

    Args:
        logger: Logger instance.
        method: HTTP method of the inbound request.
        path: Wildcard path captured by the proxy route.
        user_agent: Inbound User-Agent, if any.
    """
    request_info = {
        "method": method,
        "path": path,
        "user_agent": user_agent,
    }

    logger.info("Incoming request %s %s", method, path, extra=request_info)


def log_response(logger: logging.Logger, status_code: int,
                 streamed: bool) -> None:
    """Log response details.

    Args:
        logger: Logger instance.
        status_code: HTTP status code.
        streamed: Whether the body is relayed as a stream.
    """
    response_info = {"status_code": status_code, "streamed": streamed}

    logger.info("Outgoing response %d", status_code, extra=response_info)
