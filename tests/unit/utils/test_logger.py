"""Unit tests for logging utilities."""

import json
import logging
import sys
from unittest.mock import patch

from gitproxy.utils.logger import (
    StructuredFormatter,
    get_logger,
    log_request,
    log_response,
)


def make_record(msg="Forwarding %s request", args=("GET",), **extra):
    record = logging.LogRecord(
        name="gitproxy.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg=msg, args=args, exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test cases for StructuredFormatter class."""

    def test_format_basic_fields(self):
        """Test the JSON entry carries level, logger and message."""
        entry = json.loads(StructuredFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "gitproxy.test"
        assert entry["message"] == "Forwarding GET request"
        assert "timestamp" in entry

    def test_format_includes_extra_fields(self):
        """Test fields passed through `extra` are part of the entry."""
        record = make_record(status_code=404, target_url="https://github.com/o/r.git")

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["status_code"] == 404
        assert entry["target_url"] == "https://github.com/o/r.git"
        assert "pathname" not in entry
        assert "args" not in entry

    def test_format_exception(self):
        """Test exception info is rendered."""
        try:
            raise ValueError("bad segment")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(record))

        assert "ValueError: bad segment" in entry["exception"]


class TestGetLogger:
    """Test cases for get_logger."""

    def test_get_logger_configures_once(self):
        """Test repeated calls do not stack handlers."""
        logger = get_logger("gitproxy.tests.once")
        get_logger("gitproxy.tests.once")

        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_get_logger_level_from_environment(self):
        """Test LOG_LEVEL controls the logger level."""
        with patch.dict("os.environ", {"LOG_LEVEL": "warning"}):
            logger = get_logger("gitproxy.tests.level")

        assert logger.level == logging.WARNING

    def test_get_logger_json_format(self):
        """Test LOG_FORMAT=json selects the structured formatter."""
        with patch.dict("os.environ", {"LOG_FORMAT": "json"}):
            logger = get_logger("gitproxy.tests.json")

        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_get_logger_plain_format(self):
        """Test plain text is the default format."""
        with patch.dict("os.environ", {}, clear=True):
            logger = get_logger("gitproxy.tests.plain")

        assert not isinstance(logger.handlers[0].formatter, StructuredFormatter)


class TestRequestLogging:
    """Test cases for log_request and log_response."""

    def test_log_request(self, caplog):
        """Test request logging records method and path."""
        logger = logging.getLogger("gitproxy.tests.request")
        caplog.set_level(logging.INFO)

        log_request(logger, "POST", "https://github.com/o/r.git/git-upload-pack",
                    "git/isomorphic-git")

        record = caplog.records[-1]
        assert record.method == "POST"
        assert record.path == "https://github.com/o/r.git/git-upload-pack"
        assert record.user_agent == "git/isomorphic-git"

    def test_log_response(self, caplog):
        """Test response logging records status and streaming."""
        logger = logging.getLogger("gitproxy.tests.response")
        caplog.set_level(logging.INFO)

        log_response(logger, 200, True)

        record = caplog.records[-1]
        assert record.status_code == 200
        assert record.streamed is True
        assert "Outgoing response 200" in caplog.text
