"""Tests for error descriptions and logging configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from docstage.errors import (
    AuthenticationError,
    DocstageError,
    ServiceError,
    UnsupportedDocumentTypeError,
    describe,
)
from docstage.logging_config import configure_logging


def test_describe_uses_class_name():
    assert describe(ValueError("bad value")) == "ValueError: bad value"


def test_unsupported_type_message():
    exc = UnsupportedDocumentTypeError("unknown")
    assert exc.document_type == "unknown"
    assert describe(exc) == "UnsupportedDocumentTypeError: No extraction strategy for document type 'unknown'"


def test_authentication_is_a_service_error():
    assert issubclass(AuthenticationError, ServiceError)
    assert issubclass(ServiceError, DocstageError)


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_logs_go_to_stderr(capsys, reset_structlog):
    configure_logging("INFO", json_logs=True)
    structlog.get_logger("test").info("stage completed", stage="chunking")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "stage completed"
    assert event["stage"] == "chunking"
    assert event["level"] == "info"


def test_level_filters_events(capsys, reset_structlog):
    configure_logging("WARNING", json_logs=True)
    log = structlog.get_logger("test")
    log.info("hidden")
    log.warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_litellm_logger_quietened(reset_structlog):
    configure_logging("DEBUG")
    assert logging.getLogger("LiteLLM").level == logging.WARNING
