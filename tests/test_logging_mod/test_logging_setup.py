"""Tests for lldap.logging (setup and secret redaction)."""

from __future__ import annotations

import logging
import sys

from lldap.logging import configure_logging, redact_secrets
from lldap.logging.sanitize import REDACTED
from lldap.logging.setup import TextFormatter


class TestConfigureLogging:
    def test_info_by_default(self):
        logger = configure_logging()
        assert logger.name == "lldap"
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_verbose_enables_debug(self):
        assert configure_logging(verbose=True).level == logging.DEBUG

    def test_single_stderr_handler(self):
        configure_logging()
        logger = configure_logging()
        assert len(logger.handlers) == 1
        handler = logger.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
        assert isinstance(handler.formatter, TextFormatter)


class TestTextFormatter:
    def test_format(self):
        record = logging.LogRecord(
            name="lldap.config",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="key %s generated",
            args=("server_key",),
            exc_info=None,
        )
        line = TextFormatter().format(record)
        assert line.endswith("WARNING  lldap.config: key server_key generated")


class TestRedactSecrets:
    def test_top_level_and_nested(self):
        data = {
            "jwt_secret": "s3cret",
            "ldap_user_pass": "hunter2",
            "http_port": 17170,
            "smtp_options": {"password": "mailpass", "user": "admin"},
        }
        result = redact_secrets(data)
        assert result == {
            "jwt_secret": REDACTED,
            "ldap_user_pass": REDACTED,
            "http_port": 17170,
            "smtp_options": {"password": REDACTED, "user": "admin"},
        }

    def test_empty_secret_kept(self):
        assert redact_secrets({"password": ""}) == {"password": ""}

    def test_input_not_modified(self):
        data = {"jwt_secret": "s3cret"}
        redact_secrets(data)
        assert data == {"jwt_secret": "s3cret"}

    def test_lists_and_scalars(self):
        assert redact_secrets([{"password": "x"}, 1]) == [{"password": REDACTED}, 1]
        assert redact_secrets("plain") == "plain"
