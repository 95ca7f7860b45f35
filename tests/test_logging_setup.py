"""Tests for app.core.logging_setup and the error-kind status mapping in app.main."""

import logging
import time
import unittest
from unittest.mock import patch

from app.core.errors import ErrorKind
from app.core.logging_setup import LOG_DATEFMT, LOG_FORMAT, configure_logging
from app.main import ERROR_STATUS


class TestConfigureLogging(unittest.TestCase):
    """Timestamps carry a trailing Z, so they must be rendered in UTC."""

    def setUp(self) -> None:
        original = logging.Formatter.converter
        self.addCleanup(setattr, logging.Formatter, "converter", original)

    def test_timestamps_are_utc(self) -> None:
        with patch("logging.basicConfig") as basic_config:
            configure_logging("DEBUG")
        basic_config.assert_called_once_with(level="DEBUG", format=LOG_FORMAT, datefmt=LOG_DATEFMT)
        self.assertIs(logging.Formatter.converter, time.gmtime)

        record = logging.makeLogRecord({"name": "bastion", "levelname": "INFO", "msg": "ready"})
        record.created = 0.0
        formatted = logging.Formatter(LOG_FORMAT, LOG_DATEFMT).format(record)
        self.assertEqual(formatted, "1970-01-01T00:00:00Z INFO bastion ready")


class TestErrorStatus(unittest.TestCase):
    """Every error kind maps to exactly one HTTP status."""

    def test_mapping(self) -> None:
        self.assertEqual(
            {kind: ERROR_STATUS[kind] for kind in ErrorKind},
            {
                ErrorKind.INVALID_CREDENTIALS: 401,
                ErrorKind.VALIDATION: 422,
                ErrorKind.CONFLICT: 409,
                ErrorKind.NOT_FOUND: 404,
                ErrorKind.INTERNAL: 500,
            },
        )


if __name__ == "__main__":
    unittest.main()
