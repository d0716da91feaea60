"""Tests for bookloan.core.logs."""

import logging
import time
import unittest

from bookloan.core.logs import LOG_DATEFMT, LOG_FORMAT, configure_logging


class TestConfigureLogging(unittest.TestCase):
    def test_timestamps_are_utc(self) -> None:
        configure_logging()
        self.assertIs(logging.Formatter.converter, time.gmtime)
        record = logging.makeLogRecord({"created": 0.0, "msg": "x"})
        formatter = logging.Formatter(LOG_FORMAT, LOG_DATEFMT)
        self.assertEqual(formatter.formatTime(record, LOG_DATEFMT), "1970-01-01T00:00:00Z")


if __name__ == "__main__":
    unittest.main()
