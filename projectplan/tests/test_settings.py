import logging
import unittest
from datetime import date
from unittest.mock import patch

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from projectplan.config.settings import Settings, _as_bool, _as_date
from projectplan.utils.logger import LOG_FORMAT, configure_logging


class SettingsTestCase(unittest.TestCase):
    def test_bool_parsing(self):
        for value in ("1", "true", "Yes", " ON "):
            self.assertTrue(_as_bool(value))
        for value in ("0", "false", "no", ""):
            self.assertFalse(_as_bool(value))

    def test_date_parsing(self):
        self.assertEqual(_as_date("2025-04-01"), date(2025, 4, 1))
        self.assertIsNone(_as_date(""))

    def test_validate_accepts_defaults(self):
        with patch.object(Settings, "DEFAULT_UNIT_COST", 0.0), patch.object(
            Settings, "ALLOCATION_PERCENTAGE", 100
        ), patch.object(Settings, "SHOW_DATES", False):
            self.assertEqual(Settings.validate(), [])

    def test_validate_reports_problems(self):
        with patch.object(Settings, "DEFAULT_UNIT_COST", -1.0), patch.object(
            Settings, "ALLOCATION_PERCENTAGE", 150
        ), patch.object(Settings, "SHOW_DATES", True), patch.object(
            Settings, "PROJECT_START", None
        ):
            problems = Settings.validate()
        self.assertEqual(len(problems), 3)


class LoggerTestCase(unittest.TestCase):
    def test_configure_logging_is_idempotent(self):
        name = "projectplan.tests.logger"
        logger = configure_logging(name, level="DEBUG")
        configure_logging(name, level="DEBUG")

        handlers = [h for h in logger.handlers if getattr(h, "_projectplan", False)]
        self.assertEqual(len(handlers), 1)
        self.assertEqual(handlers[0].formatter._fmt, LOG_FORMAT)
        self.assertEqual(logger.level, logging.DEBUG)

        logger.removeHandler(handlers[0])


if __name__ == "__main__":
    unittest.main()
