"""
Tests for logging helpers.
"""

import logging
import os
import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from memeforge.services.logging_service import (
    LOG_LEVEL_ENV,
    log_file_for,
    prune_old_logs,
    resolve_level,
)


class TestResolveLevel(unittest.TestCase):

    def setUp(self):
        self._env = patch.dict(os.environ, {}, clear=False)
        self._env.start()
        os.environ.pop(LOG_LEVEL_ENV, None)

    def tearDown(self):
        self._env.stop()

    def test_names_and_numbers(self):
        self.assertEqual(resolve_level("debug"), logging.DEBUG)
        self.assertEqual(resolve_level(logging.ERROR), logging.ERROR)
        self.assertEqual(resolve_level(None), logging.INFO)
        self.assertEqual(resolve_level("nonsense"), logging.INFO)

    def test_environment_wins(self):
        os.environ[LOG_LEVEL_ENV] = "WARNING"
        self.assertEqual(resolve_level(logging.DEBUG), logging.WARNING)


class TestLogFiles(unittest.TestCase):

    def test_daily_file_name(self):
        path = log_file_for(Path("/logs"), datetime(2024, 3, 9))
        self.assertEqual(path, Path("/logs/memeforge_20240309.log"))

    def test_prune_removes_only_old_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp)
            old = log_file_for(log_dir, datetime.now() - timedelta(days=30))
            recent = log_file_for(log_dir, datetime.now() - timedelta(days=1))
            other = log_dir / "notes.txt"
            for path in (old, recent, other):
                path.write_text("x")

            self.assertEqual(prune_old_logs(log_dir, keep_days=14), 1)
            self.assertFalse(old.exists())
            self.assertTrue(recent.exists())
            self.assertTrue(other.exists())


if __name__ == "__main__":
    unittest.main()
