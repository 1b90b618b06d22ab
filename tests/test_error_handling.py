#!/usr/bin/env python3
"""
Test error handling scenarios for streamcat.py.
"""

import logging
import os
import shutil
import sys
import tempfile
import unittest
from io import BytesIO
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path to import streamcat module
sys.path.insert(0, str(Path(__file__).parent.parent))
import streamcat  # pylint: disable=wrong-import-position

# Disable logging for tests
streamcat.logger.setLevel(logging.CRITICAL)


class TestErrorHandling(unittest.TestCase):
    def setUp(self) -> None:
        # Create a temporary directory
        self.test_dir = tempfile.mkdtemp()

        # Create test files
        self.test_file = os.path.join(self.test_dir, "test.txt")
        with open(self.test_file, "w", encoding="utf-8") as f:
            f.write("Test content\n")

    def tearDown(self) -> None:
        # Clean up the temporary directory
        shutil.rmtree(self.test_dir)

    def test_validate_regular_file(self) -> None:
        streamcat.validate_path(self.test_file)

    def test_validate_stdin(self) -> None:
        """The stdin marker needs no filesystem checks."""
        with patch("os.stat", side_effect=AssertionError("should not stat")):
            streamcat.validate_path("-")

    def test_validate_nonexistent_file(self) -> None:
        missing = os.path.join(self.test_dir, "missing.txt")
        with self.assertRaises(streamcat.PathNotFound) as ctx:
            streamcat.validate_path(missing)
        self.assertEqual(ctx.exception.path, missing)
        self.assertIn("No such file or directory", str(ctx.exception))

    def test_validate_directory(self) -> None:
        with self.assertRaises(streamcat.NotARegularFile) as ctx:
            streamcat.validate_path(self.test_dir)
        self.assertEqual(ctx.exception.path, self.test_dir)

    def test_validate_unreadable_file(self) -> None:
        with patch("os.access", return_value=False):
            with self.assertRaises(streamcat.ReadFailure) as ctx:
                streamcat.validate_path(self.test_file)
        self.assertEqual(ctx.exception.reason, "Permission denied")

    def test_validate_stat_error(self) -> None:
        with patch("os.stat", side_effect=PermissionError(13, "Permission denied")):
            with self.assertRaises(streamcat.ReadFailure):
                streamcat.validate_path(self.test_file)

    def test_read_source(self) -> None:
        self.assertEqual(streamcat.read_source(self.test_file), b"Test content\n")

    def test_read_source_deleted_file(self) -> None:
        """A file removed after validation reports PathNotFound."""
        os.remove(self.test_file)
        with self.assertRaises(streamcat.PathNotFound):
            streamcat.read_source(self.test_file)

    def test_read_source_permission_error(self) -> None:
        with patch(
            "builtins.open", side_effect=PermissionError(13, "Permission denied")
        ):
            with self.assertRaises(streamcat.ReadFailure) as ctx:
                streamcat.read_source(self.test_file)
        self.assertEqual(str(ctx.exception), f"{self.test_file}: Permission denied")

    def test_read_source_io_error(self) -> None:
        with patch("builtins.open", side_effect=OSError(5, "Input/output error")):
            with self.assertRaises(streamcat.ReadFailure) as ctx:
                streamcat.read_source(self.test_file)
        self.assertEqual(ctx.exception.reason, "Input/output error")

    def test_stdin_read_error(self) -> None:
        stream = MagicMock()
        stream.readline.side_effect = OSError(5, "Input/output error")
        with self.assertRaises(streamcat.ReadFailure) as ctx:
            list(streamcat.iter_stdin_chunks(stream))
        self.assertEqual(ctx.exception.path, "-")

    def test_read_failure_keeps_earlier_output(self) -> None:
        """Output for sources before a failing one stays written."""
        second = os.path.join(self.test_dir, "second.txt")
        output = BytesIO()
        with patch(
            "streamcat.read_source",
            side_effect=[b"first\n", streamcat.ReadFailure(second, "gone")],
        ):
            with self.assertRaises(streamcat.ReadFailure):
                streamcat.concatenate(
                    [self.test_file, second], streamcat.OptionSet(), output=output
                )
        self.assertEqual(output.getvalue(), b"first\n")

    def test_errors_share_base_class(self) -> None:
        for error in (
            streamcat.InvalidOption("q"),
            streamcat.PathNotFound("x"),
            streamcat.NotARegularFile("x"),
            streamcat.ReadFailure("x", "boom"),
        ):
            self.assertIsInstance(error, streamcat.CatError)


if __name__ == "__main__":
    unittest.main()
