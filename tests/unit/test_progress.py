"""Unit tests for console progress rendering."""

import io
from unittest.mock import patch

from ftpshell.cli.progress import ConsoleProgress, format_bytes, format_progress
from ftpshell.ftp.data_channel import TransferProgress


class TestFormatting:
    """Tests for the text helpers."""

    def test_format_bytes(self):
        assert format_bytes(512) == "512 B"
        assert format_bytes(2048) == "2.0 KB"
        assert format_bytes(5 * 1024 * 1024) == "5.0 MB"

    def test_known_total(self):
        text = format_progress(TransferProgress(512, 2048))
        assert text == "Progress: 512/2048 bytes (25.0%)"

    def test_unknown_total(self):
        """Test a zero total shows only the byte count."""
        assert format_progress(TransferProgress(4096, 0)) == "Progress: 4096 bytes"
        assert format_progress(TransferProgress(0, 0)) == "Progress: 0 bytes"


class TestConsoleProgress:
    """Tests for the self-overwriting progress line."""

    def test_overwrites_line(self):
        stream = io.StringIO()
        progress = ConsoleProgress(stream)

        with patch("ftpshell.cli.progress.time.monotonic", return_value=100.0):
            progress(TransferProgress(10, 20))
            progress(TransferProgress(20, 20))

        assert stream.getvalue() == (
            "\rProgress: 10/20 bytes (50.0%)"
            "\rProgress: 20/20 bytes (100.0%)"
        )

    def test_speed_after_window(self):
        """Test speed is shown once the measurement window has passed."""
        stream = io.StringIO()
        progress = ConsoleProgress(stream)

        with patch("ftpshell.cli.progress.time.monotonic", side_effect=[100.0, 101.0]):
            progress(TransferProgress(0, 0))
            progress(TransferProgress(2048, 0))

        assert stream.getvalue().endswith("\rProgress: 2048 bytes  2.0 KB/s")

    def test_finish_ends_line_once(self):
        stream = io.StringIO()
        progress = ConsoleProgress(stream)

        progress.finish()
        assert stream.getvalue() == ""

        progress(TransferProgress(1, 0))
        progress.finish()
        progress.finish()
        assert stream.getvalue().endswith("bytes\n")
        assert stream.getvalue().count("\n") == 1
