"""Console transfer progress for ftpshell.

Renders TransferProgress updates as a single self-overwriting line,
with speed once enough time has passed to measure it.
"""

import sys
import time
from typing import Optional, TextIO

from ftpshell.ftp.data_channel import TransferProgress


def format_bytes(count: float) -> str:
    """Format a byte count as a human-readable string."""
    if count >= 1024 * 1024:
        return f"{count / (1024 * 1024):.1f} MB"
    elif count >= 1024:
        return f"{count / 1024:.1f} KB"
    else:
        return f"{count:.0f} B"


def format_progress(progress: TransferProgress) -> str:
    """
    Progress text without speed.

    A zero total means the size is unknown: only the byte count is shown.
    """
    percent = progress.percent
    if percent is None:
        return f"Progress: {progress.bytes_transferred} bytes"
    return (
        f"Progress: {progress.bytes_transferred}/{progress.bytes_total} bytes "
        f"({percent:.1f}%)"
    )


class ConsoleProgress:
    """Progress callback writing to a terminal stream."""

    # Minimum interval between speed measurements (seconds)
    SPEED_WINDOW = 0.5

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Initialize the renderer.

        Args:
            stream: Output stream (default stdout)
        """
        self._stream = stream or sys.stdout
        self._active = False
        self._last_time: Optional[float] = None
        self._last_bytes = 0
        self._speed = ""

    def __call__(self, progress: TransferProgress) -> None:
        now = time.monotonic()
        if not self._active:
            self._active = True
            self._last_time = now
            self._last_bytes = 0
            self._speed = ""

        elapsed = now - self._last_time
        if elapsed >= self.SPEED_WINDOW:
            rate = (progress.bytes_transferred - self._last_bytes) / elapsed
            self._speed = f"  {format_bytes(rate)}/s"
            self._last_time = now
            self._last_bytes = progress.bytes_transferred

        self._stream.write(f"\r{format_progress(progress)}{self._speed}")
        self._stream.flush()

    def finish(self) -> None:
        """End the progress line, if one was started."""
        if self._active:
            self._stream.write("\n")
            self._stream.flush()
        self._active = False
