"""Background keep-alive for ftpshell.

Provides KeepAliveState enum, KeepAliveConfig dataclass, the
is_connection_dead() error classifier and KeepAliveLoop, a daemon
thread that sends NOOP on an idle cadence through the same control
channel exchange the foreground uses.
"""

import errno
import logging
import socket
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ftpshell.ftp.connection import ControlChannel
from ftpshell.ftp.exceptions import FTPConnectionClosedError, FTPError, FTPReplyError
from ftpshell.ftp.response import Response

logger = logging.getLogger("ftpshell.keepalive")

_FATAL_ERRNOS = {
    errno.ECONNRESET,
    errno.ECONNABORTED,
    errno.ECONNREFUSED,
    errno.EPIPE,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ENOTCONN,
    errno.EBADF,
}

_FATAL_MESSAGES = (
    "connection reset",
    "broken pipe",
    "connection refused",
    "network is unreachable",
)


class KeepAliveState(Enum):
    """Keep-alive lifecycle state."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class KeepAliveConfig:
    """Keep-alive cadence."""
    interval: float = 30
    extended_interval: float = 120
    success_threshold: int = 5

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.interval <= 0 or self.extended_interval <= 0:
            raise ValueError("Keep-alive intervals must be positive")
        if self.success_threshold < 0:
            raise ValueError(f"Success threshold must be >= 0, got {self.success_threshold}")


def is_connection_dead(error: BaseException) -> bool:
    """
    Decide whether a probe failure means the control connection is gone.

    Args:
        error: Exception raised by the probe exchange

    Returns:
        True for end of stream, timeouts and reset/broken-pipe/refused/
        unreachable conditions
    """
    if isinstance(error, FTPConnectionClosedError):
        return True
    if isinstance(error, (socket.timeout, TimeoutError)):
        return True
    if isinstance(error, (ConnectionError, EOFError)):
        return True
    if isinstance(error, OSError) and error.errno in _FATAL_ERRNOS:
        return True

    text = str(error).lower()
    return any(marker in text for marker in _FATAL_MESSAGES)


class KeepAliveLoop:
    """
    Periodic NOOP probe for an authenticated session.

    The only state shared with the foreground is the control channel's
    exchange lock, the stop/acknowledge pair and the one-shot
    connection-lost signal.
    """

    PROBE_COMMAND = "NOOP"

    def __init__(
        self,
        channel: ControlChannel,
        config: Optional[KeepAliveConfig] = None,
        on_connection_lost: Optional[Callable[[BaseException], None]] = None,
        on_probe: Optional[Callable[[Response], None]] = None,
        is_active: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the loop.

        Args:
            channel: Control channel shared with the foreground
            config: Cadence settings
            on_connection_lost: Called once, from the worker thread, when
                a probe fails fatally
            on_probe: Called with each successful probe reply
            is_active: Probes are only sent while this returns True
        """
        self._channel = channel
        self._config = config or KeepAliveConfig()
        self._on_connection_lost = on_connection_lost
        self._on_probe = on_probe
        self._is_active = is_active or (lambda: True)

        self._state = KeepAliveState.IDLE
        self._state_lock = threading.Lock()
        self._stop_requested = threading.Event()
        self._finished = threading.Event()
        self._connection_lost = threading.Event()
        self._lost_error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

        self._interval = self._config.interval
        self._consecutive_successes = 0

    @property
    def state(self) -> KeepAliveState:
        """Current loop state."""
        return self._state

    @property
    def interval(self) -> float:
        """Seconds until the next probe."""
        return self._interval

    @property
    def consecutive_successes(self) -> int:
        return self._consecutive_successes

    @property
    def connection_lost(self) -> threading.Event:
        """Set once when a probe detects an unrecoverable transport error."""
        return self._connection_lost

    @property
    def lost_error(self) -> Optional[BaseException]:
        return self._lost_error

    def start(self) -> None:
        """Start probing in a background thread."""
        with self._state_lock:
            if self._state != KeepAliveState.IDLE:
                raise RuntimeError("Keep-alive already started")
            self._state = KeepAliveState.RUNNING

        self._thread = threading.Thread(
            target=self._run, name="ftpshell-keepalive", daemon=True
        )
        self._thread.start()
        logger.debug(f"Keep-alive started (interval={self._interval}s)")

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Request the loop to stop and wait for it to acknowledge.

        Safe to call any number of times; stopping a loop that never
        started or has already stopped returns immediately.

        Args:
            timeout: Maximum time to wait for acknowledgment (None = forever)

        Returns:
            True if the worker has finished
        """
        with self._state_lock:
            if self._state == KeepAliveState.IDLE:
                self._state = KeepAliveState.STOPPED
                self._finished.set()
                return True
            if self._state == KeepAliveState.STOPPED:
                return True
            self._state = KeepAliveState.STOPPING
            self._stop_requested.set()

        if threading.current_thread() is self._thread:
            # Called from a callback on the worker itself
            return False

        finished = self._finished.wait(timeout)
        if finished:
            logger.debug("Keep-alive stopped")
        return finished

    def _run(self) -> None:
        """Internal method that runs in the background thread."""
        try:
            while not self._stop_requested.wait(self._interval):
                self.tick()
                if self._state == KeepAliveState.STOPPED:
                    break
        finally:
            with self._state_lock:
                self._state = KeepAliveState.STOPPED
            self._finished.set()

    def tick(self) -> None:
        """
        Send one probe if the session is active and the channel is free.

        A busy channel means a foreground exchange is in flight, which
        already proves the connection is alive, so the probe is skipped.
        """
        if not self._is_active() or self._stop_requested.is_set():
            return
        if not self._channel.try_acquire():
            logger.debug("Control channel busy, skipping keep-alive probe")
            return

        fatal_error: Optional[BaseException] = None
        reply: Optional[Response] = None
        try:
            response = self._channel.execute(self.PROBE_COMMAND)
            if not response.is_success:
                raise FTPReplyError(self.PROBE_COMMAND, response)
        except (FTPError, OSError) as e:
            if is_connection_dead(e):
                fatal_error = e
            else:
                logger.warning(f"Keep-alive failed: {e}")
                self._consecutive_successes = 0
                self._interval = self._config.interval
        else:
            self._record_success()
            reply = response
        finally:
            self._channel.release()

        if fatal_error is not None:
            self._signal_connection_lost(fatal_error)
        elif reply is not None and self._on_probe:
            self._on_probe(reply)

    def _record_success(self) -> None:
        self._consecutive_successes += 1
        if self._consecutive_successes > self._config.success_threshold:
            self._interval = self._config.extended_interval
        else:
            self._interval = self._config.interval
        logger.debug(
            f"Keep-alive ok ({self._consecutive_successes} in a row, "
            f"next in {self._interval}s)"
        )

    def _signal_connection_lost(self, error: BaseException) -> None:
        with self._state_lock:
            if self._connection_lost.is_set():
                return
            self._state = KeepAliveState.STOPPED
            self._lost_error = error
            self._connection_lost.set()

        logger.error(f"Server connection lost: {error}")
        if self._on_connection_lost:
            self._on_connection_lost(error)
