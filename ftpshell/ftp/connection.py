"""Control connection for ftpshell.

Provides ConnectionState enum, FTPConnectionConfig dataclass,
and ControlChannel, which owns the control socket and serializes
every command/reply exchange on it.
"""

import logging
import re
import socket
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from ftpshell.ftp.exceptions import (
    FTPConnectionClosedError,
    FTPConnectionError,
    FTPTimeoutError,
)
from ftpshell.ftp.response import ENCODING, Response, ResponseReader

logger = logging.getLogger("ftpshell.control")

_PASS_COMMAND = re.compile(r"^(PASS\s+).*$", re.IGNORECASE)


class ConnectionState(Enum):
    """Control connection state."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    BROKEN = "broken"
    CLOSED = "closed"


@dataclass
class FTPConnectionConfig:
    """Control connection configuration."""
    host: str
    port: int = 2121
    connect_timeout: float = 30
    write_timeout: float = 15
    read_timeout: float = 45

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("Host is required")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")
        for name in ("connect_timeout", "write_timeout", "read_timeout"):
            value = getattr(self, name)
            if not 1 <= value <= 300:
                raise ValueError(f"{name} must be between 1 and 300, got {value}")


def mask_command(command: str) -> str:
    """Hide the argument of a PASS command for display and logging."""
    return _PASS_COMMAND.sub(r"\1****", command)


class ControlChannel:
    """
    The long-lived command connection.

    Every exchange (send one line, read one reply) runs under a single
    reentrant lock. Transfers hold the lock through their whole
    command/data/closing-status sequence via exclusive(), so the
    keep-alive probe can never interleave its lines with theirs.
    """

    def __init__(self, config: FTPConnectionConfig):
        """
        Initialize the channel.

        Args:
            config: Connection configuration
        """
        self._config = config
        self._sock: Optional[socket.socket] = None
        self._file = None
        self._reader: Optional[ResponseReader] = None
        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED

    @classmethod
    def from_socket(cls, sock: socket.socket, config: FTPConnectionConfig) -> "ControlChannel":
        """Wrap an already connected socket."""
        channel = cls(config)
        channel._attach(sock)
        return channel

    @property
    def config(self) -> FTPConnectionConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def peer_host(self) -> str:
        """Remote host of the control connection, as seen by the socket."""
        if self._sock is None:
            return self._config.host
        try:
            peer = self._sock.getpeername()
        except OSError:
            return self._config.host
        # Non-IP sockets (e.g. socketpair) have no peer host
        if isinstance(peer, tuple):
            return peer[0]
        return self._config.host

    def _attach(self, sock: socket.socket) -> None:
        self._sock = sock
        self._file = sock.makefile("rb")
        self._reader = ResponseReader(self._file)
        self._state = ConnectionState.CONNECTED

    def connect(self) -> None:
        """
        Open the control connection.

        Raises:
            FTPTimeoutError: If the connect does not finish in time
            FTPConnectionError: If the server cannot be reached
        """
        if self._sock is not None:
            raise RuntimeError("Connection already established.")

        host, port = self._config.host, self._config.port
        logger.info(f"Connecting to {host}:{port} (timeout={self._config.connect_timeout}s)")
        try:
            sock = socket.create_connection((host, port), timeout=self._config.connect_timeout)
        except socket.timeout:
            raise FTPTimeoutError("Connection", self._config.connect_timeout)
        except OSError as e:
            logger.error(f"Failed to connect to {host}:{port} - {e}")
            raise FTPConnectionError(host, port, e)

        self._attach(sock)
        logger.info(f"Connected to {host}:{port}")

    @contextmanager
    def exclusive(self) -> Iterator["ControlChannel"]:
        """Hold the channel for a multi-step exchange."""
        with self._lock:
            yield self

    def try_acquire(self) -> bool:
        """Take the channel if nobody else holds it."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    def _check_usable(self) -> None:
        if self._state == ConnectionState.BROKEN:
            raise FTPConnectionClosedError(
                "Control connection is unusable after an earlier transport failure"
            )

    def _mark_broken(self, error: BaseException) -> None:
        # A timed out or failed socket cannot be resynchronized with the server
        if self._state == ConnectionState.CONNECTED:
            logger.error(f"Control connection broken: {error!r}")
            self._state = ConnectionState.BROKEN

    def send_line(self, command: str) -> None:
        """Write one command line, bounded by the write timeout."""
        if self._sock is None:
            raise RuntimeError("No connection established.")
        with self._lock:
            self._check_usable()
            logger.debug(f"-> {mask_command(command)}")
            try:
                self._sock.settimeout(self._config.write_timeout)
                self._sock.sendall(f"{command}\r\n".encode(ENCODING))
            except OSError as e:
                self._mark_broken(e)
                raise

    def read_response(self) -> Response:
        """Read one reply, bounded by the read timeout."""
        if self._reader is None:
            raise RuntimeError("No connection established.")
        with self._lock:
            self._check_usable()
            try:
                self._sock.settimeout(self._config.read_timeout)
                return self._reader.read()
            except (OSError, FTPConnectionClosedError) as e:
                self._mark_broken(e)
                raise

    def execute(self, command: str) -> Response:
        """
        Send a command and return its reply.

        Transport errors propagate unmodified. After one, the channel
        is broken and every later exchange raises FTPConnectionClosedError.

        Args:
            command: Command line without the CRLF terminator

        Returns:
            The server's reply
        """
        with self._lock:
            self.send_line(command)
            return self.read_response()

    def close(self) -> None:
        """Close the control socket. Safe to call more than once."""
        with self._lock:
            if self._file is not None:
                try:
                    self._file.close()
                except OSError:
                    pass
                self._file = None
            if self._sock is not None:
                try:
                    self._sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass
                self._sock.close()
                logger.info(f"Disconnected from {self._config.host}:{self._config.port}")
            self._sock = None
            self._reader = None
            self._state = ConnectionState.CLOSED
