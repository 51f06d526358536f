"""Passive-mode data connections for ftpshell.

Provides TransferProgress and TransferResult dataclasses, the
DataChannel class that streams one listing or file over a short-lived
connection, and finish_transfer(), which reads and classifies the
closing status on the control channel.
"""

import logging
import socket
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional

from ftpshell.ftp.address import split_address
from ftpshell.ftp.connection import ControlChannel
from ftpshell.ftp.exceptions import FTPConnectionError, FTPTimeoutError, FTPTransferError
from ftpshell.ftp.response import ENCODING, ReplyCode, Response

logger = logging.getLogger("ftpshell.data")


@dataclass
class TransferProgress:
    """Progress information for a transfer."""
    bytes_transferred: int
    bytes_total: int

    @property
    def percent(self) -> Optional[float]:
        """Transfer progress as percentage, None when the total is unknown."""
        if self.bytes_total <= 0:
            return None
        return (self.bytes_transferred / self.bytes_total) * 100.0


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]


@dataclass
class TransferResult:
    """Result of one data transfer."""
    command: str
    bytes_transferred: int = 0
    duration_seconds: float = 0.0
    response: Optional[Response] = None
    warning: Optional[str] = None

    @property
    def has_warning(self) -> bool:
        """True if the transfer finished but the server flagged the close."""
        return self.warning is not None


class DataChannel:
    """
    One passive-mode data connection.

    Opened against a negotiated address, used for exactly one listing,
    download or upload, then shut down write side first, read side
    second, before the socket is closed. Some servers withhold the
    closing status on the control channel if the socket is dropped
    without the half-close.
    """

    # Block size for transfers (8KB)
    BLOCK_SIZE = 8192

    def __init__(self, address: str, timeout: float = 45, block_size: int = BLOCK_SIZE):
        """
        Initialize the data channel.

        Args:
            address: "host:port" from the address codec
            timeout: Per-operation socket timeout in seconds
            block_size: Read/write chunk size
        """
        self._address = address
        self._timeout = timeout
        self._block_size = block_size
        self._sock: Optional[socket.socket] = None
        self._bytes_transferred = 0

    @property
    def address(self) -> str:
        return self._address

    @property
    def bytes_transferred(self) -> int:
        """Bytes moved over this connection so far."""
        return self._bytes_transferred

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        """
        Connect to the data address.

        Raises:
            FTPTimeoutError: If the connect times out
            FTPConnectionError: If the data port cannot be reached
        """
        host, port = split_address(self._address)
        try:
            self._sock = socket.create_connection((host, port), timeout=self._timeout)
        except socket.timeout:
            raise FTPTimeoutError("Data connection", self._timeout)
        except OSError as e:
            raise FTPConnectionError(host, port, e)
        logger.debug(f"Data connection open to {self._address}")

    def __enter__(self) -> "DataChannel":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise RuntimeError("Data connection is not open.")
        return self._sock

    def iter_lines(self) -> Iterator[str]:
        """
        Yield listing lines as they arrive, without the line ending.

        A final line without a terminator is still yielded.
        """
        sock = self._require_socket()
        pending = b""
        while True:
            chunk = sock.recv(self._block_size)
            if not chunk:
                break
            self._bytes_transferred += len(chunk)
            pending += chunk
            *complete, pending = pending.split(b"\n")
            for raw in complete:
                yield raw.rstrip(b"\r").decode(ENCODING, errors="replace")
        if pending:
            yield pending.rstrip(b"\r").decode(ENCODING, errors="replace")

    def receive_to(
        self,
        sink: BinaryIO,
        total: int = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> int:
        """
        Copy the data stream into sink until end of stream.

        Args:
            sink: Writable binary file
            total: Expected size, 0 if unknown
            on_progress: Called after every read

        Returns:
            Number of bytes received
        """
        sock = self._require_socket()
        received = 0
        while True:
            chunk = sock.recv(self._block_size)
            if not chunk:
                break
            sink.write(chunk)
            received += len(chunk)
            self._bytes_transferred = received
            if on_progress:
                on_progress(TransferProgress(received, total))
        return received

    def send_from(
        self,
        source: BinaryIO,
        total: int = 0,
        on_progress: Optional[ProgressCallback] = None
    ) -> int:
        """
        Copy source into the data stream until source is exhausted.

        Args:
            source: Readable binary file
            total: Size of source, 0 if unknown
            on_progress: Called after every write

        Returns:
            Number of bytes sent
        """
        sock = self._require_socket()
        sent = 0
        while True:
            chunk = source.read(self._block_size)
            if not chunk:
                break
            sock.sendall(chunk)
            sent += len(chunk)
            self._bytes_transferred = sent
            if on_progress:
                on_progress(TransferProgress(sent, total))
        return sent

    def close(self) -> None:
        """Half-close write then read, then close. Safe to call twice."""
        if self._sock is None:
            return
        for how in (socket.SHUT_WR, socket.SHUT_RD):
            try:
                self._sock.shutdown(how)
            except OSError:
                # Peer may already be gone
                pass
        self._sock.close()
        self._sock = None
        logger.debug(f"Data connection to {self._address} closed")


def finish_transfer(control: ControlChannel, result: TransferResult) -> TransferResult:
    """
    Read the closing status after the data connection is closed.

    A 2xx reply completes the transfer. A 426 reply means the data
    arrived but the server saw the connection end badly: the transfer
    counts as complete and carries a warning. Anything else fails.

    Args:
        control: Control channel the transfer command was sent on
        result: Result to complete

    Returns:
        The completed result

    Raises:
        FTPTransferError: On any other closing status
    """
    response = control.read_response()
    result.response = response

    if response.is_success:
        return result
    if response.is_code(ReplyCode.TRANSFER_ABORTED):
        result.warning = "transfer complete, but data connection didn't close gracefully"
        logger.warning(f"{result.command}: {result.warning} ({response.message_text})")
        return result
    raise FTPTransferError(result.command, response)

