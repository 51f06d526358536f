"""Session state for ftpshell.

One Session exists per process run: the control channel, the
credentials, the authentication flag, the most recently negotiated
data address and the keep-alive loop once authenticated.
"""

import logging
from typing import Callable, Optional

from ftpshell.ftp.connection import ControlChannel
from ftpshell.ftp.data_channel import DataChannel, ProgressCallback
from ftpshell.ftp.keepalive import KeepAliveConfig, KeepAliveLoop
from ftpshell.ftp.response import Response

logger = logging.getLogger("ftpshell.session")

# Type alias for line output
OutputCallback = Callable[[str], None]


def _discard(_text: str) -> None:
    pass


class Session:
    """Client-side state for one connected server."""

    def __init__(
        self,
        channel: ControlChannel,
        username: str,
        password: str = "",
        keepalive_config: Optional[KeepAliveConfig] = None,
        output: Optional[OutputCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_connection_lost: Optional[Callable[[BaseException], None]] = None,
        on_keepalive_reply: Optional[Callable[[Response], None]] = None,
        block_size: int = DataChannel.BLOCK_SIZE,
    ):
        """
        Initialize the session.

        Args:
            channel: Connected control channel
            username: Login name sent with USER
            password: Password sent with PASS
            keepalive_config: Cadence for the keep-alive loop
            output: Receives each line of user-facing output
            on_progress: Receives transfer progress updates
            on_connection_lost: Called once if the keep-alive detects loss
            on_keepalive_reply: Called with each successful probe reply
            block_size: Data channel chunk size
        """
        self.channel = channel
        self.username = username
        self._password = password
        self.keepalive_config = keepalive_config or KeepAliveConfig()
        self.output = output or _discard
        self.on_progress = on_progress
        self.on_connection_lost = on_connection_lost
        self.on_keepalive_reply = on_keepalive_reply
        self.block_size = block_size

        self.is_authenticated = False
        self.data_address: Optional[str] = None
        self.keepalive: Optional[KeepAliveLoop] = None
        self._closed = False

    @property
    def password(self) -> str:
        return self._password

    @property
    def closed(self) -> bool:
        """True once the session has been torn down."""
        return self._closed

    @property
    def data_timeout(self) -> float:
        return self.channel.config.read_timeout

    def echo(self, text: str) -> None:
        """Emit user-facing text, one call per line."""
        for line in text.rstrip("\r\n").splitlines() or [""]:
            self.output(line)

    def take_data_address(self) -> Optional[str]:
        """Consume the negotiated data address; each one opens one connection."""
        address, self.data_address = self.data_address, None
        return address

    def start_keepalive(self) -> None:
        """Start the keep-alive loop if it is not already running."""
        if self.keepalive is not None:
            return
        self.keepalive = KeepAliveLoop(
            self.channel,
            self.keepalive_config,
            on_connection_lost=self._connection_lost,
            on_probe=self.on_keepalive_reply,
            is_active=lambda: self.is_authenticated and not self._closed,
        )
        self.keepalive.start()

    def stop_keepalive(self) -> None:
        """Stop the keep-alive and wait for its acknowledgment."""
        if self.keepalive is not None:
            self.keepalive.stop()

    def _connection_lost(self, error: BaseException) -> None:
        if self.on_connection_lost:
            self.on_connection_lost(error)

    def close(self) -> None:
        """Tear down the session. Safe to call more than once."""
        if self._closed:
            return
        self.stop_keepalive()
        self._closed = True
        self.is_authenticated = False
        self.data_address = None
        self.channel.close()
        logger.info("Session closed")
