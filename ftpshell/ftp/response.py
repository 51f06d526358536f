"""Control-channel replies for ftpshell.

Provides the StatusClass and ReplyCode enums, the Response value
and ResponseReader, which assembles one logical (possibly
multi-line) reply per call from a line-oriented byte stream.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import BinaryIO, List

from ftpshell.ftp.exceptions import FTPConnectionClosedError, FTPResponseFormatError

logger = logging.getLogger("ftpshell.control")

# Longest reply line accepted before giving up on the stream
MAX_LINE = 8192

ENCODING = "utf-8"


def is_ascii_number(value: str) -> bool:
    """True if value is non-empty and made only of the digits 0-9."""
    return value.isascii() and value.isdigit()


class StatusClass(Enum):
    """Reply class, derived from the first digit of the status code."""
    PRELIMINARY = 1
    COMPLETION = 2
    INTERMEDIATE = 3
    TRANSIENT_NEGATIVE = 4
    PERMANENT_NEGATIVE = 5
    UNKNOWN = 0

    @classmethod
    def from_code(cls, code: int) -> "StatusClass":
        """Map a three-digit code to its class."""
        try:
            return cls(code // 100)
        except ValueError:
            return cls.UNKNOWN


class ReplyCode(IntEnum):
    """Status codes the client checks for explicitly."""
    DATA_ALREADY_OPEN = 125
    OPENING_DATA = 150
    COMMAND_OK = 200
    FILE_STATUS = 213
    SERVICE_READY = 220
    CLOSING_CONTROL = 221
    CLOSING_DATA = 226
    ENTERING_PASSIVE = 227
    ENTERING_EXTENDED_PASSIVE = 229
    LOGGED_IN = 230
    FILE_ACTION_OK = 250
    NEED_PASSWORD = 331
    TRANSFER_ABORTED = 426


@dataclass
class Response:
    """One logical reply: every raw line received, in arrival order."""
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Full reply text, all lines concatenated as received."""
        return "".join(self.lines)

    @property
    def code(self) -> int:
        """Three-digit status code of the first line, 0 if malformed."""
        if not self.lines:
            return 0
        head = self.lines[0][:3]
        if len(head) == 3 and is_ascii_number(head):
            return int(head)
        return 0

    @property
    def status_class(self) -> StatusClass:
        return StatusClass.from_code(self.code)

    @property
    def is_success(self) -> bool:
        """True for 2xx replies."""
        return self.status_class == StatusClass.COMPLETION

    @property
    def is_preliminary(self) -> bool:
        return self.status_class == StatusClass.PRELIMINARY

    def is_class(self, status_class: StatusClass) -> bool:
        return self.status_class == status_class

    def is_code(self, *codes: int) -> bool:
        return self.code in codes

    @property
    def message_text(self) -> str:
        """Reply text with surrounding whitespace removed, for messages."""
        return self.text.strip()

    @property
    def last_line(self) -> str:
        return self.lines[-1].rstrip("\r\n") if self.lines else ""

    def __str__(self) -> str:
        return self.message_text


class ResponseReader:
    """
    Reads replies from the control channel.

    A reply is single-line unless its first line has a hyphen in the
    fourth position. A multi-line reply is closed only by a line that
    starts with the same three-digit code followed by a space.
    """

    def __init__(self, stream: BinaryIO):
        """
        Initialize the reader.

        Args:
            stream: Buffered binary stream with readline(), e.g.
                socket.makefile("rb")
        """
        self._stream = stream

    def _read_line(self) -> str:
        raw = self._stream.readline(MAX_LINE + 1)
        if not raw:
            raise FTPConnectionClosedError()
        if len(raw) > MAX_LINE:
            raise FTPResponseFormatError(f"Reply line longer than {MAX_LINE} bytes")
        if not raw.endswith(b"\n"):
            # Stream ended in the middle of a line
            raise FTPConnectionClosedError()
        return raw.decode(ENCODING, errors="replace")

    def read(self) -> Response:
        """
        Read one complete reply.

        Returns:
            Response with every consumed line

        Raises:
            FTPConnectionClosedError: If the stream ends before the reply
                is complete
            OSError: On any socket failure, including timeouts
        """
        line = self._read_line()
        lines = [line]

        if len(line) >= 4 and line[3] == "-":
            code = line[:3]
            while True:
                line = self._read_line()
                lines.append(line)
                if len(line) >= 4 and line[:3] == code and line[3] == " ":
                    break

        response = Response(lines)
        logger.debug(f"<- {response.message_text}")
        return response
