"""FTP-specific exceptions for ftpshell.

Custom exception hierarchy for FTP operations to provide
clear error handling and user-friendly messages.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ftpshell.ftp.response import Response


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


# Transport

class FTPConnectionError(FTPError):
    """Failed to establish FTP connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPTimeoutError(FTPError):
    """FTP operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: float = 30):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class FTPConnectionClosedError(FTPError):
    """Control stream ended before a complete reply was read."""

    def __init__(self, message: str = "Server closed the control connection"):
        super().__init__(message)


# Protocol status

class FTPReplyError(FTPError):
    """Server answered a command with an unexpected status."""

    def __init__(self, command: str, response: "Response"):
        self.command = command
        self.response = response
        message = f"{command} failed: {response.message_text}"
        super().__init__(message)


class FTPAuthenticationError(FTPReplyError):
    """USER/PASS exchange was not accepted."""

    def __init__(self, username: str, command: str, response: "Response"):
        self.username = username
        super().__init__(command, response)
        self.message = (
            f"Authentication failed for user '{username}' "
            f"({command}: {response.message_text})"
        )


class FTPTransferError(FTPReplyError):
    """Closing status of a data transfer reported failure."""

    def __init__(self, command: str, response: "Response"):
        super().__init__(command, response)
        self.message = (
            f"{command} transfer did not complete successfully: "
            f"{response.message_text}"
        )


# Format

class FTPAddressFormatError(FTPError):
    """Passive-mode reply did not carry a usable address."""

    def __init__(self, reason: str, reply: str = ""):
        self.reason = reason
        self.reply = reply.strip()
        message = f"Invalid passive address ({reason})"
        if self.reply:
            message = f"{message} in reply '{self.reply}'"
        super().__init__(message)


class FTPResponseFormatError(FTPError):
    """Reply text could not be interpreted."""
    pass


# Preconditions

class FTPNotAuthenticatedError(FTPError):
    """Operation attempted before the credential exchange completed."""

    def __init__(self, operation: str = "Operation"):
        self.operation = operation
        message = f"{operation} requires authentication - use 'auth' first"
        super().__init__(message)


class FTPNoDataAddressError(FTPError):
    """Transfer attempted without a negotiated data address."""

    def __init__(self, operation: str = "Transfer"):
        self.operation = operation
        message = (
            f"{operation} needs a data connection - "
            f"run 'pasv' or 'epsv' first"
        )
        super().__init__(message)


class FTPMissingArgumentError(FTPError):
    """Command invoked without a required argument."""

    def __init__(self, usage: str, what: Optional[str] = None):
        self.usage = usage
        message = f"missing {what}" if what else "missing argument"
        super().__init__(f"{message} (usage: {usage})")


# Local I/O

class FTPLocalFileError(FTPError):
    """Local file could not be opened or created."""

    def __init__(self, path: str, operation: str, original_error: Exception = None):
        self.path = path
        self.operation = operation
        message = f"Failed to {operation} local file '{path}'"
        super().__init__(message, original_error)
