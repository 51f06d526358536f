"""Command procedures for ftpshell.

Each procedure takes the Session and the list of string arguments
typed after the command word. Failures are raised as FTPError
subclasses; preconditions are checked before anything is sent.
Transfer procedures return a TransferResult.
"""

import logging
import os
import time
from pathlib import Path
from typing import BinaryIO, Callable, List

from ftpshell.ftp.address import parse_epsv_address, parse_pasv_address
from ftpshell.ftp.data_channel import DataChannel, TransferResult, finish_transfer
from ftpshell.ftp.exceptions import (
    FTPAuthenticationError,
    FTPError,
    FTPLocalFileError,
    FTPMissingArgumentError,
    FTPNoDataAddressError,
    FTPNotAuthenticatedError,
    FTPReplyError,
    FTPResponseFormatError,
)
from ftpshell.ftp.response import ReplyCode, Response, is_ascii_number
from ftpshell.ftp.session import Session

logger = logging.getLogger("ftpshell.commands")


def _require_auth(session: Session, operation: str) -> None:
    if not session.is_authenticated:
        raise FTPNotAuthenticatedError(operation)


def _require_data_address(session: Session, operation: str) -> None:
    if not session.data_address:
        raise FTPNoDataAddressError(operation)


def _simple(session: Session, command: str) -> Response:
    """One round trip, success iff 2xx; the reply is echoed."""
    response = session.channel.execute(command)
    if not response.is_success:
        raise FTPReplyError(command.split()[0], response)
    session.echo(response.text)
    return response


def handle_auth(session: Session, args: List[str]) -> None:
    """
    Log in with the session's credentials.

    USER must be answered with 331 and PASS with a 2xx reply. Only
    then is the session authenticated and the keep-alive started.
    USER restarts the server's login, so a failed attempt leaves the
    session unauthenticated even after an earlier success.

    Raises:
        FTPAuthenticationError: If either step gets an unexpected reply
    """
    with session.channel.exclusive() as channel:
        session.is_authenticated = False

        response = channel.execute(f"USER {session.username}")
        if not response.is_code(ReplyCode.NEED_PASSWORD):
            raise FTPAuthenticationError(session.username, "USER", response)
        session.echo(response.text)

        response = channel.execute(f"PASS {session.password}")
        if not response.is_success:
            raise FTPAuthenticationError(session.username, "PASS", response)
        session.echo(response.text)

        session.is_authenticated = True
    logger.info(f"Authenticated as '{session.username}'")
    session.start_keepalive()


def handle_pwd(session: Session, args: List[str]) -> None:
    _require_auth(session, "PWD")
    _simple(session, "PWD")


def handle_cwd(session: Session, args: List[str]) -> None:
    _require_auth(session, "CWD")
    if not args:
        raise FTPMissingArgumentError("cwd <pathname>", "destination directory")
    _simple(session, f"CWD {args[0]}")


def handle_cdup(session: Session, args: List[str]) -> None:
    _require_auth(session, "CDUP")
    _simple(session, "CDUP")


def handle_stat(session: Session, args: List[str]) -> None:
    """Server status, or status of a path when one is given."""
    command = f"STAT {args[0]}" if args else "STAT"
    _simple(session, command)


def handle_server_help(session: Session, args: List[str]) -> None:
    command = f"HELP {args[0]}" if args else "HELP"
    _simple(session, command)


def _negotiate(session: Session, command: str, decode: Callable[[str], str]) -> str:
    _require_auth(session, command)

    # A failed negotiation leaves no usable address behind
    session.data_address = None

    response = session.channel.execute(command)
    if not response.is_success:
        raise FTPReplyError(command, response)
    address = decode(response.text)
    session.data_address = address
    session.echo(response.text)
    logger.debug(f"{command} negotiated data address {address}")
    return address


def handle_pasv(session: Session, args: List[str]) -> str:
    """Enter passive mode and store the decoded data address."""
    return _negotiate(session, "PASV", parse_pasv_address)


def handle_epsv(session: Session, args: List[str]) -> str:
    """Enter extended passive mode; the host is the control peer."""
    peer_host = session.channel.peer_host
    return _negotiate(session, "EPSV", lambda reply: parse_epsv_address(reply, peer_host))


def _transfer(
    session: Session,
    command: str,
    move: Callable[[DataChannel], int]
) -> TransferResult:
    """
    Run one data transfer from start to closing status.

    The control channel is held for the whole sequence. The data
    connection is opened before the command is sent, so a connect
    failure leaves nothing pending on the control channel.
    """
    address = session.take_data_address()
    channel = session.channel
    result = TransferResult(command=command)

    with channel.exclusive():
        data = DataChannel(address, timeout=session.data_timeout, block_size=session.block_size)
        data.open()
        try:
            response = channel.execute(command)
            if not response.is_code(ReplyCode.OPENING_DATA, ReplyCode.DATA_ALREADY_OPEN):
                raise FTPReplyError(command.split()[0], response)
            session.echo(response.text)

            start_time = time.time()
            try:
                result.bytes_transferred = move(data)
            except (FTPError, OSError):
                data.close()
                _drain_closing_status(session, command)
                raise
            result.duration_seconds = time.time() - start_time
        finally:
            data.close()

        finish_transfer(channel, result)

    if result.response is not None and not result.has_warning:
        session.echo(result.response.text)
    if result.has_warning:
        session.echo(f"WARNING - {result.warning}")
    return result


def _drain_closing_status(session: Session, command: str) -> None:
    """Consume the reply the server sends after an interrupted transfer."""
    try:
        response = session.channel.read_response()
        logger.debug(f"{command} interrupted, server replied: {response.message_text}")
    except (FTPError, OSError) as e:
        logger.debug(f"{command} interrupted, no closing status: {e}")


def handle_list(session: Session, args: List[str]) -> TransferResult:
    """Stream a directory listing, one line at a time."""
    _require_auth(session, "LIST")
    _require_data_address(session, "LIST")

    command = f"LIST {args[0]}" if args else "LIST"

    def move(data: DataChannel) -> int:
        for line in data.iter_lines():
            session.output(line)
        return data.bytes_transferred

    return _transfer(session, command, move)


def get_file_size(session: Session, path: str) -> int:
    """
    Ask the server for a file's size.

    Raises:
        FTPReplyError: If the reply is not 213
        FTPResponseFormatError: If the 213 body is not a number
    """
    response = session.channel.execute(f"SIZE {path}")
    if not response.is_code(ReplyCode.FILE_STATUS):
        raise FTPReplyError("SIZE", response)

    parts = response.last_line.split()
    if len(parts) < 2 or not is_ascii_number(parts[1]):
        raise FTPResponseFormatError(f"Malformed SIZE reply: {response.message_text}")
    return int(parts[1])


def handle_size(session: Session, args: List[str]) -> int:
    if not args:
        raise FTPMissingArgumentError("size <pathname>", "filename")
    _require_auth(session, "SIZE")

    size = get_file_size(session, args[0])
    session.output(f"File size: {size} bytes")
    return size


def _open_local(path: Path, mode: str, operation: str) -> BinaryIO:
    try:
        return open(path, mode)
    except OSError as e:
        raise FTPLocalFileError(str(path), operation, e)


def handle_retr(session: Session, args: List[str]) -> TransferResult:
    """
    Download a remote file into the current local directory.

    The local file is named after the remote path's final component.
    A failed size lookup is only a warning; the transfer then runs
    with an unknown total. The local file is only created once the
    server accepts RETR, and a partial file is removed on failure.
    """
    if not args:
        raise FTPMissingArgumentError("retr <pathname>", "remote file")
    _require_auth(session, "RETR")
    _require_data_address(session, "RETR")

    remote_path = args[0]
    local_name = remote_path.rstrip("/").rsplit("/", 1)[-1]
    if not local_name:
        raise FTPMissingArgumentError("retr <pathname>", "file name in path")
    local_path = Path(local_name)

    try:
        total = get_file_size(session, remote_path)
    except (FTPReplyError, FTPResponseFormatError) as e:
        session.output(f"Warning: could not get file size - {e}")
        total = 0

    created = False

    def move(data: DataChannel) -> int:
        # Only reached once the server has accepted RETR
        nonlocal created
        with _open_local(local_path, "wb", "create") as sink:
            created = True
            return data.receive_to(sink, total, session.on_progress)

    completed = False
    try:
        result = _transfer(session, f"RETR {remote_path}", move)
        completed = True
    finally:
        if created and not completed:
            local_path.unlink(missing_ok=True)

    session.output(f"Downloaded {local_name} ({result.bytes_transferred} bytes)")
    return result


def handle_stor(session: Session, args: List[str]) -> TransferResult:
    """
    Upload a local file.

    The local file is opened before anything is sent to the server.
    The remote name defaults to the local file's base name.
    """
    if not args:
        raise FTPMissingArgumentError("stor <filename> [remote name]", "filename")
    _require_auth(session, "STOR")
    _require_data_address(session, "STOR")

    local_path = Path(args[0])
    remote_name = args[1] if len(args) > 1 else local_path.name

    source = _open_local(local_path, "rb", "open")
    with source:
        total = os.fstat(source.fileno()).st_size
        result = _transfer(
            session,
            f"STOR {remote_name}",
            lambda data: data.send_from(source, total, session.on_progress),
        )

    session.output(f"Uploaded {local_path.name} ({result.bytes_transferred} bytes)")
    return result


def handle_quit(session: Session, args: List[str]) -> None:
    """
    End the session.

    The keep-alive is stopped (and its acknowledgment awaited) before
    QUIT is sent; the control channel is closed whatever the reply.
    """
    session.stop_keepalive()
    session.output("Goodbye!")
    try:
        _simple(session, "QUIT")
    finally:
        session.close()
