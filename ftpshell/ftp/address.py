"""Passive-mode address decoding for ftpshell.

Pure functions turning PASV (227) and EPSV (229) replies into a
connectable "host:port" string. No I/O, no shared state.
"""

from typing import Tuple

from ftpshell.ftp.exceptions import FTPAddressFormatError
from ftpshell.ftp.response import is_ascii_number


def _parenthesized(reply: str) -> str:
    """Return the text inside the first '(' and the first ')' after it."""
    start = reply.find("(")
    if start == -1:
        raise FTPAddressFormatError("no opening parenthesis found", reply)
    end = reply.find(")", start + 1)
    if end == -1:
        raise FTPAddressFormatError("no closing parenthesis found", reply)
    return reply[start + 1:end]


def _parse_byte(value: str, what: str, reply: str) -> int:
    value = value.strip()
    if not is_ascii_number(value):
        raise FTPAddressFormatError(f"invalid {what}: '{value}'", reply)
    number = int(value)
    if not 0 <= number <= 255:
        raise FTPAddressFormatError(f"{what} out of range: {number}", reply)
    return number


def parse_pasv_address(reply: str) -> str:
    """
    Decode a PASV reply.

    Args:
        reply: Reply text containing "(h1,h2,h3,h4,p1,p2)"

    Returns:
        "h1.h2.h3.h4:port" with port = p1 * 256 + p2

    Raises:
        FTPAddressFormatError: If the tuple is missing or malformed
    """
    parts = _parenthesized(reply).split(",")
    if len(parts) != 6:
        raise FTPAddressFormatError(f"expected 6 numbers, got {len(parts)}", reply)

    octets = [
        _parse_byte(part, f"IP octet at position {i}", reply)
        for i, part in enumerate(parts[:4])
    ]
    port_high = _parse_byte(parts[4], "port high byte", reply)
    port_low = _parse_byte(parts[5], "port low byte", reply)

    host = ".".join(str(octet) for octet in octets)
    return f"{host}:{port_high * 256 + port_low}"


def parse_epsv_address(reply: str, peer_host: str) -> str:
    """
    Decode an EPSV reply.

    The reply only carries a port ("(|||port|)"); the host is the
    control connection's remote peer.

    Args:
        reply: Reply text containing the delimited payload
        peer_host: Remote host of the control connection

    Returns:
        "peer_host:port"

    Raises:
        FTPAddressFormatError: If fewer than four fields are present or
            the port is not a valid number
    """
    fields = _parenthesized(reply).split("|")
    if len(fields) < 4:
        raise FTPAddressFormatError(
            f"expected at least 4 '|'-delimited fields, got {len(fields)}", reply
        )

    port = fields[3].strip()
    if not is_ascii_number(port) or not 0 < int(port) <= 65535:
        raise FTPAddressFormatError(f"invalid port: '{port}'", reply)

    if ":" in peer_host:
        return f"[{peer_host}]:{int(port)}"
    return f"{peer_host}:{int(port)}"


def split_address(address: str) -> Tuple[str, int]:
    """
    Split a "host:port" data address for socket.create_connection.

    Args:
        address: Address produced by one of the decoders

    Returns:
        (host, port) tuple
    """
    host, _, port = address.rpartition(":")
    if not host or not is_ascii_number(port):
        raise FTPAddressFormatError("not a host:port pair", address)
    return host.strip("[]"), int(port)
