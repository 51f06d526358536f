"""Input validators for ftpshell.

Validation for the command-line inputs (host, port, timeouts), usable
directly or as argparse ``type=`` converters.
"""

import argparse
import re
from typing import Optional, Tuple


# IPv4 address pattern
IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)

# Hostname pattern (simplified)
HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$'
)


def validate_host(host: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a host (IPv4 address or hostname).

    Args:
        host: Host string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not host or not host.strip():
        return False, "Host is required"

    host = host.strip()
    if IPV4_PATTERN.match(host) or HOSTNAME_PATTERN.match(host):
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port) -> Tuple[bool, Optional[str]]:
    """
    Validate a port number.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        port = int(port)
    except (ValueError, TypeError):
        return False, "Port must be a number"

    if port < 1 or port > 65535:
        return False, f"Port must be between 1 and 65535, got {port}"

    return True, None


def validate_timeout(timeout) -> Tuple[bool, Optional[str]]:
    """
    Validate a timeout value in seconds.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        timeout = float(timeout)
    except (ValueError, TypeError):
        return False, "Timeout must be a number"

    if timeout < 1 or timeout > 300:
        return False, f"Timeout must be between 1 and 300 seconds, got {timeout:g}"

    return True, None


def _argument(validator, convert):
    def parse(value: str):
        is_valid, error = validator(value)
        if not is_valid:
            raise argparse.ArgumentTypeError(error)
        return convert(value)
    return parse


host_argument = _argument(validate_host, str.strip)
port_argument = _argument(validate_port, int)
timeout_argument = _argument(validate_timeout, float)
