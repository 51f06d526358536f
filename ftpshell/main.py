"""Command-line entry point for ftpshell.

Parses the process inputs, sets up logging and settings, connects the
control channel and hands the session to the interactive driver.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ftpshell import __version__
from ftpshell.cli.registry import build_command_table
from ftpshell.cli.repl import SessionDriver
from ftpshell.config.credentials import CredentialManager
from ftpshell.config.paths import get_log_file_path
from ftpshell.config.settings import SettingsManager
from ftpshell.ftp.connection import ControlChannel
from ftpshell.ftp.exceptions import FTPError
from ftpshell.ftp.session import Session
from ftpshell.utils.logging import setup_logging
from ftpshell.utils.threading import iter_lines
from ftpshell.utils.validators import host_argument, port_argument, timeout_argument


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ftpshell",
        description="Interactive FTP client with passive-mode transfers and keep-alive.",
    )
    parser.add_argument("--host", required=True, type=host_argument,
                        help="FTP server host")
    parser.add_argument("--port", type=port_argument, default=None,
                        help="FTP server port (default: last used, else 2121)")
    parser.add_argument("--user", default="anonymous",
                        help="Username (default: anonymous)")
    parser.add_argument("--pass", dest="password", default=None,
                        help="Password (default: keyring entry, else empty)")
    parser.add_argument("--timeout", type=timeout_argument, default=None,
                        help="Connect timeout in seconds")
    parser.add_argument("--save-password", action="store_true",
                        help="Store the given password in the system keyring")
    parser.add_argument("--config", type=Path, default=None,
                        help="Settings file (default: platform settings path)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log protocol traffic to stderr")
    parser.add_argument("--no-log-file", action="store_true",
                        help="Do not write the log file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Application entry point.

    Returns:
        Exit code (0 for success)
    """
    args = build_parser().parse_args(argv)

    log_file = None if args.no_log_file else get_log_file_path()
    logger = setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=log_file,
        console=args.verbose,
    )
    logger.info(f"ftpshell {__version__} starting")

    settings_manager = SettingsManager(args.config)
    settings = settings_manager.load()
    if args.timeout is not None:
        settings = dataclasses.replace(settings, connect_timeout=args.timeout)
    port = args.port if args.port is not None else settings.last_port

    credentials = CredentialManager()
    password = credentials.resolve_password(args.host, args.user, args.password)
    if args.save_password:
        if args.password is None:
            print("Warning: --save-password needs --pass; nothing stored", file=sys.stderr)
        elif not credentials.save_password(args.host, args.user, args.password):
            print("Warning: could not store password in keyring", file=sys.stderr)

    try:
        config = settings.connection_config(args.host, port)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    channel = ControlChannel(config)
    try:
        channel.connect()
    except FTPError as e:
        logger.error(f"Connection failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        settings_manager.update(last_host=args.host, last_port=port, last_username=args.user)
    except OSError as e:
        logger.warning(f"Could not save settings: {e}")

    session = Session(
        channel,
        args.user,
        password,
        keepalive_config=settings.keepalive_config(),
        block_size=settings.block_size,
    )
    driver = SessionDriver(session, build_command_table(), prompt=settings.prompt)

    try:
        return driver.run(iter_lines(sys.stdin.readline))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        driver.shutdown()
        return 130
    finally:
        logger.info("ftpshell exiting")


if __name__ == "__main__":
    sys.exit(main())
