"""Interactive driver for ftpshell.

Reads one line at a time, dispatches it through the command table and
waits on operator input and keep-alive connection loss together, so
the session can end cleanly from either source.
"""

import logging
import sys
import threading
from typing import Iterable, Optional, TextIO

from ftpshell.cli.progress import ConsoleProgress
from ftpshell.cli.registry import CommandTable
from ftpshell.ftp.exceptions import FTPError
from ftpshell.ftp.response import Response
from ftpshell.ftp.session import Session
from ftpshell.utils.threading import EventQueue, EventType, start_line_reader

logger = logging.getLogger("ftpshell.repl")

DEFAULT_PROMPT = "ftpshell> "


class SessionDriver:
    """
    Read-dispatch loop for one session.

    Exit codes from run(): 0 after quit or end of input, 1 when the
    greeting cannot be read or the connection is lost.
    """

    def __init__(
        self,
        session: Session,
        table: CommandTable,
        stdout: Optional[TextIO] = None,
        prompt: str = DEFAULT_PROMPT,
        events: Optional[EventQueue] = None,
    ):
        """
        Initialize the driver and wire the session's output hooks.

        Args:
            session: Connected session
            table: Command table built at startup
            stdout: Output stream (default sys.stdout)
            prompt: Prompt text
            events: Event queue (a new one by default)
        """
        self._session = session
        self._table = table
        self._stdout = stdout or sys.stdout
        self._prompt_text = prompt
        self._events = events or EventQueue()
        self._write_lock = threading.Lock()
        self._busy = False
        self._progress = ConsoleProgress(self._stdout)

        session.output = self.write_line
        session.on_progress = self._progress
        session.on_connection_lost = self._connection_lost
        session.on_keepalive_reply = self._keepalive_reply

    @property
    def events(self) -> EventQueue:
        return self._events

    def write_line(self, text: str) -> None:
        """Write one line of output, ending any progress line first."""
        with self._write_lock:
            self._progress.finish()
            self._stdout.write(f"{text}\n")
            self._stdout.flush()

    def _show_prompt(self) -> None:
        with self._write_lock:
            self._stdout.write(self._prompt_text)
            self._stdout.flush()

    def _keepalive_reply(self, response: Response) -> None:
        # Runs on the keep-alive thread
        with self._write_lock:
            self._stdout.write(f"\rKeepalive: {response.message_text}\n")
            if not self._busy:
                self._stdout.write(self._prompt_text)
            self._stdout.flush()

    def _connection_lost(self, error: BaseException) -> None:
        # Runs on the keep-alive thread
        self._events.put(EventType.CONNECTION_LOST, error)

    def read_greeting(self) -> bool:
        """Read and print the server's welcome reply."""
        try:
            response = self._session.channel.read_response()
        except (FTPError, OSError) as e:
            self.write_line(f"Error reading welcome message: {e}")
            return False
        self._session.echo(response.text)
        if not response.is_success:
            self.write_line(f"Server refused the session: {response.message_text}")
            return False
        return True

    def dispatch(self, line: str) -> None:
        """
        Run one input line.

        The first word selects the command (case-insensitive); the rest
        are passed as arguments. Command failures are reported on one
        line and never end the session.
        """
        words = line.split()
        if not words:
            return

        name, args = words[0].lower(), words[1:]
        spec = self._table.get(name)
        if spec is None:
            self.write_line(f"Unknown command: {name} (type 'help' for a list)")
            return

        self._busy = True
        try:
            spec.handler(self._session, args)
        except (FTPError, OSError) as e:
            logger.warning(f"Command '{name}' failed: {e}")
            self.write_line(f"Error: {name}: {e}")
        finally:
            self._busy = False
            with self._write_lock:
                self._progress.finish()

    def run(self, lines: Iterable[str]) -> int:
        """
        Drive the session until quit, end of input or connection loss.

        Args:
            lines: Operator input, one command per item

        Returns:
            Process exit code
        """
        if not self.read_greeting():
            self.shutdown()
            return 1

        start_line_reader(lines, self._events)
        self._show_prompt()

        while True:
            event = self._events.get()

            if event.type == EventType.CONNECTION_LOST:
                self.write_line("")
                self.write_line(f"*** Server connection lost: {event.data} ***")
                self.write_line("*** Shutting down ***")
                self.shutdown()
                return 1

            if event.type == EventType.END_OF_INPUT:
                self.write_line("")
                self.write_line("Goodbye!")
                self.shutdown()
                return 0

            self.dispatch(event.data)
            if self._session.closed:
                return 0
            self._show_prompt()

    def shutdown(self) -> None:
        """Stop the keep-alive, then close the control channel."""
        self._session.close()
