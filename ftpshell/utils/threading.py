"""Thread helpers for ftpshell.

Provides the event queue the interactive driver waits on, so that a
line typed by the operator and a connection loss reported by the
keep-alive thread are handled by one loop, whichever comes first.
"""

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional


class EventType(Enum):
    """Kind of event delivered to the driver."""
    INPUT = "input"
    END_OF_INPUT = "end_of_input"
    CONNECTION_LOST = "connection_lost"


@dataclass
class Event:
    """One event for the driver loop."""
    type: EventType
    data: Any = None


class EventQueue:
    """
    Thread-safe queue for passing events from worker threads to the driver.

    Usage:
        events = EventQueue()

        # In worker thread:
        events.put(EventType.CONNECTION_LOST, error)

        # In the driver loop:
        event = events.get()
        if event.type == EventType.CONNECTION_LOST:
            ...
    """

    def __init__(self):
        """Initialize the event queue."""
        self._queue: "queue.Queue[Event]" = queue.Queue()

    def put(self, event_type: EventType, data: Any = None) -> None:
        """
        Put an event in the queue (thread-safe).

        Args:
            event_type: Type identifier for the event
            data: Event data
        """
        self._queue.put(Event(event_type, data))

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """
        Wait for the next event.

        Args:
            timeout: Maximum time to wait (None = forever)

        Returns:
            The next Event, or None if the timeout expired
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


def start_line_reader(
    lines: Iterable[str],
    events: EventQueue,
    name: str = "ftpshell-input"
) -> threading.Thread:
    """
    Feed lines into the event queue from a daemon thread.

    Each line becomes an INPUT event; exhaustion of the iterable
    becomes a single END_OF_INPUT event.

    Args:
        lines: Source of lines, e.g. a line reader over stdin
        events: Queue to deliver events to
        name: Thread name

    Returns:
        The started thread
    """
    def run() -> None:
        for line in lines:
            events.put(EventType.INPUT, line)
        events.put(EventType.END_OF_INPUT)

    thread = threading.Thread(target=run, name=name, daemon=True)
    thread.start()
    return thread


def iter_lines(read_line: Callable[[], str]) -> Iterable[str]:
    """Turn a readline-style callable into an iterator of stripped lines."""
    while True:
        line = read_line()
        if not line:
            return
        yield line.rstrip("\r\n")
