"""Cooperative termination flag for batch runs.

Runs poll the flag once per scan position and never interrupt an in-flight
work unit. There is no timeout in the engine itself; callers enforce
deadlines by requesting termination from a timer:

    flag = TerminationFlag()
    threading.Timer(300.0, flag.request).start()
    driver = BatchDriver(session, Account, termination=flag)
"""

import threading


class TerminationFlag:
    """Thread-safe, externally settable stop request."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def request(self) -> None:
        """Ask the running batch to stop at its next poll."""
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def clear(self) -> None:
        """Reset the flag so the owner can start another run."""
        self._event.clear()
