"""Cooperative cancellation for long lookups and batch crosschecks.

A CancellationToken is polled between records and at every step of a
parent-chain walk. Nothing is interrupted preemptively: code that observes a
cancelled token raises OperationCancelledError, which callers can tell apart
from data-access failures.
"""

import threading
from typing import Optional

from taxonalign.exceptions import OperationCancelledError


class CancellationToken:
    """A cancellation flag shared between a caller and the engine."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from another thread."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelledError("Operation cancelled")


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    """Return the given token, or a token that never fires."""
    return token if token is not None else CancellationToken()
