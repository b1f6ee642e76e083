from __future__ import annotations

import threading


class CancellationToken:
    """
    Cooperative cancellation flag shared between a consumer and one pipeline subscription.

    Safe to cancel from any thread; the pipeline checks it between page fetches.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
