"""Operator-initiated cancellation, observed between steps."""

from __future__ import annotations

import threading


class CancellationToken:
    """Thread-safe flag an operator (or signal handler) sets to stop a run.

    The orchestrator checks it before starting each step; an in-flight
    provisioning call is never interrupted.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "cancelled by operator"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason
