"""Cooperative cancellation for superseded requests.

An ``AbortController`` hands out one ``AbortSignal``; aborting the controller
flips the signal and fires its listeners once. A ``RequestSlot`` owns the
controller for one logical resource so that issuing a new request always
cancels the previous one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class AbortSignal:
    """Read-only view of a cancellation token."""

    def __init__(self) -> None:
        self._aborted = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register ``listener`` to run on abort; returns a remover.

        Listeners added after the abort run immediately.
        """
        if self._aborted:
            listener()
            return lambda: None
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _fire(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()


class AbortController:
    """Owner side of an abort token."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self) -> None:
        self.signal._fire()


class RequestSlot:
    """One cancellation-token slot per fetch-capable resource.

    ``renew()`` aborts whatever is outstanding and returns a fresh signal,
    so at most one request per slot is ever allowed to land.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._controller: AbortController | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of signals issued so far."""
        return self._generation

    @property
    def current(self) -> AbortSignal | None:
        return self._controller.signal if self._controller is not None else None

    def renew(self) -> AbortSignal:
        """Abort the outstanding signal (if any) and issue a new one."""
        if self._controller is not None and not self._controller.signal.aborted:
            logger.debug("Superseding in-flight request", extra={"slot": self.name})
        self.abort()
        self._controller = AbortController()
        self._generation += 1
        return self._controller.signal

    def is_current(self, signal: AbortSignal) -> bool:
        return self._controller is not None and self._controller.signal is signal

    def abort(self) -> None:
        """Abort the outstanding signal without issuing a new one."""
        if self._controller is not None:
            self._controller.abort()
