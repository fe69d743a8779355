"""Base class for objects that hold a locally-synchronized copy of server state.

A synchronizer owns one request slot. ``refetch()`` supersedes whatever
request is in flight, and only the newest request's outcome is applied to
the visible state. Views read plain attributes and ``subscribe`` to be told
when they change.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from workflow_client.api.http_client import HttpClient
from workflow_client.core.abort import AbortSignal, RequestSlot
from workflow_client.core.errors import WorkflowClientError, is_abort_error, normalize_error
from workflow_client.core.logging import LoggerMixin

Listener = Callable[[Any], None]


class Observable:
    """Holds view listeners; ``_notify`` calls each with the observed object."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(self)`` after every state change; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class Synchronizer(Observable, LoggerMixin):
    """Fetch lifecycle shared by every read path.

    Subclasses implement ``_has_target``, ``_load``, ``_apply`` and ``_clear``.
    """

    fallback_error_message = "Failed to fetch"

    def __init__(
        self,
        client: HttpClient,
        *,
        enabled: bool = True,
        skip_initial_fetch: bool = False,
    ):
        super().__init__()
        self.client = client
        self.enabled = enabled
        self.is_loading = enabled and not skip_initial_fetch
        self.error: WorkflowClientError | None = None

        self._skip_initial_fetch = skip_initial_fetch
        self._initial_fetch_skipped = False
        self._slot = RequestSlot(type(self).__name__)
        self._flag_holders: dict[str, int] = {}

    def _flag_setter(self, attribute: str) -> Callable[[bool], None]:
        """Setter for a busy flag that stays True while any caller still holds it."""

        def set_flag(active: bool) -> None:
            held = self._flag_holders.get(attribute, 0) + (1 if active else -1)
            self._flag_holders[attribute] = max(held, 0)
            setattr(self, attribute, self._flag_holders[attribute] > 0)
            self._notify()

        return set_flag

    def _supersede_fetch(self) -> None:
        """Abort the in-flight fetch so it cannot overwrite a local projection."""
        self._slot.abort()
        if self.is_loading:
            self.is_loading = False
            self._notify()

    # ------------------------------------------------------------------
    # Fetch lifecycle
    # ------------------------------------------------------------------

    def _has_target(self) -> bool:
        """Whether the parameters identify something to fetch."""
        return True

    async def _load(self, signal: AbortSignal) -> Any:
        raise NotImplementedError

    def _apply(self, data: Any) -> None:
        raise NotImplementedError

    def _clear(self) -> None:
        raise NotImplementedError

    async def refetch(self) -> None:
        """Fetch authoritative state, superseding any request in flight.

        Errors are recorded on ``self.error``; they are never raised.
        """
        if not self.enabled or not self._has_target():
            self.is_loading = False
            self._notify()
            return

        self.is_loading = True
        self.error = None
        signal = self._slot.renew()
        self._notify()

        try:
            data = await self._load(signal)
            if signal.aborted:
                self.logger.debug("Discarding response for superseded request")
                return
            self._apply(data)
        except Exception as e:
            if signal.aborted or is_abort_error(e):
                return
            self.error = normalize_error(e, self.fallback_error_message)
            self.logger.warning(f"{self.fallback_error_message}: {self.error.message}")
            self._clear()
        finally:
            if not signal.aborted:
                self.is_loading = False
                self._notify()

    async def start(self) -> None:
        """Initial fetch, the equivalent of mounting the view.

        With ``skip_initial_fetch`` the first call only clears ``is_loading``;
        the held value is assumed to have been seeded by the caller.
        """
        if self._skip_initial_fetch and not self._initial_fetch_skipped:
            self._initial_fetch_skipped = True
            self.is_loading = False
            self._notify()
            return
        await self.refetch()

    async def close(self) -> None:
        """Cancel the in-flight request; later responses are discarded."""
        self._slot.abort()
