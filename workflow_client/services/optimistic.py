"""Optimistic update pattern shared by every workflow mutation.

A mutation snapshots the current value, applies a projected value
immediately, calls the backend, then either reconciles with a refetch or
restores the snapshot. Mutations on the same entity are ordered by a
``MutationSequencer``: only the most recently issued mutation may confirm or
roll back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Projector = Callable[[T, datetime], T]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class MutationTicket:
    sequence: int
    # True when no other mutation on the entity was pending at issue time,
    # i.e. the snapshot holds only server-confirmed state
    clean: bool


class MutationSequencer:
    """Per-entity sequence counter for optimistic mutations."""

    def __init__(self, name: str = ""):
        self.name = name
        self._latest = 0
        self._pending: set[int] = set()

    @property
    def latest(self) -> int:
        return self._latest

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def issue(self) -> MutationTicket:
        self._latest += 1
        ticket = MutationTicket(sequence=self._latest, clean=not self._pending)
        self._pending.add(ticket.sequence)
        return ticket

    def is_latest(self, ticket: MutationTicket) -> bool:
        return ticket.sequence == self._latest

    def settle(self, ticket: MutationTicket) -> None:
        self._pending.discard(ticket.sequence)

    def retire(self) -> None:
        """Supersede every outstanding ticket: none of them may confirm or roll back.

        Called when the owner switches to another entity, so a late outcome
        for the old entity never lands in the new entity's view.
        """
        self._latest += 1
        self._pending.clear()


async def with_optimistic_update(
    current_value: T,
    set_value: Callable[[T], None],
    set_is_updating: Callable[[bool], None],
    update_fn: Projector[T],
    api_call: Callable[[], Awaitable[object]],
    fetch_fn: Callable[[], Awaitable[object]],
    *,
    sequencer: MutationSequencer | None = None,
) -> None:
    """Apply ``update_fn`` optimistically, confirm with ``api_call`` and reconcile.

    Args:
        current_value: Value before the mutation; restored verbatim on failure
        set_value: Writes the locally-held value (and notifies views)
        set_is_updating: Toggles the mutating flag shown by views
        update_fn: Pure projector ``(previous, now) -> next``
        api_call: The remote call that makes the change authoritative
        fetch_fn: Refetch that overwrites the projection with server truth
        sequencer: Orders mutations on the same entity; without one, every
            mutation confirms and rolls back unconditionally

    Raises:
        Whatever ``api_call`` or ``fetch_fn`` raised, after the rollback.
    """
    previous = current_value
    ticket = sequencer.issue() if sequencer is not None else None

    def is_latest() -> bool:
        return ticket is None or sequencer.is_latest(ticket)

    set_is_updating(True)
    try:
        set_value(update_fn(previous, utc_now()))
        await api_call()
        if is_latest():
            await fetch_fn()
        else:
            logger.debug(
                "Skipping reconcile for superseded mutation",
                extra={"entity": sequencer.name, "sequence": ticket.sequence},
            )
    except asyncio.CancelledError:
        if is_latest():
            set_value(previous)
        raise
    except Exception as e:
        if not is_latest():
            logger.debug(
                "Skipping rollback for superseded mutation",
                extra={"entity": sequencer.name, "sequence": ticket.sequence},
            )
            raise

        logger.warning(f"Optimistic update failed, rolling back: {e}")
        set_value(previous)
        if ticket is not None and not ticket.clean:
            # The snapshot may hold another mutation's unconfirmed projection
            try:
                await fetch_fn()
            except Exception as reconcile_error:
                logger.warning(f"Reconcile after rollback failed: {reconcile_error}")
        raise
    finally:
        if ticket is not None:
            sequencer.settle(ticket)
        set_is_updating(False)
