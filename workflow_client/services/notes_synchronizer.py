"""Notes synchronizer for analyst notes on a transaction."""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from workflow_client.api.endpoints import note_path, notes_path
from workflow_client.api.http_client import HttpClient
from workflow_client.core.abort import AbortSignal
from workflow_client.schemas.decoders import Page, decode_note_page
from workflow_client.schemas.identity import require_server_id
from workflow_client.schemas.notes import (
    AnalystNote,
    NoteCreateRequest,
    NoteType,
    NoteUpdateRequest,
    make_optimistic_note,
)
from workflow_client.services.optimistic import MutationSequencer, with_optimistic_update
from workflow_client.services.synchronizer import Synchronizer


class NotesState(NamedTuple):
    """The note list and its server-side total, snapshotted together."""

    notes: tuple[AnalystNote, ...]
    total: int


class NotesSynchronizer(Synchronizer):
    """Holds the notes of one transaction, newest first."""

    fallback_error_message = "Failed to fetch notes"

    def __init__(
        self,
        client: HttpClient,
        transaction_id: str,
        *,
        enabled: bool = True,
        initial_notes: list[AnalystNote] | None = None,
        initial_total: int | None = None,
        skip_initial_fetch: bool = False,
    ):
        super().__init__(client, enabled=enabled, skip_initial_fetch=skip_initial_fetch)
        self.transaction_id = transaction_id
        self.notes: list[AnalystNote] = list(initial_notes or [])
        self.total = initial_total if initial_total is not None else len(self.notes)
        self.is_creating = False
        self.is_updating = False
        self.is_deleting = False
        self._sequencer = MutationSequencer(f"notes:{transaction_id}")

    def _has_target(self) -> bool:
        return bool(self.transaction_id)

    async def _load(self, signal: AbortSignal) -> Page[AnalystNote]:
        payload = await self.client.get(notes_path(self.transaction_id), signal=signal)
        return decode_note_page(payload)

    def _apply(self, data: Page[AnalystNote]) -> None:
        self.notes = list(data.items)
        self.total = data.total

    def _clear(self) -> None:
        self.notes = []

    @property
    def state(self) -> NotesState:
        return NotesState(tuple(self.notes), self.total)

    def _set_state(self, state: NotesState) -> None:
        self.notes = list(state.notes)
        self.total = state.total
        self._notify()

    async def set_transaction_id(self, transaction_id: str) -> None:
        """Point at another transaction; the old request is cancelled."""
        if transaction_id == self.transaction_id:
            return
        self._slot.abort()
        self.transaction_id = transaction_id
        self.notes = []
        self.total = 0
        self._sequencer.retire()
        self._sequencer = MutationSequencer(f"notes:{transaction_id}")
        await self.refetch()

    async def create_note(
        self,
        note_content: str,
        note_type: NoteType | str = NoteType.GENERAL,
        is_private: bool | None = None,
    ) -> None:
        """Add a note; a placeholder is shown at the top until the refetch lands."""
        request = NoteCreateRequest(
            note_content=note_content, note_type=note_type, is_private=is_private
        )
        transaction_id = self.transaction_id

        def project(prev: NotesState, now: datetime) -> NotesState:
            placeholder = make_optimistic_note(transaction_id, request, now)
            return NotesState((placeholder, *prev.notes), prev.total + 1)

        self._supersede_fetch()
        await with_optimistic_update(
            self.state,
            self._set_state,
            self._flag_setter("is_creating"),
            project,
            lambda: self.client.post(
                notes_path(transaction_id), request.model_dump(mode="json", exclude_none=True)
            ),
            self.refetch,
            sequencer=self._sequencer,
        )

    async def update_note(
        self,
        note_id: str,
        note_content: str | None = None,
        note_type: NoteType | str | None = None,
        is_private: bool | None = None,
    ) -> None:
        """Edit a note's content, type or visibility; the author never changes."""
        server_id = require_server_id(note_id)
        request = NoteUpdateRequest(
            note_content=note_content, note_type=note_type, is_private=is_private
        )
        changes = request.model_dump(exclude_none=True)

        def project(prev: NotesState, now: datetime) -> NotesState:
            notes = tuple(
                note.model_copy(update={**changes, "updated_at": now})
                if note.id == server_id
                else note
                for note in prev.notes
            )
            return NotesState(notes, prev.total)

        self._supersede_fetch()
        await with_optimistic_update(
            self.state,
            self._set_state,
            self._flag_setter("is_updating"),
            project,
            lambda: self.client.patch(
                note_path(self.transaction_id, server_id),
                request.model_dump(mode="json", exclude_none=True),
            ),
            self.refetch,
            sequencer=self._sequencer,
        )

    async def delete_note(self, note_id: str) -> None:
        """Remove a note; the total never drops below zero."""
        server_id = require_server_id(note_id)

        def project(prev: NotesState, now: datetime) -> NotesState:
            notes = tuple(note for note in prev.notes if note.id != server_id)
            return NotesState(notes, max(prev.total - 1, 0))

        self._supersede_fetch()
        await with_optimistic_update(
            self.state,
            self._set_state,
            self._flag_setter("is_deleting"),
            project,
            lambda: self.client.delete(note_path(self.transaction_id, server_id)),
            self.refetch,
            sequencer=self._sequencer,
        )
