"""Case synchronizers for grouping related transactions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from workflow_client.api.endpoints import (
    CASES_PATH,
    build_query_params,
    case_activity_path,
    case_by_number_path,
    case_path,
    case_resolve_path,
    case_transaction_path,
    case_transactions_path,
)
from workflow_client.api.http_client import HttpClient
from workflow_client.core.abort import AbortSignal
from workflow_client.core.logging import LoggerMixin
from workflow_client.schemas.case import (
    CaseActivity,
    CaseCreateRequest,
    CaseFilters,
    CaseResolveRequest,
    CaseUpdateRequest,
    TransactionCase,
)
from workflow_client.schemas.decoders import (
    Page,
    decode_case,
    decode_case_activity_page,
    decode_case_page,
)
from workflow_client.services.optimistic import MutationSequencer, with_optimistic_update
from workflow_client.services.synchronizer import Observable, Synchronizer

DEFAULT_CASE_PAGE_SIZE = 50


class CaseListSynchronizer(Synchronizer):
    """Filtered, cursor-paginated list of cases."""

    fallback_error_message = "Failed to fetch cases"

    def __init__(
        self,
        client: HttpClient,
        *,
        filters: CaseFilters | None = None,
        limit: int = DEFAULT_CASE_PAGE_SIZE,
        cursor: str | None = None,
        enabled: bool = True,
    ):
        super().__init__(client, enabled=enabled)
        self.filters = filters or CaseFilters()
        self.limit = limit
        self.cursor = cursor
        self.cases: list[TransactionCase] = []
        self.total = 0
        self.has_more = False
        self.next_cursor: str | None = None

    def query_params(self) -> dict[str, str]:
        return build_query_params(
            {**self.filters.model_dump(), "limit": self.limit, "cursor": self.cursor}
        )

    async def _load(self, signal: AbortSignal) -> Page[TransactionCase]:
        payload = await self.client.get(CASES_PATH, params=self.query_params(), signal=signal)
        return decode_case_page(payload)

    def _apply(self, data: Page[TransactionCase]) -> None:
        self.cases = list(data.items)
        self.total = data.total
        self.has_more = data.has_more
        self.next_cursor = data.next_cursor

    def _clear(self) -> None:
        self.cases = []

    async def set_filters(
        self,
        filters: CaseFilters | None = None,
        *,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> None:
        """Replace the query; the request in flight is cancelled."""
        new_filters = filters or CaseFilters()
        new_limit = limit if limit is not None else self.limit
        if (new_filters, new_limit, cursor) == (self.filters, self.limit, self.cursor):
            return
        self._slot.abort()
        self.filters = new_filters
        self.limit = new_limit
        self.cursor = cursor
        await self.refetch()


class CaseSynchronizer(Synchronizer):
    """Holds one case and the actions an analyst can take on it."""

    fallback_error_message = "Failed to fetch case"

    def __init__(self, client: HttpClient, case_id: str, *, enabled: bool = True):
        super().__init__(client, enabled=enabled)
        self.case_id = case_id
        self.case: TransactionCase | None = None
        self.is_updating = False
        self._sequencer = MutationSequencer(f"case:{case_id}")

    def _has_target(self) -> bool:
        return bool(self.case_id)

    async def _load(self, signal: AbortSignal) -> TransactionCase:
        return decode_case(await self.client.get(case_path(self.case_id), signal=signal))

    def _apply(self, data: TransactionCase) -> None:
        self.case = data

    def _clear(self) -> None:
        self.case = None

    def _set_case(self, case: TransactionCase | None) -> None:
        self.case = case
        self._notify()

    async def set_case_id(self, case_id: str) -> None:
        """Point at another case; the old request is cancelled."""
        if case_id == self.case_id:
            return
        self._slot.abort()
        self.case_id = case_id
        self.case = None
        self._sequencer.retire()
        self._sequencer = MutationSequencer(f"case:{case_id}")
        await self.refetch()

    async def update(self, request: CaseUpdateRequest) -> None:
        """Patch the case optimistically, then reconcile with a refetch."""
        changes = request.model_dump(exclude_none=True)

        def project(prev: TransactionCase | None, now: datetime) -> TransactionCase | None:
            if prev is None:
                return prev
            return prev.model_copy(update={**changes, "updated_at": now})

        self._supersede_fetch()
        await with_optimistic_update(
            self.case,
            self._set_case,
            self._flag_setter("is_updating"),
            project,
            lambda: self.client.patch(
                case_path(self.case_id), request.model_dump(mode="json", exclude_none=True)
            ),
            self.refetch,
            sequencer=self._sequencer,
        )

    async def _confirm(self, api_call: Callable[[], Awaitable[Any]]) -> None:
        set_updating = self._flag_setter("is_updating")
        set_updating(True)
        case_id = self.case_id
        try:
            await api_call()
            if self.case_id == case_id:
                await self.refetch()
        finally:
            set_updating(False)

    async def resolve(self, resolution_summary: str, resolved_by: str | None = None) -> None:
        """Resolve the case; the summary travels as a query parameter."""
        request = CaseResolveRequest(resolution_summary=resolution_summary, resolved_by=resolved_by)
        await self._confirm(
            lambda: self.client.post(
                case_resolve_path(self.case_id), params=build_query_params(request.model_dump())
            )
        )

    async def add_transaction(self, transaction_id: str) -> None:
        await self._confirm(
            lambda: self.client.post(
                case_transactions_path(self.case_id), {"transaction_id": transaction_id}
            )
        )

    async def remove_transaction(self, transaction_id: str) -> None:
        await self._confirm(
            lambda: self.client.delete(case_transaction_path(self.case_id, transaction_id))
        )


class CaseActivitySynchronizer(Synchronizer):
    """Audit trail of one case, newest first."""

    fallback_error_message = "Failed to fetch activity"

    def __init__(
        self,
        client: HttpClient,
        case_id: str,
        *,
        limit: int = DEFAULT_CASE_PAGE_SIZE,
        enabled: bool = True,
    ):
        super().__init__(client, enabled=enabled)
        self.case_id = case_id
        self.limit = limit
        self.activities: list[CaseActivity] = []
        self.total = 0
        self.has_more = False

    def _has_target(self) -> bool:
        return bool(self.case_id)

    async def _load(self, signal: AbortSignal) -> Page[CaseActivity]:
        payload = await self.client.get(
            case_activity_path(self.case_id),
            params=build_query_params({"limit": self.limit}),
            signal=signal,
        )
        return decode_case_activity_page(payload)

    def _apply(self, data: Page[CaseActivity]) -> None:
        self.activities = list(data.items)
        self.total = data.total
        self.has_more = data.has_more

    def _clear(self) -> None:
        self.activities = []

    async def set_case_id(self, case_id: str) -> None:
        if case_id == self.case_id:
            return
        self._slot.abort()
        self.case_id = case_id
        self.activities = []
        await self.refetch()


class CaseCreator(Observable, LoggerMixin):
    """Opens new cases; subscribers see ``is_creating`` flip around each request."""

    def __init__(self, client: HttpClient):
        super().__init__()
        self.client = client
        self.is_creating = False

    def _set_creating(self, value: bool) -> None:
        self.is_creating = value
        self._notify()

    async def create_case(self, request: CaseCreateRequest) -> TransactionCase:
        self._set_creating(True)
        try:
            payload = await self.client.post(
                CASES_PATH, request.model_dump(mode="json", exclude_none=True)
            )
            case = decode_case(payload)
            self.logger.info(f"Created case {case.case_number}")
            return case
        finally:
            self._set_creating(False)


async def fetch_case_by_number(
    client: HttpClient, case_number: str, *, signal: AbortSignal | None = None
) -> TransactionCase:
    """Look a case up by its human-readable number (e.g. CASE-20240101-0001)."""
    return decode_case(await client.get(case_by_number_path(case_number), signal=signal))
