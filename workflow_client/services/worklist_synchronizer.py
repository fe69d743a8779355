"""Worklist synchronizers for the analyst transaction queue."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from workflow_client.api.endpoints import (
    WORKLIST_CLAIM_PATH,
    WORKLIST_PATH,
    WORKLIST_STATS_PATH,
    WORKLIST_UNASSIGNED_PATH,
    build_query_params,
)
from workflow_client.api.http_client import HttpClient
from workflow_client.core.abort import AbortSignal
from workflow_client.core.config import get_settings
from workflow_client.schemas.decoders import (
    Page,
    decode_worklist_item,
    decode_worklist_page,
    decode_worklist_stats,
)
from workflow_client.schemas.worklist import (
    ClaimNextRequest,
    WorklistFilters,
    WorklistItem,
    WorklistStats,
)
from workflow_client.services.synchronizer import Observable, Synchronizer

logger = logging.getLogger(__name__)


def worklist_query_params(filters: WorklistFilters) -> dict[str, str]:
    """Query string for a worklist request; ``assigned_only`` is sent only when set."""
    params: dict[str, object] = {
        "status": filters.status,
        "priority_filter": filters.priority_filter,
        "risk_level_filter": filters.risk_level_filter,
        "limit": filters.limit,
        "cursor": filters.cursor,
    }
    if filters.assigned_only:
        params["assigned_only"] = True
    return build_query_params(params)


class PeriodicRefreshMixin:
    """Re-runs ``refetch`` every ``refresh_interval`` seconds while started."""

    refresh_interval: float = 0.0
    _refresh_task: asyncio.Task | None = None

    def _start_refresh(self) -> None:
        if not self.enabled or self.refresh_interval <= 0 or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            await self.refetch()

    async def _stop_refresh(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._refresh_task
        self._refresh_task = None

    async def start(self) -> None:
        await super().start()
        self._start_refresh()

    async def close(self) -> None:
        await self._stop_refresh()
        await super().close()


class WorklistSynchronizer(PeriodicRefreshMixin, Synchronizer):
    """The analyst's queue of transactions awaiting review."""

    fallback_error_message = "Failed to fetch worklist"
    path = WORKLIST_PATH

    def __init__(
        self,
        client: HttpClient,
        *,
        filters: WorklistFilters | None = None,
        enabled: bool = True,
        refresh_interval: float | None = None,
    ):
        super().__init__(client, enabled=enabled)
        self.filters = filters or WorklistFilters()
        self.refresh_interval = (
            refresh_interval
            if refresh_interval is not None
            else get_settings().worklist.refresh_interval_seconds
        )
        self.items: list[WorklistItem] = []
        self.total = 0
        self.has_more = False
        self.next_cursor: str | None = None

    async def _load(self, signal: AbortSignal) -> Page[WorklistItem]:
        payload = await self.client.get(
            self.path, params=worklist_query_params(self.filters), signal=signal
        )
        return decode_worklist_page(payload)

    def _apply(self, data: Page[WorklistItem]) -> None:
        self.items = list(data.items)
        self.total = data.total
        self.has_more = data.has_more
        self.next_cursor = data.next_cursor

    def _clear(self) -> None:
        self.items = []

    async def set_filters(self, filters: WorklistFilters | None) -> None:
        """Replace the filters; the request in flight is cancelled."""
        filters = filters or WorklistFilters()
        if filters == self.filters:
            return
        self._slot.abort()
        self.filters = filters
        await self.refetch()


class UnassignedWorklistSynchronizer(WorklistSynchronizer):
    """Transactions nobody has claimed yet (the shared queue)."""

    fallback_error_message = "Failed to fetch unassigned worklist"
    path = WORKLIST_UNASSIGNED_PATH


class WorklistStatsSynchronizer(PeriodicRefreshMixin, Synchronizer):
    """Queue counters for the worklist header."""

    fallback_error_message = "Failed to fetch stats"

    def __init__(
        self,
        client: HttpClient,
        *,
        enabled: bool = True,
        refresh_interval: float | None = None,
    ):
        super().__init__(client, enabled=enabled)
        self.refresh_interval = (
            refresh_interval
            if refresh_interval is not None
            else get_settings().worklist.refresh_interval_seconds
        )
        self.stats: WorklistStats | None = None

    async def _load(self, signal: AbortSignal) -> WorklistStats:
        return decode_worklist_stats(await self.client.get(WORKLIST_STATS_PATH, signal=signal))

    def _apply(self, data: WorklistStats) -> None:
        self.stats = data

    def _clear(self) -> None:
        self.stats = None


class ClaimNext(Observable):
    """Claims the next unassigned transaction for the current analyst."""

    def __init__(self, client: HttpClient):
        super().__init__()
        self.client = client
        self.is_claiming = False

    def _set_claiming(self, value: bool) -> None:
        self.is_claiming = value
        self._notify()

    async def claim_next(self, request: ClaimNextRequest | None = None) -> WorklistItem | None:
        """Claim the next item; returns None when the queue is empty or the claim fails."""
        request = request or ClaimNextRequest()
        self._set_claiming(True)
        try:
            payload = await self.client.post(
                WORKLIST_CLAIM_PATH, request.model_dump(mode="json", exclude_none=True)
            )
            return decode_worklist_item(payload)
        except Exception as e:
            logger.warning(f"Failed to claim next transaction: {e}")
            return None
        finally:
            self._set_claiming(False)
