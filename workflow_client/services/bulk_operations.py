"""Bulk operations on many transactions at once."""

import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from workflow_client.api.endpoints import BULK_ASSIGN_PATH, BULK_CREATE_CASE_PATH, BULK_STATUS_PATH
from workflow_client.api.http_client import HttpClient
from workflow_client.schemas.bulk import (
    BulkAssignRequest,
    BulkCreateCaseRequest,
    BulkOperationResponse,
    BulkStatusUpdateRequest,
)
from workflow_client.services.synchronizer import Observable

logger = logging.getLogger(__name__)


class BulkOperations(Observable):
    """Batch assign, status update and case creation.

    Each operation has its own busy flag so a view can disable only the
    button that is in flight. Failures propagate to the caller.
    """

    def __init__(self, client: HttpClient):
        super().__init__()
        self.client = client
        self.is_assigning = False
        self.is_updating_status = False
        self.is_creating_case = False

    def _set_flag(self, attribute: str, value: bool) -> None:
        setattr(self, attribute, value)
        self._notify()

    async def _run(
        self, flag: str, send: Callable[[], Awaitable[object]]
    ) -> BulkOperationResponse:
        self._set_flag(flag, True)
        try:
            response = BulkOperationResponse.model_validate(await send())
        finally:
            self._set_flag(flag, False)

        if response.failed:
            logger.warning(
                f"Bulk operation partially failed: {response.failed}/{response.total_requested}",
                extra={"error_summary": response.error_summary},
            )
        return response

    @staticmethod
    def _body(request: BaseModel) -> dict:
        return request.model_dump(mode="json", exclude_none=True)

    async def bulk_assign(self, request: BulkAssignRequest) -> BulkOperationResponse:
        """Assign every listed transaction to one analyst."""
        return await self._run(
            "is_assigning", lambda: self.client.post(BULK_ASSIGN_PATH, self._body(request))
        )

    async def bulk_update_status(self, request: BulkStatusUpdateRequest) -> BulkOperationResponse:
        """Move every listed transaction to one status."""
        return await self._run(
            "is_updating_status", lambda: self.client.post(BULK_STATUS_PATH, self._body(request))
        )

    async def bulk_create_case(self, request: BulkCreateCaseRequest) -> BulkOperationResponse:
        """Open a case containing every listed transaction."""
        return await self._run(
            "is_creating_case",
            lambda: self.client.post(BULK_CREATE_CASE_PATH, self._body(request)),
        )
