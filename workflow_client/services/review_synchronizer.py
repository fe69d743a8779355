"""Review synchronizer for the transaction analyst workflow."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from workflow_client.api.endpoints import (
    review_assign_path,
    review_escalate_path,
    review_path,
    review_resolve_path,
    review_status_path,
)
from workflow_client.api.http_client import HttpClient
from workflow_client.core.abort import AbortSignal
from workflow_client.core.errors import ConflictError, InvalidTransitionError, ValidationError
from workflow_client.schemas.decoders import decode_review
from workflow_client.schemas.review import (
    AnalystDecision,
    AssignRequest,
    EscalateRequest,
    ResolutionCode,
    ResolveRequest,
    StatusUpdateRequest,
    TransactionReview,
    TransactionStatus,
    can_transition,
)
from workflow_client.services.optimistic import MutationSequencer, with_optimistic_update
from workflow_client.services.synchronizer import Synchronizer

ReviewProjector = Callable[[TransactionReview | None, datetime], TransactionReview | None]


def _keep(value: Any, previous: Any) -> Any:
    """Merge-on-missing: an omitted (None) field keeps its previous value."""
    return previous if value is None else value


def _project(
    changes: Callable[[TransactionReview, datetime], dict[str, Any]],
) -> ReviewProjector:
    def projector(prev: TransactionReview | None, now: datetime) -> TransactionReview | None:
        if prev is None:
            return prev
        return prev.model_copy(
            update={**changes(prev, now), "updated_at": now, "last_activity_at": now}
        )

    return projector


class ReviewSynchronizer(Synchronizer):
    """Holds one transaction's review record and applies workflow actions to it.

    Every action is applied optimistically, sent to the backend and then
    reconciled with a full refetch. A rejected action restores the review
    exactly as it was before the action.
    """

    fallback_error_message = "Failed to fetch review"

    def __init__(
        self,
        client: HttpClient,
        transaction_id: str,
        *,
        enabled: bool = True,
        initial_review: TransactionReview | None = None,
        skip_initial_fetch: bool = False,
    ):
        super().__init__(client, enabled=enabled, skip_initial_fetch=skip_initial_fetch)
        self.transaction_id = transaction_id
        self.review = initial_review
        self.is_updating = False
        self._sequencer = MutationSequencer(f"review:{transaction_id}")

    def _has_target(self) -> bool:
        return bool(self.transaction_id)

    async def _load(self, signal: AbortSignal) -> TransactionReview:
        payload = await self.client.get(review_path(self.transaction_id), signal=signal)
        return decode_review(payload)

    def _apply(self, data: TransactionReview) -> None:
        self.review = data

    def _clear(self) -> None:
        self.review = None

    def _set_review(self, review: TransactionReview | None) -> None:
        self.review = review
        self._notify()

    async def set_transaction_id(self, transaction_id: str) -> None:
        """Point at another transaction; the old request is cancelled."""
        if transaction_id == self.transaction_id:
            return
        self._slot.abort()
        self.transaction_id = transaction_id
        self.review = None
        self._sequencer.retire()
        self._sequencer = MutationSequencer(f"review:{transaction_id}")
        await self.refetch()

    # ------------------------------------------------------------------
    # Workflow actions
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        projector: ReviewProjector,
        api_call: Callable[[], Awaitable[Any]],
        requested_status: TransactionStatus | None,
    ) -> None:
        current_status = self.review.status if self.review is not None else None
        self._supersede_fetch()
        try:
            await with_optimistic_update(
                self.review,
                self._set_review,
                self._flag_setter("is_updating"),
                projector,
                api_call,
                self.refetch,
                sequencer=self._sequencer,
            )
        except (ValidationError, ConflictError) as e:
            if isinstance(e, InvalidTransitionError):
                raise
            if not self._is_illegal(current_status, requested_status):
                raise
            raise InvalidTransitionError(
                e.message,
                current_status=current_status.value,
                requested_status=requested_status.value,
                status=e.status,
            ) from e

    @staticmethod
    def _is_illegal(
        current_status: TransactionStatus | None,
        requested_status: TransactionStatus | None,
    ) -> bool:
        if current_status is None or requested_status is None:
            return False
        return not can_transition(current_status, requested_status)

    async def update_status(
        self, status: TransactionStatus | str, notes: str | None = None
    ) -> None:
        """Move the review to ``status``; legality is enforced by the backend."""
        request = StatusUpdateRequest(status=status, notes=notes)
        await self._mutate(
            _project(lambda prev, now: {"status": request.status}),
            lambda: self.client.patch(
                review_status_path(self.transaction_id),
                request.model_dump(mode="json", exclude_none=True),
            ),
            request.status,
        )

    async def assign(self, analyst_id: str, analyst_name: str | None = None) -> None:
        """Assign the review to an analyst, putting it IN_REVIEW."""
        request = AssignRequest(analyst_id=analyst_id, analyst_name=analyst_name)
        await self._mutate(
            _project(
                lambda prev, now: {
                    "status": TransactionStatus.IN_REVIEW,
                    "assigned_analyst_id": request.analyst_id,
                    "assigned_analyst_name": _keep(
                        request.analyst_name, prev.assigned_analyst_name
                    ),
                    "assigned_at": now,
                }
            ),
            lambda: self.client.patch(
                review_assign_path(self.transaction_id),
                request.model_dump(mode="json", exclude_none=True),
            ),
            TransactionStatus.IN_REVIEW,
        )

    async def resolve(
        self,
        resolution_code: ResolutionCode | str,
        resolution_notes: str | None = None,
        analyst_decision: AnalystDecision | str | None = None,
        analyst_decision_reason: str | None = None,
    ) -> None:
        """Resolve the review; omitted optional fields keep their current values."""
        request = ResolveRequest(
            resolution_code=resolution_code,
            resolution_notes=resolution_notes,
            analyst_decision=analyst_decision,
            analyst_decision_reason=analyst_decision_reason,
        )
        await self._mutate(
            _project(
                lambda prev, now: {
                    "status": TransactionStatus.RESOLVED,
                    "resolution_code": request.resolution_code,
                    "resolution_notes": _keep(request.resolution_notes, prev.resolution_notes),
                    "analyst_decision": _keep(request.analyst_decision, prev.analyst_decision),
                    "analyst_decision_reason": (
                        _keep(request.analyst_decision_reason, prev.analyst_decision_reason)
                    ),
                    "resolved_at": now,
                }
            ),
            lambda: self.client.post(
                review_resolve_path(self.transaction_id),
                request.model_dump(mode="json", exclude_none=True),
            ),
            TransactionStatus.RESOLVED,
        )

    async def escalate(self, escalation_reason: str, escalate_to: str | None = None) -> None:
        """Escalate the review to a supervisor."""
        request = EscalateRequest(escalation_reason=escalation_reason, escalate_to=escalate_to)
        await self._mutate(
            _project(
                lambda prev, now: {
                    "status": TransactionStatus.ESCALATED,
                    "escalated_at": now,
                    "escalated_to": _keep(request.escalate_to, prev.escalated_to),
                    "escalation_reason": request.escalation_reason,
                }
            ),
            lambda: self.client.post(
                review_escalate_path(self.transaction_id),
                request.model_dump(mode="json", exclude_none=True),
            ),
            TransactionStatus.ESCALATED,
        )
