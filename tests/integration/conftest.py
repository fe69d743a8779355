"""Pytest configuration for integration tests.

The real HttpClient talks to an in-memory stand-in for the transaction
management backend through ``httpx.MockTransport``, so every request goes
through URL building, auth headers, JSON encoding and error mapping.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from workflow_client.api.http_client import HttpClient
from workflow_client.core.auth import FRAUD_ANALYST, AuthenticatedUser
from workflow_client.core.config import ApiConfig
from workflow_client.core.session import SessionStore
from workflow_client.schemas.review import can_transition
from tests.utils.payloads import (
    LATER_TIMESTAMP,
    TIMESTAMP,
    bulk_response_payload,
    note_payload,
    review_payload,
    worklist_item_payload,
)

SESSION_TOKEN = "integration-session-token"

TRANSACTION = r"/api/v1/transactions/(?P<tid>[^/]+)"

Route = tuple[str, re.Pattern[str], Callable[..., httpx.Response]]


class InMemoryBackend:
    """Just enough of the backend's review, notes, worklist and bulk API."""

    def __init__(self) -> None:
        self.reviews: dict[str, dict[str, Any]] = {
            "txn-001": review_payload(),
            "txn-002": review_payload(id="rev-002", transaction_id="txn-002", priority=1),
            "txn-003": review_payload(id="rev-003", transaction_id="txn-003", status="CLOSED"),
        }
        self.notes: dict[str, list[dict[str, Any]]] = {}
        self.requests: list[tuple[str, str]] = []
        self._note_seq = 0
        self.routes: list[Route] = [
            ("GET", re.compile(TRANSACTION + r"/review"), self.get_review),
            ("PATCH", re.compile(TRANSACTION + r"/review/assign"), self.assign),
            ("POST", re.compile(TRANSACTION + r"/review/resolve"), self.resolve),
            ("GET", re.compile(TRANSACTION + r"/notes"), self.list_notes),
            ("POST", re.compile(TRANSACTION + r"/notes"), self.create_note),
            (
                "DELETE",
                re.compile(TRANSACTION + r"/notes/(?P<note_id>[^/]+)"),
                self.delete_note,
            ),
            ("GET", re.compile(r"/api/v1/worklist/unassigned"), self.unassigned),
            ("POST", re.compile(r"/api/v1/worklist/claim"), self.claim),
            ("POST", re.compile(r"/api/v1/bulk/assign"), self.bulk_assign),
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        if request.headers.get("Authorization") != f"Bearer {SESSION_TOKEN}":
            return httpx.Response(401, json={"detail": "Not authenticated"})

        body = json.loads(request.content) if request.content else None
        for method, pattern, handler in self.routes:
            match = pattern.fullmatch(request.url.path)
            if request.method == method and match:
                return handler(body, request, **match.groupdict())
        return httpx.Response(404, json={"detail": "Not Found"})

    # Reviews

    def get_review(self, body, request, tid):
        review = self.reviews.get(tid)
        if review is None:
            return httpx.Response(404, json={"detail": f"Review for {tid} not found"})
        return httpx.Response(200, json=review)

    def _transition(self, tid: str, target: str, **changes: Any) -> httpx.Response:
        review = self.reviews.get(tid)
        if review is None:
            return httpx.Response(404, json={"detail": f"Review for {tid} not found"})
        if not can_transition(review["status"], target):
            return httpx.Response(
                409,
                json={
                    "detail": "Invalid status transition",
                    "errors": {"current_status": review["status"], "requested_status": target},
                },
            )
        review.update(status=target, updated_at=LATER_TIMESTAMP, **changes)
        return httpx.Response(200, json=review)

    def assign(self, body, request, tid):
        return self._transition(
            tid,
            "IN_REVIEW",
            assigned_analyst_id=body["analyst_id"],
            assigned_analyst_name=body.get("analyst_name"),
            assigned_at=LATER_TIMESTAMP,
        )

    def resolve(self, body, request, tid):
        return self._transition(
            tid,
            "RESOLVED",
            resolution_code=body["resolution_code"],
            resolution_notes=body.get("resolution_notes"),
            resolved_at=LATER_TIMESTAMP,
        )

    # Notes

    def list_notes(self, body, request, tid):
        notes = self.notes.get(tid, [])
        return httpx.Response(200, json={"notes": notes, "total": len(notes)})

    def create_note(self, body, request, tid):
        self._note_seq += 1
        note = note_payload(
            id=f"note-{self._note_seq:03d}",
            transaction_id=tid,
            note_type=body.get("note_type", "GENERAL"),
            note_content=body["note_content"],
            created_at=LATER_TIMESTAMP,
            updated_at=LATER_TIMESTAMP,
        )
        self.notes.setdefault(tid, []).insert(0, note)
        return httpx.Response(201, json=note)

    def delete_note(self, body, request, tid, note_id):
        notes = self.notes.get(tid, [])
        remaining = [note for note in notes if note["id"] != note_id]
        if len(remaining) == len(notes):
            return httpx.Response(404, json={"detail": "Note not found"})
        self.notes[tid] = remaining
        return httpx.Response(204)

    # Worklist

    def _pending_items(self) -> list[dict[str, Any]]:
        pending = [r for r in self.reviews.values() if r["status"] == "PENDING"]
        pending.sort(key=lambda r: r["priority"])
        return [
            worklist_item_payload(
                review_id=r["id"],
                transaction_id=r["transaction_id"],
                priority=r["priority"],
                transaction_timestamp=TIMESTAMP,
            )
            for r in pending
        ]

    def unassigned(self, body, request):
        items = self._pending_items()
        return httpx.Response(200, json={"items": items, "total": len(items), "has_more": False})

    def claim(self, body, request):
        items = self._pending_items()
        if not items:
            return httpx.Response(204)
        item = items[0]
        self._transition(item["transaction_id"], "IN_REVIEW", assigned_analyst_id="analyst-1")
        return httpx.Response(
            200, json={**item, "status": "IN_REVIEW", "assigned_analyst_id": "analyst-1"}
        )

    # Bulk

    def bulk_assign(self, body, request):
        results = []
        for tid in body["transaction_ids"]:
            response = self._transition(tid, "IN_REVIEW", assigned_analyst_id=body["analyst_id"])
            if response.status_code == 200:
                results.append({"transaction_id": tid, "success": True})
            else:
                results.append(
                    {
                        "transaction_id": tid,
                        "success": False,
                        "error_code": "INVALID_TRANSITION",
                        "error_message": "Invalid status transition",
                    }
                )
        failed = sum(1 for result in results if not result["success"])
        return httpx.Response(
            200,
            json=bulk_response_payload(
                total_requested=len(results),
                successful=len(results) - failed,
                failed=failed,
                results=results,
                error_summary={"INVALID_TRANSITION": failed} if failed else None,
            ),
        )


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def signed_in_session() -> SessionStore:
    session = SessionStore()
    session.login(
        AuthenticatedUser(user_id="analyst-1", name="Ada Analyst", roles=[FRAUD_ANALYST]),
        token=SESSION_TOKEN,
    )
    return session


@pytest.fixture
def make_api_client(backend):
    """Factory for an HttpClient wired to the in-memory backend."""

    def factory(session: SessionStore | None = None) -> HttpClient:
        return HttpClient(
            ApiConfig(base_url="http://backend.test", timeout=5),
            session=session,
            transport=httpx.MockTransport(backend.handle),
        )

    return factory
