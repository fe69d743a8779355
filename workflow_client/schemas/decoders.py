"""Boundary decoders: one canonical shape per entity.

The backend (and the mocks used during development) answer the same logical
request with several JSON shapes. Everything is canonicalized here, once, so
the synchronizers only ever see one normalized model.
"""

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from workflow_client.schemas.case import CaseActivity, TransactionCase
from workflow_client.schemas.notes import AnalystNote
from workflow_client.schemas.review import TransactionReview
from workflow_client.schemas.worklist import WorklistItem, WorklistStats

ModelT = TypeVar("ModelT", bound=BaseModel)

LIST_KEYS = ("items", "data", "results")


class Page(BaseModel, Generic[ModelT]):
    """Canonical paginated list."""

    items: list[ModelT] = Field(default_factory=list)
    total: int = 0
    page_size: int | None = None
    has_more: bool = False
    next_cursor: str | None = None


def extract_items(payload: Any) -> list[Any]:
    """Find the list of records in a list response.

    Accepts a bare list, ``{"items": [...]}``, ``{"data": [...]}``,
    ``{"results": [...]}``, or failing those the first list-valued field.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in LIST_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return value
    for value in payload.values():
        if isinstance(value, list):
            return value
    return []


def extract_record(payload: Any) -> dict[str, Any]:
    """Unwrap a single record from ``{...}`` or ``{"data": {...}}``."""
    if isinstance(payload, dict):
        inner = payload.get("data")
        if isinstance(inner, dict) and "id" not in payload:
            return inner
        return payload
    raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")


def decode_page(
    payload: Any,
    model: type[ModelT],
    canonicalize: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
) -> Page[ModelT]:
    raw_items = extract_items(payload)
    if canonicalize is not None:
        raw_items = [canonicalize(item) for item in raw_items]
    items = [model.model_validate(item) for item in raw_items]

    meta = payload if isinstance(payload, dict) else {}
    total = meta.get("total")
    return Page[model](
        items=items,
        total=total if isinstance(total, int) else len(items),
        page_size=meta.get("page_size"),
        has_more=bool(meta.get("has_more", False)),
        next_cursor=meta.get("next_cursor"),
    )


def decode_review(payload: Any) -> TransactionReview:
    return TransactionReview.model_validate(extract_record(payload))


def decode_note_page(payload: Any) -> Page[AnalystNote]:
    return decode_page(payload, AnalystNote)


def decode_case(payload: Any) -> TransactionCase:
    return TransactionCase.model_validate(extract_record(payload))


def decode_case_page(payload: Any) -> Page[TransactionCase]:
    return decode_page(payload, TransactionCase)


def canonicalize_case_activity(raw: dict[str, Any]) -> dict[str, Any]:
    """Map the backend's audit-log field names onto the client's."""
    record = dict(raw)
    record.setdefault("performed_by", raw.get("analyst_id"))
    record.setdefault("performed_by_name", raw.get("analyst_name"))
    if record.get("activity_data") is None and (
        raw.get("old_values") is not None or raw.get("new_values") is not None
    ):
        record["activity_data"] = {
            "old_values": raw.get("old_values"),
            "new_values": raw.get("new_values"),
        }
    return record


def decode_case_activity_page(payload: Any) -> Page[CaseActivity]:
    return decode_page(payload, CaseActivity, canonicalize=canonicalize_case_activity)


def decode_worklist_page(payload: Any) -> Page[WorklistItem]:
    return decode_page(payload, WorklistItem)


def decode_worklist_item(payload: Any) -> WorklistItem | None:
    if payload is None:
        return None
    return WorklistItem.model_validate(extract_record(payload))


def decode_worklist_stats(payload: Any) -> WorklistStats:
    return WorklistStats.model_validate(extract_record(payload))
