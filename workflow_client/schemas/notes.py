"""Notes schemas for analyst notes on transactions."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from workflow_client.schemas.identity import EntityId, classify_id, new_temp_id


class NoteType(str, Enum):
    """Type of analyst note for classification."""

    GENERAL = "GENERAL"
    INITIAL_REVIEW = "INITIAL_REVIEW"
    CUSTOMER_CONTACT = "CUSTOMER_CONTACT"
    MERCHANT_CONTACT = "MERCHANT_CONTACT"
    BANK_CONTACT = "BANK_CONTACT"
    FRAUD_CONFIRMED = "FRAUD_CONFIRMED"
    FALSE_POSITIVE = "FALSE_POSITIVE"
    ESCALATION = "ESCALATION"
    RESOLUTION = "RESOLUTION"
    LEGAL_HOLD = "LEGAL_HOLD"
    INTERNAL_REVIEW = "INTERNAL_REVIEW"


class NoteAttachment(BaseModel):
    """Reference to an attachment stored in object storage."""

    name: str
    s3_key: str
    content_type: str | None = None
    size_bytes: int | None = None


class AnalystNote(BaseModel):
    """Analyst note attached to a transaction."""

    model_config = ConfigDict(frozen=True)

    id: str
    transaction_id: str
    note_type: NoteType
    note_content: str

    # Visibility
    is_private: bool = False
    is_system_generated: bool = False

    # Author info (immutable after creation)
    analyst_id: str
    analyst_name: str | None = None
    analyst_email: str | None = None

    # Case linkage
    case_id: str | None = None
    attachments: list[NoteAttachment] = Field(default_factory=list)

    # Timestamps
    created_at: datetime
    updated_at: datetime

    @property
    def identity(self) -> EntityId:
        return classify_id(self.id)


class NoteCreateRequest(BaseModel):
    """Request to create an analyst note."""

    note_type: NoteType = Field(default=NoteType.GENERAL, description="Type/classification of note")
    note_content: str = Field(..., min_length=1, max_length=10000, description="Note content")
    is_private: bool | None = Field(None, description="Only visible to author and supervisors")


class NoteUpdateRequest(BaseModel):
    """Request to update an analyst note. Ownership fields are not updatable."""

    note_content: str | None = Field(None, min_length=1, max_length=10000)
    note_type: NoteType | None = None
    is_private: bool | None = None


def make_optimistic_note(
    transaction_id: str, request: NoteCreateRequest, now: datetime
) -> AnalystNote:
    """Placeholder shown until the reconciling refetch returns the server copy."""
    return AnalystNote(
        id=new_temp_id(now),
        transaction_id=transaction_id,
        note_type=request.note_type,
        note_content=request.note_content,
        is_private=bool(request.is_private),
        is_system_generated=False,
        analyst_id="",
        created_at=now,
        updated_at=now,
    )
