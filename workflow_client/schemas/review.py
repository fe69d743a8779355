"""Review schemas for transaction analyst workflow."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransactionStatus(str, Enum):
    """Transaction review status in workflow."""

    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    ESCALATED = "ESCALATED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class RiskLevel(str, Enum):
    """Risk level classification."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ResolutionCode(str, Enum):
    """Standardized resolution codes for completed reviews."""

    FRAUD_CONFIRMED = "FRAUD_CONFIRMED"
    FALSE_POSITIVE = "FALSE_POSITIVE"
    LEGITIMATE = "LEGITIMATE"
    DUPLICATE = "DUPLICATE"
    INSUFFICIENT_INFO = "INSUFFICIENT_INFO"


class AnalystDecision(str, Enum):
    """Analyst override of the automated decision."""

    APPROVE = "APPROVE"
    DECLINE = "DECLINE"


# Directed edges only. Any non-CLOSED state may be re-assigned (-> IN_REVIEW);
# CLOSED is terminal.
VALID_STATUS_TRANSITIONS: dict[TransactionStatus, tuple[TransactionStatus, ...]] = {
    TransactionStatus.PENDING: (TransactionStatus.IN_REVIEW,),
    TransactionStatus.IN_REVIEW: (
        TransactionStatus.IN_REVIEW,
        TransactionStatus.ESCALATED,
        TransactionStatus.RESOLVED,
    ),
    TransactionStatus.ESCALATED: (TransactionStatus.IN_REVIEW, TransactionStatus.RESOLVED),
    TransactionStatus.RESOLVED: (TransactionStatus.IN_REVIEW, TransactionStatus.CLOSED),
    TransactionStatus.CLOSED: (),
}


def can_transition(current: TransactionStatus | str, target: TransactionStatus | str) -> bool:
    """Check if a status transition is legal."""
    return TransactionStatus(target) in VALID_STATUS_TRANSITIONS[TransactionStatus(current)]


def get_valid_transitions(current: TransactionStatus | str) -> tuple[TransactionStatus, ...]:
    """Statuses reachable from ``current`` in one step."""
    return VALID_STATUS_TRANSITIONS[TransactionStatus(current)]


class TransactionReview(BaseModel):
    """Review record for one transaction (exactly one per transaction)."""

    model_config = ConfigDict(frozen=True)

    id: str
    transaction_id: str
    status: TransactionStatus
    priority: int = 3
    risk_level: RiskLevel | None = None
    case_id: str | None = None

    # Assignment
    assigned_analyst_id: str | None = None
    assigned_analyst_name: str | None = None
    assigned_at: datetime | None = None
    first_reviewed_at: datetime | None = None

    # Resolution
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    resolution_code: ResolutionCode | None = None
    resolution_notes: str | None = None
    analyst_decision: AnalystDecision | None = None
    analyst_decision_reason: str | None = None

    # Escalation
    escalated_at: datetime | None = None
    escalated_to: str | None = None
    escalation_reason: str | None = None

    # Timestamps
    last_activity_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    # Denormalized transaction fields for display
    transaction_amount: float | None = None
    transaction_currency: str | None = None
    decision: str | None = None


class StatusUpdateRequest(BaseModel):
    """Request to move a review to a new status."""

    status: TransactionStatus = Field(..., description="Target status")
    notes: str | None = Field(None, description="Optional note recorded with the change")


class AssignRequest(BaseModel):
    """Request to assign a review to an analyst."""

    analyst_id: str = Field(..., min_length=1, description="ID of the analyst to assign to")
    analyst_name: str | None = Field(None, description="Display name of the analyst")


class ResolveRequest(BaseModel):
    """Request to resolve a review."""

    resolution_code: ResolutionCode = Field(..., description="Standardized resolution code")
    resolution_notes: str | None = Field(None, description="Notes explaining the resolution")
    analyst_decision: AnalystDecision | None = None
    analyst_decision_reason: str | None = None


class EscalateRequest(BaseModel):
    """Request to escalate a review to a supervisor."""

    escalation_reason: str = Field(..., min_length=1, description="Reason for escalation")
    escalate_to: str | None = Field(
        None, description="Supervisor to escalate to (server auto-assigns when omitted)"
    )
