"""Worklist schemas for analyst transaction queue management."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from workflow_client.schemas.review import RiskLevel, TransactionStatus


class WorklistItem(BaseModel):
    """A single item in the analyst worklist."""

    model_config = ConfigDict(frozen=True)

    # Review info
    review_id: str
    transaction_id: str
    status: TransactionStatus
    priority: int

    # Transaction summary
    card_id: str
    card_last4: str | None = None
    transaction_amount: float
    transaction_currency: str
    transaction_timestamp: datetime

    # Decision info
    decision: str
    decision_reason: str
    decision_score: float | None = None
    risk_level: RiskLevel | None = None

    # Assignment
    assigned_analyst_id: str | None = None
    assigned_at: datetime | None = None

    # Case linkage
    case_id: str | None = None
    case_number: str | None = None

    # Timestamps
    first_reviewed_at: datetime | None = None
    last_activity_at: datetime | None = None
    created_at: datetime

    # Additional metadata
    merchant_id: str | None = None
    merchant_category_code: str | None = None
    trace_id: str | None = None
    time_in_queue_seconds: int | None = None


class WorklistStats(BaseModel):
    """Statistics for analyst worklist."""

    model_config = ConfigDict(frozen=True)

    # Unassigned counts
    unassigned_total: int = 0
    unassigned_by_priority: dict[str, int] = Field(default_factory=dict)
    unassigned_by_risk: dict[str, int] = Field(default_factory=dict)

    # Assigned to current analyst
    my_assigned_total: int = 0
    my_assigned_by_status: dict[str, int] = Field(default_factory=dict)

    # Resolution stats (today)
    resolved_today: int = 0
    resolved_by_code: dict[str, int] = Field(default_factory=dict)

    # Average resolution time (in minutes)
    avg_resolution_minutes: float | None = None


class WorklistFilters(BaseModel):
    """Query filters for the worklist."""

    model_config = ConfigDict(frozen=True)

    status: TransactionStatus | None = None
    priority_filter: int | None = Field(None, ge=1, le=5)
    risk_level_filter: RiskLevel | None = None
    assigned_only: bool = False
    limit: int | None = Field(None, ge=1)
    cursor: str | None = None


class ClaimNextRequest(BaseModel):
    """Request to claim the next unassigned transaction."""

    priority_filter: int | None = Field(
        None,
        ge=1,
        le=5,
        description="Only claim transactions at or below this priority (lower = higher priority)",
    )
    risk_level_filter: RiskLevel | None = Field(
        None, description="Only claim transactions at this risk level or higher"
    )
