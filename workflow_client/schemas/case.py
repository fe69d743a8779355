"""Case schemas for grouping related transactions."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from workflow_client.schemas.review import RiskLevel


class CaseType(str, Enum):
    """Type of case for grouping related transactions."""

    INVESTIGATION = "INVESTIGATION"
    DISPUTE = "DISPUTE"
    CHARGEBACK = "CHARGEBACK"
    FRAUD_RING = "FRAUD_RING"
    ACCOUNT_TAKEOVER = "ACCOUNT_TAKEOVER"
    PATTERN_ANALYSIS = "PATTERN_ANALYSIS"
    MERCHANT_REVIEW = "MERCHANT_REVIEW"
    CARD_COMPROMISE = "CARD_COMPROMISE"
    OTHER = "OTHER"


class CaseStatus(str, Enum):
    """Status of case workflow."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_INFO = "PENDING_INFO"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class TransactionCase(BaseModel):
    """Investigation case grouping related transactions."""

    model_config = ConfigDict(frozen=True)

    id: str
    case_number: str
    case_type: CaseType
    case_status: CaseStatus
    risk_level: RiskLevel | None = None

    # Details
    title: str
    description: str | None = None

    # Aggregates
    total_transaction_count: int = 0
    total_transaction_amount: float = 0.0

    # Assignment
    assigned_analyst_id: str | None = None
    assigned_analyst_name: str | None = None
    assigned_at: datetime | None = None

    # Resolution
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    resolution_summary: str | None = None

    # Audit
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class CaseFilters(BaseModel):
    """Query filters for listing cases."""

    model_config = ConfigDict(frozen=True)

    case_status: CaseStatus | None = None
    case_type: CaseType | None = None
    assigned_analyst_id: str | None = None
    risk_level: RiskLevel | None = None


class CaseCreateRequest(BaseModel):
    """Request to create a case."""

    case_type: CaseType = Field(..., description="Type of case")
    title: str = Field(..., min_length=1, max_length=512, description="Case title")
    description: str | None = Field(None, max_length=5000)
    risk_level: RiskLevel | None = None
    transaction_ids: list[str] = Field(default_factory=list)
    assigned_analyst_id: str | None = None


class CaseUpdateRequest(BaseModel):
    """Request to update a case."""

    case_status: CaseStatus | None = None
    risk_level: RiskLevel | None = None
    title: str | None = Field(None, min_length=1, max_length=512)
    description: str | None = Field(None, max_length=5000)
    assigned_analyst_id: str | None = None


class CaseResolveRequest(BaseModel):
    """Request to resolve a case."""

    resolution_summary: str = Field(..., min_length=1, max_length=5000)
    resolved_by: str | None = None


class CaseActivity(BaseModel):
    """Case activity log entry."""

    # The backend's activity ids are integers
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    case_id: str
    activity_type: str
    activity_description: str
    activity_data: dict[str, Any] | None = None
    performed_by: str | None = None
    performed_by_name: str | None = None
    created_at: datetime
