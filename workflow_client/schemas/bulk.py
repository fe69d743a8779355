"""Bulk operation schemas for batch processing."""

from pydantic import BaseModel, Field

from workflow_client.schemas.case import CaseType
from workflow_client.schemas.review import RiskLevel, TransactionStatus


class BulkAssignRequest(BaseModel):
    """Request to assign many transactions to one analyst."""

    transaction_ids: list[str] = Field(
        ...,
        min_length=1,
        max_length=100,
        description="List of transaction IDs to assign (max 100 per request)",
    )
    analyst_id: str = Field(..., description="Analyst ID to assign all transactions to")


class BulkStatusUpdateRequest(BaseModel):
    """Request to move many transactions to one status."""

    transaction_ids: list[str] = Field(..., min_length=1, max_length=100)
    status: TransactionStatus = Field(..., description="New status to set")
    resolution_code: str | None = Field(None, max_length=64)
    resolution_notes: str | None = None


class BulkCreateCaseRequest(BaseModel):
    """Request to open a case from a set of transactions."""

    transaction_ids: list[str] = Field(..., min_length=1, max_length=100)
    case_type: CaseType
    title: str = Field(..., min_length=1, max_length=512)
    description: str | None = Field(None, max_length=5000)
    assigned_analyst_id: str | None = None
    risk_level: RiskLevel | None = None


class BulkOperationResult(BaseModel):
    """Result of a single bulk operation item."""

    transaction_id: str
    success: bool
    error_message: str | None = None
    error_code: str | None = None


class BulkOperationResponse(BaseModel):
    """Response for bulk operations."""

    # Summary
    total_requested: int
    successful: int
    failed: int

    # Detailed results
    results: list[BulkOperationResult] = Field(default_factory=list)

    # Created resources (for case creation)
    created_case_id: str | None = None
    created_case_number: str | None = None

    # Errors summary
    error_summary: dict[str, int] | None = None
