"""Schemas package for workflow entities and request models."""

from workflow_client.schemas.bulk import (
    BulkAssignRequest,
    BulkCreateCaseRequest,
    BulkOperationResponse,
    BulkOperationResult,
    BulkStatusUpdateRequest,
)
from workflow_client.schemas.case import (
    CaseActivity,
    CaseCreateRequest,
    CaseFilters,
    CaseResolveRequest,
    CaseStatus,
    CaseType,
    CaseUpdateRequest,
    TransactionCase,
)
from workflow_client.schemas.decoders import Page
from workflow_client.schemas.identity import ConfirmedId, EntityId, LocalId
from workflow_client.schemas.notes import (
    AnalystNote,
    NoteCreateRequest,
    NoteType,
    NoteUpdateRequest,
)
from workflow_client.schemas.review import (
    AnalystDecision,
    AssignRequest,
    EscalateRequest,
    ResolutionCode,
    ResolveRequest,
    RiskLevel,
    StatusUpdateRequest,
    TransactionReview,
    TransactionStatus,
)
from workflow_client.schemas.worklist import (
    ClaimNextRequest,
    WorklistFilters,
    WorklistItem,
    WorklistStats,
)

__all__ = [
    # Review
    "TransactionReview",
    "TransactionStatus",
    "RiskLevel",
    "ResolutionCode",
    "AnalystDecision",
    "StatusUpdateRequest",
    "AssignRequest",
    "ResolveRequest",
    "EscalateRequest",
    # Notes
    "AnalystNote",
    "NoteType",
    "NoteCreateRequest",
    "NoteUpdateRequest",
    # Cases
    "TransactionCase",
    "CaseType",
    "CaseStatus",
    "CaseFilters",
    "CaseCreateRequest",
    "CaseUpdateRequest",
    "CaseResolveRequest",
    "CaseActivity",
    # Worklist
    "WorklistItem",
    "WorklistStats",
    "WorklistFilters",
    "ClaimNextRequest",
    # Bulk
    "BulkAssignRequest",
    "BulkStatusUpdateRequest",
    "BulkCreateCaseRequest",
    "BulkOperationResult",
    "BulkOperationResponse",
    # Shared
    "Page",
    "LocalId",
    "ConfirmedId",
    "EntityId",
]
