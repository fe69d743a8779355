"""Endpoint paths for the transaction management backend.

All paths are relative to the configured API base URL.
"""

from enum import Enum

API_VERSION = "/api/v1"

# Transaction review (analyst workflow)


def review_path(transaction_id: str) -> str:
    return f"{API_VERSION}/transactions/{transaction_id}/review"


def review_status_path(transaction_id: str) -> str:
    return f"{review_path(transaction_id)}/status"


def review_assign_path(transaction_id: str) -> str:
    return f"{review_path(transaction_id)}/assign"


def review_resolve_path(transaction_id: str) -> str:
    return f"{review_path(transaction_id)}/resolve"


def review_escalate_path(transaction_id: str) -> str:
    return f"{review_path(transaction_id)}/escalate"


# Analyst notes


def notes_path(transaction_id: str) -> str:
    return f"{API_VERSION}/transactions/{transaction_id}/notes"


def note_path(transaction_id: str, note_id: str) -> str:
    return f"{notes_path(transaction_id)}/{note_id}"


# Cases

CASES_PATH = f"{API_VERSION}/cases"


def case_path(case_id: str) -> str:
    return f"{CASES_PATH}/{case_id}"


def case_by_number_path(case_number: str) -> str:
    return f"{CASES_PATH}/number/{case_number}"


def case_resolve_path(case_id: str) -> str:
    return f"{case_path(case_id)}/resolve"


def case_activity_path(case_id: str) -> str:
    return f"{case_path(case_id)}/activity"


def case_transactions_path(case_id: str) -> str:
    return f"{case_path(case_id)}/transactions"


def case_transaction_path(case_id: str, transaction_id: str) -> str:
    return f"{case_transactions_path(case_id)}/{transaction_id}"


# Worklist

WORKLIST_PATH = f"{API_VERSION}/worklist"
WORKLIST_STATS_PATH = f"{WORKLIST_PATH}/stats"
WORKLIST_UNASSIGNED_PATH = f"{WORKLIST_PATH}/unassigned"
WORKLIST_CLAIM_PATH = f"{WORKLIST_PATH}/claim"

# Bulk operations

BULK_ASSIGN_PATH = f"{API_VERSION}/bulk/assign"
BULK_STATUS_PATH = f"{API_VERSION}/bulk/status"
BULK_CREATE_CASE_PATH = f"{API_VERSION}/bulk/create-case"


def build_query_params(params: dict[str, object]) -> dict[str, str]:
    """Drop unset values and stringify the rest (booleans as ``true``/``false``)."""
    query: dict[str, str] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        elif isinstance(value, Enum):
            query[key] = str(value.value)
        else:
            query[key] = str(value)
    return query
