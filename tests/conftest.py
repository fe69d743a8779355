"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

ROOT = Path(__file__).resolve().parents[1]

# Add workflow_client to path for imports
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set test environment variables before importing workflow_client
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("API_BASE_URL", "http://backend.test")
os.environ.setdefault("AUTH0_ENABLED", "false")
os.environ.setdefault("AUTH0_AUDIENCE", "https://fraud-transaction-management-api")

from workflow_client.core.auth import (  # noqa: E402
    FRAUD_ANALYST,
    RULE_MAKER,
    AuthenticatedUser,
)
from workflow_client.core.config import reload_settings  # noqa: E402
from workflow_client.core.session import SessionStore  # noqa: E402
from workflow_client.schemas.review import TransactionReview  # noqa: E402
from tests.utils.payloads import review_payload  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings so env changes made by a test do not leak."""
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def mock_client():
    """Mock HttpClient; each verb is an AsyncMock returning None by default."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.post = AsyncMock(return_value=None)
    client.patch = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=None)
    return client


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def analyst_user() -> AuthenticatedUser:
    return AuthenticatedUser(
        user_id="analyst-1",
        email="ada@fraud-platform.test",
        name="Ada Analyst",
        roles=[FRAUD_ANALYST],
    )


@pytest.fixture
def maker_analyst_user() -> AuthenticatedUser:
    """User holding both a rule role and an analyst role."""
    return AuthenticatedUser(
        user_id="maker-analyst-1",
        email="mia@fraud-platform.test",
        name="Mia Maker",
        roles=[RULE_MAKER, FRAUD_ANALYST],
    )


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


# =============================================================================
# Entity Fixtures
# =============================================================================


@pytest.fixture
def sample_review() -> TransactionReview:
    return TransactionReview.model_validate(review_payload())


@pytest.fixture
def in_review_review() -> TransactionReview:
    return TransactionReview.model_validate(
        review_payload(
            status="IN_REVIEW",
            assigned_analyst_id="analyst-1",
            assigned_analyst_name="Ada Analyst",
            assigned_at="2024-01-15T10:35:00Z",
        )
    )
