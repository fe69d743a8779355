"""Identity of records that may not yet exist on the server.

Optimistically created records carry a client-fabricated id until the
reconciling refetch replaces them with the server's copy. ``LocalId`` and
``ConfirmedId`` keep the two apart so a temporary id never reaches a URL.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from workflow_client.core.errors import PlaceholderIdError

TEMP_ID_PREFIX = "temp-"


@dataclass(frozen=True)
class LocalId:
    temp_id: str


@dataclass(frozen=True)
class ConfirmedId:
    server_id: str


EntityId = LocalId | ConfirmedId


def new_temp_id(now: datetime | None = None) -> str:
    """Temporary id derived from the current timestamp in milliseconds."""
    now = now or datetime.now(UTC)
    return f"{TEMP_ID_PREFIX}{int(now.timestamp() * 1000)}"


def classify_id(raw_id: str) -> EntityId:
    if raw_id.startswith(TEMP_ID_PREFIX):
        return LocalId(raw_id)
    return ConfirmedId(raw_id)


def require_server_id(raw_id: str) -> str:
    """Return ``raw_id`` if it is a server id; refuse placeholders."""
    identity = classify_id(raw_id)
    if isinstance(identity, LocalId):
        raise PlaceholderIdError(
            "Record has not been confirmed by the server yet",
            details={"temp_id": identity.temp_id},
        )
    return identity.server_id
