"""
Roles, token claims and the external token authority.

The client never verifies token signatures (the backend does); it only
reads claims to decide which actions a view should offer. Claims are read
with python-jose's unverified-claims helper.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from workflow_client.core.config import AuthorityConfig, get_settings
from workflow_client.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

# =============================================================================
# Role Constants
# =============================================================================

PLATFORM_ADMIN = "PLATFORM_ADMIN"  # Full access across all projects
RULE_MAKER = "RULE_MAKER"  # Author and edit rules
RULE_CHECKER = "RULE_CHECKER"  # Approve rule submissions
RULE_VIEWER = "RULE_VIEWER"  # Read-only rule access
FRAUD_ANALYST = "FRAUD_ANALYST"  # Review transactions, open cases
FRAUD_SUPERVISOR = "FRAUD_SUPERVISOR"  # Final decision authority

SYSTEM_ROLES: tuple[str, ...] = (
    PLATFORM_ADMIN,
    RULE_MAKER,
    RULE_CHECKER,
    RULE_VIEWER,
    FRAUD_ANALYST,
    FRAUD_SUPERVISOR,
)

# Each role grants itself plus every role it subsumes
ROLE_GROUPS: dict[str, frozenset[str]] = {
    PLATFORM_ADMIN: frozenset(SYSTEM_ROLES),
    RULE_MAKER: frozenset({RULE_MAKER, RULE_VIEWER}),
    RULE_CHECKER: frozenset({RULE_CHECKER, RULE_VIEWER}),
    RULE_VIEWER: frozenset({RULE_VIEWER}),
    FRAUD_ANALYST: frozenset({FRAUD_ANALYST}),
    FRAUD_SUPERVISOR: frozenset({FRAUD_SUPERVISOR, FRAUD_ANALYST}),
}


def is_system_role(role: str) -> bool:
    return role in ROLE_GROUPS


def filter_system_roles(roles: list[str]) -> list[str]:
    """Keep known roles only, preserving order and dropping duplicates."""
    seen: set[str] = set()
    result = []
    for role in roles:
        if is_system_role(role) and role not in seen:
            seen.add(role)
            result.append(role)
    return result


def expand_roles(roles: list[str] | tuple[str, ...]) -> frozenset[str]:
    """Return the roles plus everything they subsume through the hierarchy."""
    expanded: set[str] = set()
    for role in roles:
        expanded |= ROLE_GROUPS.get(role, frozenset())
    return frozenset(expanded)


class AuthenticatedUser(BaseModel):
    """The signed-in user as known to the client session."""

    user_id: str
    email: str | None = None
    name: str | None = None
    roles: list[str] = Field(default_factory=list)

    @property
    def system_roles(self) -> list[str]:
        return filter_system_roles(self.roles)

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role."""
        return role in self.roles


# =============================================================================
# Claims parsing
# =============================================================================


def get_unverified_claims(token: str) -> dict[str, Any]:
    """Decode a JWT's claims without verifying it."""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.warning(f"Unable to decode token claims: {e}")
        raise UnauthorizedError("Invalid or expired token", status=401) from None


def get_token_scopes(claims: dict[str, Any] | None) -> list[str]:
    """Extract granted scopes from access-token claims.

    Accepts a space-separated ``scope`` string, or a list under ``scp`` or
    ``permissions`` (Auth0 adds ``permissions`` when RBAC is enabled).
    """
    if not claims:
        return []

    raw = claims.get("scope")
    if raw is None:
        raw = claims.get("scp")
    if raw is None:
        raw = claims.get("permissions")
    if raw is None:
        return []

    if isinstance(raw, str):
        return [scope for scope in raw.split(" ") if scope]

    if isinstance(raw, list):
        return [scope for scope in raw if isinstance(scope, str)]

    logger.warning(f"Scope claim has unexpected type: {type(raw)}")
    return []


def get_token_roles(claims: dict[str, Any] | None, roles_claim: str) -> list[str]:
    """Extract raw roles from ID-token claims (may include legacy roles)."""
    if not claims:
        return []

    roles = claims.get(roles_claim, [])
    if not isinstance(roles, list):
        logger.warning(f"Roles claim is not a list: {type(roles)}")
        return []

    return [role for role in roles if isinstance(role, str)]


TokenProvider = Callable[[], Awaitable[str | None]]


class TokenAuthority:
    """External token authority (Auth0 in production deployments).

    Wraps the async token getters supplied by the hosting application.
    """

    def __init__(
        self,
        access_token_provider: TokenProvider,
        id_token_provider: TokenProvider | None = None,
        config: AuthorityConfig | None = None,
    ):
        self._access_token_provider = access_token_provider
        self._id_token_provider = id_token_provider
        self.config = config or get_settings().auth0

    async def get_access_token(self) -> str | None:
        return await self._access_token_provider()

    async def get_access_token_claims(self) -> dict[str, Any] | None:
        token = await self.get_access_token()
        if not token:
            return None
        return get_unverified_claims(token)

    async def get_scopes(self) -> list[str]:
        """Scopes granted by the current access token."""
        return get_token_scopes(await self.get_access_token_claims())

    async def get_roles(self) -> list[str]:
        """Roles carried by the ID token (empty when no ID token is available)."""
        if self._id_token_provider is None:
            return []
        token = await self._id_token_provider()
        if not token:
            return []
        return get_token_roles(get_unverified_claims(token), self.config.roles_claim)
