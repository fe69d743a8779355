"""
Capability resolver: which workflow actions a view may offer the user.

Capabilities are derived from, in order of precedence:
1. Access-token scopes (``admin:all`` grants everything)
2. The active role, when the user has picked one
3. The union of the user's assigned roles

Roles are always expanded through the role hierarchy before their grants
are applied. Ambiguous or failed authorization data denies everything.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from workflow_client.core.abort import RequestSlot
from workflow_client.core.auth import (
    FRAUD_ANALYST,
    FRAUD_SUPERVISOR,
    PLATFORM_ADMIN,
    RULE_CHECKER,
    RULE_MAKER,
    RULE_VIEWER,
    TokenAuthority,
    expand_roles,
)
from workflow_client.core.config import PermissionsConfig, get_settings
from workflow_client.core.errors import WorkflowClientError, normalize_error
from workflow_client.core.logging import LoggerMixin
from workflow_client.core.session import SessionStore
from workflow_client.services.roles_resolver import RolesResolver
from workflow_client.services.synchronizer import Observable

ADMIN_SCOPE = "admin:all"


class Capabilities(BaseModel):
    """Derived UI-authorization flags. Immutable; compare by value."""

    model_config = ConfigDict(frozen=True)

    can_create_rules: bool = False
    can_edit_rules: bool = False
    can_delete_rules: bool = False
    can_approve_rules: bool = False
    can_read_rules: bool = False
    can_view_transactions: bool = False
    can_review_transactions: bool = False
    can_create_cases: bool = False
    can_resolve_cases: bool = False
    is_admin: bool = False


CAPABILITY_FLAGS: tuple[str, ...] = tuple(Capabilities.model_fields)

NO_CAPABILITIES = Capabilities()
ALL_CAPABILITIES = Capabilities(**{flag: True for flag in CAPABILITY_FLAGS})

SCOPE_CAPABILITIES: dict[str, frozenset[str]] = {
    "create:rules": frozenset({"can_create_rules"}),
    "edit:rules": frozenset({"can_edit_rules"}),
    "delete:rules": frozenset({"can_delete_rules"}),
    "approve:rules": frozenset({"can_approve_rules"}),
    "read:rules": frozenset({"can_read_rules"}),
    "view:transactions": frozenset({"can_view_transactions"}),
    "review:transactions": frozenset({"can_review_transactions"}),
    "create:cases": frozenset({"can_create_cases"}),
    "resolve:cases": frozenset({"can_resolve_cases"}),
    ADMIN_SCOPE: frozenset(CAPABILITY_FLAGS),
}

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    PLATFORM_ADMIN: frozenset(CAPABILITY_FLAGS),
    RULE_MAKER: frozenset(
        {"can_create_rules", "can_edit_rules", "can_delete_rules", "can_read_rules"}
    ),
    RULE_CHECKER: frozenset({"can_approve_rules", "can_read_rules"}),
    RULE_VIEWER: frozenset({"can_read_rules"}),
    FRAUD_ANALYST: frozenset(
        {"can_view_transactions", "can_review_transactions", "can_create_cases"}
    ),
    FRAUD_SUPERVISOR: frozenset(
        {
            "can_view_transactions",
            "can_review_transactions",
            "can_create_cases",
            "can_resolve_cases",
        }
    ),
}


def filter_known_scopes(scopes: Iterable[str]) -> list[str]:
    """Drop scopes that grant nothing in this client."""
    return [scope for scope in scopes if scope in SCOPE_CAPABILITIES]


@lru_cache(maxsize=256)
def _derive(
    scopes: tuple[str, ...],
    roles: tuple[str, ...],
    active_role: str | None,
    apply_roles: bool,
) -> Capabilities:
    if ADMIN_SCOPE in scopes:
        return ALL_CAPABILITIES

    granted: set[str] = set()
    for scope in scopes:
        granted |= SCOPE_CAPABILITIES.get(scope, frozenset())

    if apply_roles:
        acting_as = (active_role,) if active_role is not None else roles
        for role in expand_roles(acting_as):
            granted |= ROLE_CAPABILITIES.get(role, frozenset())

    return Capabilities(**{flag: True for flag in granted})


def derive_capabilities(
    scopes: Iterable[str],
    roles: Iterable[str],
    active_role: str | None = None,
    *,
    apply_roles: bool = True,
) -> Capabilities:
    """
    Compute capability flags.

    Args:
        scopes: Access-token scopes (unknown scopes are ignored)
        roles: Assigned roles (unknown roles are ignored)
        active_role: Role the user acts under; must be one of ``roles``
            to take effect
        apply_roles: Whether role grants are merged in at all (they only
            ever add flags, never remove them)

    Returns:
        An immutable Capabilities; equal inputs return the same instance.
    """
    role_tuple = tuple(sorted(set(roles)))
    if active_role is not None and active_role not in role_tuple:
        active_role = None
    return _derive(tuple(sorted(set(scopes))), role_tuple, active_role, apply_roles)


class PermissionResolver(Observable, LoggerMixin):
    """Keeps the user's capabilities current as scopes, roles and active role change."""

    def __init__(
        self,
        session: SessionStore,
        authority: TokenAuthority | None = None,
        roles: RolesResolver | None = None,
        config: PermissionsConfig | None = None,
    ):
        super().__init__()
        self.session = session
        self.authority = authority
        self.roles = roles or RolesResolver(session, authority)
        self.config = config or get_settings().permissions

        self.permissions: list[str] = []
        self.is_loading = True
        self.error: WorkflowClientError | None = None
        self.active_role = session.active_role
        self.capabilities = NO_CAPABILITIES

        self._scopes_loaded = False
        self._signed_out = False
        self._reload_task: asyncio.Task | None = None
        self._slot = RequestSlot("permissions")
        self._unsubscribers: list[Callable[[], None]] = [
            session.subscribe(self._on_session_changed),
            self.roles.subscribe(lambda _roles: self._recompute()),
        ]

    @property
    def uses_authority(self) -> bool:
        return self.authority is not None and self.authority.config.enabled

    async def load(self) -> None:
        """Fetch scopes and roles, then derive capabilities."""
        self.is_loading = True
        self.error = None
        self._scopes_loaded = False
        signal = self._slot.renew()
        self._notify()

        await self.roles.load()

        if not self.uses_authority:
            self.permissions = []
            self._scopes_loaded = True
            self.is_loading = False
            self._recompute()
            return

        try:
            scopes = await self.authority.get_scopes()
            if signal.aborted:
                return
            self.permissions = filter_known_scopes(scopes)
            self._scopes_loaded = True
        except Exception as e:
            if signal.aborted:
                return
            self.error = normalize_error(e, "Failed to fetch permissions")
            self.logger.warning(f"Failed to fetch permissions: {self.error.message}")
            self.permissions = []
        self.is_loading = False
        self._recompute()

    def _apply_roles(self) -> bool:
        if not self.uses_authority:
            return True
        if not self._scopes_loaded:
            return False
        return not self.permissions and self.config.role_fallback_on_empty_scopes

    def _recompute(self) -> None:
        if self.uses_authority and self.error is not None:
            self.capabilities = NO_CAPABILITIES
        else:
            self.capabilities = derive_capabilities(
                self.permissions,
                self.roles.system_roles,
                self.active_role,
                apply_roles=self._apply_roles(),
            )
        self._notify()

    def _on_session_changed(self, active_role: str | None) -> None:
        # Logout and login both broadcast through the active role
        self.active_role = active_role
        if self.session.user is None:
            self._revoke()
        elif self._signed_out:
            self._signed_out = False
            self._schedule_reload()
        self._recompute()

    def _revoke(self) -> None:
        """Forget the signed-out user's scopes; capabilities fall to nothing."""
        self._slot.abort()
        self._signed_out = True
        self._scopes_loaded = False
        self.permissions = []
        self.error = None
        self.is_loading = False

    def _schedule_reload(self) -> None:
        if not self.uses_authority:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug("No running event loop; scopes load on the next load()")
            return
        self._reload_task = loop.create_task(self.load())

    def close(self) -> None:
        self._slot.abort()
        if self._reload_task is not None:
            self._reload_task.cancel()
            self._reload_task = None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.roles.close()

    # ------------------------------------------------------------------
    # Scope questions
    # ------------------------------------------------------------------

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def has_any_permission(self, permissions: Iterable[str]) -> bool:
        return any(p in self.permissions for p in permissions)

    def has_all_permissions(self, permissions: Iterable[str]) -> bool:
        return all(p in self.permissions for p in permissions)
