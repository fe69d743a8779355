"""Roles of the signed-in user, from the token authority or the session."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from workflow_client.core.abort import RequestSlot
from workflow_client.core.auth import (
    FRAUD_ANALYST,
    FRAUD_SUPERVISOR,
    PLATFORM_ADMIN,
    ROLE_GROUPS,
    RULE_CHECKER,
    RULE_MAKER,
    RULE_VIEWER,
    TokenAuthority,
    filter_system_roles,
)
from workflow_client.core.errors import WorkflowClientError, normalize_error
from workflow_client.core.logging import LoggerMixin
from workflow_client.core.session import SessionStore
from workflow_client.services.synchronizer import Observable


class RolesResolver(Observable, LoggerMixin):
    """Loads the user's roles and answers role questions.

    With an enabled token authority the roles come from the ID token claims
    (and may include legacy, non-system roles); otherwise from the session
    user, filtered to known system roles.
    """

    def __init__(self, session: SessionStore, authority: TokenAuthority | None = None):
        super().__init__()
        self.session = session
        self.authority = authority
        self.roles: list[str] = []
        self.is_loading = True
        self.error: WorkflowClientError | None = None
        self._slot = RequestSlot("roles")
        self._unsubscribe_session: Callable[[], None] | None = None

    @property
    def uses_authority(self) -> bool:
        return self.authority is not None and self.authority.config.enabled

    async def load(self) -> None:
        """(Re)load roles; failures leave an empty role list and ``error`` set."""
        self.is_loading = True
        self.error = None
        signal = self._slot.renew()
        self._notify()

        if self._unsubscribe_session is None and not self.uses_authority:
            self._unsubscribe_session = self.session.subscribe(self._on_session_changed)

        try:
            if self.uses_authority:
                roles = await self.authority.get_roles()
            else:
                roles = self._session_roles()
            if signal.aborted:
                return
            self.roles = list(roles)
        except Exception as e:
            if signal.aborted:
                return
            self.error = normalize_error(e, "Failed to fetch roles")
            self.logger.warning(f"Failed to fetch roles: {self.error.message}")
            self.roles = []
        finally:
            if not signal.aborted:
                self.is_loading = False
                self._notify()

    def _session_roles(self) -> list[str]:
        user = self.session.user
        return filter_system_roles(user.roles) if user is not None else []

    def _on_session_changed(self, _active_role: str | None) -> None:
        # Login and logout both broadcast; pick up the new user's roles
        roles = self._session_roles()
        if roles != self.roles:
            self.roles = roles
            self._notify()

    def close(self) -> None:
        self._slot.abort()
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None

    # ------------------------------------------------------------------
    # Role questions
    # ------------------------------------------------------------------

    @property
    def system_roles(self) -> list[str]:
        return filter_system_roles(self.roles)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return any(role in self.roles for role in roles)

    def has_all_roles(self, roles: Iterable[str]) -> bool:
        return all(role in self.roles for role in roles)

    def has_role_or_parent(self, role: str) -> bool:
        """True if the user holds ``role`` or a role that subsumes it."""
        if role in self.roles:
            return True
        return any(role in ROLE_GROUPS[held] for held in self.system_roles)

    @property
    def is_platform_admin(self) -> bool:
        return self.has_role_or_parent(PLATFORM_ADMIN)

    @property
    def is_rule_maker(self) -> bool:
        return self.has_role_or_parent(RULE_MAKER)

    @property
    def is_rule_checker(self) -> bool:
        return self.has_role_or_parent(RULE_CHECKER)

    @property
    def is_rule_viewer(self) -> bool:
        return self.has_role_or_parent(RULE_VIEWER)

    @property
    def is_fraud_analyst(self) -> bool:
        return self.has_role_or_parent(FRAUD_ANALYST)

    @property
    def is_fraud_supervisor(self) -> bool:
        return self.has_role_or_parent(FRAUD_SUPERVISOR)

    # Legacy names; exact match only
    @property
    def is_maker(self) -> bool:
        return RULE_MAKER in self.roles

    @property
    def is_checker(self) -> bool:
        return RULE_CHECKER in self.roles
