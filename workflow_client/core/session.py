"""Process-wide session state: signed-in user, session token and active role.

Lifecycle:
- ``login`` stores the user and token and selects the first assigned role
- ``set_active_role`` switches the role a multi-role user acts under
- ``logout`` clears everything

Every active-role change is broadcast to subscribers so capability
consumers can recompute.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from workflow_client.core.auth import AuthenticatedUser, is_system_role

logger = logging.getLogger(__name__)

ActiveRoleListener = Callable[[str | None], None]


class SessionStore:
    """Explicit holder for the state the UI shares across views."""

    def __init__(self) -> None:
        self._user: AuthenticatedUser | None = None
        self._token: str | None = None
        self._active_role: str | None = None
        self._listeners: list[ActiveRoleListener] = []

    @property
    def user(self) -> AuthenticatedUser | None:
        return self._user

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def active_role(self) -> str | None:
        return self._active_role

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def login(self, user: AuthenticatedUser, token: str | None = None) -> None:
        """Start a session; the first assigned system role becomes active."""
        self._user = user
        self._token = token
        system_roles = user.system_roles
        logger.info(
            "Session started",
            extra={"user_id": user.user_id, "roles": system_roles},
        )
        self.set_active_role(system_roles[0] if system_roles else None)

    def logout(self) -> None:
        user_id = self._user.user_id if self._user else None
        self._user = None
        self._token = None
        logger.info("Session ended", extra={"user_id": user_id})
        self.set_active_role(None)

    def clear_token(self) -> None:
        """Drop the session token (the backend rejected it) but keep the user."""
        self._token = None

    def set_active_role(self, role: str | None) -> None:
        """Select the role to act under; unknown roles are ignored.

        Listeners are notified on every call, including no-op ones, matching
        a UI that re-reads the active role whenever the event fires.
        """
        if role is None:
            self._active_role = None
        elif is_system_role(role):
            self._active_role = role
        else:
            logger.warning("Ignoring unknown active role", extra={"role": role})
        self._notify()

    def subscribe(self, listener: ActiveRoleListener) -> Callable[[], None]:
        """Call ``listener(active_role)`` on every active-role change; returns an unsubscriber."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._active_role)
