"""Identity/role store interface.

The engine never owns user or role storage; it talks to the directory
through this protocol. ``InMemoryIdentityStore`` is a thread-safe
reference implementation for embedding and tests.
"""

import logging
import threading
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)


class IdentityStoreError(Exception):
    """Raised when an identity store operation fails."""


class RoleAlreadyExistsError(IdentityStoreError):
    """Raised when creating a role that already exists."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role already exists: {role_name}")


class RoleNotFoundError(IdentityStoreError):
    """Raised when operating on a role that does not exist."""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"Role not found: {role_name}")


class IdentityStore(Protocol):
    """Protocol for identity/role store backends.

    Implementations must reject duplicate role creation with
    ``RoleAlreadyExistsError`` and must tolerate repeated grants of the
    same permission.
    """

    def roles_of_user(self, username: str) -> set[str]:
        """Get every role the user is a member of."""
        ...

    def role_exists(self, role_name: str) -> bool:
        ...

    def create_role(self, role_name: str, members: Iterable[str]) -> None:
        """Create a role with its initial members."""
        ...

    def delete_role(self, role_name: str) -> None:
        ...

    def members_of_role(self, role_name: str) -> set[str]:
        ...

    def add_members_to_role(self, role_name: str, members: Iterable[str]) -> None:
        ...

    def is_authorized(self, username: str, resource_id: str, action: str) -> bool:
        """Check whether any of the user's roles holds (resource_id, action)."""
        ...

    def grant_permission(self, role_name: str, resource_id: str, action: str) -> None:
        ...


class InMemoryIdentityStore:
    """Thread-safe in-memory identity store.

    Usage:
        store = InMemoryIdentityStore()
        store.add_user("alice", roles=["admin"])
        store.grant_permission("admin", "/permission/admin", "ui.execute")
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._roles: dict[str, set[str]] = {}  # role -> members
        self._grants: dict[str, set[tuple[str, str]]] = {}  # role -> (resource_id, action)
        self._users: dict[str, set[str]] = {}  # user -> directly assigned roles

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def add_user(self, username: str, roles: Iterable[str] = ()) -> None:
        """Add a user and make it a member of the given roles."""
        with self._lock:
            self._users.setdefault(username, set())
            for role_name in roles:
                self._roles.setdefault(role_name, set()).add(username)
                self._grants.setdefault(role_name, set())

    def assign_role(self, username: str, role_name: str) -> None:
        self.add_user(username, roles=[role_name])

    def grants_of_role(self, role_name: str) -> set[tuple[str, str]]:
        """Get the (resource_id, action) pairs granted to a role."""
        with self._lock:
            return set(self._grants.get(role_name, set()))

    def role_names(self) -> set[str]:
        with self._lock:
            return set(self._roles)

    # -------------------------------------------------------------------------
    # IdentityStore protocol
    # -------------------------------------------------------------------------

    def roles_of_user(self, username: str) -> set[str]:
        with self._lock:
            return {role for role, members in self._roles.items() if username in members}

    def role_exists(self, role_name: str) -> bool:
        with self._lock:
            return role_name in self._roles

    def create_role(self, role_name: str, members: Iterable[str]) -> None:
        with self._lock:
            if role_name in self._roles:
                raise RoleAlreadyExistsError(role_name)
            self._roles[role_name] = set(members)
            self._grants[role_name] = set()
        logger.debug("Created role: %s", role_name)

    def delete_role(self, role_name: str) -> None:
        with self._lock:
            if role_name not in self._roles:
                raise RoleNotFoundError(role_name)
            del self._roles[role_name]
            self._grants.pop(role_name, None)
        logger.debug("Deleted role: %s", role_name)

    def members_of_role(self, role_name: str) -> set[str]:
        with self._lock:
            if role_name not in self._roles:
                raise RoleNotFoundError(role_name)
            return set(self._roles[role_name])

    def add_members_to_role(self, role_name: str, members: Iterable[str]) -> None:
        with self._lock:
            if role_name not in self._roles:
                raise RoleNotFoundError(role_name)
            self._roles[role_name].update(members)

    def is_authorized(self, username: str, resource_id: str, action: str) -> bool:
        with self._lock:
            for role_name, members in self._roles.items():
                if username in members and (resource_id, action) in self._grants[role_name]:
                    return True
        return False

    def grant_permission(self, role_name: str, resource_id: str, action: str) -> None:
        with self._lock:
            if role_name not in self._roles:
                raise RoleNotFoundError(role_name)
            self._grants[role_name].add((resource_id, action))
