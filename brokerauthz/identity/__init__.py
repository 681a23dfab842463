"""Identity/role store interface and in-memory implementation."""

from brokerauthz.identity.store import (
    IdentityStore,
    IdentityStoreError,
    InMemoryIdentityStore,
    RoleAlreadyExistsError,
    RoleNotFoundError,
)

__all__ = [
    "IdentityStore",
    "IdentityStoreError",
    "InMemoryIdentityStore",
    "RoleAlreadyExistsError",
    "RoleNotFoundError",
]
