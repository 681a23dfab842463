"""Permission evaluation against the identity store.

Identity store failures are not caught here; the action handler wraps
them so a failed lookup never reads as "not authorized".
"""

import logging

from brokerauthz.authz import names
from brokerauthz.authz.models import (
    AdminPermission,
    PermissionKind,
    Principal,
    UI_EXECUTE,
)
from brokerauthz.config import AuthzSettings
from brokerauthz.identity.store import IdentityStore

logger = logging.getLogger(__name__)


class PermissionEvaluator:
    """Answers the individual questions an action handler combines.

    1. Does the principal hold the administrative role?
    2. Does it hold an administrative-function permission?
    3. Is it an administrator acting inside its own tenant domain?
    4. Does it hold a fine-grained permission on a resource?
    """

    def __init__(self, identity_store: IdentityStore, settings: AuthzSettings):
        self.identity_store = identity_store
        self.settings = settings

    def is_admin(self, principal: Principal) -> bool:
        roles = self.identity_store.roles_of_user(principal.username)
        return self.settings.admin_role in roles

    def has_admin_permission(
        self, principal: Principal, *permissions: AdminPermission
    ) -> bool:
        """Check if principal holds any of the administrative-function permissions."""
        for permission in permissions:
            if self.identity_store.is_authorized(
                principal.username, permission.value, UI_EXECUTE
            ):
                logger.debug(
                    "Admin permission %s held by %s", permission.value, principal.username
                )
                return True
        return False

    def owns_domain(self, principal: Principal, resource_name: str) -> bool:
        return names.is_own_domain(
            principal.tenant_domain,
            resource_name,
            self.settings.super_tenant_domain,
        )

    def is_domain_admin(self, principal: Principal, resource_name: str) -> bool:
        """Check if principal is an administrator and the resource is in its domain."""
        return self.is_admin(principal) and self.owns_domain(principal, resource_name)

    def is_authorized(
        self, principal: Principal, permission_id: str, kind: PermissionKind
    ) -> bool:
        return self.identity_store.is_authorized(
            principal.username, permission_id, kind.value
        )
