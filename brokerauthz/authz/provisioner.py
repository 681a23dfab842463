"""Per-resource role provisioning.

Queue owners and topic subscribers are backed by internal roles that the
engine creates on the first successful mutating action:

- ``Internal/Q_<queue>``: sole member is the queue's creator, granted
  consume, publish and changePermission on the queue.
- ``Internal/T_<topic>``: every subscriber of the topic, granted
  subscribe, publish and changePermission on the topic plus consume,
  publish and changePermission on the subscriber's temporary queue.

All operations are safe to repeat and to run concurrently; duplicate role
creation is rejected by the identity store and absorbed here.
"""

import logging

from brokerauthz.authz import names
from brokerauthz.authz.models import PermissionKind, Principal
from brokerauthz.config import AuthzSettings
from brokerauthz.identity.store import IdentityStore, RoleAlreadyExistsError

logger = logging.getLogger(__name__)

QUEUE_OWNER_GRANTS = (
    PermissionKind.CHANGE_PERMISSION,
    PermissionKind.CONSUME,
    PermissionKind.PUBLISH,
)
TOPIC_GRANTS = (
    PermissionKind.SUBSCRIBE,
    PermissionKind.PUBLISH,
    PermissionKind.CHANGE_PERMISSION,
)
TEMPORARY_QUEUE_GRANTS = (
    PermissionKind.CONSUME,
    PermissionKind.PUBLISH,
    PermissionKind.CHANGE_PERMISSION,
)


class RoleProvisioner:
    """Creates, augments and removes per-resource roles."""

    def __init__(self, identity_store: IdentityStore, settings: AuthzSettings):
        self.identity_store = identity_store
        self.settings = settings

    def queue_role_for(self, queue_name: str) -> str:
        return names.queue_role_name(queue_name, self.settings.internal_role_domain)

    def topic_role_for(self, routing_key: str) -> str:
        return names.topic_role_name(routing_key, self.settings.internal_role_domain)

    def provision_queue_owner(self, principal: Principal, queue_name: str) -> bool:
        """Create the owner role for a queue, first creator wins.

        Returns:
            True if the role was created, False if it already existed
        """
        role_name = self.queue_role_for(queue_name)
        permission_id = names.queue_permission_id(
            queue_name, self.settings.queue_permission_prefix
        )

        if self.identity_store.role_exists(role_name):
            created = False
        else:
            try:
                self.identity_store.create_role(role_name, [principal.username])
                created = True
            except RoleAlreadyExistsError:
                created = False

        if not created:
            logger.warning(
                "Unable to provide permissions to the user, %s, to subscribe and "
                "publish to %s: role %s already exists",
                principal.username, queue_name, role_name
            )
            return False

        for kind in QUEUE_OWNER_GRANTS:
            self.identity_store.grant_permission(role_name, permission_id, kind.value)

        logger.info("Provisioned owner role %s for %s", role_name, principal.username)
        return True

    def provision_topic_subscriber(
        self, principal: Principal, routing_key: str, temp_queue_name: str
    ) -> None:
        """Make principal a member of the topic role and (re)assert its grants."""
        role_name = self.topic_role_for(routing_key)
        member = principal.username

        if not self.identity_store.role_exists(role_name):
            try:
                self.identity_store.create_role(role_name, [member])
                logger.info("Created topic role %s", role_name)
            except RoleAlreadyExistsError:
                logger.debug("Topic role %s created concurrently", role_name)

        if member not in self.identity_store.members_of_role(role_name):
            self.identity_store.add_members_to_role(role_name, [member])
            logger.debug("Added %s to topic role %s", member, role_name)

        topic_id = names.topic_permission_id(
            routing_key, self.settings.topic_permission_prefix
        )
        for kind in TOPIC_GRANTS:
            self.identity_store.grant_permission(role_name, topic_id, kind.value)

        temp_queue_id = names.queue_permission_id(
            temp_queue_name, self.settings.queue_permission_prefix
        )
        for kind in TEMPORARY_QUEUE_GRANTS:
            self.identity_store.grant_permission(role_name, temp_queue_id, kind.value)

    def deprovision_queue_owner(self, queue_name: str) -> bool:
        """Delete a queue's owner role if it exists.

        Returns:
            True if a role was deleted
        """
        role_name = self.queue_role_for(queue_name)
        if not self.identity_store.role_exists(role_name):
            return False

        self.identity_store.delete_role(role_name)
        logger.info("Removed owner role %s", role_name)
        return True
