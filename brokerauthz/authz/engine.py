"""Authorization engine.

One handler per broker action. Each handler normalizes the broker's
internal names, walks its eligibility branches in order and, when the
action is allowed, writes registry records and provisions or removes the
per-resource roles that back later decisions.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from brokerauthz.authz import names
from brokerauthz.authz.evaluator import PermissionEvaluator
from brokerauthz.authz.models import (
    AdminPermission,
    AuthzDecision,
    BackendFailureError,
    BindProperties,
    BrokerAction,
    DecisionRule,
    ExchangeKind,
    PermissionKind,
    Principal,
    PublishProperties,
    QueueProperties,
)
from brokerauthz.authz.provisioner import RoleProvisioner
from brokerauthz.config import AuthzSettings
from brokerauthz.identity.store import IdentityStore, IdentityStoreError
from brokerauthz.registry.client import MetadataRegistry, RegistryError

logger = logging.getLogger(__name__)

PROPERTY_MODELS: dict[BrokerAction, type[BaseModel]] = {
    BrokerAction.CREATE_QUEUE: QueueProperties,
    BrokerAction.CONSUME_QUEUE: QueueProperties,
    BrokerAction.BIND_QUEUE: BindProperties,
    BrokerAction.PUBLISH_TO_EXCHANGE: PublishProperties,
    BrokerAction.UNBIND_QUEUE: BindProperties,
    BrokerAction.DELETE_QUEUE: QueueProperties,
}


@contextmanager
def backend_errors(description: str) -> Iterator[None]:
    """Convert identity store and registry failures into BackendFailureError."""
    try:
        yield
    except (IdentityStoreError, RegistryError) as e:
        logger.error("Error handling %s: %s", description, e)
        raise BackendFailureError(f"Error handling {description}.") from e


class AuthzEngine:
    """Authorization engine for queues, topics and exchanges.

    The engine is stateless apart from its injected collaborators, so a
    single instance can serve concurrent decisions.

    Usage:
        engine = AuthzEngine(identity_store, registry)

        decision = engine.handle_create_queue(
            Principal(username="alice", tenant_domain="acme.com"),
            QueueProperties(name="client-1:acme.com/orders"),
        )
        if decision.allowed:
            # Proceed
        else:
            # Reject with decision.reason
    """

    def __init__(
        self,
        identity_store: IdentityStore,
        registry: MetadataRegistry,
        settings: AuthzSettings | None = None,
    ):
        self.settings = settings or AuthzSettings()
        self.identity_store = identity_store
        self.registry = registry
        self.evaluator = PermissionEvaluator(identity_store, self.settings)
        self.provisioner = RoleProvisioner(identity_store, self.settings)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def authorize(
        self,
        action: BrokerAction,
        properties: BaseModel | dict[str, Any],
        principal: Principal | None = None,
    ) -> AuthzDecision:
        """Route a broker checkpoint to its handler.

        Args:
            action: Broker action being authorized
            properties: Resource properties, as a model or a plain dict
            principal: Calling principal (not needed for unbind)

        Returns:
            AuthzDecision from the action's handler
        """
        properties = PROPERTY_MODELS[action].model_validate(properties)

        if action == BrokerAction.UNBIND_QUEUE:
            return self.handle_unbind_queue(properties)

        if principal is None:
            raise ValueError(f"{action.value} requires a principal")

        if action == BrokerAction.CREATE_QUEUE:
            return self.handle_create_queue(principal, properties)
        elif action == BrokerAction.CONSUME_QUEUE:
            return self.handle_consume_queue(principal, properties)
        elif action == BrokerAction.BIND_QUEUE:
            return self.handle_bind_queue(principal, properties)
        elif action == BrokerAction.PUBLISH_TO_EXCHANGE:
            return self.handle_publish_to_exchange(principal, properties)
        else:
            return self.handle_delete_queue(principal, properties)

    # =========================================================================
    # Action handlers
    # =========================================================================

    def handle_create_queue(
        self, principal: Principal, properties: QueueProperties
    ) -> AuthzDecision:
        """Authorize creating a queue and provision its owner role.

        Any administrator or holder of the queue-add/topic-add permission
        may create a queue. Temporary subscriber queues get no owner role;
        other queues only get one inside the creator's own domain.
        """
        action = BrokerAction.CREATE_QUEUE
        queue_name = names.raw_queue_name(properties.name)

        with backend_errors("create queue"):
            rule = self._admin_rule(
                principal, AdminPermission.QUEUE_ADD, AdminPermission.TOPIC_ADD
            )
            if rule is None:
                return self._denied(action, principal, queue_name)

            self.registry.create_queue(
                names.registry_safe_name(queue_name), principal.username
            )

            if self._is_temporary(queue_name):
                return self._allowed(
                    action, principal, DecisionRule.TEMPORARY_QUEUE, queue_name
                )

            if self.evaluator.owns_domain(principal, queue_name):
                self.provisioner.provision_queue_owner(principal, queue_name)
                return self._allowed(action, principal, rule, queue_name)

        return self._denied(
            action, principal, queue_name,
            reason="Queue is outside the principal's tenant domain",
        )

    def handle_consume_queue(
        self, principal: Principal, properties: QueueProperties
    ) -> AuthzDecision:
        """Authorize consuming from a queue.

        Consuming an AMQP queue is reserved for domain administrators and
        holders of the queue's consume permission; the browse permissions
        only make a principal eligible for those checks.
        """
        action = BrokerAction.CONSUME_QUEUE
        queue_name = names.raw_queue_name(properties.name)

        with backend_errors("consume queue"):
            is_admin = self.evaluator.is_admin(principal)
            eligible = is_admin or self.evaluator.has_admin_permission(
                principal, AdminPermission.QUEUE_BROWSE, AdminPermission.DLC_BROWSE
            )
            if eligible:
                if is_admin and self.evaluator.owns_domain(principal, queue_name):
                    return self._allowed(
                        action, principal, DecisionRule.DOMAIN_ADMIN, queue_name
                    )
                if self.evaluator.is_authorized(
                    principal, self._queue_id(queue_name), PermissionKind.CONSUME
                ):
                    return self._allowed(
                        action, principal, DecisionRule.FINE_GRAINED, queue_name
                    )

        return self._denied(action, principal, queue_name)

    def handle_bind_queue(
        self, principal: Principal, properties: BindProperties
    ) -> AuthzDecision:
        """Authorize binding a queue to an exchange.

        Binding to the topic exchange is how a subscriber attaches to a
        topic, so allowed topic binds record the subscription and, for
        topic creators and existing subscribers, refresh the topic role.
        """
        action = BrokerAction.BIND_QUEUE
        exchange = ExchangeKind.from_name(names.raw_exchange_name(properties.exchange_name))
        queue_name = names.raw_queue_name(properties.queue_name)
        routing_key = names.raw_routing_key(properties.routing_key)

        with backend_errors("bind queue"):
            if exchange in (ExchangeKind.DEFAULT, ExchangeKind.DIRECT):
                rule = self._queue_bind_rule(principal, exchange, queue_name)
                if rule is not None:
                    return self._allowed(action, principal, rule, queue_name)
                return self._denied(action, principal, queue_name)

            if exchange == ExchangeKind.TOPIC:
                rule = self._topic_bind(principal, queue_name, routing_key)
                if rule is not None:
                    return self._allowed(action, principal, rule, routing_key)
                return self._denied(action, principal, routing_key)

        return self._denied(
            action, principal, queue_name,
            reason=f"No authorization path for exchange {properties.exchange_name}",
        )

    def handle_publish_to_exchange(
        self, principal: Principal, properties: PublishProperties
    ) -> AuthzDecision:
        """Authorize publishing to an exchange. Publishing never provisions roles."""
        action = BrokerAction.PUBLISH_TO_EXCHANGE
        exchange = ExchangeKind.from_name(names.raw_exchange_name(properties.exchange_name))
        routing_key = names.raw_routing_key(properties.routing_key)

        with backend_errors("publish to exchange"):
            if exchange in (ExchangeKind.DEFAULT, ExchangeKind.DIRECT):
                # Publish to queue
                if self.evaluator.is_domain_admin(principal, routing_key):
                    return self._allowed(
                        action, principal, DecisionRule.DOMAIN_ADMIN, routing_key
                    )
                if self.evaluator.is_authorized(
                    principal, self._queue_id(routing_key), PermissionKind.PUBLISH
                ):
                    return self._allowed(
                        action, principal, DecisionRule.FINE_GRAINED, routing_key
                    )

            elif exchange == ExchangeKind.TOPIC:
                # Publish to topic
                if self.evaluator.is_admin(principal):
                    return self._allowed(
                        action, principal, DecisionRule.ADMIN_ROLE, routing_key
                    )
                if self.evaluator.is_authorized(
                    principal, self._topic_id(routing_key), PermissionKind.PUBLISH
                ):
                    return self._allowed(
                        action, principal, DecisionRule.FINE_GRAINED, routing_key
                    )

        return self._denied(action, principal, routing_key)

    def handle_unbind_queue(self, properties: BindProperties) -> AuthzDecision:
        """Allow an unbind and drop the subscription record for topic unbinds.

        Unbind takes no principal: the broker only lets a queue's
        consumer or owner unbind it.
        """
        action = BrokerAction.UNBIND_QUEUE
        exchange = ExchangeKind.from_name(names.raw_exchange_name(properties.exchange_name))
        queue_name = names.raw_queue_name(properties.queue_name)
        routing_key = names.raw_routing_key(properties.routing_key)

        if exchange == ExchangeKind.TOPIC:
            with backend_errors("unbind queue"):
                self.registry.delete_subscription(
                    names.registry_safe_name(routing_key),
                    names.registry_safe_name(queue_name),
                )

        logger.debug("Access ALLOWED (unconditional): action=%s queue=%s", action.value, queue_name)
        return AuthzDecision.allow(action, DecisionRule.UNCONDITIONAL, queue_name)

    def handle_delete_queue(
        self, principal: Principal, properties: QueueProperties
    ) -> AuthzDecision:
        """Authorize deleting a queue and remove its owner role.

        Roles of temporary subscriber queues belong to their topic and
        are left in place.
        """
        action = BrokerAction.DELETE_QUEUE
        queue_name = names.raw_queue_name(properties.name)

        with backend_errors("delete queue"):
            rule = self._admin_rule(
                principal, AdminPermission.QUEUE_DELETE, AdminPermission.TOPIC_DELETE
            )
            if rule is None:
                return self._denied(action, principal, queue_name)

            self.registry.delete_queue(names.registry_safe_name(queue_name))

            if self._is_temporary(queue_name):
                return self._allowed(
                    action, principal, DecisionRule.TEMPORARY_QUEUE, queue_name
                )

            self.provisioner.deprovision_queue_owner(queue_name)
            return self._allowed(action, principal, rule, queue_name)

    # =========================================================================
    # Branch helpers
    # =========================================================================

    def _admin_rule(
        self, principal: Principal, *permissions: AdminPermission
    ) -> DecisionRule | None:
        """Check the admin role, then the administrative-function permissions."""
        if self.evaluator.is_admin(principal):
            return DecisionRule.ADMIN_ROLE
        if self.evaluator.has_admin_permission(principal, *permissions):
            return DecisionRule.ADMIN_PERMISSION
        return None

    def _queue_bind_rule(
        self, principal: Principal, exchange: ExchangeKind, queue_name: str
    ) -> DecisionRule | None:
        if exchange == ExchangeKind.DEFAULT and self._is_temporary(queue_name):
            return DecisionRule.TEMPORARY_QUEUE
        if self.evaluator.is_domain_admin(principal, queue_name):
            return DecisionRule.DOMAIN_ADMIN
        if self.evaluator.is_authorized(
            principal, self._queue_id(queue_name), PermissionKind.CONSUME
        ):
            return DecisionRule.FINE_GRAINED
        return None

    def _topic_bind(
        self, principal: Principal, queue_name: str, routing_key: str
    ) -> DecisionRule | None:
        role_name = self.provisioner.topic_role_for(routing_key)

        # First subscriber of a new topic
        if not self.identity_store.role_exists(role_name) and self.evaluator.has_admin_permission(
            principal, AdminPermission.TOPIC_ADD
        ):
            self._record_subscription(principal, routing_key, queue_name)
            self.provisioner.provision_topic_subscriber(principal, routing_key, queue_name)
            return DecisionRule.TOPIC_CREATOR

        if self.evaluator.is_domain_admin(principal, queue_name):
            self._record_subscription(principal, routing_key, queue_name)
            return DecisionRule.DOMAIN_ADMIN

        # New subscriber of an existing topic
        if self.evaluator.is_authorized(
            principal, self._topic_id(routing_key), PermissionKind.SUBSCRIBE
        ):
            self._record_subscription(principal, routing_key, queue_name)
            self.provisioner.provision_topic_subscriber(principal, routing_key, queue_name)
            return DecisionRule.FINE_GRAINED

        return None

    def _record_subscription(
        self, principal: Principal, routing_key: str, queue_name: str
    ) -> None:
        self.registry.create_subscription(
            names.registry_safe_name(routing_key),
            names.registry_safe_name(queue_name),
            principal.username,
        )

    def _is_temporary(self, queue_name: str) -> bool:
        return names.is_temporary_queue(queue_name, self.settings.temporary_queue_prefix)

    def _queue_id(self, queue_name: str) -> str:
        return names.queue_permission_id(queue_name, self.settings.queue_permission_prefix)

    def _topic_id(self, routing_key: str) -> str:
        return names.topic_permission_id(routing_key, self.settings.topic_permission_prefix)

    # =========================================================================
    # Decisions
    # =========================================================================

    def _allowed(
        self,
        action: BrokerAction,
        principal: Principal,
        rule: DecisionRule,
        resource: str,
    ) -> AuthzDecision:
        logger.debug(
            "Access ALLOWED by %s: user=%s action=%s resource=%s",
            rule.value, principal.username, action.value, resource
        )
        return AuthzDecision.allow(action, rule, resource)

    def _denied(
        self,
        action: BrokerAction,
        principal: Principal,
        resource: str,
        reason: str = "No role or permission grants this action",
    ) -> AuthzDecision:
        logger.info(
            "Access DENIED: user=%s action=%s resource=%s reason=%s",
            principal.username, action.value, resource, reason
        )
        return AuthzDecision.deny(action, resource, reason)
