"""Broker Authorization Package.

Authorization decisions for queues, topics and exchanges of a
multi-tenant message broker, with automatic provisioning of the
per-resource roles that back later decisions.

Usage:
    from brokerauthz.authz import AuthzEngine, Principal, QueueProperties

    engine = AuthzEngine(identity_store, registry)

    decision = engine.handle_create_queue(
        Principal(username="alice", tenant_domain="acme.com"),
        QueueProperties(name="client-1:acme.com/orders"),
    )
    if decision.allowed:
        # Allowed
        pass
"""

from brokerauthz.authz.models import (
    AdminPermission,
    AuthorizationHandlerError,
    AuthzDecision,
    AuthzResult,
    BackendFailureError,
    BindProperties,
    BrokerAction,
    DecisionRule,
    ExchangeKind,
    MalformedResourceNameError,
    PermissionKind,
    Principal,
    PublishProperties,
    QueueProperties,
)
from brokerauthz.authz.engine import AuthzEngine
from brokerauthz.authz.evaluator import PermissionEvaluator
from brokerauthz.authz.provisioner import RoleProvisioner

__all__ = [
    "AdminPermission",
    "AuthorizationHandlerError",
    "AuthzDecision",
    "AuthzEngine",
    "AuthzResult",
    "BackendFailureError",
    "BindProperties",
    "BrokerAction",
    "DecisionRule",
    "ExchangeKind",
    "MalformedResourceNameError",
    "PermissionEvaluator",
    "PermissionKind",
    "Principal",
    "PublishProperties",
    "QueueProperties",
    "RoleProvisioner",
]
