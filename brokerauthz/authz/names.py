"""Broker resource name handling.

The broker encodes queue names as ``clientId:rawName`` (durable queues
carry a trailing ``;suffix``) and names the default exchange
``<<default>>``. Everything downstream of the broker works on raw names,
so this module strips the encoding and derives the registry, role and
permission keys for a resource.

The substitutions below are load-bearing: the identity store treats the
resulting strings as literal keys, so previously provisioned roles are
only found again if the derivation stays exactly the same.
"""

from brokerauthz.authz.models import MalformedResourceNameError

DEFAULT_EXCHANGE_SENTINEL = "<<default>>"
DEFAULT_EXCHANGE = "default"

QUEUE_ROLE_PREFIX = "Q_"
TOPIC_ROLE_PREFIX = "T_"

# Registry paths may not contain '@', role names may not contain '/'
AT_REPLACE_CHAR = "_"
SLASH_REPLACE_CHAR = "-"

SUPER_TENANT_DOMAIN = "carbon.super"
INTERNAL_ROLE_DOMAIN = "Internal"
TEMPORARY_QUEUE_PREFIX = "tmp_"
QUEUE_PERMISSION_PREFIX = "event/queues/jms/"
TOPIC_PERMISSION_PREFIX = "event/topics/"


# =============================================================================
# Raw names
# =============================================================================


def raw_queue_name(internal_name: str) -> str:
    """Extract the raw queue name from ``clientId:rawName[;suffix]``."""
    name = internal_name.split(";", 1)[0]
    if ":" not in name:
        raise MalformedResourceNameError(internal_name)
    return name.split(":", 1)[1]


def raw_routing_key(internal_key: str) -> str:
    """Extract the raw routing key from ``clientId:rawKey``.

    Routing keys are never durable-suffixed. A key without a client id
    prefix is returned as is.
    """
    return internal_key.split(":", 1)[-1]


def raw_exchange_name(name: str) -> str:
    return DEFAULT_EXCHANGE if name == DEFAULT_EXCHANGE_SENTINEL else name


# =============================================================================
# Derived keys
# =============================================================================


def registry_safe_name(raw_name: str) -> str:
    return raw_name.replace("@", AT_REPLACE_CHAR)


def role_safe_name(name: str) -> str:
    return name.replace("/", SLASH_REPLACE_CHAR)


def internal_role(role_name: str, domain: str = INTERNAL_ROLE_DOMAIN) -> str:
    """Qualify a role name with the internal (non user-visible) role domain."""
    return f"{domain}/{role_name}"


def queue_role_name(queue_name: str, domain: str = INTERNAL_ROLE_DOMAIN) -> str:
    """Owner role for a queue, from its raw name.

    The tenant domain prefix stays in the role name so queues of
    different tenants never share a role: ``acme.com/orders`` maps to
    ``Internal/Q_acme.com-orders``, ``orders`` to ``Internal/Q_orders``.
    """
    name = registry_safe_name(queue_name)
    return internal_role(QUEUE_ROLE_PREFIX + role_safe_name(name), domain)


def topic_role_name(routing_key: str, domain: str = INTERNAL_ROLE_DOMAIN) -> str:
    """Subscriber role for a topic, from its raw routing key."""
    name = registry_safe_name(routing_key)
    return internal_role(TOPIC_ROLE_PREFIX + role_safe_name(name), domain)


def queue_permission_id(queue_name: str, prefix: str = QUEUE_PERMISSION_PREFIX) -> str:
    return prefix + queue_name


def topic_permission_id(topic_name: str, prefix: str = TOPIC_PERMISSION_PREFIX) -> str:
    return prefix + topic_name


# =============================================================================
# Predicates
# =============================================================================


def is_temporary_queue(queue_name: str, prefix: str = TEMPORARY_QUEUE_PREFIX) -> bool:
    """Check whether a raw queue name backs a topic subscription."""
    return queue_name.startswith(prefix)


def is_own_domain(
    tenant_domain: str | None,
    resource_name: str,
    super_tenant_domain: str = SUPER_TENANT_DOMAIN,
) -> bool:
    """Check whether a queue/topic name belongs to the caller's tenant.

    Tenant resources are prefixed with ``<domain>/``; resources of the
    default tenant carry no domain prefix at all.
    """
    if tenant_domain is None:
        return "/" not in resource_name

    if resource_name.startswith(tenant_domain + "/"):
        return True

    if tenant_domain.lower() == super_tenant_domain.lower():
        return "/" not in resource_name

    return False
