"""Authorization data models.

Defines principals, broker resource properties, permission kinds,
decisions and the engine's error types.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UI_EXECUTE = "ui.execute"


class BrokerAction(str, Enum):
    """Broker operations that pass through an authorization checkpoint."""

    CREATE_QUEUE = "create_queue"
    CONSUME_QUEUE = "consume_queue"
    BIND_QUEUE = "bind_queue"
    PUBLISH_TO_EXCHANGE = "publish_to_exchange"
    UNBIND_QUEUE = "unbind_queue"
    DELETE_QUEUE = "delete_queue"


class ExchangeKind(str, Enum):
    """Well-known exchanges with a defined authorization path."""

    DEFAULT = "default"
    DIRECT = "amq.direct"
    TOPIC = "amq.topic"

    @classmethod
    def from_name(cls, name: str) -> "ExchangeKind | None":
        """Resolve a normalized exchange name, None if it is not well-known."""
        for kind in cls:
            if kind.value == name:
                return kind
        return None


class PermissionKind(str, Enum):
    """Fine-grained permissions granted to per-resource roles."""

    CONSUME = "consume"
    PUBLISH = "publish"
    SUBSCRIBE = "subscribe"
    CHANGE_PERMISSION = "changePermission"


class AdminPermission(str, Enum):
    """Administrative-function permissions, checked with the ui.execute action."""

    QUEUE_ADD = "/permission/admin/manage/queue/addQueue"
    QUEUE_BROWSE = "/permission/admin/manage/queue/browseQueue"
    QUEUE_DELETE = "/permission/admin/manage/queue/deleteQueue"
    TOPIC_ADD = "/permission/admin/manage/topic/addTopic"
    TOPIC_DELETE = "/permission/admin/manage/topic/deleteTopic"
    DLC_BROWSE = "/permission/admin/manage/dlc/browseDlc"


class AuthzResult(str, Enum):
    """Verdict handed back to the broker."""

    ALLOWED = "allowed"
    DENIED = "denied"


class DecisionRule(str, Enum):
    """Which eligibility branch produced an ALLOWED verdict."""

    ADMIN_ROLE = "admin_role"
    ADMIN_PERMISSION = "admin_permission"
    DOMAIN_ADMIN = "domain_admin"
    FINE_GRAINED = "fine_grained"
    TEMPORARY_QUEUE = "temporary_queue"
    TOPIC_CREATOR = "topic_creator"
    UNCONDITIONAL = "unconditional"


class Principal(BaseModel):
    """A pre-authenticated caller together with its resolved tenant domain.

    The username is the identity store key: role membership and every
    permission check use it verbatim, so ``bob`` and ``bob@acme.com``
    are different principals.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, description="Authenticated username")
    tenant_domain: str | None = Field(
        default=None,
        description="Tenant domain (None for the default/super tenant)"
    )


class QueueProperties(BaseModel):
    """Properties the broker supplies for queue create/consume/delete."""

    name: str = Field(description="Internal queue name (clientId:rawName[;suffix])")
    owner: str | None = Field(default=None, description="Owner reported by the broker")
    durable: bool = False
    temporary: bool = False


class BindProperties(BaseModel):
    """Properties the broker supplies for queue bind/unbind."""

    exchange_name: str = Field(description="Exchange name, <<default>> for the default exchange")
    queue_name: str = Field(description="Internal queue name")
    routing_key: str = Field(description="Internal routing key")


class PublishProperties(BaseModel):
    """Properties the broker supplies for publishing to an exchange."""

    exchange_name: str
    routing_key: str


class AuthzDecision(BaseModel):
    """Result of an authorization decision."""

    result: AuthzResult = Field(description="ALLOWED or DENIED")
    action: BrokerAction = Field(description="Action that was checked")
    resource: str | None = Field(
        default=None,
        description="Raw name of the resource the decision applies to"
    )
    reason: str = Field(default="", description="Explanation of decision")
    matched_rule: DecisionRule | None = Field(
        default=None,
        description="Eligibility branch that allowed the action"
    )

    @property
    def allowed(self) -> bool:
        return self.result == AuthzResult.ALLOWED

    @classmethod
    def allow(
        cls,
        action: BrokerAction,
        rule: DecisionRule,
        resource: str | None = None,
        reason: str = "",
    ) -> "AuthzDecision":
        return cls(
            result=AuthzResult.ALLOWED,
            action=action,
            resource=resource,
            reason=reason or f"Granted by {rule.value}",
            matched_rule=rule,
        )

    @classmethod
    def deny(
        cls,
        action: BrokerAction,
        resource: str | None = None,
        reason: str = "No role or permission grants this action",
    ) -> "AuthzDecision":
        return cls(
            result=AuthzResult.DENIED,
            action=action,
            resource=resource,
            reason=reason,
        )


class AuthorizationHandlerError(Exception):
    """Raised when the engine cannot reach a verdict."""

    def __init__(self, message: str, code: str = "authorization_failed"):
        self.message = message
        self.code = code
        super().__init__(message)


class BackendFailureError(AuthorizationHandlerError):
    """Raised when the identity store or metadata registry fails."""

    def __init__(self, message: str):
        super().__init__(message, "backend_failure")


class MalformedResourceNameError(AuthorizationHandlerError):
    """Raised when an internal name violates the clientId:rawName encoding."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Malformed internal resource name: {name!r}",
            "malformed_resource_name"
        )
