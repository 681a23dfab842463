"""Engine configuration via pydantic-settings."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthzSettings(BaseSettings):
    """Authorization engine settings loaded from environment.

    The permission identifier prefixes and the internal role domain are
    keys into the identity store; changing them on a live deployment
    orphans every previously provisioned role and grant.
    """

    model_config = SettingsConfigDict(
        env_prefix="BROKER_AUTHZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Identity store
    admin_role: str = "admin"
    internal_role_domain: str = "Internal"

    # Tenancy
    super_tenant_domain: str = "carbon.super"

    # Resource naming
    temporary_queue_prefix: str = "tmp_"
    queue_permission_prefix: str = "event/queues/jms/"
    topic_permission_prefix: str = "event/topics/"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @model_validator(mode="after")
    def validate_identifiers(self) -> "AuthzSettings":
        """Reject settings that would produce ambiguous role or permission keys."""
        for field_name in (
            "admin_role",
            "internal_role_domain",
            "super_tenant_domain",
            "temporary_queue_prefix",
            "queue_permission_prefix",
            "topic_permission_prefix",
        ):
            if not getattr(self, field_name):
                raise ValueError(f"{field_name} must not be empty")

        if "/" in self.internal_role_domain:
            raise ValueError("internal_role_domain must not contain '/'")

        if self.queue_permission_prefix == self.topic_permission_prefix:
            raise ValueError(
                "queue_permission_prefix and topic_permission_prefix must differ"
            )

        return self


def configure_logging(settings: AuthzSettings | None = None) -> None:
    """Configure root logging for processes embedding the engine."""
    settings = settings or AuthzSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
