"""Tests for engine settings."""

import logging

import pytest

from brokerauthz.config import AuthzSettings, configure_logging


class TestAuthzSettings:
    """Test settings defaults, environment loading and validation."""

    def test_defaults(self):
        settings = AuthzSettings()

        assert settings.admin_role == "admin"
        assert settings.internal_role_domain == "Internal"
        assert settings.super_tenant_domain == "carbon.super"
        assert settings.temporary_queue_prefix == "tmp_"
        assert settings.queue_permission_prefix == "event/queues/jms/"
        assert settings.topic_permission_prefix == "event/topics/"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BROKER_AUTHZ_ADMIN_ROLE", "broker-admin")
        monkeypatch.setenv("BROKER_AUTHZ_LOG_LEVEL", "DEBUG")

        settings = AuthzSettings()

        assert settings.admin_role == "broker-admin"
        assert settings.log_level == "DEBUG"

    def test_internal_domain_rejects_slash(self):
        with pytest.raises(ValueError, match="must not contain"):
            AuthzSettings(internal_role_domain="Internal/Roles")

    def test_empty_values_rejected(self):
        with pytest.raises(ValueError, match="admin_role must not be empty"):
            AuthzSettings(admin_role="")

    def test_permission_prefixes_must_differ(self):
        with pytest.raises(ValueError, match="must differ"):
            AuthzSettings(queue_permission_prefix="event/", topic_permission_prefix="event/")

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            AuthzSettings(log_level="LOUD")


def test_configure_logging(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(AuthzSettings(log_level="WARNING"))

    assert calls[0]["level"] == logging.WARNING
