"""Tests for per-resource role provisioning."""

import pytest

from brokerauthz.authz.models import Principal
from brokerauthz.authz.provisioner import RoleProvisioner
from brokerauthz.config import AuthzSettings
from brokerauthz.identity.store import InMemoryIdentityStore


@pytest.fixture
def store():
    return InMemoryIdentityStore()


@pytest.fixture
def provisioner(store):
    return RoleProvisioner(store, AuthzSettings())


class TestQueueOwner:
    """Test queue owner role provisioning."""

    def test_provision_is_idempotent(self, provisioner, store):
        """Second provisioning of the same queue changes nothing."""
        alice = Principal(username="alice")

        assert provisioner.provision_queue_owner(alice, "orders") is True
        grants = store.grants_of_role("Internal/Q_orders")

        assert provisioner.provision_queue_owner(alice, "orders") is False
        assert store.grants_of_role("Internal/Q_orders") == grants
        assert len(grants) == 3
        assert [r for r in store.role_names() if r.startswith("Internal/Q_")] == [
            "Internal/Q_orders"
        ]

    def test_existing_role_is_logged(self, provisioner, caplog):
        provisioner.provision_queue_owner(Principal(username="alice"), "orders")

        with caplog.at_level("WARNING"):
            provisioner.provision_queue_owner(Principal(username="bob"), "orders")

        assert "Unable to provide permissions to the user, bob" in caplog.text

    def test_member_is_full_username(self, provisioner, store):
        """Role members are the usernames permission checks are made with."""
        principal = Principal(username="bob@acme.com", tenant_domain="acme.com")

        provisioner.provision_queue_owner(principal, "acme.com/orders")
        provisioner.provision_topic_subscriber(principal, "acme.com/news", "tmp_1")

        assert store.members_of_role("Internal/Q_acme.com-orders") == {"bob@acme.com"}
        assert store.members_of_role("Internal/T_acme.com-news") == {"bob@acme.com"}
        assert not store.role_exists("Internal/Q_orders")

    def test_concurrent_creation_is_absorbed(self):
        """A role created between the existence check and creation wins."""

        class RacingStore(InMemoryIdentityStore):
            def role_exists(self, role_name):
                return False

        store = RacingStore()
        store.create_role("Internal/Q_orders", ["alice"])
        provisioner = RoleProvisioner(store, AuthzSettings())

        assert provisioner.provision_queue_owner(Principal(username="bob"), "orders") is False
        assert store.members_of_role("Internal/Q_orders") == {"alice"}
        assert store.grants_of_role("Internal/Q_orders") == set()

    def test_deprovision(self, provisioner, store):
        alice = Principal(username="alice")
        provisioner.provision_queue_owner(alice, "orders")

        assert provisioner.deprovision_queue_owner("orders") is True
        assert not store.role_exists("Internal/Q_orders")
        assert provisioner.deprovision_queue_owner("orders") is False


class TestTopicSubscriber:
    """Test topic role provisioning."""

    def test_grants_are_reasserted(self, provisioner, store):
        carol = Principal(username="carol")
        provisioner.provision_topic_subscriber(carol, "news", "tmp_1")
        provisioner.provision_topic_subscriber(carol, "news", "tmp_1")

        assert store.members_of_role("Internal/T_news") == {"carol"}
        assert store.grants_of_role("Internal/T_news") == {
            ("event/topics/news", "subscribe"),
            ("event/topics/news", "publish"),
            ("event/topics/news", "changePermission"),
            ("event/queues/jms/tmp_1", "consume"),
            ("event/queues/jms/tmp_1", "publish"),
            ("event/queues/jms/tmp_1", "changePermission"),
        }

    def test_new_member_is_added(self, provisioner, store):
        provisioner.provision_topic_subscriber(Principal(username="carol"), "news", "tmp_1")
        provisioner.provision_topic_subscriber(Principal(username="dave"), "news", "tmp_2")

        assert store.members_of_role("Internal/T_news") == {"carol", "dave"}
        assert ("event/queues/jms/tmp_2", "consume") in store.grants_of_role("Internal/T_news")

    def test_concurrently_created_role_is_joined(self):
        class RacingStore(InMemoryIdentityStore):
            def role_exists(self, role_name):
                return False

        store = RacingStore()
        store.create_role("Internal/T_news", ["carol"])
        provisioner = RoleProvisioner(store, AuthzSettings())

        provisioner.provision_topic_subscriber(Principal(username="dave"), "news", "tmp_2")

        assert store.members_of_role("Internal/T_news") == {"carol", "dave"}
        assert len(store.grants_of_role("Internal/T_news")) == 6
