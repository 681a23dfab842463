"""Tests for the in-memory identity store and metadata registry."""

import pytest

from brokerauthz.identity import (
    InMemoryIdentityStore,
    RoleAlreadyExistsError,
    RoleNotFoundError,
)
from brokerauthz.registry import InMemoryMetadataRegistry


class TestInMemoryIdentityStore:
    """Test role and permission bookkeeping."""

    def test_role_lifecycle(self):
        store = InMemoryIdentityStore()

        store.create_role("Internal/Q_orders", ["alice"])
        assert store.role_exists("Internal/Q_orders")
        assert store.roles_of_user("alice") == {"Internal/Q_orders"}

        store.add_members_to_role("Internal/Q_orders", ["bob"])
        assert store.members_of_role("Internal/Q_orders") == {"alice", "bob"}

        store.delete_role("Internal/Q_orders")
        assert not store.role_exists("Internal/Q_orders")
        assert store.roles_of_user("alice") == set()

    def test_duplicate_role_rejected(self):
        store = InMemoryIdentityStore()
        store.create_role("r", ["alice"])

        with pytest.raises(RoleAlreadyExistsError):
            store.create_role("r", ["bob"])

        assert store.members_of_role("r") == {"alice"}

    def test_missing_role(self):
        store = InMemoryIdentityStore()

        with pytest.raises(RoleNotFoundError):
            store.delete_role("r")
        with pytest.raises(RoleNotFoundError):
            store.grant_permission("r", "event/topics/news", "publish")

    def test_authorization_through_roles(self):
        store = InMemoryIdentityStore()
        store.add_user("alice", roles=["readers"])
        store.grant_permission("readers", "event/queues/jms/orders", "consume")
        store.grant_permission("readers", "event/queues/jms/orders", "consume")

        assert store.is_authorized("alice", "event/queues/jms/orders", "consume")
        assert not store.is_authorized("alice", "event/queues/jms/orders", "publish")
        assert not store.is_authorized("bob", "event/queues/jms/orders", "consume")
        assert store.grants_of_role("readers") == {("event/queues/jms/orders", "consume")}

    def test_revoked_with_role(self):
        store = InMemoryIdentityStore()
        store.create_role("r", ["alice"])
        store.grant_permission("r", "event/topics/news", "subscribe")

        store.delete_role("r")

        assert not store.is_authorized("alice", "event/topics/news", "subscribe")


class TestInMemoryMetadataRegistry:
    """Test queue and subscription records."""

    def test_queue_records(self):
        registry = InMemoryMetadataRegistry()

        registry.create_queue("orders", "alice")
        assert registry.queue_owner("orders") == "alice"

        registry.delete_queue("orders")
        registry.delete_queue("orders")
        assert registry.queues() == {}

    def test_subscription_records(self):
        registry = InMemoryMetadataRegistry()

        registry.create_subscription("news", "tmp_1", "carol")
        registry.create_subscription("news", "tmp_2", "dave")
        registry.delete_subscription("news", "tmp_1")

        assert registry.subscriptions() == {("news", "tmp_2"): "dave"}
