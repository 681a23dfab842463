"""Resource metadata registry interface.

Bookkeeping of which queues and topic subscriptions exist. Names handed
to the registry are registry-safe (no '@').
"""

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Raised when a metadata registry operation fails."""


class MetadataRegistry(Protocol):
    """Protocol for metadata registry backends."""

    def create_queue(self, queue_name: str, owner: str) -> None:
        ...

    def delete_queue(self, queue_name: str) -> None:
        ...

    def create_subscription(self, routing_key: str, queue_name: str, owner: str) -> None:
        """Record that queue_name is subscribed to the topic routing_key."""
        ...

    def delete_subscription(self, routing_key: str, queue_name: str) -> None:
        ...


class InMemoryMetadataRegistry:
    """Thread-safe in-memory metadata registry.

    Deleting a record that does not exist is a no-op.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._queues: dict[str, str] = {}  # queue -> owner
        self._subscriptions: dict[tuple[str, str], str] = {}  # (topic, queue) -> owner

    def queue_owner(self, queue_name: str) -> str | None:
        with self._lock:
            return self._queues.get(queue_name)

    def queues(self) -> dict[str, str]:
        with self._lock:
            return dict(self._queues)

    def subscriptions(self) -> dict[tuple[str, str], str]:
        with self._lock:
            return dict(self._subscriptions)

    def create_queue(self, queue_name: str, owner: str) -> None:
        with self._lock:
            self._queues[queue_name] = owner
        logger.debug("Registered queue %s (owner %s)", queue_name, owner)

    def delete_queue(self, queue_name: str) -> None:
        with self._lock:
            self._queues.pop(queue_name, None)

    def create_subscription(self, routing_key: str, queue_name: str, owner: str) -> None:
        with self._lock:
            self._subscriptions[(routing_key, queue_name)] = owner
        logger.debug("Registered subscription %s -> %s (owner %s)", queue_name, routing_key, owner)

    def delete_subscription(self, routing_key: str, queue_name: str) -> None:
        with self._lock:
            self._subscriptions.pop((routing_key, queue_name), None)
