"""Broker authorization engine.

Tenant-aware authorization for message-broker queues, topics and
exchanges, built over an identity/role store and a resource metadata
registry supplied by the embedding broker.
"""

__version__ = "1.0.0"
