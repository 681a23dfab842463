"""Resource metadata registry interface and in-memory implementation."""

from brokerauthz.registry.client import (
    InMemoryMetadataRegistry,
    MetadataRegistry,
    RegistryError,
)

__all__ = [
    "InMemoryMetadataRegistry",
    "MetadataRegistry",
    "RegistryError",
]
