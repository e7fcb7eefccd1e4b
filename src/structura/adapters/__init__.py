"""Snapshot source adapters."""

from structura.adapters.memory_source import InMemorySnapshotSource

__all__ = ["InMemorySnapshotSource"]
