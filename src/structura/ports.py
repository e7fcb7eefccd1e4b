"""Port interfaces for structura.

The analyzer reads snapshot data through ``SnapshotSource``; any store that
can list a snapshot's functions and call edges can back it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from structura.models import CallEdge, FunctionRecord


@runtime_checkable
class SnapshotSource(Protocol):
    def get_functions(self, snapshot_id: str) -> list[FunctionRecord]: ...
    def get_call_edges(self, snapshot_id: str) -> list[CallEdge]: ...
