"""In-memory SnapshotSource, for tests and embedding callers that already
hold the extracted records."""

from __future__ import annotations

from typing import Any, Iterable

from structura.models import CallEdge, FunctionRecord


class InMemorySnapshotSource:
    def __init__(self) -> None:
        self._functions: dict[str, list[FunctionRecord]] = {}
        self._edges: dict[str, list[CallEdge]] = {}

    def add_snapshot(
        self,
        snapshot_id: str,
        functions: Iterable[FunctionRecord | dict[str, Any]],
        edges: Iterable[CallEdge | dict[str, Any]],
    ) -> None:
        self._functions[snapshot_id] = [
            f if isinstance(f, FunctionRecord) else FunctionRecord.from_dict(f) for f in functions
        ]
        self._edges[snapshot_id] = [
            e if isinstance(e, CallEdge) else CallEdge.from_dict(e) for e in edges
        ]

    def get_functions(self, snapshot_id: str) -> list[FunctionRecord]:
        return list(self._functions.get(snapshot_id, []))

    def get_call_edges(self, snapshot_id: str) -> list[CallEdge]:
        return list(self._edges.get(snapshot_id, []))
