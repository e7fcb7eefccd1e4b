"""Strongly connected components of the call graph."""

from __future__ import annotations

from typing import Any, Mapping

import networkx as nx

from structura.models import FunctionRecord, RiskLevel, SCCComponent, SCCResult

# --- Component complexity thresholds ---
_CX_HIGH_SIZE = 5
_CX_HIGH_TOTAL = 50
_CX_MEDIUM_SIZE = 3
_CX_MEDIUM_TOTAL = 30


def analyze_scc(G: nx.DiGraph) -> SCCResult:
    """Partition the call graph into strongly connected components.

    Every node lands in exactly one component.  A component of size >= 2 is
    cyclic; a singleton is cyclic only when the function calls itself.
    Components are ordered by size (descending), then by smallest member id.

    networkx's implementation is non-recursive, so depth is bounded by the
    heap rather than the interpreter stack.
    """
    members = [sorted(c) for c in nx.strongly_connected_components(G)]
    members.sort(key=lambda ids: (-len(ids), ids[0]))

    components: list[SCCComponent] = []
    component_of: dict[str, int] = {}
    cyclic: list[str] = []
    for index, ids in enumerate(members):
        self_recursive = len(ids) == 1 and G.has_edge(ids[0], ids[0])
        is_cyclic = len(ids) > 1 or self_recursive
        components.append(SCCComponent(
            index=index,
            function_ids=tuple(ids),
            is_cyclic=is_cyclic,
            is_self_recursive=self_recursive,
        ))
        for fid in ids:
            component_of[fid] = index
        if is_cyclic:
            cyclic.extend(ids)

    return SCCResult(
        components=components,
        component_of=component_of,
        cyclic_function_ids=tuple(sorted(cyclic)),
    )


def condensation_order(G: nx.DiGraph, scc: SCCResult) -> list[tuple[str, ...]]:
    """Components in topological order of the condensed graph (callers first)."""
    if not scc.components:
        return []
    C = nx.condensation(G, scc=[set(c.function_ids) for c in scc.components])
    return [scc.components[i].function_ids for i in nx.topological_sort(C)]


def component_complexity(
    component: SCCComponent,
    functions: Mapping[str, FunctionRecord],
) -> dict[str, Any]:
    """Aggregate complexity of a cycle and a coarse risk level for it."""
    total_complexity = 0
    total_lines = 0
    for fid in component.function_ids:
        f = functions.get(fid)
        if f is not None and f.metrics is not None:
            total_complexity += f.metrics.cyclomatic_complexity
            total_lines += f.metrics.lines_of_code

    if component.size > _CX_HIGH_SIZE or total_complexity > _CX_HIGH_TOTAL:
        level = RiskLevel.HIGH
    elif component.size > _CX_MEDIUM_SIZE or total_complexity > _CX_MEDIUM_TOTAL:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return {
        "total_complexity": total_complexity,
        "total_lines": total_lines,
        "average_complexity": total_complexity / component.size if component.size else 0.0,
        "risk_level": level,
    }
