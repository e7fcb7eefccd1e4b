"""Fan-in / fan-out dependency metrics per function."""

from __future__ import annotations

from collections import deque
from typing import Iterable

import networkx as nx

from structura.defaults import UTILITY_FAN_OUT_THRESHOLD
from structura.graph.callgraph import function_view
from structura.models import DependencyMetric, DependencySummary, SCCResult


def compute_dependency_metrics(
    G: nx.DiGraph,
    entry_points: Iterable[str] | None = None,
    cyclic_functions: Iterable[str] | None = None,
    scc: SCCResult | None = None,
) -> list[DependencyMetric]:
    """One DependencyMetric per function, in graph insertion order.

    fan_in counts distinct callers and fan_out distinct internal callees, so
    sum(fan_in) == sum(fan_out) == number of distinct internal call pairs.
    Raw call-site counts are kept in total_callers / total_calls.

    Entry points default to functions nobody calls.
    """
    entries = set(entry_points) if entry_points else {n for n in G if G.in_degree(n) == 0}
    cyclic = set(cyclic_functions) if cyclic_functions else set()

    depths = _depth_from_entries(G, entries)
    chains = _max_call_chains(G, scc)

    metrics: list[DependencyMetric] = []
    for node in G.nodes:
        name, file_path, _ = function_view(G, node)
        metrics.append(DependencyMetric(
            function_id=node,
            function_name=name,
            file_path=file_path,
            fan_in=G.in_degree(node),
            fan_out=G.out_degree(node),
            total_callers=sum(d["calls"] for _, _, d in G.in_edges(node, data=True)),
            total_calls=sum(d["calls"] for _, _, d in G.out_edges(node, data=True)),
            external_calls=G.nodes[node].get("external_calls", 0),
            depth_from_entry=depths.get(node, -1),
            max_call_chain=chains.get(node, 1),
            is_entry_point=node in entries,
            is_cyclic=node in cyclic,
        ))
    return metrics


def summarize_dependencies(
    metrics: list[DependencyMetric],
    hub_threshold: int,
    utility_threshold: int = UTILITY_FAN_OUT_THRESHOLD,
) -> DependencySummary:
    """Project-wide fan-in/out statistics and hub/utility classification."""
    n = len(metrics)
    if n == 0:
        return DependencySummary(hub_threshold=hub_threshold)

    hubs = sorted((m for m in metrics if m.fan_in >= hub_threshold),
                  key=lambda m: (-m.fan_in, m.function_id))
    utilities = sorted((m for m in metrics if m.fan_out >= utility_threshold),
                       key=lambda m: (-m.fan_out, m.function_id))

    return DependencySummary(
        total_functions=n,
        avg_fan_in=round(sum(m.fan_in for m in metrics) / n, 1),
        avg_fan_out=round(sum(m.fan_out for m in metrics) / n, 1),
        max_fan_in=max(m.fan_in for m in metrics),
        max_fan_out=max(m.fan_out for m in metrics),
        hub_threshold=hub_threshold,
        hub_function_ids=[m.function_id for m in hubs],
        utility_function_ids=[m.function_id for m in utilities],
        isolated_function_count=sum(1 for m in metrics if m.fan_in == 0 and m.fan_out == 0),
    )


def _depth_from_entries(G: nx.DiGraph, entries: set[str]) -> dict[str, int]:
    """Multi-source BFS distance from the nearest entry point."""
    depths = {e: 0 for e in entries if e in G}
    queue = deque(depths)
    while queue:
        node = queue.popleft()
        for callee in G.successors(node):
            if callee not in depths:
                depths[callee] = depths[node] + 1
                queue.append(callee)
    return depths


def _max_call_chains(G: nx.DiGraph, scc: SCCResult | None) -> dict[str, int]:
    """Longest downstream chain (in nodes) per function; a cycle counts once."""
    if len(G) == 0:
        return {}
    partition = [set(c.function_ids) for c in scc.components] if scc is not None else None
    C = nx.condensation(G, scc=partition)
    chain: dict[int, int] = {}
    for c in reversed(list(nx.topological_sort(C))):
        chain[c] = 1 + max((chain[s] for s in C.successors(c)), default=0)
    mapping = C.graph["mapping"]
    return {node: chain[mapping[node]] for node in G}
