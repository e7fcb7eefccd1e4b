"""Call graph construction from function and call-edge records."""

from __future__ import annotations

from typing import Iterable

import networkx as nx

from structura.errors import CallGraphError
from structura.models import CallEdge, FunctionRecord


def build_call_graph(
    functions: Iterable[FunctionRecord],
    edges: Iterable[CallEdge],
) -> nx.DiGraph:
    """Build a directed call graph (caller -> callee).

    Nodes: one per function, in input order, carrying name/file_path/start_line
    and an ``external_calls`` counter.
    Edges: one per distinct (caller, callee) pair, ``calls`` = number of call
    sites.  Null callees and callees outside the function set are counted as
    external on the caller and never become edges.

    Raises CallGraphError when an edge's caller is not a known function.
    """
    G = nx.DiGraph()
    for f in functions:
        G.add_node(f.id, name=f.name, file_path=f.file_path,
                   start_line=f.start_line, external_calls=0)

    internal = external = 0
    for e in edges:
        if e.caller_id not in G:
            raise CallGraphError(
                f"call edge references unknown caller '{e.caller_id}'",
                caller_id=e.caller_id,
            )
        if e.callee_id is None or e.callee_id not in G:
            G.nodes[e.caller_id]["external_calls"] += 1
            external += 1
            continue
        if G.has_edge(e.caller_id, e.callee_id):
            G[e.caller_id][e.callee_id]["calls"] += 1
        else:
            G.add_edge(e.caller_id, e.callee_id, calls=1)
        internal += 1

    G.graph["internal_calls"] = internal
    G.graph["external_calls"] = external
    return G


def split_intra_file_edges(
    functions: Iterable[FunctionRecord],
    edges: Iterable[CallEdge],
) -> tuple[list[CallEdge], int]:
    """Drop edges whose caller and callee live in the same file.

    Returns (kept edges, number dropped).  External edges are always kept.
    """
    file_of = {f.id: f.file_path for f in functions}
    kept: list[CallEdge] = []
    dropped = 0
    for e in edges:
        if e.callee_id is not None:
            caller_file = file_of.get(e.caller_id)
            if caller_file is not None and caller_file == file_of.get(e.callee_id):
                dropped += 1
                continue
        kept.append(e)
    return kept, dropped


def function_view(G: nx.DiGraph, node: str) -> tuple[str, str, int]:
    """(name, file_path, start_line) for a graph node."""
    data = G.nodes[node]
    return data.get("name", node), data.get("file_path", ""), data.get("start_line", 0)
