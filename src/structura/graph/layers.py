"""Layer-partitioned PageRank.

Functions are assigned to architectural layers by glob patterns on their file
paths.  PageRank runs independently per layer over intra-layer calls only, so
a ubiquitous helper in one layer cannot dominate the ranking of another.
Cross-layer calls are counted, never ranked.

Each layer gets an iteration budget; layers that are too large for exact
power iteration are estimated with Monte Carlo random walks.  Without a
seeded ``rng`` the Monte Carlo estimate is not reproducible across runs.
"""

from __future__ import annotations

import functools
import logging
import math
import random
import re
from typing import Iterable, Mapping

import networkx as nx

from structura.defaults import (
    BOTTLENECK_CENTRALITY,
    GINI_HIGH_INEQUALITY,
    GINI_WELL_DISTRIBUTED,
    LARGE_LAYER_EDGES,
    LARGE_LAYER_FUNCTIONS,
    LAYER_BASE_ITERATIONS,
    LAYER_MAX_ITERATIONS,
    LAYER_MIN_ITERATIONS,
    LAYER_PR_BUDGET_MV,
    MC_WALK_LENGTH,
    MC_WALKS_PER_NODE,
    PAGERANK_DAMPING,
    PAGERANK_LAYER_TOLERANCE,
)
from structura.graph.pagerank import build_pagerank_result, compute_pagerank, gini_coefficient
from structura.models import (
    LayeredPageRankAnalysis,
    LayerPageRankResult,
    PageRankResult,
)

log = logging.getLogger("structura.graph.layers")


# ---------------------------------------------------------------------------
# Pattern matching
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    """``**`` crosses ``/``; ``*`` and ``?`` stay within one path segment."""
    pattern = pattern.replace("\\", "/")
    if pattern.startswith("./"):
        pattern = pattern[2:]

    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts), re.IGNORECASE)


def matches_pattern(file_path: str, pattern: str) -> bool:
    """Case-insensitive glob match of a whole (normalized) file path."""
    path = file_path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    return _compile_glob(pattern).fullmatch(path) is not None


def detect_layer(file_path: str, layers: Mapping[str, list[str]]) -> str | None:
    """First layer (in config order) with a matching pattern."""
    for name, patterns in layers.items():
        if any(matches_pattern(file_path, p) for p in patterns):
            return name
    return None


def assign_layers(G: nx.DiGraph, layers: Mapping[str, list[str]]) -> dict[str, str]:
    """Map function id -> layer name; unmatched functions are left out."""
    layer_of: dict[str, str] = {}
    for node, data in G.nodes(data=True):
        layer = detect_layer(data.get("file_path", ""), layers)
        if layer is not None:
            layer_of[node] = layer
    return layer_of


def classify_layer_edges(
    edges: Iterable[tuple[str, str]],
    layer_of: Mapping[str, str],
) -> tuple[dict[str, list[tuple[str, str]]], int]:
    """Bucket intra-layer edges per layer and count cross-layer edges.

    Single pass over all edges; edges touching an unmapped function are
    neither intra- nor cross-layer.
    """
    buckets: dict[str, list[tuple[str, str]]] = {}
    cross = 0
    for u, v in edges:
        lu, lv = layer_of.get(u), layer_of.get(v)
        if lu is None or lv is None:
            continue
        if lu == lv:
            buckets.setdefault(lu, []).append((u, v))
        else:
            cross += 1
    return buckets, cross


# ---------------------------------------------------------------------------
# Budgeting
# ---------------------------------------------------------------------------

def layer_iteration_budget(
    layer_size: int,
    edge_count: int,
    total_intra_edges: int,
    budget_mv: int | None = LAYER_PR_BUDGET_MV,
) -> int:
    """Maximum power iterations for one layer.

    Base budget grows with log2 of the layer size.  With a global
    matrix-vector budget, each layer gets its edge share of the budget,
    expressed in iterations over its own edges, never below the minimum.
    """
    base = max(LAYER_MIN_ITERATIONS, min(
        LAYER_MAX_ITERATIONS,
        LAYER_BASE_ITERATIONS + math.ceil(math.log2(max(1, layer_size))),
    ))
    if not budget_mv or total_intra_edges <= 0 or edge_count <= 0:
        return base
    share = edge_count / total_intra_edges
    budget_iterations = math.floor(budget_mv * share / max(1, edge_count))
    return max(LAYER_MIN_ITERATIONS, min(base, budget_iterations or base))


def is_large_layer(function_count: int, edge_count: int) -> bool:
    return function_count > LARGE_LAYER_FUNCTIONS or edge_count > LARGE_LAYER_EDGES


# ---------------------------------------------------------------------------
# Monte Carlo estimation
# ---------------------------------------------------------------------------

def estimate_pagerank_monte_carlo(
    G: nx.DiGraph,
    walks_per_node: int = MC_WALKS_PER_NODE,
    walk_length: int = MC_WALK_LENGTH,
    damping: float = PAGERANK_DAMPING,
    rng: random.Random | None = None,
) -> PageRankResult:
    """Approximate PageRank from visit counts of short random walks.

    Every node launches ``walks_per_node`` walks of ``walk_length`` steps.
    A walk teleports to a uniformly random node with probability
    ``1 - damping`` or when it reaches a function that calls nothing.
    Self-calls are ignored, as in power iteration.
    """
    rng = rng or random.Random()
    nodes = list(G.nodes)
    n = len(nodes)
    if n == 0:
        return PageRankResult(method="monte_carlo")

    index = {node: i for i, node in enumerate(nodes)}
    adjacency = [[index[v] for v in G.successors(u) if v != u] for u in nodes]
    visits = [0] * n

    for start in range(n):
        for _ in range(walks_per_node):
            current = start
            for _ in range(walk_length):
                visits[current] += 1
                out = adjacency[current]
                if not out or rng.random() > damping:
                    current = rng.randrange(n)
                else:
                    current = out[rng.randrange(len(out))]

    total = sum(visits) or 1
    scores = {nodes[i]: visits[i] / total for i in range(n)}
    return build_pagerank_result(G, scores, iterations=walk_length, method="monte_carlo")


# ---------------------------------------------------------------------------
# Layered analysis
# ---------------------------------------------------------------------------

def _layer_graph(G: nx.DiGraph, members: list[str], edges: list[tuple[str, str]]) -> nx.DiGraph:
    sub = nx.DiGraph()
    sub.add_nodes_from((m, G.nodes[m]) for m in members)
    sub.add_edges_from(edges)
    return sub


def analyze_layered_pagerank(
    G: nx.DiGraph,
    layers: Mapping[str, list[str]],
    budget_mv: int | None = LAYER_PR_BUDGET_MV,
    rng: random.Random | None = None,
) -> LayeredPageRankAnalysis:
    """Run PageRank independently per architectural layer."""
    layer_of = assign_layers(G, layers)
    members: dict[str, list[str]] = {}
    for node in G.nodes:
        if node in layer_of:
            members.setdefault(layer_of[node], []).append(node)

    buckets, cross = classify_layer_edges(G.edges(), layer_of)
    total_intra = sum(len(b) for b in buckets.values())

    results: list[LayerPageRankResult] = []
    for name, ids in members.items():
        intra = buckets.get(name, [])
        sub = _layer_graph(G, ids, intra)
        max_iterations = layer_iteration_budget(len(ids), len(intra), total_intra, budget_mv)

        if is_large_layer(len(ids), len(intra)):
            log.info("Layer '%s' too large for power iteration, using Monte Carlo",
                     name, extra={"layer": name, "functions": len(ids), "edges": len(intra)})
            pr = estimate_pagerank_monte_carlo(sub, rng=rng)
        else:
            pr = compute_pagerank(sub, max_iterations=max_iterations,
                                  tolerance=PAGERANK_LAYER_TOLERANCE)

        results.append(LayerPageRankResult(
            layer_name=name,
            function_count=len(ids),
            intra_layer_edges=len(intra),
            max_iterations=max_iterations,
            method=pr.method,
            scores=pr.scores,
            average_score=pr.average_score,
            max_score=pr.max_score,
            gini=gini_coefficient([s.normalized_score for s in pr.scores]),
        ))

    results.sort(key=lambda r: (-r.function_count, r.layer_name))

    analysis = LayeredPageRankAnalysis(
        total_functions=len(G),
        total_layers=len(layers),
        unmapped_functions=len(G) - len(layer_of),
        cross_layer_edges=cross,
        total_edges=G.number_of_edges(),
        layer_results=results,
    )
    analysis.insights = cross_layer_insights(analysis)
    return analysis


def cross_layer_insights(analysis: LayeredPageRankAnalysis) -> list[str]:
    """Human-readable observations about per-layer centrality."""
    insights: list[str] = []
    results = analysis.layer_results

    unequal = [r for r in results if r.gini > GINI_HIGH_INEQUALITY]
    if unequal:
        insights.append("High centrality inequality detected in layers: " + ", ".join(
            f"{r.layer_name} ({r.gini * 100:.1f}%)" for r in unequal))

    distributed = [r for r in results if r.function_count > 1 and r.gini < GINI_WELL_DISTRIBUTED]
    if distributed:
        insights.append("Well-distributed architecture in layers: " + ", ".join(
            r.layer_name for r in distributed))

    if analysis.cross_layer_edges > 0:
        insights.append(
            f"Cross-layer dependencies: {analysis.cross_layer_ratio:.1f}% of all function calls")

    for r in results:
        lead = _top_lead(r)
        if lead > BOTTLENECK_CENTRALITY:
            top = r.scores[0]
            insights.append(
                f"Potential bottleneck in {r.layer_name}: {top.function_name} "
                f"leads the next function by {lead * 100:.1f}% of the layer's top centrality")
    return insights


def _top_lead(result: LayerPageRankResult) -> float:
    """How far the top function's normalized centrality is ahead of the runner-up."""
    if len(result.scores) < 2:
        return 0.0
    return result.scores[0].normalized_score - result.scores[1].normalized_score
