"""PageRank centrality over the call graph, plus inequality statistics.

Power iteration with uniform teleport and uniform redistribution of dangling
mass, so the raw scores sum to 1 after every iteration.  Running out of
iterations is not an error: the best available scores are returned with
``converged=False``.
"""

from __future__ import annotations

from typing import Mapping

import networkx as nx

from structura.defaults import (
    CENTRALITY_TOP_N,
    IMPORTANCE_BREAKPOINTS,
    PAGERANK_DAMPING,
    PAGERANK_MAX_ITERATIONS,
    PAGERANK_TOLERANCE,
)
from structura.graph.callgraph import function_view
from structura.models import (
    CentralityMetrics,
    Importance,
    PageRankResult,
    PageRankScore,
)


def compute_pagerank(
    G: nx.DiGraph,
    damping: float = PAGERANK_DAMPING,
    max_iterations: int = PAGERANK_MAX_ITERATIONS,
    tolerance: float = PAGERANK_TOLERANCE,
) -> PageRankResult:
    """Damped power iteration; convergence on the L-infinity delta.

    Self-loops are ignored so that recursion does not inflate a score.
    """
    nodes = list(G.nodes)
    n = len(nodes)
    if n == 0:
        return PageRankResult()

    callers = {v: [u for u in G.predecessors(v) if u != v] for v in nodes}
    out_degree = {u: sum(1 for v in G.successors(u) if v != u) for u in nodes}
    dangling = [u for u in nodes if out_degree[u] == 0]

    teleport = (1.0 - damping) / n
    scores = dict.fromkeys(nodes, 1.0 / n)
    converged = False
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        dangling_share = damping * sum(scores[u] for u in dangling) / n
        updated = {
            v: teleport + dangling_share
            + damping * sum(scores[u] / out_degree[u] for u in callers[v])
            for v in nodes
        }
        delta = max(abs(updated[v] - scores[v]) for v in nodes)
        scores = updated
        if delta < tolerance:
            converged = True
            break

    return build_pagerank_result(G, scores, iterations=iterations, converged=converged)


def build_pagerank_result(
    G: nx.DiGraph,
    scores: Mapping[str, float],
    iterations: int = 0,
    converged: bool = True,
    method: str = "power_iteration",
) -> PageRankResult:
    """Rank, normalize (score / max) and tier raw scores."""
    ordered = sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))
    max_score = ordered[0][1] if ordered else 0.0

    result = PageRankResult(iterations=iterations, converged=converged, method=method)
    for rank, (fid, score) in enumerate(ordered, start=1):
        name, file_path, start_line = function_view(G, fid)
        importance = importance_for(score)
        result.scores.append(PageRankScore(
            function_id=fid,
            function_name=name,
            file_path=file_path,
            start_line=start_line,
            score=score,
            rank=rank,
            normalized_score=score / max_score if max_score > 0 else 0.0,
            importance=importance,
        ))
        result.importance_distribution[importance.value] += 1
    return result


def importance_for(score: float) -> Importance:
    """Tier a raw PageRank score using fixed breakpoints."""
    if score > IMPORTANCE_BREAKPOINTS["critical"]:
        return Importance.CRITICAL
    if score > IMPORTANCE_BREAKPOINTS["high"]:
        return Importance.HIGH
    if score > IMPORTANCE_BREAKPOINTS["medium"]:
        return Importance.MEDIUM
    return Importance.LOW


# ---------------------------------------------------------------------------
# Distribution statistics
# ---------------------------------------------------------------------------

def population_variance(values: list[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def gini_coefficient(values: list[float]) -> float:
    """Gini of a distribution: 0 when perfectly equal, towards 1 when concentrated."""
    n = len(values)
    if n <= 1:
        return 0.0
    mean = sum(values) / n
    if mean == 0:
        return 0.0
    ordered = sorted(values)
    total = sum((2 * i - n - 1) * x for i, x in enumerate(ordered, start=1))
    return total / (n * mean * (n - 1))


def centrality_metrics(result: PageRankResult, top_n: int = CENTRALITY_TOP_N) -> CentralityMetrics:
    """Variance and Gini of the normalized scores, plus the top-N functions."""
    normalized = [s.normalized_score for s in result.scores]
    return CentralityMetrics(
        centrality={s.function_id: s.normalized_score for s in result.scores},
        variance=population_variance(normalized),
        gini=gini_coefficient(normalized),
        top_functions=result.scores[:top_n],
    )
