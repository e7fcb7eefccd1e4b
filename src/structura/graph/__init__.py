"""Call-graph analysis: construction, SCC, fan-in/out, PageRank, layers, scoring.

Uses NetworkX for graph storage and component detection.  Each stage takes
the ``nx.DiGraph`` built by ``build_call_graph`` and returns plain result
dataclasses from ``structura.models``.
"""

from structura.graph.callgraph import build_call_graph, function_view, split_intra_file_edges
from structura.graph.dependency import compute_dependency_metrics, summarize_dependencies
from structura.graph.layers import (
    analyze_layered_pagerank,
    assign_layers,
    classify_layer_edges,
    estimate_pagerank_monte_carlo,
    layer_iteration_budget,
    matches_pattern,
)
from structura.graph.pagerank import (
    build_pagerank_result,
    centrality_metrics,
    compute_pagerank,
    gini_coefficient,
    importance_for,
    population_variance,
)
from structura.graph.scc import analyze_scc, component_complexity, condensation_order
from structura.graph.scoring import (
    classify_structural_risk,
    compute_penalty_breakdown,
    fan_in_penalty,
    risk_multiplier,
)
from structura.graph.thresholds import centrality_thresholds, hub_threshold

__all__ = [
    "analyze_layered_pagerank",
    "analyze_scc",
    "assign_layers",
    "build_call_graph",
    "build_pagerank_result",
    "centrality_metrics",
    "centrality_thresholds",
    "classify_layer_edges",
    "classify_structural_risk",
    "component_complexity",
    "compute_dependency_metrics",
    "compute_pagerank",
    "compute_penalty_breakdown",
    "condensation_order",
    "estimate_pagerank_monte_carlo",
    "fan_in_penalty",
    "function_view",
    "gini_coefficient",
    "hub_threshold",
    "importance_for",
    "layer_iteration_budget",
    "matches_pattern",
    "population_variance",
    "risk_multiplier",
    "split_intra_file_edges",
    "summarize_dependencies",
]
