"""Structural analysis orchestrator.

Loads a snapshot's functions and call edges, checks the cache, and on a miss
runs the pipeline:

    call graph -> SCC -> dependency metrics -> hub threshold
      -> PageRank (flat, plus per layer when configured)
      -> risk tier -> penalty breakdown

Graphs above the simplified-edge threshold skip PageRank entirely.  Any
failure is logged and turned into minimal metrics carrying the error, so
callers always get a StructuralMetrics back.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Iterable

from structura.cache import StructuralCache, hash_call_edges
from structura.config import AnalysisSettings
from structura.defaults import LAYER_PR_BUDGET_MV
from structura.graph.callgraph import build_call_graph, split_intra_file_edges
from structura.graph.dependency import compute_dependency_metrics, summarize_dependencies
from structura.graph.layers import analyze_layered_pagerank
from structura.graph.pagerank import centrality_metrics, compute_pagerank
from structura.graph.scc import analyze_scc
from structura.graph.scoring import classify_structural_risk, compute_penalty_breakdown
from structura.graph.thresholds import centrality_thresholds, hub_threshold
from structura.models import CallEdge, FunctionRecord, PageRankSummary, StructuralMetrics
from structura.observability import record_analysis
from structura.ports import SnapshotSource

log = logging.getLogger("structura.analyzer")

_MS_PER_SECOND = 1000


# ---------------------------------------------------------------------------
# Analysis modes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FlatAnalysis:
    """Whole-graph PageRank only."""


@dataclass(frozen=True)
class LayeredAnalysis:
    """Whole-graph PageRank plus an independent run per architectural layer."""
    layers: dict[str, list[str]] = field(default_factory=dict)
    budget_mv: int | None = LAYER_PR_BUDGET_MV


AnalysisMode = FlatAnalysis | LayeredAnalysis


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class StructuralAnalyzer:
    """Compute StructuralMetrics for snapshots read from a SnapshotSource.

    Parameters
    ----------
    source:
        Where function and call-edge records come from.
    settings:
        Tunables; defaults to ``AnalysisSettings.from_env()``.
    cache:
        Shared result cache; a private one is created when omitted.
    mode:
        Force flat or layered analysis.  When omitted, layered analysis is
        used if layers are configured, enabled, and the edge count is within
        the layer-analysis limit.
    rng:
        Random source for Monte Carlo estimation of large layers.
    """

    def __init__(
        self,
        source: SnapshotSource,
        settings: AnalysisSettings | None = None,
        cache: StructuralCache | None = None,
        mode: AnalysisMode | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.source = source
        self.settings = settings if settings is not None else AnalysisSettings.from_env()
        self.cache = cache if cache is not None else StructuralCache(self.settings.cache_ttl_seconds)
        self.mode = mode
        self.rng = rng

    def analyze(self, snapshot_id: str) -> StructuralMetrics:
        start = time.perf_counter()
        try:
            functions = self.source.get_functions(snapshot_id)
            edges = self.source.get_call_edges(snapshot_id)
        except Exception as e:
            return self._failed(snapshot_id, e, start)
        return self.analyze_records(snapshot_id, functions, edges)

    def analyze_records(
        self,
        snapshot_id: str,
        functions: Iterable[FunctionRecord],
        edges: Iterable[CallEdge],
    ) -> StructuralMetrics:
        """Analyze records that were already loaded, through the cache."""
        start = time.perf_counter()
        try:
            functions = list(functions)
            edges = list(edges)
            excluded = 0
            if self.settings.exclude_intra_file_calls:
                edges, excluded = split_intra_file_edges(functions, edges)
            edges_hash = hash_call_edges(edges)
        except Exception as e:
            return self._failed(snapshot_id, e, start)

        return self.cache.get_or_compute(
            snapshot_id, edges_hash,
            lambda: self._compute(snapshot_id, functions, edges, excluded),
        )

    def resolve_mode(self, edge_count: int) -> AnalysisMode:
        if self.mode is not None:
            return self.mode
        s = self.settings
        if s.layers and s.layer_analysis_enabled and edge_count <= s.layer_analysis_max_edges:
            return LayeredAnalysis(layers=s.layers, budget_mv=s.layer_budget_mv)
        return FlatAnalysis()

    # -- pipeline ---------------------------------------------------------------

    def _compute(
        self,
        snapshot_id: str,
        functions: list[FunctionRecord],
        edges: list[CallEdge],
        excluded: int,
    ) -> StructuralMetrics:
        start = time.perf_counter()
        try:
            metrics = self._run_pipeline(snapshot_id, functions, edges)
        except Exception as e:
            return self._failed(snapshot_id, e, start)
        metrics.excluded_intra_file_edges = excluded

        duration = time.perf_counter() - start
        record_analysis("simplified" if metrics.simplified else "full", duration)
        log.debug(
            "Structural analysis of %s finished in %.0fms", snapshot_id,
            duration * _MS_PER_SECOND,
            extra={
                "snapshot_id": snapshot_id,
                "duration_ms": round(duration * _MS_PER_SECOND, 1),
                "functions": len(functions),
                "edges": len(edges),
            },
        )
        return metrics

    def _run_pipeline(
        self,
        snapshot_id: str,
        functions: list[FunctionRecord],
        edges: list[CallEdge],
    ) -> StructuralMetrics:
        G = build_call_graph(functions, edges)
        scc = analyze_scc(G)
        deps = compute_dependency_metrics(G, cyclic_functions=scc.cyclic_function_ids, scc=scc)
        threshold = hub_threshold([m.fan_in for m in deps])
        summary = summarize_dependencies(deps, threshold)

        simplified = len(edges) > self.settings.simplified_edge_threshold
        page_rank = None
        if simplified:
            log.info(
                "Snapshot %s has %d call edges, skipping PageRank", snapshot_id, len(edges),
                extra={"snapshot_id": snapshot_id, "edges": len(edges)},
            )
        else:
            page_rank = self._page_rank(G, self.resolve_mode(len(edges)))

        metrics = StructuralMetrics(
            total_components=scc.total_components,
            largest_component_size=scc.largest_component_size,
            cyclic_functions=len(scc.cyclic_function_ids),
            hub_functions=len(summary.hub_function_ids),
            avg_fan_in=summary.avg_fan_in,
            avg_fan_out=summary.avg_fan_out,
            max_fan_in=summary.max_fan_in,
            max_fan_out=summary.max_fan_out,
            structural_risk=classify_structural_risk(
                scc.largest_component_size,
                len(scc.cyclic_function_ids),
                len(summary.hub_function_ids),
                summary.max_fan_in,
                summary.max_fan_out,
            ),
            hub_threshold=threshold,
            hub_function_ids=list(summary.hub_function_ids),
            cyclic_function_ids=list(scc.cyclic_function_ids),
            dependencies=summary,
            page_rank=page_rank,
            simplified=simplified,
        )
        metrics.penalty_breakdown = compute_penalty_breakdown(metrics)
        return metrics

    def _page_rank(self, G, mode: AnalysisMode) -> PageRankSummary:
        pr = compute_pagerank(G)
        cm = centrality_metrics(pr)
        high, critical = centrality_thresholds(cm.gini if pr.scores else None, pr.total_functions)

        layered = None
        if isinstance(mode, LayeredAnalysis) and mode.layers:
            layered = analyze_layered_pagerank(G, mode.layers, mode.budget_mv, rng=self.rng)

        return PageRankSummary(
            total_functions=pr.total_functions,
            converged=pr.converged,
            iterations=pr.iterations,
            average_score=pr.average_score,
            max_score=pr.max_score,
            centrality_variance=cm.variance,
            centrality_gini=cm.gini,
            importance_distribution=dict(pr.importance_distribution),
            top_central_functions=cm.top_functions,
            high_centrality_threshold=high,
            critical_centrality_threshold=critical,
            layered=layered,
        )

    def _failed(self, snapshot_id: str, exc: Exception, start: float) -> StructuralMetrics:
        elapsed_ms = int((time.perf_counter() - start) * _MS_PER_SECOND)
        record_analysis("failed", elapsed_ms / _MS_PER_SECOND)
        log.warning(
            "Structural analysis of %s failed after %dms: %s", snapshot_id, elapsed_ms, exc,
            exc_info=True,
            extra={"snapshot_id": snapshot_id, "duration_ms": elapsed_ms},
        )
        return StructuralMetrics.minimal(analysis_error=str(exc), failed_after_ms=elapsed_ms)
