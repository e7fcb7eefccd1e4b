"""Core data types for structura.

Input records (``FunctionRecord``, ``CallEdge``) are produced by the external
extraction step and are read-only here.  Everything else is an output shape
consumed by risk evaluation, recommendations and report formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from structura.defaults import LAYER_TOP_N


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Importance(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FunctionMetrics:
    cyclomatic_complexity: int = 1
    lines_of_code: int = 0
    max_nesting_level: int = 0
    comment_ratio: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FunctionMetrics:
        known = {"cyclomatic_complexity", "lines_of_code", "max_nesting_level", "comment_ratio"}
        return cls(
            cyclomatic_complexity=d.get("cyclomatic_complexity", 1),
            lines_of_code=d.get("lines_of_code", 0),
            max_nesting_level=d.get("max_nesting_level", 0),
            comment_ratio=d.get("comment_ratio", 0.0),
            extra={k: v for k, v in d.items() if k not in known},
        )


@dataclass(frozen=True)
class FunctionRecord:
    id: str
    name: str
    file_path: str
    start_line: int = 0
    end_line: int = 0
    metrics: FunctionMetrics | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FunctionRecord:
        metrics = d.get("metrics")
        return cls(
            id=d["id"],
            name=d.get("name", d["id"]),
            file_path=d.get("file_path", ""),
            start_line=d.get("start_line", 0),
            end_line=d.get("end_line", 0),
            metrics=FunctionMetrics.from_dict(metrics) if metrics else None,
        )


@dataclass(frozen=True)
class CallEdge:
    caller_id: str
    callee_id: str | None = None  # None: external or unresolved target

    @property
    def is_external(self) -> bool:
        return self.callee_id is None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CallEdge:
        return cls(caller_id=d["caller_id"], callee_id=d.get("callee_id"))


# ---------------------------------------------------------------------------
# Dependency metrics
# ---------------------------------------------------------------------------

@dataclass
class DependencyMetric:
    function_id: str
    function_name: str
    file_path: str
    fan_in: int = 0            # distinct callers
    fan_out: int = 0           # distinct internal callees
    total_callers: int = 0     # inbound call sites
    total_calls: int = 0       # outbound internal call sites
    external_calls: int = 0
    depth_from_entry: int = -1
    max_call_chain: int = 1
    is_entry_point: bool = False
    is_cyclic: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_id": self.function_id,
            "function_name": self.function_name,
            "file_path": self.file_path,
            "fan_in": self.fan_in,
            "fan_out": self.fan_out,
            "total_callers": self.total_callers,
            "total_calls": self.total_calls,
            "external_calls": self.external_calls,
            "depth_from_entry": self.depth_from_entry,
            "max_call_chain": self.max_call_chain,
            "is_entry_point": self.is_entry_point,
            "is_cyclic": self.is_cyclic,
        }


@dataclass
class DependencySummary:
    total_functions: int = 0
    avg_fan_in: float = 0.0
    avg_fan_out: float = 0.0
    max_fan_in: int = 0
    max_fan_out: int = 0
    hub_threshold: int = 0
    hub_function_ids: list[str] = field(default_factory=list)
    utility_function_ids: list[str] = field(default_factory=list)
    isolated_function_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_functions": self.total_functions,
            "avg_fan_in": self.avg_fan_in,
            "avg_fan_out": self.avg_fan_out,
            "max_fan_in": self.max_fan_in,
            "max_fan_out": self.max_fan_out,
            "hub_threshold": self.hub_threshold,
            "hub_function_ids": list(self.hub_function_ids),
            "utility_function_ids": list(self.utility_function_ids),
            "isolated_function_count": self.isolated_function_count,
        }


# ---------------------------------------------------------------------------
# Strongly connected components
# ---------------------------------------------------------------------------

@dataclass
class SCCComponent:
    index: int
    function_ids: tuple[str, ...]
    is_cyclic: bool = False
    is_self_recursive: bool = False

    @property
    def size(self) -> int:
        return len(self.function_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "function_ids": list(self.function_ids),
            "size": self.size,
            "is_cyclic": self.is_cyclic,
            "is_self_recursive": self.is_self_recursive,
        }


@dataclass
class SCCResult:
    components: list[SCCComponent] = field(default_factory=list)
    component_of: dict[str, int] = field(default_factory=dict)
    cyclic_function_ids: tuple[str, ...] = ()

    @property
    def total_components(self) -> int:
        return len(self.components)

    @property
    def largest_component_size(self) -> int:
        return max((c.size for c in self.components), default=0)

    @property
    def cyclic_components(self) -> list[SCCComponent]:
        return [c for c in self.components if c.is_cyclic]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_components": self.total_components,
            "largest_component_size": self.largest_component_size,
            "cyclic_function_ids": list(self.cyclic_function_ids),
            "cyclic_components": [c.to_dict() for c in self.cyclic_components],
        }


# ---------------------------------------------------------------------------
# PageRank
# ---------------------------------------------------------------------------

@dataclass
class PageRankScore:
    function_id: str
    function_name: str
    file_path: str
    start_line: int
    score: float
    rank: int = 0
    normalized_score: float = 0.0
    importance: Importance = Importance.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_id": self.function_id,
            "function_name": self.function_name,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "score": self.score,
            "rank": self.rank,
            "normalized_score": self.normalized_score,
            "importance": self.importance.value,
        }


def _empty_distribution() -> dict[str, int]:
    return {i.value: 0 for i in Importance}


@dataclass
class PageRankResult:
    scores: list[PageRankScore] = field(default_factory=list)
    iterations: int = 0
    converged: bool = True
    method: str = "power_iteration"
    importance_distribution: dict[str, int] = field(default_factory=_empty_distribution)

    @property
    def total_functions(self) -> int:
        return len(self.scores)

    @property
    def max_score(self) -> float:
        return max((s.score for s in self.scores), default=0.0)

    @property
    def min_score(self) -> float:
        return min((s.score for s in self.scores), default=0.0)

    @property
    def average_score(self) -> float:
        if not self.scores:
            return 0.0
        return sum(s.score for s in self.scores) / len(self.scores)


@dataclass
class CentralityMetrics:
    centrality: dict[str, float] = field(default_factory=dict)
    variance: float = 0.0
    gini: float = 0.0
    top_functions: list[PageRankScore] = field(default_factory=list)


@dataclass
class LayerPageRankResult:
    layer_name: str
    function_count: int
    intra_layer_edges: int = 0
    max_iterations: int = 0
    method: str = "power_iteration"
    scores: list[PageRankScore] = field(default_factory=list)
    average_score: float = 0.0
    max_score: float = 0.0
    gini: float = 0.0

    @property
    def top_functions(self) -> list[PageRankScore]:
        return self.scores[:LAYER_TOP_N]

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer_name": self.layer_name,
            "function_count": self.function_count,
            "intra_layer_edges": self.intra_layer_edges,
            "max_iterations": self.max_iterations,
            "method": self.method,
            "top_functions": [s.to_dict() for s in self.top_functions],
            "average_score": self.average_score,
            "max_score": self.max_score,
            "gini": self.gini,
        }


@dataclass
class LayeredPageRankAnalysis:
    total_functions: int = 0
    total_layers: int = 0
    unmapped_functions: int = 0
    cross_layer_edges: int = 0
    total_edges: int = 0
    layer_results: list[LayerPageRankResult] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)

    @property
    def analyzed_layers(self) -> int:
        return len(self.layer_results)

    @property
    def cross_layer_ratio(self) -> float:
        """Cross-layer edges as a percentage of all edges."""
        return self.cross_layer_edges / max(1, self.total_edges) * 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_functions": self.total_functions,
            "total_layers": self.total_layers,
            "analyzed_layers": self.analyzed_layers,
            "unmapped_functions": self.unmapped_functions,
            "cross_layer_edges": self.cross_layer_edges,
            "total_edges": self.total_edges,
            "cross_layer_ratio": round(self.cross_layer_ratio, 1),
            "layer_results": [r.to_dict() for r in self.layer_results],
            "insights": list(self.insights),
        }


@dataclass
class PageRankSummary:
    total_functions: int = 0
    converged: bool = True
    iterations: int = 0
    average_score: float = 0.0
    max_score: float = 0.0
    centrality_variance: float = 0.0
    centrality_gini: float = 0.0
    importance_distribution: dict[str, int] = field(default_factory=_empty_distribution)
    top_central_functions: list[PageRankScore] = field(default_factory=list)
    high_centrality_threshold: float = 0.9
    critical_centrality_threshold: float = 0.95
    layered: LayeredPageRankAnalysis | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "total_functions": self.total_functions,
            "converged": self.converged,
            "iterations": self.iterations,
            "average_score": self.average_score,
            "max_score": self.max_score,
            "centrality_variance": self.centrality_variance,
            "centrality_gini": self.centrality_gini,
            "importance_distribution": dict(self.importance_distribution),
            "top_central_functions": [s.to_dict() for s in self.top_central_functions],
            "high_centrality_threshold": self.high_centrality_threshold,
            "critical_centrality_threshold": self.critical_centrality_threshold,
        }
        if self.layered is not None:
            d["layered"] = self.layered.to_dict()
        return d


# ---------------------------------------------------------------------------
# Penalty + aggregate
# ---------------------------------------------------------------------------

@dataclass
class StructuralPenaltyBreakdown:
    largest_component: float = 0.0
    cyclic_functions: float = 0.0
    hub_functions: float = 0.0
    max_fan_in: float = 0.0
    cross_layer: float = 0.0
    raw_penalty: float = 0.0
    duplicate_adjustment: float = 0.0
    hub_cyclic_overlap: int = 0
    total_penalty: float = 0.0
    risk_multiplier: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "largest_component": self.largest_component,
            "cyclic_functions": self.cyclic_functions,
            "hub_functions": self.hub_functions,
            "max_fan_in": self.max_fan_in,
            "cross_layer": self.cross_layer,
            "raw_penalty": self.raw_penalty,
            "duplicate_adjustment": self.duplicate_adjustment,
            "hub_cyclic_overlap": self.hub_cyclic_overlap,
            "total_penalty": self.total_penalty,
            "risk_multiplier": self.risk_multiplier,
        }


@dataclass
class StructuralMetrics:
    total_components: int = 0
    largest_component_size: int = 0
    cyclic_functions: int = 0
    hub_functions: int = 0
    avg_fan_in: float = 0.0
    avg_fan_out: float = 0.0
    max_fan_in: int = 0
    max_fan_out: int = 0
    structural_risk: RiskLevel = RiskLevel.LOW
    hub_threshold: int = 0
    hub_function_ids: list[str] = field(default_factory=list)
    cyclic_function_ids: list[str] = field(default_factory=list)
    dependencies: DependencySummary | None = None
    page_rank: PageRankSummary | None = None
    penalty_breakdown: StructuralPenaltyBreakdown = field(default_factory=StructuralPenaltyBreakdown)
    simplified: bool = False
    excluded_intra_file_edges: int = 0
    analysis_error: str | None = None
    failed_after_ms: int | None = None

    @classmethod
    def minimal(
        cls,
        analysis_error: str | None = None,
        failed_after_ms: int | None = None,
    ) -> StructuralMetrics:
        """Zeroed metrics, used for empty snapshots and failed analyses."""
        return cls(analysis_error=analysis_error, failed_after_ms=failed_after_ms)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "total_components": self.total_components,
            "largest_component_size": self.largest_component_size,
            "cyclic_functions": self.cyclic_functions,
            "hub_functions": self.hub_functions,
            "avg_fan_in": self.avg_fan_in,
            "avg_fan_out": self.avg_fan_out,
            "max_fan_in": self.max_fan_in,
            "max_fan_out": self.max_fan_out,
            "structural_risk": self.structural_risk.value,
            "hub_threshold": self.hub_threshold,
            "hub_function_ids": list(self.hub_function_ids),
            "cyclic_function_ids": list(self.cyclic_function_ids),
            "penalty_breakdown": self.penalty_breakdown.to_dict(),
            "simplified": self.simplified,
            "excluded_intra_file_edges": self.excluded_intra_file_edges,
        }
        if self.dependencies is not None:
            d["dependencies"] = self.dependencies.to_dict()
        if self.page_rank is not None:
            d["page_rank"] = self.page_rank.to_dict()
        if self.analysis_error is not None:
            d["analysis_error"] = self.analysis_error
            d["failed_after_ms"] = self.failed_after_ms
        return d


@dataclass
class CacheEntry:
    metrics: StructuralMetrics
    created_at: float
    edges_hash: str
