"""Tests for the structural analysis orchestrator."""

import json
import logging
import os
import random
from unittest.mock import MagicMock, patch

import pytest

from structura import observability
from structura.adapters import InMemorySnapshotSource
from structura.analyzer import FlatAnalysis, LayeredAnalysis, StructuralAnalyzer
from structura.config import AnalysisSettings
from structura.graph.pagerank import compute_pagerank
from structura.graph.scc import analyze_scc
from structura.models import CallEdge, FunctionRecord, RiskLevel
from structura.ports import SnapshotSource

LAYERS = {"api": ["src/api/**"], "core": ["src/core/**"]}


def _fn(fid, file_path=None) -> FunctionRecord:
    return FunctionRecord(id=fid, name=fid, file_path=file_path or f"src/core/{fid}.py")


def _add(source, snapshot_id, ids, pairs, files=None):
    files = files or {}
    source.add_snapshot(
        snapshot_id,
        [_fn(i, files.get(i)) for i in ids],
        [CallEdge(a, b) for a, b in pairs],
    )


def _cycle(prefix, k):
    ids = [f"{prefix}{i}" for i in range(k)]
    return ids, [(ids[i], ids[(i + 1) % k]) for i in range(k)]


@pytest.fixture
def analyzer(source, settings, cache, rng):
    return StructuralAnalyzer(source, settings=settings, cache=cache, rng=rng)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_empty_snapshot(self, analyzer):
        m = analyzer.analyze("empty")
        assert m.analysis_error is None
        assert m.total_components == 0
        assert m.structural_risk == RiskLevel.LOW
        assert m.penalty_breakdown.total_penalty == 0.0
        assert m.page_rank is not None
        assert m.page_rank.total_functions == 0
        assert m.hub_threshold == 5

    def test_star_graph_hub(self, analyzer, source):
        spokes = [f"s{i}" for i in range(30)]
        _add(source, "star", ["hub"] + spokes, [(s, "hub") for s in spokes])
        m = analyzer.analyze("star")
        assert m.max_fan_in == 30
        assert m.hub_threshold == 5
        assert m.hub_function_ids == ["hub"]
        assert m.hub_functions == 1
        assert m.cyclic_functions == 0
        assert m.total_components == 31
        assert m.page_rank.top_central_functions[0].function_id == "hub"
        # baseline 15, twice over it: 25 * ln 2
        assert m.penalty_breakdown.max_fan_in == 17.3
        assert m.penalty_breakdown.total_penalty == 17.3
        assert m.structural_risk == RiskLevel.LOW

    def test_two_five_cycles(self, analyzer, source):
        a_ids, a_pairs = _cycle("a", 5)
        b_ids, b_pairs = _cycle("b", 5)
        _add(source, "cycles", a_ids + b_ids, a_pairs + b_pairs)
        m = analyzer.analyze("cycles")
        assert m.total_components == 2
        assert m.largest_component_size == 5
        assert m.cyclic_functions == 10
        assert m.cyclic_function_ids == sorted(a_ids + b_ids)
        assert m.structural_risk == RiskLevel.MEDIUM
        assert m.penalty_breakdown.cyclic_functions == 15.0
        assert m.penalty_breakdown.total_penalty == 15.0

    def test_self_recursive_function(self, analyzer, source):
        _add(source, "rec", ["fact", "main"], [("fact", "fact"), ("main", "fact")])
        m = analyzer.analyze("rec")
        assert m.cyclic_function_ids == ["fact"]
        assert m.total_components == 2
        assert m.largest_component_size == 1

    def test_acyclic_components_equal_function_count(self, analyzer, source):
        _add(source, "dag", list("abcde"), [("a", "b"), ("b", "c"), ("a", "d"), ("d", "e")])
        m = analyzer.analyze("dag")
        assert m.total_components == 5
        assert m.cyclic_function_ids == []
        assert sum(s.score for s in m.page_rank.top_central_functions) == pytest.approx(1.0)

    def test_dict_records_accepted(self, analyzer, source):
        source.add_snapshot(
            "dicts",
            [{"id": "a", "file_path": "a.py"}, {"id": "b", "file_path": "b.py"}],
            [{"caller_id": "a", "callee_id": "b"}, {"caller_id": "a"}],
        )
        m = analyzer.analyze("dicts")
        assert m.max_fan_in == 1
        assert m.dependencies.total_functions == 2

    def test_to_dict_is_json_serializable(self, analyzer, source):
        _add(source, "s", ["a", "b"], [("a", "b")])
        d = analyzer.analyze("s").to_dict()
        json.dumps(d)
        assert d["structural_risk"] == "low"
        assert "page_rank" in d


# ---------------------------------------------------------------------------
# Cache behaviour
# ---------------------------------------------------------------------------

class TestCaching:
    def test_round_trip_skips_recomputation(self, analyzer, source):
        a_ids, a_pairs = _cycle("a", 3)
        _add(source, "s", a_ids + ["x"], a_pairs + [("x", "a0")])
        with patch("structura.analyzer.analyze_scc", wraps=analyze_scc) as scc_spy, \
                patch("structura.analyzer.compute_pagerank", wraps=compute_pagerank) as pr_spy:
            first = analyzer.analyze("s")
            second = analyzer.analyze("s")
        assert second is first
        assert scc_spy.call_count == 1
        assert pr_spy.call_count == 1

    def test_changed_edges_recompute(self, analyzer, source):
        _add(source, "s", ["a", "b"], [("a", "b")])
        first = analyzer.analyze("s")
        _add(source, "s", ["a", "b"], [("a", "b"), ("b", "a")])
        second = analyzer.analyze("s")
        assert second is not first
        assert second.cyclic_functions == 2

    def test_expired_entry_recomputed(self, analyzer, source, clock):
        _add(source, "s", ["a", "b"], [("a", "b")])
        first = analyzer.analyze("s")
        clock.advance(301)
        assert analyzer.analyze("s") is not first

    def test_edge_order_does_not_invalidate(self, analyzer, source):
        _add(source, "s", ["a", "b", "c"], [("a", "b"), ("b", "c")])
        first = analyzer.analyze("s")
        _add(source, "s", ["a", "b", "c"], [("b", "c"), ("a", "b")])
        assert analyzer.analyze("s") is first


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:
    def test_unknown_caller_gives_minimal_metrics(self, analyzer, source, caplog):
        _add(source, "bad", ["a"], [("ghost", "a")])
        with caplog.at_level(logging.WARNING, logger="structura.analyzer"):
            m = analyzer.analyze("bad")
        assert "ghost" in m.analysis_error
        assert m.failed_after_ms is not None and m.failed_after_ms >= 0
        assert m.total_components == 0
        assert m.structural_risk == RiskLevel.LOW
        assert any("failed after" in r.getMessage() for r in caplog.records)

    def test_failures_not_cached(self, analyzer, source):
        _add(source, "bad", ["a"], [("ghost", "a")])
        analyzer.analyze("bad")
        analyzer.analyze("bad")
        assert len(analyzer.cache) == 0
        assert 'structura_analyses_total{outcome="failed"} 2' in observability.generate_metrics()

    def test_source_errors_are_contained(self, settings, cache):
        source = MagicMock()
        source.get_functions.side_effect = RuntimeError("store unavailable")
        m = StructuralAnalyzer(source, settings=settings, cache=cache).analyze("s")
        assert m.analysis_error == "store unavailable"

    def test_in_memory_source_satisfies_port(self, source):
        assert isinstance(source, SnapshotSource)


# ---------------------------------------------------------------------------
# Settings-driven paths
# ---------------------------------------------------------------------------

class TestSimplifiedPath:
    def test_large_graph_skips_page_rank(self, source, cache):
        settings = AnalysisSettings(simplified_edge_threshold=3)
        ids, pairs = _cycle("f", 4)
        _add(source, "big", ids, pairs)
        analyzer = StructuralAnalyzer(source, settings=settings, cache=cache)
        with patch("structura.analyzer.compute_pagerank") as pr:
            m = analyzer.analyze("big")
        pr.assert_not_called()
        assert m.simplified
        assert m.page_rank is None
        assert m.cyclic_functions == 4
        assert 'outcome="simplified"' in observability.generate_metrics()

    def test_at_threshold_runs_full_pipeline(self, source, cache):
        settings = AnalysisSettings(simplified_edge_threshold=4)
        ids, pairs = _cycle("f", 4)
        _add(source, "s", ids, pairs)
        m = StructuralAnalyzer(source, settings=settings, cache=cache).analyze("s")
        assert not m.simplified
        assert m.page_rank is not None

    def test_threshold_from_environment(self, source):
        ids, pairs = _cycle("f", 3)
        _add(source, "s", ids, pairs)
        with patch.dict(os.environ, {"STRUCTURA_SIMPLIFIED_EDGE_THRESHOLD": "1"}):
            analyzer = StructuralAnalyzer(source)
        assert analyzer.analyze("s").simplified


class TestIntraFileExclusion:
    def test_same_file_calls_dropped(self, source, cache):
        files = {"a": "src/x.py", "b": "src/x.py", "c": "src/y.py"}
        _add(source, "s", ["a", "b", "c"], [("a", "b"), ("a", "c"), ("b", "a")], files=files)
        settings = AnalysisSettings(exclude_intra_file_calls=True)
        m = StructuralAnalyzer(source, settings=settings, cache=cache).analyze("s")
        assert m.excluded_intra_file_edges == 2
        assert m.cyclic_functions == 0
        assert m.max_fan_in == 1

    def test_disabled_by_default(self, analyzer, source):
        files = {"a": "src/x.py", "b": "src/x.py"}
        _add(source, "s", ["a", "b"], [("a", "b"), ("b", "a")], files=files)
        m = analyzer.analyze("s")
        assert m.excluded_intra_file_edges == 0
        assert m.cyclic_functions == 2


class TestAnalysisMode:
    def _layered_source(self, source):
        files = {"h": "src/api/h.py", "s": "src/core/s.py", "r": "src/core/r.py"}
        _add(source, "s", ["h", "s", "r"], [("h", "s"), ("s", "r")], files=files)

    def test_layered_when_layers_configured(self, source, cache):
        self._layered_source(source)
        settings = AnalysisSettings(layers=LAYERS)
        analyzer = StructuralAnalyzer(source, settings=settings, cache=cache, rng=random.Random(1))
        m = analyzer.analyze("s")
        layered = m.page_rank.layered
        assert layered is not None
        assert layered.cross_layer_edges == 1
        assert m.penalty_breakdown.cross_layer == 0.0

    def test_cross_layer_penalty_applied(self, source, cache):
        files = {"a": "src/api/a.py", "b": "src/core/b.py"}
        _add(source, "s", ["a", "b"], [("a", "b")], files=files)
        m = StructuralAnalyzer(source, settings=AnalysisSettings(layers=LAYERS), cache=cache).analyze("s")
        assert m.page_rank.layered.cross_layer_ratio == 100.0
        assert m.penalty_breakdown.cross_layer == 15.0

    def test_flat_mode_forced(self, source, cache):
        self._layered_source(source)
        analyzer = StructuralAnalyzer(
            source, settings=AnalysisSettings(layers=LAYERS), cache=cache, mode=FlatAnalysis())
        assert analyzer.analyze("s").page_rank.layered is None

    def test_resolve_mode(self):
        source = InMemorySnapshotSource()
        assert isinstance(StructuralAnalyzer(source, AnalysisSettings()).resolve_mode(10), FlatAnalysis)

        s = AnalysisSettings(layers=LAYERS, layer_budget_mv=500, layer_analysis_max_edges=100)
        mode = StructuralAnalyzer(source, s).resolve_mode(100)
        assert mode == LayeredAnalysis(layers=LAYERS, budget_mv=500)
        assert isinstance(StructuralAnalyzer(source, s).resolve_mode(101), FlatAnalysis)

        disabled = AnalysisSettings(layers=LAYERS, layer_analysis_enabled=False)
        assert isinstance(StructuralAnalyzer(source, disabled).resolve_mode(1), FlatAnalysis)

    def test_analyze_records_bypasses_source(self, analyzer):
        m = analyzer.analyze_records("direct", [_fn("a"), _fn("b")], [CallEdge("a", "b")])
        assert m.max_fan_in == 1
        assert analyzer.cache.stats()["entries"][0]["snapshot_id"] == "direct"
