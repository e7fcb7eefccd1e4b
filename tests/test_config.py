"""Tests for analysis settings and layer configuration loading."""

import json
import os
from unittest.mock import patch

import pytest

from structura.config import AnalysisSettings, load_layer_config, parse_layer_config
from structura.errors import LayerConfigError


class TestAnalysisSettings:
    def test_defaults(self):
        s = AnalysisSettings.from_env({})
        assert s.layer_budget_mv == 150_000
        assert s.exclude_intra_file_calls is False
        assert s.layer_analysis_enabled is True
        assert s.layer_analysis_max_edges == 20_000
        assert s.simplified_edge_threshold == 3_500
        assert s.cache_ttl_seconds == 300
        assert s.layers == {}

    def test_from_environment(self):
        env = {
            "STRUCTURA_LAYER_PR_BUDGET_MV": "0",
            "STRUCTURA_EXCLUDE_INTRA_FILE_CALLS": "true",
            "STRUCTURA_LAYER_ANALYSIS": "0",
            "STRUCTURA_LAYER_ANALYSIS_MAX_EDGES": "500",
            "STRUCTURA_SIMPLIFIED_EDGE_THRESHOLD": "10",
            "STRUCTURA_CACHE_TTL_SECONDS": "1.5",
        }
        with patch.dict(os.environ, env):
            s = AnalysisSettings.from_env()
        assert s.layer_budget_mv == 0
        assert s.exclude_intra_file_calls is True
        assert s.layer_analysis_enabled is False
        assert s.layer_analysis_max_edges == 500
        assert s.simplified_edge_threshold == 10
        assert s.cache_ttl_seconds == 1.5

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("yes", True), ("ON", True), ("0", False), ("off", False), ("", False),
    ])
    def test_boolean_parsing(self, value, expected):
        s = AnalysisSettings.from_env({"STRUCTURA_EXCLUDE_INTRA_FILE_CALLS": value})
        assert s.exclude_intra_file_calls is expected

    def test_explicit_layer_config(self, tmp_path):
        path = tmp_path / "layers.json"
        path.write_text(json.dumps({"layers": {"api": ["src/api/**"]}}))
        s = AnalysisSettings.from_env({"STRUCTURA_LAYER_CONFIG": str(path)})
        assert s.layers == {"api": ["src/api/**"]}

    def test_explicit_missing_layer_config_raises(self, tmp_path):
        with pytest.raises(LayerConfigError):
            AnalysisSettings.from_env({"STRUCTURA_LAYER_CONFIG": str(tmp_path / "missing.json")})

    def test_default_layer_file_discovered(self, tmp_path, monkeypatch):
        (tmp_path / ".structura").mkdir()
        (tmp_path / ".structura" / "layers.json").write_text(
            json.dumps({"layers": {"core": ["src/core/**"]}}))
        monkeypatch.chdir(tmp_path)
        assert AnalysisSettings.from_env({}).layers == {"core": ["src/core/**"]}

    def test_bad_default_layer_file_is_ignored(self, tmp_path, monkeypatch):
        (tmp_path / "layers.json").write_text("{not json")
        monkeypatch.chdir(tmp_path)
        assert AnalysisSettings.from_env({}).layers == {}

    def test_to_dict(self):
        d = AnalysisSettings(layers={"a": ["x/**"]}).to_dict()
        assert d["layers"] == {"a": ["x/**"]}
        assert d["simplified_edge_threshold"] == 3_500


class TestLayerConfig:
    def test_accepted_shapes_preserve_order(self):
        layers = parse_layer_config({"layers": {
            "cli": ["src/cli/**"],
            "storage": {"patterns": ["src/storage/**", "src/db/**"]},
            "utils": "src/utils/**",
        }})
        assert list(layers) == ["cli", "storage", "utils"]
        assert layers["storage"] == ["src/storage/**", "src/db/**"]
        assert layers["utils"] == ["src/utils/**"]

    @pytest.mark.parametrize("data", [
        [],
        {},
        {"layers": ["a"]},
        {"layers": {"a": 3}},
        {"layers": {"a": ["ok", 1]}},
    ])
    def test_rejects_malformed(self, data):
        with pytest.raises(LayerConfigError):
            parse_layer_config(data)

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "layers.json"
        path.write_text("{")
        with pytest.raises(LayerConfigError):
            load_layer_config(path)
