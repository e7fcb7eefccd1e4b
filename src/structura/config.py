"""Analysis settings: defaults → layer config file → env vars.

Tunables are read from ``STRUCTURA_*`` environment variables.  Layer
definitions come from the JSON file named by ``STRUCTURA_LAYER_CONFIG`` or,
when unset, from ``.structura/layers.json`` / ``layers.json`` if present.

Layer file format::

    {"layers": {"cli": ["src/cli/**"], "storage": {"patterns": ["src/storage/**"]}}}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from structura.defaults import (
    CACHE_TTL_SECONDS,
    LAYER_ANALYSIS_MAX_EDGES,
    LAYER_PR_BUDGET_MV,
    SIMPLIFIED_EDGE_THRESHOLD,
)
from structura.errors import LayerConfigError

log = logging.getLogger("structura.config")

_TRUTHY = ("1", "true", "yes", "on")
_DEFAULT_LAYER_PATHS = [Path(".structura/layers.json"), Path("layers.json")]


def _env_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    val = environ.get(key)
    if val is None:
        return default
    return val.strip().lower() in _TRUTHY


@dataclass
class AnalysisSettings:
    layer_budget_mv: int = LAYER_PR_BUDGET_MV   # 0 disables budget scaling
    exclude_intra_file_calls: bool = False
    layer_analysis_enabled: bool = True
    layer_analysis_max_edges: int = LAYER_ANALYSIS_MAX_EDGES
    simplified_edge_threshold: int = SIMPLIFIED_EDGE_THRESHOLD
    cache_ttl_seconds: float = CACHE_TTL_SECONDS
    layers: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AnalysisSettings:
        env = os.environ if environ is None else environ
        return cls(
            layer_budget_mv=int(env.get("STRUCTURA_LAYER_PR_BUDGET_MV", str(LAYER_PR_BUDGET_MV))),
            exclude_intra_file_calls=_env_bool(env, "STRUCTURA_EXCLUDE_INTRA_FILE_CALLS", False),
            layer_analysis_enabled=_env_bool(env, "STRUCTURA_LAYER_ANALYSIS", True),
            layer_analysis_max_edges=int(
                env.get("STRUCTURA_LAYER_ANALYSIS_MAX_EDGES", str(LAYER_ANALYSIS_MAX_EDGES))),
            simplified_edge_threshold=int(
                env.get("STRUCTURA_SIMPLIFIED_EDGE_THRESHOLD", str(SIMPLIFIED_EDGE_THRESHOLD))),
            cache_ttl_seconds=float(env.get("STRUCTURA_CACHE_TTL_SECONDS", str(CACHE_TTL_SECONDS))),
            layers=_discover_layers(env),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer_budget_mv": self.layer_budget_mv,
            "exclude_intra_file_calls": self.exclude_intra_file_calls,
            "layer_analysis_enabled": self.layer_analysis_enabled,
            "layer_analysis_max_edges": self.layer_analysis_max_edges,
            "simplified_edge_threshold": self.simplified_edge_threshold,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "layers": {k: list(v) for k, v in self.layers.items()},
        }


# ---------------------------------------------------------------------------
# Layer configuration
# ---------------------------------------------------------------------------

def parse_layer_config(data: Any) -> dict[str, list[str]]:
    """Validate a decoded layer config and return ``{layer: [patterns]}``.

    Layer order is preserved; the first matching layer wins during
    assignment.
    """
    if not isinstance(data, dict) or not isinstance(data.get("layers"), dict):
        raise LayerConfigError("layer config must be an object with a 'layers' mapping")

    layers: dict[str, list[str]] = {}
    for name, entry in data["layers"].items():
        if isinstance(entry, dict):
            entry = entry.get("patterns", [])
        if isinstance(entry, str):
            entry = [entry]
        if not isinstance(entry, list) or not all(isinstance(p, str) for p in entry):
            raise LayerConfigError(f"layer '{name}' patterns must be a list of strings")
        layers[name] = list(entry)
    return layers


def load_layer_config(path: str | Path) -> dict[str, list[str]]:
    """Read layer definitions from a JSON file."""
    p = Path(path)
    try:
        with open(p) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LayerConfigError(f"cannot read layer config {p}: {e}") from e
    return parse_layer_config(data)


def _discover_layers(environ: Mapping[str, str]) -> dict[str, list[str]]:
    explicit = environ.get("STRUCTURA_LAYER_CONFIG")
    if explicit:
        return load_layer_config(explicit)

    for p in _DEFAULT_LAYER_PATHS:
        if p.exists():
            try:
                return load_layer_config(p)
            except LayerConfigError as e:
                log.warning("Ignoring unusable layer config: %s", e)
            break
    return {}
