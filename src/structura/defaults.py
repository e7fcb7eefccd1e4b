"""Single source of truth for shared constants and configuration defaults.

Every threshold or default that appears in more than one module is defined
here.  Weights that are truly local to one scoring rule stay in that module.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# PageRank
# ---------------------------------------------------------------------------

PAGERANK_DAMPING = 0.85
PAGERANK_MAX_ITERATIONS = 100
PAGERANK_TOLERANCE = 1e-6
PAGERANK_LAYER_TOLERANCE = 1e-5
CENTRALITY_TOP_N = 10
LAYER_TOP_N = 5

# Importance tiers on the raw score (strictly greater than)
IMPORTANCE_BREAKPOINTS: dict[str, float] = {
    "critical": 0.1,
    "high": 0.05,
    "medium": 0.02,
}

# ---------------------------------------------------------------------------
# Layer-partitioned PageRank
# ---------------------------------------------------------------------------

LAYER_PR_BUDGET_MV = 150_000     # global matrix-vector multiplication cap
LAYER_MIN_ITERATIONS = 8
LAYER_MAX_ITERATIONS = 40
LAYER_BASE_ITERATIONS = 10
LARGE_LAYER_FUNCTIONS = 1200     # above this, Monte Carlo replaces power iteration
LARGE_LAYER_EDGES = 3000
MC_WALKS_PER_NODE = 20
MC_WALK_LENGTH = 12

GINI_HIGH_INEQUALITY = 0.7
GINI_WELL_DISTRIBUTED = 0.4
BOTTLENECK_CENTRALITY = 0.8      # top function's normalized lead over the runner-up

# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

SIMPLIFIED_EDGE_THRESHOLD = 3_500
LAYER_ANALYSIS_MAX_EDGES = 20_000
CACHE_TTL_SECONDS = 300
UTILITY_FAN_OUT_THRESHOLD = 5

# ---------------------------------------------------------------------------
# Hub threshold
# ---------------------------------------------------------------------------

HUB_THRESHOLD_DEFAULT = 5
HUB_THRESHOLD_CAP = 50
HUB_AVG_MULTIPLIER = 2.5
HUB_PERCENTILE = 0.9

# (minimum project size, floor) checked in order
HUB_SIZE_FLOORS: list[tuple[int, int]] = [
    (1000, 10),
    (500, 8),
    (100, 6),
]

# ---------------------------------------------------------------------------
# Penalty model
# ---------------------------------------------------------------------------

MAX_STRUCTURAL_PENALTY = 50.0

RISK_MULTIPLIERS: dict[str, float] = {
    "low": 1.0,
    "medium": 0.95,
    "high": 0.85,
    "critical": 0.7,
}

RISK_CLASSIFICATION_THRESHOLDS: dict[str, int] = {
    "medium": 3,
    "high": 5,
    "critical": 7,
}
