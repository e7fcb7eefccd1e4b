"""Structural penalty (0-50) and qualitative risk tier.

The penalty is the sum of five independent signals minus an overlap
adjustment for functions that are both hubs and cyclic.  The risk tier comes
from a separate breakpoint table and does not depend on the penalty.
"""

from __future__ import annotations

import math

from structura.defaults import (
    MAX_STRUCTURAL_PENALTY,
    RISK_CLASSIFICATION_THRESHOLDS,
    RISK_MULTIPLIERS,
)
from structura.models import RiskLevel, StructuralMetrics, StructuralPenaltyBreakdown

# --- Penalty rules: (allowance, weight) ---
_LARGEST_COMPONENT_ALLOWANCE = 10
_LARGEST_COMPONENT_WEIGHT = 2.0
_CYCLIC_ALLOWANCE = 5
_CYCLIC_WEIGHT = 3.0
_HUB_ALLOWANCE = 20
_HUB_WEIGHT = 1.0
_FAN_IN_ALLOWANCE = 10
_FAN_IN_LINEAR_WEIGHT = 0.5
_FAN_IN_MIN_BASELINE = 15
_FAN_IN_LOG_SCALE = 25.0
_CROSS_LAYER_ALLOWANCE = 50.0
_CROSS_LAYER_WEIGHT = 0.3
_OVERLAP_FACTOR = 0.5
_PRECISION = 1

# --- Risk tier breakpoints: (minimum value, points), checked in order ---
_RISK_COMPONENT_POINTS = [(10, 3), (5, 2), (2, 1)]
_RISK_CYCLIC_POINTS = [(20, 3), (10, 2), (5, 1)]
_RISK_HUB_POINTS = [(20, 2), (10, 1)]
_RISK_FAN_IN_POINTS = [(50, 2), (25, 1)]
_RISK_FAN_OUT_POINTS = [(20, 2), (10, 1)]


# ---------------------------------------------------------------------------
# Individual penalties
# ---------------------------------------------------------------------------

def largest_component_penalty(size: int) -> float:
    if size <= _LARGEST_COMPONENT_ALLOWANCE:
        return 0.0
    return (size - _LARGEST_COMPONENT_ALLOWANCE) * _LARGEST_COMPONENT_WEIGHT


def cyclic_functions_penalty(count: int) -> float:
    if count <= _CYCLIC_ALLOWANCE:
        return 0.0
    return (count - _CYCLIC_ALLOWANCE) * _CYCLIC_WEIGHT


def hub_functions_penalty(count: int) -> float:
    if count <= _HUB_ALLOWANCE:
        return 0.0
    return (count - _HUB_ALLOWANCE) * _HUB_WEIGHT


def fan_in_penalty(max_fan_in: int, hub_threshold: int | None = None) -> float:
    """Saturating fan-in penalty: linear up to a baseline, logarithmic beyond.

    Above the baseline the logarithmic value never drops below what the
    linear rule gives at the baseline, so the penalty stays non-decreasing.
    """
    if max_fan_in <= _FAN_IN_ALLOWANCE:
        return 0.0
    baseline = max(_FAN_IN_MIN_BASELINE, hub_threshold or _FAN_IN_ALLOWANCE)
    ratio = max_fan_in / baseline
    if ratio <= 1.0:
        return max(0.0, (max_fan_in - _FAN_IN_ALLOWANCE) * _FAN_IN_LINEAR_WEIGHT)
    at_baseline = (baseline - _FAN_IN_ALLOWANCE) * _FAN_IN_LINEAR_WEIGHT
    log_penalty = _FAN_IN_LOG_SCALE * math.log1p(ratio - 1)
    return round(max(at_baseline, log_penalty), _PRECISION)


def cross_layer_penalty(cross_layer_ratio: float | None) -> float:
    """Penalty for cross-layer calls above 50% of all calls (ratio in percent)."""
    if not cross_layer_ratio or cross_layer_ratio <= _CROSS_LAYER_ALLOWANCE:
        return 0.0
    return (cross_layer_ratio - _CROSS_LAYER_ALLOWANCE) * _CROSS_LAYER_WEIGHT


def overlap_adjustment(
    hub_ids: list[str],
    cyclic_ids: list[str],
    hub_penalty: float,
    cyclic_penalty: float,
) -> tuple[int, float]:
    """(overlap count, adjustment) for functions that are both hub and cyclic."""
    hub_set = set(hub_ids)
    overlap = sum(1 for fid in set(cyclic_ids) if fid in hub_set)
    if overlap == 0:
        return 0, 0.0
    ratio = overlap / max(len(hub_set), len(set(cyclic_ids)), 1)
    return overlap, min(hub_penalty, cyclic_penalty) * ratio * _OVERLAP_FACTOR


# ---------------------------------------------------------------------------
# Breakdown
# ---------------------------------------------------------------------------

def compute_penalty_breakdown(metrics: StructuralMetrics) -> StructuralPenaltyBreakdown:
    """Combine all structural signals into a bounded penalty."""
    cross_ratio = None
    if metrics.page_rank is not None and metrics.page_rank.layered is not None:
        cross_ratio = metrics.page_rank.layered.cross_layer_ratio

    largest = largest_component_penalty(metrics.largest_component_size)
    cyclic = cyclic_functions_penalty(metrics.cyclic_functions)
    hubs = hub_functions_penalty(metrics.hub_functions)
    fan_in = fan_in_penalty(metrics.max_fan_in, metrics.hub_threshold)
    cross = cross_layer_penalty(cross_ratio)

    overlap, adjustment = overlap_adjustment(
        metrics.hub_function_ids, metrics.cyclic_function_ids, hubs, cyclic)

    raw = largest + cyclic + hubs + fan_in + cross
    total = min(max(raw - adjustment, 0.0), MAX_STRUCTURAL_PENALTY)

    return StructuralPenaltyBreakdown(
        largest_component=round(largest, _PRECISION),
        cyclic_functions=round(cyclic, _PRECISION),
        hub_functions=round(hubs, _PRECISION),
        max_fan_in=round(fan_in, _PRECISION),
        cross_layer=round(cross, _PRECISION),
        raw_penalty=round(raw, _PRECISION),
        duplicate_adjustment=round(adjustment, _PRECISION),
        hub_cyclic_overlap=overlap,
        total_penalty=round(total, _PRECISION),
        risk_multiplier=risk_multiplier(metrics.structural_risk),
    )


# ---------------------------------------------------------------------------
# Risk tier
# ---------------------------------------------------------------------------

def _points(value: int, table: list[tuple[int, int]]) -> int:
    for minimum, points in table:
        if value >= minimum:
            return points
    return 0


def classify_structural_risk(
    largest_component_size: int,
    cyclic_count: int,
    hub_count: int,
    max_fan_in: int,
    max_fan_out: int,
) -> RiskLevel:
    """Risk tier from a weighted score over size, cycles, hubs and coupling."""
    score = (
        _points(largest_component_size, _RISK_COMPONENT_POINTS) +
        _points(cyclic_count, _RISK_CYCLIC_POINTS) +
        _points(hub_count, _RISK_HUB_POINTS) +
        _points(max_fan_in, _RISK_FAN_IN_POINTS) +
        _points(max_fan_out, _RISK_FAN_OUT_POINTS)
    )
    t = RISK_CLASSIFICATION_THRESHOLDS
    if score >= t["critical"]:
        return RiskLevel.CRITICAL
    if score >= t["high"]:
        return RiskLevel.HIGH
    if score >= t["medium"]:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_multiplier(level: RiskLevel | str | None) -> float:
    """Downstream health-index multiplier for a risk tier (not applied here)."""
    if level is None:
        return RISK_MULTIPLIERS["low"]
    return RISK_MULTIPLIERS[RiskLevel(level).value]
