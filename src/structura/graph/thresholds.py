"""Data-dependent thresholds: hub detection and centrality tiers."""

from __future__ import annotations

import math

from structura.defaults import (
    HUB_AVG_MULTIPLIER,
    HUB_PERCENTILE,
    HUB_SIZE_FLOORS,
    HUB_THRESHOLD_CAP,
    HUB_THRESHOLD_DEFAULT,
)

# --- Centrality threshold shaping ---
_CT_HIGH_BASE = 0.9
_CT_CRITICAL_BASE = 0.95
_CT_GINI_UNEQUAL = 0.8
_CT_GINI_EQUAL = 0.6
_CT_SMALL_PROJECT = 100
_CT_LARGE_PROJECT = 1000


def hub_threshold(fan_ins: list[int]) -> int:
    """Minimum fan-in for a function to count as a hub.

    Maximum of an average-based bar, the 90th-percentile fan-in and a
    project-size floor, capped so that giant projects still report hubs.
    """
    if not fan_ins:
        return HUB_THRESHOLD_DEFAULT

    n = len(fan_ins)
    avg = sum(fan_ins) / n
    avg_based = max(HUB_THRESHOLD_DEFAULT, math.floor(avg * HUB_AVG_MULTIPLIER))

    ordered = sorted(fan_ins)
    p90 = ordered[min(n - 1, math.floor(n * HUB_PERCENTILE))]

    size_floor = HUB_THRESHOLD_DEFAULT
    for min_size, floor in HUB_SIZE_FLOORS:
        if n > min_size:
            size_floor = floor
            break

    return min(max(avg_based, p90, size_floor), HUB_THRESHOLD_CAP)


def centrality_thresholds(gini: float | None, total_functions: int) -> tuple[float, float]:
    """(high, critical) percentile thresholds for centrality tagging.

    More unequal distributions lower the bar, flatter ones raise it; small
    projects are treated more leniently and large ones more selectively.
    """
    if gini is None or total_functions == 0:
        return _CT_HIGH_BASE, _CT_CRITICAL_BASE

    if gini > _CT_GINI_UNEQUAL:
        high = max(0.8, _CT_CRITICAL_BASE - (gini - _CT_GINI_UNEQUAL) * 0.5)
        critical = max(0.85, high + 0.05)
    elif gini > _CT_GINI_EQUAL:
        high, critical = _CT_HIGH_BASE, _CT_CRITICAL_BASE
    else:
        high = min(0.95, _CT_HIGH_BASE + (_CT_GINI_EQUAL - gini) * 0.25)
        critical = min(0.98, high + 0.03)

    if total_functions < _CT_SMALL_PROJECT:
        high = max(0.75, high - 0.1)
        critical = max(0.8, critical - 0.1)
    elif total_functions > _CT_LARGE_PROJECT:
        high = min(0.95, high + 0.05)
        critical = min(0.99, critical + 0.04)

    return high, critical
