"""Observability: structured JSON logging and Prometheus-text counters.

No external dependency.  Counters are process-local and reset with
``reset_metrics`` (used by the test suite between tests).
"""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from typing import Any

# extra= fields the analyzer, cache and layer logs attach for per-snapshot tracing
_EXTRA_KEYS = ("snapshot_id", "duration_ms", "functions", "edges", "layer")


# ---------------------------------------------------------------------------
# Structured JSON logging
# ---------------------------------------------------------------------------

class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_dict[key] = val
        return json.dumps(log_dict, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger with JSON output."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


# ---------------------------------------------------------------------------
# Prometheus-compatible metrics
# ---------------------------------------------------------------------------

_lock = threading.Lock()
_analysis_count: dict[str, int] = defaultdict(int)   # outcome -> count
_analysis_duration_sum = 0.0
_analysis_duration_count = 0
_cache_hits = 0
_cache_misses = 0


def record_analysis(outcome: str, duration: float) -> None:
    """Count one analysis run; outcome is ``full``, ``simplified`` or ``failed``."""
    global _analysis_duration_sum, _analysis_duration_count
    with _lock:
        _analysis_count[outcome] += 1
        _analysis_duration_sum += duration
        _analysis_duration_count += 1


def record_cache_hit() -> None:
    global _cache_hits
    with _lock:
        _cache_hits += 1


def record_cache_miss() -> None:
    global _cache_misses
    with _lock:
        _cache_misses += 1


def generate_metrics() -> str:
    """Render metrics in Prometheus text exposition format."""
    lines: list[str] = []
    with _lock:
        lines.append("# HELP structura_analyses_total Structural analyses by outcome.")
        lines.append("# TYPE structura_analyses_total counter")
        for outcome, count in sorted(_analysis_count.items()):
            lines.append(f'structura_analyses_total{{outcome="{outcome}"}} {count}')

        lines.append("# HELP structura_analysis_duration_seconds Total analysis wall time.")
        lines.append("# TYPE structura_analysis_duration_seconds summary")
        lines.append(f"structura_analysis_duration_seconds_sum {_analysis_duration_sum:.6f}")
        lines.append(f"structura_analysis_duration_seconds_count {_analysis_duration_count}")

        lines.append("# HELP structura_cache_hits_total Structural cache hits.")
        lines.append("# TYPE structura_cache_hits_total counter")
        lines.append(f"structura_cache_hits_total {_cache_hits}")
        lines.append("# HELP structura_cache_misses_total Structural cache misses.")
        lines.append("# TYPE structura_cache_misses_total counter")
        lines.append(f"structura_cache_misses_total {_cache_misses}")

    return "\n".join(lines) + "\n"


def reset_metrics() -> None:
    global _analysis_duration_sum, _analysis_duration_count, _cache_hits, _cache_misses
    with _lock:
        _analysis_count.clear()
        _analysis_duration_sum = 0.0
        _analysis_duration_count = 0
        _cache_hits = 0
        _cache_misses = 0
