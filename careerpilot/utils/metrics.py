"""
In-process metrics for CareerPilot.

Counters (app events, AI successes/errors/retries, rate-limit rejections)
and rolling duration samples, summarized as percentiles on /metrics.
Values are per worker process and reset on restart.
"""

import time
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from typing import Any, Deque, Dict, List

from careerpilot.utils.logger import get_logger

logger = get_logger()

SAMPLE_WINDOW = 500
PERCENTILES = (50, 95, 99)

_counters: Dict[str, int] = defaultdict(int)
_samples: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=SAMPLE_WINDOW))


def inc(name: str, value: int = 1) -> None:
    _counters[name] += value


def observe(name: str, value: float) -> None:
    """Add a sample (typically a duration in ms); only the newest SAMPLE_WINDOW are kept."""
    _samples[name].append(value)


def get_counter(name: str) -> int:
    return _counters.get(name, 0)


def _percentile(ordered: List[float], pct: int) -> float:
    index = min(int(len(ordered) * pct / 100), len(ordered) - 1)
    return ordered[index]


def summarize(values) -> Dict[str, Any]:
    ordered = sorted(values)
    summary: Dict[str, Any] = {"count": len(ordered)}
    for pct in PERCENTILES:
        summary[f"p{pct}"] = round(_percentile(ordered, pct), 1)
    summary["max"] = round(ordered[-1], 1)
    return summary


@asynccontextmanager
async def track_duration(service: str, operation: str = "call"):
    """
    Time the wrapped block and count it under `<service>.<operation>.success`
    or `.error`. Exceptions propagate unchanged.

        async with track_duration("ai", "generate_object"):
            ...
    """
    started = time.monotonic()
    status = "error"
    try:
        yield
        status = "success"
    finally:
        elapsed_ms = (time.monotonic() - started) * 1000
        observe(f"{service}.{operation}.duration_ms", elapsed_ms)
        inc(f"{service}.{operation}.{status}")
        log = logger.info if status == "success" else logger.warning
        log(
            "metrics.call",
            extra={
                "service": service,
                "operation": operation,
                "duration_ms": round(elapsed_ms, 1),
                "status": status,
            },
        )


def get_snapshot() -> Dict[str, Any]:
    return {
        "counters": dict(_counters),
        "histograms": {name: summarize(values) for name, values in _samples.items() if values},
    }


def reset() -> None:
    _counters.clear()
    _samples.clear()
