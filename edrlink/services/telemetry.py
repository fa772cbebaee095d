from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque


@dataclass(frozen=True)
class RequestSample:
    ts: float
    path: str
    status_code: int
    latency_ms: float


@dataclass(frozen=True)
class ExternalCallSample:
    ts: float
    integration: str
    latency_ms: float
    success: bool


_request_samples: Deque[RequestSample] = deque(maxlen=20000)
_external_samples: Deque[ExternalCallSample] = deque(maxlen=10000)


def record_request(*, path: str, status_code: int, latency_ms: float) -> None:
    # Track request latency and status for the health summary.
    _request_samples.append(
        RequestSample(
            ts=time.time(),
            path=path,
            status_code=status_code,
            latency_ms=latency_ms,
        )
    )


def record_external_call(*, integration: str, latency_ms: float, success: bool) -> None:
    # Capture vendor call latency and outcomes.
    _external_samples.append(
        ExternalCallSample(
            ts=time.time(),
            integration=integration,
            latency_ms=latency_ms,
            success=success,
        )
    )


def availability(window_s: int) -> float | None:
    # Calculate availability as % of non-5xx requests over the window.
    cutoff = time.time() - window_s
    samples = [sample for sample in _request_samples if sample.ts >= cutoff]
    if not samples:
        return None
    total = len(samples)
    failures = sum(1 for sample in samples if sample.status_code >= 500)
    return ((total - failures) / total) * 100.0


def external_call_summary(window_s: int) -> dict[str, dict[str, float | int | None]]:
    # Aggregate vendor latency and failure counts per integration in the window.
    cutoff = time.time() - window_s
    latencies: dict[str, list[float]] = defaultdict(list)
    failures: dict[str, int] = defaultdict(int)
    for sample in _external_samples:
        if sample.ts < cutoff:
            continue
        latencies[sample.integration].append(sample.latency_ms)
        if not sample.success:
            failures[sample.integration] += 1
    result: dict[str, dict[str, float | int | None]] = {}
    for integration, values in latencies.items():
        values.sort()
        p95_idx = max(0, math.ceil(0.95 * len(values)) - 1)
        result[integration] = {
            "calls": len(values),
            "failures": failures[integration],
            "p95_ms": values[p95_idx],
            "max_ms": values[-1],
        }
    return result


def reset_telemetry() -> None:
    # Clear samples for deterministic tests.
    _request_samples.clear()
    _external_samples.clear()
