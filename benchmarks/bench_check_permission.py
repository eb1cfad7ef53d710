"""Benchmark: Gatekeeper.check_permission latency and throughput.

Cycles through one request per action kind so every rule set is exercised,
including the audit-history lookup for email recipients.  Rate limits are
raised above the iteration count so no call is rejected.
"""
from __future__ import annotations

import json
import statistics
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from automator_gatekeeper.gatekeeper import Gatekeeper
from automator_gatekeeper.limits.rate_limiter import RateLimiter

_ITERATIONS: int = 1_000
_WARMUP: int = 50

_REQUESTS: list[tuple[str, dict[str, object]]] = [
    ("send_email", {"to": "team@example.com", "subject": "status"}),
    ("file_operation", {"path": "/etc/hosts", "operation": "read"}),
    ("run_application", {"application": "Safari"}),
    ("execute_script", {"script": "echo hello && ls -la"}),
]


def bench_check_permission_latency() -> dict[str, object]:
    """Benchmark Gatekeeper.check_permission() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    ceiling = (_ITERATIONS + _WARMUP) * len(_REQUESTS)
    limiter = RateLimiter(limits={kind: ceiling for kind, _ in _REQUESTS})
    gatekeeper = Gatekeeper(rate_limiter=limiter)
    gatekeeper.store.set("email", gatekeeper.store.get("email").model_copy(update={"max_per_day": ceiling}))

    for i in range(_WARMUP):
        kind, details = _REQUESTS[i % len(_REQUESTS)]
        gatekeeper.check_permission(kind, details)

    latencies_ms: list[float] = []
    for i in range(_ITERATIONS):
        kind, details = _REQUESTS[i % len(_REQUESTS)]
        t0 = time.perf_counter()
        gatekeeper.check_permission(kind, details)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    total_seconds = sum(latencies_ms) / 1000
    sorted_latencies = sorted(latencies_ms)
    p99_index = max(0, int(len(sorted_latencies) * 0.99) - 1)

    result: dict[str, object] = {
        "operation": "check_permission_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total_seconds, 4),
        "ops_per_second": round(_ITERATIONS / total_seconds, 1),
        "avg_latency_ms": round(statistics.mean(latencies_ms), 4),
        "p99_latency_ms": round(sorted_latencies[p99_index], 4),
    }
    print(
        f"[bench_check_permission] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms  p99 {result['p99_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_check_permission_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "check_permission_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
