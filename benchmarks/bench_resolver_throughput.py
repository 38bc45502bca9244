"""Benchmark: PermissionResolver throughput, decisions per second.

Measures how many PermissionResolver.decide() calls complete per second
against a realistic grant list mixing exact, wildcard, conditional and deny
grants.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_gatekeeper.permissions.conditions import Condition
from aumos_gatekeeper.permissions.resolver import (
    ConditionalGrant,
    Effect,
    PermissionResolver,
)

_ITERATIONS: int = 20_000


def _make_grants() -> list[ConditionalGrant]:
    """Build a grant list shaped like a mid-sized role/group hierarchy."""
    grants = [ConditionalGrant(f"service{i}.resource.read") for i in range(40)]
    grants.append(ConditionalGrant("code.*"))
    grants.append(ConditionalGrant("engineering.*.view"))
    grants.append(
        ConditionalGrant(
            "reports.view",
            (
                Condition("attributes.department", "equals", "engineering"),
                Condition("attributes.level", "in", ["senior", "staff"]),
            ),
        )
    )
    grants.append(ConditionalGrant("billing.*", effect=Effect.DENY))
    return grants


def bench_resolver_throughput() -> dict[str, object]:
    """Benchmark PermissionResolver.decide() throughput.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    resolver = PermissionResolver()
    grants = _make_grants()
    context = {"attributes": {"department": "engineering", "level": "senior"}}

    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        resolver.decide("reports.view", grants, context)
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "resolver_decide_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
        "p99_latency_ms": 0.0,
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_resolver_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_resolver_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "resolver_throughput_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
