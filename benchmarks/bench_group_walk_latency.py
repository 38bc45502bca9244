"""Benchmark: effective-grant aggregation latency over nested groups, p99.

Builds a subject that belongs to several group chains (including a cycle)
and measures Gatekeeper.has_permission() per call with caching disabled, so
every call walks the full hierarchy through the storage connector.
"""
from __future__ import annotations

import asyncio
import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_gatekeeper.gatekeeper import Gatekeeper
from aumos_gatekeeper.models import Group, GroupRef, Role
from aumos_gatekeeper.permissions.resolver import ConditionalGrant
from aumos_gatekeeper.storage.memory import InMemoryStorage

_ITERATIONS: int = 500
_WARMUP: int = 20
_CHAINS: int = 5
_CHAIN_DEPTH: int = 8


async def _build_gatekeeper() -> Gatekeeper:
    storage = InMemoryStorage()
    await storage.create_role(
        Role(id="engineer", name="Engineer", permissions=[ConditionalGrant("code.*")])
    )
    for chain in range(_CHAINS):
        for level in range(_CHAIN_DEPTH):
            group_id = f"c{chain}-g{level}"
            child = f"c{chain}-g{level + 1}" if level + 1 < _CHAIN_DEPTH else f"c{chain}-g0"
            await storage.create_group(
                Group(
                    id=group_id,
                    name=group_id,
                    members=[GroupRef(child)],
                    permissions=[ConditionalGrant(f"chain{chain}.level{level}.*")],
                )
            )

    gatekeeper = Gatekeeper(storage)
    await gatekeeper.assign_role("alice", "engineer")
    for chain in range(_CHAINS):
        await gatekeeper.add_user_to_group("alice", f"c{chain}-g0")
    return gatekeeper


async def _measure() -> list[float]:
    gatekeeper = await _build_gatekeeper()
    permission = f"chain{_CHAINS - 1}.level{_CHAIN_DEPTH - 1}.read"

    for _ in range(_WARMUP):
        await gatekeeper.has_permission("alice", permission)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        await gatekeeper.has_permission("alice", permission)
        latencies_ms.append((time.perf_counter() - t0) * 1000)
    return latencies_ms


def bench_group_walk_latency() -> dict[str, object]:
    """Benchmark uncached has_permission() latency over nested groups.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    latencies_ms = asyncio.run(_measure())

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "group_walk_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_group_walk_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_group_walk_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "group_walk_latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
