"""Benchmark leaf-index prediction: per-instance walk vs compiled batch."""

import io
import time
from typing import Any

import numpy as np

from gbtree_leaf import Node, Tree, load_model, save_model


def build_random_tree(rng: np.random.Generator, n_features: int, max_depth: int) -> Tree:
    """Build a complete random tree of the given depth in breadth-first order."""
    n_internal = 2**max_depth - 1
    n_nodes = 2 ** (max_depth + 1) - 1
    nodes = []
    for pid in range(n_nodes):
        parent = (pid - 1) // 2 if pid else -1
        if pid < n_internal:
            nodes.append(
                Node.split(
                    int(rng.integers(n_features)),
                    float(rng.normal()),
                    2 * pid + 1,
                    2 * pid + 2,
                    default_left=bool(rng.integers(2)),
                    parent=parent,
                )
            )
        else:
            nodes.append(Node.leaf(float(rng.normal()), parent=parent))
    return Tree(nodes)


def benchmark(
    n_samples: int, n_features: int, n_trees: int, max_depth: int
) -> dict[str, Any]:
    """Time loading and both prediction paths on synthetic data."""
    print(f"\n{'=' * 60}")
    print(
        f"{n_samples:,} samples, {n_features} features, "
        f"{n_trees} trees of depth {max_depth}"
    )
    print("=" * 60)

    rng = np.random.default_rng(42)
    trees = [build_random_tree(rng, n_features, max_depth) for _ in range(n_trees)]

    buffer = io.BytesIO()
    save_model(trees, buffer, num_feature=n_features)

    start = time.perf_counter()
    ensemble = load_model(buffer.getvalue())
    load_time = time.perf_counter() - start
    print(f"Load:        {load_time:.3f}s ({len(buffer.getvalue()):,} bytes)")

    X = rng.normal(size=(n_samples, n_features)).astype(np.float32)
    X[rng.random(X.shape) < 0.2] = np.nan
    rows = [
        {j: float(v) for j, v in enumerate(row) if not np.isnan(v)} for row in X
    ]

    start = time.perf_counter()
    sparse = [ensemble.predict(row) for row in rows]
    sparse_time = time.perf_counter() - start
    print(f"Per-row:     {sparse_time:.3f}s")

    # Warm-up compiles the kernel
    ensemble.predict_leaf_batch(X[:1])

    start = time.perf_counter()
    batch = ensemble.predict_leaf_batch(X)
    batch_time = time.perf_counter() - start
    print(f"Batch:       {batch_time:.3f}s")

    assert batch.tolist() == sparse
    speedup = sparse_time / batch_time
    print(f"Speedup:     {speedup:.2f}x")

    return {
        "n_samples": n_samples,
        "n_trees": n_trees,
        "load_time": load_time,
        "sparse_time": sparse_time,
        "batch_time": batch_time,
        "speedup": speedup,
    }


def main() -> None:
    """Run benchmarks over a few model sizes."""
    configs = [
        (1_000, 20, 100, 6),
        (10_000, 50, 200, 6),
        (10_000, 100, 500, 8),
    ]

    all_results = [benchmark(*config) for config in configs]

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"{'Samples':>10} {'Trees':>8} {'Per-row':>10} {'Batch':>10} {'Speedup':>10}")
    print("-" * 60)
    for r in all_results:
        print(
            f"{r['n_samples']:>10,} {r['n_trees']:>8} {r['sparse_time']:>9.3f}s "
            f"{r['batch_time']:>9.3f}s {r['speedup']:>9.2f}x"
        )


if __name__ == "__main__":
    main()
