"""
Benchmark for Tucker3 decomposition and reconstruction.

Measures:
- Decomposition time vs. tensor size (SVD vs. eigen path)
- Projection / reconstruction time, sequential vs. direct engine
- Reconstruction error vs. latent rank

Usage:
    python benchmarks/benchmark_decomposition.py
"""

import time

import numpy as np

from tucker3 import HOSVDConfig, Tucker3Tensor, derive_core, hosvd, reconstruction


def benchmark_size_scaling() -> None:
    """Benchmark decomposition time vs. tensor size."""
    print("=" * 70)
    print("BENCHMARK 1: Decomposition Time vs. Tensor Size")
    print("=" * 70)
    print(f"{'Shape':>18} {'Ranks':>15} {'SVD (s)':>12} {'EIG (s)':>12}")
    print("-" * 70)

    for n in (16, 32, 64, 96):
        X = np.random.randn(n, n, n)
        ranks = (n // 4,) * 3

        timings = []
        for method in ("svd", "eig"):
            start = time.perf_counter()
            Tucker3Tensor.from_data(X, ranks, HOSVDConfig(method=method))
            timings.append(time.perf_counter() - start)

        print(f"{str(X.shape):>18} {str(ranks):>15} {timings[0]:>12.4f} {timings[1]:>12.4f}")


def benchmark_engines() -> None:
    """Benchmark projection and reconstruction engines."""
    print("\n" + "=" * 70)
    print("BENCHMARK 2: Sequential vs. Direct Engine")
    print("=" * 70)
    print(f"{'Shape':>15} {'Engine':>12} {'Project (s)':>14} {'Expand (s)':>14}")
    print("-" * 70)

    for n in (8, 12, 16):
        X = np.random.randn(n, n, n)
        bases = hosvd(X, (n // 2,) * 3)

        for engine in ("sequential", "direct"):
            # First call compiles the direct kernels
            core = derive_core(X, *bases, engine=engine)
            reconstruction(core, *bases, engine=engine)

            start = time.perf_counter()
            core = derive_core(X, *bases, engine=engine)
            t_project = time.perf_counter() - start

            start = time.perf_counter()
            reconstruction(core, *bases, engine=engine)
            t_expand = time.perf_counter() - start

            print(f"{str(X.shape):>15} {engine:>12} {t_project:>14.5f} {t_expand:>14.5f}")


def benchmark_rank_error() -> None:
    """Reconstruction error vs. latent rank for a smooth tensor."""
    print("\n" + "=" * 70)
    print("BENCHMARK 3: Relative Error vs. Latent Rank")
    print("=" * 70)

    n = 40
    grid = np.linspace(0.0, 1.0, n)
    a, b, c = np.meshgrid(grid, grid, grid, indexing="ij")
    X = np.sin(4 * a * b) + np.cos(3 * b * c) + 0.01 * np.random.randn(n, n, n)

    model = Tucker3Tensor.from_data(X)
    print(f"{'Rank':>6} {'Params':>10} {'Ratio':>8} {'Rel. error':>12}")
    print("-" * 40)
    for r in (1, 2, 4, 8, 16, 32):
        reduced = model.progressive_rank_reduction(r)
        print(
            f"{r:>6} {reduced.n_parameters:>10} {reduced.compression_ratio:>8.1f} "
            f"{reduced.relative_error(X):>12.4e}"
        )


if __name__ == "__main__":
    benchmark_size_scaling()
    benchmark_engines()
    benchmark_rank_error()
