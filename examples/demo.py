"""
Tucker3 demo: compress a synthetic volume, then browse it at lower
resolution and through a region of interest without re-running the SVD.

Usage:
    python examples/demo.py
"""

import numpy as np
import matplotlib.pyplot as plt

from tucker3 import Tucker3Tensor

# Synthetic 48^3 volume: two Gaussian blobs plus noise
n = 48
grid = np.linspace(-1.0, 1.0, n)
x, y, z = np.meshgrid(grid, grid, grid, indexing="ij")
volume = np.exp(-((x - 0.3) ** 2 + y**2 + z**2) / 0.05)
volume += 0.5 * np.exp(-((x + 0.4) ** 2 + (y - 0.3) ** 2 + (z + 0.2) ** 2) / 0.02)
volume += 0.01 * np.random.randn(n, n, n)

# Full-rank factorization once, then truncate progressively
model = Tucker3Tensor.from_data(volume, ranks=(16, 16, 16))
print(model, f"compression ratio {model.compression_ratio:.1f}")

ranks = [1, 2, 4, 8, 12, 16]
errors = []
for r in ranks:
    reduced = model.progressive_rank_reduction((r, r, r))
    errors.append(reduced.relative_error(volume))
    print(f"rank {r:2d}: relative error {errors[-1]:.4e}")

# Multi-resolution access from the same factors
preview = model.subsampling_on_average(factor=4).reconstruction()
zoom = model.region_of_interest((8, 32), (12, 36), (20, 28)).reconstruction()
print(f"preview {preview.shape}, zoom {zoom.shape}")

fig, axes = plt.subplots(1, 4, figsize=(16, 4))
axes[0].semilogy(ranks, errors, "o-")
axes[0].set_xlabel("rank (J1 = J2 = J3)")
axes[0].set_ylabel("relative error")
axes[0].set_title("Progressive rank reduction")
axes[1].imshow(volume[:, :, n // 2], cmap="viridis")
axes[1].set_title("Original slice")
axes[2].imshow(preview[:, :, preview.shape[2] // 2], cmap="viridis")
axes[2].set_title("Averaged subsampling x4")
axes[3].imshow(zoom[:, :, zoom.shape[2] // 2], cmap="viridis")
axes[3].set_title("Region of interest")
plt.tight_layout()
plt.savefig("tucker3_demo.png", dpi=120)
print("Saved tucker3_demo.png")
