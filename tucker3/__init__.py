"""
Tucker3 (higher-order SVD) decomposition of 3-way arrays.

This package factors an I1 x I2 x I3 tensor into a J1 x J2 x J3 core and
three orthonormal basis matrices, reconstructs tensors from such factors,
and derives new factorizations (lower rank, lower resolution, regions of
interest) directly from the factors.

Features:
---------
- Mode-1/2/3 matricization, folding and n-mode products
- HOSVD by SVD of each unfolding or by n-mode PCA (covariance eigenvectors)
- Core projection and reconstruction with NumPy or Numba engines
- Rank reduction, stride/averaged subsampling and region-of-interest
  extraction without re-running the SVD

Typical usage:
--------------
    from tucker3 import Tucker3Tensor

    model = Tucker3Tensor.from_data(volume, ranks=(16, 16, 16))
    approx = model.reconstruction()

    # Half-resolution preview from the same factorization
    preview = model.subsampling_on_average(factor=2).reconstruction()

    # Cheaper model with fewer basis vectors
    small = model.progressive_rank_reduction((8, 8, 8))
"""

from tucker3.engines import (
    DirectNumbaEngine,
    SequentialNumpyEngine,
    Tucker3Engine,
    get_engine,
)
from tucker3.exceptions import DecompositionFailure, PreconditionViolation, Tucker3Error
from tucker3.hosvd import HOSVDConfig, hosvd, hosvd_on_eigs
from tucker3.matricization import (
    fold,
    frontal_matricization,
    horizontal_matricization,
    lateral_matricization,
    mode_product,
    unfold,
)
from tucker3.operators import (
    progressive_rank_reduction,
    region_of_interest,
    subsampling,
    subsampling_on_average,
)
from tucker3.tucker3_tensor import (
    Tucker3Tensor,
    decomposition,
    derive_core,
    reconstruction,
)

__version__ = "0.1.0"

__all__ = [
    # Core types
    "Tucker3Tensor",
    "HOSVDConfig",
    # Errors
    "Tucker3Error",
    "PreconditionViolation",
    "DecompositionFailure",
    # Matricization
    "unfold",
    "fold",
    "lateral_matricization",
    "frontal_matricization",
    "horizontal_matricization",
    "mode_product",
    # Decomposition / reconstruction
    "hosvd",
    "hosvd_on_eigs",
    "derive_core",
    "decomposition",
    "reconstruction",
    # Engines
    "Tucker3Engine",
    "SequentialNumpyEngine",
    "DirectNumbaEngine",
    "get_engine",
    # Rank and resolution operators
    "progressive_rank_reduction",
    "subsampling",
    "subsampling_on_average",
    "region_of_interest",
]
