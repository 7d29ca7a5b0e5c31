"""
Rank and resolution operators on Tucker3 models.

All operators work on the stored factors only; none re-runs the SVD or
materializes the full tensor. Each returns a new Tucker3Tensor built from
copies, leaving the source model untouched.

- progressive_rank_reduction: (K1, K2, K3) -> (J1, J2, J3) latent ranks,
  ambient extents unchanged. Keeps the leading basis columns and the
  leading core sub-box. With HOSVD bases this equals a direct rank-J
  decomposition of the same data, because truncated HOSVD bases are
  prefixes of the full ones.
- subsampling: ambient extents K_n -> ceil(K_n / factor), latent ranks
  unchanged. Keeps basis rows 0, factor, 2*factor, ...
- subsampling_on_average: as subsampling, each kept row is the mean of
  the (up to) factor rows starting at the sampled index.
- region_of_interest: ambient extents K_n -> end_n - start_n. Keeps basis
  rows [start_n, end_n).

Rows of a basis matrix index physical sample positions along its mode, so
the resolution operators give multi-resolution and windowed access to one
learned factorization.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from tucker3.exceptions import PreconditionViolation
from tucker3.tucker3_tensor import Tucker3Tensor
from tucker3.utils.shapes import (
    RankLike,
    canonicalize_ranks,
    validate_factor,
    validate_region,
)


def _subsampled_extents(
    other: Tucker3Tensor, factor: int, shape: Optional[Sequence[int]]
) -> tuple[int, int, int]:
    extents = tuple(-(-k // factor) for k in other.shape)

    if shape is not None:
        shape = tuple(shape)
        if len(shape) != 3:
            raise PreconditionViolation(f"shape must have 3 extents, got {shape}")
        for n, (requested, extent, source) in enumerate(zip(shape, extents, other.shape), start=1):
            if requested > source:
                raise PreconditionViolation(
                    f"Mode {n}: destination extent {requested} exceeds source extent {source}"
                )
            if requested != extent:
                raise PreconditionViolation(
                    f"Mode {n}: subsampling {source} rows by factor {factor} gives "
                    f"{extent} rows, not {requested}"
                )

    return extents


def _average_rows(u: np.ndarray, factor: int) -> np.ndarray:
    """Mean of each run of factor consecutive rows; the last run may be short."""
    K = u.shape[0]
    starts = np.arange(0, K, factor)
    sums = np.add.reduceat(u.astype(np.float64), starts, axis=0)
    counts = np.minimum(factor, K - starts)
    return (sums / counts[:, np.newaxis]).astype(u.dtype)


def progressive_rank_reduction(other: Tucker3Tensor, ranks: RankLike) -> Tucker3Tensor:
    """
    Reduce the latent ranks of a model.

    Parameters
    ----------
    other : Tucker3Tensor
        Source model with ranks (K1, K2, K3)
    ranks : int or sequence of 3 ints
        Target ranks (J1, J2, J3), J_n <= K_n

    Returns
    -------
    model : Tucker3Tensor
        Ranks (J1, J2, J3), same ambient shape as other

    Raises
    ------
    PreconditionViolation
        If any J_n exceeds K_n or is < 1

    Examples
    --------
    >>> model = Tucker3Tensor.from_data(np.random.randn(6, 6, 6), ranks=5)
    >>> progressive_rank_reduction(model, (3, 2, 4)).ranks
    (3, 2, 4)
    """
    J1, J2, J3 = canonicalize_ranks(ranks)

    for n, (j, k) in enumerate(zip((J1, J2, J3), other.ranks), start=1):
        if j > k:
            raise PreconditionViolation(
                f"Target rank J{n}={j} exceeds source rank K{n}={k}"
            )

    return Tucker3Tensor(
        core=other.core[:J1, :J2, :J3],
        u1=other.u1[:, :J1],
        u2=other.u2[:, :J2],
        u3=other.u3[:, :J3],
    )


def subsampling(
    other: Tucker3Tensor, factor: int, shape: Optional[Sequence[int]] = None
) -> Tucker3Tensor:
    """
    Subsample the ambient resolution by picking every factor-th basis row.

    Parameters
    ----------
    other : Tucker3Tensor
        Source model with ambient shape (K1, K2, K3)
    factor : int
        Integer stride >= 1
    shape : sequence of 3 ints, optional
        Expected destination extents; checked per mode against
        ceil(K_n / factor)

    Returns
    -------
    model : Tucker3Tensor
        Ambient shape (ceil(K1/f), ceil(K2/f), ceil(K3/f)), same core

    Examples
    --------
    >>> model = Tucker3Tensor.from_data(np.random.randn(8, 7, 6), ranks=3)
    >>> subsampling(model, 2).shape
    (4, 4, 3)
    """
    factor = validate_factor(factor)
    _subsampled_extents(other, factor, shape)

    return Tucker3Tensor(
        core=other.core,
        u1=other.u1[::factor],
        u2=other.u2[::factor],
        u3=other.u3[::factor],
    )


def subsampling_on_average(
    other: Tucker3Tensor, factor: int, shape: Optional[Sequence[int]] = None
) -> Tucker3Tensor:
    """
    Subsample the ambient resolution by averaging runs of basis rows.

    Destination row i of every basis is the arithmetic mean of source rows
    [i*factor, min((i+1)*factor, K_n)).

    Parameters
    ----------
    other : Tucker3Tensor
        Source model with ambient shape (K1, K2, K3)
    factor : int
        Integer stride >= 1
    shape : sequence of 3 ints, optional
        Expected destination extents; checked per mode against
        ceil(K_n / factor)

    Returns
    -------
    model : Tucker3Tensor
        Ambient shape (ceil(K1/f), ceil(K2/f), ceil(K3/f)), same core
    """
    factor = validate_factor(factor)
    _subsampled_extents(other, factor, shape)

    return Tucker3Tensor(
        core=other.core,
        u1=_average_rows(other.u1, factor),
        u2=_average_rows(other.u2, factor),
        u3=_average_rows(other.u3, factor),
    )


def region_of_interest(
    other: Tucker3Tensor,
    range1: Sequence[int],
    range2: Sequence[int],
    range3: Sequence[int],
) -> Tucker3Tensor:
    """
    Restrict a model to a box of ambient indices.

    Parameters
    ----------
    other : Tucker3Tensor
        Source model with ambient shape (K1, K2, K3)
    range1, range2, range3 : (start, end)
        Half-open row ranges, 0 <= start_n < end_n <= K_n

    Returns
    -------
    model : Tucker3Tensor
        Ambient shape (end1-start1, end2-start2, end3-start3), same core

    Raises
    ------
    PreconditionViolation
        If any range is empty, reversed, or out of bounds

    Examples
    --------
    >>> model = Tucker3Tensor.from_data(np.random.randn(8, 8, 8), ranks=4)
    >>> region_of_interest(model, (0, 4), (2, 8), (1, 2)).shape
    (4, 6, 1)
    """
    (s1, e1), (s2, e2), (s3, e3) = validate_region((range1, range2, range3), other.shape)

    return Tucker3Tensor(
        core=other.core,
        u1=other.u1[s1:e1],
        u2=other.u2[s2:e2],
        u3=other.u3[s3:e3],
    )
