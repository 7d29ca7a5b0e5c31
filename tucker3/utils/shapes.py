"""
Shape validation and canonicalization for Tucker3 decompositions.

Tensor Conventions
------------------
Data tensor:
    - shape (I1, I2, I3), real valued, finite
    - float32 and float64 inputs keep their dtype; every other numeric
      dtype (int, bool, float16) is promoted to float64

Latent ranks:
    - (J1, J2, J3) with 1 <= J_n <= I_n
    - a single int is broadcast to all three modes

Factors:
    - core (J1, J2, J3)
    - u1 (I1, J1), u2 (I2, J2), u3 (I3, J3)

This module provides utilities to:
1. Canonicalize input tensors (copy, dtype, finiteness)
2. Canonicalize rank triples
3. Validate core/basis compatibility
4. Validate subsampling factors and region-of-interest ranges
"""

from __future__ import annotations

import numbers
from typing import Optional, Sequence, Union

import numpy as np

from tucker3.exceptions import PreconditionViolation

RankLike = Union[int, Sequence[int]]


def storage_dtype(x: np.ndarray) -> np.dtype:
    """
    Scalar type used to store factors computed from x.

    Examples
    --------
    >>> storage_dtype(np.zeros(3, dtype=np.float32))
    dtype('float32')
    >>> storage_dtype(np.arange(3))
    dtype('float64')
    """
    if x.dtype in (np.float32, np.float64):
        return x.dtype
    return np.dtype(np.float64)


def canonicalize_tensor3(data) -> np.ndarray:
    """
    Validate and copy a 3-way data array.

    Parameters
    ----------
    data : array_like
        Data tensor, shape (I1, I2, I3)

    Returns
    -------
    tensor : np.ndarray
        Independent copy, shape (I1, I2, I3), float32 or float64

    Raises
    ------
    PreconditionViolation
        If data is not 3D, is empty, is complex, or contains NaN/Inf

    Examples
    --------
    >>> t = canonicalize_tensor3(np.arange(24).reshape(2, 3, 4))
    >>> t.shape, t.dtype
    ((2, 3, 4), dtype('float64'))
    """
    x = np.asarray(data)

    if x.ndim != 3:
        raise PreconditionViolation(
            f"Data tensor must be 3D (I1, I2, I3), got shape {x.shape}"
        )
    if x.size == 0:
        raise PreconditionViolation(f"Data tensor cannot be empty, got shape {x.shape}")
    if np.iscomplexobj(x):
        raise PreconditionViolation("Data tensor must be real valued")

    tensor = np.array(x, dtype=storage_dtype(x), copy=True)

    if not np.all(np.isfinite(tensor)):
        raise PreconditionViolation("Data tensor contains NaN or Inf values")

    return tensor


def check_real(a: np.ndarray, name: str) -> None:
    """Raise PreconditionViolation if a is complex valued."""
    if np.iscomplexobj(a):
        raise PreconditionViolation(f"{name} must be real valued")


def canonicalize_ranks(
    ranks: RankLike, shape: Optional[Sequence[int]] = None
) -> tuple[int, int, int]:
    """
    Canonicalize latent ranks to a (J1, J2, J3) tuple.

    Parameters
    ----------
    ranks : int or sequence of 3 ints
        Latent ranks; an int is used for every mode
    shape : sequence of 3 ints, optional
        Ambient extents (I1, I2, I3). If given, enforce J_n <= I_n

    Returns
    -------
    ranks : tuple of 3 ints

    Raises
    ------
    PreconditionViolation
        If ranks are not positive integers, not 3 of them, or exceed shape

    Examples
    --------
    >>> canonicalize_ranks(2)
    (2, 2, 2)
    >>> canonicalize_ranks([3, 2, 1], shape=(4, 4, 4))
    (3, 2, 1)
    """
    if isinstance(ranks, numbers.Integral):
        ranks = (ranks, ranks, ranks)
    elif isinstance(ranks, numbers.Number) or np.ndim(ranks) == 0:
        raise PreconditionViolation(
            f"Ranks must be an integer or a sequence of 3 integers, got {ranks!r}"
        )

    ranks = tuple(ranks)
    if len(ranks) != 3:
        raise PreconditionViolation(f"Need 3 latent ranks (J1, J2, J3), got {len(ranks)}")

    for n, r in enumerate(ranks, start=1):
        if not isinstance(r, numbers.Integral) or isinstance(r, bool):
            raise PreconditionViolation(f"Rank J{n} must be an integer, got {r!r}")
        if r < 1:
            raise PreconditionViolation(f"Rank J{n} must be >= 1, got {r}")

    if shape is not None:
        for n, (r, extent) in enumerate(zip(ranks, shape), start=1):
            if r > extent:
                raise PreconditionViolation(
                    f"Rank J{n}={r} exceeds ambient extent I{n}={extent}"
                )

    return tuple(int(r) for r in ranks)


def validate_factors(
    core: np.ndarray, u1: np.ndarray, u2: np.ndarray, u3: np.ndarray
) -> tuple[tuple[int, int, int], tuple[int, int, int]]:
    """
    Validate that a core and three basis matrices form a Tucker3 model.

    Checks:
    1. every array is real valued
    2. core is 3D and each basis is 2D
    3. basis n has as many columns as the core has along mode n
    4. nothing is empty

    Returns
    -------
    ranks : (J1, J2, J3)
    shape : (I1, I2, I3)

    Raises
    ------
    PreconditionViolation
        If an array is complex or shapes are incompatible
    """
    for name, a in zip(("core", "u1", "u2", "u3"), (core, u1, u2, u3)):
        check_real(a, name)

    if core.ndim != 3:
        raise PreconditionViolation(f"Core must be 3D (J1, J2, J3), got shape {core.shape}")
    if core.size == 0:
        raise PreconditionViolation(f"Core cannot be empty, got shape {core.shape}")

    shape = []
    for n, u in enumerate((u1, u2, u3), start=1):
        if u.ndim != 2:
            raise PreconditionViolation(f"Basis U{n} must be 2D (I{n}, J{n}), got shape {u.shape}")
        if u.shape[0] == 0:
            raise PreconditionViolation(f"Basis U{n} has no rows")
        if u.shape[1] != core.shape[n - 1]:
            raise PreconditionViolation(
                f"Basis U{n} has {u.shape[1]} columns, but core has "
                f"J{n}={core.shape[n - 1]}"
            )
        shape.append(u.shape[0])

    return tuple(core.shape), tuple(shape)


def validate_factor(factor) -> int:
    """
    Validate an integer subsampling stride.

    Raises
    ------
    PreconditionViolation
        If factor is not an integer >= 1

    Examples
    --------
    >>> validate_factor(2)
    2
    """
    if isinstance(factor, bool) or not isinstance(factor, numbers.Integral):
        if isinstance(factor, numbers.Real) and float(factor).is_integer():
            factor = int(factor)
        else:
            raise PreconditionViolation(f"Subsampling factor must be an integer, got {factor!r}")
    if factor < 1:
        raise PreconditionViolation(f"Subsampling factor must be >= 1, got {factor}")
    return int(factor)


def validate_region(
    ranges: Sequence[Sequence[int]], shape: Sequence[int]
) -> tuple[tuple[int, int], ...]:
    """
    Validate per-mode [start, end) row ranges against ambient extents.

    Parameters
    ----------
    ranges : sequence of 3 (start, end) pairs
    shape : (K1, K2, K3) source ambient extents

    Returns
    -------
    ranges : tuple of 3 (start, end) int pairs

    Raises
    ------
    PreconditionViolation
        Unless 0 <= start_n < end_n <= K_n for every mode
    """
    if len(ranges) != 3:
        raise PreconditionViolation(f"Need 3 (start, end) ranges, got {len(ranges)}")

    checked = []
    for n, (rng, extent) in enumerate(zip(ranges, shape), start=1):
        if len(rng) != 2:
            raise PreconditionViolation(f"Range for mode {n} must be (start, end), got {rng!r}")
        start, end = rng
        for value in (start, end):
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise PreconditionViolation(
                    f"Range bounds for mode {n} must be integers, got {rng!r}"
                )
        if start < 0:
            raise PreconditionViolation(f"Mode {n}: start index must be >= 0, got {start}")
        if start >= end:
            raise PreconditionViolation(
                f"Mode {n}: start index {start} must be < end index {end}"
            )
        if end > extent:
            raise PreconditionViolation(
                f"Mode {n}: end index {end} exceeds ambient extent {extent}"
            )
        checked.append((int(start), int(end)))

    return tuple(checked)
