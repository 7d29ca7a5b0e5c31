"""
Matricization (unfolding) of 3-way tensors.

A tensor of shape (I1, I2, I3) is unfolded along mode n into a matrix whose
rows are indexed by i_n and whose columns enumerate the remaining two
indices in C order:

    lateral    (mode 1): A_(1)[i1, i2*I3 + i3] = A[i1, i2, i3]   -> (I1, I2*I3)
    frontal    (mode 2): A_(2)[i2, i1*I3 + i3] = A[i1, i2, i3]   -> (I2, I1*I3)
    horizontal (mode 3): A_(3)[i3, i1*I2 + i2] = A[i1, i2, i3]   -> (I3, I1*I2)

fold() is the exact inverse of unfold(), and mode_product() builds the
n-mode tensor-times-matrix product on top of the pair:

    (A x_n M) = fold(M @ unfold(A, n), n, new_shape)

References:
- De Lathauwer, De Moor, Vandewalle (2000), "A multilinear singular value
  decomposition", SIAM J. Matrix Anal. Appl.
- Kolda & Bader (2009), "Tensor Decompositions and Applications", SIAM Review
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from tucker3.exceptions import PreconditionViolation

MODES = (1, 2, 3)


def _check_mode(mode: int) -> int:
    if mode not in MODES:
        raise PreconditionViolation(f"mode must be 1, 2 or 3, got {mode!r}")
    return mode - 1


def unfold(tensor: np.ndarray, mode: int) -> np.ndarray:
    """
    Unfold a 3-way tensor along a mode.

    Parameters
    ----------
    tensor : np.ndarray
        Tensor, shape (I1, I2, I3)
    mode : int
        Mode to unfold along (1, 2 or 3)

    Returns
    -------
    matrix : np.ndarray
        Unfolding, shape (I_mode, product of the other two extents)

    Examples
    --------
    >>> A = np.arange(24).reshape(2, 3, 4)
    >>> unfold(A, 2).shape
    (3, 8)
    """
    axis = _check_mode(mode)
    if tensor.ndim != 3:
        raise PreconditionViolation(f"Tensor must be 3D, got shape {tensor.shape}")

    return np.moveaxis(tensor, axis, 0).reshape(tensor.shape[axis], -1).copy()


def fold(matrix: np.ndarray, mode: int, shape: Sequence[int]) -> np.ndarray:
    """
    Inverse of unfold: rebuild a tensor of the given shape from its unfolding.

    Parameters
    ----------
    matrix : np.ndarray
        Unfolding, shape (I_mode, product of the other two extents)
    mode : int
        Mode the matrix was unfolded along (1, 2 or 3)
    shape : sequence of 3 ints
        Target tensor shape (I1, I2, I3)

    Returns
    -------
    tensor : np.ndarray
        Tensor, shape (I1, I2, I3)

    Examples
    --------
    >>> A = np.random.randn(2, 3, 4)
    >>> np.array_equal(fold(unfold(A, 3), 3, A.shape), A)
    True
    """
    axis = _check_mode(mode)
    shape = tuple(int(s) for s in shape)
    if len(shape) != 3:
        raise PreconditionViolation(f"Target shape must have 3 extents, got {shape}")

    rest = [s for k, s in enumerate(shape) if k != axis]
    expected = (shape[axis], rest[0] * rest[1])
    if matrix.shape != expected:
        raise PreconditionViolation(
            f"Mode-{mode} unfolding of shape {shape} must be {expected}, "
            f"got {matrix.shape}"
        )

    permuted = matrix.reshape(shape[axis], rest[0], rest[1])
    return np.moveaxis(permuted, 0, axis).copy()


def lateral_matricization(tensor: np.ndarray) -> np.ndarray:
    """Mode-1 unfolding, shape (I1, I2*I3)."""
    return unfold(tensor, 1)


def frontal_matricization(tensor: np.ndarray) -> np.ndarray:
    """Mode-2 unfolding, shape (I2, I1*I3)."""
    return unfold(tensor, 2)


def horizontal_matricization(tensor: np.ndarray) -> np.ndarray:
    """Mode-3 unfolding, shape (I3, I1*I2)."""
    return unfold(tensor, 3)


def mode_product(tensor: np.ndarray, matrix: np.ndarray, mode: int) -> np.ndarray:
    """
    n-mode product of a 3-way tensor with a matrix.

    Every mode-n fiber of the tensor is multiplied by the matrix, so the
    mode-n extent changes from I_n to matrix.shape[0].

    Parameters
    ----------
    tensor : np.ndarray
        Tensor, shape (I1, I2, I3)
    matrix : np.ndarray
        Matrix, shape (P, I_mode)
    mode : int
        Mode to contract (1, 2 or 3)

    Returns
    -------
    result : np.ndarray
        Tensor with extent P along the given mode

    Raises
    ------
    PreconditionViolation
        If matrix columns don't match the tensor's mode extent

    Examples
    --------
    >>> A = np.random.randn(4, 5, 6)
    >>> M = np.random.randn(2, 5)
    >>> mode_product(A, M, 2).shape
    (4, 2, 6)
    """
    axis = _check_mode(mode)
    if matrix.ndim != 2:
        raise PreconditionViolation(f"Matrix must be 2D, got shape {matrix.shape}")
    if matrix.shape[1] != tensor.shape[axis]:
        raise PreconditionViolation(
            f"Matrix has {matrix.shape[1]} columns, but tensor mode {mode} "
            f"has extent {tensor.shape[axis]}"
        )

    new_shape = list(tensor.shape)
    new_shape[axis] = matrix.shape[0]

    return fold(matrix @ unfold(tensor, mode), mode, new_shape)
