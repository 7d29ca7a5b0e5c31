"""
Higher-order SVD (HOSVD): mode-wise basis estimation for Tucker3 models.

For each mode n the data tensor is unfolded (see tucker3.matricization) and
the J_n dominant left singular vectors of the unfolding A_(n) become the
basis matrix U_n (I_n x J_n). Two estimation paths are provided:

- 'svd': dense SVD of A_(n) itself (scipy.linalg.svd)
- 'eig': n-mode PCA, i.e. eigendecomposition of the covariance matrix
  S_n = A_(n) A_(n)^T (scipy.linalg.eigh). Same subspace as the SVD path
  up to column signs, but the condition number is squared.

Singular values are returned on request only; the Tucker3 model itself
keeps the bases and the core.

References:
- De Lathauwer, De Moor, Vandewalle (2000a), "A multilinear singular value
  decomposition", SIAM J. Matrix Anal. Appl.
- Tucker (1966), "Some mathematical notes on three-mode factor analysis",
  Psychometrika
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
from scipy import linalg

from tucker3.exceptions import DecompositionFailure
from tucker3.matricization import MODES, unfold
from tucker3.utils.shapes import (
    RankLike,
    canonicalize_ranks,
    canonicalize_tensor3,
    storage_dtype,
)


@dataclass
class HOSVDConfig:
    """
    Configuration for Tucker3 decomposition.

    Parameters
    ----------
    method : str, default='svd'
        Basis estimation path: 'svd' (SVD of each unfolding) or 'eig'
        (eigendecomposition of each unfolding's covariance matrix)
    engine : str, default='sequential'
        Core projection / reconstruction engine: 'sequential' (three n-mode
        products in NumPy) or 'direct' (compiled direct contraction)
    lapack_driver : str, default='gesdd'
        LAPACK routine used by scipy.linalg.svd: 'gesdd' or 'gesvd'
    normalize_signs : bool, default=True
        Flip each basis column so its largest-magnitude entry is positive
    rank_tol : float, default=1e-10
        Warn when a kept singular value is below rank_tol * sigma_max
    verbose : bool, default=False
        Print per-mode progress
    """

    method: str = "svd"
    engine: str = "sequential"
    lapack_driver: str = "gesdd"
    normalize_signs: bool = True
    rank_tol: float = 1e-10
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.method not in ("svd", "eig"):
            raise ValueError(f"method must be 'svd' or 'eig', got '{self.method}'")
        if self.engine not in ("sequential", "direct"):
            raise ValueError(f"engine must be 'sequential' or 'direct', got '{self.engine}'")
        if self.lapack_driver not in ("gesdd", "gesvd"):
            raise ValueError(
                f"lapack_driver must be 'gesdd' or 'gesvd', got '{self.lapack_driver}'"
            )
        if self.rank_tol < 0:
            raise ValueError(f"rank_tol must be >= 0, got {self.rank_tol}")


def normalize_column_signs(u: np.ndarray) -> np.ndarray:
    """
    Make the largest-magnitude entry of every column positive.

    Singular vectors are only defined up to sign; fixing the sign makes the
    SVD and eigen paths (and repeated runs) return identical bases.

    Examples
    --------
    >>> normalize_column_signs(np.array([[0.6, -0.8], [-0.8, -0.6]]))
    array([[-0.6,  0.8],
           [ 0.8,  0.6]])
    """
    if u.size == 0:
        return u.copy()
    pivots = np.argmax(np.abs(u), axis=0)
    signs = np.sign(u[pivots, np.arange(u.shape[1])])
    signs[signs == 0] = 1.0
    return u * signs[np.newaxis, :]


def left_singular_vectors(
    matrix: np.ndarray, lapack_driver: str = "gesdd", mode: Optional[int] = None
) -> tuple[np.ndarray, np.ndarray]:
    """
    Left singular vectors and singular values of a mode unfolding.

    Parameters
    ----------
    matrix : np.ndarray
        Unfolding A_(n), shape (I_n, M)
    lapack_driver : str, default='gesdd'
        LAPACK routine for scipy.linalg.svd
    mode : int, optional
        Mode number, used in error messages

    Returns
    -------
    U : np.ndarray
        Orthonormal left singular vectors, shape (I_n, I_n)
    s : np.ndarray
        Singular values in descending order, length I_n (zero padded when
        I_n > M)

    Raises
    ------
    DecompositionFailure
        If the SVD does not converge
    """
    rows, cols = matrix.shape
    # Tall unfoldings need the full U to offer I_n basis vectors
    full_matrices = rows > cols

    try:
        U, s, _ = linalg.svd(
            matrix,
            full_matrices=full_matrices,
            lapack_driver=lapack_driver,
            check_finite=False,
        )
    except linalg.LinAlgError as err:
        raise DecompositionFailure(
            f"SVD of mode-{mode} unfolding {matrix.shape} did not converge", mode=mode
        ) from err

    if s.shape[0] < U.shape[1]:
        s = np.concatenate([s, np.zeros(U.shape[1] - s.shape[0])])

    return U, s


def covariance_eigenvectors(
    matrix: np.ndarray, mode: Optional[int] = None
) -> tuple[np.ndarray, np.ndarray]:
    """
    Eigenvectors of the covariance matrix S = A A^T of a mode unfolding.

    Parameters
    ----------
    matrix : np.ndarray
        Unfolding A_(n), shape (I_n, M)
    mode : int, optional
        Mode number, used in error messages

    Returns
    -------
    V : np.ndarray
        Orthonormal eigenvectors, shape (I_n, I_n), sorted by descending
        eigenvalue
    s : np.ndarray
        Equivalent singular values sqrt(max(lambda, 0)), descending

    Raises
    ------
    DecompositionFailure
        If the eigensolver does not converge
    """
    covariance = matrix @ matrix.T

    try:
        w, V = linalg.eigh(covariance, check_finite=False)
    except linalg.LinAlgError as err:
        raise DecompositionFailure(
            f"Eigendecomposition of mode-{mode} covariance {covariance.shape} "
            "did not converge",
            mode=mode,
        ) from err

    # eigh returns ascending eigenvalues
    w = w[::-1]
    V = V[:, ::-1]

    return V, np.sqrt(np.clip(w, 0.0, None))


def _warn_rank_deficiency(
    s: np.ndarray, rank: int, mode: int, rank_tol: float, stacklevel: int
) -> None:
    sigma_max = s[0] if s.shape[0] > 0 else 0.0

    if sigma_max == 0.0:
        warnings.warn(
            f"Mode-{mode} unfolding is zero; basis U{mode} is arbitrary",
            UserWarning,
            stacklevel=stacklevel,
        )
        return

    n_significant = int(np.sum(s >= rank_tol * sigma_max))
    if rank > n_significant:
        warnings.warn(
            f"Requested rank J{mode}={rank} exceeds numerical rank {n_significant} "
            f"of the mode-{mode} unfolding; trailing basis vectors span the null space",
            UserWarning,
            stacklevel=stacklevel,
        )


def hosvd(
    data,
    ranks: Optional[RankLike] = None,
    config: Optional[HOSVDConfig] = None,
    return_singular_values: bool = False,
):
    """
    Estimate the three Tucker3 basis matrices of a data tensor.

    Parameters
    ----------
    data : array_like
        Data tensor, shape (I1, I2, I3)
    ranks : int or sequence of 3 ints, optional
        Latent ranks (J1, J2, J3). Defaults to the full ranks (I1, I2, I3)
    config : HOSVDConfig, optional
        Estimation settings (method, lapack_driver, normalize_signs, ...)
    return_singular_values : bool, default=False
        If True, also return the per-mode singular values

    Returns
    -------
    bases : tuple of 3 np.ndarray
        (U1, U2, U3) with U_n of shape (I_n, J_n) and orthonormal columns,
        stored in the data's floating dtype
    singular_values : tuple of 3 np.ndarray, optional
        Full singular value spectrum of each unfolding, length I_n
        (only if return_singular_values=True)

    Raises
    ------
    PreconditionViolation
        If data is not a finite 3D array or ranks are invalid
    DecompositionFailure
        If the SVD / eigendecomposition of any mode does not converge.
        No partial result is returned.

    Examples
    --------
    >>> X = np.random.randn(6, 5, 4)
    >>> U1, U2, U3 = hosvd(X, ranks=(3, 3, 2))
    >>> U1.shape, U2.shape, U3.shape
    ((6, 3), (5, 3), (4, 2))
    """
    return _hosvd(data, ranks, config, return_singular_values, stacklevel=3)


def _hosvd(data, ranks, config, return_singular_values, stacklevel):
    # stacklevel counts frames from this function: 1 is _hosvd, 2 its caller
    tensor = canonicalize_tensor3(data)
    ranks = canonicalize_ranks(tensor.shape if ranks is None else ranks, tensor.shape)

    if config is None:
        config = HOSVDConfig()

    dtype = storage_dtype(tensor)
    bases = []
    spectra = []

    for mode in MODES:
        # Estimation runs in double precision regardless of storage dtype
        A = unfold(tensor, mode).astype(np.float64)

        if config.method == "svd":
            U, s = left_singular_vectors(A, config.lapack_driver, mode=mode)
        else:
            U, s = covariance_eigenvectors(A, mode=mode)

        J = ranks[mode - 1]
        _warn_rank_deficiency(s, J, mode, config.rank_tol, stacklevel + 1)

        U = U[:, :J]
        if config.normalize_signs:
            U = normalize_column_signs(U)

        if config.verbose:
            print(
                f"Mode {mode}: unfolding {A.shape}, kept {J}/{U.shape[0]} "
                f"basis vectors, sigma_max={s[0]:.6e}"
            )

        bases.append(np.ascontiguousarray(U, dtype=dtype))
        spectra.append(s)

    if return_singular_values:
        return tuple(bases), tuple(spectra)
    return tuple(bases)


def hosvd_on_eigs(
    data,
    ranks: Optional[RankLike] = None,
    config: Optional[HOSVDConfig] = None,
    return_singular_values: bool = False,
):
    """
    HOSVD through n-mode PCA (eigendecomposition of covariance matrices).

    Same contract as hosvd(); config.method is forced to 'eig'.
    """
    config = replace(config, method="eig") if config is not None else HOSVDConfig(method="eig")
    return _hosvd(data, ranks, config, return_singular_values, stacklevel=3)
