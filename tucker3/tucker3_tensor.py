"""
Tucker3 tensor representation, decomposition and reconstruction.

A Tucker3 model approximates a tensor X of shape (I1, I2, I3) by a core G of
shape (J1, J2, J3) and three basis matrices:

    X ≈ G x_1 U1 x_2 U2 x_3 U3,   U_n of shape (I_n, J_n)

When produced by decomposition(), every U_n has orthonormal columns
(U_n^T U_n = I) and G = X x_1 U1^T x_2 U2^T x_3 U3^T. With J_n = I_n the
reconstruction is exact; with J_n < I_n it is the truncated HOSVD
approximation.

The model stores only the factors; the rank and resolution operators in
tucker3.operators derive new models from these factors without ever
materializing the full tensor.

References:
- Tucker (1966), "Some mathematical notes on three-mode factor analysis",
  Psychometrika
- De Lathauwer, De Moor, Vandewalle (2000a), "A multilinear singular value
  decomposition", SIAM J. Matrix Anal. Appl.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

import numpy as np

from tucker3.engines import get_engine
from tucker3.exceptions import PreconditionViolation
from tucker3.hosvd import HOSVDConfig, _hosvd
from tucker3.utils.shapes import (
    RankLike,
    canonicalize_ranks,
    canonicalize_tensor3,
    check_real,
    storage_dtype,
    validate_factors,
)


def derive_core(
    data,
    u1: np.ndarray,
    u2: np.ndarray,
    u3: np.ndarray,
    engine: str = "sequential",
) -> np.ndarray:
    """
    Project a data tensor onto three basis matrices.

    core[j1, j2, j3] = Σ U1[i1,j1]·U2[i2,j2]·U3[i3,j3]·data[i1,i2,i3]

    Parameters
    ----------
    data : array_like
        Data tensor, shape (I1, I2, I3)
    u1, u2, u3 : np.ndarray
        Basis matrices, shapes (I_n, J_n)
    engine : str, default='sequential'
        'sequential' (n-mode products) or 'direct' (compiled six-fold sum)

    Returns
    -------
    core : np.ndarray
        Core tensor, shape (J1, J2, J3), in the data's floating dtype

    Raises
    ------
    PreconditionViolation
        If a basis is complex or its row count doesn't match the data extent

    Examples
    --------
    >>> X = np.random.randn(4, 5, 6)
    >>> core = derive_core(X, np.eye(4)[:, :2], np.eye(5)[:, :3], np.eye(6))
    >>> core.shape
    (2, 3, 6)
    """
    tensor = canonicalize_tensor3(data)
    bases = [np.asarray(u) for u in (u1, u2, u3)]

    for n, u in enumerate(bases, start=1):
        check_real(u, f"u{n}")
        if u.ndim != 2:
            raise PreconditionViolation(f"Basis U{n} must be 2D, got shape {u.shape}")
        if u.shape[0] != tensor.shape[n - 1]:
            raise PreconditionViolation(
                f"Basis U{n} has {u.shape[0]} rows, but data extent I{n}="
                f"{tensor.shape[n - 1]}"
            )

    core = get_engine(engine).project(tensor, *bases)
    return core.astype(storage_dtype(tensor))


def reconstruction(
    core: np.ndarray,
    u1: np.ndarray,
    u2: np.ndarray,
    u3: np.ndarray,
    engine: str = "sequential",
) -> np.ndarray:
    """
    Expand a core tensor through three basis matrices.

    data'[i1, i2, i3] = Σ core[j1,j2,j3]·U1[i1,j1]·U2[i2,j2]·U3[i3,j3]

    Parameters
    ----------
    core : np.ndarray
        Core tensor, shape (J1, J2, J3)
    u1, u2, u3 : np.ndarray
        Basis matrices, shapes (I_n, J_n)
    engine : str, default='sequential'
        'sequential' or 'direct'

    Returns
    -------
    data : np.ndarray
        Reconstructed tensor, shape (I1, I2, I3)
    """
    core = np.asarray(core)
    bases = [np.asarray(u) for u in (u1, u2, u3)]
    validate_factors(core, *bases)

    dtype = storage_dtype(np.empty(0, dtype=np.result_type(core, *bases)))
    return get_engine(engine).expand(core, *bases).astype(dtype)


def decomposition(
    data, ranks: Optional[RankLike] = None, config: Optional[HOSVDConfig] = None
) -> Tucker3Tensor:
    """
    Tucker3 decomposition of a data tensor: HOSVD followed by core projection.

    Parameters
    ----------
    data : array_like
        Data tensor, shape (I1, I2, I3)
    ranks : int or sequence of 3 ints, optional
        Latent ranks (J1, J2, J3); defaults to full rank
    config : HOSVDConfig, optional
        Estimation and engine settings

    Returns
    -------
    model : Tucker3Tensor

    Examples
    --------
    >>> X = np.random.randn(6, 5, 4)
    >>> model = decomposition(X, ranks=(3, 3, 2))
    >>> model
    Tucker3Tensor(shape=(6, 5, 4), ranks=(3, 3, 2))
    """
    tensor = canonicalize_tensor3(data)
    ranks = canonicalize_ranks(tensor.shape if ranks is None else ranks, tensor.shape)

    model = Tucker3Tensor.zeros(ranks, tensor.shape, dtype=storage_dtype(tensor))
    model._decompose(tensor, config)
    return model


@dataclass(eq=False)
class Tucker3Tensor:
    """
    Tucker3 model: core tensor plus one basis matrix per mode.

    Attributes
    ----------
    core : np.ndarray
        Core tensor, shape (J1, J2, J3)
    u1 : np.ndarray
        Mode-1 basis, shape (I1, J1)
    u2 : np.ndarray
        Mode-2 basis, shape (I2, J2)
    u3 : np.ndarray
        Mode-3 basis, shape (I3, J3)

    All arrays are copied on construction and share one floating dtype
    (float32 or float64).

    Examples
    --------
    >>> X = np.random.randn(8, 8, 8)
    >>> model = Tucker3Tensor.from_data(X, ranks=4)
    >>> coarse = model.subsampling(factor=2)
    >>> coarse.shape, coarse.ranks
    ((4, 4, 4), (4, 4, 4))
    """

    core: np.ndarray
    u1: np.ndarray
    u2: np.ndarray
    u3: np.ndarray

    def __post_init__(self):
        """Validate factor shapes and take ownership of copies."""
        arrays = [np.asarray(a) for a in (self.core, self.u1, self.u2, self.u3)]
        validate_factors(*arrays)

        dtype = storage_dtype(np.empty(0, dtype=np.result_type(*arrays)))
        self.core, self.u1, self.u2, self.u3 = (
            np.array(a, dtype=dtype, copy=True) for a in arrays
        )

    @classmethod
    def zeros(
        cls, ranks: RankLike, shape: Sequence[int], dtype=np.float64
    ) -> Tucker3Tensor:
        """
        Zero-filled model, used as a receiver for decomposition().

        Parameters
        ----------
        ranks : int or sequence of 3 ints
            Latent ranks (J1, J2, J3)
        shape : sequence of 3 ints
            Ambient extents (I1, I2, I3)
        dtype : dtype, default=np.float64
        """
        shape = tuple(int(s) for s in shape)
        if len(shape) != 3 or min(shape) < 1:
            raise PreconditionViolation(f"shape must be 3 positive extents, got {shape}")
        J1, J2, J3 = canonicalize_ranks(ranks, shape)
        I1, I2, I3 = shape

        return cls(
            core=np.zeros((J1, J2, J3), dtype=dtype),
            u1=np.zeros((I1, J1), dtype=dtype),
            u2=np.zeros((I2, J2), dtype=dtype),
            u3=np.zeros((I3, J3), dtype=dtype),
        )

    @classmethod
    def from_data(
        cls, data, ranks: Optional[RankLike] = None, config: Optional[HOSVDConfig] = None
    ) -> Tucker3Tensor:
        """Decompose a data tensor into a new model (see decomposition())."""
        tensor = canonicalize_tensor3(data)
        ranks = canonicalize_ranks(tensor.shape if ranks is None else ranks, tensor.shape)

        model = cls.zeros(ranks, tensor.shape, dtype=storage_dtype(tensor))
        model._decompose(tensor, config)
        return model

    # ------------------------------------------------------------------
    # Shape information

    @property
    def ranks(self) -> tuple[int, int, int]:
        """Latent ranks (J1, J2, J3)."""
        return tuple(self.core.shape)

    @property
    def shape(self) -> tuple[int, int, int]:
        """Ambient extents (I1, I2, I3) of the represented tensor."""
        return (self.u1.shape[0], self.u2.shape[0], self.u3.shape[0])

    @property
    def dtype(self) -> np.dtype:
        """Storage scalar type."""
        return self.core.dtype

    @property
    def bases(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Basis matrices (U1, U2, U3)."""
        return (self.u1, self.u2, self.u3)

    @property
    def n_parameters(self) -> int:
        """Number of stored scalars (core plus bases)."""
        return int(self.core.size + self.u1.size + self.u2.size + self.u3.size)

    @property
    def compression_ratio(self) -> float:
        """Full tensor size divided by stored factor size."""
        I1, I2, I3 = self.shape
        return (I1 * I2 * I3) / self.n_parameters

    def estimate_memory_bytes(self) -> int:
        """Estimate memory footprint in bytes."""
        return int(self.core.nbytes + self.u1.nbytes + self.u2.nbytes + self.u3.nbytes)

    def __repr__(self) -> str:
        """String representation showing shape and ranks."""
        return f"Tucker3Tensor(shape={self.shape}, ranks={self.ranks})"

    def copy(self) -> Tucker3Tensor:
        return Tucker3Tensor(self.core, self.u1, self.u2, self.u3)

    # ------------------------------------------------------------------
    # Accessors

    def get_core(self) -> np.ndarray:
        return self.core.copy()

    def get_u1(self) -> np.ndarray:
        return self.u1.copy()

    def get_u2(self) -> np.ndarray:
        return self.u2.copy()

    def get_u3(self) -> np.ndarray:
        return self.u3.copy()

    def set_core(self, core: np.ndarray) -> None:
        core = np.asarray(core)
        check_real(core, "core")
        if core.shape != self.core.shape:
            raise PreconditionViolation(
                f"Core must have shape {self.core.shape}, got {core.shape}"
            )
        self.core = np.array(core, dtype=self.dtype, copy=True)

    def _set_basis(self, mode: int, u: np.ndarray) -> None:
        name = f"u{mode}"
        current = getattr(self, name)
        u = np.asarray(u)
        check_real(u, name)
        if u.shape != current.shape:
            raise PreconditionViolation(
                f"Basis U{mode} must have shape {current.shape}, got {u.shape}"
            )
        setattr(self, name, np.array(u, dtype=self.dtype, copy=True))

    def set_u1(self, u1: np.ndarray) -> None:
        self._set_basis(1, u1)

    def set_u2(self, u2: np.ndarray) -> None:
        self._set_basis(2, u2)

    def set_u3(self, u3: np.ndarray) -> None:
        self._set_basis(3, u3)

    # ------------------------------------------------------------------
    # Decomposition

    def _check_data(self, data) -> np.ndarray:
        tensor = canonicalize_tensor3(data)
        if tensor.shape != self.shape:
            raise PreconditionViolation(
                f"Data shape {tensor.shape} doesn't match model shape {self.shape}"
            )
        canonicalize_ranks(self.ranks, self.shape)
        return tensor

    def hosvd(self, data, config: Optional[HOSVDConfig] = None) -> None:
        """
        Replace the bases with the HOSVD bases of data (core untouched).

        Raises
        ------
        PreconditionViolation
            If data doesn't match the model shape, or J_n > I_n
        DecompositionFailure
            If any mode fails to converge; the model is left unchanged
        """
        self._estimate_bases(data, config)

    def hosvd_on_eigs(self, data, config: Optional[HOSVDConfig] = None) -> None:
        """Same as hosvd(), through covariance eigendecomposition."""
        config = HOSVDConfig() if config is None else config
        self._estimate_bases(data, replace(config, method="eig"))

    def _estimate_bases(self, data, config):
        tensor = self._check_data(data)
        # Rank warnings point at the caller of the public method
        u1, u2, u3 = _hosvd(tensor, self.ranks, config, False, stacklevel=4)
        self.u1, self.u2, self.u3 = (u.astype(self.dtype) for u in (u1, u2, u3))

    def decomposition(self, data, config: Optional[HOSVDConfig] = None) -> None:
        """
        Decompose data in place, keeping this model's ranks.

        Estimates the bases with HOSVD, then projects the data onto them to
        obtain the core. Nothing is committed unless both steps succeed.

        Parameters
        ----------
        data : array_like
            Data tensor, shape must equal self.shape
        config : HOSVDConfig, optional
            Estimation and engine settings

        Raises
        ------
        PreconditionViolation
            If data doesn't match the model shape, or J_n > I_n
        DecompositionFailure
            If any mode fails to converge; the model is left unchanged
        """
        self._decompose(data, config)

    def _decompose(self, data, config):
        if config is None:
            config = HOSVDConfig()

        tensor = self._check_data(data)
        u1, u2, u3 = _hosvd(tensor, self.ranks, config, False, stacklevel=4)
        core = derive_core(tensor, u1, u2, u3, engine=config.engine)

        self.core = core.astype(self.dtype)
        self.u1, self.u2, self.u3 = (u.astype(self.dtype) for u in (u1, u2, u3))

        if config.verbose:
            print(
                f"Tucker3 decomposition {self.shape} -> {self.ranks}, "
                f"compression ratio {self.compression_ratio:.2f}"
            )

    # ------------------------------------------------------------------
    # Reconstruction

    def reconstruction(self, engine: str = "sequential") -> np.ndarray:
        """
        Materialize the represented tensor, shape (I1, I2, I3).

        Examples
        --------
        >>> X = np.random.randn(3, 4, 5)
        >>> model = Tucker3Tensor.from_data(X)
        >>> np.allclose(model.reconstruction(), X)
        True
        """
        return reconstruction(self.core, self.u1, self.u2, self.u3, engine=engine)

    def reconstruction_error(self, data, engine: str = "sequential") -> float:
        """Frobenius norm of data - reconstruction()."""
        tensor = self._check_data(data)
        residual = tensor.astype(np.float64) - self.reconstruction(engine).astype(np.float64)
        return float(np.linalg.norm(residual))

    def relative_error(self, data, engine: str = "sequential") -> float:
        """Reconstruction error relative to the Frobenius norm of data."""
        tensor = self._check_data(data)
        norm = float(np.linalg.norm(tensor.astype(np.float64)))
        error = self.reconstruction_error(tensor, engine)
        if norm == 0.0:
            return 0.0 if error == 0.0 else np.inf
        return error / norm

    # ------------------------------------------------------------------
    # Rank and resolution operators

    def progressive_rank_reduction(self, ranks: RankLike) -> Tucker3Tensor:
        """Lower-rank model keeping the leading basis columns (see operators)."""
        from tucker3 import operators

        return operators.progressive_rank_reduction(self, ranks)

    def subsampling(self, factor: int, shape: Optional[Sequence[int]] = None) -> Tucker3Tensor:
        """Keep every factor-th basis row (see operators)."""
        from tucker3 import operators

        return operators.subsampling(self, factor, shape)

    def subsampling_on_average(
        self, factor: int, shape: Optional[Sequence[int]] = None
    ) -> Tucker3Tensor:
        """Average each run of factor basis rows (see operators)."""
        from tucker3 import operators

        return operators.subsampling_on_average(self, factor, shape)

    def region_of_interest(
        self,
        range1: Sequence[int],
        range2: Sequence[int],
        range3: Sequence[int],
    ) -> Tucker3Tensor:
        """Keep basis rows [start_n, end_n) per mode (see operators)."""
        from tucker3 import operators

        return operators.region_of_interest(self, range1, range2, range3)
