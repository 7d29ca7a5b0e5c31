"""
Core projection and reconstruction engines for Tucker3 models.

Projection (decomposition):
    core[j1, j2, j3] = Σ_{i1,i2,i3} U1[i1,j1]·U2[i2,j2]·U3[i3,j3]·X[i1,i2,i3]

Reconstruction (multilinear product):
    X'[i1, i2, i3] = Σ_{j1,j2,j3} core[j1,j2,j3]·U1[i1,j1]·U2[i2,j2]·U3[i3,j3]

Two strategies compute the same result:
- SequentialNumpyEngine: three n-mode products, O(I1·I2·I3·max(J)) per mode
- DirectNumbaEngine: the six-fold sum above, O(I1·I2·I3·J1·J2·J3),
  compiled with Numba

Both accumulate in float64 and return float64 arrays; callers cast to the
storage dtype.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np
from numba import njit

from tucker3.matricization import mode_product


class Tucker3Engine(Protocol):
    """Strategy interface for Tucker3 projection and reconstruction."""

    def project(
        self, data: np.ndarray, u1: np.ndarray, u2: np.ndarray, u3: np.ndarray
    ) -> np.ndarray:
        """
        Project a data tensor onto three bases.

        Args:
            data: Data tensor (I1, I2, I3)
            u1, u2, u3: Bases (I_n, J_n)

        Returns:
            Core tensor (J1, J2, J3), float64
        """
        ...

    def expand(
        self, core: np.ndarray, u1: np.ndarray, u2: np.ndarray, u3: np.ndarray
    ) -> np.ndarray:
        """
        Expand a core tensor through three bases.

        Args:
            core: Core tensor (J1, J2, J3)
            u1, u2, u3: Bases (I_n, J_n)

        Returns:
            Reconstructed tensor (I1, I2, I3), float64
        """
        ...


class SequentialNumpyEngine:
    """
    n-mode product engine (reference implementation).

    Contracts one mode at a time, so the intermediate tensors shrink (or
    grow) mode by mode instead of materializing the six-fold sum.
    """

    def project(self, data, u1, u2, u3):
        result = np.asarray(data, dtype=np.float64)
        for mode, u in enumerate((u1, u2, u3), start=1):
            result = mode_product(result, np.asarray(u, dtype=np.float64).T, mode)
        return result

    def expand(self, core, u1, u2, u3):
        result = np.asarray(core, dtype=np.float64)
        for mode, u in enumerate((u1, u2, u3), start=1):
            result = mode_product(result, np.asarray(u, dtype=np.float64), mode)
        return result


@njit(cache=True)
def _project_direct_kernel(data, u1, u2, u3):
    """Direct contraction: one double-precision sum per core entry."""
    I1, I2, I3 = data.shape
    J1 = u1.shape[1]
    J2 = u2.shape[1]
    J3 = u3.shape[1]
    core = np.zeros((J1, J2, J3))

    for j3 in range(J3):
        for j1 in range(J1):
            for j2 in range(J2):
                acc = 0.0
                for i3 in range(I3):
                    for i1 in range(I1):
                        for i2 in range(I2):
                            acc += u1[i1, j1] * u2[i2, j2] * u3[i3, j3] * data[i1, i2, i3]
                core[j1, j2, j3] = acc

    return core


@njit(cache=True)
def _expand_direct_kernel(core, u1, u2, u3):
    """Direct multilinear product: one double-precision sum per output entry."""
    J1, J2, J3 = core.shape
    I1 = u1.shape[0]
    I2 = u2.shape[0]
    I3 = u3.shape[0]
    out = np.zeros((I1, I2, I3))

    for i3 in range(I3):
        for i1 in range(I1):
            for i2 in range(I2):
                acc = 0.0
                for j3 in range(J3):
                    for j1 in range(J1):
                        for j2 in range(J2):
                            acc += core[j1, j2, j3] * u1[i1, j1] * u2[i2, j2] * u3[i3, j3]
                out[i1, i2, i3] = acc

    return out


def _as_f64(x: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(x, dtype=np.float64)


class DirectNumbaEngine:
    """
    Numba-compiled direct contraction.

    Evaluates the defining formulas literally. Cost grows with the product
    of all six extents, so it suits small tensors and cross-checking the
    sequential engine.
    """

    def project(self, data, u1, u2, u3):
        return _project_direct_kernel(_as_f64(data), _as_f64(u1), _as_f64(u2), _as_f64(u3))

    def expand(self, core, u1, u2, u3):
        return _expand_direct_kernel(_as_f64(core), _as_f64(u1), _as_f64(u2), _as_f64(u3))


ENGINES = {
    "sequential": SequentialNumpyEngine,
    "direct": DirectNumbaEngine,
}


def get_engine(name: str) -> Tucker3Engine:
    """
    Instantiate a projection engine by name ('sequential' or 'direct').

    Raises
    ------
    ValueError
        If the engine name is unknown
    """
    try:
        return ENGINES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown engine '{name}', expected one of {sorted(ENGINES)}"
        ) from None
