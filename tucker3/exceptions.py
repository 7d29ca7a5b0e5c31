"""
Error taxonomy for Tucker3 decompositions.

Two failure classes exist:
- PreconditionViolation: the caller passed arrays, ranks, factors or index
  ranges whose dimensions are incompatible. Raised at entry, before any
  state is modified.
- DecompositionFailure: the LAPACK SVD / eigensolver did not converge for
  one of the modes. The receiving decomposition keeps its prior state.
"""

from __future__ import annotations

from typing import Optional


class Tucker3Error(Exception):
    """Base class for all errors raised by tucker3."""


class PreconditionViolation(Tucker3Error, ValueError):
    """Dimension or ordering constraint violated by the caller."""


class DecompositionFailure(Tucker3Error, RuntimeError):
    """
    Numerical basis estimation failed for a mode.

    Attributes
    ----------
    mode : int or None
        Mode (1, 2 or 3) whose SVD / eigendecomposition did not converge
    """

    def __init__(self, message: str, mode: Optional[int] = None):
        super().__init__(message)
        self.mode = mode
