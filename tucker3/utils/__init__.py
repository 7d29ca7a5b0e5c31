"""
Utility functions for Tucker3 processing.

This module provides helper functions for:
- Data tensor validation and canonicalization
- Latent rank handling
- Factor, stride and index-range validation
"""

from tucker3.utils.shapes import (
    check_real,
    canonicalize_ranks,
    canonicalize_tensor3,
    storage_dtype,
    validate_factor,
    validate_factors,
    validate_region,
)

__all__ = [
    "check_real",
    "canonicalize_ranks",
    "canonicalize_tensor3",
    "storage_dtype",
    "validate_factor",
    "validate_factors",
    "validate_region",
]
