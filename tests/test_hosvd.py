"""
Tests for HOSVD basis estimation.

These tests verify:
1. Basis shapes, dtypes and orthonormality
2. Bases span the dominant subspace of each unfolding
3. SVD and covariance-eigen paths agree after sign normalization
4. Rank-deficiency diagnostics
5. Non-convergence surfaces as DecompositionFailure
6. HOSVDConfig validation
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy import linalg

from tucker3.exceptions import DecompositionFailure, PreconditionViolation
from tucker3.hosvd import (
    HOSVDConfig,
    covariance_eigenvectors,
    hosvd,
    hosvd_on_eigs,
    left_singular_vectors,
    normalize_column_signs,
)
from tucker3.matricization import unfold


def _random_tensor(shape, seed=0):
    rng = np.random.default_rng(seed)
    return rng.standard_normal(shape)


class TestBasisShapes:
    """Bases have shape (I_n, J_n) in the storage dtype."""

    @pytest.mark.parametrize(
        "shape, ranks",
        [
            ((6, 5, 4), (3, 3, 2)),
            ((4, 4, 4), (4, 4, 4)),
            ((10, 2, 3), (10, 2, 3)),
            ((7, 3, 5), (1, 1, 1)),
        ],
    )
    def test_shapes(self, shape, ranks):
        """Test basis shapes for several rank choices."""
        bases = hosvd(_random_tensor(shape), ranks)

        for n, (u, I, J) in enumerate(zip(bases, shape, ranks), start=1):
            assert u.shape == (I, J), f"U{n} has shape {u.shape}"

    def test_default_ranks_full(self):
        """Omitted ranks give full-rank bases."""
        bases = hosvd(_random_tensor((3, 4, 5)))
        assert [u.shape for u in bases] == [(3, 3), (4, 4), (5, 5)]

    def test_float32_storage(self):
        """float32 data gives float32 bases."""
        X = _random_tensor((4, 5, 6)).astype(np.float32)
        bases = hosvd(X, (2, 2, 2))

        assert all(u.dtype == np.float32 for u in bases)

    def test_float_rank_rejected(self):
        """A float scalar rank is a precondition violation."""
        with pytest.raises(PreconditionViolation, match="integer or a sequence"):
            hosvd(_random_tensor((3, 4, 5)), ranks=2.0)

    def test_rank_exceeding_extent(self):
        """J_n > I_n is rejected."""
        with pytest.raises(PreconditionViolation, match="exceeds ambient extent"):
            hosvd(_random_tensor((3, 4, 5)), (4, 2, 2))


class TestOrthonormality:
    """U_n^T U_n = I within tolerance."""

    @pytest.mark.parametrize("method", ["svd", "eig"])
    @pytest.mark.parametrize("shape", [(5, 6, 7), (12, 2, 3), (4, 4, 4)])
    def test_full_rank_orthonormal(self, method, shape):
        """Full-rank bases are orthonormal on both paths."""
        bases = hosvd(_random_tensor(shape), config=HOSVDConfig(method=method))

        for u in bases:
            assert_allclose(u.T @ u, np.eye(u.shape[1]), atol=1e-6)

    def test_tall_unfolding_gets_complete_basis(self):
        """I_n larger than the other two extents combined still gives I_n columns."""
        X = _random_tensor((9, 2, 2))
        U1, _, _ = hosvd(X, (9, 2, 2))

        assert U1.shape == (9, 9)
        assert_allclose(U1.T @ U1, np.eye(9), atol=1e-10)
        assert_allclose(U1 @ U1.T, np.eye(9), atol=1e-10)

    def test_float32_orthonormal(self):
        """Orthonormality holds to float32 precision."""
        X = _random_tensor((6, 6, 6)).astype(np.float32)
        for u in hosvd(X, (3, 3, 3)):
            assert_allclose(u.T @ u, np.eye(3), atol=1e-5)


class TestDominantSubspace:
    """Bases span the leading singular subspaces."""

    @pytest.mark.parametrize("mode", [1, 2, 3])
    def test_matches_numpy_svd_subspace(self, mode):
        """Truncated bases span the leading left singular subspace."""
        X = _random_tensor((6, 7, 8), seed=3)
        ranks = (3, 4, 2)
        bases = hosvd(X, ranks)

        U_ref, _, _ = np.linalg.svd(unfold(X, mode), full_matrices=False)
        U_ref = U_ref[:, : ranks[mode - 1]]
        U = bases[mode - 1]

        # Equal projectors <=> equal subspaces
        assert_allclose(U @ U.T, U_ref @ U_ref.T, atol=1e-10)

    def test_singular_values_returned(self):
        """Spectra match NumPy's singular values of each unfolding."""
        X = _random_tensor((5, 6, 7))
        bases, spectra = hosvd(X, (2, 2, 2), return_singular_values=True)

        assert len(bases) == 3
        for mode, s in zip((1, 2, 3), spectra):
            expected = np.linalg.svd(unfold(X, mode), compute_uv=False)
            assert s.shape == (X.shape[mode - 1],)
            assert_allclose(s, expected, rtol=1e-10)

    def test_singular_values_padded_for_tall_unfolding(self):
        """Spectra of tall unfoldings are zero padded to I_n."""
        X = _random_tensor((9, 2, 2))
        _, spectra = hosvd(X, return_singular_values=True)

        assert spectra[0].shape == (9,)
        assert_allclose(spectra[0][4:], 0.0)

    def test_tensor_singular_values_match_core_slices(self):
        """Mode-n singular values equal the Frobenius norms of core slices."""
        from tucker3.tucker3_tensor import derive_core

        X = _random_tensor((4, 5, 6), seed=9)
        bases, spectra = hosvd(X, return_singular_values=True)
        core = derive_core(X, *bases)

        assert_allclose(np.linalg.norm(core, axis=(1, 2)), spectra[0][:4], rtol=1e-10)
        assert_allclose(np.linalg.norm(core, axis=(0, 2)), spectra[1][:5], rtol=1e-10)
        assert_allclose(np.linalg.norm(core, axis=(0, 1)), spectra[2][:6], rtol=1e-10)


class TestEigenPath:
    """Covariance eigendecomposition path."""

    def test_matches_svd_path(self):
        """Eigen and SVD paths agree after sign normalization."""
        X = _random_tensor((5, 6, 7), seed=11)
        ranks = (3, 4, 5)

        svd_bases = hosvd(X, ranks)
        eig_bases = hosvd_on_eigs(X, ranks)

        for u_svd, u_eig in zip(svd_bases, eig_bases):
            assert_allclose(u_eig, u_svd, atol=1e-6)

    def test_config_method_forced(self):
        """hosvd_on_eigs overrides config.method."""
        X = _random_tensor((4, 4, 4))
        via_config = hosvd(X, 2, HOSVDConfig(method="eig"))
        via_function = hosvd_on_eigs(X, 2, HOSVDConfig(method="svd"))

        for a, b in zip(via_config, via_function):
            assert_allclose(a, b)

    def test_eigen_singular_values(self):
        """Eigen path reports sqrt of covariance eigenvalues."""
        X = _random_tensor((5, 6, 7), seed=12)
        _, spectra = hosvd_on_eigs(X, return_singular_values=True)

        expected = np.linalg.svd(unfold(X, 2), compute_uv=False)
        assert_allclose(spectra[1], expected, rtol=1e-8)

    def test_covariance_eigenvectors_descending(self):
        """Eigenpairs come in descending order."""
        A = _random_tensor((4, 10), seed=13).reshape(4, 10)
        V, s = covariance_eigenvectors(A)

        assert np.all(np.diff(s) <= 0)
        assert_allclose(V.T @ V, np.eye(4), atol=1e-10)


class TestSignNormalization:
    """Test deterministic column signs."""

    def test_largest_entry_positive(self):
        """Each column is flipped so its largest entry is positive."""
        U = normalize_column_signs(np.array([[0.6, -0.8], [-0.8, -0.6]]))

        assert_allclose(U, np.array([[-0.6, 0.8], [0.8, 0.6]]))

    def test_bases_have_positive_pivots(self):
        """HOSVD bases satisfy the sign convention."""
        for u in hosvd(_random_tensor((5, 6, 7))):
            pivots = np.argmax(np.abs(u), axis=0)
            assert np.all(u[pivots, np.arange(u.shape[1])] > 0)

    def test_disabled_keeps_lapack_signs(self):
        """normalize_signs=False keeps the raw LAPACK output."""
        X = _random_tensor((4, 5, 6), seed=5)
        U1, _, _ = hosvd(X, config=HOSVDConfig(normalize_signs=False))
        U_ref, _, _ = linalg.svd(unfold(X, 1), full_matrices=False)

        assert_allclose(U1, U_ref, atol=1e-12)


class TestRankDeficiency:
    """Test warnings for ranks above the numerical rank."""

    def test_warns_when_rank_exceeds_numerical_rank(self):
        """A rank-1 tensor cannot support two basis vectors per mode."""
        a, b, c = np.arange(1.0, 4.0), np.arange(1.0, 5.0), np.arange(1.0, 6.0)
        X = np.einsum("i,j,k->ijk", a, b, c)

        with pytest.warns(UserWarning, match="exceeds numerical rank 1"):
            bases = hosvd(X, (2, 2, 2))

        for u in bases:
            assert_allclose(u.T @ u, np.eye(2), atol=1e-10)

    def test_warns_on_zero_tensor(self):
        """An all-zero unfolding triggers a warning."""
        with pytest.warns(UserWarning, match="unfolding is zero"):
            hosvd(np.zeros((2, 3, 4)), 1)

    def test_no_warning_for_random_data(self, recwarn):
        """Full-rank random data is not flagged."""
        hosvd(_random_tensor((4, 5, 6)), (4, 5, 6))
        assert not [w for w in recwarn if issubclass(w.category, UserWarning)]


class TestConvergenceFailure:
    """LAPACK failures surface as DecompositionFailure."""

    def test_svd_failure(self, monkeypatch):
        """Non-convergence in mode 1 is reported with its mode."""
        def failing_svd(*args, **kwargs):
            raise linalg.LinAlgError("SVD did not converge")

        monkeypatch.setattr(linalg, "svd", failing_svd)

        with pytest.raises(DecompositionFailure, match="mode-1") as excinfo:
            hosvd(_random_tensor((3, 4, 5)))

        assert excinfo.value.mode == 1
        assert isinstance(excinfo.value.__cause__, linalg.LinAlgError)

    def test_failure_in_later_mode(self, monkeypatch):
        """The failing mode is reported, not the first one."""
        real_svd = linalg.svd
        calls = []

        def svd_failing_on_third(a, *args, **kwargs):
            calls.append(a.shape)
            if len(calls) == 3:
                raise linalg.LinAlgError("SVD did not converge")
            return real_svd(a, *args, **kwargs)

        monkeypatch.setattr(linalg, "svd", svd_failing_on_third)

        with pytest.raises(DecompositionFailure) as excinfo:
            hosvd(_random_tensor((3, 4, 5)))

        assert excinfo.value.mode == 3

    def test_eigh_failure(self, monkeypatch):
        """Eigen path failures are wrapped too."""
        def failing_eigh(*args, **kwargs):
            raise linalg.LinAlgError("eigh did not converge")

        monkeypatch.setattr(linalg, "eigh", failing_eigh)

        with pytest.raises(DecompositionFailure, match="Eigendecomposition of mode-1"):
            hosvd_on_eigs(_random_tensor((3, 4, 5)))

    def test_left_singular_vectors_reports_mode(self, monkeypatch):
        """The helper names the mode it was given."""
        def failing_svd(*args, **kwargs):
            raise linalg.LinAlgError("SVD did not converge")

        monkeypatch.setattr(linalg, "svd", failing_svd)

        with pytest.raises(DecompositionFailure, match="mode-2"):
            left_singular_vectors(np.ones((2, 3)), mode=2)


class TestHOSVDConfig:
    """Test HOSVDConfig defaults and validation."""

    def test_defaults(self):
        """Test default settings."""
        config = HOSVDConfig()
        assert config.method == "svd"
        assert config.engine == "sequential"
        assert config.normalize_signs

    def test_invalid_method(self):
        """Unknown method is rejected."""
        with pytest.raises(ValueError, match="method must be 'svd' or 'eig'"):
            HOSVDConfig(method="als")

    def test_invalid_engine(self):
        """Unknown engine is rejected."""
        with pytest.raises(ValueError, match="engine must be"):
            HOSVDConfig(engine="gpu")

    def test_invalid_driver(self):
        """Unknown LAPACK driver is rejected."""
        with pytest.raises(ValueError, match="lapack_driver"):
            HOSVDConfig(lapack_driver="gesvj")

    def test_negative_rank_tol(self):
        """Negative rank_tol is rejected."""
        with pytest.raises(ValueError, match="rank_tol"):
            HOSVDConfig(rank_tol=-1.0)

    @pytest.mark.parametrize("driver", ["gesdd", "gesvd"])
    def test_drivers_agree(self, driver):
        """gesdd and gesvd give the same bases."""
        X = _random_tensor((4, 5, 6), seed=21)
        reference = hosvd(X)
        bases = hosvd(X, config=HOSVDConfig(lapack_driver=driver))

        for u, u_ref in zip(bases, reference):
            assert_allclose(u, u_ref, atol=1e-10)

    def test_verbose_prints_progress(self, capsys):
        """verbose=True prints one line per mode."""
        hosvd(_random_tensor((3, 4, 5)), config=HOSVDConfig(verbose=True))
        out = capsys.readouterr().out

        assert "Mode 1" in out and "Mode 3" in out
