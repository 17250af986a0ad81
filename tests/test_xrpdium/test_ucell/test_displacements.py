"""Tests for the symmetric eigensolver and displacement-parameter conversions."""

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from xrpdium.types import ConversionError, NumericalError, create_crystal_lattice
from xrpdium.ucell import (
    b_to_u,
    check_displacement_tensor,
    default_u_iso,
    principal_displacements,
    require_convergence,
    rotate_u_star,
    symmetric_eigen_3x3,
    u_cart_to_u_cif,
    u_cart_to_u_star,
    u_cif_to_u_cart,
    u_equivalent,
    u_iso_to_u_cart,
    u_star_to_u_cart,
    u_to_b,
)


def _random_symmetric(seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    matrix = rng.normal(size=(3, 3))
    return 0.5 * (matrix + matrix.T)


class TestSymmetricEigen(chex.TestCase, parameterized.TestCase):
    """Test the Jacobi eigensolver against numpy."""

    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("seed_0", 0),
        ("seed_1", 1),
        ("seed_7", 7),
        ("seed_42", 42),
    )
    def test_matches_numpy(self, seed) -> None:
        matrix = _random_symmetric(seed)
        var_fn = self.variant(symmetric_eigen_3x3)
        result = var_fn(jnp.asarray(matrix))
        self.assertTrue(bool(result.converged))
        chex.assert_trees_all_close(
            result.eigenvalues, np.linalg.eigvalsh(matrix), atol=1e-12
        )
        chex.assert_trees_all_close(
            result.reconstruct(), jnp.asarray(matrix), atol=1e-12
        )
        chex.assert_trees_all_close(
            result.eigenvectors.T @ result.eigenvectors, jnp.eye(3), atol=1e-12
        )

    def test_degenerate_eigenvalues(self) -> None:
        matrix = jnp.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 3.0]])
        result = require_convergence(symmetric_eigen_3x3(matrix))
        chex.assert_trees_all_close(
            result.eigenvalues, jnp.array([1.0, 3.0, 3.0]), atol=1e-12
        )

    def test_diagonal_needs_no_sweeps(self) -> None:
        result = symmetric_eigen_3x3(jnp.diag(jnp.array([3.0, 1.0, 2.0])))
        self.assertEqual(int(result.sweeps), 0)
        chex.assert_trees_all_close(result.eigenvalues, jnp.array([1.0, 2.0, 3.0]))

    def test_sweep_limit_reports_failure(self) -> None:
        result = symmetric_eigen_3x3(jnp.asarray(_random_symmetric(3)), max_sweeps=0)
        self.assertFalse(bool(result.converged))
        with pytest.raises(NumericalError):
            require_convergence(result)


class TestDisplacementConversions(chex.TestCase, parameterized.TestCase):
    """Test conversions between U_cart, U* and U_cif."""

    def setUp(self) -> None:
        super().setUp()
        self.monoclinic = create_crystal_lattice(
            [7.1, 9.3, 5.2], [90.0, 104.5, 90.0]
        )
        self.orthorhombic = create_crystal_lattice(
            [4.0, 5.0, 6.0], [90.0, 90.0, 90.0]
        )
        self.u_cart = jnp.array(
            [[0.021, 0.002, -0.001], [0.002, 0.015, 0.003], [-0.001, 0.003, 0.030]]
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_u_star_round_trip(self) -> None:
        def round_trip(u, lattice):
            return u_star_to_u_cart(u_cart_to_u_star(u, lattice), lattice)

        var_fn = self.variant(round_trip)
        chex.assert_trees_all_close(
            var_fn(self.u_cart, self.monoclinic), self.u_cart, atol=1e-14
        )

    def test_u_cif_round_trip(self) -> None:
        u_cif = u_cart_to_u_cif(self.u_cart, self.monoclinic)
        chex.assert_trees_all_close(
            u_cif_to_u_cart(u_cif, self.monoclinic), self.u_cart, atol=1e-14
        )

    def test_orthogonal_cell_conventions_agree(self) -> None:
        chex.assert_trees_all_close(
            u_cart_to_u_cif(self.u_cart, self.orthorhombic), self.u_cart, atol=1e-14
        )
        u_star = u_cart_to_u_star(self.u_cart, self.orthorhombic)
        chex.assert_trees_all_close(u_star[0, 0], 0.021 / 16.0, rtol=1e-12)

    def test_isotropic_tensor_is_rotation_invariant(self) -> None:
        cubic = create_crystal_lattice([5.0, 5.0, 5.0], [90.0, 90.0, 90.0])
        u_star = u_cart_to_u_star(u_iso_to_u_cart(0.02), cubic)
        rotations = jnp.array(
            [[[0, 1, 0], [0, 0, 1], [1, 0, 0]], [[-1, 0, 0], [0, 1, 0], [0, 0, -1]]]
        )
        rotated = rotate_u_star(jnp.broadcast_to(u_star, (2, 3, 3)), rotations)
        chex.assert_trees_all_close(
            rotated, jnp.broadcast_to(u_star, (2, 3, 3)), atol=1e-12
        )

    def test_equivalent_and_principal_displacements(self) -> None:
        chex.assert_trees_all_close(u_equivalent(self.u_cart), 0.022, rtol=1e-12)
        result = principal_displacements(self.u_cart)
        chex.assert_trees_all_close(
            jnp.sum(result.eigenvalues), jnp.trace(self.u_cart), rtol=1e-12
        )

    def test_b_and_u(self) -> None:
        b = jnp.array([0.5, 1.0, 3.2])
        chex.assert_trees_all_close(u_to_b(b_to_u(b)), b)
        chex.assert_trees_all_close(u_to_b(jnp.array(0.01)), 8.0 * np.pi**2 * 0.01)

    def test_default_u_iso(self) -> None:
        self.assertEqual(default_u_iso(1), 0.06)
        self.assertEqual(default_u_iso(26), 0.05)

    @parameterized.named_parameters(
        ("asymmetric", [[0.02, 0.01, 0.0], [0.0, 0.02, 0.0], [0.0, 0.0, 0.02]]),
        ("negative", [[0.02, 0.0, 0.0], [0.0, -0.02, 0.0], [0.0, 0.0, 0.02]]),
        ("non_finite", [[0.02, 0.0, 0.0], [0.0, jnp.inf, 0.0], [0.0, 0.0, 0.02]]),
    )
    def test_malformed_tensor_raises(self, tensor) -> None:
        with pytest.raises(ConversionError):
            check_displacement_tensor(jnp.array(tensor))
        with pytest.raises(ConversionError):
            u_cif_to_u_cart(jnp.array(tensor), self.monoclinic)

    def test_small_negative_eigenvalue_is_tolerated(self) -> None:
        tensor = jnp.diag(jnp.array([0.02, -1e-9, 0.01]))
        chex.assert_trees_all_close(check_displacement_tensor(tensor), tensor)
