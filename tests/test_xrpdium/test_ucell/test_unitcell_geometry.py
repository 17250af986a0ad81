"""Tests for cell geometry, Bragg's law and Miller index generation."""

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from xrpdium.types import GeometryError, create_crystal_lattice
from xrpdium.ucell import (
    bragg_two_theta,
    build_cell_vectors,
    cell_volume,
    compute_lengths_angles,
    d_from_two_theta,
    d_spacing,
    generate_miller_indices,
    lattice_from_metric_tensor,
    lattice_vectors,
    metric_tensor,
    miller_index_limits,
    observable_mask,
    reciprocal_cell_parameters,
    reciprocal_metric_tensor,
    reciprocal_vector,
    reciprocal_vectors,
    two_theta_from_d,
)


class TestCellVectors(chex.TestCase, parameterized.TestCase):
    """Test direct and reciprocal cell vectors and metric tensors."""

    def setUp(self) -> None:
        super().setUp()
        self.cubic = create_crystal_lattice([5.64, 5.64, 5.64], [90.0, 90.0, 90.0])
        self.monoclinic = create_crystal_lattice(
            [7.1, 9.3, 5.2], [90.0, 104.5, 90.0]
        )
        self.triclinic = create_crystal_lattice(
            [4.3, 5.1, 6.7], [81.0, 97.5, 112.0]
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_cubic_vectors(self) -> None:
        var_fn = self.variant(lattice_vectors)
        chex.assert_trees_all_close(
            var_fn(self.cubic), 5.64 * jnp.eye(3), atol=1e-12
        )

    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("cubic", [5.64, 5.64, 5.64], [90.0, 90.0, 90.0]),
        ("monoclinic", [7.1, 9.3, 5.2], [90.0, 104.5, 90.0]),
        ("triclinic", [4.3, 5.1, 6.7], [81.0, 97.5, 112.0]),
    )
    def test_lengths_angles_round_trip(self, lengths, angles) -> None:
        vectors = build_cell_vectors(*lengths, *angles)
        var_fn = self.variant(compute_lengths_angles)
        got_lengths, got_angles = var_fn(vectors)
        chex.assert_trees_all_close(got_lengths, jnp.array(lengths), rtol=1e-10)
        chex.assert_trees_all_close(got_angles, jnp.array(angles), rtol=1e-10)

    def test_reciprocal_duality(self) -> None:
        for lattice in (self.cubic, self.monoclinic, self.triclinic):
            product = lattice_vectors(lattice) @ reciprocal_vectors(lattice).T
            chex.assert_trees_all_close(product, jnp.eye(3), atol=1e-12)
            chex.assert_trees_all_close(
                reciprocal_metric_tensor(lattice),
                jnp.linalg.inv(metric_tensor(lattice)),
                rtol=1e-10,
            )

    def test_reciprocal_parameters(self) -> None:
        lengths, angles = reciprocal_cell_parameters(self.monoclinic)
        sin_beta = np.sin(np.radians(104.5))
        chex.assert_trees_all_close(
            lengths,
            jnp.array([1.0 / (7.1 * sin_beta), 1.0 / 9.3, 1.0 / (5.2 * sin_beta)]),
            rtol=1e-12,
        )
        chex.assert_trees_all_close(angles, jnp.array([90.0, 75.5, 90.0]), rtol=1e-10)
        chex.assert_trees_all_close(
            reciprocal_vector(self.cubic, jnp.array([[1, 1, 1], [0, -2, 0]])),
            jnp.array([[1.0, 1.0, 1.0], [0.0, -2.0, 0.0]]) / 5.64,
            atol=1e-12,
        )

    def test_monoclinic_volume(self) -> None:
        expected = 7.1 * 9.3 * 5.2 * np.sin(np.radians(104.5))
        chex.assert_trees_all_close(cell_volume(self.monoclinic), expected, rtol=1e-12)

    def test_lattice_from_metric_tensor(self) -> None:
        rebuilt = lattice_from_metric_tensor(metric_tensor(self.triclinic))
        chex.assert_trees_all_close(
            rebuilt.cell_lengths, self.triclinic.cell_lengths, rtol=1e-10
        )
        chex.assert_trees_all_close(
            rebuilt.cell_angles, self.triclinic.cell_angles, rtol=1e-10
        )

    def test_invalid_metric_tensor_raises(self) -> None:
        with pytest.raises(GeometryError):
            lattice_from_metric_tensor(jnp.diag(jnp.array([1.0, 0.0, 1.0])))


class TestBraggLaw(chex.TestCase, parameterized.TestCase):
    """Test d-spacings and the conversion between d and 2θ."""

    def setUp(self) -> None:
        super().setUp()
        self.lattice = create_crystal_lattice([5.64, 5.64, 5.64], [90.0, 90.0, 90.0])
        self.wavelength = 1.5406

    @chex.variants(with_jit=True, without_jit=True)
    @parameterized.named_parameters(
        ("111", [1, 1, 1], 5.64 / np.sqrt(3.0)),
        ("200", [2, 0, 0], 2.82),
        ("220", [2, 2, 0], 5.64 / np.sqrt(8.0)),
        ("negative", [-3, 1, -1], 5.64 / np.sqrt(11.0)),
    )
    def test_cubic_d_spacing(self, hkl, expected) -> None:
        var_fn = self.variant(d_spacing)
        chex.assert_trees_all_close(
            var_fn(self.lattice, jnp.array(hkl)), expected, rtol=1e-12
        )

    def test_triclinic_d_spacing_matches_metric(self) -> None:
        lattice = create_crystal_lattice([4.3, 5.1, 6.7], [81.0, 97.5, 112.0])
        hkl = jnp.array([[1, 0, 0], [1, -2, 3], [0, 2, -1]])
        g_star = np.linalg.inv(np.asarray(metric_tensor(lattice)))
        hkl_np = np.asarray(hkl, dtype=float)
        expected = 1.0 / np.sqrt(np.einsum("ni,ij,nj->n", hkl_np, g_star, hkl_np))
        chex.assert_trees_all_close(d_spacing(lattice, hkl), expected, rtol=1e-10)

    def test_nacl_angles(self) -> None:
        d = d_spacing(self.lattice, jnp.array([[1, 1, 1], [2, 0, 0], [2, 2, 0]]))
        two_theta = bragg_two_theta(d, self.wavelength)
        chex.assert_trees_all_close(
            two_theta, jnp.array([27.367, 31.704, 45.449]), atol=0.05
        )

    @chex.variants(with_jit=True, without_jit=True)
    def test_d_two_theta_round_trip(self) -> None:
        d = jnp.array([0.9, 1.2, 2.5, 4.0, 12.0])

        def round_trip(values):
            return d_from_two_theta(two_theta_from_d(values, 1.5406), 1.5406)

        var_fn = self.variant(round_trip)
        chex.assert_trees_all_close(var_fn(d), d, rtol=1e-10)

    def test_unobservable_reflection(self) -> None:
        d = jnp.array([2.0, 0.7])
        two_theta = two_theta_from_d(d, self.wavelength)
        self.assertTrue(bool(jnp.isfinite(two_theta[0])))
        self.assertTrue(bool(jnp.isnan(two_theta[1])))
        with pytest.raises(GeometryError):
            bragg_two_theta(d, self.wavelength)
        chex.assert_trees_all_equal(
            observable_mask(d, self.wavelength), jnp.array([True, False])
        )


class TestMillerIndices(chex.TestCase):
    """Test Miller index grids and their bounds."""

    def test_index_grid_excludes_origin(self) -> None:
        hkl = generate_miller_indices(1, 1, 1)
        chex.assert_shape(hkl, (26, 3))
        self.assertFalse(bool(jnp.any(jnp.all(hkl == 0, axis=1))))

    def test_reciprocal_vectors_of_index_grid(self) -> None:
        lattice = create_crystal_lattice([2.0, 4.0, 5.0], [90.0, 90.0, 90.0])
        hkl = generate_miller_indices(2, 1, 1)
        vectors = reciprocal_vector(lattice, hkl)
        chex.assert_shape(vectors, (hkl.shape[0], 3))
        expected = jnp.asarray(hkl, dtype=jnp.float64) / jnp.array([2.0, 4.0, 5.0])
        chex.assert_trees_all_close(vectors, expected, atol=1e-12)

    def test_limits_contain_all_reflections(self) -> None:
        lattice = create_crystal_lattice([4.3, 5.1, 6.7], [81.0, 97.5, 112.0])
        d_min = 1.1
        limits = miller_index_limits(lattice, d_min)
        wide = generate_miller_indices(*(2 * n for n in limits))
        d = d_spacing(lattice, wide)
        inside = wide[d >= d_min]
        self.assertTrue(bool(jnp.all(jnp.abs(inside) <= jnp.array(limits))))
