"""Tests for atom expansion and reflection enumeration."""

import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized

from xrpdium.symmetry import (
    enumerate_reflections,
    expand_atoms,
    space_group_from_hall_number,
)
from xrpdium.types import (
    create_atom,
    create_crystal_lattice,
    create_crystal_structure,
    trivial_space_group,
)


def _rock_salt(a: float = 5.64):
    lattice = create_crystal_lattice([a, a, a], [90.0, 90.0, 90.0])
    atoms = [
        create_atom("Na", [0.0, 0.0, 0.0]),
        create_atom("Cl", [0.5, 0.5, 0.5]),
    ]
    return create_crystal_structure(
        lattice, space_group_from_hall_number(523), atoms
    )


class TestExpandAtoms(chex.TestCase, parameterized.TestCase):
    """Test generation of the full unit cell from the asymmetric unit."""

    def test_rock_salt(self) -> None:
        expanded = expand_atoms(_rock_salt())
        self.assertEqual(expanded.n_atoms, 8)
        self.assertEqual(expanded.space_group.name, "P1")
        self.assertEqual(int(jnp.sum(expanded.atomic_numbers == 11)), 4)
        self.assertEqual(int(jnp.sum(expanded.atomic_numbers == 17)), 4)
        sodium = np.asarray(expanded.frac_positions[expanded.atomic_numbers == 11])
        expected = np.array(
            [[0.0, 0.0, 0.0], [0.0, 0.5, 0.5], [0.5, 0.0, 0.5], [0.5, 0.5, 0.0]]
        )
        self.assertEqual(
            sorted(map(tuple, np.round(sodium, 6))), sorted(map(tuple, expected))
        )

    @parameterized.named_parameters(
        ("general", [0.13, 0.27, 0.41], 192),
        ("axis", [0.2, 0.0, 0.0], 24),
        ("body_diagonal", [0.25, 0.25, 0.25], 8),
        ("origin", [0.0, 0.0, 0.0], 4),
    )
    def test_site_multiplicities(self, position, expected) -> None:
        lattice = create_crystal_lattice([5.0, 5.0, 5.0], [90.0, 90.0, 90.0])
        structure = create_crystal_structure(
            lattice,
            space_group_from_hall_number(523),
            [create_atom("Si", position)],
        )
        self.assertEqual(expand_atoms(structure).n_atoms, expected)

    def test_positions_are_wrapped(self) -> None:
        lattice = create_crystal_lattice([5.0, 6.0, 7.0], [90.0, 95.0, 90.0])
        structure = create_crystal_structure(
            lattice,
            space_group_from_hall_number(81),
            [create_atom("O", [0.9, 0.1, 0.7], occupancy=0.5)],
        )
        expanded = expand_atoms(structure)
        self.assertEqual(expanded.n_atoms, 4)
        self.assertTrue(bool(jnp.all(expanded.frac_positions >= 0.0)))
        self.assertTrue(bool(jnp.all(expanded.frac_positions < 1.0)))
        chex.assert_trees_all_close(expanded.occupancies, jnp.full(4, 0.5))

    def test_displacement_tensors_follow_operators(self) -> None:
        lattice = create_crystal_lattice([5.0, 5.0, 5.0], [90.0, 90.0, 90.0])
        u_cart = jnp.diag(jnp.array([0.01, 0.02, 0.04]))
        structure = create_crystal_structure(
            lattice,
            space_group_from_hall_number(523),
            [create_atom("Si", [0.2, 0.0, 0.0], u_cart=u_cart)],
        )
        expanded = expand_atoms(structure)
        traces = jnp.trace(expanded.u_cart, axis1=1, axis2=2)
        chex.assert_trees_all_close(
            traces, jnp.full(expanded.n_atoms, 0.07), atol=1e-12
        )
        chex.assert_trees_all_close(expanded.u_cart[0], u_cart, atol=1e-12)
        for tensor in np.asarray(expanded.u_cart):
            np.testing.assert_allclose(
                np.sort(np.diag(tensor)), [0.01, 0.02, 0.04], atol=1e-12
            )
            np.testing.assert_allclose(
                tensor - np.diag(np.diag(tensor)), 0.0, atol=1e-12
            )

    def test_p1_is_unchanged(self) -> None:
        lattice = create_crystal_lattice([5.0, 5.0, 5.0], [90.0, 90.0, 90.0])
        structure = create_crystal_structure(
            lattice,
            trivial_space_group(),
            [create_atom("C", [0.1, 0.2, 0.3]), create_atom("N", [0.6, 0.7, 0.8])],
        )
        expanded = expand_atoms(structure)
        chex.assert_trees_all_close(
            expanded.frac_positions, structure.frac_positions, atol=1e-12
        )
        chex.assert_trees_all_close(expanded.u_cart, structure.u_cart, atol=1e-12)


class TestEnumerateReflections(chex.TestCase):
    """Test the candidate reflections of rock salt."""

    def test_rock_salt_window(self) -> None:
        candidates = enumerate_reflections(_rock_salt(), 1.5406, 10.0, 60.0, exact=True)
        chex.assert_trees_all_equal(
            candidates.hkl,
            jnp.array(
                [[1, 1, 1], [2, 0, 0], [2, 2, 0], [3, 1, 1], [2, 2, 2]],
                dtype=jnp.int32,
            ),
        )
        chex.assert_trees_all_equal(
            candidates.multiplicity, jnp.array([8, 6, 12, 24, 8])
        )
        chex.assert_trees_all_close(
            candidates.two_theta[:3], jnp.array([27.367, 31.704, 45.449]), atol=0.05
        )
        self.assertTrue(bool(jnp.all(jnp.diff(candidates.two_theta) > 0.0)))

    def test_tails_below_window_are_kept(self) -> None:
        exact = enumerate_reflections(_rock_salt(), 1.5406, 30.0, 50.0, exact=True)
        loose = enumerate_reflections(_rock_salt(), 1.5406, 30.0, 50.0, exact=False)
        self.assertEqual(exact.hkl.shape[0], 2)
        self.assertEqual(loose.hkl.shape[0], 3)
        chex.assert_trees_all_equal(loose.hkl[0], jnp.array([1, 1, 1], dtype=jnp.int32))

    def test_empty_window(self) -> None:
        candidates = enumerate_reflections(_rock_salt(), 1.5406, 5.0, 20.0, exact=True)
        chex.assert_shape(candidates.hkl, (0, 3))
        chex.assert_shape(candidates.two_theta, (0,))

    def test_window_is_capped_at_backscattering(self) -> None:
        candidates = enumerate_reflections(
            _rock_salt(), 1.5406, 100.0, 179.0, exact=True
        )
        self.assertGreater(candidates.hkl.shape[0], 0)
        self.assertTrue(bool(jnp.all(jnp.isfinite(candidates.two_theta))))
        self.assertTrue(bool(jnp.all(candidates.d_spacing >= 1.5406 / 2.0)))
