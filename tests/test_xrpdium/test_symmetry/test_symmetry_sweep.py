"""Orbit invariance of intensities across many space-group settings.

For every sampled Hall number a lattice compatible with the point group is
built by averaging an arbitrary metric tensor over the rotations. Every
member of a reflection orbit must then share |F|² and the orbit-averaged
March-Dollase correction, and systematically absent reflections must have
vanishing structure factors.
"""

import chex
import jax.numpy as jnp
import numpy as np
from absl.testing import parameterized

from xrpdium.simul import orbit_march_dollase, structure_factors_squared
from xrpdium.symmetry import (
    is_systematically_absent,
    laue_class,
    point_group_rotations,
    reflection_orbit,
    space_group_from_hall_number,
)
from xrpdium.types import create_atom, create_crystal_lattice, create_crystal_structure
from xrpdium.ucell import lattice_from_metric_tensor, metric_tensor

_HALL_NUMBERS = (
    1, 2, 6, 18, 81, 90, 108, 115, 166, 250, 290, 349, 366,
    400, 420, 433, 434, 458, 469, 485, 488, 501, 517, 523, 530,
)
_PROBE_HKL = ((1, 2, 3), (2, 0, 1), (1, 1, 0), (3, 1, 4), (0, 0, 2))


def _compatible_structure(hall_number: int):
    group = space_group_from_hall_number(hall_number)
    generic = create_crystal_lattice([5.1, 6.3, 7.7], [84.0, 97.0, 103.0])
    g0 = np.asarray(metric_tensor(generic))
    rotations = np.asarray(point_group_rotations(group), dtype=np.float64)
    averaged = np.mean(
        np.einsum("nji,jk,nkl->nil", rotations, g0, rotations), axis=0
    )
    lattice = lattice_from_metric_tensor(jnp.asarray(averaged))
    u_cart = jnp.array(
        [[0.012, 0.002, 0.001], [0.002, 0.018, -0.003], [0.001, -0.003, 0.025]]
    )
    atoms = [
        create_atom("Si", [0.137, 0.271, 0.419]),
        create_atom("O", [0.613, 0.089, 0.347], occupancy=0.8, u_cart=u_cart),
    ]
    return create_crystal_structure(lattice, group, atoms)


class TestOrbitInvariance(chex.TestCase, parameterized.TestCase):
    """Sweep space groups and compare every orbit member."""

    @parameterized.named_parameters(
        *[(f"hall_{number}", number) for number in _HALL_NUMBERS]
    )
    def test_orbit_members_agree(self, hall_number) -> None:
        structure = _compatible_structure(hall_number)
        laue = laue_class(structure.space_group)
        po_hkl = jnp.array([1, 0, 2])
        for hkl in _PROBE_HKL:
            members = reflection_orbit(jnp.array(hkl), laue)
            f_squared = np.asarray(structure_factors_squared(members, structure))
            scale = max(float(np.max(f_squared)), 1.0)
            np.testing.assert_allclose(
                f_squared, f_squared[0], rtol=1e-8, atol=1e-9 * scale
            )
            orientation = np.asarray(
                orbit_march_dollase(structure.lattice, laue, po_hkl, members, 0.7)
            )
            np.testing.assert_array_equal(orientation, orientation[0])

    @parameterized.named_parameters(
        *[(f"hall_{number}", number) for number in _HALL_NUMBERS]
    )
    def test_absent_reflections_vanish(self, hall_number) -> None:
        structure = _compatible_structure(hall_number)
        indices = np.stack(
            np.meshgrid(range(3), range(-2, 3), range(-2, 3), indexing="ij"), axis=-1
        ).reshape(-1, 3)
        hkl = jnp.asarray(indices[np.any(indices != 0, axis=1)])
        absent = np.asarray(is_systematically_absent(hkl, structure.space_group))
        f_squared = np.asarray(structure_factors_squared(hkl, structure))
        scale = float(np.max(f_squared))
        self.assertTrue(np.all(f_squared[absent] <= 1e-10 * scale))
