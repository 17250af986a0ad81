"""Expansion of the asymmetric unit to the full unit cell.

Routine Listings
----------------
expand_atoms : function
    Apply all space-group operators and remove coincident images
"""

import logging

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype

from xrpdium.types import CrystalStructure, trivial_space_group
from xrpdium.ucell import (
    lattice_vectors,
    rotate_u_star,
    u_cart_to_u_star,
    u_star_to_u_cart,
)

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


def _wrap_unit_cell(positions: np.ndarray, tolerance: float = 1e-8) -> np.ndarray:
    wrapped = np.mod(positions, 1.0)
    wrapped[np.abs(wrapped - 1.0) < tolerance] = 0.0
    return wrapped


def _distinct_images(
    images: np.ndarray, cell: np.ndarray, tolerance: float
) -> np.ndarray:
    difference = images[:, None, :] - images[None, :, :]
    difference -= np.round(difference)
    distance = np.linalg.norm(difference @ cell, axis=-1)
    accepted = []
    for index in range(images.shape[0]):
        if all(distance[index, other] >= tolerance for other in accepted):
            accepted.append(index)
    return np.asarray(accepted, dtype=np.int64)


@beartype
def expand_atoms(
    structure: CrystalStructure, tolerance: float = 0.01
) -> CrystalStructure:
    """
    Description
    -----------
    Generate every symmetry-equivalent atom in the unit cell.

    Each atom of the asymmetric unit is mapped by every operator
    x' = R x + t of the space group and wrapped into [0, 1). An image is
    kept only if its shortest periodic distance to every image of the same
    atom accepted so far is at least ``tolerance``, so atoms on special
    positions appear once. Displacement tensors follow the operators as
    U*' = R U* Rᵀ.

    Parameters
    ----------
    - `structure` (CrystalStructure):
        Asymmetric unit with its space group
    - `tolerance` (float, optional):
        Distance in Å below which two images coincide. Default is 0.01

    Returns
    -------
    - `expanded` (CrystalStructure):
        All atoms of the unit cell with the trivial space group P1
    """
    rotations = np.asarray(structure.space_group.rotations, dtype=np.float64)
    translations = np.asarray(structure.space_group.translations)
    cell = np.asarray(lattice_vectors(structure.lattice))
    u_star = u_cart_to_u_star(structure.u_cart, structure.lattice)

    positions, numbers, occupancies, tensors = [], [], [], []
    for atom in range(structure.n_atoms):
        source = np.asarray(structure.frac_positions[atom])
        images = _wrap_unit_cell(
            np.einsum("nij,j->ni", rotations, source) + translations
        )
        accepted = _distinct_images(images, cell, tolerance)
        image_tensors = rotate_u_star(
            jnp.broadcast_to(u_star[atom], (accepted.shape[0], 3, 3)),
            jnp.asarray(rotations[accepted]),
        )
        positions.append(images[accepted])
        numbers.append(
            np.full(accepted.shape[0], int(structure.atomic_numbers[atom]))
        )
        occupancies.append(
            np.full(accepted.shape[0], float(structure.occupancies[atom]))
        )
        tensors.append(
            np.asarray(u_star_to_u_cart(image_tensors, structure.lattice))
        )
    expanded = CrystalStructure(
        lattice=structure.lattice,
        space_group=trivial_space_group(),
        frac_positions=jnp.asarray(np.concatenate(positions), dtype=jnp.float64),
        atomic_numbers=jnp.asarray(np.concatenate(numbers), dtype=jnp.int32),
        occupancies=jnp.asarray(np.concatenate(occupancies), dtype=jnp.float64),
        u_cart=jnp.asarray(np.concatenate(tensors), dtype=jnp.float64),
    )
    logger.debug(
        "expanded %d atoms of %s to %d atoms in the unit cell",
        structure.n_atoms,
        structure.space_group.name or "the asymmetric unit",
        expanded.n_atoms,
    )
    return expanded
