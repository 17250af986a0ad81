"""Data structures and factory functions for crystal structures.

Extended Summary
----------------
This module defines the JAX-compatible PyTrees that describe the input of a
powder simulation: the unit cell, the space group, the atoms of the
asymmetric unit and the assembled crystal structure. Every type is built by
a ``create_*`` factory that validates its arguments on the host before the
data enters any traced computation.

Routine Listings
----------------
CrystalLattice : PyTree
    Six cell parameters of a unit cell
SymmetryOperator : PyTree
    Rotation (or roto-inversion) plus translation modulo 1
SpaceGroup : PyTree
    Closed, duplicate-free list of symmetry operators
Atom : PyTree
    One atomic site with occupancy and displacement tensor
CrystalStructure : PyTree
    Lattice, space group and the stacked atoms of the asymmetric unit
create_crystal_lattice : function
    Factory function to create CrystalLattice instances
create_symmetry_operator : function
    Factory function to create SymmetryOperator instances
compose_operators : function
    Compose two symmetry operators
create_space_group : function
    Factory function to create SpaceGroup instances
create_atom : function
    Factory function to create Atom instances
create_crystal_structure : function
    Factory function to create CrystalStructure instances
"""

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Sequence, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Bool, Float, Int, Num, jaxtyped

from .custom_types import non_jax_number, scalar_float, scalar_int
from .errors import GeometryError

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class CrystalLattice(NamedTuple):
    """
    Description
    -----------
    The six parameters of a unit cell.

    Attributes
    ----------
    - `cell_lengths` (Float[Array, "3"]):
        Cell lengths a, b, c in Ångstroms.
    - `cell_angles` (Float[Array, "3"]):
        Cell angles α, β, γ in degrees. α is the angle between b and c,
        β between a and c, γ between a and b.

    Notes
    -----
    The metric tensor, the reciprocal lattice and every other derived
    quantity are computed on demand by :mod:`xrpdium.ucell`.
    """

    cell_lengths: Float[Array, " 3"]
    cell_angles: Float[Array, " 3"]

    def tree_flatten(self):
        return ((self.cell_lengths, self.cell_angles), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@jaxtyped(typechecker=beartype)
def create_crystal_lattice(
    cell_lengths: Union[Num[Array, " 3"], Sequence[non_jax_number]],
    cell_angles: Union[Num[Array, " 3"], Sequence[non_jax_number]],
) -> CrystalLattice:
    """
    Description
    -----------
    Factory function to create a CrystalLattice with validation.

    Parameters
    ----------
    - `cell_lengths` (Num[Array, "3"]):
        Cell lengths a, b, c in Ångstroms
    - `cell_angles` (Num[Array, "3"]):
        Cell angles α, β, γ in degrees

    Returns
    -------
    - `lattice` (CrystalLattice):
        Validated lattice

    Raises
    ------
    - GeometryError:
        If a length is not positive, an angle is outside (0, 180) or the
        three angles cannot close a cell of positive volume.

    Flow
    ----
    - Convert inputs to float64 arrays
    - Check shapes and finiteness
    - Check lengths and angle ranges
    - Check the volume factor
      1 - cos²α - cos²β - cos²γ + 2 cosα cosβ cosγ is positive
    """
    cell_lengths = jnp.asarray(cell_lengths, dtype=jnp.float64)
    cell_angles = jnp.asarray(cell_angles, dtype=jnp.float64)
    if cell_lengths.shape != (3,) or cell_angles.shape != (3,):
        raise GeometryError("cell_lengths and cell_angles must have shape (3,)")
    if not bool(jnp.all(jnp.isfinite(cell_lengths))) or not bool(
        jnp.all(jnp.isfinite(cell_angles))
    ):
        raise GeometryError("cell parameters must be finite")
    if not bool(jnp.all(cell_lengths > 0.0)):
        raise GeometryError(f"cell lengths must be positive, got {cell_lengths}")
    if not bool(jnp.all((cell_angles > 0.0) & (cell_angles < 180.0))):
        raise GeometryError(
            f"cell angles must lie strictly between 0 and 180, got {cell_angles}"
        )
    cosines = jnp.cos(jnp.radians(cell_angles))
    volume_factor = (
        1.0
        - jnp.sum(cosines**2)
        + 2.0 * cosines[0] * cosines[1] * cosines[2]
    )
    if not bool(volume_factor > 1e-12):
        raise GeometryError(
            f"cell angles {cell_angles} do not describe a cell of positive volume"
        )
    return CrystalLattice(cell_lengths=cell_lengths, cell_angles=cell_angles)


@register_pytree_node_class
class SymmetryOperator(NamedTuple):
    """
    Description
    -----------
    A crystallographic symmetry operator x' = R x + t acting on fractional
    coordinates.

    Attributes
    ----------
    - `rotation` (Int[Array, "3 3"]):
        Rotation or roto-inversion part, determinant ±1.
    - `translation` (Float[Array, "3"]):
        Translation part, each component in [0, 1).
    """

    rotation: Int[Array, " 3 3"]
    translation: Float[Array, " 3"]

    def tree_flatten(self):
        return ((self.rotation, self.translation), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


def _wrap_translations(
    translations: np.ndarray, tolerance: float = 1e-6
) -> np.ndarray:
    wrapped = np.mod(translations, 1.0)
    wrapped[np.abs(wrapped - 1.0) < tolerance] = 0.0
    wrapped[np.abs(wrapped) < tolerance] = 0.0
    return wrapped


@jaxtyped(typechecker=beartype)
def create_symmetry_operator(
    rotation: Union[Num[Array, " 3 3"], Sequence[Sequence[int]]],
    translation: Union[
        Num[Array, " 3"], Sequence[non_jax_number]
    ] = (0.0, 0.0, 0.0),
) -> SymmetryOperator:
    """
    Description
    -----------
    Factory function to create a SymmetryOperator.

    Parameters
    ----------
    - `rotation` (Num[Array, "3 3"]):
        Integer rotation matrix in the fractional basis
    - `translation` (Num[Array, "3"], optional):
        Translation vector; wrapped into [0, 1). Default is zero.

    Returns
    -------
    - `operator` (SymmetryOperator):
        Validated operator

    Raises
    ------
    - ValueError:
        If the rotation is not integral or its determinant is not ±1
    """
    rotation_np = np.asarray(rotation, dtype=np.float64)
    if rotation_np.shape != (3, 3):
        raise ValueError("rotation must have shape (3, 3)")
    if not np.allclose(rotation_np, np.round(rotation_np)):
        raise ValueError("rotation must be an integer matrix")
    determinant = np.linalg.det(rotation_np)
    if not np.isclose(abs(determinant), 1.0):
        raise ValueError(
            f"rotation must have determinant +1 or -1, got {determinant:.3f}"
        )
    translation_np = _wrap_translations(
        np.asarray(translation, dtype=np.float64).reshape(3)
    )
    return SymmetryOperator(
        rotation=jnp.asarray(np.round(rotation_np), dtype=jnp.int32),
        translation=jnp.asarray(translation_np, dtype=jnp.float64),
    )


@jaxtyped(typechecker=beartype)
def compose_operators(
    first: SymmetryOperator, second: SymmetryOperator
) -> SymmetryOperator:
    """
    Description
    -----------
    Return the operator that applies ``second`` and then ``first``:
    x -> R1 (R2 x + t2) + t1, with the translation wrapped modulo 1.
    """
    rotation = first.rotation @ second.rotation
    translation = first.rotation @ second.translation + first.translation
    return create_symmetry_operator(rotation, translation)


@register_pytree_node_class
class SpaceGroup(NamedTuple):
    """
    Description
    -----------
    An ordered, duplicate-free set of symmetry operators that is closed
    under composition. The identity is always the first operator.

    Attributes
    ----------
    - `rotations` (Int[Array, "n_ops 3 3"]):
        Rotation parts of all operators.
    - `translations` (Float[Array, "n_ops 3"]):
        Translation parts of all operators, in [0, 1).
    - `name` (str):
        Hermann-Mauguin symbol or any other label. Static metadata.

    Notes
    -----
    The Laue class that governs reflection equivalence is derived from the
    rotation parts by :func:`xrpdium.symmetry.laue_class`. The full set of
    operators governs the expansion of the asymmetric unit.
    """

    rotations: Int[Array, " n_ops 3 3"]
    translations: Float[Array, " n_ops 3"]
    name: str

    def tree_flatten(self):
        return ((self.rotations, self.translations), self.name)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        rotations, translations = children
        return cls(rotations=rotations, translations=translations, name=aux_data)

    @property
    def n_operators(self) -> int:
        return int(self.rotations.shape[0])

    def operator(self, index: int) -> SymmetryOperator:
        return SymmetryOperator(
            rotation=self.rotations[index], translation=self.translations[index]
        )


def _rotation_match(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    return np.all(
        first.reshape(-1, 1, 9) == second.reshape(1, -1, 9), axis=-1
    )


def _periodic_match(
    first: np.ndarray, second: np.ndarray, tolerance: float
) -> np.ndarray:
    difference = first[:, None, :] - second[None, :, :]
    difference -= np.round(difference)
    return np.all(np.abs(difference) < tolerance, axis=-1)


@jaxtyped(typechecker=beartype)
def create_space_group(
    rotations: Union[Num[Array, " n_ops 3 3"], np.ndarray],
    translations: Union[Num[Array, " n_ops 3"], np.ndarray],
    name: str = "",
    check_closure: bool = True,
    tolerance: float = 1e-4,
) -> SpaceGroup:
    """
    Description
    -----------
    Factory function to create a SpaceGroup with validation.

    Parameters
    ----------
    - `rotations` (Num[Array, "n_ops 3 3"]):
        Integer rotation matrices
    - `translations` (Num[Array, "n_ops 3"]):
        Translation vectors
    - `name` (str, optional):
        Label of the group. Default is ""
    - `check_closure` (bool, optional):
        Verify that the operators form a group. Default is True
    - `tolerance` (float, optional):
        Tolerance when comparing translations. Default is 1e-4

    Returns
    -------
    - `space_group` (SpaceGroup):
        Validated space group, identity first

    Raises
    ------
    - ValueError:
        If a rotation is not ±1-determinant integral, the identity is
        missing, or the set is not closed under composition

    Flow
    ----
    - Wrap translations into [0, 1)
    - Drop duplicate operators, keeping the first occurrence
    - Move the identity to the front
    - Compose every pair of operators and look the product up in the set
    """
    rotations_np = np.asarray(rotations, dtype=np.float64).reshape(-1, 3, 3)
    translations_np = np.asarray(translations, dtype=np.float64).reshape(-1, 3)
    if rotations_np.shape[0] != translations_np.shape[0]:
        raise ValueError("rotations and translations must have the same length")
    if rotations_np.shape[0] == 0:
        raise ValueError("a space group needs at least one operator")
    if not np.allclose(rotations_np, np.round(rotations_np)):
        raise ValueError("rotations must be integer matrices")
    rotations_np = np.round(rotations_np).astype(np.int64)
    determinants = np.round(np.linalg.det(rotations_np)).astype(np.int64)
    if not np.all(np.abs(determinants) == 1):
        raise ValueError("every rotation must have determinant +1 or -1")
    translations_np = _wrap_translations(translations_np, tolerance)

    same = _rotation_match(rotations_np, rotations_np) & _periodic_match(
        translations_np, translations_np, tolerance
    )
    keep = ~np.any(np.tril(same, k=-1), axis=1)
    rotations_np = rotations_np[keep]
    translations_np = translations_np[keep]

    identity = np.all(rotations_np == np.eye(3, dtype=np.int64), axis=(1, 2)) & (
        np.all(np.abs(translations_np) < tolerance, axis=1)
    )
    if not np.any(identity):
        raise ValueError("a space group must contain the identity operator")
    order = np.concatenate(
        [np.flatnonzero(identity)[:1], np.flatnonzero(~identity)]
    )
    rotations_np = rotations_np[order]
    translations_np = translations_np[order]

    if check_closure:
        for rotation, translation in zip(rotations_np, translations_np):
            product_rotations = np.einsum("ij,njk->nik", rotation, rotations_np)
            product_translations = (
                translations_np @ rotation.T + translation[None, :]
            )
            matches = _rotation_match(
                product_rotations, rotations_np
            ) & _periodic_match(product_translations, translations_np, tolerance)
            if not np.all(np.any(matches, axis=1)):
                raise ValueError(
                    f"symmetry operators of {name or 'space group'} are not "
                    "closed under composition"
                )

    return SpaceGroup(
        rotations=jnp.asarray(rotations_np, dtype=jnp.int32),
        translations=jnp.asarray(translations_np, dtype=jnp.float64),
        name=name,
    )


@register_pytree_node_class
class Atom(NamedTuple):
    """
    Description
    -----------
    One atomic site of the asymmetric unit.

    Attributes
    ----------
    - `atomic_number` (Int[Array, ""]):
        Element identity as atomic number Z.
    - `frac_position` (Float[Array, "3"]):
        Fractional coordinates.
    - `occupancy` (Float[Array, ""]):
        Site occupancy in (0, 1].
    - `u_cart` (Float[Array, "3 3"]):
        Mean-square displacement tensor in the Cartesian frame of
        :func:`xrpdium.ucell.build_cell_vectors`, in Å². Isotropic sites
        carry U_iso times the identity.
    - `anisotropic` (Bool[Array, ""]):
        Whether the site was given an anisotropic tensor.
    """

    atomic_number: Int[Array, ""]
    frac_position: Float[Array, " 3"]
    occupancy: Float[Array, ""]
    u_cart: Float[Array, " 3 3"]
    anisotropic: Bool[Array, ""]

    def tree_flatten(self):
        return (
            (
                self.atomic_number,
                self.frac_position,
                self.occupancy,
                self.u_cart,
                self.anisotropic,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)


@beartype
def create_atom(
    element: Union[str, scalar_int],
    frac_position: Union[Num[Array, " 3"], Sequence[non_jax_number]],
    occupancy: scalar_float = 1.0,
    u_iso: Optional[scalar_float] = None,
    u_cart: Optional[Union[Num[Array, " 3 3"], np.ndarray]] = None,
) -> Atom:
    """
    Description
    -----------
    Factory function to create an Atom.

    Parameters
    ----------
    - `element` (Union[str, int]):
        Element symbol such as "Na" or atomic number
    - `frac_position` (Num[Array, "3"]):
        Fractional coordinates
    - `occupancy` (scalar_float, optional):
        Site occupancy in (0, 1]. Default is 1.0
    - `u_iso` (scalar_float, optional):
        Isotropic mean-square displacement in Å²
    - `u_cart` (Num[Array, "3 3"], optional):
        Anisotropic Cartesian displacement tensor in Å². Takes precedence
        over ``u_iso``.

    Returns
    -------
    - `atom` (Atom):
        Validated atom. Without any displacement parameters the site gets
        U_iso = 0.05 Å² (0.06 Å² for hydrogen).

    Raises
    ------
    - ValueError:
        If the element is unknown, the occupancy is outside (0, 1] or the
        position is not finite
    - ConversionError:
        If ``u_cart`` is not symmetric or not positive semi-definite
    """
    from xrpdium.ucell.adp import check_displacement_tensor, default_u_iso

    if isinstance(element, str):
        from xrpdium.inout.data_io import atomic_number_of

        atomic_number = atomic_number_of(element)
    else:
        atomic_number = int(element)
    if atomic_number < 1:
        raise ValueError(f"atomic number must be positive, got {atomic_number}")
    position = jnp.asarray(frac_position, dtype=jnp.float64)
    if position.shape != (3,) or not bool(jnp.all(jnp.isfinite(position))):
        raise ValueError("frac_position must be three finite numbers")
    occupancy = jnp.asarray(occupancy, dtype=jnp.float64)
    if not bool((occupancy > 0.0) & (occupancy <= 1.0)):
        raise ValueError(f"occupancy must lie in (0, 1], got {occupancy}")

    if u_cart is not None:
        tensor = check_displacement_tensor(jnp.asarray(u_cart, dtype=jnp.float64))
        anisotropic = True
    else:
        if u_iso is None:
            u_iso = default_u_iso(atomic_number)
        if not bool(jnp.asarray(u_iso) >= 0.0):
            raise ValueError(f"u_iso must be non-negative, got {u_iso}")
        tensor = jnp.asarray(u_iso, dtype=jnp.float64) * jnp.eye(
            3, dtype=jnp.float64
        )
        anisotropic = False
    return Atom(
        atomic_number=jnp.asarray(atomic_number, dtype=jnp.int32),
        frac_position=position,
        occupancy=occupancy,
        u_cart=tensor,
        anisotropic=jnp.asarray(anisotropic),
    )


@register_pytree_node_class
class CrystalStructure(NamedTuple):
    """
    Description
    -----------
    A crystal structure ready for powder simulation: lattice, space group
    and the atoms of the asymmetric unit stacked into arrays.

    Attributes
    ----------
    - `lattice` (CrystalLattice):
        Unit cell.
    - `space_group` (SpaceGroup):
        Symmetry operators used to expand the asymmetric unit.
    - `frac_positions` (Float[Array, "N 3"]):
        Fractional coordinates.
    - `atomic_numbers` (Int[Array, "N"]):
        Atomic numbers.
    - `occupancies` (Float[Array, "N"]):
        Site occupancies.
    - `u_cart` (Float[Array, "N 3 3"]):
        Cartesian displacement tensors in Å².

    Notes
    -----
    The structure is an immutable input. Expanded copies are produced by
    :func:`xrpdium.symmetry.expand_atoms`, whose result uses the trivial
    space group P1.
    """

    lattice: CrystalLattice
    space_group: SpaceGroup
    frac_positions: Float[Array, " N 3"]
    atomic_numbers: Int[Array, " N"]
    occupancies: Float[Array, " N"]
    u_cart: Float[Array, " N 3 3"]

    def tree_flatten(self):
        return (
            (
                self.lattice,
                self.space_group,
                self.frac_positions,
                self.atomic_numbers,
                self.occupancies,
                self.u_cart,
            ),
            None,
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)

    @property
    def n_atoms(self) -> int:
        return int(self.frac_positions.shape[0])


@beartype
def create_crystal_structure(
    lattice: CrystalLattice,
    space_group: SpaceGroup,
    atoms: Sequence[Atom],
) -> CrystalStructure:
    """
    Description
    -----------
    Factory function to create a CrystalStructure from a list of atoms.

    Parameters
    ----------
    - `lattice` (CrystalLattice):
        Validated unit cell
    - `space_group` (SpaceGroup):
        Validated space group
    - `atoms` (Sequence[Atom]):
        Atoms of the asymmetric unit

    Returns
    -------
    - `structure` (CrystalStructure):
        Structure with stacked atom arrays

    Raises
    ------
    - ValueError:
        If no atoms are given
    """
    if len(atoms) == 0:
        raise ValueError("a crystal structure needs at least one atom")
    return CrystalStructure(
        lattice=lattice,
        space_group=space_group,
        frac_positions=jnp.stack([atom.frac_position for atom in atoms]),
        atomic_numbers=jnp.stack([atom.atomic_number for atom in atoms]),
        occupancies=jnp.stack([atom.occupancy for atom in atoms]),
        u_cart=jnp.stack([atom.u_cart for atom in atoms]),
    )


@jaxtyped(typechecker=beartype)
def trivial_space_group() -> SpaceGroup:
    """Space group P1, containing only the identity."""
    return SpaceGroup(
        rotations=jnp.eye(3, dtype=jnp.int32)[None, :, :],
        translations=jnp.zeros((1, 3), dtype=jnp.float64),
        name="P1",
    )
