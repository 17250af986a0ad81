"""Space groups from the spglib database and their Laue classes.

Extended Summary
----------------
Space-group tables are not built here. spglib's database supplies the
symmetry operators of all 530 Hall settings of the 230 space groups; this
module wraps them into validated :class:`~xrpdium.types.SpaceGroup`
PyTrees and derives the point-group quantities the powder engine needs.

Routine Listings
----------------
space_group_from_hall_number : function
    SpaceGroup for one of the 530 Hall settings
space_group_from_symbol : function
    SpaceGroup for a Hermann-Mauguin symbol in its default setting
hall_number_from_symbol : function
    Default Hall setting of a Hermann-Mauguin symbol
point_group_rotations : function
    Distinct rotation parts of a space group
laue_class : function
    Rotations of the point group together with their negations
is_centrosymmetric : function
    Whether the point group contains the inversion
has_inversion_at_origin : function
    Whether the space group contains the operator -x, -y, -z
"""

import functools
import logging

import jax
import jax.numpy as jnp
import numpy as np
import spglib
from beartype import beartype
from jaxtyping import Array, Int

from xrpdium.types import SpaceGroup, create_space_group

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

N_HALL_NUMBERS: int = 530


@functools.lru_cache(maxsize=None)
def _hall_symbols() -> dict:
    symbols = {}
    for hall_number in range(1, N_HALL_NUMBERS + 1):
        symbol = spglib.get_spacegroup_type(hall_number).international_short
        symbols.setdefault(symbol.replace(" ", ""), hall_number)
    return symbols


@beartype
def hall_number_from_symbol(symbol: str) -> int:
    """First (default) Hall number whose short Hermann-Mauguin symbol matches.

    Raises
    ------
    ValueError
        If spglib knows no space group with that symbol.
    """
    key = symbol.replace(" ", "")
    try:
        return _hall_symbols()[key]
    except KeyError:
        raise ValueError(f"unknown space group symbol {symbol!r}") from None


@functools.lru_cache(maxsize=None)
def _space_group_from_database(hall_number: int) -> SpaceGroup:
    symmetry = spglib.get_symmetry_from_database(hall_number)
    name = spglib.get_spacegroup_type(hall_number).international_short
    logger.debug(
        "loaded %d operators of %s (Hall number %d)",
        len(symmetry["rotations"]),
        name,
        hall_number,
    )
    return create_space_group(
        np.asarray(symmetry["rotations"]),
        np.asarray(symmetry["translations"]),
        name=name,
    )


@beartype
def space_group_from_hall_number(hall_number: int) -> SpaceGroup:
    """
    Description
    -----------
    Build a SpaceGroup from spglib's database.

    Parameters
    ----------
    - `hall_number` (int):
        Hall setting number in 1..530. Examples: 1 is P1, 523 is Fm-3m.

    Returns
    -------
    - `space_group` (SpaceGroup):
        Validated group, identity first, named by its short
        Hermann-Mauguin symbol

    Raises
    ------
    - ValueError:
        If the Hall number is out of range
    """
    if not 1 <= hall_number <= N_HALL_NUMBERS:
        raise ValueError(
            f"Hall number must lie in 1..{N_HALL_NUMBERS}, got {hall_number}"
        )
    return _space_group_from_database(hall_number)


@beartype
def space_group_from_symbol(symbol: str) -> SpaceGroup:
    """SpaceGroup of a short Hermann-Mauguin symbol such as "Fm-3m"."""
    return space_group_from_hall_number(hall_number_from_symbol(symbol))


@beartype
def point_group_rotations(space_group: SpaceGroup) -> Int[Array, " n_rot 3 3"]:
    """Distinct rotation parts of the operators, in order of first occurrence."""
    rotations = np.asarray(space_group.rotations).reshape(-1, 9)
    _, first = np.unique(rotations, axis=0, return_index=True)
    return jnp.asarray(
        rotations[np.sort(first)].reshape(-1, 3, 3), dtype=jnp.int32
    )


@beartype
def laue_class(space_group: SpaceGroup) -> Int[Array, " n_laue 3 3"]:
    """
    Description
    -----------
    Rotations of the Laue class: the point-group rotations united with
    their negations, without duplicates. Friedel's law makes H and -H
    equivalent, so the Laue class, not the space group, decides which
    reflections overlap in a powder pattern.

    Parameters
    ----------
    - `space_group` (SpaceGroup):
        Any space group

    Returns
    -------
    - `rotations` (Int[Array, "n_laue 3 3"]):
        Distinct rotation matrices, identity first
    """
    rotations = np.asarray(point_group_rotations(space_group))
    combined = np.concatenate([rotations, -rotations]).reshape(-1, 9)
    _, first = np.unique(combined, axis=0, return_index=True)
    return jnp.asarray(combined[np.sort(first)].reshape(-1, 3, 3), dtype=jnp.int32)


@beartype
def is_centrosymmetric(space_group: SpaceGroup) -> bool:
    """True if some operator has rotation part -I."""
    minus_identity = -np.eye(3, dtype=np.int64)
    rotations = np.asarray(space_group.rotations)
    return bool(np.any(np.all(rotations == minus_identity, axis=(1, 2))))


@beartype
def has_inversion_at_origin(
    space_group: SpaceGroup, tolerance: float = 1e-6
) -> bool:
    """True if -x, -y, -z itself is an operator, so structure factors are real."""
    minus_identity = -np.eye(3, dtype=np.int64)
    rotations = np.asarray(space_group.rotations)
    translations = np.asarray(space_group.translations)
    is_inversion = np.all(rotations == minus_identity, axis=(1, 2))
    at_origin = np.all(np.abs(translations) < tolerance, axis=1)
    return bool(np.any(is_inversion & at_origin))
