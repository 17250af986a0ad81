"""March-Dollase preferred-orientation correction.

Extended Summary
----------------
Plate- or needle-shaped crystallites pack with a preferred axis. The
March-Dollase model scales a reflection by

    P(α) = (r² cos²α + sin²α / r)^(−3/2)

where α is the angle between the reflection's reciprocal vector and the
texture axis, and r in (0, 1] measures the texture strength (r = 1 is a
random powder). A powder reflection is the sum over its symmetry orbit, so
the correction applied to a reflection is the orbit average of P; the
average is computed through :func:`xrpdium.symmetry.orbit_average`, which
makes it identical for every member of the orbit.

Routine Listings
----------------
march_dollase_factor : function
    P(α) for individual Miller indices
orbit_march_dollase : function
    Orbit-averaged correction of powder reflections
check_orientation_commensurate : function
    Warn if the texture axis breaks the Laue symmetry
"""

import logging

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from jaxtyping import Array, Float, Int, Num, jaxtyped

from xrpdium.symmetry import equivalent_reflections, orbit_average
from xrpdium.types import CrystalLattice, scalar_float
from xrpdium.ucell import reciprocal_vector

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

# generic reflection, not fixed by any rotation of any Laue class
_PROBE_REFLECTION = (37, -117, 3)


@jaxtyped(typechecker=beartype)
def march_dollase_factor(
    lattice: CrystalLattice,
    po_hkl: Num[Array, " 3"],
    hkl: Num[Array, "*batch 3"],
    r: scalar_float,
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    March-Dollase factor of individual Miller indices, without any
    symmetry averaging.

    Parameters
    ----------
    - `lattice` (CrystalLattice):
        Unit cell
    - `po_hkl` (Num[Array, "3"]):
        Texture axis as a reciprocal-lattice direction
    - `hkl` (Num[Array, "*batch 3"]):
        Miller indices
    - `r` (scalar_float):
        March-Dollase parameter in (0, 1]

    Returns
    -------
    - `factor` (Float[Array, "*batch"]):
        Positive corrections, exactly 1 for r = 1
    """
    po_vector: Float[Array, " 3"] = reciprocal_vector(lattice, po_hkl)
    h_vectors: Float[Array, "*batch 3"] = reciprocal_vector(lattice, hkl)
    cos_alpha = jnp.sum(h_vectors * po_vector, axis=-1) / (
        jnp.linalg.norm(h_vectors, axis=-1) * jnp.linalg.norm(po_vector)
    )
    cos_squared = jnp.clip(cos_alpha**2, 0.0, 1.0)
    sin_squared = 1.0 - cos_squared
    factor = (r**2 * cos_squared + sin_squared / r) ** (-1.5)
    return jnp.where(r == 1.0, jnp.ones_like(factor), factor)


@jaxtyped(typechecker=beartype)
def orbit_march_dollase(
    lattice: CrystalLattice,
    laue: Int[Array, " n_laue 3 3"],
    po_hkl: Num[Array, " 3"],
    hkl: Num[Array, "*batch 3"],
    r: scalar_float,
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    Preferred-orientation correction of powder reflections: the mean of
    the March-Dollase factor over the symmetry orbit of each reflection.
    Multiplying the mean by the multiplicity gives the textured orbit sum.

    Parameters
    ----------
    - `lattice` (CrystalLattice):
        Unit cell
    - `laue` (Int[Array, "n_laue 3 3"]):
        Laue-class rotations
    - `po_hkl` (Num[Array, "3"]):
        Texture axis as a reciprocal-lattice direction
    - `hkl` (Num[Array, "*batch 3"]):
        Miller indices of any members of the orbits
    - `r` (scalar_float):
        March-Dollase parameter in (0, 1]

    Returns
    -------
    - `factor` (Float[Array, "*batch"]):
        Corrections, bitwise equal for equivalent reflections
    """
    return orbit_average(
        lambda images: march_dollase_factor(lattice, po_hkl, images, r),
        hkl,
        laue,
    )


@beartype
def check_orientation_commensurate(
    lattice: CrystalLattice,
    laue: Int[Array, " n_laue 3 3"],
    po_hkl: Num[Array, " 3"],
    tolerance: float = 1e-6,
) -> bool:
    """Whether |PO·H| is the same for every Laue image of a generic H.

    If not, the texture axis is not a symmetry direction of the lattice;
    the orbit average still yields consistent intensities, but a warning
    is logged since the axis is most likely a mistake.
    """
    po_vector = np.asarray(reciprocal_vector(lattice, po_hkl))
    images = equivalent_reflections(jnp.asarray(_PROBE_REFLECTION), laue)
    dots = np.abs(np.asarray(reciprocal_vector(lattice, images)) @ po_vector)
    commensurate = bool(
        np.all(np.abs(dots - dots[0]) <= tolerance * max(abs(dots[0]), 1.0))
    )
    if not commensurate:
        logger.warning(
            "preferred-orientation axis %s is not commensurate with the "
            "Laue class",
            tuple(int(i) for i in np.asarray(po_hkl)),
        )
    return commensurate
