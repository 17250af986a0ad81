"""Systematic absences and the candidate reflection list.

Extended Summary
----------------
Reflection enumeration walks the Miller-index box that contains every
reflection up to the requested diffraction angle, removes indices that
cannot diffract at the wavelength or are extinguished by lattice centring
and glide or screw operations, and keeps one canonical representative per
Laue-class orbit.

Routine Listings
----------------
is_systematically_absent : function
    Extinction test for Miller indices under a space group
enumerate_reflections : function
    Unique reflections inside a 2θ window
CandidateReflections : NamedTuple
    Result of enumerate_reflections
"""

import logging
import math

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import NamedTuple
from jaxtyping import Array, Bool, Float, Int, Num, jaxtyped

from xrpdium.types import CrystalStructure, SpaceGroup, scalar_float
from xrpdium.ucell import (
    d_spacing,
    generate_miller_indices,
    miller_index_limits,
    observable_mask,
    two_theta_from_d,
)

from .orbits import canonical_reflection, reflection_multiplicity
from .space_groups import laue_class

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)

_CHUNK_SIZE: int = 20000


@jaxtyped(typechecker=beartype)
def is_systematically_absent(
    hkl: Num[Array, "*batch 3"],
    space_group: SpaceGroup,
    tolerance: scalar_float = 0.05,
) -> Bool[Array, "*batch"]:
    """
    Description
    -----------
    Test Miller indices for systematic extinction.

    A reflection H is absent if some operator (R, t) maps it onto itself,
    H R = H, while the phase H·t is not an integer. The contributions of
    the atoms related by that operator then cancel exactly.

    Parameters
    ----------
    - `hkl` (Num[Array, "*batch 3"]):
        Miller indices
    - `space_group` (SpaceGroup):
        Full space group, including centring translations
    - `tolerance` (scalar_float, optional):
        Distance of H·t from the nearest integer below which the phase
        counts as integral. Default is 0.05

    Returns
    -------
    - `absent` (Bool[Array, "*batch"]):
        True for extinguished reflections
    """
    hkl_float = jnp.asarray(hkl, dtype=jnp.float64)
    images = jnp.einsum(
        "...i,nij->...nj", hkl_float, space_group.rotations.astype(jnp.float64)
    )
    fixed = jnp.all(jnp.abs(images - hkl_float[..., None, :]) < 0.5, axis=-1)
    phase = jnp.einsum("...i,ni->...n", hkl_float, space_group.translations)
    non_integral = jnp.abs(phase - jnp.round(phase)) > tolerance
    return jnp.any(fixed & non_integral, axis=-1)


class CandidateReflections(NamedTuple):
    """
    Description
    -----------
    Unique reflections inside a 2θ window, in increasing 2θ order.

    Attributes
    ----------
    - `hkl` (Int[Array, "M 3"]):
        Canonical Miller indices.
    - `multiplicity` (Int[Array, "M"]):
        Orbit sizes under the Laue class.
    - `d_spacing` (Float[Array, "M"]):
        d-spacings in Å.
    - `two_theta` (Float[Array, "M"]):
        Calculated 2θ in degrees, without zero-point error.
    """

    hkl: Int[Array, " M 3"]
    multiplicity: Int[Array, " M"]
    d_spacing: Float[Array, " M"]
    two_theta: Float[Array, " M"]


@beartype
def enumerate_reflections(
    structure: CrystalStructure,
    wavelength: float,
    two_theta_start: float,
    two_theta_end: float,
    exact: bool = False,
) -> CandidateReflections:
    """
    Description
    -----------
    Enumerate the unique, observable, non-absent reflections of a
    structure inside an angular window.

    Parameters
    ----------
    - `structure` (CrystalStructure):
        Lattice and space group; atoms are not used
    - `wavelength` (float):
        Wavelength in Å
    - `two_theta_start`, `two_theta_end` (float):
        Window in degrees 2θ
    - `exact` (bool, optional):
        If True keep reflections with start <= 2θ <= end only. Otherwise
        keep every reflection below end + 0.1°, so that the tails of peaks
        below the window still reach it. Default is False

    Returns
    -------
    - `candidates` (CandidateReflections):
        Canonical reflections with multiplicities, sorted by 2θ

    Flow
    ----
    - Take d_min from θ_end + 1°, capped at θ = 90°
    - Generate the Miller-index box |h| <= ceil(a / d_min) etc.
    - Drop (0, 0, 0), unobservable and systematically absent indices
    - Keep only canonical representatives of their Laue orbit
    - Apply the window and sort by 2θ
    """
    lattice = structure.lattice
    space_group = structure.space_group
    laue = laue_class(space_group)
    theta_max = min(two_theta_end / 2.0 + 1.0, 90.0)
    d_min = wavelength / (2.0 * math.sin(math.radians(theta_max)))
    limits = miller_index_limits(lattice, d_min)
    all_hkl = generate_miller_indices(*limits)
    logger.debug(
        "enumerating %d Miller indices within %s for d >= %.4f",
        all_hkl.shape[0],
        limits,
        d_min,
    )

    kept = []
    for start in range(0, all_hkl.shape[0], _CHUNK_SIZE):
        hkl = all_hkl[start : start + _CHUNK_SIZE]
        d = d_spacing(lattice, hkl)
        keep = observable_mask(d, wavelength)
        keep &= ~is_systematically_absent(hkl, space_group)
        keep &= jnp.all(canonical_reflection(hkl, laue) == hkl, axis=-1)
        kept.append(np.asarray(hkl)[np.asarray(keep)])
    hkl = jnp.asarray(np.concatenate(kept, axis=0), dtype=jnp.int32)

    d = d_spacing(lattice, hkl)
    two_theta = two_theta_from_d(d, wavelength)
    if exact:
        in_window = (two_theta >= two_theta_start) & (two_theta <= two_theta_end)
    else:
        in_window = two_theta < two_theta_end + 0.1
    in_window = np.asarray(in_window)
    hkl, d, two_theta = hkl[in_window], d[in_window], two_theta[in_window]
    order = jnp.argsort(two_theta)
    hkl, d, two_theta = hkl[order], d[order], two_theta[order]
    if hkl.shape[0] == 0:
        logger.warning(
            "no reflections of %s between %.3f and %.3f degrees 2theta",
            space_group.name or "structure",
            two_theta_start,
            two_theta_end,
        )
    return CandidateReflections(
        hkl=hkl,
        multiplicity=reflection_multiplicity(hkl, laue),
        d_spacing=d,
        two_theta=two_theta,
    )
