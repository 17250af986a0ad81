"""Kinematic structure factors of powder reflections.

Extended Summary
----------------
The structure factor of a reflection h is

    F(h) = Σⱼ oⱼ fⱼ(s) exp(2πi h·xⱼ) exp(−2π² hᵀ U*ⱼ h)

summed over every atom j of the unit cell, with occupancy oⱼ, form factor
fⱼ at s = sinθ/λ = 1/(2d), fractional position xⱼ and displacement tensor
U*ⱼ in the reciprocal-fractional frame. The functions here take the
asymmetric unit and expand it once per call; the ``*_expanded`` variants
take an already expanded structure and are traceable.

Routine Listings
----------------
debye_waller : function
    Anisotropic Debye-Waller factors for reflections and atoms
structure_factor_expanded : function
    Complex F from an expanded structure, traceable
structure_factor : function
    Complex F from the asymmetric unit
structure_factors_squared : function
    |F|² from the asymmetric unit
structure_factor_imaginary_residual : function
    Largest relative imaginary part of F
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Complex, Float, Num, jaxtyped

from xrpdium.symmetry import expand_atoms
from xrpdium.types import CrystalStructure, scattering_function
from xrpdium.ucell import d_spacing, u_cart_to_u_star

from .scattering import atomic_number_scattering

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def debye_waller(
    hkl: Num[Array, " M 3"], u_star: Float[Array, " N 3 3"]
) -> Float[Array, " M N"]:
    """exp(−2π² hᵀ U* h) for every pair of reflection and atom.

    For an isotropic tensor this is exp(−8π² U_iso s²).
    """
    h: Float[Array, " M 3"] = jnp.asarray(hkl, dtype=jnp.float64)
    quadratic: Float[Array, " M N"] = jnp.einsum("mi,nij,mj->mn", h, u_star, h)
    return jnp.exp(-2.0 * jnp.pi**2 * quadratic)


@jaxtyped(typechecker=beartype)
def structure_factor_expanded(
    hkl: Num[Array, " M 3"],
    expanded: CrystalStructure,
    scattering_factor: scattering_function = atomic_number_scattering,
) -> Complex[Array, " M"]:
    """
    Description
    -----------
    Complex structure factors of a structure whose atoms already fill the
    unit cell.

    Parameters
    ----------
    - `hkl` (Num[Array, "M 3"]):
        Miller indices, none of them (0, 0, 0)
    - `expanded` (CrystalStructure):
        Every atom of the unit cell, e.g. from
        :func:`xrpdium.symmetry.expand_atoms`
    - `scattering_factor` (scattering_function, optional):
        Form factors f(Z, s). Default is f = Z

    Returns
    -------
    - `f_complex` (Complex[Array, "M"]):
        Structure factors
    """
    h: Float[Array, " M 3"] = jnp.asarray(hkl, dtype=jnp.float64)
    s: Float[Array, " M"] = 0.5 / d_spacing(expanded.lattice, h)
    form_factors: Float[Array, " M N"] = scattering_factor(
        expanded.atomic_numbers, s
    )
    u_star: Float[Array, " N 3 3"] = u_cart_to_u_star(
        expanded.u_cart, expanded.lattice
    )
    phase: Float[Array, " M N"] = 2.0 * jnp.pi * (h @ expanded.frac_positions.T)
    weights: Float[Array, " M N"] = (
        expanded.occupancies[None, :] * form_factors * debye_waller(h, u_star)
    )
    return jnp.sum(weights * jnp.exp(1j * phase), axis=-1)


@beartype
def structure_factor(
    hkl: Num[Array, " M 3"],
    structure: CrystalStructure,
    scattering_factor: scattering_function = atomic_number_scattering,
) -> Complex[Array, " M"]:
    """
    Description
    -----------
    Complex structure factors of the asymmetric unit ``structure``,
    expanded by its space group before summation.

    Parameters
    ----------
    - `hkl` (Num[Array, "M 3"]):
        Miller indices
    - `structure` (CrystalStructure):
        Asymmetric unit and space group
    - `scattering_factor` (scattering_function, optional):
        Form factors f(Z, s). Default is f = Z

    Returns
    -------
    - `f_complex` (Complex[Array, "M"]):
        Structure factors. For a space group with the inversion at the
        origin the imaginary parts vanish.
    """
    return structure_factor_expanded(
        hkl, expand_atoms(structure), scattering_factor
    )


@beartype
def structure_factors_squared(
    hkl: Num[Array, " M 3"],
    structure: CrystalStructure,
    scattering_factor: scattering_function = atomic_number_scattering,
) -> Float[Array, " M"]:
    """|F|² of the asymmetric unit ``structure``, always >= 0."""
    f_complex = structure_factor(hkl, structure, scattering_factor)
    return jnp.real(f_complex * jnp.conj(f_complex))


@jaxtyped(typechecker=beartype)
def structure_factor_imaginary_residual(
    f_complex: Complex[Array, " M"],
) -> Float[Array, ""]:
    """Largest |Im F| relative to the largest |F|.

    Zero up to rounding for any space group with the inversion at the
    origin; anything else points to a faulty atom expansion.
    """
    scale = jnp.maximum(jnp.max(jnp.abs(f_complex)), 1e-300)
    return jnp.max(jnp.abs(jnp.imag(f_complex))) / scale
