"""Atomic displacement parameters in their different conventions.

Extended Summary
----------------
Anisotropic displacement parameters (ADPs) appear in three coordinate
conventions:

- U_cart: the mean-square displacement tensor in the Cartesian frame of
  :func:`~xrpdium.ucell.build_cell_vectors`, in Å².
- U_star (U*): the tensor in the reciprocal-fractional frame. This is the
  form that enters the Debye-Waller factor exp(-2π² hᵀ U* h).
- U_cif: the dimensionless-basis form written to CIF files,
  U_cif = N U* N with N = diag(1/a*, 1/b*, 1/c*).

With M the matrix of reciprocal vectors as rows, U* = M U_cart Mᵀ and
U_cart = Vᵀ U* V where V holds the direct cell vectors as rows.

Routine Listings
----------------
check_displacement_tensor : function
    Validate symmetry and positive semi-definiteness
principal_displacements : function
    Principal mean-square displacements and axes
u_iso_to_u_cart : function
    Isotropic U as a Cartesian tensor
u_equivalent : function
    Isotropic equivalent of a tensor, trace / 3
u_cart_to_u_star : function
    Cartesian to reciprocal-fractional
u_star_to_u_cart : function
    Reciprocal-fractional to Cartesian
u_star_to_u_cif : function
    Reciprocal-fractional to CIF convention
u_cif_to_u_star : function
    CIF convention to reciprocal-fractional
u_cif_to_u_cart : function
    CIF convention to Cartesian
u_cart_to_u_cif : function
    Cartesian to CIF convention
rotate_u_star : function
    Apply symmetry rotations to U*
b_to_u : function
    Debye-Waller B to mean-square displacement U
u_to_b : function
    Mean-square displacement U to Debye-Waller B
default_u_iso : function
    Fallback U_iso for atoms without displacement parameters
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Float, Num, jaxtyped

from xrpdium.types import (
    ConversionError,
    CrystalLattice,
    SymmetricEigenResult,
    scalar_float,
    scalar_int,
)

from .eigen import require_convergence, symmetric_eigen_3x3
from .unitcell import lattice_vectors, reciprocal_cell_parameters, reciprocal_vectors

jax.config.update("jax_enable_x64", True)

DEFAULT_U_ISO: float = 0.05
DEFAULT_U_ISO_HYDROGEN: float = 0.06


@beartype
def check_displacement_tensor(
    tensor: Float[Array, " 3 3"], tolerance: float = 1e-6
) -> Float[Array, " 3 3"]:
    """
    Description
    -----------
    Validate an anisotropic displacement tensor.

    Parameters
    ----------
    - `tensor` (Float[Array, "3 3"]):
        Displacement tensor in any convention
    - `tolerance` (float, optional):
        Largest allowed asymmetry and most negative allowed eigenvalue.
        Default is 1e-6

    Returns
    -------
    - `tensor` (Float[Array, "3 3"]):
        The symmetrised tensor

    Raises
    ------
    - ConversionError:
        If the tensor is not finite, not symmetric or has an eigenvalue
        below -tolerance
    - NumericalError:
        If the eigensolver fails to converge
    """
    if not bool(jnp.all(jnp.isfinite(tensor))):
        raise ConversionError("displacement tensor contains non-finite values")
    asymmetry = float(jnp.max(jnp.abs(tensor - jnp.transpose(tensor))))
    if asymmetry > tolerance:
        raise ConversionError(
            f"displacement tensor is not symmetric (asymmetry {asymmetry:.3e})"
        )
    symmetric = 0.5 * (tensor + jnp.transpose(tensor))
    result = require_convergence(symmetric_eigen_3x3(symmetric))
    smallest = float(result.eigenvalues[0])
    if smallest < -tolerance:
        raise ConversionError(
            "displacement tensor is not positive semi-definite "
            f"(smallest eigenvalue {smallest:.3e})"
        )
    return symmetric


@beartype
def principal_displacements(u_cart: Float[Array, " 3 3"]) -> SymmetricEigenResult:
    """Principal mean-square displacements (ascending) and their axes.

    Raises NumericalError if the eigensolver does not converge.
    """
    return require_convergence(symmetric_eigen_3x3(u_cart))


@jaxtyped(typechecker=beartype)
def u_iso_to_u_cart(u_iso: scalar_float) -> Float[Array, " 3 3"]:
    """Isotropic mean-square displacement as a Cartesian tensor U_iso·I."""
    return jnp.asarray(u_iso, dtype=jnp.float64) * jnp.eye(3, dtype=jnp.float64)


@jaxtyped(typechecker=beartype)
def u_equivalent(u_cart: Float[Array, "*batch 3 3"]) -> Float[Array, "*batch"]:
    """Isotropic equivalent U_eq = trace(U_cart) / 3."""
    return jnp.trace(u_cart, axis1=-2, axis2=-1) / 3.0


@jaxtyped(typechecker=beartype)
def u_cart_to_u_star(
    u_cart: Float[Array, "*batch 3 3"], lattice: CrystalLattice
) -> Float[Array, "*batch 3 3"]:
    """U* = M U_cart Mᵀ with M the reciprocal vectors as rows."""
    m = reciprocal_vectors(lattice)
    return m @ u_cart @ jnp.transpose(m)


@jaxtyped(typechecker=beartype)
def u_star_to_u_cart(
    u_star: Float[Array, "*batch 3 3"], lattice: CrystalLattice
) -> Float[Array, "*batch 3 3"]:
    """U_cart = Vᵀ U* V with V the direct vectors as rows."""
    v = lattice_vectors(lattice)
    return jnp.transpose(v) @ u_star @ v


@jaxtyped(typechecker=beartype)
def u_star_to_u_cif(
    u_star: Float[Array, "*batch 3 3"], lattice: CrystalLattice
) -> Float[Array, "*batch 3 3"]:
    """U_cif = N U* N with N = diag(1/a*, 1/b*, 1/c*)."""
    reciprocal_lengths, _ = reciprocal_cell_parameters(lattice)
    n = 1.0 / reciprocal_lengths
    return u_star * n[:, None] * n[None, :]


@jaxtyped(typechecker=beartype)
def u_cif_to_u_star(
    u_cif: Float[Array, "*batch 3 3"], lattice: CrystalLattice
) -> Float[Array, "*batch 3 3"]:
    """U* = D U_cif D with D = diag(a*, b*, c*)."""
    reciprocal_lengths, _ = reciprocal_cell_parameters(lattice)
    return u_cif * reciprocal_lengths[:, None] * reciprocal_lengths[None, :]


@beartype
def u_cif_to_u_cart(
    u_cif: Float[Array, " 3 3"], lattice: CrystalLattice, validate: bool = True
) -> Float[Array, " 3 3"]:
    """Convert a CIF-convention tensor to the Cartesian frame.

    Parameters
    ----------
    u_cif : Float[Array, " 3 3"]
        Tensor as given by the CIF items _atom_site_aniso_U_11 ... U_23.
    lattice : CrystalLattice
        Unit cell the tensor refers to.
    validate : bool, optional
        Check the result with :func:`check_displacement_tensor`.
        Default: True.

    Raises
    ------
    ConversionError
        If ``validate`` is set and the tensor is malformed.
    """
    if validate:
        u_cif = check_displacement_tensor(u_cif)
    return u_star_to_u_cart(u_cif_to_u_star(u_cif, lattice), lattice)


@beartype
def u_cart_to_u_cif(
    u_cart: Float[Array, " 3 3"], lattice: CrystalLattice, validate: bool = True
) -> Float[Array, " 3 3"]:
    """Convert a Cartesian tensor to the CIF convention; see u_cif_to_u_cart."""
    if validate:
        u_cart = check_displacement_tensor(u_cart)
    return u_star_to_u_cif(u_cart_to_u_star(u_cart, lattice), lattice)


@jaxtyped(typechecker=beartype)
def rotate_u_star(
    u_star: Float[Array, "*batch 3 3"], rotations: Num[Array, "*batch 3 3"]
) -> Float[Array, "*batch 3 3"]:
    """U*' = R U* Rᵀ for fractional rotations R, broadcasting over batches."""
    r = jnp.asarray(rotations, dtype=jnp.float64)
    return r @ u_star @ jnp.swapaxes(r, -1, -2)


@jaxtyped(typechecker=beartype)
def b_to_u(b: Float[Array, "*batch"]) -> Float[Array, "*batch"]:
    """U = B / (8π²)."""
    return b / (8.0 * jnp.pi**2)


@jaxtyped(typechecker=beartype)
def u_to_b(u: Float[Array, "*batch"]) -> Float[Array, "*batch"]:
    """B = 8π² U."""
    return 8.0 * jnp.pi**2 * u


@beartype
def default_u_iso(atomic_number: scalar_int) -> float:
    """Default U_iso: 0.05 Å², or 0.06 Å² for hydrogen."""
    return DEFAULT_U_ISO_HYDROGEN if int(atomic_number) == 1 else DEFAULT_U_ISO
