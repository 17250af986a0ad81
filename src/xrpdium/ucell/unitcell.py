"""Functions for unit cell geometry and Bragg's law.

Extended Summary
----------------
This module provides the reciprocal-lattice geometry of a powder
simulation: direct and reciprocal cell vectors, metric tensors,
d-spacings of Miller indices and the conversion between d-spacings and
diffraction angles. Reciprocal vectors follow the crystallographic
convention a·a* = 1, without the factor 2π.

Routine Listings
----------------
build_cell_vectors : function
    Construct unit cell vectors from lengths and angles
lattice_vectors : function
    Cell vectors of a CrystalLattice
reciprocal_vectors : function
    Reciprocal cell vectors a*, b*, c*
metric_tensor : function
    Direct metric tensor G
reciprocal_metric_tensor : function
    Reciprocal metric tensor G*
cell_volume : function
    Unit cell volume
compute_lengths_angles : function
    Compute unit cell lengths and angles from lattice vectors
reciprocal_cell_parameters : function
    Lengths and angles of the reciprocal cell
lattice_from_metric_tensor : function
    Rebuild a CrystalLattice from its metric tensor
reciprocal_vector : function
    H = h a* + k b* + l c*
d_spacing : function
    Interplanar spacing 1/|H|
observable_mask : function
    Which d-spacings can diffract at a wavelength
bragg_two_theta : function
    Diffraction angle 2θ from a d-spacing
d_from_two_theta : function
    d-spacing from a diffraction angle
generate_miller_indices : function
    All Miller indices within given bounds
miller_index_limits : function
    Index bounds that contain every reflection with d >= d_min

Notes
-----
All array functions are JAX-compatible. Functions that raise on invalid
input (:func:`bragg_two_theta`, :func:`lattice_from_metric_tensor`) need
concrete values and are meant to be called outside ``jax.jit``.
"""

import math

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import Tuple
from jaxtyping import Array, Bool, Float, Int, Num, jaxtyped

from xrpdium.types import (
    CrystalLattice,
    GeometryError,
    create_crystal_lattice,
    scalar_float,
    scalar_int,
)

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def build_cell_vectors(
    a: scalar_float,
    b: scalar_float,
    c: scalar_float,
    alpha: scalar_float,
    beta: scalar_float,
    gamma: scalar_float,
) -> Float[Array, " 3 3"]:
    r"""Construct unit cell vectors from lengths and angles.

    Parameters
    ----------
    a, b, c : scalar_float
        Direct cell lengths in angstroms.
    alpha, beta, gamma : scalar_float
        Direct cell angles in degrees.

    Returns
    -------
    Float[Array, " 3 3"]
        Unit cell vectors as rows of 3x3 matrix.

    Algorithm
    ---------
    - Convert angles to radians
    - Build first vector along x-axis
    - Build second vector in x-y plane
    - Build third vector using all angles
    - Return 3x3 matrix of vectors

    Examples
    --------
    >>> vectors = build_cell_vectors(
    ...     a=5.64, b=5.64, c=5.64, alpha=90.0, beta=90.0, gamma=90.0
    ... )
    >>> volume = jnp.linalg.det(vectors)
    """
    alpha_rad: Float[Array, " "] = jnp.radians(alpha)
    beta_rad: Float[Array, " "] = jnp.radians(beta)
    gamma_rad: Float[Array, " "] = jnp.radians(gamma)
    a_vec: Float[Array, " 3"] = jnp.array([a, 0.0, 0.0], dtype=jnp.float64)
    b_vec: Float[Array, " 3"] = jnp.array(
        [b * jnp.cos(gamma_rad), b * jnp.sin(gamma_rad), 0.0], dtype=jnp.float64
    )
    c_x: Float[Array, " "] = c * jnp.cos(beta_rad)
    c_y: Float[Array, " "] = c * (
        (jnp.cos(alpha_rad) - jnp.cos(beta_rad) * jnp.cos(gamma_rad))
        / jnp.sin(gamma_rad)
    )
    c_z: Float[Array, " "] = jnp.sqrt(jnp.maximum(c**2 - c_x**2 - c_y**2, 0.0))
    c_vec: Float[Array, " 3"] = jnp.array([c_x, c_y, c_z], dtype=jnp.float64)
    return jnp.stack([a_vec, b_vec, c_vec], axis=0)


@jaxtyped(typechecker=beartype)
def lattice_vectors(lattice: CrystalLattice) -> Float[Array, " 3 3"]:
    """Direct cell vectors a, b, c as rows, a along x and b in the x-y plane."""
    lengths = lattice.cell_lengths
    angles = lattice.cell_angles
    return build_cell_vectors(
        lengths[0], lengths[1], lengths[2], angles[0], angles[1], angles[2]
    )


@jaxtyped(typechecker=beartype)
def reciprocal_vectors(lattice: CrystalLattice) -> Float[Array, " 3 3"]:
    """Reciprocal cell vectors a*, b*, c* as rows, with a·a* = 1.

    The same matrix maps Cartesian vectors onto fractional coordinates:
    ``frac = cart @ reciprocal_vectors(lattice).T``.
    """
    return jnp.transpose(jnp.linalg.inv(lattice_vectors(lattice)))


@jaxtyped(typechecker=beartype)
def metric_tensor(lattice: CrystalLattice) -> Float[Array, " 3 3"]:
    """Direct metric tensor G with G_ij = a_i · a_j."""
    vectors = lattice_vectors(lattice)
    return vectors @ jnp.transpose(vectors)


@jaxtyped(typechecker=beartype)
def reciprocal_metric_tensor(lattice: CrystalLattice) -> Float[Array, " 3 3"]:
    """Reciprocal metric tensor G* = G⁻¹."""
    vectors = reciprocal_vectors(lattice)
    return vectors @ jnp.transpose(vectors)


@jaxtyped(typechecker=beartype)
def cell_volume(lattice: CrystalLattice) -> Float[Array, " "]:
    """Unit cell volume in cubic Ångstroms."""
    return jnp.abs(jnp.linalg.det(lattice_vectors(lattice)))


@jaxtyped(typechecker=beartype)
def compute_lengths_angles(
    vectors: Float[Array, " 3 3"],
) -> Tuple[Float[Array, " 3"], Float[Array, " 3"]]:
    """Compute unit cell lengths and angles from lattice vectors.

    Parameters
    ----------
    vectors : Float[Array, " 3 3"]
        Unit cell vectors as rows of 3x3 matrix.

    Returns
    -------
    Tuple[Float[Array, " 3"], Float[Array, " 3"]]
        Unit cell lengths [a, b, c] and unit cell angles [α, β, γ] in
        degrees, with α between b and c, β between a and c and γ between
        a and b.
    """
    lengths: Float[Array, " 3"] = jnp.linalg.norm(vectors, axis=1)
    pairs = ((1, 2), (0, 2), (0, 1))
    cosines: Float[Array, " 3"] = jnp.stack(
        [
            jnp.dot(vectors[i], vectors[j]) / (lengths[i] * lengths[j])
            for i, j in pairs
        ]
    )
    return lengths, jnp.degrees(jnp.arccos(jnp.clip(cosines, -1.0, 1.0)))


@jaxtyped(typechecker=beartype)
def reciprocal_cell_parameters(
    lattice: CrystalLattice,
) -> Tuple[Float[Array, " 3"], Float[Array, " 3"]]:
    """Reciprocal lengths a*, b*, c* in 1/Å and angles α*, β*, γ* in degrees."""
    return compute_lengths_angles(reciprocal_vectors(lattice))


@beartype
def lattice_from_metric_tensor(
    metric: Float[Array, " 3 3"],
) -> CrystalLattice:
    """Rebuild a lattice from its metric tensor G.

    Parameters
    ----------
    metric : Float[Array, " 3 3"]
        Symmetric positive-definite metric tensor.

    Returns
    -------
    CrystalLattice
        Lattice with a = √G₁₁, cos α = G₂₃ / (b c) and so on.

    Raises
    ------
    GeometryError
        If the tensor does not describe a valid cell.
    """
    diagonal = jnp.diagonal(metric)
    if not bool(jnp.all(diagonal > 0.0)):
        raise GeometryError("metric tensor must have a positive diagonal")
    lengths = jnp.sqrt(diagonal)
    cosines = jnp.stack(
        [
            metric[1, 2] / (lengths[1] * lengths[2]),
            metric[0, 2] / (lengths[0] * lengths[2]),
            metric[0, 1] / (lengths[0] * lengths[1]),
        ]
    )
    angles = jnp.degrees(jnp.arccos(jnp.clip(cosines, -1.0, 1.0)))
    return create_crystal_lattice(lengths, angles)


@jaxtyped(typechecker=beartype)
def reciprocal_vector(
    lattice: CrystalLattice, hkl: Num[Array, "*batch 3"]
) -> Float[Array, "*batch 3"]:
    """Reciprocal-space vector H = h a* + k b* + l c* in 1/Å."""
    return jnp.asarray(hkl, dtype=jnp.float64) @ reciprocal_vectors(lattice)


@jaxtyped(typechecker=beartype)
def d_spacing(
    lattice: CrystalLattice, hkl: Num[Array, "*batch 3"]
) -> Float[Array, "*batch"]:
    """Interplanar spacing d = 1/|H| in Å.

    Parameters
    ----------
    lattice : CrystalLattice
        Unit cell.
    hkl : Num[Array, "*batch 3"]
        Miller indices, any leading batch shape.

    Returns
    -------
    Float[Array, "*batch"]
        d-spacings. (0, 0, 0) maps to infinity.

    Examples
    --------
    >>> lattice = create_crystal_lattice([5.64, 5.64, 5.64], [90.0, 90.0, 90.0])
    >>> d_spacing(lattice, jnp.array([2, 0, 0]))  # 2.82
    """
    length = jnp.linalg.norm(reciprocal_vector(lattice, hkl), axis=-1)
    return 1.0 / length


@jaxtyped(typechecker=beartype)
def observable_mask(
    d: Float[Array, "*batch"], wavelength: scalar_float
) -> Bool[Array, "*batch"]:
    """True where λ/(2d) <= 1, i.e. where Bragg's law has a solution."""
    return wavelength <= 2.0 * d


@jaxtyped(typechecker=beartype)
def two_theta_from_d(
    d: Float[Array, "*batch"], wavelength: scalar_float
) -> Float[Array, "*batch"]:
    """Traceable 2θ in degrees from Bragg's law; NaN where unobservable."""
    sin_theta = wavelength / (2.0 * d)
    return jnp.where(
        sin_theta <= 1.0,
        2.0 * jnp.degrees(jnp.arcsin(jnp.clip(sin_theta, 0.0, 1.0))),
        jnp.nan,
    )


@beartype
def bragg_two_theta(
    d: Float[Array, "*batch"], wavelength: scalar_float
) -> Float[Array, "*batch"]:
    """Diffraction angle 2θ in degrees from sinθ = λ/(2d).

    Parameters
    ----------
    d : Float[Array, "*batch"]
        d-spacings in Å.
    wavelength : scalar_float
        Wavelength in Å.

    Returns
    -------
    Float[Array, "*batch"]
        2θ in degrees.

    Raises
    ------
    GeometryError
        If λ/(2d) > 1 for any of the d-spacings. Candidate generation
        excludes such reflections with :func:`observable_mask` instead.
    """
    if not bool(jnp.all(observable_mask(d, wavelength))):
        raise GeometryError(
            f"reflection with d < {float(wavelength) / 2.0:.4f} Å cannot be "
            f"observed at wavelength {float(wavelength)} Å"
        )
    return two_theta_from_d(d, wavelength)


@jaxtyped(typechecker=beartype)
def d_from_two_theta(
    two_theta: Float[Array, "*batch"], wavelength: scalar_float
) -> Float[Array, "*batch"]:
    """d-spacing in Å from 2θ in degrees."""
    return wavelength / (2.0 * jnp.sin(jnp.radians(two_theta) / 2.0))


@jaxtyped(typechecker=beartype)
def generate_miller_indices(
    hmax: scalar_int,
    kmax: scalar_int,
    lmax: scalar_int,
) -> Int[Array, " M 3"]:
    """All Miller indices with |h| <= hmax, |k| <= kmax, |l| <= lmax.

    The index (0, 0, 0) is excluded. Bounds must be concrete integers,
    the output shape depends on them.
    """
    hs: Int[Array, " n_h"] = jnp.arange(-int(hmax), int(hmax) + 1)
    ks: Int[Array, " n_k"] = jnp.arange(-int(kmax), int(kmax) + 1)
    ls: Int[Array, " n_l"] = jnp.arange(-int(lmax), int(lmax) + 1)
    hh, kk, ll = jnp.meshgrid(hs, ks, ls, indexing="ij")
    hkl: Int[Array, " M 3"] = jnp.stack(
        [hh.ravel(), kk.ravel(), ll.ravel()], axis=-1
    ).astype(jnp.int32)
    return hkl[jnp.any(hkl != 0, axis=1)]


@beartype
def miller_index_limits(
    lattice: CrystalLattice, d_min: float
) -> Tuple[int, int, int]:
    """Bounds (hmax, kmax, lmax) enclosing every reflection with d >= d_min.

    Since h = H·a, |h| <= |H| a = a/d <= a/d_min, and likewise for k and l.
    """
    lengths = [float(x) for x in lattice.cell_lengths]
    return tuple(int(math.ceil(length / d_min)) for length in lengths)
