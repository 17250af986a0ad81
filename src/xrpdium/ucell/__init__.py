"""Unit cell geometry, displacement parameters and small linear algebra.

Extended Summary
----------------
This module provides the reciprocal-lattice geometry used to place
reflections on the 2θ axis, conversions between the conventions of
anisotropic displacement parameters, and a 3x3 symmetric eigensolver used
to diagnose displacement tensors.

Routine Listings
----------------
build_cell_vectors : function
    Convert lattice parameters to Cartesian cell vectors
lattice_vectors : function
    Cell vectors of a CrystalLattice
reciprocal_vectors : function
    Reciprocal cell vectors without the 2π factor
metric_tensor : function
    Direct metric tensor
reciprocal_metric_tensor : function
    Reciprocal metric tensor
cell_volume : function
    Unit cell volume
compute_lengths_angles : function
    Extract lattice parameters from cell vectors
reciprocal_cell_parameters : function
    Reciprocal lattice parameters
lattice_from_metric_tensor : function
    Lattice parameters from a metric tensor
reciprocal_vector : function
    Reciprocal-space vector of Miller indices
d_spacing : function
    Interplanar spacing of Miller indices
observable_mask : function
    Reflections that satisfy Bragg's law at a wavelength
two_theta_from_d : function
    Traceable Bragg angle, NaN where unobservable
bragg_two_theta : function
    Bragg angle, raising GeometryError where unobservable
d_from_two_theta : function
    Inverse of Bragg's law
generate_miller_indices : function
    Miller index grid
miller_index_limits : function
    Index bounds for a minimum d-spacing
check_displacement_tensor : function
    Validate an anisotropic displacement tensor
principal_displacements : function
    Principal mean-square displacements
u_iso_to_u_cart, u_equivalent : function
    Isotropic displacement helpers
u_cart_to_u_star, u_star_to_u_cart : function
    Cartesian and reciprocal-fractional conventions
u_star_to_u_cif, u_cif_to_u_star : function
    Reciprocal-fractional and CIF conventions
u_cif_to_u_cart, u_cart_to_u_cif : function
    CIF and Cartesian conventions
rotate_u_star : function
    Transform U* by symmetry rotations
b_to_u, u_to_b : function
    Debye-Waller B and mean-square displacement U
default_u_iso : function
    Fallback isotropic displacement
symmetric_eigen_3x3 : function
    Jacobi eigensolver with a convergence flag
require_convergence : function
    Raise NumericalError for a failed decomposition
"""

from .adp import (
    b_to_u,
    check_displacement_tensor,
    default_u_iso,
    principal_displacements,
    rotate_u_star,
    u_cart_to_u_cif,
    u_cart_to_u_star,
    u_cif_to_u_cart,
    u_cif_to_u_star,
    u_equivalent,
    u_iso_to_u_cart,
    u_star_to_u_cart,
    u_star_to_u_cif,
    u_to_b,
)
from .eigen import require_convergence, symmetric_eigen_3x3
from .unitcell import (
    bragg_two_theta,
    build_cell_vectors,
    cell_volume,
    compute_lengths_angles,
    d_from_two_theta,
    d_spacing,
    generate_miller_indices,
    lattice_from_metric_tensor,
    lattice_vectors,
    metric_tensor,
    miller_index_limits,
    observable_mask,
    reciprocal_cell_parameters,
    reciprocal_metric_tensor,
    reciprocal_vector,
    reciprocal_vectors,
    two_theta_from_d,
)

__all__ = [
    "b_to_u",
    "check_displacement_tensor",
    "default_u_iso",
    "principal_displacements",
    "rotate_u_star",
    "u_cart_to_u_cif",
    "u_cart_to_u_star",
    "u_cif_to_u_cart",
    "u_cif_to_u_star",
    "u_equivalent",
    "u_iso_to_u_cart",
    "u_star_to_u_cart",
    "u_star_to_u_cif",
    "u_to_b",
    "require_convergence",
    "symmetric_eigen_3x3",
    "bragg_two_theta",
    "build_cell_vectors",
    "cell_volume",
    "compute_lengths_angles",
    "d_from_two_theta",
    "d_spacing",
    "generate_miller_indices",
    "lattice_from_metric_tensor",
    "lattice_vectors",
    "metric_tensor",
    "miller_index_limits",
    "observable_mask",
    "reciprocal_cell_parameters",
    "reciprocal_metric_tensor",
    "reciprocal_vector",
    "reciprocal_vectors",
    "two_theta_from_d",
]
