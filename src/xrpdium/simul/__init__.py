"""Powder diffraction simulation.

Extended Summary
----------------
This module turns a crystal structure into a realistic powder pattern:
structure factors, preferred orientation, peak profiles with optional
axial-divergence asymmetry, backgrounds, counting noise and the assembler
that composes them.

Routine Listings
----------------
atomic_number_scattering : function
    Form factor f = Z
cromer_mann_scattering : function
    Builder for Cromer-Mann form factors
debye_waller : function
    Anisotropic Debye-Waller factors
structure_factor : function
    Complex structure factors of the asymmetric unit
structure_factor_expanded : function
    Complex structure factors of an expanded unit cell
structure_factors_squared : function
    |F|²
structure_factor_imaginary_residual : function
    Relative imaginary part of F
march_dollase_factor : function
    March-Dollase factor of individual indices
orbit_march_dollase : function
    Orbit-averaged March-Dollase correction
check_orientation_commensurate : function
    Warn about texture axes that break the Laue symmetry
gaussian_profile : function
    Unit-area Gaussian
lorentzian_profile : function
    Unit-area Lorentzian
pseudo_voigt_profile : function
    Unit-area pseudo-Voigt
fcj_kernel : function
    Axial-divergence kernel
fcj_profile : function
    Asymmetric pseudo-Voigt
fcj_low_angle_extent : function
    Reach of the low-angle tail
lorentz_polarisation_factor : function
    LP correction
synthesize_bragg_profile : function
    Sum peaks onto a grid
chebyshev_coefficient_table : function
    Chebyshev power-series coefficients
chebyshev_polynomials : function
    Chebyshev polynomial values
chebyshev_background : function
    Chebyshev series background
bruckner_background : function
    Iterative strip background
estimate_background : function
    Brückner background of a pattern
subtract_background : function
    Background-subtracted pattern
add_poisson_noise : function
    Poisson counts
poisson_esds : function
    sqrt(count + ε)
counting_esds : function
    ESDs of noiseless patterns
add_noise_to_pattern : function
    Noisy pattern with new ESDs
calculate_reflections : function
    Reflection list with intensities
simulate_powder_components : function
    Simulation with all components
simulate_powder_pattern : function
    Simulation returning the final pattern
SimulationComponents : NamedTuple
    Result of simulate_powder_components
"""

from .background import (
    bruckner_background,
    chebyshev_background,
    chebyshev_coefficient_table,
    chebyshev_polynomials,
    estimate_background,
    subtract_background,
)
from .noise import (
    add_noise_to_pattern,
    add_poisson_noise,
    counting_esds,
    poisson_esds,
)
from .orientation import (
    check_orientation_commensurate,
    march_dollase_factor,
    orbit_march_dollase,
)
from .powder import (
    SimulationComponents,
    calculate_reflections,
    simulate_powder_components,
    simulate_powder_pattern,
)
from .profiles import (
    fcj_kernel,
    fcj_low_angle_extent,
    fcj_profile,
    gaussian_profile,
    lorentz_polarisation_factor,
    lorentzian_profile,
    pseudo_voigt_profile,
    synthesize_bragg_profile,
)
from .scattering import atomic_number_scattering, cromer_mann_scattering
from .structure_factor import (
    debye_waller,
    structure_factor,
    structure_factor_expanded,
    structure_factor_imaginary_residual,
    structure_factors_squared,
)

__all__ = [
    "bruckner_background",
    "chebyshev_background",
    "chebyshev_coefficient_table",
    "chebyshev_polynomials",
    "estimate_background",
    "subtract_background",
    "add_noise_to_pattern",
    "add_poisson_noise",
    "counting_esds",
    "poisson_esds",
    "check_orientation_commensurate",
    "march_dollase_factor",
    "orbit_march_dollase",
    "SimulationComponents",
    "calculate_reflections",
    "simulate_powder_components",
    "simulate_powder_pattern",
    "fcj_kernel",
    "fcj_low_angle_extent",
    "fcj_profile",
    "gaussian_profile",
    "lorentz_polarisation_factor",
    "lorentzian_profile",
    "pseudo_voigt_profile",
    "synthesize_bragg_profile",
    "atomic_number_scattering",
    "cromer_mann_scattering",
    "debye_waller",
    "structure_factor",
    "structure_factor_expanded",
    "structure_factor_imaginary_residual",
    "structure_factors_squared",
]
