"""Peak shapes and the synthesis of the Bragg component.

Extended Summary
----------------
Every reflection contributes one peak of unit area, scaled by its
integrated intensity, to a uniform 2θ grid. The symmetric shape is a
pseudo-Voigt; with axial divergence the pseudo-Voigt is convolved with the
Finger-Cox-Jephcoat kernel, which adds a tail on the low-angle side that
shrinks as 2θ approaches 90°.

All profile functions take offsets x = 2θ − 2θ_peak in degrees and return
densities in 1/degree, so that their integral over x is one.

Routine Listings
----------------
gaussian_profile : function
    Area-normalised Gaussian
lorentzian_profile : function
    Area-normalised Lorentzian
pseudo_voigt_profile : function
    Mixture of the two
fcj_kernel : function
    Quadrature nodes and weights of the axial-divergence kernel
fcj_profile : function
    Pseudo-Voigt convolved with the axial-divergence kernel
fcj_low_angle_extent : function
    How far the low-angle tail reaches below the peak
lorentz_polarisation_factor : function
    Lorentz-polarisation correction of integrated intensities
synthesize_bragg_profile : function
    Sum all peaks onto a 2θ grid
"""

import math

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Tuple
from jax import lax
from jaxtyping import Array, Float, jaxtyped

from xrpdium.types import check_uniform_grid, scalar_float, scalar_num

jax.config.update("jax_enable_x64", True)

DEFAULT_ETA: float = 0.9
N_FCJ_NODES: int = 30

# 2 sqrt(2 ln 2)
_FWHM_TO_SIGMA: float = 2.0 * math.sqrt(2.0 * math.log(2.0))
_FCJ_NODES, _FCJ_WEIGHTS = np.polynomial.legendre.leggauss(N_FCJ_NODES)
# sub-peaks closer than this to the peak itself carry no axial weight
_FCJ_MIN_SEPARATION: float = math.radians(0.001)
_FCJ_CUTOFF_ARGUMENT: float = 0.999


def _check_positive(name: str, value) -> None:
    if isinstance(value, (int, float)) and not value > 0.0:
        raise ValueError(f"{name} must be positive, got {value}")


@jaxtyped(typechecker=beartype)
def gaussian_profile(
    x: Float[Array, "*batch"], fwhm: scalar_float
) -> Float[Array, "*batch"]:
    """Gaussian of unit area with the given full width at half maximum."""
    _check_positive("fwhm", fwhm)
    sigma = fwhm / _FWHM_TO_SIGMA
    return jnp.exp(-0.5 * (x / sigma) ** 2) / (sigma * math.sqrt(2.0 * math.pi))


@jaxtyped(typechecker=beartype)
def lorentzian_profile(
    x: Float[Array, "*batch"], fwhm: scalar_float
) -> Float[Array, "*batch"]:
    """Lorentzian of unit area, (1/π) (Γ/2) / (x² + (Γ/2)²)."""
    _check_positive("fwhm", fwhm)
    half_width = 0.5 * fwhm
    return (half_width / jnp.pi) / (x**2 + half_width**2)


@jaxtyped(typechecker=beartype)
def pseudo_voigt_profile(
    x: Float[Array, "*batch"],
    fwhm: scalar_float,
    eta: scalar_float = DEFAULT_ETA,
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    Pseudo-Voigt η L(x) + (1 − η) G(x) with Lorentzian and Gaussian parts
    of the same FWHM.

    Parameters
    ----------
    - `x` (Float[Array, "*batch"]):
        Offsets from the peak position in degrees
    - `fwhm` (scalar_float):
        Full width at half maximum in degrees
    - `eta` (scalar_float, optional):
        Lorentzian fraction in [0, 1]. Default is 0.9

    Returns
    -------
    - `profile` (Float[Array, "*batch"]):
        Unit-area profile in 1/degree
    """
    return eta * lorentzian_profile(x, fwhm) + (1.0 - eta) * gaussian_profile(
        x, fwhm
    )


def _arccos_below_cutoff(argument: Float[Array, "*batch"]) -> Float[Array, "*batch"]:
    return jnp.where(
        argument < _FCJ_CUTOFF_ARGUMENT,
        jnp.arccos(jnp.clip(argument, -1.0, 1.0)),
        0.0,
    )


@jaxtyped(typechecker=beartype)
def fcj_kernel(
    two_theta: scalar_float, a: scalar_float, b: scalar_float
) -> Tuple[Float[Array, " n_nodes"], Float[Array, " n_nodes"]]:
    """
    Description
    -----------
    Discretised Finger-Cox-Jephcoat axial-divergence kernel of one peak.

    The observed profile is a weighted sum of symmetric sub-peaks at
    angles δ between 2φ_min and 2θ, with 2φ_min the angle of the extreme
    ray. The weights follow Finger, Cox and Jephcoat (1994) and the
    integral over δ is evaluated by Gauss-Legendre quadrature.

    Parameters
    ----------
    - `two_theta` (scalar_float):
        Peak position in degrees
    - `a` (scalar_float):
        Sample height over diffractometer radius, H/L
    - `b` (scalar_float):
        Receiving-slit height over diffractometer radius, S/L

    Returns
    -------
    - `offsets` (Float[Array, "n_nodes"]):
        Sub-peak positions δ − 2θ in degrees, all <= 0
    - `weights` (Float[Array, "n_nodes"]):
        Non-negative weights summing to one. At and above 2θ = 90°, or
        when no node lies below the peak, all weight sits on a single
        sub-peak at offset 0

    Flow
    ----
    - 2φ_min = acos(cos2θ sqrt(1 + (A + B)²)),
      2φ_infl = acos(cos2θ sqrt(1 + (A − B)²))
    - Map the Gauss-Legendre nodes onto [2φ_min, 2θ]
    - C = sqrt(cos²δ / cos²2θ − 1)
    - Weight (A + B)/C − 1 below 2φ_infl and 2 min(A, B)/C above,
      times the node weight, divided by cos δ
    """
    two_theta = jnp.asarray(two_theta, dtype=jnp.float64)
    nodes = jnp.asarray(_FCJ_NODES)
    node_weights = jnp.asarray(_FCJ_WEIGHTS)
    two_theta_rad = jnp.radians(two_theta)
    symmetric = two_theta >= 90.0
    cos_two_theta = jnp.where(symmetric, 1.0, jnp.cos(two_theta_rad))

    two_phi_min = _arccos_below_cutoff(
        cos_two_theta * jnp.sqrt(1.0 + (a + b) ** 2)
    )
    two_phi_infl = _arccos_below_cutoff(
        cos_two_theta * jnp.sqrt(1.0 + (a - b) ** 2)
    )
    delta = 0.5 * (two_theta_rad + two_phi_min) + 0.5 * (
        two_theta_rad - two_phi_min
    ) * nodes
    valid = (
        (delta >= two_phi_min)
        & (delta + _FCJ_MIN_SEPARATION <= two_theta_rad)
        & ~symmetric
    )
    c = jnp.sqrt(
        jnp.maximum(jnp.cos(delta) ** 2 / cos_two_theta**2 - 1.0, 1e-30)
    )
    term = jnp.where(
        delta < two_phi_infl,
        (a + b) / c - 1.0,
        2.0 * jnp.minimum(a, b) / c,
    )
    term = jnp.where(valid, term * node_weights / jnp.cos(delta), 0.0)
    term = jnp.maximum(term, 0.0)
    total = jnp.sum(term)
    no_tail = total <= 0.0
    offsets = jnp.concatenate(
        [jnp.degrees(delta - two_theta_rad), jnp.zeros(1)]
    )
    weights = jnp.concatenate(
        [
            jnp.where(no_tail, 0.0, term / jnp.where(no_tail, 1.0, total)),
            jnp.where(no_tail, 1.0, 0.0)[None],
        ]
    )
    return offsets, weights


@jaxtyped(typechecker=beartype)
def fcj_profile(
    x: Float[Array, "*batch"],
    two_theta: scalar_float,
    fwhm: scalar_float,
    a: scalar_float,
    b: scalar_float,
    eta: scalar_float = DEFAULT_ETA,
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    Pseudo-Voigt convolved with the axial-divergence kernel. The peak
    maximum stays close to 2θ while part of the area moves into a tail on
    the low-angle side.

    Parameters
    ----------
    - `x` (Float[Array, "*batch"]):
        Offsets from the calculated peak position in degrees
    - `two_theta` (scalar_float):
        Calculated peak position in degrees
    - `fwhm` (scalar_float):
        Width of the symmetric profile in degrees
    - `a`, `b` (scalar_float):
        FCJ parameters H/L and S/L, both positive
    - `eta` (scalar_float, optional):
        Lorentzian fraction. Default is 0.9

    Returns
    -------
    - `profile` (Float[Array, "*batch"]):
        Unit-area profile in 1/degree; the symmetric pseudo-Voigt at and
        above 90°

    Raises
    ------
    - ValueError:
        If fwhm, a or b is a non-positive number
    """
    _check_positive("fwhm", fwhm)
    _check_positive("a", a)
    _check_positive("b", b)
    offsets, weights = fcj_kernel(two_theta, a, b)
    shifted = x[..., None] - offsets
    return jnp.sum(weights * pseudo_voigt_profile(shifted, fwhm, eta), axis=-1)


@jaxtyped(typechecker=beartype)
def fcj_low_angle_extent(
    two_theta: Float[Array, "*batch"], a: scalar_float, b: scalar_float
) -> Float[Array, "*batch"]:
    """2θ − 2φ_min in degrees, zero at and above 90°."""
    cos_two_theta = jnp.cos(jnp.radians(two_theta))
    two_phi_min = _arccos_below_cutoff(
        cos_two_theta * jnp.sqrt(1.0 + (a + b) ** 2)
    )
    extent = two_theta - jnp.degrees(two_phi_min)
    return jnp.where(two_theta >= 90.0, 0.0, jnp.maximum(extent, 0.0))


@jaxtyped(typechecker=beartype)
def lorentz_polarisation_factor(
    two_theta: Float[Array, "*batch"],
) -> Float[Array, "*batch"]:
    """(1 + cos²2θ) / (2 sin2θ sinθ) for an unpolarised beam, 2θ in degrees."""
    two_theta_rad = jnp.radians(two_theta)
    return (1.0 + jnp.cos(two_theta_rad) ** 2) / (
        2.0 * jnp.sin(two_theta_rad) * jnp.sin(0.5 * two_theta_rad)
    )


@beartype
def synthesize_bragg_profile(
    two_theta_grid: Float[Array, " N"],
    peak_positions: Float[Array, " M"],
    intensities: Float[Array, " M"],
    fwhm: scalar_num,
    asymmetry: Optional[Tuple[scalar_num, scalar_num]] = None,
    eta: scalar_num = DEFAULT_ETA,
    cutoff_fwhm: scalar_num = 20.0,
) -> Float[Array, " N"]:
    """
    Description
    -----------
    Sum one profile per reflection onto a uniform 2θ grid.

    Each peak is evaluated on the grid points within ``cutoff_fwhm`` FWHMs
    of its position, extended on the low-angle side by the reach of the
    axial-divergence tail. The sampled profile is normalised so that its
    sum times the step equals one over the whole window, including the
    part that falls outside the grid; the area of a peak that lies
    completely on the grid is therefore its intensity.

    Parameters
    ----------
    - `two_theta_grid` (Float[Array, "N"]):
        Uniform grid in degrees
    - `peak_positions` (Float[Array, "M"]):
        Peak positions in degrees, zero-point error included
    - `intensities` (Float[Array, "M"]):
        Integrated intensities
    - `fwhm` (scalar_num):
        Peak width in degrees
    - `asymmetry` (Tuple[scalar_num, scalar_num], optional):
        FCJ parameters (A, B). Default is None, symmetric peaks
    - `eta` (scalar_num, optional):
        Lorentzian fraction. Default is 0.9
    - `cutoff_fwhm` (scalar_num, optional):
        Half-width of the evaluation window in FWHMs. Default is 20

    Returns
    -------
    - `profile` (Float[Array, "N"]):
        Intensity per degree at every grid point

    Raises
    ------
    - ValueError:
        If fwhm, cutoff_fwhm, A or B is not positive
    - DomainError:
        If the grid is not uniform

    Notes
    -----
    The window sizes depend on the values of the inputs, so this function
    runs eagerly; the per-peak work inside it is compiled.
    """
    fwhm, eta, cutoff_fwhm = float(fwhm), float(eta), float(cutoff_fwhm)
    _check_positive("fwhm", fwhm)
    _check_positive("cutoff_fwhm", cutoff_fwhm)
    if asymmetry is not None:
        asymmetry = (float(asymmetry[0]), float(asymmetry[1]))
        _check_positive("a", asymmetry[0])
        _check_positive("b", asymmetry[1])
    step = check_uniform_grid(two_theta_grid)
    n_points = two_theta_grid.shape[0]
    start = two_theta_grid[0]
    if peak_positions.shape[0] == 0:
        return jnp.zeros(n_points, dtype=jnp.float64)

    n_high = min(int(math.ceil(cutoff_fwhm * fwhm / step)), n_points)
    n_low = n_high
    if asymmetry is not None:
        tail = float(jnp.max(fcj_low_angle_extent(peak_positions, *asymmetry)))
        n_low = min(n_high + int(math.ceil(tail / step)), n_points + n_high)
    window = jnp.arange(-n_low, n_high + 1)

    def _profile(offsets, position):
        if asymmetry is None:
            return pseudo_voigt_profile(offsets, fwhm, eta)
        a, b = asymmetry
        return fcj_profile(offsets, position, fwhm, a, b, eta)

    def _add_peak(pattern, peak):
        position, intensity = peak
        centre = jnp.round((position - start) / step).astype(jnp.int64)
        indices = centre + window
        offsets = start + indices * step - position
        values = _profile(offsets, position)
        values = intensity * values / (jnp.sum(values) * step)
        on_grid = (indices >= 0) & (indices < n_points)
        indices = jnp.where(on_grid, indices, n_points)
        return pattern.at[indices].add(values, mode="drop"), None

    pattern, _ = lax.scan(
        _add_peak,
        jnp.zeros(n_points, dtype=jnp.float64),
        (peak_positions, intensities),
    )
    return pattern
