"""Assembly of realistic powder diffraction patterns.

Extended Summary
----------------
The assembler composes the other stages and performs no physics of its
own. For a crystal structure and a :class:`~xrpdium.types.SimulationSettings`
it

1. enumerates the unique reflections inside the window,
2. computes |F|² from the expanded unit cell,
3. applies the orbit-averaged March-Dollase correction,
4. multiplies by multiplicity and the Lorentz-polarisation factor,
5. shifts all positions by the zero-point error,
6. synthesises the Bragg profile and normalises its total signal,
7. adds an independently normalised secondary phase,
8. synthesises and normalises the background,
9. rescales the sum to the requested highest peak,
10. rounds to counts and adds the constant background,
11. draws Poisson noise and recalculates the ESDs.

Routine Listings
----------------
calculate_reflections : function
    Reflection list with intensities, without profiles
SimulationComponents : NamedTuple
    Final pattern together with its separate components
simulate_powder_components : function
    Full simulation returning every component
simulate_powder_pattern : function
    Full simulation returning the final pattern
"""

import logging

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Optional
from jaxtyping import Array, Float, PRNGKeyArray

from xrpdium.symmetry import enumerate_reflections, laue_class
from xrpdium.types import (
    CrystalStructure,
    DomainError,
    PowderPattern,
    ReflectionList,
    SimulationSettings,
    check_uniform_grid,
    create_powder_pattern,
    create_reflection_list,
    make_two_theta_grid,
    scattering_function,
)

from .background import chebyshev_background
from .noise import add_poisson_noise, counting_esds, poisson_esds
from .orientation import check_orientation_commensurate, orbit_march_dollase
from .profiles import lorentz_polarisation_factor, synthesize_bragg_profile
from .scattering import atomic_number_scattering
from .structure_factor import structure_factors_squared

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


def _empty_reflection_list() -> ReflectionList:
    empty = jnp.zeros(0, dtype=jnp.float64)
    return create_reflection_list(
        jnp.zeros((0, 3), dtype=jnp.int32),
        empty,
        empty,
        empty,
        jnp.zeros(0, dtype=jnp.int32),
    )


@beartype
def calculate_reflections(
    structure: CrystalStructure,
    settings: SimulationSettings,
    scattering_factor: scattering_function = atomic_number_scattering,
    include_preferred_orientation: Optional[bool] = None,
) -> ReflectionList:
    """
    Description
    -----------
    Unique reflections of ``structure`` in the window of ``settings`` with
    the integrated intensities that the profile synthesis receives.

    Parameters
    ----------
    - `structure` (CrystalStructure):
        Asymmetric unit and space group
    - `settings` (SimulationSettings):
        Simulation options
    - `scattering_factor` (scattering_function, optional):
        Form factors. Default is f = Z
    - `include_preferred_orientation` (bool, optional):
        Overrides ``settings.include_preferred_orientation``. The
        amorphous background is always computed without texture

    Returns
    -------
    - `reflections` (ReflectionList):
        Sorted by 2θ. ``two_theta`` includes the zero-point error,
        ``intensity`` = |F|² x multiplicity x orientation factor, times the
        Lorentz-polarisation factor at the unshifted angle if enabled
    """
    if include_preferred_orientation is None:
        include_preferred_orientation = settings.include_preferred_orientation
    candidates = enumerate_reflections(
        structure,
        settings.wavelength,
        settings.two_theta_start,
        settings.two_theta_end,
        exact=settings.exact_window,
    )
    if candidates.hkl.shape[0] == 0:
        return _empty_reflection_list()

    f_squared = structure_factors_squared(
        candidates.hkl, structure, scattering_factor
    )
    if include_preferred_orientation:
        laue = laue_class(structure.space_group)
        po_hkl = jnp.asarray(settings.preferred_orientation, dtype=jnp.int32)
        check_orientation_commensurate(structure.lattice, laue, po_hkl)
        orientation = orbit_march_dollase(
            structure.lattice,
            laue,
            po_hkl,
            candidates.hkl,
            settings.march_dollase_r,
        )
    else:
        orientation = jnp.ones_like(f_squared)
    intensity = f_squared * candidates.multiplicity * orientation
    if settings.lorentz_polarisation:
        intensity = intensity * lorentz_polarisation_factor(candidates.two_theta)
    logger.debug(
        "calculated %d reflections, strongest |F|^2 = %.4g",
        candidates.hkl.shape[0],
        float(jnp.max(f_squared)),
    )
    return create_reflection_list(
        hkl=candidates.hkl,
        d_spacing=candidates.d_spacing,
        two_theta=candidates.two_theta + settings.zero_point_error,
        f_squared=f_squared,
        multiplicity=candidates.multiplicity,
        orientation_factor=orientation,
        intensity=intensity,
    )


def _normalise_total(
    values: Float[Array, " N"], target: Optional[float], label: str
) -> Float[Array, " N"]:
    if target is None:
        return values
    total = float(jnp.sum(values))
    if total <= 0.0:
        logger.warning("%s component is empty, not normalised", label)
        return values
    return values * (target / total)


def _profile(
    grid: Float[Array, " N"],
    reflections: ReflectionList,
    settings: SimulationSettings,
    fwhm: float,
) -> Float[Array, " N"]:
    asymmetry = (settings.fcj_a, settings.fcj_b) if settings.include_fcj else None
    return synthesize_bragg_profile(
        grid,
        reflections.two_theta,
        reflections.intensity,
        fwhm,
        asymmetry=asymmetry,
        eta=settings.eta,
        cutoff_fwhm=settings.cutoff_fwhm,
    )


class SimulationComponents(NamedTuple):
    """
    Description
    -----------
    Result of :func:`simulate_powder_components`.

    Attributes
    ----------
    - `pattern` (PowderPattern):
        Final pattern, the sum of all components.
    - `bragg` (Float[Array, "N"]):
        Bragg intensities in counts, secondary phase included.
    - `background` (Float[Array, "N"]):
        Background in counts, constant background included.
    - `noise` (Float[Array, "N"]):
        Difference made by the Poisson draw, zero without noise.
    - `scale_factor` (float):
        Factor applied to reach the highest-peak target.
    - `reflections` (ReflectionList):
        Reflections of the main phase.
    """

    pattern: PowderPattern
    bragg: Float[Array, " N"]
    background: Float[Array, " N"]
    noise: Float[Array, " N"]
    scale_factor: float
    reflections: ReflectionList


@beartype
def simulate_powder_components(
    structure: CrystalStructure,
    settings: SimulationSettings,
    key: Optional[PRNGKeyArray],
    scattering_factor: scattering_function = atomic_number_scattering,
    secondary: Optional[PowderPattern] = None,
) -> SimulationComponents:
    """
    Description
    -----------
    Simulate a realistic powder pattern and keep its components.

    Parameters
    ----------
    - `structure` (CrystalStructure):
        Asymmetric unit and space group
    - `settings` (SimulationSettings):
        Simulation options, see
        :func:`xrpdium.types.create_simulation_settings`
    - `key` (PRNGKeyArray, optional):
        Random key for the noise; may be None without noise
    - `scattering_factor` (scattering_function, optional):
        Form factors. Default is f = Z
    - `secondary` (PowderPattern, optional):
        Pattern of a second phase, e.g. an internal standard, on the
        simulation grid

    Returns
    -------
    - `components` (SimulationComponents):
        Final pattern and its parts

    Raises
    ------
    - ValueError:
        If noise is requested without a key
    - DomainError:
        If the secondary pattern is not on the uniform simulation grid
    """
    if settings.include_noise and key is None:
        raise ValueError("a random key is required to simulate noise")
    grid = make_two_theta_grid(
        settings.two_theta_start, settings.two_theta_end, settings.two_theta_step
    )
    logger.debug(
        "simulating %s on %d points from %.3f to %.3f degrees",
        structure.space_group.name or "structure",
        grid.shape[0],
        float(grid[0]),
        float(grid[-1]),
    )

    reflections = calculate_reflections(structure, settings, scattering_factor)
    bragg = _profile(grid, reflections, settings, settings.fwhm)
    bragg = _normalise_total(bragg, settings.bragg_total_signal, "Bragg")

    if secondary is not None:
        check_uniform_grid(secondary)
        if secondary.two_theta.shape != grid.shape or not bool(
            jnp.allclose(secondary.two_theta, grid, atol=1e-6)
        ):
            raise DomainError("secondary pattern must be on the simulation grid")
        bragg = bragg + _normalise_total(
            secondary.intensity, settings.secondary_total_signal, "secondary"
        )
        logger.debug("added secondary phase")

    background = jnp.zeros_like(bragg)
    with_background = (
        settings.include_background and settings.background_model != "none"
    )
    if with_background:
        if settings.background_model == "amorphous":
            amorphous = calculate_reflections(
                structure,
                settings,
                scattering_factor,
                include_preferred_orientation=False,
            )
            background = _profile(grid, amorphous, settings, settings.amorphous_fwhm)
        else:
            background = chebyshev_background(
                grid,
                settings.chebyshev_coefficients,
                settings.two_theta_start,
                settings.two_theta_end,
            )
        background = _normalise_total(
            background, settings.background_total_signal, "background"
        )
        logger.debug("added %s background", settings.background_model)

    scale_factor = 1.0
    if settings.highest_peak is not None:
        highest = float(jnp.max(bragg + background))
        if highest > 0.0:
            scale_factor = settings.highest_peak / highest
        else:
            logger.warning("pattern is empty, highest peak not normalised")
    bragg = jnp.round(bragg * scale_factor)
    if with_background:
        background = jnp.round(
            background * scale_factor + settings.constant_background
        )
    expected = bragg + background

    if settings.include_noise:
        counts = add_poisson_noise(
            expected, key, noise_floor=settings.noise_floor
        )
        esd = poisson_esds(counts)
    else:
        counts = expected
        esd = counting_esds(counts)
    logger.debug(
        "scale factor %.4g, highest count %.1f", scale_factor, float(jnp.max(counts))
    )
    return SimulationComponents(
        pattern=create_powder_pattern(grid, counts, esd),
        bragg=bragg,
        background=background,
        noise=counts - expected,
        scale_factor=scale_factor,
        reflections=reflections,
    )


@beartype
def simulate_powder_pattern(
    structure: CrystalStructure,
    settings: SimulationSettings,
    key: Optional[PRNGKeyArray],
    scattering_factor: scattering_function = atomic_number_scattering,
    secondary: Optional[PowderPattern] = None,
) -> PowderPattern:
    """
    Description
    -----------
    Simulate a realistic powder diffraction pattern.

    Parameters
    ----------
    - `structure` (CrystalStructure):
        Asymmetric unit and space group
    - `settings` (SimulationSettings):
        Simulation options
    - `key` (PRNGKeyArray, optional):
        Random key for the noise; may be None without noise
    - `scattering_factor` (scattering_function, optional):
        Form factors. Default is f = Z
    - `secondary` (PowderPattern, optional):
        Independently normalised second phase on the simulation grid

    Returns
    -------
    - `pattern` (PowderPattern):
        Counts with ESDs sqrt(count + 1) after noise, or the counting rule
        of :func:`counting_esds` without noise

    Examples
    --------
    >>> settings = create_simulation_settings(two_theta_end=60.0)
    >>> pattern = simulate_powder_pattern(nacl, settings, jax.random.PRNGKey(0))
    """
    return simulate_powder_components(
        structure, settings, key, scattering_factor, secondary
    ).pattern
