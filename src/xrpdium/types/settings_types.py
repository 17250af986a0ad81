"""Configuration of a realistic powder-pattern simulation.

Routine Listings
----------------
SimulationSettings : NamedTuple
    Every recognised simulation option
create_simulation_settings : function
    Factory function with validation and the usual defaults
BACKGROUND_MODELS : tuple
    Accepted values of ``background_model``
"""

from beartype import beartype
from beartype.typing import NamedTuple, Optional, Sequence, Tuple

from .custom_types import non_jax_number

BACKGROUND_MODELS: Tuple[str, ...] = ("chebyshev", "amorphous", "none")

# coefficients of a gently falling background, in the order T0, T1, T2, ...
DEFAULT_CHEBYSHEV_COEFFICIENTS: Tuple[float, ...] = (1.0, -0.4, 0.1, -0.05)


class SimulationSettings(NamedTuple):
    """
    Description
    -----------
    All options of :func:`xrpdium.simul.simulate_powder_pattern`.

    Attributes
    ----------
    - `wavelength` (float):
        X-ray wavelength in Ångstroms.
    - `two_theta_start`, `two_theta_end`, `two_theta_step` (float):
        Angular window and grid step in degrees.
    - `fwhm` (float):
        Full width at half maximum of every peak, degrees 2θ.
    - `eta` (float):
        Lorentzian fraction of the pseudo-Voigt profile.
    - `cutoff_fwhm` (float):
        Half-width of the window each peak is evaluated on, in FWHMs.
    - `zero_point_error` (float):
        Shift added to every calculated 2θ, degrees. Positive values move
        the pattern to higher angles.
    - `include_preferred_orientation` (bool):
        Apply the March-Dollase correction.
    - `preferred_orientation` (Tuple[int, int, int]):
        Reciprocal-lattice direction of the texture axis.
    - `march_dollase_r` (float):
        March-Dollase parameter in (0, 1]; 1 is a random powder.
    - `include_fcj` (bool):
        Apply Finger-Cox-Jephcoat axial-divergence asymmetry.
    - `fcj_a`, `fcj_b` (float):
        FCJ parameters (H/L and S/L).
    - `lorentz_polarisation` (bool):
        Multiply intensities by the Lorentz-polarisation factor.
    - `include_background` (bool):
        Add a synthetic background.
    - `background_model` (str):
        "chebyshev" for a polynomial or "amorphous" for the same structure
        broadened to 5° FWHM; "none" disables the
        background like ``include_background=False``.
    - `chebyshev_coefficients` (Tuple[float, ...]):
        Coefficients of the polynomial background.
    - `amorphous_fwhm` (float):
        Peak width of the amorphous background, degrees.
    - `constant_background` (float):
        Counts added to the background before noise.
    - `include_noise` (bool):
        Apply Poisson counting noise.
    - `noise_floor` (float):
        Bins expecting fewer counts still fluctuate as if they expected
        this many.
    - `bragg_total_signal` (Optional[float]):
        Target sum of the Bragg component, None to skip.
    - `secondary_total_signal` (Optional[float]):
        Target sum of a secondary phase, None to skip.
    - `background_total_signal` (Optional[float]):
        Target sum of the background component, None to skip.
    - `highest_peak` (Optional[float]):
        Target maximum of the summed pattern, None to skip.
    - `exact_window` (bool):
        Keep only reflections strictly inside the window instead of those
        whose tails may still reach it.
    """

    wavelength: float = 1.54056
    two_theta_start: float = 5.0
    two_theta_end: float = 35.0
    two_theta_step: float = 0.015
    fwhm: float = 0.1
    eta: float = 0.9
    cutoff_fwhm: float = 20.0
    zero_point_error: float = 0.0
    include_preferred_orientation: bool = False
    preferred_orientation: Tuple[int, int, int] = (0, 0, 1)
    march_dollase_r: float = 1.0
    include_fcj: bool = False
    fcj_a: float = 0.0001
    fcj_b: float = 0.0001
    lorentz_polarisation: bool = True
    include_background: bool = True
    background_model: str = "amorphous"
    chebyshev_coefficients: Tuple[float, ...] = DEFAULT_CHEBYSHEV_COEFFICIENTS
    amorphous_fwhm: float = 5.0
    constant_background: float = 20.0
    include_noise: bool = True
    noise_floor: float = 20.0
    bragg_total_signal: Optional[float] = 10000.0
    secondary_total_signal: Optional[float] = 10000.0
    background_total_signal: Optional[float] = 2000.0
    highest_peak: Optional[float] = 10000.0
    exact_window: bool = False


def _positive(name: str, value: float) -> None:
    if not value > 0.0:
        raise ValueError(f"{name} must be positive, got {value}")


@beartype
def create_simulation_settings(
    wavelength: non_jax_number = 1.54056,
    two_theta_start: non_jax_number = 5.0,
    two_theta_end: non_jax_number = 35.0,
    two_theta_step: non_jax_number = 0.015,
    fwhm: non_jax_number = 0.1,
    eta: non_jax_number = 0.9,
    cutoff_fwhm: non_jax_number = 20.0,
    zero_point_error: non_jax_number = 0.0,
    include_preferred_orientation: bool = False,
    preferred_orientation: Sequence[int] = (0, 0, 1),
    march_dollase_r: non_jax_number = 1.0,
    include_fcj: bool = False,
    fcj_a: non_jax_number = 0.0001,
    fcj_b: non_jax_number = 0.0001,
    lorentz_polarisation: bool = True,
    include_background: bool = True,
    background_model: str = "amorphous",
    chebyshev_coefficients: Sequence[
        non_jax_number
    ] = DEFAULT_CHEBYSHEV_COEFFICIENTS,
    amorphous_fwhm: non_jax_number = 5.0,
    constant_background: non_jax_number = 20.0,
    include_noise: bool = True,
    noise_floor: non_jax_number = 20.0,
    bragg_total_signal: Optional[non_jax_number] = 10000.0,
    secondary_total_signal: Optional[non_jax_number] = 10000.0,
    background_total_signal: Optional[non_jax_number] = 2000.0,
    highest_peak: Optional[non_jax_number] = 10000.0,
    exact_window: bool = False,
) -> SimulationSettings:
    """
    Description
    -----------
    Factory function to create SimulationSettings with validation. The
    defaults describe a laboratory Cu Kα1 measurement from 5 to 35° 2θ.

    Returns
    -------
    - `settings` (SimulationSettings):
        Validated settings

    Raises
    ------
    - ValueError:
        If a length, width or target is not positive, the window is empty,
        eta or r are out of range, the texture axis is (0, 0, 0), or the
        background model is unknown
    """
    _positive("wavelength", wavelength)
    _positive("two_theta_step", two_theta_step)
    _positive("fwhm", fwhm)
    _positive("cutoff_fwhm", cutoff_fwhm)
    _positive("amorphous_fwhm", amorphous_fwhm)
    if not 0.0 <= two_theta_start < two_theta_end < 180.0:
        raise ValueError(
            "2theta window must satisfy 0 <= start < end < 180, got "
            f"[{two_theta_start}, {two_theta_end}]"
        )
    if not 0.0 <= eta <= 1.0:
        raise ValueError(f"eta must lie in [0, 1], got {eta}")
    if not 0.0 < march_dollase_r <= 1.0:
        raise ValueError(f"march_dollase_r must lie in (0, 1], got {march_dollase_r}")
    if len(preferred_orientation) != 3 or not any(preferred_orientation):
        raise ValueError("preferred_orientation must be a non-zero hkl triple")
    if include_fcj:
        _positive("fcj_a", fcj_a)
        _positive("fcj_b", fcj_b)
    if background_model not in BACKGROUND_MODELS:
        raise ValueError(
            f"background_model must be one of {BACKGROUND_MODELS}, "
            f"got {background_model!r}"
        )
    if constant_background < 0.0 or noise_floor < 0.0:
        raise ValueError("constant_background and noise_floor must be >= 0")
    for name, target in (
        ("bragg_total_signal", bragg_total_signal),
        ("secondary_total_signal", secondary_total_signal),
        ("background_total_signal", background_total_signal),
        ("highest_peak", highest_peak),
    ):
        if target is not None:
            _positive(name, target)
    return SimulationSettings(
        wavelength=float(wavelength),
        two_theta_start=float(two_theta_start),
        two_theta_end=float(two_theta_end),
        two_theta_step=float(two_theta_step),
        fwhm=float(fwhm),
        eta=float(eta),
        cutoff_fwhm=float(cutoff_fwhm),
        zero_point_error=float(zero_point_error),
        include_preferred_orientation=include_preferred_orientation,
        preferred_orientation=tuple(int(i) for i in preferred_orientation),
        march_dollase_r=float(march_dollase_r),
        include_fcj=include_fcj,
        fcj_a=float(fcj_a),
        fcj_b=float(fcj_b),
        lorentz_polarisation=lorentz_polarisation,
        include_background=include_background,
        background_model=background_model,
        chebyshev_coefficients=tuple(float(c) for c in chebyshev_coefficients),
        amorphous_fwhm=float(amorphous_fwhm),
        constant_background=float(constant_background),
        include_noise=include_noise,
        noise_floor=float(noise_floor),
        bragg_total_signal=_optional_float(bragg_total_signal),
        secondary_total_signal=_optional_float(secondary_total_signal),
        background_total_signal=_optional_float(background_total_signal),
        highest_peak=_optional_float(highest_peak),
        exact_window=exact_window,
    )


def _optional_float(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)
