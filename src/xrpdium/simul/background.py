"""Parametric and non-parametric powder backgrounds.

Extended Summary
----------------
Two interchangeable background models are provided. The parametric model
is a Chebyshev series over 2θ mapped linearly onto [−1, 1]; the
polynomial coefficients come from a table built once by the recurrence
Tₙ = 2x Tₙ₋₁ − Tₙ₋₂, so any order is available. The non-parametric model
is Brückner's iterative strip: every point is repeatedly replaced by the
smaller of itself and the mean of its neighbours, which peels peaks off
and leaves the slowly varying background.

Routine Listings
----------------
chebyshev_coefficient_table : function
    Power-series coefficients of T₀ ... T_order
chebyshev_polynomials : function
    Values of T₀ ... T_order
chebyshev_background : function
    Chebyshev series over a 2θ range
bruckner_background : function
    Iterative strip estimate, pointwise <= the input
estimate_background : function
    Brückner background of a PowderPattern
subtract_background : function
    Remove a background from a PowderPattern
"""

import functools
import logging

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Optional, Sequence, Union
from jax import lax
from jaxtyping import Array, Float, jaxtyped

from xrpdium.types import (
    DomainError,
    PowderPattern,
    check_uniform_grid,
    non_jax_number,
    scalar_float,
)

jax.config.update("jax_enable_x64", True)

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=None)
def _coefficient_table(order: int) -> np.ndarray:
    table = np.zeros((order + 1, order + 1), dtype=np.float64)
    table[0, 0] = 1.0
    if order >= 1:
        table[1, 1] = 1.0
    for n in range(2, order + 1):
        table[n, 1:] = 2.0 * table[n - 1, :-1]
        table[n] -= table[n - 2]
    table.setflags(write=False)
    return table


@beartype
def chebyshev_coefficient_table(order: int) -> Float[Array, " n_orders n_orders"]:
    """
    Description
    -----------
    Coefficients of the Chebyshev polynomials of the first kind as power
    series: row n holds c with Tₙ(x) = Σₖ cₖ xᵏ.

    Parameters
    ----------
    - `order` (int):
        Highest order, >= 0

    Returns
    -------
    - `table` (Float[Array, "order+1 order+1"]):
        Lower-triangular coefficient table

    Raises
    ------
    - ValueError:
        If the order is negative
    """
    if order < 0:
        raise ValueError(f"Chebyshev order must be >= 0, got {order}")
    return jnp.asarray(_coefficient_table(order))


@jaxtyped(typechecker=beartype)
def chebyshev_polynomials(
    x: Float[Array, "*batch"], order: int
) -> Float[Array, "*batch n_orders"]:
    """T₀(x) ... T_order(x) along a new last axis."""
    table = chebyshev_coefficient_table(order)
    powers = x[..., None] ** jnp.arange(order + 1, dtype=jnp.float64)
    return powers @ table.T


@beartype
def chebyshev_background(
    two_theta: Float[Array, " N"],
    coefficients: Union[Float[Array, " n_orders"], Sequence[non_jax_number]],
    two_theta_start: Optional[scalar_float] = None,
    two_theta_end: Optional[scalar_float] = None,
) -> Float[Array, " N"]:
    """
    Description
    -----------
    Evaluate Σₙ Bₙ Tₙ(x) with x = 2 (2θ − start) / (end − start) − 1.

    Parameters
    ----------
    - `two_theta` (Float[Array, "N"]):
        Angles in degrees; the grid need not be uniform
    - `coefficients` (Float[Array, "n_orders"]):
        B₀, B₁, ... in increasing order
    - `two_theta_start`, `two_theta_end` (scalar_float, optional):
        Range mapped onto [−1, 1]. Default is the first and last angle

    Returns
    -------
    - `background` (Float[Array, "N"]):
        Background intensities

    Raises
    ------
    - ValueError:
        If no coefficients are given or the range is empty
    """
    coefficients = jnp.asarray(coefficients, dtype=jnp.float64)
    if coefficients.shape[0] == 0:
        raise ValueError("at least one Chebyshev coefficient is needed")
    start = two_theta[0] if two_theta_start is None else two_theta_start
    end = two_theta[-1] if two_theta_end is None else two_theta_end
    if not float(end) > float(start):
        raise ValueError("Chebyshev range must have end > start")
    x = 2.0 * (two_theta - start) / (end - start) - 1.0
    return chebyshev_polynomials(x, coefficients.shape[0] - 1) @ coefficients


def _neighbour_sums(values: Float[Array, " N"], half_width: int) -> Float[Array, " N"]:
    # edge values are repeated beyond both ends
    padded = jnp.pad(values, half_width, mode="edge")
    kernel = jnp.ones(2 * half_width + 1, dtype=values.dtype)
    return jnp.convolve(padded, kernel, mode="valid")


def _moving_average(values: Float[Array, " N"], half_width: int) -> Float[Array, " N"]:
    return _neighbour_sums(values, half_width) / (2.0 * half_width + 1.0)


@beartype
def bruckner_background(
    intensity: Float[Array, " N"],
    window: int = 20,
    iterations: int = 50,
    smoothing_window: int = 0,
    smoothing_interval: int = 0,
) -> Float[Array, " N"]:
    """
    Description
    -----------
    Brückner's iterative background estimate (J. Appl. Cryst. 33 (2000)
    977).

    Parameters
    ----------
    - `intensity` (Float[Array, "N"]):
        Observed intensities on a uniform grid
    - `window` (int, optional):
        Number of neighbours on each side averaged per step. Default is 20
    - `iterations` (int, optional):
        Number of strip iterations. Default is 50
    - `smoothing_window` (int, optional):
        Half-width of the moving average applied to the input before
        stripping and, if ``smoothing_interval`` is set, to the estimate.
        Default is 0, no smoothing
    - `smoothing_interval` (int, optional):
        Smooth the estimate after every this many iterations. Default is
        0, never

    Returns
    -------
    - `background` (Float[Array, "N"]):
        Estimate, pointwise <= ``intensity``

    Raises
    ------
    - ValueError:
        If window < 1 or a count is negative

    Flow
    ----
    - Optionally smooth the input
    - Clip values above avg + 2 (avg − min), which removes strong peaks
      before they can bias the averages
    - Repeat: est = min(est, mean of the 2 * window neighbours), with the
      end points repeated beyond the pattern; every ``smoothing_interval``
      iterations est = min(est, moving average of est)
    - Return min(est, intensity)
    """
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    if iterations < 0 or smoothing_window < 0 or smoothing_interval < 0:
        raise ValueError("iterations and smoothing settings must be >= 0")
    estimate = intensity
    if smoothing_window > 0:
        estimate = _moving_average(estimate, smoothing_window)
    average = jnp.mean(estimate)
    ceiling = average + 2.0 * (average - jnp.min(estimate))
    estimate = jnp.minimum(estimate, ceiling)
    smooth_every = smoothing_interval if smoothing_window > 0 else 0

    def _strip(iteration, current):
        neighbours = (_neighbour_sums(current, window) - current) / (2.0 * window)
        stripped = jnp.minimum(current, neighbours)
        if smooth_every > 0:
            smoothed = jnp.minimum(
                stripped, _moving_average(stripped, smoothing_window)
            )
            stripped = jnp.where(
                (iteration + 1) % smooth_every == 0, smoothed, stripped
            )
        return stripped

    estimate = lax.fori_loop(0, iterations, _strip, estimate)
    return jnp.minimum(estimate, intensity)


@beartype
def estimate_background(
    pattern: PowderPattern,
    window: int = 20,
    iterations: int = 50,
    smoothing_window: int = 0,
    smoothing_interval: int = 0,
) -> PowderPattern:
    """Brückner background of a pattern on a uniform grid.

    Raises
    ------
    DomainError
        If the 2θ grid of ``pattern`` is not uniform.
    """
    check_uniform_grid(pattern)
    background = bruckner_background(
        pattern.intensity, window, iterations, smoothing_window, smoothing_interval
    )
    return PowderPattern(
        two_theta=pattern.two_theta,
        intensity=background,
        esd=jnp.sqrt(jnp.abs(background)),
    )


@beartype
def subtract_background(
    pattern: PowderPattern,
    background: Optional[Union[PowderPattern, Float[Array, " N"]]] = None,
    window: int = 20,
    iterations: int = 50,
) -> PowderPattern:
    """
    Description
    -----------
    Subtract a background from a pattern. The ESDs of the pattern are
    kept, the background is treated as exact.

    Parameters
    ----------
    - `pattern` (PowderPattern):
        Pattern on a uniform grid
    - `background` (PowderPattern or Float[Array, "N"], optional):
        Background on the same grid. Default is the Brückner estimate
        with ``window`` and ``iterations``

    Returns
    -------
    - `subtracted` (PowderPattern):
        New pattern

    Raises
    ------
    - DomainError:
        If the grid is not uniform or the background has another length
        or grid
    """
    check_uniform_grid(pattern)
    if background is None:
        values = bruckner_background(pattern.intensity, window, iterations)
    elif isinstance(background, PowderPattern):
        if background.two_theta.shape != pattern.two_theta.shape or not bool(
            jnp.allclose(background.two_theta, pattern.two_theta, atol=1e-6)
        ):
            raise DomainError("background must share the grid of the pattern")
        values = background.intensity
    else:
        values = background
    if values.shape != pattern.intensity.shape:
        raise DomainError(
            f"background has {values.shape[0]} points, pattern has "
            f"{pattern.intensity.shape[0]}"
        )
    if bool(jnp.any(values > pattern.intensity)):
        logger.debug("background exceeds the pattern at some points")
    return PowderPattern(
        two_theta=pattern.two_theta,
        intensity=pattern.intensity - values,
        esd=pattern.esd,
    )
