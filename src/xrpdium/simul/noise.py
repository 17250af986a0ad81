"""Poisson counting noise and estimated standard deviations.

Extended Summary
----------------
Detector counts are Poisson distributed. Noise is drawn from an explicit
``jax.random`` key, so a simulation is reproducible for a given seed and
no random state is shared between calls.

Routine Listings
----------------
add_poisson_noise : function
    Poisson counts for an array of expected intensities
poisson_esds : function
    sqrt(count + ε)
counting_esds : function
    ESD rule for noiseless simulated patterns
add_noise_to_pattern : function
    Noisy copy of a PowderPattern with recalculated ESDs
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from jaxtyping import Array, Float, PRNGKeyArray, jaxtyped

from xrpdium.types import PowderPattern, scalar_float

jax.config.update("jax_enable_x64", True)

DEFAULT_EPSILON: float = 1.0


@jaxtyped(typechecker=beartype)
def add_poisson_noise(
    intensity: Float[Array, "*batch"],
    key: PRNGKeyArray,
    offset: scalar_float = 0.0,
    noise_floor: scalar_float = 0.0,
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    Replace expected intensities by Poisson-distributed counts.

    Parameters
    ----------
    - `intensity` (Float[Array, "*batch"]):
        Expected counts per bin
    - `key` (PRNGKeyArray):
        Random key, e.g. ``jax.random.PRNGKey(seed)``
    - `offset` (scalar_float, optional):
        Constant added to every bin before the draw. Default is 0
    - `noise_floor` (scalar_float, optional):
        Bins expecting fewer counts fluctuate with the spread of a bin
        expecting ``noise_floor`` counts, so that regions without
        background are not noiseless. Their mean is unchanged, so such
        bins may go negative. Default is 0

    Returns
    -------
    - `counts` (Float[Array, "*batch"]):
        Counts, non-negative wherever the expectation is at or above the
        noise floor. The mean over many keys is max(intensity + offset, 0)

    Flow
    ----
    - expected = max(intensity + offset, 0)
    - λ = max(expected, noise_floor), draw n ~ Poisson(λ)
    - counts = expected + (n − λ)
    """
    expected = jnp.maximum(intensity + offset, 0.0)
    rate = jnp.maximum(expected, noise_floor)
    draws = jax.random.poisson(key, rate, shape=expected.shape).astype(
        jnp.float64
    )
    return jnp.where(rate > expected, expected + (draws - rate), draws)


@jaxtyped(typechecker=beartype)
def poisson_esds(
    counts: Float[Array, "*batch"], epsilon: scalar_float = DEFAULT_EPSILON
) -> Float[Array, "*batch"]:
    """sqrt(count + ε); ε keeps zero-count bins from having zero weight."""
    return jnp.sqrt(jnp.maximum(counts, 0.0) + epsilon)


@jaxtyped(typechecker=beartype)
def counting_esds(intensity: Float[Array, "*batch"]) -> Float[Array, "*batch"]:
    """ESDs of a noiseless pattern: 4.4 below 20 counts, I/100 above
    10000 counts and sqrt(I) in between."""
    return jnp.where(
        intensity < 20.0,
        4.4,
        jnp.where(
            intensity > 10000.0,
            intensity / 100.0,
            jnp.sqrt(jnp.maximum(intensity, 0.0)),
        ),
    )


@beartype
def add_noise_to_pattern(
    pattern: PowderPattern,
    key: PRNGKeyArray,
    offset: scalar_float = 0.0,
    noise_floor: scalar_float = 0.0,
    epsilon: scalar_float = DEFAULT_EPSILON,
) -> PowderPattern:
    """New pattern with Poisson counts and ESDs sqrt(count + ε)."""
    counts = add_poisson_noise(pattern.intensity, key, offset, noise_floor)
    return PowderPattern(
        two_theta=pattern.two_theta,
        intensity=counts,
        esd=poisson_esds(counts, epsilon),
    )
