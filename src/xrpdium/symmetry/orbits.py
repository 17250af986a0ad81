"""Symmetry-equivalent reflections under a Laue class.

Extended Summary
----------------
Two Miller-index triples describe the same powder reflection if and only
if their orbits under the Laue class coincide. This module is the single
place where orbits are computed: reflection enumeration, structure-factor
multiplicities and the preferred-orientation correction all go through
it, so every per-reflection quantity is derived from the same notion of
equivalence.

Equivalent indices are H' = H R, with H a row vector and R a rotation of
the Laue class acting on fractional coordinates. The canonical
representative of an orbit is its lexicographically largest member, which
for the usual settings puts positive indices first, e.g. (2, 1, 0) rather
than (-2, -1, 0).

Routine Listings
----------------
equivalent_reflections : function
    Images of Miller indices under every Laue rotation
miller_keys : function
    Integer keys that sort like (h, k, l) lexicographically
canonical_reflection : function
    Canonical representative of each orbit
reflection_multiplicity : function
    Orbit sizes
reflection_orbit : function
    The distinct members of one orbit
unique_reflections : function
    One canonical representative per orbit, with multiplicities
same_orbit : function
    Whether two index triples are equivalent
orbit_average : function
    Average a per-reflection function over each orbit
"""

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Callable, Tuple
from jaxtyping import Array, Bool, Float, Int, Num, jaxtyped

jax.config.update("jax_enable_x64", True)

# keys are exact for |h|, |k|, |l| < _KEY_OFFSET
_KEY_BASE: int = 1 << 16
_KEY_OFFSET: int = 1 << 15


@jaxtyped(typechecker=beartype)
def equivalent_reflections(
    hkl: Num[Array, "*batch 3"], laue: Int[Array, " n_laue 3 3"]
) -> Int[Array, "*batch n_laue 3"]:
    """All images H R of the Miller indices, one per Laue rotation.

    An orbit member appears n_laue / multiplicity times.
    """
    hkl_int = jnp.asarray(hkl, dtype=jnp.int64)
    return jnp.einsum("...i,nij->...nj", hkl_int, laue.astype(jnp.int64))


@jaxtyped(typechecker=beartype)
def miller_keys(hkl: Int[Array, "*batch 3"]) -> Int[Array, "*batch"]:
    """Map (h, k, l) to integers whose order is the lexicographic order."""
    shifted = jnp.asarray(hkl, dtype=jnp.int64) + _KEY_OFFSET
    h, k, l = shifted[..., 0], shifted[..., 1], shifted[..., 2]
    return (h * _KEY_BASE + k) * _KEY_BASE + l


@jaxtyped(typechecker=beartype)
def canonical_reflection(
    hkl: Num[Array, "*batch 3"], laue: Int[Array, " n_laue 3 3"]
) -> Int[Array, "*batch 3"]:
    """
    Description
    -----------
    Canonical representative of the orbit of each Miller-index triple: the
    lexicographically largest equivalent triple.

    Parameters
    ----------
    - `hkl` (Num[Array, "*batch 3"]):
        Miller indices
    - `laue` (Int[Array, "n_laue 3 3"]):
        Rotations of the Laue class

    Returns
    -------
    - `canonical` (Int[Array, "*batch 3"]):
        Representatives; equal for all members of one orbit
    """
    images = equivalent_reflections(hkl, laue)
    best = jnp.argmax(miller_keys(images), axis=-1)
    selected = jnp.arange(laue.shape[0]) == best[..., None]
    return jnp.sum(images * selected[..., None], axis=-2).astype(jnp.int32)


@jaxtyped(typechecker=beartype)
def reflection_multiplicity(
    hkl: Num[Array, "*batch 3"], laue: Int[Array, " n_laue 3 3"]
) -> Int[Array, "*batch"]:
    """Number of distinct triples in the orbit of each reflection."""
    keys = jnp.sort(miller_keys(equivalent_reflections(hkl, laue)), axis=-1)
    distinct = jnp.sum(keys[..., 1:] != keys[..., :-1], axis=-1) + 1
    return distinct.astype(jnp.int32)


@beartype
def reflection_orbit(
    hkl: Num[Array, " 3"], laue: Int[Array, " n_laue 3 3"]
) -> Int[Array, " multiplicity 3"]:
    """Distinct members of one orbit in descending lexicographic order.

    The first row is the canonical representative.
    """
    images = np.asarray(equivalent_reflections(hkl, laue))
    members = np.unique(images, axis=0)[::-1]
    return jnp.asarray(members, dtype=jnp.int32)


@beartype
def unique_reflections(
    hkl: Num[Array, " M 3"], laue: Int[Array, " n_laue 3 3"]
) -> Tuple[Int[Array, " K 3"], Int[Array, " K"]]:
    """
    Description
    -----------
    Reduce a list of Miller indices to one canonical representative per
    orbit.

    Parameters
    ----------
    - `hkl` (Num[Array, "M 3"]):
        Miller indices, possibly containing several members of one orbit
    - `laue` (Int[Array, "n_laue 3 3"]):
        Rotations of the Laue class

    Returns
    -------
    - `canonical` (Int[Array, "K 3"]):
        Distinct canonical representatives, in descending lexicographic
        order
    - `multiplicity` (Int[Array, "K"]):
        Orbit size of each representative

    Notes
    -----
    The output length depends on the data, so this function is not
    traceable.
    """
    canonical = np.asarray(canonical_reflection(hkl, laue))
    representatives = np.unique(canonical, axis=0)[::-1]
    representatives = jnp.asarray(np.ascontiguousarray(representatives))
    return representatives, reflection_multiplicity(representatives, laue)


@jaxtyped(typechecker=beartype)
def same_orbit(
    first: Num[Array, "*batch 3"],
    second: Num[Array, "*batch 3"],
    laue: Int[Array, " n_laue 3 3"],
) -> Bool[Array, "*batch"]:
    """True where the two index triples are symmetry equivalent."""
    return jnp.all(
        canonical_reflection(first, laue) == canonical_reflection(second, laue),
        axis=-1,
    )


def orbit_average(
    function: Callable[[Int[Array, "... 3"]], Float[Array, "..."]],
    hkl: Num[Array, "*batch 3"],
    laue: Int[Array, " n_laue 3 3"],
) -> Float[Array, "*batch"]:
    """
    Description
    -----------
    Average a per-reflection scalar over the distinct members of each
    orbit. Every member occurs equally often among the Laue images, so the
    plain mean over all images is the mean over distinct members. The
    images are generated from the canonical representative, so the result
    is bitwise identical for all members of an orbit.

    Parameters
    ----------
    - `function` (Callable):
        Vectorised map from Miller indices (..., 3) to scalars (...)
    - `hkl` (Num[Array, "*batch 3"]):
        Miller indices
    - `laue` (Int[Array, "n_laue 3 3"]):
        Rotations of the Laue class

    Returns
    -------
    - `average` (Float[Array, "*batch"]):
        Orbit means. Multiply by the multiplicity for orbit sums.
    """
    images = equivalent_reflections(canonical_reflection(hkl, laue), laue)
    return jnp.mean(function(images), axis=-1)
