"""Data structures for reflection lists and powder patterns.

Extended Summary
----------------
The engine produces two kinds of results: a list of unique reflections
with their geometry and intensities, and a one-dimensional powder pattern
sampled on a uniform 2θ grid. Both are created fresh by every simulation
call and owned by the caller.

Routine Listings
----------------
ReflectionList : PyTree
    Unique reflections with d-spacings, angles and intensities
PowderPattern : PyTree
    2θ, intensity and estimated standard deviation triples
create_reflection_list : function
    Factory function to create ReflectionList instances
create_powder_pattern : function
    Factory function to create PowderPattern instances
make_two_theta_grid : function
    Uniform 2θ grid from start, end and step
pattern_step : function
    Average 2θ step of a pattern
check_uniform_grid : function
    Raise DomainError if a 2θ grid is not uniform
add_patterns : function
    Sum two patterns on the same grid
scale_pattern : function
    Multiply intensities and ESDs by a factor
"""

import jax
import jax.numpy as jnp
from beartype import beartype
from beartype.typing import NamedTuple, Optional, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int, Num, jaxtyped

from .custom_types import scalar_float
from .errors import DomainError

jax.config.update("jax_enable_x64", True)


@register_pytree_node_class
class ReflectionList(NamedTuple):
    """
    Description
    -----------
    Unique reflections of a crystal structure inside an angular window,
    one canonical representative per symmetry orbit.

    Attributes
    ----------
    - `hkl` (Int[Array, "M 3"]):
        Canonical Miller indices.
    - `d_spacing` (Float[Array, "M"]):
        Interplanar spacings in Ångstroms.
    - `two_theta` (Float[Array, "M"]):
        Diffraction angles 2θ in degrees, including any zero-point error.
    - `f_squared` (Float[Array, "M"]):
        Squared structure-factor magnitudes |F|².
    - `multiplicity` (Int[Array, "M"]):
        Orbit sizes.
    - `orientation_factor` (Float[Array, "M"]):
        Orbit-averaged March-Dollase corrections, 1 without texture.
    - `intensity` (Float[Array, "M"]):
        Integrated intensities handed to the profile synthesis.
    """

    hkl: Int[Array, " M 3"]
    d_spacing: Float[Array, " M"]
    two_theta: Float[Array, " M"]
    f_squared: Float[Array, " M"]
    multiplicity: Int[Array, " M"]
    orientation_factor: Float[Array, " M"]
    intensity: Float[Array, " M"]

    def tree_flatten(self):
        return (tuple(self), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)

    @property
    def n_reflections(self) -> int:
        return int(self.hkl.shape[0])


@jaxtyped(typechecker=beartype)
def create_reflection_list(
    hkl: Num[Array, " M 3"],
    d_spacing: Num[Array, " M"],
    two_theta: Num[Array, " M"],
    f_squared: Num[Array, " M"],
    multiplicity: Num[Array, " M"],
    orientation_factor: Optional[Num[Array, " M"]] = None,
    intensity: Optional[Num[Array, " M"]] = None,
) -> ReflectionList:
    """
    Description
    -----------
    Factory function to create a ReflectionList sorted by 2θ.

    Parameters
    ----------
    - `hkl` (Num[Array, "M 3"]):
        Miller indices
    - `d_spacing` (Num[Array, "M"]):
        d-spacings in Ångstroms
    - `two_theta` (Num[Array, "M"]):
        2θ in degrees
    - `f_squared` (Num[Array, "M"]):
        |F|² values, must be non-negative
    - `multiplicity` (Num[Array, "M"]):
        Orbit sizes, must be positive
    - `orientation_factor` (Num[Array, "M"], optional):
        March-Dollase corrections. Default is ones
    - `intensity` (Num[Array, "M"], optional):
        Integrated intensities. Default is f_squared times multiplicity
        times orientation_factor

    Returns
    -------
    - `reflections` (ReflectionList):
        Validated reflections in increasing 2θ order

    Raises
    ------
    - ValueError:
        If |F|² is negative or a multiplicity is not positive
    """
    hkl = jnp.asarray(hkl, dtype=jnp.int32)
    d_spacing = jnp.asarray(d_spacing, dtype=jnp.float64)
    two_theta = jnp.asarray(two_theta, dtype=jnp.float64)
    f_squared = jnp.asarray(f_squared, dtype=jnp.float64)
    multiplicity = jnp.asarray(multiplicity, dtype=jnp.int32)
    if orientation_factor is None:
        orientation_factor = jnp.ones_like(f_squared)
    orientation_factor = jnp.asarray(orientation_factor, dtype=jnp.float64)
    if intensity is None:
        intensity = f_squared * multiplicity * orientation_factor
    intensity = jnp.asarray(intensity, dtype=jnp.float64)

    if not bool(jnp.all(f_squared >= 0.0)):
        raise ValueError("squared structure factors must be non-negative")
    if not bool(jnp.all(multiplicity > 0)):
        raise ValueError("multiplicities must be positive")
    order = jnp.argsort(two_theta)
    return ReflectionList(
        hkl=hkl[order],
        d_spacing=d_spacing[order],
        two_theta=two_theta[order],
        f_squared=f_squared[order],
        multiplicity=multiplicity[order],
        orientation_factor=orientation_factor[order],
        intensity=intensity[order],
    )


@register_pytree_node_class
class PowderPattern(NamedTuple):
    """
    Description
    -----------
    A one-dimensional powder diffraction pattern.

    Attributes
    ----------
    - `two_theta` (Float[Array, "N"]):
        Strictly increasing 2θ values in degrees.
    - `intensity` (Float[Array, "N"]):
        Intensities in counts.
    - `esd` (Float[Array, "N"]):
        Estimated standard deviations of the intensities.

    Notes
    -----
    Grid-based routines additionally require a uniform step, checked with
    :func:`check_uniform_grid`.
    """

    two_theta: Float[Array, " N"]
    intensity: Float[Array, " N"]
    esd: Float[Array, " N"]

    def tree_flatten(self):
        return ((self.two_theta, self.intensity, self.esd), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)

    def __repr__(self) -> str:
        n_points = self.two_theta.shape[0]
        return (
            f"PowderPattern(n_points={n_points}, "
            f"two_theta=[{float(self.two_theta[0]):.4f}, "
            f"{float(self.two_theta[-1]):.4f}])"
        )


@jaxtyped(typechecker=beartype)
def create_powder_pattern(
    two_theta: Num[Array, " N"],
    intensity: Num[Array, " N"],
    esd: Optional[Num[Array, " N"]] = None,
) -> PowderPattern:
    """
    Description
    -----------
    Factory function to create a PowderPattern.

    Parameters
    ----------
    - `two_theta` (Num[Array, "N"]):
        2θ values in degrees, strictly increasing
    - `intensity` (Num[Array, "N"]):
        Intensities
    - `esd` (Num[Array, "N"], optional):
        Estimated standard deviations. Default is sqrt(|intensity|)

    Returns
    -------
    - `pattern` (PowderPattern):
        Validated pattern

    Raises
    ------
    - ValueError:
        If the pattern is empty, values are not finite or 2θ is not
        strictly increasing
    """
    two_theta = jnp.asarray(two_theta, dtype=jnp.float64)
    intensity = jnp.asarray(intensity, dtype=jnp.float64)
    if esd is None:
        esd = jnp.sqrt(jnp.abs(intensity))
    esd = jnp.asarray(esd, dtype=jnp.float64)
    if two_theta.shape[0] == 0:
        raise ValueError("a powder pattern needs at least one point")
    if not bool(
        jnp.all(jnp.isfinite(two_theta))
        & jnp.all(jnp.isfinite(intensity))
        & jnp.all(jnp.isfinite(esd))
    ):
        raise ValueError("powder pattern contains non-finite values")
    if not bool(jnp.all(jnp.diff(two_theta) > 0.0)):
        raise ValueError("2theta values must be strictly increasing")
    return PowderPattern(two_theta=two_theta, intensity=intensity, esd=esd)


@jaxtyped(typechecker=beartype)
def make_two_theta_grid(
    start: scalar_float, end: scalar_float, step: scalar_float
) -> Float[Array, " N"]:
    """
    Description
    -----------
    Uniform 2θ grid start, start + step, ... up to and including ``end``
    when ``end`` lies on the grid.

    Raises
    ------
    - ValueError:
        If step is not positive or end is not larger than start
    """
    if not float(step) > 0.0:
        raise ValueError(f"2theta step must be positive, got {step}")
    if not float(end) > float(start):
        raise ValueError("2theta end must be larger than 2theta start")
    n_points = int((float(end) - float(start)) / float(step) + 1e-6) + 1
    return float(start) + float(step) * jnp.arange(n_points, dtype=jnp.float64)


def pattern_step(pattern: Union[PowderPattern, Float[Array, " N"]]) -> float:
    """Average 2θ step in degrees."""
    two_theta = pattern.two_theta if isinstance(pattern, PowderPattern) else pattern
    if two_theta.shape[0] < 2:
        raise DomainError("a grid needs at least two points to have a step")
    return float((two_theta[-1] - two_theta[0]) / (two_theta.shape[0] - 1))


def check_uniform_grid(
    pattern: Union[PowderPattern, Float[Array, " N"]],
    tolerance: float = 1e-4,
) -> float:
    """
    Description
    -----------
    Verify that a 2θ grid has a uniform step.

    Parameters
    ----------
    - `pattern` (Union[PowderPattern, Float[Array, "N"]]):
        Pattern or bare 2θ grid
    - `tolerance` (float, optional):
        Largest allowed deviation of any step from the average step, as a
        fraction of the average step. Default is 1e-4

    Returns
    -------
    - `step` (float):
        The average step

    Raises
    ------
    - DomainError:
        If any step deviates from the average by more than the tolerance
    """
    two_theta = pattern.two_theta if isinstance(pattern, PowderPattern) else pattern
    step = pattern_step(two_theta)
    deviation = float(jnp.max(jnp.abs(jnp.diff(two_theta) - step)))
    if deviation > tolerance * abs(step):
        raise DomainError(
            f"2theta grid is not uniform: step {step:.6f} varies by {deviation:.2e}"
        )
    return step


def _same_grid(first: PowderPattern, second: PowderPattern) -> bool:
    if first.two_theta.shape != second.two_theta.shape:
        return False
    return bool(jnp.allclose(first.two_theta, second.two_theta, atol=1e-6))


@beartype
def add_patterns(first: PowderPattern, second: PowderPattern) -> PowderPattern:
    """
    Description
    -----------
    Pointwise sum of two patterns on the same grid. ESDs add in quadrature.

    Raises
    ------
    - DomainError:
        If the two grids differ
    """
    if not _same_grid(first, second):
        raise DomainError("patterns must share the same 2theta grid to be added")
    return PowderPattern(
        two_theta=first.two_theta,
        intensity=first.intensity + second.intensity,
        esd=jnp.sqrt(first.esd**2 + second.esd**2),
    )


@beartype
def scale_pattern(pattern: PowderPattern, factor: scalar_float) -> PowderPattern:
    """Multiply intensities by ``factor`` and ESDs by ``|factor|``."""
    return PowderPattern(
        two_theta=pattern.two_theta,
        intensity=pattern.intensity * factor,
        esd=pattern.esd * jnp.abs(factor),
    )
