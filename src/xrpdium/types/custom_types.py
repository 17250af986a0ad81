"""Scalar type aliases shared across xrpdium.

These unions let public functions accept either plain Python numbers or
zero-dimensional JAX arrays, so the same call works eagerly and under
``jax.jit``.
"""

from beartype.typing import Callable, Union
from jaxtyping import Array, Bool, Float, Int, Num

scalar_float = Union[float, Float[Array, ""]]
scalar_int = Union[int, Int[Array, ""]]
scalar_num = Union[int, float, Num[Array, ""]]
scalar_bool = Union[bool, Bool[Array, ""]]
non_jax_number = Union[int, float]

# (atomic_numbers, sin(theta)/lambda) -> f with shape (n_s, n_atoms)
scattering_function = Callable[
    [Int[Array, " n_atoms"], Float[Array, " n_s"]],
    Float[Array, " n_s n_atoms"],
]
