"""Atomic scattering-factor functions.

Extended Summary
----------------
A scattering-factor function maps atomic numbers and values of
s = sinθ/λ = 1/(2d) to form factors. The structure-factor calculator
accepts any such callable; this module provides the two common builders.

Routine Listings
----------------
atomic_number_scattering : function
    Form factor equal to the atomic number at every angle
cromer_mann_scattering : function
    Builder for Cromer-Mann four-Gaussian form factors
"""

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Dict, Sequence
from jaxtyping import Array, Float, Int, jaxtyped

from xrpdium.types import non_jax_number, scattering_function

jax.config.update("jax_enable_x64", True)


@jaxtyped(typechecker=beartype)
def atomic_number_scattering(
    atomic_numbers: Int[Array, " n_atoms"], s: Float[Array, " n_s"]
) -> Float[Array, " n_s n_atoms"]:
    """Forward-scattering limit f = Z, independent of s."""
    z_values: Float[Array, " n_atoms"] = atomic_numbers.astype(jnp.float64)
    return jnp.broadcast_to(z_values[None, :], (s.shape[0], z_values.shape[0]))


@beartype
def cromer_mann_scattering(
    coefficients: Dict[int, Sequence[non_jax_number]],
) -> scattering_function:
    """
    Description
    -----------
    Build a scattering-factor function from Cromer-Mann coefficients,

        f(s) = Σᵢ aᵢ exp(−bᵢ s²) + c,   i = 1..4

    Parameters
    ----------
    - `coefficients` (Dict[int, Sequence[non_jax_number]]):
        Nine numbers a1, b1, a2, b2, a3, b3, a4, b4, c per atomic number

    Returns
    -------
    - `scattering` (scattering_function):
        Callable (atomic_numbers, s) -> f of shape (n_s, n_atoms).
        Elements without coefficients fall back to f = Z.

    Raises
    ------
    - ValueError:
        If an entry does not hold nine numbers
    """
    max_z = max(max(coefficients), 1)
    table = np.zeros((max_z + 1, 9), dtype=np.float64)
    known = np.zeros(max_z + 1, dtype=bool)
    for atomic_number, values in coefficients.items():
        if len(values) != 9:
            raise ValueError(
                f"Cromer-Mann entry for Z={atomic_number} needs 9 numbers, "
                f"got {len(values)}"
            )
        table[atomic_number] = values
        known[atomic_number] = True
    a_table = jnp.asarray(table[:, 0:8:2])
    b_table = jnp.asarray(table[:, 1:8:2])
    c_table = jnp.asarray(table[:, 8])
    known_table = jnp.asarray(known)

    def _scattering(
        atomic_numbers: Int[Array, " n_atoms"], s: Float[Array, " n_s"]
    ) -> Float[Array, " n_s n_atoms"]:
        index = jnp.clip(atomic_numbers, 0, max_z)
        a = a_table[index]
        b = b_table[index]
        s_squared = (s**2)[:, None, None]
        f = jnp.sum(a[None] * jnp.exp(-b[None] * s_squared), axis=-1)
        f = f + c_table[index][None, :]
        fallback = atomic_number_scattering(atomic_numbers, s)
        has_table = known_table[index] & (atomic_numbers <= max_z)
        return jnp.where(has_table[None, :], f, fallback)

    return _scattering
