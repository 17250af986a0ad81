"""Result type of the small symmetric eigensolver."""

import jax.numpy as jnp
from beartype.typing import NamedTuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Bool, Float, Int


@register_pytree_node_class
class SymmetricEigenResult(NamedTuple):
    """
    Description
    -----------
    Eigen-decomposition of a real symmetric 3x3 matrix.

    Attributes
    ----------
    - `eigenvalues` (Float[Array, "3"]):
        Eigenvalues in ascending order.
    - `eigenvectors` (Float[Array, "3 3"]):
        Orthonormal eigenvectors as columns, matching ``eigenvalues``.
    - `converged` (Bool[Array, ""]):
        False if the iteration limit was reached before the off-diagonal
        elements vanished. The other fields then hold the last iterate.
    - `sweeps` (Int[Array, ""]):
        Number of Jacobi sweeps performed.
    """

    eigenvalues: Float[Array, " 3"]
    eigenvectors: Float[Array, " 3 3"]
    converged: Bool[Array, ""]
    sweeps: Int[Array, ""]

    def tree_flatten(self):
        return (tuple(self), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        return cls(*children)

    def reconstruct(self) -> Float[Array, " 3 3"]:
        """V diag(λ) Vᵀ."""
        return (self.eigenvectors * self.eigenvalues[None, :]) @ jnp.transpose(
            self.eigenvectors
        )
