import dataclasses

import jax
import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class

from ecpint import types


@register_pytree_node_class
@dataclasses.dataclass(frozen=True)
class GaussianPrimitive:
    """An s-type Gaussian exp(-exponent |r - center|^2)."""

    exponent: types.Array
    center: types.Array  # shape (3,)

    def tree_flatten(self):
        children = (self.exponent, self.center)
        aux_data = None
        return (children, aux_data)

    @classmethod
    def tree_unflatten(
        cls, aux_data: None, children: tuple[jax.Array, jax.Array]
    ) -> "GaussianPrimitive":
        return cls(exponent=children[0], center=children[1])


def overlap_prefactor_3d(g1: GaussianPrimitive, g2: GaussianPrimitive) -> jax.Array:
    """The pre-exponential factor of the Gaussian product theorem.

    The exponents may be arrays of broadcastable shapes, e.g. (K_a, 1) and
    (1, K_b) for every primitive pair of two shells.

    Formula:
        K = exp(-mu |A - B|^2),  mu = a b / (a + b)
    """
    a = jnp.asarray(g1.exponent)
    b = jnp.asarray(g2.exponent)
    diff = jnp.asarray(g1.center) - jnp.asarray(g2.center)
    return jnp.exp(-(a * b) / (a + b) * jnp.dot(diff, diff))


def product_center(g1: GaussianPrimitive, g2: GaussianPrimitive) -> jax.Array:
    """The center P = (a A + b B) / (a + b) of the product Gaussian.

    Returns:
        An array of shape broadcast(a, b) + (3,).
    """
    a = jnp.asarray(g1.exponent)[..., None]
    b = jnp.asarray(g2.exponent)[..., None]
    return (a * jnp.asarray(g1.center) + b * jnp.asarray(g2.center)) / (a + b)
