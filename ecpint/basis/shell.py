import dataclasses

import jax
from jax.tree_util import register_pytree_node_class
import numpy as np

from ecpint import types
from ecpint.basis import cartesian
from ecpint.math import factorial


def primitive_norm(exponent: types.Array, l: int) -> np.ndarray:
    """The inverse L^2 norm of x^l exp(-exponent |r|^2).

    Formula:
        N = (2 a / pi)^(3/4) (4 a)^(l/2) / sqrt((2l - 1)!!)
    """
    a = np.asarray(exponent, dtype=np.float64)
    return (
        (2.0 * a / np.pi) ** 0.75
        * (4.0 * a) ** (0.5 * l)
        / np.sqrt(factorial.double_factorial(2 * l - 1))
    )


@register_pytree_node_class
@dataclasses.dataclass
class GaussianShell:
    """A contracted shell of Cartesian Gaussian functions.

    Each Cartesian component (i, j, k) with i + j + k = l of the shell is

    phi(r) = sum_{d=1}^K c_d (x - A_x)^i (y - A_y)^j (z - A_z)^k e^(-alpha_d |r - A|^2)

    where:
    1. A = center
    2. alpha_d = exponents[d] for 0 <= d < K
    3. c_d = coefficients[d]

    The coefficients multiply the unnormalized primitives. Use `normalized` to
    fold the primitive normalization into them.
    """

    angular_momentum: int

    # shape (K,)
    exponents: types.StaticArray

    # shape (K,)
    coefficients: types.StaticArray

    # shape (3,)
    center: types.StaticArray

    def __post_init__(self):
        if self.angular_momentum < 0:
            raise ValueError(
                f"Angular momentum must be non-negative, got {self.angular_momentum}."
            )
        types.promote_dataclass_fields(self)
        if not isinstance(self.exponents, np.ndarray) or not isinstance(
            self.coefficients, np.ndarray
        ):
            return
        if self.exponents.shape != self.coefficients.shape:
            raise ValueError(
                f"Got {self.exponents.shape[0]} exponents but "
                f"{self.coefficients.shape[0]} coefficients."
            )

    @property
    def l(self) -> int:
        return self.angular_momentum

    @property
    def n_primitive(self) -> int:
        """The number of Gaussian primitives in this shell."""
        return self.exponents.shape[0]

    @property
    def n_cartesian(self) -> int:
        """The number of Cartesian basis functions in this shell."""
        return cartesian.n_cartesian(self.angular_momentum)

    @property
    def cartesian_powers(self) -> np.ndarray:
        return cartesian.generate_cartesian_powers(self.angular_momentum)

    @classmethod
    def normalized(
        cls,
        angular_momentum: int,
        exponents: types.Array,
        coefficients: types.Array,
        center: types.Array,
    ) -> "GaussianShell":
        """Builds a shell over normalized primitives.

        The coefficients are taken to refer to primitives normalized for the
        x^l component.
        """
        exponents = np.asarray(exponents, dtype=np.float64)
        coefficients = np.asarray(coefficients, dtype=np.float64)
        return cls(
            angular_momentum=angular_momentum,
            exponents=exponents,
            coefficients=coefficients
            * primitive_norm(exponents, angular_momentum),
            center=center,
        )

    def tree_flatten(self):
        children = (self.exponents, self.coefficients, self.center)
        aux_data = self.angular_momentum
        return (children, aux_data)

    @classmethod
    def tree_unflatten(
        cls, aux_data: int, children: tuple[jax.Array, ...]
    ) -> "GaussianShell":
        return cls(
            angular_momentum=aux_data,
            exponents=children[0],
            coefficients=children[1],
            center=children[2],
        )
