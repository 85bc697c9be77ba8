import numpy as np
import scipy.special

from ecpint import types
from ecpint.math import factorial

# Below this argument the leading series term is used.
_SMALL_X = 1e-7


class BesselFunction:
    """Exponentially scaled modified spherical Bessel functions of the first kind.

    Formula:
        K_l(x) = exp(-x) i_l(x) = sqrt(pi / 2x) exp(-x) I_{l+1/2}(x)

    The scaling keeps the values bounded (K_l(x) <= 1) for the large arguments
    2 zeta |A| r that appear in the radial integrands.
    """

    def __init__(self, lmax: int = 0):
        self.init(lmax)

    def init(self, lmax: int) -> None:
        if lmax < 0:
            raise ValueError(f"lmax must be >= 0, got {lmax}.")
        self.lmax = lmax
        dfac = factorial.double_factorial_table(2 * lmax + 1)
        self._series_denominators = np.array(
            [dfac[2 * l + 1] for l in range(lmax + 1)], dtype=np.float64
        )

    def calculate(self, x: types.Array, max_l: int) -> np.ndarray:
        """Evaluates K_l(x) for 0 <= l <= max_l.

        Args:
            x: Non-negative arguments of shape (n,).
            max_l: The maximum order, at most self.lmax.

        Returns:
            An array K of shape (max_l+1, n) with K[l, i] = K_l(x[i]).
        """
        if max_l > self.lmax:
            raise ValueError(
                f"Order {max_l} exceeds the initialized maximum {self.lmax}."
            )
        x = np.atleast_1d(np.asarray(x, dtype=np.float64))
        orders = np.arange(max_l + 1, dtype=np.float64)[:, None]

        small = x < _SMALL_X
        x_safe = np.where(small, 1.0, x)
        values = np.sqrt(np.pi / (2.0 * x_safe)) * scipy.special.ive(
            orders + 0.5, x_safe
        )

        # K_l(x) ~ exp(-x) x^l / (2l+1)!! as x -> 0.
        series = (
            np.exp(-x) * x ** orders / self._series_denominators[: max_l + 1, None]
        )
        return np.where(small, series, values)
