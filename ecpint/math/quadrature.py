import dataclasses
import enum
import functools
from typing import NamedTuple

import numpy as np

from ecpint import types

# Half-widths of the finite radial interval in units of 1/sqrt(z).
_R_MIN_WIDTH = 7.0
_R_MAX_WIDTH = 9.0


class GridType(enum.Enum):
    """The Gauss-Chebyshev rule of the second kind used to build a grid."""

    # Perez-Jorda rule with sin^4 weights, integrand sampled directly.
    ONEPOINT = 1
    # Chebyshev points cos(t) with sin(t) weights.
    TWOPOINT = 2


class QuadratureResult(NamedTuple):
    value: float
    converged: bool


def _round_points(points: int) -> int:
    """Rounds points up to the nearest number of the form 2^k - 1."""
    if points < 1:
        raise ValueError(f"A grid needs at least one point, got {points}.")
    return (1 << int(points).bit_length()) - 1 if points & (points + 1) else points


def _readonly(a: np.ndarray) -> np.ndarray:
    a.flags.writeable = False
    return a


@dataclasses.dataclass(frozen=True)
class GCQuadrature:
    """A nested Gauss-Chebyshev quadrature grid.

    The grid holds n = 2^K - 1 points. The points with (1-based) index
    divisible by 2^(K-j) form the grid of level j with 2^j - 1 points, so a
    single tabulation of the integrand yields the estimates of every level.

    Only points in the inclusive window [start, end] contribute to an
    integral, the integrand is taken to vanish elsewhere. A window with
    start > end is empty.

    Grids are values: every transformation returns a new grid.
    """

    grid_type: GridType

    # Abscissae. shape (n,)
    x: np.ndarray

    # Weights. shape (n,)
    w: np.ndarray

    start: int
    end: int

    @property
    def n(self) -> int:
        return self.x.shape[0]

    @property
    def max_level(self) -> int:
        return (self.n + 1).bit_length() - 1

    def with_window(self, start: int, end: int) -> "GCQuadrature":
        return dataclasses.replace(self, start=start, end=end)

    def full_window(self) -> "GCQuadrature":
        return self.with_window(0, self.n - 1)

    def transform_zero_inf(self) -> "GCQuadrature":
        """Maps the abscissae from (-1, 1) onto (0, inf).

        Formula:
            r = log2(2 / (1 - x)),  dr/dx = 1 / (ln(2) (1 - x))
        """
        one_minus_x = 1.0 - self.x
        r = np.log2(2.0 / one_minus_x)
        w = self.w / (np.log(2.0) * one_minus_x)
        return dataclasses.replace(self, x=_readonly(r), w=_readonly(w))

    def transform_r_min_max(self, z: float, p: float) -> "GCQuadrature":
        """Maps the abscissae from [-1, 1] onto the interval around p.

        The interval is [max(0, p - 7/sqrt(z)), p + 9/sqrt(z)], which covers a
        Gaussian exp(-z (r - p)^2) down to negligible values.
        """
        osz = 1.0 / np.sqrt(z)
        r_min = max(p - _R_MIN_WIDTH * osz, 0.0)
        r_max = p + _R_MAX_WIDTH * osz
        half_width = 0.5 * (r_max - r_min)
        r = r_min + half_width * (self.x + 1.0)
        w = half_width * self.w
        return dataclasses.replace(self, x=_readonly(r), w=_readonly(w))

    def estimates(self, f: types.Array) -> np.ndarray:
        """The integral estimates of every level.

        Args:
            f: The integrand tabulated at the abscissae. shape (n,)

        Returns:
            An array of shape (max_level,) whose entry j-1 is the estimate
            from the 2^j - 1 point sub-grid.
        """
        f = np.asarray(f, dtype=np.float64)
        if self.start > self.end:
            return np.zeros(self.max_level)

        masked = np.zeros(self.n, dtype=np.float64)
        window = slice(self.start, self.end + 1)
        masked[window] = self.w[window] * f[window]

        K = self.max_level
        values = np.empty(K, dtype=np.float64)
        for j in range(1, K + 1):
            stride = 1 << (K - j)
            values[j - 1] = stride * np.sum(masked[stride - 1 :: stride])
        return values

    def integrate(self, f: types.Array, tolerance: float) -> QuadratureResult:
        """Integrates the tabulated integrand f over the active window.

        The finest estimate is returned. It counts as converged when it
        differs from the estimate on the next coarser level by at most
        tolerance * max(1, |I|).

        Args:
            f: The integrand tabulated at the abscissae. shape (n,)
            tolerance: The convergence threshold.
        """
        values = self.estimates(f)
        value = float(values[-1])
        if values.shape[0] < 2:
            return QuadratureResult(value=value, converged=True)

        delta = abs(value - float(values[-2]))
        converged = delta <= tolerance * max(1.0, abs(value))
        return QuadratureResult(value=value, converged=converged)


@functools.lru_cache(maxsize=None)
def init_grid(points: int, grid_type: GridType) -> GCQuadrature:
    """Builds an untransformed grid on [-1, 1].

    Formulas, with t_i = i pi / (n + 1) for 1 <= i <= n:
        ONEPOINT:
            x_i = 1 + (2/pi) ((1 + 2/3 sin^2 t_i) cos t_i sin t_i - t_i)
            w_i = 16 sin^4 t_i / (3 (n + 1))
        TWOPOINT:
            x_i = cos t_i
            w_i = pi sin t_i / (n + 1)

    Args:
        points: The requested number of points, rounded up to 2^k - 1.
        grid_type: The quadrature rule.
    """
    n = _round_points(points)
    t = np.arange(1, n + 1, dtype=np.float64) * np.pi / (n + 1)
    sin_t = np.sin(t)
    cos_t = np.cos(t)

    if grid_type == GridType.ONEPOINT:
        x = 1.0 + (2.0 / np.pi) * (
            (1.0 + (2.0 / 3.0) * sin_t**2) * cos_t * sin_t - t
        )
        w = 16.0 * sin_t**4 / (3.0 * (n + 1))
    elif grid_type == GridType.TWOPOINT:
        x = cos_t
        w = np.pi * sin_t / (n + 1)
    else:
        raise ValueError(f"Unknown grid type {grid_type}.")

    return GCQuadrature(
        grid_type=grid_type,
        x=_readonly(x),
        w=_readonly(w),
        start=0,
        end=n - 1,
    )
