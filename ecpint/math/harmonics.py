import numpy as np

from ecpint import types
from ecpint.math import factorial

# Directions shorter than this are treated as degenerate.
_DEGENERATE_NORM = 1e-12


def _associated_legendre(lmax: int, x: float) -> np.ndarray:
    """Computes the associated Legendre polynomials P_lm(x) for 0 <= m <= l.

    Formula:
        P_mm = (-1)^m (2m-1)!! (1-x^2)^(m/2)
        (l-m) P_lm = x (2l-1) P_{l-1,m} - (l+m-1) P_{l-2,m}

    Returns:
        An array P of shape (lmax+1, lmax+1) with P[l, m] = P_lm(x) and
        P[l, m] = 0 for m > l.
    """
    dfac = factorial.double_factorial_table(max(2 * lmax - 1, 0))
    P = np.zeros((lmax + 1, lmax + 1), dtype=np.float64)

    P[0, 0] = 1.0
    sox2 = np.sqrt(max(1.0 - x * x, 0.0))
    ox2m = 1.0
    for m in range(1, lmax + 1):
        ox2m *= -sox2
        P[m, m] = ox2m * dfac[2 * m - 1]

    if lmax > 0:
        P[1, 0] = x
    for l in range(2, lmax + 1):
        ox2m = x * (2 * l - 1)
        for m in range(l):
            P[l, m] = (ox2m * P[l - 1, m] - (l + m - 1) * P[l - 2, m]) / (l - m)

    return P


def real_spherical_harmonics(lmax: int, x: float, phi: float) -> np.ndarray:
    """Computes the real spherical harmonics S_lm(theta, phi) up to lmax.

    Formula:
        S_l0 = sqrt((2l+1) / 4pi) P_l0(cos theta)
        S_lm = (-1)^m sqrt(2 (2l+1) (l-m)! / (4pi (l+m)!)) P_lm(cos theta) cos(m phi)
        S_l-m = (-1)^m sqrt(2 (2l+1) (l-m)! / (4pi (l+m)!)) P_lm(cos theta) sin(m phi)

    The (-1)^m factor cancels the Condon-Shortley phase of P_lm so that
    S_11 is proportional to +x and S_1-1 to +y.

    Args:
        lmax: The maximum angular momentum.
        x: cos(theta).
        phi: The azimuthal angle.

    Returns:
        An array S of shape (lmax+1, 2*lmax+1) with S[l, l+m] = S_lm and zeros
        for |m| > l.
    """
    S = np.zeros((lmax + 1, 2 * lmax + 1), dtype=np.float64)
    osq4pi = 1.0 / np.sqrt(4.0 * np.pi)
    if lmax == 0:
        S[0, 0] = osq4pi
        return S

    fac = factorial.factorial_table(2 * lmax)
    P = _associated_legendre(lmax, x)
    for l in range(lmax + 1):
        S[l, l] = osq4pi * np.sqrt(2.0 * l + 1.0) * P[l, 0]
        sign = -1.0
        for m in range(1, l + 1):
            norm = (2.0 * l + 1.0) * fac[l - m] / fac[l + m]
            value = sign * osq4pi * np.sqrt(2.0 * norm) * P[l, m]
            S[l, l + m] = value * np.cos(m * phi)
            S[l, l - m] = value * np.sin(m * phi)
            sign = -sign

    return S


def direction_angles(v: types.Array) -> tuple[float, float]:
    """Returns (cos(theta), phi) for the direction of v.

    A vector shorter than 1e-12 has no direction; cos(theta) = 0 is used as
    the reference direction in that case.
    """
    v = np.asarray(v, dtype=np.float64)
    norm = float(np.linalg.norm(v))
    x = 0.0 if norm < _DEGENERATE_NORM else float(v[2]) / norm
    phi = float(np.arctan2(v[1], v[0]))
    return x, phi
