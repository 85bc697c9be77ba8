from typing import NamedTuple

import jax
import numpy as np

from ecpint.math import harmonics


def assert_no_nan(array: np.ndarray | jax.Array):
    assert not np.any(np.isnan(array)), "Array contains NaN values."


class SphereGrid(NamedTuple):
    # Unit vectors. shape (n, 3)
    points: np.ndarray

    # shape (n,)
    weights: np.ndarray

    # Real spherical harmonics at the points. shape (n, lmax+1, 2*lmax+1)
    harmonics: np.ndarray


def sphere_grid(lmax: int, n_theta: int = 10, n_phi: int = 20) -> SphereGrid:
    """A product Gauss-Legendre x uniform grid on the unit sphere.

    Integrates polynomials in x, y, z of degree < min(2 n_theta, n_phi) exactly.
    """
    nodes, node_weights = np.polynomial.legendre.leggauss(n_theta)
    phis = 2.0 * np.pi * np.arange(n_phi) / n_phi

    points = []
    weights = []
    values = []
    for cos_theta, w in zip(nodes, node_weights):
        sin_theta = np.sqrt(1.0 - cos_theta**2)
        for phi in phis:
            points.append(
                [sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta]
            )
            weights.append(w * 2.0 * np.pi / n_phi)
            values.append(harmonics.real_spherical_harmonics(lmax, cos_theta, phi))

    return SphereGrid(
        points=np.array(points), weights=np.array(weights), harmonics=np.array(values)
    )


def monomial(points: np.ndarray, k: int, l: int, m: int) -> np.ndarray:
    return points[:, 0] ** k * points[:, 1] ** l * points[:, 2] ** m
