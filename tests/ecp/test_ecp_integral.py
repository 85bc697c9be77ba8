import dataclasses
import pytest

import numpy as np
import scipy.integrate
import scipy.special

import ecpint
from ecpint.basis.shell import GaussianShell


def _scaled_bessel(l: int, x: float) -> float:
    return np.sqrt(np.pi / (2.0 * x)) * scipy.special.ive(l + 0.5, x)


def _shell(l: int, exponents, coefficients, center) -> GaussianShell:
    return GaussianShell(
        angular_momentum=l,
        exponents=np.array(exponents, dtype=np.float64),
        coefficients=np.array(coefficients, dtype=np.float64),
        center=np.array(center, dtype=np.float64),
    )


def _semi_local_ecp() -> ecpint.ECP:
    return ecpint.ECP(
        terms=[
            ecpint.GaussianECP(l=0, n=0, exponent=0.7, coefficient=4.0),
            ecpint.GaussianECP(l=1, n=0, exponent=0.5, coefficient=-2.0),
            ecpint.GaussianECP(l=2, n=0, exponent=1.0, coefficient=0.5),
            ecpint.GaussianECP(l=2, n=-2, exponent=1.8, coefficient=-0.3),
        ]
    )


def _axis_integral(i: int, j: int, a: float, Ax: float, b: float, Bx: float, zeta):
    """int (x-Ax)^i (x-Bx)^j exp(-a (x-Ax)^2 - b (x-Bx)^2 - zeta x^2) dx"""
    q = a + b + zeta
    c = (a * Ax + b * Bx) / q
    t, w = np.polynomial.hermite.hermgauss(20)
    x = c + t / np.sqrt(q)
    prefactor = np.exp(-(a * Ax**2 + b * Bx**2 - q * c**2))
    return prefactor * np.sum(w * (x - Ax) ** i * (x - Bx) ** j) / np.sqrt(q)


@pytest.mark.parametrize(
    "a, m, distance, expected",
    [(2, 1, 0.5, -1.0), (3, 0, 2.0, -8.0), (4, 4, 1.3, 1.0), (4, 2, -1.0, 6.0)],
)
def test_calc_c(a, m, distance, expected):
    engine = ecpint.ECPIntegral()

    np.testing.assert_allclose(engine.calc_c(a, m, distance), expected, rtol=1e-15)


def test_type1_s_origin():
    engine = ecpint.ECPIntegral()
    potential = ecpint.ECP(
        terms=[ecpint.GaussianECP(l=0, n=0, exponent=1.0, coefficient=1.0)]
    )
    shell = _shell(0, [1.0], [1.0], np.zeros(3))

    result = engine.compute_shell_pair(potential, shell, shell, np.zeros(3))

    assert result.converged
    np.testing.assert_allclose(result.matrix[0, 0], (np.pi / 3.0) ** 1.5, rtol=1e-12)


@dataclasses.dataclass
class _LocalCase:
    la: int
    lb: int
    A: tuple[float, float, float]
    B: tuple[float, float, float]
    C: tuple[float, float, float]


@pytest.mark.parametrize(
    "case",
    [
        _LocalCase(la=0, lb=1, A=(0.2, 0.3, -0.1), B=(-0.3, 0.1, 0.4), C=(0.0, 0.0, 0.0)),
        _LocalCase(la=1, lb=1, A=(0.5, -0.2, 0.3), B=(0.1, 0.4, -0.3), C=(0.1, 0.2, 0.1)),
        _LocalCase(la=2, lb=1, A=(0.3, 0.0, 0.4), B=(-0.2, 0.5, 0.1), C=(0.0, 0.1, -0.2)),
        _LocalCase(la=2, lb=2, A=(0.1, 0.2, 0.3), B=(0.1, 0.2, 0.3), C=(0.0, 0.0, 0.0)),
    ],
)
def test_type1_matches_cartesian_product(case):
    """A purely local Gaussian potential separates into three 1-D integrals."""
    a, b, zeta, d = 1.1, 0.9, 0.6, 2.5
    engine = ecpint.ECPIntegral()
    potential = ecpint.ECP(
        terms=[ecpint.GaussianECP(l=0, n=0, exponent=zeta, coefficient=d)]
    )
    shell_a = _shell(case.la, [a], [1.0], case.A)
    shell_b = _shell(case.lb, [b], [1.0], case.B)
    A = np.array(case.A) - np.array(case.C)
    B = np.array(case.B) - np.array(case.C)

    result = engine.compute_shell_pair(potential, shell_a, shell_b, case.C)

    expected = np.zeros((shell_a.n_cartesian, shell_b.n_cartesian))
    for na, powers_a in enumerate(shell_a.cartesian_powers):
        for nb, powers_b in enumerate(shell_b.cartesian_powers):
            expected[na, nb] = d * np.prod(
                [
                    _axis_integral(powers_a[x], powers_b[x], a, A[x], b, B[x], zeta)
                    for x in range(3)
                ]
            )

    assert result.converged
    np.testing.assert_allclose(result.matrix, expected, rtol=1e-9, atol=1e-12)


def test_type2_s_origin():
    engine = ecpint.ECPIntegral()
    shell_a = _shell(0, [0.8], [1.0], np.zeros(3))
    shell_b = _shell(0, [1.3], [1.0], np.zeros(3))

    result = engine.type2(
        0, _semi_local_ecp(), shell_a, shell_b, np.zeros(3), np.zeros(3)
    )

    # 4 pi d int r^2 exp(-q r^2) dr
    q = 0.8 + 1.3 + 0.7
    assert result.converged
    np.testing.assert_allclose(
        result.matrix[0, 0], 4.0 * (np.pi / q) ** 1.5, rtol=1e-11
    )


def test_type2_p_origin():
    engine = ecpint.ECPIntegral()
    shell_a = _shell(1, [0.8], [1.0], np.zeros(3))
    shell_b = _shell(1, [1.3], [1.0], np.zeros(3))
    potential = _semi_local_ecp()

    p_projected = engine.type2(1, potential, shell_a, shell_b, np.zeros(3), np.zeros(3))
    s_projected = engine.type2(0, potential, shell_a, shell_b, np.zeros(3), np.zeros(3))

    # (4 pi / 3) d int r^4 exp(-q r^2) dr
    q = 0.8 + 1.3 + 0.5
    diagonal = (4.0 * np.pi / 3.0) * -2.0 * 3.0 * np.sqrt(np.pi) / (8.0 * q**2.5)
    np.testing.assert_allclose(
        p_projected.matrix, diagonal * np.eye(3), rtol=1e-11, atol=1e-14
    )
    np.testing.assert_allclose(s_projected.matrix, 0.0, atol=1e-14)


@pytest.mark.parametrize("lam", [0, 1])
def test_type2_s_off_center(lam):
    engine = ecpint.ECPIntegral()
    A = np.array([0.5, 0.3, -0.2])
    B = np.array([-0.1, 0.6, 0.4])
    a, b = 0.8, 1.3
    shell_a = _shell(0, [a], [1.0], A)
    shell_b = _shell(0, [b], [1.0], B)
    potential = _semi_local_ecp()
    norm_a = np.linalg.norm(A)
    norm_b = np.linalg.norm(B)
    d, zeta = potential.channel(lam)[0].coefficient, potential.channel(lam)[0].exponent

    result = engine.type2(lam, potential, shell_a, shell_b, A, B)

    def integrand(r):
        return (
            d
            * r**2
            * np.exp(-zeta * r**2)
            * np.exp(-a * (r - norm_a) ** 2)
            * _scaled_bessel(lam, 2.0 * a * norm_a * r)
            * np.exp(-b * (r - norm_b) ** 2)
            * _scaled_bessel(lam, 2.0 * b * norm_b * r)
        )

    radial_integral, _ = scipy.integrate.quad(
        integrand, 1e-12, 12.0, epsabs=1e-15, epsrel=1e-12, limit=200
    )
    cos_ab = np.dot(A, B) / (norm_a * norm_b)
    # Addition theorem.
    angular = 4.0 * np.pi * (2 * lam + 1) * scipy.special.eval_legendre(lam, cos_ab)

    assert result.converged
    np.testing.assert_allclose(
        result.matrix[0, 0], angular * radial_integral, rtol=1e-9, atol=1e-14
    )


def test_type2_rejects_local_channel():
    engine = ecpint.ECPIntegral()
    shell = _shell(0, [1.0], [1.0], np.zeros(3))

    with pytest.raises(ValueError):
        engine.type2(2, _semi_local_ecp(), shell, shell, np.zeros(3), np.zeros(3))


def _pair_shells(shift=np.zeros(3)) -> tuple[GaussianShell, GaussianShell]:
    shell_a = _shell(1, [1.4, 0.35], [0.4, 0.7], np.array([0.4, -0.3, 0.2]) + shift)
    shell_b = _shell(2, [0.9], [1.0], np.array([-0.2, 0.5, -0.4]) + shift)
    return shell_a, shell_b


def test_translation_invariance():
    engine = ecpint.ECPIntegral()
    potential = _semi_local_ecp()
    shift = np.array([1.5, -2.0, 0.7])
    C = np.array([0.1, 0.1, -0.1])

    shell_a, shell_b = _pair_shells()
    expected = engine.compute_shell_pair(potential, shell_a, shell_b, C)
    shell_a, shell_b = _pair_shells(shift)
    actual = engine.compute_shell_pair(potential, shell_a, shell_b, C + shift)

    assert expected.converged and actual.converged
    np.testing.assert_allclose(actual.matrix, expected.matrix, rtol=1e-10, atol=1e-13)


def test_transpose_symmetry():
    engine = ecpint.ECPIntegral()
    potential = _semi_local_ecp()
    shell_a, shell_b = _pair_shells()
    C = np.array([0.1, 0.1, -0.1])

    ab = engine.compute_shell_pair(potential, shell_a, shell_b, C)
    ba = engine.compute_shell_pair(potential, shell_b, shell_a, C)

    assert ab.matrix.shape == (3, 6)
    np.testing.assert_allclose(ab.matrix, ba.matrix.T, rtol=1e-9, atol=1e-12)


def test_prune_does_not_change_values():
    engine = ecpint.ECPIntegral()
    potential = _semi_local_ecp()
    # Zero components produce vanishing expansion coefficients.
    A = np.array([0.5, 0.0, 0.3])
    B = np.array([0.0, -0.4, 0.0])
    shell_a = _shell(2, [1.1], [1.0], A)
    shell_b = _shell(1, [0.8], [1.0], B)

    for pruned, full in [
        (
            engine.type1(potential, shell_a, shell_b, A, B),
            engine.type1(potential, shell_a, shell_b, A, B, prune=False),
        ),
        (
            engine.type2(1, potential, shell_a, shell_b, A, B),
            engine.type2(1, potential, shell_a, shell_b, A, B, prune=False),
        ),
    ]:
        np.testing.assert_allclose(pruned.matrix, full.matrix, rtol=1e-12, atol=1e-15)


def test_shell_pair_is_sum_of_parts():
    engine = ecpint.ECPIntegral()
    potential = _semi_local_ecp()
    shell_a, shell_b = _pair_shells()
    C = np.array([0.1, 0.1, -0.1])
    A = shell_a.center - C
    B = shell_b.center - C

    total = engine.compute_shell_pair(potential, shell_a, shell_b, C)

    expected = engine.type1(potential, shell_a, shell_b, A, B).matrix
    for lam in range(potential.max_l):
        expected = expected + engine.type2(lam, potential, shell_a, shell_b, A, B).matrix
    np.testing.assert_allclose(total.matrix, expected, rtol=1e-15)


def test_small_grid_option():
    engine = ecpint.ECPIntegral(ecpint.Options(small_grid_size=127))
    shell = _shell(0, [0.8], [1.0], np.zeros(3))

    result = engine.type2(0, _semi_local_ecp(), shell, shell, np.zeros(3), np.zeros(3))

    q = 0.8 + 0.8 + 0.7
    np.testing.assert_allclose(result.matrix[0, 0], 4.0 * (np.pi / q) ** 1.5, rtol=1e-9)
