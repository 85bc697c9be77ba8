import pytest

import numpy as np
import scipy.special

from ecpint.math import bessel


def test_calculate():
    x = np.array([0.01, 0.5, 2.0, 10.0, 80.0])
    bessel_function = bessel.BesselFunction(4)

    values = bessel_function.calculate(x, 4)

    assert values.shape == (5, 5)
    for l in range(5):
        expected = scipy.special.spherical_in(l, x) * np.exp(-x)
        np.testing.assert_allclose(values[l], expected, rtol=1e-10)


def test_calculate_large_argument():
    # K_l(x) -> 1 / (2x) as x -> inf.
    bessel_function = bessel.BesselFunction(2)

    values = bessel_function.calculate(np.array([1e4]), 2)

    np.testing.assert_allclose(values[:, 0], 1.0 / 2e4, rtol=1e-3)


def test_calculate_small_argument():
    bessel_function = bessel.BesselFunction(3)

    values = bessel_function.calculate(np.array([0.0, 1e-9]), 3)

    np.testing.assert_allclose(values[:, 0], [1.0, 0.0, 0.0, 0.0])
    np.testing.assert_allclose(
        values[:, 1],
        np.exp(-1e-9) * np.array([1.0, 1e-9 / 3.0, 1e-18 / 15.0, 1e-27 / 105.0]),
        rtol=1e-12,
    )


def test_calculate_order_too_high():
    bessel_function = bessel.BesselFunction(2)

    with pytest.raises(ValueError):
        bessel_function.calculate(np.array([1.0]), 3)


def test_init_negative_order():
    with pytest.raises(ValueError):
        bessel.BesselFunction(-1)
