import functools

import numpy as np


@functools.lru_cache(maxsize=None)
def _factorial_table(n: int) -> np.ndarray:
    values = np.zeros(max(n + 1, 0), dtype=np.float64)
    if n > -1:
        values[0] = 1.0
        for i in range(1, n + 1):
            values[i] = values[i - 1] * i
    values.flags.writeable = False
    return values


@functools.lru_cache(maxsize=None)
def _double_factorial_table(n: int) -> np.ndarray:
    values = np.zeros(max(n + 1, 0), dtype=np.float64)
    if n > -1:
        values[0] = 1.0
        if n > 0:
            values[1] = 1.0
            for i in range(2, n + 1):
                values[i] = values[i - 2] * i
    values.flags.writeable = False
    return values


def factorial_table(n: int) -> np.ndarray:
    """Returns the read-only array [0!, 1!, ..., n!].

    An empty array is returned for n < 0.
    """
    return _factorial_table(n)


def double_factorial_table(n: int) -> np.ndarray:
    """Returns the read-only array [0!!, 1!!, ..., n!!] with 0!! = 1!! = 1.

    An empty array is returned for n < 0.
    """
    return _double_factorial_table(n)


def double_factorial(n: int) -> float:
    """n!! with the convention (-1)!! = 1."""
    if n < -1:
        raise ValueError(f"Only supported negative argument is -1, got {n}.")
    if n == -1:
        return 1.0
    return float(_double_factorial_table(n)[n])
