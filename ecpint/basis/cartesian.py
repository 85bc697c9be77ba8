import functools

import numpy as np


@functools.lru_cache(maxsize=None)
def _generate_cartesian_powers(l: int) -> np.ndarray:
    powers = np.array(
        [
            (i, j, l - i - j)
            for i in range(l, -1, -1)
            for j in range(l - i, -1, -1)
        ],
        dtype=np.int32,
    )
    powers.flags.writeable = False
    return powers


def generate_cartesian_powers(l: int) -> np.ndarray:
    """Generates the Cartesian powers for the given angular momentum.

    The powers are ordered by descending x power, then descending y power,
    e.g. xx, xy, xz, yy, yz, zz for l = 2.

    Returns:
        A numpy array of shape (M, 3) where M is the total number of
        triples (i, j, k) of non-negative integers satisfying:
        i + j + k = l.
    """
    if l < 0:
        raise ValueError(f"Angular momentum must be non-negative, got {l}.")

    return _generate_cartesian_powers(l)


def n_cartesian(l: int) -> int:
    """The number of Cartesian components (l + 2 choose 2) of a shell."""
    return (l + 1) * (l + 2) // 2
