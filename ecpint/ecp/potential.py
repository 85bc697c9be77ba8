import dataclasses
from typing import Protocol, Sequence

import numpy as np

from ecpint import types


class Potential(Protocol):
    """A semi-local radial potential U_l(r)."""

    @property
    def max_l(self) -> int:
        """The highest channel. It acts as the local part of the potential."""
        ...

    def evaluate(self, r: types.Array, l: int) -> np.ndarray: ...


@dataclasses.dataclass(frozen=True)
class GaussianECP:
    """A single term d r^n exp(-exponent r^2) of the channel l."""

    l: int
    n: int
    exponent: float
    coefficient: float


@dataclasses.dataclass
class ECP:
    """A Gaussian expansion of an effective core potential.

    The channel l of the potential is

    U_l(r) = sum_k d_k r^(n_k) exp(-zeta_k r^2)

    summed over the terms with angular momentum l. The highest channel is the
    local part; lower channels are the semi-local projectors relative to it.
    """

    terms: Sequence[GaussianECP]

    # The number of electrons replaced by the potential.
    n_core_electrons: int = 0

    def __post_init__(self):
        self.terms = tuple(self.terms)
        if not self.terms:
            raise ValueError("An ECP needs at least one term.")
        for term in self.terms:
            if term.l < 0:
                raise ValueError(f"Channels must be non-negative, got {term.l}.")

    @property
    def max_l(self) -> int:
        return max(term.l for term in self.terms)

    def channel(self, l: int) -> tuple[GaussianECP, ...]:
        return tuple(term for term in self.terms if term.l == l)

    def evaluate(self, r: types.Array, l: int) -> np.ndarray:
        """Evaluates U_l at the radii r. An empty channel is zero."""
        r = np.asarray(r, dtype=np.float64)
        value = np.zeros_like(r)
        for term in self.channel(l):
            value += term.coefficient * r**term.n * np.exp(-term.exponent * r * r)
        return value
