import dataclasses
import itertools
from collections.abc import Sequence
from typing import Optional

import numpy as np

from ecpint import types
from ecpint.basis.shell import GaussianShell
from ecpint.ecp import integral
from ecpint.ecp import options as options_lib
from ecpint.ecp.potential import Potential


@dataclasses.dataclass
class EcpCenter:
    potential: Potential

    # shape (3,)
    position: types.StaticArray

    def __post_init__(self):
        types.promote_dataclass_fields(self)


def shell_slices(shells: Sequence[GaussianShell]) -> list[slice]:
    """The rows of each shell in a matrix over all Cartesian components."""
    slices = []
    start = 0
    for shell in shells:
        slices.append(slice(start, start + shell.n_cartesian))
        start += shell.n_cartesian
    return slices


def ecp_matrix(
    shells: Sequence[GaussianShell],
    centers: Sequence[EcpCenter],
    options: Optional[options_lib.Options] = None,
) -> np.ndarray:
    """Computes the ECP matrix of a basis.

    Returns:
        A numpy array of shape (N, N) where N is the total number of Cartesian
        components of the shells.
    """
    engine = integral.ECPIntegral(options)
    slices = shell_slices(shells)
    n_basis = sum(shell.n_cartesian for shell in shells)
    output = np.zeros((n_basis, n_basis), dtype=np.float64)

    for i, j in itertools.combinations_with_replacement(range(len(shells)), 2):
        block = np.zeros((shells[i].n_cartesian, shells[j].n_cartesian))
        for center in centers:
            result = engine.compute_shell_pair(
                center.potential, shells[i], shells[j], center.position
            )
            block += result.matrix

        output[slices[i], slices[j]] = block

        if i != j:
            output[slices[j], slices[i]] = block.T

    return output
