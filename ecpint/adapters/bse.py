from typing import Optional

import numpy as np
import basis_set_exchange as bse

from ecpint import types
from ecpint.basis.shell import GaussianShell
from ecpint.ecp.potential import ECP, GaussianECP

# The Basis Set Exchange stores the power n of r^(n-2) d exp(-z r^2).
_R_EXPONENT_OFFSET = 2


def _element_data(basis_name: str, element: int) -> dict:
    bse_data = bse.get_basis(basis_name, elements=[element])
    return bse_data["elements"][str(element)]


def load_ecp(basis_name: str, element: int) -> Optional[ECP]:
    """Loads the ECP of an element from the Basis Set Exchange.

    Returns:
        The ECP, or None if the basis has no ECP for the element.
    """
    element_data = _element_data(basis_name, element)
    potentials = element_data.get("ecp_potentials")
    if not potentials:
        return None

    terms = []
    for potential in potentials:
        (l,) = potential["angular_momentum"]
        (coefficients,) = potential["coefficients"]
        for n, exponent, coefficient in zip(
            potential["r_exponents"], potential["gaussian_exponents"], coefficients
        ):
            terms.append(
                GaussianECP(
                    l=l,
                    n=int(n) - _R_EXPONENT_OFFSET,
                    exponent=float(exponent),
                    coefficient=float(coefficient),
                )
            )

    return ECP(terms=terms, n_core_electrons=element_data.get("ecp_electrons", 0))


def load_shells(
    basis_name: str, element: int, center: types.Position3D
) -> list[GaussianShell]:
    """Loads normalized shells of an element from the Basis Set Exchange.

    General contractions are split into one shell per contraction.
    """
    electron_shells = _element_data(basis_name, element)["electron_shells"]

    shells = []
    for shell in electron_shells:
        angular_momentum = shell["angular_momentum"]
        if len(angular_momentum) == 1:
            angular_momentum = angular_momentum * len(shell["coefficients"])

        exponents = np.array(shell["exponents"], dtype=np.float64)
        for l, coefficients in zip(angular_momentum, shell["coefficients"]):
            shells.append(
                GaussianShell.normalized(
                    angular_momentum=l,
                    exponents=exponents,
                    coefficients=np.array(coefficients, dtype=np.float64),
                    center=center,
                )
            )

    return shells
