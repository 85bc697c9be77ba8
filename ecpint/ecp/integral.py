import functools
from typing import NamedTuple, Optional

import numpy as np

from ecpint import types
from ecpint.basis.shell import GaussianShell
from ecpint.ecp import angular
from ecpint.ecp import options as options_lib
from ecpint.ecp import radial
from ecpint.ecp.potential import Potential
from ecpint.logger import logger
from ecpint.math import factorial
from ecpint.math import harmonics
from ecpint.math import tensor


class ShellPairResult(NamedTuple):
    # shape (n_cartesian_a, n_cartesian_b)
    matrix: np.ndarray
    converged: bool


class _Term(NamedTuple):
    """One monomial x^k y^l z^m of a re-expanded Cartesian component."""

    k: int
    l: int
    m: int
    coefficient: float


@functools.lru_cache(maxsize=None)
def angular_tables(lb: int, le: int) -> angular.AngularIntegral:
    """The computed angular tables for (lb, le). Shared and read-only."""
    tables = angular.AngularIntegral(lb, le)
    tables.compute()
    tables.W.flags.writeable = False
    tables.omega.flags.writeable = False
    return tables


class ECPIntegral:
    """ECP integrals between two shells of Cartesian Gaussians.

    All centers passed to `type1` and `type2` are relative to the ECP center.
    """

    def __init__(self, options: Optional[options_lib.Options] = None):
        self.options = options_lib.Options() if options is None else options

    def calc_c(self, a: int, m: int, distance: float) -> float:
        """The coefficient of x^m in (x - distance)^a.

        Formula:
            C = (-1)^(a-m) distance^(a-m) a! / (m! (a-m)!)
        """
        fac = factorial.factorial_table(a)
        value = 1.0 - 2.0 * ((a - m) % 2)
        value *= distance ** (a - m)
        return value * fac[a] / (fac[m] * fac[a - m])

    def _expand(self, powers: np.ndarray, A: np.ndarray) -> list[_Term]:
        """Re-expands (x-Ax)^i (y-Ay)^j (z-Az)^k about the ECP center."""
        i, j, k = (int(power) for power in powers)
        terms = []
        for k1 in range(i + 1):
            Ck = self.calc_c(i, k1, A[0])
            for l1 in range(j + 1):
                Cl = self.calc_c(j, l1, A[1])
                for m1 in range(k + 1):
                    Cm = self.calc_c(k, m1, A[2])
                    terms.append(_Term(k1, l1, m1, Ck * Cl * Cm))
        return terms

    def _radial_engine(self, max_l: int) -> radial.RadialIntegral:
        return radial.RadialIntegral(
            max_l,
            tolerance=self.options.tolerance,
            small_grid_size=self.options.small_grid_size,
            large_grid_size=self.options.large_grid_size,
        )

    def _is_negligible(self, C: float, prune: bool) -> bool:
        return prune and abs(C) <= self.options.prune_threshold

    def type1(
        self,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
        prune: bool = True,
    ) -> ShellPairResult:
        """The local part of the ECP integrals.

        Every Cartesian component pair is re-expanded about the ECP center and
        contracted with the angular and one-center radial tables:

            <a|U_L|b> = 4 pi sum_{k,l,m} C sum_{lam,mu} W(k, l, m, lam, mu)
                R(k+l+m, lam, mu)

        where C is the product of the six re-expansion coefficients and R the
        radial integrals of `RadialIntegral.type1`.
        """
        A = np.asarray(A, dtype=np.float64)
        B = np.asarray(B, dtype=np.float64)
        LA, LB = shell_a.l, shell_b.l
        tables = angular_tables(max(LA, LB), potential.max_l)

        L = LA + LB
        radial_engine = self._radial_engine(L)
        radials = tensor.zeros(L + 1, L + 1, 2 * L + 1)
        converged = True
        for ix in range(L + 1):
            result = radial_engine.type1(
                ix, ix, ix % 2, potential, shell_a, shell_b, A, B
            )
            radials[ix, : ix + 1, : 2 * ix + 1] = result.values
            converged = converged and result.converged

        expansions_b = [self._expand(powers, B) for powers in shell_b.cartesian_powers]

        values = np.zeros((shell_a.n_cartesian, shell_b.n_cartesian))
        for na, powers_a in enumerate(shell_a.cartesian_powers):
            terms_a = self._expand(powers_a, A)
            for nb, terms_b in enumerate(expansions_b):
                value = 0.0
                for term_a in terms_a:
                    for term_b in terms_b:
                        C = term_a.coefficient * term_b.coefficient
                        if self._is_negligible(C, prune):
                            continue

                        k = term_a.k + term_b.k
                        l = term_a.l + term_b.l
                        m = term_a.m + term_b.m
                        ix = k + l + m
                        lparity = ix % 2
                        msign = 1 - 2 * (l % 2)
                        mparity = (lparity + m) % 2

                        for lam in range(lparity, ix + 1, 2):
                            for mu in range(mparity, lam + 1, 2):
                                value += (
                                    C
                                    * tables.get_integral(k, l, m, lam, msign * mu)
                                    * radials[ix, lam, lam + msign * mu]
                                )

                values[na, nb] = 4.0 * np.pi * value

        return ShellPairResult(matrix=values, converged=converged)

    def _projections(
        self,
        tables: angular.AngularIntegral,
        terms: list[_Term],
        lam: int,
        max_l: int,
        A: np.ndarray,
    ) -> list[np.ndarray]:
        """Projects each re-expanded monomial on the channel lam.

        Formula:
            T[mu, lam1] = sum_mu1 S_{lam1,mu1}(A^) Omega(k, l, m, lam, mu, lam1, mu1)

        Returns:
            One array of shape (2 lam + 1, max_l + 1) per term.
        """
        x, phi = harmonics.direction_angles(A)
        S = harmonics.real_spherical_harmonics(max_l, x, phi)

        n_mu = tables.omega.shape[-1]
        padded = np.zeros((max_l + 1, n_mu))
        padded[:, : 2 * max_l + 1] = S

        return [
            np.einsum(
                "urs,rs->ur",
                tables.omega[term.k, term.l, term.m, lam, : 2 * lam + 1, : max_l + 1],
                padded,
            )
            for term in terms
        ]

    def type2(
        self,
        lam: int,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
        prune: bool = True,
    ) -> ShellPairResult:
        """The semi-local part of the ECP integrals for the projector lam.

        Formula:
            <a|U_lam P_lam|b> = (4 pi)^2 sum C_a C_b sum_{lam1,lam2} R(N, lam1, lam2)
                sum_mu T_a[mu, lam1] T_b[mu, lam2]

        with N = k_a+l_a+m_a + k_b+l_b+m_b, T as in `_projections` and R the
        radial integrals of `RadialIntegral.type2`.
        """
        A = np.asarray(A, dtype=np.float64)
        B = np.asarray(B, dtype=np.float64)
        LA, LB = shell_a.l, shell_b.l
        if lam >= potential.max_l:
            raise ValueError(
                f"Projector {lam} is not below the local channel {potential.max_l}."
            )
        tables = angular_tables(max(LA, LB), potential.max_l)

        max_l1 = lam + LA
        max_l2 = lam + LB
        radial_engine = self._radial_engine(max(LA + LB, max_l1, max_l2))
        radials = []
        converged = True
        for N in range(LA + LB + 1):
            result = radial_engine.type2(
                lam, max_l1, max_l2, N, potential, shell_a, shell_b, A, B
            )
            radials.append(result.values)
            converged = converged and result.converged

        expansions_b = []
        for powers_b in shell_b.cartesian_powers:
            terms_b = self._expand(powers_b, B)
            expansions_b.append(
                (terms_b, self._projections(tables, terms_b, lam, max_l2, B))
            )

        values = np.zeros((shell_a.n_cartesian, shell_b.n_cartesian))
        for na, powers_a in enumerate(shell_a.cartesian_powers):
            terms_a = self._expand(powers_a, A)
            proj_a = self._projections(tables, terms_a, lam, max_l1, A)
            for nb, (terms_b, proj_b) in enumerate(expansions_b):
                value = 0.0
                for term_a, T_a in zip(terms_a, proj_a):
                    for term_b, T_b in zip(terms_b, proj_b):
                        C = term_a.coefficient * term_b.coefficient
                        if self._is_negligible(C, prune):
                            continue

                        N = term_a.k + term_a.l + term_a.m + term_b.k + term_b.l + term_b.m
                        value += C * np.einsum("ua,ab,ub->", T_a, radials[N], T_b)

                values[na, nb] = (4.0 * np.pi) ** 2 * value

        return ShellPairResult(matrix=values, converged=converged)

    def compute_shell_pair(
        self,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        C: types.Position3D,
    ) -> ShellPairResult:
        """The full ECP integrals <a|U|b> of a potential centered at C.

        The local channel contributes through `type1` and every lower channel
        through `type2`.
        """
        C = np.asarray(C, dtype=np.float64)
        A = shell_a.center - C
        B = shell_b.center - C

        result = self.type1(potential, shell_a, shell_b, A, B)
        matrix = result.matrix
        converged = result.converged
        for lam in range(potential.max_l):
            result = self.type2(lam, potential, shell_a, shell_b, A, B)
            matrix = matrix + result.matrix
            converged = converged and result.converged

        if not converged:
            logger.warning(
                "ECP integrals of shells with l=%d and l=%d did not fully converge.",
                shell_a.l,
                shell_b.l,
            )
        return ShellPairResult(matrix=matrix, converged=converged)
