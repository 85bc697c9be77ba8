import dataclasses
from typing import NamedTuple

import numpy as np

from ecpint import types
from ecpint.basis.shell import GaussianShell
from ecpint.ecp.potential import Potential
from ecpint.integrals import gaussian
from ecpint.logger import logger
from ecpint.math import bessel
from ecpint.math import harmonics
from ecpint.math import quadrature


class RadialResult(NamedTuple):
    values: np.ndarray
    converged: bool

    # Rows of a two-center table recomputed on the large grid.
    fallback_rows: tuple[int, ...] = ()


@dataclasses.dataclass
class PairParameters:
    """Primitive pair quantities of two shells. Every field has shape (K_a, K_b)."""

    # Combined exponent za + zb.
    p: np.ndarray

    # Distance |P| of the weighted center P = (za A + zb B) / p.
    P: np.ndarray

    # |P|^2
    P2: np.ndarray

    # Gaussian product prefactor exp(-za zb / p |A - B|^2).
    K: np.ndarray

    # The weighted centers. shape (K_a, K_b, 3)
    center: np.ndarray


class RadialIntegral:
    """Radial integrals of Gaussians, an ECP channel and scaled Bessel functions.

    Two grids are kept. The small grid is mapped onto [0, inf) and serves the
    factored two-center integrals. The large grid lives on [-1, 1] and is
    mapped around each primitive pair for the one-center integrals and for
    rows of two-center integrals that failed to converge on the small grid.
    """

    def __init__(
        self,
        max_l: int,
        tolerance: float = 1e-12,
        small_grid_size: int = 255,
        large_grid_size: int = 1023,
    ):
        self.init(max_l, tolerance, small_grid_size, large_grid_size)

    def init(
        self,
        max_l: int,
        tolerance: float,
        small_grid_size: int,
        large_grid_size: int,
    ) -> None:
        self.large_grid = quadrature.init_grid(
            large_grid_size, quadrature.GridType.ONEPOINT
        )
        self.small_grid = quadrature.init_grid(
            small_grid_size, quadrature.GridType.TWOPOINT
        ).transform_zero_inf()
        self.bessie = bessel.BesselFunction(max_l)
        self.tolerance = tolerance

    def build_bessel(self, r: types.Array, max_l: int, weight: float) -> np.ndarray:
        """Tabulates K_l(weight * r_i). shape (max_l+1, n)"""
        return self.bessie.calculate(weight * np.asarray(r), max_l)

    def build_parameters(
        self,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
    ) -> PairParameters:
        A = np.asarray(A, dtype=np.float64)
        B = np.asarray(B, dtype=np.float64)
        g_a = gaussian.GaussianPrimitive(exponent=shell_a.exponents[:, None], center=A)
        g_b = gaussian.GaussianPrimitive(exponent=shell_b.exponents[None, :], center=B)

        p = g_a.exponent + g_b.exponent
        center = np.asarray(gaussian.product_center(g_a, g_b))
        P2 = np.sum(center * center, axis=-1)
        K = np.asarray(gaussian.overlap_prefactor_3d(g_a, g_b))

        return PairParameters(p=p, P=np.sqrt(P2), P2=P2, K=K, center=center)

    def build_u(
        self, potential: Potential, l: int, N: int, grid: quadrature.GCQuadrature
    ) -> tuple[np.ndarray, quadrature.GCQuadrature]:
        """Tabulates r^(N+2) U_l(r) on the grid.

        Returns:
            The tabulated values and a copy of the grid whose window is the
            smallest index range holding every value with magnitude above the
            tolerance.
        """
        values = grid.x ** (N + 2) * potential.evaluate(grid.x, l)
        significant = np.flatnonzero(np.abs(values) > self.tolerance)
        if significant.shape[0] == 0:
            return values, grid.with_window(0, -1)
        return values, grid.with_window(int(significant[0]), int(significant[-1]))

    def integrate(
        self,
        max_l: int,
        values: np.ndarray,
        grid: quadrature.GCQuadrature,
        offset: int = 0,
        skip: int = 1,
    ) -> RadialResult:
        """Integrates the rows offset, offset + skip, ... <= max_l of values.

        Integration stops at the first row that fails to converge. Rows that
        were not reached are left at zero.

        Args:
            max_l: The last row to integrate.
            values: The tabulated integrands. shape (>= max_l+1, n)
            grid: The grid the integrands are tabulated on.
            offset: The first row to integrate.
            skip: The row stride.
        """
        results = np.zeros(max_l + 1)
        for l in range(offset, max_l + 1, skip):
            result = grid.integrate(values[l], self.tolerance)
            results[l] = result.value
            if not result.converged:
                return RadialResult(values=results, converged=False)

        return RadialResult(values=results, converged=True)

    def type1(
        self,
        max_l: int,
        N: int,
        offset: int,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
    ) -> RadialResult:
        """Radial integrals of the local channel projected onto harmonics.

        For each primitive pair (a, b) with weighted center P this computes

            T(lam) = int r^(N+2) U_L(r) exp(-p (r - |P|)^2) K_lam(2 p |P| r) dr

        for lam = offset, offset + 2, ... <= max_l and accumulates

            values[lam, lam+mu] += d_a d_b K_ab S_{lam,mu}(P^) T(lam)

        Args:
            max_l: The highest harmonic order.
            N: The power of r carried by the Cartesian monomials.
            offset: The parity of the orders.
            potential: The ECP. Its highest channel is integrated.
            shell_a, shell_b: The shells.
            A, B: The shell centers relative to the ECP center.

        Returns:
            A RadialResult whose values have shape (max_l+1, 2*max_l+1).
        """
        params = self.build_parameters(shell_a, shell_b, A, B)
        values = np.zeros((max_l + 1, 2 * max_l + 1))
        converged = True

        for a in range(shell_a.n_primitive):
            da = shell_a.coefficients[a]
            for b in range(shell_b.n_primitive):
                db = shell_b.coefficients[b]
                p = params.p[a, b]
                P = params.P[a, b]

                grid = self.large_grid.transform_r_min_max(p, P)
                u, grid = self.build_u(potential, potential.max_l, N, grid)
                bessel_values = self.build_bessel(grid.x, max_l, 2.0 * p * P)

                damping = np.exp(-p * (grid.x * (grid.x - 2.0 * P) + params.P2[a, b]))
                result = self.integrate(
                    max_l, u * damping * bessel_values, grid, offset=offset, skip=2
                )
                if not result.converged:
                    logger.warning(
                        "Failed to converge: one-center radial integral with "
                        "N=%d, exponents %g and %g.",
                        N,
                        shell_a.exponents[a],
                        shell_b.exponents[b],
                    )
                    converged = False

                x, phi = harmonics.direction_angles(params.center[a, b])
                S = harmonics.real_spherical_harmonics(max_l, x, phi)
                scale = da * db * params.K[a, b]
                for l in range(offset, max_l + 1, 2):
                    values[l, : 2 * l + 1] += scale * S[l, : 2 * l + 1] * result.values[l]

        return RadialResult(values=values, converged=converged)

    def build_f(
        self,
        shell: GaussianShell,
        A: types.Position3D,
        max_l: int,
        r: types.Array,
        start: int,
        end: int,
    ) -> np.ndarray:
        """Tabulates the radial profile of a shell about the ECP center.

        Formula:
            F(l, r) = sum_a c_a exp(-z_a (r - |A|)^2) K_l(2 z_a |A| r)

        Returns:
            An array of shape (max_l+1, n), zero outside [start, end].
        """
        r = np.asarray(r)
        norm_a = float(np.linalg.norm(np.asarray(A, dtype=np.float64)))
        F = np.zeros((max_l + 1, r.shape[0]))
        if start > end:
            return F

        window = slice(start, end + 1)
        for zeta, c in zip(shell.exponents, shell.coefficients):
            bessel_values = self.build_bessel(r[window], max_l, 2.0 * zeta * norm_a)
            F[:, window] += c * np.exp(-zeta * (r[window] - norm_a) ** 2) * bessel_values
        return F

    def type2(
        self,
        l: int,
        max_l1: int,
        max_l2: int,
        N: int,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
        force_fallback: bool = False,
    ) -> RadialResult:
        """Two-center radial integrals of the channel l.

        Formula:
            values[l1, l2] = int r^(N+2) U_l(r) Fa(l1, r) Fb(l2, r) dr

        with F as in `build_f`. The factored form is integrated on the small
        grid first. Every row l1 that fails to converge there is recomputed on
        the large grid, mapped around each primitive pair:

            values[l1, l2] = sum_ab c_a c_b int r^(N+2) U_l(r)
                exp(-z_a (r - |A|)^2) K_l1(2 z_a |A| r)
                exp(-z_b (r - |B|)^2) K_l2(2 z_b |B| r) dr

        Args:
            l: The ECP channel.
            max_l1, max_l2: The highest Bessel orders for shell A and B.
            N: The power of r carried by the Cartesian monomials.
            potential: The ECP.
            shell_a, shell_b: The shells.
            A, B: The shell centers relative to the ECP center.
            force_fallback: Recompute every row on the large grid.

        Returns:
            A RadialResult whose values have shape (max_l1+1, max_l2+1).
        """
        u, grid = self.build_u(potential, l, N, self.small_grid.full_window())
        Fa = self.build_f(shell_a, A, max_l1, grid.x, grid.start, grid.end)
        Fb = self.build_f(shell_b, B, max_l2, grid.x, grid.start, grid.end)

        values = np.zeros((max_l1 + 1, max_l2 + 1))
        failed = []
        for l1 in range(max_l1 + 1):
            result = self.integrate(max_l2, u * Fa[l1] * Fb, grid)
            values[l1] = result.values
            if not result.converged:
                failed.append(l1)

        if failed:
            logger.debug(
                "Failed at first attempt: two-center radial integrals of channel "
                "%d with N=%d. Switching rows %s to the large grid.",
                l,
                N,
                failed,
            )
        if force_fallback:
            logger.debug("Recomputing every row of channel %d on the large grid.", l)
            failed = list(range(max_l1 + 1))
        if not failed:
            return RadialResult(values=values, converged=True)

        converged = True
        for l1 in failed:
            values[l1] = 0.0
            for row_converged, row in self._pair_rows(
                l, l1, max_l2, N, potential, shell_a, shell_b, A, B
            ):
                values[l1] += row
                converged = converged and row_converged

        if not converged:
            logger.warning(
                "Failed to converge: two-center radial integrals of channel %d "
                "with N=%d on the large grid.",
                l,
                N,
            )
        return RadialResult(
            values=values, converged=converged, fallback_rows=tuple(failed)
        )

    def _pair_rows(
        self,
        l: int,
        l1: int,
        max_l2: int,
        N: int,
        potential: Potential,
        shell_a: GaussianShell,
        shell_b: GaussianShell,
        A: types.Position3D,
        B: types.Position3D,
    ):
        """Yields (converged, c_a c_b row) for every primitive pair."""
        norm_a = float(np.linalg.norm(np.asarray(A, dtype=np.float64)))
        norm_b = float(np.linalg.norm(np.asarray(B, dtype=np.float64)))

        for za, ca in zip(shell_a.exponents, shell_a.coefficients):
            for zb, cb in zip(shell_b.exponents, shell_b.coefficients):
                p = za + zb
                grid = self.large_grid.transform_r_min_max(
                    p, (za * norm_a + zb * norm_b) / p
                )
                u, grid = self.build_u(potential, l, N, grid)
                r = grid.x

                Fa = (
                    self.build_bessel(r, l1, 2.0 * za * norm_a)[l1]
                    * np.exp(-za * (r - norm_a) ** 2)
                )
                Fb = self.build_bessel(r, max_l2, 2.0 * zb * norm_b) * np.exp(
                    -zb * (r - norm_b) ** 2
                )
                result = self.integrate(max_l2, u * Fa * Fb, grid)
                yield result.converged, ca * cb * result.values
