import numpy as np

from ecpint.logger import logger
from ecpint.math import factorial
from ecpint.math import tensor


def _pairs(lam: int) -> tuple[np.ndarray, np.ndarray]:
    """All (i, j) with i, j >= 0 and i + j <= lam."""
    ij = np.array(
        [(i, j) for i in range(lam + 1) for j in range(lam - i + 1)], dtype=np.int64
    )
    return ij[:, 0], ij[:, 1]


class AngularIntegral:
    """Angular coupling tables for semi-local ECP integrals.

    The tables are built for a maximum basis angular momentum LB and a maximum
    ECP angular momentum LE:

    U(lam, mu, i, j, s): The coefficient of x^i y^j z^(lam-i-j) in the real
        spherical harmonic S_{lam,mu} (s = 0) or S_{lam,-mu} (s = 1).
    W(k, l, m, lam, lam+mu): int x^k y^l z^m S_{lam,mu} dOmega
    Omega(k, l, m, lam, lam+mu, rho, rho+sigma):
        int x^k y^l z^m S_{lam,mu} S_{rho,sigma} dOmega

    Call `compute` after `init` before any lookup.
    """

    def __init__(self, lb: int = 0, le: int = 0):
        self.init(lb, le)

    def init(self, lb: int, le: int) -> None:
        if lb < 0 or le < 0:
            raise ValueError(f"Angular momenta must be non-negative, got {lb}, {le}.")
        self.lb = lb
        self.le = le
        self.w_dim = max(4 * lb, 3 * lb + le)
        self.max_l = max(2 * lb, lb + le)

        # Empty until compute() so that lookups fail with an IndexError.
        self.W = tensor.zeros(0, 0, 0, 0, 0)
        self.omega = tensor.zeros(0, 0, 0, 0, 0, 0, 0)

    def compute(self) -> None:
        logger.debug(
            "Building angular tables for LB=%d, LE=%d (wDim=%d, maxL=%d).",
            self.lb,
            self.le,
            self.w_dim,
            self.max_l,
        )
        fac = factorial.factorial_table(max(self.w_dim, 2 * self.max_l))
        U = self.make_u(fac)
        self.W = self.make_w(U)
        self.omega = self.make_omega(U)

    def calc_g(self, l: int, m: int, fac: np.ndarray) -> float:
        """Formula:
        G = sqrt((2l+1) (l-m)! / (2 pi (l+m)!)) / (2^l l!)
        """
        value = 1.0 / (2.0**l * fac[l])
        return value * np.sqrt((2.0 * l + 1.0) * fac[l - m] / (2.0 * np.pi * fac[l + m]))

    def calc_h1(self, i: int, j: int, l: int, m: int, fac: np.ndarray) -> float:
        """Formula:
        H1 = (-1)^i l! (2l - 2i)! / (j! (l-i)! (i-j)! (l-m-2i)!)
        """
        if j < 0:
            return 0.0
        value = fac[l] / (fac[j] * fac[l - i] * fac[i - j])
        return value * (1 - 2 * (i % 2)) * fac[2 * (l - i)] / fac[l - m - 2 * i]

    def calc_h2(self, i: int, j: int, k: int, m: int, fac: np.ndarray) -> float:
        """Formula:
        H2 = (-1)^p j! m! / (i! (j-i)! (k-2i)! (m-k+2i)!),  p = (m-k+2i) / 2

        and zero unless 0 <= k - 2i <= m.
        """
        ki2 = k - 2 * i
        if not 0 <= ki2 <= m:
            return 0.0
        value = fac[j] * fac[m] / (fac[i] * fac[j - i] * fac[ki2] * fac[m - ki2])
        p = (m - ki2) // 2
        return value * (1.0 - 2.0 * (p % 2))

    def uklm(self, lam: int, mu: int, fac: np.ndarray) -> np.ndarray:
        """The monomial coefficients of S_{lam,mu} and S_{lam,-mu}.

        Returns:
            An array u of shape (lam+1, lam+1, 2) where u[k, l, s] is the
            coefficient of x^k y^l z^(lam-k-l).
        """
        values = tensor.zeros(lam + 1, lam + 1, 2)
        g = self.calc_g(lam, mu, fac)

        for k in range(lam + 1):
            for l in range(lam - k + 1):
                j = k + l - mu
                if j % 2 != 0 or j < 0:
                    continue
                j //= 2

                h1 = sum(
                    self.calc_h1(i, j, lam, mu, fac) for i in range(j, (lam - mu) // 2 + 1)
                )
                h2 = sum(self.calc_h2(i, j, k, mu, fac) for i in range(j + 1))
                u = g * h1 * h2

                # Even powers of y belong to the cosine harmonic, odd ones to the sine.
                if mu == 0:
                    u *= (1 - l % 2) / np.sqrt(2.0)
                    values[k, l, 0] = values[k, l, 1] = u
                else:
                    values[k, l, 0] = u * (1 - l % 2)
                    values[k, l, 1] = u * (l % 2)

        return values

    def pijk(self, max_i: int) -> np.ndarray:
        """Angular integrals of even monomials.

        P[i, j, k] = int x^2i y^2j z^2k dOmega for max_i >= i >= j >= k, from

            P(0, 0, 0) = 4 pi
            P(i, 0, 0) = 4 pi / (2i + 1)
            P(i, j, 0) = P(i, j-1, 0) (2j - 1) / (2 (i + j) + 1)
            P(i, j, k) = P(i, j, k-1) (2k - 1) / (2 (i + j + k) + 1)
        """
        values = tensor.zeros(max_i + 1, max_i + 1, max_i + 1)
        pi4 = 4.0 * np.pi

        values[0, 0, 0] = pi4
        for i in range(1, max_i + 1):
            values[i, 0, 0] = pi4 / (2 * i + 1)
            for j in range(1, i + 1):
                values[i, j, 0] = values[i, j - 1, 0] * (2 * j - 1) / (2 * (i + j) + 1)
                for k in range(1, j + 1):
                    values[i, j, k] = (
                        values[i, j, k - 1] * (2 * k - 1) / (2 * (i + j + k) + 1)
                    )

        return values

    def make_u(self, fac: np.ndarray) -> np.ndarray:
        dim = self.max_l + 1
        values = tensor.zeros(dim, dim, dim, dim, 2)
        for lam in range(self.max_l + 1):
            for mu in range(lam + 1):
                values[lam, mu, : lam + 1, : lam + 1, :] = self.uklm(lam, mu, fac)
        return values

    def make_w(self, U: np.ndarray) -> np.ndarray:
        """Builds the W table.

        W(k, l, m, lam, lam + s mu) = sum_{i+j <= lam} U(lam, mu, i, j, (1-s)/2)
            P(sorted halves of (k+i, l+j, m+lam-i-j))

        with s = (-1)^l. Only lam of the parity of k+l+m up to
        min(maxL, k+l+m) and mu of the parity of k+l are non-zero. Index
        triples with an odd member integrate to zero.
        """
        dim = self.w_dim + 1
        max_lam = self.max_l
        pijk = self.pijk((self.max_l + self.w_dim) // 2)
        values = tensor.zeros(dim, dim, dim, max_lam + 1, 2 * (max_lam + 1))

        k, l, m = np.meshgrid(*(np.arange(dim),) * 3, indexing="ij")
        total = k + l + m
        even_l = l % 2 == 0

        for lam in range(max_lam + 1):
            i, j = _pairs(lam)

            # shape (dim, dim, dim, n_pairs, 3)
            ix = np.stack(
                [
                    k[..., None] + i,
                    l[..., None] + j,
                    m[..., None] + lam - i - j,
                ],
                axis=-1,
            )
            even = np.all(ix % 2 == 0, axis=-1)
            ix = np.sort(ix, axis=-1) // 2
            p = np.where(even, pijk[ix[..., 2], ix[..., 1], ix[..., 0]], 0.0)

            lam_mask = (total % 2 == lam % 2) & (total >= lam)
            for mu in range(lam + 1):
                mask = lam_mask & ((k + l) % 2 == mu % 2)
                plus = mask & even_l
                minus = mask & ~even_l
                values[plus, lam, lam + mu] = (p @ U[lam, mu, i, j, 0])[plus]
                values[minus, lam, lam - mu] = (p @ U[lam, mu, i, j, 1])[minus]

        return values

    def make_omega(self, U: np.ndarray) -> np.ndarray:
        """Builds the Omega table.

        Omega(k, l, m, rho, rho+sigma, lam, lam +- mu) =
            sum_{i+j <= lam} U(lam, mu, i, j, +-) W(k+i, l+j, m+lam-i-j, rho, rho+sigma)

        for k, l, m <= LB and lam <= rho <= LB + LE. The cell with the two
        harmonics swapped is written with the same value.
        """
        lam_dim = self.le + self.lb
        mu_dim = 2 * lam_dim + 1
        n = self.lb + 1
        values = tensor.zeros(n, n, n, lam_dim + 1, mu_dim + 1, lam_dim + 1, mu_dim + 1)

        k, l, m = np.meshgrid(*(np.arange(n),) * 3, indexing="ij")
        for lam in range(lam_dim + 1):
            i, j = _pairs(lam)

            # shape (n, n, n, n_pairs, lam_dim+1, mu_dim+1)
            w = self.W[
                k[..., None] + i,
                l[..., None] + j,
                m[..., None] + lam - i - j,
                : lam_dim + 1,
                : mu_dim + 1,
            ]

            for mu in range(lam + 1):
                om_plus = np.einsum("p,klmprs->klmrs", U[lam, mu, i, j, 0], w)
                if mu == 0:
                    om_minus = om_plus
                else:
                    om_minus = np.einsum("p,klmprs->klmrs", U[lam, mu, i, j, 1], w)

                for om, lam_mu in ((om_plus, lam + mu), (om_minus, lam - mu)):
                    values[:, :, :, lam:, :, lam, lam_mu] = om[:, :, :, lam:, :]
                    values[:, :, :, lam, lam_mu, lam + 1 :, :] = om[:, :, :, lam + 1 :, :]

        return values

    def get_integral(
        self,
        k: int,
        l: int,
        m: int,
        lam: int,
        mu: int,
        rho: int | None = None,
        sigma: int | None = None,
    ) -> float:
        """Looks up W(k, l, m, lam, mu), or Omega when rho and sigma are given."""
        if abs(mu) > lam or (rho is not None and abs(sigma) > rho):
            raise IndexError(
                f"Harmonic order out of range: mu={mu}, lam={lam}, "
                f"sigma={sigma}, rho={rho}."
            )
        if rho is None:
            return self.W[k, l, m, lam, lam + mu]
        return self.omega[k, l, m, lam, lam + mu, rho, rho + sigma]

    def is_zero(
        self,
        k: int,
        l: int,
        m: int,
        lam: int,
        mu: int,
        rho: int | None = None,
        sigma: int | None = None,
        tolerance: float = 1e-12,
    ) -> bool:
        if self.w_dim == 0:
            return True
        return abs(self.get_integral(k, l, m, lam, mu, rho, sigma)) < tolerance
