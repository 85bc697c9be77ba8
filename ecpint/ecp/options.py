import dataclasses


@dataclasses.dataclass(frozen=True)
class Options:
    # Quadrature convergence threshold. Also the cutoff below which the
    # tabulated potential is treated as zero.
    tolerance: float = 1e-12

    # Points of the grid mapped onto [0, inf). Rounded up to 2^k - 1.
    small_grid_size: int = 255

    # Points of the grid used for the per-primitive fallback. Rounded up to 2^k - 1.
    large_grid_size: int = 1023

    # Re-expansion coefficients with |C| at or below this are skipped.
    prune_threshold: float = 1e-14

    def __post_init__(self):
        if self.tolerance <= 0:
            raise ValueError("tolerance must be > 0")
        if self.small_grid_size < 3:
            raise ValueError("small_grid_size must be >= 3")
        if self.large_grid_size < 3:
            raise ValueError("large_grid_size must be >= 3")
        if self.prune_threshold < 0:
            raise ValueError("prune_threshold must be >= 0")
