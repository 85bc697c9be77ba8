import numpy as np

_SUPPORTED_RANKS = (3, 5, 7)


def zeros(*extents: int) -> np.ndarray:
    """Allocates a zero-filled float64 tensor of rank 3, 5 or 7.

    The coupling tables are fixed-rank dense arrays. Their extents are fixed
    at construction and every access is bounds-checked by numpy.

    Args:
        extents: The size of each axis.

    Returns:
        An array of shape extents.
    """
    if len(extents) not in _SUPPORTED_RANKS:
        raise ValueError(
            f"Unsupported tensor rank {len(extents)}. "
            f"Supported ranks are {_SUPPORTED_RANKS}."
        )
    if any(extent < 0 for extent in extents):
        raise ValueError(f"Tensor extents must be non-negative, got {extents}.")

    return np.zeros(extents, dtype=np.float64)
