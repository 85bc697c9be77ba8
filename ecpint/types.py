import dataclasses
from typing import TypeAlias

import jax
from jax import numpy as jnp
import numpy as np

# Dynamic data
Array: TypeAlias = np.ndarray | jax.Array

# Static metadata
StaticArray: TypeAlias = np.ndarray

# A 3-vector of Cartesian coordinates in Bohr.
Position3D: TypeAlias = np.ndarray | jax.Array


def promote_dataclass_fields(obj):
    """Converts all Array/StaticArray fields to jax/numpy arrays."""
    for field in dataclasses.fields(obj):
        value = getattr(obj, field.name)

        # Skip jax sentinels and traced values.
        if type(value) is object or isinstance(value, jax.core.Tracer):
            continue

        if field.type == Array:
            setattr(obj, field.name, jnp.asarray(value))
        elif field.type == StaticArray:
            setattr(obj, field.name, np.asarray(value, dtype=np.float64))
