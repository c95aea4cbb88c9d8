"""Direct and reciprocal lattice helpers."""

import jax.numpy as jnp

from pwpoisson.constants import TWO_PI


def reciprocal_lattice(a: jnp.ndarray) -> jnp.ndarray:
    """Reciprocal lattice vectors b (rows) with a_i . b_j = 2*pi*delta_ij.

    Cartesian reciprocal vectors of integer Miller indices m are then
    obtained as G = m @ b.

    Args:
        a: (3, 3) real-space lattice vectors (rows), in Bohr.

    Returns:
        (3, 3) reciprocal lattice vectors (rows), in 1/Bohr.
    """
    return TWO_PI * jnp.linalg.inv(a).T


def cell_volume(a: jnp.ndarray) -> float:
    """Unit cell volume |det a| in Bohr^3."""
    return float(jnp.abs(jnp.linalg.det(a)))
