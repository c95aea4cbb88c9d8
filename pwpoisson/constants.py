"""Numerical constants in atomic units (Hartree)."""

import jax.numpy as jnp

BOHR_TO_ANGSTROM = 0.529177210903
ANGSTROM_TO_BOHR = 1.0 / BOHR_TO_ANGSTROM

TWO_PI = 2.0 * jnp.pi
# Prefactor of the Coulomb kernel: -Laplacian(V) = 4*pi*rho
FOUR_PI = 4.0 * jnp.pi
