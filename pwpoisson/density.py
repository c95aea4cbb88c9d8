"""Electron densities in real or reciprocal space.

A DensityField stores its values in exactly one representation, tagged by
`representation`, and converts explicitly with `to_real` / `to_fourier`.
Values always carry a leading spin axis: (n_spin, n1, n2, n3).
"""

from dataclasses import dataclass

import jax.numpy as jnp

from pwpoisson.basis import PlaneWaveBasis
from pwpoisson.errors import ShapeMismatchError, check_real

REPRESENTATIONS = ("real", "fourier")


@dataclass(frozen=True, eq=False)
class DensityField:
    """A (possibly spin-resolved) scalar field on the FFT grid of a basis.

    Attributes:
        basis: Basis the field is discretised on.
        values: (n_spin, n1, n2, n3) array in the tagged representation.
        representation: "real" or "fourier".
        imag_tol: Tolerance on imaginary residues when going back to real space.
    """
    basis: PlaneWaveBasis
    values: jnp.ndarray
    representation: str
    imag_tol: float = 1e-8

    def __post_init__(self):
        if self.representation not in REPRESENTATIONS:
            raise ValueError(f"Unknown representation '{self.representation}'")
        grid = tuple(self.basis.fft_grid)
        shape = tuple(self.values.shape)
        if len(shape) != 4 or shape[1:] != grid:
            raise ShapeMismatchError(
                f"Density of shape {shape} does not match (n_spin, *{grid})"
            )
        if shape[0] not in (1, self.basis.n_spin_components):
            raise ShapeMismatchError(
                f"Density has {shape[0]} spin channels, basis has "
                f"{self.basis.n_spin_components}"
            )

    @classmethod
    def from_real(cls, basis: PlaneWaveBasis, values, imag_tol: float = 1e-8) -> "DensityField":
        """Wrap real-space values of shape (n_spin, *grid) or (*grid)."""
        values = check_real(_with_spin_axis(values, basis), imag_tol, "Real-space density")
        return cls(basis=basis, values=values, representation="real", imag_tol=imag_tol)

    @classmethod
    def from_fourier(cls, basis: PlaneWaveBasis, values, imag_tol: float = 1e-8) -> "DensityField":
        """Wrap Fourier coefficients of shape (n_spin, *grid) or (*grid)."""
        values = _with_spin_axis(values, basis).astype(complex)
        return cls(basis=basis, values=values, representation="fourier", imag_tol=imag_tol)

    @classmethod
    def zeros(cls, basis: PlaneWaveBasis, n_spin: int = 1) -> "DensityField":
        return cls.from_real(basis, jnp.zeros((n_spin,) + tuple(basis.fft_grid)))

    def zeros_like(self) -> "DensityField":
        return DensityField.zeros(self.basis, self.n_spin)

    @property
    def n_spin(self) -> int:
        return self.values.shape[0]

    def to_real(self) -> jnp.ndarray:
        """Real-space values, shape (n_spin, n1, n2, n3)."""
        if self.representation == "real":
            return self.values
        return self.basis.G_to_r_real(self.values, self.imag_tol, "Density")

    def to_fourier(self) -> jnp.ndarray:
        """Fourier coefficients, shape (n_spin, n1, n2, n3)."""
        if self.representation == "fourier":
            return self.values
        return self.basis.r_to_G(self.values)

    def total_real(self) -> jnp.ndarray:
        """Total (spin-summed) density in real space, shape (n1, n2, n3)."""
        return jnp.sum(self.to_real(), axis=0)

    def total_fourier(self) -> jnp.ndarray:
        """Total (spin-summed) density in reciprocal space, shape (n1, n2, n3)."""
        return jnp.sum(self.to_fourier(), axis=0)

    def total_charge(self) -> float:
        """Integral of the total density over the unit cell."""
        rho0 = jnp.sum(self.total_real()) * self.basis.volume / self.basis.n_grid
        return float(rho0)


def _with_spin_axis(values, basis: PlaneWaveBasis) -> jnp.ndarray:
    values = jnp.asarray(values)
    if tuple(values.shape) == tuple(basis.fft_grid):
        values = values[None]
    return values
