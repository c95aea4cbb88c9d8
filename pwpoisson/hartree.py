"""Hartree energy, potential and kernel via the periodic Poisson equation.

For the Coulomb interaction under periodic boundary conditions the Hartree
energy reads

    E_H = 1/2 * int int rho(r) rho(r') G(r - r') dr dr'

where G is the zero-mean Green's function of the periodic Laplacian,
-Laplacian(G) = 4*pi * sum_R delta_R. In Fourier space solving the Poisson
equation is a diagonal multiplication:

    V_H(G) = 4*pi / |G|^2 * rho(G)     for G != 0
    V_H(0) = 0                          (compensating uniform background)

The kernel of E_H (its second derivative with respect to rho) is the same
diagonal multiplier, which makes it self-adjoint and positive semidefinite.
Its only null mode is the uniform (G = 0) component.
"""

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp
import numpy as np

from pwpoisson.basis import PlaneWaveBasis
from pwpoisson.constants import FOUR_PI
from pwpoisson.debug import compute_kernel
from pwpoisson.density import DensityField
from pwpoisson.errors import ShapeMismatchError, check_real
from pwpoisson.operators import RealSpaceMultiplication


class TermResult(NamedTuple):
    """Energy of a term and its potential operators, one per k-point."""
    energy: float
    ops: list[RealSpaceMultiplication]

    @property
    def potential(self) -> jnp.ndarray:
        """The real-space potential shared by all k-point operators."""
        return self.ops[0].potential


def poisson_green_coeffs(basis: PlaneWaveBasis,
                         scaling_factor: float = 1.0) -> tuple[jnp.ndarray, jnp.ndarray]:
    """Fourier multiplier of the periodic Poisson Green's function and its inverse.

    The zero reciprocal vector is located by exact comparison of the Miller
    indices, so the result does not depend on where the grid puts Gamma.

    On even grids the Nyquist planes hold -n/2 but not +n/2, and on skewed
    lattices |G|^2 differs between the two. The table is averaged with its
    reflection G -> -G so that it maps real fields to real fields; this only
    changes entries on those planes.

    Args:
        basis: Plane-wave basis providing the reciprocal grid and lattice.
        scaling_factor: Factor applied to the whole kernel (may be negative or 0).

    Returns:
        green: (n1, n2, n3) scaling_factor * 4*pi / |G|^2, 0 at G = 0.
        inv_green: (n1, n2, n3) 1 / green where green != 0, else 0.
    """
    miller = basis.G_vectors()
    g2 = jnp.sum(basis.G_vectors_cart()**2, axis=-1)
    is_gamma = jnp.all(miller == 0, axis=-1)

    g2_safe = jnp.where(is_gamma, 1.0, g2)
    green = jnp.where(is_gamma, 0.0, scaling_factor * FOUR_PI / g2_safe)
    green = (green + basis.reflect(green)) / 2

    green_safe = jnp.where(green == 0.0, 1.0, green)
    inv_green = jnp.where(green == 0.0, 0.0, 1.0 / green_safe)
    return green, inv_green


def hartree_energy(pot_fourier: jnp.ndarray, rho_fourier: jnp.ndarray,
                   imag_tol: float = 1e-8) -> float:
    """E_H = Re(<V_H, rho>) / 2 for Fourier coefficients on the same grid.

    Raises:
        NumericalAnomalyError: If the dot product is not real up to `imag_tol`.
    """
    energy = jnp.vdot(pot_fourier, rho_fourier) / 2
    return float(check_real(energy, imag_tol, "Hartree energy"))


class TermHartree:
    """Hartree term of a plane-wave basis.

    The Green's-function tables are built once at construction and are
    read-only afterwards, so a single instance can be evaluated on any
    number of densities, from several threads.
    """

    def __init__(self, basis: PlaneWaveBasis, scaling_factor: float = 1.0,
                 imag_tol: float = 1e-8, verbose: bool = False):
        """Precompute the Fourier coefficients of the Green's function.

        Args:
            basis: Plane-wave basis.
            scaling_factor: Scales the whole term (useful for exploration).
            imag_tol: Tolerance on imaginary residues of real quantities.
            verbose: Print a summary of the coefficient tables.
        """
        self._basis = basis
        self._scaling_factor = float(scaling_factor)
        self._imag_tol = imag_tol
        self._green, self._inv_green = poisson_green_coeffs(basis, self._scaling_factor)

        if verbose:
            self.print_summary()

    @property
    def basis(self) -> PlaneWaveBasis:
        return self._basis

    @property
    def scaling_factor(self) -> float:
        return self._scaling_factor

    @property
    def imag_tol(self) -> float:
        return self._imag_tol

    @property
    def poisson_green_coeffs(self) -> jnp.ndarray:
        return self._green

    @property
    def inv_poisson_green_coeffs(self) -> jnp.ndarray:
        return self._inv_green

    def print_summary(self):
        green = np.asarray(self._green)
        nonzero = np.abs(green[green != 0.0])
        print(f"  Hartree term: FFT grid {self._basis.fft_grid}, "
              f"{green.size} reciprocal vectors")
        print(f"  Scaling factor: {self._scaling_factor}")
        if nonzero.size:
            print(f"  |Green coefficients|: min {nonzero.min():.6e}, "
                  f"max {nonzero.max():.6e}")

    def _check_density(self, density: DensityField):
        if not isinstance(density, DensityField):
            raise TypeError(f"Expected a DensityField, got {type(density).__name__}")
        if not self._basis.same_grid(density.basis):
            raise ShapeMismatchError(
                f"Density on grid {density.basis.fft_grid} does not match the "
                f"Hartree coefficient grid {tuple(self._green.shape)}"
            )
        if density.basis.n_spin_components != self._basis.n_spin_components:
            raise ShapeMismatchError(
                f"Density basis has {density.basis.n_spin_components} spin "
                f"components, the Hartree term has {self._basis.n_spin_components}"
            )

    def evaluate(self, density: DensityField) -> TermResult:
        """Hartree energy and potential operators for a density.

        The density must describe a real field: Fourier coefficients given
        directly have to satisfy rho(-G) = conj(rho(G)). A single complex
        plane wave is not a density; its real counterpart is the pair of
        modes at +G and -G.

        Args:
            density: Electron density (spin channels are summed).

        Returns:
            TermResult with the energy and one RealSpaceMultiplication per k-point.

        Raises:
            ShapeMismatchError: If the density lives on another grid or spin layout.
            NumericalAnomalyError: If the potential of the density is not real.
        """
        self._check_density(density)
        rho_fourier = density.total_fourier()
        pot_fourier = self._green * rho_fourier
        pot_real = self._basis.G_to_r_real(pot_fourier, self._imag_tol,
                                            "Hartree potential")
        energy = hartree_energy(pot_fourier, rho_fourier, self._imag_tol)

        ops = [RealSpaceMultiplication(self._basis, kpoint, pot_real)
               for kpoint in self._basis.kpoints]
        return TermResult(energy=energy, ops=ops)

    ene_ops = evaluate

    def energy(self, density: DensityField) -> float:
        """Hartree energy only."""
        self._check_density(density)
        rho_fourier = density.total_fourier()
        return hartree_energy(self._green * rho_fourier, rho_fourier, self._imag_tol)

    def _apply_multiplier(self, multiplier: jnp.ndarray, drho: DensityField,
                          what: str) -> DensityField:
        self._check_density(drho)
        dv = self._basis.G_to_r_real(multiplier * drho.total_fourier(),
                                      self._imag_tol, what)
        # Hartree only couples to the total density: every spin channel sees dv
        dv = jnp.broadcast_to(dv, (drho.n_spin,) + dv.shape)
        return DensityField.from_real(self._basis, dv, imag_tol=self._imag_tol)

    def _require_nonnegative(self, operation: str):
        if self._scaling_factor < 0:
            raise ValueError(f"{operation} needs a non-negative scaling factor, "
                             f"got {self._scaling_factor}")

    def apply_kernel(self, drho: DensityField) -> DensityField:
        """Potential response dV = K drho, broadcast to all spin channels of drho."""
        return self._apply_multiplier(self._green, drho, "Kernel response")

    def apply_kernel_sqrt(self, drho: DensityField) -> DensityField:
        """Apply K^(1/2); applying it twice to a single-channel field gives K."""
        self._require_nonnegative("apply_kernel_sqrt")
        return self._apply_multiplier(jnp.sqrt(self._green), drho, "Kernel square root")

    def apply_kernel_invsqrt(self, drho: DensityField) -> DensityField:
        """Apply the pseudo-inverse square root of K.

        K has a one-dimensional null space, the uniform density. It is
        mapped to zero, so applying this twice and then K projects drho
        onto zero-mean fields instead of reproducing it.
        """
        self._require_nonnegative("apply_kernel_invsqrt")
        return self._apply_multiplier(jnp.sqrt(self._inv_green), drho,
                                      "Kernel inverse square root")

    def materialize_kernel(self) -> jnp.ndarray:
        """Dense kernel matrix, see `pwpoisson.debug.compute_kernel`."""
        return compute_kernel(self)


@dataclass
class Hartree:
    """Configuration of the Hartree term; call it on a basis to build the term.

    Example usage:
        basis = PlaneWaveBasis.create(a, ecut=5.0)
        term = Hartree(scaling_factor=1.0)(basis)
        result = term.evaluate(DensityField.from_real(basis, rho_r))
    """
    scaling_factor: float = 1.0  # Scales the whole term
    imag_tol: float = 1e-8       # Tolerance on imaginary residues
    verbose: bool = False        # Print a summary at construction

    def __call__(self, basis: PlaneWaveBasis) -> TermHartree:
        return TermHartree(basis, self.scaling_factor, imag_tol=self.imag_tol,
                           verbose=self.verbose)


def build(basis: PlaneWaveBasis, scaling_factor: float = 1.0, **kwargs) -> TermHartree:
    """Build the Hartree term of `basis`; extra keywords go to `Hartree`."""
    return Hartree(scaling_factor=scaling_factor, **kwargs)(basis)
