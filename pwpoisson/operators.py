"""Operators produced by energy terms for Hamiltonian assembly."""

from typing import NamedTuple

import jax.numpy as jnp

from pwpoisson.basis import KPoint, PlaneWaveBasis, pw_to_real, real_to_pw


class RealSpaceMultiplication(NamedTuple):
    """Multiplication by a real local potential V(r) at one k-point.

    (V psi)(G) = FFT[ V(r) * IFFT[psi](r) ](G), restricted to the k-point sphere.
    """
    basis: PlaneWaveBasis
    kpoint: KPoint
    potential: jnp.ndarray      # (n1, n2, n3) real potential

    def apply(self, psi_g: jnp.ndarray) -> jnp.ndarray:
        """Apply the potential to wavefunction coefficients.

        Args:
            psi_g: (npw,) or (npw, nbands) coefficients on the k-point sphere.

        Returns:
            V|psi> with the same shape as `psi_g`.
        """
        fft_grid = self.basis.fft_grid
        volume = self.basis.volume
        psi_r = pw_to_real(psi_g, self.kpoint.g_indices, fft_grid, volume)
        v = self.potential.reshape(self.potential.shape + (1,) * (psi_r.ndim - 3))
        return real_to_pw(v * psi_r, self.kpoint.g_indices, fft_grid, volume)

    def matrix(self) -> jnp.ndarray:
        """Dense (npw, npw) matrix of the operator on the k-point sphere."""
        npw = len(self.kpoint.kinetic)
        return self.apply(jnp.eye(npw, dtype=complex))
