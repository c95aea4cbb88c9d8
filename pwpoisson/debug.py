"""Dense-matrix utilities for validating kernels on small grids.

Everything here is O(N^2) in memory and O(N^3) in time for an FFT grid of
N points. Never call it from an SCF or response loop.
"""

from typing import NamedTuple

import jax.numpy as jnp


class KernelReport(NamedTuple):
    """Spectral checks of a dense kernel matrix."""
    size: int
    symmetry_error: float      # max |K - K^T|
    min_eigenvalue: float
    max_eigenvalue: float
    null_dimension: int        # eigenvalues below tol * max |eigenvalue|


def compute_kernel(term) -> jnp.ndarray:
    """Dense real-space matrix of a diagonal-in-Fourier kernel term.

    K = Re(G_to_r_matrix @ diag(green) @ r_to_G_matrix), acting on C-order
    flattened grids. For two collinear spin components the same block acts
    on every pair of channels, giving [[K, K], [K, K]].

    Args:
        term: Term exposing `basis` and `poisson_green_coeffs`.

    Returns:
        (N, N) or (2N, 2N) real matrix.
    """
    basis = term.basis
    if basis.spin_polarization not in ("none", "spinless", "collinear"):
        raise ValueError("Dense kernels are only available for 'none', 'spinless' "
                         f"and 'collinear' spin models, got '{basis.spin_polarization}'")
    vc_g = term.poisson_green_coeffs.ravel()
    # Without the real part, even FFT grids leak high-frequency noise into K
    kernel = jnp.real(basis.G_to_r_matrix() @ (vc_g[:, None] * basis.r_to_G_matrix()))

    if basis.n_spin_components == 1:
        return kernel
    return jnp.block([[kernel, kernel], [kernel, kernel]])


def check_kernel(term, tol: float = 1e-10) -> KernelReport:
    """Symmetry and spectrum of the dense kernel of `term`."""
    kernel = compute_kernel(term)
    symmetry_error = float(jnp.max(jnp.abs(kernel - kernel.T)))
    eigs = jnp.linalg.eigvalsh(0.5 * (kernel + kernel.T))
    scale = max(1.0, float(jnp.max(jnp.abs(eigs))))
    return KernelReport(
        size=kernel.shape[0],
        symmetry_error=symmetry_error,
        min_eigenvalue=float(eigs[0]),
        max_eigenvalue=float(eigs[-1]),
        null_dimension=int(jnp.sum(jnp.abs(eigs) < tol * scale)),
    )
