"""Example: Hartree energy and kernel of a model density in bulk silicon.

Builds a plane-wave basis for the silicon FCC cell, places a Gaussian
charge of four electrons on each atom of the diamond basis, evaluates the
Hartree energy and potential, and checks the spectrum of the dense kernel
on a coarse grid.
"""

import jax
import jax.numpy as jnp
import numpy as np

# Enable 64-bit precision (essential for DFT)
jax.config.update("jax_enable_x64", True)

from pwpoisson import DensityField, Hartree, PlaneWaveBasis
from pwpoisson.constants import ANGSTROM_TO_BOHR
from pwpoisson.debug import check_kernel

a0_ang = 5.43  # Angstrom
a0 = a0_ang * ANGSTROM_TO_BOHR  # Bohr

lattice = jnp.array([
    [0.0, a0/2, a0/2],
    [a0/2, 0.0, a0/2],
    [a0/2, a0/2, 0.0],
], dtype=jnp.float64)

positions_frac = np.array([
    [0.00, 0.00, 0.00],
    [0.25, 0.25, 0.25],
])

basis = PlaneWaveBasis.create(lattice, ecut=5.0)
n1, n2, n3 = basis.fft_grid
frac = jnp.stack(jnp.meshgrid(jnp.arange(n1) / n1, jnp.arange(n2) / n2,
                              jnp.arange(n3) / n3, indexing='ij'), axis=-1)

# Periodic Gaussians of width 1 Bohr, 4 electrons per atom
rho_r = jnp.zeros(basis.fft_grid)
for tau in positions_frac:
    for shift in np.ndindex(3, 3, 3):
        diff = (frac - tau - (np.array(shift) - 1)) @ lattice
        rho_r = rho_r + jnp.exp(-jnp.sum(diff**2, axis=-1))
rho_r = rho_r * 8.0 / (jnp.sum(rho_r) * basis.volume / basis.n_grid)
rho = DensityField.from_real(basis, rho_r)

print(f"Lattice constant: {a0_ang:.4f} A ({a0:.4f} Bohr)")
print(f"Cell volume: {basis.volume:.4f} Bohr^3")
print(f"Number of electrons: {rho.total_charge():.6f}")
print()

term = Hartree(scaling_factor=1.0, verbose=True)(basis)
result = term.evaluate(rho)
print(f"  Hartree energy: {result.energy:.10f} Ha")
print(f"  Potential range: [{float(result.potential.min()):.6f}, "
      f"{float(result.potential.max()):.6f}] Ha")
print()

coarse = PlaneWaveBasis.create(lattice, ecut=5.0, fft_grid=(5, 5, 5))
report = check_kernel(Hartree()(coarse))
print(f"  Dense kernel ({report.size}x{report.size}):")
print(f"    symmetry error: {report.symmetry_error:.2e}")
print(f"    eigenvalues in [{report.min_eigenvalue:.4e}, {report.max_eigenvalue:.4e}]")
print(f"    null space dimension: {report.null_dimension}")
