"""
Periodic Poisson solver for the Hartree term of plane-wave DFT, in JAX.

This package provides:
- A plane-wave basis with unitary real/reciprocal-space FFT transforms
- Spin-resolved density fields in real or reciprocal representation
- The Hartree energy and local potential from the Fourier-space Green's function
- The Hartree kernel and its square root / inverse square root for response solvers
- Dense kernel matrices for validation on small grids
"""

from pwpoisson.basis import PlaneWaveBasis
from pwpoisson.density import DensityField
from pwpoisson.errors import PoissonError, ShapeMismatchError, NumericalAnomalyError
from pwpoisson.hartree import Hartree, TermHartree, TermResult, build

__version__ = "0.1.0"
__all__ = [
    "PlaneWaveBasis", "DensityField", "Hartree", "TermHartree", "TermResult",
    "build", "PoissonError", "ShapeMismatchError", "NumericalAnomalyError",
]
