"""Plane-wave basis: reciprocal grid, k-points and Fourier transforms.

Fields live on a regular real-space FFT grid of shape (n1, n2, n3). Their
reciprocal-space coefficients are indexed by the integer Miller indices of
the same grid, in standard FFT order. The transforms are normalised so that
the plane waves e_G(r) = exp(iG.r) / sqrt(Omega) are orthonormal:

    c_G  = sqrt(Omega) / N * sum_r f(r) exp(-iG.r)
    f(r) = 1 / sqrt(Omega) * sum_G c_G exp(iG.r)

With this convention the Hermitian dot product of two coefficient arrays
equals the real-space integral of the product of the fields over the cell.
"""

from dataclasses import dataclass
from typing import NamedTuple

import jax.numpy as jnp
import numpy as np

from pwpoisson.errors import ShapeMismatchError, check_real
from pwpoisson.lattice import reciprocal_lattice, cell_volume

SPIN_POLARIZATIONS = ("none", "spinless", "collinear", "full")


class KPoint(NamedTuple):
    """Plane-wave sphere of a single k-point."""
    coordinate: jnp.ndarray     # (3,) k-point in Cartesian coords
    g_indices: jnp.ndarray      # (npw, 3) integer Miller indices with |k+G|^2/2 <= ecut
    kinetic: jnp.ndarray        # (npw,) kinetic energies (1/2)|k+G|^2


def _next_fft_size(n: int) -> int:
    """Find next integer >= n that factors only into 2, 3, 5 (efficient FFT size)."""
    if n <= 1:
        return 1
    while True:
        m = n
        for p in [2, 3, 5]:
            while m % p == 0:
                m //= p
        if m == 1:
            return n
        n += 1


def fft_grid_for_cutoff(b: jnp.ndarray, ecut: float,
                        supersampling: float = 2.0) -> tuple[int, int, int]:
    """FFT grid able to represent densities built from a wavefunction cutoff.

    Products of two wavefunctions with |G| <= sqrt(2*Ecut) contain
    frequencies up to twice that, hence the default supersampling of 2.

    Args:
        b: (3, 3) reciprocal lattice vectors (rows).
        ecut: Wavefunction kinetic energy cutoff in Hartree.
        supersampling: Ratio between the density and wavefunction cutoffs in |G|.

    Returns:
        (n1, n2, n3) FFT grid dimensions.
    """
    g_max = supersampling * np.sqrt(2.0 * ecut)
    b_lengths = np.linalg.norm(np.asarray(b), axis=1)
    n_grid = 2 * np.ceil(g_max / b_lengths) + 1
    return tuple(_next_fft_size(int(n)) for n in n_grid)


def miller_indices(fft_grid: tuple[int, int, int]) -> np.ndarray:
    """Integer Miller indices of an FFT grid in FFT order, shape (n1, n2, n3, 3)."""
    axes = [np.rint(np.fft.fftfreq(n, d=1.0) * n).astype(int) for n in fft_grid]
    m1, m2, m3 = np.meshgrid(*axes, indexing='ij')
    return np.stack([m1, m2, m3], axis=-1)


def kpoint_coordinates(kgrid: tuple[int, int, int] | None,
                       b: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """Monkhorst-Pack k-points (Cartesian) and weights; Gamma only for None.

    k_{n1,n2,n3} = sum_i (2*n_i - N_i - 1) / (2*N_i) * b_i
    """
    if kgrid is None:
        return jnp.zeros((1, 3)), jnp.ones(1)
    fractions = [(2.0 * np.arange(nk) - nk + 1) / (2.0 * nk) for nk in kgrid]
    f1, f2, f3 = np.meshgrid(*fractions, indexing='ij')
    frac = np.stack([f1.ravel(), f2.ravel(), f3.ravel()], axis=-1)
    n_total = len(frac)
    return jnp.array(frac) @ b, jnp.ones(n_total) / n_total


def _setup_kpoint(k: jnp.ndarray, b: jnp.ndarray, ecut: float,
                  fft_grid: tuple[int, int, int]) -> KPoint:
    miller = miller_indices(fft_grid).reshape(-1, 3)
    kg = miller.astype(float) @ np.asarray(b) + np.asarray(k)[None, :]
    ke = 0.5 * np.sum(kg**2, axis=1)
    mask = ke <= ecut * (1.0 + 1e-8)
    return KPoint(
        coordinate=jnp.asarray(k),
        g_indices=jnp.array(miller[mask]),
        kinetic=jnp.array(ke[mask]),
    )


def pw_to_real(coeffs: jnp.ndarray, g_indices: jnp.ndarray,
               fft_grid: tuple[int, int, int], volume: float) -> jnp.ndarray:
    """Put sphere coefficients on the FFT grid and transform to real space.

    Args:
        coeffs: (npw,) or (npw, nbands) plane-wave coefficients.
        g_indices: (npw, 3) integer Miller indices.
        fft_grid: (n1, n2, n3) FFT grid dimensions.
        volume: Cell volume.

    Returns:
        (n1, n2, n3) or (n1, n2, n3, nbands) complex real-space values.
    """
    n1, n2, n3 = fft_grid
    n_total = n1 * n2 * n3
    idx = g_indices % jnp.array([n1, n2, n3])
    flat_idx = idx[:, 0] * (n2 * n3) + idx[:, 1] * n3 + idx[:, 2]
    grid_flat = jnp.zeros((n_total,) + coeffs.shape[1:], dtype=complex)
    grid = grid_flat.at[flat_idx].set(coeffs).reshape(tuple(fft_grid) + coeffs.shape[1:])
    return jnp.fft.ifftn(grid, axes=(0, 1, 2)) * (n_total / jnp.sqrt(volume))


def real_to_pw(field: jnp.ndarray, g_indices: jnp.ndarray,
               fft_grid: tuple[int, int, int], volume: float) -> jnp.ndarray:
    """Transform a real-space field to reciprocal space and restrict it to a sphere.

    Inverse of `pw_to_real` on the sphere spanned by `g_indices`.
    """
    n1, n2, n3 = fft_grid
    field_g = jnp.fft.fftn(field, axes=(0, 1, 2)) * (jnp.sqrt(volume) / (n1 * n2 * n3))
    idx = g_indices % jnp.array([n1, n2, n3])
    return field_g[idx[:, 0], idx[:, 1], idx[:, 2]]


@dataclass(frozen=True, eq=False)
class PlaneWaveBasis:
    """Plane-wave discretisation of a periodic cell.

    Use `PlaneWaveBasis.create` rather than the raw constructor.

    Attributes:
        a: (3, 3) real-space lattice vectors as rows, in Bohr.
        ecut: Wavefunction kinetic energy cutoff in Hartree.
        fft_grid: (n1, n2, n3) real-space grid shared by all fields.
        kpoints: One KPoint per sampled k-point.
        kweights: (nk,) k-point weights (sum to 1).
        spin_polarization: One of "none", "spinless", "collinear", "full".
    """
    a: jnp.ndarray
    ecut: float
    fft_grid: tuple[int, int, int]
    kpoints: tuple[KPoint, ...]
    kweights: jnp.ndarray
    spin_polarization: str = "none"

    @classmethod
    def create(
        cls,
        a,
        ecut: float,
        kgrid: tuple[int, int, int] | None = None,
        fft_grid: tuple[int, int, int] | None = None,
        spin_polarization: str = "none",
    ) -> "PlaneWaveBasis":
        """Build a basis from lattice vectors and a cutoff.

        Args:
            a: (3, 3) lattice vectors (rows) in Bohr.
            ecut: Kinetic energy cutoff in Hartree.
            kgrid: Monkhorst-Pack grid dimensions (None for Gamma only).
            fft_grid: Explicit FFT grid; derived from ecut if None.
            spin_polarization: Spin model of the density.

        Returns:
            PlaneWaveBasis instance.
        """
        if spin_polarization not in SPIN_POLARIZATIONS:
            raise ValueError(f"Unknown spin polarization '{spin_polarization}'. "
                             f"Expected one of {SPIN_POLARIZATIONS}")
        a = jnp.asarray(a, dtype=float)
        b = reciprocal_lattice(a)
        if fft_grid is None:
            fft_grid = fft_grid_for_cutoff(b, ecut)
        fft_grid = tuple(int(n) for n in fft_grid)
        if len(fft_grid) != 3 or min(fft_grid) < 1:
            raise ValueError(f"Invalid FFT grid {fft_grid}")

        kcoords, kweights = kpoint_coordinates(kgrid, b)
        kpoints = tuple(_setup_kpoint(k, b, ecut, fft_grid) for k in kcoords)
        return cls(
            a=a,
            ecut=float(ecut),
            fft_grid=fft_grid,
            kpoints=kpoints,
            kweights=kweights,
            spin_polarization=spin_polarization,
        )

    @property
    def recip_lattice(self) -> jnp.ndarray:
        """Reciprocal lattice vectors (rows), in 1/Bohr."""
        return reciprocal_lattice(self.a)

    @property
    def volume(self) -> float:
        return cell_volume(self.a)

    @property
    def n_grid(self) -> int:
        n1, n2, n3 = self.fft_grid
        return n1 * n2 * n3

    @property
    def n_spin_components(self) -> int:
        return 2 if self.spin_polarization == "collinear" else 1

    def G_vectors(self) -> jnp.ndarray:
        """Integer Miller indices of the FFT grid, shape (n1, n2, n3, 3)."""
        return jnp.array(miller_indices(self.fft_grid))

    def G_vectors_cart(self) -> jnp.ndarray:
        """Cartesian reciprocal vectors of the FFT grid, shape (n1, n2, n3, 3)."""
        return jnp.einsum('...i,ij->...j', self.G_vectors().astype(float),
                          self.recip_lattice)

    def same_grid(self, other: "PlaneWaveBasis") -> bool:
        """Whether `other` indexes reciprocal space exactly like this basis."""
        if other is self:
            return True
        return (tuple(other.fft_grid) == tuple(self.fft_grid)
                and bool(jnp.all(other.a == self.a)))

    def _check_grid(self, values: jnp.ndarray, what: str):
        if tuple(values.shape[-3:]) != tuple(self.fft_grid):
            raise ShapeMismatchError(
                f"{what} has trailing shape {tuple(values.shape[-3:])}, "
                f"expected FFT grid {self.fft_grid}"
            )

    def r_to_G(self, f: jnp.ndarray) -> jnp.ndarray:
        """Real-space values -> Fourier coefficients over the last three axes."""
        f = jnp.asarray(f)
        self._check_grid(f, "Real-space field")
        norm = jnp.sqrt(self.volume) / self.n_grid
        return jnp.fft.fftn(f, axes=(-3, -2, -1)) * norm

    def G_to_r(self, c: jnp.ndarray) -> jnp.ndarray:
        """Fourier coefficients -> complex real-space values over the last three axes."""
        c = jnp.asarray(c)
        self._check_grid(c, "Fourier coefficients")
        norm = self.n_grid / jnp.sqrt(self.volume)
        return jnp.fft.ifftn(c, axes=(-3, -2, -1)) * norm

    def r_to_G_matrix(self) -> jnp.ndarray:
        """Dense (N, N) matrix of `r_to_G` acting on C-order flattened grids.

        Only meant for small grids (debugging and tests).
        """
        n = self.n_grid
        unit = jnp.eye(n).reshape((n,) + tuple(self.fft_grid))
        return self.r_to_G(unit).reshape(n, n).T

    def G_to_r_matrix(self) -> jnp.ndarray:
        """Dense (N, N) matrix of `G_to_r` acting on C-order flattened grids."""
        n = self.n_grid
        unit = jnp.eye(n, dtype=complex).reshape((n,) + tuple(self.fft_grid))
        return self.G_to_r(unit).reshape(n, n).T

    def reflect(self, c: jnp.ndarray) -> jnp.ndarray:
        """Entries at -G for every G of the grid, over the last three axes.

        On even grid dimensions the Nyquist index -n/2 is its own reflection.
        """
        c = jnp.asarray(c)
        self._check_grid(c, "Fourier coefficients")
        index = np.ix_(*[(-np.arange(n)) % n for n in self.fft_grid])
        return c[(Ellipsis,) + index]

    def G_to_r_real(self, c: jnp.ndarray, tol: float = 1e-8,
                    what: str = "Field") -> jnp.ndarray:
        """`G_to_r` for the coefficients of a real field, returning real values.

        Raises:
            NumericalAnomalyError: If the coefficients do not describe a real
                field up to `tol`.
        """
        return check_real(self.G_to_r(c), tol, what)
