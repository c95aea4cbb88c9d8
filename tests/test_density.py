"""Tests for density fields."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

jax.config.update("jax_enable_x64", True)

from pwpoisson.basis import PlaneWaveBasis
from pwpoisson.density import DensityField
from pwpoisson.errors import NumericalAnomalyError, ShapeMismatchError


def _make_basis(spin_polarization="none"):
    return PlaneWaveBasis.create(jnp.eye(3) * 8.0, ecut=2.0, fft_grid=(5, 5, 5),
                                 spin_polarization=spin_polarization)


def test_single_channel_gets_spin_axis():
    """A (n1, n2, n3) array is read as one spin channel."""
    basis = _make_basis()
    rho = DensityField.from_real(basis, jnp.ones(basis.fft_grid))
    assert rho.values.shape == (1, 5, 5, 5)
    assert rho.n_spin == 1
    assert rho.representation == "real"


def test_real_fourier_conversion():
    """to_fourier / to_real convert between representations."""
    basis = _make_basis()
    values = jax.random.uniform(jax.random.PRNGKey(0), basis.fft_grid)
    rho_r = DensityField.from_real(basis, values)
    rho_g = DensityField.from_fourier(basis, rho_r.to_fourier())
    assert rho_g.representation == "fourier"
    np.testing.assert_allclose(rho_g.to_real()[0], values, atol=1e-12)
    np.testing.assert_allclose(rho_g.total_fourier(), rho_r.total_fourier(), atol=1e-12)


def test_total_density_sums_spins():
    """The total density is the sum over spin channels."""
    basis = _make_basis("collinear")
    up = jax.random.uniform(jax.random.PRNGKey(1), basis.fft_grid)
    down = jax.random.uniform(jax.random.PRNGKey(2), basis.fft_grid)
    rho = DensityField.from_real(basis, jnp.stack([up, down]))
    assert rho.n_spin == 2
    np.testing.assert_allclose(rho.total_real(), up + down, atol=1e-14)
    np.testing.assert_allclose(rho.total_fourier(), basis.r_to_G(up + down), atol=1e-12)


def test_total_charge():
    """A uniform density n integrates to n * Omega."""
    basis = _make_basis()
    rho = DensityField.from_real(basis, jnp.full(basis.fft_grid, 0.01))
    np.testing.assert_allclose(rho.total_charge(), 0.01 * basis.volume, rtol=1e-12)


def test_zeros():
    basis = _make_basis("collinear")
    rho = DensityField.zeros(basis, n_spin=2)
    assert rho.values.shape == (2, 5, 5, 5)
    assert float(jnp.max(jnp.abs(rho.zeros_like().to_real()))) == 0.0


def test_wrong_grid():
    """Values on another grid are rejected."""
    basis = _make_basis()
    with pytest.raises(ShapeMismatchError):
        DensityField.from_real(basis, jnp.ones((4, 5, 5)))


def test_wrong_spin_count():
    """Two spin channels need a collinear basis."""
    basis = _make_basis()
    with pytest.raises(ShapeMismatchError):
        DensityField.from_real(basis, jnp.ones((2, 5, 5, 5)))


def test_complex_real_space_values():
    """Real-space densities must be real."""
    basis = _make_basis()
    with pytest.raises(NumericalAnomalyError):
        DensityField.from_real(basis, jnp.ones(basis.fft_grid) * (1.0 + 0.5j))


def test_non_hermitian_coefficients():
    """Fourier coefficients of a complex field cannot be read back as a density."""
    basis = _make_basis()
    coeffs = jnp.zeros(basis.fft_grid, dtype=jnp.complex128).at[0, 1, 0].set(1.0)
    rho = DensityField.from_fourier(basis, coeffs)
    with pytest.raises(NumericalAnomalyError):
        rho.to_real()


def test_unknown_representation():
    basis = _make_basis()
    with pytest.raises(ValueError):
        DensityField(basis=basis, values=jnp.ones((1, 5, 5, 5)), representation="spherical")
