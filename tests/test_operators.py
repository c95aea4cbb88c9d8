"""Tests for local potential operators."""

import jax
import jax.numpy as jnp
import numpy as np

jax.config.update("jax_enable_x64", True)

from pwpoisson import build
from pwpoisson.basis import PlaneWaveBasis
from pwpoisson.density import DensityField
from pwpoisson.operators import RealSpaceMultiplication


def _make_basis(**kwargs):
    a0 = 10.263
    a = jnp.array([[0.0, a0/2, a0/2],
                   [a0/2, 0.0, a0/2],
                   [a0/2, a0/2, 0.0]])
    return PlaneWaveBasis.create(a, ecut=1.5, **kwargs)


def test_constant_potential_is_identity_times_constant():
    basis = _make_basis()
    kpt = basis.kpoints[0]
    op = RealSpaceMultiplication(basis, kpt, jnp.full(basis.fft_grid, -0.25))
    npw = len(kpt.kinetic)
    np.testing.assert_allclose(op.matrix(), -0.25 * jnp.eye(npw), atol=1e-12)


def test_hartree_operator_hermitian():
    """The Hartree potential operator is Hermitian at every k-point."""
    basis = _make_basis(kgrid=(2, 2, 2))
    values = jax.random.uniform(jax.random.PRNGKey(0), basis.fft_grid)
    result = build(basis).evaluate(DensityField.from_real(basis, values))
    for op in result.ops[:2]:
        h = op.matrix()
        diff = jnp.max(jnp.abs(h - h.conj().T))
        assert float(diff) < 1e-10, f"Operator not Hermitian: max diff = {float(diff)}"


def test_apply_bands():
    """Applying to a block of bands equals applying band by band."""
    basis = _make_basis()
    values = jax.random.uniform(jax.random.PRNGKey(1), basis.fft_grid)
    op = build(basis).evaluate(DensityField.from_real(basis, values)).ops[0]
    npw = len(op.kpoint.kinetic)
    psi = (jax.random.normal(jax.random.PRNGKey(2), (npw, 3))
           + 1j * jax.random.normal(jax.random.PRNGKey(3), (npw, 3)))
    block = op.apply(psi)
    for i in range(3):
        np.testing.assert_allclose(block[:, i], op.apply(psi[:, i]), atol=1e-12)
