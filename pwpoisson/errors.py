"""Exceptions raised by the Poisson solver and its collaborators."""

import jax.numpy as jnp

# Multiple of the machine epsilon accepted as FFT round-off
ROUNDOFF_FACTOR = 1000


class PoissonError(Exception):
    """Base class for all pwpoisson errors."""


class ShapeMismatchError(PoissonError, ValueError):
    """A field does not live on the grid of the basis or term it is given to."""


class NumericalAnomalyError(PoissonError, ArithmeticError):
    """A quantity that must be real carries a non-negligible imaginary part."""


def check_real(values: jnp.ndarray, tol: float, what: str) -> jnp.ndarray:
    """Return the real part of `values`, refusing large imaginary residues.

    The residue is compared to `tol` relative to the magnitude of the data
    (with an absolute floor of `tol`), so FFT round-off on large fields is
    accepted while a genuinely complex field is rejected. `tol` is raised to
    the round-off level of the array's precision, so single-precision data
    is not held to a double-precision tolerance.

    Args:
        values: Array (or scalar) expected to be real up to round-off.
        tol: Relative tolerance on the imaginary residue.
        what: Name of the quantity, used in the error message.

    Returns:
        Real part of `values`.

    Raises:
        NumericalAnomalyError: If the imaginary residue exceeds the tolerance.
    """
    values = jnp.asarray(values)
    if not jnp.iscomplexobj(values):
        return values
    tol = max(tol, ROUNDOFF_FACTOR * float(jnp.finfo(values.dtype).eps))
    residue = float(jnp.max(jnp.abs(jnp.imag(values)))) if values.size else 0.0
    scale = max(1.0, float(jnp.max(jnp.abs(values)))) if values.size else 1.0
    if residue > tol * scale:
        raise NumericalAnomalyError(
            f"{what} has an imaginary residue of {residue:.3e} "
            f"(tolerance {tol * scale:.3e})"
        )
    return jnp.real(values)
