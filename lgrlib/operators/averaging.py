"""
Element-level averaging passes.

With several points per element, point-to-point oscillation of volume,
density, energy or pressure (checkerboarding) can be suppressed by replacing
the point values with a weighted element average. Each pass is idempotent.
"""

import numpy as np

from lgrlib.operators._tensor import deviatoric_part, spherical, trace


def _per_element(s, values):
    return values.reshape((s.n_elements, s.points_in_element) + values.shape[1:])


def _broadcast_to_points(s, element_values):
    return np.repeat(element_values, s.points_in_element, axis=0)


def volume_average_J(s) -> None:
    """Scale ``F_total`` so every point carries the element's volume-weighted J."""
    J = np.linalg.det(s.F_total)
    V = _per_element(s, s.V)
    V0 = _per_element(s, s.V / J)
    average_J = _broadcast_to_points(s, V.sum(axis=1) / V0.sum(axis=1))
    s.F_total[:] = np.cbrt(average_J / J)[:, None, None] * s.F_total


def volume_average_rho(s) -> None:
    """Replace point densities by the element's mass-weighted density."""
    V = _per_element(s, s.V)
    mass = (V * _per_element(s, s.rho)).sum(axis=1)
    s.rho[:] = _broadcast_to_points(s, mass / V.sum(axis=1))


def volume_average_e(s) -> None:
    """Replace specific energies by the element's mass-weighted energy."""
    mass = _per_element(s, s.V * s.rho)
    energy = (mass * _per_element(s, s.e)).sum(axis=1)
    s.e[:] = _broadcast_to_points(s, energy / mass.sum(axis=1))


def volume_average_p(s) -> None:
    """Replace the spherical part of sigma by the element's mean pressure."""
    p = -trace(s.sigma) / 3.0
    V = _per_element(s, s.V)
    p_integral = (V * _per_element(s, p)).sum(axis=1)
    average_p = _broadcast_to_points(s, p_integral / V.sum(axis=1))
    s.sigma[:] = deviatoric_part(s.sigma) - spherical(average_p)
