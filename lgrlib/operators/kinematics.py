"""
Point-level kinematics: reference configuration update, velocity gradient,
stress power and specific internal energy.

Every function is one pass over one index space. ``s`` is a
:class:`lgrlib._state.SimulationState`; results are written into it in place.

The reference update is incremental: the nodal displacement ``u`` of the
current (sub)step defines

    F_incr = I + sum_n u_n (x) grad_N_n

which pushes the stored basis gradients forward, multiplies the total
deformation gradient and scales volume and density by ``J = det(F_incr)``.
"""

import numpy as np

from lgrlib._errors import InversionError, check_positive
from lgrlib.mesh._elements import (
    gather_coordinates,
    h_min_from_gradients,
)
from lgrlib.operators._tensor import (
    IDENTITY,
    inner_product,
    symmetric_part,
    trace,
    transpose,
)


# Initialisation from the current coordinates

def initialize_V(s, etype) -> None:
    """Point volumes: element measure split evenly over its points."""
    X = gather_coordinates(s.x, s.elements_to_nodes)
    V = etype.volume(X)
    s.V[:] = np.repeat(V / s.points_in_element, s.points_in_element)


def initialize_grad_N(s, etype) -> None:
    """Basis gradients of every point from the current coordinates."""
    X = gather_coordinates(s.x, s.elements_to_nodes)
    grad_N = etype.basis_gradients(X)
    s.grad_N[:] = grad_N[s.points_to_elements()]


def update_h_min(s) -> None:
    """Element characteristic length from the (first point's) basis gradients."""
    s.h_min[:] = h_min_from_gradients(s.grad_N[::s.points_in_element])


def update_h_art(s, etype) -> None:
    """Artificial-viscosity length from the current element volume."""
    V = s.V.reshape(s.n_elements, s.points_in_element).sum(axis=1)
    s.h_art[:] = etype.h_art(V)


# Per-step updates

def update_reference(s) -> None:
    """Apply the displacement increment ``s.u`` to gradients, F, V and rho.

    Raises
    ------
    InversionError
        If ``det(F_incr)`` or the updated volume is not strictly positive.
    """
    u = s.u[s.points_to_nodes()]
    F_incr = IDENTITY + np.einsum('pni,pnj->pij', u, s.grad_N)
    J = np.linalg.det(F_incr)
    check_positive(J, InversionError, 'point', 'J',
                   detail="element inverted or tangled")

    F_inverse_transpose = transpose(np.linalg.inv(F_incr))
    s.grad_N[:] = np.einsum('pij,pnj->pni', F_inverse_transpose, s.grad_N)
    s.F_total[:] = F_incr @ s.F_total

    V = J * s.V
    check_positive(V, InversionError, 'point', 'V')
    s.V[:] = V
    s.rho[:] = s.rho / J


def update_symm_grad_v(s) -> None:
    """Symmetric velocity gradient ``sym(sum_n v_n (x) grad_N_n)`` per point."""
    v = s.v[s.points_to_nodes()]
    grad_v = np.einsum('pni,pnj->pij', v, s.grad_N)
    s.symm_grad_v[:] = symmetric_part(grad_v)


def stress_power(s) -> None:
    """Stress power density ``rho * e_dot = sigma : D``."""
    s.rho_e_dot[:] = inner_product(s.sigma, s.symm_grad_v)


def update_e(s, dt: float, old_e, points=None) -> None:
    """Integrate specific internal energy from ``old_e`` over ``dt``."""
    if points is None:
        points = slice(None)
    s.e[points] = old_e[points] + dt * (s.rho_e_dot[points] / s.rho[points])


def update_p(s, points=None) -> None:
    """Pressure ``-tr(sigma) / 3`` for output and averaging."""
    if points is None:
        points = slice(None)
    s.p[points] = -trace(s.sigma[points]) / 3.0
