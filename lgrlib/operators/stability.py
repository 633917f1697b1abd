"""
Stable time step, artificial viscosity and the simulation clock.

Per point the stable step accounts for wave propagation and viscous
diffusion together:

    dt = h^2 / (nu + sqrt(nu^2 + c^2 h^2))

which reduces to ``h / c`` without viscosity. The global stable step is the
minimum over points; the step actually taken is that times the CFL factor,
clipped to the end of the current output interval.
"""

import logging

import numpy as np

from lgrlib._errors import (
    InversionError,
    NonPhysicalStateError,
    StableTimeStepError,
    check_positive,
)
from lgrlib.operators._tensor import trace

logger = logging.getLogger(__name__)


def update_c(s) -> None:
    """Longitudinal wave speed ``sqrt((K + 4G/3) / rho)``."""
    check_positive(s.rho, InversionError, 'point', 'rho')
    M = s.K + (4.0 / 3.0) * s.G
    check_positive(M, NonPhysicalStateError, 'point', 'K + 4G/3',
                   detail="no wave speed can be defined")
    s.c[:] = np.sqrt(M / s.rho)


def update_element_dt(s) -> None:
    """Stable time step of every point."""
    h = s.h_min[s.points_to_elements()]
    h_sq = h * h
    nu = s.nu_art
    dt = h_sq / (nu + np.sqrt(nu * nu + (s.c * s.c) * h_sq))
    check_positive(dt, StableTimeStepError, 'point', 'element_dt')
    s.element_dt[:] = dt


def find_max_stable_dt(s, ceiling: float = 1.0) -> float:
    """Global stable step (minimum over points), checked against ``ceiling``."""
    point = int(np.argmin(s.element_dt))
    max_stable_dt = float(s.element_dt[point])
    if not max_stable_dt < ceiling:
        raise StableTimeStepError(
            'point', point, 'max_stable_dt', max_stable_dt,
            detail=f"stable time step is not below the sanity ceiling {ceiling}",
        )
    s.max_stable_dt = max_stable_dt
    return max_stable_dt


def apply_viscosity(s, linear: float, quadratic: float) -> None:
    """Artificial viscosity under compression.

    Where ``div v < 0``::

        nu    = quadratic * (-div v) h_art^2 + linear * c h_art
        sigma = sigma + rho nu D

    elsewhere ``nu = 0`` and sigma is untouched.
    """
    div_v = trace(s.symm_grad_v)
    h_art = s.h_art[s.points_to_elements()]
    compressing = div_v < 0.0
    nu = np.where(
        compressing,
        quadratic * (-div_v) * (h_art * h_art) + linear * s.c * h_art,
        0.0,
    )
    s.nu_art[:] = nu
    s.sigma[compressing] += (s.rho * nu)[compressing, None, None] * s.symm_grad_v[compressing]


def advance_time(s, cfl: float) -> float:
    """Move the clock by ``min(cfl * max_stable_dt, next_file_output_time - time)``."""
    old_time = s.time
    new_time = min(s.next_file_output_time, old_time + s.max_stable_dt * cfl)
    s.time = new_time
    s.dt = new_time - old_time
    return s.dt
