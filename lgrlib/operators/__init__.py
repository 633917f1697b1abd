"""
Pipeline passes acting on a :class:`lgrlib._state.SimulationState`.

Submodules
----------
kinematics : reference update, velocity gradient, stress power, energy
averaging  : element volume-averaging of J, rho, e and p
force      : point-node forces, nodal reduction, lumped mass, acceleration
stability  : wave speed, artificial viscosity, stable time step, clock
"""

from lgrlib.operators.kinematics import (
    initialize_V,
    initialize_grad_N,
    update_h_min,
    update_h_art,
    update_reference,
    update_symm_grad_v,
    stress_power,
    update_e,
    update_p,
)
from lgrlib.operators.averaging import (
    volume_average_J,
    volume_average_rho,
    volume_average_e,
    volume_average_p,
)
from lgrlib.operators.force import (
    update_element_force,
    update_nodal_force,
    scatter_add_nodal_force,
    update_nodal_mass,
    update_a,
)
from lgrlib.operators.stability import (
    update_c,
    update_element_dt,
    find_max_stable_dt,
    apply_viscosity,
    advance_time,
)

__all__ = [
    'initialize_V', 'initialize_grad_N', 'update_h_min', 'update_h_art',
    'update_reference', 'update_symm_grad_v', 'stress_power', 'update_e',
    'update_p',
    'volume_average_J', 'volume_average_rho', 'volume_average_e',
    'volume_average_p',
    'update_element_force', 'update_nodal_force', 'scatter_add_nodal_force',
    'update_nodal_mass', 'update_a',
    'update_c', 'update_element_dt', 'find_max_stable_dt', 'apply_viscosity',
    'advance_time',
]
