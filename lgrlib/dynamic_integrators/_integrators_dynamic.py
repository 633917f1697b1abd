"""
Explicit time integration for Lagrangian simplex meshes.

Every integrator advances nodal displacement ``u``, velocity ``v`` and
position ``x`` of a :class:`lgrlib._state.SimulationState` under the
momentum equation

    m a = f(x, v)     (internal force from the point stresses)
    dx/dt = v         (Lagrangian frame)

and re-evaluates the constitutive state at the new configuration. The three
strategies share one :class:`ExplicitPipeline`, which owns the passes every
strategy calls (reference update, material update, viscosity, stable time
step, acceleration and boundary conditions), so the positivity checks and the
viscosity treatment live in one place.

Usage
-----
    from lgrlib.dynamic_integrators import ExplicitPipeline, INTEGRATORS

    pipeline = ExplicitPipeline(state, materials, params, bc_set)
    integrator = INTEGRATORS['velocity_verlet']()
    diagnostics = integrator.step(pipeline)
"""

import logging
from abc import ABC, abstractmethod

from lgrlib._registry import MethodRegistry
from lgrlib.materials import update_material_state
from lgrlib.mesh import element_type
from lgrlib.operators import (
    advance_time,
    apply_viscosity,
    find_max_stable_dt,
    initialize_V,
    initialize_grad_N,
    stress_power,
    update_a,
    update_c,
    update_e,
    update_element_dt,
    update_element_force,
    update_h_art,
    update_h_min,
    update_nodal_force,
    update_nodal_mass,
    update_p,
    update_reference,
    update_symm_grad_v,
    volume_average_J,
    volume_average_e,
    volume_average_p,
    volume_average_rho,
)

logger = logging.getLogger(__name__)


# Nodal passes

def update_u(s, dt: float) -> None:
    """Displacement increment ``u = dt v - u``.

    With ``u = 0`` on entry this is ``dt v``; on the corrector pass of the
    midpoint scheme it turns the predictor's half step into the remainder of
    the full step.
    """
    s.u[:] = dt * s.v - s.u


def update_x(s) -> None:
    """Move the nodes by the current displacement increment."""
    s.x += s.u


def update_v(s, dt: float, old_v) -> None:
    """Velocity ``v = old_v + dt a``."""
    s.v[:] = old_v + dt * s.a


def newmark_predict(s, dt: float) -> None:
    """Trial displacement ``dt v + dt^2/2 a`` and half-step velocity."""
    s.u[:] = dt * s.v + (0.5 * dt * dt) * s.a
    s.v += (0.5 * dt) * s.a


def newmark_correct(s, dt: float) -> None:
    """Complete the velocity step with the acceleration at the new configuration."""
    s.v += (0.5 * dt) * s.a


# Shared passes

class ExplicitPipeline:
    """Passes shared by all time integrators.

    Parameters
    ----------
    s : SimulationState
        State with mesh, connectivity and material fills in place.
    materials : sequence of Material
        Indexed by the element material ids.
    params : SimulationParams
        Viscosity, averaging, CFL and stable-step ceiling settings.
    bc_set : BoundaryConditionSet or None
        Applied to the acceleration after mass normalisation.
    """

    def __init__(self, s, materials, params, bc_set=None):
        self.s = s
        self.materials = list(materials)
        self.params = params
        self.bc_set = bc_set
        self.etype = element_type(s.nodes_in_element)

    def initialize_geometry(self) -> None:
        """Volumes, viscosity length, lumped mass, gradients and ``h_min``."""
        s = self.s
        initialize_V(s, self.etype)
        if self.params.enable_viscosity:
            update_h_art(s, self.etype)
        update_nodal_mass(s)
        initialize_grad_N(s, self.etype)
        update_symm_grad_v(s)
        update_h_min(s)

    def initialize_physics(self) -> dict:
        """Material state at ``dt = 0``, stable step, acceleration and pressure."""
        self.update_material(0.0)
        self.update_stable_dt()
        diagnostics = self.update_acceleration()
        update_p(self.s)
        return diagnostics

    def advance_time(self) -> float:
        return advance_time(self.s, self.params.cfl)

    def update_reference(self) -> None:
        """Apply the displacement increment, then the optional J and rho averaging."""
        s = self.s
        update_reference(s)
        if self.params.enable_J_averaging:
            volume_average_J(s)
        if self.params.enable_rho_averaging:
            volume_average_rho(s)

    def update_geometry(self) -> None:
        update_h_min(self.s)
        if self.params.enable_viscosity:
            update_h_art(self.s, self.etype)

    def update_energy(self, dt: float, old_e) -> None:
        """Integrate ``e`` from ``old_e`` with the current stress power."""
        s = self.s
        stress_power(s)
        update_e(s, dt, old_e)
        if self.params.enable_e_averaging:
            volume_average_e(s)

    def update_material(self, dt: float) -> None:
        """Constitutive update, wave speed, viscosity and optional p averaging."""
        s = self.s
        update_material_state(s, self.materials, dt)
        update_c(s)
        if self.params.enable_viscosity:
            apply_viscosity(s, self.params.linear_artificial_viscosity,
                            self.params.quadratic_artificial_viscosity)
        else:
            s.fill('nu_art', 0.0)
        if self.params.enable_p_averaging:
            volume_average_p(s)

    def update_stable_dt(self) -> float:
        update_element_dt(self.s)
        return find_max_stable_dt(self.s, self.params.max_stable_dt)

    def update_acceleration(self) -> dict:
        """Internal force, ``a = f / m`` and the boundary conditions."""
        s = self.s
        update_element_force(s)
        update_nodal_force(s)
        update_a(s)
        if self.bc_set is None:
            return {}
        return self.bc_set.apply_all(s)


# Integrators

class TimeIntegrator(ABC):
    """One explicit step strategy; ``step`` returns boundary diagnostics."""

    name = ''

    @abstractmethod
    def step(self, pipeline: ExplicitPipeline) -> dict:
        """Advance the state of ``pipeline`` by one time step."""


INTEGRATORS = MethodRegistry("time integrator")


@INTEGRATORS.register('midpoint_predictor_corrector')
class MidpointPredictorCorrector(TimeIntegrator):
    """Two sub-passes per step, rates evaluated at the midpoint.

    Predictor (pass 0)::

        v = v_n + dt/2 a_n
        e = e_n + dt/2 (sigma : D) / rho
        x = x_n + dt/2 v

    followed by a material update over ``dt/2``. The corrector (pass 1)
    repeats the half-step velocity with the predicted acceleration, integrates
    ``e`` and ``x`` over the full step from the step-start values, sets
    ``v = v_n + dt a`` and re-evaluates the material over ``dt``. Only the
    corrector recomputes the stable time step.
    """

    name = 'midpoint_predictor_corrector'

    def step(self, pipeline: ExplicitPipeline) -> dict:
        s = pipeline.s
        s.fill('u', 0.0)
        old_v = s.snapshot('v')
        old_e = s.snapshot('e')
        diagnostics = {}
        for pc in range(2):
            last = pc == 1
            if pc == 0:
                pipeline.advance_time()
            dt = s.dt
            update_v(s, 0.5 * dt, old_v)
            update_symm_grad_v(s)
            half_dt = dt if last else 0.5 * dt
            pipeline.update_energy(half_dt, old_e)
            update_u(s, half_dt)
            if last:
                update_v(s, dt, old_v)
            update_x(s)
            pipeline.update_reference()
            update_symm_grad_v(s)
            pipeline.update_geometry()
            pipeline.update_material(half_dt)
            if last:
                pipeline.update_stable_dt()
            diagnostics = pipeline.update_acceleration()
            update_p(s)
        return diagnostics


@INTEGRATORS.register('velocity_verlet')
class VelocityVerlet(TimeIntegrator):
    """Kick-drift-kick.

    ``v += dt/2 a``, ``x += dt v``, material update at the new configuration,
    ``v += dt/2 a``. Energy is integrated with the half-step velocity.
    """

    name = 'velocity_verlet'

    def step(self, pipeline: ExplicitPipeline) -> dict:
        s = pipeline.s
        pipeline.advance_time()
        dt = s.dt
        old_e = s.snapshot('e')
        s.v += (0.5 * dt) * s.a
        update_symm_grad_v(s)
        pipeline.update_energy(dt, old_e)
        s.fill('u', 0.0)
        update_u(s, dt)
        update_x(s)
        pipeline.update_reference()
        update_symm_grad_v(s)
        pipeline.update_geometry()
        pipeline.update_material(dt)
        pipeline.update_stable_dt()
        diagnostics = pipeline.update_acceleration()
        update_p(s)
        s.v += (0.5 * dt) * s.a
        return diagnostics


@INTEGRATORS.register('explicit_newmark')
class ExplicitNewmark(TimeIntegrator):
    """Explicit Newmark (``beta = 0``, ``gamma = 1/2``), one predict and one correct.

    Predict ``u = dt v + dt^2/2 a`` and ``v += dt/2 a``; re-evaluate the
    acceleration at the moved configuration; correct ``v += dt/2 a``.
    """

    name = 'explicit_newmark'

    def step(self, pipeline: ExplicitPipeline) -> dict:
        s = pipeline.s
        pipeline.advance_time()
        dt = s.dt
        old_e = s.snapshot('e')
        newmark_predict(s, dt)
        update_symm_grad_v(s)
        pipeline.update_energy(dt, old_e)
        update_x(s)
        pipeline.update_reference()
        update_symm_grad_v(s)
        pipeline.update_geometry()
        pipeline.update_material(dt)
        pipeline.update_stable_dt()
        diagnostics = pipeline.update_acceleration()
        update_p(s)
        newmark_correct(s, dt)
        return diagnostics


def get_integrator(name: str) -> TimeIntegrator:
    """Instantiate the integrator registered under ``name``."""
    return INTEGRATORS[name]()
