"""
ExplicitSimulation: runner for explicit Lagrangian dynamics.

Bundles mesh, materials, initial conditions, boundary conditions, an optional
mesh adapter and the parameters into a single object, builds the state and
drives the selected time integrator up to ``end_time``.

Usage
-----
    from lgrlib.dynamic_integrators import ExplicitSimulation, SimulationParams
    from lgrlib.initial_conditions import UniformVelocity

    sim = ExplicitSimulation(SimulationParams(end_time=1e-3, num_file_outputs=10))
    sim.set_mesh(x, elements_to_nodes)
    sim.set_materials(steel)
    sim.set_initial_conditions(UniformVelocity([1.0, 0.0, 0.0]))
    t_final = sim.run(callback=history.callback)
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union

import numpy as np

from lgrlib._boundary_conditions import BoundaryConditionSet, ZeroAccelerationBC
from lgrlib._errors import ConfigurationError, ConnectivityError
from lgrlib._logging import resolve_level, setup_logging
from lgrlib._state import SimulationState
from lgrlib.dynamic_integrators._integrators_dynamic import (
    INTEGRATORS,
    ExplicitPipeline,
    get_integrator,
)
from lgrlib.mesh import element_type, invert_connectivity

logger = logging.getLogger(__name__)


@dataclass
class SimulationParams:
    """Parameters for an explicit dynamics run.

    Attributes
    ----------
    end_time : float
        Simulated end time.
    cfl : float
        Safety factor applied to the stable time step.
    num_file_outputs : int
        Number of output intervals; 0 gives a single interval ending at
        ``end_time``. Steps never cross an interval boundary.
    time_integrator : str
        Registered integrator name.
    points_in_element : int
        Integration points per element.
    enable_viscosity : bool
        Artificial viscosity under compression.
    linear_artificial_viscosity, quadratic_artificial_viscosity : float
        Viscosity coefficients.
    enable_J_averaging, enable_rho_averaging, enable_e_averaging, enable_p_averaging : bool
        Element averaging passes.
    max_stable_dt : float
        Sanity ceiling for the stable time step.
    remesh_every : int
        Steps between mesh adapter calls.
    zero_acceleration_conditions : list of (node set name, axis)
        Shorthand for ZeroAccelerationBC entries.
    log_level : int, str or None
        When set, :meth:`ExplicitSimulation.initialize` configures the
        ``lgrlib`` loggers at this level.
    log_file : str or None
        Log file used together with ``log_level``.
    extra : dict
        Free-form values for callbacks and adapters.
    """
    end_time: float = 1.0
    cfl: float = 0.9
    num_file_outputs: int = 0
    time_integrator: str = 'midpoint_predictor_corrector'
    points_in_element: int = 1
    enable_viscosity: bool = False
    linear_artificial_viscosity: float = 0.0
    quadratic_artificial_viscosity: float = 0.0
    enable_J_averaging: bool = False
    enable_rho_averaging: bool = False
    enable_e_averaging: bool = False
    enable_p_averaging: bool = False
    max_stable_dt: float = 1.0
    remesh_every: int = 10
    zero_acceleration_conditions: list = field(default_factory=list)
    log_level: Optional[Union[int, str]] = None
    log_file: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def validate(self) -> 'SimulationParams':
        """Raise :class:`ConfigurationError` on inconsistent values."""
        if not self.end_time > 0.0:
            raise ConfigurationError(f"end_time must be positive, got {self.end_time!r}")
        if not self.cfl > 0.0:
            raise ConfigurationError(f"cfl must be positive, got {self.cfl!r}")
        if self.num_file_outputs < 0:
            raise ConfigurationError("num_file_outputs must be non-negative")
        if self.points_in_element < 1:
            raise ConfigurationError("points_in_element must be at least 1")
        if self.linear_artificial_viscosity < 0.0 or self.quadratic_artificial_viscosity < 0.0:
            raise ConfigurationError("artificial viscosity coefficients must be non-negative")
        if not self.max_stable_dt > 0.0:
            raise ConfigurationError("max_stable_dt must be positive")
        if self.remesh_every < 1:
            raise ConfigurationError("remesh_every must be at least 1")
        if self.log_level is not None:
            resolve_level(self.log_level)
        if self.time_integrator not in INTEGRATORS:
            raise ConfigurationError(
                f"Unknown time integrator: {self.time_integrator!r}. "
                f"Available: {INTEGRATORS.available()}"
            )
        return self

    def output_time(self, k: int) -> float:
        """End of output interval ``k`` (1-based), clamped to ``end_time``."""
        n_out = max(self.num_file_outputs, 1)
        if k >= n_out:
            return self.end_time
        return k * (self.end_time / n_out)


@dataclass
class MeshUpdate:
    """New mesh returned by a :class:`MeshAdapter`.

    ``point_fields`` optionally carries transferred point fields (e.g.
    ``rho``, ``e``, ``F_total``) for the new points; fields not given restart
    from their material defaults.
    """
    x: np.ndarray
    elements_to_nodes: np.ndarray
    element_materials: Optional[np.ndarray] = None
    v: Optional[np.ndarray] = None
    node_sets: Optional[dict] = None
    point_fields: dict = field(default_factory=dict)


class MeshAdapter(Protocol):
    """Collaborator invoked between steps; returns None to keep the mesh."""

    def adapt(self, state: SimulationState) -> Optional[MeshUpdate]:
        ...


def _invoke_callback(callback, step, t, state, diagnostics=None):
    """Call user callback, auto-detecting the 3-arg vs 4-arg signature.

    Short signature: callback(step, t, state)
    Long signature:  callback(step, t, state, diagnostics)
    """
    if callback is None:
        return
    try:
        sig = inspect.signature(callback)
        n_params = len(sig.parameters)
    except (ValueError, TypeError):
        n_params = 3

    if n_params >= 4:
        callback(step, t, state, diagnostics)
    else:
        callback(step, t, state)


class ExplicitSimulation:
    """Runner that bundles all simulation components.

    Parameters
    ----------
    params : SimulationParams
        Simulation parameters.
    """

    def __init__(self, params: Optional[SimulationParams] = None):
        self.params = params if params is not None else SimulationParams()
        self.state = SimulationState()
        self.materials = []
        self.output_times: list[float] = []
        self._mesh: Optional[MeshUpdate] = None
        self._ic = None
        self._bc_set = BoundaryConditionSet()
        self._adapter = None
        self._integrator = None
        self._pipeline = None
        self._output_index = 1
        self.initialized = False

    # Setup

    def set_mesh(self, x, elements_to_nodes, element_materials=None,
                 node_sets=None) -> 'ExplicitSimulation':
        """Set nodal coordinates, connectivity, material ids and named node sets.

        Returns self for chaining.
        """
        self._mesh = MeshUpdate(x=x, elements_to_nodes=elements_to_nodes,
                                element_materials=element_materials,
                                node_sets=node_sets)
        self.initialized = False
        return self

    def set_materials(self, *materials) -> 'ExplicitSimulation':
        """Set the materials, indexed by the element material ids.

        Returns self for chaining.
        """
        if len(materials) == 1 and isinstance(materials[0], (list, tuple)):
            materials = materials[0]
        self.materials = list(materials)
        self.initialized = False
        return self

    def set_initial_conditions(self, ic) -> 'ExplicitSimulation':
        """Set the initial velocity condition (an InitialCondition object).

        Returns self for chaining.
        """
        self._ic = ic
        self.initialized = False
        return self

    def set_boundary_conditions(self, bc_set: BoundaryConditionSet) -> 'ExplicitSimulation':
        """Set boundary condition set (a BoundaryConditionSet object).

        Returns self for chaining.
        """
        self._bc_set = bc_set
        self.initialized = False
        return self

    def set_mesh_adapter(self, adapter: MeshAdapter) -> 'ExplicitSimulation':
        """Set the mesh adapter called every ``params.remesh_every`` steps.

        Returns self for chaining.
        """
        self._adapter = adapter
        return self

    # State construction

    def _build_state(self, mesh: MeshUpdate) -> None:
        """Connectivity, resize and material fills for ``mesh``."""
        s = self.state
        x = np.asarray(mesh.x, dtype=float)
        if x.ndim != 2 or x.shape[1] > 3:
            raise ConnectivityError(
                f"x must have shape (n_nodes, 1..3), got {x.shape}", field='x'
            )
        conn = invert_connectivity(mesh.elements_to_nodes, n_nodes=x.shape[0])
        n_elements = conn.n_elements

        if mesh.element_materials is None:
            element_material = np.zeros(n_elements, dtype=np.int64)
        else:
            element_material = np.asarray(mesh.element_materials, dtype=np.int64)
        if element_material.shape != (n_elements,):
            raise ConfigurationError(
                f"element_materials must have shape ({n_elements},), "
                f"got {element_material.shape}"
            )
        if element_material.min() < 0 or element_material.max() >= len(self.materials):
            raise ConfigurationError(
                f"element material ids must lie in [0, {len(self.materials)})"
            )

        s.resize(x.shape[0], n_elements, conn.nodes_in_element,
                 self.params.points_in_element)
        s.x[:, :x.shape[1]] = x
        element_type(conn.nodes_in_element).check_in_plane(s.x)
        s.elements_to_nodes = conn.elements_to_nodes
        s.connectivity = conn
        s.element_material = element_material
        s.element_sets = {m: np.flatnonzero(element_material == m)
                          for m in range(len(self.materials))}
        s.node_sets = {name: np.asarray(nodes, dtype=np.int64)
                       for name, nodes in (mesh.node_sets or {}).items()}

        for m, material in enumerate(self.materials):
            points = s.material_points(m)
            s.fill_points('rho', material.rho0, points)
            s.fill_points('e', material.e0, points)
        s.fill_identity('F_total')
        s.fill_identity('Fp_total')
        s.fill('eqps', 0.0)
        for name, values in mesh.point_fields.items():
            s.restore(name, values)

    def _bc_set_for_run(self) -> BoundaryConditionSet:
        bcs = BoundaryConditionSet()
        for name, axis in self.params.zero_acceleration_conditions:
            bcs.add(ZeroAccelerationBC(axis), name)
        for bc, nodes in self._bc_set:
            bcs.add(bc, nodes)
        bcs.validate(self.state)
        return bcs

    def initialize(self) -> 'ExplicitSimulation':
        """Validate the setup and bring the state to ``t = 0``.

        Raises
        ------
        ConfigurationError
            On missing mesh, materials or initial velocity condition, or
            invalid parameters.
        """
        p = self.params.validate()
        if p.log_level is not None:
            setup_logging(p.log_level, log_file=p.log_file)
        if self._mesh is None:
            raise ConfigurationError("No mesh set. Call sim.set_mesh() before running.")
        if not self.materials:
            raise ConfigurationError("No materials set. Call sim.set_materials() before running.")
        if self._ic is None:
            raise ConfigurationError(
                "No initial velocity condition set. "
                "Call sim.set_initial_conditions() before running."
            )
        for material in self.materials:
            material.validate()

        self._build_state(self._mesh)
        s = self.state
        self._ic.apply(s)
        element_type(s.nodes_in_element).check_in_plane(s.v, field='v')

        s.time = 0.0
        s.dt = 0.0
        s.n = 0
        self._output_index = 1
        s.next_file_output_time = p.output_time(1)
        self.output_times = []

        self._integrator = get_integrator(p.time_integrator)
        self._pipeline = ExplicitPipeline(s, self.materials, p, self._bc_set_for_run())
        self._pipeline.initialize_geometry()
        self._pipeline.initialize_physics()
        self.initialized = True
        logger.info("initialized %d nodes, %d elements, %d points; stable dt %.6e",
                    s.n_nodes, s.n_elements, s.n_points, s.max_stable_dt)
        return self

    def remesh(self, mesh: MeshUpdate) -> None:
        """Rebuild connectivity and every derived field for a new mesh.

        Time, step count and the output schedule are kept.
        """
        s = self.state
        old_nodes, old_elements = s.n_nodes, s.n_elements
        self._build_state(mesh)
        if mesh.v is not None:
            v = np.asarray(mesh.v, dtype=float)
            s.v[:, :v.shape[1]] = v
            element_type(s.nodes_in_element).check_in_plane(s.v, field='v')
        self._pipeline = ExplicitPipeline(s, self.materials, self.params,
                                          self._bc_set_for_run())
        self._pipeline.initialize_geometry()
        self._pipeline.initialize_physics()
        logger.info("remeshed at step %d: %d -> %d nodes, %d -> %d elements",
                    s.n, old_nodes, s.n_nodes, old_elements, s.n_elements)

    # Stepping

    def step(self) -> dict:
        """Advance one time step and return its diagnostics."""
        if not self.initialized:
            self.initialize()
        s = self.state
        bc_diagnostics = self._integrator.step(self._pipeline)
        s.n += 1
        logger.info("step %d time %.6e dt %.6e stable dt %.6e",
                    s.n, s.time, s.dt, s.max_stable_dt)
        diagnostics = {
            'step': s.n,
            'time': s.time,
            'dt': s.dt,
            'max_stable_dt': s.max_stable_dt,
        }
        diagnostics.update(bc_diagnostics)
        return diagnostics

    def _finish_output_interval(self) -> None:
        s = self.state
        self.output_times.append(s.time)
        logger.info("output %d at time %.6e (step %d)",
                    self._output_index, s.time, s.n)
        self._output_index += 1
        s.next_file_output_time = self.params.output_time(self._output_index)

    def run(self, callback: Optional[Callable] = None) -> float:
        """Run the simulation to ``params.end_time``.

        Parameters
        ----------
        callback : callable or None
            ``callback(step, t, state)`` or
            ``callback(step, t, state, diagnostics)``, called after every step.

        Returns
        -------
        float
            Final simulation time.
        """
        if not self.initialized:
            self.initialize()
        s = self.state
        p = self.params
        while s.time < p.end_time:
            diagnostics = self.step()
            _invoke_callback(callback, s.n, s.time, s, diagnostics)
            if s.time >= s.next_file_output_time:
                self._finish_output_interval()
            if self._adapter is not None and s.n % p.remesh_every == 0:
                update = self._adapter.adapt(s)
                if update is not None:
                    self.remesh(update)
        return s.time
