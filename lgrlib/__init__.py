"""Explicit Lagrangian dynamics on linear simplex meshes."""

from lgrlib._errors import (
    LgrError,
    ConnectivityError,
    ConfigurationError,
    InvariantViolation,
    InversionError,
    NonPhysicalStateError,
    ReturnMappingError,
    StableTimeStepError,
)
from lgrlib._logging import setup_logging
from lgrlib._state import SimulationState
from lgrlib._boundary_conditions import (
    BoundaryConditionSet,
    ZeroAccelerationBC,
    identify_boundary_nodes,
    identify_box_boundaries,
)
from lgrlib.initial_conditions import (
    CompositeIC,
    CustomVelocity,
    UniformVelocity,
    ZeroVelocity,
)
from lgrlib.mesh import Connectivity, invert_connectivity
from lgrlib.materials import (
    LinearHardening,
    Material,
    MaterialParameters,
    ModelFlag,
    PowerLawHardening,
    ViscoplasticRate,
    material_from_flags,
)
from lgrlib.dynamic_integrators import (
    ExplicitSimulation,
    MeshUpdate,
    SimulationParams,
)
from lgrlib.data import StateHistory

__version__ = '0.1.0'
