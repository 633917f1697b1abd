"""Explicit time integration and the simulation runner."""

from lgrlib.dynamic_integrators._integrators_dynamic import (
    INTEGRATORS,
    ExplicitNewmark,
    ExplicitPipeline,
    MidpointPredictorCorrector,
    TimeIntegrator,
    VelocityVerlet,
    get_integrator,
    newmark_correct,
    newmark_predict,
    update_u,
    update_v,
    update_x,
)
from lgrlib.dynamic_integrators._simulation import (
    ExplicitSimulation,
    MeshAdapter,
    MeshUpdate,
    SimulationParams,
)

__all__ = [
    'INTEGRATORS',
    'ExplicitNewmark',
    'ExplicitPipeline',
    'MidpointPredictorCorrector',
    'TimeIntegrator',
    'VelocityVerlet',
    'get_integrator',
    'newmark_correct',
    'newmark_predict',
    'update_u',
    'update_v',
    'update_x',
    'ExplicitSimulation',
    'MeshAdapter',
    'MeshUpdate',
    'SimulationParams',
]
