"""Constitutive models and per-material dispatch."""

from lgrlib.materials._hardening import (
    HardeningLaw,
    LinearHardening,
    PowerLawHardening,
    ViscoplasticRate,
)
from lgrlib.materials._models import (
    ConstitutiveModel,
    IdealGas,
    J2Plasticity,
    NeoHookean,
)
from lgrlib.materials._material import (
    MODEL_BUILDERS,
    Material,
    MaterialParameters,
    ModelFlag,
    material_from_flags,
    update_material_state,
)

__all__ = [
    'HardeningLaw', 'LinearHardening', 'PowerLawHardening', 'ViscoplasticRate',
    'ConstitutiveModel', 'IdealGas', 'J2Plasticity', 'NeoHookean',
    'MODEL_BUILDERS', 'Material', 'MaterialParameters', 'ModelFlag',
    'material_from_flags', 'update_material_state',
]
