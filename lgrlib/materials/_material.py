"""
Materials and per-material constitutive dispatch.

A parameter source describes each material by a :class:`ModelFlag` bitset
and a :class:`MaterialParameters` record. :func:`material_from_flags` resolves
that pair into a :class:`Material` holding the model strategy objects; invalid
combinations are rejected here, before the first step.

Usage
-----
    from lgrlib.materials import ModelFlag, MaterialParameters, material_from_flags

    steel = material_from_flags(
        ModelFlag.NEO_HOOKEAN,
        MaterialParameters(rho0=7800.0, K0=160e9, G0=80e9),
    )
    gas = material_from_flags(
        ModelFlag.IDEAL_GAS,
        MaterialParameters(rho0=1.0, e0=2.5, gamma=1.4),
    )
"""

import enum
from dataclasses import dataclass, field
from typing import Optional, Sequence

from lgrlib._errors import ConfigurationError
from lgrlib._registry import MethodRegistry
from lgrlib.materials._hardening import (
    HardeningLaw,
    LinearHardening,
    ViscoplasticRate,
)
from lgrlib.materials._models import (
    DEVIATORIC,
    PRESSURE,
    ConstitutiveModel,
    IdealGas,
    J2Plasticity,
    NeoHookean,
)


class ModelFlag(enum.Flag):
    """Constitutive models enabled for a material."""
    NONE = 0
    NEO_HOOKEAN = enum.auto()
    J2_PLASTICITY = enum.auto()
    IDEAL_GAS = enum.auto()


@dataclass
class MaterialParameters:
    """Scalar parameters of one material.

    Attributes
    ----------
    rho0, e0 : float
        Initial density and specific internal energy.
    K0, G0 : float
        Bulk and shear modulus (Neo-Hookean, J2).
    gamma : float
        Ratio of specific heats (ideal gas).
    yield_strength, hardening_modulus : float
        Linear hardening parameters, used when ``hardening`` is None.
    hardening : HardeningLaw or None
        Explicit hardening law for J2.
    viscoplastic : ViscoplasticRate or None
        Optional rate dependence for J2.
    max_iterations, tolerance
        Return-mapping controls for J2.
    """
    rho0: float = 1.0
    e0: float = 0.0
    K0: float = 0.0
    G0: float = 0.0
    gamma: float = 0.0
    yield_strength: float = 0.0
    hardening_modulus: float = 0.0
    hardening: Optional[HardeningLaw] = None
    viscoplastic: Optional[ViscoplasticRate] = None
    max_iterations: int = 50
    tolerance: float = 1e-10


def _require_positive(params: MaterialParameters, flag: ModelFlag, *names):
    for name in names:
        if not getattr(params, name) > 0.0:
            raise ConfigurationError(
                f"{flag.name} requires {name} > 0, got {getattr(params, name)!r}"
            )


MODEL_BUILDERS = MethodRegistry("material model")


@MODEL_BUILDERS.register(ModelFlag.NEO_HOOKEAN)
def _build_neo_hookean(params: MaterialParameters) -> ConstitutiveModel:
    _require_positive(params, ModelFlag.NEO_HOOKEAN, 'K0')
    if params.G0 < 0.0:
        raise ConfigurationError(f"NEO_HOOKEAN requires G0 >= 0, got {params.G0!r}")
    return NeoHookean(params.K0, params.G0)


@MODEL_BUILDERS.register(ModelFlag.J2_PLASTICITY)
def _build_j2(params: MaterialParameters) -> ConstitutiveModel:
    _require_positive(params, ModelFlag.J2_PLASTICITY, 'K0', 'G0')
    hardening = params.hardening
    if hardening is None:
        _require_positive(params, ModelFlag.J2_PLASTICITY, 'yield_strength')
        hardening = LinearHardening(params.yield_strength, params.hardening_modulus)
    if params.max_iterations < 1:
        raise ConfigurationError("J2_PLASTICITY requires max_iterations >= 1")
    return J2Plasticity(params.K0, params.G0, hardening,
                        viscoplastic=params.viscoplastic,
                        max_iterations=params.max_iterations,
                        tolerance=params.tolerance)


@MODEL_BUILDERS.register(ModelFlag.IDEAL_GAS)
def _build_ideal_gas(params: MaterialParameters) -> ConstitutiveModel:
    if not params.gamma > 1.0:
        raise ConfigurationError(f"IDEAL_GAS requires gamma > 1, got {params.gamma!r}")
    _require_positive(params, ModelFlag.IDEAL_GAS, 'e0')
    return IdealGas(params.gamma)


@dataclass
class Material:
    """One material: initial fields plus at most one model per role."""
    rho0: float
    e0: float = 0.0
    deviatoric: Optional[ConstitutiveModel] = None
    pressure: Optional[ConstitutiveModel] = None
    name: str = ''
    flags: ModelFlag = field(default=ModelFlag.NONE)

    @property
    def models(self) -> tuple:
        """Models in evaluation order: deviatoric law first, then pressure law."""
        return tuple(m for m in (self.deviatoric, self.pressure) if m is not None)

    def validate(self) -> 'Material':
        if not self.rho0 > 0.0:
            raise ConfigurationError(
                f"material {self.name!r}: rho0 must be positive, got {self.rho0!r}"
            )
        if not self.models:
            raise ConfigurationError(f"material {self.name!r} has no constitutive model")
        if self.deviatoric is not None and self.deviatoric.role != DEVIATORIC:
            raise ConfigurationError(
                f"material {self.name!r}: {type(self.deviatoric).__name__} is not a deviatoric law"
            )
        if self.pressure is not None and self.pressure.role != PRESSURE:
            raise ConfigurationError(
                f"material {self.name!r}: {type(self.pressure).__name__} is not a pressure law"
            )
        return self


def material_from_flags(flags: ModelFlag, params: MaterialParameters,
                        name: str = '') -> Material:
    """Resolve a model bitset and parameters into a validated :class:`Material`.

    Raises
    ------
    ConfigurationError
        If no model, more than one deviatoric law, or an unknown model is
        enabled, or a required parameter is missing.
    """
    deviatoric = pressure = None
    for flag in ModelFlag:
        if flag is ModelFlag.NONE or not (flags & flag):
            continue
        model = MODEL_BUILDERS[flag](params)
        if model.role == DEVIATORIC:
            if deviatoric is not None:
                raise ConfigurationError(
                    f"material {name!r}: more than one deviatoric law enabled ({flags})"
                )
            deviatoric = model
        else:
            if pressure is not None:
                raise ConfigurationError(
                    f"material {name!r}: more than one pressure law enabled ({flags})"
                )
            pressure = model
    material = Material(rho0=params.rho0, e0=params.e0, deviatoric=deviatoric,
                        pressure=pressure, name=name, flags=flags)
    return material.validate()


def update_material_state(s, materials: Sequence[Material], dt: float) -> None:
    """Evaluate every material's models on its points.

    ``sigma`` and ``G`` are cleared first so a pressure-only material ends up
    with a purely spherical stress and zero shear modulus.
    """
    s.fill('sigma', 0.0)
    s.fill('G', 0.0)
    for material_id, material in enumerate(materials):
        points = s.material_points(material_id)
        if points.size == 0:
            continue
        for model in material.models:
            model.update(s, points, dt)
