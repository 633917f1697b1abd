"""
Hardening laws for J2 plasticity.

A law provides the flow strength ``S(eqps)``, its derivative and the stored
hardening potential; all accept numpy arrays of equivalent plastic strain.
:class:`ViscoplasticRate` adds a rate-dependent overstress as a function of
the plastic strain increment over the time step.
"""

from abc import ABC, abstractmethod

import numpy as np


class HardeningLaw(ABC):
    """Rate-independent isotropic hardening."""

    @abstractmethod
    def flow_strength(self, eqps):
        """Yield stress at equivalent plastic strain ``eqps``."""

    @abstractmethod
    def hardening_rate(self, eqps):
        """``dS / d eqps``."""

    @abstractmethod
    def potential(self, eqps):
        """Stored energy density ``int_0^eqps S``."""


class LinearHardening(HardeningLaw):
    """``S = Y0 + H eqps`` (``H = 0`` is perfect plasticity)."""

    def __init__(self, yield_strength: float, hardening_modulus: float = 0.0):
        self.Y0 = yield_strength
        self.H = hardening_modulus

    def flow_strength(self, eqps):
        return self.Y0 + self.H * np.asarray(eqps)

    def hardening_rate(self, eqps):
        return np.full_like(np.asarray(eqps, dtype=float), self.H)

    def potential(self, eqps):
        eqps = np.asarray(eqps)
        return self.Y0 * eqps + 0.5 * self.H * eqps * eqps


class PowerLawHardening(HardeningLaw):
    """``S = Y0 (1 + eqps / eps0)^(1/n)``."""

    def __init__(self, yield_strength: float, reference_strain: float = 1.0,
                 exponent: float = 1.0):
        self.Y0 = yield_strength
        self.eps0 = reference_strain
        self.n = exponent

    def flow_strength(self, eqps):
        return self.Y0 * (1.0 + np.asarray(eqps) / self.eps0) ** (1.0 / self.n)

    def hardening_rate(self, eqps):
        ratio = 1.0 + np.asarray(eqps) / self.eps0
        return self.Y0 / (self.eps0 * self.n) * ratio ** (1.0 / self.n - 1.0)

    def potential(self, eqps):
        ratio = 1.0 + np.asarray(eqps) / self.eps0
        exponent = (self.n + 1.0) / self.n
        return self.Y0 * self.eps0 / exponent * (ratio ** exponent - 1.0)


class ViscoplasticRate:
    """Overstress ``Svis0 (d_eqps / (dt eps_dot0))^(1/m)``.

    Vanishes for ``dt <= 0`` or a non-positive increment.
    """

    def __init__(self, viscous_strength: float, rate_sensitivity: float = 1.0,
                 reference_rate: float = 1.0):
        self.Svis0 = viscous_strength
        self.m = rate_sensitivity
        self.eps_dot0 = reference_rate

    def _rate_ratio(self, delta_eqps, dt):
        delta_eqps = np.asarray(delta_eqps, dtype=float)
        if dt <= 0.0:
            return np.zeros_like(delta_eqps)
        return np.maximum(delta_eqps, 0.0) / (dt * self.eps_dot0)

    def stress(self, delta_eqps, dt):
        return self.Svis0 * self._rate_ratio(delta_eqps, dt) ** (1.0 / self.m)

    def hardening_rate(self, delta_eqps, dt):
        ratio = self._rate_ratio(delta_eqps, dt)
        rate = np.zeros_like(ratio)
        positive = ratio > 0.0
        if dt > 0.0:
            rate[positive] = (self.Svis0 / (self.m * dt * self.eps_dot0)
                              * ratio[positive] ** (1.0 / self.m - 1.0))
        return rate

    def dual_kinetic_potential(self, delta_eqps, dt):
        ratio = self._rate_ratio(delta_eqps, dt)
        exponent = (self.m + 1.0) / self.m
        return self.Svis0 * dt * self.eps_dot0 / exponent * ratio ** exponent
