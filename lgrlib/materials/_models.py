"""
Constitutive models.

A model is a strategy object built once per material at setup. Its
``update(s, points, dt)`` call evaluates the stress tensor, the effective bulk
and shear moduli and the stored energy density for a set of points of a
:class:`lgrlib._state.SimulationState`, in one vectorised pass.

Roles
-----
deviatoric : supplies the full stress (Neo-Hookean, J2 plasticity)
pressure   : replaces the spherical part of the stress (ideal gas)
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from scipy.linalg import expm

from lgrlib._errors import (
    InversionError,
    NonPhysicalStateError,
    ReturnMappingError,
    check_positive,
)
from lgrlib.materials._hardening import HardeningLaw, ViscoplasticRate
from lgrlib.operators._tensor import (
    deviatoric_part,
    inner_product,
    self_times_transpose,
    spherical,
    symmetric_log,
    symmetric_part,
    trace,
    transpose,
)

logger = logging.getLogger(__name__)

DEVIATORIC = 'deviatoric'
PRESSURE = 'pressure'


class ConstitutiveModel(ABC):
    """Stress update for a set of points."""

    role = DEVIATORIC

    @abstractmethod
    def update(self, s, points, dt: float) -> None:
        """Write ``sigma``, ``K``, ``G`` (and ``W``) of ``points`` into ``s``."""


class NeoHookean(ConstitutiveModel):
    """Compressible Neo-Hookean solid.

    ``sigma = K0/2 (J - 1/J) I + G0 J^(-5/3) dev(F F^T)``, with tangent bulk
    modulus ``K0/2 (J + 1/J)``.
    """

    def __init__(self, K0: float, G0: float):
        self.K0 = K0
        self.G0 = G0

    def update(self, s, points, dt: float) -> None:
        F = s.F_total[points]
        J = np.linalg.det(F)
        check_positive(J, InversionError, 'point', 'J', indices=points)
        Jinv = 1.0 / J
        half_K0 = 0.5 * self.K0
        Jm13 = 1.0 / np.cbrt(J)
        Jm23 = Jm13 * Jm13
        Jm53 = Jm23 * Jm23 * Jm13
        B = self_times_transpose(F)
        s.sigma[points] = (spherical(half_K0 * (J - Jinv))
                           + (self.G0 * Jm53)[:, None, None] * deviatoric_part(B))
        s.K[points] = half_K0 * (J + Jinv)
        s.G[points] = self.G0
        s.W[points] = (half_K0 * (0.5 * (J * J - 1.0) - np.log(J))
                       + 0.5 * self.G0 * (Jm23 * trace(B) - 3.0))


class IdealGas(ConstitutiveModel):
    """Ideal gas equation of state, ``p = (gamma - 1) rho e``.

    Replaces the spherical part of whatever stress is already present, so it
    can be combined with a deviatoric model or used alone.
    """

    role = PRESSURE

    def __init__(self, gamma: float):
        self.gamma = gamma

    def update(self, s, points, dt: float) -> None:
        rho = s.rho[points]
        check_positive(rho, InversionError, 'point', 'rho', indices=points)
        e = s.e[points]
        check_positive(e, NonPhysicalStateError, 'point', 'e', indices=points)
        p = (self.gamma - 1.0) * (rho * e)
        check_positive(p, NonPhysicalStateError, 'point', 'p', indices=points)
        s.sigma[points] = deviatoric_part(s.sigma[points]) - spherical(p)
        K = self.gamma * p
        check_positive(K, NonPhysicalStateError, 'point', 'K', indices=points)
        s.K[points] = K


class J2Plasticity(ConstitutiveModel):
    """Finite-strain J2 plasticity with logarithmic elasticity.

    The elastic trial state ``Fe = F Fp^-1`` gives the deviatoric Mandel
    stress ``M = 2G Ee`` with ``Ee = log(J^(-2/3) Fe^T Fe) / 2``. Where the
    equivalent stress exceeds the flow strength, a bracketed Newton iteration
    finds the plastic strain increment (radial return) and ``Fp`` is advanced
    by ``exp(d_eqps N)``.
    The internal variables ``Fp_total`` and ``eqps`` are updated in place.

    Parameters
    ----------
    K, G : float
        Bulk and shear modulus.
    hardening : HardeningLaw
        Rate-independent flow strength.
    viscoplastic : ViscoplasticRate or None
        Optional rate-dependent overstress.
    max_iterations : int
        Iteration limit; exceeding it raises :class:`ReturnMappingError`.
    tolerance : float
        Relative residual tolerance (also the yield-detection threshold).
    """

    def __init__(self, K: float, G: float, hardening: HardeningLaw,
                 viscoplastic: Optional[ViscoplasticRate] = None,
                 max_iterations: int = 50, tolerance: float = 1e-10):
        self.K = K
        self.G = G
        self.hardening = hardening
        self.viscoplastic = viscoplastic
        self.max_iterations = max_iterations
        self.tolerance = tolerance

    def _strength(self, eqps, delta, dt):
        S = self.hardening.flow_strength(eqps + delta)
        if self.viscoplastic is not None:
            S = S + self.viscoplastic.stress(delta, dt)
        return S

    def _tangent(self, eqps, delta, dt):
        H = self.hardening.hardening_rate(eqps + delta)
        if self.viscoplastic is not None:
            H = H + self.viscoplastic.hardening_rate(delta, dt)
        return H

    def _return_map(self, points, sigma_eff, eqps, dt):
        """Solve ``sigma_eff - 3G d - S(eqps + d) = 0`` for ``d`` on yielding points.

        The residual decreases monotonically in ``d`` and changes sign on
        ``[0, sigma_eff / 3G]``. Newton steps that leave the current bracket
        are replaced by bisection (geometric while the lower end is still
        zero), so ``d`` never becomes negative.
        """
        delta = np.zeros_like(sigma_eff)
        r0 = sigma_eff - self._strength(eqps, delta, dt)
        yielding = r0 > self.tolerance
        if not np.any(yielding):
            return delta

        idx = np.flatnonzero(yielding)
        sig = sigma_eff[idx]
        ep = eqps[idx]
        lo = np.zeros(idx.size)
        hi = sig / (3.0 * self.G)
        d = np.zeros(idx.size)
        r = r0[idx].copy()
        converged = np.zeros(idx.size, dtype=bool)
        for _ in range(self.max_iterations):
            active = np.flatnonzero(~converged)
            H = self._tangent(ep[active], d[active], dt)
            trial = d[active] + r[active] / (3.0 * self.G + H)
            outside = (trial <= lo[active]) | (trial >= hi[active])
            lo_out = lo[active][outside]
            hi_out = hi[active][outside]
            # shrink by three decades until a positive lower bound is known
            trial[outside] = np.where(lo_out > 0.0, 0.5 * (lo_out + hi_out), 1e-3 * hi_out)
            S = self._strength(ep[active], trial, dt)
            r_trial = sig[active] - 3.0 * self.G * trial - S
            d[active] = trial
            r[active] = r_trial
            below = r_trial > 0.0
            lo[active[below]] = trial[below]
            hi[active[~below]] = trial[~below]
            converged = np.abs(r / r0[idx]) < self.tolerance
            if np.all(converged):
                break

        if not np.all(converged):
            bad = np.flatnonzero(~converged)[0]
            raise ReturnMappingError(
                'point', points[idx[bad]], 'eqps', eqps[idx[bad]] + d[bad],
                detail=(f"plastic return mapping did not converge in "
                        f"{self.max_iterations} iterations (residual {r[bad]:.3e})"),
            )
        delta[idx] = d
        return delta

    def update(self, s, points, dt: float) -> None:
        points = np.asarray(points)
        F = s.F_total[points]
        J = np.linalg.det(F)
        check_positive(J, InversionError, 'point', 'J', indices=points)
        logJ = np.log(J)
        Jm23 = J ** (-2.0 / 3.0)
        p = self.K * logJ / J

        Fp = s.Fp_total[points]
        eqps = s.eqps[points]
        Fe_tr = F @ np.linalg.inv(Fp)
        dev_Ce_tr = Jm23[:, None, None] * (transpose(Fe_tr) @ Fe_tr)
        dev_Ee_tr = 0.5 * symmetric_log(dev_Ce_tr)
        dev_M_tr = 2.0 * self.G * dev_Ee_tr
        sigma_tr_eff = np.sqrt(1.5) * np.linalg.norm(dev_M_tr, axis=(-2, -1))
        Np = np.zeros_like(dev_M_tr)
        loaded = sigma_tr_eff > 0.0
        Np[loaded] = 1.5 * dev_M_tr[loaded] / sigma_tr_eff[loaded, None, None]

        delta = self._return_map(points, sigma_tr_eff, eqps, dt)
        plastic = delta > 0.0
        if np.any(plastic):
            dFp = expm(delta[plastic, None, None] * Np[plastic])
            s.Fp_total[points[plastic]] = dFp @ Fp[plastic]
            s.eqps[points] = eqps + delta
            logger.debug("J2 return mapping: %d of %d points yielded",
                         int(plastic.sum()), points.size)

        Ee_correction = delta[:, None, None] * Np
        dev_Ee = dev_Ee_tr - Ee_correction
        dev_sigma = ((1.0 / J)[:, None, None]
                     * transpose(np.linalg.inv(Fe_tr))
                     @ (dev_M_tr - 2.0 * self.G * Ee_correction)
                     @ transpose(Fe_tr))

        s.sigma[points] = symmetric_part(dev_sigma) + spherical(p)
        s.K[points] = self.K
        s.G[points] = self.G

        W = 0.5 * self.K * logJ * logJ + self.G * inner_product(dev_Ee, dev_Ee)
        W = W + self.hardening.potential(s.eqps[points])
        if self.viscoplastic is not None:
            W = W + self.viscoplastic.dual_kinetic_potential(delta, dt)
        s.W[points] = W
