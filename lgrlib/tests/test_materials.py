"""Tests for lgrlib.materials (constitutive models and dispatch)."""

import numpy as np
import numpy.testing as npt
import pytest

from lgrlib._errors import (
    ConfigurationError,
    InversionError,
    NonPhysicalStateError,
    ReturnMappingError,
)
from lgrlib._state import SimulationState
from lgrlib.materials import (
    IdealGas,
    J2Plasticity,
    LinearHardening,
    Material,
    MaterialParameters,
    ModelFlag,
    NeoHookean,
    PowerLawHardening,
    ViscoplasticRate,
    material_from_flags,
    update_material_state,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def points_state():
    """Four points (one per element) with F = I."""
    s = SimulationState()
    s.resize(4, 4, 2)
    s.fill_identity('F_total')
    s.fill_identity('Fp_total')
    s.fill('rho', 1.0)
    s.fill('e', 1.0)
    s.element_sets = {0: np.array([0, 1]), 1: np.array([2, 3])}
    return s


def von_mises(sigma):
    dev = sigma - np.trace(sigma, axis1=-2, axis2=-1)[..., None, None] / 3.0 * np.eye(3)
    return np.sqrt(1.5 * np.einsum('...ij,...ij->...', dev, dev))


ALL = np.arange(4)


# ---------------------------------------------------------------------------
# Neo-Hookean
# ---------------------------------------------------------------------------

class TestNeoHookean:
    def test_zero_stress_at_identity(self, points_state):
        s = points_state
        NeoHookean(K0=3.0, G0=2.0).update(s, ALL, 0.0)
        npt.assert_array_equal(s.sigma, 0.0)
        npt.assert_allclose(s.K, 3.0)
        npt.assert_allclose(s.G, 2.0)
        npt.assert_allclose(s.W, 0.0, atol=1e-15)

    @pytest.mark.parametrize('stretch', [0.8, 1.0, 1.25])
    def test_uniaxial_stretch(self, points_state, stretch):
        s = points_state
        K0, G0 = 3.0, 2.0
        s.F_total[:] = np.diag([stretch, 1.0, 1.0])
        NeoHookean(K0, G0).update(s, ALL, 0.0)
        J = stretch
        B = np.diag([stretch ** 2, 1.0, 1.0])
        dev_B = B - np.trace(B) / 3.0 * np.eye(3)
        expected = 0.5 * K0 * (J - 1.0 / J) * np.eye(3) + G0 * J ** (-5.0 / 3.0) * dev_B
        npt.assert_allclose(s.sigma, np.broadcast_to(expected, (4, 3, 3)), atol=1e-14)
        npt.assert_allclose(s.K, 0.5 * K0 * (J + 1.0 / J))

    def test_inverted_point(self, points_state):
        s = points_state
        s.F_total[2] = np.diag([-1.0, 1.0, 1.0])
        with pytest.raises(InversionError) as excinfo:
            NeoHookean(1.0, 1.0).update(s, ALL, 0.0)
        assert excinfo.value.index == 2


# ---------------------------------------------------------------------------
# Ideal gas
# ---------------------------------------------------------------------------

class TestIdealGas:
    def test_pressure_is_exact(self, points_state):
        s = points_state
        gamma = 1.4
        s.rho[:] = [1.0, 2.0, 0.5, 1.2]
        s.e[:] = [3.0, 0.25, 7.0, 1.1]
        IdealGas(gamma).update(s, ALL, 0.0)
        p = (gamma - 1.0) * (s.rho * s.e)
        npt.assert_array_equal(-s.sigma[:, 0, 0], p)
        npt.assert_array_equal(-s.sigma[:, 2, 2], p)
        npt.assert_array_equal(s.sigma[:, 0, 1], 0.0)
        npt.assert_allclose(s.K, gamma * p)

    def test_replaces_only_spherical_part(self, points_state):
        s = points_state
        shear = np.zeros((3, 3))
        shear[0, 1] = shear[1, 0] = 0.7
        s.sigma[:] = shear + 5.0 * np.eye(3)
        IdealGas(2.0).update(s, ALL, 0.0)
        npt.assert_allclose(s.sigma[:, 0, 1], 0.7)
        # p = (2 - 1) * 1 * 1
        npt.assert_allclose(s.sigma[:, 0, 0], -1.0)

    def test_non_positive_energy(self, points_state):
        s = points_state
        s.e[1] = 0.0
        with pytest.raises(NonPhysicalStateError) as excinfo:
            IdealGas(1.4).update(s, ALL, 0.0)
        assert excinfo.value.index == 1
        assert excinfo.value.field == 'e'


# ---------------------------------------------------------------------------
# J2 plasticity
# ---------------------------------------------------------------------------

def simple_shear(gamma):
    F = np.eye(3)
    F[0, 1] = gamma
    return F


class TestJ2Plasticity:
    def test_identity_is_stress_free(self, points_state):
        s = points_state
        J2Plasticity(10.0, 5.0, LinearHardening(1.0)).update(s, ALL, 0.1)
        npt.assert_allclose(s.sigma, 0.0, atol=1e-14)
        npt.assert_array_equal(s.eqps, 0.0)

    def test_elastic_below_yield(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(1e-3)
        J2Plasticity(10.0, 5.0, LinearHardening(1e3)).update(s, ALL, 0.1)
        npt.assert_array_equal(s.eqps, 0.0)
        npt.assert_allclose(s.Fp_total, np.broadcast_to(np.eye(3), (4, 3, 3)))
        npt.assert_allclose(s.sigma[:, 0, 1], 5.0 * 1e-3, rtol=1e-3)

    def test_plastic_flow_returns_to_yield_surface(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(0.1)
        J2Plasticity(100.0, 100.0, LinearHardening(1.0)).update(s, ALL, 0.1)
        assert np.all(s.eqps > 0.0)
        npt.assert_allclose(np.linalg.det(s.Fp_total), 1.0, rtol=1e-12)
        npt.assert_allclose(von_mises(s.sigma), 1.0, rtol=0.05)

    def test_hardening_raises_flow_stress(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(0.1)
        J2Plasticity(100.0, 100.0, LinearHardening(1.0, 50.0)).update(s, ALL, 0.1)
        npt.assert_allclose(von_mises(s.sigma), 1.0 + 50.0 * s.eqps, rtol=0.05)

    def test_viscoplastic_overstress(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(0.1)
        rate = ViscoplasticRate(viscous_strength=1.0, rate_sensitivity=1.0, reference_rate=1.0)
        J2Plasticity(100.0, 100.0, LinearHardening(1.0), viscoplastic=rate).update(s, ALL, 0.1)
        assert np.all(von_mises(s.sigma) > 1.0)

    @pytest.mark.parametrize('m', [1.5, 2.0, 5.0])
    @pytest.mark.parametrize('dt', [1e-4, 1e-6])
    @pytest.mark.parametrize('gamma', [0.05, 0.1, 0.3])
    def test_rate_sensitive_flow_at_small_time_step(self, points_state, m, dt, gamma):
        s = points_state
        s.F_total[:] = simple_shear(gamma)
        rate = ViscoplasticRate(viscous_strength=1.0, rate_sensitivity=m, reference_rate=1.0)
        J2Plasticity(100.0, 100.0, LinearHardening(1.0), viscoplastic=rate).update(s, ALL, dt)
        assert np.all(s.eqps > 0.0)
        assert np.all(von_mises(s.sigma) > 1.0)


class TestReturnMap:
    @pytest.mark.parametrize('m', [1.5, 2.0, 5.0, 10.0])
    @pytest.mark.parametrize('dt', [1e-4, 1e-6])
    def test_consistency_with_rate_sensitivity(self, m, dt):
        rate = ViscoplasticRate(viscous_strength=1.0, rate_sensitivity=m, reference_rate=1.0)
        model = J2Plasticity(100.0, 100.0, LinearHardening(1.0, 10.0), viscoplastic=rate)
        sigma_eff = np.array([30.0, 5.0, 1.2, 0.5])
        eqps = np.array([0.0, 0.1, 0.0, 0.0])
        delta = model._return_map(np.arange(4), sigma_eff, eqps, dt)
        assert np.all(delta >= 0.0)
        assert delta[3] == 0.0
        yielded = delta[:3]
        assert np.all(yielded > 0.0)
        strength = (1.0 + 10.0 * (eqps[:3] + yielded)
                    + (yielded / dt) ** (1.0 / m))
        npt.assert_allclose(sigma_eff[:3] - 300.0 * yielded, strength, rtol=1e-8)

    def test_increment_bounded_by_elastic_predictor(self):
        rate = ViscoplasticRate(viscous_strength=1.0, rate_sensitivity=3.0)
        model = J2Plasticity(100.0, 100.0, LinearHardening(1.0), viscoplastic=rate)
        sigma_eff = np.array([50.0, 2.0])
        delta = model._return_map(np.arange(2), sigma_eff, np.zeros(2), 1e-7)
        assert np.all(delta > 0.0)
        assert np.all(delta < sigma_eff / 300.0)


class TestJ2Errors:
    def test_nonconvergence_is_fatal(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(0.2)
        law = PowerLawHardening(1.0, reference_strain=0.01, exponent=2.0)
        model = J2Plasticity(100.0, 100.0, law, max_iterations=1)
        with pytest.raises(ReturnMappingError) as excinfo:
            model.update(s, ALL, 0.1)
        assert excinfo.value.index_space == 'point'
        assert excinfo.value.field == 'eqps'

    def test_converges_with_default_iterations(self, points_state):
        s = points_state
        s.F_total[:] = simple_shear(0.2)
        law = PowerLawHardening(1.0, reference_strain=0.01, exponent=2.0)
        J2Plasticity(100.0, 100.0, law).update(s, ALL, 0.1)
        npt.assert_allclose(von_mises(s.sigma), law.flow_strength(s.eqps), rtol=0.05)


class TestHardeningLaws:
    def test_linear(self):
        law = LinearHardening(2.0, 4.0)
        npt.assert_allclose(law.flow_strength(np.array([0.0, 0.5])), [2.0, 4.0])
        npt.assert_allclose(law.potential(np.array([0.5])), [2.0 * 0.5 + 0.5 * 4.0 * 0.25])

    def test_power_law_derivative(self):
        law = PowerLawHardening(2.0, reference_strain=0.1, exponent=3.0)
        eqps = np.array([0.05, 0.3])
        h = 1e-7
        numeric = (law.flow_strength(eqps + h) - law.flow_strength(eqps - h)) / (2 * h)
        npt.assert_allclose(law.hardening_rate(eqps), numeric, rtol=1e-6)

    def test_viscoplastic_vanishes_without_time_step(self):
        rate = ViscoplasticRate(1.0)
        npt.assert_array_equal(rate.stress(np.array([0.1]), 0.0), [0.0])
        npt.assert_array_equal(rate.hardening_rate(np.array([0.1]), 0.0), [0.0])


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestMaterialFromFlags:
    def test_neo_hookean(self):
        m = material_from_flags(ModelFlag.NEO_HOOKEAN, MaterialParameters(rho0=2.0, K0=1.0, G0=1.0))
        assert isinstance(m.deviatoric, NeoHookean)
        assert m.pressure is None
        assert m.rho0 == 2.0

    def test_deviatoric_plus_pressure(self):
        flags = ModelFlag.NEO_HOOKEAN | ModelFlag.IDEAL_GAS
        m = material_from_flags(flags, MaterialParameters(K0=1.0, G0=1.0, gamma=1.4, e0=1.0))
        assert [type(model) for model in m.models] == [NeoHookean, IdealGas]

    def test_j2_default_hardening(self):
        params = MaterialParameters(K0=1.0, G0=1.0, yield_strength=0.1, hardening_modulus=0.5)
        m = material_from_flags(ModelFlag.J2_PLASTICITY, params)
        assert isinstance(m.deviatoric, J2Plasticity)
        assert isinstance(m.deviatoric.hardening, LinearHardening)

    def test_no_model(self):
        with pytest.raises(ConfigurationError):
            material_from_flags(ModelFlag.NONE, MaterialParameters())

    def test_two_deviatoric_laws(self):
        params = MaterialParameters(K0=1.0, G0=1.0, yield_strength=0.1)
        with pytest.raises(ConfigurationError):
            material_from_flags(ModelFlag.NEO_HOOKEAN | ModelFlag.J2_PLASTICITY, params)

    @pytest.mark.parametrize('flags, params', [
        (ModelFlag.IDEAL_GAS, MaterialParameters(gamma=1.0)),
        (ModelFlag.IDEAL_GAS, MaterialParameters(gamma=1.4)),
        (ModelFlag.IDEAL_GAS, MaterialParameters(gamma=1.4, e0=-1.0)),
        (ModelFlag.NEO_HOOKEAN, MaterialParameters(K0=0.0)),
        (ModelFlag.J2_PLASTICITY, MaterialParameters(K0=1.0, G0=1.0)),
        (ModelFlag.NEO_HOOKEAN, MaterialParameters(rho0=0.0, K0=1.0)),
    ])
    def test_missing_or_invalid_parameters(self, flags, params):
        with pytest.raises(ConfigurationError):
            material_from_flags(flags, params)

    def test_wrong_role(self):
        with pytest.raises(ConfigurationError):
            Material(rho0=1.0, deviatoric=IdealGas(1.4)).validate()


class TestUpdateMaterialState:
    def test_per_material_dispatch(self, points_state):
        s = points_state
        s.F_total[:] = np.diag([1.1, 1.0, 1.0])
        solid = material_from_flags(ModelFlag.NEO_HOOKEAN, MaterialParameters(K0=2.0, G0=1.0))
        gas = material_from_flags(ModelFlag.IDEAL_GAS, MaterialParameters(gamma=1.5, e0=1.0))
        update_material_state(s, [solid, gas], 0.0)
        assert np.all(s.G[:2] == 1.0)
        assert np.all(s.G[2:] == 0.0)
        npt.assert_allclose(s.sigma[2:], np.broadcast_to(-0.5 * np.eye(3), (2, 3, 3)))
        assert abs(s.sigma[0, 0, 0] - s.sigma[0, 1, 1]) > 0.0

    def test_gas_overrides_solid_pressure(self, points_state):
        s = points_state
        s.F_total[:] = np.diag([1.1, 1.0, 1.0])
        both = material_from_flags(ModelFlag.NEO_HOOKEAN | ModelFlag.IDEAL_GAS,
                                   MaterialParameters(K0=2.0, G0=1.0, gamma=1.5, e0=1.0))
        s.element_sets = {0: np.arange(4)}
        update_material_state(s, [both], 0.0)
        npt.assert_allclose(-np.trace(s.sigma, axis1=1, axis2=2) / 3.0, 0.5)
        npt.assert_allclose(s.K, 1.5 * 0.5)
