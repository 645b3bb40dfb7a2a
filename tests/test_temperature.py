"""Tests for Arrhenius and van't Hoff temperature correction."""

import math

import pytest

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import KineticParameters, PhysicoChemicalParameters
from adm1.temperature import (
    arrhenius_factor,
    correct_kinetic_temperature,
    correct_physicochemical_temperature,
    to_kelvin,
)


def test_reference_temperature_is_identity():
    kinetic = KineticParameters()
    assert correct_kinetic_temperature(kinetic, 35.0) == kinetic
    physchem = PhysicoChemicalParameters()
    corrected = correct_physicochemical_temperature(physchem, 35.0).to_dict()
    for name, value in physchem.to_dict().items():
        assert corrected[name] == pytest.approx(value, rel=1e-12)


def test_rates_increase_with_temperature():
    base = KineticParameters()
    warm = correct_kinetic_temperature(base, 40.0)
    cold = correct_kinetic_temperature(base, 25.0)
    assert warm.k_m_ac > base.k_m_ac > cold.k_m_ac
    assert warm.k_dis > base.k_dis
    assert warm.k_dec > base.k_dec


def test_constants_other_than_rates_unchanged():
    base = KineticParameters()
    warm = correct_kinetic_temperature(base, 45.0)
    assert warm.K_S_ac == base.K_S_ac
    assert warm.K_I_nh3 == base.K_I_nh3
    assert warm.pH_UL_ac == base.pH_UL_ac


def test_equilibrium_constants_follow_enthalpy_sign():
    base = PhysicoChemicalParameters()
    warm = correct_physicochemical_temperature(base, 45.0)
    # Endothermic dissociation strengthens, exothermic dissolution weakens
    assert warm.K_w > base.K_w
    assert warm.K_a_IN > base.K_a_IN
    assert warm.K_H_co2 < base.K_H_co2
    assert warm.K_a_va == base.K_a_va


def test_arrhenius_factor_value():
    factor = arrhenius_factor(30000.0, 308.15, 318.15)
    assert factor == pytest.approx(math.exp(30000.0 / 8.314 * (1 / 308.15 - 1 / 318.15)))


def test_absolute_zero_rejected():
    with pytest.raises(InvalidConfigurationError):
        to_kelvin(-273.15)
    with pytest.raises(InvalidConfigurationError):
        correct_kinetic_temperature(KineticParameters(), -300.0)
