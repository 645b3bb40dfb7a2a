"""Tests for the charge-balance pH solver and speciation helpers."""

import math

import pytest

from adm1.acid_base import (
    ChargeBalance,
    PHSolver,
    calculate_alkalinity,
    calculate_dissolved_co2,
    calculate_free_ammonia,
    calculate_ph,
)
from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import PhysicoChemicalParameters
from adm1.state import ADM1State


@pytest.fixture
def physchem():
    return PhysicoChemicalParameters()


def test_typical_digester_liquor_is_near_neutral(typical_state, physchem):
    result = calculate_ph(typical_state, physchem)
    assert result.converged
    assert 6.5 <= result.pH <= 8.5
    assert abs(result.residual) < 1e-12


def test_residual_vanishes_at_solution(typical_state, physchem):
    result = calculate_ph(typical_state, physchem)
    balance = ChargeBalance.from_state(typical_state)
    residual, deriv = balance.residual(10 ** -result.pH, physchem)
    assert abs(residual) < 1e-10
    assert deriv > 0


def test_brent_agrees_with_newton(typical_state, physchem):
    newton = calculate_ph(typical_state, physchem, solver=PHSolver(method="newton"))
    brent = calculate_ph(typical_state, physchem, solver=PHSolver(method="brent"))
    assert brent.converged
    assert brent.pH == pytest.approx(newton.pH, abs=1e-6)


def test_background_cations_raise_ph(typical_state, physchem):
    plain = calculate_ph(typical_state, physchem)
    with_cations = calculate_ph(typical_state, physchem, S_cat=20.0)
    with_anions = calculate_ph(typical_state, physchem, S_an=20.0)
    assert with_cations.pH > plain.pH > with_anions.pH


def test_strong_acid_clamps_to_lower_bound(physchem):
    result = calculate_ph(ADM1State(S_ac=1e5), physchem)
    assert result.pH == 4.0


def test_strong_base_clamps_to_upper_bound(physchem):
    result = calculate_ph(ADM1State(S_IN=1000.0), physchem)
    assert result.pH == 9.0
    assert result.rescues > 0


@pytest.mark.parametrize("ph_initial, rescued_pH", [(5.0, 6.0), (6.5, 6.75), (7.0, 8.0), (8.0, 9.0)])
def test_rescue_averages_toward_neutral_then_steps_up(physchem, ph_initial, rescued_pH):
    # One Newton step overshoots to negative [H+]; the returned best estimate is the rescued pH
    solver = PHSolver(max_iter=1, ph_initial=ph_initial)
    result = calculate_ph(ADM1State(S_IN=1000.0), physchem, solver=solver)
    assert result.rescues == 1
    assert not result.converged
    assert result.pH == pytest.approx(rescued_pH)


def test_iteration_limit_reached_reports_unconverged(typical_state, physchem):
    result = calculate_ph(typical_state, physchem, solver=PHSolver(max_iter=1))
    assert not result.converged
    assert result.iterations == 1
    assert 4.0 <= result.pH <= 9.0


def test_brent_outside_bracket_returns_edge(physchem):
    result = calculate_ph(ADM1State(S_IN=1000.0), physchem, solver=PHSolver(method="brent"))
    assert not result.converged
    assert result.pH == 9.0


@pytest.mark.parametrize("kwargs", [
    {"max_iter": 0},
    {"tol": 0.0},
    {"ph_min": 9.0, "ph_max": 4.0},
    {"method": "secant"},
])
def test_invalid_solver_settings_rejected(kwargs):
    with pytest.raises(InvalidConfigurationError):
        PHSolver(**kwargs)


def test_free_ammonia_is_half_at_pka(physchem):
    pKa = -math.log10(physchem.K_a_IN)
    assert calculate_free_ammonia(100.0, pKa, physchem.K_a_IN) == pytest.approx(50.0)
    assert calculate_free_ammonia(-5.0, 7.0, physchem.K_a_IN) == 0.0


def test_dissolved_co2_dominates_at_low_ph(physchem):
    acidic = calculate_dissolved_co2(100.0, 4.0, physchem.K_a_co2)
    alkaline = calculate_dissolved_co2(100.0, 9.0, physchem.K_a_co2)
    assert acidic > 95.0
    assert alkaline < 1.0


def test_alkalinity_positive_for_buffered_liquor(typical_state, physchem):
    pH = calculate_ph(typical_state, physchem).pH
    assert calculate_alkalinity(typical_state, pH, physchem) > 0


def test_vfa_consumes_alkalinity(typical_state, physchem):
    pH = 7.0
    base = calculate_alkalinity(typical_state, pH, physchem)
    typical_state.S_ac += 1000.0
    assert calculate_alkalinity(typical_state, pH, physchem) < base
