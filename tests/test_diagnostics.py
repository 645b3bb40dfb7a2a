"""Tests for qualitative diagnostics, reactor configuration and settings."""

import pytest

from adm1.diagnostics import assess, classify_ph_stability, classify_vfa_accumulation, get_inhibition_status
from adm1.exceptions import InvalidConfigurationError
from adm1.reactor import ReactorConfig
from core.config import get_settings


@pytest.mark.parametrize("pH,label", [
    (7.0, "stable"), (6.8, "stable"), (7.4, "stable"),
    (6.6, "marginal"), (7.7, "marginal"),
    (6.0, "unstable"), (8.2, "unstable"),
])
def test_ph_stability_bands(pH, label):
    assert classify_ph_stability(pH) == label


@pytest.mark.parametrize("vfa,label", [(0.0, "low"), (499.0, "low"), (500.0, "moderate"), (2500.0, "high")])
def test_vfa_bands(vfa, label):
    assert classify_vfa_accumulation(vfa) == label


@pytest.mark.parametrize("factor,label", [
    (1.0, "NONE"), (0.85, "MILD"), (0.6, "MODERATE"), (0.4, "SEVERE"), (0.1, "CRITICAL"),
])
def test_inhibition_levels(factor, label):
    assert get_inhibition_status(factor) == label


def test_assess_overall_status():
    healthy = assess(7.1, 100.0, {"I_nh3": 0.95})
    assert healthy.inhibition_status == "Normal"
    assert healthy.inhibition_levels == {"I_nh3": "NONE"}
    sour = assess(6.2, 3000.0, {"I_pH_ac": 0.2})
    assert sour.inhibition_status == "Check conditions"
    assert sour.to_dict()["VFA_accumulation"] == "high"


def test_reactor_hrt_and_defaults():
    reactor = ReactorConfig.from_hrt(V_liq=2000.0, hrt=25.0, temperature=38.0)
    assert reactor.Q_in == pytest.approx(80.0)
    assert reactor.V_gas == pytest.approx(200.0)
    assert reactor.to_dict()["HRT"] == pytest.approx(25.0)


@pytest.mark.parametrize("kwargs", [
    {"V_liq": 0.0, "V_gas": 10.0, "Q_in": 5.0},
    {"V_liq": 100.0, "V_gas": -1.0, "Q_in": 5.0},
    {"V_liq": 100.0, "V_gas": 10.0, "Q_in": 0.0},
    {"V_liq": 100.0, "V_gas": 10.0, "Q_in": 5.0, "temperature": -300.0},
    {"V_liq": 100.0, "V_gas": 10.0, "Q_in": 5.0, "pressure": 0.0},
])
def test_invalid_reactor_rejected(kwargs):
    with pytest.raises(InvalidConfigurationError):
        ReactorConfig(**kwargs)


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("ADM1_DEFAULT_SOLVER", "RK4")
    monkeypatch.setenv("ADM1_MAX_STEPS", "1000")
    monkeypatch.setenv("ADM1_SENSITIVITY_WORKERS", "not-a-number")
    settings = get_settings()
    assert settings.default_solver == "rk4"
    assert settings.max_steps == 1000
    assert settings.sensitivity_workers == 1
