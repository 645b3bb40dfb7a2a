"""Tests for one-at-a-time sensitivity analysis."""

import pytest

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import ADM1Parameters
from adm1.reactor import ReactorConfig
from adm1.sensitivity import (
    OUTPUTS,
    SensitivityPoint,
    SensitivityRange,
    analyze_parameter,
    apply_variation,
    baseline_value_of,
    calculate_elasticity,
    generate_variations,
)


@pytest.fixture
def small_reactor():
    return ReactorConfig.from_hrt(V_liq=100.0, hrt=2.0)


def test_percentage_variations():
    pairs = generate_variations(10.0, SensitivityRange(min=-20.0, max=20.0, steps=3))
    assert pairs == [(-20.0, pytest.approx(8.0)), (0.0, pytest.approx(10.0)), (20.0, pytest.approx(12.0))]


def test_non_positive_values_replaced():
    pairs = generate_variations(10.0, SensitivityRange(min=-200.0, max=0.0, steps=3))
    assert [value for _, value in pairs] == [pytest.approx(0.1), pytest.approx(0.1), pytest.approx(10.0)]


def test_absolute_variations():
    pairs = generate_variations(35.0, SensitivityRange(min=-5.0, max=5.0, steps=2, type="absolute"))
    assert [value for _, value in pairs] == [30.0, 40.0]


@pytest.mark.parametrize("sweep", [
    SensitivityRange(steps=1),
    SensitivityRange(min=10.0, max=-10.0),
    SensitivityRange(type="logarithmic"),
])
def test_invalid_ranges(sweep):
    with pytest.raises(InvalidConfigurationError):
        generate_variations(1.0, sweep)


def test_elasticity_of_proportional_response():
    points = [
        SensitivityPoint(-10.0, 0.9, {"pH": 90.0}),
        SensitivityPoint(0.0, 1.0, {"pH": 100.0}),
        SensitivityPoint(10.0, 1.1, {"pH": 110.0}),
    ]
    assert calculate_elasticity(points, "pH", 100.0) == pytest.approx(1.0)
    assert calculate_elasticity(points, "pH", 0.0) == 0.0
    assert calculate_elasticity(points[:1], "pH", 100.0) == 0.0


def test_baseline_values(reactor):
    params = ADM1Parameters()
    assert baseline_value_of("k_m_ac", reactor, params) == params.kinetic.k_m_ac
    assert baseline_value_of("V_liq", reactor, params) == 1000.0
    assert baseline_value_of("influent_strength", reactor, params) == 1.0
    with pytest.raises(InvalidConfigurationError):
        baseline_value_of("colour", reactor, params)


def test_apply_variation(reactor, dilute_influent):
    params = ADM1Parameters()
    _, _, varied = apply_variation("K_S_ac", 300.0, dilute_influent, reactor, params)
    assert varied.kinetic.K_S_ac == 300.0
    assert params.kinetic.K_S_ac != 300.0

    _, hot, _ = apply_variation("temperature", 55.0, dilute_influent, reactor, params)
    assert hot.temperature == 55.0
    assert hot.V_liq == reactor.V_liq

    strong, _, _ = apply_variation("influent_strength", 2.0, dilute_influent, reactor, params)
    assert strong.total_cod == pytest.approx(2 * dilute_influent.total_cod)
    assert strong.S_IN == dilute_influent.S_IN
    assert strong.S_IC == dilute_influent.S_IC


def test_analyze_parameter_serial(small_reactor, dilute_influent):
    result = analyze_parameter(
        "k_m_ac",
        dilute_influent,
        small_reactor,
        sweep=SensitivityRange(min=-50.0, max=50.0, steps=3),
        max_workers=1,
        hrt_multiple=1.0,
        solver="bdf",
    )
    assert len(result.points) == 3
    assert result.baseline_value == ADM1Parameters().kinetic.k_m_ac
    assert result.baseline_outputs == result.points[1].outputs
    assert set(result.elasticities) == set(OUTPUTS)
    assert result.most_sensitive_output in OUTPUTS
    data = result.to_dict()
    assert data["points"][0]["input_value"] == pytest.approx(4.0)
