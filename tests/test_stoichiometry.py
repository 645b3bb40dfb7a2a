"""Tests for the Petersen matrix."""

import numpy as np
import pytest

from adm1.exceptions import InvalidConfigurationError
from adm1.parameters import StoichiometricParameters
from adm1.state import N_STATES, STATE_INDEX
from adm1.stoichiometry import (
    N_PROCESSES,
    PROCESS_INDEX,
    build_stoichiometric_matrix,
    disintegration_fraction_sum,
    get_stoichiometric_coefficient,
    row_balances,
)


@pytest.fixture
def stoich():
    return StoichiometricParameters()


@pytest.fixture
def matrix(stoich):
    return build_stoichiometric_matrix(stoich)


def test_shape(matrix):
    assert matrix.shape == (19, 24) == (N_PROCESSES, N_STATES)


def test_default_disintegration_fractions_sum_to_one(stoich):
    assert disintegration_fraction_sum(stoich) == pytest.approx(1.0, abs=1e-12)


def test_every_row_conserves_cod_carbon_and_nitrogen(matrix, stoich):
    balances = row_balances(matrix, stoich)
    assert np.max(np.abs(balances["cod"])) < 1e-10
    assert np.max(np.abs(balances["carbon"])) < 1e-12
    assert np.max(np.abs(balances["nitrogen"])) < 1e-12


def test_acetoclastic_row(matrix, stoich):
    row = PROCESS_INDEX["uptake_acetate"]
    assert matrix[row, STATE_INDEX["S_ac"]] == -1.0
    assert matrix[row, STATE_INDEX["S_ch4"]] == pytest.approx(1 - stoich.Y_ac)
    assert matrix[row, STATE_INDEX["X_ac"]] == pytest.approx(stoich.Y_ac)
    # Acetate splitting releases CO2
    assert matrix[row, STATE_INDEX["S_IC"]] > 0


def test_hydrogenotrophic_row_fixes_co2(matrix):
    row = PROCESS_INDEX["uptake_hydrogen"]
    assert matrix[row, STATE_INDEX["S_IC"]] < 0


def test_decay_returns_biomass_to_composites(matrix):
    for biomass in ("X_su", "X_aa", "X_fa", "X_c4", "X_pro", "X_ac", "X_h2"):
        row = PROCESS_INDEX[f"decay_{biomass}"]
        assert matrix[row, STATE_INDEX[biomass]] == -1.0
        assert matrix[row, STATE_INDEX["X_c"]] == 1.0


def test_coefficient_lookup(matrix):
    assert get_stoichiometric_coefficient(matrix, 0, STATE_INDEX["X_c"]) == -1.0
    assert get_stoichiometric_coefficient(matrix, 19, 0) == 0.0
    assert get_stoichiometric_coefficient(matrix, 0, 24) == 0.0
    assert get_stoichiometric_coefficient(matrix, -1, 0) == 0.0


def test_bad_disintegration_fractions_rejected(stoich):
    broken = stoich.with_overrides(f_sI_xc=stoich.f_sI_xc + 0.05)
    with pytest.raises(InvalidConfigurationError, match="sum to 1"):
        build_stoichiometric_matrix(broken)
