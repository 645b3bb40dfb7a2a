"""Shared fixtures for the ADM1 engine tests."""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from adm1.fractionation import conventional_influent_for, fractionate_influent, get_fractionation
from adm1.parameters import N_G_PER_MOL, default_parameters
from adm1.reactor import ReactorConfig
from adm1.state import ADM1State, default_initial_state
from core.state import design_state


@pytest.fixture
def params():
    return default_parameters()


@pytest.fixture
def typical_state():
    """Mesophilic digester liquor: acetate 50 g COD/m3, 500 g N/m3 ammonium."""
    state = default_initial_state()
    state.S_ac = 50.0
    state.S_IN = 500.0 / N_G_PER_MOL
    state.S_IC = 50.0
    return state


@pytest.fixture
def reactor():
    return ReactorConfig.from_hrt(V_liq=1000.0, hrt=20.0)


@pytest.fixture
def primary_sludge(reactor):
    conventional = conventional_influent_for("primary_sludge", Q=reactor.Q_in)
    return fractionate_influent(conventional, get_fractionation("primary_sludge"))


@pytest.fixture
def dilute_influent():
    """Weak soluble feed that keeps short explicit runs cheap and well behaved."""
    return ADM1State(
        S_su=200.0, S_aa=100.0, S_fa=50.0, S_ac=50.0, S_IC=40.0, S_IN=30.0, S_I=50.0,
        X_c=500.0, X_ch=300.0, X_pr=300.0, X_li=200.0, X_I=200.0,
    )


@pytest.fixture(autouse=True)
def clean_design_state():
    design_state.reset()
    yield
    design_state.reset()
