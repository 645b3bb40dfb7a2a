"""
CSTR mass balance for the ADM1 liquid and gas phases.

``calculate_derivatives`` is the pure 24-element right-hand side.
``ADM1System`` binds it to one reactor, influent and parameter set and
exposes the 27-element liquid + headspace function integrators consume.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from adm1.acid_base import PHResult, PHSolver, calculate_free_ammonia, calculate_ph
from adm1.gas_transfer import GasTransfer, calculate_gas_transfer, gas_phase_derivatives
from adm1.inhibition import InhibitionFactors, inhibition_factors
from adm1.parameters import COD_CH4, COD_H2, ADM1Parameters
from adm1.process_rates import ProcessRate, describe_rates, rhos_adm1
from adm1.reactor import ReactorConfig
from adm1.state import N_STATES, STATE_INDEX, ADM1State, GasPhase
from adm1.stoichiometry import build_stoichiometric_matrix
from adm1.temperature import correct_kinetic_temperature, correct_physicochemical_temperature

logger = logging.getLogger(__name__)

_I_H2 = STATE_INDEX["S_h2"]
_I_CH4 = STATE_INDEX["S_ch4"]
_I_IC = STATE_INDEX["S_IC"]


def calculate_derivatives(
    state: ADM1State,
    influent: ADM1State,
    rates: np.ndarray,
    matrix: np.ndarray,
    transfer: GasTransfer,
    hrt: float,
) -> np.ndarray:
    """
    dS/dt for the 24 liquid components.

    Parameters
    ----------
    state, influent : ADM1State
        Reactor contents and feed composition.
    rates : numpy.ndarray
        19 process rates.
    matrix : numpy.ndarray
        19 x 24 Petersen matrix.
    transfer : GasTransfer
        Liquid-to-gas transfer [kmol/(m3 d)].
    hrt : float
        Hydraulic retention time [d].

    Returns
    -------
    numpy.ndarray
    """
    dydt = (influent.to_array() - state.to_array()) / hrt + rates @ matrix
    dydt[_I_H2] -= transfer.rho_h2 * COD_H2 * 1000.0
    dydt[_I_CH4] -= transfer.rho_ch4 * COD_CH4 * 1000.0
    dydt[_I_IC] -= transfer.rho_co2 * 1000.0
    return dydt


@dataclass
class Evaluation:
    """Everything computed for one instant of the system."""

    ph: PHResult
    S_nh3: float
    factors: InhibitionFactors
    rates: np.ndarray
    transfer: GasTransfer
    dydt: np.ndarray
    dgas: np.ndarray

    @property
    def process_rates(self) -> List[ProcessRate]:
        return describe_rates(self.rates)


class ADM1System:
    """
    One digester bound to its feed and temperature-corrected parameters.

    Construction applies temperature correction and builds the Petersen
    matrix once; evaluation afterwards is side-effect free apart from the
    pH non-convergence counter.
    """

    def __init__(
        self,
        reactor: ReactorConfig,
        influent: ADM1State,
        params: ADM1Parameters = None,
        ph_solver: PHSolver = None,
        S_cat: float = 0.0,
        S_an: float = 0.0,
    ):
        params = params or ADM1Parameters()
        self.reactor = reactor
        self.influent = influent
        self.params = params
        self.kinetic = correct_kinetic_temperature(params.kinetic, reactor.temperature, params.temp_coeffs)
        self.physchem = correct_physicochemical_temperature(params.physchem, reactor.temperature)
        self.matrix = build_stoichiometric_matrix(params.stoich)
        self.ph_solver = ph_solver or PHSolver()
        self.S_cat = S_cat
        self.S_an = S_an
        self.ph_failures = 0
        self.evaluations = 0

    @property
    def hrt(self) -> float:
        return self.reactor.hrt

    def evaluate(self, state: ADM1State, gas: GasPhase) -> Evaluation:
        self.evaluations += 1
        ph = calculate_ph(state, self.physchem, self.S_cat, self.S_an, self.ph_solver)
        if not ph.converged:
            self.ph_failures += 1
        S_nh3 = calculate_free_ammonia(state.S_IN, ph.pH, self.physchem.K_a_IN)
        factors = inhibition_factors(ph.pH, state.S_h2, state.S_IN, S_nh3, self.kinetic)
        rates = rhos_adm1(state, self.kinetic, factors)
        r = self.reactor
        transfer = calculate_gas_transfer(state, gas, self.physchem, r.temperature, ph.pH)
        dydt = calculate_derivatives(state, self.influent, rates, self.matrix, transfer, self.hrt)
        dgas = gas_phase_derivatives(gas, transfer, r.V_liq, r.V_gas, r.temperature, r.pressure)
        return Evaluation(ph=ph, S_nh3=S_nh3, factors=factors, rates=rates,
                          transfer=transfer, dydt=dydt, dgas=dgas)

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        """Combined liquid (24) + headspace (3) derivative for integrators."""
        state = ADM1State.from_array(y[:N_STATES])
        gas = GasPhase.from_array(y[N_STATES:])
        ev = self.evaluate(state, gas)
        return np.concatenate([ev.dydt, ev.dgas])
